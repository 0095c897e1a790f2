"""Tests for ledger aggregation."""

from decimal import Decimal

from cashgame.ledger import (
    CashFlow,
    TillFormula,
    compute_cash_flow,
    compute_summary,
    credit_balances_by_player,
    dealer_totals,
    till_balance,
    total_rake,
)
from cashgame.settlement import Settlement


class TestEmptySession:
    """A session with no events."""

    def test_everything_is_zero(self, session):
        summary = compute_summary(session, [], [], [])

        assert summary.till_balance == 0
        assert summary.net_profit == 0
        assert summary.credit_balance == 0
        assert summary.player_count == 0
        assert summary.total_buy_ins == 0
        assert summary.total_cashouts == 0


class TestCashFlow:
    """Tests for compute_cash_flow() and till_balance()."""

    def test_cash_buy_in_and_cashout(self, session, make_transaction):
        transactions = [
            make_transaction("Ann", "buy-in", 500),
            make_transaction("Ann", "cashout", 300),
        ]

        flow = compute_cash_flow(transactions, [], [])

        assert flow.cash_buy_ins == Decimal("500")
        assert flow.cash_cashouts == Decimal("300")
        assert till_balance(flow) == Decimal("200")

    def test_electronic_and_credit_buy_ins_add_no_cash(self, make_transaction):
        transactions = [
            make_transaction("Ann", "buy-in", 200, "electronic"),
            make_transaction("Bob", "buy-in", 300, "credit", is_paid=False),
        ]

        flow = compute_cash_flow(transactions, [], [])

        assert flow.cash_buy_ins == 0
        assert till_balance(flow) == 0

    def test_settled_credit_cashout(self, make_transaction):
        transactions = [
            make_transaction("Ann", "buy-in", 500, "credit", is_paid=False),
            make_transaction(
                "Ann", "cashout", 300, "credit", notes="received $150 cash, paid $150 credit"
            ),
        ]

        flow = compute_cash_flow(transactions, [], [])

        assert flow.cash_cashouts == Decimal("150")
        assert flow.auto_settled_credit == Decimal("150")
        assert credit_balances_by_player(transactions) == {"Ann": Decimal("200")}

    def test_cash_cashout_without_notes_uses_nominal_amount(self, make_transaction):
        flow = compute_cash_flow([make_transaction("Ann", "cashout", 275.5)], [], [])
        assert flow.cash_cashouts == Decimal("275.5")

    def test_credit_cashout_without_settlement_moves_no_cash(self, make_transaction):
        flow = compute_cash_flow([make_transaction("Ann", "cashout", 300, "credit")], [], [])
        assert flow.cash_cashouts == 0

    def test_manually_paid_credit_excludes_auto_settled(self, make_transaction):
        transactions = [
            make_transaction("Ann", "buy-in", 400, "credit", is_paid=True),
            make_transaction("Ann", "cashout", 500, "cash", notes="(credit settled: $400.00)"),
        ]

        flow = compute_cash_flow(transactions, [], [])

        assert flow.paid_credit_buy_ins == Decimal("400")
        assert flow.auto_settled_credit == Decimal("400.00")
        assert flow.manually_paid_credit == 0

    def test_manually_paid_credit_is_floored(self):
        flow = CashFlow(paid_credit_buy_ins=Decimal("100"), auto_settled_credit=Decimal("250"))
        assert flow.manually_paid_credit == 0

    def test_paid_tips_and_expenses_leave_the_till(self, make_transaction, make_down, make_expense):
        transactions = [make_transaction("Ann", "buy-in", 1000)]
        downs = [
            make_down("Dee", tips=40, rake=25, tips_paid=True),
            make_down("Dee", tips=60, rake=30),
        ]
        expenses = [make_expense("Pizza", 45)]

        flow = compute_cash_flow(transactions, downs, expenses)

        assert flow.paid_tips == Decimal("40")
        assert flow.expenses == Decimal("45")
        assert till_balance(flow) == Decimal("915")

    def test_reconciliation_formula_subtracts_claimed_rake(self, make_transaction, make_down):
        transactions = [make_transaction("Ann", "buy-in", 1000)]
        downs = [make_down("Dee", rake=25, rake_claimed=True), make_down("Eve", rake=30)]

        flow = compute_cash_flow(transactions, downs, [])

        assert till_balance(flow, TillFormula.SUMMARY) == Decimal("1000")
        assert till_balance(flow, TillFormula.RECONCILIATION) == Decimal("975")

    def test_structured_settlement_without_notes(self, make_transaction):
        cashout = make_transaction(
            "Ann",
            "cashout",
            300,
            "credit",
            settlement=Settlement(cash_component=Decimal("100"), credit_component=Decimal("200")),
        )

        flow = compute_cash_flow([cashout], [], [])

        assert flow.cash_cashouts == Decimal("100")
        assert flow.auto_settled_credit == Decimal("200")


class TestCreditBalances:
    """Tests for credit_balances_by_player()."""

    def test_paid_credit_is_not_owed(self, make_transaction):
        transactions = [make_transaction("Ann", "buy-in", 500, "credit", is_paid=True)]
        assert credit_balances_by_player(transactions) == {}

    def test_never_negative(self, make_transaction):
        transactions = [
            make_transaction("Ann", "buy-in", 100, "credit", is_paid=False),
            make_transaction("Ann", "cashout", 400, "credit"),
            make_transaction("Bob", "buy-in", 250, "credit", is_paid=False),
        ]

        balances = credit_balances_by_player(transactions)

        assert balances == {"Bob": Decimal("250")}
        assert all(amount > 0 for amount in balances.values())

    def test_cash_transactions_ignored(self, make_transaction):
        transactions = [
            make_transaction("Ann", "buy-in", 100, "credit", is_paid=False),
            make_transaction("Ann", "cashout", 100, "cash"),
        ]
        assert credit_balances_by_player(transactions) == {"Ann": Decimal("100")}


class TestSummary:
    """Tests for compute_summary()."""

    def test_totals(self, session, make_transaction, make_down, make_expense):
        transactions = [
            make_transaction("Ann", "buy-in", 500),
            make_transaction("Bob", "buy-in", 300, "electronic"),
            make_transaction("Cat", "buy-in", 200, "credit", is_paid=False),
            make_transaction("Ann", "cashout", 650),
        ]
        downs = [make_down("Dee", tips=50, rake=40), make_down("Eve", tips=30, rake=35)]
        expenses = [make_expense("Drinks", 20, category="drinks")]

        summary = compute_summary(session, transactions, downs, expenses)

        assert summary.total_buy_ins == Decimal("1000")
        assert summary.total_cashouts == Decimal("650")
        assert summary.total_tips == Decimal("80")
        assert summary.total_rake == Decimal("75")
        assert summary.total_expenses == Decimal("20")
        assert summary.net_profit == Decimal("55")
        assert summary.till_balance == Decimal("-170")
        assert summary.player_count == 3
        assert summary.credit_balance == Decimal("200")

    def test_session_total_rake_overrides_downs(self, session, make_down):
        session.total_rake = Decimal("120")
        downs = [make_down("Dee", rake=40), make_down("Eve", rake=999)]

        summary = compute_summary(session, [], downs, [])

        assert summary.total_rake == Decimal("120")
        assert total_rake(session, downs) == Decimal("120")

    def test_net_profit_ignores_tips_and_buy_ins(self, session, make_transaction, make_down):
        downs = [make_down("Dee", tips=500, rake=100, tips_paid=True)]
        summary = compute_summary(
            session, [make_transaction("Ann", "buy-in", 5000)], downs, []
        )
        assert summary.net_profit == summary.total_rake - summary.total_expenses
        assert summary.net_profit == Decimal("100")

    def test_wire_format(self, session, make_transaction):
        summary = compute_summary(session, [make_transaction("Ann", "buy-in", 500)], [], [])

        wire = summary.to_wire()

        assert wire["totalBuyIns"] == 500.0
        assert wire["tillBalance"] == 500.0
        assert wire["playerCount"] == 1
        assert wire["session"]["id"] == session.id


class TestDealerTotals:
    """Tests for dealer_totals()."""

    def test_groups_by_dealer(self, make_down):
        downs = [
            make_down("Dee", tips=40, rake=20, tips_paid=True),
            make_down("Eve", tips=10, rake=5),
            make_down("Dee", tips=60, rake=30, rake_claimed=True),
        ]

        totals = dealer_totals(downs)

        assert [t.dealer_name for t in totals] == ["Dee", "Eve"]
        dee = totals[0]
        assert dee.downs == 2
        assert dee.tips == Decimal("100")
        assert dee.unpaid_tips == Decimal("60")
        assert dee.unclaimed_rake == Decimal("20")
