"""Ledger aggregation for a cash game session.

Pure functions that turn a session's events into cash-flow figures, the
predicted till balance, net profit and outstanding player credit. Nothing
here performs I/O; inputs are assumed validated at write time.

Till balance has two formulas in use. The session summary leaves claimed
rake in the till; till reconciliation treats claimed rake as cash already
pulled from the drawer. Both are kept explicit via ``TillFormula`` until the
product decides which one is right.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from cashgame.contracts import GameSummary
from cashgame.models import DealerDown, Expense, GameSession, PaymentMethod, PlayerTransaction

ZERO = Decimal("0")


class TillFormula(str, Enum):
    """Which outflows reduce the predicted till."""

    SUMMARY = "summary"
    RECONCILIATION = "reconciliation"


@dataclass(frozen=True)
class CashFlow:
    """Cash-relevant totals for one session."""

    cash_buy_ins: Decimal = ZERO
    paid_credit_buy_ins: Decimal = ZERO
    auto_settled_credit: Decimal = ZERO
    cash_cashouts: Decimal = ZERO
    paid_tips: Decimal = ZERO
    claimed_rake: Decimal = ZERO
    expenses: Decimal = ZERO

    @property
    def manually_paid_credit(self) -> Decimal:
        """Credit paid back in cash, excluding debt wiped by cashouts."""
        return max(ZERO, self.paid_credit_buy_ins - self.auto_settled_credit)


@dataclass(frozen=True)
class DealerTotals:
    dealer_name: str
    downs: int
    tips: Decimal
    rake: Decimal
    unpaid_tips: Decimal
    unclaimed_rake: Decimal


def _sum(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def cashout_cash_equivalent(transaction: PlayerTransaction) -> Decimal:
    """Cash that left the till for one cashout.

    A recorded settlement states the cash component outright, whatever the
    payment method. Otherwise only cash cashouts move cash, at full value.
    """
    settlement = transaction.settlement
    if settlement is not None and settlement.cash_component is not None:
        return settlement.cash_component
    if transaction.payment_method == PaymentMethod.CASH:
        return transaction.amount
    return ZERO


def auto_settled_credit(transactions: Iterable[PlayerTransaction]) -> Decimal:
    """Credit debt wiped as a side effect of cashouts."""
    return _sum(
        t.settlement.credit_component
        for t in transactions
        if t.is_cashout and t.settlement is not None and t.settlement.credit_component is not None
    )


def compute_cash_flow(
    transactions: Iterable[PlayerTransaction],
    dealer_downs: Iterable[DealerDown],
    expenses: Iterable[Expense],
) -> CashFlow:
    """Collect the cash-relevant totals of a session."""
    transactions = list(transactions)
    dealer_downs = list(dealer_downs)

    return CashFlow(
        cash_buy_ins=_sum(
            t.amount
            for t in transactions
            if t.is_buy_in and t.payment_method == PaymentMethod.CASH
        ),
        paid_credit_buy_ins=_sum(
            t.amount
            for t in transactions
            if t.is_buy_in and t.payment_method == PaymentMethod.CREDIT and t.is_paid
        ),
        auto_settled_credit=auto_settled_credit(transactions),
        cash_cashouts=_sum(cashout_cash_equivalent(t) for t in transactions if t.is_cashout),
        paid_tips=_sum(d.tips for d in dealer_downs if d.tips_paid),
        claimed_rake=_sum(d.rake for d in dealer_downs if d.rake_claimed),
        expenses=_sum(e.amount for e in expenses),
    )


def till_balance(flow: CashFlow, formula: TillFormula = TillFormula.SUMMARY) -> Decimal:
    """Predicted physical cash in the drawer."""
    balance = (
        flow.cash_buy_ins
        + flow.manually_paid_credit
        - flow.cash_cashouts
        - flow.paid_tips
        - flow.expenses
    )
    if formula == TillFormula.RECONCILIATION:
        balance -= flow.claimed_rake
    return balance


def credit_balances_by_player(transactions: Iterable[PlayerTransaction]) -> dict[str, Decimal]:
    """Outstanding credit per player; players who owe nothing are omitted."""
    owed: dict[str, Decimal] = defaultdict(lambda: ZERO)
    returned: dict[str, Decimal] = defaultdict(lambda: ZERO)

    for t in transactions:
        if t.payment_method != PaymentMethod.CREDIT:
            continue
        if t.is_buy_in and not t.is_paid:
            owed[t.player_name] += t.amount
        elif t.is_cashout:
            # Returning chips reduces the debt whatever the notes say
            returned[t.player_name] += t.amount

    balances = {}
    for player in owed.keys() | returned.keys():
        net = max(ZERO, owed[player] - returned[player])
        if net > 0:
            balances[player] = net
    return balances


def total_rake(session: GameSession, dealer_downs: Iterable[DealerDown]) -> Decimal:
    """Drop-box total when entered, else the running per-down sum."""
    if session.total_rake > 0:
        return session.total_rake
    return _sum(d.rake for d in dealer_downs)


def dealer_totals(dealer_downs: Iterable[DealerDown]) -> list[DealerTotals]:
    """Per-dealer tips and rake, in order of first appearance."""
    grouped: dict[str, list[DealerDown]] = {}
    for down in dealer_downs:
        grouped.setdefault(down.dealer_name, []).append(down)

    return [
        DealerTotals(
            dealer_name=name,
            downs=len(downs),
            tips=_sum(d.tips for d in downs),
            rake=_sum(d.rake for d in downs),
            unpaid_tips=_sum(d.tips for d in downs if not d.tips_paid),
            unclaimed_rake=_sum(d.rake for d in downs if not d.rake_claimed),
        )
        for name, downs in grouped.items()
    ]


def compute_summary(
    session: GameSession,
    transactions: Iterable[PlayerTransaction],
    dealer_downs: Iterable[DealerDown],
    expenses: Iterable[Expense],
) -> GameSummary:
    """Aggregate a session's events into its summary figures."""
    transactions = list(transactions)
    dealer_downs = list(dealer_downs)
    expenses = list(expenses)

    flow = compute_cash_flow(transactions, dealer_downs, expenses)
    rake = total_rake(session, dealer_downs)

    return GameSummary(
        session=session.to_dict(),
        total_buy_ins=_sum(t.amount for t in transactions if t.is_buy_in),
        total_cashouts=_sum(t.amount for t in transactions if t.is_cashout),
        total_tips=_sum(d.tips for d in dealer_downs),
        total_rake=rake,
        total_expenses=flow.expenses,
        net_profit=rake - flow.expenses,
        till_balance=till_balance(flow, TillFormula.SUMMARY),
        player_count=len({t.player_name for t in transactions}),
        credit_balance=_sum(credit_balances_by_player(transactions).values()),
    )
