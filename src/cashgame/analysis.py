"""Till discrepancy analysis.

Compares a counted till against the ledger's prediction and, when the gap is
material, asks a reasoning collaborator for ranked causes. The collaborator's
answer is untrusted: it is decoded through ``AnalystReport`` and merged with
the ledger's own figures, so the caller always gets a well-formed response.
"""

import json
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Any, Protocol

import pydantic
import structlog

from cashgame.contracts import AnalystReport, AnalyzeTillResponse
from cashgame.errors import UpstreamInvalidResponseError, UpstreamUnconfiguredError
from cashgame.ledger import CashFlow, TillFormula, compute_cash_flow, till_balance
from cashgame.models import DealerDown, Expense, GameSession, PlayerTransaction

logger = structlog.get_logger(__name__)

MATERIALITY_THRESHOLD = Decimal("1.00")

BALANCED_SUMMARY = "Your till matches the expected amount. No discrepancy detected."
BALANCED_RECOMMENDATION = "Your records appear to be accurate. Keep up the good work!"
FALLBACK_RECOMMENDATIONS = [
    "Review all transactions for accuracy",
    "Double-check cash counts",
]

SYSTEM_PROMPT = """You are a financial analyst for live poker cash games. A game manager counted \
the physical cash till and it does not match the amount the ledger predicts. Find the most \
likely reasons.

Look at payment methods, timing, settlement notes and the usual bookkeeping mistakes:
- credit buy-ins recorded as cash, or credit not marked as paid
- electronic payments recorded as cash
- tips or rake paid out of the till but not marked in the ledger
- cashouts that settled credit without the settlement being recorded
- missing or miscategorized expenses
- counting errors or missed entries
- unauthorized withdrawals
- round amounts that suggest estimates instead of counts

Be precise with numbers. Answer with one JSON object of exactly this shape:
{
  "summary": "one or two sentences describing the discrepancy",
  "possibleCauses": [
    {
      "description": "string",
      "likelihood": "high" | "medium" | "low",
      "amount": number (optional, how much of the gap this explains),
      "transactionIds": ["id", ...] (optional)
    }
  ],
  "transactionsToReview": [
    {
      "id": "transaction id",
      "playerName": "string",
      "type": "buy-in" | "cashout",
      "amount": number,
      "paymentMethod": "cash" | "electronic" | "credit",
      "notes": "string or null",
      "reason": "why it should be checked"
    }
  ],
  "recommendations": ["actionable step", ...]
}
Rank possibleCauses from most to least likely."""


class ReasoningClient(Protocol):
    """What the analyzer needs from a reasoning collaborator."""

    @property
    def is_configured(self) -> bool: ...

    async def complete_json(self, system_prompt: str, user_prompt: str) -> Any: ...


def _money(amount: Decimal) -> str:
    return f"${amount:.2f}"


def _number(amount: Decimal) -> float:
    return float(amount)


def _format_transactions(transactions: Sequence[PlayerTransaction]) -> list[dict[str, Any]]:
    return [
        {
            "id": t.id,
            "player": t.player_name,
            "type": t.type.value,
            "amount": _number(t.amount),
            "paymentMethod": t.payment_method.value,
            "isPaid": t.is_paid,
            "notes": t.notes,
            "settlement": t.settlement.to_dict() if t.settlement else None,
            "timestamp": t.timestamp.isoformat(),
            "createdBy": t.created_by_initials or "unknown",
        }
        for t in transactions
    ]


def _format_dealer_downs(dealer_downs: Sequence[DealerDown]) -> list[dict[str, Any]]:
    return [
        {
            "id": d.id,
            "dealer": d.dealer_name,
            "tips": _number(d.tips),
            "rake": _number(d.rake),
            "tipsPaid": d.tips_paid,
            "rakeClaimed": d.rake_claimed,
            "timestamp": d.timestamp.isoformat(),
            "createdBy": d.created_by_initials or "unknown",
        }
        for d in dealer_downs
    ]


def _format_expenses(expenses: Sequence[Expense]) -> list[dict[str, Any]]:
    return [
        {
            "id": e.id,
            "description": e.description,
            "amount": _number(e.amount),
            "category": e.category.value,
            "paymentMethod": e.payment_method.value,
            "paidOut": e.paid_out,
            "notes": e.notes,
            "timestamp": e.timestamp.isoformat(),
            "createdBy": e.created_by_initials or "unknown",
        }
        for e in expenses
    ]


def build_user_prompt(
    session: GameSession,
    transactions: Sequence[PlayerTransaction],
    dealer_downs: Sequence[DealerDown],
    expenses: Sequence[Expense],
    flow: CashFlow,
    expected_till: Decimal,
    actual_till: Decimal,
) -> str:
    """Render the session facts the analyst reasons over."""
    discrepancy = actual_till - expected_till
    direction = (
        "OVER - more cash than expected" if discrepancy > 0 else "SHORT - less cash than expected"
    )

    return f"""Analyze this poker game session for a till discrepancy.

DISCREPANCY:
- Expected Till: {_money(expected_till)}
- Actual Till: {_money(actual_till)}
- Discrepancy: {_money(discrepancy)} ({direction})

SESSION:
Currency: {session.currency}
Started: {session.started_at.isoformat()}
Session ID: {session.id}

TRANSACTIONS ({len(transactions)} total):
{json.dumps(_format_transactions(transactions), indent=2)}

DEALER DOWNS ({len(dealer_downs)} total):
{json.dumps(_format_dealer_downs(dealer_downs), indent=2)}

EXPENSES ({len(expenses)} total):
{json.dumps(_format_expenses(expenses), indent=2)}

CALCULATED BREAKDOWN:
- Cash Buy-ins: {_money(flow.cash_buy_ins)}
- Manually Paid Credit: {_money(flow.manually_paid_credit)}
- Auto-Settled Credit: {_money(flow.auto_settled_credit)}
- Cash Cashouts: {_money(flow.cash_cashouts)}
- Paid Tips: {_money(flow.paid_tips)}
- Claimed Rake: {_money(flow.claimed_rake)}
- Expenses: {_money(flow.expenses)}

Identify the most likely causes for this {_money(abs(discrepancy))} discrepancy."""


def decode_report(content: str) -> AnalystReport:
    """Decode the collaborator's JSON text into an ``AnalystReport``.

    Raises:
        UpstreamInvalidResponseError: Empty output, invalid JSON, or a JSON
            value that is not an object.
    """
    if not content or not content.strip():
        raise UpstreamInvalidResponseError("No response from the till analyst")
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise UpstreamInvalidResponseError(
            "Failed to analyze till discrepancy. Please try again.", details=str(e)
        ) from e
    if not isinstance(payload, dict):
        raise UpstreamInvalidResponseError(
            "Failed to analyze till discrepancy. Please try again.",
            details=f"expected a JSON object, got {type(payload).__name__}",
        )
    try:
        return AnalystReport.model_validate(payload)
    except pydantic.ValidationError as e:
        raise UpstreamInvalidResponseError(
            "Failed to analyze till discrepancy. Please try again.", details=str(e)
        ) from e


class TillAnalyzer:
    """Explains differences between the counted and the predicted till."""

    def __init__(self, client: ReasoningClient):
        self._client = client

    async def analyze_till(
        self,
        session: GameSession,
        transactions: Iterable[PlayerTransaction],
        dealer_downs: Iterable[DealerDown],
        expenses: Iterable[Expense],
        actual_till: Decimal,
    ) -> AnalyzeTillResponse:
        """Compare ``actual_till`` with the ledger and explain any gap.

        Raises:
            UpstreamUnconfiguredError: The reasoning collaborator has no credentials.
            UpstreamInvalidResponseError: The collaborator failed or answered with
                something that is not a JSON object.
        """
        log = logger.bind(session_id=session.id)
        if not self._client.is_configured:
            log.warning("analyst_not_configured")
            raise UpstreamUnconfiguredError(
                "AI analysis is not configured. Please contact support."
            )

        transactions = list(transactions)
        dealer_downs = list(dealer_downs)
        expenses = list(expenses)

        flow = compute_cash_flow(transactions, dealer_downs, expenses)
        expected_till = till_balance(flow, TillFormula.RECONCILIATION)
        discrepancy = actual_till - expected_till

        log.info(
            "till_compared",
            expected_till=str(expected_till),
            actual_till=str(actual_till),
            discrepancy=str(discrepancy),
        )

        if abs(discrepancy) < MATERIALITY_THRESHOLD:
            return AnalyzeTillResponse(
                discrepancy_amount=Decimal("0"),
                expected_till=expected_till,
                actual_till=actual_till,
                summary=BALANCED_SUMMARY,
                possible_causes=[],
                transactions_to_review=[],
                recommendations=[BALANCED_RECOMMENDATION],
            )

        user_prompt = build_user_prompt(
            session, transactions, dealer_downs, expenses, flow, expected_till, actual_till
        )

        try:
            response = await self._client.complete_json(SYSTEM_PROMPT, user_prompt)
        except UpstreamUnconfiguredError:
            raise
        except Exception as e:
            log.error("analyst_call_failed", error=str(e))
            raise UpstreamInvalidResponseError(
                "Failed to analyze till discrepancy. Please try again.", details=str(e)
            ) from e

        report = decode_report(response.content)

        direction = "over" if discrepancy > 0 else "short"
        result = AnalyzeTillResponse(
            discrepancy_amount=discrepancy,
            expected_till=expected_till,
            actual_till=actual_till,
            summary=report.summary or f"Till is {direction} by {_money(abs(discrepancy))}",
            possible_causes=report.possible_causes,
            transactions_to_review=report.transactions_to_review,
            recommendations=(
                report.recommendations
                if report.recommendations is not None
                else list(FALLBACK_RECOMMENDATIONS)
            ),
        )

        log.info("analysis_complete", cause_count=len(result.possible_causes))
        return result
