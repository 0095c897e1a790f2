"""Settlement facts carried by cashout notes.

A player who owes credit can cash out chips and settle part of the debt in the
same step. Older records only carry this as text in the transaction notes, in
one of two dialects:

    current:  "received $150.00 cash, paid $150.00 credit"
    legacy:   "(credit settled: $150.00, cash paid: $150.00)"

New records store a structured ``Settlement`` instead; the parsers here exist
to build one from free text exactly once, when the record is written.
"""

import re
from dataclasses import dataclass
from decimal import Decimal

_AMOUNT = r"\$(\d+(?:\.\d{2})?)"

CASH_RECEIVED_PATTERNS = (
    re.compile(rf"received {_AMOUNT} cash"),
    re.compile(rf"cash paid: {_AMOUNT}\)"),
)

# Legacy dialect first for credit.
CREDIT_SETTLED_PATTERNS = (
    re.compile(rf"credit settled: {_AMOUNT}"),
    re.compile(rf"paid {_AMOUNT} credit"),
)


@dataclass(frozen=True)
class Settlement:
    """Cash and credit components of a settling cashout."""

    cash_component: Decimal | None = None
    credit_component: Decimal | None = None

    @property
    def is_empty(self) -> bool:
        return self.cash_component is None and self.credit_component is None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "cashComponent": _fmt(self.cash_component),
            "creditComponent": _fmt(self.credit_component),
        }


def _fmt(amount: Decimal | None) -> str | None:
    return None if amount is None else f"{amount:.2f}"


def _first_match(patterns: tuple[re.Pattern[str], ...], notes: str | None) -> Decimal | None:
    if not notes:
        return None
    for pattern in patterns:
        match = pattern.search(notes)
        if match:
            return Decimal(match.group(1))
    return None


def parse_cash_received(notes: str | None) -> Decimal | None:
    """Return the cash actually handed out on a cashout, if the notes say so."""
    return _first_match(CASH_RECEIVED_PATTERNS, notes)


def parse_credit_settled(notes: str | None) -> Decimal | None:
    """Return the credit debt settled by a cashout, if the notes say so."""
    return _first_match(CREDIT_SETTLED_PATTERNS, notes)


def settlement_from_notes(notes: str | None) -> Settlement | None:
    """Build a structured settlement from free-text notes, or None."""
    settlement = Settlement(
        cash_component=parse_cash_received(notes),
        credit_component=parse_credit_settled(notes),
    )
    return None if settlement.is_empty else settlement


def format_settlement_note(cash: Decimal, credit: Decimal) -> str:
    """Render a settlement in the current notes dialect."""
    return f"received ${cash:.2f} cash, paid ${credit:.2f} credit"
