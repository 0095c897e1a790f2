"""Request and response contracts.

Requests are validated here before anything reaches the ledger. Responses
serialize with camelCase keys and money as JSON numbers. The analyst payload
models decode untrusted collaborator output, coercing each field to a safe
value instead of rejecting the whole payload.
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

from cashgame.models import (
    ExpenseCategory,
    ExpensePaymentMethod,
    PaymentMethod,
    TransactionType,
)

Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

Likelihood = Literal["high", "medium", "low"]

UNKNOWN = "Unknown"


class Contract(BaseModel):
    """Base for all wire contracts."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# === Sessions ===


class StartNewGameRequest(Contract):
    currency: str | None = None
    language: str | None = None


class GameSummary(Contract):
    """Aggregate figures for one session."""

    session: dict[str, Any]
    total_buy_ins: Money
    total_cashouts: Money
    total_tips: Money
    total_rake: Money
    total_expenses: Money
    net_profit: Money
    till_balance: Money
    player_count: int
    credit_balance: Money


# === Player transactions ===


class SettlementInput(Contract):
    cash_component: Money = Field(ge=0, decimal_places=2)
    credit_component: Money = Field(ge=0, decimal_places=2)


class AddPlayerTransactionRequest(Contract):
    game_session_id: str
    player_name: str = Field(min_length=1)
    type: TransactionType
    amount: Money = Field(gt=0, decimal_places=2)
    payment_method: PaymentMethod
    notes: str | None = None
    is_paid: bool | None = None
    settlement: SettlementInput | None = None


class UpdatePlayerTransactionRequest(Contract):
    amount: Money = Field(gt=0, decimal_places=2)
    payment_method: PaymentMethod
    notes: str | None = None
    settlement: SettlementInput | None = None


# === Dealer downs ===


class AddDealerDownRequest(Contract):
    game_session_id: str
    dealer_name: str = Field(min_length=1)
    tips: Money = Field(ge=0, decimal_places=2)
    rake: Money = Field(ge=0, decimal_places=2)


class UpdateDealerDownRequest(Contract):
    dealer_name: str = Field(min_length=1)
    tips: Money = Field(ge=0, decimal_places=2)
    rake: Money = Field(ge=0, decimal_places=2)


class ClaimTipsByDealerRequest(Contract):
    dealer_name: str = Field(min_length=1)
    game_session_id: str
    percentage: Decimal = Field(default=Decimal("100"), ge=0, le=100)


class ClaimTipsByDealerResponse(Contract):
    updated_count: int
    total_tips_claimed: Money
    owner_cut: Money
    dealer_payout: Money


class ClaimAllRakeRequest(Contract):
    game_session_id: str


class ClaimAllRakeResponse(Contract):
    updated_count: int
    total_rake_claimed: Money


class UpdateTotalRakeRequest(Contract):
    game_session_id: str
    total_rake: Money = Field(ge=0, decimal_places=2)


# === Expenses ===


class AddExpenseRequest(Contract):
    game_session_id: str
    description: str = Field(min_length=1)
    amount: Money = Field(gt=0, decimal_places=2)
    category: ExpenseCategory
    payment_method: ExpensePaymentMethod
    notes: str | None = None


class UpdateExpenseRequest(Contract):
    description: str = Field(min_length=1)
    amount: Money = Field(gt=0, decimal_places=2)
    category: ExpenseCategory
    payment_method: ExpensePaymentMethod
    notes: str | None = None


# === Till analysis ===


class AnalyzeTillRequest(Contract):
    session_id: str
    actual_till_amount: Money


def _coerce_amount(value: Any) -> Decimal | None:
    """Numbers (or numeric strings) become Decimal; anything else is absent."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float, Decimal, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            return None
        return amount if amount.is_finite() else None
    return None


def _coerce_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return UNKNOWN
    text = str(value).strip()
    return text or UNKNOWN


def _only_objects(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


class TillAnalysisCause(Contract):
    description: str = UNKNOWN
    likelihood: Likelihood = "medium"
    amount: Money | None = None
    transaction_ids: list[str] | None = None

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator("likelihood", mode="before")
    @classmethod
    def _likelihood(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in ("high", "medium", "low"):
            return value.strip().lower()
        return "medium"

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> Decimal | None:
        return _coerce_amount(value)

    @field_validator("transaction_ids", mode="before")
    @classmethod
    def _transaction_ids(cls, value: Any) -> list[str] | None:
        if not isinstance(value, list):
            return None
        return [str(item) for item in value if item is not None]


class TransactionToReview(Contract):
    id: str = UNKNOWN
    player_name: str = UNKNOWN
    type: str = UNKNOWN
    amount: Money | None = None
    payment_method: str = UNKNOWN
    notes: str | None = None
    reason: str = UNKNOWN

    @field_validator("id", "player_name", "type", "payment_method", "reason", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> Decimal | None:
        return _coerce_amount(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _notes(cls, value: Any) -> str | None:
        if value is None or isinstance(value, (dict, list)):
            return None
        return str(value) or None


class AnalystReport(Contract):
    """Decoded collaborator output, before it is merged with ledger figures."""

    summary: str | None = None
    possible_causes: list[TillAnalysisCause] = Field(default_factory=list)
    transactions_to_review: list[TransactionToReview] = Field(default_factory=list)
    recommendations: list[str] | None = None

    @field_validator("summary", mode="before")
    @classmethod
    def _summary(cls, value: Any) -> str | None:
        if value is None or isinstance(value, (dict, list)):
            return None
        return str(value).strip() or None

    @field_validator("possible_causes", "transactions_to_review", mode="before")
    @classmethod
    def _objects(cls, value: Any) -> list[dict[str, Any]]:
        return _only_objects(value)

    @field_validator("recommendations", mode="before")
    @classmethod
    def _recommendations(cls, value: Any) -> list[str] | None:
        if not isinstance(value, list):
            return None
        return [str(item) for item in value if item is not None]


class AnalyzeTillResponse(Contract):
    discrepancy_amount: Money
    expected_till: Money
    actual_till: Money
    summary: str
    possible_causes: list[TillAnalysisCause] = Field(default_factory=list)
    transactions_to_review: list[TransactionToReview] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
