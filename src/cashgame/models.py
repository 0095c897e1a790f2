"""Domain records for a cash game session.

Records are plain dataclasses; the store keeps them in memory and the
ledger reads them. ``to_dict`` renders the wire shape (camelCase keys,
ISO-8601 timestamps, two-decimal amounts).
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from cashgame.settlement import Settlement, settlement_from_notes


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return str(uuid4())


def _money(amount: Decimal) -> float:
    return float(amount.quantize(Decimal("0.01")))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class TransactionType(str, Enum):
    """Direction of a player transaction."""

    BUY_IN = "buy-in"
    CASHOUT = "cashout"


class PaymentMethod(str, Enum):
    """How a player transaction was paid."""

    CASH = "cash"
    ELECTRONIC = "electronic"
    CREDIT = "credit"


class ExpenseCategory(str, Enum):
    FOOD = "food"
    DRINKS = "drinks"
    OTHER = "other"


class ExpensePaymentMethod(str, Enum):
    CASH = "cash"
    ELECTRONIC = "electronic"


@dataclass
class User:
    """An authenticated actor, as far as the ledger cares."""

    id: str
    email: str
    name: str | None = None
    initials: str | None = None
    completed_games: int = 0

    def attribution_initials(self) -> str:
        """Initials stamped on records this user creates."""
        if self.initials:
            return self.initials
        if self.name:
            return "".join(part[0] for part in self.name.split()).upper()[:2]
        return self.email[:2].upper()


@dataclass
class GameSession:
    """One night's game at one table."""

    owner_id: str
    id: str = field(default_factory=_new_id)
    name: str = "Poker Game"
    table_name: str = "Main Table"
    started_at: datetime = field(default_factory=_utcnow)
    ended_at: datetime | None = None
    is_active: bool = True
    currency: str = "USD"
    language: str = "en"
    total_rake: Decimal = Decimal("0")
    member_ids: set[str] = field(default_factory=set)
    share_code: str | None = None
    share_code_expires_at: datetime | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def is_owner(self, user_id: str) -> bool:
        return self.owner_id == user_id

    def can_access(self, user_id: str) -> bool:
        return self.owner_id == user_id or user_id in self.member_ids

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "tableName": self.table_name,
            "startedAt": _iso(self.started_at),
            "endedAt": _iso(self.ended_at),
            "isActive": self.is_active,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "currency": self.currency,
            "language": self.language,
            "totalRake": _money(self.total_rake),
        }


@dataclass
class PlayerTransaction:
    """A buy-in or cashout by one player.

    ``settlement`` is resolved when the record is built: an explicit value
    wins, otherwise it is read from ``notes`` once.
    """

    game_session_id: str
    player_name: str
    type: TransactionType
    amount: Decimal
    payment_method: PaymentMethod
    notes: str | None = None
    is_paid: bool = True
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_utcnow)
    created_by_id: str | None = None
    created_by_initials: str | None = None
    settlement: Settlement | None = None

    def __post_init__(self) -> None:
        self.type = TransactionType(self.type)
        self.payment_method = PaymentMethod(self.payment_method)
        if self.settlement is None and self.type == TransactionType.CASHOUT:
            self.settlement = settlement_from_notes(self.notes)

    @property
    def is_buy_in(self) -> bool:
        return self.type == TransactionType.BUY_IN

    @property
    def is_cashout(self) -> bool:
        return self.type == TransactionType.CASHOUT

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "playerName": self.player_name,
            "type": self.type.value,
            "amount": _money(self.amount),
            "paymentMethod": self.payment_method.value,
            "notes": self.notes,
            "isPaid": self.is_paid,
            "timestamp": _iso(self.timestamp),
            "gameSessionId": self.game_session_id,
            "createdByInitials": self.created_by_initials,
            "settlement": self.settlement.to_dict() if self.settlement else None,
        }


@dataclass
class DealerDown:
    """One dealer's tips and rake for one rotation."""

    game_session_id: str
    dealer_name: str
    tips: Decimal = Decimal("0")
    rake: Decimal = Decimal("0")
    tips_paid: bool = False
    rake_claimed: bool = False
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_utcnow)
    created_by_id: str | None = None
    created_by_initials: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "dealerName": self.dealer_name,
            "tips": _money(self.tips),
            "rake": _money(self.rake),
            "tipsPaid": self.tips_paid,
            "rakeClaimed": self.rake_claimed,
            "timestamp": _iso(self.timestamp),
            "gameSessionId": self.game_session_id,
            "createdByInitials": self.created_by_initials,
        }


@dataclass
class Expense:
    """A house expense paid during the game."""

    game_session_id: str
    description: str
    amount: Decimal
    category: ExpenseCategory = ExpenseCategory.OTHER
    payment_method: ExpensePaymentMethod = ExpensePaymentMethod.CASH
    paid_out: bool = False
    notes: str | None = None
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_utcnow)
    created_by_id: str | None = None
    created_by_initials: str | None = None

    def __post_init__(self) -> None:
        self.category = ExpenseCategory(self.category)
        self.payment_method = ExpensePaymentMethod(self.payment_method)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "amount": _money(self.amount),
            "category": self.category.value,
            "paymentMethod": self.payment_method.value,
            "paidOut": self.paid_out,
            "notes": self.notes,
            "timestamp": _iso(self.timestamp),
            "gameSessionId": self.game_session_id,
            "createdByInitials": self.created_by_initials,
        }
