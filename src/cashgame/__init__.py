"""Cash game ledger - till reconciliation for live poker cash games."""

__version__ = "0.1.0"

from cashgame.analysis import TillAnalyzer
from cashgame.clients import OpenAIClient
from cashgame.config import configure_logging, get_settings
from cashgame.ledger import (
    CashFlow,
    TillFormula,
    compute_cash_flow,
    compute_summary,
    credit_balances_by_player,
    till_balance,
)
from cashgame.models import (
    DealerDown,
    Expense,
    GameSession,
    PaymentMethod,
    PlayerTransaction,
    TransactionType,
    User,
)
from cashgame.service import GameService
from cashgame.settlement import Settlement, parse_cash_received, parse_credit_settled
from cashgame.store import InMemoryStore

__all__ = [
    # Version
    "__version__",
    # Records
    "GameSession",
    "PlayerTransaction",
    "DealerDown",
    "Expense",
    "User",
    "TransactionType",
    "PaymentMethod",
    # Ledger
    "CashFlow",
    "TillFormula",
    "compute_cash_flow",
    "compute_summary",
    "credit_balances_by_player",
    "till_balance",
    # Settlements
    "Settlement",
    "parse_cash_received",
    "parse_credit_settled",
    # Analysis
    "TillAnalyzer",
    "OpenAIClient",
    # Service & storage
    "GameService",
    "InMemoryStore",
    # Config
    "get_settings",
    "configure_logging",
]
