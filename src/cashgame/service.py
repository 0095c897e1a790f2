"""Game service: the read and write operations around the ledger.

Owners and members may read a session and add events to it. Changing or
removing existing records, and ending or deleting the session, is owner-only.
A session the actor cannot see is reported as not found, never forbidden.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, TypeVar

import pydantic
import structlog

from cashgame.analysis import TillAnalyzer
from cashgame.clients import OpenAIClient
from cashgame.config import Settings, get_settings, session_context
from cashgame.contracts import (
    AddDealerDownRequest,
    AddExpenseRequest,
    AddPlayerTransactionRequest,
    AnalyzeTillRequest,
    AnalyzeTillResponse,
    ClaimAllRakeRequest,
    ClaimAllRakeResponse,
    ClaimTipsByDealerRequest,
    ClaimTipsByDealerResponse,
    GameSummary,
    SettlementInput,
    StartNewGameRequest,
    UpdateDealerDownRequest,
    UpdateExpenseRequest,
    UpdatePlayerTransactionRequest,
    UpdateTotalRakeRequest,
)
from cashgame.errors import (
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from cashgame.ledger import compute_summary
from cashgame.models import (
    DealerDown,
    Expense,
    GameSession,
    PaymentMethod,
    PlayerTransaction,
    TransactionType,
    User,
)
from cashgame.settlement import Settlement, settlement_from_notes
from cashgame.store import InMemoryStore, SessionEvents

logger = structlog.get_logger(__name__)

RequestT = TypeVar("RequestT", bound=pydantic.BaseModel)

LOCAL_USER = User(id="local-dev", email="dev@localhost", name="Local Dev")

SESSION_NOT_FOUND = "Game session not found"


def parse_request(model: type[RequestT], payload: RequestT | dict[str, Any]) -> RequestT:
    """Validate a raw payload into a request contract."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError("Invalid request", details=e.errors()) from e


def _now() -> datetime:
    return datetime.now(UTC)


def _settlement(data: SettlementInput | None) -> Settlement | None:
    if data is None:
        return None
    return Settlement(cash_component=data.cash_component, credit_component=data.credit_component)


class GameService:
    """Session lifecycle and event bookkeeping over an ``InMemoryStore``."""

    def __init__(
        self,
        store: InMemoryStore | None = None,
        analyzer: TillAnalyzer | None = None,
        settings: Settings | None = None,
    ):
        self.store = store or InMemoryStore()
        self._settings = settings or get_settings()
        self._analyzer = analyzer

    @property
    def analyzer(self) -> TillAnalyzer:
        if self._analyzer is None:
            self._analyzer = TillAnalyzer(OpenAIClient())
        return self._analyzer

    # === Access control ===

    def _require_actor(self, actor: User | None) -> User:
        if actor is None:
            if not self._settings.auth_bypass:
                raise UnauthorizedError("Authentication required")
            actor = LOCAL_USER
        return self.store.get_user(actor.id) or self.store.save_user(actor)

    def _accessible_session(self, actor: User, session_id: str) -> GameSession:
        session = self.store.get_session(session_id)
        if session is None or not session.can_access(actor.id):
            raise NotFoundError(SESSION_NOT_FOUND)
        return session

    def _owned_session(self, actor: User, session_id: str) -> GameSession:
        session = self._accessible_session(actor, session_id)
        if not session.is_owner(actor.id):
            raise ForbiddenError("Only the session owner can do this")
        return session

    def _check_owned_record(self, actor: User, record: Any, label: str) -> None:
        not_found = f"{label} not found"
        if record is None:
            raise NotFoundError(not_found)
        session = self.store.get_session(record.game_session_id)
        if session is None or not session.can_access(actor.id):
            raise NotFoundError(not_found)
        if not session.is_owner(actor.id):
            raise ForbiddenError("Only the session owner can do this")

    def _events(self, actor: User, session_id: str) -> SessionEvents:
        self._accessible_session(actor, session_id)
        events = self.store.events_for(session_id)
        if events is None:
            raise NotFoundError(SESSION_NOT_FOUND)
        return events

    # === Sessions ===

    def get_active_session(self, actor: User | None) -> tuple[GameSession, int]:
        """Return the actor's active session, creating one if needed.

        Owned sessions take precedence over sessions the actor joined.
        Returns the session and the actor's completed-game count.
        """
        user = self._require_actor(actor)
        owned = sorted(
            self.store.sessions_owned_by(user.id, active=True),
            key=lambda s: s.started_at,
            reverse=True,
        )
        session = owned[0] if owned else None
        if session is None:
            joined = self.store.sessions_joined_by(user.id, active=True)
            session = joined[0] if joined else None
        if session is None:
            session = self.store.save_session(
                GameSession(
                    owner_id=user.id,
                    currency=self._settings.default_currency,
                    language=self._settings.default_language,
                )
            )
            logger.info("session_created", session_id=session.id, owner_id=user.id)
        return session, user.completed_games

    def start_new_session(
        self, actor: User | None, request: StartNewGameRequest | dict[str, Any] | None = None
    ) -> GameSession:
        """Start a session, ending any other active session the actor owns."""
        user = self._require_actor(actor)
        data = parse_request(StartNewGameRequest, request or {})

        for previous in self.store.sessions_owned_by(user.id, active=True):
            previous.is_active = False
            previous.ended_at = _now()
            previous.touch()
            logger.info("session_force_ended", session_id=previous.id)

        session = self.store.save_session(
            GameSession(
                owner_id=user.id,
                currency=data.currency or self._settings.default_currency,
                language=data.language or self._settings.default_language,
            )
        )
        logger.info(
            "session_created",
            session_id=session.id,
            currency=session.currency,
            language=session.language,
        )
        return session

    def end_session(self, actor: User | None, session_id: str) -> GameSession:
        user = self._require_actor(actor)
        session = self._owned_session(user, session_id)
        if not session.is_active:
            raise ValidationError("Game session is not active", status_code=400)

        session.is_active = False
        session.ended_at = _now()
        session.touch()
        user.completed_games += 1
        logger.info("session_ended", session_id=session.id, completed_games=user.completed_games)
        return session

    def delete_session(self, actor: User | None, session_id: str) -> None:
        user = self._require_actor(actor)
        self._owned_session(user, session_id)
        self.store.delete_session(session_id)
        logger.info("session_deleted", session_id=session_id)

    def session_history(self, actor: User | None) -> list[dict[str, Any]]:
        """The actor's ended sessions with their events, most recent first."""
        user = self._require_actor(actor)
        ended = sorted(
            self.store.sessions_owned_by(user.id, active=False),
            key=lambda s: s.ended_at or s.started_at,
            reverse=True,
        )
        history = []
        for session in ended:
            events = self.store.events_for(session.id)
            if events is None:
                continue
            history.append({
                **session.to_dict(),
                "playerTransactions": [t.to_dict() for t in events.transactions],
                "dealerDowns": [d.to_dict() for d in events.dealer_downs],
                "expenses": [e.to_dict() for e in events.expenses],
            })
        return history

    def get_summary(self, actor: User | None, session_id: str) -> GameSummary:
        user = self._require_actor(actor)
        events = self._events(user, session_id)
        summary = compute_summary(
            events.session, events.transactions, events.dealer_downs, events.expenses
        )
        logger.info(
            "summary_calculated",
            session_id=session_id,
            net_profit=str(summary.net_profit),
            till_balance=str(summary.till_balance),
            credit_balance=str(summary.credit_balance),
        )
        return summary

    # === Player transactions ===

    def add_transaction(
        self, actor: User | None, request: AddPlayerTransactionRequest | dict[str, Any]
    ) -> PlayerTransaction:
        user = self._require_actor(actor)
        data = parse_request(AddPlayerTransactionRequest, request)
        self._accessible_session(user, data.game_session_id)

        is_paid = data.is_paid
        if is_paid is None:
            is_paid = not (
                data.type == TransactionType.BUY_IN and data.payment_method == PaymentMethod.CREDIT
            )

        transaction = self.store.save_transaction(
            PlayerTransaction(
                game_session_id=data.game_session_id,
                player_name=data.player_name,
                type=data.type,
                amount=data.amount,
                payment_method=data.payment_method,
                notes=data.notes,
                is_paid=is_paid,
                created_by_id=user.id,
                created_by_initials=user.attribution_initials(),
                settlement=_settlement(data.settlement),
            )
        )
        logger.info(
            "transaction_created",
            transaction_id=transaction.id,
            type=transaction.type.value,
            amount=str(transaction.amount),
            initials=transaction.created_by_initials,
        )
        return transaction

    def list_transactions(self, actor: User | None, session_id: str) -> list[PlayerTransaction]:
        user = self._require_actor(actor)
        return list(reversed(self._events(user, session_id).transactions))

    def update_transaction(
        self,
        actor: User | None,
        transaction_id: str,
        request: UpdatePlayerTransactionRequest | dict[str, Any],
    ) -> PlayerTransaction:
        user = self._require_actor(actor)
        data = parse_request(UpdatePlayerTransactionRequest, request)
        transaction = self.store.get_transaction(transaction_id)
        self._check_owned_record(user, transaction, "Transaction")

        transaction.amount = data.amount
        transaction.payment_method = data.payment_method
        transaction.notes = data.notes
        if transaction.is_cashout:
            transaction.settlement = _settlement(data.settlement) or settlement_from_notes(
                data.notes
            )
        logger.info("transaction_updated", transaction_id=transaction_id)
        return transaction

    def delete_transaction(self, actor: User | None, transaction_id: str) -> None:
        user = self._require_actor(actor)
        self._check_owned_record(user, self.store.get_transaction(transaction_id), "Transaction")
        self.store.delete_transaction(transaction_id)
        logger.info("transaction_deleted", transaction_id=transaction_id)

    def _set_transaction_paid(
        self, actor: User | None, transaction_id: str, is_paid: bool
    ) -> PlayerTransaction:
        user = self._require_actor(actor)
        transaction = self.store.get_transaction(transaction_id)
        self._check_owned_record(user, transaction, "Transaction")
        transaction.is_paid = is_paid
        logger.info("transaction_paid_flag_set", transaction_id=transaction_id, is_paid=is_paid)
        return transaction

    def mark_transaction_paid(self, actor: User | None, transaction_id: str) -> PlayerTransaction:
        return self._set_transaction_paid(actor, transaction_id, True)

    def mark_transaction_unpaid(self, actor: User | None, transaction_id: str) -> PlayerTransaction:
        return self._set_transaction_paid(actor, transaction_id, False)

    # === Dealer downs ===

    def add_dealer_down(
        self, actor: User | None, request: AddDealerDownRequest | dict[str, Any]
    ) -> DealerDown:
        user = self._require_actor(actor)
        data = parse_request(AddDealerDownRequest, request)
        session = self._accessible_session(user, data.game_session_id)
        if not session.is_active:
            raise ValidationError("Game session is not active", status_code=400)

        down = self.store.save_dealer_down(
            DealerDown(
                game_session_id=data.game_session_id,
                dealer_name=data.dealer_name,
                tips=data.tips,
                rake=data.rake,
                created_by_id=user.id,
                created_by_initials=user.attribution_initials(),
            )
        )
        logger.info(
            "dealer_down_created",
            dealer_down_id=down.id,
            dealer=down.dealer_name,
            tips=str(down.tips),
            rake=str(down.rake),
        )
        return down

    def list_dealer_downs(self, actor: User | None, session_id: str) -> list[DealerDown]:
        user = self._require_actor(actor)
        return list(reversed(self._events(user, session_id).dealer_downs))

    def update_dealer_down(
        self,
        actor: User | None,
        dealer_down_id: str,
        request: UpdateDealerDownRequest | dict[str, Any],
    ) -> DealerDown:
        user = self._require_actor(actor)
        data = parse_request(UpdateDealerDownRequest, request)
        down = self.store.get_dealer_down(dealer_down_id)
        self._check_owned_record(user, down, "Dealer down")
        down.dealer_name = data.dealer_name
        down.tips = data.tips
        down.rake = data.rake
        logger.info("dealer_down_updated", dealer_down_id=dealer_down_id)
        return down

    def delete_dealer_down(self, actor: User | None, dealer_down_id: str) -> None:
        user = self._require_actor(actor)
        self._check_owned_record(user, self.store.get_dealer_down(dealer_down_id), "Dealer down")
        self.store.delete_dealer_down(dealer_down_id)
        logger.info("dealer_down_deleted", dealer_down_id=dealer_down_id)

    def _set_dealer_flag(
        self, actor: User | None, dealer_down_id: str, flag: str, value: bool
    ) -> DealerDown:
        user = self._require_actor(actor)
        down = self.store.get_dealer_down(dealer_down_id)
        self._check_owned_record(user, down, "Dealer down")
        setattr(down, flag, value)
        logger.info("dealer_down_flag_set", dealer_down_id=dealer_down_id, flag=flag, value=value)
        return down

    def mark_tips_paid(self, actor: User | None, dealer_down_id: str) -> DealerDown:
        return self._set_dealer_flag(actor, dealer_down_id, "tips_paid", True)

    def mark_tips_unpaid(self, actor: User | None, dealer_down_id: str) -> DealerDown:
        return self._set_dealer_flag(actor, dealer_down_id, "tips_paid", False)

    def claim_rake(self, actor: User | None, dealer_down_id: str) -> DealerDown:
        return self._set_dealer_flag(actor, dealer_down_id, "rake_claimed", True)

    def unclaim_rake(self, actor: User | None, dealer_down_id: str) -> DealerDown:
        return self._set_dealer_flag(actor, dealer_down_id, "rake_claimed", False)

    def claim_tips_by_dealer(
        self, actor: User | None, request: ClaimTipsByDealerRequest | dict[str, Any]
    ) -> ClaimTipsByDealerResponse:
        """Pay out every unpaid down of one dealer, keeping the owner's cut."""
        user = self._require_actor(actor)
        data = parse_request(ClaimTipsByDealerRequest, request)
        events = self._events(user, data.game_session_id)
        self._owned_session(user, data.game_session_id)

        unpaid = [
            d for d in events.dealer_downs if d.dealer_name == data.dealer_name and not d.tips_paid
        ]
        total = sum((d.tips for d in unpaid), Decimal("0"))
        for down in unpaid:
            down.tips_paid = True

        dealer_payout = (total * data.percentage / Decimal("100")).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
        owner_cut = total - dealer_payout

        logger.info(
            "dealer_tips_claimed",
            session_id=data.game_session_id,
            dealer=data.dealer_name,
            updated_count=len(unpaid),
            total_tips=str(total),
            dealer_payout=str(dealer_payout),
        )
        return ClaimTipsByDealerResponse(
            updated_count=len(unpaid),
            total_tips_claimed=total,
            owner_cut=owner_cut,
            dealer_payout=dealer_payout,
        )

    def claim_all_rake(
        self, actor: User | None, request: ClaimAllRakeRequest | dict[str, Any]
    ) -> ClaimAllRakeResponse:
        user = self._require_actor(actor)
        data = parse_request(ClaimAllRakeRequest, request)
        events = self._events(user, data.game_session_id)
        self._owned_session(user, data.game_session_id)

        unclaimed = [d for d in events.dealer_downs if not d.rake_claimed]
        total = sum((d.rake for d in unclaimed), Decimal("0"))
        for down in unclaimed:
            down.rake_claimed = True

        logger.info(
            "rake_claimed",
            session_id=data.game_session_id,
            updated_count=len(unclaimed),
            total_rake=str(total),
        )
        return ClaimAllRakeResponse(updated_count=len(unclaimed), total_rake_claimed=total)

    def update_total_rake(
        self, actor: User | None, request: UpdateTotalRakeRequest | dict[str, Any]
    ) -> GameSession:
        """Record the drop-box rake count, which overrides per-down rake."""
        user = self._require_actor(actor)
        data = parse_request(UpdateTotalRakeRequest, request)
        session = self._owned_session(user, data.game_session_id)
        session.total_rake = data.total_rake
        session.touch()
        logger.info("total_rake_updated", session_id=session.id, total_rake=str(data.total_rake))
        return session

    # === Expenses ===

    def add_expense(
        self, actor: User | None, request: AddExpenseRequest | dict[str, Any]
    ) -> Expense:
        user = self._require_actor(actor)
        data = parse_request(AddExpenseRequest, request)
        self._accessible_session(user, data.game_session_id)

        expense = self.store.save_expense(
            Expense(
                game_session_id=data.game_session_id,
                description=data.description,
                amount=data.amount,
                category=data.category,
                payment_method=data.payment_method,
                notes=data.notes,
                created_by_id=user.id,
                created_by_initials=user.attribution_initials(),
            )
        )
        logger.info(
            "expense_created",
            expense_id=expense.id,
            amount=str(expense.amount),
            payment_method=expense.payment_method.value,
        )
        return expense

    def list_expenses(self, actor: User | None, session_id: str) -> list[Expense]:
        user = self._require_actor(actor)
        return list(reversed(self._events(user, session_id).expenses))

    def update_expense(
        self,
        actor: User | None,
        expense_id: str,
        request: UpdateExpenseRequest | dict[str, Any],
    ) -> Expense:
        user = self._require_actor(actor)
        data = parse_request(UpdateExpenseRequest, request)
        expense = self.store.get_expense(expense_id)
        self._check_owned_record(user, expense, "Expense")
        expense.description = data.description
        expense.amount = data.amount
        expense.category = data.category
        expense.payment_method = data.payment_method
        expense.notes = data.notes
        logger.info("expense_updated", expense_id=expense_id)
        return expense

    def delete_expense(self, actor: User | None, expense_id: str) -> None:
        user = self._require_actor(actor)
        self._check_owned_record(user, self.store.get_expense(expense_id), "Expense")
        self.store.delete_expense(expense_id)
        logger.info("expense_deleted", expense_id=expense_id)

    # === Analysis ===

    async def analyze_till(
        self, actor: User | None, request: AnalyzeTillRequest | dict[str, Any]
    ) -> AnalyzeTillResponse:
        user = self._require_actor(actor)
        data = parse_request(AnalyzeTillRequest, request)
        events = self._events(user, data.session_id)
        with session_context(data.session_id):
            logger.info("till_analysis_requested", actual_till=str(data.actual_till_amount))
            return await self.analyzer.analyze_till(
                events.session,
                events.transactions,
                events.dealer_downs,
                events.expenses,
                data.actual_till_amount,
            )
