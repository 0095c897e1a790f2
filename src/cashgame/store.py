"""In-memory record store for sessions and their events.

Last write wins at the record level. Not thread-safe; one process, one store.
"""

from dataclasses import dataclass, field

from cashgame.models import DealerDown, Expense, GameSession, PlayerTransaction, User


@dataclass
class SessionEvents:
    """Everything recorded for one session, oldest first."""

    session: GameSession
    transactions: list[PlayerTransaction] = field(default_factory=list)
    dealer_downs: list[DealerDown] = field(default_factory=list)
    expenses: list[Expense] = field(default_factory=list)


class InMemoryStore:
    def __init__(self):
        self.users: dict[str, User] = {}
        self.sessions: dict[str, GameSession] = {}
        self.transactions: dict[str, PlayerTransaction] = {}
        self.dealer_downs: dict[str, DealerDown] = {}
        self.expenses: dict[str, Expense] = {}

    # === Users ===

    def save_user(self, user: User) -> User:
        self.users[user.id] = user
        return user

    def get_user(self, user_id: str) -> User | None:
        return self.users.get(user_id)

    # === Sessions ===

    def save_session(self, session: GameSession) -> GameSession:
        self.sessions[session.id] = session
        return session

    def get_session(self, session_id: str) -> GameSession | None:
        return self.sessions.get(session_id)

    def sessions_owned_by(self, user_id: str, active: bool | None = None) -> list[GameSession]:
        return [
            s
            for s in self.sessions.values()
            if s.owner_id == user_id and (active is None or s.is_active == active)
        ]

    def sessions_joined_by(self, user_id: str, active: bool | None = None) -> list[GameSession]:
        return [
            s
            for s in self.sessions.values()
            if user_id in s.member_ids and (active is None or s.is_active == active)
        ]

    def delete_session(self, session_id: str) -> None:
        """Remove a session and every event that belongs to it."""
        self.sessions.pop(session_id, None)
        for records in (self.transactions, self.dealer_downs, self.expenses):
            for record_id in [r.id for r in records.values() if r.game_session_id == session_id]:
                del records[record_id]

    def events_for(self, session_id: str) -> SessionEvents | None:
        """Load a session with all of its events, each list oldest first."""
        session = self.sessions.get(session_id)
        if session is None:
            return None
        return SessionEvents(
            session=session,
            transactions=sorted(
                (t for t in self.transactions.values() if t.game_session_id == session_id),
                key=lambda t: t.timestamp,
            ),
            dealer_downs=sorted(
                (d for d in self.dealer_downs.values() if d.game_session_id == session_id),
                key=lambda d: d.timestamp,
            ),
            expenses=sorted(
                (e for e in self.expenses.values() if e.game_session_id == session_id),
                key=lambda e: e.timestamp,
            ),
        )

    # === Events ===

    def save_transaction(self, transaction: PlayerTransaction) -> PlayerTransaction:
        self.transactions[transaction.id] = transaction
        return transaction

    def get_transaction(self, transaction_id: str) -> PlayerTransaction | None:
        return self.transactions.get(transaction_id)

    def delete_transaction(self, transaction_id: str) -> None:
        self.transactions.pop(transaction_id, None)

    def save_dealer_down(self, dealer_down: DealerDown) -> DealerDown:
        self.dealer_downs[dealer_down.id] = dealer_down
        return dealer_down

    def get_dealer_down(self, dealer_down_id: str) -> DealerDown | None:
        return self.dealer_downs.get(dealer_down_id)

    def delete_dealer_down(self, dealer_down_id: str) -> None:
        self.dealer_downs.pop(dealer_down_id, None)

    def save_expense(self, expense: Expense) -> Expense:
        self.expenses[expense.id] = expense
        return expense

    def get_expense(self, expense_id: str) -> Expense | None:
        return self.expenses.get(expense_id)

    def delete_expense(self, expense_id: str) -> None:
        self.expenses.pop(expense_id, None)
