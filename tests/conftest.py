"""Pytest configuration and fixtures."""

import os
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("OPENAI_API_KEY", "sk-test")

from cashgame.models import DealerDown, Expense, GameSession, PlayerTransaction, User  # noqa: E402

START = datetime(2026, 3, 14, 20, 0, tzinfo=UTC)


@pytest.fixture
def session():
    """An active session with no events."""
    return GameSession(owner_id="owner-1", id="session-1", started_at=START)


@pytest.fixture
def make_transaction(session):
    """Factory for player transactions, one minute apart."""
    counter = {"n": 0}

    def _make(player, type, amount, payment_method="cash", **kwargs):
        counter["n"] += 1
        kwargs.setdefault("timestamp", START + timedelta(minutes=counter["n"]))
        return PlayerTransaction(
            game_session_id=session.id,
            player_name=player,
            type=type,
            amount=Decimal(str(amount)),
            payment_method=payment_method,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_down(session):
    """Factory for dealer downs."""

    def _make(dealer, tips=0, rake=0, **kwargs):
        return DealerDown(
            game_session_id=session.id,
            dealer_name=dealer,
            tips=Decimal(str(tips)),
            rake=Decimal(str(rake)),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_expense(session):
    """Factory for expenses."""

    def _make(description, amount, **kwargs):
        return Expense(
            game_session_id=session.id,
            description=description,
            amount=Decimal(str(amount)),
            **kwargs,
        )

    return _make


@pytest.fixture
def owner():
    return User(id="owner-1", email="owner@example.com", name="Olivia Owner")


@pytest.fixture
def member():
    return User(id="member-1", email="member@example.com", initials="MB")


@pytest.fixture
def stranger():
    return User(id="stranger-1", email="stranger@example.com")


@pytest.fixture
def mock_analyst():
    """A configured reasoning client whose answer tests set per case."""
    client = MagicMock()
    client.is_configured = True
    client.complete_json = AsyncMock()
    return client
