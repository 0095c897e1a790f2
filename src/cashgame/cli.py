"""Command line reconciliation for exported sessions.

The export format is the one ``GameService.session_history`` produces: a
session object with ``playerTransactions``, ``dealerDowns`` and ``expenses``.

Examples:
    cashgame summary night.json
    cashgame analyze night.json --actual 1250.00
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from cashgame.analysis import TillAnalyzer
from cashgame.clients import OpenAIClient
from cashgame.config import configure_logging, get_logger, session_context
from cashgame.errors import CashGameError, ValidationError
from cashgame.ledger import compute_summary, credit_balances_by_player, dealer_totals
from cashgame.models import DealerDown, Expense, GameSession, PlayerTransaction
from cashgame.settlement import Settlement
from cashgame.store import SessionEvents

logger = get_logger(__name__)


def _decimal(value: Any) -> Decimal:
    try:
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise ValidationError(f"Not an amount: {value!r}") from e
    if not amount.is_finite():
        raise ValidationError(f"Not an amount: {value!r}")
    return amount


def _amount(value: str) -> Decimal:
    """argparse type for a finite money amount."""
    try:
        amount = Decimal(value)
    except InvalidOperation as e:
        raise argparse.ArgumentTypeError(f"not an amount: {value!r}") from e
    if not amount.is_finite():
        raise argparse.ArgumentTypeError(f"not a finite amount: {value!r}")
    return amount


def _timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _settlement(raw: dict[str, Any] | None) -> Settlement | None:
    if not raw:
        return None
    cash = raw.get("cashComponent")
    credit = raw.get("creditComponent")
    return Settlement(
        cash_component=_decimal(cash) if cash is not None else None,
        credit_component=_decimal(credit) if credit is not None else None,
    )


def load_export(data: dict[str, Any]) -> SessionEvents:
    """Rebuild a session and its events from an exported JSON object."""
    try:
        session = GameSession(
            id=data["id"],
            owner_id=data.get("ownerId", "export"),
            name=data.get("name", "Poker Game"),
            table_name=data.get("tableName", "Main Table"),
            started_at=_timestamp(data["startedAt"]),
            ended_at=_timestamp(data.get("endedAt")),
            is_active=data.get("isActive", False),
            currency=data.get("currency", "USD"),
            language=data.get("language", "en"),
            total_rake=_decimal(data.get("totalRake", 0)),
        )
        transactions = [
            PlayerTransaction(
                id=t["id"],
                game_session_id=session.id,
                player_name=t["playerName"],
                type=t["type"],
                amount=_decimal(t["amount"]),
                payment_method=t["paymentMethod"],
                notes=t.get("notes"),
                is_paid=t.get("isPaid", True),
                timestamp=_timestamp(t["timestamp"]),
                created_by_initials=t.get("createdByInitials"),
                settlement=_settlement(t.get("settlement")),
            )
            for t in data.get("playerTransactions", [])
        ]
        dealer_downs = [
            DealerDown(
                id=d["id"],
                game_session_id=session.id,
                dealer_name=d["dealerName"],
                tips=_decimal(d.get("tips", 0)),
                rake=_decimal(d.get("rake", 0)),
                tips_paid=d.get("tipsPaid", False),
                rake_claimed=d.get("rakeClaimed", False),
                timestamp=_timestamp(d["timestamp"]),
                created_by_initials=d.get("createdByInitials"),
            )
            for d in data.get("dealerDowns", [])
        ]
        expenses = [
            Expense(
                id=e["id"],
                game_session_id=session.id,
                description=e["description"],
                amount=_decimal(e["amount"]),
                category=e.get("category", "other"),
                payment_method=e.get("paymentMethod", "cash"),
                paid_out=e.get("paidOut", False),
                notes=e.get("notes"),
                timestamp=_timestamp(e["timestamp"]),
                created_by_initials=e.get("createdByInitials"),
            )
            for e in data.get("expenses", [])
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Malformed session export: {e}") from e

    return SessionEvents(
        session=session,
        transactions=sorted(transactions, key=lambda t: t.timestamp),
        dealer_downs=sorted(dealer_downs, key=lambda d: d.timestamp),
        expenses=sorted(expenses, key=lambda e: e.timestamp),
    )


def summary_report(events: SessionEvents) -> dict[str, Any]:
    summary = compute_summary(
        events.session, events.transactions, events.dealer_downs, events.expenses
    )
    report = summary.to_wire()
    report["creditByPlayer"] = {
        player: float(amount)
        for player, amount in sorted(credit_balances_by_player(events.transactions).items())
    }
    report["dealers"] = [
        {
            "dealerName": totals.dealer_name,
            "downs": totals.downs,
            "tips": float(totals.tips),
            "rake": float(totals.rake),
            "unpaidTips": float(totals.unpaid_tips),
            "unclaimedRake": float(totals.unclaimed_rake),
        }
        for totals in dealer_totals(events.dealer_downs)
    ]
    return report


async def analyze_report(events: SessionEvents, actual_till: Decimal) -> dict[str, Any]:
    analyzer = TillAnalyzer(OpenAIClient())
    result = await analyzer.analyze_till(
        events.session,
        events.transactions,
        events.dealer_downs,
        events.expenses,
        actual_till,
    )
    return result.to_wire()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cashgame",
        description="Reconcile a poker cash game session",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    summary = subparsers.add_parser("summary", help="Print the session summary")
    summary.add_argument("export", type=Path, help="Session export (JSON)")

    analyze = subparsers.add_parser("analyze", help="Explain a till discrepancy")
    analyze.add_argument("export", type=Path, help="Session export (JSON)")
    analyze.add_argument(
        "--actual",
        type=_amount,
        required=True,
        help="Cash counted in the till",
    )
    return parser


async def run(args: argparse.Namespace) -> dict[str, Any]:
    events = load_export(json.loads(args.export.read_text(encoding="utf-8")))
    with session_context(events.session.id):
        if args.command == "summary":
            return summary_report(events)
        return await analyze_report(events, args.actual)


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)

    try:
        report = asyncio.run(run(args))
    except CashGameError as e:
        logger.error("command_failed", command=args.command, error=e.message, details=e.details)
        return 1
    except (OSError, json.JSONDecodeError) as e:
        logger.error("export_unreadable", path=str(args.export), error=str(e))
        return 1

    print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
