"""Tests for the command line entry point."""

import json
from decimal import Decimal

import pytest

from cashgame.cli import _amount, load_export, main, summary_report
from cashgame.errors import ValidationError


@pytest.fixture
def export():
    """A finished session in the history export shape."""
    return {
        "id": "night-1",
        "startedAt": "2026-03-14T20:00:00+00:00",
        "endedAt": "2026-03-15T02:00:00+00:00",
        "isActive": False,
        "totalRake": 0,
        "playerTransactions": [
            {
                "id": "tx-2",
                "playerName": "Ann",
                "type": "cashout",
                "amount": 300,
                "paymentMethod": "credit",
                "notes": "received $150.00 cash, paid $150.00 credit",
                "timestamp": "2026-03-15T01:00:00+00:00",
            },
            {
                "id": "tx-1",
                "playerName": "Ann",
                "type": "buy-in",
                "amount": 500,
                "paymentMethod": "credit",
                "isPaid": False,
                "timestamp": "2026-03-14T20:05:00+00:00",
            },
            {
                "id": "tx-3",
                "playerName": "Bob",
                "type": "buy-in",
                "amount": 400,
                "paymentMethod": "cash",
                "timestamp": "2026-03-14T20:10:00+00:00",
            },
        ],
        "dealerDowns": [
            {
                "id": "down-1",
                "dealerName": "Dee",
                "tips": 30,
                "rake": 25,
                "tipsPaid": True,
                "timestamp": "2026-03-14T21:00:00+00:00",
            }
        ],
        "expenses": [],
    }


class TestLoadExport:
    """Tests for load_export()."""

    def test_events_sorted_oldest_first(self, export):
        events = load_export(export)

        assert [t.id for t in events.transactions] == ["tx-1", "tx-3", "tx-2"]
        assert events.session.id == "night-1"
        assert not events.session.is_active

    def test_settlement_read_from_notes(self, export):
        events = load_export(export)
        cashout = events.transactions[-1]

        assert cashout.settlement.cash_component == Decimal("150.00")
        assert cashout.settlement.credit_component == Decimal("150.00")

    def test_structured_settlement_preferred(self, export):
        export["playerTransactions"][0]["settlement"] = {
            "cashComponent": 100,
            "creditComponent": 200,
        }

        cashout = load_export(export).transactions[-1]

        assert cashout.settlement.cash_component == Decimal("100")

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda e: e.pop("id"),
            lambda e: e["playerTransactions"][0].update(paymentMethod="iou"),
            lambda e: e["playerTransactions"][0].update(amount="lots"),
            lambda e: e["dealerDowns"][0].update(tips="NaN"),
            lambda e: e["dealerDowns"][0].update(timestamp="yesterday"),
        ],
    )
    def test_malformed_export(self, export, mutate):
        mutate(export)

        with pytest.raises(ValidationError):
            load_export(export)


class TestSummaryReport:
    def test_report_figures(self, export):
        report = summary_report(load_export(export))

        assert report["tillBalance"] == 220.0
        assert report["creditBalance"] == 200.0
        assert report["creditByPlayer"] == {"Ann": 200.0}
        assert report["dealers"][0]["dealerName"] == "Dee"
        assert report["dealers"][0]["unclaimedRake"] == 25.0


class TestMain:
    """Tests for main()."""

    def test_summary_command(self, export, tmp_path, capsys):
        path = tmp_path / "night.json"
        path.write_text(json.dumps(export), encoding="utf-8")

        assert main(["summary", str(path)]) == 0

        printed = json.loads(capsys.readouterr().out)
        assert printed["playerCount"] == 2
        assert printed["totalBuyIns"] == 900.0

    def test_malformed_export_fails(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text(json.dumps({"playerTransactions": []}), encoding="utf-8")

        assert main(["summary", str(path)]) == 1

    def test_missing_file_fails(self, tmp_path):
        assert main(["summary", str(tmp_path / "missing.json")]) == 1

    def test_analyze_requires_actual(self, tmp_path):
        with pytest.raises(SystemExit):
            main(["analyze", str(tmp_path / "night.json")])

    @pytest.mark.parametrize("actual", ["abc", "NaN", "Infinity", ""])
    def test_analyze_rejects_bad_amount(self, export, tmp_path, capsys, actual):
        path = tmp_path / "night.json"
        path.write_text(json.dumps(export), encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            main(["analyze", str(path), "--actual", actual])

        assert exc_info.value.code == 2
        assert "--actual" in capsys.readouterr().err

    def test_amount_type_accepts_decimals(self):
        assert _amount("1250.00") == Decimal("1250.00")
        assert _amount("-3") == Decimal("-3")
