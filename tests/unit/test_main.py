"""
Unit tests for the command line entry point.
"""
import json
from decimal import Decimal
from unittest.mock import patch

import pytest

from gains_tracker.exceptions import InvalidInputError
from gains_tracker.main import load_transfers, run
from tests.fixtures.mock_config import TEST_EXPORT_TEMPLATE, TEST_FIAT_CURRENCY


TRANSFERS = [
    {"tx_hash": "0xa1", "timestamp": "2024-01-01T00:00:00Z", "asset": "ETH",
     "type": "receive", "value": "1000000000000000000", "fiat_value": "100"},
    {"tx_hash": "0xa2", "timestamp": "2024-02-01T00:00:00Z", "asset": "ETH",
     "type": "receive", "value": "1000000000000000000", "fiat_value": "200"},
    {"tx_hash": "0xd1", "timestamp": "2024-03-01T00:00:00Z", "asset": "ETH",
     "type": "send", "value": "1500000000000000000", "fiat_value": "675"},
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("LOT_STRATEGY", "TAX_EXPORT_TEMPLATE", "FIAT_CURRENCY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def transfers_file(tmp_path):
    path = tmp_path / "transfers.json"
    path.write_text(json.dumps(TRANSFERS))
    return path


def _args(transfers_file, *extra):
    return ["--transfers", str(transfers_file), "--wallet", "main",
            "--start", "2024-01-01", "--end", "2024-12-31", *extra]


class TestLoadTransfers:

    def test_plain_list(self, transfers_file):
        assert [t.tx_hash for t in load_transfers(transfers_file)] == ["0xa1", "0xa2", "0xd1"]

    def test_wrapped_in_data(self, tmp_path):
        path = tmp_path / "wrapped.json"
        path.write_text(json.dumps({"data": TRANSFERS[:1]}))

        assert len(load_transfers(path)) == 1

    def test_malformed_record(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([{"tx_hash": "0x1"}]))

        with pytest.raises(InvalidInputError):
            load_transfers(path)


class TestRun:

    def test_json_report_to_stdout(self, transfers_file, capsys):
        assert run(_args(transfers_file)) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["method"] == "fifo"
        assert Decimal(payload["total_gains"]) == Decimal("475")

    def test_lifo_method(self, transfers_file, capsys):
        assert run(_args(transfers_file, "--method", "lifo")) == 0

        assert Decimal(json.loads(capsys.readouterr().out)["total_gains"]) == Decimal("425")

    def test_csv_to_file(self, transfers_file, tmp_path, capsys):
        output = tmp_path / "gains.csv"

        assert run(_args(transfers_file, "--format", "csv", "--template", "turbotax",
                         "--output", str(output))) == 0

        lines = output.read_text().splitlines()
        assert lines[0].startswith("Description,Date Acquired")
        assert len(lines) == 3
        assert "Wrote CSV report" in capsys.readouterr().err

    def test_defaults_come_from_environment(self, transfers_file, monkeypatch, capsys):
        monkeypatch.setenv("TAX_EXPORT_TEMPLATE", TEST_EXPORT_TEMPLATE)
        monkeypatch.setenv("FIAT_CURRENCY", TEST_FIAT_CURRENCY)
        monkeypatch.setenv("LOT_STRATEGY", "HIFO")

        assert run(_args(transfers_file, "--format", "csv")) == 0

        out = capsys.readouterr().out
        assert out.startswith("Description,")
        # HIFO consumes the 200 lot first
        assert "250.00" in out and "175.00" in out

    def test_inverted_dates_exit_code(self, transfers_file, capsys):
        argv = ["--transfers", str(transfers_file), "--wallet", "main",
                "--start", "2024-12-31", "--end", "2024-01-01"]

        assert run(argv) == 2
        assert "Error:" in capsys.readouterr().err

    def test_unknown_method_is_rejected_by_parser(self, transfers_file):
        with pytest.raises(SystemExit) as exc:
            run(_args(transfers_file, "--method", "average"))

        assert exc.value.code == 2

    def test_missing_price_exit_code(self, tmp_path, capsys):
        path = tmp_path / "unpriced.json"
        path.write_text(json.dumps([{k: v for k, v in TRANSFERS[0].items() if k != "fiat_value"}]))

        assert run(_args(path)) == 2
        assert "no fiat value" in capsys.readouterr().err

    def test_anomaly_warning(self, tmp_path, capsys):
        path = tmp_path / "oversold.json"
        oversold = dict(TRANSFERS[2], value="3000000000000000000")
        path.write_text(json.dumps([TRANSFERS[0], oversold]))

        assert run(_args(path)) == 0
        assert "exceeded available lots" in capsys.readouterr().err

    def test_publish(self, transfers_file, capsys):
        with patch("gains_tracker.main.ReportSheetPublisher") as publisher_cls:
            assert run(_args(transfers_file, "--publish")) == 0

        report = publisher_cls.return_value.publish.call_args[0][0]
        assert report.wallet_id == "main"
        assert report.report.total_gains == Decimal("475")


class TestConfigurationErrors:

    def test_invalid_template_from_environment(self, transfers_file, monkeypatch, capsys):
        monkeypatch.setenv("TAX_EXPORT_TEMPLATE", "nope")

        assert run(_args(transfers_file, "--format", "csv")) == 2

        captured = capsys.readouterr()
        assert "Unknown export template 'nope'" in captured.err
        assert captured.out == ""

    def test_invalid_lot_strategy_from_environment(self, transfers_file, monkeypatch, capsys):
        monkeypatch.setenv("LOT_STRATEGY", "average")

        assert run(_args(transfers_file)) == 2
        assert "Unknown cost basis method" in capsys.readouterr().err

    def test_publish_without_sheet_settings(self, transfers_file, monkeypatch, capsys):
        monkeypatch.delenv("TAX_SHEET_ID", raising=False)
        monkeypatch.delenv("TAX_GOOGLE_CREDENTIALS", raising=False)

        assert run(_args(transfers_file, "--publish")) == 2

        captured = capsys.readouterr()
        assert "TAX_SHEET_ID" in captured.err
        assert captured.out == ""
