"""Tests for the command-line entry point."""

from unittest.mock import patch

from restock_monitor import config, main
from restock_monitor.db import LedgerError
from restock_monitor.monitor import RunReport


class TestMain:
    def test_once_success(self, monkeypatch):
        monkeypatch.setattr(config, "DISCORD_WEBHOOK_URL", "https://discord.example/hook")
        with patch.object(main, "run_once", return_value=RunReport(timestamp="t")) as run_once:
            assert main.main(["--once"]) == 0
        run_once.assert_called_once()

    def test_ledger_failure_exit_status(self, monkeypatch):
        monkeypatch.setattr(config, "DISCORD_WEBHOOK_URL", "https://discord.example/hook")
        with patch.object(main, "run_once", side_effect=LedgerError("disk full")):
            assert main.main([]) == 1

    def test_refresh_inventory_needs_no_channel(self, monkeypatch):
        monkeypatch.setattr(config, "TELEGRAM_BOT_TOKEN", None)
        monkeypatch.setattr(config, "DISCORD_WEBHOOK_URL", None)
        monkeypatch.setattr(config, "EMAIL_ENABLED", False)
        with patch.object(main, "refresh_inventories", return_value=3) as refresh:
            assert main.main(["--refresh-inventory"]) == 0
        refresh.assert_called_once()


class TestRunOnce:
    def test_wires_collaborators(self, monkeypatch, tmp_path):
        monkeypatch.setattr(config, "LEDGER_DB_PATH", str(tmp_path / "stock.db"))
        monkeypatch.setattr(config, "INVENTORY_DIR", str(tmp_path))
        with patch.object(main.monitor, "run", return_value=RunReport(timestamp="t")) as run:
            main.run_once([])
        args, kwargs = run.call_args
        assert args[0] == []
        assert args[1].path == str(tmp_path / "stock.db")
        assert args[3] is main.notifier.send_stock_event
        assert kwargs["load_products"].__self__.directory == tmp_path
