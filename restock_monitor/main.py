from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import List, Optional, Sequence

from . import config, inventory, monitor, notifier, server, sources
from .db import LedgerError, StockLedger
from .scraper import PageFetcher


def setup_logging() -> None:
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def run_once(selected: Optional[Sequence[sources.Source]] = None) -> monitor.RunReport:
    """Perform one check-and-notify pass over the configured sources."""
    logger = logging.getLogger(__name__)
    selected = list(selected) if selected is not None else sources.get_sources()
    logger.info("Starting stock check for %s", ", ".join(s.key for s in selected))

    provider = inventory.InventoryProvider(config.INVENTORY_DIR)
    ledger = StockLedger(config.LEDGER_DB_PATH)
    with PageFetcher() as fetch:
        report = monitor.run(
            selected,
            ledger,
            fetch,
            notifier.send_stock_event,
            load_products=provider.load_products,
        )

    if report.notified:
        logger.info("Notified %d source(s): %s", len(report.notified), ", ".join(report.notified))
    else:
        logger.info("No notifications sent this run.")
    return report


def refresh_inventories(selected: Optional[Sequence[sources.Source]] = None) -> int:
    """Rebuild inventory files. Overwrites the saved product lists."""
    logger = logging.getLogger(__name__)
    selected = list(selected) if selected is not None else sources.get_sources()
    provider = inventory.InventoryProvider(config.INVENTORY_DIR)
    total = 0
    with PageFetcher() as fetch:
        for source in selected:
            products = inventory.refresh_inventory(source, fetch, provider)
            logger.info("Inventory for %s: %d products", source.name, len(products))
            total += len(products)
    return total


def run_loop() -> None:
    """Run back-to-back passes separated by CHECK_INTERVAL_MINUTES."""
    logger = logging.getLogger(__name__)
    while True:
        try:
            run_once()
        except LedgerError:
            logger.exception("Run aborted: stock ledger unavailable.")
        except Exception:
            logger.exception("Unexpected error during stock check.")
        logger.info("Sleeping for %d minutes before next check.", config.CHECK_INTERVAL_MINUTES)
        time.sleep(config.CHECK_INTERVAL_MINUTES * 60)


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="restock-monitor", description="Watch shop pages for restocks.")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="run a single check (default)")
    mode.add_argument("--loop", action="store_true", help="check every CHECK_INTERVAL_MINUTES")
    mode.add_argument("--serve", action="store_true", help="start the HTTP trigger server")
    mode.add_argument(
        "--refresh-inventory",
        action="store_true",
        help="rebuild the product inventory files from category pages (overwrites them)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point. Returns the process exit status."""
    args = _parse_args(argv)
    setup_logging()
    logger = logging.getLogger(__name__)

    if args.refresh_inventory:
        logger.info("Updating inventory...")
        refresh_inventories()
        logger.info("Inventory updated.")
        return 0

    config.validate()

    if args.loop:
        run_loop()
        return 0
    if args.serve:
        server.serve(
            config.SERVER_HOST,
            config.SERVER_PORT,
            run_once,
            StockLedger(config.LEDGER_DB_PATH).last_saved_at,
        )
        return 0

    try:
        run_once()
    except LedgerError:
        logger.exception("Run aborted: stock ledger unavailable.")
        return 1
    logger.info("Run completed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
