"""One monitoring pass across all configured sources."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from . import config
from .db import Snapshot, StockLedger
from .detector import describe_change, evaluate
from .notifier import StockEvent, format_timestamp
from .scraper import FetchPage, Product, run_source
from .sources import Source

logger = logging.getLogger(__name__)

Notify = Callable[[StockEvent], None]
LoadProducts = Callable[[Source], List[Product]]


@dataclass
class SourceOutcome:
    source: Source
    in_stock_products: List[Product]
    significant: bool
    checked: int = 0
    failed: int = 0
    skipped: bool = False  # baseline kept
    error: Optional[str] = None


@dataclass
class RunReport:
    timestamp: str
    outcomes: List[SourceOutcome] = field(default_factory=list)
    notified: List[str] = field(default_factory=list)
    notify_failures: List[str] = field(default_factory=list)

    def summary(self) -> Dict[str, object]:
        return {
            "timestamp": self.timestamp,
            "sources": {
                o.source.key: {
                    "in_stock": len(o.in_stock_products),
                    "checked": o.checked,
                    "failed": o.failed,
                    "significant": o.significant,
                    "skipped": o.skipped,
                    "error": o.error,
                }
                for o in self.outcomes
            },
            "notified": list(self.notified),
            "notify_failures": list(self.notify_failures),
        }


def _check_source(
    source: Source,
    before: Set[str],
    fetch_page: FetchPage,
    load_products: LoadProducts,
    *,
    timeout: float,
    max_workers: int,
    delay_seconds: float,
    skip_unreachable: bool,
) -> Tuple[SourceOutcome, Set[str]]:
    """Check one source; returns its outcome and the keys to store as baseline."""
    products = load_products(source)
    result = run_source(
        source,
        products,
        fetch_page,
        timeout=timeout,
        max_workers=max_workers,
        delay_seconds=delay_seconds,
    )

    if skip_unreachable and result.unreachable:
        logger.warning("Keeping previous baseline for unreachable source %s.", source.name)
        outcome = SourceOutcome(source, [], False, result.checked, result.failed, skipped=True)
        return outcome, set(before)

    significant = evaluate(before, result.in_stock_keys, source.policy, source.threshold)
    added, removed = describe_change(before, result.in_stock_keys)
    logger.info(
        "%s: %d in stock (+%d / -%d) policy=%s threshold=%d significant=%s",
        source.name, len(result.in_stock_keys), len(added), len(removed),
        source.policy, source.threshold, significant,
    )
    outcome = SourceOutcome(source, list(result.in_stock_products), significant, result.checked, result.failed)
    return outcome, set(result.in_stock_keys)


def run(
    sources: Sequence[Source],
    ledger: StockLedger,
    fetch_page: FetchPage,
    notify: Notify,
    *,
    load_products: LoadProducts,
    timestamp: Optional[str] = None,
    timeout: float = config.REQUEST_TIMEOUT_SECONDS,
    max_workers: int = config.MAX_WORKERS,
    delay_seconds: float = config.REQUEST_DELAY_SECONDS,
    skip_unreachable: bool = config.SKIP_UNREACHABLE_SOURCES,
) -> RunReport:
    """Check every source, replace the ledger baseline, then notify.

    The baseline is saved exactly once, after every source has been
    checked and before any notification goes out.  LedgerError from
    load/save propagates and nothing is sent for the run.  Any other
    error while checking a source is logged and confined to that source.
    """
    report = RunReport(timestamp=timestamp or format_timestamp())

    previous: Snapshot = ledger.load([s.key for s in sources])
    current: Snapshot = {s.key: set() for s in sources}

    for source in sources:
        before = previous.get(source.key, set())
        try:
            outcome, keys = _check_source(
                source,
                before,
                fetch_page,
                load_products,
                timeout=timeout,
                max_workers=max_workers,
                delay_seconds=delay_seconds,
                skip_unreachable=skip_unreachable,
            )
        except Exception as e:
            logger.exception("Check failed for %s", source.name)
            keys = set(before) if skip_unreachable else set()
            outcome = SourceOutcome(
                source, [], False, skipped=skip_unreachable, error=str(e) or e.__class__.__name__
            )
        current[source.key] = keys
        report.outcomes.append(outcome)

    ledger.save(current)

    for outcome in report.outcomes:
        if not (outcome.significant and outcome.in_stock_products):
            logger.info("No stock change for %s. Skipping message.", outcome.source.name)
            continue
        event = StockEvent(
            source_key=outcome.source.key,
            source_name=outcome.source.name,
            products=tuple(outcome.in_stock_products),
            timestamp=report.timestamp,
        )
        try:
            notify(event)
            report.notified.append(outcome.source.key)
        except Exception:
            logger.exception("Notification failed for %s", outcome.source.name)
            report.notify_failures.append(outcome.source.key)

    return report


__all__ = ["SourceOutcome", "RunReport", "Notify", "LoadProducts", "run"]
