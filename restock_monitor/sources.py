"""Monitored sources (shops) and their per-source policies."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from . import config

logger = logging.getLogger(__name__)

POLICY_STRICT = "strict"
POLICY_THRESHOLD = "threshold"
POLICIES = (POLICY_STRICT, POLICY_THRESHOLD)


@dataclass(frozen=True)
class Source:
    key: str                  # stable id used by the ledger and inventory files
    name: str
    base_url: str
    inventory_file: str
    category_urls: Tuple[str, ...] = ()
    sequential: bool = False  # fetch product pages one at a time
    policy: str = POLICY_STRICT
    threshold: int = 1        # only consulted by the threshold policy


SAZEN = Source(
    key="SAZEN",
    name="Sazen Tea",
    base_url="https://www.sazentea.com",
    inventory_file="sazen-matcha.json",
    category_urls=(
        "https://www.sazentea.com/en/products/c85-yamamasa-koyamaen-matcha",
        "https://www.sazentea.com/en/products/c24-marukyu-koyamaen-matcha",
        "https://www.sazentea.com/en/products/c114-kanbayashi-shunsho-matcha",
        "https://www.sazentea.com/en/products/c25-hekisuien-matcha",
        "https://www.sazentea.com/en/products/c41-horii-shichimeien-matcha",
        "https://www.sazentea.com/en/products/c26-hokoen-matcha",
    ),
    # Times out under parallel load.
    sequential=True,
)

IPPODO = Source(
    key="IPPODO",
    name="Ippodo Tea",
    base_url="https://global.ippodo-tea.co.jp",
    inventory_file="ippodo-matcha.json",
    category_urls=("https://global.ippodo-tea.co.jp/collections/matcha",),
)

NAKAMURA_TOKICHI = Source(
    key="NAKAMURA_TOKICHI",
    name="Nakamura Tokichi",
    base_url="https://global.tokichi.jp",
    inventory_file="nakamura-matcha.json",
    category_urls=(
        "https://global.tokichi.jp/collections/matcha?page=1&sort_by=price-ascending",
        "https://global.tokichi.jp/collections/matcha?page=2&sort_by=price-ascending",
    ),
    # A couple of items flicker in and out of stock all day.
    policy=POLICY_THRESHOLD,
    threshold=2,
)

REGISTRY: Dict[str, Source] = {s.key: s for s in (SAZEN, IPPODO, NAKAMURA_TOKICHI)}


def apply_overrides(source: Source) -> Source:
    """Return `source` with any ``<KEY>_SEQUENTIAL/POLICY/THRESHOLD`` env overrides applied."""
    changes: dict = {}

    sequential = config.source_override(source.key, "sequential")
    if sequential is not None:
        changes["sequential"] = config._parse_bool(sequential, source.sequential)

    policy = config.source_override(source.key, "policy")
    if policy is not None:
        policy = policy.strip().lower()
        if policy in POLICIES:
            changes["policy"] = policy
        else:
            logger.warning("Ignoring unknown policy %r for source %s", policy, source.key)

    threshold = config.source_override(source.key, "threshold")
    if threshold is not None:
        changes["threshold"] = max(0, config._parse_int(threshold, source.threshold))

    return replace(source, **changes) if changes else source


def get_sources(keys: Optional[Sequence[str]] = None) -> List[Source]:
    """Resolve the configured sources, in registry order.

    `keys` defaults to ENABLED_SOURCES; an empty selection means all sources.
    Unknown keys are logged and skipped.
    """
    if keys is None:
        keys = config.ENABLED_SOURCES
    wanted = [k.upper() for k in keys]
    for k in wanted:
        if k not in REGISTRY:
            logger.warning("Unknown source key %s (known: %s)", k, ", ".join(REGISTRY))
    selected = [s for s in REGISTRY.values() if not wanted or s.key in wanted]
    return [apply_overrides(s) for s in selected]


__all__ = [
    "Source",
    "REGISTRY",
    "POLICY_STRICT",
    "POLICY_THRESHOLD",
    "POLICIES",
    "apply_overrides",
    "get_sources",
]
