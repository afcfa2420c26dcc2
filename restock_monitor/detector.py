"""Decide whether a source's in-stock set changed enough to notify.

Two policies exist and each source picks one:

* ``strict``: notify on any addition or removal, as long as something is
  in stock now.
* ``threshold``: same, but only when more than ``threshold`` items are in
  stock, so one or two flickering items on a noisy shop stay quiet.

``strict`` is exactly ``threshold`` with a threshold of 0.
"""

from __future__ import annotations

from typing import Iterable, Set, Tuple

from .sources import POLICY_STRICT, POLICY_THRESHOLD


def is_significant(previous_keys: Iterable[str], current_keys: Iterable[str], threshold: int) -> bool:
    previous, current = set(previous_keys), set(current_keys)
    return current != previous and len(current) > threshold


def evaluate(previous_keys: Iterable[str], current_keys: Iterable[str], policy: str, threshold: int = 1) -> bool:
    """Apply a named policy."""
    if policy == POLICY_STRICT:
        return is_significant(previous_keys, current_keys, 0)
    if policy == POLICY_THRESHOLD:
        return is_significant(previous_keys, current_keys, threshold)
    raise ValueError(f"Unknown change policy: {policy!r}")


def describe_change(previous_keys: Iterable[str], current_keys: Iterable[str]) -> Tuple[Set[str], Set[str]]:
    """Return (added, removed) URLs."""
    previous, current = set(previous_keys), set(current_keys)
    return current - previous, previous - current


__all__ = ["is_significant", "evaluate", "describe_change"]
