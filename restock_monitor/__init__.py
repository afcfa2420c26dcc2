"""
Restock monitor package.

This package contains modules for checking shop product pages for
availability, keeping the last in-stock baseline per shop, notifying
Telegram / Discord / e-mail when the in-stock set changes and
coordinating the check loop.
"""

__all__ = [
    "checkers",
    "config",
    "db",
    "detector",
    "emailer",
    "inventory",
    "main",
    "monitor",
    "notifier",
    "scraper",
    "server",
    "sources",
    "utils",
]
