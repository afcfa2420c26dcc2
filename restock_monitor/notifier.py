"""Stock notifications.

Formats the in-stock list of a source and delivers it to Telegram (Bot API
``sendMessage``), a Discord webhook, and/or e-mail, depending on what is
configured.  Chat messages over the API length limit go out in several
parts, each headed by the run time and source name.
"""
from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence
from zoneinfo import ZoneInfo

import requests

from . import config, emailer
from .scraper import Product
from .utils import get_http_session, retryable_request

logger = logging.getLogger(__name__)

# Per-message length limits of each chat API.
DISCORD_MAX_CONTENT = 2000
TELEGRAM_MAX_TEXT = 4096


@dataclass(frozen=True)
class StockEvent:
    source_key: str
    source_name: str
    products: Sequence[Product]
    timestamp: str


class NotificationError(Exception):
    """Raised when a stock event could not be delivered to any channel."""


@retryable_request
def _post(session: requests.Session, url: str, **kwargs) -> requests.Response:
    return session.post(url, **kwargs)


def format_timestamp(now: Optional[_dt.datetime] = None, tz: str = config.TIMEZONE) -> str:
    """Human readable run time, e.g. 'Monday, 19 October 2026 at 14:05:09 +08'."""
    now = now or _dt.datetime.now(_dt.timezone.utc)
    local = now.astimezone(ZoneInfo(tz))
    return local.strftime("%A, %d %B %Y at %H:%M:%S %Z")


def format_product_list(products: Sequence[Product]) -> str:
    return "\n".join(
        f"{idx}. {p.manufacturer} - {p.name} ({p.url})"
        for idx, p in enumerate(products, start=1)
    )


def _header(event: StockEvent) -> str:
    return f"{event.timestamp}\n\nIn stock on {event.source_name}:\n"


def format_message(event: StockEvent) -> str:
    return _header(event) + format_product_list(event.products)


def split_message(event: StockEvent, limit: int) -> List[str]:
    """Split the message into parts of at most `limit` characters.

    Every part repeats the header and breaks only between product lines,
    so the numbering stays intact across parts.  A single line longer than
    the room left after the header is cut.
    """
    header = _header(event)
    room = limit - len(header)
    parts: List[str] = []
    lines: List[str] = []
    size = 0
    for line in format_product_list(event.products).split("\n"):
        if len(line) > room:
            line = line[: room - 1] + "\u2026"
        extra = len(line) + (1 if lines else 0)
        if lines and size + extra > room:
            parts.append(header + "\n".join(lines))
            lines, size = [], 0
            extra = len(line)
        lines.append(line)
        size += extra
    if lines:
        parts.append(header + "\n".join(lines))
    return parts


def send_telegram(text: str, session: requests.Session) -> None:
    url = f"{config.TELEGRAM_API_URL.rstrip('/')}/bot{config.TELEGRAM_BOT_TOKEN}/sendMessage"
    payload = {
        "chat_id": config.TELEGRAM_CHAT_ID,
        "text": text,
        "disable_web_page_preview": True,
    }
    _post(session, url, json=payload, timeout=20)


def send_discord(text: str, session: requests.Session, webhook_url: Optional[str] = None) -> None:
    webhook_url = webhook_url or config.DISCORD_WEBHOOK_URL
    _post(session, webhook_url, json={"content": text}, timeout=20)


def send_stock_event(event: StockEvent, session: Optional[requests.Session] = None) -> None:
    """Deliver `event` to every configured channel.

    A failing channel does not stop the others.  Raises NotificationError
    when nothing is configured or every configured channel failed.
    """
    if not event.products:
        logger.info("No in-stock products for %s; nothing to send.", event.source_name)
        return

    text = format_message(event)
    logger.info("Stock message for %s:\n%s", event.source_key, text)

    close_session = False
    if session is None:
        session = get_http_session()
        close_session = True

    attempted: List[str] = []
    failed: List[str] = []
    try:
        if config.telegram_configured():
            attempted.append("telegram")
            try:
                for part in split_message(event, TELEGRAM_MAX_TEXT):
                    send_telegram(part, session)
                logger.info("Sent Telegram notification for %s (%d products)", event.source_key, len(event.products))
            except Exception:
                logger.exception("Telegram notification failed for %s", event.source_key)
                failed.append("telegram")

        if config.DISCORD_WEBHOOK_URL:
            attempted.append("discord")
            try:
                for part in split_message(event, DISCORD_MAX_CONTENT):
                    send_discord(part, session)
                logger.info("Sent Discord notification for %s (%d products)", event.source_key, len(event.products))
            except Exception:
                logger.exception("Discord notification failed for %s", event.source_key)
                failed.append("discord")
    finally:
        if close_session:
            session.close()

    if config.EMAIL_ENABLED:
        attempted.append("email")
        if not emailer.send_stock_event(event, text):
            failed.append("email")

    if not attempted:
        raise NotificationError("No notification channel configured.")
    if len(failed) == len(attempted):
        raise NotificationError(f"All channels failed for {event.source_key}: {', '.join(failed)}")


__all__ = [
    "StockEvent",
    "NotificationError",
    "format_timestamp",
    "format_product_list",
    "format_message",
    "split_message",
    "send_telegram",
    "send_discord",
    "send_stock_event",
]
