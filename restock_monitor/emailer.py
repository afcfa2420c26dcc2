"""Email notifier via SMTP.

Sends stock notifications to one or more recipients using SMTP.
Supports STARTTLS (587) or SSL (465). Keep bodies short & link out.
"""

from __future__ import annotations

import html as _html
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import TYPE_CHECKING

from . import config

if TYPE_CHECKING:
    from .notifier import StockEvent

logger = logging.getLogger(__name__)


def _build_subject(event: "StockEvent") -> str:
    n = len(event.products)
    noun = "item" if n == 1 else "items"
    return f"{config.EMAIL_SUBJECT_PREFIX} {n} {noun} in stock on {event.source_name}"


def _build_html(event: "StockEvent") -> str:
    # --- HTML body (avoid nested f-strings)
    li_html = "".join(
        '<li><a href="{url}">{label}</a></li>'.format(
            url=_html.escape(p.url, quote=True),
            label=_html.escape(f"{p.manufacturer} - {p.name}"),
        )
        for p in event.products
    )
    html = (
        "<html>"
        "<body>"
        "<p><b>{ts}</b></p>"
        "<h3>In stock on {source}</h3>"
        "<ol>{lis}</ol>"
        "</body>"
        "</html>"
    ).format(ts=_html.escape(event.timestamp), source=_html.escape(event.source_name), lis=li_html)

    return html


def _send(msg: EmailMessage) -> bool:
    required = (config.EMAIL_USERNAME, config.EMAIL_PASSWORD, config.EMAIL_FROM)
    if not all(required) or not config.EMAIL_TO:
        logger.error("Email config incomplete; set EMAIL_USERNAME, EMAIL_PASSWORD, EMAIL_FROM, EMAIL_TO")
        return False

    host, port = config.EMAIL_SMTP_HOST, int(config.EMAIL_SMTP_PORT)
    try:
        if config.EMAIL_USE_TLS and port == 587:
            with smtplib.SMTP(host, port, timeout=20) as s:
                s.ehlo()
                s.starttls(context=ssl.create_default_context())
                s.login(config.EMAIL_USERNAME, config.EMAIL_PASSWORD)
                s.send_message(msg)
        else:
            with smtplib.SMTP_SSL(host, port, context=ssl.create_default_context(), timeout=20) as s:
                s.login(config.EMAIL_USERNAME, config.EMAIL_PASSWORD)
                s.send_message(msg)
        logger.info("Email sent to %s (subject=%s)", ", ".join(config.EMAIL_TO), msg.get("Subject"))
        return True
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send email")
        return False


def send_stock_event(event: "StockEvent", plain: str) -> bool:
    """Email the in-stock list (`plain` is the already formatted message).

    Returns False when the mail could not be sent.
    """
    if not config.EMAIL_ENABLED or not config.EMAIL_TO:
        return False

    msg = EmailMessage()
    msg["Subject"] = _build_subject(event)
    msg["From"] = config.EMAIL_FROM or (config.EMAIL_USERNAME or "")
    msg["To"] = ", ".join(config.EMAIL_TO)
    msg.set_content(plain)
    msg.add_alternative(_build_html(event), subtype="html")
    return _send(msg)


__all__ = ["send_stock_event"]
