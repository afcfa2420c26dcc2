"""HTTP plumbing shared by page fetching and notifications.

Shop pages are requested with desktop browser headers, and every network
call goes through `retryable_request`: connection errors and 5xx answers
are retried with backoff, 4xx answers fail at once.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import requests
from requests import Response
from tenacity import (after_log, retry, retry_if_exception_type,
                      stop_after_attempt, wait_exponential)

from .config import HTTP_MAX_ATTEMPTS


logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def get_http_session() -> requests.Session:
    """Session that looks like a desktop browser to the shops.

    Storefronts set cookies on the first page and expect them back on the
    next ones, so a session is reused for a whole pass (one per worker
    thread, see `scraper.PageFetcher`).  Close it when done.
    """
    session = requests.Session()
    session.headers.update(BROWSER_HEADERS)
    return session


class HTTPError(Exception):
    """Raised when an HTTP request fails."""


class ServerError(HTTPError):
    """Raised for 5xx responses; these are retried."""


def _raise_for_status(resp: Response) -> None:
    try:
        resp.raise_for_status()
    except requests.RequestException as e:
        raise HTTPError(str(e)) from e


def retryable_request(method: Callable[..., Response]) -> Callable[..., Response]:
    """Wrap a `(session, url, **kwargs) -> Response` call with retries.

    Up to HTTP_MAX_ATTEMPTS tries, 1 to 10 seconds apart.  A shop that is
    down (connection error, timeout, 5xx) gets another try; a 4xx such as
    a removed product page raises `HTTPError` straight away.
    """

    @retry(
        reraise=True,
        stop=stop_after_attempt(HTTP_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=(
            retry_if_exception_type(requests.RequestException)
            | retry_if_exception_type(ServerError)
        ),
        after=after_log(logger, logging.WARNING),
    )
    def wrapper(session: requests.Session, url: str, **kwargs: Any) -> Response:
        response = method(session, url, **kwargs)
        if response.status_code >= 500:
            raise ServerError(f"Server returned status {response.status_code} for {url}")
        _raise_for_status(response)
        return response

    return wrapper


__all__ = ["get_http_session", "retryable_request", "HTTPError", "ServerError", "BROWSER_HEADERS"]
