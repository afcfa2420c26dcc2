"""Product model, page fetching and the per-source stock runner."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Set

import requests

from .checkers import is_in_stock
from .config import MAX_WORKERS, REQUEST_DELAY_SECONDS, REQUEST_TIMEOUT_SECONDS
from .sources import Source
from .utils import HTTPError, get_http_session, retryable_request

logger = logging.getLogger(__name__)

# fetch_page(url, timeout) -> html; raises on any failure.
FetchPage = Callable[[str, float], str]


@dataclass(frozen=True)
class Product:
    # Identity is the page URL; the other fields are descriptive only.
    website: str = field(compare=False)  # owning source key
    manufacturer: str = field(compare=False)
    name: str = field(compare=False)
    url: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "website": self.website,
            "manufacturer": self.manufacturer,
            "name": self.name,
            "url": self.url,
        }


@dataclass
class Availability:
    product: Product
    in_stock: bool
    error: Optional[str] = None


@dataclass
class SourceResult:
    source_key: str
    in_stock_products: List[Product] = field(default_factory=list)
    in_stock_keys: Set[str] = field(default_factory=set)
    checked: int = 0
    failed: int = 0

    @property
    def unreachable(self) -> bool:
        """Every product page failed to load."""
        return self.checked > 0 and self.failed == self.checked


class FetchError(Exception):
    """Raised when a product page cannot be retrieved."""


@retryable_request
def _get(session: requests.Session, url: str, **kwargs) -> requests.Response:
    """Thin wrapper around session.get with retry policy from utils.retryable_request."""
    return session.get(url, **kwargs)


class PageFetcher:
    """Callable `fetch_page` that keeps one requests session per thread.

    Pool workers each get their own session, created on first use; a
    session passed in is used as-is by every thread and left open.  Use as
    a context manager so owned sessions are closed after the run.
    """

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self._shared = session
        self._local = threading.local()
        self._owned: List[requests.Session] = []
        self._lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        if self._shared is not None:
            return self._shared
        session = getattr(self._local, "session", None)
        if session is None:
            session = get_http_session()
            self._local.session = session
            with self._lock:
                self._owned.append(session)
        return session

    def __call__(self, url: str, timeout: float = REQUEST_TIMEOUT_SECONDS) -> str:
        return fetch_page(url, timeout, session=self.session)

    def close(self) -> None:
        with self._lock:
            owned, self._owned = self._owned, []
        for session in owned:
            session.close()
        self._local = threading.local()

    def __enter__(self) -> "PageFetcher":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def fetch_page(url: str, timeout: float = REQUEST_TIMEOUT_SECONDS, *, session: Optional[requests.Session] = None) -> str:
    """Return the HTML of `url`, raising FetchError on any failure (timeouts included)."""
    close_session = False
    if session is None:
        session = get_http_session()
        close_session = True
    try:
        resp = _get(session, url, timeout=timeout, allow_redirects=True)
        return resp.text
    except (requests.RequestException, HTTPError) as e:
        raise FetchError(f"{url}: {e}") from e
    finally:
        if close_session:
            session.close()


def check_product(product: Product, fetch: FetchPage, timeout: float) -> Availability:
    """Fetch and classify one product. Never raises."""
    try:
        html = fetch(product.url, timeout)
    except Exception as e:
        logger.warning("Fetch failed for %s (%s): %s", product.name, product.url, e)
        return Availability(product, False, error=str(e) or e.__class__.__name__)
    return Availability(product, is_in_stock(product, html))


def _unique(products: Sequence[Product]) -> List[Product]:
    seen: Set[str] = set()
    out: List[Product] = []
    for p in products:
        if p.url in seen:
            continue
        seen.add(p.url)
        out.append(p)
    return out


def run_source(
    source: Source,
    products: Sequence[Product],
    fetch: FetchPage,
    *,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
    max_workers: int = MAX_WORKERS,
    delay_seconds: float = REQUEST_DELAY_SECONDS,
) -> SourceResult:
    """Check every product of `source` and collect the in-stock subset.

    Sequential sources are fetched one page at a time (with `delay_seconds`
    between requests); the others go through a thread pool and every
    future is joined before returning.  The result keeps input order.
    """
    products = _unique(products)
    result = SourceResult(source_key=source.key)
    if not products:
        logger.info("No products configured for %s.", source.name)
        return result

    logger.info(
        "Checking %d products for %s (%s).",
        len(products), source.name, "sequential" if source.sequential else "parallel",
    )

    if source.sequential:
        checks: List[Availability] = []
        for idx, p in enumerate(products):
            if idx and delay_seconds > 0:
                time.sleep(delay_seconds)
            checks.append(check_product(p, fetch, timeout))
    else:
        workers = max(1, min(max_workers, len(products)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"check-{source.key.lower()}") as pool:
            futures = [pool.submit(check_product, p, fetch, timeout) for p in products]
            checks = [f.result() for f in futures]

    for c in checks:
        result.checked += 1
        if c.error is not None:
            result.failed += 1
        if c.in_stock:
            result.in_stock_products.append(c.product)
            result.in_stock_keys.add(c.product.url)

    logger.info(
        "%s: %d/%d in stock (%d fetch failures).",
        source.name, len(result.in_stock_products), result.checked, result.failed,
    )
    if result.unreachable:
        logger.warning("Every product page failed for %s; the source may be down.", source.name)
    return result


__all__ = [
    "Product",
    "Availability",
    "SourceResult",
    "FetchError",
    "FetchPage",
    "PageFetcher",
    "fetch_page",
    "check_product",
    "run_source",
]
