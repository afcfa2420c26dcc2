"""Pytest fixtures for restock-monitor tests."""

import threading
from typing import Dict, List, Union

import pytest

from restock_monitor.scraper import Product
from restock_monitor.sources import POLICY_STRICT, POLICY_THRESHOLD, Source


SAZEN_IN_STOCK = """
<html><body><div id="content">
  <h1>Marukyu Koyamaen</h1>
  <form id="basket-add" action="/en/basket"><button type="submit">Add to basket</button></form>
</div></body></html>
"""

SAZEN_OUT_OF_STOCK = """
<html><body><div id="content">
  <p><strong class="red">This product is unavailable at the moment.</strong></p>
  <form id="basket-add" action="/en/basket"></form>
</div></body></html>
"""

IPPODO_IN_STOCK = """
<html><body>
  <div class="product-form__buttons">
    <button type="submit" name="add">Add to cart</button>
  </div>
</body></html>
"""

IPPODO_OUT_OF_STOCK = """
<html><body>
  <div class="product-form__buttons">
    <button type="submit" name="add" style="display: none">Add to cart</button>
  </div>
  <p>Sold out</p>
</body></html>
"""

NAKAMURA_IN_STOCK = """
<html><body>
  <form method="post" action="/cart/add">
    <button type="submit" name="add" class="product-form__submit button"><span>Add to cart</span></button>
  </form>
</body></html>
"""

NAKAMURA_OUT_OF_STOCK = """
<html><body>
  <form method="post" action="/cart/add">
    <button type="submit" name="add" class="product-form__submit button" disabled><span>Sold out</span></button>
  </form>
</body></html>
"""

BLOCKED_PAGE = "<html><body><h1>Access denied</h1></body></html>"


class FakeFetcher:
    """fetch_page stand-in: url -> html, or an exception to raise."""

    def __init__(self, pages: Dict[str, Union[str, Exception]]):
        self.pages = dict(pages)
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def __call__(self, url: str, timeout: float) -> str:
        with self._lock:
            self.calls.append(url)
        page = self.pages.get(url)
        if page is None:
            raise ConnectionError(f"no page for {url}")
        if isinstance(page, Exception):
            raise page
        return page


def make_product(source_key: str, slug: str, manufacturer: str = "Maker") -> Product:
    return Product(
        website=source_key,
        manufacturer=manufacturer,
        name=slug.replace("-", " ").title(),
        url=f"https://shop.example/{source_key.lower()}/{slug}",
    )


@pytest.fixture
def strict_source() -> Source:
    return Source(
        key="IPPODO",
        name="Ippodo Tea",
        base_url="https://shop.example",
        inventory_file="ippodo.json",
        policy=POLICY_STRICT,
    )


@pytest.fixture
def threshold_source() -> Source:
    return Source(
        key="IPPODO",
        name="Ippodo Tea",
        base_url="https://shop.example",
        inventory_file="ippodo.json",
        policy=POLICY_THRESHOLD,
        threshold=1,
    )


@pytest.fixture
def sequential_source() -> Source:
    return Source(
        key="SAZEN",
        name="Sazen Tea",
        base_url="https://shop.example",
        inventory_file="sazen.json",
        sequential=True,
    )


@pytest.fixture
def ippodo_products() -> List[Product]:
    return [make_product("IPPODO", s) for s in ("ummon", "sayaka", "kan")]
