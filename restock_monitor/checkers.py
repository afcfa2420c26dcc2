"""Per-source availability rules.

Each checker takes the product and the raw HTML of its page and answers
"can this be bought right now?".  A page that cannot be classified with
confidence (markup changed, bot wall, error page) counts as out of stock.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Dict

from bs4 import BeautifulSoup

if TYPE_CHECKING:
    from .scraper import Product

logger = logging.getLogger(__name__)

Checker = Callable[[BeautifulSoup], bool]

CHECKERS: Dict[str, Checker] = {}


def register(source_key: str) -> Callable[[Checker], Checker]:
    """Register the decorated function as the checker for `source_key`."""

    def deco(fn: Checker) -> Checker:
        CHECKERS[source_key] = fn
        return fn

    return deco


@register("SAZEN")
def _sazen_in_stock(soup: BeautifulSoup) -> bool:
    # Needs both: no red "unavailable" notice and the add-to-basket form.
    notice = " ".join(el.get_text(" ", strip=True) for el in soup.select("p strong.red"))
    if "This product is unavailable" in notice:
        return False
    return soup.select_one("form#basket-add") is not None


@register("IPPODO")
def _ippodo_in_stock(soup: BeautifulSoup) -> bool:
    for button in soup.select(".product-form__buttons button"):
        style = (button.get("style") or "").replace(" ", "").lower()
        if "display:none" not in style:
            return True
    return False


@register("NAKAMURA_TOKICHI")
def _nakamura_in_stock(soup: BeautifulSoup) -> bool:
    # Shopify theme: the submit button reads "Sold out" and is disabled when unavailable.
    for button in soup.select('form[action*="/cart/add"] button[name="add"], button.product-form__submit'):
        if button.has_attr("disabled"):
            continue
        if "add to cart" in button.get_text(" ", strip=True).lower():
            return True
    return False


def is_in_stock(product: "Product", html: str | None) -> bool:
    """Return True only if the source's rule positively finds the item purchasable."""
    checker = CHECKERS.get(product.website)
    if checker is None:
        logger.debug("No availability checker for source %s", product.website)
        return False
    if not html or not html.strip():
        return False
    try:
        soup = BeautifulSoup(html, "html.parser")
        return bool(checker(soup))
    except Exception:
        logger.warning("Could not classify page %s; treating as out of stock", product.url, exc_info=True)
        return False


__all__ = ["CHECKERS", "register", "is_in_stock"]
