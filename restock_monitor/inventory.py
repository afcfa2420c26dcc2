"""Product inventory files.

Each source owns a JSON file listing the products to watch:

    [{"website": "IPPODO", "manufacturer": "...", "name": "...", "url": "..."}, ...]

`InventoryProvider` reads them for a run.  `refresh_inventory` rebuilds a
file from the shop's category pages; it overwrites the previous list, so it
only runs when asked for explicitly.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .config import INVENTORY_DIR, REQUEST_TIMEOUT_SECONDS
from .scraper import FetchPage, Product
from .sources import Source

logger = logging.getLogger(__name__)

# (manufacturer, name, url) rows found on one category page.
CatalogParser = Callable[[BeautifulSoup, Source], List[Tuple[str, str, str]]]

CATALOG_PARSERS: Dict[str, CatalogParser] = {}


class InventoryProvider:
    def __init__(self, directory: str = INVENTORY_DIR) -> None:
        self.directory = Path(directory)

    def path_for(self, source: Source) -> Path:
        return self.directory / source.inventory_file

    def load_products(self, source: Source) -> List[Product]:
        """Products of `source` in file order. Missing or unreadable files yield []."""
        path = self.path_for(source)
        if not path.exists():
            logger.warning("%s file not found; no products to check for %s.", path, source.name)
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.exception("Could not read inventory file %s", path)
            return []
        if not isinstance(data, list):
            logger.error("Inventory file %s must contain a JSON array.", path)
            return []

        products: List[Product] = []
        for entry in data:
            if not isinstance(entry, dict) or not entry.get("url"):
                logger.debug("Skipping malformed inventory entry in %s: %r", path, entry)
                continue
            products.append(
                Product(
                    website=source.key,
                    manufacturer=str(entry.get("manufacturer") or source.name),
                    name=str(entry.get("name") or entry["url"]),
                    url=str(entry["url"]),
                )
            )
        return products

    def write_products(self, source: Source, products: Iterable[Product]) -> Path:
        path = self.path_for(source)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = [p.to_dict() for p in products]
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("Wrote %d products for %s to %s", len(payload), source.name, path)
        return path


def catalog_parser(source_key: str) -> Callable[[CatalogParser], CatalogParser]:
    def deco(fn: CatalogParser) -> CatalogParser:
        CATALOG_PARSERS[source_key] = fn
        return fn

    return deco


@catalog_parser("SAZEN")
def _parse_sazen(soup: BeautifulSoup, source: Source) -> List[Tuple[str, str, str]]:
    # Category pages are per manufacturer; the heading names it.
    heading = soup.select_one("div#content h1")
    manufacturer = heading.get_text(strip=True) if heading else source.name
    rows: List[Tuple[str, str, str]] = []
    for a in soup.select('div.product-name a[href^="/en/products/"]'):
        rows.append((manufacturer, a.get_text(strip=True), urljoin(source.base_url, a["href"])))
    # Some categories list products in a table instead of a grid.
    for a in soup.select('tr > td:nth-child(2) a[href^="/en/products/"]'):
        rows.append((manufacturer, a.get_text(strip=True), urljoin(source.base_url, a["href"])))
    return rows


@catalog_parser("IPPODO")
def _parse_ippodo(soup: BeautifulSoup, source: Source) -> List[Tuple[str, str, str]]:
    return [
        (source.name, a.get_text(strip=True), urljoin(source.base_url, a["href"]))
        for a in soup.select("a.a-link-product--type01[href]")
    ]


@catalog_parser("NAKAMURA_TOKICHI")
def _parse_nakamura(soup: BeautifulSoup, source: Source) -> List[Tuple[str, str, str]]:
    rows: List[Tuple[str, str, str]] = []
    for card in soup.select("div.card__information"):
        link = card.select_one("a[href]")
        heading = card.select_one("h3.card__heading")
        name = heading.get_text(strip=True) if heading else ""
        if link and name:
            rows.append((source.name, name, urljoin(source.base_url, link["href"])))
    return rows


def refresh_inventory(
    source: Source,
    fetch: FetchPage,
    provider: Optional[InventoryProvider] = None,
    *,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
) -> List[Product]:
    """Rebuild the inventory file of `source` from its category pages.

    Products are de-duplicated by URL (the last listing wins, first position
    kept).  Category pages that fail are logged and skipped; if none yields
    a product the existing file is left alone.
    """
    provider = provider or InventoryProvider()
    parser = CATALOG_PARSERS.get(source.key)
    if parser is None:
        logger.error("No catalog parser for source %s", source.key)
        return []

    found: Dict[str, Product] = {}
    for category_url in source.category_urls:
        try:
            html = fetch(category_url, timeout)
        except Exception as e:
            logger.error("Error fetching %s category page %s: %s", source.name, category_url, e)
            continue
        soup = BeautifulSoup(html, "html.parser")
        for manufacturer, name, url in parser(soup, source):
            if not name:
                continue
            found[url] = Product(website=source.key, manufacturer=manufacturer, name=name, url=url)

    products = list(found.values())
    if not products:
        logger.warning("No products found for %s; keeping the existing inventory file.", source.name)
        return []
    provider.write_products(source, products)
    return products


__all__ = ["InventoryProvider", "CATALOG_PARSERS", "catalog_parser", "refresh_inventory"]
