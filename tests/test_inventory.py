"""Tests for inventory files and the catalog refresh."""

import json

import pytest

from restock_monitor.inventory import InventoryProvider, refresh_inventory
from restock_monitor.sources import REGISTRY
from tests.conftest import FakeFetcher

SAZEN_CATEGORY = """
<html><body><div id="content">
  <h1>Marukyu Koyamaen</h1>
  <div class="product-name"><a href="/en/products/p1-unkaku">Unkaku</a></div>
  <div class="product-name"><a href="/en/products/p2-aoarashi">Aoarashi</a></div>
  <table>
    <tr><td>img</td><td><a href="/en/products/p3-wako">Wako</a></td></tr>
    <tr><td>img</td><td><a href="/en/products/p1-unkaku">Unkaku 40g</a></td></tr>
  </table>
</div></body></html>
"""

IPPODO_CATEGORY = """
<html><body>
  <a class="a-link-product--type01" href="/products/ummon">Ummon-no-mukashi</a>
  <a class="a-link-product--type01" href="/products/sayaka">Sayaka-no-mukashi</a>
</body></html>
"""

NAKAMURA_CATEGORY = """
<html><body>
  <div class="card__information">
    <h3 class="tatata card__heading"><a href="/products/matcha-1">Matcha Uji no Mukashi</a></h3>
  </div>
  <div class="card__information"><h3 class="card__heading"></h3><a href="/products/empty">x</a></div>
</body></html>
"""


@pytest.fixture
def provider(tmp_path):
    return InventoryProvider(str(tmp_path))


class TestInventoryProvider:
    def test_missing_file(self, provider):
        assert provider.load_products(REGISTRY["IPPODO"]) == []

    def test_load_in_file_order(self, provider, tmp_path):
        source = REGISTRY["IPPODO"]
        rows = [
            {"website": "IPPODO", "manufacturer": "Ippodo Tea", "name": "Kan", "url": "https://x/kan"},
            {"website": "IPPODO", "manufacturer": "Ippodo Tea", "name": "Ummon", "url": "https://x/ummon"},
            {"website": "IPPODO", "name": "no url"},
            "garbage",
        ]
        (tmp_path / source.inventory_file).write_text(json.dumps(rows), encoding="utf-8")

        products = provider.load_products(source)

        assert [p.name for p in products] == ["Kan", "Ummon"]
        assert all(p.website == "IPPODO" for p in products)

    def test_bad_json(self, provider, tmp_path):
        source = REGISTRY["IPPODO"]
        (tmp_path / source.inventory_file).write_text("{not json", encoding="utf-8")
        assert provider.load_products(source) == []

    def test_write_then_load(self, provider):
        source = REGISTRY["IPPODO"]
        fetch = FakeFetcher({source.category_urls[0]: IPPODO_CATEGORY})
        written = refresh_inventory(source, fetch, provider, timeout=1)
        assert provider.load_products(source) == written


class TestRefreshInventory:
    def test_sazen_dedupes_and_keeps_first_position(self, provider):
        source = REGISTRY["SAZEN"]
        pages = {url: "<html></html>" for url in source.category_urls}
        pages[source.category_urls[0]] = SAZEN_CATEGORY

        products = refresh_inventory(source, FakeFetcher(pages), provider, timeout=1)

        assert [p.url for p in products] == [
            "https://www.sazentea.com/en/products/p1-unkaku",
            "https://www.sazentea.com/en/products/p2-aoarashi",
            "https://www.sazentea.com/en/products/p3-wako",
        ]
        assert products[0].name == "Unkaku 40g"
        assert {p.manufacturer for p in products} == {"Marukyu Koyamaen"}

    def test_ippodo(self, provider):
        source = REGISTRY["IPPODO"]
        products = refresh_inventory(source, FakeFetcher({source.category_urls[0]: IPPODO_CATEGORY}), provider, timeout=1)
        assert [p.url for p in products] == [
            "https://global.ippodo-tea.co.jp/products/ummon",
            "https://global.ippodo-tea.co.jp/products/sayaka",
        ]
        assert products[0].manufacturer == "Ippodo Tea"

    def test_nakamura_skips_cards_without_name(self, provider):
        source = REGISTRY["NAKAMURA_TOKICHI"]
        pages = {source.category_urls[0]: NAKAMURA_CATEGORY, source.category_urls[1]: "<html></html>"}
        products = refresh_inventory(source, FakeFetcher(pages), provider, timeout=1)
        assert [(p.name, p.url) for p in products] == [
            ("Matcha Uji no Mukashi", "https://global.tokichi.jp/products/matcha-1"),
        ]

    def test_failed_category_keeps_existing_file(self, provider):
        source = REGISTRY["IPPODO"]
        refresh_inventory(source, FakeFetcher({source.category_urls[0]: IPPODO_CATEGORY}), provider, timeout=1)

        assert refresh_inventory(source, FakeFetcher({}), provider, timeout=1) == []
        assert len(provider.load_products(source)) == 2
