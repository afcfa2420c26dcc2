"""Tests for the per-source availability rules."""

import pytest

from restock_monitor.checkers import CHECKERS, is_in_stock, register
from tests.conftest import (
    BLOCKED_PAGE,
    IPPODO_IN_STOCK,
    IPPODO_OUT_OF_STOCK,
    NAKAMURA_IN_STOCK,
    NAKAMURA_OUT_OF_STOCK,
    SAZEN_IN_STOCK,
    SAZEN_OUT_OF_STOCK,
    make_product,
)


class TestSourceRules:
    @pytest.mark.parametrize(
        "source_key,html,expected",
        [
            ("SAZEN", SAZEN_IN_STOCK, True),
            ("SAZEN", SAZEN_OUT_OF_STOCK, False),
            ("IPPODO", IPPODO_IN_STOCK, True),
            ("IPPODO", IPPODO_OUT_OF_STOCK, False),
            ("NAKAMURA_TOKICHI", NAKAMURA_IN_STOCK, True),
            ("NAKAMURA_TOKICHI", NAKAMURA_OUT_OF_STOCK, False),
        ],
    )
    def test_rule(self, source_key, html, expected):
        assert is_in_stock(make_product(source_key, "item"), html) is expected

    def test_sazen_needs_basket_form(self):
        html = "<html><body><div id='content'><h1>Hokoen</h1></div></body></html>"
        assert is_in_stock(make_product("SAZEN", "item"), html) is False

    def test_ippodo_any_visible_button_counts(self):
        html = """
        <div class="product-form__buttons">
          <button style="display:none">Add to cart</button>
          <button>Add to cart</button>
        </div>
        """
        assert is_in_stock(make_product("IPPODO", "item"), html) is True

    def test_nakamura_enabled_sold_out_label_is_not_in_stock(self):
        html = '<form action="/cart/add"><button name="add">Sold out</button></form>'
        assert is_in_stock(make_product("NAKAMURA_TOKICHI", "item"), html) is False


class TestUnclassifiablePages:
    @pytest.mark.parametrize("source_key", ["SAZEN", "IPPODO", "NAKAMURA_TOKICHI"])
    @pytest.mark.parametrize("html", [BLOCKED_PAGE, "", "   ", None, "<<<not html"])
    def test_missing_markers_mean_out_of_stock(self, source_key, html):
        assert is_in_stock(make_product(source_key, "item"), html) is False

    def test_unknown_source(self):
        assert is_in_stock(make_product("UNKNOWN_SHOP", "item"), IPPODO_IN_STOCK) is False

    def test_checker_error_is_out_of_stock(self):
        @register("BROKEN")
        def _broken(soup):
            raise RuntimeError("boom")

        try:
            assert is_in_stock(make_product("BROKEN", "item"), IPPODO_IN_STOCK) is False
        finally:
            CHECKERS.pop("BROKEN", None)
