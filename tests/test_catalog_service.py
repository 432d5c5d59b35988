"""Catalog normalization and amount helpers."""

import pytest

from core.entities import CatalogItem, sanitize_amount
from services.catalog_service import (
    default_catalog_items,
    ensure_time_item,
    format_currency,
    normalize_catalog,
    parse_amount,
    payload_category,
    prepare_catalog_for_save,
    reorder_saved_catalog,
    resolve_category,
    to_catalog_category,
)


def item(id, name, price, category, order, active=True):
    return CatalogItem(id=id, name=name, unit="개", price=price, category=category,
                       display_order=order, is_active=active)


class TestSanitizeAmount:
    @pytest.mark.parametrize("raw,expected", [
        (-5, 0),
        (1999.9, 1999),
        ("abc", 0),
        ("1200", 1200),
        (None, 0),
        (float("nan"), 0),
        (float("inf"), 0),
        (True, 0),
    ])
    def test_lenient_normalization(self, raw, expected):
        assert sanitize_amount(raw) == expected


class TestCategory:
    def test_keyword_matching(self):
        assert to_catalog_category("Time") == "time"
        assert to_catalog_category("2시간 이용") == "time"
        assert to_catalog_category("생맥주") == "beer"
        assert to_catalog_category(None) == "etc"
        assert to_catalog_category("   ") == "etc"

    def test_explicit_custom_category_is_kept(self):
        assert resolve_category("snack", "과자") == "snack"

    def test_name_used_only_when_category_missing(self):
        assert resolve_category(None, "소주 1병") == "soju"
        assert resolve_category(None, "과자") == "과자"
        assert resolve_category(None, None) == "etc"

    def test_empty_category_is_explicit_etc(self):
        assert resolve_category("", "소주") == "etc"
        assert resolve_category("   ", "맥주") == "etc"

    def test_stored_row_with_empty_category(self):
        catalog = normalize_catalog([
            {"id": "t", "name": "시간", "price": 30000, "category": "time", "display_order": 0},
            {"id": "s", "name": "소주", "price": 10000, "category": "", "display_order": 1},
        ])
        assert [entry.category for entry in catalog] == ["time", "etc"]

    def test_save_path_falls_back_to_name_for_empty_category(self):
        assert payload_category("", "소주") == "soju"
        assert payload_category(None, "") == "etc"


class TestNormalizeCatalog:
    def test_empty_source_yields_defaults(self):
        catalog = normalize_catalog([])
        assert [entry.category for entry in catalog] == ["time", "drink", "soju", "beer"]
        assert [entry.price for entry in catalog] == [30000, 5000, 10000, 5000]

    def test_inactive_rows_are_dropped_and_time_is_inserted(self):
        catalog = normalize_catalog([
            {"id": "a", "name": "음료", "price": 3000, "category": "drink", "display_order": 0},
            {"id": "b", "name": "맥주", "price": 4000, "category": "beer", "display_order": 1, "is_active": False},
        ])
        assert [entry.category for entry in catalog] == ["time", "drink"]
        assert [entry.display_order for entry in catalog] == [0, 1]
        assert catalog[0].unit == "시간"

    def test_exactly_one_time_item_kept(self):
        catalog = normalize_catalog([
            {"id": "t", "name": "시간", "price": 20000, "category": "time", "display_order": 0},
        ])
        assert len([entry for entry in catalog if entry.category == "time"]) == 1
        assert catalog[0].price == 20000

    def test_sorted_by_display_order_then_name(self):
        catalog = normalize_catalog([
            {"id": "t", "name": "시간", "price": 1, "category": "time", "display_order": 0},
            {"id": "y", "name": "음료B", "price": 1, "category": "drink", "display_order": 2},
            {"id": "x", "name": "음료A", "price": 1, "category": "drink", "display_order": 2},
        ])
        assert [entry.id for entry in catalog] == ["t", "x", "y"]

    def test_name_tie_break_ignores_case(self):
        catalog = normalize_catalog([
            {"id": "t", "name": "시간", "price": 1, "category": "time", "display_order": 0},
            {"id": "b", "name": "Beer", "price": 1, "category": "etc", "display_order": 1},
            {"id": "a", "name": "apple", "price": 1, "category": "etc", "display_order": 1},
        ])
        assert [entry.name for entry in catalog] == ["시간", "apple", "Beer"]

    def test_price_is_sanitized(self):
        catalog = normalize_catalog([
            {"id": "t", "name": "시간", "price": -100, "category": "time", "display_order": 0},
            {"id": "d", "name": "음료", "price": 4500.7, "category": "drink", "display_order": 1},
        ])
        assert [entry.price for entry in catalog] == [0, 4500]

    def test_idempotent(self):
        once = normalize_catalog([
            {"id": "d", "name": "음료", "price": 3000, "display_order": 5},
            {"id": "s", "name": "과자", "price": 2000, "category": "snack", "display_order": 1},
        ])
        assert normalize_catalog(once) == once


class TestSaveHelpers:
    def test_prepare_fills_blank_names_and_units(self):
        prepared = prepare_catalog_for_save([
            {"name": "시간", "price": 30000, "category": "time"},
            {"name": "", "price": "2000"},
        ])
        assert prepared[1].name == "품목 2"
        assert prepared[1].unit == "개"
        assert prepared[0].unit == "시간"
        assert [entry.display_order for entry in prepared] == [0, 1]

    def test_prepare_inserts_time_item(self):
        prepared = prepare_catalog_for_save([{"name": "맥주", "price": 5000}])
        assert prepared[0].category == "time"
        assert prepared[1].category == "beer"

    def test_reorder_puts_default_categories_in_place(self):
        reordered = reorder_saved_catalog([
            item("b", "맥주", 5000, "beer", 0),
            item("t", "시간", 30000, "time", 1),
            item("s", "과자", 2000, "etc", 2),
        ])
        assert [entry.id for entry in reordered] == ["t", "s", "b"]

    def test_ensure_time_item_renumbers(self):
        items = ensure_time_item([item("d", "음료", 5000, "drink", 7)])
        assert [entry.display_order for entry in items] == [0, 1]
        assert items[0].id == default_catalog_items()[0].id


class TestCurrency:
    def test_format_currency(self):
        assert format_currency(40000) == "40,000"
        assert format_currency(-3) == "0"

    def test_parse_amount(self):
        assert parse_amount("40,000원") == 40000
        assert parse_amount("") == 0
        assert parse_amount("abc") == 0
        assert parse_amount(2500.9) == 2500

    def test_parse_amount_floors_decimals(self):
        assert parse_amount("1234.5") == 1234
        assert parse_amount("1,234.99원") == 1234
        assert parse_amount("0.5") == 0

    def test_parse_amount_negative_is_zero(self):
        assert parse_amount("-500") == 0
