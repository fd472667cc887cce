from decimal import Decimal

from cue_pos.services.models import BilliardTable, PriceCategory
from cue_pos.services.pricing import find_category, resolve_rate

CATEGORIES = [
    PriceCategory("cat-regular", "Regular", Decimal("15")),
    PriceCategory("cat-vip", "VIP", Decimal("25")),
]


def test_category_rate_wins_over_default():
    table = BilliardTable("t1", "Table 1", price_category_id="cat-vip")
    assert resolve_rate(table, CATEGORIES, 10) == Decimal("25")


def test_table_without_category_uses_default():
    table = BilliardTable("t1", "Table 1")
    assert resolve_rate(table, CATEGORIES, Decimal("12.5")) == Decimal("12.5")


def test_dangling_category_falls_back_silently():
    table = BilliardTable("t1", "Table 1", price_category_id="cat-deleted")
    assert resolve_rate(table, CATEGORIES, 15) == Decimal("15")


def test_find_category_handles_missing_id():
    assert find_category(CATEGORIES, None) is None
    assert find_category(CATEGORIES, "cat-regular").name == "Regular"
