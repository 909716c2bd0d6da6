from decimal import Decimal

import pytest

from physical_giftcards.utils import (
    currency_exponent,
    format_gift_card_code,
    mask_code,
    parse_money,
    quantize_money,
    to_shopify_gid,
)


class TestToShopifyGid:
    def test_numeric(self):
        assert to_shopify_gid("ProductVariant", 50840830771431) == (
            "gid://shopify/ProductVariant/50840830771431"
        )

    def test_string(self):
        assert to_shopify_gid("Order", " 42 ") == "gid://shopify/Order/42"

    def test_existing_gid_unchanged(self):
        assert to_shopify_gid("Order", "gid://shopify/Order/1") == "gid://shopify/Order/1"


class TestMoney:
    @pytest.mark.parametrize(
        "code, exponent", [("USD", 2), ("eur", 2), ("JPY", 0), ("KWD", 3), (None, 2)]
    )
    def test_currency_exponent(self, code, exponent):
        assert currency_exponent(code) == exponent

    def test_quantize_zero_decimal_currency(self):
        assert quantize_money(Decimal("1999.5"), "JPY") == Decimal("2000")

    def test_quantize_half_up(self):
        assert quantize_money(Decimal("0.125"), "USD") == Decimal("0.13")

    def test_quantize_too_many_digits(self):
        with pytest.raises(ValueError, match="out of range"):
            quantize_money(Decimal("1e30"), "USD")

    def test_parse(self):
        assert parse_money(" 25.00 ") == Decimal("25.00")

    @pytest.mark.parametrize("value", [None, "", "  ", "abc", "NaN", "Infinity"])
    def test_parse_rejects(self, value):
        with pytest.raises(ValueError):
            parse_money(value)


class TestCodes:
    def test_format(self):
        assert format_gift_card_code("abcd1234efgh5678") == "ABCD 1234 EFGH 5678"

    def test_format_uneven_length(self):
        assert format_gift_card_code("abcdef") == "ABCD EF"

    def test_format_empty(self):
        assert format_gift_card_code("") == ""

    def test_mask_exposes_last_four(self):
        assert mask_code("abcd1234efgh5678") == "****5678"
        assert mask_code(None) == ""
