"""Tests for the per-shop configuration store."""

from decimal import Decimal

import pytest

from physical_giftcards.models import ShopConfiguration, TriggerVariant
from physical_giftcards.services.configuration import (
    add_trigger_variants,
    get_configuration,
    get_trigger_variant_ids,
    remove_trigger_variant,
    remove_trigger_variants,
    set_printed_overhead,
    set_send_email_notification,
)
from physical_giftcards.tests.conftest import GIFT_CARD_VARIANT, OTHER_VARIANT, SHOP_DOMAIN

pytestmark = pytest.mark.django_db


class TestGetConfiguration:
    def test_created_lazily_with_defaults(self, settings):
        settings.SHOPIFY_API_VERSION = "2025-04"
        configuration = get_configuration("lazy.myshopify.com")

        assert configuration.send_email_notification is True
        assert configuration.printed_overhead == Decimal("0")
        assert configuration.api_version == "2025-04"
        assert get_trigger_variant_ids(configuration) == set()

    def test_returns_existing(self, configuration):
        assert get_configuration(SHOP_DOMAIN).pk == configuration.pk
        assert ShopConfiguration.objects.count() == 1


class TestTriggerVariants:
    def test_add_normalises_numeric_ids(self, configuration):
        added = add_trigger_variants(
            SHOP_DOMAIN, [{"id": 111, "product_id": 632910392}, "222"]
        )

        assert added == 2
        assert get_trigger_variant_ids(configuration) == {GIFT_CARD_VARIANT, OTHER_VARIANT}
        variant = TriggerVariant.objects.get(variant_id=GIFT_CARD_VARIANT)
        assert variant.product_id == "gid://shopify/Product/632910392"

    def test_add_ignores_duplicates(self, configuration):
        add_trigger_variants(SHOP_DOMAIN, [GIFT_CARD_VARIANT])
        added = add_trigger_variants(SHOP_DOMAIN, [GIFT_CARD_VARIANT, "111"])

        assert added == 0
        assert TriggerVariant.objects.count() == 1

    def test_add_rejects_empty_id(self, configuration):
        with pytest.raises(ValueError, match="Variant id is required"):
            add_trigger_variants(SHOP_DOMAIN, [{"id": ""}])

    def test_remove_one(self, configuration):
        add_trigger_variants(SHOP_DOMAIN, [GIFT_CARD_VARIANT, OTHER_VARIANT])

        assert remove_trigger_variant(SHOP_DOMAIN, GIFT_CARD_VARIANT) == 1
        assert get_trigger_variant_ids(configuration) == {OTHER_VARIANT}

    def test_remove_product_variants(self, configuration):
        add_trigger_variants(SHOP_DOMAIN, [GIFT_CARD_VARIANT, OTHER_VARIANT])

        assert remove_trigger_variants(SHOP_DOMAIN, ["111", "222"]) == 2
        assert get_trigger_variant_ids(configuration) == set()

    def test_remove_unknown_is_noop(self, configuration):
        assert remove_trigger_variant(SHOP_DOMAIN, "999") == 0

    def test_variants_are_per_shop(self, configuration):
        add_trigger_variants("other.myshopify.com", [GIFT_CARD_VARIANT])
        assert get_trigger_variant_ids(configuration) == set()


class TestShopSettings:
    def test_toggle_email_notification(self, configuration):
        set_send_email_notification(SHOP_DOMAIN, False)
        configuration.refresh_from_db()
        assert configuration.send_email_notification is False

    def test_set_overhead(self, configuration):
        set_printed_overhead(SHOP_DOMAIN, "3.50")
        configuration.refresh_from_db()
        assert configuration.printed_overhead == Decimal("3.50")

    def test_negative_overhead_clamped_to_zero(self, configuration):
        set_printed_overhead(SHOP_DOMAIN, "-2")
        configuration.refresh_from_db()
        assert configuration.printed_overhead == Decimal("0")

    def test_non_numeric_overhead_rejected(self, configuration):
        with pytest.raises(ValueError):
            set_printed_overhead(SHOP_DOMAIN, "lots")

    @pytest.mark.parametrize("amount", ["1e30", "1e12", "1000000000"])
    def test_overhead_too_large_for_column_rejected(self, configuration, amount):
        with pytest.raises(ValueError, match="out of range"):
            set_printed_overhead(SHOP_DOMAIN, amount)
        configuration.refresh_from_db()
        assert configuration.printed_overhead == Decimal("0")

    def test_largest_overhead_accepted(self, configuration):
        set_printed_overhead(SHOP_DOMAIN, "999999999.999")
        configuration.refresh_from_db()
        assert configuration.printed_overhead == Decimal("999999999.999")
