"""Per-shop gift card configuration: trigger variants and shop-level settings.

The webhook pipeline only reads from here; every mutation comes from the
admin API.
"""

import logging
from decimal import Decimal, InvalidOperation

from ..conf import get_setting
from ..models import ShopConfiguration, TriggerVariant
from ..utils import parse_money, to_shopify_gid

logger = logging.getLogger(__name__)

OVERHEAD_PRECISION = Decimal("0.001")
# printed_overhead is DecimalField(max_digits=12, decimal_places=3).
MAX_PRINTED_OVERHEAD = Decimal("1e9")


def get_configuration(shop):
    """Return the shop's configuration, creating it with defaults if missing."""
    configuration, created = ShopConfiguration.objects.get_or_create(
        shop=shop,
        defaults={"api_version": get_setting("SHOPIFY_API_VERSION")},
    )
    if created:
        logger.info("Created default gift card configuration for %s", shop)
    return configuration


def get_trigger_variant_ids(configuration):
    """Return the set of trigger variant GIDs for a configuration."""
    return set(
        configuration.trigger_variants.values_list("variant_id", flat=True)
    )


def _normalise_variant(variant):
    if isinstance(variant, dict):
        variant_id = variant.get("id")
        product_id = variant.get("product_id") or ""
    else:
        variant_id, product_id = variant, ""
    if variant_id is None or str(variant_id).strip() == "":
        raise ValueError("Variant id is required")
    return (
        to_shopify_gid("ProductVariant", variant_id),
        to_shopify_gid("Product", product_id) if product_id else "",
    )


def add_trigger_variants(shop, variants):
    """Add variants to the shop's trigger set.

    Args:
        shop: Shop domain.
        variants: Iterable of variant ids, or dicts with ``id`` and an
            optional ``product_id``. Numeric ids are converted to GIDs.

    Returns:
        int: Number of variants that were not already configured.
    """
    configuration = get_configuration(shop)
    added = 0
    for variant in variants:
        variant_id, product_id = _normalise_variant(variant)
        _, created = TriggerVariant.objects.get_or_create(
            configuration=configuration,
            variant_id=variant_id,
            defaults={"product_id": product_id},
        )
        if created:
            added += 1
    logger.info("Added %d trigger variants for %s", added, shop)
    return added


def remove_trigger_variants(shop, variant_ids):
    """Remove variants from the shop's trigger set; returns the count removed."""
    configuration = get_configuration(shop)
    gids = [to_shopify_gid("ProductVariant", v) for v in variant_ids if v]
    removed, _ = TriggerVariant.objects.filter(
        configuration=configuration, variant_id__in=gids
    ).delete()
    logger.info("Removed %d trigger variants for %s", removed, shop)
    return removed


def remove_trigger_variant(shop, variant_id):
    return remove_trigger_variants(shop, [variant_id])


def set_send_email_notification(shop, enabled):
    configuration = get_configuration(shop)
    configuration.send_email_notification = bool(enabled)
    configuration.save(update_fields=["send_email_notification", "updated_at"])
    return configuration


def set_printed_overhead(shop, amount):
    """Set the flat per-card printing cost. Negative amounts become zero.

    Raises:
        ValueError: if ``amount`` is not a number or does not fit the
            ``printed_overhead`` column.
    """
    amount = max(Decimal("0"), parse_money(amount))
    try:
        overhead = amount.quantize(OVERHEAD_PRECISION)
    except InvalidOperation:
        raise ValueError(f"Printed overhead out of range: {amount}") from None
    if overhead >= MAX_PRINTED_OVERHEAD:
        raise ValueError(f"Printed overhead out of range: {amount}")
    configuration = get_configuration(shop)
    configuration.printed_overhead = overhead
    configuration.save(update_fields=["printed_overhead", "updated_at"])
    return configuration
