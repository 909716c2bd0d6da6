"""App settings with defaults, overridable from the Django settings module."""

from django.conf import settings

DEFAULTS = {
    # App secret shared with Shopify; signs every webhook body.
    "SHOPIFY_API_SECRET": "",
    "SHOPIFY_API_VERSION": "2025-01",
    # Seconds, applied to every Admin API round trip.
    "SHOPIFY_REQUEST_TIMEOUT": 10,
    "GIFTCARD_DEFAULT_CURRENCY": "USD",
    # Mirror created cards into an order metafield and the order note.
    "GIFTCARD_ANNOTATE_ORDERS": True,
    "GIFTCARD_ORDERS_PER_PAGE": 10,
    # Shopify caps ``nodes(ids:)`` queries at 100 ids.
    "GIFTCARD_BALANCE_BATCH_SIZE": 100,
}


def get_setting(name):
    """Return ``settings.<name>`` or the app default."""
    return getattr(settings, name, DEFAULTS[name])
