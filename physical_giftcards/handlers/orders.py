import logging

from ..router import register_handler
from ..services.issuance import process_gift_card_order

logger = logging.getLogger(__name__)


def handle_order_paid(event, payload):
    """Handle orders/paid webhook: issue gift cards for trigger variants.

    Shopify sends the full order; the relevant subset is::

        {
            "id": 820982911946154508,
            "admin_graphql_api_id": "gid://shopify/Order/820982911946154508",
            "name": "#1001",
            "note": null,
            "customer": {"id": 115310627314723954, "email": "...", ...},
            "line_items": [
                {"id": 866550311766439020, "variant_id": 808950810,
                 "quantity": 2, "price": "25.00", "title": "Gift Card"}
            ]
        }
    """
    result = process_gift_card_order(event.shop_domain, payload)
    logger.info(
        "orders/paid %s for %s: %s (%d/%d gift cards)",
        payload.get("name") or payload.get("id"),
        event.shop_domain,
        result["status"],
        result["issued"],
        result["requested"],
    )
    return result


# ---------------------------------------------------------------------------
# Handler registration, called when this module is imported via apps.ready()
# ---------------------------------------------------------------------------
register_handler("orders/paid", handle_order_paid)
