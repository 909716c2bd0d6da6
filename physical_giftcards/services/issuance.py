"""Gift card issuance for paid orders.

Flow for one ``orders/paid`` delivery::

    already processed?  -> skip
    trigger variants    -> none configured: skip
    match line items    -> no match: skip
    claim the order     -> lost the claim: skip
    for each unit:      value -> giftCardCreate -> record
    finish the claim, annotate the order

A failing unit never stops the remaining units, and nothing here retries:
a redelivered order is blocked by the claim.
"""

import logging
from decimal import Decimal

import requests
from datadog import statsd
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..conf import get_setting
from ..models import GiftCardRecord, OrderIssuance
from ..utils import format_gift_card_code, mask_code, parse_money, quantize_money, to_shopify_gid
from .configuration import get_configuration, get_trigger_variant_ids
from .recorder import annotate_order, finish_order, record_gift_card
from .shopify_client import ShopifyAdminClient, ShopifyAPIError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------

def build_order_context(payload):
    """Extract the order fields the pipeline needs from a webhook payload.

    Raises:
        ValueError: if the payload has no order id.
    """
    if not payload.get("admin_graphql_api_id") and not payload.get("id"):
        raise ValueError("Missing order ID in orders/paid payload")
    order_id = payload.get("admin_graphql_api_id") or to_shopify_gid(
        "Order", payload["id"]
    )

    # Guests have no customer; a known customer may still have no name.
    customer = payload.get("customer") or {}
    customer_id = customer.get("admin_graphql_api_id")
    if not customer_id and customer.get("id"):
        customer_id = to_shopify_gid("Customer", customer["id"])
    customer_name = None
    if customer:
        customer_name = "{} {}".format(
            customer.get("first_name") or "", customer.get("last_name") or ""
        ).strip()

    return {
        "id": order_id,
        "name": payload.get("name") or str(payload.get("id", "")),
        "note": payload.get("note") or "",
        "customer_id": customer_id or None,
        "customer_name": customer_name,
        "customer_email": customer.get("email") or payload.get("email") or None,
    }


def unit_count(line_item):
    """Purchased quantity of a line item; anything unusable counts as 0."""
    try:
        return max(0, int(line_item.get("quantity") or 0))
    except (TypeError, ValueError):
        return 0


def match_line_items(line_items, trigger_variant_ids):
    """Return the line items whose variant is a trigger, in order.

    Each returned item is a copy carrying ``gid`` (line item GID) and
    ``variant_gid`` so downstream code does not re-derive them.
    """
    matched = []
    for line_item in line_items:
        variant_id = line_item.get("variant_id")
        if not variant_id:
            continue
        variant_gid = to_shopify_gid("ProductVariant", variant_id)
        if variant_gid not in trigger_variant_ids:
            continue
        matched.append(
            dict(
                line_item,
                gid=line_item.get("admin_graphql_api_id")
                or to_shopify_gid("LineItem", line_item.get("id")),
                variant_gid=variant_gid,
            )
        )
    return matched


def compute_unit_value(unit_price, printed_overhead, currency_code="USD"):
    """Gift card value for one unit: price minus overhead, floored at zero.

        >>> compute_unit_value("25.00", Decimal("3.00"))
        Decimal('22.00')
        >>> compute_unit_value("2.00", Decimal("5.00"))
        Decimal('0.00')
    """
    price = parse_money(unit_price)
    overhead = max(Decimal("0"), Decimal(printed_overhead or 0))
    return quantize_money(max(Decimal("0"), price - overhead), currency_code)


def build_gift_card_note(order_name, product_title, customer_name, customer_email,
                         value, currency_code, code=None):
    note = (
        f"Order: {order_name}\n"
        f"Product: {product_title}\n"
        f"Customer: {'Guest' if customer_name is None else customer_name}\n"
        f"Email: {customer_email or 'No email'}\n"
        f"Value: {value} {currency_code}"
    )
    if code:
        note += f"\n\nFull Code: {format_gift_card_code(code)}"
    return note


# ---------------------------------------------------------------------------
# Idempotency
# ---------------------------------------------------------------------------

def has_been_processed(shop, order_id):
    """True if gift cards were issued for this order or an issuance holds it.

    A ``failed`` issuance created no cards and does not count.
    """
    if GiftCardRecord.objects.filter(shop=shop, order_id=order_id).exists():
        return True
    return (
        OrderIssuance.objects.filter(shop=shop, order_id=order_id)
        .exclude(status=OrderIssuance.Status.FAILED)
        .exists()
    )


def claim_order(shop, order_id, order_name, requested_count):
    """Atomically take ownership of an order before any card is created.

    The unique ``(shop, order_id)`` constraint makes the insert the single
    point where concurrent deliveries are decided. A previous ``failed``
    issuance (zero cards) is taken over with a conditional update.

    Returns:
        OrderIssuance, or ``None`` if another delivery owns the order.
    """
    try:
        with transaction.atomic():
            return OrderIssuance.objects.create(
                shop=shop,
                order_id=order_id,
                order_name=order_name,
                requested_count=requested_count,
            )
    except IntegrityError:
        pass

    reclaimed = OrderIssuance.objects.filter(
        shop=shop,
        order_id=order_id,
        status=OrderIssuance.Status.FAILED,
        issued_count=0,
    ).update(
        status=OrderIssuance.Status.PROCESSING,
        order_name=order_name,
        requested_count=requested_count,
        failed_count=0,
        updated_at=timezone.now(),
    )
    if reclaimed:
        logger.info("Retrying previously failed order %s", order_name)
        return OrderIssuance.objects.get(shop=shop, order_id=order_id)
    return None


# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------

def _create_one(client, shop, order, line_item, unit_index, value, notify, currency_code):
    """Create the gift card for one unit; returns the card dict or ``None``."""
    tags = [f"shop_domain:{shop}"]
    try:
        card = client.create_gift_card(
            value,
            build_gift_card_note(
                order["name"],
                line_item.get("title"),
                order["customer_name"],
                order["customer_email"],
                value,
                currency_code,
            ),
            customer_id=order["customer_id"],
            notify=notify,
        )
    except (ShopifyAPIError, requests.RequestException) as exc:
        statsd.increment("giftcards.failed", tags=tags)
        logger.warning(
            "Failed to create gift card %d for line item %s of order %s: %s",
            unit_index + 1,
            line_item["gid"],
            order["name"],
            exc,
        )
        return None
    except Exception:
        statsd.increment("giftcards.failed", tags=tags)
        logger.exception(
            "Unexpected error creating gift card %d for line item %s of order %s",
            unit_index + 1,
            line_item["gid"],
            order["name"],
        )
        return None

    statsd.increment("giftcards.created", tags=tags)
    if notify and order["customer_id"]:
        logger.info(
            "Gift card %s created with customer association; Shopify notifies the customer",
            card["id"],
        )

    # The full code is only known now; put it on the card for staff.
    try:
        client.update_gift_card_note(
            card["id"],
            build_gift_card_note(
                order["name"],
                line_item.get("title"),
                order["customer_name"],
                order["customer_email"],
                value,
                currency_code,
                code=card["code"],
            ),
        )
    except (ShopifyAPIError, requests.RequestException):
        logger.warning(
            "Failed to add code %s to gift card %s note",
            mask_code(card["code"]),
            card["id"],
            exc_info=True,
        )
    return card


def issue_gift_cards(client, shop, order, line_items, printed_overhead, notify, currency_code):
    """Create and record one gift card per purchased unit.

    Runs sequentially in line-item order, then unit order. Yields a summary
    dict for each card Shopify created, whether or not it could be recorded.
    """
    for line_item in line_items:
        try:
            value = compute_unit_value(
                line_item.get("price"), printed_overhead, currency_code
            )
        except ValueError:
            statsd.increment(
                "giftcards.failed", unit_count(line_item), tags=[f"shop_domain:{shop}"]
            )
            logger.warning(
                "Skipping line item %s of order %s: invalid price %r",
                line_item["gid"],
                order["name"],
                line_item.get("price"),
            )
            continue

        for unit_index in range(unit_count(line_item)):
            card = _create_one(
                client, shop, order, line_item, unit_index, value, notify, currency_code
            )
            if card is None:
                continue
            record_gift_card(
                shop, order, line_item, unit_index, card, value, currency_code
            )
            yield {
                "gift_card_id": card["id"],
                "code": card["code"],
                "masked_code": card["masked_code"],
                "value": value,
                "product_title": line_item.get("title") or "",
                "line_item_id": line_item["gid"],
            }


def _shop_currency(client, shop):
    try:
        return client.get_shop_currency()
    except (ShopifyAPIError, requests.RequestException):
        currency_code = get_setting("GIFTCARD_DEFAULT_CURRENCY")
        logger.warning(
            "Could not read currency for %s, using %s", shop, currency_code, exc_info=True
        )
        return currency_code


def process_gift_card_order(shop, payload):
    """Issue gift cards for a paid order.

    Returns:
        dict: ``{"status", "requested", "issued"}``. ``status`` is one of
        ``duplicate``, ``not_configured``, ``no_match`` or the final
        :class:`OrderIssuance` status.
    """
    order = build_order_context(payload)

    if has_been_processed(shop, order["id"]):
        logger.info(
            "Order %s already processed, skipping duplicate webhook", order["name"]
        )
        return {"status": "duplicate", "requested": 0, "issued": 0}

    configuration = get_configuration(shop)
    trigger_variant_ids = get_trigger_variant_ids(configuration)
    if not trigger_variant_ids:
        logger.info("No gift card variants configured for %s", shop)
        return {"status": "not_configured", "requested": 0, "issued": 0}

    line_items = match_line_items(payload.get("line_items") or [], trigger_variant_ids)
    requested = sum(unit_count(line_item) for line_item in line_items)
    if requested == 0:
        logger.info("No gift card variants in order %s", order["name"])
        return {"status": "no_match", "requested": 0, "issued": 0}

    issuance = claim_order(shop, order["id"], order["name"], requested)
    if issuance is None:
        logger.info(
            "Order %s is being processed by another delivery, skipping", order["name"]
        )
        return {"status": "duplicate", "requested": 0, "issued": 0}

    created = []
    try:
        client = ShopifyAdminClient.for_configuration(configuration)
        currency_code = _shop_currency(client, shop)
        for card in issue_gift_cards(
            client,
            shop,
            order,
            line_items,
            configuration.printed_overhead,
            configuration.send_email_notification,
            currency_code,
        ):
            created.append(card)
    finally:
        status = finish_order(issuance, len(created))

    if created and get_setting("GIFTCARD_ANNOTATE_ORDERS"):
        annotate_order(client, order, created, currency_code)

    logger.info(
        "Created %d of %d gift cards for order %s (%s)",
        len(created),
        requested,
        order["name"],
        status,
    )
    return {"status": status, "requested": requested, "issued": len(created)}
