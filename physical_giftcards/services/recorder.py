"""Persistence of created gift cards and the read side built on it.

A failure to record never undoes or hides issuance: the card already exists
in Shopify, so write errors are logged and the caller carries on.
"""

import json
import logging
import math
from decimal import Decimal

import requests
from django.db import DatabaseError, transaction
from django.db.models import Count, Sum
from django.utils import timezone

from ..conf import get_setting
from ..models import GiftCardRecord, OrderIssuance
from ..utils import format_gift_card_code, mask_code
from .shopify_client import ShopifyAPIError

logger = logging.getLogger(__name__)

CREATED_CODES_KEY = "created_codes"
NOTE_SECTION_HEADER = "--- Physical Gift Cards ---"


# ---------------------------------------------------------------------------
# Write side
# ---------------------------------------------------------------------------

def record_gift_card(shop, order, line_item, unit_index, card, value, currency_code):
    """Persist one created gift card.

    Args:
        shop: Shop domain.
        order: Order context dict from
            :func:`~physical_giftcards.services.issuance.build_order_context`.
        line_item: The matched webhook line item.
        unit_index: 0-based unit within the line item.
        card: ``{"id", "code", "masked_code"}`` from the issuer.
        value: Per-unit ``Decimal`` value.
        currency_code: Shop currency.

    Returns:
        GiftCardRecord or ``None`` when the write failed.
    """
    try:
        with transaction.atomic():
            return GiftCardRecord.objects.create(
                shop=shop,
                order_id=order["id"],
                order_name=order["name"],
                line_item_id=line_item["gid"],
                unit_index=unit_index,
                product_title=line_item.get("title") or "",
                gift_card_id=card["id"],
                gift_card_code=card["code"],
                masked_code=card.get("masked_code") or "",
                value=value,
                currency_code=currency_code,
                customer_id=order["customer_id"],
                customer_name=order["customer_name"],
                customer_email=order["customer_email"],
            )
    except DatabaseError:
        logger.exception(
            "Failed to record gift card %s (%s) for order %s; "
            "the card exists in Shopify",
            card["id"],
            mask_code(card["code"]),
            order["name"],
        )
        return None


def finish_order(issuance, issued_count):
    """Store the outcome counts and final status on the order's issuance row."""
    issuance.issued_count = issued_count
    issuance.failed_count = max(0, issuance.requested_count - issued_count)
    if issuance.failed_count == 0:
        issuance.status = OrderIssuance.Status.COMPLETE
    elif issued_count > 0:
        issuance.status = OrderIssuance.Status.PARTIAL
    else:
        issuance.status = OrderIssuance.Status.FAILED
    try:
        issuance.save(
            update_fields=[
                "issued_count",
                "failed_count",
                "status",
                "updated_at",
            ]
        )
    except DatabaseError:
        logger.exception(
            "Failed to store issuance outcome for order %s", issuance.order_id
        )
    return issuance.status


def build_order_note(existing_note, created_cards, currency_code):
    """Append a human-readable gift card section to the order note."""
    blocks = [
        "Gift Card #{}: {}\nProduct: {}\nValue: {} {}".format(
            index,
            format_gift_card_code(card["code"]),
            card["product_title"],
            card["value"],
            currency_code,
        )
        for index, card in enumerate(created_cards, start=1)
    ]
    section = "\n\n{}\n{}".format(NOTE_SECTION_HEADER, "\n\n".join(blocks))
    return (existing_note or "") + section


def _parse_annotation(raw):
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring unreadable %s order metafield", CREATED_CODES_KEY)
        return []
    return value if isinstance(value, list) else []


def annotate_order(client, order, created_cards, currency_code):
    """Mirror created cards onto the Shopify order.

    Appends to the JSON list in the ``created_codes`` order metafield and
    appends a section to the order note. Failures are logged only.

    Args:
        created_cards: Dicts with ``code``, ``masked_code``, ``gift_card_id``,
            ``value`` and ``product_title``, in creation order.

    Returns:
        bool: ``True`` if both writes succeeded.
    """
    if not created_cards:
        return False
    annotation = [
        {
            "code": card["code"],
            "value": str(card["value"]),
            "maskedCode": card["masked_code"],
            "giftCardId": card["gift_card_id"],
            "productTitle": card["product_title"],
        }
        for card in created_cards
    ]
    try:
        existing = _parse_annotation(
            client.read_order_annotation(order["id"], CREATED_CODES_KEY)
        )
        client.write_order_annotation(
            order["id"], CREATED_CODES_KEY, existing + annotation
        )
        client.update_order_note(
            order["id"],
            build_order_note(order.get("note"), created_cards, currency_code),
        )
    except (ShopifyAPIError, requests.RequestException):
        logger.warning(
            "Failed to annotate order %s with %d gift cards",
            order["name"],
            len(created_cards),
            exc_info=True,
        )
        return False
    return True


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------

def _record_to_dict(record, balance=None):
    return {
        "id": record.id,
        "gift_card_id": record.gift_card_id,
        "gift_card_code": format_gift_card_code(record.gift_card_code),
        "masked_code": record.masked_code,
        "product_title": record.product_title,
        "value": record.value,
        "current_balance": balance if balance is not None else record.value,
        "currency_code": record.currency_code,
        "printed_at": record.printed_at,
        "created_at": record.created_at,
    }


def group_records_by_order(records, balances=None):
    """Group records (most recent first) into per-order dicts, keeping order."""
    balances = balances or {}
    orders = {}
    for record in records:
        entry = orders.get(record.order_id)
        if entry is None:
            entry = orders[record.order_id] = {
                "order_id": record.order_id,
                "order_name": record.order_name,
                "customer_name": record.customer_name,
                "customer_email": record.customer_email,
                "gift_cards": [],
                "total_value": Decimal("0"),
                "created_at": record.created_at,
            }
        entry["gift_cards"].append(
            _record_to_dict(record, balances.get(record.gift_card_id))
        )
        entry["total_value"] += record.value
    return list(orders.values())


def list_orders(shop, page=1, balance_lookup=None):
    """List the shop's gift card orders, most recent first, paginated by order.

    Args:
        balance_lookup: Optional callable ``ids -> {id: Decimal}`` used for
            current balances; when it fails the initial value is shown.
    """
    per_page = get_setting("GIFTCARD_ORDERS_PER_PAGE")
    page = max(1, int(page))

    records = list(
        GiftCardRecord.objects.filter(shop=shop).order_by("-created_at", "-id")
    )
    all_orders = group_records_by_order(records)
    total_orders = len(all_orders)
    start = (page - 1) * per_page
    orders = all_orders[start:start + per_page]

    if balance_lookup is not None and orders:
        ids = [gc["gift_card_id"] for o in orders for gc in o["gift_cards"]]
        try:
            balances = balance_lookup(ids)
        except (ShopifyAPIError, requests.RequestException):
            logger.warning("Failed to fetch gift card balances for %s", shop, exc_info=True)
            balances = {}
        for order in orders:
            for gift_card in order["gift_cards"]:
                if gift_card["gift_card_id"] in balances:
                    gift_card["current_balance"] = balances[gift_card["gift_card_id"]]

    return {
        "orders": orders,
        "current_page": page,
        "total_pages": math.ceil(total_orders / per_page),
        "total_orders": total_orders,
    }


def shop_summary(shop, recent=5):
    """Dashboard aggregates: card count, total value and recent orders."""
    records = GiftCardRecord.objects.filter(shop=shop)
    totals = records.aggregate(gift_card_count=Count("id"), total_value=Sum("value"))
    recent_orders = []
    for order in group_records_by_order(records.order_by("-created_at", "-id")):
        if len(recent_orders) >= recent:
            break
        recent_orders.append(
            {
                "order_id": order["order_id"],
                "order_name": order["order_name"],
                "total_value": order["total_value"],
                "created_at": order["created_at"],
                "product_titles": sorted(
                    {gc["product_title"] or "Gift Card" for gc in order["gift_cards"]}
                ),
            }
        )
    return {
        "gift_card_count": totals["gift_card_count"],
        "total_value": totals["total_value"] or Decimal("0"),
        "recent_orders": recent_orders,
    }


def mark_printed(shop, record_id):
    """Stamp the physical card as printed.

    Raises:
        GiftCardRecord.DoesNotExist: no such record for this shop.
    """
    record = GiftCardRecord.objects.get(pk=record_id, shop=shop)
    record.printed_at = timezone.now()
    record.save(update_fields=["printed_at"])
    return record


def unmark_printed(shop, record_id):
    record = GiftCardRecord.objects.get(pk=record_id, shop=shop)
    record.printed_at = None
    record.save(update_fields=["printed_at"])
    return record
