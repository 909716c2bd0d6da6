"""Admin API behind the embedded app screens (settings, orders, dashboard).

Authentication is whatever the host project configures for DRF; these
views only require a staff user and take the shop as ``?shop=``.
"""

import json
import logging

import requests
from rest_framework import status
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from .conf import get_setting
from .models import GiftCardRecord
from .services import configuration as config_service
from .services import recorder
from .services.shopify_client import ShopifyAdminClient, ShopifyAPIError

logger = logging.getLogger(__name__)


def _client_or_none(configuration):
    if not configuration.api_access_token:
        return None
    return ShopifyAdminClient.for_configuration(configuration)


def _currency(client):
    if client is None:
        return get_setting("GIFTCARD_DEFAULT_CURRENCY")
    try:
        return client.get_shop_currency()
    except (ShopifyAPIError, requests.RequestException):
        logger.warning("Could not read shop currency for %s", client.shop, exc_info=True)
        return get_setting("GIFTCARD_DEFAULT_CURRENCY")


def _products_for(configuration, client):
    """Group the configured trigger variants by product for display."""
    trigger_variants = list(configuration.trigger_variants.order_by("created_at", "id"))
    nodes = {}
    if client is not None and trigger_variants:
        try:
            nodes = {
                node["id"]: node
                for node in client.get_variants(tv.variant_id for tv in trigger_variants)
            }
        except (ShopifyAPIError, requests.RequestException):
            logger.warning(
                "Could not load variant details for %s", configuration.shop, exc_info=True
            )

    products = {}
    for trigger_variant in trigger_variants:
        node = nodes.get(trigger_variant.variant_id) or {}
        product = node.get("product") or {}
        product_id = product.get("id") or trigger_variant.product_id or ""
        entry = products.setdefault(
            product_id,
            {
                "id": product_id,
                "title": product.get("title", ""),
                "handle": product.get("handle", ""),
                "variants": [],
            },
        )
        entry["variants"].append(
            {
                "id": trigger_variant.variant_id,
                "title": node.get("title", ""),
                "price": node.get("price"),
            }
        )
    return list(products.values())


class ShopScopedAPIView(APIView):
    permission_classes = [IsAdminUser]

    def get_shop(self, request):
        return request.query_params.get("shop") or request.data.get("shop")

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self.shop = self.get_shop(request)

    def missing_shop(self):
        return Response(
            {"error": "Missing shop parameter"}, status=status.HTTP_400_BAD_REQUEST
        )


class SettingsView(ShopScopedAPIView):
    """Read and change trigger variants, email notification and overhead."""

    def get(self, request):
        if not self.shop:
            return self.missing_shop()
        configuration = config_service.get_configuration(self.shop)
        client = _client_or_none(configuration)
        return Response(
            {
                "products": _products_for(configuration, client),
                "send_email_notification": configuration.send_email_notification,
                "printed_overhead": configuration.printed_overhead,
                "currency_code": _currency(client),
            }
        )

    def post(self, request):
        if not self.shop:
            return self.missing_shop()
        intent = request.data.get("intent")
        try:
            if intent == "addVariants":
                variants = _json_list(request.data.get("variants"))
                count = config_service.add_trigger_variants(self.shop, variants)
            elif intent == "removeVariant":
                count = config_service.remove_trigger_variant(
                    self.shop, request.data.get("variant_id")
                )
            elif intent == "removeProduct":
                variant_ids = _json_list(request.data.get("variant_ids"))
                count = config_service.remove_trigger_variants(self.shop, variant_ids)
            elif intent == "updateSettings":
                value = request.data.get("send_email_notification")
                enabled = value is True or str(value).lower() == "true"
                config_service.set_send_email_notification(self.shop, enabled)
                count = None
            elif intent == "updateOverhead":
                config_service.set_printed_overhead(
                    self.shop, request.data.get("printed_overhead")
                )
                count = None
            else:
                return Response(
                    {"success": False, "error": f"Unknown intent: {intent}"},
                    status=status.HTTP_400_BAD_REQUEST,
                )
        except ValueError as exc:
            return Response(
                {"success": False, "error": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        body = {"success": True, "action": intent}
        if count is not None:
            body["count"] = count
        return Response(body)


def _json_list(value):
    """Accept a list or a JSON-encoded list (form submissions)."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            raise ValueError("Expected a JSON list") from None
    if not isinstance(value, list):
        raise ValueError("Expected a list")
    return value


class OrdersView(ShopScopedAPIView):
    """Gift card orders grouped by order, with current balances."""

    def get(self, request):
        if not self.shop:
            return self.missing_shop()
        try:
            page = int(request.query_params.get("page", 1))
        except ValueError:
            page = 1
        configuration = config_service.get_configuration(self.shop)
        client = _client_or_none(configuration)
        result = recorder.list_orders(
            self.shop,
            page=page,
            balance_lookup=client.get_gift_card_balances if client else None,
        )
        result["currency_code"] = _currency(client)
        return Response(result)


class RecordPrintedView(ShopScopedAPIView):
    """POST marks a gift card as printed, DELETE clears the mark."""

    def post(self, request, record_id):
        return self._toggle(recorder.mark_printed, record_id, "markPrinted")

    def delete(self, request, record_id):
        return self._toggle(recorder.unmark_printed, record_id, "unmarkPrinted")

    def _toggle(self, operation, record_id, action):
        if not self.shop:
            return self.missing_shop()
        try:
            record = operation(self.shop, record_id)
        except GiftCardRecord.DoesNotExist:
            return Response(
                {"success": False, "error": "Gift card record not found"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(
            {"success": True, "action": action, "printed_at": record.printed_at}
        )


class SummaryView(ShopScopedAPIView):
    """Dashboard numbers for the shop."""

    def get(self, request):
        if not self.shop:
            return self.missing_shop()
        configuration = config_service.get_configuration(self.shop)
        summary = recorder.shop_summary(self.shop)
        summary["product_count"] = configuration.trigger_variants.count()
        summary["currency_code"] = _currency(_client_or_none(configuration))
        return Response(summary)
