"""Shopify Admin API client for the operations the gift card app needs.

Everything goes through the GraphQL Admin API except webhook subscription
management, which the management command does over REST. Each call is a
blocking round trip bounded by ``SHOPIFY_REQUEST_TIMEOUT``.
"""

import json
import logging
from decimal import Decimal

import requests

from ..conf import get_setting

logger = logging.getLogger(__name__)

ANNOTATION_NAMESPACE = "$app:gift_cards"

SHOP_CURRENCY_QUERY = """
query getShopCurrency {
  shop {
    currencyCode
  }
}
"""

GIFT_CARD_CREATE_MUTATION = """
mutation giftCardCreate($input: GiftCardCreateInput!) {
  giftCardCreate(input: $input) {
    giftCard {
      id
      maskedCode
      lastCharacters
      initialValue {
        amount
      }
    }
    giftCardCode
    userErrors {
      field
      message
    }
  }
}
"""

GIFT_CARD_UPDATE_MUTATION = """
mutation giftCardUpdate($id: ID!, $input: GiftCardUpdateInput!) {
  giftCardUpdate(id: $id, input: $input) {
    userErrors {
      field
      message
    }
  }
}
"""

GIFT_CARD_BALANCES_QUERY = """
query getGiftCardBalances($ids: [ID!]!) {
  nodes(ids: $ids) {
    ... on GiftCard {
      id
      balance {
        amount
      }
    }
  }
}
"""

ORDER_METAFIELD_QUERY = """
query getOrderMetafield($id: ID!, $namespace: String!, $key: String!) {
  order(id: $id) {
    metafield(namespace: $namespace, key: $key) {
      value
    }
  }
}
"""

METAFIELDS_SET_MUTATION = """
mutation setOrderMetafields($metafields: [MetafieldsSetInput!]!) {
  metafieldsSet(metafields: $metafields) {
    metafields {
      id
    }
    userErrors {
      field
      message
    }
  }
}
"""

ORDER_NOTE_UPDATE_MUTATION = """
mutation updateOrderNote($input: OrderInput!) {
  orderUpdate(input: $input) {
    order {
      id
    }
    userErrors {
      field
      message
    }
  }
}
"""

VARIANTS_QUERY = """
query getVariants($ids: [ID!]!) {
  nodes(ids: $ids) {
    ... on ProductVariant {
      id
      title
      price
      product {
        id
        title
        handle
      }
    }
  }
}
"""


class ShopifyAPIError(Exception):
    """A Shopify Admin API call failed or returned top-level errors."""


class GiftCardCreationError(ShopifyAPIError):
    """``giftCardCreate`` returned user errors or no card."""

    def __init__(self, message, user_errors=None):
        super().__init__(message)
        self.user_errors = user_errors or []


def _format_user_errors(user_errors):
    return "; ".join(
        "{}: {}".format(".".join(err.get("field") or []), err.get("message", ""))
        for err in user_errors
    )


class ShopifyAdminClient:
    """Thin GraphQL client bound to one shop's offline access token."""

    def __init__(self, shop, access_token, api_version, timeout=None, session=None):
        if not access_token:
            raise ShopifyAPIError(f"No Admin API access token for {shop}")
        self.shop = shop
        self.access_token = access_token
        self.api_version = api_version
        self.timeout = timeout or get_setting("SHOPIFY_REQUEST_TIMEOUT")
        self.session = session or requests.Session()
        self.graphql_url = (
            f"https://{shop}/admin/api/{api_version}/graphql.json"
        )

    @classmethod
    def for_configuration(cls, configuration):
        """Build a client from a :class:`ShopConfiguration`."""
        return cls(
            configuration.shop,
            configuration.api_access_token,
            configuration.api_version,
        )

    def _headers(self):
        return {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }

    def execute(self, query, variables=None):
        """Run a GraphQL document and return its ``data`` dict.

        Raises:
            requests.RequestException: transport failure, timeout or HTTP error.
            ShopifyAPIError: the response carries top-level ``errors``.
        """
        response = self.session.post(
            self.graphql_url,
            headers=self._headers(),
            json={"query": query, "variables": variables or {}},
            timeout=self.timeout,
        )
        response.raise_for_status()
        body = response.json()
        if body.get("errors"):
            raise ShopifyAPIError(
                f"GraphQL errors from {self.shop}: {json.dumps(body['errors'])[:500]}"
            )
        return body.get("data") or {}

    # ------------------------------------------------------------------
    # Shop
    # ------------------------------------------------------------------

    def get_shop_currency(self):
        data = self.execute(SHOP_CURRENCY_QUERY)
        return (data.get("shop") or {}).get("currencyCode") or get_setting(
            "GIFTCARD_DEFAULT_CURRENCY"
        )

    # ------------------------------------------------------------------
    # Gift cards
    # ------------------------------------------------------------------

    def create_gift_card(self, value, note, customer_id=None, notify=False):
        """Create one gift card.

        Shopify emails the card to the customer when it is created with a
        customer association, so ``customer_id`` is only sent when
        ``notify`` is set as well.

        Returns:
            dict: ``{"id", "code", "masked_code"}``. ``code`` is the full
            code; Shopify never returns it again.

        Raises:
            GiftCardCreationError: user errors, or no card/code returned.
        """
        card_input = {"initialValue": str(value), "note": note}
        if notify and customer_id:
            card_input["customerId"] = customer_id

        data = self.execute(GIFT_CARD_CREATE_MUTATION, {"input": card_input})
        result = data.get("giftCardCreate") or {}

        user_errors = result.get("userErrors") or []
        if user_errors:
            raise GiftCardCreationError(
                f"giftCardCreate rejected: {_format_user_errors(user_errors)}",
                user_errors,
            )

        gift_card = result.get("giftCard")
        code = result.get("giftCardCode")
        if not gift_card or not code:
            raise GiftCardCreationError("giftCardCreate returned no gift card")

        return {
            "id": gift_card["id"],
            "code": code,
            "masked_code": gift_card.get("maskedCode") or "",
        }

    def update_gift_card_note(self, gift_card_id, note):
        data = self.execute(
            GIFT_CARD_UPDATE_MUTATION, {"id": gift_card_id, "input": {"note": note}}
        )
        user_errors = (data.get("giftCardUpdate") or {}).get("userErrors") or []
        if user_errors:
            raise ShopifyAPIError(
                f"giftCardUpdate rejected: {_format_user_errors(user_errors)}"
            )

    def get_gift_card_balances(self, gift_card_ids):
        """Return ``{gift_card_id: Decimal balance}`` for the ids Shopify knows."""
        batch_size = get_setting("GIFTCARD_BALANCE_BATCH_SIZE")
        gift_card_ids = list(gift_card_ids)
        balances = {}
        for start in range(0, len(gift_card_ids), batch_size):
            batch = gift_card_ids[start:start + batch_size]
            data = self.execute(GIFT_CARD_BALANCES_QUERY, {"ids": batch})
            for node in data.get("nodes") or []:
                if node and node.get("id") and node.get("balance"):
                    balances[node["id"]] = Decimal(str(node["balance"]["amount"]))
        return balances

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def read_order_annotation(self, order_id, key):
        """Return the raw JSON string of an app order metafield, or ``None``."""
        data = self.execute(
            ORDER_METAFIELD_QUERY,
            {"id": order_id, "namespace": ANNOTATION_NAMESPACE, "key": key},
        )
        metafield = (data.get("order") or {}).get("metafield") or {}
        return metafield.get("value")

    def write_order_annotation(self, order_id, key, value):
        """Set a JSON metafield on the order under the app namespace."""
        data = self.execute(
            METAFIELDS_SET_MUTATION,
            {
                "metafields": [
                    {
                        "ownerId": order_id,
                        "namespace": ANNOTATION_NAMESPACE,
                        "key": key,
                        "type": "json",
                        "value": json.dumps(value),
                    }
                ]
            },
        )
        user_errors = (data.get("metafieldsSet") or {}).get("userErrors") or []
        if user_errors:
            raise ShopifyAPIError(
                f"metafieldsSet rejected: {_format_user_errors(user_errors)}"
            )

    def update_order_note(self, order_id, note):
        data = self.execute(
            ORDER_NOTE_UPDATE_MUTATION, {"input": {"id": order_id, "note": note}}
        )
        user_errors = (data.get("orderUpdate") or {}).get("userErrors") or []
        if user_errors:
            raise ShopifyAPIError(
                f"orderUpdate rejected: {_format_user_errors(user_errors)}"
            )

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def get_variants(self, variant_ids):
        """Return variant nodes (with their product) for display."""
        variant_ids = list(variant_ids)
        if not variant_ids:
            return []
        data = self.execute(VARIANTS_QUERY, {"ids": variant_ids})
        return [node for node in data.get("nodes") or [] if node and node.get("product")]
