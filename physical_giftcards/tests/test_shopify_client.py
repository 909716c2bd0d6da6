"""Tests for the Shopify Admin API client (HTTP mocked at the session)."""

import json
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from physical_giftcards.services.shopify_client import (
    ANNOTATION_NAMESPACE,
    GiftCardCreationError,
    ShopifyAdminClient,
    ShopifyAPIError,
)

SHOP = "test-shop.myshopify.com"


def _response(data=None, errors=None, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    body = {"data": data}
    if errors:
        body["errors"] = errors
    response.json.return_value = body
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status_code}")
    return response


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session):
    return ShopifyAdminClient(SHOP, "shpat_test", "2025-01", timeout=3, session=session)


def _variables(session, call=-1):
    return session.post.call_args_list[call].kwargs["json"]["variables"]


class TestExecute:
    def test_posts_to_graphql_endpoint(self, client, session):
        session.post.return_value = _response({"shop": {"currencyCode": "EUR"}})

        assert client.get_shop_currency() == "EUR"

        args, kwargs = session.post.call_args
        assert args[0] == f"https://{SHOP}/admin/api/2025-01/graphql.json"
        assert kwargs["headers"]["X-Shopify-Access-Token"] == "shpat_test"
        assert kwargs["timeout"] == 3

    def test_top_level_errors_raise(self, client, session):
        session.post.return_value = _response(errors=[{"message": "Throttled"}])
        with pytest.raises(ShopifyAPIError, match="Throttled"):
            client.execute("query { shop { id } }")

    def test_http_error_propagates(self, client, session):
        session.post.return_value = _response(status_code=502)
        with pytest.raises(requests.HTTPError):
            client.execute("query { shop { id } }")

    def test_timeout_propagates(self, client, session):
        session.post.side_effect = requests.Timeout("timed out")
        with pytest.raises(requests.Timeout):
            client.execute("query { shop { id } }")

    def test_missing_token_rejected(self):
        with pytest.raises(ShopifyAPIError, match="access token"):
            ShopifyAdminClient(SHOP, "", "2025-01")

    def test_default_timeout_from_settings(self, settings):
        settings.SHOPIFY_REQUEST_TIMEOUT = 7
        assert ShopifyAdminClient(SHOP, "tok", "2025-01").timeout == 7

    def test_currency_falls_back_to_default(self, client, session):
        session.post.return_value = _response({"shop": {}})
        assert client.get_shop_currency() == "USD"


class TestCreateGiftCard:
    def _created(self):
        return _response(
            {
                "giftCardCreate": {
                    "giftCard": {
                        "id": "gid://shopify/GiftCard/1",
                        "maskedCode": "•••• •••• •••• wxyz",
                        "lastCharacters": "wxyz",
                        "initialValue": {"amount": "22.0"},
                    },
                    "giftCardCode": "abcd1234efghwxyz",
                    "userErrors": [],
                }
            }
        )

    def test_returns_id_code_and_masked_code(self, client, session):
        session.post.return_value = self._created()

        card = client.create_gift_card(Decimal("22.00"), "Order: #1")

        assert card == {
            "id": "gid://shopify/GiftCard/1",
            "code": "abcd1234efghwxyz",
            "masked_code": "•••• •••• •••• wxyz",
        }
        assert _variables(session) == {"input": {"initialValue": "22.00", "note": "Order: #1"}}

    def test_customer_attached_only_when_notifying(self, client, session):
        session.post.return_value = self._created()

        client.create_gift_card(Decimal("5"), "n", customer_id="gid://shopify/Customer/9", notify=True)
        assert _variables(session)["input"]["customerId"] == "gid://shopify/Customer/9"

        client.create_gift_card(Decimal("5"), "n", customer_id="gid://shopify/Customer/9", notify=False)
        assert "customerId" not in _variables(session)["input"]

    def test_guest_order_never_attaches_customer(self, client, session):
        session.post.return_value = self._created()
        client.create_gift_card(Decimal("5"), "n", customer_id=None, notify=True)
        assert "customerId" not in _variables(session)["input"]

    def test_user_errors_raise(self, client, session):
        session.post.return_value = _response(
            {
                "giftCardCreate": {
                    "giftCard": None,
                    "giftCardCode": None,
                    "userErrors": [{"field": ["input", "initialValue"], "message": "is invalid"}],
                }
            }
        )
        with pytest.raises(GiftCardCreationError) as excinfo:
            client.create_gift_card(Decimal("-1"), "n")
        assert "input.initialValue: is invalid" in str(excinfo.value)
        assert excinfo.value.user_errors[0]["message"] == "is invalid"

    def test_missing_code_raises(self, client, session):
        session.post.return_value = _response(
            {"giftCardCreate": {"giftCard": {"id": "gid://shopify/GiftCard/1"}, "userErrors": []}}
        )
        with pytest.raises(GiftCardCreationError, match="no gift card"):
            client.create_gift_card(Decimal("5"), "n")


class TestGiftCardUpdatesAndBalances:
    def test_update_note(self, client, session):
        session.post.return_value = _response({"giftCardUpdate": {"userErrors": []}})
        client.update_gift_card_note("gid://shopify/GiftCard/1", "Full Code: X")
        assert _variables(session) == {
            "id": "gid://shopify/GiftCard/1",
            "input": {"note": "Full Code: X"},
        }

    def test_update_note_user_errors(self, client, session):
        session.post.return_value = _response(
            {"giftCardUpdate": {"userErrors": [{"field": ["note"], "message": "too long"}]}}
        )
        with pytest.raises(ShopifyAPIError, match="too long"):
            client.update_gift_card_note("gid://shopify/GiftCard/1", "x")

    def test_balances_are_batched(self, client, session, settings):
        settings.GIFTCARD_BALANCE_BATCH_SIZE = 2
        ids = [f"gid://shopify/GiftCard/{n}" for n in range(1, 4)]
        session.post.side_effect = [
            _response({"nodes": [
                {"id": ids[0], "balance": {"amount": "10.0"}},
                {"id": ids[1], "balance": {"amount": "0.0"}},
            ]}),
            _response({"nodes": [None]}),
        ]

        balances = client.get_gift_card_balances(ids)

        assert balances == {ids[0]: Decimal("10.0"), ids[1]: Decimal("0.0")}
        assert session.post.call_count == 2
        assert _variables(session, 1) == {"ids": [ids[2]]}


class TestOrderAnnotation:
    def test_write_annotation_as_json_metafield(self, client, session):
        session.post.return_value = _response({"metafieldsSet": {"metafields": [], "userErrors": []}})

        client.write_order_annotation("gid://shopify/Order/1", "created_codes", [{"code": "abc"}])

        metafield = _variables(session)["metafields"][0]
        assert metafield["ownerId"] == "gid://shopify/Order/1"
        assert metafield["namespace"] == ANNOTATION_NAMESPACE
        assert metafield["type"] == "json"
        assert json.loads(metafield["value"]) == [{"code": "abc"}]

    def test_read_annotation(self, client, session):
        session.post.return_value = _response({"order": {"metafield": {"value": "[]"}}})
        assert client.read_order_annotation("gid://shopify/Order/1", "created_codes") == "[]"
        assert _variables(session)["namespace"] == ANNOTATION_NAMESPACE

    def test_read_missing_annotation(self, client, session):
        session.post.return_value = _response({"order": {"metafield": None}})
        assert client.read_order_annotation("gid://shopify/Order/1", "created_codes") is None

    def test_update_order_note_user_errors(self, client, session):
        session.post.return_value = _response(
            {"orderUpdate": {"order": None, "userErrors": [{"field": None, "message": "locked"}]}}
        )
        with pytest.raises(ShopifyAPIError, match="locked"):
            client.update_order_note("gid://shopify/Order/1", "note")


class TestVariants:
    def test_no_ids_no_request(self, client, session):
        assert client.get_variants([]) == []
        session.post.assert_not_called()

    def test_skips_unknown_nodes(self, client, session):
        node = {
            "id": "gid://shopify/ProductVariant/1",
            "title": "Default",
            "price": "25.00",
            "product": {"id": "gid://shopify/Product/1", "title": "Card", "handle": "card"},
        }
        session.post.return_value = _response({"nodes": [node, None, {"id": "x"}]})
        assert client.get_variants(["gid://shopify/ProductVariant/1"]) == [node]
