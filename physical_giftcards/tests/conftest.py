import copy
from unittest.mock import MagicMock

import pytest

from physical_giftcards.models import ShopConfiguration, TriggerVariant

SHOP_DOMAIN = "test-shop.myshopify.com"
GIFT_CARD_VARIANT = "gid://shopify/ProductVariant/111"
OTHER_VARIANT = "gid://shopify/ProductVariant/222"

SAMPLE_ORDER_PAYLOAD = {
    "id": 820982911946154508,
    "admin_graphql_api_id": "gid://shopify/Order/820982911946154508",
    "name": "#1001",
    "email": "jon@example.com",
    "note": "Leave at the door",
    "customer": {
        "id": 115310627314723954,
        "admin_graphql_api_id": "gid://shopify/Customer/115310627314723954",
        "email": "jon@example.com",
        "first_name": "Jon",
        "last_name": "Snow",
    },
    "line_items": [
        {
            "id": 866550311766439020,
            "admin_graphql_api_id": "gid://shopify/LineItem/866550311766439020",
            "product_id": 632910392,
            "variant_id": 111,
            "quantity": 2,
            "price": "25.00",
            "title": "Printed Gift Card",
        },
        {
            "id": 141249953214522974,
            "admin_graphql_api_id": "gid://shopify/LineItem/141249953214522974",
            "product_id": 632910393,
            "variant_id": 222,
            "quantity": 1,
            "price": "199.00",
            "title": "IPod Nano",
        },
    ],
}


@pytest.fixture
def order_payload():
    return copy.deepcopy(SAMPLE_ORDER_PAYLOAD)


@pytest.fixture
def configuration(db):
    return ShopConfiguration.objects.create(
        shop=SHOP_DOMAIN,
        api_access_token="shpat_test",
        api_version="2025-01",
    )


@pytest.fixture
def trigger_configuration(configuration):
    """Configuration with the gift card variant as its only trigger."""
    TriggerVariant.objects.create(
        configuration=configuration,
        variant_id=GIFT_CARD_VARIANT,
        product_id="gid://shopify/Product/632910392",
    )
    return configuration


def make_card(n):
    return {
        "id": f"gid://shopify/GiftCard/{n}",
        "code": f"abcd{n:04d}efgh{n:04d}",
        "masked_code": f"•••• •••• •••• {n:04d}",
    }


@pytest.fixture
def admin_client_mock(mocker):
    """Patch the Admin API client used by the issuance pipeline."""
    client = MagicMock()
    client.get_shop_currency.return_value = "USD"
    client.read_order_annotation.return_value = None
    client.create_gift_card.side_effect = [make_card(n) for n in range(1, 20)]
    client_cls = mocker.patch("physical_giftcards.services.issuance.ShopifyAdminClient")
    client_cls.for_configuration.return_value = client
    return client
