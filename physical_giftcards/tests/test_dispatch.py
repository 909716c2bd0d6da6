"""Tests for webhook event dispatch to topic handlers."""

import pytest

from physical_giftcards import router
from physical_giftcards.dispatch import process_webhook_event
from physical_giftcards.models import WebhookEvent

pytestmark = pytest.mark.django_db


def _event(topic="orders/paid", webhook_id="wh_1"):
    return WebhookEvent.objects.create(
        webhook_id=webhook_id,
        topic=topic,
        shop_domain="test-shop.myshopify.com",
        payload_hash="0" * 64,
    )


@pytest.fixture
def statsd(mocker):
    return mocker.patch("physical_giftcards.dispatch.statsd")


class TestProcessWebhookEvent:
    def test_success_stores_status_and_timing(self, mocker, statsd):
        handler = mocker.Mock(return_value={"status": "complete"})
        mocker.patch.dict(router._topic_handlers, {"orders/paid": handler})
        event = _event()

        result = process_webhook_event(event, {"id": 1})

        assert result == {"status": "complete"}
        handler.assert_called_once_with(event, {"id": 1})
        event.refresh_from_db()
        assert event.status == WebhookEvent.Status.SUCCESS
        assert event.processing_time_ms is not None
        statsd.increment.assert_any_call(
            "shopify.webhook.processed",
            tags=[
                "topic:orders/paid",
                "shop_domain:test-shop.myshopify.com",
                "status:success",
            ],
        )

    def test_handler_error_is_stored_not_raised(self, mocker, statsd):
        handler = mocker.Mock(side_effect=ValueError("Missing order ID"))
        mocker.patch.dict(router._topic_handlers, {"orders/paid": handler})
        event = _event()

        assert process_webhook_event(event, {}) is None

        event.refresh_from_db()
        assert event.status == WebhookEvent.Status.FAILED
        assert event.error_message == "Missing order ID"
        assert any(
            c.args[0] == "shopify.webhook.failed" for c in statsd.increment.call_args_list
        )

    def test_no_handler_registered(self, statsd):
        event = _event(topic="orders/unknown")

        assert process_webhook_event(event, {}) is None

        event.refresh_from_db()
        assert event.status == WebhookEvent.Status.FAILED
        assert "No handler" in event.error_message

    def test_orders_paid_handler_registered_on_ready(self):
        from physical_giftcards.handlers.orders import handle_order_paid

        assert router.get_handler("orders/paid") is handle_order_paid
