import logging
import time

from datadog import statsd

from .router import get_handler

logger = logging.getLogger(__name__)


def process_webhook_event(event, payload):
    """Run the registered handler for a recorded webhook event.

    Runs inline in the request. Transitions the event to processing, calls
    the handler and records the outcome with elapsed time. Handler errors
    are logged and stored on the event, never re-raised: Shopify would
    redeliver on anything but a 2xx.

    Returns:
        The handler's return value, or ``None`` if it failed.
    """
    event.status = event.Status.PROCESSING
    event.save(update_fields=["status", "updated_at"])

    tags = [f"topic:{event.topic}", f"shop_domain:{event.shop_domain}"]
    statsd.increment("shopify.webhook.received", tags=tags)

    result = None
    start = time.monotonic()
    try:
        handler = get_handler(event.topic)
        if handler is None:
            logger.warning("No handler registered for topic: %s", event.topic)
            event.status = event.Status.FAILED
            event.error_message = f"No handler for topic: {event.topic}"
        else:
            result = handler(event, payload)
            event.status = event.Status.SUCCESS
    except Exception as exc:
        event.status = event.Status.FAILED
        event.error_message = str(exc)[:2000]
        logger.exception(
            "Failed to process webhook event %s (topic=%s)",
            event.webhook_id,
            event.topic,
        )
    finally:
        event.processing_time_ms = int((time.monotonic() - start) * 1000)
        event.save(
            update_fields=[
                "status",
                "error_message",
                "processing_time_ms",
                "updated_at",
            ]
        )
        result_tags = tags + [f"status:{event.status}"]
        if event.status == event.Status.SUCCESS:
            statsd.increment("shopify.webhook.processed", tags=result_tags)
        elif event.status == event.Status.FAILED:
            statsd.increment("shopify.webhook.failed", tags=result_tags)
        statsd.histogram(
            "shopify.webhook.processing_time_ms",
            event.processing_time_ms,
            tags=result_tags,
        )
    return result
