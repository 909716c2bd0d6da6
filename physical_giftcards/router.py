import logging

logger = logging.getLogger(__name__)

# Topics accepted by the order webhook endpoint.
ORDER_TOPICS = frozenset(
    {
        "orders/paid",
    }
)

# Registry mapping Shopify topic strings to handler callables.
# Handlers register themselves at import time; the app's ready() imports
# the handler modules.
_topic_handlers = {}


def register_handler(topic, handler):
    """Register a handler callable for a Shopify webhook topic."""
    _topic_handlers[topic] = handler
    logger.debug("Registered handler for topic: %s", topic)


def get_handler(topic):
    """Return the handler callable for the given topic, or None."""
    return _topic_handlers.get(topic)
