import hashlib
import json
import logging

from django.db import IntegrityError, transaction
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .conf import get_setting
from .dispatch import process_webhook_event
from .middleware import verify_shopify_hmac
from .models import WebhookEvent
from .router import ORDER_TOPICS

logger = logging.getLogger(__name__)


class BaseShopifyWebhookView(APIView):
    """Base view for all Shopify webhook endpoints.

    Handles HMAC verification, idempotency, and event recording, then runs
    the registered topic handler inline. Once a request is authenticated
    the response is always an empty 200: Shopify redelivers on anything
    else, and a redelivered order must go through the idempotency checks
    rather than be retried blindly. Concrete subclasses define
    ``allowed_topics``.
    """

    authentication_classes = []
    permission_classes = [AllowAny]
    allowed_topics = frozenset()

    def post(self, request):
        # 1. Extract shop domain
        shop_domain = request.META.get("HTTP_X_SHOPIFY_SHOP_DOMAIN")
        if not shop_domain:
            return Response(
                {"error": "Missing X-Shopify-Shop-Domain header"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        # 2. Verify HMAC signature with the app secret
        raw_body = request.body
        hmac_header = request.META.get("HTTP_X_SHOPIFY_HMAC_SHA256", "")
        if not verify_shopify_hmac(
            raw_body, hmac_header, get_setting("SHOPIFY_API_SECRET")
        ):
            logger.warning("HMAC verification failed for %s", shop_domain)
            return Response(
                {"error": "HMAC verification failed"},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        # 3. Extract topic and webhook ID
        topic = request.META.get("HTTP_X_SHOPIFY_TOPIC", "")
        webhook_id = request.META.get("HTTP_X_SHOPIFY_WEBHOOK_ID", "")

        if not webhook_id:
            return Response(
                {"error": "Missing X-Shopify-Webhook-Id header"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        # 4. Validate topic matches this endpoint
        if self.allowed_topics and topic not in self.allowed_topics:
            logger.warning(
                "Topic %s not allowed for %s", topic, self.__class__.__name__
            )
            return Response(
                {"error": f"Topic '{topic}' not handled by this endpoint"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            self._handle(raw_body, shop_domain, topic, webhook_id)
        except Exception:
            logger.exception(
                "Error processing %s webhook %s for %s",
                topic,
                webhook_id,
                shop_domain,
            )
        return Response(status=status.HTTP_200_OK)

    def _handle(self, raw_body, shop_domain, topic, webhook_id):
        # Idempotency: the same delivery is acknowledged only once.
        if WebhookEvent.objects.filter(webhook_id=webhook_id).exists():
            logger.info("Duplicate webhook %s for %s", webhook_id, shop_domain)
            return

        payload = json.loads(raw_body)
        payload_hash = hashlib.sha256(raw_body).hexdigest()
        try:
            with transaction.atomic():
                event = WebhookEvent.objects.create(
                    webhook_id=webhook_id,
                    topic=topic,
                    shop_domain=shop_domain,
                    status=WebhookEvent.Status.RECEIVED,
                    payload_hash=payload_hash,
                )
        except IntegrityError:
            logger.info("Duplicate webhook %s for %s", webhook_id, shop_domain)
            return

        logger.info(
            "Recorded webhook event: topic=%s, webhook_id=%s, shop=%s",
            topic,
            webhook_id,
            shop_domain,
        )
        process_webhook_event(event, payload)


class ShopifyOrderWebhookView(BaseShopifyWebhookView):
    """Handles the orders/paid topic."""

    allowed_topics = ORDER_TOPICS
