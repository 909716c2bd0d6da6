from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class ShopConfiguration(models.Model):
    """Per-shop connection and gift card settings. One record per shop."""

    shop = models.CharField(max_length=255, unique=True)
    api_access_token = models.TextField(blank=True, default="")
    api_version = models.CharField(max_length=10, default="2025-01")
    send_email_notification = models.BooleanField(default=True)
    printed_overhead = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal("0"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "giftcard_shop_configuration"

    def __str__(self):
        return self.shop


class TriggerVariant(models.Model):
    """A product variant that issues one gift card per purchased unit."""

    configuration = models.ForeignKey(
        ShopConfiguration,
        on_delete=models.CASCADE,
        related_name="trigger_variants",
    )
    variant_id = models.CharField(max_length=255)
    product_id = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "giftcard_trigger_variant"
        constraints = [
            models.UniqueConstraint(
                fields=["configuration", "variant_id"],
                name="unique_trigger_variant_per_shop",
            ),
        ]

    def __str__(self):
        return f"{self.variant_id} ({self.configuration_id})"


class GiftCardRecord(models.Model):
    """One gift card created for one purchased unit of a trigger variant.

    ``value`` is the amount assigned at creation and is never updated;
    redemption is tracked by Shopify, not here. ``gift_card_code`` is the
    full cash-equivalent code and must not be logged.
    """

    shop = models.CharField(max_length=255)
    order_id = models.CharField(max_length=255)
    order_name = models.CharField(max_length=255)
    line_item_id = models.CharField(max_length=255)
    unit_index = models.PositiveIntegerField(default=0)
    product_title = models.CharField(max_length=255, blank=True, default="")
    gift_card_id = models.CharField(max_length=255)
    gift_card_code = models.CharField(max_length=255)
    masked_code = models.CharField(max_length=255, blank=True, default="")
    value = models.DecimalField(max_digits=12, decimal_places=3)
    currency_code = models.CharField(max_length=3, default="USD")
    customer_id = models.CharField(max_length=255, null=True, blank=True)
    customer_name = models.CharField(max_length=255, null=True, blank=True)
    customer_email = models.CharField(max_length=255, null=True, blank=True)
    printed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "giftcard_record"
        indexes = [
            models.Index(fields=["shop", "created_at"], name="giftcard_rec_shop_idx"),
            models.Index(fields=["order_id"], name="giftcard_rec_order_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["shop", "order_id", "line_item_id", "unit_index"],
                name="unique_giftcard_per_unit",
            ),
        ]

    def __str__(self):
        return f"{self.order_name} #{self.unit_index + 1} ({self.gift_card_id})"


class OrderIssuance(models.Model):
    """Per-order processing outcome; also the claim that blocks redelivery."""

    class Status(models.TextChoices):
        PROCESSING = "processing"
        COMPLETE = "complete"
        PARTIAL = "partial"
        FAILED = "failed"

    shop = models.CharField(max_length=255)
    order_id = models.CharField(max_length=255)
    order_name = models.CharField(max_length=255, blank=True, default="")
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PROCESSING
    )
    requested_count = models.PositiveIntegerField(default=0)
    issued_count = models.PositiveIntegerField(default=0)
    failed_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "giftcard_order_issuance"
        constraints = [
            models.UniqueConstraint(
                fields=["shop", "order_id"], name="unique_issuance_per_order"
            ),
        ]

    def __str__(self):
        return f"{self.order_name or self.order_id} [{self.status}]"


class WebhookEvent(models.Model):
    """Audit log for idempotency and debugging. Every webhook received is recorded."""

    class Status(models.TextChoices):
        RECEIVED = "received"
        PROCESSING = "processing"
        SUCCESS = "success"
        FAILED = "failed"
        DUPLICATE = "duplicate"

    webhook_id = models.CharField(max_length=255)
    topic = models.CharField(max_length=100)
    shop_domain = models.CharField(max_length=255, db_index=True)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.RECEIVED
    )
    payload_hash = models.CharField(max_length=64)
    error_message = models.TextField(blank=True, default="")
    processing_time_ms = models.IntegerField(null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "giftcard_webhook_event"
        indexes = [
            models.Index(
                fields=["shop_domain", "topic", "created_at"],
                name="giftcard_evt_shop_idx",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["webhook_id"], name="unique_webhook_id"
            ),
        ]

    def __str__(self):
        return f"{self.topic} [{self.status}] ({self.webhook_id})"
