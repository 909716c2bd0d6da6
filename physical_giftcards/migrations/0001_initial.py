# Generated manually for physical_giftcards app

from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ShopConfiguration",
            fields=[
                (
                    "id",
                    models.AutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("shop", models.CharField(max_length=255, unique=True)),
                ("api_access_token", models.TextField(blank=True, default="")),
                (
                    "api_version",
                    models.CharField(default="2025-01", max_length=10),
                ),
                ("send_email_notification", models.BooleanField(default=True)),
                (
                    "printed_overhead",
                    models.DecimalField(
                        decimal_places=3,
                        default=Decimal("0"),
                        max_digits=12,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0"))
                        ],
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "giftcard_shop_configuration",
            },
        ),
        migrations.CreateModel(
            name="TriggerVariant",
            fields=[
                (
                    "id",
                    models.AutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("variant_id", models.CharField(max_length=255)),
                (
                    "product_id",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "configuration",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="trigger_variants",
                        to="physical_giftcards.shopconfiguration",
                    ),
                ),
            ],
            options={
                "db_table": "giftcard_trigger_variant",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("configuration", "variant_id"),
                        name="unique_trigger_variant_per_shop",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="GiftCardRecord",
            fields=[
                (
                    "id",
                    models.AutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("shop", models.CharField(max_length=255)),
                ("order_id", models.CharField(max_length=255)),
                ("order_name", models.CharField(max_length=255)),
                ("line_item_id", models.CharField(max_length=255)),
                ("unit_index", models.PositiveIntegerField(default=0)),
                (
                    "product_title",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("gift_card_id", models.CharField(max_length=255)),
                ("gift_card_code", models.CharField(max_length=255)),
                (
                    "masked_code",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("value", models.DecimalField(decimal_places=3, max_digits=12)),
                ("currency_code", models.CharField(default="USD", max_length=3)),
                (
                    "customer_id",
                    models.CharField(blank=True, max_length=255, null=True),
                ),
                (
                    "customer_name",
                    models.CharField(blank=True, max_length=255, null=True),
                ),
                (
                    "customer_email",
                    models.CharField(blank=True, max_length=255, null=True),
                ),
                ("printed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "giftcard_record",
                "indexes": [
                    models.Index(
                        fields=["shop", "created_at"],
                        name="giftcard_rec_shop_idx",
                    ),
                    models.Index(
                        fields=["order_id"],
                        name="giftcard_rec_order_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("shop", "order_id", "line_item_id", "unit_index"),
                        name="unique_giftcard_per_unit",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderIssuance",
            fields=[
                (
                    "id",
                    models.AutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("shop", models.CharField(max_length=255)),
                ("order_id", models.CharField(max_length=255)),
                (
                    "order_name",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("processing", "Processing"),
                            ("complete", "Complete"),
                            ("partial", "Partial"),
                            ("failed", "Failed"),
                        ],
                        default="processing",
                        max_length=20,
                    ),
                ),
                ("requested_count", models.PositiveIntegerField(default=0)),
                ("issued_count", models.PositiveIntegerField(default=0)),
                ("failed_count", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "giftcard_order_issuance",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("shop", "order_id"),
                        name="unique_issuance_per_order",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                (
                    "id",
                    models.AutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("webhook_id", models.CharField(max_length=255)),
                ("topic", models.CharField(max_length=100)),
                ("shop_domain", models.CharField(db_index=True, max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("received", "Received"),
                            ("processing", "Processing"),
                            ("success", "Success"),
                            ("failed", "Failed"),
                            ("duplicate", "Duplicate"),
                        ],
                        default="received",
                        max_length=20,
                    ),
                ),
                ("payload_hash", models.CharField(max_length=64)),
                ("error_message", models.TextField(blank=True, default="")),
                ("processing_time_ms", models.IntegerField(null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "giftcard_webhook_event",
                "indexes": [
                    models.Index(
                        fields=["shop_domain", "topic", "created_at"],
                        name="giftcard_evt_shop_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("webhook_id",),
                        name="unique_webhook_id",
                    ),
                ],
            },
        ),
    ]
