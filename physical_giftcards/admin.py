from django import forms
from django.contrib import admin

from .models import (
    GiftCardRecord,
    OrderIssuance,
    ShopConfiguration,
    TriggerVariant,
    WebhookEvent,
)


class ShopConfigurationAdminForm(forms.ModelForm):
    """Token is write-only: never rendered back, kept when left blank."""

    api_access_token = forms.CharField(
        required=False,
        strip=True,
        widget=forms.PasswordInput(render_value=False),
        help_text="Offline Admin API token. Leave blank to keep the current one.",
    )

    class Meta:
        model = ShopConfiguration
        fields = "__all__"

    def clean_api_access_token(self):
        token = self.cleaned_data.get("api_access_token")
        if not token:
            return self.instance.api_access_token
        return token


class TriggerVariantInline(admin.TabularInline):
    model = TriggerVariant
    extra = 0
    readonly_fields = ("created_at",)


@admin.register(ShopConfiguration)
class ShopConfigurationAdmin(admin.ModelAdmin):
    list_display = (
        "shop",
        "send_email_notification",
        "printed_overhead",
        "is_active",
        "api_version",
        "updated_at",
    )
    list_filter = (
        "is_active",
        "send_email_notification",
    )
    search_fields = ("shop",)
    readonly_fields = ("created_at", "updated_at")
    form = ShopConfigurationAdminForm
    inlines = [TriggerVariantInline]


@admin.register(GiftCardRecord)
class GiftCardRecordAdmin(admin.ModelAdmin):
    list_display = (
        "order_name",
        "shop",
        "product_title",
        "masked_code",
        "value",
        "currency_code",
        "customer_email",
        "printed_at",
        "created_at",
    )
    list_filter = ("shop", "currency_code")
    search_fields = (
        "order_name",
        "order_id",
        "gift_card_id",
        "customer_email",
    )
    # The full code stays out of list views.
    exclude = ("gift_card_code",)
    readonly_fields = (
        "shop",
        "order_id",
        "order_name",
        "line_item_id",
        "unit_index",
        "gift_card_id",
        "masked_code",
        "value",
        "currency_code",
        "created_at",
    )
    date_hierarchy = "created_at"
    ordering = ("-created_at",)


@admin.register(OrderIssuance)
class OrderIssuanceAdmin(admin.ModelAdmin):
    list_display = (
        "order_name",
        "shop",
        "status",
        "requested_count",
        "issued_count",
        "failed_count",
        "updated_at",
    )
    list_filter = ("status",)
    search_fields = ("order_name", "order_id", "shop")
    readonly_fields = ("created_at", "updated_at")
    ordering = ("-created_at",)


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = (
        "webhook_id",
        "topic",
        "shop_domain",
        "status",
        "processing_time_ms",
        "created_at",
    )
    list_filter = (
        "status",
        "topic",
    )
    search_fields = (
        "webhook_id",
        "shop_domain",
    )
    readonly_fields = ("payload_hash", "processing_time_ms")
    date_hierarchy = "created_at"
    ordering = ("-created_at",)
