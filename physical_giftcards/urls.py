from django.urls import path

from .api_views import OrdersView, RecordPrintedView, SettingsView, SummaryView
from .views import ShopifyOrderWebhookView

webhook_urlpatterns = [
    path(
        "orders/",
        ShopifyOrderWebhookView.as_view(),
        name="shopify_order_webhook",
    ),
]

api_urlpatterns = [
    path("settings/", SettingsView.as_view(), name="giftcard_settings"),
    path("orders/", OrdersView.as_view(), name="giftcard_orders"),
    path(
        "records/<int:record_id>/printed/",
        RecordPrintedView.as_view(),
        name="giftcard_record_printed",
    ),
    path("summary/", SummaryView.as_view(), name="giftcard_summary"),
]

# Mount with e.g. path("webhooks/shopify/", include(webhook_urlpatterns)).
urlpatterns = webhook_urlpatterns
