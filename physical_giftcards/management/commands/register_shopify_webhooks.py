"""
Register the Shopify webhook subscriptions the gift card app needs for a shop.

Usage:
    python manage.py register_shopify_webhooks \
        --shop example.myshopify.com --base-url https://giftcards.example.com

    # List current registrations
    python manage.py register_shopify_webhooks --shop example.myshopify.com --list

    # Remove all webhooks
    python manage.py register_shopify_webhooks --shop example.myshopify.com --delete-all
"""

import logging

import requests
from django.core.management.base import BaseCommand

from physical_giftcards.conf import get_setting
from physical_giftcards.models import ShopConfiguration
from physical_giftcards.router import ORDER_TOPICS

logger = logging.getLogger(__name__)

# Map each topic to its callback URL path.
TOPIC_ENDPOINT_MAP = {topic: "/webhooks/shopify/orders/" for topic in ORDER_TOPICS}

WEBHOOK_TOPICS = sorted(TOPIC_ENDPOINT_MAP)


class Command(BaseCommand):
    help = "Register Shopify webhook subscriptions for a shop"

    def add_arguments(self, parser):
        parser.add_argument(
            "--shop",
            type=str,
            required=True,
            help="The shop domain, e.g. example.myshopify.com.",
        )
        parser.add_argument(
            "--base-url",
            type=str,
            default="",
            help="Public base URL for webhook callbacks.",
        )
        parser.add_argument(
            "--list",
            action="store_true",
            dest="list_webhooks",
            help="List currently registered webhooks for this shop.",
        )
        parser.add_argument(
            "--delete-all",
            action="store_true",
            help="Delete all registered webhooks for this shop.",
        )

    def handle(self, *args, **options):
        shop = options["shop"]

        try:
            config = ShopConfiguration.objects.get(shop=shop, is_active=True)
        except ShopConfiguration.DoesNotExist:
            self.stderr.write(f"ERROR: No active ShopConfiguration for shop={shop}")
            return

        if not config.api_access_token:
            self.stderr.write(f"ERROR: {shop} has no Admin API access token")
            return

        if options["list_webhooks"]:
            self._list_webhooks(config)
            return

        if options["delete_all"]:
            self._delete_all_webhooks(config)
            return

        base_url = options["base_url"]
        if not base_url:
            self.stderr.write("ERROR: --base-url is required when registering webhooks.")
            return

        self._register_webhooks(config, base_url.rstrip("/"))

    # ------------------------------------------------------------------
    # Shopify Admin API helpers
    # ------------------------------------------------------------------

    def _api_url(self, config, path):
        return f"https://{config.shop}/admin/api/{config.api_version}/{path}"

    def _api_headers(self, config):
        return {
            "X-Shopify-Access-Token": config.api_access_token,
            "Content-Type": "application/json",
        }

    def _fetch_webhooks(self, config):
        """Return the shop's webhook subscriptions, or None on failure."""
        response = requests.get(
            self._api_url(config, "webhooks.json"),
            headers=self._api_headers(config),
            timeout=get_setting("SHOPIFY_REQUEST_TIMEOUT"),
        )
        if response.status_code != 200:
            self.stderr.write(
                f"ERROR: Failed to list webhooks "
                f"(HTTP {response.status_code}): {response.text}"
            )
            return None
        return response.json().get("webhooks", [])

    # ------------------------------------------------------------------
    # List
    # ------------------------------------------------------------------

    def _list_webhooks(self, config):
        webhooks = self._fetch_webhooks(config)
        if webhooks is None:
            return
        if not webhooks:
            self.stdout.write(f"No webhooks registered for {config.shop}")
            return

        self.stdout.write(f"Webhooks for {config.shop}:")
        self.stdout.write(f"{'ID':<15} {'Topic':<30} {'Address'}")
        self.stdout.write("-" * 80)
        for wh in webhooks:
            self.stdout.write(f"{wh['id']:<15} {wh['topic']:<30} {wh.get('address', '')}")
        self.stdout.write(f"\nTotal: {len(webhooks)}")

    # ------------------------------------------------------------------
    # Delete all
    # ------------------------------------------------------------------

    def _delete_all_webhooks(self, config):
        webhooks = self._fetch_webhooks(config)
        if webhooks is None:
            return
        if not webhooks:
            self.stdout.write(f"No webhooks to delete for {config.shop}")
            return

        deleted = 0
        for wh in webhooks:
            response = requests.delete(
                self._api_url(config, f"webhooks/{wh['id']}.json"),
                headers=self._api_headers(config),
                timeout=get_setting("SHOPIFY_REQUEST_TIMEOUT"),
            )
            if response.status_code == 200:
                self.stdout.write(f"  Deleted webhook {wh['id']} ({wh['topic']})")
                deleted += 1
            else:
                self.stdout.write(
                    f"  FAILED to delete webhook {wh['id']} "
                    f"(HTTP {response.status_code}): {response.text}"
                )

        self.stdout.write(f"\nDeleted {deleted}/{len(webhooks)} webhooks")

    # ------------------------------------------------------------------
    # Register
    # ------------------------------------------------------------------

    def _register_webhooks(self, config, base_url):
        """Register every topic, skipping any that already exist."""
        existing_topics = {wh["topic"] for wh in self._fetch_webhooks(config) or []}

        created = skipped = failed = 0
        for topic in WEBHOOK_TOPICS:
            callback_url = f"{base_url}{TOPIC_ENDPOINT_MAP[topic]}"

            if topic in existing_topics:
                self.stdout.write(f"  SKIP: {topic} (already registered)")
                skipped += 1
                continue

            response = requests.post(
                self._api_url(config, "webhooks.json"),
                json={
                    "webhook": {
                        "topic": topic,
                        "address": callback_url,
                        "format": "json",
                    }
                },
                headers=self._api_headers(config),
                timeout=get_setting("SHOPIFY_REQUEST_TIMEOUT"),
            )

            if response.status_code in (200, 201):
                wh_data = response.json().get("webhook", {})
                self.stdout.write(
                    f"  SUCCESS: {topic} → {callback_url} "
                    f"(id={wh_data.get('id', '?')})"
                )
                created += 1
            elif response.status_code == 422:
                # Shopify returns 422 when the webhook already exists.
                self.stdout.write(f"  SKIP: {topic} (already exists per Shopify)")
                skipped += 1
            else:
                self.stdout.write(
                    f"  FAILED: {topic} (HTTP {response.status_code}): {response.text}"
                )
                failed += 1

        logger.info(
            "Webhook registration for %s: %d created, %d skipped, %d failed",
            config.shop,
            created,
            skipped,
            failed,
        )
        self.stdout.write(
            f"\nDone: {created} created, {skipped} skipped, {failed} failed "
            f"(shop={config.shop})"
        )
