from django.apps import AppConfig


class PhysicalGiftCardsConfig(AppConfig):
    name = "physical_giftcards"
    verbose_name = "Physical Gift Cards"
    default_auto_field = "django.db.models.AutoField"

    def ready(self):
        # Import handler modules to trigger topic registration in router.
        import physical_giftcards.handlers.orders  # noqa: F401
