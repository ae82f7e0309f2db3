# storefront/shop/apps.py
from django.apps import AppConfig


class ShopConfig(AppConfig):
    name = "storefront.shop"
    label = "shop"
    verbose_name = "Shop"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        from storefront.shop import signals
        signals.connect_handlers()
