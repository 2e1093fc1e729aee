from django.apps import AppConfig


class CraftPricingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "craftpricing"
    verbose_name = "Craft pricing"
