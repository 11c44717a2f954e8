from django.apps import AppConfig


class FiscalExportsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "fiscalExports"
    verbose_name = "Fiscal exports"
