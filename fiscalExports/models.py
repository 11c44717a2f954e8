# fiscalExports/models.py

import copy
import json
import uuid
from typing import Any

from django.db import models
from django.utils import timezone


def _report_id() -> str:
    return uuid.uuid4().hex


def coerce_list(value: Any) -> list:
    """Return list-valued settings regardless of how they were stored.

    Older rows stored lists as JSON strings or comma-separated text.
    """
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(parsed, list):
            return parsed
        return [parsed]
    return []


def coerce_mapping(value: Any) -> dict:
    if not value:
        return {}
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


class ExportFormat(models.TextChoices):
    CSV = "CSV", "CSV"
    XLSX = "XLSX", "Excel (XLSX)"
    JSON = "JSON", "JSON"
    XML = "XML", "XML"


class ReportFormat(models.TextChoices):
    CSV = "CSV", "CSV"
    XLSX = "XLSX", "Excel (XLSX)"
    JSON = "JSON", "JSON"
    XML = "XML", "XML"
    TXT = "TXT", "Text (TXT)"


class ReportStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PROCESSING = "PROCESSING", "Processing"
    COMPLETED = "COMPLETED", "Completed"
    COMPLETED_WITH_EMPTY_DATA = "COMPLETED_WITH_EMPTY_DATA", "Completed (no data)"
    ERROR = "ERROR", "Error"


DOWNLOADABLE_STATUSES = (ReportStatus.COMPLETED, ReportStatus.COMPLETED_WITH_EMPTY_DATA)


class Shop(models.Model):
    id = models.CharField(max_length=255, primary_key=True)
    shopify_domain = models.CharField(max_length=255, unique=True)
    access_token = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["shopify_domain"]

    def __str__(self):
        return self.shopify_domain


def get_or_create_shop(domain: str, access_token: str = "") -> Shop:
    """Return the shop for ``domain``, creating it on first visit."""

    shop, created = Shop.objects.get_or_create(
        shopify_domain=domain,
        defaults={"id": domain, "access_token": access_token or ""},
    )
    if not created and access_token and not shop.access_token:
        shop.access_token = access_token
        shop.save(update_fields=["access_token"])
    return shop


class FiscalConfiguration(models.Model):
    """Company settings plus a snapshot of the selected fiscal regime preset."""

    REGIME_FIELDS = {
        "code": "code",
        "name": "name",
        "description": "description",
        "countries": "countries",
        "fileFormat": "file_format",
        "encoding": "encoding",
        "separator": "separator",
        "requiredColumns": "required_columns",
        "taxRates": "tax_rates",
        "compatibleSoftware": "compatible_software",
        "exportFormats": "export_formats",
        "notes": "notes",
    }

    shop = models.OneToOneField(Shop, on_delete=models.CASCADE, related_name="fiscal_config")

    # company settings
    company_name = models.CharField(max_length=255, blank=True)
    country = models.CharField(max_length=100, blank=True)
    currency = models.CharField(max_length=3, default="EUR")
    vat_rate = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    default_format = models.CharField(max_length=10, choices=ExportFormat.choices, default=ExportFormat.CSV)
    sales_account = models.CharField(max_length=32, default="701")

    # regime snapshot
    code = models.CharField(max_length=50)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    countries = models.JSONField(default=list, blank=True)
    file_format = models.CharField(max_length=100, blank=True)
    encoding = models.CharField(max_length=50, default="UTF-8")
    separator = models.CharField(max_length=10, default=",")
    required_columns = models.JSONField(default=list, blank=True)
    tax_rates = models.JSONField(default=dict, blank=True)
    compatible_software = models.JSONField(default=list, blank=True)
    export_formats = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.shop_id} ({self.code})"

    def apply_regime(self, regime: dict) -> None:
        """Copy every preset field onto this configuration."""
        for source, target in self.REGIME_FIELDS.items():
            value = regime.get(source)
            if value is None:
                continue
            setattr(self, target, copy.deepcopy(value))

    def normalize_lists(self) -> "FiscalConfiguration":
        self.countries = coerce_list(self.countries)
        self.required_columns = coerce_list(self.required_columns)
        self.compatible_software = coerce_list(self.compatible_software)
        self.export_formats = coerce_list(self.export_formats)
        self.tax_rates = coerce_mapping(self.tax_rates)
        return self


class Report(models.Model):
    TYPE_CHOICES = [
        ("manual", "Manual"),
        ("scheduled", "Scheduled"),
    ]
    DATA_TYPE_CHOICES = [
        ("refunds", "Refunds"),
        ("refund_transactions", "Refund transactions"),
    ]

    id = models.CharField(max_length=32, primary_key=True, default=_report_id, editable=False)
    shop = models.ForeignKey(Shop, on_delete=models.CASCADE, related_name="reports")
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default="manual")
    data_type = models.CharField(max_length=50, choices=DATA_TYPE_CHOICES, default="refunds")
    format = models.CharField(max_length=10, choices=ReportFormat.choices, default=ReportFormat.CSV)
    status = models.CharField(max_length=32, choices=ReportStatus.choices, default=ReportStatus.PENDING)
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)
    file_name = models.CharField(max_length=255)
    file_path = models.CharField(max_length=500, blank=True)
    file_size = models.PositiveIntegerField(default=0)
    row_count = models.PositiveIntegerField(default=0)
    error_message = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=["shop", "status"], name="fiscalexp_report_shop_status"),
            models.Index(fields=["created_at"], name="fiscalexp_report_created"),
        ]

    def __str__(self):
        return f"{self.file_name} ({self.get_status_display()})"

    @property
    def is_downloadable(self) -> bool:
        return self.status in DOWNLOADABLE_STATUSES

    def mark_pending(self) -> None:
        self.status = ReportStatus.PENDING
        self.error_message = None
        self.save(update_fields=["status", "error_message", "updated_at"])
