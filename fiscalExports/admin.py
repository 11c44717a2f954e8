"""Admin customizations for shops, fiscal configurations and reports."""
from django.contrib import admin, messages

from .models import FiscalConfiguration, Report, ReportStatus, Shop


class FiscalConfigurationInline(admin.StackedInline):
    model = FiscalConfiguration
    extra = 0
    can_delete = False
    fields = (
        ("company_name", "country"),
        ("currency", "vat_rate", "default_format", "sales_account"),
        ("code", "name"),
    )
    readonly_fields = ("code", "name")


@admin.register(Shop)
class ShopAdmin(admin.ModelAdmin):
    list_display = ("shopify_domain", "has_token", "report_count", "created_at")
    search_fields = ("shopify_domain",)
    readonly_fields = ("created_at",)
    inlines = [FiscalConfigurationInline]

    @admin.display(boolean=True, description="Token")
    def has_token(self, obj):
        return bool(obj.access_token)

    @admin.display(description="Reports")
    def report_count(self, obj):
        return obj.reports.count()


@admin.register(FiscalConfiguration)
class FiscalConfigurationAdmin(admin.ModelAdmin):
    """Per-shop company settings and the regime snapshot they export with."""
    list_display = ("shop", "company_name", "code", "currency", "vat_rate", "default_format", "updated_at")
    list_filter = ("code", "currency", "default_format")
    search_fields = ("shop__shopify_domain", "company_name")
    readonly_fields = ("updated_at",)

    fieldsets = (
        (None, {"fields": ("shop",)}),
        (
            "Company",
            {
                "fields": (
                    ("company_name", "country"),
                    ("currency", "vat_rate"),
                    ("default_format", "sales_account"),
                )
            },
        ),
        (
            "Fiscal regime",
            {
                "fields": (
                    ("code", "name"),
                    "description",
                    "countries",
                    ("file_format", "encoding", "separator"),
                    "required_columns",
                    "tax_rates",
                    "compatible_software",
                    "export_formats",
                    "notes",
                    "updated_at",
                )
            },
        ),
    )


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = (
        "file_name",
        "shop",
        "data_type",
        "format",
        "status",
        "row_count",
        "file_size",
        "created_at",
    )
    list_filter = ("status", "format", "data_type", "type")
    search_fields = ("file_name", "shop__shopify_domain", "error_message")
    date_hierarchy = "created_at"
    readonly_fields = ("id", "file_path", "file_size", "row_count", "created_at", "updated_at")
    ordering = ("-created_at",)

    actions = ["requeue_reports"]

    @admin.action(description="Queue selected reports for regeneration")
    def requeue_reports(self, request, queryset):
        count = 0
        for report in queryset.exclude(status=ReportStatus.PROCESSING):
            report.mark_pending()
            count += 1
        self.message_user(request, f"{count} report(s) queued.", messages.SUCCESS)
