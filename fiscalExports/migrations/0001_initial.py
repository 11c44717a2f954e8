import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import fiscalExports.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Shop",
            fields=[
                ("id", models.CharField(max_length=255, primary_key=True, serialize=False)),
                ("shopify_domain", models.CharField(max_length=255, unique=True)),
                ("access_token", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "ordering": ["shopify_domain"],
            },
        ),
        migrations.CreateModel(
            name="FiscalConfiguration",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("company_name", models.CharField(blank=True, max_length=255)),
                ("country", models.CharField(blank=True, max_length=100)),
                ("currency", models.CharField(default="EUR", max_length=3)),
                ("vat_rate", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                (
                    "default_format",
                    models.CharField(
                        choices=[("CSV", "CSV"), ("XLSX", "Excel (XLSX)"), ("JSON", "JSON"), ("XML", "XML")],
                        default="CSV",
                        max_length=10,
                    ),
                ),
                ("sales_account", models.CharField(default="701", max_length=32)),
                ("code", models.CharField(max_length=50)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("countries", models.JSONField(blank=True, default=list)),
                ("file_format", models.CharField(blank=True, max_length=100)),
                ("encoding", models.CharField(default="UTF-8", max_length=50)),
                ("separator", models.CharField(default=",", max_length=10)),
                ("required_columns", models.JSONField(blank=True, default=list)),
                ("tax_rates", models.JSONField(blank=True, default=dict)),
                ("compatible_software", models.JSONField(blank=True, default=list)),
                ("export_formats", models.JSONField(blank=True, default=list)),
                ("notes", models.TextField(blank=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "shop",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="fiscal_config",
                        to="fiscalExports.shop",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="Report",
            fields=[
                (
                    "id",
                    models.CharField(
                        default=fiscalExports.models._report_id,
                        editable=False,
                        max_length=32,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "type",
                    models.CharField(
                        choices=[("manual", "Manual"), ("scheduled", "Scheduled")],
                        default="manual",
                        max_length=20,
                    ),
                ),
                (
                    "data_type",
                    models.CharField(
                        choices=[("refunds", "Refunds"), ("refund_transactions", "Refund transactions")],
                        default="refunds",
                        max_length=50,
                    ),
                ),
                (
                    "format",
                    models.CharField(
                        choices=[
                            ("CSV", "CSV"),
                            ("XLSX", "Excel (XLSX)"),
                            ("JSON", "JSON"),
                            ("XML", "XML"),
                            ("TXT", "Text (TXT)"),
                        ],
                        default="CSV",
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("PROCESSING", "Processing"),
                            ("COMPLETED", "Completed"),
                            ("COMPLETED_WITH_EMPTY_DATA", "Completed (no data)"),
                            ("ERROR", "Error"),
                        ],
                        default="PENDING",
                        max_length=32,
                    ),
                ),
                ("start_date", models.DateTimeField(blank=True, null=True)),
                ("end_date", models.DateTimeField(blank=True, null=True)),
                ("file_name", models.CharField(max_length=255)),
                ("file_path", models.CharField(blank=True, max_length=500)),
                ("file_size", models.PositiveIntegerField(default=0)),
                ("row_count", models.PositiveIntegerField(default=0)),
                ("error_message", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "shop",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reports",
                        to="fiscalExports.shop",
                    ),
                ),
            ],
            options={
                "ordering": ("-created_at",),
                "indexes": [
                    models.Index(fields=["shop", "status"], name="fiscalexp_report_shop_status"),
                    models.Index(fields=["created_at"], name="fiscalexp_report_created"),
                ],
            },
        ),
    ]
