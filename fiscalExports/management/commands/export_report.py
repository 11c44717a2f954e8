from __future__ import annotations

import datetime
from pathlib import Path

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from importers.shopify_client import ShopifyAdminClient, normalize_store_domain
from ...models import Report, ReportFormat, get_or_create_shop
from ...utils.exporters import ReportGenerationError
from ...utils.reports import ReportService, business_day_window, default_file_name


class Command(BaseCommand):
    help = "Generate a refund report for a date range straight to disk, without recording it."

    def add_arguments(self, parser):
        parser.add_argument("--shop", type=str, default=getattr(settings, "SHOPIFY_STORE_DOMAIN", ""),
                            help="Shop domain (default: SHOPIFY_STORE_DOMAIN)")
        parser.add_argument("--data-type", type=str, default="refunds",
                            choices=[value for value, _ in Report.DATA_TYPE_CHOICES])
        parser.add_argument("--format", type=str, default=ReportFormat.CSV,
                            help="CSV, XLSX, JSON, XML or TXT (default: CSV)")
        parser.add_argument("--start", required=True, type=str, help="Start date (YYYY-MM-DD)")
        parser.add_argument("--end", required=True, type=str, help="End date (YYYY-MM-DD, inclusive)")
        parser.add_argument("--outdir", type=str, default="archive/reports",
                            help="Output directory (default: ./archive/reports)")
        parser.add_argument("--tz", type=str, default=getattr(settings, "REPORT_TIMEZONE", "UTC"),
                            help="Business timezone for day boundaries")

    def handle(self, *args, **opts):
        try:
            start = datetime.date.fromisoformat(opts["start"])
            end = datetime.date.fromisoformat(opts["end"])
        except ValueError:
            raise CommandError("Invalid --start or --end date; expected YYYY-MM-DD")

        if end < start:
            raise CommandError("--end must be >= --start")

        fmt = (opts["format"] or "").upper()
        if fmt not in ReportFormat.values:
            raise CommandError(f"Unsupported --format {opts['format']!r}; choose from {', '.join(ReportFormat.values)}")

        domain = normalize_store_domain(opts["shop"])
        if not domain:
            raise CommandError("No shop given; pass --shop or set SHOPIFY_STORE_DOMAIN")
        shop = get_or_create_shop(domain, getattr(settings, "SHOPIFY_ACCESS_TOKEN", ""))

        start_utc, end_utc = business_day_window(start, end, opts["tz"])
        file_name = default_file_name(opts["data_type"], fmt, start, end)

        service = ReportService(ShopifyAdminClient.for_shop(shop))
        try:
            generated = service.generate(
                shop=shop,
                data_type=opts["data_type"],
                fmt=fmt,
                start_date=start_utc,
                end_date=end_utc,
                file_name=file_name,
            )
        except ReportGenerationError as exc:
            raise CommandError(f"Report generation failed: {exc}") from exc

        outdir = Path(opts["outdir"])
        outdir.mkdir(parents=True, exist_ok=True)
        path = outdir / file_name
        path.write_bytes(generated.content)

        self.stdout.write(self.style.SUCCESS(
            f"Exported {generated.row_count} row(s) to {path} ({generated.size} bytes)"
        ))
