"""Management command to generate pending reports."""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from importers.shopify_client import ShopifyAdminClient
from ...models import Report, ReportStatus
from ...utils.exporters import ReportGenerationError
from ...utils.reports import ReportService


class Command(BaseCommand):
    help = "Generate every pending report (or a single one) and write its file under REPORTS_DIR."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--report-id", type=str, help="Process only this report, whatever its status.")
        parser.add_argument("--limit", type=int, help="Maximum number of pending reports to process.")
        parser.add_argument("--dry-run", action="store_true", help="List the reports that would be generated.")

    def handle(self, *args, **options):
        report_id: str | None = options.get("report_id")
        limit: int | None = options.get("limit")
        dry_run: bool = options.get("dry_run", False)
        verbosity: int = int(options.get("verbosity", 1))

        if report_id:
            reports = list(Report.objects.select_related("shop").filter(pk=report_id))
            if not reports:
                raise CommandError(f"❌ Report {report_id} not found")
        else:
            if limit is not None and limit < 1:
                raise CommandError("❌ --limit must be a positive integer")
            qs = (
                Report.objects.select_related("shop")
                .filter(status=ReportStatus.PENDING)
                .order_by("created_at")
            )
            reports = list(qs[:limit] if limit else qs)

        if not reports:
            self.stdout.write(self.style.WARNING("No pending reports."))
            return

        completed = failed = 0
        for report in reports:
            label = f"{report.file_name} ({report.shop.shopify_domain}, {report.format})"
            if dry_run:
                self.stdout.write(f"  • would generate {label}")
                continue

            self.stdout.write(self.style.NOTICE(f"📄 Generating {label}"))
            service = ReportService(ShopifyAdminClient.for_shop(report.shop))
            try:
                generated = service.generate_and_save_report(report)
            except ReportGenerationError as exc:
                failed += 1
                self.stdout.write(self.style.ERROR(f"❌ {report.pk}: {exc}"))
            else:
                completed += 1
                self.stdout.write(self.style.SUCCESS(
                    f"✅ {report.pk}: {generated.row_count} row(s), {generated.size} bytes -> {generated.file_path}"
                ))
            if verbosity > 1 and service.last_fetch_log:
                self.stdout.write(service.last_fetch_log)

        if dry_run:
            self.stdout.write(self.style.WARNING(
                f"Dry run enabled; {len(reports)} report(s) left untouched."
            ))
            return

        summary = f"✨ Processed {len(reports)} report(s): {completed} completed, {failed} failed"
        self.stdout.write(self.style.SUCCESS(summary) if not failed else self.style.WARNING(summary))
