"""Report list, creation and the file API used for download/delete/retry."""

import logging
from pathlib import Path

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.paginator import Paginator
from django.http import HttpResponse, JsonResponse
from django.shortcuts import redirect, render
from django.utils.translation import gettext as _
from django.views.decorators.http import require_http_methods

from fiscalExports.forms import ReportRequestForm
from fiscalExports.models import Report, ReportFormat, ReportStatus
from fiscalExports.utils.exporters import ReportGenerationError
from fiscalExports.utils.reports import (
    ReportService,
    business_day_window,
    default_file_name,
    get_fiscal_config,
)
from importers.shopify_client import ShopifyAdminClient

from ._shop import get_current_shop

logger = logging.getLogger(__name__)

REPORTS_PER_PAGE = 20


def _report_service(shop) -> ReportService:
    return ReportService(ShopifyAdminClient.for_shop(shop))


# ---------------------------------------------------------------------------
# /reports/
# ---------------------------------------------------------------------------
@login_required
@require_http_methods(["GET", "POST"])
def reports_list_view(request):
    """List the shop's reports and create a new one on POST."""
    shop = get_current_shop(request)
    config = get_fiscal_config(shop)
    status = 200

    if request.method == "POST":
        form = ReportRequestForm(request.POST)
        if form.is_valid():
            report = _create_report(shop, form.cleaned_data)
            try:
                _report_service(shop).generate_and_save_report(report)
            except ReportGenerationError as exc:
                messages.error(request, _("⚠️ Report %(name)s failed: %(error)s") % {
                    "name": report.file_name, "error": exc,
                })
            else:
                messages.success(request, _("✅ Report %(name)s generated (%(rows)d rows).") % {
                    "name": report.file_name, "rows": report.row_count,
                })
            return redirect("reports_list")
        status = 400
    else:
        default_format = (config.default_format if config else "") or ReportFormat.CSV
        form = ReportRequestForm(initial={"data_type": "refunds", "format": default_format})

    reports_qs = Report.objects.filter(shop=shop).order_by("-created_at")
    page_obj = Paginator(reports_qs, REPORTS_PER_PAGE).get_page(request.GET.get("page"))

    context = {
        "shop": shop,
        "config": config,
        "form": form,
        "page_obj": page_obj,
        "reports": page_obj.object_list,
    }
    return render(request, "reports/list.html", context, status=status)


def _create_report(shop, cleaned) -> Report:
    start_utc, end_utc = business_day_window(cleaned["start_date"], cleaned["end_date"])
    report = Report.objects.create(
        shop=shop,
        type="manual",
        data_type=cleaned["data_type"],
        format=cleaned["format"],
        status=ReportStatus.PENDING,
        start_date=start_utc,
        end_date=end_utc,
        file_name=default_file_name(
            cleaned["data_type"], cleaned["format"], cleaned["start_date"], cleaned["end_date"]
        ),
    )
    logger.info("Created report %s for %s", report.pk, shop.shopify_domain)
    return report


# ---------------------------------------------------------------------------
# /api/reports/<id>/
# ---------------------------------------------------------------------------
def report_file_view(request, report_id):
    """GET downloads, DELETE removes, POST ``action=retry`` re-queues a report."""
    shop = get_current_shop(request)

    if request.method == "GET":
        return _download_report(shop, report_id)
    if request.method == "DELETE":
        return _delete_report(shop, report_id)
    if request.method == "POST" and request.POST.get("action") == "retry":
        return _retry_report(shop, report_id)

    return JsonResponse({"error": "Method not allowed"}, status=405)


def _download_report(shop, report_id) -> HttpResponse:
    report = Report.objects.filter(pk=report_id, shop=shop).first()
    if report is None:
        return HttpResponse("Report not found", status=404, content_type="text/plain")
    if not report.is_downloadable:
        return HttpResponse("Report is not ready for download", status=400, content_type="text/plain")
    if not report.start_date or not report.end_date:
        return HttpResponse("Report dates are missing", status=400, content_type="text/plain")

    try:
        generated = _report_service(shop).generate_for_report(report)
    except Exception:
        logger.exception("Error generating report file %s", report.pk)
        return HttpResponse("Failed to generate report file", status=500, content_type="text/plain")

    response = HttpResponse(generated.content, content_type=generated.content_type)
    response["Content-Disposition"] = f'attachment; filename="{report.file_name}"'
    response["Content-Length"] = str(generated.size)
    return response


def _delete_report(shop, report_id) -> JsonResponse:
    try:
        report = Report.objects.get(pk=report_id, shop=shop)
    except Report.DoesNotExist:
        return JsonResponse({"error": "Report not found"}, status=404)

    try:
        if report.file_path:
            try:
                Path(report.file_path).unlink()
            except OSError as exc:
                logger.warning("Could not delete report file %s: %s", report.file_path, exc)
        report.delete()
    except Exception:
        logger.exception("Error deleting report %s", report_id)
        return JsonResponse({"error": "Failed to delete report"}, status=500)

    logger.info("Deleted report %s for %s", report_id, shop.shopify_domain)
    return JsonResponse({"success": True})


def _retry_report(shop, report_id) -> JsonResponse:
    try:
        report = Report.objects.filter(pk=report_id, shop=shop).first()
        if report is None:
            return JsonResponse({"error": "Report not found"}, status=404)
        report.mark_pending()
    except Exception:
        logger.exception("Error retrying report %s", report_id)
        return JsonResponse({"error": "Failed to retry report"}, status=500)

    logger.info("Queued report %s for regeneration", report_id)
    return JsonResponse({"success": True, "message": "Report queued for regeneration"})
