from __future__ import annotations

import datetime
from typing import Any, Dict, List

from django.db.models import Count, Q
from django.db.models.functions import TruncMonth
from django.urls import reverse
from django.utils import timezone
from django.utils.formats import date_format
from django.utils.translation import gettext as _

from fiscalExports.models import DOWNLOADABLE_STATUSES, FiscalConfiguration, Report, ReportStatus, Shop

MONTHS_IN_CHART = 6
CHART_COLOR = "#0066FF"
RECENT_REPORT_LIMIT = 5


def _shift_month(day: datetime.date, offset: int) -> datetime.date:
    """First day of the month ``offset`` months away from ``day``."""
    index = day.year * 12 + (day.month - 1) + offset
    return datetime.date(index // 12, index % 12 + 1, 1)


def monthly_report_counts(
    shop: Shop, months: int = MONTHS_IN_CHART, today: datetime.date | None = None
) -> List[Dict[str, Any]]:
    """Reports created per calendar month, oldest first, zero-filled."""

    today = today or timezone.localdate()
    first_month = _shift_month(today, -(months - 1))
    window_start = timezone.make_aware(datetime.datetime.combine(first_month, datetime.time.min))

    rows = (
        Report.objects.filter(shop=shop, created_at__gte=window_start)
        .annotate(month=TruncMonth("created_at"))
        .values("month")
        .annotate(total=Count("id"))
    )
    totals: dict[tuple[int, int], int] = {}
    for row in rows:
        month = row["month"]
        totals[(month.year, month.month)] = totals.get((month.year, month.month), 0) + row["total"]

    data = []
    for offset in range(months):
        month = _shift_month(first_month, offset)
        data.append({
            "month": date_format(month, "YEAR_MONTH_FORMAT"),
            "reports": totals.get((month.year, month.month), 0),
        })
    return data


def build_monthly_reports_chart(data: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Chart.js line configuration for ``monthly_report_counts`` output.

    Tooltip callbacks cannot travel through JSON; the template wires them up
    to the per-point text in ``options.plugins.tooltip.lines``.
    """

    return {
        "type": "line",
        "data": {
            "labels": [point["month"] for point in data],
            "datasets": [
                {
                    "label": _("Generated reports"),
                    "data": [point["reports"] for point in data],
                    "borderColor": CHART_COLOR,
                    "backgroundColor": CHART_COLOR,
                    "borderWidth": 2,
                    "tension": 0.4,
                    "fill": False,
                    "pointBackgroundColor": "#FFFFFF",
                    "pointBorderColor": CHART_COLOR,
                    "pointBorderWidth": 2,
                    "pointRadius": 6,
                    "pointHoverRadius": 8,
                }
            ],
        },
        "options": {
            "responsive": True,
            "maintainAspectRatio": False,
            "plugins": {
                "legend": {"display": False},
                "title": {"display": False},
                "tooltip": {
                    "backgroundColor": "#FFFFFF",
                    "titleColor": "#202223",
                    "bodyColor": "#202223",
                    "borderColor": "#E1E3E5",
                    "borderWidth": 1,
                    "displayColors": False,
                    "lines": [tooltip_lines(point["month"], point["reports"]) for point in data],
                },
            },
            "scales": {
                "x": {"grid": {"display": False}},
                "y": {"beginAtZero": True, "ticks": {"precision": 0}},
            },
        },
    }


def tooltip_lines(label: str, value: int) -> Dict[str, str]:
    """Text the chart tooltip shows for one point."""
    return {
        "title": f"{_('Month')} : {label}",
        "body": f"{_('Reports')} : {value}",
    }


def get_report_stats(shop: Shop) -> Dict[str, int]:
    return Report.objects.filter(shop=shop).aggregate(
        total=Count("id"),
        completed=Count("id", filter=Q(status__in=DOWNLOADABLE_STATUSES)),
        errors=Count("id", filter=Q(status=ReportStatus.ERROR)),
        pending=Count("id", filter=Q(status__in=[ReportStatus.PENDING, ReportStatus.PROCESSING])),
    )


def build_stat_cards(stats: Dict[str, int], config: FiscalConfiguration | None) -> List[Dict[str, Any]]:
    reports_url = reverse("reports_list")
    return [
        {
            "title": _("Reports"),
            "value": stats["total"],
            "description": _("Reports requested for this shop"),
            "icon": "bi-file-earmark-spreadsheet",
            "cta": {"label": _("View reports"), "url": reports_url},
        },
        {
            "title": _("Completed"),
            "value": stats["completed"],
            "description": _("Ready to download"),
            "icon": "bi-check2-circle",
            "cta": {"label": _("Download"), "url": reports_url},
        },
        {
            "title": _("Errors"),
            "value": stats["errors"],
            "description": _("Reports that need a retry"),
            "icon": "bi-exclamation-triangle",
            "highlight": stats["errors"] > 0,
            "cta": {"label": _("Retry"), "url": reports_url},
        },
        {
            "title": _("Fiscal regime"),
            "value": config.code if config else _("Not configured"),
            "description": config.name if config else _("Pick a regime before exporting"),
            "icon": "bi-bank",
            "highlight": config is None,
            "cta": {"label": _("Settings"), "url": reverse("company_fiscal_regime")},
        },
    ]


def get_recent_reports(shop: Shop, limit: int = RECENT_REPORT_LIMIT):
    return list(Report.objects.filter(shop=shop).order_by("-created_at")[:limit])
