"""Views that render the merchant dashboard."""

from django.contrib.auth.decorators import login_required
from django.http import HttpRequest, HttpResponse
from django.shortcuts import render

from fiscalExports.utils.dashboard_metrics import (
    MONTHS_IN_CHART,
    build_monthly_reports_chart,
    build_stat_cards,
    get_recent_reports,
    get_report_stats,
    monthly_report_counts,
)
from fiscalExports.utils.reports import get_fiscal_config

from ._shop import get_current_shop


@login_required
def dashboard_view(request: HttpRequest) -> HttpResponse:
    """Render stat cards, the monthly reports chart and the latest reports."""
    shop = get_current_shop(request)
    config = get_fiscal_config(shop)
    monthly = monthly_report_counts(shop)

    context = {
        "shop": shop,
        "config": config,
        "stat_cards": build_stat_cards(get_report_stats(shop), config),
        "monthly_reports": monthly,
        "chart_config": build_monthly_reports_chart(monthly),
        "chart_months": MONTHS_IN_CHART,
        "recent_reports": get_recent_reports(shop),
    }
    return render(request, "dashboard.html", context)
