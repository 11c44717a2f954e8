import datetime

import pytest
from django.utils import timezone

from fiscalExports.models import ReportStatus
from fiscalExports.utils.dashboard_metrics import (
    build_monthly_reports_chart,
    build_stat_cards,
    get_report_stats,
    monthly_report_counts,
    tooltip_lines,
)
from tests.factories import FiscalConfigurationFactory, ReportFactory, ShopFactory


def _at(year, month, day=15):
    return timezone.make_aware(datetime.datetime(year, month, day, 12, 0))


@pytest.mark.django_db
def test_monthly_report_counts_zero_fills_oldest_first(shop):
    ReportFactory(shop=shop, created_at=_at(2024, 1))
    ReportFactory(shop=shop, created_at=_at(2024, 3))
    ReportFactory(shop=shop, created_at=_at(2024, 3, 1))
    ReportFactory(shop=shop, created_at=_at(2023, 9))
    ReportFactory(shop=ShopFactory(), created_at=_at(2024, 3))

    data = monthly_report_counts(shop, months=4, today=datetime.date(2024, 3, 20))

    assert data == [
        {"month": "December 2023", "reports": 0},
        {"month": "January 2024", "reports": 1},
        {"month": "February 2024", "reports": 0},
        {"month": "March 2024", "reports": 2},
    ]


@pytest.mark.django_db
def test_monthly_report_counts_crosses_year_boundary(shop):
    data = monthly_report_counts(shop, months=3, today=datetime.date(2025, 1, 5))

    assert [point["month"] for point in data] == ["November 2024", "December 2024", "January 2025"]
    assert all(point["reports"] == 0 for point in data)


def test_build_monthly_reports_chart_configuration():
    chart = build_monthly_reports_chart([
        {"month": "January 2024", "reports": 1},
        {"month": "February 2024", "reports": 4},
    ])

    assert chart["type"] == "line"
    assert chart["data"]["labels"] == ["January 2024", "February 2024"]
    dataset = chart["data"]["datasets"][0]
    assert dataset["label"] == "Generated reports"
    assert dataset["data"] == [1, 4]
    assert dataset["borderColor"] == "#0066FF"
    assert dataset["tension"] == 0.4
    assert dataset["pointBackgroundColor"] == "#FFFFFF"
    assert dataset["pointRadius"] == 6
    assert dataset["pointHoverRadius"] == 8
    plugins = chart["options"]["plugins"]
    assert plugins["legend"]["display"] is False
    assert plugins["title"]["display"] is False
    assert plugins["tooltip"]["backgroundColor"] == "#FFFFFF"
    assert plugins["tooltip"]["lines"][1] == {"title": "Month : February 2024", "body": "Reports : 4"}
    assert chart["options"]["scales"]["y"]["beginAtZero"] is True


def test_tooltip_lines():
    assert tooltip_lines("March 2024", 3) == {"title": "Month : March 2024", "body": "Reports : 3"}


@pytest.mark.django_db
def test_report_stats_and_cards(shop):
    ReportFactory(shop=shop, status=ReportStatus.COMPLETED)
    ReportFactory(shop=shop, status=ReportStatus.COMPLETED_WITH_EMPTY_DATA)
    ReportFactory(shop=shop, status=ReportStatus.ERROR)
    ReportFactory(shop=shop, status=ReportStatus.PENDING)

    stats = get_report_stats(shop)
    assert stats == {"total": 4, "completed": 2, "errors": 1, "pending": 1}

    cards = build_stat_cards(stats, None)
    assert [card["value"] for card in cards[:3]] == [4, 2, 1]
    assert cards[2]["highlight"] is True
    assert cards[3]["value"] == "Not configured"

    config = FiscalConfigurationFactory(shop=shop, code="OHADA", name="SYSCOHADA (OHADA)")
    assert build_stat_cards(stats, config)[3]["value"] == "OHADA"
