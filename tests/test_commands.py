from io import StringIO
from unittest.mock import MagicMock, patch

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from fiscalExports.models import Report, ReportStatus, Shop
from fiscalExports.utils.exporters import ReportGenerationError
from fiscalExports.utils.reports import GeneratedReport
from importers.shopify_client import ShopifyAPIError
from tests.factories import ReportFactory


def _generated(name="refunds.csv", rows=3):
    return GeneratedReport(content=b"a,b\r\n", content_type="text/csv", file_name=name, row_count=rows)


@pytest.mark.django_db
@patch("fiscalExports.management.commands.process_reports.ReportService")
def test_process_reports_handles_pending_only(mock_service_cls, shop):
    pending = ReportFactory(shop=shop, status=ReportStatus.PENDING)
    ReportFactory(shop=shop, status=ReportStatus.COMPLETED)
    mock_service_cls.return_value.generate_and_save_report.return_value = _generated()
    mock_service_cls.return_value.last_fetch_log = ""
    out = StringIO()

    call_command("process_reports", stdout=out)

    processed = [call.args[0].pk for call in mock_service_cls.return_value.generate_and_save_report.call_args_list]
    assert processed == [pending.pk]
    assert "1 completed, 0 failed" in out.getvalue()


@pytest.mark.django_db
@patch("fiscalExports.management.commands.process_reports.ReportService")
def test_process_reports_counts_failures(mock_service_cls, shop):
    ReportFactory(shop=shop, status=ReportStatus.PENDING)
    ReportFactory(shop=shop, status=ReportStatus.PENDING)
    mock_service_cls.return_value.generate_and_save_report.side_effect = [
        _generated(),
        ReportGenerationError("Unable to fetch refunds from Shopify"),
    ]
    mock_service_cls.return_value.last_fetch_log = ""
    out = StringIO()

    call_command("process_reports", stdout=out)

    assert "1 completed, 1 failed" in out.getvalue()
    assert "Unable to fetch refunds from Shopify" in out.getvalue()


@pytest.mark.django_db
@patch("fiscalExports.management.commands.process_reports.ReportService")
def test_process_reports_dry_run_and_limit(mock_service_cls, shop):
    ReportFactory.create_batch(3, shop=shop, status=ReportStatus.PENDING)
    out = StringIO()

    call_command("process_reports", "--dry-run", "--limit", "2", stdout=out)

    assert out.getvalue().count("would generate") == 2
    mock_service_cls.return_value.generate_and_save_report.assert_not_called()
    assert Report.objects.filter(status=ReportStatus.PENDING).count() == 3


@pytest.mark.django_db
def test_process_reports_unknown_report_id():
    with pytest.raises(CommandError):
        call_command("process_reports", "--report-id", "missing")


@pytest.mark.django_db
@patch("fiscalExports.management.commands.export_report.ReportService")
def test_export_report_writes_file_without_descriptor(mock_service_cls, tmp_path):
    mock_service_cls.return_value.generate.return_value = _generated("refunds_20240301_20240331.csv")
    out = StringIO()

    call_command(
        "export_report",
        "--shop", "https://cli-store.myshopify.com",
        "--start", "2024-03-01",
        "--end", "2024-03-31",
        "--format", "csv",
        "--outdir", str(tmp_path),
        stdout=out,
    )

    written = tmp_path / "refunds_20240301_20240331.csv"
    assert written.read_bytes() == b"a,b\r\n"
    kwargs = mock_service_cls.return_value.generate.call_args.kwargs
    assert kwargs["fmt"] == "CSV"
    assert kwargs["shop"].shopify_domain == "cli-store.myshopify.com"
    assert Shop.objects.filter(shopify_domain="cli-store.myshopify.com").exists()
    assert not Report.objects.exists()
    assert "Exported 3 row(s)" in out.getvalue()


@pytest.mark.django_db
@pytest.mark.parametrize(
    "args",
    [
        ["--start", "2024-03-31", "--end", "2024-03-01"],
        ["--start", "yesterday", "--end", "2024-03-01"],
        ["--start", "2024-03-01", "--end", "2024-03-31", "--format", "pdf"],
        ["--start", "2024-03-01", "--end", "2024-03-31", "--shop", ""],
    ],
)
def test_export_report_rejects_bad_arguments(args):
    with pytest.raises(CommandError):
        call_command("export_report", *args)


@patch("fiscalExports.management.commands.test_shopify_connection.ShopifyAdminClient")
def test_shopify_connection_reports_shop_name(mock_client_cls):
    client = MagicMock(
        store_domain="demo.myshopify.com",
        api_version="2024-10",
        access_token="shpat_123",
        endpoint="https://demo.myshopify.com/admin/api/2024-10/graphql.json",
    )
    client.graphql.return_value = {
        "data": {"shop": {"name": "Demo", "myshopifyDomain": "demo.myshopify.com", "currencyCode": "EUR"}}
    }
    mock_client_cls.from_settings.return_value = client
    out = StringIO()

    call_command("test_shopify_connection", stdout=out)

    assert "Connection successful! Shop: Demo" in out.getvalue()
    assert "shop {" in client.graphql.call_args.args[0]


@patch("fiscalExports.management.commands.test_shopify_connection.ShopifyAdminClient")
def test_shopify_connection_surfaces_api_errors(mock_client_cls):
    client = MagicMock(store_domain="demo.myshopify.com", api_version="2024-10", access_token="shpat_123")
    client.graphql.side_effect = ShopifyAPIError("Unauthorized. Check the access token and app scopes.")
    mock_client_cls.from_settings.return_value = client
    out = StringIO()

    call_command("test_shopify_connection", stdout=out)

    assert "Unauthorized" in out.getvalue()
