"""Report generation: turn Shopify refunds into downloadable report files.

``ReportService`` never trusts a file left on disk for downloads; every
download regenerates the content in memory from the Shopify data so the file
always reflects the shop's current fiscal configuration.
"""
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Tuple
from zoneinfo import ZoneInfo

from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist
from django.utils import timezone

from importers.shopify_refunds import ShopifyRefundService, to_utc_datetime

from ..models import FiscalConfiguration, Report, ReportStatus, Shop
from .exporters import ReportGenerationError, content_type_for, file_extension_for, render

logger = logging.getLogger(__name__)

REFUND_COLUMNS: list[str] = [
    "date",
    "reference",
    "refund_id",
    "order_id",
    "account",
    "label",
    "sku",
    "quantity",
    "restock_type",
    "amount_excl_tax",
    "tax_amount",
    "amount_incl_tax",
    "tax_rate",
    "currency",
    "product_type",
    "note",
]
TRANSACTION_COLUMNS: list[str] = [
    "date",
    "reference",
    "refund_id",
    "transaction_id",
    "kind",
    "status",
    "gateway",
    "amount",
    "currency",
]
DEFAULT_SALES_ACCOUNT = "701"
SUCCESS_STATUSES = {"SUCCESS"}


def _report_tz() -> ZoneInfo:
    return ZoneInfo(getattr(settings, "REPORT_TIMEZONE", "UTC"))


def _decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _local_date(value: Any) -> str:
    """ISO date of a Shopify timestamp in the reporting timezone."""
    if not value:
        return ""
    return to_utc_datetime(value).astimezone(_report_tz()).date().isoformat()


def business_day_window(
    start_date: datetime.date, end_date: datetime.date, tzname: str | None = None
) -> Tuple[datetime.datetime, datetime.datetime]:
    """Return the UTC start/end datetimes covering whole local business days."""

    tz = ZoneInfo(tzname or getattr(settings, "REPORT_TIMEZONE", "UTC"))
    start_local = datetime.datetime.combine(start_date, datetime.time.min, tzinfo=tz)
    end_local = datetime.datetime.combine(end_date, datetime.time.max, tzinfo=tz)
    return start_local.astimezone(datetime.timezone.utc), end_local.astimezone(datetime.timezone.utc)


def default_file_name(data_type: str, fmt: str, start_date: datetime.date, end_date: datetime.date) -> str:
    return f"{data_type}_{start_date:%Y%m%d}_{end_date:%Y%m%d}.{file_extension_for(fmt)}"


def resolve_columns(defaults: Iterable[str], required: Iterable[str] | None) -> List[str]:
    """Regime-required columns first, in their order, then the remaining defaults."""

    columns: list[str] = []
    for column in list(required or []) + list(defaults):
        if column and column not in columns:
            columns.append(column)
    return columns


def get_fiscal_config(shop: Shop) -> FiscalConfiguration | None:
    try:
        config = shop.fiscal_config
    except ObjectDoesNotExist:
        return None
    return config.normalize_lists()


# ----------------------------------------------------------------------
# Row builders
# ----------------------------------------------------------------------
def _line_tax_rate(line_item: dict[str, Any], fallback: Decimal | None) -> Decimal | None:
    """Shopify tax line rates are fractions; reports carry percentages.

    Stacked taxes (GST plus PST, say) add up.
    """
    rates = [_decimal(tax.get("rate")) for tax in line_item.get("tax_lines") or []]
    rates = [rate for rate in rates if rate is not None]
    if not rates:
        return fallback
    return (sum(rates) * 100).quantize(Decimal("0.01"))


def refund_line_rows(refunds: Iterable[dict[str, Any]], config: FiscalConfiguration | None) -> List[Dict[str, Any]]:
    """One row per refunded line; refunds without lines fall back to their transactions."""

    account = (config.sales_account if config else "") or DEFAULT_SALES_ACCOUNT
    fallback_rate = _decimal(config.vat_rate) if config else None

    rows: list[dict[str, Any]] = []
    for refund in refunds:
        base = {
            "date": _local_date(refund.get("created_at")),
            "reference": refund.get("order_name") or "",
            "refund_id": refund.get("id"),
            "order_id": refund.get("order_id"),
            "account": account,
            "note": refund.get("note") or "",
        }
        lines = refund.get("refund_line_items") or []
        if not lines:
            rows.append({**base, **_transactions_summary(refund)})
            continue

        for line in lines:
            line_item = line.get("line_item") or {}
            variant = line_item.get("variant") or {}
            product = line_item.get("product") or {}
            subtotal = _decimal(line.get("subtotal"))
            tax = _decimal(line.get("total_tax"))
            total = subtotal + tax if subtotal is not None and tax is not None else subtotal
            rows.append({
                **base,
                "label": line_item.get("title") or line_item.get("name") or "",
                "sku": line_item.get("sku") or variant.get("sku") or "",
                "quantity": line.get("quantity"),
                "restock_type": line.get("restock_type") or "",
                "amount_excl_tax": subtotal,
                "tax_amount": tax,
                "amount_incl_tax": total,
                "tax_rate": _line_tax_rate(line_item, fallback_rate),
                "currency": line.get("currency") or "",
                "product_type": product.get("product_type") or "",
            })
    return rows


def _transactions_summary(refund: dict[str, Any]) -> dict[str, Any]:
    transactions = refund.get("transactions") or []
    settled = [t for t in transactions if (t.get("status") or "SUCCESS") in SUCCESS_STATUSES]
    total = sum(
        (amount for amount in (_decimal(t.get("amount")) for t in settled) if amount is not None),
        Decimal("0"),
    )
    currency = next((t.get("currency") for t in transactions if t.get("currency")), "")
    return {
        "label": "Refund",
        "sku": "",
        "quantity": None,
        "restock_type": "",
        "amount_excl_tax": None,
        "tax_amount": None,
        "amount_incl_tax": total,
        "tax_rate": None,
        "currency": currency,
        "product_type": "",
    }


def refund_transaction_rows(refunds: Iterable[dict[str, Any]], config: FiscalConfiguration | None) -> List[Dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for refund in refunds:
        for transaction in refund.get("transactions") or []:
            rows.append({
                "date": _local_date(transaction.get("processed_at") or refund.get("created_at")),
                "reference": refund.get("order_name") or "",
                "refund_id": refund.get("id"),
                "transaction_id": transaction.get("id"),
                "kind": transaction.get("kind") or "",
                "status": transaction.get("status") or "",
                "gateway": transaction.get("gateway") or "",
                "amount": _decimal(transaction.get("amount")),
                "currency": transaction.get("currency") or "",
            })
    return rows


RowBuilder = Callable[[Iterable[dict[str, Any]], "FiscalConfiguration | None"], List[Dict[str, Any]]]

DATA_TYPES: dict[str, tuple[list[str], RowBuilder]] = {
    "refunds": (REFUND_COLUMNS, refund_line_rows),
    "refund_transactions": (TRANSACTION_COLUMNS, refund_transaction_rows),
}


@dataclass
class GeneratedReport:
    content: bytes
    content_type: str
    file_name: str
    row_count: int
    file_path: Path | None = None

    @property
    def is_empty(self) -> bool:
        return self.row_count == 0

    @property
    def size(self) -> int:
        return len(self.content)


class ReportService:
    """Build report files for a shop from live Shopify data."""

    def __init__(self, client, *, refund_service_class=ShopifyRefundService):
        self.client = client
        self.refund_service_class = refund_service_class
        self.last_fetch_log = ""

    def fetch_refunds(self, start_date, end_date) -> list[dict[str, Any]]:
        service = self.refund_service_class(self.client)
        refunds = service.fetch(start_date, end_date)
        self.last_fetch_log = service.get_log_output()
        if refunds is None:
            raise ReportGenerationError("Unable to fetch refunds from Shopify")
        return refunds

    def build_rows(
        self, data_type: str, start_date, end_date, config: FiscalConfiguration | None
    ) -> Tuple[List[str], List[Dict[str, Any]]]:
        try:
            default_columns, builder = DATA_TYPES[data_type]
        except KeyError:
            raise ReportGenerationError(f"Unsupported report data type: {data_type!r}") from None

        refunds = self.fetch_refunds(start_date, end_date)
        columns = resolve_columns(default_columns, config.required_columns if config else None)
        return columns, builder(refunds, config)

    def generate(
        self,
        *,
        shop: Shop,
        data_type: str,
        fmt: str,
        start_date,
        end_date,
        file_name: str,
        report_type: str = "manual",
    ) -> GeneratedReport:
        """Produce the report content in memory."""

        config = get_fiscal_config(shop)
        columns, rows = self.build_rows(data_type, start_date, end_date, config)
        metadata = {
            "shop": shop.shopify_domain,
            "company": config.company_name if config else "",
            "regime": config.code if config else "",
            "data_type": data_type,
            "format": (fmt or "").upper(),
            "report_type": report_type,
            "start_date": to_utc_datetime(start_date).isoformat(),
            "end_date": to_utc_datetime(end_date, end_of_day=True).isoformat(),
            "generated_at": timezone.now().isoformat(),
            "row_count": len(rows),
        }
        content = render(
            fmt,
            columns,
            rows,
            metadata,
            separator=config.separator if config else None,
            encoding=config.encoding if config else None,
            sheet_name=data_type,
        )
        logger.info(
            "Generated %s report %s for %s (%d row(s), %d bytes)",
            fmt, file_name, shop.shopify_domain, len(rows), len(content),
        )
        return GeneratedReport(
            content=content,
            content_type=content_type_for(fmt),
            file_name=file_name,
            row_count=len(rows),
        )

    def generate_for_report(self, report: Report) -> GeneratedReport:
        if not report.start_date or not report.end_date:
            raise ReportGenerationError("Report dates are missing")
        return self.generate(
            shop=report.shop,
            data_type=report.data_type,
            fmt=report.format,
            start_date=report.start_date,
            end_date=report.end_date,
            file_name=report.file_name,
            report_type=report.type,
        )

    def generate_and_save_report(self, report: Report, *, output_dir: str | Path | None = None) -> GeneratedReport:
        """Generate a persisted report, write it to disk and record the outcome."""

        report.status = ReportStatus.PROCESSING
        report.save(update_fields=["status", "updated_at"])

        try:
            generated = self.generate_for_report(report)
            directory = Path(output_dir or getattr(settings, "REPORTS_DIR", "archive/reports")) / report.shop_id
            directory.mkdir(parents=True, exist_ok=True)
            destination = directory / Path(report.file_name).name
            destination.write_bytes(generated.content)
        except Exception as exc:
            logger.exception("Report %s failed", report.pk)
            report.status = ReportStatus.ERROR
            report.error_message = str(exc)
            report.save(update_fields=["status", "error_message", "updated_at"])
            if isinstance(exc, ReportGenerationError):
                raise
            raise ReportGenerationError(str(exc)) from exc

        generated.file_path = destination
        report.file_path = str(destination)
        report.file_size = generated.size
        report.row_count = generated.row_count
        report.status = (
            ReportStatus.COMPLETED_WITH_EMPTY_DATA if generated.is_empty else ReportStatus.COMPLETED
        )
        report.error_message = None
        report.save(update_fields=[
            "file_path", "file_size", "row_count", "status", "error_message", "updated_at",
        ])
        return generated
