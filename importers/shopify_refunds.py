"""Shopify refund fetcher.

Refunds are not a top-level connection in the Admin API, so the service pages
through orders updated inside the window, reshapes each order's nested
refunds into flat snake_case records and then filters them on their own
``created_at``: an order updated in the window may carry refunds created
long before it.

The service builds on ``BaseImporter`` for its run log and counters, so the
report pipeline and management commands can surface what happened during a
fetch.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any

from django.conf import settings
from django.utils.dateparse import parse_date, parse_datetime

from importers._base_Importer import BaseImporter
from importers.shopify_client import ShopifyAPIError

logger = logging.getLogger(__name__)

ORDERS_PAGE_SIZE = 250

REFUNDS_QUERY = """
query GetRefunds($query: String!, $cursor: String) {
    orders(first: %(page_size)d, after: $cursor, query: $query) {
        pageInfo {
            hasNextPage
            endCursor
        }
        edges {
            node {
                id
                name
                refunds {
                    id
                    createdAt
                    note
                    refundLineItems(first: 10) {
                        nodes {
                            id
                            quantity
                            restockType
                            subtotalSet {
                                shopMoney {
                                    amount
                                    currencyCode
                                }
                            }
                            totalTaxSet {
                                shopMoney {
                                    amount
                                    currencyCode
                                }
                            }
                            lineItem {
                                id
                                name
                                title
                                quantity
                                sku
                                taxable
                                taxLines {
                                    rate
                                    title
                                }
                                variant {
                                    id
                                    legacyResourceId
                                    sku
                                    title
                                    price
                                }
                                product {
                                    id
                                    legacyResourceId
                                    productType
                                }
                            }
                        }
                    }
                    transactions(first: 10) {
                        nodes {
                            id
                            amountSet {
                                shopMoney {
                                    amount
                                    currencyCode
                                }
                            }
                            kind
                            status
                            gateway
                            processedAt
                        }
                    }
                }
            }
        }
    }
}
""" % {"page_size": ORDERS_PAGE_SIZE}


def to_utc_datetime(value: Any, *, end_of_day: bool = False) -> dt.datetime:
    """Coerce a date, datetime or ISO string to an aware UTC datetime.

    Bare dates expand to the start of the day, or to its last microsecond
    when ``end_of_day`` is set.
    """

    if isinstance(value, str):
        text = value.strip()
        parsed = parse_datetime(text)
        if parsed is None:
            day = parse_date(text)
            if day is None:
                raise ValueError(f"Invalid date: {value!r}")
            value = day
        else:
            value = parsed

    if isinstance(value, dt.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=dt.timezone.utc)
        return value.astimezone(dt.timezone.utc)

    if isinstance(value, dt.date):
        moment = dt.time.max if end_of_day else dt.time.min
        return dt.datetime.combine(value, moment, tzinfo=dt.timezone.utc)

    raise ValueError(f"Unsupported date value: {value!r}")


def format_shopify_timestamp(value: dt.datetime) -> str:
    """Render an aware datetime the way Shopify's search syntax expects."""
    return value.astimezone(dt.timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def _nodes(connection: dict[str, Any] | None) -> list[dict[str, Any]]:
    return list((connection or {}).get("nodes") or [])


def _shop_money(money_set: dict[str, Any] | None) -> dict[str, Any]:
    return (money_set or {}).get("shopMoney") or {}


class ShopifyRefundService(BaseImporter):
    """Fetch and flatten Shopify refunds for a date window."""

    platform = "shopify"

    def __init__(self, client, *, page_limit: int | None = None, log_to_console: bool = False):
        super().__init__(log_to_console=log_to_console)
        self.client = client
        self.page_limit = page_limit or getattr(settings, "SHOPIFY_REFUND_PAGE_LIMIT", 40)
        self.refunds: list[dict[str, Any]] = []
        self.counters.setdefault("orders", 0)
        self.counters.setdefault("refunds", 0)
        self.counters.setdefault("filtered", 0)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @classmethod
    def get_refunds(cls, client, start_date, end_date, **kwargs) -> list[dict[str, Any]] | None:
        """Return refunds created in ``[start_date, end_date]`` or ``None`` on failure."""
        return cls(client, **kwargs).fetch(start_date, end_date)

    def fetch(self, start_date, end_date) -> list[dict[str, Any]] | None:
        try:
            start_utc = to_utc_datetime(start_date)
            end_utc = to_utc_datetime(end_date, end_of_day=True)
            variables = {
                "query": (
                    f"updated_at:>={format_shopify_timestamp(start_utc)} "
                    f"AND updated_at:<={format_shopify_timestamp(end_utc)}"
                ),
            }

            self.refunds = []
            edges = self._fetch_order_edges(variables)
            if edges is None:
                return None

            self.run(edges)

            filtered = [
                refund
                for refund in self.refunds
                if self._created_within(refund, start_utc, end_utc)
            ]
            self.counters["filtered"] = len(self.refunds) - len(filtered)
            self.log(
                f"Fetched {len(filtered)} Shopify refund(s) between "
                f"{start_utc.isoformat()} and {end_utc.isoformat()} "
                f"({self.counters['filtered']} outside the window)",
                "📦",
            )
            logger.debug("Fetched Shopify refunds: %s", filtered)
            return filtered
        except Exception as exc:
            logger.exception("Error fetching refunds")
            self.log(f"Error fetching refunds: {exc}", "❌", level=logging.ERROR)
            return None

    # ------------------------------------------------------------------
    # BaseImporter hook
    # ------------------------------------------------------------------
    def process_row(self, edge: dict[str, Any]) -> None:  # type: ignore[override]
        """Flatten every refund attached to one order edge."""

        order = edge["node"]
        self.counters["orders"] += 1
        refunds = order.get("refunds") or []
        if not refunds:
            self.counters["skipped"] += 1
            return

        for refund in refunds:
            self.refunds.append(self._normalize_refund(order, refund))
            self.counters["refunds"] += 1
            self.counters["added"] += 1

    # ------------------------------------------------------------------
    # Shopify API
    # ------------------------------------------------------------------
    def _fetch_order_edges(self, variables: dict[str, Any]) -> list[dict[str, Any]] | None:
        edges: list[dict[str, Any]] = []
        cursor = None
        for page in range(1, self.page_limit + 1):
            data = self._execute(REFUNDS_QUERY, {**variables, "cursor": cursor})
            if data.get("errors"):
                logger.error("GraphQL errors: %s", data["errors"])
                self.log(f"GraphQL errors: {data['errors']}", "❌", level=logging.ERROR)
                return None

            orders = ((data.get("data") or {}).get("orders")) or {}
            edges.extend(orders.get("edges") or [])

            page_info = orders.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")
            if page == self.page_limit:
                self.log(
                    f"Stopped after {self.page_limit} page(s) of orders; refunds may be incomplete",
                    "⚠️",
                    level=logging.WARNING,
                )
        return edges

    def _execute(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        graphql = getattr(self.client, "graphql", None)
        request = getattr(self.client, "request", None)
        if callable(graphql):
            payload = graphql(query, variables)
            json_method = getattr(payload, "json", None)
            return json_method() if callable(json_method) else payload
        if callable(request):
            return request(query, variables)
        raise ShopifyAPIError("No valid Shopify GraphQL client found")

    # ------------------------------------------------------------------
    # Normalisation
    # ------------------------------------------------------------------
    def _created_within(self, refund: dict[str, Any], start_utc: dt.datetime, end_utc: dt.datetime) -> bool:
        created_at = refund.get("created_at")
        if not created_at:
            return False
        try:
            created = to_utc_datetime(created_at)
        except ValueError as exc:
            self.counters["errors"] += 1
            self.log(f"Skipping refund {refund.get('id')}: {exc}", "⚠️", level=logging.WARNING)
            return False
        return start_utc <= created <= end_utc

    def _normalize_refund(self, order: dict[str, Any], refund: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": refund.get("id"),
            "order_id": order.get("id"),
            "order_name": order.get("name"),
            "created_at": refund.get("createdAt"),
            "note": refund.get("note"),
            "refund_line_items": [
                self._normalize_refund_line_item(item)
                for item in _nodes(refund.get("refundLineItems"))
            ],
            "transactions": [
                self._normalize_transaction(transaction)
                for transaction in _nodes(refund.get("transactions"))
            ],
        }

    def _normalize_refund_line_item(self, item: dict[str, Any]) -> dict[str, Any]:
        subtotal = _shop_money(item.get("subtotalSet"))
        total_tax = _shop_money(item.get("totalTaxSet"))
        return {
            "id": item.get("id"),
            "quantity": item.get("quantity"),
            "restock_type": item.get("restockType"),
            "subtotal": subtotal.get("amount"),
            "total_tax": total_tax.get("amount"),
            "currency": subtotal.get("currencyCode") or total_tax.get("currencyCode"),
            "line_item": self._normalize_line_item(item.get("lineItem")),
        }

    @staticmethod
    def _normalize_line_item(line_item: dict[str, Any] | None) -> dict[str, Any] | None:
        if not line_item:
            return None

        variant = line_item.get("variant")
        product = line_item.get("product")
        return {
            "id": line_item.get("id"),
            "name": line_item.get("name"),
            "title": line_item.get("title"),
            "quantity": line_item.get("quantity"),
            "sku": line_item.get("sku"),
            "taxable": line_item.get("taxable"),
            "tax_lines": [
                {"rate": tax.get("rate"), "title": tax.get("title")}
                for tax in line_item.get("taxLines") or []
            ],
            "variant": {
                "id": variant.get("id"),
                "legacy_resource_id": variant.get("legacyResourceId"),
                "sku": variant.get("sku"),
                "title": variant.get("title"),
                "price": variant.get("price"),
            } if variant else None,
            "product": {
                "id": product.get("id"),
                "legacy_resource_id": product.get("legacyResourceId"),
                "product_type": product.get("productType"),
            } if product else None,
        }

    @staticmethod
    def _normalize_transaction(transaction: dict[str, Any]) -> dict[str, Any]:
        amount = _shop_money(transaction.get("amountSet"))
        return {
            "id": transaction.get("id"),
            "amount": amount.get("amount"),
            "currency": amount.get("currencyCode"),
            "kind": transaction.get("kind"),
            "status": transaction.get("status"),
            "gateway": transaction.get("gateway"),
            "processed_at": transaction.get("processedAt"),
        }

