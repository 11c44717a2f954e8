import datetime as dt
from unittest.mock import MagicMock

import pytest

from importers.shopify_client import ShopifyAPIError
from importers.shopify_refunds import (
    ShopifyRefundService,
    format_shopify_timestamp,
    to_utc_datetime,
)
from tests.payloads import make_orders_payload, make_refund_node


def _client(*payloads):
    client = MagicMock(spec=["graphql"])
    client.graphql.side_effect = list(payloads)
    return client


def test_to_utc_datetime_expands_bare_dates():
    assert to_utc_datetime("2024-03-10") == dt.datetime(2024, 3, 10, tzinfo=dt.timezone.utc)
    end = to_utc_datetime(dt.date(2024, 3, 10), end_of_day=True)
    assert end == dt.datetime(2024, 3, 10, 23, 59, 59, 999999, tzinfo=dt.timezone.utc)


def test_to_utc_datetime_converts_offsets_and_rejects_garbage():
    assert to_utc_datetime("2024-03-10T12:00:00+02:00") == dt.datetime(
        2024, 3, 10, 10, 0, tzinfo=dt.timezone.utc
    )
    with pytest.raises(ValueError):
        to_utc_datetime("not a date")


def test_format_shopify_timestamp_uses_zulu_seconds():
    moment = dt.datetime(2024, 3, 31, 23, 59, 59, 999999, tzinfo=dt.timezone.utc)
    assert format_shopify_timestamp(moment) == "2024-03-31T23:59:59Z"


def test_get_refunds_flattens_nested_refunds(refund_payload):
    client = _client(refund_payload)

    refunds = ShopifyRefundService.get_refunds(client, "2024-03-01", "2024-03-31")

    assert len(refunds) == 1
    refund = refunds[0]
    assert refund["id"] == "gid://shopify/Refund/1"
    assert refund["order_id"] == "gid://shopify/Order/1001"
    assert refund["order_name"] == "#1001"
    assert refund["created_at"] == "2024-03-10T12:00:00Z"
    assert refund["note"] == "Damaged"

    line = refund["refund_line_items"][0]
    assert line["restock_type"] == "RETURN"
    assert line["subtotal"] == "40.00"
    assert line["total_tax"] == "8.00"
    assert line["currency"] == "EUR"
    assert line["line_item"]["tax_lines"] == [{"rate": 0.2, "title": "TVA"}]
    assert line["line_item"]["variant"]["legacy_resource_id"] == "31"
    assert line["line_item"]["product"]["product_type"] == "Kitchen"

    transaction = refund["transactions"][0]
    assert transaction == {
        "id": "gid://shopify/OrderTransaction/51",
        "amount": "48.00",
        "currency": "EUR",
        "kind": "REFUND",
        "status": "SUCCESS",
        "gateway": "shopify_payments",
        "processed_at": "2024-03-10T12:00:00Z",
    }


def test_get_refunds_queries_orders_updated_in_window(refund_payload):
    client = _client(refund_payload)

    ShopifyRefundService.get_refunds(client, "2024-03-01", "2024-03-31")

    query, variables = client.graphql.call_args.args
    assert "orders(first: 250" in query
    assert "refundLineItems(first: 10)" in query
    assert variables == {
        "query": "updated_at:>=2024-03-01T00:00:00Z AND updated_at:<=2024-03-31T23:59:59Z",
        "cursor": None,
    }


def test_refunds_outside_window_are_filtered_inclusively():
    payload = make_orders_payload([
        ("gid://shopify/Order/1", "#1", [
            make_refund_node("gid://shopify/Refund/early", "2024-02-29T23:59:59Z"),
            make_refund_node("gid://shopify/Refund/start", "2024-03-01T00:00:00Z"),
        ]),
        ("gid://shopify/Order/2", "#2", [
            make_refund_node("gid://shopify/Refund/end", "2024-03-31T23:59:59Z"),
            make_refund_node("gid://shopify/Refund/late", "2024-04-01T00:00:00Z"),
        ]),
    ])
    service = ShopifyRefundService(_client(payload))

    refunds = service.fetch("2024-03-01", "2024-03-31")

    assert [refund["id"] for refund in refunds] == [
        "gid://shopify/Refund/start",
        "gid://shopify/Refund/end",
    ]
    assert service.counters["refunds"] == 4
    assert service.counters["filtered"] == 2


def test_graphql_errors_return_none():
    client = _client({"errors": [{"message": "Throttled"}]})
    service = ShopifyRefundService(client)

    assert service.fetch("2024-03-01", "2024-03-31") is None
    assert "Throttled" in service.get_log_output()


def test_transport_errors_return_none():
    client = MagicMock(spec=["graphql"])
    client.graphql.side_effect = ShopifyAPIError("Network error talking to Shopify: boom")

    assert ShopifyRefundService.get_refunds(client, "2024-03-01", "2024-03-31") is None


def test_client_without_graphql_is_rejected():
    service = ShopifyRefundService(object())

    assert service.fetch("2024-03-01", "2024-03-31") is None
    assert "No valid Shopify GraphQL client found" in service.get_log_output()


def test_pages_are_followed_until_exhausted():
    first = make_orders_payload(
        [("gid://shopify/Order/1", "#1", [make_refund_node("gid://shopify/Refund/1")])],
        has_next_page=True,
        end_cursor="cursor-1",
    )
    second = make_orders_payload(
        [("gid://shopify/Order/2", "#2", [make_refund_node("gid://shopify/Refund/2")])],
    )
    client = _client(first, second)

    refunds = ShopifyRefundService.get_refunds(client, "2024-03-01", "2024-03-31")

    assert [refund["id"] for refund in refunds] == ["gid://shopify/Refund/1", "gid://shopify/Refund/2"]
    assert client.graphql.call_count == 2
    assert client.graphql.call_args_list[1].args[1]["cursor"] == "cursor-1"


def test_page_limit_stops_pagination_with_warning():
    first = make_orders_payload(
        [("gid://shopify/Order/1", "#1", [make_refund_node()])],
        has_next_page=True,
        end_cursor="cursor-1",
    )
    client = _client(first)
    service = ShopifyRefundService(client, page_limit=1)

    refunds = service.fetch("2024-03-01", "2024-03-31")

    assert len(refunds) == 1
    assert client.graphql.call_count == 1
    assert "refunds may be incomplete" in service.get_log_output()


def test_missing_variant_and_product_do_not_break_fetch():
    line_item = {
        "id": "gid://shopify/RefundLineItem/99",
        "quantity": 1,
        "restockType": "NO_RESTOCK",
        "subtotalSet": None,
        "totalTaxSet": None,
        "lineItem": {
            "id": "gid://shopify/LineItem/99",
            "name": "Custom engraving",
            "title": "Custom engraving",
            "quantity": 1,
            "sku": None,
            "taxable": False,
            "taxLines": [],
            "variant": None,
            "product": None,
        },
    }
    payload = make_orders_payload([
        ("gid://shopify/Order/1", "#1", [make_refund_node(line_items=[line_item])]),
    ])

    refunds = ShopifyRefundService.get_refunds(_client(payload), "2024-03-01", "2024-03-31")

    line = refunds[0]["refund_line_items"][0]
    assert line["subtotal"] is None
    assert line["currency"] is None
    assert line["line_item"]["variant"] is None
    assert line["line_item"]["product"] is None


def test_malformed_order_is_counted_and_skipped(refund_payload):
    refund_payload["data"]["orders"]["edges"].insert(0, {"cursor": "broken"})
    service = ShopifyRefundService(_client(refund_payload))

    refunds = service.fetch("2024-03-01", "2024-03-31")

    assert len(refunds) == 1
    assert service.counters["rows"] == 2
    assert service.counters["errors"] == 1
    assert service.counters["orders"] == 1


def test_refund_with_unparseable_date_is_counted_and_skipped():
    payload = make_orders_payload(
        [
            ("gid://shopify/Order/1", "#1", [make_refund_node("gid://shopify/Refund/1", "garbage")]),
            ("gid://shopify/Order/2", "#2", [make_refund_node("gid://shopify/Refund/2")]),
        ]
    )
    service = ShopifyRefundService(_client(payload))

    refunds = service.fetch("2024-03-01", "2024-03-31")

    assert [refund["id"] for refund in refunds] == ["gid://shopify/Refund/2"]
    assert service.counters["errors"] == 1


def test_orders_without_refunds_are_skipped():
    payload = make_orders_payload([("gid://shopify/Order/1", "#1", [])])
    service = ShopifyRefundService(_client(payload))

    assert service.fetch("2024-03-01", "2024-03-31") == []
    assert service.counters["skipped"] == 1
