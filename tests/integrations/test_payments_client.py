"""Tests for the payments collaborator adapter."""

import json
from datetime import UTC, datetime

import httpx
import pytest

from filali_crm.crm.errors import CollaboratorError
from filali_crm.crm.models import Transaction
from filali_crm.integrations.payments import (
    CatalogFilters,
    PaymentsClient,
    ProductSummary,
    ProductTotals,
    bucket_revenue,
    conversion_metrics,
    last_30_days_filter,
    this_month_filter,
    top_products,
)

API_URL = "https://payments.test/api/transactions-by-link.js"


def unix(year: int, month: int, day: int) -> int:
    """Helper for UTC unix seconds."""
    return int(datetime(year, month, day, 12, tzinfo=UTC).timestamp())


CATALOG = {
    "count_products": 2,
    "products": [
        {
            "product_id": "prod_elite",
            "totals": {"orders": 2, "revenue": 3000.0, "unique_buyers": 2},
            "transactions": [
                {
                    "session_id": "cs_1",
                    "product_id": "prod_elite",
                    "created_unix": unix(2025, 3, 1),
                    "amount_total": 1500.0,
                    "customer_email": "Amina@Example.com",
                },
                {
                    "session_id": "cs_2",
                    "product_id": "prod_elite",
                    "created_unix": unix(2025, 4, 1),
                    "amount_total": 1500.0,
                    "customer_email": "bob@example.com",
                },
            ],
        },
        {
            "product_id": "prod_call",
            "totals": {"orders": 1, "revenue": 200.0, "unique_buyers": 1},
            "transactions": [
                {
                    "session_id": "cs_3",
                    "product_id": "prod_call",
                    "created_unix": unix(2025, 4, 15),
                    "amount_total": 200.0,
                    "customer_email": " amina@example.com ",
                }
            ],
        },
    ],
    "_meta": {"pages": 1},
}


def make_client(handler) -> PaymentsClient:
    """Helper to build a PaymentsClient over a mock transport."""
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PaymentsClient(http, api_url=API_URL)


class TestPaymentsClient:
    """Tests for PaymentsClient."""

    @pytest.mark.asyncio
    async def test_get_transactions_summarizes(self) -> None:
        """Catalog totals and the flattened list come back newest first."""
        payments = make_client(lambda request: httpx.Response(200, json=CATALOG))

        summary = await payments.get_transactions()

        assert summary.total_revenue == 3200.0
        assert summary.total_transactions == 3
        assert summary.total_products == 2
        assert [t.session_id for t in summary.all_transactions] == ["cs_3", "cs_2", "cs_1"]
        assert summary.revenue_by_product == {"prod_elite": 3000.0, "prod_call": 200.0}

    @pytest.mark.asyncio
    async def test_filters_sent_as_params_and_body(self) -> None:
        """Filters travel in both the query string and the JSON body."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=CATALOG)

        payments = make_client(handler)
        filters = CatalogFilters(created_gte=100, created_lte=200, product_ids=["prod_a"])

        await payments.get_catalog(filters)

        request = seen[0]
        assert request.method == "POST"
        assert request.url.params["created_gte"] == "100"
        assert request.url.params.get_list("product_ids[]") == ["prod_a"]
        body = json.loads(request.content)
        assert body["created_lte"] == 200
        assert body["include_products"] == 1

    @pytest.mark.asyncio
    async def test_transactions_for_email_normalizes(self) -> None:
        """Emails match case-insensitively and ignore surrounding spaces."""
        payments = make_client(lambda request: httpx.Response(200, json=CATALOG))

        matched = await payments.transactions_for_email("amina@example.com")

        assert [t.session_id for t in matched] == ["cs_3", "cs_1"]

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        """Non-2xx responses become a CollaboratorError with the status."""
        payments = make_client(lambda request: httpx.Response(503))

        with pytest.raises(CollaboratorError) as exc_info:
            await payments.get_transactions()

        assert exc_info.value.source == "payments"
        assert exc_info.value.detail == "HTTP error! status: 503"

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        """Connection failures become a CollaboratorError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        payments = make_client(handler)

        with pytest.raises(CollaboratorError):
            await payments.get_transactions()

    @pytest.mark.asyncio
    async def test_malformed_body(self) -> None:
        """Bodies that are not a catalog are rejected."""
        payments = make_client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(CollaboratorError) as exc_info:
            await payments.get_transactions()

        assert exc_info.value.detail == "Malformed catalog response"

    @pytest.mark.asyncio
    async def test_revenue_by_month(self) -> None:
        """Revenue is bucketed by calendar month."""
        payments = make_client(lambda request: httpx.Response(200, json=CATALOG))

        series = await payments.revenue_by_period("month")

        assert series.labels == ["2025-03", "2025-04"]
        assert series.data == [1500.0, 1700.0]


class TestAggregations:
    """Tests for the pure dashboard helpers."""

    def test_bucket_by_week_starts_sunday(self) -> None:
        """Weekly buckets are labelled with the preceding Sunday."""
        transactions = [
            Transaction(session_id="a", product_id="p", created_unix=unix(2025, 6, 4), amount_total=10),
            Transaction(session_id="b", product_id="p", created_unix=unix(2025, 6, 1), amount_total=5),
        ]

        series = bucket_revenue(transactions, "week")

        assert series.labels == ["2025-06-01"]
        assert series.data == [15]

    def test_top_products_and_conversion(self) -> None:
        """Products with no orders are excluded from the top list."""
        summaries = [
            ProductSummary(product_id="a", totals=ProductTotals(orders=2, revenue=100, unique_buyers=2)),
            ProductSummary(product_id="b", totals=ProductTotals(orders=0, revenue=0)),
            ProductSummary(product_id="c", totals=ProductTotals(orders=1, revenue=300, unique_buyers=1)),
        ]

        assert [p.product_id for p in top_products(summaries)] == ["c", "a"]
        metrics = conversion_metrics(summaries)
        assert metrics.total_orders == 3
        assert metrics.average_order_value == pytest.approx(400 / 3)
        assert metrics.top_product is not None
        assert metrics.top_product.product_id == "c"

    def test_conversion_with_no_orders(self) -> None:
        """Average order value is zero when nothing sold."""
        metrics = conversion_metrics([])

        assert metrics.average_order_value == 0
        assert metrics.top_product is None

    def test_date_filters(self) -> None:
        """Range filters bound created timestamps."""
        now = datetime(2025, 6, 15, 12, tzinfo=UTC)

        month = this_month_filter(now)
        last_30 = last_30_days_filter(now)

        assert month.created_gte == int(datetime(2025, 6, 1, tzinfo=UTC).timestamp())
        assert month.created_lte == int(now.timestamp())
        assert last_30.created_gte == int(now.timestamp()) - 30 * 86400
