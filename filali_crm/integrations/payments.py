"""Payment collaborator: Stripe payment-link transactions aggregated by product.

The serverless endpoint walks every Stripe payment link, groups completed
checkout sessions by product, and returns per-product totals. This adapter
fetches that catalog and derives the figures the dashboards and the client
dossier need.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from filali_crm.core.config import settings
from filali_crm.core.logging import get_logger
from filali_crm.crm.errors import CollaboratorError
from filali_crm.crm.models import Transaction

logger = get_logger(__name__)

SOURCE = "payments"

Period = Literal["day", "week", "month", "year"]


class CatalogFilters(BaseModel):
    """Filters accepted by the transactions-by-link endpoint."""

    active: bool | None = None
    created_gte: int | None = None
    created_lte: int | None = None
    product_ids: list[str] | None = None
    include_products: bool = True
    include_prices: bool = True
    max_pages: int | None = None

    def query_params(self) -> list[tuple[str, str]]:
        """Render filters as repeated query-string pairs."""
        params: list[tuple[str, str]] = []
        if self.active is not None:
            params.append(("active", str(self.active).lower()))
        if self.created_gte:
            params.append(("created_gte", str(self.created_gte)))
        if self.created_lte:
            params.append(("created_lte", str(self.created_lte)))
        params.append(("include_products", "1" if self.include_products else "0"))
        params.append(("include_prices", "1" if self.include_prices else "0"))
        if self.max_pages:
            params.append(("maxPages", str(self.max_pages)))
        for product_id in self.product_ids or []:
            params.append(("product_ids[]", product_id))
        return params

    def json_body(self) -> dict[str, Any]:
        """Render filters as the JSON body the endpoint also reads."""
        return {
            "active": self.active,
            "created_gte": self.created_gte,
            "created_lte": self.created_lte,
            "product_ids": self.product_ids,
            "include_products": 1 if self.include_products else 0,
            "include_prices": 1 if self.include_prices else 0,
            "maxPages": self.max_pages,
        }


class ProductTotals(BaseModel):
    orders: int = 0
    revenue: float = 0
    unique_buyers: int = 0


class ProductSummary(BaseModel):
    """Per-product aggregation returned by the collaborator."""

    model_config = ConfigDict(extra="allow")

    product_id: str
    links: list[str] = Field(default_factory=list)
    totals: ProductTotals = Field(default_factory=ProductTotals)
    transactions: list[Transaction] = Field(default_factory=list)
    product: dict[str, Any] | None = None
    prices: list[dict[str, Any]] | None = None


class CatalogResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    count_products: int = 0
    products: list[ProductSummary] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict, alias="_meta")


class TransactionSummary(BaseModel):
    """Catalog-wide totals plus the flattened transaction list."""

    total_revenue: float
    total_transactions: int
    total_products: int
    total_customers: int
    product_summaries: list[ProductSummary]
    all_transactions: list[Transaction]
    revenue_by_product: dict[str, float]


class ConversionMetrics(BaseModel):
    total_revenue: float
    total_orders: int
    total_customers: int
    average_order_value: float
    top_product: ProductSummary | None


class RevenueSeries(BaseModel):
    labels: list[str]
    data: list[float]


def normalize_email(value: str | None) -> str:
    """Normalize an email for equality matching across systems."""
    return (value or "").strip().lower()


class PaymentsClient:
    """Async adapter for the transactions-by-link endpoint.

    Usage:
        payments = PaymentsClient(app.state.http)
        summary = await payments.get_transactions(this_month_filter())
    """

    def __init__(self, http: httpx.AsyncClient, api_url: str | None = None):
        self._http = http
        self._api_url = api_url or settings.transactions_api_url

    async def get_catalog(self, filters: CatalogFilters | None = None) -> CatalogResponse:
        """Fetch the per-product catalog.

        Raises:
            CollaboratorError: On transport failure, non-2xx, or malformed body.
        """
        filters = filters or CatalogFilters()
        try:
            response = await self._http.post(
                self._api_url,
                params=filters.query_params(),
                json=filters.json_body(),
            )
            response.raise_for_status()
            return CatalogResponse.model_validate(response.json())
        except httpx.HTTPStatusError as exc:
            logger.error(
                "payments_catalog_http_error",
                status_code=exc.response.status_code,
            )
            raise CollaboratorError(
                SOURCE, f"HTTP error! status: {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("payments_catalog_transport_error", error=str(exc))
            raise CollaboratorError(SOURCE, str(exc)) from exc
        except (ValueError, ValidationError) as exc:
            logger.error("payments_catalog_malformed", error=str(exc))
            raise CollaboratorError(SOURCE, "Malformed catalog response") from exc

    async def get_transactions(
        self, filters: CatalogFilters | None = None
    ) -> TransactionSummary:
        """Fetch the catalog and flatten it into totals and a transaction list."""
        catalog = await self.get_catalog(filters)
        return summarize_catalog(catalog)

    async def transactions_for_email(
        self,
        email: str,
        filters: CatalogFilters | None = None,
    ) -> list[Transaction]:
        """Transactions whose customer email matches, newest first.

        The endpoint has no customer filter, so matching happens here on the
        normalized email string.
        """
        wanted = normalize_email(email)
        summary = await self.get_transactions(filters)
        return [
            transaction
            for transaction in summary.all_transactions
            if transaction.customer_email
            and normalize_email(transaction.customer_email) == wanted
        ]

    async def revenue_by_period(
        self,
        period: Period = "month",
        filters: CatalogFilters | None = None,
    ) -> RevenueSeries:
        """Revenue bucketed by day, week, month, or year."""
        summary = await self.get_transactions(filters)
        return bucket_revenue(summary.all_transactions, period)


def summarize_catalog(catalog: CatalogResponse) -> TransactionSummary:
    """Aggregate catalog products into catalog-wide totals."""
    total_revenue = 0.0
    total_transactions = 0
    revenue_by_product: dict[str, float] = {}
    all_transactions: list[Transaction] = []
    customers: set[str] = set()

    for product in catalog.products:
        total_revenue += product.totals.revenue
        total_transactions += product.totals.orders
        revenue_by_product[product.product_id] = product.totals.revenue
        all_transactions.extend(product.transactions)
        customers.update(
            t.customer_email for t in product.transactions if t.customer_email
        )

    all_transactions.sort(key=lambda t: t.created_unix, reverse=True)

    return TransactionSummary(
        total_revenue=total_revenue,
        total_transactions=total_transactions,
        total_products=catalog.count_products,
        total_customers=len(customers),
        product_summaries=catalog.products,
        all_transactions=all_transactions,
        revenue_by_product=revenue_by_product,
    )


def _period_key(moment: datetime, period: Period) -> str:
    if period == "week":
        # Weeks start on Sunday.
        week_start = moment - timedelta(days=(moment.weekday() + 1) % 7)
        return week_start.strftime("%Y-%m-%d")
    if period == "month":
        return moment.strftime("%Y-%m")
    if period == "year":
        return moment.strftime("%Y")
    return moment.strftime("%Y-%m-%d")


def bucket_revenue(transactions: list[Transaction], period: Period) -> RevenueSeries:
    """Sum transaction amounts per period, labels in ascending order."""
    buckets: dict[str, float] = defaultdict(float)
    for transaction in transactions:
        moment = datetime.fromtimestamp(transaction.created_unix, tz=UTC)
        buckets[_period_key(moment, period)] += transaction.amount_total

    labels = sorted(buckets)
    return RevenueSeries(labels=labels, data=[buckets[label] for label in labels])


def top_products(summaries: list[ProductSummary], limit: int = 5) -> list[ProductSummary]:
    """Best-selling products by revenue, ignoring products with no orders."""
    sold = [p for p in summaries if p.totals.orders > 0]
    return sorted(sold, key=lambda p: p.totals.revenue, reverse=True)[:limit]


def recent_transactions(
    summaries: list[ProductSummary], limit: int = 10
) -> list[Transaction]:
    """Most recent transactions across all products."""
    flattened = [t for p in summaries for t in p.transactions]
    return sorted(flattened, key=lambda t: t.created_unix, reverse=True)[:limit]


def conversion_metrics(summaries: list[ProductSummary]) -> ConversionMetrics:
    """Revenue, orders, buyers, and average order value across products."""
    total_revenue = sum(p.totals.revenue for p in summaries)
    total_orders = sum(p.totals.orders for p in summaries)
    total_customers = sum(p.totals.unique_buyers for p in summaries)
    earning = [p for p in summaries if p.totals.revenue > 0]
    top = max(earning, key=lambda p: p.totals.revenue) if earning else None

    return ConversionMetrics(
        total_revenue=total_revenue,
        total_orders=total_orders,
        total_customers=total_customers,
        average_order_value=total_revenue / total_orders if total_orders else 0,
        top_product=top,
    )


def _unix(moment: datetime) -> int:
    return int(moment.timestamp())


def last_30_days_filter(now: datetime | None = None) -> CatalogFilters:
    now = now or datetime.now(UTC)
    return CatalogFilters(
        created_gte=_unix(now - timedelta(days=30)), created_lte=_unix(now)
    )


def this_month_filter(now: datetime | None = None) -> CatalogFilters:
    now = now or datetime.now(UTC)
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return CatalogFilters(created_gte=_unix(start), created_lte=_unix(now))


def this_year_filter(now: datetime | None = None) -> CatalogFilters:
    now = now or datetime.now(UTC)
    start = now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    return CatalogFilters(created_gte=_unix(start), created_lte=_unix(now))
