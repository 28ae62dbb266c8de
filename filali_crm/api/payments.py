"""Payments dashboard endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from filali_crm.api.deps import get_payments
from filali_crm.crm.models import Transaction
from filali_crm.integrations.payments import (
    CatalogFilters,
    ConversionMetrics,
    PaymentsClient,
    Period,
    ProductSummary,
    RevenueSeries,
    conversion_metrics,
    last_30_days_filter,
    recent_transactions,
    this_month_filter,
    this_year_filter,
    top_products,
)

router = APIRouter(prefix="/api/payments", tags=["payments"])

DateRange = Literal["all", "last_30_days", "this_month", "this_year"]


class PaymentsSummaryResponse(BaseModel):
    """Dashboard totals for one date range."""

    total_revenue: float
    total_transactions: int
    total_products: int
    total_customers: int
    revenue_by_product: dict[str, float]
    top_products: list[ProductSummary]
    recent_transactions: list[Transaction]
    conversion: ConversionMetrics


def _filters_for(date_range: DateRange) -> CatalogFilters | None:
    if date_range == "last_30_days":
        return last_30_days_filter()
    if date_range == "this_month":
        return this_month_filter()
    if date_range == "this_year":
        return this_year_filter()
    return None


@router.get("/summary", response_model=PaymentsSummaryResponse)
async def payments_summary(
    date_range: DateRange = Query(default="all", alias="range"),
    payments: PaymentsClient = Depends(get_payments),
) -> PaymentsSummaryResponse:
    """Revenue totals, best sellers, and recent transactions."""
    summary = await payments.get_transactions(_filters_for(date_range))
    return PaymentsSummaryResponse(
        total_revenue=summary.total_revenue,
        total_transactions=summary.total_transactions,
        total_products=summary.total_products,
        total_customers=summary.total_customers,
        revenue_by_product=summary.revenue_by_product,
        top_products=top_products(summary.product_summaries),
        recent_transactions=recent_transactions(summary.product_summaries),
        conversion=conversion_metrics(summary.product_summaries),
    )


@router.get("/revenue", response_model=RevenueSeries)
async def revenue(
    period: Period = Query(default="month"),
    date_range: DateRange = Query(default="all", alias="range"),
    payments: PaymentsClient = Depends(get_payments),
) -> RevenueSeries:
    """Revenue chart series bucketed by period."""
    return await payments.revenue_by_period(period, _filters_for(date_range))
