"""
Services for handling reports business logic.
"""
import calendar
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from fastapi import HTTPException

from minimarket.common.dates import end_of_day, now_local, start_of_day, to_local
from minimarket.common.utils import format_currency
from minimarket.expenses.services import query_expenses
from minimarket.products.services import get_products_by_ids, load_all_products
from minimarket.sales.services import query_sale_items, query_sales

from .schemas import (
    CategoryStats, DashboardStats, DataPointSchema, DateRangeSchema, IncomeExpensePoint,
    IncomeExpensesReport, PaymentMethodStats, SummaryResponse, TopProduct
)

logger = logging.getLogger(__name__)

TOP_PRODUCTS_LIMIT = 10
INCOME_EXPENSE_PERIODS = ("daily", "weekly", "monthly")
DAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


async def get_sales_summary(
    currency: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None
) -> SummaryResponse:
    """
    Calculate the sales summary within a date range.
    If no dates are provided, defaults to today's sales only.

    Args:
        currency: Currency code used to format the revenue
        start_date: Lower bound, timezone-aware
        end_date: Upper bound, timezone-aware
    """
    now = now_local()
    start_date = start_date or start_of_day(now.date())
    end_date = end_date or now

    sale_docs = query_sales(start_date, end_date)
    logger.debug("Found %d sales between %s and %s", len(sale_docs), start_date, end_date)

    daily_revenue = defaultdict(float)
    payments = defaultdict(lambda: {"count": 0, "total": 0.0})
    total_revenue = 0.0
    for doc in sale_docs:
        sale_data = doc.to_dict()
        revenue = sale_data.get("total", 0.0)
        total_revenue += revenue

        payment = payments[sale_data.get("paymentMethod") or "unknown"]
        payment["count"] += 1
        payment["total"] += revenue

        created_at = sale_data.get("createdAt")
        if created_at:
            daily_revenue[to_local(created_at).strftime("%Y-%m-%d")] += revenue

    items = [item for sale_items in query_sale_items(doc.id for doc in sale_docs).values() for item in sale_items]
    items_sold = sum(int(item.get("quantity", 0)) for item in items)
    top_products, categories = await _product_breakdowns(items)

    # Every day of the range gets a point, including days without sales
    revenue_by_date = []
    current_date = start_date.date()
    while current_date <= end_date.date():
        date_key = current_date.strftime("%Y-%m-%d")
        revenue_by_date.append(DataPointSchema(date=date_key, value=daily_revenue[date_key]))
        current_date += timedelta(days=1)

    sale_count = len(sale_docs)
    return SummaryResponse(
        currency=currency,
        dateRange=DateRangeSchema(
            start=start_date.strftime("%Y-%m-%d"),
            end=end_date.strftime("%Y-%m-%d")
        ),
        revenue=total_revenue,
        formattedRevenue=format_currency(total_revenue, currency),
        sales=sale_count,
        averageSale=total_revenue / sale_count if sale_count else 0.0,
        itemsSold=items_sold,
        revenueByDate=revenue_by_date,
        topProducts=top_products,
        paymentMethods=sorted(
            (PaymentMethodStats(paymentMethod=method, **stats) for method, stats in payments.items()),
            key=lambda stats: stats.total, reverse=True
        ),
        categories=categories,
        date=now
    )


async def _product_breakdowns(items: List[dict]):
    """Best sellers and per-category totals of a set of sale items."""
    products = await get_products_by_ids(item.get("productId") for item in items)

    by_product = defaultdict(lambda: {"quantity": 0, "total": 0.0})
    by_category = defaultdict(lambda: {"count": 0, "total": 0.0})
    for item in items:
        quantity = int(item.get("quantity", 0))
        subtotal = item.get("subtotal", quantity * item.get("price", 0.0))
        product = products.get(item.get("productId"))

        sold = by_product[item.get("productId")]
        sold["quantity"] += quantity
        sold["total"] += subtotal

        category = by_category[(product.category if product else "") or "unknown"]
        category["count"] += quantity
        category["total"] += subtotal

    top_products = sorted(
        (
            TopProduct(
                productId=product_id,
                productName=products[product_id].name if product_id in products else "Unknown Product",
                **sold
            )
            for product_id, sold in by_product.items()
        ),
        key=lambda product: product.total, reverse=True
    )[:TOP_PRODUCTS_LIMIT]
    categories = sorted(
        (CategoryStats(category=name, **stats) for name, stats in by_category.items()),
        key=lambda stats: stats.total, reverse=True
    )
    return top_products, categories


def _period_buckets(period: str, today: date):
    """
    Bounds and bucket labels of an income/expenses period.

    Returns:
        (first day, last day, labels, function mapping a local date to a label index)
    """
    if period == "daily":
        monday = today - timedelta(days=today.weekday())
        return monday, monday + timedelta(days=6), list(DAY_LABELS), lambda day: (day - monday).days

    if period == "weekly":
        first = today.replace(day=1)
        last = today.replace(day=calendar.monthrange(today.year, today.month)[1])
        # Weeks start on Sunday, the first one may be partial
        offset = (first.weekday() + 1) % 7

        def week_of(day):
            return (day.day - 1 + offset) // 7

        labels = [f"Week {n + 1}" for n in range(week_of(last) + 1)]
        return first, last, labels, week_of

    if period == "monthly":
        return date(today.year, 1, 1), date(today.year, 12, 31), list(MONTH_LABELS), lambda day: day.month - 1

    raise HTTPException(
        status_code=400,
        detail=f"Invalid period: {period}. Supported periods: {', '.join(INCOME_EXPENSE_PERIODS)}"
    )


async def get_income_expenses(period: str, currency: str, today: Optional[datetime] = None) -> IncomeExpensesReport:
    """
    Compare sales income with recorded expenses for the current week, month or year.

    Args:
        period: "daily" (days of this week), "weekly" (weeks of this month)
            or "monthly" (months of this year)
        currency: Currency code reported back
        today: Reference time, defaults to now in the store timezone

    Raises:
        HTTPException: 400 for an unknown period
    """
    today = today or now_local()
    first, last, labels, bucket_of = _period_buckets(period, today.date())
    start, end = start_of_day(first), end_of_day(last)

    income = [0.0] * len(labels)
    expenses = [0.0] * len(labels)
    for doc in query_sales(start, end):
        sale_data = doc.to_dict()
        if sale_data.get("createdAt"):
            income[bucket_of(to_local(sale_data["createdAt"]).date())] += sale_data.get("total", 0.0)
    for expense in query_expenses(start, end):
        if expense.createdAt:
            expenses[bucket_of(to_local(expense.createdAt).date())] += expense.amount

    total_income = sum(income)
    total_expenses = sum(expenses)
    profit = total_income - total_expenses
    logger.debug("Income %.2f against expenses %.2f for %s %s", total_income, total_expenses, period, first)

    return IncomeExpensesReport(
        period=period,
        currency=currency,
        dateRange=DateRangeSchema(start=first.isoformat(), end=last.isoformat()),
        points=[
            IncomeExpensePoint(label=label, income=inc, expenses=exp, profit=inc - exp)
            for label, inc, exp in zip(labels, income, expenses)
        ],
        totalIncome=total_income,
        totalExpenses=total_expenses,
        profit=profit,
        profitMargin=profit * 100 / total_income if total_income else 0.0
    )


async def get_dashboard_stats(currency: str) -> DashboardStats:
    """Headline figures for the dashboard: catalog size, low stock and all-time sales."""
    products = await load_all_products()
    sale_totals: Dict[str, float] = {doc.id: doc.to_dict().get("total", 0.0) for doc in query_sales()}
    total_revenue = sum(sale_totals.values())

    return DashboardStats(
        totalProducts=len(products),
        lowStockCount=sum(1 for product in products if product.is_low_stock),
        totalSales=len(sale_totals),
        totalRevenue=total_revenue,
        formattedRevenue=format_currency(total_revenue, currency)
    )
