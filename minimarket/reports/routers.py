"""
Reports management routers.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from minimarket.auth.dependencies import get_current_user_id
from minimarket.common.dates import parse_flexible_date
from minimarket.common.schemas import JSendResponse
from minimarket.settings.services import SettingsProvider, get_settings_provider
from .schemas import DashboardStats, IncomeExpensesReport, SummaryResponse
from .services import get_dashboard_stats, get_income_expenses, get_sales_summary

router = APIRouter()


@router.get("/summary", response_model=JSendResponse[SummaryResponse])
async def get_summary(
    start_date: Optional[str] = Query(None, description="Start date for summary (YYYY, YYYY-MM, or YYYY-MM-DD). Defaults to today if not provided."),
    end_date: Optional[str] = Query(None, description="End date for summary (YYYY, YYYY-MM, or YYYY-MM-DD). Defaults to now if not provided."),
    user_id: str = Depends(get_current_user_id),
    settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Get sales summary statistics.

    By default, returns today's sales only. Use start_date and end_date
    parameters to specify a different date range.

    Returns summary statistics including:
    - revenue: Sum of the sale totals
    - sales: Number of sales
    - averageSale: Average sale total
    - itemsSold: Units sold
    - revenueByDate: Revenue per day of the range

    Args:
        start_date: Start date for the summary (optional, defaults to today)
        end_date: End date for the summary (optional, defaults to now)
        user_id: The authenticated user ID (injected)
        settings: Settings provider (injected)

    Returns:
        JSendResponse containing the summary statistics
    """
    try:
        parsed_start_date = parse_flexible_date(start_date) if start_date else None
        parsed_end_date = parse_flexible_date(end_date, is_end_date=True) if end_date else None

        statistics = await get_sales_summary(
            currency=await settings.currency(),
            start_date=parsed_start_date,
            end_date=parsed_end_date
        )

        return JSendResponse.success(statistics)
    except HTTPException as e:
        return JSendResponse.error(
            message=str(e.detail),
            code=e.status_code
        )
    except Exception as e:
        return JSendResponse.error(
            message=f"Failed to get summary: {str(e)}",
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.get("/income-expenses", response_model=JSendResponse[IncomeExpensesReport])
async def get_income_vs_expenses(
    period: str = Query("monthly", description="daily (this week), weekly (this month) or monthly (this year)"),
    user_id: str = Depends(get_current_user_id),
    settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Compare sales income with expenses, bucketed by day, week or month.

    Every bucket of the period is returned, including empty ones, with
    totals, profit and profit margin for the whole period.
    """
    try:
        report = await get_income_expenses(period, await settings.currency())
        return JSendResponse.success(report)
    except HTTPException as e:
        return JSendResponse.error(
            message=str(e.detail),
            code=e.status_code
        )
    except Exception as e:
        return JSendResponse.error(
            message=f"Failed to get income and expenses: {str(e)}",
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.get("/dashboard", response_model=JSendResponse[DashboardStats])
async def get_dashboard(
    user_id: str = Depends(get_current_user_id),
    settings: SettingsProvider = Depends(get_settings_provider)
):
    try:
        stats = await get_dashboard_stats(await settings.currency())
        return JSendResponse.success(stats)
    except HTTPException as e:
        return JSendResponse.error(
            message=str(e.detail),
            code=e.status_code
        )
    except Exception as e:
        return JSendResponse.error(
            message=f"Failed to get dashboard: {str(e)}",
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
