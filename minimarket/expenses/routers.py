"""
Expense management routers.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from starlette import status

from minimarket.auth.dependencies import get_current_user_id, require_admin
from minimarket.common.schemas import JSendResponse, MessageData
from minimarket.settings.services import SettingsProvider, get_settings_provider
from .schemas import ExpenseCreate, ExpenseInDB, ExpensesData, ExpenseUpdate
from .services import create_expense, delete_expense, list_expenses, update_expense

router = APIRouter()


@router.get("", response_model=JSendResponse[ExpensesData])
async def get_expenses(
        range: str = Query("30days", description="7days, 30days, thisMonth, lastMonth, thisYear, all or custom"),
        start_date: Optional[str] = Query(None, description="Start of a custom range: YYYY, YYYY-MM or YYYY-MM-DD"),
        end_date: Optional[str] = Query(None, description="End of a custom range: YYYY, YYYY-MM or YYYY-MM-DD"),
        user_id: str = Depends(get_current_user_id),
        settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Get the expenses of a date range, newest first, with the total per category.

    Args:
        range: Named date range
        start_date: Lower bound when range is "custom"
        end_date: Upper bound when range is "custom"
        user_id: The authenticated user ID (injected)
        settings: Settings provider (injected)
    """
    try:
        expenses = await list_expenses(range, start_date, end_date, await settings.currency())
        return JSendResponse.success(expenses)
    except HTTPException as e:
        return JSendResponse.error(
            message=str(e.detail),
            code=e.status_code
        )
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.post("", response_model=JSendResponse[ExpenseInDB])
async def add_expense(
        expense: ExpenseCreate,
        user_id: str = Depends(get_current_user_id)
):
    """Record a new expense."""
    try:
        created = await create_expense(expense, user_id)
        return JSendResponse.success(created)
    except HTTPException as e:
        return JSendResponse.error(
            message=str(e.detail),
            code=e.status_code
        )
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.put("/{expense_id}", response_model=JSendResponse[ExpenseInDB])
async def edit_expense(
        expense_id: str = Path(..., description="The ID of the expense to update"),
        changes: ExpenseUpdate = ...,
        admin: dict = Depends(require_admin)
):
    try:
        updated = await update_expense(expense_id, changes)
        return JSendResponse.success(updated)
    except HTTPException as e:
        return JSendResponse.error(
            message=str(e.detail),
            code=e.status_code
        )
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@router.delete("/{expense_id}", response_model=JSendResponse[MessageData])
async def remove_expense(
        expense_id: str = Path(..., description="The ID of the expense to delete"),
        admin: dict = Depends(require_admin)
):
    """Delete an expense. Administrators only."""
    try:
        await delete_expense(expense_id)
        return JSendResponse.success(MessageData(message="Expense deleted successfully"))
    except HTTPException as e:
        return JSendResponse.error(
            message=str(e.detail),
            code=e.status_code
        )
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
