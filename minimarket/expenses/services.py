"""
Services for recording and listing expenses.
"""
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import HTTPException
from google.cloud.firestore import Query

from minimarket.common.database import EXPENSES_COLLECTION, get_firestore_client
from minimarket.common.dates import resolve_date_range
from minimarket.common.utils import format_currency
from .schemas import ExpenseCreate, ExpenseInDB, ExpensesData, ExpenseUpdate

logger = logging.getLogger(__name__)


def query_expenses(start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[ExpenseInDB]:
    """
    Expenses created within the bounds, newest first.
    """
    db = get_firestore_client()
    query = db.collection(EXPENSES_COLLECTION)
    if start:
        query = query.where("createdAt", ">=", start)
    if end:
        query = query.where("createdAt", "<=", end)
    return [
        ExpenseInDB(id=doc.id, **doc.to_dict())
        for doc in query.order_by("createdAt", direction=Query.DESCENDING).stream()
    ]


async def list_expenses(
    range_name: str = "30days",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    currency: str = "MAD"
) -> ExpensesData:
    """
    List the expenses of a named date range with the total per category.

    Args:
        range_name: Same names as the sales history filter
        start_date: Lower bound when range_name is "custom"
        end_date: Upper bound when range_name is "custom"
        currency: Used to format the total

    Raises:
        HTTPException: 400 for an unknown range or unreadable dates
    """
    start, end = resolve_date_range(range_name, start_date, end_date)
    try:
        expenses = query_expenses(start, end)
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Failed to load expenses: {str(exc)}")

    by_category = defaultdict(float)
    for expense in expenses:
        by_category[expense.category] += expense.amount
    total = sum(by_category.values())

    return ExpensesData(
        items=expenses,
        total=total,
        formattedTotal=format_currency(total, currency),
        byCategory=dict(by_category)
    )


async def get_expense(expense_id: str) -> ExpenseInDB:
    db = get_firestore_client()
    doc = db.collection(EXPENSES_COLLECTION).document(expense_id).get()
    if not doc.exists:
        raise HTTPException(status_code=404, detail=f"Expense with ID {expense_id} not found")
    return ExpenseInDB(id=doc.id, **doc.to_dict())


async def create_expense(expense: ExpenseCreate, user_id: str) -> ExpenseInDB:
    """Record an expense on behalf of the signed-in user."""
    now = datetime.now(timezone.utc)
    expense_data = {**expense.model_dump(), "createdBy": user_id, "createdAt": now, "updatedAt": now}
    try:
        db = get_firestore_client()
        expense_ref = db.collection(EXPENSES_COLLECTION).document()
        expense_ref.set(expense_data)
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(exc)}")

    logger.info("User %s recorded expense %s of %.2f", user_id, expense_ref.id, expense.amount)
    return ExpenseInDB(id=expense_ref.id, **expense_data)


async def update_expense(expense_id: str, changes: ExpenseUpdate) -> ExpenseInDB:
    """
    Change the description, amount or category of an expense.

    Raises:
        HTTPException: 404 if the expense does not exist
    """
    existing = await get_expense(expense_id)

    update_data = {k: v for k, v in changes.model_dump().items() if v is not None}
    update_data["updatedAt"] = datetime.now(timezone.utc)
    try:
        db = get_firestore_client()
        db.collection(EXPENSES_COLLECTION).document(expense_id).update(update_data)
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(exc)}")

    return existing.model_copy(update=update_data)


async def delete_expense(expense_id: str) -> bool:
    await get_expense(expense_id)

    try:
        db = get_firestore_client()
        db.collection(EXPENSES_COLLECTION).document(expense_id).delete()
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(exc)}")

    logger.info("Deleted expense %s", expense_id)
    return True
