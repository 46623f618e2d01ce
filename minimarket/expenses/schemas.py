"""
Models for recording shop expenses.
"""
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from minimarket.common.schemas import TimestampMixin

ExpenseCategory = Literal[
    "utilities", "rent", "salary", "inventory", "maintenance", "marketing", "office", "other"
]


def _require_text(value):
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("description must not be blank")
    return value


class ExpenseCreate(BaseModel):
    description: str
    amount: float = Field(..., gt=0)
    category: ExpenseCategory = "other"

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, value):
        return _require_text(value)


class ExpenseUpdate(BaseModel):
    """Only the fields sent are changed."""
    description: Optional[str] = None
    amount: Optional[float] = Field(None, gt=0)
    category: Optional[ExpenseCategory] = None

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, value):
        return _require_text(value)


class ExpenseInDB(TimestampMixin):
    id: str
    description: str
    amount: float
    category: str = "other"
    createdBy: Optional[str] = None


class ExpensesData(BaseModel):
    """Expenses of a period with their totals."""
    items: List[ExpenseInDB]
    total: float
    formattedTotal: str
    byCategory: Dict[str, float] = Field(default_factory=dict)
