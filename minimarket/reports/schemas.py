"""
Schemas for reports operations.
"""
from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, Field


class DateRangeSchema(BaseModel):
    """Date range of a report."""
    start: str = Field(..., description="Start date in YYYY-MM-DD format")
    end: str = Field(..., description="End date in YYYY-MM-DD format")


class DataPointSchema(BaseModel):
    """Data point schema for daily data."""
    date: str = Field(..., description="Date in YYYY-MM-DD format")
    value: float = Field(..., description="Value for the date")


class TopProduct(BaseModel):
    productId: str
    productName: str
    quantity: int
    total: float


class PaymentMethodStats(BaseModel):
    paymentMethod: str
    count: int
    total: float


class CategoryStats(BaseModel):
    category: str
    count: int = Field(..., description="Units sold")
    total: float


class SummaryResponse(BaseModel):
    """Sales summary of a period."""
    currency: str = Field(..., description="Currency code")
    dateRange: DateRangeSchema = Field(..., description="Date range of the report")
    revenue: float = Field(..., description="Sum of the sale totals")
    formattedRevenue: str = Field(..., description="Revenue formatted in the store currency")
    sales: int = Field(..., description="Number of sales")
    averageSale: float = Field(..., description="Revenue divided by the number of sales")
    itemsSold: int = Field(..., description="Units sold across all sales")
    revenueByDate: List[DataPointSchema] = Field(..., description="Revenue for every day of the range")
    topProducts: List[TopProduct] = Field(default_factory=list, description="Ten best-selling products by revenue")
    paymentMethods: List[PaymentMethodStats] = Field(default_factory=list, description="Sales per payment method")
    categories: List[CategoryStats] = Field(default_factory=list, description="Units and revenue per category")
    date: datetime = Field(..., description="Local date time")


class IncomeExpensePoint(BaseModel):
    """Income and expenses of one day, week or month."""
    label: str
    income: float
    expenses: float
    profit: float


class IncomeExpensesReport(BaseModel):
    period: Literal["daily", "weekly", "monthly"]
    currency: str
    dateRange: DateRangeSchema
    points: List[IncomeExpensePoint]
    totalIncome: float
    totalExpenses: float
    profit: float
    profitMargin: float = Field(..., description="Profit as a percentage of income, 0 without income")


class DashboardStats(BaseModel):
    totalProducts: int
    lowStockCount: int
    totalSales: int
    totalRevenue: float
    formattedRevenue: str
