"""
Schemas for sales history and sale correction operations.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from minimarket.common.schemas import TimestampMixin, PaginationResponse


class PaymentMethod(str, Enum):
    """Payment methods accepted at the till."""
    CASH = "cash"
    CARD = "card"
    MOBILE = "mobile"


class SaleStatus(str, Enum):
    """Lifecycle of a persisted sale. Deleted sales are removed outright."""
    COMPLETED = "completed"
    EDITED = "edited"


class SaleInDB(TimestampMixin):
    """Sale header as stored."""
    id: str
    cashierId: str
    total: float
    paymentMethod: str
    status: SaleStatus = SaleStatus.COMPLETED


class SaleSummary(SaleInDB):
    """Sale row of the history list."""
    cashierName: str = "Unknown"


class SaleItemInDB(BaseModel):
    """One persisted line of a sale."""
    id: str
    saleId: str
    productId: str
    quantity: int
    price: float
    subtotal: float


class SaleItemDetail(SaleItemInDB):
    """Sale line with the product name resolved for display."""
    productName: str = "Unknown Product"
    productStock: Optional[int] = None


class SaleDetail(SaleSummary):
    """A sale together with its items."""
    items: List[SaleItemDetail]


class SaleItemResponse(BaseModel):
    """
    Wrapper for single sale response.
    """
    item: SaleDetail


class SalesData(PaginationResponse[SaleSummary]):
    """
    Represents a paginated list of sales.
    """
    pass


class SaleItemEdit(BaseModel):
    """Surviving line of an edited sale and its corrected quantity."""
    id: str
    quantity: int


class SaleEditRequest(BaseModel):
    """
    Corrected lines of a sale. Items of the sale that are not listed are removed.
    """
    items: List[SaleItemEdit] = Field(default_factory=list)


class ContinueSaleData(BaseModel):
    """Confirmation that a sale is waiting to be opened in the POS."""
    saleId: str
    itemCount: int
    message: str = "Sale is being loaded in the POS page"
