"""
Schemas for the point-of-sale cart and checkout.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from minimarket.products.schemas import ProductInDB
from minimarket.sales.schemas import PaymentMethod


class AddItemRequest(BaseModel):
    """Add one unit of a product to the cart."""
    productId: str


class ScanRequest(BaseModel):
    """Barcode read by the scanner, or text typed in the search box."""
    code: str = Field(..., min_length=1)


class UpdateQuantityRequest(BaseModel):
    """New quantity of a cart line; use the delete endpoint to drop a line."""
    quantity: int = Field(..., ge=1)


class PaymentMethodRequest(BaseModel):
    paymentMethod: PaymentMethod


class CheckoutRequest(BaseModel):
    """
    Checkout options. The payment method falls back to the one selected in the
    session; amountReceived is only used to compute change.
    """
    paymentMethod: Optional[PaymentMethod] = None
    amountReceived: Optional[float] = Field(None, ge=0)


class CartLineSchema(BaseModel):
    productId: str
    name: str
    barcode: str = ""
    unitPrice: float
    stock: int
    quantity: int
    subtotal: float


class CartData(BaseModel):
    """Current state of a cashier's cart."""
    items: List[CartLineSchema]
    total: float
    formattedTotal: str
    itemCount: int
    paymentMethod: str
    editingSaleId: Optional[str] = None


class ScanResult(BaseModel):
    """
    Outcome of a scan: either the product was added, or the products matching
    the typed text are returned for manual selection.
    """
    added: bool
    message: str
    cart: CartData
    matches: List[ProductInDB] = Field(default_factory=list)


class ChangeData(BaseModel):
    total: float
    amountReceived: float
    change: float
    formattedChange: str


class ReceiptData(BaseModel):
    """Receipt of a committed sale."""
    saleId: str
    items: List[CartLineSchema]
    total: float
    formattedTotal: str
    paymentMethod: str
    date: datetime
    updated: bool = False
    amountReceived: Optional[float] = None
    change: Optional[float] = None


class SkippedLine(BaseModel):
    productId: str
    name: str
    reason: str


class RepeatSaleResult(BaseModel):
    cart: CartData
    skipped: List[SkippedLine] = Field(default_factory=list)


class PendingSaleItem(BaseModel):
    productId: str
    quantity: int = Field(..., ge=1)


class PendingSale(BaseModel):
    """Sale handed over from the sales history to be continued in the POS."""
    saleId: Optional[str] = None
    items: List[PendingSaleItem]
    paymentMethod: Optional[PaymentMethod] = None


class ResumeResult(BaseModel):
    cart: CartData
    saleId: Optional[str] = None
    missingProductIds: List[str] = Field(default_factory=list)
    message: str = "The selected sale has been loaded into the cart"
