"""
Errors raised by the cart engine and the checkout, resume and sale edit flows.

They are HTTPException subclasses so routers report them like any other
service failure.
"""
from typing import Optional

from fastapi import HTTPException, status


class StockLimitExceeded(HTTPException):
    """A quantity would exceed the stock on hand."""

    def __init__(self, product_id: str, available: int, product_name: Optional[str] = None):
        self.product_id = product_id
        self.available = available
        self.product_name = product_name
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Stock limit reached: only {available} items of {product_name or product_id} available in stock"
        )


class CartItemNotFound(HTTPException):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product {product_id} is not in the cart"
        )


class EmptyCartError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty cart: please add items to the cart before checkout"
        )


class CashierRequiredError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="A signed-in cashier is required to complete a sale"
        )


class SaleNotFound(HTTPException):
    def __init__(self, sale_id: str):
        self.sale_id = sale_id
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Sale with ID {sale_id} not found"
        )


class InvalidSaleEdit(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class PendingSaleNotFound(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="There is no pending sale to continue"
        )


class TransientStorageUnavailable(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Transient storage is unavailable, the sale cannot be handed over to the POS"
        )
