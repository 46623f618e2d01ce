"""
This module defines the Pydantic models used for product management.
These models are used for request and response validation and serialization.
"""

from typing import Optional, List

from pydantic import BaseModel, Field

from minimarket.common.schemas import TimestampMixin, PaginationResponse


class ProductBase(BaseModel):
    """
    Base model for product data that is common to create, update and response models.
    """
    name: str = Field(..., min_length=1)
    barcode: str = ""
    price: float = Field(..., ge=0)
    costPrice: float = Field(0, ge=0)
    stock: int = Field(0, ge=0)
    minStock: int = Field(0, ge=0)
    category: str = ""
    imageUrl: Optional[str] = None


class ProductCreate(ProductBase):
    """
    Represents the request data for creating a new product.
    """
    pass


class ProductUpdate(BaseModel):
    """
    Represents the request data for updating an existing product.
    All fields are optional as only provided fields will be updated.
    Stock is changed through the dedicated stock endpoints.
    """
    name: Optional[str] = Field(None, min_length=1)
    barcode: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    costPrice: Optional[float] = Field(None, ge=0)
    minStock: Optional[int] = Field(None, ge=0)
    category: Optional[str] = None
    imageUrl: Optional[str] = None


class ProductInDB(ProductBase, TimestampMixin):
    """
    Represents a product as stored in the database, including all metadata.
    """
    id: str

    @property
    def is_low_stock(self) -> bool:
        return self.stock < self.minStock


class ProductDetailData(BaseModel):
    """
    Container for a single product item.
    """
    item: ProductInDB


class ProductsData(PaginationResponse[ProductInDB]):
    """
    Represents a paginated list of products for response.
    """
    pass


class ProductListData(BaseModel):
    """
    Unpaginated product list (low stock, recent products).
    """
    items: List[ProductInDB]


class StockSet(BaseModel):
    """Absolute stock value from the stock adjustment dialog."""
    stock: int = Field(..., ge=0)


class StockIncrement(BaseModel):
    """Signed stock delta; the result may not drop below zero."""
    delta: int
