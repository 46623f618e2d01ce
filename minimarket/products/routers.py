from fastapi import APIRouter, HTTPException, Query, Path, Depends
from starlette import status

from minimarket.auth.dependencies import get_current_user_id, require_admin
from minimarket.common.schemas import JSendResponse, MessageData
from minimarket.products.schemas import (
    ProductInDB, ProductsData, ProductCreate, ProductUpdate, ProductDetailData, ProductListData,
    StockIncrement, StockSet
)
from minimarket.products.services import (
    get_products, get_product_by_id, create_product, update_product, delete_product,
    search_products as search_products_service, find_product_by_barcode, get_low_stock_products,
    get_recent_products, increment_stock, set_stock
)

router = APIRouter()


@router.get("", response_model=JSendResponse[ProductsData])
async def list_products(
        page: int = Query(1, ge=1, description="Page number"),
        size: int = Query(100, ge=1, le=1000, description="Items per page"),
        in_stock_only: bool = Query(True, description="Hide products with no stock, as the POS grid does"),
        user_id: str = Depends(get_current_user_id)
):
    """
    Get a list of products ordered by name, with pagination.

    Args:
        page: The page number (starts at 1)
        size: Number of products per page (max 1000)
        in_stock_only: Only list products with stock on hand
        user_id: The authenticated user ID (injected)

    Returns:
        JSendResponse containing products data and pagination info
    """
    try:
        products_data = await get_products(page, size, in_stock_only)
        return JSendResponse.success(products_data)
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


@router.get("/search", response_model=JSendResponse[ProductsData])
async def search_products(
        q: str = Query(..., description="Search query"),
        page: int = Query(1, ge=1, description="Page number"),
        size: int = Query(100, ge=1, le=1000, description="Items per page"),
        user_id: str = Depends(get_current_user_id)
):
    """
    Search for products by name or barcode.

    Args:
        q: The search query
        page: The page number (starts at 1)
        size: Number of products per page (max 1000)
        user_id: The authenticated user ID (injected)

    Returns:
        JSendResponse containing a list of matching products
    """
    try:
        products_data = await search_products_service(q, page, size)
        return JSendResponse.success(products_data)
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


@router.get("/barcode/{barcode}", response_model=JSendResponse[ProductDetailData])
async def get_product_by_barcode(
        barcode: str = Path(..., description="Exact barcode to look up"),
        user_id: str = Depends(get_current_user_id)
):
    """
    Get the in-stock product carrying a barcode.
    """
    try:
        product = await find_product_by_barcode(barcode)
        if product is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No product in stock with barcode {barcode}"
            )
        return JSendResponse.success(ProductDetailData(item=product))
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


@router.get("/low-stock", response_model=JSendResponse[ProductListData])
async def list_low_stock_products(user_id: str = Depends(get_current_user_id)):
    """
    Get the products whose stock fell below their minimum stock.
    """
    try:
        return JSendResponse.success(ProductListData(items=await get_low_stock_products()))
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


@router.get("/recent", response_model=JSendResponse[ProductListData])
async def list_recent_products(user_id: str = Depends(get_current_user_id)):
    """
    Get the in-stock products sold in the latest sales, for quick access at the till.
    """
    try:
        return JSendResponse.success(ProductListData(items=await get_recent_products()))
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


@router.get("/{product_id}", response_model=JSendResponse[ProductDetailData])
async def get_product(
        product_id: str = Path(..., description="The ID of the product to retrieve"),
        user_id: str = Depends(get_current_user_id)
):
    """
    Get a product by ID.

    Args:
        product_id: The unique product identifier
        user_id: The authenticated user ID (injected)

    Returns:
        JSendResponse containing the product data
    """
    try:
        product = await get_product_by_id(product_id)
        return JSendResponse.success(ProductDetailData(item=product))
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


@router.post("", response_model=JSendResponse[ProductInDB])
async def create_product_endpoint(
    product_data: ProductCreate,
    admin: dict = Depends(require_admin)
):
    """
    Create a new product.

    Args:
        product_data: The product data to create
        admin: Profile of the administrator (injected)

    Returns:
        JSendResponse containing the created product
    """
    try:
        created_product = await create_product(product_data.model_dump())
        return JSendResponse.success(created_product)
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


@router.put("/{product_id}", response_model=JSendResponse[ProductInDB])
async def update_existing_product(
        product_id: str = Path(..., description="The ID of the product to update"),
        product_data: ProductUpdate = ...,
        admin: dict = Depends(require_admin)
):
    """
    Update an existing product.

    Args:
        product_id: The unique product identifier
        product_data: The product data to update
        admin: Profile of the administrator (injected)

    Returns:
        JSendResponse containing the updated product
    """
    try:
        # Filter out None values to avoid overwriting with nulls
        data = {k: v for k, v in product_data.model_dump().items() if v is not None}

        updated_product = await update_product(product_id, data)
        return JSendResponse.success(updated_product)
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


@router.delete("/{product_id}", response_model=JSendResponse[MessageData])
async def delete_existing_product(
        product_id: str = Path(..., description="The ID of the product to delete"),
        admin: dict = Depends(require_admin)
):
    """
    Delete a product by ID.
    """
    try:
        await delete_product(product_id)
        return JSendResponse.success(MessageData(message="Product deleted successfully"))
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


@router.put("/{product_id}/stock", response_model=JSendResponse[ProductInDB])
async def set_product_stock(
        stock_data: StockSet,
        product_id: str = Path(..., description="The ID of the product to adjust"),
        user_id: str = Depends(get_current_user_id)
):
    """
    Overwrite the stock of a product with a counted value.
    """
    try:
        return JSendResponse.success(await set_stock(product_id, stock_data.stock))
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


@router.post("/{product_id}/stock/increment", response_model=JSendResponse[ProductInDB])
async def increment_product_stock(
        stock_data: StockIncrement,
        product_id: str = Path(..., description="The ID of the product to adjust"),
        user_id: str = Depends(get_current_user_id)
):
    """
    Change the stock of a product by a signed delta.
    The stock never drops below zero; such a request fails with 409.
    """
    try:
        return JSendResponse.success(await increment_stock(product_id, stock_data.delta))
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
