"""
This module contains the FastAPI routers for sales history endpoints.
"""
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Path, Depends
from starlette import status

from minimarket.auth.dependencies import get_current_user_id, require_admin
from minimarket.common.schemas import JSendResponse, MessageData
from minimarket.sales.schemas import ContinueSaleData, SaleEditRequest, SaleItemResponse, SalesData
from minimarket.sales.services import continue_sale, delete_sale, edit_sale, get_sale_detail, list_sales

router = APIRouter()


@router.get("", response_model=JSendResponse[SalesData])
async def list_sales_history(
        range: str = Query("7days", description="7days, 30days, thisMonth, lastMonth, thisYear, all or custom"),
        start_date: Optional[str] = Query(None, description="Start of a custom range: YYYY, YYYY-MM or YYYY-MM-DD"),
        end_date: Optional[str] = Query(None, description="End of a custom range: YYYY, YYYY-MM or YYYY-MM-DD"),
        page: int = Query(1, ge=1, description="Page number"),
        size: int = Query(50, ge=1, le=500, description="Items per page"),
        user_id: str = Depends(get_current_user_id)
):
    """
    Get the sales of a date range, newest first.

    Args:
        range: Named date range
        start_date: Lower bound when range is "custom"
        end_date: Upper bound when range is "custom"
        page: The page number (starts at 1)
        size: Number of sales per page
        user_id: The authenticated user ID (injected)

    Returns:
        JSendResponse containing the sales and pagination info
    """
    try:
        sales_data = await list_sales(range, start_date, end_date, page, size)
        return JSendResponse.success(sales_data)
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


@router.get("/{sale_id}", response_model=JSendResponse[SaleItemResponse])
async def get_sale(
        sale_id: str = Path(..., description="The ID of the sale to retrieve"),
        user_id: str = Depends(get_current_user_id)
):
    """
    Get a sale with its items.
    """
    try:
        sale = await get_sale_detail(sale_id)
        return JSendResponse.success(SaleItemResponse(item=sale))
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


@router.put("/{sale_id}", response_model=JSendResponse[SaleItemResponse])
async def update_sale(
        sale_edit: SaleEditRequest,
        sale_id: str = Path(..., description="The ID of the sale to correct"),
        admin: dict = Depends(require_admin)
):
    """
    Correct the items of a sale. Items left out of the body are removed.
    Only administrators can edit sales.

    Args:
        sale_edit: Surviving items with their quantities
        sale_id: The unique sale identifier
        admin: Profile of the administrator (injected)

    Returns:
        JSendResponse containing the corrected sale
    """
    try:
        sale = await edit_sale(sale_id, sale_edit.items)
        return JSendResponse.success(SaleItemResponse(item=sale))
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


@router.delete("/{sale_id}", response_model=JSendResponse[MessageData])
async def remove_sale(
        sale_id: str = Path(..., description="The ID of the sale to delete"),
        admin: dict = Depends(require_admin)
):
    """
    Delete a sale and restore the stock of its items.
    Only administrators can delete sales.
    """
    try:
        await delete_sale(sale_id)
        return JSendResponse.success(MessageData(message="Sale deleted successfully"))
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


@router.post("/{sale_id}/continue", response_model=JSendResponse[ContinueSaleData])
async def continue_sale_in_pos(
        sale_id: str = Path(..., description="The ID of the sale to continue"),
        user_id: str = Depends(get_current_user_id)
):
    """
    Hand a sale over to the caller's POS, to be loaded with POST /pos/resume.
    """
    try:
        return JSendResponse.success(await continue_sale(sale_id, user_id))
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
