from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from starlette import status

from minimarket.auth.dependencies import get_current_user_id
from minimarket.common.schemas import JSendResponse
from minimarket.pos.schemas import (
    AddItemRequest, CartData, ChangeData, CheckoutRequest, PaymentMethodRequest, ReceiptData,
    RepeatSaleResult, ResumeResult, ScanRequest, ScanResult, UpdateQuantityRequest
)
from minimarket.pos.services import (
    add_product_to_cart, build_cart_data, build_receipt, calculate_change, checkout,
    repeat_last_sale, resume_pending_sale, scan_code
)
from minimarket.pos.session import CheckoutSession, session_registry
from minimarket.settings.services import SettingsProvider, get_settings_provider

router = APIRouter()


async def get_checkout_session(user_id: str = Depends(get_current_user_id)) -> CheckoutSession:
    """
    Dependency returning the checkout session of the signed-in cashier.
    """
    return session_registry.get(user_id)


def _error(e: Exception) -> JSendResponse:
    if isinstance(e, HTTPException):
        return JSendResponse.error(message=str(e.detail), code=e.status_code)
    return JSendResponse.error(message=str(e), code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.get("/cart", response_model=JSendResponse[CartData])
async def get_cart(
        session: CheckoutSession = Depends(get_checkout_session),
        settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Get the cart of the current cashier.
    """
    try:
        return JSendResponse.success(build_cart_data(session, await settings.currency()))
    except Exception as e:
        return _error(e)


@router.post("/cart/items", response_model=JSendResponse[CartData])
async def add_item(
        item: AddItemRequest,
        session: CheckoutSession = Depends(get_checkout_session),
        settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Add one unit of a product to the cart.

    Args:
        item: The product to add
        session: Checkout session of the cashier (injected)
        settings: Settings provider (injected)

    Returns:
        JSendResponse containing the updated cart, or a 409 error when the
        cart already holds every unit in stock
    """
    try:
        await add_product_to_cart(session, item.productId)
        return JSendResponse.success(build_cart_data(session, await settings.currency()))
    except Exception as e:
        return _error(e)


@router.post("/cart/scan", response_model=JSendResponse[ScanResult])
async def scan(
        scan_request: ScanRequest,
        session: CheckoutSession = Depends(get_checkout_session),
        settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Add the product carrying the scanned barcode, or list the products
    matching the typed text.
    """
    try:
        result = await scan_code(session, scan_request.code.strip(), await settings.currency())
        return JSendResponse.success(result)
    except Exception as e:
        return _error(e)


@router.put("/cart/items/{product_id}", response_model=JSendResponse[CartData])
async def update_item_quantity(
        product_id: str,
        quantity_update: UpdateQuantityRequest,
        session: CheckoutSession = Depends(get_checkout_session),
        settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Set the quantity of a cart line.
    """
    try:
        session.cart.update_quantity(product_id, quantity_update.quantity)
        return JSendResponse.success(build_cart_data(session, await settings.currency()))
    except Exception as e:
        return _error(e)


@router.delete("/cart/items/{product_id}", response_model=JSendResponse[CartData])
async def remove_item(
        product_id: str,
        session: CheckoutSession = Depends(get_checkout_session),
        settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Remove a line from the cart. Removing a product that is not in the cart
    leaves it unchanged.
    """
    try:
        session.cart.remove_item(product_id)
        return JSendResponse.success(build_cart_data(session, await settings.currency()))
    except Exception as e:
        return _error(e)


@router.post("/cart/void-last", response_model=JSendResponse[CartData])
async def void_last_item(
        session: CheckoutSession = Depends(get_checkout_session),
        settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Remove the most recently added line. Does nothing on an empty cart.
    """
    try:
        session.cart.void_last_item()
        return JSendResponse.success(build_cart_data(session, await settings.currency()))
    except Exception as e:
        return _error(e)


@router.delete("/cart", response_model=JSendResponse[CartData])
async def clear_cart(
        session: CheckoutSession = Depends(get_checkout_session),
        settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Empty the cart and drop any resumed sale.
    """
    try:
        session.reset()
        return JSendResponse.success(build_cart_data(session, await settings.currency()))
    except Exception as e:
        return _error(e)


@router.put("/cart/payment-method", response_model=JSendResponse[CartData])
async def set_payment_method(
        payment: PaymentMethodRequest,
        session: CheckoutSession = Depends(get_checkout_session),
        settings: SettingsProvider = Depends(get_settings_provider)
):
    try:
        session.payment_method = payment.paymentMethod.value
        return JSendResponse.success(build_cart_data(session, await settings.currency()))
    except Exception as e:
        return _error(e)


@router.get("/cart/change", response_model=JSendResponse[ChangeData])
async def get_change(
        amount_received: float = Query(..., ge=0, description="Cash handed over by the customer"),
        session: CheckoutSession = Depends(get_checkout_session),
        settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Compute the change to hand back for the current cart.
    """
    try:
        return JSendResponse.success(calculate_change(session, amount_received, await settings.currency()))
    except Exception as e:
        return _error(e)


@router.post("/checkout", response_model=JSendResponse[ReceiptData])
async def checkout_cart(
        checkout_request: Optional[CheckoutRequest] = None,
        session: CheckoutSession = Depends(get_checkout_session),
        settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Commit the cart as a sale and return its receipt.

    Args:
        checkout_request: Optional payment method and amount received
        session: Checkout session of the cashier (injected)
        settings: Settings provider (injected)

    Returns:
        JSendResponse containing the receipt. The cart is emptied only when
        the sale was committed.
    """
    checkout_request = checkout_request or CheckoutRequest()
    try:
        receipt = await checkout(
            session,
            await settings.currency(),
            payment_method=checkout_request.paymentMethod,
            amount_received=checkout_request.amountReceived
        )
        return JSendResponse.success(receipt)
    except Exception as e:
        return _error(e)


@router.get("/last-sale", response_model=JSendResponse[ReceiptData])
async def get_last_sale(
        session: CheckoutSession = Depends(get_checkout_session),
        settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Get the receipt of the last sale completed in this session.
    """
    try:
        receipt = build_receipt(session, await settings.currency())
        if receipt is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No sale has been completed yet"
            )
        return JSendResponse.success(receipt)
    except Exception as e:
        return _error(e)


@router.post("/repeat-last-sale", response_model=JSendResponse[RepeatSaleResult])
async def repeat_sale(
        session: CheckoutSession = Depends(get_checkout_session),
        settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Add the lines of the last completed sale to the cart again.
    """
    try:
        return JSendResponse.success(await repeat_last_sale(session, await settings.currency()))
    except Exception as e:
        return _error(e)


@router.post("/resume", response_model=JSendResponse[ResumeResult])
async def resume_sale(
        user_id: str = Depends(get_current_user_id),
        settings: SettingsProvider = Depends(get_settings_provider)
):
    """
    Load the sale handed over from the sales history into the cart.
    """
    try:
        session = session_registry.get(user_id)
        return JSendResponse.success(await resume_pending_sale(session, user_id, await settings.currency()))
    except Exception as e:
        return _error(e)
