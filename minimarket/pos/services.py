"""
This module contains the business logic of the point of sale: cart
operations, checkout commit and continuing a previously saved sale.
"""
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import HTTPException, status

from minimarket.common.cache import invalidate_product_listings
from minimarket.common.database import (
    SALES_COLLECTION, SALE_ITEMS_COLLECTION, get_firestore_client, run_in_transaction
)
from minimarket.common.utils import format_currency
from minimarket.pos.cart import CartLine
from minimarket.pos.exceptions import (
    CashierRequiredError, EmptyCartError, PendingSaleNotFound, SaleNotFound, StockLimitExceeded
)
from minimarket.pos.handoff import consume_pending_sale
from minimarket.pos.schemas import (
    CartData, CartLineSchema, ChangeData, ReceiptData, RepeatSaleResult, ResumeResult,
    ScanResult, SkippedLine
)
from minimarket.pos.session import CheckoutSession, CompletedSale
from minimarket.products.services import (
    apply_stock_deltas, find_product_by_barcode, get_product_by_id, get_products_by_ids,
    read_products_for_update, search_products
)
from minimarket.sales.schemas import PaymentMethod, SaleStatus

logger = logging.getLogger(__name__)


def line_to_schema(line: CartLine) -> CartLineSchema:
    return CartLineSchema(
        productId=line.product_id,
        name=line.name,
        barcode=line.barcode,
        unitPrice=line.unit_price,
        stock=line.stock,
        quantity=line.quantity,
        subtotal=line.subtotal
    )


def build_cart_data(session: CheckoutSession, currency: str) -> CartData:
    """
    Serialize a session's cart for responses.
    """
    cart = session.cart
    return CartData(
        items=[line_to_schema(line) for line in cart.lines()],
        total=cart.total(),
        formattedTotal=format_currency(cart.total(), currency),
        itemCount=cart.item_count(),
        paymentMethod=session.payment_method,
        editingSaleId=session.editing_sale_id
    )


def _add_one(session: CheckoutSession, product) -> CartLine:
    available = product.stock + session.committed.get(product.id, 0)
    return session.cart.add_quantity(product, 1, available=available)


async def add_product_to_cart(session: CheckoutSession, product_id: str) -> CartLine:
    """
    Add one unit of a product, checking it against the product's current stock.

    Raises:
        HTTPException: 404 if the product does not exist
        StockLimitExceeded: If the cart already holds all units in stock
    """
    product = await get_product_by_id(product_id)
    return _add_one(session, product)


async def scan_code(session: CheckoutSession, code: str, currency: str) -> ScanResult:
    """
    Handle input from the barcode field.

    An exact barcode match adds the product to the cart. Otherwise the
    products whose name or barcode contain the text are returned so the
    cashier can pick one.
    """
    product = await find_product_by_barcode(code)
    if product:
        _add_one(session, product)
        return ScanResult(
            added=True,
            message=f"{product.name} added to the cart",
            cart=build_cart_data(session, currency)
        )

    matches = await search_products(code, page=1, size=50)
    return ScanResult(
        added=False,
        message="No exact barcode match. Showing products matching your search term",
        cart=build_cart_data(session, currency),
        matches=matches.items
    )


def calculate_change(session: CheckoutSession, amount_received: float, currency: str) -> ChangeData:
    change = session.cart.change_due(amount_received)
    return ChangeData(
        total=session.cart.total(),
        amountReceived=amount_received,
        change=change,
        formattedChange=format_currency(change, currency)
    )


def _sale_item_data(sale_id: str, line: CartLine) -> dict:
    return {
        "saleId": sale_id,
        "productId": line.product_id,
        "quantity": line.quantity,
        "price": line.unit_price,
        "subtotal": line.subtotal,
    }


def _require_products(snapshots: dict, lines: List[CartLine]) -> None:
    for line in lines:
        if line.product_id not in snapshots:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Product with ID {line.product_id} not found"
            )


def _commit_new_sale(transaction_obj, sale_ref, item_refs, cashier_id: str,
                     lines: List[CartLine], total: float, payment_method: str, now: datetime) -> None:
    """
    Insert the sale header and its items and take the units off the shelf.
    All reads happen before the first write.
    """
    snapshots = read_products_for_update(transaction_obj, [line.product_id for line in lines])
    _require_products(snapshots, lines)

    apply_stock_deltas(transaction_obj, snapshots, {line.product_id: -line.quantity for line in lines})

    transaction_obj.set(sale_ref, {
        "cashierId": cashier_id,
        "total": total,
        "paymentMethod": payment_method,
        "status": SaleStatus.COMPLETED.value,
        "createdAt": now,
        "updatedAt": now,
    })
    for item_ref, line in zip(item_refs, lines):
        transaction_obj.set(item_ref, _sale_item_data(sale_ref.id, line))


def _commit_resumed_sale(transaction_obj, sale_id: str, lines: List[CartLine],
                         total: float, payment_method: str, now: datetime) -> None:
    """
    Rewrite a persisted sale so it matches the cart.

    Items are matched to cart lines by product id: unmatched items are
    deleted, matched ones updated and new lines inserted. Stock moves by the
    difference between the committed and the new quantities, which is the
    same as restoring every original item and taking the cart off the shelf.
    """
    db = get_firestore_client()
    sale_ref = db.collection(SALES_COLLECTION).document(sale_id)
    sale_doc = sale_ref.get(transaction=transaction_obj)
    if not sale_doc.exists:
        raise SaleNotFound(sale_id)

    original_items = list(
        db.collection(SALE_ITEMS_COLLECTION)
        .where("saleId", "==", sale_id)
        .stream(transaction=transaction_obj)
    )

    deltas = defaultdict(int)
    for item_doc in original_items:
        item = item_doc.to_dict()
        deltas[item["productId"]] += int(item.get("quantity", 0))
    for line in lines:
        deltas[line.product_id] -= line.quantity

    snapshots = read_products_for_update(transaction_obj, deltas.keys())
    _require_products(snapshots, lines)
    apply_stock_deltas(transaction_obj, snapshots, deltas)

    pending = {line.product_id: line for line in lines}
    for item_doc in original_items:
        line = pending.pop(item_doc.to_dict()["productId"], None)
        if line is None:
            transaction_obj.delete(item_doc.reference)
        else:
            transaction_obj.update(item_doc.reference, {
                "quantity": line.quantity,
                "price": line.unit_price,
                "subtotal": line.subtotal,
            })
    for line in pending.values():
        transaction_obj.set(db.collection(SALE_ITEMS_COLLECTION).document(), _sale_item_data(sale_id, line))

    transaction_obj.update(sale_ref, {
        "total": total,
        "paymentMethod": payment_method,
        "status": SaleStatus.COMPLETED.value,
        "updatedAt": now,
    })


async def checkout(
    session: CheckoutSession,
    currency: str,
    payment_method: Optional[PaymentMethod] = None,
    amount_received: Optional[float] = None
) -> ReceiptData:
    """
    Commit the cart as a sale.

    A fresh cart creates a new sale; a cart resumed from an existing sale
    rewrites that sale in place. Either way the sale, its items and the stock
    are written in one transaction, so a failure leaves the store untouched.

    Args:
        session: The cashier's checkout session
        currency: Currency code used on the receipt
        payment_method: Overrides the method selected in the session
        amount_received: Cash handed over, to compute change

    Returns:
        ReceiptData for the committed sale

    Raises:
        EmptyCartError: If there is nothing to sell
        CashierRequiredError: If the session has no cashier
        StockLimitExceeded: If a product no longer has enough stock
        SaleNotFound: If the resumed sale was deleted meanwhile
    """
    cart = session.cart
    if cart.is_empty:
        raise EmptyCartError()
    if not session.cashier_id:
        raise CashierRequiredError()

    if payment_method is not None:
        session.payment_method = payment_method.value

    lines = cart.lines()
    total = cart.total()
    now = datetime.now(timezone.utc)
    editing_sale_id = session.editing_sale_id

    try:
        if editing_sale_id:
            run_in_transaction(
                _commit_resumed_sale, editing_sale_id, lines, total, session.payment_method, now
            )
            sale_id = editing_sale_id
        else:
            db = get_firestore_client()
            sale_ref = db.collection(SALES_COLLECTION).document()
            item_refs = [db.collection(SALE_ITEMS_COLLECTION).document() for _ in lines]
            run_in_transaction(
                _commit_new_sale, sale_ref, item_refs, session.cashier_id, lines, total,
                session.payment_method, now
            )
            sale_id = sale_ref.id
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Error processing sale")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process sale: {str(exc)}"
        )

    logger.info("Sale %s %s by %s, total %.2f", sale_id,
                "updated" if editing_sale_id else "completed", session.cashier_id, total)

    session.last_completed_sale = CompletedSale(
        id=sale_id,
        lines=lines,
        total=total,
        payment_method=session.payment_method,
        date=now
    )
    receipt = ReceiptData(
        saleId=sale_id,
        items=[line_to_schema(line) for line in lines],
        total=total,
        formattedTotal=format_currency(total, currency),
        paymentMethod=session.payment_method,
        date=now,
        updated=editing_sale_id is not None,
        amountReceived=amount_received,
        change=cart.change_due(amount_received) if amount_received is not None else None
    )

    session.reset()
    await invalidate_product_listings()
    return receipt


def build_receipt(session: CheckoutSession, currency: str) -> Optional[ReceiptData]:
    sale = session.last_completed_sale
    if sale is None:
        return None
    return ReceiptData(
        saleId=sale.id,
        items=[line_to_schema(line) for line in sale.lines],
        total=sale.total,
        formattedTotal=format_currency(sale.total, currency),
        paymentMethod=sale.payment_method,
        date=sale.date
    )


async def repeat_last_sale(session: CheckoutSession, currency: str) -> RepeatSaleResult:
    """
    Put the lines of the last completed sale back into the cart.

    Each line is added with its original quantity at the product's current
    price; lines whose product is gone or short on stock are reported instead.

    Raises:
        HTTPException: 404 when no sale was completed in this session
    """
    sale = session.last_completed_sale
    if sale is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="There is no previous sale to repeat"
        )

    products = await get_products_by_ids(line.product_id for line in sale.lines)
    skipped = []
    for line in sale.lines:
        product = products.get(line.product_id)
        if product is None:
            skipped.append(SkippedLine(productId=line.product_id, name=line.name, reason="Product not found"))
            continue
        try:
            session.cart.add_quantity(product, line.quantity)
        except StockLimitExceeded:
            skipped.append(SkippedLine(
                productId=line.product_id, name=product.name,
                reason=f"Not enough stock for {product.name}"
            ))

    session.payment_method = sale.payment_method
    return RepeatSaleResult(cart=build_cart_data(session, currency), skipped=skipped)


async def resume_pending_sale(session: CheckoutSession, user_id: str, currency: str) -> ResumeResult:
    """
    Seed the cart from the sale handed over by the sales history.

    The payload is consumed whether or not loading succeeds. For a persisted
    sale, each line may use the current stock plus the units that sale
    already holds, since those go back to the shelf when it is committed.

    Raises:
        PendingSaleNotFound: If nothing was handed over
    """
    pending_sale = await consume_pending_sale(user_id)
    if pending_sale is None:
        raise PendingSaleNotFound()

    products = await get_products_by_ids(item.productId for item in pending_sale.items)

    session.reset()
    session.editing_sale_id = pending_sale.saleId
    if pending_sale.paymentMethod:
        session.payment_method = pending_sale.paymentMethod.value

    committed = defaultdict(int)
    if pending_sale.saleId:
        for item in pending_sale.items:
            committed[item.productId] += item.quantity
    session.committed = dict(committed)

    missing = []
    for item in pending_sale.items:
        product = products.get(item.productId)
        if product is None:
            missing.append(item.productId)
            continue
        available = product.stock + committed[item.productId]
        session.cart.add_quantity(product, item.quantity, available=available)

    logger.info("Loaded pending sale %s with %d lines for %s",
                pending_sale.saleId, len(session.cart), user_id)
    return ResumeResult(
        cart=build_cart_data(session, currency),
        saleId=pending_sale.saleId,
        missingProductIds=missing
    )
