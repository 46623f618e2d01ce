"""
This module contains the business logic for the sales history: listing,
correcting and deleting persisted sales, and handing a sale over to the POS.
"""
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from fastapi import HTTPException
from google.cloud.firestore import Query

from minimarket.common.cache import invalidate_product_listings
from minimarket.common.database import (
    PROFILES_COLLECTION, SALES_COLLECTION, SALE_ITEMS_COLLECTION,
    get_firestore_client, run_in_transaction
)
from minimarket.common.dates import resolve_date_range
from minimarket.pos.exceptions import InvalidSaleEdit, SaleNotFound
from minimarket.pos.handoff import save_pending_sale
from minimarket.pos.schemas import PendingSale, PendingSaleItem
from minimarket.products.services import (
    apply_stock_deltas, get_products_by_ids, read_products_for_update
)
from minimarket.sales.schemas import (
    ContinueSaleData, PaymentMethod, SaleDetail, SaleItemDetail, SaleItemEdit, SaleStatus,
    SaleSummary, SalesData
)

logger = logging.getLogger(__name__)


def query_sales(start: Optional[datetime] = None, end: Optional[datetime] = None) -> List:
    """
    Stream sale documents created within the bounds, newest first.
    """
    db = get_firestore_client()
    query = db.collection(SALES_COLLECTION)
    if start:
        query = query.where("createdAt", ">=", start)
    if end:
        query = query.where("createdAt", "<=", end)
    return list(query.order_by("createdAt", direction=Query.DESCENDING).stream())


def query_sale_items(sale_ids: Iterable[str]) -> Dict[str, List[dict]]:
    """
    Load the items of several sales, grouped by sale id.
    """
    db = get_firestore_client()
    items = defaultdict(list)
    for sale_id in dict.fromkeys(sale_ids):
        for doc in db.collection(SALE_ITEMS_COLLECTION).where("saleId", "==", sale_id).stream():
            item = doc.to_dict()
            item["id"] = doc.id
            items[sale_id].append(item)
    return items


def get_cashier_names(cashier_ids: Iterable[str]) -> Dict[str, str]:
    """
    Resolve display names of cashiers: full name, then username, then "Unknown".
    """
    db = get_firestore_client()
    names = {}
    for cashier_id in dict.fromkeys(cashier_ids):
        if not cashier_id:
            continue
        doc = db.collection(PROFILES_COLLECTION).document(cashier_id).get()
        profile = doc.to_dict() if doc.exists else {}
        names[cashier_id] = profile.get("fullName") or profile.get("username") or "Unknown"
    return names


def _to_summary(doc, cashier_names: Dict[str, str]) -> SaleSummary:
    sale_data = doc.to_dict()
    sale_data["id"] = doc.id
    cashier_id = sale_data.get("cashierId", "")
    return SaleSummary(**sale_data, cashierName=cashier_names.get(cashier_id, "Unknown"))


async def list_sales(
    range_name: str = "7days",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    page: int = 1,
    size: int = 50
) -> SalesData:
    """
    Service function to retrieve the sales history.

    Args:
        range_name: Named date range, see minimarket.common.dates.PREDEFINED_RANGES
        start_date: Lower bound for the "custom" range
        end_date: Upper bound for the "custom" range
        page: Page number (starts at 1)
        size: Items per page

    Returns:
        SalesData with the sales of the range, newest first

    Raises:
        HTTPException: 400 for an invalid range or date, 500 on store errors
    """
    start, end = resolve_date_range(range_name, start_date, end_date)

    try:
        sale_docs = query_sales(start, end)
        cashier_names = get_cashier_names(doc.to_dict().get("cashierId") for doc in sale_docs)
        logger.debug("Fetched %d sales for range %s", len(sale_docs), range_name)
        sales = [_to_summary(doc, cashier_names) for doc in sale_docs]
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Error fetching sales")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch sales: {str(exc)}"
        )

    return SalesData.paginate(sales, page, size)


async def get_sale_detail(sale_id: str) -> SaleDetail:
    """
    Service function to retrieve a sale with its items.

    Raises:
        SaleNotFound: If the sale does not exist
    """
    try:
        db = get_firestore_client()
        sale_doc = db.collection(SALES_COLLECTION).document(sale_id).get()
        if not sale_doc.exists:
            raise SaleNotFound(sale_id)

        items = query_sale_items([sale_id])[sale_id]
        cashier_names = get_cashier_names([sale_doc.to_dict().get("cashierId")])
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error: {str(exc)}"
        )

    products = await get_products_by_ids(item["productId"] for item in items)
    item_details = []
    for item in items:
        product = products.get(item["productId"])
        item_details.append(SaleItemDetail(
            **item,
            productName=product.name if product else "Unknown Product",
            productStock=product.stock if product else None
        ))

    summary = _to_summary(sale_doc, cashier_names)
    return SaleDetail(**summary.model_dump(), items=item_details)


def _read_sale_for_update(transaction_obj, sale_id: str):
    db = get_firestore_client()
    sale_ref = db.collection(SALES_COLLECTION).document(sale_id)
    if not sale_ref.get(transaction=transaction_obj).exists:
        raise SaleNotFound(sale_id)

    item_docs = list(
        db.collection(SALE_ITEMS_COLLECTION)
        .where("saleId", "==", sale_id)
        .stream(transaction=transaction_obj)
    )
    return sale_ref, item_docs


def _apply_sale_edit(transaction_obj, sale_id: str, new_quantities: Dict[str, int], now: datetime) -> float:
    """
    Write the corrected lines of a sale and move stock by the difference
    between the sold and the corrected quantities.

    Returns:
        The new sale total
    """
    sale_ref, item_docs = _read_sale_for_update(transaction_obj, sale_id)

    known_ids = {doc.id for doc in item_docs}
    unknown_ids = [item_id for item_id in new_quantities if item_id not in known_ids]
    if unknown_ids:
        raise InvalidSaleEdit(f"Items do not belong to sale {sale_id}: {', '.join(unknown_ids)}")

    deltas = defaultdict(int)
    for doc in item_docs:
        item = doc.to_dict()
        original = int(item.get("quantity", 0))
        deltas[item["productId"]] += original - new_quantities.get(doc.id, 0)

    snapshots = read_products_for_update(transaction_obj, deltas.keys())
    apply_stock_deltas(transaction_obj, snapshots, deltas)

    total = 0.0
    for doc in item_docs:
        item = doc.to_dict()
        if doc.id not in new_quantities:
            transaction_obj.delete(doc.reference)
            continue
        quantity = new_quantities[doc.id]
        subtotal = quantity * item.get("price", 0)
        total += subtotal
        if quantity != item.get("quantity"):
            transaction_obj.update(doc.reference, {"quantity": quantity, "subtotal": subtotal})

    transaction_obj.update(sale_ref, {
        "total": total,
        "status": SaleStatus.EDITED.value,
        "updatedAt": now,
    })
    return total


async def edit_sale(sale_id: str, items: List[SaleItemEdit]) -> SaleDetail:
    """
    Correct the quantities of a persisted sale.

    Items of the sale missing from `items` are removed and their stock goes
    back on the shelf; changed quantities move stock by the difference.

    Args:
        sale_id: The sale to correct
        items: Surviving items with their corrected quantities

    Returns:
        The corrected sale

    Raises:
        InvalidSaleEdit: For a quantity below 1, a duplicate or a foreign item id
        SaleNotFound: If the sale does not exist
        StockLimitExceeded: If an increase needs more stock than is on hand
    """
    new_quantities = {}
    for item in items:
        if item.quantity < 1:
            raise InvalidSaleEdit(f"Quantity of item {item.id} must be at least 1")
        if item.id in new_quantities:
            raise InvalidSaleEdit(f"Item {item.id} is listed more than once")
        new_quantities[item.id] = item.quantity

    try:
        total = run_in_transaction(_apply_sale_edit, sale_id, new_quantities, datetime.now(timezone.utc))
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Error updating sale %s", sale_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update sale: {str(exc)}"
        )

    logger.info("Sale %s edited, new total %.2f", sale_id, total)
    await invalidate_product_listings()
    return await get_sale_detail(sale_id)


def _delete_sale(transaction_obj, sale_id: str) -> None:
    sale_ref, item_docs = _read_sale_for_update(transaction_obj, sale_id)

    deltas = defaultdict(int)
    for doc in item_docs:
        item = doc.to_dict()
        deltas[item["productId"]] += int(item.get("quantity", 0))

    snapshots = read_products_for_update(transaction_obj, deltas.keys())
    apply_stock_deltas(transaction_obj, snapshots, deltas)

    for doc in item_docs:
        transaction_obj.delete(doc.reference)
    transaction_obj.delete(sale_ref)


async def delete_sale(sale_id: str) -> bool:
    """
    Delete a sale and put every unit it sold back on the shelf.

    Raises:
        SaleNotFound: If the sale does not exist
    """
    try:
        run_in_transaction(_delete_sale, sale_id)
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Error deleting sale %s", sale_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to delete sale: {str(exc)}"
        )

    logger.info("Sale %s deleted", sale_id)
    await invalidate_product_listings()
    return True


async def continue_sale(sale_id: str, user_id: str) -> ContinueSaleData:
    """
    Hand a persisted sale over to the POS of the given user.

    The POS picks it up with POST /pos/resume; committing it there rewrites
    the sale in place.

    Raises:
        SaleNotFound: If the sale does not exist
        TransientStorageUnavailable: If the hand-off cannot be stored
    """
    sale = await get_sale_detail(sale_id)

    try:
        payment_method = PaymentMethod(sale.paymentMethod)
    except ValueError:
        logger.warning("Sale %s has unknown payment method %s", sale_id, sale.paymentMethod)
        payment_method = None

    pending_sale = PendingSale(
        saleId=sale.id,
        items=[PendingSaleItem(productId=item.productId, quantity=item.quantity)
               for item in sale.items if item.quantity > 0],
        paymentMethod=payment_method
    )
    await save_pending_sale(user_id, pending_sale)
    return ContinueSaleData(saleId=sale.id, itemCount=len(pending_sale.items))
