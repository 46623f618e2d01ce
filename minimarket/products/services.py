"""
This module contains the business logic for the product catalog and stock.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from fastapi import HTTPException
from google.cloud.firestore import Query

from minimarket.common.cache import (
    cache_product_listing, get_cached_product_listing, invalidate_product_listings
)
from minimarket.common.database import (
    PRODUCTS_COLLECTION, SALES_COLLECTION, SALE_ITEMS_COLLECTION,
    get_firestore_client, run_in_transaction
)
from minimarket.pos.exceptions import StockLimitExceeded
from minimarket.products.schemas import ProductInDB, ProductsData

logger = logging.getLogger(__name__)

RECENT_SALES_LIMIT = 20
RECENT_PRODUCTS_LIMIT = 8


def _to_product(doc) -> ProductInDB:
    product_data = doc.to_dict() or {}
    product_data['id'] = doc.id
    return ProductInDB(**product_data)


async def load_all_products() -> List[ProductInDB]:
    """
    Load the whole catalog ordered by name, going through the listing cache.

    Returns:
        List of ProductInDB

    Raises:
        HTTPException: If the store cannot be queried
    """
    cache_params = {"view": "catalog"}
    cached = await get_cached_product_listing(cache_params)
    if cached is not None:
        return [ProductInDB(**item) for item in cached]

    try:
        db = get_firestore_client()
        docs = db.collection(PRODUCTS_COLLECTION).order_by("name").stream()
        products = [_to_product(doc) for doc in docs]
    except Exception as exc:
        logger.exception("Failed to fetch products")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch products: {str(exc)}"
        )

    await cache_product_listing(cache_params, [p.model_dump(mode="json") for p in products])
    return products


async def get_products(page: int = 1, size: int = 100, in_stock_only: bool = True) -> ProductsData:
    """
    Service function to retrieve products for the catalog or the POS grid.

    Args:
        page: Page number (starts at 1)
        size: Items per page
        in_stock_only: Hide products with nothing on hand, as the POS grid does

    Returns:
        ProductsData object containing the paginated products
    """
    products = await load_all_products()
    if in_stock_only:
        products = [p for p in products if p.stock > 0]
    return ProductsData.paginate(products, page, size)


async def search_products(query: str, page: int = 1, size: int = 100, in_stock_only: bool = True) -> ProductsData:
    """
    Service function to search products by name or barcode.
    Matching is a case-insensitive substring match on the name and a substring
    match on the barcode, performed in memory over the cached catalog.

    Args:
        query: The search query
        page: Page number (starts at 1)
        size: Items per page
        in_stock_only: Only consider products with stock on hand

    Returns:
        ProductsData object containing the paginated search results
    """
    if not query or query.strip() == "":
        return await get_products(page=page, size=size, in_stock_only=in_stock_only)

    needle = query.strip()
    lowered = needle.lower()

    products = await load_all_products()
    matches = [
        p for p in products
        if (not in_stock_only or p.stock > 0)
        and (lowered in p.name.lower() or needle in (p.barcode or ""))
    ]
    return ProductsData.paginate(matches, page, size)


async def find_product_by_barcode(barcode: str) -> Optional[ProductInDB]:
    """
    Exact barcode lookup among the products available for sale.

    Returns:
        The product, or None when no in-stock product carries that barcode
    """
    if not barcode:
        return None

    for product in await load_all_products():
        if product.stock > 0 and product.barcode == barcode:
            return product
    return None


async def get_product_by_id(product_id: str) -> ProductInDB:
    """
    Service function to retrieve a single product by ID.

    Args:
        product_id: The unique identifier of the product

    Returns:
        ProductInDB object containing the product data

    Raises:
        HTTPException: If product is not found or other errors occur
    """
    if not product_id:
        raise HTTPException(
            status_code=400,
            detail="Missing product ID parameter"
        )

    try:
        db = get_firestore_client()
        doc = db.collection(PRODUCTS_COLLECTION).document(product_id).get()

        if not doc.exists:
            raise HTTPException(
                status_code=404,
                detail="Product not found"
            )

        return _to_product(doc)

    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error: {str(exc)}"
        )


async def get_products_by_ids(product_ids: Iterable[str]) -> Dict[str, ProductInDB]:
    """
    Fetch several products at once; ids that no longer exist are left out.

    Returns:
        Mapping of product id to product
    """
    products = {}
    try:
        db = get_firestore_client()
        for product_id in dict.fromkeys(product_ids):
            doc = db.collection(PRODUCTS_COLLECTION).document(product_id).get()
            if doc.exists:
                products[product_id] = _to_product(doc)
            else:
                logger.warning("Product %s referenced but not found", product_id)
    except Exception as exc:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch products: {str(exc)}"
        )
    return products


async def create_product(product_data: dict) -> ProductInDB:
    """
    Service function to create a new product.

    Args:
        product_data: Validated fields of ProductCreate

    Returns:
        ProductInDB object containing the created product data
    """
    try:
        db = get_firestore_client()
        now = datetime.now(timezone.utc)
        product_data = {**product_data, "createdAt": now, "updatedAt": now}

        new_product_ref = db.collection(PRODUCTS_COLLECTION).document()
        new_product_ref.set(product_data)
    except Exception as exc:
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error: {str(exc)}"
        )

    await invalidate_product_listings()
    return ProductInDB(id=new_product_ref.id, **product_data)


async def update_product(product_id: str, product_data: dict) -> ProductInDB:
    """
    Service function to update an existing product.

    Args:
        product_id: The unique identifier of the product to update
        product_data: Only the fields to change

    Returns:
        ProductInDB object containing the updated product data

    Raises:
        HTTPException: If product is not found or other errors occur
    """
    existing = await get_product_by_id(product_id)

    update_data = {**product_data, "updatedAt": datetime.now(timezone.utc)}
    try:
        db = get_firestore_client()
        db.collection(PRODUCTS_COLLECTION).document(product_id).update(update_data)
    except Exception as exc:
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error: {str(exc)}"
        )

    await invalidate_product_listings()
    return existing.model_copy(update=update_data)


async def delete_product(product_id: str) -> bool:
    """
    Service function to delete a product by ID.

    Raises:
        HTTPException: If product is not found or other errors occur
    """
    await get_product_by_id(product_id)

    try:
        db = get_firestore_client()
        db.collection(PRODUCTS_COLLECTION).document(product_id).delete()
    except Exception as exc:
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error: {str(exc)}"
        )

    await invalidate_product_listings()
    return True


def read_products_for_update(transaction_obj, product_ids: Iterable[str]) -> Dict[str, dict]:
    """
    Read product documents inside a transaction ahead of stock writes.

    Returns:
        Mapping of product id to {"ref", "data"}; missing products are omitted
    """
    db = get_firestore_client()
    snapshots = {}
    for product_id in dict.fromkeys(product_ids):
        product_ref = db.collection(PRODUCTS_COLLECTION).document(product_id)
        product_doc = product_ref.get(transaction=transaction_obj)
        if product_doc.exists:
            snapshots[product_id] = {"ref": product_ref, "data": product_doc.to_dict() or {}}
    return snapshots


def apply_stock_deltas(transaction_obj, snapshots: Dict[str, dict], deltas: Dict[str, int]) -> Dict[str, int]:
    """
    Validate and write stock changes for products read by read_products_for_update.

    Every delta is checked before anything is written so a shortage on one
    product leaves all of them untouched.

    Args:
        transaction_obj: The running transaction
        snapshots: Result of read_products_for_update
        deltas: product id -> signed change (negative when stock leaves the shelf)

    Returns:
        product id -> new stock, for the products that were written

    Raises:
        StockLimitExceeded: If any product would end up below zero
    """
    new_stock = {}
    for product_id, delta in deltas.items():
        if delta == 0:
            continue
        snapshot = snapshots.get(product_id)
        if snapshot is None:
            logger.warning("Skipping stock change of %s for missing product %s", delta, product_id)
            continue
        current = int(snapshot["data"].get("stock", 0))
        if current + delta < 0:
            raise StockLimitExceeded(
                product_id=product_id,
                product_name=snapshot["data"].get("name"),
                available=current
            )
        new_stock[product_id] = current + delta

    now = datetime.now(timezone.utc)
    for product_id, stock in new_stock.items():
        transaction_obj.update(snapshots[product_id]["ref"], {"stock": stock, "updatedAt": now})
    return new_stock


async def increment_stock(product_id: str, delta: int) -> ProductInDB:
    """
    Atomically change a product's stock by a signed delta.

    Args:
        product_id: The product to adjust
        delta: Units to add (negative to remove)

    Returns:
        The product with its new stock

    Raises:
        HTTPException: 404 if the product is missing, 409 if stock would go negative
    """
    def adjust(transaction_obj):
        snapshots = read_products_for_update(transaction_obj, [product_id])
        if product_id not in snapshots:
            raise HTTPException(status_code=404, detail="Product not found")
        apply_stock_deltas(transaction_obj, snapshots, {product_id: delta})

    try:
        run_in_transaction(adjust)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update stock: {str(exc)}"
        )

    await invalidate_product_listings()
    return await get_product_by_id(product_id)


async def set_stock(product_id: str, stock: int) -> ProductInDB:
    """
    Overwrite a product's stock with a counted value.

    Raises:
        HTTPException: 400 for a negative value, 404 if the product is missing
    """
    if stock < 0:
        raise HTTPException(status_code=400, detail="Stock cannot be negative")

    return await update_product(product_id, {"stock": stock})


async def get_low_stock_products() -> List[ProductInDB]:
    """
    Products whose stock fell under their minimum, lowest stock first.

    The comparison is between two fields of the same document, which the
    store cannot filter on, so it runs in memory.
    """
    products = await load_all_products()
    return sorted((p for p in products if p.is_low_stock), key=lambda p: p.stock)


async def get_recent_products() -> List[ProductInDB]:
    """
    Products that appeared in the most recent sales and are still in stock.

    Returns:
        At most RECENT_PRODUCTS_LIMIT products
    """
    try:
        db = get_firestore_client()
        recent_sales = (
            db.collection(SALES_COLLECTION)
            .order_by("createdAt", direction=Query.DESCENDING)
            .limit(RECENT_SALES_LIMIT)
            .stream()
        )
        sale_ids = [doc.id for doc in recent_sales]
        if not sale_ids:
            return []

        item_docs = (
            db.collection(SALE_ITEMS_COLLECTION)
            .where("saleId", "in", sale_ids)
            .limit(RECENT_SALES_LIMIT)
            .stream()
        )
        product_ids = [doc.to_dict().get("productId") for doc in item_docs]
    except Exception as exc:
        logger.warning("Error fetching recent products: %s", exc)
        return []

    products = await get_products_by_ids(pid for pid in product_ids if pid)
    in_stock = [p for p in products.values() if p.stock > 0]
    return in_stock[:RECENT_PRODUCTS_LIMIT]
