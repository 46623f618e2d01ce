"""
Firestore access shared by the service modules.
"""
from typing import Any, Callable

from firebase_admin import firestore

# Firebase collections
PRODUCTS_COLLECTION = "products"
SALES_COLLECTION = "sales"
SALE_ITEMS_COLLECTION = "sale_items"
PROFILES_COLLECTION = "profiles"
SETTINGS_COLLECTION = "settings"
EXPENSES_COLLECTION = "expenses"


def get_firestore_client():
    """Get Firestore client instance."""
    return firestore.client()


def run_in_transaction(callback: Callable[..., Any], *args, **kwargs) -> Any:
    """
    Run ``callback(transaction, *args, **kwargs)`` inside a Firestore transaction.

    Firestore re-invokes the callback when the transaction is contended, so the
    callback must read everything it needs through the transaction before the
    first write and must not have side effects outside of it.

    Args:
        callback: Function receiving the transaction as its first argument

    Returns:
        Whatever the callback returns once the transaction has committed
    """
    db = get_firestore_client()

    @firestore.transactional
    def execute(transaction_obj):
        return callback(transaction_obj, *args, **kwargs)

    return execute(db.transaction())
