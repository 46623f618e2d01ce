"""
Checkout sessions: one cart per signed-in cashier, kept in process memory.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from minimarket.pos.cart import Cart, CartLine

DEFAULT_PAYMENT_METHOD = "cash"


@dataclass
class CompletedSale:
    """Snapshot of the last committed sale, for receipts and repeat-last-sale."""
    id: str
    lines: List[CartLine]
    total: float
    payment_method: str
    date: datetime


@dataclass
class CheckoutSession:
    cashier_id: str
    cart: Cart = field(default_factory=Cart)
    payment_method: str = DEFAULT_PAYMENT_METHOD
    # Set when the cart was seeded from an already persisted sale
    editing_sale_id: Optional[str] = None
    # Units per product the resumed sale already holds; they return to the shelf at commit
    committed: Dict[str, int] = field(default_factory=dict)
    last_completed_sale: Optional[CompletedSale] = None

    def reset(self) -> None:
        """Forget the current cart and any resumed sale, keep the last receipt."""
        self.cart.clear()
        self.payment_method = DEFAULT_PAYMENT_METHOD
        self.editing_sale_id = None
        self.committed = {}


class CheckoutSessionRegistry:
    def __init__(self):
        self._sessions: Dict[str, CheckoutSession] = {}

    def get(self, cashier_id: str) -> CheckoutSession:
        session = self._sessions.get(cashier_id)
        if session is None:
            session = CheckoutSession(cashier_id=cashier_id)
            self._sessions[cashier_id] = session
        return session

    def clear(self) -> None:
        self._sessions.clear()


session_registry = CheckoutSessionRegistry()
