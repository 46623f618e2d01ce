"""
In-memory cart of the point of sale.

Lines are keyed by product id and kept in insertion order so the most recent
line can be voided. Nothing here touches the database; stock figures are the
ones known when a product was last added.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

from minimarket.pos.exceptions import CartItemNotFound, StockLimitExceeded


@dataclass
class CartLine:
    product_id: str
    name: str
    barcode: str
    unit_price: float
    stock: int
    quantity: int
    subtotal: float

    def set_quantity(self, quantity: int) -> None:
        self.quantity = quantity
        self.subtotal = quantity * self.unit_price


class Cart:
    """
    Cart engine: add, update, remove and total line items against known stock.
    """

    def __init__(self):
        self._lines: Dict[str, CartLine] = {}

    def add_item(self, product) -> CartLine:
        """
        Add one unit of a product.

        Raises:
            StockLimitExceeded: If one more unit would exceed product.stock;
                the cart is left unchanged
        """
        return self.add_quantity(product, 1)

    def add_quantity(self, product, quantity: int, available: Optional[int] = None) -> CartLine:
        """
        Merge several units of a product into the cart.

        Args:
            product: Any object exposing id, name, barcode, price and stock
            quantity: Units to add, at least 1
            available: Stock to check against instead of product.stock

        Returns:
            The updated or newly created line

        Raises:
            ValueError: If quantity is below 1
            StockLimitExceeded: If the merged quantity would exceed the stock
        """
        if quantity < 1:
            raise ValueError("quantity must be at least 1")

        stock = product.stock if available is None else available
        line = self._lines.get(product.id)
        current = line.quantity if line else 0

        if current + quantity > stock:
            raise StockLimitExceeded(product_id=product.id, available=stock, product_name=product.name)

        if line:
            line.stock = stock
            line.set_quantity(current + quantity)
            return line

        line = CartLine(
            product_id=product.id,
            name=product.name,
            barcode=product.barcode or "",
            unit_price=product.price,
            stock=stock,
            quantity=quantity,
            subtotal=quantity * product.price,
        )
        self._lines[product.id] = line
        return line

    def update_quantity(self, product_id: str, new_quantity: int) -> Optional[CartLine]:
        """
        Set the quantity of an existing line.

        A quantity below 1 is ignored; use remove_item to drop a line.

        Returns:
            The line, or None when the request was ignored

        Raises:
            CartItemNotFound: If the product is not in the cart
            StockLimitExceeded: If new_quantity exceeds the line's known stock
        """
        if new_quantity < 1:
            return None

        line = self._lines.get(product_id)
        if line is None:
            raise CartItemNotFound(product_id)

        if new_quantity > line.stock:
            raise StockLimitExceeded(product_id=product_id, available=line.stock, product_name=line.name)

        line.set_quantity(new_quantity)
        return line

    def remove_item(self, product_id: str) -> Optional[CartLine]:
        return self._lines.pop(product_id, None)

    def void_last_item(self) -> Optional[CartLine]:
        """Remove the most recently added line."""
        if not self._lines:
            return None
        last_id = next(reversed(self._lines))
        return self._lines.pop(last_id)

    def clear(self) -> None:
        self._lines.clear()

    def get(self, product_id: str) -> Optional[CartLine]:
        return self._lines.get(product_id)

    def lines(self) -> List[CartLine]:
        return list(self._lines.values())

    def total(self) -> float:
        return sum(line.subtotal for line in self._lines.values())

    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def change_due(self, amount_received: float) -> float:
        """Change to hand back; nothing when the amount does not cover the total."""
        total = self.total()
        if amount_received < total:
            return 0.0
        return amount_received - total

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, product_id: str) -> bool:
        return product_id in self._lines
