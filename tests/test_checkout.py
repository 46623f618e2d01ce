"""
Tests for committing a cart as a sale.
"""
import pytest
from fastapi import HTTPException

from fakes import add_product
from minimarket.pos.exceptions import CashierRequiredError, EmptyCartError, StockLimitExceeded
from minimarket.pos.services import add_product_to_cart, checkout, repeat_last_sale
from minimarket.pos.session import CheckoutSession
from minimarket.sales.schemas import PaymentMethod


class TestCheckout:
    """Committing a new sale."""

    @pytest.mark.asyncio
    async def test_commit_writes_sale_items_and_stock(self, fake_db):
        add_product(fake_db, "p1", "Milk", 10.0, stock=5)
        session = CheckoutSession(cashier_id="cashier-1")
        for _ in range(3):
            await add_product_to_cart(session, "p1")

        receipt = await checkout(session, "USD", amount_received=50.0)

        assert receipt.total == 30.0
        assert receipt.formattedTotal == "$30.00"
        assert receipt.change == 20.0
        assert receipt.updated is False
        assert fake_db.data("products", "p1")["stock"] == 2

        sale = fake_db.data("sales", receipt.saleId)
        assert sale["total"] == 30.0
        assert sale["cashierId"] == "cashier-1"
        assert sale["paymentMethod"] == "cash"
        assert sale["status"] == "completed"

        items = list(fake_db.all("sale_items").values())
        assert items == [{
            "saleId": receipt.saleId,
            "productId": "p1",
            "quantity": 3,
            "price": 10.0,
            "subtotal": 30.0,
        }]

    @pytest.mark.asyncio
    async def test_commit_resets_cart_and_keeps_receipt(self, fake_db):
        add_product(fake_db, "p1", "Milk", 10.0, stock=5)
        session = CheckoutSession(cashier_id="cashier-1")
        await add_product_to_cart(session, "p1")

        receipt = await checkout(session, "USD", payment_method=PaymentMethod.CARD)

        assert session.cart.is_empty
        assert session.payment_method == "cash"
        assert session.last_completed_sale.id == receipt.saleId
        assert session.last_completed_sale.payment_method == "card"
        assert fake_db.data("sales", receipt.saleId)["paymentMethod"] == "card"

    @pytest.mark.asyncio
    async def test_insufficient_stock_writes_nothing(self, fake_db):
        add_product(fake_db, "p1", "Milk", 10.0, stock=5)
        add_product(fake_db, "p2", "Bread", 2.0, stock=5)
        session = CheckoutSession(cashier_id="cashier-1")
        await add_product_to_cart(session, "p1")
        for _ in range(3):
            await add_product_to_cart(session, "p2")

        # Another till sold most of the bread meanwhile
        fake_db.collections["products"]["p2"]["stock"] = 1

        with pytest.raises(StockLimitExceeded) as exc_info:
            await checkout(session, "USD")

        assert exc_info.value.product_id == "p2"
        assert exc_info.value.available == 1
        assert fake_db.data("products", "p1")["stock"] == 5
        assert fake_db.data("products", "p2")["stock"] == 1
        assert fake_db.all("sales") == {}
        assert fake_db.all("sale_items") == {}
        # The cashier can fix the cart and retry
        assert session.cart.item_count() == 4

    @pytest.mark.asyncio
    async def test_deleted_product_writes_nothing(self, fake_db):
        add_product(fake_db, "p1", "Milk", 10.0, stock=5)
        session = CheckoutSession(cashier_id="cashier-1")
        await add_product_to_cart(session, "p1")
        del fake_db.collections["products"]["p1"]

        with pytest.raises(HTTPException) as exc_info:
            await checkout(session, "USD")

        assert exc_info.value.status_code == 400
        assert fake_db.all("sales") == {}

    @pytest.mark.asyncio
    async def test_empty_cart(self, fake_db):
        with pytest.raises(EmptyCartError) as exc_info:
            await checkout(CheckoutSession(cashier_id="cashier-1"), "USD")

        assert exc_info.value.status_code == 400
        assert fake_db.commits == 0

    @pytest.mark.asyncio
    async def test_cashier_is_required(self, fake_db):
        add_product(fake_db, "p1", "Milk", 10.0, stock=5)
        session = CheckoutSession(cashier_id="")
        await add_product_to_cart(session, "p1")

        with pytest.raises(CashierRequiredError):
            await checkout(session, "USD")

        assert fake_db.all("sales") == {}
        assert fake_db.data("products", "p1")["stock"] == 5


class TestRepeatLastSale:

    @pytest.mark.asyncio
    async def test_lines_are_added_again(self, fake_db):
        add_product(fake_db, "p1", "Milk", 10.0, stock=5)
        add_product(fake_db, "p2", "Bread", 2.0, stock=5)
        session = CheckoutSession(cashier_id="cashier-1")
        await add_product_to_cart(session, "p1")
        await add_product_to_cart(session, "p2")
        await add_product_to_cart(session, "p2")
        await checkout(session, "USD", payment_method=PaymentMethod.MOBILE)

        result = await repeat_last_sale(session, "USD")

        assert result.skipped == []
        assert {line.productId: line.quantity for line in result.cart.items} == {"p1": 1, "p2": 2}
        assert result.cart.paymentMethod == "mobile"

    @pytest.mark.asyncio
    async def test_short_products_are_skipped(self, fake_db):
        add_product(fake_db, "p1", "Milk", 10.0, stock=2)
        add_product(fake_db, "p2", "Bread", 2.0, stock=5)
        session = CheckoutSession(cashier_id="cashier-1")
        await add_product_to_cart(session, "p1")
        await add_product_to_cart(session, "p1")
        await add_product_to_cart(session, "p2")
        await checkout(session, "USD")

        result = await repeat_last_sale(session, "USD")

        assert [line.productId for line in result.cart.items] == ["p2"]
        assert [skip.productId for skip in result.skipped] == ["p1"]

    @pytest.mark.asyncio
    async def test_without_previous_sale(self, fake_db):
        with pytest.raises(HTTPException) as exc_info:
            await repeat_last_sale(CheckoutSession(cashier_id="cashier-1"), "USD")

        assert exc_info.value.status_code == 404
