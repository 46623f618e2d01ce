"""
Tests for continuing a persisted sale in the POS and committing it again.
"""
import pytest

from fakes import add_product, add_sale
from minimarket.pos.exceptions import (
    PendingSaleNotFound, SaleNotFound, StockLimitExceeded, TransientStorageUnavailable
)
from minimarket.pos.handoff import pending_sale_key
from minimarket.pos.services import add_product_to_cart, checkout, resume_pending_sale
from minimarket.pos.session import CheckoutSession
from minimarket.sales.services import continue_sale


@pytest.fixture
def sold_sale(fake_db):
    """
    Sale s1 sold 2 milk and 1 bread; the shelf now holds 3 milk, no bread
    and 2 eggs.
    """
    add_product(fake_db, "p1", "Milk", 10.0, stock=3)
    add_product(fake_db, "p2", "Bread", 5.0, stock=0)
    add_product(fake_db, "p3", "Eggs", 4.0, stock=2)
    add_sale(fake_db, "s1", [("i1", "p1", 2, 10.0), ("i2", "p2", 1, 5.0)], payment_method="card")
    return fake_db


async def resume(user_id="cashier-1"):
    await continue_sale("s1", user_id)
    session = CheckoutSession(cashier_id=user_id)
    result = await resume_pending_sale(session, user_id, "USD")
    return session, result


class TestContinueSale:

    @pytest.mark.asyncio
    async def test_hand_off_is_stored_per_user(self, sold_sale, fake_redis):
        data = await continue_sale("s1", "cashier-1")

        assert data.saleId == "s1"
        assert data.itemCount == 2
        assert pending_sale_key("cashier-1") in fake_redis.values
        assert fake_redis.ttls[pending_sale_key("cashier-1")] == 3600

    @pytest.mark.asyncio
    async def test_redis_unavailable(self, sold_sale):
        with pytest.raises(TransientStorageUnavailable) as exc_info:
            await continue_sale("s1", "cashier-1")

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_unknown_sale(self, sold_sale, fake_redis):
        with pytest.raises(SaleNotFound):
            await continue_sale("missing", "cashier-1")

        assert fake_redis.values == {}


class TestResumePendingSale:

    @pytest.mark.asyncio
    async def test_cart_is_seeded_from_the_sale(self, sold_sale, fake_redis):
        session, result = await resume()

        assert result.saleId == "s1"
        assert result.missingProductIds == []
        assert session.editing_sale_id == "s1"
        assert session.payment_method == "card"
        # Units the sale already holds count as available
        assert session.cart.get("p1").quantity == 2
        assert session.cart.get("p1").stock == 5
        assert session.cart.get("p2").stock == 1
        assert session.cart.total() == 25.0

    @pytest.mark.asyncio
    async def test_hand_off_is_consumed_once(self, sold_sale, fake_redis):
        await resume()

        assert fake_redis.values == {}
        with pytest.raises(PendingSaleNotFound):
            await resume_pending_sale(CheckoutSession(cashier_id="cashier-1"), "cashier-1", "USD")

    @pytest.mark.asyncio
    async def test_hand_off_belongs_to_one_user(self, sold_sale, fake_redis):
        await continue_sale("s1", "cashier-1")

        with pytest.raises(PendingSaleNotFound):
            await resume_pending_sale(CheckoutSession(cashier_id="cashier-2"), "cashier-2", "USD")

    @pytest.mark.asyncio
    async def test_deleted_products_are_reported(self, sold_sale, fake_redis):
        del sold_sale.collections["products"]["p2"]

        session, result = await resume()

        assert result.missingProductIds == ["p2"]
        assert [line.product_id for line in session.cart.lines()] == ["p1"]

    @pytest.mark.asyncio
    async def test_added_units_may_use_returned_stock(self, sold_sale, fake_redis):
        session, _ = await resume()

        for _ in range(3):
            await add_product_to_cart(session, "p1")

        assert session.cart.get("p1").quantity == 5

    @pytest.mark.asyncio
    async def test_returned_stock_survives_removing_the_line(self, sold_sale, fake_redis):
        session, _ = await resume()
        session.cart.remove_item("p1")

        for _ in range(5):
            await add_product_to_cart(session, "p1")

        assert session.cart.get("p1").quantity == 5
        with pytest.raises(StockLimitExceeded):
            await add_product_to_cart(session, "p1")
        assert session.cart.get("p1").quantity == 5

    @pytest.mark.asyncio
    async def test_returned_stock_is_forgotten_after_reset(self, sold_sale, fake_redis):
        session, _ = await resume()
        session.reset()

        assert session.committed == {}
        for _ in range(3):
            await add_product_to_cart(session, "p1")
        with pytest.raises(StockLimitExceeded):
            await add_product_to_cart(session, "p1")


class TestCommitResumedSale:

    @pytest.mark.asyncio
    async def test_unchanged_cart_is_stock_neutral(self, sold_sale, fake_redis):
        session, _ = await resume()

        receipt = await checkout(session, "USD")

        assert receipt.saleId == "s1"
        assert receipt.updated is True
        assert sold_sale.data("products", "p1")["stock"] == 3
        assert sold_sale.data("products", "p2")["stock"] == 0
        assert set(sold_sale.all("sale_items")) == {"i1", "i2"}
        assert len(sold_sale.all("sales")) == 1
        sale = sold_sale.data("sales", "s1")
        assert sale["total"] == 25.0
        assert sale["status"] == "completed"
        assert sale["paymentMethod"] == "card"

    @pytest.mark.asyncio
    async def test_changed_cart_is_applied_as_a_diff(self, sold_sale, fake_redis):
        session, _ = await resume()
        session.cart.update_quantity("p1", 4)
        session.cart.remove_item("p2")
        await add_product_to_cart(session, "p3")

        receipt = await checkout(session, "USD")

        assert receipt.total == 44.0
        assert sold_sale.data("products", "p1")["stock"] == 1
        assert sold_sale.data("products", "p2")["stock"] == 1
        assert sold_sale.data("products", "p3")["stock"] == 1

        items = sold_sale.all("sale_items")
        assert "i2" not in items
        assert items["i1"]["quantity"] == 4
        assert items["i1"]["subtotal"] == 40.0
        new_items = [item for item_id, item in items.items() if item_id != "i1"]
        assert new_items == [{
            "saleId": "s1", "productId": "p3", "quantity": 1, "price": 4.0, "subtotal": 4.0
        }]
        assert sold_sale.data("sales", "s1")["total"] == 44.0

    @pytest.mark.asyncio
    async def test_sale_deleted_meanwhile(self, sold_sale, fake_redis):
        session, _ = await resume()
        del sold_sale.collections["sales"]["s1"]

        with pytest.raises(SaleNotFound):
            await checkout(session, "USD")

        assert sold_sale.data("products", "p1")["stock"] == 3
        assert set(sold_sale.all("sale_items")) == {"i1", "i2"}
        assert session.editing_sale_id == "s1"

    @pytest.mark.asyncio
    async def test_next_sale_is_new_again(self, sold_sale, fake_redis):
        session, _ = await resume()
        await checkout(session, "USD")

        await add_product_to_cart(session, "p3")
        receipt = await checkout(session, "USD")

        assert receipt.saleId != "s1"
        assert receipt.updated is False
        assert len(sold_sale.all("sales")) == 2
