"""
Checkout tests.

Verifies:
- Empty carts, unknown stores and unknown variants are rejected up front
- Out-of-stock variants block order creation and are reported by id
- Duplicate cart ids collapse to one line and one order item
- Minor-unit pricing is exact
- Stock is reserved per distinct variant and released if the provider fails
- A unit taken by a concurrent checkout rolls the whole reservation back
- Stale reads are retried as a fresh transaction
"""

from decimal import Decimal

import pytest
from sqlalchemy.orm.exc import StaleDataError

from conftest import STOREFRONT_URL, FakePaymentProvider, make_product, make_variant
from storeadmin.models import Category, Order, OrderItem, Variant
from storeadmin.services import checkout_service
from storeadmin.services.checkout_service import (
    MissingCartError,
    MissingStoreIdError,
    OutOfStockError,
    ProductsNotFoundError,
    StoreNotFoundError,
    build_line_items,
    to_minor_units,
)
from storeadmin.services.payment_provider import PaymentProviderError
from storeadmin.services.repository import CatalogRepository


def _checkout(repo, provider, store_id, variant_ids):
    return checkout_service.checkout(
        repo,
        provider,
        store_id=store_id,
        variant_ids=variant_ids,
        storefront_url=STOREFRONT_URL,
    )


def _quantity(session, variant_id):
    session.expire_all()
    return session.get(Variant, variant_id).quantity


class RaceLosingRepository(CatalogRepository):
    """Reports no unit left for the given variants, as if another checkout got there first."""

    def __init__(self, session, taken_ids):
        super().__init__(session)
        self.taken_ids = set(taken_ids)

    def reserve_stock(self, variant_id: int) -> bool:
        if variant_id in self.taken_ids:
            return False
        return super().reserve_stock(variant_id)


# =============================================================================
# PRICING
# =============================================================================


class TestMinorUnits:

    @pytest.mark.parametrize(
        "price,expected",
        [
            ("19.99", 1999),
            ("0.29", 29),
            ("0.57", 57),
            ("1.005", 101),
            ("100", 10000),
        ],
    )
    def test_to_minor_units(self, price, expected):
        assert to_minor_units(Decimal(price)) == expected

    def test_line_items_sum_exactly(self, repo, store, category, sizes, colors):
        prices = ["19.99", "0.29", "0.57", "4.10"]
        variants = []
        for idx, price in enumerate(prices):
            p = make_product(repo.session, store, category, name=f"Item{idx}", price=price)
            variants.append(make_variant(repo.session, p, sizes[0], colors[0]))

        items = build_line_items(variants, "AUD")

        assert sum(i.unit_amount for i in items) == 1999 + 29 + 57 + 410
        assert {i.currency for i in items} == {"AUD"}
        assert all(i.quantity == 1 for i in items)


# =============================================================================
# REJECTED CARTS (nothing written)
# =============================================================================


class TestRejectedCarts:

    def test_missing_store_id(self, repo):
        with pytest.raises(MissingStoreIdError, match="Store ID is required"):
            _checkout(repo, FakePaymentProvider(), None, [1])

    def test_empty_cart(self, repo, store):
        with pytest.raises(MissingCartError, match="Product ID is required"):
            _checkout(repo, FakePaymentProvider(), store.id, [])

    def test_unknown_store(self, repo):
        with pytest.raises(StoreNotFoundError):
            _checkout(repo, FakePaymentProvider(), 9999, [1])

    def test_unknown_variants(self, repo, store, product):
        provider = FakePaymentProvider()
        with pytest.raises(ProductsNotFoundError, match="Product not found"):
            _checkout(repo, provider, store.id, [123456])
        assert provider.calls == []
        assert repo.session.query(Order).count() == 0

    def test_archived_variant_not_purchasable(self, repo, store, product, sizes, colors):
        variant = make_variant(repo.session, product, sizes[0], colors[0], is_archived=True)
        with pytest.raises(ProductsNotFoundError):
            _checkout(repo, FakePaymentProvider(), store.id, [variant.id])

    def test_variant_of_other_store_not_purchasable(self, repo, product, other_store, sizes, colors):
        variant = make_variant(repo.session, product, sizes[0], colors[0])
        with pytest.raises(ProductsNotFoundError):
            _checkout(repo, FakePaymentProvider(), other_store.id, [variant.id])

    def test_out_of_stock_blocks_order(self, repo, store, product, sizes, colors):
        sold_out = make_variant(repo.session, product, sizes[0], colors[0], quantity=0)
        in_stock = make_variant(repo.session, product, sizes[1], colors[0], quantity=3)
        provider = FakePaymentProvider()

        with pytest.raises(OutOfStockError) as exc_info:
            _checkout(repo, provider, store.id, [sold_out.id, in_stock.id])

        assert exc_info.value.variant_ids == [sold_out.id]
        assert exc_info.value.details == {"outOfStockProductIds": [sold_out.id]}
        assert repo.session.query(Order).count() == 0
        assert _quantity(repo.session, in_stock.id) == 3
        assert provider.calls == []

    def test_reports_every_out_of_stock_variant(self, repo, store, product, sizes, colors):
        a = make_variant(repo.session, product, sizes[0], colors[0], quantity=0)
        b = make_variant(repo.session, product, sizes[1], colors[1], quantity=0)

        with pytest.raises(OutOfStockError) as exc_info:
            _checkout(repo, FakePaymentProvider(), store.id, [b.id, a.id])

        assert exc_info.value.variant_ids == [b.id, a.id]


# =============================================================================
# SUCCESSFUL CHECKOUT
# =============================================================================


class TestCheckout:

    def test_creates_unpaid_order_and_session(self, repo, store, product, sizes, colors):
        variant = make_variant(repo.session, product, sizes[0], colors[0], quantity=2)
        provider = FakePaymentProvider()

        result = _checkout(repo, provider, store.id, [variant.id])

        assert result.url == "https://pay.test/cs_test_1"
        order = repo.session.get(Order, result.order_id)
        assert order.store_id == store.id
        assert order.is_paid is False
        assert order.payment_session_id == "cs_test_1"
        assert [(i.variant_id, i.quantity) for i in order.items] == [(variant.id, 1)]

    def test_provider_request(self, repo, store, product, sizes, colors):
        variant = make_variant(repo.session, product, sizes[0], colors[0])
        provider = FakePaymentProvider()

        result = _checkout(repo, provider, store.id, [variant.id])

        call = provider.calls[0]
        assert call["mode"] == "payment"
        assert call["billing_address_required"] is True
        assert call["phone_collection_enabled"] is True
        assert call["success_url"] == f"{STOREFRONT_URL}/cart?success=1"
        assert call["cancel_url"] == f"{STOREFRONT_URL}/cart?canceled=1"
        assert call["metadata"] == {"orderId": str(result.order_id)}

        (item,) = call["line_items"]
        assert item.name == "Tee"
        assert item.unit_amount == 1999
        assert item.currency == "AUD"

    def test_reserves_one_unit_per_variant(self, repo, store, product, sizes, colors):
        a = make_variant(repo.session, product, sizes[0], colors[0], quantity=2)
        b = make_variant(repo.session, product, sizes[1], colors[0], quantity=1)

        _checkout(repo, FakePaymentProvider(), store.id, [a.id, b.id])

        assert _quantity(repo.session, a.id) == 1
        assert _quantity(repo.session, b.id) == 0

    def test_last_unit_cannot_be_sold_twice(self, repo, store, product, sizes, colors):
        variant = make_variant(repo.session, product, sizes[0], colors[0], quantity=1)

        _checkout(repo, FakePaymentProvider(), store.id, [variant.id])
        with pytest.raises(OutOfStockError):
            _checkout(repo, FakePaymentProvider(), store.id, [variant.id])

        assert repo.session.query(Order).count() == 1

    def test_duplicate_ids_collapse_to_one_line(self, repo, store, product, sizes, colors):
        variant = make_variant(repo.session, product, sizes[0], colors[0], quantity=5)
        provider = FakePaymentProvider()

        result = _checkout(repo, provider, store.id, [variant.id, variant.id])

        assert len(provider.calls[0]["line_items"]) == 1
        assert repo.session.query(OrderItem).filter_by(order_id=result.order_id).count() == 1
        assert _quantity(repo.session, variant.id) == 4

    def test_line_items_follow_cart_order(self, repo, store, category, sizes, colors):
        cheap = make_product(repo.session, store, category, name="Socks", price="0.29")
        dear = make_product(repo.session, store, category, name="Coat", price="120.00")
        first = make_variant(repo.session, cheap, sizes[0], colors[0])
        second = make_variant(repo.session, dear, sizes[0], colors[0])
        provider = FakePaymentProvider()

        _checkout(repo, provider, store.id, [second.id, first.id])

        names = [i.name for i in provider.calls[0]["line_items"]]
        assert names == ["Coat", "Socks"]

    def test_currency_comes_from_store(self, repo, other_store, db_session, sizes, colors):
        category = Category(store_id=other_store.id, name="Imports")
        db_session.add(category)
        db_session.commit()
        p = make_product(db_session, other_store, category, name="Cap", price="12.50")
        variant = make_variant(db_session, p, sizes[0], colors[0])
        provider = FakePaymentProvider()

        _checkout(repo, provider, other_store.id, [variant.id])

        assert provider.calls[0]["line_items"][0].currency == "USD"
        assert provider.calls[0]["line_items"][0].unit_amount == 1250


# =============================================================================
# CONCURRENT CHECKOUTS
# =============================================================================


class TestConcurrentCheckout:

    def test_unit_taken_during_reservation(self, db_session, store, product, sizes, colors):
        first = make_variant(db_session, product, sizes[0], colors[0], quantity=2)
        second = make_variant(db_session, product, sizes[1], colors[0], quantity=1)
        repo = RaceLosingRepository(db_session, taken_ids=[second.id])
        provider = FakePaymentProvider()

        with pytest.raises(OutOfStockError) as exc_info:
            _checkout(repo, provider, store.id, [first.id, second.id])

        assert exc_info.value.variant_ids == [second.id]
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0
        assert _quantity(db_session, first.id) == 2
        assert _quantity(db_session, second.id) == 1
        assert provider.calls == []

    def test_stale_read_is_retried(self, repo, store, product, sizes, colors, monkeypatch):
        variant = make_variant(repo.session, product, sizes[0], colors[0], quantity=2)
        load = repo.find_checkout_variants
        attempts = []

        def flaky_load(store_id, variant_ids):
            attempts.append(list(variant_ids))
            if len(attempts) == 1:
                raise StaleDataError("variants row changed during checkout")
            return load(store_id, variant_ids)

        monkeypatch.setattr(repo, "find_checkout_variants", flaky_load)

        result = _checkout(repo, FakePaymentProvider(), store.id, [variant.id])

        assert len(attempts) == 2
        assert repo.session.query(Order).count() == 1
        assert repo.session.get(Order, result.order_id).payment_session_id == "cs_test_1"
        assert _quantity(repo.session, variant.id) == 1


# =============================================================================
# PROVIDER FAILURE
# =============================================================================


class TestProviderFailure:

    @pytest.mark.parametrize(
        "error",
        [PaymentProviderError("card network down"), RuntimeError("boom")],
    )
    def test_failure_leaves_no_order_and_restores_stock(self, repo, store, product, sizes, colors, error):
        variant = make_variant(repo.session, product, sizes[0], colors[0], quantity=3)
        provider = FakePaymentProvider(fail_with=error)

        with pytest.raises(PaymentProviderError, match="Payment provider error"):
            _checkout(repo, provider, store.id, [variant.id])

        assert len(provider.calls) == 1
        assert repo.session.query(Order).count() == 0
        assert repo.session.query(OrderItem).count() == 0
        assert _quantity(repo.session, variant.id) == 3
