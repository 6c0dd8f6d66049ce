"""
Storefront checkout and dashboard order endpoint tests.
"""

import pytest

from conftest import make_product, make_variant
from storeadmin.models import Order, Variant


class TestCheckoutEndpoint:

    def test_returns_redirect_url(self, client, db_session, store, product, sizes, colors, payment_provider):
        variant = make_variant(db_session, product, sizes[0], colors[0])

        resp = client.post(f"/api/stores/{store.id}/checkout", json={"productId": [variant.id]})

        assert resp.status_code == 200
        assert resp.json == {"url": "https://pay.test/cs_test_1"}
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    def test_variant_ids_alias(self, client, db_session, store, product, sizes, colors, payment_provider):
        variant = make_variant(db_session, product, sizes[0], colors[0])
        resp = client.post(f"/api/stores/{store.id}/checkout", json={"variant_ids": [variant.id]})
        assert resp.status_code == 200

    def test_out_of_stock_body(self, client, db_session, store, product, sizes, colors, payment_provider):
        sold_out = make_variant(db_session, product, sizes[0], colors[0], quantity=0)
        in_stock = make_variant(db_session, product, sizes[1], colors[0], quantity=1)

        resp = client.post(
            f"/api/stores/{store.id}/checkout",
            json={"productId": [sold_out.id, in_stock.id]},
        )

        assert resp.status_code == 400
        assert resp.json == {"error": "Out of stock", "outOfStockProductIds": [sold_out.id]}
        assert db_session.query(Order).count() == 0
        assert payment_provider.calls == []

    @pytest.mark.parametrize(
        "payload,message",
        [
            ({}, "Product ID is required"),
            ({"productId": []}, "Product ID is required"),
            ({"productId": [424242]}, "Product not found"),
        ],
    )
    def test_rejected_carts(self, client, store, payment_provider, payload, message):
        resp = client.post(f"/api/stores/{store.id}/checkout", json=payload)
        assert resp.status_code == 400
        assert resp.json == {"error": message}

    def test_malformed_cart(self, client, store, payment_provider):
        resp = client.post(f"/api/stores/{store.id}/checkout", json={"productId": "7"})
        assert resp.status_code == 400

    def test_oversized_variant_id(self, client, db_session, store, payment_provider):
        resp = client.post(f"/api/stores/{store.id}/checkout", json={"productId": [10 ** 20]})
        assert resp.status_code == 400
        assert resp.json == {"error": "productId[0] is out of range"}
        assert db_session.query(Order).count() == 0
        assert payment_provider.calls == []

    def test_unknown_store(self, client, db_session, payment_provider):
        resp = client.post("/api/stores/9999/checkout", json={"productId": [1]})
        assert resp.status_code == 404
        assert resp.json == {"error": "Store not found"}

    def test_provider_failure_is_generic(self, client, db_session, store, product, sizes, colors, payment_provider):
        variant = make_variant(db_session, product, sizes[0], colors[0], quantity=2)
        payment_provider.fail_with = RuntimeError("api key sk_live_secret rejected")

        resp = client.post(f"/api/stores/{store.id}/checkout", json={"productId": [variant.id]})

        assert resp.status_code == 500
        assert resp.json == {"error": "Payment provider error"}
        assert db_session.query(Order).count() == 0
        db_session.expire_all()
        assert db_session.get(Variant, variant.id).quantity == 2


class TestOrdersEndpoint:

    def test_lists_orders_newest_first(self, client, db_session, store, category, sizes, colors,
                                       owner_headers, payment_provider):
        tee = make_product(db_session, store, category, name="Tee", price="19.99")
        cap = make_product(db_session, store, category, name="Cap", price="0.29")
        tee_small = make_variant(db_session, tee, sizes[0], colors[0])
        cap_large = make_variant(db_session, cap, sizes[1], colors[1])

        first = client.post(f"/api/stores/{store.id}/checkout", json={"productId": [tee_small.id]})
        second = client.post(
            f"/api/stores/{store.id}/checkout",
            json={"productId": [tee_small.id, cap_large.id]},
        )
        assert first.status_code == 200 and second.status_code == 200

        resp = client.get(f"/api/stores/{store.id}/orders", headers=owner_headers)

        assert resp.status_code == 200
        rows = resp.json
        assert len(rows) == 2
        newest, oldest = rows
        assert newest["products"] == "Tee, Small, Black x 1, Cap, Large, White x 1"
        assert newest["total_price"] == "20.28"
        assert newest["is_paid"] is False
        assert newest["currency"] == "AUD"
        assert oldest["products"] == "Tee, Small, Black x 1"
        assert oldest["total_price"] == "19.99"

    def test_orders_are_store_scoped(self, client, db_session, store, other_store, owner_headers):
        db_session.add(Order(store_id=other_store.id))
        db_session.commit()

        resp = client.get(f"/api/stores/{store.id}/orders", headers=owner_headers)

        assert resp.status_code == 200
        assert resp.json == []
