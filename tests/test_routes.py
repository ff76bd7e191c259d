"""
HTTP layer tests: tenant header, result envelopes, status codes.
"""

from conftest import custom_item, owner_headers


class TestTenantHeader:
    """X-Owner-Id is required on ledger routes."""

    def test_missing_owner_header(self, client, db_session):
        response = client.get('/api/orders')

        assert response.status_code == 401
        assert response.json == {"success": False, "error": "Authentication required", "code": "UNAUTHORIZED"}

    def test_health_needs_no_owner(self, client, db_session):
        response = client.get('/api/health')

        assert response.status_code == 200
        assert response.json["status"] == "healthy"


class TestOrderRoutes:
    """/api/orders."""

    def test_create_list_get_delete(self, client, db_session, make_product):
        product = make_product(stock=5, price_cents=1000)
        product_id = product.id

        created = client.post('/api/orders', headers=owner_headers(), json={
            "items": [{"product_id": product_id, "quantity": 2}],
            "discount_cents": 100,
        })

        assert created.status_code == 201
        assert created.json["success"] is True
        order = created.json["order"]
        assert order["total_cents"] == 1900
        assert order["payment_status"] == "PAID"
        assert order["lines"][0]["quantity"] == 2

        listed = client.get('/api/orders', headers=owner_headers())
        assert [o["id"] for o in listed.json["orders"]] == [order["id"]]

        fetched = client.get(f'/api/orders/{order["id"]}', headers=owner_headers())
        assert fetched.json["order"]["order_number"] == order["order_number"]

        deleted = client.delete(f'/api/orders/{order["id"]}', headers=owner_headers())
        assert deleted.status_code == 200
        assert deleted.json == {"success": True, "deleted": {"id": order["id"], "order_number": order["order_number"]}}

        movements = client.get(f'/api/stock/{product_id}/movements', headers=owner_headers())
        assert [m["movement_type"] for m in movements.json["movements"]] == ["IN", "OUT", "IN"]
        assert movements.json["movements"][0]["new_stock"] == 5

    def test_insufficient_stock_envelope(self, client, db_session, make_product):
        product_id = make_product(name="Lamp", stock=1).id

        response = client.post('/api/orders', headers=owner_headers(), json={
            "items": [{"product_id": product_id, "quantity": 3}],
        })

        assert response.status_code == 409
        assert response.json == {
            "success": False,
            "error": "Insufficient stock for Lamp. Available: 1",
            "code": "INSUFFICIENT_STOCK",
            "product_id": product_id,
            "requested": 3,
            "available": 1,
        }

    def test_validation_envelope(self, client, db_session):
        response = client.post('/api/orders', headers=owner_headers(), json={"items": []})

        assert response.status_code == 400
        assert response.json["success"] is False
        assert response.json["code"] == "VALIDATION_ERROR"

    def test_non_object_body_rejected(self, client, db_session):
        response = client.post('/api/orders', headers=owner_headers(), json=[1, 2])

        assert response.status_code == 400
        assert response.json["code"] == "VALIDATION_ERROR"

    def test_unknown_order(self, client, db_session):
        response = client.get('/api/orders/99999', headers=owner_headers())

        assert response.status_code == 404
        assert response.json["code"] == "NOT_FOUND"

    def test_other_owner_sees_nothing(self, client, db_session):
        created = client.post('/api/orders', headers=owner_headers(), json={"items": [custom_item(100)]})

        response = client.get(f'/api/orders/{created.json["order"]["id"]}', headers=owner_headers("someone_else"))

        assert response.status_code == 404


class TestPaymentRoutes:
    """/api/payments and customer views."""

    def test_invoice_and_customer_payments(self, client, db_session, make_customer):
        customer_id = make_customer().id
        first = client.post('/api/orders', headers=owner_headers(), json={
            "customer_id": customer_id, "items": [custom_item(1000)], "paid_cents": 0,
        }).json["order"]
        second = client.post('/api/orders', headers=owner_headers(), json={
            "customer_id": customer_id, "items": [custom_item(500)], "paid_cents": 0,
        }).json["order"]

        paid = client.post('/api/payments/invoice', headers=owner_headers(), json={
            "sale_id": second["id"], "amount_cents": 500, "method": "CARD",
        })
        assert paid.status_code == 201
        assert paid.json["payment"]["allocation_type"] == "specific_invoice"

        again = client.post('/api/payments/invoice', headers=owner_headers(), json={
            "sale_id": second["id"], "amount_cents": 1,
        })
        assert again.status_code == 409
        assert again.json["code"] == "ALREADY_PAID"

        too_much = client.post('/api/payments/customer', headers=owner_headers(), json={
            "customer_id": customer_id, "amount_cents": 1001,
        })
        assert too_much.status_code == 409
        assert too_much.json["code"] == "AMOUNT_EXCEEDS_DUE"

        lump = client.post('/api/payments/customer', headers=owner_headers(), json={
            "customer_id": customer_id, "amount_cents": 1000,
        })
        assert lump.status_code == 201
        assert lump.json["payment"]["allocation_details"] == [
            {"sale_id": first["id"], "invoice_number": first["order_number"], "amount_cents": 1000}
        ]

        nothing_left = client.post('/api/payments/customer', headers=owner_headers(), json={
            "customer_id": customer_id, "amount_cents": 1,
        })
        assert nothing_left.json["code"] == "NO_OUTSTANDING_DUE"

        history = client.get(f'/api/customers/{customer_id}/payments', headers=owner_headers())
        assert len(history.json["payments"]) == 2

        invoices = client.get(f'/api/customers/{customer_id}/invoices', headers=owner_headers())
        assert {i["payment_status"] for i in invoices.json["invoices"]} == {"PAID"}

        summary = client.get('/api/customers/due-summary', headers=owner_headers())
        assert summary.json["summary"]["total_outstanding_cents"] == 0


class TestProductRoutes:
    """/api/products."""

    def test_create_logs_opening_stock(self, client, db_session):
        created = client.post('/api/products', headers=owner_headers(), json={
            "sku": "CBL-USB-C", "name": "USB-C Cable", "price_cents": 1500, "stock_quantity": 20,
        })

        assert created.status_code == 201
        product = created.json["product"]
        assert product["stock_quantity"] == 20

        movements = client.get(f'/api/stock/{product["id"]}/movements', headers=owner_headers())
        assert [(m["movement_type"], m["previous_stock"], m["new_stock"]) for m in movements.json["movements"]] == [
            ("IN", 0, 20)
        ]

        fetched = client.get(f'/api/products/{product["id"]}', headers=owner_headers())
        assert fetched.json["product"]["sku"] == "CBL-USB-C"

    def test_duplicate_sku(self, client, db_session):
        body = {"sku": "DUP-1", "name": "Thing", "price_cents": 100}
        client.post('/api/products', headers=owner_headers(), json=body)

        response = client.post('/api/products', headers=owner_headers(), json=body)

        assert response.status_code == 409
        assert response.json["code"] == "DUPLICATE_SKU"


class TestPurchaseAndStockRoutes:
    """/api/purchases and /api/stock."""

    def test_purchase_lifecycle(self, client, db_session, make_product, make_supplier):
        product_id = make_product(stock=0).id
        supplier_id = make_supplier().id

        created = client.post('/api/purchases', headers=owner_headers(), json={
            "supplier_id": supplier_id,
            "items": [{"product_id": product_id, "quantity": 5, "purchase_price_cents": 300}],
        })
        assert created.status_code == 201
        purchase = created.json["purchase"]
        assert purchase["due_cents"] == 1500

        updated = client.put(f'/api/purchases/{purchase["id"]}', headers=owner_headers(), json={
            "items": [{"product_id": product_id, "quantity": 8, "purchase_price_cents": 300}],
        })
        assert updated.json["purchase"]["total_cents"] == 2400

        listed = client.get('/api/purchases', headers=owner_headers())
        assert [p["id"] for p in listed.json["purchases"]] == [purchase["id"]]

        assert client.get(f'/api/purchases/{purchase["id"]}', headers=owner_headers()).status_code == 200
        assert client.delete(f'/api/purchases/{purchase["id"]}', headers=owner_headers()).json["success"] is True
        assert client.get(f'/api/purchases/{purchase["id"]}', headers=owner_headers()).status_code == 404

        assert client.delete(f'/api/suppliers/{supplier_id}', headers=owner_headers()).json == {"success": True}

    def test_stock_adjust_and_low_stock(self, client, db_session, make_product):
        product_id = make_product(stock=10, low_stock_threshold=5).id

        out = client.post(f'/api/stock/{product_id}/adjust', headers=owner_headers(), json={
            "movement_type": "OUT", "quantity": 7, "reason": "Damaged",
        })
        assert out.status_code == 200
        assert (out.json["previous_stock"], out.json["new_stock"]) == (10, 3)
        assert out.json["movement"]["reason"] == "Damaged"

        noop = client.post(f'/api/stock/{product_id}/adjust', headers=owner_headers(), json={
            "movement_type": "ADJUST", "quantity": 3,
        })
        assert noop.json["movement"] is None

        low = client.get('/api/stock/low', headers=owner_headers())
        assert [p["id"] for p in low.json["products"]] == [product_id]

        too_many = client.post(f'/api/stock/{product_id}/adjust', headers=owner_headers(), json={
            "movement_type": "OUT", "quantity": 4,
        })
        assert too_many.status_code == 409

        edited = client.put(f'/api/stock/{product_id}', headers=owner_headers(), json={"quantity": 20})
        assert edited.json["new_stock"] == 20

        only_adjust = client.get(f'/api/stock/{product_id}/movements?type=ADJUST', headers=owner_headers())
        assert [m["quantity"] for m in only_adjust.json["movements"]] == [17]

    def test_bad_movement_type(self, client, db_session, make_product):
        product_id = make_product().id

        response = client.post(f'/api/stock/{product_id}/adjust', headers=owner_headers(), json={
            "movement_type": "SIDEWAYS", "quantity": 1,
        })

        assert response.status_code == 400
        assert response.json["code"] == "VALIDATION_ERROR"
