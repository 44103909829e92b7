# Overview: Pytest coverage for the JSON API (status codes and error mapping).

from estoque.models import Product


class TestSystemRoutes:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"


class TestCatalogRoutes:

    def test_create_product_records_initial_stock(self, client, category):
        resp = client.post("/api/products", json={
            "sku": "FUR-01",
            "name": "Furadeira",
            "price_cents": 29990,
            "quantity": 4,
            "category_id": category.id,
        })
        assert resp.status_code == 201
        product = resp.get_json()["product"]
        assert product["quantity"] == 4
        assert product["min_stock"] == 5

        movements = client.get(f"/api/movements?product_id={product['id']}").get_json()
        assert movements["count"] == 1
        assert movements["items"][0]["reason"] == "Estoque inicial"

    def test_unknown_field_is_400(self, client, category):
        resp = client.post("/api/products", json={"sku": "A", "name": "A", "price_cents": 1,
                                                  "category_id": category.id, "color": "red"})
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "VALIDATION_ERROR"

    def test_duplicate_sku_is_409(self, client, product, category):
        resp = client.post("/api/products", json={
            "sku": product.sku, "name": "Dup", "price_cents": 100, "category_id": category.id,
        })
        assert resp.status_code == 409

    def test_missing_product_is_404(self, client):
        assert client.get("/api/products/99999").status_code == 404


class TestMovementRoutes:

    def test_manual_out_insufficient_is_400(self, client, make_product):
        p = make_product(quantity=2)
        resp = client.post("/api/movements", json={"product_id": p.id, "type": "OUT", "quantity": 3})

        assert resp.status_code == 400
        body = resp.get_json()
        assert body["code"] == "INSUFFICIENT_STOCK"
        assert body["details"] == {
            "product_id": p.id,
            "product_name": p.name,
            "available": 2,
            "required": 3,
        }

    def test_manual_in(self, client, product):
        resp = client.post("/api/movements", json={"product_id": product.id, "type": "IN", "quantity": 6})
        assert resp.status_code == 201
        assert resp.get_json()["product_quantity"] == 6

    def test_oversized_quantity_is_400(self, client, db_session, product):
        resp = client.post("/api/movements", json={"product_id": product.id, "type": "IN", "quantity": 10**19})

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "VALIDATION_ERROR"
        db_session.expire_all()
        assert db_session.get(Product, product.id).quantity == 0

    def test_bad_since_is_400(self, client):
        resp = client.get("/api/movements?since=yesterday")
        assert resp.status_code == 400

    def test_since_accepts_utc_suffix(self, client, make_product):
        make_product(quantity=1)
        body = client.get("/api/movements?since=2000-01-01T00:00:00Z").get_json()
        assert body["count"] == 1
        assert body["items"][0]["created_at"].endswith("Z")

    def test_reconcile(self, client, product):
        body = client.get("/api/movements/reconcile").get_json()
        assert body == {"consistent": True, "drift": []}


class TestOrderFlowRoutes:

    def test_purchase_then_sale_flow(self, client, db_session, supplier, customer, product):
        resp = client.post("/api/purchase-orders", json={
            "supplier_id": supplier.id,
            "items": [{"product_id": product.id, "quantity": 10, "unit_price_cents": 500}],
        })
        assert resp.status_code == 201
        po = resp.get_json()["purchase_order"]
        assert po["code"] == "PO-0001"
        assert po["total_value_cents"] == 5000

        resp = client.patch(f"/api/purchase-orders/{po['id']}/status", json={"status": "RECEBIDA"})
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "INVALID_TRANSITION"

        resp = client.patch(f"/api/purchase-orders/{po['id']}/status", json={"status": "APROVADA"})
        assert resp.status_code == 200

        resp = client.post(f"/api/purchase-orders/{po['id']}/receive", json={
            "items": [{"product_id": product.id, "received_qty": 7}],
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["purchase_order"]["status"] == "EM_TRANSITO"
        assert len(body["divergences"]) == 1

        payables = client.get("/api/accounts-payable").get_json()
        assert payables["total_cents"] == 3500

        resp = client.post("/api/sales-orders", json={
            "customer_id": customer.id,
            "items": [{"product_id": product.id, "quantity": 5, "unit_price_cents": 2500}],
        })
        assert resp.status_code == 201
        so = resp.get_json()["sales_order"]
        client.patch(f"/api/sales-orders/{so['id']}/status", json={"status": "APROVADA"})

        resp = client.patch(f"/api/sales-orders/{so['id']}/status", json={"status": "FATURADA"})
        assert resp.status_code == 200
        assert resp.get_json()["sales_order"]["receivable"]["amount_cents"] == 12500
        db_session.expire_all()
        assert db_session.get(Product, product.id).quantity == 2

        receivables = client.get("/api/accounts-receivable?status=PENDENTE").get_json()
        assert receivables["count"] == 1
        resp = client.post(f"/api/accounts-receivable/{receivables['items'][0]['id']}/receive")
        assert resp.status_code == 200
        assert resp.get_json()["receivable"]["status"] == "RECEBIDO"

    def test_receive_unknown_order_is_404(self, client, product):
        resp = client.post("/api/purchase-orders/99999/receive", json={
            "items": [{"product_id": product.id, "received_qty": 1}],
        })
        assert resp.status_code == 404

    def test_oversized_order_is_400(self, client, supplier, product):
        resp = client.post("/api/purchase-orders", json={
            "supplier_id": supplier.id,
            "items": [{"product_id": product.id, "quantity": 10**12, "unit_price_cents": 999_999_999}],
        })
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "VALIDATION_ERROR"
        assert client.get("/api/purchase-orders").get_json()["count"] == 0

    def test_missing_supplier_id_is_400(self, client):
        resp = client.post("/api/purchase-orders", json={"items": []})
        assert resp.status_code == 400

    def test_goods_receipts_listing(self, client, supplier, product):
        po = client.post("/api/purchase-orders", json={
            "supplier_id": supplier.id,
            "items": [{"product_id": product.id, "quantity": 2, "unit_price_cents": 100}],
        }).get_json()["purchase_order"]
        client.patch(f"/api/purchase-orders/{po['id']}/status", json={"status": "APROVADA"})
        resp = client.post("/api/goods-receipts", json={
            "purchase_order_id": po["id"],
            "items": [{"product_id": product.id, "received_qty": 2}],
        })
        assert resp.status_code == 201
        assert resp.get_json()["divergences"] == []

        listing = client.get("/api/goods-receipts").get_json()
        assert listing["count"] == 1
        assert listing["items"][0]["purchase_order"]["code"] == "PO-0001"

        detail = client.get(f"/api/purchase-orders/{po['id']}").get_json()["purchase_order"]
        assert detail["status"] == "RECEBIDA"
        assert len(detail["goods_receipts"]) == 1
        assert len(detail["payables"]) == 1
