import pytest


def _create_product(client, name="Pad Thai", price=1099, category="FOOD"):
    resp = client.post("/api/products", json={"name": name, "price": price, "category": category})
    assert resp.status_code == 201, resp.text
    return resp.json()


def _open_order(client, table_number, product_id, quantity=1):
    resp = client.post(
        "/api/orders",
        json={"table_number": table_number, "items": [{"product_id": product_id, "quantity": quantity}]},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------- infraestrutura ----------------
def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy"}


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"
    assert client.get("/health").headers["X-Request-ID"]


def test_metrics_endpoint(client):
    product = _create_product(client)
    _open_order(client, 1, product["id"])
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "order_operations_total" in resp.text
    assert "http_requests_total" in resp.text


# ---------------- produtos ----------------
def test_product_crud(client):
    product = _create_product(client, "Green Curry", 9500)
    assert product["price"] == "9500"
    assert product["is_active"] is True

    resp = client.patch(f"/api/products/{product['id']}", json={"price": 9900})
    assert resp.status_code == 200
    assert resp.json()["price"] == "9900"

    resp = client.delete(f"/api/products/{product['id']}")
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    assert client.get("/api/products/menu").json() == []
    assert client.get(f"/api/products/{product['id']}").json()["is_active"] is False


def test_product_list_filters(client):
    _create_product(client, "Pad Thai", 8900, "FOOD")
    _create_product(client, "Thai Iced Tea", 4500, "DRINK")
    _create_product(client, "Hot Coffee", 4000, "DRINK")

    resp = client.get("/api/products", params={"search": "THAI", "limit": 1})
    body = resp.json()
    assert body["total"] == 2
    assert body["total_pages"] == 2
    assert len(body["data"]) == 1

    drinks = client.get("/api/products", params={"category": "DRINK"}).json()
    assert [p["name"] for p in drinks["data"]] == ["Hot Coffee", "Thai Iced Tea"]


def test_product_search_matches_wildcards_literally(client):
    _create_product(client, "Combo 50% off", 5000, "FOOD")
    _create_product(client, "Combo 50 pratos", 9000, "FOOD")
    _create_product(client, "Suco_natural", 1500, "DRINK")
    _create_product(client, "Suco de uva", 1200, "DRINK")

    body = client.get("/api/products", params={"search": "50%"}).json()
    assert [p["name"] for p in body["data"]] == ["Combo 50% off"]

    body = client.get("/api/products", params={"search": "suco_"}).json()
    assert [p["name"] for p in body["data"]] == ["Suco_natural"]


def test_product_errors(client):
    resp = client.get("/api/products/999")
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"

    resp = client.post("/api/products", json={"name": "Free", "price": 0, "category": "FOOD"})
    assert resp.status_code == 400
    assert resp.json()["field"] == "price"


# ---------------- pedidos ----------------
def test_order_lifecycle(client):
    product = _create_product(client)
    order = _open_order(client, 5, product["id"], 2)
    assert order["status"] == "OPEN"
    assert order["subtotal"] == "2198"
    assert order["grand_total"] == "2198"
    assert order["items"][0]["item_total"] == "2198"

    order_id = order["id"]
    item_id = order["items"][0]["id"]

    resp = client.patch(f"/api/orders/{order_id}/items/{item_id}", json={"quantity": 3})
    assert resp.json()["subtotal"] == "3297"

    resp = client.post(f"/api/orders/{order_id}/items", json={"items": [{"product_id": product["id"], "quantity": 1}]})
    assert [i["batch_sequence"] for i in resp.json()["items"]] == [1, 2]

    resp = client.post(f"/api/orders/{order_id}/confirm")
    assert resp.json()["status"] == "CONFIRMED"

    resp = client.post(f"/api/orders/{order_id}/items/{item_id}/void", json={"reason": "cliente desistiu"})
    assert resp.json()["subtotal"] == "1099"

    resp = client.post(f"/api/orders/{order_id}/checkout", json={"discount_type": "PERCENT", "discount_value": 10})
    body = resp.json()
    assert resp.status_code == 200, resp.text
    assert body["status"] == "PAID"
    assert body["discount_value"] == "10"
    assert body["discount_amount"] == "109"
    assert body["grand_total"] == "990"

    detail = client.get(f"/api/orders/{order_id}").json()
    assert [log["action"] for log in detail["logs"]] == [
        "CHECKOUT",
        "VOID_ITEM",
        "CONFIRM",
        "ADD_ITEMS",
        "UPDATE_QUANTITY",
        "CREATE",
    ]


def test_checkout_without_body(client):
    product = _create_product(client)
    order = _open_order(client, 5, product["id"])
    client.post(f"/api/orders/{order['id']}/confirm")
    resp = client.post(f"/api/orders/{order['id']}/checkout")
    assert resp.status_code == 200
    assert resp.json()["grand_total"] == "1099"
    assert resp.json()["discount_type"] is None


def test_list_orders_and_active_for_table(client):
    product = _create_product(client)
    first = _open_order(client, 1, product["id"])
    _open_order(client, 2, product["id"])
    client.post(f"/api/orders/{first['id']}/cancel")

    body = client.get("/api/orders", params={"status": "OPEN"}).json()
    assert body["pagination"]["total"] == 1
    assert body["data"][0]["table_number"] == 2
    assert body["data"][0]["active_item_count"] == 1

    assert client.get("/api/orders/tables/1/active").json() is None
    assert client.get("/api/orders/tables/2/active").json()["table_number"] == 2


def test_error_mapping(client):
    product = _create_product(client)
    order = _open_order(client, 8, product["id"])

    # pedido inexistente
    resp = client.post("/api/orders/999/confirm")
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"

    # checkout fora de CONFIRMED
    resp = client.post(f"/api/orders/{order['id']}/checkout")
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_STATE"
    assert resp.json()["retryable"] is False

    # mesa já ocupada
    resp = client.post("/api/orders", json={"table_number": 8, "items": [{"product_id": product["id"], "quantity": 1}]})
    assert resp.status_code == 409
    assert resp.json()["code"] == "CONFLICT"

    # regra de negócio
    client.post(f"/api/orders/{order['id']}/confirm")
    resp = client.post(
        f"/api/orders/{order['id']}/checkout", json={"discount_type": "PERCENT", "discount_value": 50.0001}
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"
    assert resp.json()["field"] == "discount_value"

    # formato do payload
    resp = client.post("/api/orders", json={"table_number": "abc", "items": []})
    assert resp.status_code == 422
    assert resp.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.parametrize(
    "path, raw_body",
    [
        ("/api/orders/1/checkout", '{"discount_type": "PERCENT", "discount_value": 1e400}'),
        ("/api/orders", '{"table_number": NaN, "items": []}'),
    ],
)
def test_non_finite_numbers_are_rejected(client, path, raw_body):
    resp = client.post(path, content=raw_body, headers={"Content-Type": "application/json"})
    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert any(detail["input"] in ("inf", "nan") for detail in body["details"])


def test_error_carries_request_id(client):
    resp = client.get("/api/orders/4040", headers={"X-Request-ID": "trace-1"})
    assert resp.status_code == 404
    assert resp.json()["request_id"] == "trace-1"
    assert resp.headers["X-Request-ID"] == "trace-1"


def test_invalid_date_range(client):
    resp = client.get("/api/reports/sales", params={"start_date": "2026-02-10", "end_date": "2026-02-01"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


def test_reports_endpoints(client):
    product = _create_product(client)
    order = _open_order(client, 3, product["id"], 2)
    client.post(f"/api/orders/{order['id']}/confirm")
    client.post(f"/api/orders/{order['id']}/checkout", json={"discount_type": "FIXED", "discount_value": 198})

    sales = client.get("/api/reports/sales").json()
    assert sales["summary"]["total_orders"] == 1
    assert sales["summary"]["net_sales"] == "2000"

    dashboard = client.get("/api/reports/dashboard").json()
    assert dashboard["today_summary"]["revenue"] == "2000"
    assert dashboard["category_breakdown"][0]["category"] == "FOOD"
