from decimal import Decimal

PRODUCT = {
    "name": "Ibuprofen 400mg",
    "description": "Box of 20 tablets",
    "price": "6.75",
    "stock": 40,
    "category": "analgesics",
    "sku": "IBU-400",
}


def test_admin_creates_product(client, admin_headers):
    response = client.post("/products", json=PRODUCT, headers=admin_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Product created successfully"
    assert body["product"]["sku"] == "IBU-400"
    assert Decimal(body["product"]["price"]) == Decimal("6.75")
    assert body["product"]["stock"] == 40


def test_product_writes_need_admin(client, user_headers):
    response = client.post("/products", json=PRODUCT, headers=user_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


def test_duplicate_sku(client, admin_headers):
    client.post("/products", json=PRODUCT, headers=admin_headers)

    response = client.post("/products", json={**PRODUCT, "name": "Other"}, headers=admin_headers)

    assert response.status_code == 409
    assert response.json()["error"] == "conflict"


def test_product_validation(client, admin_headers):
    response = client.post(
        "/products",
        json={**PRODUCT, "sku": "AB", "stock": -1, "price": "-2"},
        headers=admin_headers,
    )

    assert response.status_code == 422
    fields = {d["field"] for d in response.json()["details"]}
    assert {"sku", "stock", "price"} <= fields


def test_list_search_and_get(client, admin_headers, user_headers):
    client.post("/products", json=PRODUCT, headers=admin_headers)
    client.post(
        "/products",
        json={**PRODUCT, "name": "Amoxicillin 500mg", "sku": "AMX-500", "category": "antibiotics"},
        headers=admin_headers,
    )

    listed = client.get("/products", headers=user_headers).json()
    assert [p["sku"] for p in listed] == ["AMX-500", "IBU-400"]

    found = client.get("/products", params={"search": "antibio"}, headers=user_headers).json()
    assert [p["sku"] for p in found] == ["AMX-500"]

    product_id = listed[0]["id"]
    assert client.get(f"/products/{product_id}", headers=user_headers).json()["name"] == "Amoxicillin 500mg"
    assert client.get("/products/9999", headers=user_headers).status_code == 404


def test_update_product(client, admin_headers):
    product_id = client.post("/products", json=PRODUCT, headers=admin_headers).json()["product"]["id"]
    client.post("/products", json={**PRODUCT, "sku": "TAKEN"}, headers=admin_headers)

    response = client.put(f"/products/{product_id}", json={"stock": 100, "price": "7.00"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["product"]["stock"] == 100
    assert response.json()["product"]["name"] == PRODUCT["name"]

    response = client.put(f"/products/{product_id}", json={"sku": "TAKEN"}, headers=admin_headers)
    assert response.status_code == 409

    assert client.put("/products/9999", json={"stock": 1}, headers=admin_headers).status_code == 404


def test_delete_product(client, admin_headers, customer):
    product_id = client.post("/products", json=PRODUCT, headers=admin_headers).json()["product"]["id"]
    other_id = client.post("/products", json={**PRODUCT, "sku": "SPARE"}, headers=admin_headers).json()["product"]["id"]
    client.post(
        "/orders",
        json={"customer_id": customer.id, "items": [{"product_id": product_id, "quantity": 1}], "payment_method": "cash"},
        headers=admin_headers,
    )

    response = client.delete(f"/products/{product_id}", headers=admin_headers)
    assert response.status_code == 409

    response = client.delete(f"/products/{other_id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["product"]["sku"] == "SPARE"
    assert client.get(f"/products/{other_id}", headers=admin_headers).status_code == 404
