import pytest


def _item(product_id=1, quantity=1, variant_id=None, **extra):
    item = {"productId": product_id, "productName": "Oolong Milk Tea", "quantity": quantity, "price": 4.0}
    if variant_id is not None:
        item["variantId"] = variant_id
        item["variantSize"] = "L"
    item.update(extra)
    return item


@pytest.fixture
def headers(make_user, auth_headers):
    return auth_headers(make_user())


def test_cart_requires_auth(client):
    assert client.get("/api/cart").status_code == 401


def test_save_replaces_and_clear_empties(client, headers):
    client.post("/api/cart", json={"items": [_item(1), _item(2)]}, headers=headers)
    saved = client.post("/api/cart", json={"items": [_item(3, quantity=2, imageUrl="/img/3.png")]}, headers=headers)
    assert saved.json() == {"success": True, "message": "Cart saved successfully"}

    items = client.get("/api/cart", headers=headers).json()["data"]["items"]
    assert len(items) == 1
    assert items[0]["productId"] == 3
    assert items[0]["quantity"] == 2
    assert items[0]["imageUrl"] == "/img/3.png"

    client.delete("/api/cart", headers=headers)
    assert client.get("/api/cart", headers=headers).json()["data"]["items"] == []


def test_save_rejects_invalid_items(client, headers):
    response = client.post("/api/cart", json={"items": "nope"}, headers=headers)

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_add_merges_same_product_and_variant(client, headers):
    client.post("/api/cart/items", json=_item(1, quantity=1, variant_id=7), headers=headers)
    client.post("/api/cart/items", json=_item(1, quantity=2, variant_id=7), headers=headers)
    response = client.post("/api/cart/items", json=_item(1, quantity=1), headers=headers)

    assert response.status_code == 201
    items = {item["variantId"]: item for item in response.json()["data"]["items"]}
    assert items[7]["quantity"] == 3
    assert items[None]["quantity"] == 1


def test_update_and_remove_items(client, headers):
    client.post("/api/cart/items", json=_item(1), headers=headers)
    client.post("/api/cart/items", json=_item(2, variant_id=5), headers=headers)

    updated = client.put("/api/cart/items/1", json={"quantity": 4}, headers=headers)
    assert {i["productId"]: i["quantity"] for i in updated.json()["data"]["items"]} == {1: 4, 2: 1}

    emptied = client.put("/api/cart/items/2?variantId=5", json={"quantity": 0}, headers=headers)
    assert [i["productId"] for i in emptied.json()["data"]["items"]] == [1]

    removed = client.delete("/api/cart/items/1", headers=headers)
    assert removed.json()["data"]["items"] == []

    assert client.delete("/api/cart/items/1", headers=headers).status_code == 404


def test_carts_are_per_user(client, make_user, auth_headers, headers):
    other = auth_headers(make_user(email="other@example.com"))
    client.post("/api/cart/items", json=_item(1), headers=headers)

    assert client.get("/api/cart", headers=other).json()["data"]["items"] == []
