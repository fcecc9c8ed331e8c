import pytest
from sqlalchemy import event, text
from sqlalchemy.orm import Session

from conftest import order_payload
from storefront.models import Order, ProductVariant


def _stock(db, variant_id):
    db.expire_all()
    return db.query(ProductVariant).filter(ProductVariant.id == variant_id).one().stock


def test_total_is_computed_from_catalog_prices(client, make_product):
    tea = make_product(price=4.0, variants=[("M", 10, 0.0), ("L", 10, 1.5)])
    large = next(v for v in tea.variants if v.size == "L")
    chips = make_product(name="Shrimp Chips", price=2.25, category="snack")

    items = [
        # client-side prices are ignored
        {"productId": tea.id, "variantId": large.id, "quantity": 2, "price": 0.01},
        {"productId": chips.id, "quantity": 3, "price": 0},
    ]
    response = client.post("/api/orders", json=order_payload(items))

    assert response.status_code == 201
    order = response.json()["data"]
    assert order["status"] == "pending"
    assert order["totalAmount"] == pytest.approx(5.5 * 2 + 2.25 * 3)
    lines = {line["productName"]: line for line in order["items"]}
    assert lines["Brown Sugar Milk Tea"]["price"] == pytest.approx(5.5)
    assert lines["Brown Sugar Milk Tea"]["variantSize"] == "L"
    assert lines["Shrimp Chips"]["price"] == pytest.approx(2.25)
    assert lines["Shrimp Chips"]["variantId"] is None
    assert order["customerInfo"] == {"name": "Lan Nguyen", "phone": "0901234567", "email": None, "address": None}


def test_quantity_over_stock_is_rejected_without_mutation(client, db, make_product):
    tea = make_product(price=3.0, variants=[("M", 5, 0.0)])
    variant = tea.variants[0]

    rejected = client.post(
        "/api/orders", json=order_payload([{"productId": tea.id, "variantId": variant.id, "quantity": 6}])
    )
    assert rejected.status_code == 400
    assert rejected.json() == {
        "success": False,
        "message": 'Variant "M" only has 5 items in stock, but 6 were requested',
    }
    assert _stock(db, variant.id) == 5

    accepted = client.post(
        "/api/orders", json=order_payload([{"productId": tea.id, "variantId": variant.id, "quantity": 3}])
    )
    assert accepted.status_code == 201
    assert accepted.json()["data"]["totalAmount"] == pytest.approx(9.0)
    assert _stock(db, variant.id) == 2


def test_late_item_failure_rolls_back_earlier_decrements(client, db, make_product):
    first = make_product(name="Taro Milk Tea", variants=[("M", 5, 0.0)])
    second = make_product(name="Matcha Latte", variants=[("M", 1, 0.0)])

    items = [
        {"productId": first.id, "variantId": first.variants[0].id, "quantity": 2},
        {"productId": second.id, "variantId": second.variants[0].id, "quantity": 4},
    ]
    response = client.post("/api/orders", json=order_payload(items))

    assert response.status_code == 400
    assert _stock(db, first.variants[0].id) == 5
    assert _stock(db, second.variants[0].id) == 1
    assert db.query(Order).count() == 0


def test_same_variant_twice_cannot_exceed_stock(client, db, make_product):
    tea = make_product(variants=[("S", 3, 0.0)])
    variant_id = tea.variants[0].id
    items = [
        {"productId": tea.id, "variantId": variant_id, "quantity": 2},
        {"productId": tea.id, "variantId": variant_id, "quantity": 2},
    ]

    response = client.post("/api/orders", json=order_payload(items))

    assert response.status_code == 400
    assert _stock(db, variant_id) == 3


def test_stock_taken_after_the_read_rejects_the_order(client, db, make_product):
    tea = make_product(variants=[("M", 5, 0.0)])
    variant_id = tea.variants[0].id

    def sell_out_first(orm_execute_state):
        # another buyer takes four units between the stock read and the decrement
        if orm_execute_state.is_update:
            orm_execute_state.session.connection().execute(
                text("UPDATE product_variants SET stock = 1 WHERE id = :id"), {"id": variant_id}
            )

    event.listen(Session, "do_orm_execute", sell_out_first)
    try:
        response = client.post(
            "/api/orders", json=order_payload([{"productId": tea.id, "variantId": variant_id, "quantity": 2}])
        )
    finally:
        event.remove(Session, "do_orm_execute", sell_out_first)

    assert response.status_code == 400
    assert response.json()["message"].startswith('Variant "M" only has')
    assert _stock(db, variant_id) == 5
    assert db.query(Order).count() == 0


def test_catalog_reference_failures(client, make_product):
    tea = make_product(variants=[("M", 5, 0.0)])
    other = make_product(name="Peach Tea", category="drink", variants=[("L", 5, 0.5)])
    sold_out = make_product(name="Mango Snow", in_stock=False)

    cases = [
        ({"productId": 9999, "quantity": 1}, "Product with ID 9999 not found"),
        ({"productId": sold_out.id, "quantity": 1}, 'Product "Mango Snow" is out of stock'),
        ({"productId": tea.id, "variantId": 9999, "quantity": 1}, "Variant with ID 9999 not found"),
        (
            {"productId": tea.id, "variantId": other.variants[0].id, "quantity": 1},
            f"Variant {other.variants[0].id} does not belong to product {tea.id}",
        ),
    ]
    for item, message in cases:
        response = client.post("/api/orders", json=order_payload([item]))
        assert response.status_code == 400
        assert response.json()["message"] == message


@pytest.mark.parametrize(
    "payload, message",
    [
        (order_payload([{"productId": 1, "quantity": 1}], name=" A "), "Customer name must be at least 2 characters"),
        (order_payload([{"productId": 1, "quantity": 1}], phone="12345"), "Invalid phone number format"),
        (order_payload([{"productId": 1, "quantity": 1}], email="lan@"), "Invalid email format"),
        (order_payload([]), "Order must contain at least one item"),
        (order_payload([{"productId": 1, "quantity": 0}]), "All items must have valid product ID and quantity > 0"),
    ],
)
def test_request_validation(client, payload, message):
    response = client.post("/api/orders", json=payload)

    assert response.status_code == 400
    assert response.json()["message"] == message


def test_phone_with_spaces_is_accepted(client, make_product):
    chips = make_product(name="Rice Crackers", category="snack", price=1.0)

    response = client.post(
        "/api/orders", json=order_payload([{"productId": chips.id, "quantity": 1}], phone="090 123 4567")
    )

    assert response.status_code == 201


def test_guest_and_member_orders(client, make_product, make_user, auth_headers):
    chips = make_product(name="Rice Crackers", category="snack", price=1.0)
    payload = order_payload([{"productId": chips.id, "quantity": 1}])

    guest = client.post("/api/orders", json=payload).json()["data"]
    assert guest["userId"] is None

    user = make_user()
    member = client.post("/api/orders", json=payload, headers=auth_headers(user)).json()["data"]
    assert member["userId"] == user.id

    history = client.get("/api/users/me/orders", headers=auth_headers(user)).json()
    assert [o["id"] for o in history["data"]] == [member["id"]]


def test_order_items_keep_their_snapshot(client, db, make_product):
    tea = make_product(name="Jasmine Tea", price=3.0)
    created = client.post("/api/orders", json=order_payload([{"productId": tea.id, "quantity": 1}])).json()["data"]

    tea.name = "Jasmine Green Tea"
    tea.price = 3.5
    db.commit()

    fetched = client.get(f"/api/orders/{created['id']}")
    assert fetched.status_code == 200
    line = fetched.json()["data"]["items"][0]
    assert line["productName"] == "Jasmine Tea"
    assert line["price"] == pytest.approx(3.0)


def test_missing_order_is_404(client):
    response = client.get("/api/orders/12345")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Order not found"}
