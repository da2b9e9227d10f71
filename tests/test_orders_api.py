import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from restobot.models import Customer, DeliveryZone, Order, Product

BASE = "/api/admin/orders"


@pytest.fixture
async def zone(db, restaurant) -> DeliveryZone:
    zone = DeliveryZone(
        restaurant_id=restaurant.id,
        name="Centro",
        delivery_fee=Decimal("8.00"),
        min_order_value=Decimal("50.00"),
    )
    db.add(zone)
    await db.commit()
    return zone


def order_body(restaurant, product, quantity=2, **overrides):
    body = {
        "restaurant_id": str(restaurant.id),
        "customer": {"phone": "+55 (11) 98765-4321", "name": "Maria", "address": "Rua A, 10"},
        "items": [{"product_id": str(product.id), "quantity": quantity}],
    }
    body.update(overrides)
    return body


async def test_create_order_prices_from_catalog(client, restaurant, product, zone):
    body = order_body(restaurant, product, delivery_zone_id=str(zone.id))
    body["items"][0]["unit_price"] = "0.01"

    response = await client.post(BASE, json=body)

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["payment_status"] == "pending"
    assert Decimal(data["subtotal"]) == Decimal("85.00")
    assert Decimal(data["delivery_fee"]) == Decimal("8.00")
    assert Decimal(data["total"]) == Decimal("93.00")
    assert data["delivery_zone_id"] == str(zone.id)
    assert data["delivery_address"] == "Rua A, 10"
    assert data["customer"]["phone"] == "5511987654321"
    [item] = data["items"]
    assert item["product_name"] == "Pizza Margherita"
    assert Decimal(item["unit_price"]) == Decimal("42.50")
    assert Decimal(item["total_price"]) == Decimal("85.00")


async def test_create_order_default_fee_and_pickup(client, restaurant, product, settings):
    delivery = await client.post(BASE, json=order_body(restaurant, product, quantity=1))
    pickup = await client.post(
        BASE, json=order_body(restaurant, product, quantity=1, delivery_type="pickup")
    )

    assert Decimal(delivery.json()["delivery_fee"]) == settings.default_delivery_fee
    assert Decimal(pickup.json()["delivery_fee"]) == Decimal("0")
    assert Decimal(pickup.json()["total"]) == Decimal("42.50")
    assert pickup.json()["delivery_address"] is None


async def test_create_order_reuses_customer(client, restaurant, product, session_factory):
    await client.post(BASE, json=order_body(restaurant, product))
    body = order_body(restaurant, product)
    body["customer"] = {"phone": "5511987654321", "email": "maria@example.com"}
    response = await client.post(BASE, json=body)

    assert response.status_code == 201
    assert response.json()["customer"]["name"] == "Maria"
    assert response.json()["customer"]["email"] == "maria@example.com"
    async with session_factory() as session:
        assert await session.scalar(select(func.count(Customer.id))) == 1


async def test_create_order_below_zone_minimum(client, restaurant, product, zone, session_factory):
    response = await client.post(
        BASE, json=order_body(restaurant, product, quantity=1, delivery_zone_id=str(zone.id))
    )

    assert response.status_code == 400
    assert "Minimum order" in response.json()["detail"]
    async with session_factory() as session:
        assert await session.scalar(select(func.count(Order.id))) == 0


async def test_create_order_inactive_zone(client, restaurant, product, zone, db):
    zone.is_active = False
    await db.commit()

    response = await client.post(
        BASE, json=order_body(restaurant, product, delivery_zone_id=str(zone.id))
    )

    assert response.status_code == 400


async def test_create_order_unknown_restaurant(client, restaurant, product):
    body = order_body(restaurant, product, restaurant_id=str(uuid.uuid4()))

    response = await client.post(BASE, json=body)

    assert response.status_code == 404


async def test_create_order_rejects_bad_products(client, restaurant, product, db):
    unknown = order_body(restaurant, product)
    unknown["items"] = [{"product_id": str(uuid.uuid4()), "quantity": 1}]
    assert (await client.post(BASE, json=unknown)).status_code == 400

    empty = order_body(restaurant, product, items=[])
    assert (await client.post(BASE, json=empty)).status_code == 400

    product.is_available = False
    await db.commit()
    response = await client.post(BASE, json=order_body(restaurant, product))
    assert response.status_code == 400
    assert "not available" in response.json()["detail"]


async def test_create_order_rejects_other_restaurants_product(client, restaurant, product, db):
    other = Product(restaurant_id=uuid.uuid4(), name="Sushi", price=Decimal("10.00"))
    db.add(other)
    await db.commit()

    body = order_body(restaurant, product)
    body["items"].append({"product_id": str(other.id), "quantity": 1})
    response = await client.post(BASE, json=body)

    assert response.status_code == 400


async def test_create_order_validates_quantity(client, restaurant, product):
    response = await client.post(BASE, json=order_body(restaurant, product, quantity=0))

    assert response.status_code == 422


async def test_status_lifecycle(client, restaurant, product):
    created = await client.post(BASE, json=order_body(restaurant, product))
    order_id = created.json()["id"]

    for status in ("confirmed", "preparing", "ready", "delivered"):
        response = await client.patch(f"{BASE}/{order_id}/status", json={"status": status})
        assert response.status_code == 200
        assert response.json()["status"] == status

    response = await client.patch(f"{BASE}/{order_id}/status", json={"status": "cancelled"})
    assert response.status_code == 409
    assert (await client.get(f"{BASE}/{order_id}")).json()["status"] == "delivered"


async def test_cannot_skip_or_cancel_in_kitchen(client, restaurant, product):
    created = await client.post(BASE, json=order_body(restaurant, product))
    order_id = created.json()["id"]

    skip = await client.patch(f"{BASE}/{order_id}/status", json={"status": "ready"})
    assert skip.status_code == 409

    await client.patch(f"{BASE}/{order_id}/status", json={"status": "confirmed"})
    await client.patch(f"{BASE}/{order_id}/status", json={"status": "preparing"})
    cancel = await client.patch(f"{BASE}/{order_id}/status", json={"status": "cancelled"})
    assert cancel.status_code == 409


async def test_status_unknown_order(client):
    response = await client.patch(f"{BASE}/{uuid.uuid4()}/status", json={"status": "confirmed"})

    assert response.status_code == 404


async def test_get_unknown_order(client):
    response = await client.get(f"{BASE}/{uuid.uuid4()}")

    assert response.status_code == 404


async def test_list_orders_paginates_and_filters(client, restaurant, product):
    ids = []
    for _ in range(3):
        created = await client.post(BASE, json=order_body(restaurant, product, quantity=1))
        ids.append(created.json()["id"])
    await client.patch(f"{BASE}/{ids[0]}/status", json={"status": "cancelled"})

    first = await client.get(BASE, params={"restaurant_id": str(restaurant.id), "page_size": 2})
    second = await client.get(
        BASE, params={"restaurant_id": str(restaurant.id), "page_size": 2, "page": 2}
    )
    cancelled = await client.get(BASE, params={"status": "cancelled"})
    elsewhere = await client.get(BASE, params={"restaurant_id": str(uuid.uuid4())})

    assert first.json()["total"] == 3
    assert len(first.json()["orders"]) == 2
    assert len(second.json()["orders"]) == 1
    listed = {o["id"] for o in first.json()["orders"] + second.json()["orders"]}
    assert listed == set(ids)
    assert [o["id"] for o in cancelled.json()["orders"]] == [ids[0]]
    assert elsewhere.json()["total"] == 0
