import pytest

ORDER_PAYLOAD = {
    "address": "123 Main St",
    "phone_number": "555-0100",
    "delivery_time": "2025-01-01T10:00",
}


@pytest.fixture
def order_payload():
    return dict(ORDER_PAYLOAD)


@pytest.fixture
def create_order(client, auth_headers, order_payload):
    def _create(**overrides) -> dict:
        response = client.post(
            "/api/v1/orders",
            json={**order_payload, **overrides},
            headers=auth_headers["admin"],
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def assigned_order(client, auth_headers, create_order, courier_user):
    order = create_order()
    response = client.post(
        f"/api/v1/orders/{order['id']}/assign",
        json={"courier_id": courier_user.id},
        headers=auth_headers["admin"],
    )
    assert response.status_code == 200, response.text
    return response.json()
