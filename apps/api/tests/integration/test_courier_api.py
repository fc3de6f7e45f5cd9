def test_courier_sees_only_own_orders(client, auth_headers, create_order, courier_user, other_courier):
    mine = create_order(courier_id=courier_user.id)
    create_order(courier_id=other_courier.id)

    response = client.get("/api/v1/courier/orders", headers=auth_headers["courier"])

    assert response.status_code == 200
    assert [item["id"] for item in response.json()["items"]] == [mine["id"]]


def test_courier_lifecycle_start_then_complete(client, auth_headers, assigned_order):
    order_id = assigned_order["id"]

    started = client.post(f"/api/v1/courier/orders/{order_id}/start", headers=auth_headers["courier"])
    assert started.status_code == 200
    assert started.json()["status"] == "in-progress"

    completed = client.post(
        f"/api/v1/courier/orders/{order_id}/complete", headers=auth_headers["courier"]
    )
    assert completed.status_code == 200
    body = completed.json()
    assert body["status"] == "completed"
    assert body["completed_at"] is not None
    assert body["rating"] is None


def test_courier_cannot_touch_someone_elses_order(client, auth_headers, assigned_order):
    response = client.post(
        f"/api/v1/courier/orders/{assigned_order['id']}/start",
        headers=auth_headers["other_courier"],
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Order is not assigned to this courier"


def test_start_twice_is_rejected(client, auth_headers, assigned_order):
    url = f"/api/v1/courier/orders/{assigned_order['id']}/start"
    assert client.post(url, headers=auth_headers["courier"]).status_code == 200

    second = client.post(url, headers=auth_headers["courier"])

    assert second.status_code == 200
    assert second.json()["status"] == "in-progress"


def test_rating_link_points_at_code(client, auth_headers, assigned_order):
    response = client.get(
        f"/api/v1/courier/orders/{assigned_order['id']}/rating-link",
        headers=auth_headers["courier"],
    )

    assert response.status_code == 200
    assert response.json() == {
        "order_id": assigned_order["id"],
        "code": assigned_order["code"],
        "path": f"/rate?code={assigned_order['code']}",
    }


def test_rating_link_unavailable_after_completion(client, auth_headers, assigned_order):
    client.post(
        f"/api/v1/courier/orders/{assigned_order['id']}/complete", headers=auth_headers["courier"]
    )

    response = client.get(
        f"/api/v1/courier/orders/{assigned_order['id']}/rating-link",
        headers=auth_headers["courier"],
    )

    assert response.status_code == 409


def test_courier_routes_require_token(client):
    assert client.get("/api/v1/courier/orders").status_code == 401


def test_rating_link_unavailable_once_code_expires(client, auth_headers, clock, assigned_order):
    clock.advance(days=8)

    response = client.get(
        f"/api/v1/courier/orders/{assigned_order['id']}/rating-link",
        headers=auth_headers["courier"],
    )

    assert response.status_code == 409
