from fastapi.testclient import TestClient

from app.main import app

ADMIN_PASSWORD = "admin-pass"


def _delete(client, url: str, headers: dict, password: str = ADMIN_PASSWORD):
    return client.request("DELETE", url, json={"password": password}, headers=headers)


def test_create_and_list_couriers(client, auth_headers):
    created = client.post(
        "/api/v1/users",
        json={"username": " kofi ", "password": "pw", "name": "Kofi"},
        headers=auth_headers["admin"],
    )
    assert created.status_code == 201
    assert created.json()["username"] == "kofi"
    assert created.json()["role"] == "courier"
    assert "password" not in created.json()

    couriers = client.get("/api/v1/users/couriers", headers=auth_headers["admin"])
    assert couriers.status_code == 200
    assert sorted(item["username"] for item in couriers.json()["items"]) == ["jane", "kofi", "omar"]

    admins = client.get("/api/v1/users", params={"role": "admin"}, headers=auth_headers["admin"])
    assert [item["username"] for item in admins.json()["items"]] == ["dispatch-admin"]


def test_duplicate_username_is_rejected_case_insensitively(client, auth_headers):
    response = client.post(
        "/api/v1/users",
        json={"username": "JANE", "password": "pw", "name": "Other Jane"},
        headers=auth_headers["admin"],
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Username already exists"


def test_update_user(client, auth_headers, courier_user):
    response = client.patch(
        f"/api/v1/users/{courier_user.id}",
        json={"name": "Jane Courier"},
        headers=auth_headers["admin"],
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Jane Courier"


def test_admin_cannot_change_own_role(client, auth_headers, admin_user):
    response = client.patch(
        f"/api/v1/users/{admin_user.id}",
        json={"role": "courier"},
        headers=auth_headers["admin"],
    )

    assert response.status_code == 409


def test_courier_stats_after_ratings(client, auth_headers, create_order, courier_user):
    first = create_order(courier_id=courier_user.id)
    second = create_order(courier_id=courier_user.id)
    create_order(courier_id=courier_user.id)
    client.post("/api/v1/ratings", json={"code": first["code"], "rating": 5})
    client.post("/api/v1/ratings", json={"code": second["code"], "rating": 2})

    response = client.get(f"/api/v1/users/{courier_user.id}/stats", headers=auth_headers["admin"])

    assert response.status_code == 200
    assert response.json() == {
        "courier_id": courier_user.id,
        "total_orders": 3,
        "completed_orders": 2,
        "rated_orders": 2,
        "positive_ratings": 1,
        "negative_ratings": 1,
        "average_rating": 3.5,
    }


def test_delete_user(client, auth_headers, make_user):
    user = make_user("temp")

    assert _delete(client, f"/api/v1/users/{user.id}", auth_headers["admin"], "nope").status_code == 403
    assert _delete(client, f"/api/v1/users/{user.id}", auth_headers["admin"]).status_code == 204
    assert client.get(f"/api/v1/users/{user.id}", headers=auth_headers["admin"]).status_code == 404


def test_delete_courier_with_active_orders_is_rejected(client, auth_headers, assigned_order, courier_user):
    response = _delete(client, f"/api/v1/users/{courier_user.id}", auth_headers["admin"])

    assert response.status_code == 409
    assert response.json()["detail"] == "Courier has active orders"


def test_admin_cannot_delete_self(client, auth_headers, admin_user):
    response = _delete(client, f"/api/v1/users/{admin_user.id}", auth_headers["admin"])

    assert response.status_code == 409


def test_users_require_admin(client, auth_headers):
    assert client.get("/api/v1/users", headers=auth_headers["courier"]).status_code == 403


def test_login_and_me(client, courier_user):
    login = client.post(
        "/api/v1/auth/login", json={"username": "jane", "password": "courier-pass"}
    )
    assert login.status_code == 200
    token = login.json()["access_token"]
    assert login.json()["token_type"] == "bearer"
    assert login.json()["user"]["id"] == courier_user.id

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["username"] == "jane"


def test_login_rejects_bad_password(client, courier_user):
    response = client.post("/api/v1/auth/login", json={"username": "jane", "password": "wrong"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid username or password"


def test_profile_password_change_requires_current_password(client, auth_headers):
    rejected = client.patch(
        "/api/v1/profile", json={"password": "new-pass"}, headers=auth_headers["courier"]
    )
    assert rejected.status_code == 403

    accepted = client.patch(
        "/api/v1/profile",
        json={"password": "new-pass", "current_password": "courier-pass", "name": "Jane D"},
        headers=auth_headers["courier"],
    )
    assert accepted.status_code == 200
    assert accepted.json()["name"] == "Jane D"

    login = client.post("/api/v1/auth/login", json={"username": "jane", "password": "new-pass"})
    assert login.status_code == 200


def test_startup_seeds_bootstrap_admin_on_empty_store():
    with TestClient(app) as client:
        response = client.post(
            "/api/v1/auth/login", json={"username": "admin", "password": "admin123"}
        )

    assert response.status_code == 200
    assert response.json()["user"]["role"] == "admin"
