from types import SimpleNamespace
from unittest.mock import patch

from placement_tracker.core.auth import decode_token, hash_password
from placement_tracker.core.permissions import list_permissions


def _user_row(**overrides):
    row = dict(
        id=1,
        email="owner@school.lk",
        password_hash=hash_password("secret123"),
        full_name="School Owner",
        role="owner",
        must_change_password=False,
    )
    row.update(overrides)
    return SimpleNamespace(**row)


class TestLogin:
    def test_success_returns_token_with_role(self, client, mock_db) -> None:
        db = mock_db("auth_routes")
        db.execute.return_value.fetchone.return_value = _user_row(must_change_password=True)

        response = client.post("/api/auth/login", json={"email": "owner@school.lk", "password": "secret123"})

        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "owner"
        assert body["must_change_password"] is True
        payload = decode_token(body["access_token"])
        assert payload["sub"] == "1"
        assert payload["role"] == "owner"

    def test_wrong_password(self, client, mock_db) -> None:
        db = mock_db("auth_routes")
        db.execute.return_value.fetchone.return_value = _user_row()

        response = client.post("/api/auth/login", json={"email": "owner@school.lk", "password": "nope"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid email or password"}

    def test_unknown_or_inactive_user(self, client, mock_db) -> None:
        db = mock_db("auth_routes")
        db.execute.return_value.fetchone.return_value = None

        response = client.post("/api/auth/login", json={"email": "ghost@school.lk", "password": "secret123"})

        assert response.status_code == 401


class TestAuthentication:
    def test_missing_token_is_401_without_db(self, client) -> None:
        with patch("placement_tracker.api.routes.student_routes.execute_raw_sql") as mock_sql:
            response = client.get("/api/students")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        mock_sql.assert_not_called()

    def test_invalid_token(self, client) -> None:
        response = client.get("/api/auth/permissions", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token"}


class TestPermissionsEndpoint:
    def test_lists_exactly_the_role_permissions(self, client, auth_headers) -> None:
        response = client.get("/api/auth/permissions", headers=auth_headers("teacher"))

        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "teacher"
        assert body["permissions"] == sorted(p.value for p in list_permissions("teacher"))

    def test_unknown_role_gets_nothing(self, client, auth_headers) -> None:
        response = client.get("/api/auth/permissions", headers=auth_headers("guest"))
        assert response.json()["permissions"] == []


class TestChangePassword:
    def test_too_short(self, client, auth_headers, mock_db) -> None:
        db = mock_db("auth_routes")
        response = client.post(
            "/api/auth/change-password", json={"new_password": "abc"}, headers=auth_headers("teacher")
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"
        db.execute.assert_not_called()

    def test_clears_must_change_flag(self, client, auth_headers, mock_db) -> None:
        db = mock_db("auth_routes")
        db.execute.return_value.fetchone.return_value = (1,)

        response = client.post(
            "/api/auth/change-password", json={"new_password": "newsecret"}, headers=auth_headers("teacher")
        )

        assert response.status_code == 200
        sql = str(db.execute.call_args.args[0])
        assert "must_change_password = false" in sql
