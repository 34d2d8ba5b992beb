from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest


NEW_USER = {"email": "new@school.lk", "password": "temp1234", "full_name": "New Staff"}


def _result(fetchone=None):
    result = MagicMock()
    result.fetchone.return_value = fetchone
    return result


def _created_row(role: str):
    return SimpleNamespace(_mapping={
        "id": 9, "email": NEW_USER["email"], "full_name": NEW_USER["full_name"], "role": role,
        "is_active": True, "must_change_password": True, "created_at": None,
    })


class TestCreateUser:
    def test_admin_cannot_create_admin(self, client, auth_headers, mock_db) -> None:
        db = mock_db("user_routes")

        response = client.post("/api/users", json={**NEW_USER, "role": "admin"}, headers=auth_headers("admin"))

        assert response.status_code == 403
        db.execute.assert_not_called()

    def test_teacher_cannot_create_anyone(self, client, auth_headers, mock_db) -> None:
        db = mock_db("user_routes")
        response = client.post("/api/users", json={**NEW_USER, "role": "teacher"}, headers=auth_headers("teacher"))
        assert response.status_code == 403
        db.execute.assert_not_called()

    def test_admin_creates_teacher_with_temporary_password(self, client, auth_headers, mock_db) -> None:
        db = mock_db("user_routes")
        db.execute.side_effect = [_result(None), _result(_created_row("teacher"))]

        response = client.post(
            "/api/users", json={**NEW_USER, "role": "teacher"}, headers=auth_headers("admin", user_id=3)
        )

        assert response.status_code == 201
        params = db.execute.call_args_list[1].args[1]
        assert params["must_change_password"] is True
        assert params["created_by"] == 3
        assert params["password_hash"] != NEW_USER["password"]

    def test_owner_creates_admin(self, client, auth_headers, mock_db) -> None:
        db = mock_db("user_routes")
        db.execute.side_effect = [_result(None), _result(_created_row("admin"))]

        response = client.post("/api/users", json={**NEW_USER, "role": "admin"}, headers=auth_headers("owner"))

        assert response.status_code == 201
        assert response.json()["role"] == "admin"

    def test_duplicate_email(self, client, auth_headers, mock_db) -> None:
        db = mock_db("user_routes")
        db.execute.return_value.fetchone.return_value = (1,)

        response = client.post("/api/users", json={**NEW_USER, "role": "teacher"}, headers=auth_headers("owner"))

        assert response.status_code == 400
        assert response.json() == {"error": "Email already exists"}


class TestManageUsers:
    def test_teacher_cannot_list(self, client, auth_headers) -> None:
        response = client.get("/api/users", headers=auth_headers("teacher"))
        assert response.status_code == 403

    def test_empty_update(self, client, auth_headers, mock_db) -> None:
        mock_db("user_routes")
        response = client.put("/api/users/4", json={}, headers=auth_headers("admin"))
        assert response.status_code == 400
        assert response.json() == {"error": "No fields to update"}

    def test_admin_cannot_delete(self, client, auth_headers, mock_db) -> None:
        db = mock_db("user_routes")
        response = client.delete("/api/users/4", headers=auth_headers("admin"))
        assert response.status_code == 403
        db.execute.assert_not_called()

    def test_owner_deactivates(self, client, auth_headers, mock_db) -> None:
        db = mock_db("user_routes")
        db.execute.return_value.fetchone.return_value = (4,)

        response = client.delete("/api/users/4", headers=auth_headers("owner"))

        assert response.status_code == 200
        assert "is_active = false" in str(db.execute.call_args.args[0])


class TestChangeRole:
    @pytest.mark.parametrize("role", ["owner", "developer", "admin"])
    def test_admin_cannot_promote(self, client, auth_headers, mock_db, role) -> None:
        db = mock_db("user_routes")

        response = client.put("/api/users/7", json={"role": role}, headers=auth_headers("admin"))

        assert response.status_code == 403
        assert response.json() == {"error": "Insufficient permissions"}
        db.execute.assert_not_called()

    def test_admin_may_set_teacher(self, client, auth_headers, mock_db) -> None:
        db = mock_db("user_routes")
        db.execute.return_value.fetchone.return_value = _created_row("teacher")

        response = client.put("/api/users/7", json={"role": "teacher"}, headers=auth_headers("admin"))

        assert response.status_code == 200
        assert db.execute.call_args.args[1] == {"id": 7, "role": "teacher"}

    def test_owner_promotes_to_admin(self, client, auth_headers, mock_db) -> None:
        db = mock_db("user_routes")
        db.execute.return_value.fetchone.return_value = _created_row("admin")

        response = client.put("/api/users/7", json={"role": "admin"}, headers=auth_headers("owner"))

        assert response.status_code == 200
        assert response.json()["role"] == "admin"

    def test_admin_updates_name_without_role(self, client, auth_headers, mock_db) -> None:
        db = mock_db("user_routes")
        db.execute.return_value.fetchone.return_value = _created_row("owner")

        response = client.put("/api/users/1", json={"full_name": "Renamed Owner"}, headers=auth_headers("admin"))

        assert response.status_code == 200
