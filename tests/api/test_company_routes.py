from types import SimpleNamespace
from unittest.mock import patch


COMPANY_ROW = {
    "id": 3,
    "company_name": "Tokyo Care Services",
    "country": "Japan",
    "industry": "Caregiving",
    "is_active": True,
    "created_by_name": "School Owner",
    "placement_count": 4,
}


class TestCompanyAccess:
    def test_admin_cannot_view_companies(self, client, auth_headers) -> None:
        with patch("placement_tracker.api.routes.company_routes.execute_raw_sql") as mock_sql:
            response = client.get("/api/companies", headers=auth_headers("admin"))
        assert response.status_code == 403
        mock_sql.assert_not_called()

    def test_owner_lists_with_placement_count(self, client, auth_headers) -> None:
        with patch(
            "placement_tracker.api.routes.company_routes.execute_raw_sql",
            return_value=[COMPANY_ROW],
        ):
            response = client.get("/api/companies", headers=auth_headers("owner"))
        assert response.status_code == 200
        assert response.json()[0]["placement_count"] == 4

    def test_not_found(self, client, auth_headers) -> None:
        with patch("placement_tracker.api.routes.company_routes.execute_raw_sql", return_value=[]):
            response = client.get("/api/companies/77", headers=auth_headers("developer"))
        assert response.status_code == 404
        assert response.json() == {"error": "Company not found"}


class TestCompanyChanges:
    def test_create_records_creator(self, client, auth_headers, mock_db) -> None:
        db = mock_db("company_routes")
        db.execute.return_value.fetchone.return_value = SimpleNamespace(_mapping=COMPANY_ROW)

        response = client.post(
            "/api/companies",
            json={"company_name": "Tokyo Care Services", "country": "Japan"},
            headers=auth_headers("owner", user_id=8),
        )

        assert response.status_code == 201
        assert db.execute.call_args.args[1]["created_by"] == 8

    def test_empty_update(self, client, auth_headers, mock_db) -> None:
        mock_db("company_routes")
        response = client.put("/api/companies/3", json={}, headers=auth_headers("owner"))
        assert response.status_code == 400
        assert response.json() == {"error": "No fields to update"}

    def test_delete_deactivates(self, client, auth_headers, mock_db) -> None:
        db = mock_db("company_routes")
        db.execute.return_value.fetchone.return_value = (3,)

        response = client.delete("/api/companies/3", headers=auth_headers("owner"))

        assert response.status_code == 200
        assert "is_active = false" in str(db.execute.call_args.args[0])
