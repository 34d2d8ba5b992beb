from unittest.mock import patch


class TestHealth:
    def test_reports_missing_database_without_auth(self, client) -> None:
        with patch("placement_tracker.main.test_postgres_connection") as mock_ping:
            response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["postgres"] == "disconnected"
        assert body["missing_config"] == ["DATABASE_URL"]
        mock_ping.assert_not_called()

    def test_unknown_route_uses_error_shape(self, client) -> None:
        response = client.get("/api/nothing-here")
        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}
