from unittest.mock import patch

import pytest


PREDICTIVE = {
    "yearly_trend": [{"year": 2025, "registrations": 40, "employed": 10}],
    "seasonal_data": [],
    "employment_success": [],
    "district_growth": [],
    "province_growth": [],
    "predictions": {
        "next_year_students": 40,
        "avg_growth_rate": 0,
        "top_growth_districts": [],
        "top_growth_provinces": [],
    },
}


class TestPredictiveAnalytics:
    @pytest.mark.parametrize("role", ["admin", "teacher"])
    def test_forbidden(self, client, auth_headers, role) -> None:
        with patch("placement_tracker.services.analytics_service.get_predictive_analytics") as mock_query:
            response = client.get("/api/analytics/predictive", headers=auth_headers(role))
        assert response.status_code == 403
        mock_query.assert_not_called()

    def test_owner_allowed(self, client, auth_headers) -> None:
        with patch(
            "placement_tracker.services.analytics_service.get_predictive_analytics",
            return_value=PREDICTIVE,
        ):
            response = client.get("/api/analytics/predictive", headers=auth_headers("owner"))
        assert response.status_code == 200
        assert response.json()["predictions"]["next_year_students"] == 40


class TestBasicAnalytics:
    def test_teacher_allowed(self, client, auth_headers) -> None:
        counts = {
            "total_students": 12,
            "active_students": 7,
            "employed_students": 3,
            "total_companies": 2,
            "total_placements": 3,
        }
        with patch(
            "placement_tracker.services.analytics_service.get_basic_analytics",
            return_value=counts,
        ):
            response = client.get("/api/analytics/basic", headers=auth_headers("teacher"))
        assert response.status_code == 200
        assert response.json() == counts


class TestAiInsights:
    @pytest.mark.parametrize("role", ["admin", "teacher"])
    def test_forbidden(self, client, auth_headers, role) -> None:
        with patch("placement_tracker.services.analytics_service.get_ai_insights") as mock_query:
            response = client.get("/api/analytics/ai-insights", headers=auth_headers(role))
        assert response.status_code == 403
        mock_query.assert_not_called()

    def test_developer_allowed(self, client, auth_headers) -> None:
        insights = {
            "overview": {"total_insights": 3},
            "trends": [],
            "predictions": [],
            "geographic": [],
            "province_registrations": {"predictions": {"Western": 16}},
            "job_category_employment": {"predictions": {"Nursing care": 6}},
            "data_points": {"total_students": 120, "total_placements": 0},
        }
        with patch(
            "placement_tracker.services.analytics_service.get_ai_insights",
            return_value=insights,
        ):
            response = client.get("/api/analytics/ai-insights", headers=auth_headers("developer"))
        assert response.status_code == 200
        assert response.json()["province_registrations"]["predictions"]["Western"] == 16
