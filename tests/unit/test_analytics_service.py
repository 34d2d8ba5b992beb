from decimal import Decimal
from unittest.mock import patch

from placement_tracker.services.analytics_service import (
    compute_predictions,
    get_basic_analytics,
    get_predictive_analytics,
)


TREND = [
    {"year": 2024, "registrations": 100, "employed": 40},
    {"year": 2025, "registrations": 150, "employed": 60},
    {"year": 2026, "registrations": 200, "employed": 20},
]


class TestComputePredictions:
    def test_linear_growth(self) -> None:
        predictions = compute_predictions(TREND, [], [], current_year=2026)
        assert predictions["avg_growth_rate"] == 50
        # last calendar year (2025) + average growth
        assert predictions["next_year_students"] == 200

    def test_single_year_has_no_growth(self) -> None:
        predictions = compute_predictions([{"year": 2025, "registrations": 80}], [], [], current_year=2026)
        assert predictions["avg_growth_rate"] == 0
        assert predictions["next_year_students"] == 80

    def test_no_last_year_data(self) -> None:
        predictions = compute_predictions([{"year": 2026, "registrations": 10}], [], [], current_year=2026)
        assert predictions["next_year_students"] == 0

    def test_empty_trend(self) -> None:
        predictions = compute_predictions([], [], [], current_year=2026)
        assert predictions == {
            "next_year_students": 0,
            "avg_growth_rate": 0,
            "top_growth_districts": [],
            "top_growth_provinces": [],
        }

    def test_top_growth_slices(self) -> None:
        districts = [{"district": f"d{i}"} for i in range(10)]
        provinces = [{"province": f"p{i}"} for i in range(9)]
        predictions = compute_predictions(TREND, districts, provinces, current_year=2026)
        assert predictions["top_growth_districts"] == districts[:5]
        assert predictions["top_growth_provinces"] == provinces[:3]

    def test_decimal_years_from_postgres(self) -> None:
        trend = [{"year": Decimal("2025"), "registrations": 30}]
        assert compute_predictions(trend, [], [], current_year=2026)["next_year_students"] == 30


class TestQueries:
    def test_basic_counts(self) -> None:
        with patch(
            "placement_tracker.services.analytics_service.execute_raw_sql",
            return_value=[{"count": 4}],
        ) as mock_sql:
            result = get_basic_analytics()
        assert result == {
            "total_students": 4,
            "active_students": 4,
            "employed_students": 4,
            "total_companies": 4,
            "total_placements": 4,
        }
        assert mock_sql.call_count == 5

    def test_predictive_converts_decimals(self) -> None:
        trend = [{"year": Decimal("2025"), "registrations": 12, "employed": 3}]
        rate = [{"province": "Western", "success_rate": Decimal("25.50")}]
        with patch(
            "placement_tracker.services.analytics_service.execute_raw_sql",
            side_effect=[trend, [], rate, [], []],
        ):
            result = get_predictive_analytics()
        assert result["yearly_trend"][0]["year"] == 2025
        assert isinstance(result["yearly_trend"][0]["year"], int)
        assert result["employment_success"][0]["success_rate"] == 25.5
        assert set(result["predictions"]) == {
            "next_year_students", "avg_growth_rate", "top_growth_districts", "top_growth_provinces"
        }
