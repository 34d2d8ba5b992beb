"""
Analytics Service - descriptive (post) and predictive (pre) analysis.

All aggregation happens in SQL; only the prediction arithmetic runs here.

PREDICTIONS:
- avg_growth_rate = (last year's registrations - first year's) / (years - 1)
- next_year_students = last calendar year's registrations + avg_growth_rate
  (0 when last year has no data)
- top 5 growth districts, top 3 growth provinces

AI INSIGHTS:
- heuristic forecasts (enrollment momentum, employment success, next-quarter
  enrollments, per-province registrations, Japan job-category demand)
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from placement_tracker.db.postgres import execute_raw_sql
from placement_tracker.core.logger import get_logger

logger = get_logger(__name__)


def _plain(value: Any) -> Any:
    """Postgres numerics come back as Decimal; JSON wants int/float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


def _rows(sql: str, params: dict = None) -> List[Dict[str, Any]]:
    return [{k: _plain(v) for k, v in row.items()} for row in execute_raw_sql(sql, params)]


def _count(sql: str) -> int:
    rows = execute_raw_sql(sql)
    return int(rows[0]["count"]) if rows else 0


# ============================================================
# BASIC
# ============================================================

def get_basic_analytics() -> Dict[str, int]:
    """Dashboard counters."""
    return {
        "total_students": _count("SELECT COUNT(*) AS count FROM students"),
        "active_students": _count("SELECT COUNT(*) AS count FROM students WHERE status = 'active'"),
        "employed_students": _count("SELECT COUNT(*) AS count FROM students WHERE status = 'employed'"),
        "total_companies": _count("SELECT COUNT(*) AS count FROM companies WHERE is_active = true"),
        "total_placements": _count("SELECT COUNT(*) AS count FROM placements"),
    }


# ============================================================
# DESCRIPTIVE (POST ANALYSIS)
# ============================================================

def get_descriptive_analytics() -> Dict[str, Any]:
    """Where students come from and where they end up."""
    return {
        "total_students": _count("SELECT COUNT(*) AS count FROM students WHERE status = 'active'"),
        "employed_students": _count("SELECT COUNT(*) AS count FROM students WHERE status = 'employed'"),
        "district_stats": _rows("""
            SELECT district, COUNT(*) AS count
            FROM students
            GROUP BY district
            ORDER BY count DESC
            LIMIT 10
        """),
        "province_stats": _rows("""
            SELECT province, COUNT(*) AS count
            FROM students
            GROUP BY province
            ORDER BY count DESC
        """),
        "monthly_registrations": _rows("""
            SELECT DATE_TRUNC('month', created_at) AS month, COUNT(*) AS count
            FROM students
            WHERE created_at >= CURRENT_DATE - INTERVAL '12 months'
            GROUP BY DATE_TRUNC('month', created_at)
            ORDER BY month
        """),
        "employment_by_country": _rows("""
            SELECT COALESCE(c.country, 'Unknown') AS country, COUNT(*) AS employee_count
            FROM placements p
            LEFT JOIN companies c ON p.company_id = c.id
            GROUP BY COALESCE(c.country, 'Unknown')
            ORDER BY employee_count DESC
        """),
        "top_companies": _rows("""
            SELECT p.company_name, c.country, COUNT(*) AS employee_count
            FROM placements p
            LEFT JOIN companies c ON p.company_id = c.id
            GROUP BY p.company_name, c.country
            ORDER BY employee_count DESC
            LIMIT 5
        """),
    }


# ============================================================
# PREDICTIVE (PRE ANALYSIS)
# ============================================================

GROWTH_RATE_SQL = """
    ROUND(
        (COUNT(CASE WHEN created_at >= CURRENT_DATE - INTERVAL '1 year' THEN 1 END)::numeric /
         NULLIF(COUNT(CASE WHEN created_at >= CURRENT_DATE - INTERVAL '2 years'
                           AND created_at < CURRENT_DATE - INTERVAL '1 year' THEN 1 END), 0)) * 100,
        2
    )
"""


def compute_predictions(
    yearly_trend: List[Dict[str, Any]],
    district_growth: List[Dict[str, Any]],
    province_growth: List[Dict[str, Any]],
    current_year: Optional[int] = None
) -> Dict[str, Any]:
    """
    Linear extrapolation over the yearly registration trend.

    yearly_trend rows are {"year", "registrations", ...} ordered by year.
    Growth lists are already ordered best-first by SQL.
    """
    current_year = current_year or date.today().year

    if len(yearly_trend) > 1:
        first = yearly_trend[0]["registrations"]
        last = yearly_trend[-1]["registrations"]
        avg_growth = (last - first) / (len(yearly_trend) - 1)
    else:
        avg_growth = 0

    last_year = next(
        (row for row in yearly_trend if int(row["year"]) == current_year - 1), None
    )
    next_year = round(last_year["registrations"] + avg_growth) if last_year else 0

    return {
        "next_year_students": int(next_year),
        "avg_growth_rate": int(round(avg_growth)),
        "top_growth_districts": district_growth[:5],
        "top_growth_provinces": province_growth[:3],
    }


def get_predictive_analytics() -> Dict[str, Any]:
    """Trends for the owner's planning view."""
    yearly_trend = _rows("""
        SELECT EXTRACT(YEAR FROM created_at) AS year,
               COUNT(*) AS registrations,
               COUNT(CASE WHEN status = 'employed' THEN 1 END) AS employed
        FROM students
        WHERE created_at >= CURRENT_DATE - INTERVAL '3 years'
        GROUP BY EXTRACT(YEAR FROM created_at)
        ORDER BY year
    """)
    seasonal_data = _rows("""
        SELECT EXTRACT(MONTH FROM created_at) AS month,
               COUNT(*) AS registrations,
               AVG(COUNT(*)) OVER () AS avg_registrations
        FROM students
        GROUP BY EXTRACT(MONTH FROM created_at)
        ORDER BY month
    """)
    employment_success = _rows("""
        SELECT province,
               COUNT(*) AS total_students,
               COUNT(CASE WHEN status = 'employed' THEN 1 END) AS employed_students,
               ROUND(COUNT(CASE WHEN status = 'employed' THEN 1 END)::numeric / COUNT(*) * 100, 2) AS success_rate
        FROM students
        GROUP BY province
        ORDER BY success_rate DESC
    """)
    district_growth = _rows(f"""
        SELECT district,
               COUNT(*) AS current_count,
               COUNT(CASE WHEN created_at >= CURRENT_DATE - INTERVAL '1 year' THEN 1 END) AS recent_count,
               {GROWTH_RATE_SQL} AS growth_rate
        FROM students
        GROUP BY district
        HAVING COUNT(*) > 5
        ORDER BY growth_rate DESC NULLS LAST
        LIMIT 10
    """)
    province_growth = _rows(f"""
        SELECT province,
               COUNT(*) AS current_count,
               COUNT(CASE WHEN created_at >= CURRENT_DATE - INTERVAL '1 year' THEN 1 END) AS recent_count,
               {GROWTH_RATE_SQL} AS growth_rate
        FROM students
        GROUP BY province
        ORDER BY growth_rate DESC NULLS LAST
    """)

    predictions = compute_predictions(yearly_trend, district_growth, province_growth)
    logger.info(
        "Predictive analytics: %d years of data, next year estimate %d",
        len(yearly_trend), predictions["next_year_students"]
    )

    return {
        "yearly_trend": yearly_trend,
        "seasonal_data": seasonal_data,
        "employment_success": employment_success,
        "district_growth": district_growth,
        "province_growth": province_growth,
        "predictions": predictions,
    }


# ============================================================
# AI INSIGHTS (heuristic forecasts)
# ============================================================

# Registration multiplier per calendar month, January first.
# September is the main intake.
REGISTRATION_SEASONALITY = (1.2, 1.1, 0.9, 0.8, 0.7, 0.8, 1.0, 1.1, 1.3, 1.2, 0.9, 0.8)

PROVINCE_ECONOMIC_FACTORS: Dict[str, float] = {
    "Western": 1.3,
    "Central": 1.1,
    "Southern": 1.0,
    "Northern": 0.9,
    "Eastern": 0.9,
    "North Western": 1.0,
    "North Central": 0.8,
    "Uva": 0.9,
    "Sabaragamuwa": 1.0,
}

# Japanese labour demand per job category (aging society, labour shortage)
JOB_CATEGORY_DEMAND: Dict[str, float] = {
    "Nursing care": 1.8,
    "Agriculture": 1.5,
    "Building Cleaning": 1.4,
    "Manufacturing": 1.3,
    "Construction": 1.6,
    "Food Processing": 1.4,
    "Automotive": 1.2,
    "Hospitality": 1.1,
    "Information Technology": 1.7,
    "Textile & Garment": 0.9,
    "Logistics": 1.3,
    "Restaurant Service": 1.2,
    "Machinery Operation": 1.3,
    "Fishery": 1.1,
    "Electronics Assembly": 1.4,
}

# Categories without an entry here are flat (1.0) all year
JOB_CATEGORY_SEASONALITY: Dict[str, Tuple[float, ...]] = {
    "Agriculture": (0.8, 0.8, 1.2, 1.4, 1.5, 1.3, 1.2, 1.1, 1.0, 1.1, 0.9, 0.7),
    "Construction": (0.7, 0.8, 1.3, 1.5, 1.4, 1.3, 1.2, 1.1, 1.0, 1.0, 0.8, 0.6),
    "Nursing care": (1.1, 1.0, 1.0, 1.1, 1.0, 1.0, 1.0, 1.0, 1.0, 1.1, 1.1, 1.1),
    "Manufacturing": (1.0, 1.0, 1.1, 1.2, 1.1, 1.0, 0.9, 0.9, 1.1, 1.2, 1.1, 1.0),
    "Information Technology": (1.2, 1.1, 1.0, 1.1, 1.0, 1.0, 1.0, 1.0, 1.2, 1.1, 1.0, 1.0),
}

JAPAN_VISA_MARKERS = ("TITP", "SSW")
JAPAN_ADDRESS_MARKERS = ("japan", "tokyo")


def _counts(monthly: Dict[str, int]) -> List[int]:
    """Counts ordered by their "YYYY-MM" key, oldest first."""
    return [monthly[month] for month in sorted(monthly)]


def _confidence(records: int, full_at: int) -> int:
    """15 with no data, 100 once `full_at` records are available."""
    return round(min(1, records / full_at) * 85 + 15)


def _top(predictions: Dict[str, int], n: int) -> List[str]:
    return [name for name, _ in sorted(predictions.items(), key=lambda item: item[1], reverse=True)[:n]]


def analyze_enrollment_momentum(monthly: Dict[str, int]) -> Dict[str, Any]:
    """Last three months against the three before them."""
    counts = _counts(monthly)
    recent, earlier = counts[-3:], counts[-6:-3]
    recent_avg = sum(recent) / len(recent) if recent else 0
    earlier_avg = sum(earlier) / len(earlier) if earlier else 0
    change = (recent_avg - earlier_avg) / earlier_avg * 100 if earlier_avg else 0.0
    magnitude = abs(change)

    if change > 5:
        trend, wording = "increasing", "increased significantly"
    elif change < -5:
        trend, wording = "decreasing", "decreased"
    else:
        trend, wording = "stable", "remained stable"

    if change > 10:
        recommendations = [
            "Scale up recruitment in high-performing regions",
            "Prepare training capacity for the incoming students",
            "Review which recruitment channels are working",
        ]
    elif change < -10:
        recommendations = [
            "Investigate the causes of the enrollment decline",
            "Strengthen marketing and outreach",
        ]
    else:
        recommendations = ["Maintain current recruitment strategies", "Focus on quality over quantity"]

    return {
        "id": "enrollment-trend",
        "title": "Student Enrollment Momentum",
        "description": f"Enrollment has {wording} over the past 3 months",
        "trend": trend,
        "change_percentage": round(change, 1),
        "confidence": round(min(95, 70 + magnitude), 1),
        "impact": "high" if magnitude > 15 else "medium" if magnitude > 5 else "low",
        "category": "enrollment",
        "timeframe": "3 months",
        "recommendations": recommendations,
    }


def analyze_employment_success(total_students: int, employed_students: int) -> Dict[str, Any]:
    rate = employed_students / total_students * 100 if total_students else 0.0

    if rate > 70:
        recommendations = [
            "Share placement success stories with prospective students",
            "Expand partnerships with additional employers",
        ]
    else:
        recommendations = [
            "Review and strengthen the training programs",
            "Add targeted job placement support",
        ]

    return {
        "id": "employment-success",
        "title": "Employment Success Rate",
        "description": f"{rate:.1f}% of students secured employment",
        "trend": "increasing" if rate > 70 else "decreasing" if rate < 50 else "stable",
        "rate": round(rate, 1),
        "confidence": 85,
        "impact": "medium" if 50 <= rate <= 70 else "high",
        "category": "employment",
        "timeframe": "All time",
        "recommendations": recommendations,
    }


def forecast_quarterly_enrollments(monthly: Dict[str, int]) -> Dict[str, Any]:
    """
    Next quarter = 3 x (6-month average + monthly trend).

    The trend is the change over the last three months, per month, and only
    applies with more than three months of data.
    """
    counts = _counts(monthly)
    recent = counts[-6:]
    avg_monthly = sum(recent) / len(recent) if recent else 0
    trend_factor = (counts[-1] - counts[-4]) / 3 if len(recent) > 3 else 0

    predicted = max(0, round((avg_monthly + trend_factor) * 3))
    current = sum(counts[-3:])
    change = (predicted - current) / current * 100 if current else 0.0

    return {
        "metric": "Quarterly Enrollments",
        "current_value": current,
        "predicted_value": predicted,
        "change_percentage": round(change, 1),
        "trend": "up" if change > 2 else "down" if change < -2 else "stable",
        "confidence": 78,
        "timeframe": "Next Quarter",
    }


def analyze_geographic_trends(district_rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Employment rate and risk level for the ten largest districts."""
    trends = []
    for row in district_rows:
        students = int(row["students"])
        rate = int(row["employed"]) / students * 100 if students else 0.0
        risk = "low" if rate > 70 else "medium" if rate > 50 else "high"
        trends.append({
            "district": row["district"],
            "province": row.get("province"),
            "current_students": students,
            "employment_rate": round(rate, 1),
            "risk_level": risk,
            "challenges": (
                ["Low employment success rate", "Skills and market mismatch"] if rate < 50
                else ["Capacity management", "Maintaining quality standards"]
            ),
        })

    trends.sort(key=lambda t: t["current_students"], reverse=True)
    return trends[:10]


def predict_province_registrations(
    province_monthly: Dict[str, Dict[str, int]],
    total_students: int,
    month: int
) -> Dict[str, Any]:
    """
    Registrations expected per province over the next three months.

    base = (sum of the last 6 months / 6) * seasonality(month) * economic factor
    prediction = 3 * (base + 0.3 * trend), trend = (last - third last month) / 2
    """
    season = REGISTRATION_SEASONALITY[month - 1]
    predictions: Dict[str, int] = {}
    historical_trends: Dict[str, float] = {}

    for province, economic_factor in PROVINCE_ECONOMIC_FACTORS.items():
        counts = _counts(province_monthly.get(province, {}))
        avg_monthly = sum(counts[-6:]) / 6
        trend = (counts[-1] - counts[-3]) / 2 if len(counts) >= 3 else 0
        base = avg_monthly * season * economic_factor
        predictions[province] = max(0, round((base + trend * 0.3) * 3))
        historical_trends[province] = trend

    top = _top(predictions, 3)
    return {
        "predictions": predictions,
        "total_predicted": sum(predictions.values()),
        "confidence": _confidence(total_students, 100),
        "historical_trends": historical_trends,
        "seasonal_factor": season,
        "insights": [
            f"Based on {total_students} student records across {len(PROVINCE_ECONOMIC_FACTORS)} provinces",
            f"{top[0]} Province has the highest predicted registrations",
            "September to January usually brings the most registrations",
        ],
        "recommendations": [
            f"Focus recruitment on {', '.join(top)}",
            "Increase intake capacity for the September to January season",
        ],
    }


def is_japan_placement(placement: Dict[str, Any]) -> bool:
    visa = placement.get("visa_type") or ""
    address = (placement.get("company_address") or "").lower()
    return (
        any(marker in visa for marker in JAPAN_VISA_MARKERS)
        or any(marker in address for marker in JAPAN_ADDRESS_MARKERS)
        or placement.get("country") == "Japan"
    )


def _in_category(industry: Optional[str], category: str) -> bool:
    return bool(industry) and (industry == category or category.lower() in industry.lower())


def predict_job_category_employment(placements: List[Dict[str, Any]], month: int) -> Dict[str, Any]:
    """
    Japan placements expected per job category over the next three months.

    prediction = 3 * max(1, sum of the last 6 months / 6) * demand * seasonality(month)
    """
    japan = [p for p in placements if is_japan_placement(p)]
    predictions: Dict[str, int] = {}

    for category, demand in JOB_CATEGORY_DEMAND.items():
        monthly: Dict[str, int] = {}
        for placement in japan:
            if placement.get("month") and _in_category(placement.get("industry"), category):
                monthly[placement["month"]] = monthly.get(placement["month"], 0) + 1

        avg_monthly = sum(_counts(monthly)[-6:]) / 6
        season = JOB_CATEGORY_SEASONALITY.get(category, (1.0,) * 12)[month - 1]
        predictions[category] = max(0, round(max(1, avg_monthly) * demand * season * 3))

    top = _top(predictions, 3)
    return {
        "predictions": predictions,
        "total_predicted": sum(predictions.values()),
        "confidence": _confidence(len(japan), 30),
        "market_demand": dict(JOB_CATEGORY_DEMAND),
        "insights": [
            f"Based on {len(japan)} Japan placement records across {len(JOB_CATEGORY_DEMAND)} job categories",
            "Nursing care has the highest demand because of Japan's aging population",
            "TITP and SSW visas drive most Japan placements",
        ],
        "recommendations": [
            f"Focus training on {', '.join(top)}",
            "Prioritize Japanese language training (JLPT N3+ or JFT-Basic)",
            "Align intakes with the Japanese fiscal year, which starts in April",
        ],
    }


def build_ai_insights(
    monthly_registrations: Dict[str, int],
    total_students: int,
    employed_students: int,
    district_rows: List[Dict[str, Any]],
    province_monthly: Dict[str, Dict[str, int]],
    placements: List[Dict[str, Any]],
    today: Optional[date] = None
) -> Dict[str, Any]:
    today = today or date.today()

    trends = [
        analyze_enrollment_momentum(monthly_registrations),
        analyze_employment_success(total_students, employed_students),
    ]
    predictions = [forecast_quarterly_enrollments(monthly_registrations)]
    geographic = analyze_geographic_trends(district_rows)

    return {
        "overview": {
            "total_insights": len(trends) + len(predictions) + len(geographic),
            "high_impact_insights": sum(1 for t in trends if t["impact"] == "high"),
            "trends_identified": len(trends),
            "predictions_generated": len(predictions),
            "analyzed_on": today.isoformat(),
        },
        "trends": trends,
        "predictions": predictions,
        "geographic": geographic,
        "province_registrations": predict_province_registrations(province_monthly, total_students, today.month),
        "job_category_employment": predict_job_category_employment(placements, today.month),
        "data_points": {"total_students": total_students, "total_placements": len(placements)},
    }


MONTH_SQL = "TO_CHAR(DATE_TRUNC('month', {column}), 'YYYY-MM')"


def get_ai_insights() -> Dict[str, Any]:
    """Load registrations and placements, then run the forecasts."""
    monthly_registrations = {
        row["month"]: row["count"] for row in _rows(f"""
            SELECT {MONTH_SQL.format(column='created_at')} AS month, COUNT(*) AS count
            FROM students
            WHERE created_at >= CURRENT_DATE - INTERVAL '2 years'
            GROUP BY 1
            ORDER BY 1
        """)
    }
    totals = _rows("""
        SELECT COUNT(*) AS total,
               COUNT(CASE WHEN status = 'employed' THEN 1 END) AS employed
        FROM students
    """)
    district_rows = _rows("""
        SELECT district, MAX(province) AS province,
               COUNT(*) AS students,
               COUNT(CASE WHEN status = 'employed' THEN 1 END) AS employed
        FROM students
        WHERE district IS NOT NULL AND district <> ''
        GROUP BY district
        ORDER BY students DESC
        LIMIT 10
    """)
    province_monthly: Dict[str, Dict[str, int]] = {}
    for row in _rows(f"""
        SELECT province, {MONTH_SQL.format(column='created_at')} AS month, COUNT(*) AS count
        FROM students
        WHERE province IS NOT NULL
        GROUP BY province, 2
    """):
        province_monthly.setdefault(row["province"], {})[row["month"]] = row["count"]
    placements = _rows(f"""
        SELECT p.industry, p.visa_type, p.company_address, c.country,
               {MONTH_SQL.format(column='p.start_date')} AS month
        FROM placements p
        LEFT JOIN companies c ON p.company_id = c.id
    """)

    total = totals[0]["total"] if totals else 0
    employed = totals[0]["employed"] if totals else 0
    insights = build_ai_insights(
        monthly_registrations, total, employed, district_rows, province_monthly, placements
    )
    logger.info(
        "AI insights: %d students, %d placements, %d Japan placements",
        total, len(placements), sum(1 for p in placements if is_japan_placement(p))
    )
    return insights
