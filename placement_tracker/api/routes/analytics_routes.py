"""
Analytics Routes

GET /analytics/basic - Dashboard counters
GET /analytics/descriptive - Post analysis (districts, provinces, countries)
GET /analytics/predictive - Pre analysis with trend predictions (owner only)
GET /analytics/ai-insights - Heuristic forecasts and recommendations (owner only)
"""

from fastapi import APIRouter, Depends

from placement_tracker.core.permissions import Permission, require_permission
from placement_tracker.services import analytics_service
from placement_tracker.schemas.schemas import (
    CurrentUser, BasicAnalyticsResponse, DescriptiveAnalyticsResponse, PredictiveAnalyticsResponse,
    AIInsightsResponse
)

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.get("/basic", response_model=BasicAnalyticsResponse)
async def basic_analytics(user: CurrentUser = Depends(require_permission(Permission.VIEW_BASIC_ANALYTICS))):
    return analytics_service.get_basic_analytics()


@router.get("/descriptive", response_model=DescriptiveAnalyticsResponse)
async def descriptive_analytics(
    user: CurrentUser = Depends(require_permission(Permission.VIEW_DESCRIPTIVE_ANALYTICS))
):
    return analytics_service.get_descriptive_analytics()


@router.get("/predictive", response_model=PredictiveAnalyticsResponse)
async def predictive_analytics(
    user: CurrentUser = Depends(require_permission(Permission.VIEW_PREDICTIVE_ANALYTICS))
):
    """Registration trends and next-year estimate."""
    return analytics_service.get_predictive_analytics()


@router.get("/ai-insights", response_model=AIInsightsResponse)
async def ai_insights(
    user: CurrentUser = Depends(require_permission(Permission.VIEW_PREDICTIVE_ANALYTICS))
):
    """Enrollment momentum, province and Japan job-category forecasts."""
    return analytics_service.get_ai_insights()
