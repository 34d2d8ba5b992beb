"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from placement_tracker.api.routes.auth_routes import router as auth_router
from placement_tracker.api.routes.user_routes import router as user_router
from placement_tracker.api.routes.student_routes import router as student_router
from placement_tracker.api.routes.company_routes import router as company_router
from placement_tracker.api.routes.placement_routes import router as placement_router
from placement_tracker.api.routes.analytics_routes import router as analytics_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(student_router)
api_router.include_router(company_router)
api_router.include_router(placement_router)
api_router.include_router(analytics_router)
