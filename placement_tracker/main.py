"""
Student Placement Tracker - Main Application

FastAPI backend with:
- PostgreSQL for students, companies, placements
- Role-based permission table on every route
- Vision model (Gemini, OpenAI-compatible API) for registration form extraction
- JWT authentication

Run: uvicorn placement_tracker.main:app --reload
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from placement_tracker.api.routes import api_router
from placement_tracker.core.config import get_settings, validate_required_settings
from placement_tracker.core.exceptions import AppError, ExtractionError, ValidationError
from placement_tracker.core.logger import configure_logging, get_logger
from placement_tracker.db.postgres import test_postgres_connection

settings = get_settings()
configure_logging(settings.log_level)
logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Student Placement Tracker",
    description="""
    Student registration and overseas employment tracking.

    ## Features
    - **Authentication**: JWT-based auth for staff (owner, admin, teacher, developer)
    - **Users**: Staff account management
    - **Students**: Registration, status tracking, AI form extraction from scanned images
    - **Companies**: Overseas employers
    - **Placements**: Employment records
    - **Analytics**: Descriptive and predictive SQL analytics
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


# ============================================================
# ERROR HANDLERS - every error renders as {"error": <message>}
# ============================================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    content = {"error": exc.message}
    if isinstance(exc, ExtractionError):
        logger.error("Extraction failed (%s): %s", exc.reason.value, exc.message)
        if exc.raw_response is not None:
            content["rawResponse"] = exc.raw_response
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_errors(exc)
    return JSONResponse(status_code=ValidationError.status_code, content={"error": "Invalid request", "errors": errors})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def jsonable_errors(exc: RequestValidationError) -> list:
    """Pydantic error details without the raw input/context objects."""
    return [
        {"loc": list(e.get("loc", [])), "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]


# Startup event
@app.on_event("startup")
async def startup_event():
    """Report missing secrets. The app still starts so /health can explain."""
    missing = validate_required_settings(settings)
    if missing:
        logger.error("Configuration error: missing %s", ", ".join(m.upper() for m in missing))
    else:
        logger.info("Configuration loaded")


@app.get("/health", tags=["Health"])
async def health_check():
    """Database reachability and configuration problems."""
    missing = validate_required_settings(get_settings())
    postgres_ok = bool(get_settings().database_url) and test_postgres_connection()

    return {
        "status": "healthy" if postgres_ok and not missing else "degraded",
        "postgres": "connected" if postgres_ok else "disconnected",
        "missing_config": [m.upper() for m in missing]
    }
