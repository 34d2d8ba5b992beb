import os

# Settings are cached on first use; configure before the app is imported
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["VISION_API_KEY"] = "test-vision-key"
os.environ["DATABASE_URL"] = ""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from placement_tracker.core.auth import create_access_token
from placement_tracker.main import app
from placement_tracker.services.document_extraction_service import (
    DocumentExtractionPipeline,
    get_extraction_pipeline,
)


@pytest.fixture()
def client():
    app.dependency_overrides.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def make_token():
    """Signed access token for a role."""
    def _make(role: str, user_id: int = 1, email: str = "staff@example.com") -> str:
        return create_access_token({"sub": str(user_id), "email": email, "role": role})
    return _make


@pytest.fixture()
def auth_headers(make_token):
    def _headers(role: str, user_id: int = 1) -> dict:
        return {"Authorization": f"Bearer {make_token(role, user_id)}"}
    return _headers


@pytest.fixture()
def mock_db():
    """
    Patch get_db_session in a route module; returns the mocked session.

    Usage:
        db = mock_db("student_routes")
        db.execute.return_value.fetchone.return_value = (5,)
    """
    patchers = []

    def _patch(module: str) -> MagicMock:
        db = MagicMock()
        session_cm = MagicMock()
        session_cm.__enter__.return_value = db
        session_cm.__exit__.return_value = False
        patcher = patch(
            f"placement_tracker.api.routes.{module}.get_db_session",
            return_value=session_cm,
        )
        patcher.start()
        patchers.append(patcher)
        return db

    yield _patch
    for patcher in patchers:
        patcher.stop()


@pytest.fixture()
def mock_pipeline(client):
    """Extraction pipeline injected into the upload routes."""
    pipeline = MagicMock(spec=DocumentExtractionPipeline)
    app.dependency_overrides[get_extraction_pipeline] = lambda: pipeline
    return pipeline
