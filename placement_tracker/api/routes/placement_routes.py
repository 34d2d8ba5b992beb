"""
Placement Routes (student employed overseas)

GET /placements - List placements
GET /placements/{placement_id} - Get one placement
POST /placements - Record placement, student becomes employed
PUT /placements/{placement_id} - Update placement
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from typing import List

from placement_tracker.db.postgres import get_db_session, execute_raw_sql
from placement_tracker.core.exceptions import NotFoundError, ValidationError
from placement_tracker.core.logger import get_logger
from placement_tracker.core.permissions import Permission, require_permission
from placement_tracker.schemas.schemas import (
    CurrentUser, PlacementCreate, PlacementUpdate, PlacementResponse, PLACEMENT_REQUIRED_FIELDS
)

logger = get_logger(__name__)

router = APIRouter(prefix="/placements", tags=["Placements"])

PLACEMENT_SELECT = """
    SELECT p.*, s.full_name AS student_name, s.national_id,
           (SELECT full_name FROM users WHERE id = p.created_by) AS created_by_name
    FROM placements p
    JOIN students s ON p.student_id = s.id
"""

PLACEMENT_COLUMNS = [
    "student_id", "company_id", "company_name", "company_address", "industry",
    "start_date", "end_date", "visa_type", "resident_address", "emergency_contact",
    "language_proficiency", "photo_url", "created_by"
]


@router.get("", response_model=List[PlacementResponse])
async def list_placements(user: CurrentUser = Depends(require_permission(Permission.VIEW_EMPLOYEES))):
    results = execute_raw_sql(PLACEMENT_SELECT + " ORDER BY p.start_date DESC NULLS LAST, p.created_at DESC")
    return [PlacementResponse(**r) for r in results]


@router.get("/{placement_id}", response_model=PlacementResponse)
async def get_placement(
    placement_id: int,
    user: CurrentUser = Depends(require_permission(Permission.VIEW_EMPLOYEES))
):
    results = execute_raw_sql(PLACEMENT_SELECT + " WHERE p.id = :id", {"id": placement_id})
    if not results:
        raise NotFoundError("Placement not found")
    return PlacementResponse(**results[0])


@router.post("", response_model=PlacementResponse, status_code=201)
async def create_placement(
    data: PlacementCreate,
    user: CurrentUser = Depends(require_permission(Permission.CREATE_EMPLOYEE))
):
    """
    Record a placement.

    The insert and the student's move to 'employed' share one transaction.
    """
    for field in PLACEMENT_REQUIRED_FIELDS:
        value = getattr(data, field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"Missing required field: {field}")

    params = {**data.model_dump(), "created_by": user.user_id}

    with get_db_session() as db:
        result = db.execute(
            text("SELECT id FROM students WHERE id = :id"),
            {"id": data.student_id}
        )
        if not result.fetchone():
            raise NotFoundError("Student not found")

        result = db.execute(
            text(f"""
                INSERT INTO placements ({', '.join(PLACEMENT_COLUMNS)})
                VALUES ({', '.join(':' + c for c in PLACEMENT_COLUMNS)})
                RETURNING id
            """),
            params
        )
        placement_id = result.fetchone()[0]

        db.execute(
            text("""
                UPDATE students SET status = 'employed', updated_at = CURRENT_TIMESTAMP
                WHERE id = :id
            """),
            {"id": data.student_id}
        )

        row = db.execute(text(PLACEMENT_SELECT + " WHERE p.id = :id"), {"id": placement_id}).fetchone()

    logger.info("Placement %s recorded for student %s", placement_id, data.student_id)
    return PlacementResponse(**row._mapping)


@router.put("/{placement_id}", response_model=PlacementResponse)
async def update_placement(
    placement_id: int,
    data: PlacementUpdate,
    user: CurrentUser = Depends(require_permission(Permission.UPDATE_EMPLOYEE))
):
    """Update placement. Only provided fields are updated."""
    values = data.model_dump(exclude_none=True)
    if not values:
        raise ValidationError("No fields to update")

    assignments = [f"{field} = :{field}" for field in values]

    with get_db_session() as db:
        result = db.execute(
            text(f"""
                UPDATE placements SET {', '.join(assignments)}, updated_at = CURRENT_TIMESTAMP
                WHERE id = :id RETURNING id
            """),
            {"id": placement_id, **values}
        )
        if not result.fetchone():
            raise NotFoundError("Placement not found")

        row = db.execute(text(PLACEMENT_SELECT + " WHERE p.id = :id"), {"id": placement_id}).fetchone()

    return PlacementResponse(**row._mapping)
