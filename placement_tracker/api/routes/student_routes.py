"""
Student Routes

GET /students - List students (optional status filter, limit)
GET /students/{student_id} - Student with latest placement
POST /students - Register student
PUT /students/{student_id} - Update student
PUT /students/{student_id}/status - Change status only
DELETE /students/{student_id} - Mark inactive
POST /students/extract - Registration form image -> pre-filled fields (AI)
POST /students/ocr - Registration form image -> raw text
"""

from fastapi import APIRouter, Depends, UploadFile, File, Query
from starlette.concurrency import run_in_threadpool
from sqlalchemy import text
from typing import List, Optional

from placement_tracker.db.postgres import get_db_session, execute_raw_sql
from placement_tracker.core.exceptions import NotFoundError, ValidationError
from placement_tracker.core.logger import get_logger
from placement_tracker.core.permissions import Permission, require_permission
from placement_tracker.services.document_extraction_service import (
    DocumentExtractionPipeline, get_extraction_pipeline, refine_extraction
)
from placement_tracker.utils.file_upload import read_image_upload
from placement_tracker.schemas.schemas import (
    CurrentUser, StudentStatus, StudentBase, StudentCreate, StudentUpdate, StudentStatusUpdate,
    StudentResponse, StudentDetailResponse, DocumentExtractionResponse, OcrResponse,
    MessageResponse
)

logger = get_logger(__name__)

router = APIRouter(prefix="/students", tags=["Students"])

STUDENT_FIELDS = list(StudentBase.model_fields)


@router.get("", response_model=List[StudentResponse])
async def list_students(
    status: Optional[StudentStatus] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_STUDENTS))
):
    """List students, newest first."""
    sql = "SELECT * FROM students"
    params = {}

    if status:
        sql += " WHERE status = :status"
        params["status"] = status.value

    sql += " ORDER BY created_at DESC"
    if limit:
        sql += " LIMIT :limit"
        params["limit"] = limit

    results = execute_raw_sql(sql, params)
    return [StudentResponse(**r) for r in results]


@router.get("/{student_id}", response_model=StudentDetailResponse)
async def get_student(
    student_id: int,
    user: CurrentUser = Depends(require_permission(Permission.VIEW_STUDENT_DETAILS))
):
    """Get one student with creator name and latest placement."""
    results = execute_raw_sql("""
        SELECT s.*, (SELECT full_name FROM users WHERE id = s.created_by) AS created_by_name
        FROM students s WHERE s.id = :id
    """, {"id": student_id})

    if not results:
        raise NotFoundError("Student not found")

    placements = execute_raw_sql("""
        SELECT p.id, p.company_id, p.company_name, p.company_address, p.industry,
               p.start_date, p.end_date, p.visa_type, c.country
        FROM placements p LEFT JOIN companies c ON p.company_id = c.id
        WHERE p.student_id = :id
        ORDER BY p.created_at DESC
        LIMIT 1
    """, {"id": student_id})

    return StudentDetailResponse(**results[0], placement=placements[0] if placements else None)


@router.post("", response_model=StudentResponse, status_code=201)
async def create_student(
    data: StudentCreate,
    user: CurrentUser = Depends(require_permission(Permission.CREATE_STUDENT))
):
    """Register a student. created_by is the caller."""
    params = data.model_dump(mode="json")
    params["created_by"] = user.user_id
    columns = STUDENT_FIELDS + ["status", "created_by"]

    with get_db_session() as db:
        result = db.execute(
            text(f"""
                INSERT INTO students ({', '.join(columns)})
                VALUES ({', '.join(':' + c for c in columns)})
                RETURNING *
            """),
            params
        )
        row = result.fetchone()

    logger.info("Student %s registered by user %s", row.id, user.user_id)
    return StudentResponse(**row._mapping)


@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: int,
    data: StudentUpdate,
    user: CurrentUser = Depends(require_permission(Permission.UPDATE_STUDENT))
):
    """Update student. Fields not sent keep their value."""
    values = data.model_dump(mode="json", exclude_none=True)
    if not values:
        raise ValidationError("No fields to update")

    params = {"id": student_id, **values}
    assignments = [f"{field} = :{field}" for field in values]

    with get_db_session() as db:
        result = db.execute(
            text(f"""
                UPDATE students SET {', '.join(assignments + ['updated_at = CURRENT_TIMESTAMP'])}
                WHERE id = :id
                RETURNING *
            """),
            params
        )
        row = result.fetchone()

    if not row:
        raise NotFoundError("Student not found")
    return StudentResponse(**row._mapping)


@router.put("/{student_id}/status", response_model=MessageResponse)
async def update_student_status(
    student_id: int,
    data: StudentStatusUpdate,
    user: CurrentUser = Depends(require_permission(Permission.UPDATE_STUDENT))
):
    if data.status is None:
        raise ValidationError("Missing status")

    with get_db_session() as db:
        result = db.execute(
            text("""
                UPDATE students SET status = :status, updated_at = CURRENT_TIMESTAMP
                WHERE id = :id RETURNING id
            """),
            {"id": student_id, "status": data.status.value}
        )
        if not result.fetchone():
            raise NotFoundError("Student not found")

    return MessageResponse(message=f"Status updated to '{data.status.value}'")


@router.delete("/{student_id}", response_model=MessageResponse)
async def delete_student(
    student_id: int,
    user: CurrentUser = Depends(require_permission(Permission.DELETE_STUDENT))
):
    """Soft delete: the student becomes inactive, placements are kept."""
    with get_db_session() as db:
        result = db.execute(
            text("""
                UPDATE students SET status = 'inactive', updated_at = CURRENT_TIMESTAMP
                WHERE id = :id RETURNING id
            """),
            {"id": student_id}
        )
        if not result.fetchone():
            raise NotFoundError("Student not found")

    return MessageResponse(message="Student deleted successfully")


@router.post("/extract", response_model=DocumentExtractionResponse, response_model_by_alias=True)
async def extract_student_form(
    file: Optional[UploadFile] = File(None, description="Registration form image (JPEG, PNG, GIF, WEBP)"),
    user: CurrentUser = Depends(require_permission(Permission.CREATE_STUDENT)),
    pipeline: DocumentExtractionPipeline = Depends(get_extraction_pipeline)
):
    """
    Read a registration form image with the vision model.

    Process:
    1. Validate the upload (image, size limit)
    2. Vision model reads + translates the form to JSON
    3. Fill district / sex gaps, normalize phone numbers
    4. Return fields for review; nothing is saved
    """
    image_bytes, mime_type = await read_image_upload(file)

    # The model call blocks; keep it off the event loop
    data, raw_text = await run_in_threadpool(pipeline.extract_with_text, image_bytes, mime_type)
    refined = refine_extraction(data, raw_text)

    return DocumentExtractionResponse(extracted_data=refined)


@router.post("/ocr", response_model=OcrResponse, response_model_by_alias=True)
async def ocr_student_form(
    file: Optional[UploadFile] = File(None, description="Registration form image"),
    user: CurrentUser = Depends(require_permission(Permission.CREATE_STUDENT)),
    pipeline: DocumentExtractionPipeline = Depends(get_extraction_pipeline)
):
    """Raw transcription of the form in its original language."""
    image_bytes, mime_type = await read_image_upload(file)
    extracted_text = await run_in_threadpool(pipeline.extract_text, image_bytes, mime_type)
    return OcrResponse(extracted_text=extracted_text)
