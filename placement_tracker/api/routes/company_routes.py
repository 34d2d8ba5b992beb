"""
Company Routes (overseas employers)

GET /companies - List active companies with placement counts
GET /companies/{company_id} - Get one company
POST /companies - Create company
PUT /companies/{company_id} - Update company
DELETE /companies/{company_id} - Deactivate company
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from typing import List

from placement_tracker.db.postgres import get_db_session, execute_raw_sql
from placement_tracker.core.exceptions import NotFoundError, ValidationError
from placement_tracker.core.permissions import Permission, require_permission
from placement_tracker.schemas.schemas import (
    CurrentUser, CompanyCreate, CompanyUpdate, CompanyResponse, MessageResponse
)

router = APIRouter(prefix="/companies", tags=["Companies"])

COMPANY_COLUMNS = """
    c.*,
    (SELECT full_name FROM users WHERE id = c.created_by) AS created_by_name,
    (SELECT COUNT(*) FROM placements p WHERE p.company_id = c.id) AS placement_count
"""


@router.get("", response_model=List[CompanyResponse])
async def list_companies(user: CurrentUser = Depends(require_permission(Permission.VIEW_COMPANIES))):
    results = execute_raw_sql(f"""
        SELECT {COMPANY_COLUMNS} FROM companies c
        WHERE c.is_active = true
        ORDER BY c.created_at DESC
    """)
    return [CompanyResponse(**r) for r in results]


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(company_id: int, user: CurrentUser = Depends(require_permission(Permission.VIEW_COMPANIES))):
    results = execute_raw_sql(f"""
        SELECT {COMPANY_COLUMNS} FROM companies c
        WHERE c.id = :id AND c.is_active = true
    """, {"id": company_id})

    if not results:
        raise NotFoundError("Company not found")
    return CompanyResponse(**results[0])


@router.post("", response_model=CompanyResponse, status_code=201)
async def create_company(
    data: CompanyCreate,
    user: CurrentUser = Depends(require_permission(Permission.CREATE_COMPANY))
):
    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO companies (company_name, country, industry, contact_person, contact_email,
                                       contact_phone, address, created_by)
                VALUES (:company_name, :country, :industry, :contact_person, :contact_email,
                        :contact_phone, :address, :created_by)
                RETURNING *
            """),
            {**data.model_dump(), "created_by": user.user_id}
        )
        row = result.fetchone()

    return CompanyResponse(**row._mapping)


@router.put("/{company_id}", response_model=CompanyResponse)
async def update_company(
    company_id: int,
    data: CompanyUpdate,
    user: CurrentUser = Depends(require_permission(Permission.UPDATE_COMPANY))
):
    """Update company. Only provided fields are updated."""
    values = data.model_dump(exclude_none=True)
    if not values:
        raise ValidationError("No fields to update")

    assignments = [f"{field} = :{field}" for field in values]

    with get_db_session() as db:
        result = db.execute(
            text(f"""
                UPDATE companies SET {', '.join(assignments)}, updated_at = CURRENT_TIMESTAMP
                WHERE id = :id AND is_active = true
                RETURNING *
            """),
            {"id": company_id, **values}
        )
        row = result.fetchone()

    if not row:
        raise NotFoundError("Company not found")
    return CompanyResponse(**row._mapping)


@router.delete("/{company_id}", response_model=MessageResponse)
async def delete_company(
    company_id: int,
    user: CurrentUser = Depends(require_permission(Permission.DELETE_COMPANY))
):
    """Deactivate company. Existing placements keep their reference."""
    with get_db_session() as db:
        result = db.execute(
            text("""
                UPDATE companies SET is_active = false, updated_at = CURRENT_TIMESTAMP
                WHERE id = :id AND is_active = true
                RETURNING id
            """),
            {"id": company_id}
        )
        if not result.fetchone():
            raise NotFoundError("Company not found")

    return MessageResponse(message="Company deleted successfully")
