"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List, Any, Dict
from datetime import date, datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    owner = "owner"
    admin = "admin"
    teacher = "teacher"
    developer = "developer"


class StudentStatus(str, Enum):
    pending = "pending"
    active = "active"
    employed = "employed"
    inactive = "inactive"


class Sex(str, Enum):
    male = "male"
    female = "female"
    other = "other"


class MaritalStatus(str, Enum):
    single = "single"
    married = "married"
    divorced = "divorced"
    widowed = "widowed"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class CurrentUser(BaseModel):
    user_id: int
    email: Optional[str] = None
    role: str

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    email: str
    full_name: str
    role: str
    must_change_password: bool = False

class ChangePasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=6)

class PermissionListResponse(BaseModel):
    role: str
    permissions: List[str]


# ============================================================
# USER SCHEMAS
# ============================================================

class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=2, max_length=100)
    role: UserRole

class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    role: Optional[UserRole] = None
    password: Optional[str] = Field(None, min_length=6)

class UserResponse(BaseModel):
    id: int
    email: str
    full_name: str
    role: str
    is_active: bool = True
    must_change_password: bool = False
    created_by_name: Optional[str] = None
    created_at: Optional[datetime] = None


# ============================================================
# STUDENT SCHEMAS
# ============================================================

def _choice(value):
    """Case-insensitive enum input; blank means not given."""
    if isinstance(value, str):
        return value.strip().lower() or None
    return value

class StudentBase(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=200)
    permanent_address: Optional[str] = None
    district: Optional[str] = None
    province: Optional[str] = None
    date_of_birth: Optional[date] = None
    national_id: Optional[str] = None
    passport_id: Optional[str] = None
    passport_expired_date: Optional[date] = None
    sex: Optional[Sex] = None
    marital_status: Optional[MaritalStatus] = None
    spouse_name: Optional[str] = None
    number_of_children: int = Field(0, ge=0)
    mobile_phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    email_address: Optional[EmailStr] = None
    has_driving_license: bool = False
    vehicle_type: Optional[str] = None
    education_ol: bool = False
    education_al: bool = False
    other_qualifications: Optional[str] = None
    work_experience: Optional[str] = None
    work_experience_abroad: Optional[str] = None
    expected_job_category: Optional[str] = None
    guardian_name: Optional[str] = None
    guardian_contact: Optional[str] = None

    @field_validator("sex", "marital_status", mode="before")
    @classmethod
    def normalize_choice(cls, value):
        # Forms and the extraction prompt use "Single", "Married", ...
        return _choice(value)

class StudentCreate(StudentBase):
    status: StudentStatus = StudentStatus.pending

class StudentUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=200)
    permanent_address: Optional[str] = None
    district: Optional[str] = None
    province: Optional[str] = None
    date_of_birth: Optional[date] = None
    national_id: Optional[str] = None
    passport_id: Optional[str] = None
    passport_expired_date: Optional[date] = None
    sex: Optional[Sex] = None
    marital_status: Optional[MaritalStatus] = None
    spouse_name: Optional[str] = None
    number_of_children: Optional[int] = Field(None, ge=0)
    mobile_phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    email_address: Optional[EmailStr] = None
    has_driving_license: Optional[bool] = None
    vehicle_type: Optional[str] = None
    education_ol: Optional[bool] = None
    education_al: Optional[bool] = None
    other_qualifications: Optional[str] = None
    work_experience: Optional[str] = None
    work_experience_abroad: Optional[str] = None
    expected_job_category: Optional[str] = None
    guardian_name: Optional[str] = None
    guardian_contact: Optional[str] = None
    status: Optional[StudentStatus] = None

    @field_validator("sex", "marital_status", mode="before")
    @classmethod
    def normalize_choice(cls, value):
        return _choice(value)

class StudentStatusUpdate(BaseModel):
    status: Optional[StudentStatus] = None

class StudentResponse(StudentBase):
    id: int
    status: str
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Relaxed for rows written before validation existed
    sex: Optional[str] = None
    marital_status: Optional[str] = None
    email_address: Optional[str] = None

class StudentDetailResponse(StudentResponse):
    created_by_name: Optional[str] = None
    placement: Optional[Dict[str, Any]] = None


# ============================================================
# DOCUMENT EXTRACTION SCHEMAS
# ============================================================

# Flat, best-effort record recovered from a form image. Keys follow the
# registration form (fullName, mobilePhone, educationOL, ...); values are
# whatever the model produced and are reviewed by a person before saving.
ExtractionResult = Dict[str, Any]

class DocumentExtractionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    extracted_data: ExtractionResult = Field(..., alias="extractedData")

class OcrResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    extracted_text: str = Field(..., alias="extractedText")


# ============================================================
# COMPANY SCHEMAS
# ============================================================

class CompanyCreate(BaseModel):
    company_name: str = Field(..., min_length=2, max_length=200)
    country: str = Field(..., min_length=2, max_length=100)
    industry: Optional[str] = None
    contact_person: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None

class CompanyUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=2, max_length=200)
    country: Optional[str] = Field(None, min_length=2, max_length=100)
    industry: Optional[str] = None
    contact_person: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None

class CompanyResponse(BaseModel):
    id: int
    company_name: str
    country: str
    industry: Optional[str] = None
    contact_person: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool = True
    created_by_name: Optional[str] = None
    placement_count: int = 0
    created_at: Optional[datetime] = None


# ============================================================
# PLACEMENT SCHEMAS
# ============================================================

PLACEMENT_REQUIRED_FIELDS = [
    "student_id", "start_date", "end_date", "visa_type", "company_name",
    "company_address", "industry", "resident_address", "emergency_contact",
    "language_proficiency"
]

class PlacementCreate(BaseModel):
    # Required fields are checked in the route so the error names the field
    student_id: Optional[int] = None
    company_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    visa_type: Optional[str] = None
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    industry: Optional[str] = None
    resident_address: Optional[str] = None
    emergency_contact: Optional[str] = None
    language_proficiency: Optional[str] = None
    photo_url: Optional[str] = None

class PlacementUpdate(BaseModel):
    company_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    visa_type: Optional[str] = None
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    industry: Optional[str] = None
    resident_address: Optional[str] = None
    emergency_contact: Optional[str] = None
    language_proficiency: Optional[str] = None
    photo_url: Optional[str] = None

class PlacementResponse(BaseModel):
    id: int
    student_id: int
    student_name: Optional[str] = None
    national_id: Optional[str] = None
    company_id: Optional[int] = None
    company_name: str
    company_address: Optional[str] = None
    industry: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    visa_type: Optional[str] = None
    resident_address: Optional[str] = None
    emergency_contact: Optional[str] = None
    language_proficiency: Optional[str] = None
    photo_url: Optional[str] = None
    created_by_name: Optional[str] = None
    created_at: Optional[datetime] = None


# ============================================================
# ANALYTICS SCHEMAS
# ============================================================

class BasicAnalyticsResponse(BaseModel):
    total_students: int
    active_students: int
    employed_students: int
    total_companies: int
    total_placements: int

class DescriptiveAnalyticsResponse(BaseModel):
    total_students: int
    employed_students: int
    district_stats: List[Dict[str, Any]] = []
    province_stats: List[Dict[str, Any]] = []
    monthly_registrations: List[Dict[str, Any]] = []
    employment_by_country: List[Dict[str, Any]] = []
    top_companies: List[Dict[str, Any]] = []

class Predictions(BaseModel):
    next_year_students: int
    avg_growth_rate: int
    top_growth_districts: List[Dict[str, Any]] = []
    top_growth_provinces: List[Dict[str, Any]] = []

class PredictiveAnalyticsResponse(BaseModel):
    yearly_trend: List[Dict[str, Any]] = []
    seasonal_data: List[Dict[str, Any]] = []
    employment_success: List[Dict[str, Any]] = []
    district_growth: List[Dict[str, Any]] = []
    province_growth: List[Dict[str, Any]] = []
    predictions: Predictions

class AIInsightsResponse(BaseModel):
    overview: Dict[str, Any]
    trends: List[Dict[str, Any]] = []
    predictions: List[Dict[str, Any]] = []
    geographic: List[Dict[str, Any]] = []
    province_registrations: Dict[str, Any]
    job_category_employment: Dict[str, Any]
    data_points: Dict[str, int]


# ============================================================
# COMMON
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
