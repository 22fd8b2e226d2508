from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from repositories.db_models import (
    LightCondition,
    ReportSource,
    ReportStatus,
    Severity,
    UserRole,
)


# User Schemas
class UserBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    phone: str = Field(..., pattern=r"^\d{10}$")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class UserCreate(UserBase):
    password: str
    password_confirm: str
    address: Optional[str] = Field(default=None, max_length=200)


class User(BaseModel):
    id: int
    name: str
    email: EmailStr
    phone: str
    role: UserRole
    address: Optional[str] = None
    assigned_zone: Optional[str] = None
    is_active: bool
    is_verified: bool
    reports_submitted: int = 0
    reports_resolved: int = 0
    last_login_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    phone: Optional[str] = Field(default=None, pattern=r"^\d{10}$")
    address: Optional[str] = Field(default=None, max_length=200)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str
    new_password_confirm: str


class UserListResponse(BaseModel):
    """Paginated user list response with total count."""

    users: List[User]
    total: int
    skip: int
    limit: int


# Token Schemas
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AuthResponse(Token):
    """Token plus the authenticated user, returned by login/register."""

    user: User


class TokenPayload(BaseModel):
    """Decoded session token claims."""

    user_id: int
    role: UserRole
    issued_at: datetime


# Password reset
class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ForgotPasswordResponse(BaseModel):
    message: str
    # Only populated in development, where no email is sent
    reset_token: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    password: str
    password_confirm: str


class MessageResponse(BaseModel):
    message: str


# Report Schemas
class ReporterSummary(BaseModel):
    id: int
    name: str
    email: EmailStr

    model_config = ConfigDict(from_attributes=True)


class ReportImage(BaseModel):
    id: int
    public_id: str
    url: str
    thumbnail_url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    brightness: Optional[int] = None
    resolution: Optional[str] = None
    orientation: Optional[str] = None
    quality_warnings: List[str] = []
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    latitude: float
    longitude: float
    light_condition: LightCondition
    severity: Severity = Severity.MEDIUM
    pole_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    pincode: Optional[str] = None
    source: ReportSource = ReportSource.WEB

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 5:
            raise ValueError("Title must be at least 5 characters")
        return v


class ReportUpdate(BaseModel):
    """
    Partial report update.

    Which of these fields a caller may actually change depends on their
    role; anything else is dropped before the update is applied.
    """

    title: Optional[str] = Field(default=None, min_length=5, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    status: Optional[ReportStatus] = None
    light_condition: Optional[LightCondition] = None
    severity: Optional[Severity] = None
    pole_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    pincode: Optional[str] = None
    assigned_to_id: Optional[int] = None
    requires_review: Optional[bool] = None
    review_notes: Optional[str] = None
    resolution_notes: Optional[str] = None
    estimated_resolution_time: Optional[datetime] = None

    # Omitting these is fine; an explicit null is not
    @field_validator(
        "title", "status", "light_condition", "severity", "requires_review"
    )
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("This field cannot be null")
        return v


class StatusUpdate(BaseModel):
    status: ReportStatus
    notes: Optional[str] = Field(default=None, max_length=1000)
    assigned_to_id: Optional[int] = None


class Report(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    latitude: float
    longitude: float
    address: Optional[str] = None
    city: Optional[str] = None
    pincode: Optional[str] = None
    formatted_address: str = ""
    light_condition: LightCondition
    severity: Severity
    pole_number: Optional[str] = None
    status: ReportStatus
    images: List[ReportImage] = []

    is_duplicate: bool
    duplicate_of_id: Optional[int] = None
    duplicate_count: int
    requires_review: bool
    review_notes: Optional[str] = None
    reviewed_by_id: Optional[int] = None
    reviewed_at: Optional[datetime] = None

    assigned_to_id: Optional[int] = None
    assigned_at: Optional[datetime] = None
    resolved_by_id: Optional[int] = None
    resolved_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    verified_by_id: Optional[int] = None
    verified_at: Optional[datetime] = None
    estimated_resolution_time: Optional[datetime] = None
    actual_resolution_time: Optional[datetime] = None

    view_count: int
    source: ReportSource
    reported_by_id: int
    reporter: Optional[ReporterSummary] = None
    is_resolved: bool
    age_in_days: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportCreateResponse(BaseModel):
    report: Report
    warnings: Optional[str] = None
    duplicate_info: Optional[str] = None


class NearbyReport(BaseModel):
    id: int
    title: str
    light_condition: LightCondition
    status: ReportStatus
    latitude: float
    longitude: float
    address: Optional[str] = None
    city: Optional[str] = None
    created_at: datetime
    distance_meters: float
    reporter_name: Optional[str] = None


class NearbyReportsResponse(BaseModel):
    results: int
    reports: List[NearbyReport]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


# Statistics Schemas
class ReportStatistics(BaseModel):
    total: int
    by_status: dict[str, int]


class DailyReportStats(BaseModel):
    date: str
    count: int
    resolved: int
    pending: int


class RoleStats(BaseModel):
    role: UserRole
    count: int
    reports_submitted: int
    reports_resolved: int


class ReportStatsResponse(BaseModel):
    overall: ReportStatistics
    daily: List[DailyReportStats]
    users: List[RoleStats]


class ReportListResponse(BaseModel):
    results: int
    pagination: Pagination
    reports: List[Report]
    # Admins only
    stats: Optional[ReportStatistics] = None


class ImageUploadResponse(BaseModel):
    images: List[ReportImage]
    total_images: int
