"""Report router endpoints."""

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from helpers.pagination import NearbyLimit, PaginationLimit, PaginationPage
from helpers.rate_limiter import limiter
from helpers.request_utils import get_client_ip, get_device_info
from models.config import settings
from models.exceptions import ImageValidationException, ValidationException
from repositories.database import get_db
from repositories.report_repository import ReportFilters
from services import ReportService
from services.geocoding_service import ReverseGeocoder, get_geocoder
from services.image_quality import ImageQualityAssessor, get_image_quality_assessor
from services.media_storage import MediaStorageProvider, get_media_storage
from services.report_service import UploadedImage, validate_image_files

router = APIRouter(prefix="/reports", tags=["reports"])

SortField = Literal["created_at", "updated_at", "severity", "status"]


async def _read_uploads(files: Optional[List[UploadFile]]) -> List[UploadedImage]:
    """Read uploads into memory, refusing anything over the size limit."""
    uploads: List[UploadedImage] = []
    for file in files or []:
        # Read one byte past the limit so oversized files are detected
        content = await file.read(settings.MAX_IMAGE_SIZE_BYTES + 1)
        uploads.append(UploadedImage(filename=file.filename or "upload", content=content))
    return uploads


@router.get("/nearby", response_model=schemas.NearbyReportsResponse)
def get_nearby_reports(
    lat: float = Query(..., description="Latitude"),
    lng: float = Query(..., description="Longitude"),
    radius: float = Query(1000, gt=0, le=50_000, description="Radius in meters"),
    limit: NearbyLimit = 20,
    db: Session = Depends(get_db),
) -> schemas.NearbyReportsResponse:
    """Public map feed: reports around a point, nearest first."""
    return ReportService.get_nearby_reports(db, lat, lng, radius, limit)


@router.get("/stats", response_model=schemas.ReportStatsResponse)
def get_report_stats(
    current_user: db_models.User = Depends(auth.get_admin_user),
    db: Session = Depends(get_db),
) -> schemas.ReportStatsResponse:
    """Overall, 7-day and per-role statistics (admin only)."""
    return ReportService.get_report_stats(db)


@router.post(
    "",
    response_model=schemas.ReportCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("10/minute")
async def create_report(
    request: Request,
    title: str = Form(..., min_length=5, max_length=100),
    latitude: float = Form(...),
    longitude: float = Form(...),
    light_condition: db_models.LightCondition = Form(...),
    description: Optional[str] = Form(None, max_length=500),
    severity: db_models.Severity = Form(db_models.Severity.MEDIUM),
    pole_number: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    pincode: Optional[str] = Form(None),
    source: db_models.ReportSource = Form(db_models.ReportSource.WEB),
    images: Optional[List[UploadFile]] = File(None),
    current_user: db_models.User = Depends(auth.get_current_user),
    db: Session = Depends(get_db),
    storage: MediaStorageProvider = Depends(get_media_storage),
    assessor: ImageQualityAssessor = Depends(get_image_quality_assessor),
    geocoder: ReverseGeocoder = Depends(get_geocoder),
) -> schemas.ReportCreateResponse:
    """
    Submit a streetlight fault report (multipart form).

    Up to 5 images of at most 5MB each. Reports without photos, with
    low-quality photos or marked critical go to manual review.
    """
    try:
        data = schemas.ReportCreate(
            title=title,
            description=description,
            latitude=latitude,
            longitude=longitude,
            light_condition=light_condition,
            severity=severity,
            pole_number=pole_number,
            address=address,
            city=city,
            pincode=pincode,
            source=source,
        )
    except ValidationError as e:
        raise ValidationException(
            "; ".join(err["msg"] for err in e.errors())
        )

    uploads = await _read_uploads(images)
    validate_image_files(uploads)

    # Geocoding, Pillow and the session are blocking
    return await run_in_threadpool(
        ReportService.create_report,
        db,
        data,
        uploads,
        reporter=current_user,
        storage=storage,
        assessor=assessor,
        geocoder=geocoder,
        device=get_device_info(request),
        ip_address=get_client_ip(request),
    )


@router.get("", response_model=schemas.ReportListResponse)
def list_reports(
    page: PaginationPage = 1,
    limit: PaginationLimit = 10,
    status_filter: Optional[db_models.ReportStatus] = Query(None, alias="status"),
    light_condition: Optional[db_models.LightCondition] = None,
    severity: Optional[db_models.Severity] = None,
    city: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort_by: SortField = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    current_user: db_models.User = Depends(auth.get_current_user),
    db: Session = Depends(get_db),
) -> schemas.ReportListResponse:
    """
    List reports visible to the caller.

    Citizens see their own reports, workers see the work queue, admins see
    everything plus status counts.
    """
    filters = ReportFilters(
        status=status_filter,
        light_condition=light_condition,
        severity=severity,
        city=city,
        search=search,
    )
    return ReportService.list_reports(
        db,
        current_user,
        filters,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/{report_id}", response_model=schemas.Report)
def get_report(
    report_id: int,
    current_user: db_models.User = Depends(auth.get_current_user),
    db: Session = Depends(get_db),
) -> db_models.Report:
    """Get a report. Citizens may only open their own."""
    return ReportService.get_report(db, report_id, current_user)


@router.patch("/{report_id}", response_model=schemas.Report)
def update_report(
    report_id: int,
    update: schemas.ReportUpdate,
    current_user: db_models.User = Depends(auth.get_current_user),
    db: Session = Depends(get_db),
) -> db_models.Report:
    """
    Update a report.

    Citizens may edit title and description of their own reports, workers
    may set status (in_progress/resolved) and resolution notes, admins may
    edit everything but the reporter.
    """
    return ReportService.update_report(db, report_id, update, current_user)


@router.patch("/{report_id}/status", response_model=schemas.Report)
def update_report_status(
    report_id: int,
    status_update: schemas.StatusUpdate,
    current_user: db_models.User = Depends(auth.get_staff_user),
    db: Session = Depends(get_db),
) -> db_models.Report:
    """Move a report along its lifecycle (workers and admins)."""
    return ReportService.update_status(db, report_id, status_update, current_user)


@router.delete("/{report_id}", response_model=schemas.MessageResponse)
def delete_report(
    report_id: int,
    current_user: db_models.User = Depends(auth.get_admin_user),
    db: Session = Depends(get_db),
    storage: MediaStorageProvider = Depends(get_media_storage),
) -> schemas.MessageResponse:
    """Delete a report and its images (admin only)."""
    ReportService.delete_report(db, report_id, storage)
    return schemas.MessageResponse(message="Report deleted successfully")


@router.post("/{report_id}/images", response_model=schemas.ImageUploadResponse)
async def upload_report_images(
    report_id: int,
    images: List[UploadFile] = File(...),
    current_user: db_models.User = Depends(auth.get_current_user),
    db: Session = Depends(get_db),
    storage: MediaStorageProvider = Depends(get_media_storage),
    assessor: ImageQualityAssessor = Depends(get_image_quality_assessor),
) -> schemas.ImageUploadResponse:
    """Attach more photos to a report (owner, workers and admins)."""
    uploads = await _read_uploads(images)
    if not uploads:
        raise ImageValidationException("No images uploaded")
    return await run_in_threadpool(
        ReportService.add_images, db, report_id, uploads, current_user, storage, assessor
    )
