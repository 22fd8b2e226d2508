"""
Report Service

Handles streetlight fault reports: submission (image checks, geocoding,
duplicate detection and the review decision), visibility-aware reads,
role-restricted updates, status transitions and admin statistics.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import magic
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from helpers.geo import is_within_city, validate_coordinates
from helpers.pagination import build_pagination, page_to_offset
from helpers.request_utils import DeviceInfo
from helpers.time_utils import utc_now
from models.config import settings
from models.exceptions import (
    ImageValidationException,
    InsufficientPermissionsException,
    InvalidCoordinatesException,
    OutOfServiceAreaException,
    ReportNotFoundException,
    UpstreamServiceException,
    UserNotFoundException,
)
from repositories.report_repository import ReportFilters, ReportRepository
from repositories.user_repository import UserRepository
from services import report_workflow
from services.geocoding_service import ReverseGeocoder
from services.image_quality import ImageQualityAssessor
from services.media_storage import MediaStorageProvider

ALLOWED_IMAGE_MIME_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}

# A new report is only a duplicate of a report that is still open
DUPLICATE_EXCLUDED_STATUSES = (
    db_models.ReportStatus.CLOSED,
    db_models.ReportStatus.REJECTED,
)


@dataclass
class UploadedImage:
    filename: str
    content: bytes


def validate_image_files(files: List[UploadedImage], existing_count: int = 0) -> None:
    """
    Check count, size and sniffed content type of uploaded files.

    Raises:
        ImageValidationException: If any file is rejected
    """
    if existing_count + len(files) > settings.MAX_IMAGES_PER_REPORT:
        raise ImageValidationException(
            f"A report can have at most {settings.MAX_IMAGES_PER_REPORT} images"
        )

    for file in files:
        if not file.content:
            raise ImageValidationException(f"File '{file.filename}' is empty")
        if len(file.content) > settings.MAX_IMAGE_SIZE_BYTES:
            limit_mb = settings.MAX_IMAGE_SIZE_BYTES // (1024 * 1024)
            raise ImageValidationException(
                f"File '{file.filename}' exceeds {limit_mb}MB limit"
            )
        # Check actual content, not the client-declared type
        detected_type = magic.from_buffer(file.content, mime=True)
        if detected_type not in ALLOWED_IMAGE_MIME_TYPES:
            raise ImageValidationException(
                f"Invalid file type '{detected_type}'. "
                f"Allowed: {', '.join(sorted(ALLOWED_IMAGE_MIME_TYPES))}"
            )


def _ensure_can_view(report: db_models.Report, viewer: db_models.User) -> None:
    if (
        viewer.role == db_models.UserRole.CITIZEN
        and report.reported_by_id != viewer.id
    ):
        raise InsufficientPermissionsException("Not authorized to access this report")


class ReportService:
    """Service for report business logic."""

    @staticmethod
    def get_report_or_raise(db: Session, report_id: int) -> db_models.Report:
        report = ReportRepository(db).get_with_details(report_id)
        if not report:
            raise ReportNotFoundException(report_id)
        return report

    @staticmethod
    def _process_images(
        files: List[UploadedImage],
        storage: MediaStorageProvider,
        assessor: ImageQualityAssessor,
        start_position: int = 0,
    ) -> List[db_models.ReportImage]:
        """
        Assess and store each file; a file that fails is skipped.

        Returns:
            Unsaved ReportImage rows for the files that were stored
        """
        rows: List[db_models.ReportImage] = []
        for file in files:
            try:
                quality = assessor.assess(file.content)
                stored = storage.upload(file.content, file.filename)
            except (ImageValidationException, UpstreamServiceException) as e:
                logger.warning(f"Skipping image '{file.filename}': {e.message}")
                continue

            if quality.warnings:
                logger.info(
                    f"Image quality warnings for {stored.public_id}: {quality.warnings}"
                )
            rows.append(
                db_models.ReportImage(
                    position=start_position + len(rows),
                    public_id=stored.public_id,
                    url=stored.url,
                    thumbnail_url=stored.thumbnail_url,
                    width=stored.width,
                    height=stored.height,
                    format=stored.format,
                    brightness=quality.brightness,
                    resolution=quality.resolution,
                    orientation=quality.orientation,
                    quality_warnings=list(quality.warnings),
                )
            )
        return rows

    @staticmethod
    def _discard_stored_images(
        rows: List[db_models.ReportImage], storage: MediaStorageProvider
    ) -> None:
        for row in rows:
            if not storage.delete(row.public_id):
                logger.warning(f"Could not remove stored image {row.public_id}")

    @staticmethod
    def create_report(
        db: Session,
        data: schemas.ReportCreate,
        files: List[UploadedImage],
        reporter: db_models.User,
        storage: MediaStorageProvider,
        assessor: ImageQualityAssessor,
        geocoder: ReverseGeocoder,
        device: Optional[DeviceInfo] = None,
        ip_address: Optional[str] = None,
    ) -> schemas.ReportCreateResponse:
        """
        Submit a new fault report.

        Steps: validate the location, assess and store photos, backfill the
        address by reverse geocoding, persist as pending, flag duplicates of
        nearby open reports, then decide whether it needs manual review.

        Args:
            db: Database session
            data: Report fields
            files: Uploaded photos (already size/type checked)
            reporter: Submitting user
            storage: Media storage provider
            assessor: Image quality assessor
            geocoder: Reverse geocoder
            device: Submitting device description
            ip_address: Client IP address

        Returns:
            The stored report with review and duplicate advisories

        Raises:
            InvalidCoordinatesException: If the point is not on the globe
            OutOfServiceAreaException: If the point is outside the declared city
        """
        lat, lng = data.latitude, data.longitude
        is_valid, error = validate_coordinates(lat, lng)
        if not is_valid:
            raise InvalidCoordinatesException(error or "Invalid coordinates")

        city = data.city.strip() if data.city else None
        if city and not is_within_city(lat, lng, city):
            raise OutOfServiceAreaException(city)

        image_rows = ReportService._process_images(files, storage, assessor)

        address = data.address.strip() if data.address else None
        pincode = data.pincode
        if not address or not city:
            try:
                geocoded = geocoder.lookup(lat, lng)
            except UpstreamServiceException as e:
                logger.warning(f"Reverse geocoding failed for ({lat}, {lng}): {e.message}")
                geocoded = None
            if geocoded:
                address = address or geocoded.formatted_address
                city = city or geocoded.city
                pincode = pincode or geocoded.pincode

        report_repo = ReportRepository(db)
        report = db_models.Report(
            title=data.title,
            description=data.description,
            latitude=lat,
            longitude=lng,
            address=address,
            city=city,
            pincode=pincode,
            light_condition=data.light_condition,
            severity=data.severity,
            pole_number=data.pole_number,
            status=db_models.ReportStatus.PENDING,
            source=data.source,
            device_browser=device.browser if device else None,
            device_os=device.os if device else None,
            device_type=device.device_type if device else None,
            ip_address=ip_address,
            reported_by_id=reporter.id,
            images=image_rows,
        )
        try:
            report = report_repo.create(report)
        except SQLAlchemyError:
            report_repo.rollback()
            ReportService._discard_stored_images(image_rows, storage)
            raise

        # Duplicate detection against nearby open reports
        nearby = report_repo.find_near(
            lat,
            lng,
            settings.DUPLICATE_RADIUS_METERS,
            settings.DUPLICATE_SEARCH_LIMIT,
            exclude_id=report.id,
            exclude_statuses=DUPLICATE_EXCLUDED_STATUSES,
        )
        original_id: Optional[int] = None
        if nearby:
            original_id = nearby[0][0].id
            report.is_duplicate = True
            report.duplicate_of_id = original_id
            report.duplicate_count = len(nearby)

        needs_review = report_workflow.requires_review(
            [row.quality_warnings for row in image_rows], report.severity
        )
        if needs_review:
            report.requires_review = True
            report.status = db_models.ReportStatus.UNDER_REVIEW

        report_repo.commit()

        # Best-effort counters, each in its own transaction
        if original_id is not None:
            report_repo.increment_counter(original_id, "duplicate_count")
        UserRepository(db).increment_counter(reporter.id, "reports_submitted")

        report = ReportService.get_report_or_raise(db, report.id)
        logger.info(
            f"Report created: report_id={report.id} status={report.status.value} "
            f"duplicate_of={report.duplicate_of_id}"
        )

        return schemas.ReportCreateResponse(
            report=schemas.Report.model_validate(report),
            warnings=report_workflow.review_message(report.requires_review),
            duplicate_info=report_workflow.duplicate_message(
                report.is_duplicate, report.duplicate_count
            ),
        )

    @staticmethod
    def get_report(
        db: Session, report_id: int, viewer: db_models.User
    ) -> db_models.Report:
        """
        Get a report and count the view.

        Raises:
            ReportNotFoundException: If the report does not exist
            InsufficientPermissionsException: If a citizen asks for someone else's report
        """
        report_repo = ReportRepository(db)
        report = ReportService.get_report_or_raise(db, report_id)
        _ensure_can_view(report, viewer)

        report_repo.increment_counter(report.id, "view_count")
        report_repo.refresh(report)
        return report

    @staticmethod
    def list_reports(
        db: Session,
        viewer: db_models.User,
        filters: ReportFilters,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> schemas.ReportListResponse:
        """List reports visible to the viewer. Admins also get status counts."""
        report_repo = ReportRepository(db)
        reports, total = report_repo.list_reports(
            filters,
            viewer_id=viewer.id,
            viewer_role=viewer.role,
            skip=page_to_offset(page, limit),
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )

        stats = None
        if viewer.role == db_models.UserRole.ADMIN:
            stats = schemas.ReportStatistics(**report_repo.get_statistics())

        return schemas.ReportListResponse(
            results=len(reports),
            pagination=schemas.Pagination(**build_pagination(page, limit, total)),
            reports=[schemas.Report.model_validate(r) for r in reports],
            stats=stats,
        )

    @staticmethod
    def _bump_resolver(db: Session, stamps: dict) -> None:
        resolver_id = stamps.get("resolved_by_id")
        if stamps.get("status") == db_models.ReportStatus.RESOLVED and resolver_id:
            UserRepository(db).increment_counter(resolver_id, "reports_resolved")

    @staticmethod
    def _check_assignee(db: Session, assignee_id: Optional[int]) -> None:
        if assignee_id is None:
            return
        assignee = UserRepository(db).get_by_id(assignee_id)
        if assignee is None:
            raise UserNotFoundException("Assignee not found")
        if assignee.role == db_models.UserRole.CITIZEN:
            raise InsufficientPermissionsException(
                "Reports can only be assigned to workers or admins"
            )

    @staticmethod
    def update_report(
        db: Session,
        report_id: int,
        update: schemas.ReportUpdate,
        actor: db_models.User,
        now: Optional[datetime] = None,
    ) -> db_models.Report:
        """
        Apply the fields the actor's role may change.

        Fields outside the role's capabilities are dropped. A status change
        goes through the transition table; resubmitting the current status
        is not a change.
        A new assignee refreshes ``assigned_at``.

        Raises:
            ReportNotFoundException: If the report does not exist
            InsufficientPermissionsException: If a citizen edits someone else's report
            InvalidStatusTransitionException: If the status move is not allowed
        """
        now = now or utc_now()
        report_repo = ReportRepository(db)
        report = ReportService.get_report_or_raise(db, report_id)

        if (
            actor.role == db_models.UserRole.CITIZEN
            and report.reported_by_id != actor.id
        ):
            raise InsufficientPermissionsException("Not authorized to update this report")

        requested = update.model_dump(exclude_unset=True)
        changes = report_workflow.filter_updates_for_role(actor.role, requested)
        dropped = sorted(set(requested) - set(changes))
        if dropped:
            logger.debug(
                f"Ignoring fields {dropped} from {actor.role.value} on report {report_id}"
            )

        new_status = changes.pop("status", None)
        if new_status is not None and new_status == report.status:
            new_status = None

        ReportService._check_assignee(db, changes.get("assigned_to_id"))

        stamps: dict = {}
        if new_status is not None:
            notes = (
                changes.get("review_notes")
                if new_status == db_models.ReportStatus.REJECTED
                else changes.get("resolution_notes")
            )
            stamps = report_workflow.apply_status_change(
                report,
                new_status,
                actor_id=actor.id,
                now=now,
                notes=notes,
                assignee_id=changes.get("assigned_to_id"),
            )

        # Transition stamps take precedence over the same fields in the body
        for field in stamps:
            changes.pop(field, None)

        if "assigned_to_id" in changes:
            assignee_id = changes.pop("assigned_to_id")
            if assignee_id is None and report.status == db_models.ReportStatus.ASSIGNED:
                logger.debug(f"Keeping assignee of assigned report {report_id}")
            elif assignee_id != report.assigned_to_id:
                report.assigned_to_id = assignee_id
                report.assigned_at = now if assignee_id is not None else None

        for field, value in changes.items():
            setattr(report, field, value)

        report_repo.commit()
        ReportService._bump_resolver(db, stamps)

        return ReportService.get_report_or_raise(db, report_id)

    @staticmethod
    def update_status(
        db: Session,
        report_id: int,
        status_update: schemas.StatusUpdate,
        actor: db_models.User,
        now: Optional[datetime] = None,
    ) -> db_models.Report:
        """
        Move a report along its lifecycle.

        Raises:
            ReportNotFoundException: If the report does not exist
            InsufficientPermissionsException: If a worker targets a status
                outside in_progress/resolved
            InvalidStatusTransitionException: If the move is not allowed
        """
        now = now or utc_now()
        report = ReportService.get_report_or_raise(db, report_id)

        if (
            actor.role == db_models.UserRole.WORKER
            and status_update.status not in report_workflow.WORKER_STATUS_CHOICES
        ):
            raise InsufficientPermissionsException(
                "Workers can only mark reports in progress or resolved"
            )

        if status_update.status == db_models.ReportStatus.ASSIGNED:
            ReportService._check_assignee(db, status_update.assigned_to_id)

        previous = report.status
        stamps = report_workflow.apply_status_change(
            report,
            status_update.status,
            actor_id=actor.id,
            now=now,
            notes=status_update.notes,
            assignee_id=status_update.assigned_to_id,
        )
        ReportRepository(db).commit()
        ReportService._bump_resolver(db, stamps)

        logger.info(
            f"Report {report_id} status {previous.value} -> "
            f"{status_update.status.value} by user_id={actor.id}"
        )
        return ReportService.get_report_or_raise(db, report_id)

    @staticmethod
    def delete_report(
        db: Session, report_id: int, storage: MediaStorageProvider
    ) -> None:
        """
        Delete a report and its stored images.

        Raises:
            ReportNotFoundException: If the report does not exist
        """
        report_repo = ReportRepository(db)
        report = ReportService.get_report_or_raise(db, report_id)

        ReportService._discard_stored_images(list(report.images), storage)
        report_repo.delete(report)
        logger.info(f"Report deleted: report_id={report_id}")

    @staticmethod
    def add_images(
        db: Session,
        report_id: int,
        files: List[UploadedImage],
        actor: db_models.User,
        storage: MediaStorageProvider,
        assessor: ImageQualityAssessor,
    ) -> schemas.ImageUploadResponse:
        """
        Attach more photos to an existing report.

        Raises:
            ReportNotFoundException: If the report does not exist
            InsufficientPermissionsException: If a citizen targets someone else's report
            ImageValidationException: If no files were sent or the image limit is exceeded
        """
        report_repo = ReportRepository(db)
        report = ReportService.get_report_or_raise(db, report_id)
        _ensure_can_view(report, actor)

        if not files:
            raise ImageValidationException("No images uploaded")
        validate_image_files(files, existing_count=len(report.images))

        new_rows = ReportService._process_images(
            files, storage, assessor, start_position=len(report.images)
        )
        report.images.extend(new_rows)
        report_repo.commit()
        report_repo.refresh(report)

        return schemas.ImageUploadResponse(
            images=[schemas.ReportImage.model_validate(row) for row in new_rows],
            total_images=len(report.images),
        )

    @staticmethod
    def get_nearby_reports(
        db: Session, lat: float, lng: float, radius: float, limit: int
    ) -> schemas.NearbyReportsResponse:
        """
        Reports within ``radius`` meters of a point, nearest first.

        Raises:
            InvalidCoordinatesException: If the point is not on the globe
        """
        is_valid, error = validate_coordinates(lat, lng)
        if not is_valid:
            raise InvalidCoordinatesException(error or "Invalid coordinates")

        matches = ReportRepository(db).find_near(lat, lng, radius, limit)
        reports = [
            schemas.NearbyReport(
                id=report.id,
                title=report.title,
                light_condition=report.light_condition,
                status=report.status,
                latitude=report.latitude,
                longitude=report.longitude,
                address=report.address,
                city=report.city,
                created_at=report.created_at,
                distance_meters=round(distance, 1),
                reporter_name=report.reporter.name if report.reporter else None,
            )
            for report, distance in matches
        ]
        return schemas.NearbyReportsResponse(results=len(reports), reports=reports)

    @staticmethod
    def get_report_stats(db: Session, days: int = 7) -> schemas.ReportStatsResponse:
        """Overall, daily and per-role statistics for the admin dashboard."""
        report_repo = ReportRepository(db)
        return schemas.ReportStatsResponse(
            overall=schemas.ReportStatistics(**report_repo.get_statistics()),
            daily=[
                schemas.DailyReportStats(**row)
                for row in report_repo.get_daily_stats(days)
            ],
            users=[
                schemas.RoleStats(**row) for row in UserRepository(db).get_role_stats()
            ],
        )
