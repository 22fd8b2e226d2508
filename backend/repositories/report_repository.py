"""
Report repository for database operations.

Radius queries run in two steps: an indexed bounding-box prefilter in SQL,
then exact haversine distances computed in Python on the candidates.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from sqlalchemy import and_, case, func, or_
from sqlalchemy.orm import Session, joinedload, selectinload

import repositories.db_models as db_models
from helpers.geo import calculate_bounding_box, haversine_distance
from helpers.time_utils import utc_now

from .base import BaseRepository

Report = db_models.Report
ReportStatus = db_models.ReportStatus

SEVERITY_RANK = {
    db_models.Severity.LOW: 1,
    db_models.Severity.MEDIUM: 2,
    db_models.Severity.HIGH: 3,
    db_models.Severity.CRITICAL: 4,
}

STATUS_RANK = {status: index for index, status in enumerate(ReportStatus)}

@dataclass
class ReportFilters:
    """Optional listing filters. None means no constraint."""

    status: Optional[ReportStatus] = None
    light_condition: Optional[db_models.LightCondition] = None
    severity: Optional[db_models.Severity] = None
    city: Optional[str] = None
    search: Optional[str] = None


class ReportRepository(BaseRepository[Report]):
    """Repository for Report entity database operations."""

    def __init__(self, db: Session):
        super().__init__(Report, db)

    def get_with_details(self, report_id: int) -> Optional[Report]:
        """
        Get a report with its images, reporter and assignee loaded.

        Args:
            report_id: Report ID

        Returns:
            Report if found, None otherwise
        """
        return (
            self.db.query(Report)
            .options(
                selectinload(Report.images),
                joinedload(Report.reporter),
                joinedload(Report.assignee),
            )
            .filter(Report.id == report_id)
            .first()
        )

    def find_near(
        self,
        lat: float,
        lng: float,
        radius_meters: float,
        limit: int,
        exclude_id: Optional[int] = None,
        exclude_statuses: Iterable[ReportStatus] = (),
    ) -> List[tuple[Report, float]]:
        """
        Find reports within a radius, nearest first.

        Args:
            lat: Center latitude
            lng: Center longitude
            radius_meters: Search radius in meters (inclusive)
            limit: Maximum number of reports to return
            exclude_id: Report to leave out (typically the one just created)
            exclude_statuses: Statuses to leave out

        Returns:
            List of (report, distance in meters) tuples
        """
        box = calculate_bounding_box(lat, lng, radius_meters)

        query = (
            self.db.query(Report)
            .options(joinedload(Report.reporter))
            .filter(Report.latitude.between(box.min_lat, box.max_lat))
        )
        # A box crossing the antimeridian is left to the exact distance check
        if box.min_lng >= -180 and box.max_lng <= 180:
            query = query.filter(Report.longitude.between(box.min_lng, box.max_lng))

        if exclude_id is not None:
            query = query.filter(Report.id != exclude_id)
        excluded = list(exclude_statuses)
        if excluded:
            query = query.filter(Report.status.notin_(excluded))

        matches = []
        for report in query.all():
            distance = haversine_distance(lat, lng, report.latitude, report.longitude)
            if distance <= radius_meters:
                matches.append((report, distance))

        matches.sort(key=lambda item: (item[1], item[0].id))
        return matches[:limit]

    def list_reports(
        self,
        filters: ReportFilters,
        viewer_id: int,
        viewer_role: db_models.UserRole,
        skip: int = 0,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[List[Report], int]:
        """
        List reports visible to a viewer, filtered, sorted and paginated.

        Citizens see only their own reports. Workers see reports that are
        assigned or in progress, plus any assigned to them. Admins see all.

        Returns:
            Tuple of (reports on this page, total matching reports)
        """
        conditions = []

        if filters.status is not None:
            conditions.append(Report.status == filters.status)
        if filters.light_condition is not None:
            conditions.append(Report.light_condition == filters.light_condition)
        if filters.severity is not None:
            conditions.append(Report.severity == filters.severity)
        if filters.city:
            conditions.append(func.lower(Report.city) == filters.city.strip().lower())
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            conditions.append(
                or_(Report.title.ilike(pattern), Report.description.ilike(pattern))
            )

        if viewer_role == db_models.UserRole.CITIZEN:
            conditions.append(Report.reported_by_id == viewer_id)
        elif viewer_role == db_models.UserRole.WORKER:
            conditions.append(
                or_(
                    Report.status.in_([ReportStatus.ASSIGNED, ReportStatus.IN_PROGRESS]),
                    Report.assigned_to_id == viewer_id,
                )
            )

        query = self.db.query(Report)
        if conditions:
            query = query.filter(and_(*conditions))

        total = query.count()

        sort_expr = self._sort_expression(sort_by)
        ordering = sort_expr.asc() if sort_order == "asc" else sort_expr.desc()
        reports = (
            query.options(selectinload(Report.images), joinedload(Report.reporter))
            .order_by(ordering, Report.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return reports, total

    @staticmethod
    def _sort_expression(sort_by: str):
        if sort_by == "severity":
            return case(
                *[(Report.severity == sev, rank) for sev, rank in SEVERITY_RANK.items()],
                else_=0,
            )
        if sort_by == "status":
            return case(
                *[(Report.status == st, rank) for st, rank in STATUS_RANK.items()],
                else_=0,
            )
        if sort_by == "updated_at":
            return Report.updated_at
        return Report.created_at

    def get_statistics(self) -> dict:
        """
        Count reports overall and per status.

        Returns:
            Dict with total and by_status (every status present, zero-filled)
        """
        rows = (
            self.db.query(Report.status, func.count(Report.id))
            .group_by(Report.status)
            .all()
        )
        by_status = {status.value: 0 for status in ReportStatus}
        for status, count in rows:
            by_status[ReportStatus(status).value] = count

        return {"total": sum(by_status.values()), "by_status": by_status}

    def get_daily_stats(
        self, days: int = 7, now: Optional[datetime] = None
    ) -> List[dict]:
        """
        Per-day created/resolved/pending counts for the last ``days`` days.

        A report counts as resolved when it is resolved, verified or closed;
        everything else counts as pending. Days without reports are omitted.
        """
        start = (now or utc_now()) - timedelta(days=days)
        resolved_case = case(
            (Report.status.in_(db_models.RESOLVED_STATUSES), 1), else_=0
        )
        day = func.date(Report.created_at)

        rows = (
            self.db.query(
                day.label("date"),
                func.count(Report.id).label("count"),
                func.sum(resolved_case).label("resolved"),
            )
            .filter(Report.created_at >= start)
            .group_by(day)
            .order_by(day)
            .all()
        )

        stats = []
        for row in rows:
            created = int(row.count)
            resolved = int(row.resolved or 0)
            day_value = row.date
            if isinstance(day_value, (date, datetime)):
                day_value = day_value.isoformat()[:10]
            stats.append(
                {
                    "date": str(day_value),
                    "count": created,
                    "resolved": resolved,
                    "pending": created - resolved,
                }
            )
        return stats
