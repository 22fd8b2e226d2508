"""Tests for ReportRepository."""

from datetime import datetime, timedelta, timezone

import repositories.db_models as db_models
from repositories.report_repository import ReportFilters, ReportRepository

LAT = 19.0760
LNG = 72.8777
# One degree of latitude is about 111.2 km
METERS_PER_DEGREE_LAT = 111_195


def _north(meters: float) -> float:
    return LAT + meters / METERS_PER_DEGREE_LAT


Status = db_models.ReportStatus


class TestFindNear:
    """Test cases for radius queries."""

    def test_nearest_first_with_distances(self, db_session, create_report):
        far = create_report(lat=_north(300))
        near = create_report(lat=_north(100))

        matches = ReportRepository(db_session).find_near(LAT, LNG, 500, limit=10)

        assert [r.id for r, _ in matches] == [near.id, far.id]
        assert 95 < matches[0][1] < 105
        assert 295 < matches[1][1] < 305

    def test_outside_radius_excluded(self, db_session, create_report):
        create_report(lat=_north(600))
        assert ReportRepository(db_session).find_near(LAT, LNG, 500, limit=10) == []

    def test_limit(self, db_session, create_report):
        for meters in (10, 20, 30):
            create_report(lat=_north(meters))
        matches = ReportRepository(db_session).find_near(LAT, LNG, 500, limit=2)
        assert len(matches) == 2

    def test_exclusions(self, db_session, create_report):
        own = create_report(lat=_north(10))
        create_report(lat=_north(20), status=Status.CLOSED)
        kept = create_report(lat=_north(30))

        matches = ReportRepository(db_session).find_near(
            LAT,
            LNG,
            500,
            limit=10,
            exclude_id=own.id,
            exclude_statuses=[Status.CLOSED, Status.REJECTED],
        )
        assert [r.id for r, _ in matches] == [kept.id]


class TestListReports:
    """Test cases for role-scoped listing."""

    def _list(self, db_session, user, filters=None, **kwargs):
        return ReportRepository(db_session).list_reports(
            filters or ReportFilters(), user.id, user.role, **kwargs
        )

    def test_citizen_sees_only_own(self, db_session, create_report, test_user, other_user):
        mine = create_report()
        create_report(reporter=other_user)

        reports, total = self._list(db_session, test_user)
        assert total == 1
        assert reports[0].id == mine.id

    def test_worker_sees_active_work_and_own_assignments(
        self, db_session, create_report, worker_user
    ):
        create_report(status=Status.PENDING)
        assigned = create_report(status=Status.ASSIGNED)
        in_progress = create_report(status=Status.IN_PROGRESS)
        own_resolved = create_report(
            status=Status.RESOLVED, assigned_to_id=worker_user.id
        )

        reports, total = self._list(db_session, worker_user)
        assert total == 3
        assert {r.id for r in reports} == {assigned.id, in_progress.id, own_resolved.id}

    def test_worker_scope_combines_with_filters(
        self, db_session, create_report, worker_user
    ):
        create_report(status=Status.ASSIGNED, city="Pune")
        mumbai = create_report(status=Status.ASSIGNED, city="Mumbai")

        reports, total = self._list(
            db_session, worker_user, ReportFilters(city="mumbai")
        )
        assert total == 1
        assert reports[0].id == mumbai.id

    def test_admin_sees_everything(
        self, db_session, create_report, other_user, admin_user
    ):
        create_report()
        create_report(reporter=other_user, status=Status.REJECTED)

        _, total = self._list(db_session, admin_user)
        assert total == 2

    def test_filters(self, db_session, create_report, admin_user):
        create_report(severity=db_models.Severity.HIGH)
        flicker = create_report(
            light_condition=db_models.LightCondition.FLICKERING,
            severity=db_models.Severity.HIGH,
        )

        reports, total = self._list(
            db_session,
            admin_user,
            ReportFilters(
                severity=db_models.Severity.HIGH,
                light_condition=db_models.LightCondition.FLICKERING,
            ),
        )
        assert total == 1
        assert reports[0].id == flicker.id

    def test_search_matches_title_or_description(
        self, db_session, create_report, admin_user
    ):
        by_title = create_report(title="Pole leaning near school")
        by_description = create_report(description="Wires hanging from the POLE")
        create_report(title="Lamp off", description="Dark street")

        reports, total = self._list(db_session, admin_user, ReportFilters(search="pole"))
        assert total == 2
        assert {r.id for r in reports} == {by_title.id, by_description.id}

    def test_sort_by_severity(self, db_session, create_report, admin_user):
        low = create_report(severity=db_models.Severity.LOW)
        critical = create_report(severity=db_models.Severity.CRITICAL)
        medium = create_report(severity=db_models.Severity.MEDIUM)

        reports, _ = self._list(
            db_session, admin_user, sort_by="severity", sort_order="desc"
        )
        assert [r.id for r in reports] == [critical.id, medium.id, low.id]

        reports, _ = self._list(
            db_session, admin_user, sort_by="severity", sort_order="asc"
        )
        assert [r.id for r in reports] == [low.id, medium.id, critical.id]

    def test_pagination_reports_full_total(self, db_session, create_report, admin_user):
        for _ in range(5):
            create_report()

        reports, total = self._list(db_session, admin_user, skip=4, limit=2)
        assert total == 5
        assert len(reports) == 1


class TestStatistics:
    """Test cases for aggregate counts."""

    def test_counts_per_status(self, db_session, create_report):
        create_report()
        create_report()
        create_report(status=Status.RESOLVED)

        stats = ReportRepository(db_session).get_statistics()

        assert stats["total"] == 3
        assert stats["by_status"]["pending"] == 2
        assert stats["by_status"]["resolved"] == 1
        assert stats["by_status"]["closed"] == 0
        assert set(stats["by_status"]) == {s.value for s in Status}

    def test_daily_stats(self, db_session, create_report):
        now = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
        create_report(created_at=now - timedelta(days=1))
        create_report(created_at=now - timedelta(days=1), status=Status.CLOSED)
        create_report(created_at=now - timedelta(days=3), status=Status.RESOLVED)
        create_report(created_at=now - timedelta(days=30))

        stats = ReportRepository(db_session).get_daily_stats(days=7, now=now)

        assert stats == [
            {"date": "2026-03-07", "count": 1, "resolved": 1, "pending": 0},
            {"date": "2026-03-09", "count": 2, "resolved": 1, "pending": 1},
        ]
