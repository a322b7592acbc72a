"""Tests for the list views: search, status filter, sort."""

from datetime import timedelta

from campus_care.models import ReportStatus
from campus_care.services.views import (
    SortOrder,
    ViewParams,
    apply_view,
    matches_search,
    matches_status,
    sort_reports,
)

from conftest import BASE_TIME


class TestSearch:
    def test_scenario_light_with_all_statuses(self, make_report):
        """Searching "light" with status "all" finds only the light report."""
        reports = [
            make_report(id="a", title="Broken light", description="Flickers", location="Block C"),
            make_report(id="b", title="Pothole", description="Deep hole", location="Gate"),
        ]

        result = apply_view(reports, ViewParams(search="light", status="all"))

        assert [r.title for r in result] == ["Broken light"]

    def test_search_is_case_insensitive_over_three_fields(self, make_report):
        report = make_report(title="Leak", description="Water everywhere", location="Library Basement")

        assert matches_search(report, "LEAK")
        assert matches_search(report, "everywhere")
        assert matches_search(report, "basement")
        assert not matches_search(report, "canteen")

    def test_empty_term_matches_everything(self, make_report):
        assert matches_search(make_report(), "")
        assert matches_search(make_report(), None)

    def test_search_does_not_look_at_reporter(self, make_report):
        assert not matches_search(make_report(reporter_name="Lightfoot"), "lightfoot")


class TestStatusFilter:
    def test_all_short_circuits(self, make_report):
        assert matches_status(make_report(status=ReportStatus.RESOLVED), "all")

    def test_filter_combines_with_search(self, report_set):
        result = apply_view(report_set, ViewParams(search="o", status="in-progress"))

        assert [r.id for r in result] == ["r2"]


class TestSort:
    def test_newest_and_oldest(self, report_set):
        assert [r.id for r in sort_reports(report_set, SortOrder.NEWEST)] == ["r3", "r2", "r1"]
        assert [r.id for r in sort_reports(report_set, SortOrder.OLDEST)] == ["r1", "r2", "r3"]

    def test_status_order_then_newest(self, make_report):
        reports = [
            make_report(id="resolved", status=ReportStatus.RESOLVED, created_at=BASE_TIME + timedelta(days=5)),
            make_report(id="old-submitted", status=ReportStatus.SUBMITTED, created_at=BASE_TIME),
            make_report(id="new-submitted", status=ReportStatus.SUBMITTED, created_at=BASE_TIME + timedelta(days=1)),
            make_report(id="working", status=ReportStatus.IN_PROGRESS, created_at=BASE_TIME),
        ]

        result = sort_reports(reports, SortOrder.STATUS)

        assert [r.id for r in result] == ["new-submitted", "old-submitted", "working", "resolved"]

    def test_equal_timestamps_sort_deterministically(self, make_report):
        reports = [make_report(id="b"), make_report(id="a"), make_report(id="c")]

        assert [r.id for r in sort_reports(reports, SortOrder.OLDEST)] == ["a", "b", "c"]
        assert [r.id for r in sort_reports(list(reversed(reports)), SortOrder.OLDEST)] == ["a", "b", "c"]


class TestApplyView:
    def test_idempotent(self, report_set):
        params = ViewParams(search="o", status="all", sort=SortOrder.OLDEST)

        once = apply_view(report_set, params)
        twice = apply_view(once, params)

        assert [r.id for r in once] == [r.id for r in twice]

    def test_returns_new_list(self, report_set):
        result = apply_view(report_set, ViewParams())

        assert result is not report_set
        assert [r.id for r in report_set] == ["r1", "r2", "r3"]
