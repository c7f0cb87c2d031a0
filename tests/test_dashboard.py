from __future__ import annotations

import os

from models import ReportStatus


def _loaded(dashboard):
    assert dashboard.load_all() is True
    assert dashboard.error is None
    return dashboard


def test_load_all_populates_state(dashboard):
    _loaded(dashboard)

    assert [e.id for e in dashboard.employees] == ["e1", "e2", "e3"]
    # No employee selected: every definition is available.
    assert [c.id for c in dashboard.available_certifications] == ["c1", "c2", "c3"]
    assert dashboard.reports == ()
    assert dashboard.loading is False


def test_generate_with_empty_selection_sets_error_and_skips_network(dashboard, service):
    _loaded(dashboard)
    calls_before = len(service.calls)

    assert dashboard.generate_report() is None
    assert dashboard.error == "Please select at least one employee"
    assert dashboard.reports == ()
    assert len(service.calls) == calls_before


def test_generate_then_refresh_keeps_position(dashboard, service):
    _loaded(dashboard)
    dashboard.select_employee("e1")

    first = dashboard.generate_report("CERTIFICATION")
    second = dashboard.generate_report("CERTIFICATION")
    assert first.status == ReportStatus.QUEUED
    assert [r.id for r in dashboard.reports] == [second.id, first.id]

    service.set_status(first.id, "COMPLETED")
    refreshed = dashboard.refresh_report_status(first.id)

    assert refreshed.status == ReportStatus.COMPLETED
    assert [r.id for r in dashboard.reports] == [second.id, first.id]
    assert dashboard.reports[1].status == ReportStatus.COMPLETED


def test_generate_request_carries_certifications_and_dates(dashboard, service):
    _loaded(dashboard)
    dashboard.select_employee("e1")
    assert dashboard.select_certification("c2") is True
    assert dashboard.set_date_range("2026-01-01", "2026-03-31") is True

    assert dashboard.generate_report() is not None
    assert service.bodies[-1] == {
        "employeeIds": ["e1"],
        "reportType": "CERTIFICATION",
        "certificationIds": ["c2"],
        "startDate": "2026-01-01",
        "endDate": "2026-03-31",
    }


def test_employee_selection_prunes_ineligible_certifications(dashboard):
    _loaded(dashboard)
    dashboard.select_employee("e1")
    assert [c.id for c in dashboard.available_certifications] == ["c1", "c2"]
    dashboard.select_certification("c1")
    dashboard.select_certification("c2")

    dashboard.select_employee("e2")
    dashboard.deselect_employee("e1")

    assert [c.id for c in dashboard.available_certifications] == ["c2"]
    assert dashboard.selection.certifications.ids() == ("c2",)
    assert dashboard.error is None


def test_no_employees_selected_drops_certification_selection(dashboard):
    _loaded(dashboard)
    dashboard.select_employee("e1")
    dashboard.select_certification("c1")

    dashboard.clear_employee_selection()

    assert dashboard.selection.certifications.ids() == ()
    assert [c.id for c in dashboard.available_certifications] == ["c1", "c2", "c3"]

    dashboard.select_employee("e2")
    dashboard.select_certification("c2")
    dashboard.deselect_employee("e2")
    assert dashboard.selection.certifications.ids() == ()


def test_selecting_unavailable_certification_is_refused(dashboard):
    _loaded(dashboard)
    dashboard.select_employee("e3")

    assert dashboard.select_certification("c1") is False
    assert "not available" in dashboard.error
    assert len(dashboard.selection.certifications) == 0


def test_stale_eligibility_response_is_discarded(dashboard, client):
    _loaded(dashboard)
    real = client.available_certifications_for_employees

    def slow_lookup(employee_ids):
        result = real(employee_ids)
        if list(employee_ids) == ["e1"]:
            # Selection changes while this response is still on the wire.
            dashboard.selection.employees.select("e3")
            dashboard._employee_selection_changed()
        return result

    client.available_certifications_for_employees = slow_lookup
    dashboard.select_employee("e1")

    # The e1-only answer arrived late and must not win.
    assert sorted(c.id for c in dashboard.available_certifications) == ["c1", "c2", "c3"]


def test_select_all_then_clear_is_empty(dashboard):
    _loaded(dashboard)
    dashboard.select_employee("e2")

    dashboard.select_all_employees()
    assert dashboard.selection.employees.ids() == ("e1", "e2", "e3")

    dashboard.clear_employee_selection()
    assert dashboard.selection.employees.ids() == ()
    assert dashboard.can_generate is False


def test_select_all_uses_filtered_view(dashboard):
    _loaded(dashboard)
    dashboard.set_employee_department("Engineering")

    dashboard.select_all_employees()
    assert dashboard.selection.employees.ids() == ("e1", "e2")


def test_changing_filter_resets_page(dashboard, service):
    service.employees = [
        {"id": f"x{i}", "firstName": f"Name{i}", "lastName": "Smith", "email": f"x{i}@example.com",
         "department": "Ops" if i % 2 else "Sales", "position": "Clerk"}
        for i in range(75)
    ]
    _loaded(dashboard)

    assert dashboard.go_to_employee_page(3) == 3
    assert len(dashboard.employee_page().page_items) == 15

    dashboard.set_employee_search("name1")
    assert dashboard.employee_pages.page == 1

    dashboard.go_to_employee_page(2)
    dashboard.set_employee_department("Ops")
    assert dashboard.employee_pages.page == 1


def test_page_size_must_be_an_offered_option(dashboard):
    _loaded(dashboard)

    assert dashboard.set_employee_page_size(42) is False
    assert "page size" in dashboard.error.lower()
    assert dashboard.set_employee_page_size(50) is True
    assert dashboard.employee_pages.page_size == 50


def test_delete_and_error_slot(dashboard, service):
    _loaded(dashboard)
    dashboard.select_employee("e1")
    a = dashboard.generate_report()
    b = dashboard.generate_report()

    assert dashboard.delete_report(a.id) is True
    assert [r.id for r in dashboard.reports] == [b.id]

    assert dashboard.delete_report("ghost") is False
    assert "404" in dashboard.error


def test_new_error_replaces_previous(dashboard, service):
    _loaded(dashboard)
    dashboard.generate_report()
    assert dashboard.error == "Please select at least one employee"

    service.fail_next("GET", "/api/reports/r-x", 500, {"error": "boom"})
    dashboard.refresh_report_status("r-x")
    assert dashboard.error == "boom"

    dashboard.clear_error()
    assert dashboard.error is None


def test_download_writes_pdf(dashboard, service, cfg):
    _loaded(dashboard)
    dashboard.select_employee("e1")
    report = dashboard.generate_report()
    service.set_status(report.id, "COMPLETED")

    path = dashboard.download_report(report.id)

    assert path == os.path.join(cfg.DOWNLOAD_DIR, f"report-{report.id}.pdf")
    with open(path, "rb") as f:
        assert f.read() == b"%PDF-1.4 fake"


def test_download_failure_sets_error_and_refreshes(dashboard, service):
    _loaded(dashboard)
    dashboard.select_employee("e1")
    report = dashboard.generate_report()
    service.set_status(report.id, "COMPLETED")
    service.missing_files.add(report.id)

    assert dashboard.download_report(report.id) is None
    assert dashboard.error == "Report file not found"
    assert dashboard.reports[0].status == ReportStatus.FAILED


def test_regenerate_malformed_leaves_reports(dashboard, service):
    row = service.add_report(status="FAILED", parameters="no ids here")
    _loaded(dashboard)

    assert dashboard.regenerate_report(row["id"]) is None
    assert "employee IDs" in dashboard.error
    assert [r.id for r in dashboard.reports] == [row["id"]]


def test_cleanup_reports_count_even_when_reports_vanish(dashboard, service):
    s1 = service.add_report(status="QUEUED")
    s2 = service.add_report(status="IN_PROGRESS")
    service.stuck.update({s1["id"], s2["id"]})
    _loaded(dashboard)

    assert dashboard.cleanup_stuck_reports() == 2
    assert dashboard.reports == ()
    assert dashboard.error is None


def test_refresh_pending_and_stats(dashboard, service):
    _loaded(dashboard)
    dashboard.select_employee("e1")
    report = dashboard.generate_report()
    service.set_status(report.id, "IN_PROGRESS")

    assert dashboard.refresh_pending_reports() == 1
    assert dashboard.reports[0].status == ReportStatus.IN_PROGRESS

    stats = dashboard.load_cleanup_stats()
    assert stats.in_progress_reports == 1


def test_date_range_validation_and_preset(dashboard):
    assert dashboard.set_date_range("2026-03-01", "2026-01-01") is False
    assert dashboard.date_range == (None, None)

    assert dashboard.set_date_range_preset(30) is True
    start, end = dashboard.date_range
    assert start < end

    dashboard.clear_date_range()
    assert dashboard.date_range == (None, None)


def test_snapshot_shape(dashboard):
    _loaded(dashboard)
    dashboard.select_employee("e1")

    snap = dashboard.snapshot()

    assert snap["employees"]["totalItems"] == 3
    assert snap["selection"]["employeeIds"] == ["e1"]
    assert snap["certifications"]["total"] == 2
    assert snap["canGenerate"] is True
    assert snap["reports"]["items"] == []
    assert snap["dateRange"] == {"startDate": None, "endDate": None, "days": None}
    # Catalogue miss + hit on load, then one miss for the e1 lookup.
    assert snap["cacheStats"]["entries"] == 2
    assert snap["cacheStats"]["hits"] == 1
    assert snap["cacheStats"]["misses"] == 2
    assert snap["loading"] is False
    assert snap["error"] is None


def test_load_failure_sets_error(dashboard, service):
    service.fail_next("GET", "/api/employees", 503, "try later")

    assert dashboard.load_employees() is False
    assert dashboard.error == "try later"
    assert dashboard.loading is False


def _report_history(service, count):
    for _ in range(count):
        service.add_report(
            status="COMPLETED",
            parameters="ReportRequestDto{reportType='employee_demographics', employeeIds=[e1, e2]}",
        )


def test_delete_resets_report_page(dashboard, service):
    _report_history(service, 35)
    _loaded(dashboard)
    assert dashboard.go_to_report_page(2) == 2

    assert dashboard.delete_report(dashboard.reports[0].id) is True

    assert dashboard.report_pages.page == 1
    assert dashboard.report_page().total_items == 34


def test_regenerate_resets_report_page(dashboard, service):
    _report_history(service, 35)
    _loaded(dashboard)
    original = dashboard.reports[5]
    assert dashboard.go_to_report_page(2) == 2

    fresh = dashboard.regenerate_report(original.id)

    assert fresh is not None
    assert dashboard.report_pages.page == 1
    assert dashboard.reports[0].id == fresh.id
    assert dashboard.store.get(original.id) is None


def test_download_rejects_path_like_report_ids(dashboard, service, tmp_path):
    _loaded(dashboard)
    calls_before = len(service.calls)

    for bad in ("../escape", "a/b", "..\\escape", ".."):
        assert dashboard.download_report(bad, dest_dir=str(tmp_path)) is None
        assert "Invalid reportId" in dashboard.error

    assert len(service.calls) == calls_before
    assert list(tmp_path.iterdir()) == []


def test_date_range_reports_inclusive_day_count(dashboard):
    assert dashboard.set_date_range("2026-01-01", "2026-01-31") is True
    assert dashboard.snapshot()["dateRange"]["days"] == 31

    assert dashboard.set_date_range_preset(0) is False
    assert "at least one day" in dashboard.error
    assert dashboard.date_range == ("2026-01-01", "2026-01-31")
