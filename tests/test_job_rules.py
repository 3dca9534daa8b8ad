from datetime import date, timedelta

import pytest

from jobtracker.services.job_service import (
    JobValidationError,
    clean_job_fields,
    days_remaining,
    deadline_color,
    deadline_label,
    derive_status,
    normalize_tags,
    parse_date,
)

TODAY = date(2026, 3, 10)


def test_days_remaining():
    assert days_remaining(None, TODAY) is None
    assert days_remaining(TODAY, TODAY) == 0
    assert days_remaining(TODAY + timedelta(days=5), TODAY) == 5
    assert days_remaining(TODAY - timedelta(days=2), TODAY) == -2


@pytest.mark.parametrize("days, label", [
    (None, "—"),
    (0, "Today"),
    (1, "1d left"),
    (12, "12d left"),
    (-1, "1d overdue"),
    (-30, "30d overdue"),
])
def test_deadline_label(days, label):
    assert deadline_label(days) == label


def test_deadline_color_thresholds():
    assert deadline_color(None) == ""
    assert deadline_color(-1) == "text-status-red"
    assert deadline_color(0) == "text-status-yellow"
    assert deadline_color(3) == "text-status-yellow"
    assert deadline_color(4) == "text-status-green"


def test_submission_date_promotes_not_submitted():
    assert derive_status("not_submitted", TODAY, None, TODAY) == "submitted"
    assert derive_status(None, TODAY, None, TODAY) == "submitted"


def test_submission_date_does_not_demote_later_stages():
    assert derive_status("interview", TODAY, None, TODAY) == "interview"


def test_past_deadline_closes_unsubmitted_job():
    yesterday = TODAY - timedelta(days=1)
    assert derive_status("not_submitted", None, yesterday, TODAY) == "closed"


def test_deadline_today_is_still_open():
    assert derive_status("not_submitted", None, TODAY, TODAY) == "not_submitted"


def test_past_deadline_with_submission_is_submitted():
    yesterday = TODAY - timedelta(days=1)
    assert derive_status("not_submitted", yesterday, yesterday, TODAY) == "submitted"


def test_past_deadline_keeps_other_statuses():
    yesterday = TODAY - timedelta(days=1)
    for status in ("submitted", "interview", "offer", "rejected"):
        assert derive_status(status, None, yesterday, TODAY) == status


def test_normalize_tags():
    assert normalize_tags(" remote, python ,remote,, ") == ["remote", "python"]
    assert normalize_tags(["a", " b ", "a"]) == ["a", "b"]
    assert normalize_tags(None) == []
    with pytest.raises(JobValidationError):
        normalize_tags(5)
    with pytest.raises(JobValidationError):
        normalize_tags(["a", None])


def test_parse_date():
    assert parse_date("2026-01-31") == date(2026, 1, 31)
    assert parse_date("") is None
    with pytest.raises(JobValidationError):
        parse_date("31/01/2026")
    with pytest.raises(JobValidationError):
        parse_date(20260131)


def test_clean_job_fields_only_touches_present_keys():
    assert clean_job_fields({"notes": "  call back  "}) == {"notes": "call back"}


def test_clean_job_fields_rejects_blank_company_and_unknown_values():
    with pytest.raises(JobValidationError):
        clean_job_fields({"company": "   "})
    with pytest.raises(JobValidationError):
        clean_job_fields({"platform": "myspace"})
    with pytest.raises(JobValidationError):
        clean_job_fields({"status": "ghosted"})
