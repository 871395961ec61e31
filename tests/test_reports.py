from datetime import datetime, timezone

import pytest

from attendance_tracker.models.models import Attendance, User
from attendance_tracker.services.attendance_reports import (
    CSV_HEADERS,
    build_filters,
    ensure_can_view,
    export_filename,
    render_csv,
)
from attendance_tracker.services.errors import ForbiddenError, ValidationError


def test_render_csv_formats_local_times_and_escapes():
    user = User(username="budi", email="budi@example.com", full_name="Budi Santoso", nik="3174", password_hash="x")
    record = Attendance(
        user=user,
        check_in_at=datetime(2026, 10, 19, 1, 30, tzinfo=timezone.utc),
        check_out_at=datetime(2026, 10, 19, 10, 5, 9, tzinfo=timezone.utc),
        work_mode="WFO",
        status="ONTIME",
        method="GPS",
        latitude_in=-6.2,
        longitude_in=106.8,
        notes='kata "kunci", koma',
    )

    lines = render_csv([record]).split("\n")
    assert lines[0] == ",".join(f'"{h}"' for h in CSV_HEADERS)
    assert lines[1] == (
        '"19/10/2026","Budi Santoso","budi@example.com","3174","WFO",'
        '"19/10/2026, 08.30.00","19/10/2026, 17.05.09","ONTIME",'
        '"-6.2, 106.8","","Tidak","kata ""kunci"", koma"'
    )
    assert lines[2] == ""


def test_build_filters_ignores_unknown_mode_and_status():
    filters = build_filters(None, None, None, "REMOTE", "LATEISH")
    assert filters.work_mode is None
    assert filters.status is None

    filters = build_filters(None, None, None, "WFH", "LATE")
    assert (filters.work_mode, filters.status) == ("WFH", "LATE")


def test_build_filters_rejects_bad_user_id():
    with pytest.raises(ValidationError):
        build_filters("42", None, None, None, None)


def test_ensure_can_view():
    user = User(username="budi", email="b@example.com", password_hash="x")
    other = User(username="siti", email="s@example.com", password_hash="x")
    user.id, other.id = "u-1", "u-2"

    ensure_can_view(user, user.id, admin=False)
    ensure_can_view(user, other.id, admin=True)
    with pytest.raises(ForbiddenError):
        ensure_can_view(user, other.id, admin=False)


def test_export_filename_uses_local_date():
    # 18:00 UTC is already the next day in Jakarta
    assert export_filename(datetime(2026, 10, 19, 18, 0, tzinfo=timezone.utc)) == "attendance_report_2026-10-20.csv"
