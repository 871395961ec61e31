from datetime import datetime, timezone

import pytest

from attendance_tracker.services.attendance_reports import parse_bound
from attendance_tracker.services.errors import ValidationError
from attendance_tracker.services.time_rules import (
    EARLY_LEAVE,
    ONTIME,
    as_utc,
    classify_time,
    end_of_local_day,
    start_of_local_day,
    utc_to_local,
)


@pytest.mark.parametrize(
    "hour,minute,expected",
    [
        (8, 59, (False, ONTIME)),
        (9, 0, (True, ONTIME)),
        (17, 0, (True, ONTIME)),
        (17, 1, (False, EARLY_LEAVE)),
    ],
)
def test_classify_time_window(hour, minute, expected):
    assert tuple(classify_time(datetime(2026, 10, 19, hour, minute), 9, 17)) == expected


def test_utc_to_local_jakarta():
    local = utc_to_local(datetime(2026, 10, 19, 1, 30, tzinfo=timezone.utc))
    assert (local.hour, local.minute) == (8, 30)
    # naive input is UTC
    assert utc_to_local(datetime(2026, 10, 19, 1, 30)).hour == 8


def test_local_day_bounds():
    moment = datetime(2026, 10, 19, 1, 30, tzinfo=timezone.utc)
    assert start_of_local_day(moment) == datetime(2026, 10, 18, 17, 0, tzinfo=timezone.utc)
    assert end_of_local_day(moment) == datetime(2026, 10, 19, 16, 59, 59, 999999, tzinfo=timezone.utc)


def test_as_utc_treats_naive_as_utc():
    assert as_utc(datetime(2026, 10, 19, 1, 30)) == datetime(2026, 10, 19, 1, 30, tzinfo=timezone.utc)


def test_parse_bound_date_only_end_covers_whole_local_day():
    assert parse_bound("2026-10-19") == datetime(2026, 10, 18, 17, 0, tzinfo=timezone.utc)
    assert parse_bound("2026-10-19", end_of_day=True) == datetime(
        2026, 10, 19, 16, 59, 59, 999999, tzinfo=timezone.utc
    )


def test_parse_bound_explicit_offset():
    assert parse_bound("2026-10-19T10:00:00Z") == datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)


def test_parse_bound_rejects_garbage():
    assert parse_bound(None) is None
    with pytest.raises(ValidationError):
        parse_bound("19-10-2026")


def test_worked_example_nine_to_five():
    assert tuple(classify_time(datetime(2026, 10, 19, 8, 30), 9, 17)) == (False, ONTIME)
    assert tuple(classify_time(datetime(2026, 10, 19, 9, 30), 9, 17)) == (True, ONTIME)
    assert classify_time(datetime(2026, 10, 19, 17, 30), 9, 17).status == EARLY_LEAVE
