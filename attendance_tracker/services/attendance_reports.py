"""
Attendance history queries and CSV export.
"""
import csv
import io
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session, joinedload

from ..models.models import Attendance, User
from .errors import ForbiddenError, ValidationError
from .geofence import WORK_MODES
from .time_rules import STATUSES, as_utc, end_of_local_day, local_to_utc, utc_to_local

CSV_HEADERS = [
    "Tanggal",
    "Nama Karyawan",
    "Email",
    "NIK",
    "Mode Kerja",
    "Check In",
    "Check Out",
    "Status",
    "Lokasi Check In",
    "Lokasi Check Out",
    "Bukti Kerja",
    "Catatan",
]


@dataclass
class HistoryFilters:
    user_id: Optional[uuid.UUID] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    work_mode: Optional[str] = None
    status: Optional[str] = None


def parse_bound(raw: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse an ISO date or datetime query value into a UTC instant.
    Date-only values are local days; as an upper bound they cover the whole day.
    """
    if not raw:
        return None
    text = raw.strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Format tanggal tidak valid: {raw}")
    parsed = local_to_utc(parsed) if parsed.tzinfo is None else as_utc(parsed)
    if len(text) == 10 and end_of_day:
        return end_of_local_day(parsed)
    return parsed


def parse_user_id(raw: Optional[str]) -> Optional[uuid.UUID]:
    if not raw:
        return None
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise ValidationError("ID karyawan tidak valid")


def build_filters(
    user_id: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    work_mode: Optional[str],
    status: Optional[str],
) -> HistoryFilters:
    # Unknown mode/status values are ignored rather than rejected
    return HistoryFilters(
        user_id=parse_user_id(user_id),
        start=parse_bound(start_date),
        end=parse_bound(end_date, end_of_day=True),
        work_mode=work_mode if work_mode in WORK_MODES else None,
        status=status if status in STATUSES else None,
    )


def _apply_filters(q: Query, filters: HistoryFilters) -> Query:
    if filters.user_id is not None:
        q = q.filter(Attendance.user_id == filters.user_id)
    if filters.start is not None:
        q = q.filter(Attendance.check_in_at >= filters.start)
    if filters.end is not None:
        q = q.filter(Attendance.check_in_at <= filters.end)
    if filters.work_mode:
        q = q.filter(Attendance.work_mode == filters.work_mode)
    if filters.status:
        q = q.filter(Attendance.status == filters.status)
    return q


def ensure_can_view(requester: User, target_user_id: uuid.UUID, admin: bool) -> None:
    if not admin and target_user_id != requester.id:
        raise ForbiddenError("Forbidden")


def list_history(db: Session, filters: HistoryFilters, page: int = 1, limit: int = 20) -> dict:
    base = _apply_filters(db.query(Attendance), filters)
    total = base.count()
    records = (
        base.options(joinedload(Attendance.user))
        .order_by(Attendance.check_in_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    summary_rows = (
        _apply_filters(
            db.query(Attendance.status, Attendance.work_mode, func.count(Attendance.id)),
            filters,
        )
        .group_by(Attendance.status, Attendance.work_mode)
        .all()
    )
    summary = [
        {"status": status, "work_mode": work_mode, "count": count}
        for status, work_mode, count in summary_rows
    ]

    return {
        "attendance_records": records,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
        },
        "summary": summary,
    }


def _format_date(value: Optional[datetime]) -> str:
    return utc_to_local(value).strftime("%d/%m/%Y") if value else ""


def _format_datetime(value: Optional[datetime]) -> str:
    return utc_to_local(value).strftime("%d/%m/%Y, %H.%M.%S") if value else ""


def _format_location(lat: Optional[float], lng: Optional[float]) -> str:
    if lat is None or lng is None:
        return ""
    return f"{lat}, {lng}"


def _csv_row(record: Attendance) -> List[str]:
    user = record.user
    return [
        _format_date(record.check_in_at),
        (user.full_name if user else "") or "",
        (user.email if user else "") or "",
        (user.nik if user else "") or "",
        record.work_mode or "",
        _format_datetime(record.check_in_at),
        _format_datetime(record.check_out_at),
        record.status or "",
        _format_location(record.latitude_in, record.longitude_in),
        _format_location(record.latitude_out, record.longitude_out),
        "Ya" if record.proof_of_work_url else "Tidak",
        record.notes or "",
    ]


def render_csv(records: Iterable[Attendance]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow(_csv_row(record))
    return output.getvalue()


def export_csv(db: Session, filters: HistoryFilters) -> str:
    records = (
        _apply_filters(db.query(Attendance), filters)
        .options(joinedload(Attendance.user))
        .order_by(Attendance.check_in_at.desc())
        .all()
    )
    return render_csv(records)


def export_filename(now: Optional[datetime] = None) -> str:
    moment = utc_to_local(now or datetime.now(timezone.utc))
    return f"attendance_report_{moment.strftime('%Y-%m-%d')}.csv"
