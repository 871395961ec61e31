"""
Attendance lifecycle: check-in opens a record, check-out closes it.
A user holds at most one open record (check_out_at IS NULL); the partial
unique index on attendance.user_id backs the pre-check against races.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.models import Attendance, User
from ..storage.provider import StorageProvider
from .attendance_config import geofence_enabled, get_config, working_hours
from .errors import ConflictError, ValidationError
from .geofence import WFH, WFO, WORK_MODES, rounded_distance, validate_work_mode
from .proof_files import proof_key, validate_image
from .realtime import EVENT_CHECK_IN, EVENT_CHECK_OUT, Notifier
from .time_rules import as_utc, classify_time, start_of_local_day, utc_to_local

logger = structlog.get_logger(__name__)

DEFAULT_USER_NAME = "Karyawan"


def find_open_attendance(db: Session, user_id) -> Optional[Attendance]:
    return (
        db.query(Attendance)
        .filter(Attendance.user_id == user_id, Attendance.check_out_at.is_(None))
        .first()
    )


def _notify(notifier: Optional[Notifier], event: str, payload: dict) -> None:
    # Notification failures never fail the attendance operation
    if notifier is None:
        return
    try:
        notifier.publish(event, payload)
    except Exception as e:
        logger.warning("notify_failed", event=event, error=str(e))


def _event_payload(user: User, attendance: Attendance, status: str, distance: Optional[int], now: datetime) -> dict:
    return {
        "userId": str(user.id),
        "attendanceId": str(attendance.id),
        "status": status,
        "workMode": attendance.work_mode,
        "distanceMeters": distance,
        "userName": user.full_name or DEFAULT_USER_NAME,
        "timestamp": now.isoformat(),
    }


def check_in(
    db: Session,
    user: User,
    work_mode: Optional[str],
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    ip_address: Optional[str] = None,
    method: Optional[str] = None,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
) -> dict:
    now = as_utc(now) if now else datetime.now(timezone.utc)

    if work_mode not in WORK_MODES:
        raise ValidationError("Mode kerja harus WFO atau WFH")

    cfg = get_config(db)
    if work_mode == WFH and cfg is not None and not cfg.allow_wfh:
        raise ValidationError("Mode WFH tidak diizinkan")

    hours = working_hours(cfg)
    status = classify_time(utc_to_local(now), hours.start_hour, hours.end_hour).status

    distance: Optional[int] = None
    validation_message = ""
    if geofence_enabled(cfg):
        if latitude is None or longitude is None:
            if cfg.enforce_geofence:
                logger.info("check_in_rejected", user_id=str(user.id), reason="gps_required")
                raise ValidationError("GPS diperlukan untuk validasi lokasi")
        else:
            distance = rounded_distance(latitude, longitude, cfg.office_lat, cfg.office_lng)
            result = validate_work_mode(
                work_mode,
                latitude,
                longitude,
                cfg.office_lat,
                cfg.office_lng,
                cfg.radius_meters,
                bool(cfg.enforce_geofence),
            )
            if not result.valid:
                logger.info("check_in_rejected", user_id=str(user.id), reason="outside_geofence", distance_m=distance)
                raise ValidationError(result.message, extra={"distanceMeters": distance})
            validation_message = result.message

    if find_open_attendance(db, user.id) is not None:
        raise ConflictError("Anda sudah melakukan check-in hari ini")

    attendance = Attendance(
        user_id=user.id,
        check_in_at=now,
        work_mode=work_mode,
        method="GPS" if method == "GPS" else "IP",
        ip_address=ip_address or None,
        latitude_in=latitude,
        longitude_in=longitude,
        status=status,
        notes=f"distance={distance}m, {validation_message}" if distance is not None else validation_message,
    )
    db.add(attendance)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("check_in_rejected", user_id=str(user.id), reason="open_record_race")
        raise ConflictError("Anda sudah melakukan check-in hari ini")
    db.refresh(attendance)

    logger.info(
        "check_in_recorded",
        user_id=str(user.id),
        attendance_id=str(attendance.id),
        work_mode=work_mode,
        status=status,
        distance_m=distance,
    )
    _notify(notifier, EVENT_CHECK_IN, _event_payload(user, attendance, status, distance, now))

    return {
        "attendance": attendance,
        "config": cfg,
        "distance_meters": distance,
        "validation_message": validation_message,
        "work_mode": work_mode,
    }


def check_out(
    db: Session,
    user: User,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    proof_of_work_url: Optional[str] = None,
    proof_of_work_name: Optional[str] = None,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
) -> dict:
    now = as_utc(now) if now else datetime.now(timezone.utc)

    last = (
        db.query(Attendance)
        .filter(Attendance.user_id == user.id, Attendance.check_in_at >= start_of_local_day(now))
        .order_by(Attendance.check_in_at.desc())
        .first()
    )
    if last is None or last.check_out_at is not None:
        raise ConflictError("Tidak ada check-in hari ini atau sudah check-out")

    cfg = get_config(db)
    hours = working_hours(cfg)
    # Check-out has no lower bound
    status = classify_time(utc_to_local(now), 0, hours.end_hour).status

    has_proof = bool(proof_of_work_url and proof_of_work_name)
    if last.work_mode == WFH and cfg is not None and cfg.require_proof_of_work and not has_proof:
        raise ValidationError("Bukti kerja (screenshot) diperlukan untuk mode WFH")

    distance: Optional[int] = None
    validation_message = ""
    if geofence_enabled(cfg) and latitude is not None and longitude is not None:
        distance = rounded_distance(latitude, longitude, cfg.office_lat, cfg.office_lng)
        if last.work_mode == WFO and cfg.enforce_geofence:
            result = validate_work_mode(
                WFO,
                latitude,
                longitude,
                cfg.office_lat,
                cfg.office_lng,
                cfg.radius_meters,
                True,
            )
            if not result.valid:
                logger.info("check_out_rejected", user_id=str(user.id), reason="outside_geofence", distance_m=distance)
                raise ValidationError(result.message, extra={"distanceMeters": distance})
        validation_message = f"Check-out: {distance}m dari kantor"

    last.check_out_at = now
    last.status = status
    last.latitude_out = latitude
    last.longitude_out = longitude
    if has_proof:
        last.proof_of_work_url = proof_of_work_url
        last.proof_of_work_name = proof_of_work_name
    last.notes = f"{last.notes}; {validation_message}" if last.notes else validation_message
    db.commit()
    db.refresh(last)

    logger.info(
        "check_out_recorded",
        user_id=str(user.id),
        attendance_id=str(last.id),
        status=status,
        distance_m=distance,
    )
    _notify(notifier, EVENT_CHECK_OUT, _event_payload(user, last, status, distance, now))

    return {
        "attendance": last,
        "user": user,
        "status": status,
        "distance_meters": distance,
        "validation_message": validation_message,
    }


def upload_proof(
    db: Session,
    user: User,
    attendance_id: str,
    content: bytes,
    filename: str,
    content_type: Optional[str],
    storage: StorageProvider,
    now: Optional[datetime] = None,
) -> dict:
    """
    Store a WFH proof image for the caller's open record.
    A previous proof object is removed once the new reference is committed.
    """
    if not attendance_id:
        raise ValidationError("ID kehadiran diperlukan")
    try:
        record_id = uuid.UUID(str(attendance_id))
    except ValueError:
        raise ValidationError("Record kehadiran WFH tidak ditemukan")

    attendance = (
        db.query(Attendance)
        .filter(
            Attendance.id == record_id,
            Attendance.user_id == user.id,
            Attendance.work_mode == WFH,
            Attendance.check_out_at.is_(None),
        )
        .first()
    )
    if attendance is None:
        raise ValidationError("Record kehadiran WFH tidak ditemukan")

    check = validate_image(content_type, len(content))
    if not check.valid:
        raise ValidationError(check.message)

    key = proof_key(str(attendance.id), filename, now)
    storage.copy_in(content, key)
    file_url = storage.public_url(key)

    previous_key = attendance.proof_of_work_key
    attendance.proof_of_work_url = file_url
    attendance.proof_of_work_name = filename
    attendance.proof_of_work_key = key
    db.commit()
    db.refresh(attendance)

    if previous_key and previous_key != key:
        storage.delete(previous_key)

    logger.info("proof_uploaded", user_id=str(user.id), attendance_id=str(attendance.id), key=key, size=len(content))
    return {
        "success": True,
        "file_url": file_url,
        "file_name": filename,
        "attendance": attendance,
    }
