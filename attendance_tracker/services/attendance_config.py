"""
Attendance configuration service.
Single configuration row keyed by ATTENDANCE_CONFIG_ID; created on first admin save.
"""
from typing import NamedTuple, Optional

import structlog
from sqlalchemy.orm import Session

from ..config import settings
from ..models.models import AttendanceConfig, ATTENDANCE_CONFIG_ID
from ..schemas.attendance import AttendanceConfigIn
from .errors import ValidationError

logger = structlog.get_logger(__name__)


class WorkingHours(NamedTuple):
    start_hour: int
    end_hour: int


class ConfigStore:
    """get()/put() over the singleton configuration row."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self) -> Optional[AttendanceConfig]:
        return self.db.get(AttendanceConfig, ATTENDANCE_CONFIG_ID)

    def put(self, data: AttendanceConfigIn) -> AttendanceConfig:
        cfg = self.get()
        if cfg is None:
            cfg = AttendanceConfig(id=ATTENDANCE_CONFIG_ID)
            self.db.add(cfg)
        cfg.work_start_hour = data.work_start_hour
        cfg.work_end_hour = data.work_end_hour
        cfg.office_lat = data.office_lat
        cfg.office_lng = data.office_lng
        cfg.radius_meters = data.radius_meters
        cfg.use_geofence = data.use_geofence
        cfg.enforce_geofence = data.enforce_geofence
        cfg.require_proof_of_work = data.require_proof_of_work
        cfg.allow_wfh = data.allow_wfh
        self.db.commit()
        self.db.refresh(cfg)
        return cfg


def validate_config(data: AttendanceConfigIn) -> None:
    """Raise ValidationError on the first rule the input breaks."""
    hours = (data.work_start_hour, data.work_end_hour)
    if any(h < 0 or h > 23 for h in hours):
        raise ValidationError("Jam kerja harus antara 0-23")
    if data.work_start_hour >= data.work_end_hour:
        raise ValidationError("Jam mulai harus lebih awal dari jam selesai")
    if data.use_geofence and (
        data.office_lat is None
        or data.office_lng is None
        or data.radius_meters is None
        or data.radius_meters <= 0
    ):
        raise ValidationError("Koordinat kantor dan radius diperlukan jika geofencing diaktifkan")
    if data.office_lat is not None and not -90 <= data.office_lat <= 90:
        raise ValidationError("Latitude harus antara -90 dan 90")
    if data.office_lng is not None and not -180 <= data.office_lng <= 180:
        raise ValidationError("Longitude harus antara -180 dan 180")


def get_config(db: Session) -> Optional[AttendanceConfig]:
    return ConfigStore(db).get()


def save_config(db: Session, data: AttendanceConfigIn, actor_id: Optional[str] = None) -> AttendanceConfig:
    validate_config(data)
    cfg = ConfigStore(db).put(data)
    logger.info(
        "attendance_config_saved",
        actor_id=actor_id,
        work_start_hour=cfg.work_start_hour,
        work_end_hour=cfg.work_end_hour,
        use_geofence=cfg.use_geofence,
        enforce_geofence=cfg.enforce_geofence,
    )
    return cfg


def working_hours(cfg: Optional[AttendanceConfig]) -> WorkingHours:
    """Configured hours, or WORK_START_HOUR/WORK_END_HOUR when nothing is saved yet."""
    if cfg is None:
        return WorkingHours(settings.work_start_hour, settings.work_end_hour)
    return WorkingHours(cfg.work_start_hour, cfg.work_end_hour)


def geofence_enabled(cfg: Optional[AttendanceConfig]) -> bool:
    return bool(
        cfg is not None
        and cfg.use_geofence
        and cfg.office_lat is not None
        and cfg.office_lng is not None
        and cfg.radius_meters
    )
