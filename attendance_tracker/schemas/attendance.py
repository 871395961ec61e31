import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..services.time_rules import as_utc


class CamelModel(BaseModel):
    # Wire format is camelCase (workMode, checkInAt, ...); attributes stay snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class AttendanceConfigIn(CamelModel):
    work_start_hour: int
    work_end_hour: int
    office_lat: Optional[float] = None
    office_lng: Optional[float] = None
    radius_meters: Optional[int] = None
    use_geofence: bool = False
    enforce_geofence: bool = False
    require_proof_of_work: bool = False
    allow_wfh: bool = Field(default=True, alias="allowWFH")


class AttendanceConfigOut(AttendanceConfigIn):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CheckInRequest(CamelModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    ip_address: Optional[str] = None
    method: Optional[str] = None
    work_mode: Optional[str] = None


class CheckOutRequest(CamelModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    proof_of_work_url: Optional[str] = None
    proof_of_work_name: Optional[str] = None


class UserBrief(CamelModel):
    id: uuid.UUID
    full_name: Optional[str] = None
    email: Optional[str] = None


class AttendanceOut(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    check_in_at: datetime
    check_out_at: Optional[datetime] = None
    work_mode: str
    status: str
    method: str
    ip_address: Optional[str] = None
    latitude_in: Optional[float] = None
    longitude_in: Optional[float] = None
    latitude_out: Optional[float] = None
    longitude_out: Optional[float] = None
    proof_of_work_url: Optional[str] = None
    proof_of_work_name: Optional[str] = None
    notes: Optional[str] = None
    user: Optional[UserBrief] = None

    @field_validator("check_in_at", "check_out_at")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # SQLite hands back naive values; they are stored as UTC
        return as_utc(value) if value is not None else None


class CheckInResponse(CamelModel):
    attendance: AttendanceOut
    config: Optional[AttendanceConfigOut] = None
    distance_meters: Optional[int] = None
    validation_message: str = ""
    work_mode: str


class CheckOutResponse(CamelModel):
    attendance: AttendanceOut
    user: Optional[UserBrief] = None
    status: str
    distance_meters: Optional[int] = None
    validation_message: str = ""


class UploadProofResponse(CamelModel):
    success: bool = True
    file_url: str
    file_name: str
    attendance: AttendanceOut


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class SummaryItem(CamelModel):
    status: str
    work_mode: str
    count: int


class HistoryResponse(CamelModel):
    attendance_records: List[AttendanceOut]
    pagination: Pagination
    summary: List[SummaryItem]
    filters: Dict[str, Any]
