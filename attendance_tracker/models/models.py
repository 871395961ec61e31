import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Boolean,
    ForeignKey,
    Table,
    Integer,
    Float,
    Text,
    Index,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from ..db import Base


def uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)


# Association table for many-to-many User<->Role
user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Uuid(as_uuid=True), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    UniqueConstraint("user_id", "role_id", name="uq_user_role"),
)


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255))

    users = relationship("User", secondary=user_roles, back_populates="roles")


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = uuid_pk()
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(255))
    nik: Mapped[Optional[str]] = mapped_column(String(32))  # National ID (NIK KTP)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    roles = relationship("Role", secondary=user_roles, back_populates="users")


# Fixed key of the single attendance configuration row
ATTENDANCE_CONFIG_ID = "default"


class AttendanceConfig(Base):
    """Working hours and geofence policy (one row, id = ATTENDANCE_CONFIG_ID)"""
    __tablename__ = "attendance_config"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=ATTENDANCE_CONFIG_ID)
    work_start_hour: Mapped[int] = mapped_column(Integer, nullable=False, default=9)
    work_end_hour: Mapped[int] = mapped_column(Integer, nullable=False, default=17)
    office_lat: Mapped[Optional[float]] = mapped_column(Float)
    office_lng: Mapped[Optional[float]] = mapped_column(Float)
    radius_meters: Mapped[Optional[int]] = mapped_column(Integer)
    use_geofence: Mapped[bool] = mapped_column(Boolean, default=False)
    enforce_geofence: Mapped[bool] = mapped_column(Boolean, default=False)
    require_proof_of_work: Mapped[bool] = mapped_column(Boolean, default=False)
    allow_wfh: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)


class Attendance(Base):
    """One row per check-in; closed by check-out"""
    __tablename__ = "attendance"

    id: Mapped[uuid.UUID] = uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    check_in_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    check_out_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    work_mode: Mapped[str] = mapped_column(String(3), nullable=False)  # WFO|WFH
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # ONTIME|LATE|ABSENT|EARLY_LEAVE
    method: Mapped[str] = mapped_column(String(3), nullable=False, default="IP")  # GPS|IP
    ip_address: Mapped[Optional[str]] = mapped_column(String(64))
    latitude_in: Mapped[Optional[float]] = mapped_column(Float)
    longitude_in: Mapped[Optional[float]] = mapped_column(Float)
    latitude_out: Mapped[Optional[float]] = mapped_column(Float)
    longitude_out: Mapped[Optional[float]] = mapped_column(Float)
    proof_of_work_url: Mapped[Optional[str]] = mapped_column(String(500))
    proof_of_work_name: Mapped[Optional[str]] = mapped_column(String(255))
    proof_of_work_key: Mapped[Optional[str]] = mapped_column(String(500))  # storage key of the uploaded proof
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User")

    __table_args__ = (
        Index("idx_attendance_user_check_in", "user_id", "check_in_at"),
        Index("idx_attendance_status_mode", "status", "work_mode"),
        # At most one open record per user
        Index(
            "uq_attendance_open_per_user",
            "user_id",
            unique=True,
            sqlite_where=text("check_out_at IS NULL"),
            postgresql_where=text("check_out_at IS NULL"),
        ),
    )
