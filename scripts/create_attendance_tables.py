"""
Create attendance tables in the database.

Usage:
  python scripts/create_attendance_tables.py

Safe to run multiple times - existing tables are left untouched, and the
attendance indexes (including the one-open-record-per-user index) are added
to an existing attendance table when missing.
"""

from attendance_tracker.db import Base, engine
from attendance_tracker.models.models import (
    Role,
    User,
    user_roles,
    AttendanceConfig,
    Attendance,
)


def create_attendance_tables():
    """Create users/roles plus the attendance tables"""
    print("Creating attendance tables...")

    tables = [
        Role.__table__,
        User.__table__,
        user_roles,
        AttendanceConfig.__table__,
        Attendance.__table__,
    ]
    Base.metadata.create_all(bind=engine, tables=tables)

    for index in Attendance.__table__.indexes:
        index.create(bind=engine, checkfirst=True)

    print("Attendance tables created successfully!")
    print("\nTables:")
    for table in tables:
        print(f"  - {table.name}")


if __name__ == "__main__":
    create_attendance_tables()
