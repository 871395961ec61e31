"""
Seed the local database with an admin and two sample employees.

Usage:
  python scripts/seed_users.py

This script is idempotent: running it multiple times will upsert the same
records based on unique fields (role name, username/email for users).
"""

from datetime import datetime, timezone

from attendance_tracker.db import SessionLocal, Base, engine
from attendance_tracker.models.models import User, Role
from attendance_tracker.auth.security import ADMIN_ROLE, EMPLOYEE_ROLE, get_password_hash


def ensure_role(session, name: str, description: str = "") -> Role:
    role = session.query(Role).filter(Role.name == name).first()
    if role:
        if description and role.description != description:
            role.description = description
            session.add(role)
        return role
    role = Role(name=name, description=description or name.title())
    session.add(role)
    session.flush()
    return role


def ensure_user(session, username: str, email: str, password: str, roles: list, full_name: str = "", nik: str = "") -> User:
    user = session.query(User).filter((User.username == username) | (User.email == email)).first()
    if user is None:
        user = User(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            is_active=True,
            created_at=datetime.now(timezone.utc),
        )
        session.add(user)
    else:
        user.username = username
        user.email = email
        # Keep an existing password
        if not user.password_hash:
            user.password_hash = get_password_hash(password)
    user.full_name = full_name or user.full_name
    user.nik = nik or user.nik
    user.roles = session.query(Role).filter(Role.name.in_(roles)).all()
    session.flush()
    return user


def main() -> None:
    # Ensure tables exist (safe for SQLite dev)
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    try:
        ensure_role(session, ADMIN_ROLE, "Administrator")
        ensure_role(session, EMPLOYEE_ROLE, "Karyawan")

        ensure_user(session, "admin", "admin@example.com", "Admin123!", [ADMIN_ROLE, EMPLOYEE_ROLE], full_name="Admin HR")
        ensure_user(session, "budi.santoso", "budi@example.com", "Karyawan123!", [EMPLOYEE_ROLE], full_name="Budi Santoso", nik="3174012301900001")
        ensure_user(session, "siti.rahma", "siti@example.com", "Karyawan123!", [EMPLOYEE_ROLE], full_name="Siti Rahma", nik="3174014502920002")

        session.commit()
        print("Seed completed: roles and users upserted.")
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
