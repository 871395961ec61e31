from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_roles
from ..db import get_db
from ..models.models import User
from ..schemas.attendance import AttendanceConfigIn, AttendanceConfigOut
from ..services import attendance_config

router = APIRouter(prefix="/api/admin/attendance-config", tags=["attendance-config"])


@router.get("")
def get_attendance_config(
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    # Employees read it too (allowWFH, requireProofOfWork); {} until an admin saves one
    cfg = attendance_config.get_config(db)
    if cfg is None:
        return {}
    return AttendanceConfigOut.model_validate(cfg).model_dump(mode="json", by_alias=True)


@router.post("", response_model=AttendanceConfigOut)
def save_attendance_config(
    payload: AttendanceConfigIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles("admin")),
):
    return attendance_config.save_config(db, payload, actor_id=str(admin.id))
