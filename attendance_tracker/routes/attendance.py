"""
Attendance API routes.
Handles check-in/check-out, WFH proof upload, history and CSV export.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, is_admin, require_roles
from ..config import settings
from ..db import get_db
from ..models.models import User
from ..schemas.attendance import (
    CheckInRequest,
    CheckInResponse,
    CheckOutRequest,
    CheckOutResponse,
    HistoryResponse,
    UploadProofResponse,
)
from ..services import attendance as attendance_service
from ..services import attendance_reports
from ..services.errors import ValidationError
from ..services.realtime import Notifier, get_notifier
from ..storage.factory import get_storage
from ..storage.provider import StorageProvider

router = APIRouter(prefix="/api/attendance", tags=["attendance"])


def _get_client_ip(request: Request) -> Optional[str]:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else None


@router.post("/check-in", response_model=CheckInResponse)
def check_in(
    payload: CheckInRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    return attendance_service.check_in(
        db,
        user,
        work_mode=payload.work_mode,
        latitude=payload.latitude,
        longitude=payload.longitude,
        ip_address=payload.ip_address or _get_client_ip(request),
        method=payload.method,
        notifier=notifier,
    )


@router.post("/check-out", response_model=CheckOutResponse)
def check_out(
    payload: Optional[CheckOutRequest] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    payload = payload or CheckOutRequest()
    return attendance_service.check_out(
        db,
        user,
        latitude=payload.latitude,
        longitude=payload.longitude,
        proof_of_work_url=payload.proof_of_work_url,
        proof_of_work_name=payload.proof_of_work_name,
        notifier=notifier,
    )


@router.post("/upload-proof", response_model=UploadProofResponse)
def upload_proof(
    file: Optional[UploadFile] = File(None),
    attendance_id: Optional[str] = Form(None, alias="attendanceId"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    storage: StorageProvider = Depends(get_storage),
):
    if file is None:
        raise ValidationError("File tidak ditemukan")
    # One byte past the limit is enough for the size check
    content = file.file.read(settings.proof_max_bytes + 1)
    return attendance_service.upload_proof(
        db,
        user,
        attendance_id=attendance_id,
        content=content,
        filename=file.filename or "upload",
        content_type=file.content_type,
        storage=storage,
    )


@router.get("/history", response_model=HistoryResponse)
def history(
    user_id: Optional[str] = Query(None, alias="userId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    work_mode: Optional[str] = Query(None, alias="workMode"),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    filters = attendance_reports.build_filters(user_id, start_date, end_date, work_mode, status)
    if filters.user_id is None:
        filters.user_id = user.id
    attendance_reports.ensure_can_view(user, filters.user_id, is_admin(user))

    result = attendance_reports.list_history(db, filters, page=page, limit=limit)
    result["filters"] = {
        "userId": str(filters.user_id),
        "startDate": start_date,
        "endDate": end_date,
        "workMode": work_mode,
        "status": status,
    }
    return result


@router.get("/export")
def export(
    user_id: Optional[str] = Query(None, alias="userId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    work_mode: Optional[str] = Query(None, alias="workMode"),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    _admin: User = Depends(require_roles("admin")),
):
    filters = attendance_reports.build_filters(user_id, start_date, end_date, work_mode, status)
    content = attendance_reports.export_csv(db, filters)
    filename = attendance_reports.export_filename()
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
