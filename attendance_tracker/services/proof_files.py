"""
Proof-of-work image checks and storage key naming.
"""
import os
from datetime import datetime, timezone
from typing import NamedTuple, Optional

from ..config import settings


class ImageValidation(NamedTuple):
    valid: bool
    message: str


def validate_image(content_type: Optional[str], size: int) -> ImageValidation:
    """Accept JPEG, PNG or WebP images up to PROOF_MAX_BYTES."""
    if (content_type or "").lower() not in settings.proof_allowed_types:
        return ImageValidation(False, "Format file tidak didukung. Gunakan JPEG, PNG, atau WebP.")
    max_mb = settings.proof_max_bytes // (1024 * 1024)
    if size > settings.proof_max_bytes:
        return ImageValidation(False, f"Ukuran file terlalu besar. Maksimal {max_mb}MB.")
    return ImageValidation(True, "File valid")


def proof_key(attendance_id: str, original_name: str, now: Optional[datetime] = None) -> str:
    """Storage key: attendance/proof_{attendanceId}_{epochMillis}.{ext}"""
    moment = now or datetime.now(timezone.utc)
    millis = int(moment.timestamp() * 1000)
    ext = os.path.splitext(original_name or "")[1].lstrip(".").lower() or "bin"
    return f"attendance/proof_{attendance_id}_{millis}.{ext}"
