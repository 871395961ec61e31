from datetime import datetime, timezone

from attendance_tracker.services.proof_files import proof_key, validate_image
from attendance_tracker.storage.local_provider import LocalStorageProvider

MAX_BYTES = 5 * 1024 * 1024


def test_validate_image_types():
    for content_type in ("image/jpeg", "image/jpg", "image/png", "image/webp", "IMAGE/PNG"):
        assert validate_image(content_type, 10).valid

    result = validate_image("image/gif", 10)
    assert not result.valid
    assert result.message == "Format file tidak didukung. Gunakan JPEG, PNG, atau WebP."
    assert not validate_image(None, 10).valid


def test_validate_image_size_limit():
    assert validate_image("image/png", MAX_BYTES).valid
    result = validate_image("image/png", MAX_BYTES + 1)
    assert not result.valid
    assert result.message == "Ukuran file terlalu besar. Maksimal 5MB."


def test_proof_key_format():
    now = datetime(2026, 10, 19, tzinfo=timezone.utc)
    assert proof_key("abc", "Bukti.PNG", now) == "attendance/proof_abc_1792368000000.png"
    assert proof_key("abc", "noext", now).endswith(".bin")


def test_local_storage_roundtrip(tmp_path):
    storage = LocalStorageProvider(base_dir=str(tmp_path))
    key = "attendance/proof_abc_1.png"

    storage.copy_in(b"png-bytes", key)
    assert storage.exists(key)
    assert (tmp_path / "attendance" / "proof_abc_1.png").read_bytes() == b"png-bytes"
    assert storage.public_url(key) == "/uploads/attendance/proof_abc_1.png"

    storage.delete(key)
    assert not storage.exists(key)
    # deleting twice is harmless
    storage.delete(key)
