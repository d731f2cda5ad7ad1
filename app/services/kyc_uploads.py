from __future__ import annotations

import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

KYC_SUBDIR = Path("kyc")
KYC_URL_PREFIX = "/uploads/kyc"
CHUNK_SIZE = 1024 * 1024

# Both the extension and the declared mimetype must match an entry here.
_ALLOWED_TYPES: dict[str, set[str]] = {
    ".jpeg": {"image/jpeg", "image/jpg"},
    ".jpg": {"image/jpeg", "image/jpg"},
    ".png": {"image/png"},
    ".pdf": {"application/pdf"},
}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_MAX_BASENAME_LENGTH = 100


class KycUploadError(ValueError):
    pass


class FileTooLargeError(KycUploadError):
    pass


@dataclass(frozen=True)
class StoredUpload:
    filename: str
    original_name: str
    url: str
    size: int
    mimetype: str


def _size_limit_message(max_size_bytes: int) -> str:
    return f"File size exceeds {max_size_bytes // (1024 * 1024)}MB limit"


def validate_file_type(filename: str, mimetype: str | None) -> str:
    """Return the normalized extension, or raise if the extension/mimetype pair is not allowed."""
    ext = Path(filename).suffix.lower()
    declared = (mimetype or "").lower().strip()
    allowed = _ALLOWED_TYPES.get(ext)
    if not allowed or declared not in allowed:
        raise KycUploadError(
            "File type not allowed. Only JPEG, JPG, PNG images and PDF files are allowed. "
            f"Received: {mimetype or 'unknown'}"
        )
    return ext


def sanitize_basename(filename: str) -> str:
    stem = Path(Path(filename).name).stem
    cleaned = _UNSAFE_CHARS.sub("_", stem).strip("._")
    return cleaned[:_MAX_BASENAME_LENGTH] or "document"


def generate_filename(original_name: str, ext: str) -> str:
    # timestamp + random suffix: probabilistically unique, fine for document volume
    suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
    return f"{sanitize_basename(original_name)}-{suffix}{ext}"


def kyc_file_url(filename: str) -> str:
    return f"{KYC_URL_PREFIX}/{filename}"


def kyc_upload_dir(base_dir: Path) -> Path:
    base_dir = base_dir.resolve()
    dest_dir = (base_dir / KYC_SUBDIR).resolve()
    if base_dir not in dest_dir.parents:
        raise KycUploadError("Invalid upload path")
    return dest_dir


async def save_kyc_document(file: UploadFile, base_dir: Path, max_size_bytes: int) -> StoredUpload:
    original_name = Path(file.filename or "").name or "document"
    ext = validate_file_type(original_name, file.content_type)

    dest_dir = kyc_upload_dir(base_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    dest_name = generate_filename(original_name, ext)
    dest_path = dest_dir / dest_name
    bytes_written = 0

    try:
        with dest_path.open("wb") as handle:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                bytes_written += len(chunk)
                if bytes_written > max_size_bytes:
                    raise FileTooLargeError(_size_limit_message(max_size_bytes))
                handle.write(chunk)
    except (KycUploadError, OSError):
        # Clean up partial file on validation or disk failure
        dest_path.unlink(missing_ok=True)
        raise
    finally:
        await file.close()

    return StoredUpload(
        filename=dest_name,
        original_name=original_name,
        url=kyc_file_url(dest_name),
        size=bytes_written,
        mimetype=file.content_type or "",
    )
