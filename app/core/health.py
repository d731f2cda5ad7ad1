from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sqlalchemy import text

from app.core.settings import settings
from app.db.session import engine
from app.services.kyc_uploads import KycUploadError, kyc_upload_dir
from app.utils.redis_client import get_redis_client

APP_VERSION = "0.1.0"


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _check_db() -> dict[str, str]:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as exc:  # pragma: no cover - exercised in runtime
        return {"status": "error", "error": str(exc)}


async def _check_redis() -> dict[str, str]:
    try:
        await get_redis_client().ping()
        return {"status": "ok"}
    except Exception as exc:
        return {"status": "error", "error": str(exc)}


async def _check_uploads() -> dict[str, str]:
    """KYC documents land on local disk; the directory must exist and be writable."""
    try:
        upload_dir = kyc_upload_dir(Path(settings.upload_dir))
    except KycUploadError as exc:
        return {"status": "error", "error": str(exc)}
    if not upload_dir.is_dir():
        return {"status": "error", "error": f"{upload_dir} is missing"}
    if not os.access(upload_dir, os.W_OK):
        return {"status": "error", "error": f"{upload_dir} is not writable"}
    return {"status": "ok"}


def _overall_status(checks: dict[str, dict[str, Any]]) -> tuple[str, bool]:
    ready = all(check.get("status") == "ok" for check in checks.values())
    return ("ok" if ready else "degraded", ready)


async def live_payload() -> dict[str, str]:
    return {"status": "ok", "message": "ByajBook API is running", "timestamp": _utcnow()}


async def ready_payload() -> dict[str, Any]:
    checks = {
        "api": {"status": "ok", "version": APP_VERSION},
        "database": await _check_db(),
        "redis": await _check_redis(),
        "uploads": await _check_uploads(),
    }
    overall, ready = _overall_status(checks)
    return {
        "status": overall,
        "ready": ready,
        "environment": settings.environment,
        "timestamp": _utcnow(),
        "checks": checks,
    }
