import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from app.api import deps
from app.core.logging import get_audit_logger
from app.core.settings import settings
from app.models.user import User
from app.schemas.uploads import KycUploadResponse, UploadedFileOut
from app.services.kyc_uploads import KycUploadError, save_kyc_document

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

router = APIRouter(prefix="/upload", tags=["uploads"])


@router.post("/kyc", response_model=KycUploadResponse, summary="Upload a KYC document")
async def upload_kyc(
    file: UploadFile | None = File(default=None),
    current_user: User = Depends(deps.require_authenticated_user),
) -> KycUploadResponse:
    if file is None or not file.filename:
        logger.info("KYC upload rejected: no file in request")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "No file uploaded", "message": "Please select a file to upload"},
        )

    try:
        stored = await save_kyc_document(
            file,
            base_dir=Path(settings.upload_dir),
            max_size_bytes=settings.kyc_max_upload_bytes,
        )
    except KycUploadError as exc:
        logger.info("KYC upload rejected: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    audit_logger.info(
        "kyc.uploaded",
        extra={
            "event": "kyc.uploaded",
            "actor_id": str(current_user.id),
            "stored_filename": stored.filename,
            "size": stored.size,
        },
    )
    return KycUploadResponse(
        success=True,
        file=UploadedFileOut(
            filename=stored.filename,
            original_name=stored.original_name,
            url=stored.url,
            size=stored.size,
            mimetype=stored.mimetype,
        ),
    )
