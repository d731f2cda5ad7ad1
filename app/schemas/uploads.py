from __future__ import annotations

from app.schemas.common import CamelModel


class UploadedFileOut(CamelModel):
    filename: str
    original_name: str
    url: str
    size: int
    mimetype: str


class KycUploadResponse(CamelModel):
    success: bool = True
    file: UploadedFileOut
