from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import field_validator

from app.schemas.common import CamelModel


class BookWrite(CamelModel):
    name: str

    @field_validator("name", mode="before")
    @classmethod
    def strip_non_empty(cls, v) -> str:
        value = v.strip() if isinstance(v, str) else ""
        if not value:
            raise ValueError("Book name is required")
        return value


class BookOut(CamelModel):
    id: UUID
    name: str
    user_id: UUID
    is_owner: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BookResponse(CamelModel):
    book: BookOut


class BookListResponse(CamelModel):
    books: list[BookOut]
