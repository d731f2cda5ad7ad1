from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import field_validator

from app.schemas.common import CamelModel


class StaffOut(CamelModel):
    id: UUID
    user_id: UUID
    role_name: str
    name: str | None = None
    phone: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class StaffCreate(CamelModel):
    """Adds a staff member by phone; the user is created when the phone is new."""

    phone: str
    name: str | None = None
    # system role names only; checked by the router so the error carries the allowed list
    role_name: str | None = None

    @field_validator("phone", mode="before")
    @classmethod
    def check_phone(cls, v) -> str:
        value = v.strip() if isinstance(v, str) else ""
        if not value:
            raise ValueError("Phone is required")
        return value


class StaffUpdate(CamelModel):
    role_name: str | None = None
    name: str | None = None


class StaffListResponse(CamelModel):
    staff: list[StaffOut]


class StaffResponse(CamelModel):
    staff: StaffOut
