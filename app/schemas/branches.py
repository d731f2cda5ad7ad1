from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import field_validator

from app.schemas.common import CamelModel


class BranchOut(CamelModel):
    id: UUID
    name: str


class StaffSummary(CamelModel):
    id: UUID
    user_id: UUID
    name: str | None = None
    phone: str


def _require_id(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(message)
    return value.strip()


def _require_array(value: Any) -> list[Any]:
    if not isinstance(value, list):
        raise ValueError("branchIds must be an array")
    return value


class StaffBranchAssignRequest(CamelModel):
    staff_user_id: str
    # entries are filtered, not validated: malformed ids are dropped by the service
    branch_ids: list[Any]

    @field_validator("staff_user_id", mode="before")
    @classmethod
    def check_staff_user_id(cls, v: Any) -> str:
        return _require_id(v, "Invalid staff user ID")

    @field_validator("branch_ids", mode="before")
    @classmethod
    def check_branch_ids(cls, v: Any) -> list[Any]:
        return _require_array(v)


class StaffBranchIdsRequest(CamelModel):
    branch_ids: list[Any]

    @field_validator("branch_ids", mode="before")
    @classmethod
    def check_branch_ids(cls, v: Any) -> list[Any]:
        return _require_array(v)


class UserBranchAssignRequest(CamelModel):
    target_user_id: str
    branch_ids: list[Any]

    @field_validator("target_user_id", mode="before")
    @classmethod
    def check_target_user_id(cls, v: Any) -> str:
        return _require_id(v, "Invalid target user ID")

    @field_validator("branch_ids", mode="before")
    @classmethod
    def check_branch_ids(cls, v: Any) -> list[Any]:
        return _require_array(v)


class StaffBranchAssignResponse(CamelModel):
    message: str
    staff: StaffSummary
    branches: list[BranchOut]


class StaffBranchesResponse(CamelModel):
    staff: StaffSummary
    assigned_branches: list[BranchOut]


class UserBranchAssignResponse(CamelModel):
    message: str
    branches: list[BranchOut]


class UserBranchesResponse(CamelModel):
    assigned_branches: list[BranchOut]
    owned_branches: list[BranchOut]
