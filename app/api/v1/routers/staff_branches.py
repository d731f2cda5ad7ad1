from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.api.auth_utils import bad_request, raise_if_denied
from app.db.session import get_db
from app.models.staff import Staff
from app.models.user import User
from app.schemas.branches import (
    BranchOut,
    StaffBranchAssignRequest,
    StaffBranchAssignResponse,
    StaffBranchesResponse,
    StaffBranchIdsRequest,
    StaffSummary,
)
from app.services import branch_access
from app.services.branch_access import AssignmentTarget

router = APIRouter(tags=["staff-branches"])


def _staff_summary(staff: Staff, user: User) -> StaffSummary:
    return StaffSummary(id=staff.id, user_id=staff.user_id, name=user.name, phone=user.phone)


async def _assign(
    db: AsyncSession, current_user: User, staff_user_id: str, branch_ids: list[Any]
) -> StaffBranchAssignResponse:
    result = await branch_access.authorize(
        db, current_user.id, AssignmentTarget.STAFF, staff_user_id, branch_ids
    )
    raise_if_denied(result)

    staff_id = branch_access.parse_uuid(staff_user_id)
    branches = await branch_access.replace_branch_access(
        db, staff_id, result.valid_branch_ids, actor_id=current_user.id
    )
    found = await branch_access.get_staff_with_user(db, staff_id)
    if found is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff member not found")
    staff, user = found
    return StaffBranchAssignResponse(
        message="Branches assigned to staff successfully",
        staff=_staff_summary(staff, user),
        branches=[BranchOut.model_validate(book) for book in branches],
    )


async def _get(db: AsyncSession, current_user: User, staff_user_id: str | None) -> StaffBranchesResponse:
    target = current_user.id
    if staff_user_id is not None:
        target = branch_access.parse_uuid(staff_user_id)
        if target is None:
            raise bad_request("Invalid staff user ID")

    found = await branch_access.get_staff_with_user(db, target)
    if found is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff member not found")
    staff, user = found
    branches = await branch_access.list_assigned_branches(db, target)
    return StaffBranchesResponse(
        staff=_staff_summary(staff, user),
        assigned_branches=[BranchOut.model_validate(book) for book in branches],
    )


@router.post(
    "/staff-branches/assign",
    response_model=StaffBranchAssignResponse,
    summary="Replace the branches a staff member can access",
)
async def assign_branches_to_staff(
    payload: StaffBranchAssignRequest,
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> StaffBranchAssignResponse:
    return await _assign(db, current_user, payload.staff_user_id, payload.branch_ids)


@router.get(
    "/staff-branches",
    response_model=StaffBranchesResponse,
    summary="Get the caller's assigned branches as staff",
)
async def get_my_staff_branches(
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> StaffBranchesResponse:
    return await _get(db, current_user, None)


@router.get(
    "/staff-branches/{staff_user_id}",
    response_model=StaffBranchesResponse,
    summary="Get a staff member's assigned branches",
)
async def get_staff_branches(
    staff_user_id: str,
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> StaffBranchesResponse:
    return await _get(db, current_user, staff_user_id)


@router.post(
    "/staff/{staff_user_id}/branches",
    response_model=StaffBranchAssignResponse,
    summary="Replace a staff member's branches (owner or admin)",
)
async def assign_staff_branches_by_path(
    staff_user_id: str,
    payload: StaffBranchIdsRequest,
    current_user: User = Depends(deps.require_owner_or_admin),
    db: AsyncSession = Depends(get_db),
) -> StaffBranchAssignResponse:
    return await _assign(db, current_user, staff_user_id, payload.branch_ids)


@router.get(
    "/staff/{staff_user_id}/branches",
    response_model=StaffBranchesResponse,
    summary="Get a staff member's assigned branches",
)
async def get_staff_branches_by_path(
    staff_user_id: str,
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> StaffBranchesResponse:
    return await _get(db, current_user, staff_user_id)
