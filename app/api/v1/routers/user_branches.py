from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.api.auth_utils import bad_request, raise_if_denied
from app.db.session import get_db
from app.models.user import User
from app.schemas.branches import (
    BranchOut,
    UserBranchAssignRequest,
    UserBranchAssignResponse,
    UserBranchesResponse,
)
from app.services import branch_access
from app.services.branch_access import AssignmentTarget

router = APIRouter(prefix="/user-branches", tags=["user-branches"])


async def _branches_for(db: AsyncSession, current_user: User, user_id: str | None) -> UserBranchesResponse:
    target = current_user.id
    if user_id is not None:
        target = branch_access.parse_uuid(user_id)
        if target is None:
            raise bad_request("Invalid user ID")

    assigned = await branch_access.list_assigned_branches(db, target)
    owned = await branch_access.list_owned_branches(db, target)
    return UserBranchesResponse(
        assigned_branches=[BranchOut.model_validate(book) for book in assigned],
        owned_branches=[BranchOut.model_validate(book) for book in owned],
    )


@router.post(
    "/assign",
    response_model=UserBranchAssignResponse,
    summary="Replace the branches a user can access",
)
async def assign_branches_to_user(
    payload: UserBranchAssignRequest,
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> UserBranchAssignResponse:
    result = await branch_access.authorize(
        db, current_user.id, AssignmentTarget.USER, payload.target_user_id, payload.branch_ids
    )
    raise_if_denied(result)

    branches = await branch_access.replace_branch_access(
        db,
        branch_access.parse_uuid(payload.target_user_id),
        result.valid_branch_ids,
        actor_id=current_user.id,
    )
    return UserBranchAssignResponse(
        message="Branches assigned successfully",
        branches=[BranchOut.model_validate(book) for book in branches],
    )


@router.get("", response_model=UserBranchesResponse, summary="Get the caller's branches")
@router.get("/me", response_model=UserBranchesResponse, summary="Get the caller's branches")
async def get_my_branches(
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> UserBranchesResponse:
    return await _branches_for(db, current_user, None)


@router.get("/user/{user_id}", response_model=UserBranchesResponse, summary="Get a user's branches")
@router.get("/{user_id}", response_model=UserBranchesResponse, summary="Get a user's branches")
async def get_user_branches(
    user_id: str,
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> UserBranchesResponse:
    return await _branches_for(db, current_user, user_id)
