import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.api.auth_utils import bad_request
from app.core.logging import get_audit_logger
from app.core.roles import StaffRole
from app.db.session import get_db
from app.models.staff import Staff
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.staff import StaffCreate, StaffListResponse, StaffOut, StaffResponse, StaffUpdate

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

router = APIRouter(prefix="/staff", tags=["staff"])


def _staff_out(staff: Staff, user: User) -> StaffOut:
    return StaffOut(
        id=staff.id,
        user_id=staff.user_id,
        role_name=staff.role_name,
        name=user.name,
        phone=user.phone,
        created_at=staff.created_at,
        updated_at=staff.updated_at,
    )


def _require_role(role_name: str | None) -> StaffRole:
    role = StaffRole.parse(role_name)
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Invalid role",
                "message": f"Role must be one of: {', '.join(StaffRole.names())}",
            },
        )
    return role


async def _get_staff_row(db: AsyncSession, staff_id: UUID) -> tuple[Staff, User]:
    stmt = select(Staff, User).join(User, User.id == Staff.user_id).where(Staff.id == staff_id)
    row = (await db.execute(stmt)).first()
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff not found")
    return row[0], row[1]


@router.get("", response_model=StaffListResponse, summary="List staff members")
async def list_staff(
    _: User = Depends(deps.require_owner_or_admin),
    db: AsyncSession = Depends(get_db),
) -> StaffListResponse:
    stmt = (
        select(Staff, User)
        .join(User, User.id == Staff.user_id)
        .order_by(Staff.created_at.desc())
    )
    rows = (await db.execute(stmt)).all()
    return StaffListResponse(staff=[_staff_out(staff, user) for staff, user in rows])


@router.post("", response_model=StaffResponse, status_code=201, summary="Add a staff member")
async def create_staff(
    payload: StaffCreate,
    current_user: User = Depends(deps.require_owner_or_admin),
    db: AsyncSession = Depends(get_db),
) -> StaffResponse:
    if payload.role_name is None:
        raise bad_request("roleName is required")
    role = _require_role(payload.role_name)

    user = (await db.execute(select(User).where(User.phone == payload.phone))).scalar_one_or_none()
    if user is None:
        user = User(phone=payload.phone, name=payload.name or None)
        db.add(user)
        await db.flush()
    else:
        existing = (await db.execute(select(Staff).where(Staff.user_id == user.id))).scalar_one_or_none()
        if existing is not None:
            raise bad_request("User is already a staff member")

    staff = Staff(user_id=user.id, role_name=role.value)
    db.add(staff)
    try:
        await db.commit()
    except IntegrityError as exc:
        # concurrent create for the same phone or user
        await db.rollback()
        raise bad_request("User is already a staff member") from exc
    await db.refresh(staff)

    audit_logger.info(
        "staff.created",
        extra={
            "event": "staff.created",
            "actor_id": str(current_user.id),
            "subject_id": str(user.id),
            "role_name": staff.role_name,
        },
    )
    return StaffResponse(staff=_staff_out(staff, user))


@router.get("/me", response_model=StaffResponse, summary="Get the caller's staff record")
async def get_my_staff_info(
    current_user: User = Depends(deps.require_authenticated_user),
    db: AsyncSession = Depends(get_db),
) -> StaffResponse:
    stmt = select(Staff).where(Staff.user_id == current_user.id)
    staff = (await db.execute(stmt)).scalar_one_or_none()
    if not staff:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff record not found")
    return StaffResponse(staff=_staff_out(staff, current_user))


@router.get("/{staff_id}", response_model=StaffResponse, summary="Get a staff member")
async def get_staff(
    staff_id: UUID,
    _: User = Depends(deps.require_owner_or_admin),
    db: AsyncSession = Depends(get_db),
) -> StaffResponse:
    staff, user = await _get_staff_row(db, staff_id)
    return StaffResponse(staff=_staff_out(staff, user))


@router.put("/{staff_id}", response_model=StaffResponse, summary="Change a staff member's role or name")
async def update_staff(
    staff_id: UUID,
    payload: StaffUpdate,
    current_user: User = Depends(deps.require_owner_or_admin),
    db: AsyncSession = Depends(get_db),
) -> StaffResponse:
    staff, user = await _get_staff_row(db, staff_id)
    previous_role = staff.role_name

    if payload.role_name is not None:
        staff.role_name = _require_role(payload.role_name).value
    if "name" in payload.model_fields_set:
        user.name = payload.name or None

    db.add(staff)
    db.add(user)
    await db.commit()
    await db.refresh(staff)

    if staff.role_name != previous_role:
        audit_logger.info(
            "staff.role_changed",
            extra={
                "event": "staff.role_changed",
                "actor_id": str(current_user.id),
                "subject_id": str(staff.user_id),
                "role_name": staff.role_name,
            },
        )
    return StaffResponse(staff=_staff_out(staff, user))


@router.delete("/{staff_id}", response_model=MessageResponse, summary="Remove a staff member")
async def delete_staff(
    staff_id: UUID,
    current_user: User = Depends(deps.require_owner_or_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    staff, _user = await _get_staff_row(db, staff_id)
    if staff.user_id == current_user.id:
        raise bad_request("Cannot delete your own staff account")

    await db.delete(staff)
    await db.commit()
    logger.info("Staff %s removed by %s", staff.id, current_user.id)
    return MessageResponse(message="Staff deleted successfully")
