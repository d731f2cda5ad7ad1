"""Branch access authorization and grant replacement.

Two assignment policies exist side by side:

* staff-targeted: caller must own at least one book or hold the ADMIN staff
  role; non-admins may only grant books they own, admins may grant any
  existing book;
* user-targeted: a user may replace their own grant set freely; granting to
  someone else requires owning every requested book.

Authorization only reads. ``replace_branch_access`` performs the write as a
single transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_audit_logger
from app.core.roles import StaffRole
from app.models.book import Book
from app.models.staff import Staff
from app.models.user import User
from app.models.user_branch_access import UserBranchAccess

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()


class AssignmentTarget(str, Enum):
    STAFF = "STAFF_TARGET"
    USER = "USER_TARGET"


class AccessErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    BAD_REQUEST = "bad_request"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class AuthorizationResult:
    permitted: bool
    valid_branch_ids: list[UUID] = field(default_factory=list)
    error_kind: AccessErrorKind | None = None
    message: str | None = None

    @classmethod
    def allow(cls, branch_ids: list[UUID]) -> "AuthorizationResult":
        return cls(permitted=True, valid_branch_ids=branch_ids)

    @classmethod
    def deny(cls, kind: AccessErrorKind, message: str) -> "AuthorizationResult":
        return cls(permitted=False, error_kind=kind, message=message)


def parse_uuid(value: Any) -> UUID | None:
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str):
        return None
    try:
        return UUID(value.strip())
    except ValueError:
        return None


def filter_branch_ids(raw_ids: Iterable[Any]) -> list[UUID]:
    """Drop non-string and malformed ids, de-duplicate, keep request order."""
    seen: set[UUID] = set()
    result: list[UUID] = []
    for raw in raw_ids:
        if not isinstance(raw, str):
            continue
        parsed = parse_uuid(raw)
        if parsed is None or parsed in seen:
            continue
        seen.add(parsed)
        result.append(parsed)
    return result


async def get_staff(db: AsyncSession, user_id: UUID) -> Staff | None:
    result = await db.execute(select(Staff).where(Staff.user_id == user_id))
    return result.scalar_one_or_none()


async def get_staff_with_user(db: AsyncSession, user_id: UUID) -> tuple[Staff, User] | None:
    stmt = select(Staff, User).join(User, User.id == Staff.user_id).where(Staff.user_id == user_id)
    row = (await db.execute(stmt)).first()
    if row is None:
        return None
    return row[0], row[1]


async def owns_any_book(db: AsyncSession, user_id: UUID) -> bool:
    stmt = select(Book.id).where(Book.owner_id == user_id).limit(1)
    result = await db.execute(stmt)
    return result.scalar_one_or_none() is not None


async def resolve_branch_ids(
    db: AsyncSession,
    branch_ids: Sequence[UUID],
    owner_id: UUID | None = None,
) -> list[UUID]:
    """Return the subset of ``branch_ids`` naming existing books, in request order.

    With ``owner_id`` only books owned by that user count.
    """
    if not branch_ids:
        return []
    stmt = select(Book.id).where(Book.id.in_(list(branch_ids)))
    if owner_id is not None:
        stmt = stmt.where(Book.owner_id == owner_id)
    found = set((await db.execute(stmt)).scalars().all())
    return [branch_id for branch_id in branch_ids if branch_id in found]


async def _authorize_staff_target(
    db: AsyncSession, caller_id: UUID, target_id: UUID | None, requested: list[UUID]
) -> AuthorizationResult:
    if target_id is None or await get_staff(db, target_id) is None:
        return AuthorizationResult.deny(AccessErrorKind.NOT_FOUND, "Staff member not found")

    caller_staff = await get_staff(db, caller_id)
    is_admin = caller_staff is not None and StaffRole.is_admin(caller_staff.role_name)
    if not is_admin and not await owns_any_book(db, caller_id):
        return AuthorizationResult.deny(
            AccessErrorKind.FORBIDDEN, "Only owners and admins can assign branches to staff"
        )

    if is_admin:
        # unknown ids are dropped silently on the admin path
        return AuthorizationResult.allow(await resolve_branch_ids(db, requested))

    owned = await resolve_branch_ids(db, requested, owner_id=caller_id)
    if len(owned) != len(requested):
        return AuthorizationResult.deny(AccessErrorKind.FORBIDDEN, "You can only assign branches you own")
    return AuthorizationResult.allow(owned)


async def _authorize_user_target(
    db: AsyncSession, caller_id: UUID, target_id: UUID | None, requested: list[UUID]
) -> AuthorizationResult:
    if target_id is None:
        return AuthorizationResult.deny(AccessErrorKind.BAD_REQUEST, "Invalid target user ID")

    if target_id == caller_id:
        # self-assignment skips ownership checks entirely
        return AuthorizationResult.allow(await resolve_branch_ids(db, requested))

    owned = await resolve_branch_ids(db, requested, owner_id=caller_id)
    if len(owned) != len(requested):
        return AuthorizationResult.deny(AccessErrorKind.FORBIDDEN, "You can only assign branches you own")
    return AuthorizationResult.allow(owned)


async def authorize(
    db: AsyncSession,
    caller_id: UUID | None,
    target_kind: AssignmentTarget,
    target_id: Any,
    requested_branch_ids: Iterable[Any],
) -> AuthorizationResult:
    """Decide whether ``caller_id`` may replace ``target_id``'s branch grants."""
    if caller_id is None:
        return AuthorizationResult.deny(AccessErrorKind.UNAUTHORIZED, "Unauthorized")

    requested = filter_branch_ids(requested_branch_ids)
    target = parse_uuid(target_id)
    if target_kind is AssignmentTarget.STAFF:
        result = await _authorize_staff_target(db, caller_id, target, requested)
    else:
        result = await _authorize_user_target(db, caller_id, target, requested)

    if not result.permitted:
        logger.info(
            "Branch assignment denied kind=%s target=%s reason=%s",
            target_kind.value,
            target_id,
            result.message,
        )
    return result


async def list_assigned_branches(db: AsyncSession, user_id: UUID) -> list[Book]:
    stmt = (
        select(Book)
        .join(UserBranchAccess, UserBranchAccess.book_id == Book.id)
        .where(UserBranchAccess.user_id == user_id)
        .order_by(Book.name, Book.id)
    )
    return list((await db.execute(stmt)).scalars().all())


async def list_owned_branches(db: AsyncSession, user_id: UUID) -> list[Book]:
    stmt = select(Book).where(Book.owner_id == user_id).order_by(Book.name, Book.id)
    return list((await db.execute(stmt)).scalars().all())


async def _lock_subject(db: AsyncSession, user_id: UUID) -> None:
    # Row lock on the subject serializes concurrent replacements for one user.
    await db.execute(select(User.id).where(User.id == user_id).with_for_update())


async def _current_branch_ids(db: AsyncSession, user_id: UUID) -> list[UUID]:
    stmt = select(UserBranchAccess.book_id).where(UserBranchAccess.user_id == user_id)
    return list((await db.execute(stmt)).scalars().all())


async def _delete_grants(db: AsyncSession, user_id: UUID) -> None:
    await db.execute(delete(UserBranchAccess).where(UserBranchAccess.user_id == user_id))


def _insert_grants(db: AsyncSession, user_id: UUID, branch_ids: Sequence[UUID]) -> None:
    db.add_all([UserBranchAccess(user_id=user_id, book_id=book_id) for book_id in branch_ids])


async def replace_branch_access(
    db: AsyncSession,
    target_id: UUID,
    branch_ids: Sequence[UUID],
    *,
    actor_id: UUID | None = None,
) -> list[Book]:
    """Make ``target_id``'s grant set exactly ``branch_ids``.

    Delete and insert commit together; on failure the transaction is rolled
    back and the error propagates, leaving the previous set intact.
    """
    unique_ids = list(dict.fromkeys(branch_ids))
    try:
        await _lock_subject(db, target_id)
        previous = await _current_branch_ids(db, target_id)
        await _delete_grants(db, target_id)
        if unique_ids:
            _insert_grants(db, target_id, unique_ids)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Branch access replacement failed for user %s", target_id)
        raise

    audit_logger.info(
        "branch_access.replaced",
        extra={
            "event": "branch_access.replaced",
            "actor_id": str(actor_id) if actor_id else None,
            "subject_id": str(target_id),
            "previous_branch_ids": sorted(str(i) for i in previous),
            "branch_ids": [str(i) for i in unique_ids],
        },
    )
    return await list_assigned_branches(db, target_id)
