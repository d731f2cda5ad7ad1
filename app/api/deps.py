from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import set_user_id
from app.core.roles import StaffRole
from app.core.security import decode_token
from app.core.settings import settings
from app.db.session import get_db
from app.models import User
from app.services import branch_access

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=settings.auth_token_url, auto_error=False)


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_db_session(db: AsyncSession = Depends(get_db)) -> AsyncSession:
    return db


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    if not token:
        raise _unauthorized()
    try:
        payload = decode_token(token, expected_type="access")
    except ValueError as exc:
        raise _unauthorized(str(exc)) from exc

    # tokens minted by the legacy auth service carry ``userId`` instead of ``sub``
    user_id = branch_access.parse_uuid(payload.get("sub") or payload.get("userId"))
    if user_id is None:
        raise _unauthorized("Invalid token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise _unauthorized("User not found")
    set_user_id(str(user.id))
    return user


async def require_authenticated_user(current_user: User = Depends(get_current_user)) -> User:
    """Simple guard to require an authenticated user (no role checks)."""
    return current_user


async def require_owner_or_admin(
    current_user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """Users without a staff record are owners; staff must hold the ADMIN role."""
    staff = await branch_access.get_staff(db, current_user.id)
    if staff is None or StaffRole.is_admin(staff.role_name):
        return current_user
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={
            "error": "Insufficient permissions",
            "message": f"This action requires one of: {StaffRole.ADMIN.value}",
        },
    )
