from fastapi import HTTPException, status

from app.services.branch_access import AccessErrorKind, AuthorizationResult

_STATUS_BY_KIND = {
    AccessErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    AccessErrorKind.BAD_REQUEST: status.HTTP_400_BAD_REQUEST,
    AccessErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    AccessErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def raise_if_denied(result: AuthorizationResult) -> None:
    if result.permitted:
        return
    kind = result.error_kind or AccessErrorKind.FORBIDDEN
    raise HTTPException(
        status_code=_STATUS_BY_KIND[kind],
        detail={"code": kind.value, "error": result.message or "Forbidden"},
    )


def bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)
