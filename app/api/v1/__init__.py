from fastapi import APIRouter

from app.api.v1.routers import (
    books,
    health,
    staff,
    staff_branches,
    uploads,
    user_branches,
)

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(books.router)
api_router.include_router(staff.router)
api_router.include_router(staff_branches.router)
api_router.include_router(user_branches.router)
api_router.include_router(uploads.router)

__all__ = ["api_router"]
