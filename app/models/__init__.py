from app.models.book import Book
from app.models.staff import Staff
from app.models.user import User
from app.models.user_branch_access import UserBranchAccess

__all__ = [
    "Book",
    "Staff",
    "User",
    "UserBranchAccess",
]
