from __future__ import annotations

from enum import Enum


class StaffRole(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    VIEWER = "VIEWER"

    @classmethod
    def is_admin(cls, role_name: str | None) -> bool:
        # stored role names are exact upper-case values
        return role_name == cls.ADMIN.value

    @classmethod
    def parse(cls, role_name: str | None) -> StaffRole | None:
        try:
            return cls(role_name)
        except ValueError:
            return None

    @classmethod
    def names(cls) -> list[str]:
        return [role.value for role in cls]
