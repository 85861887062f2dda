"""Callers of the ordering core, as resolved by the authentication layer."""

from dataclasses import dataclass
from enum import Enum

from ordering.errors import Unauthorized


class Role(Enum):
    CUSTOMER = "customer"
    STALL_STAFF = "stall_staff"
    ADMIN = "admin"


@dataclass(frozen=True)
class Caller:
    id: str
    role: Role
    business_id: str | None = None

    @classmethod
    def from_labels(cls, caller_id, role, business_id=None):
        """Build a caller from the plain strings carried on commands and headers."""
        if not caller_id:
            raise Unauthorized("Caller id is missing")
        try:
            role = role if isinstance(role, Role) else Role(str(role).strip().lower())
        except ValueError:
            raise Unauthorized(f"Unknown caller role: {role}") from None
        return cls(id=str(caller_id), role=role, business_id=str(business_id) if business_id else None)

    @property
    def is_staff(self) -> bool:
        """Admins pass every staff gate."""
        return self.role in (Role.STALL_STAFF, Role.ADMIN)

    @property
    def is_customer(self) -> bool:
        return self.role == Role.CUSTOMER

    def can_act_for_business(self, business_id) -> bool:
        if self.role == Role.ADMIN:
            return True
        return (
            self.role == Role.STALL_STAFF
            and self.business_id is not None
            and str(self.business_id) == str(business_id)
        )
