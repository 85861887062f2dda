"""Caller resolution for HTTP requests.

Authentication happens upstream; the authenticating proxy forwards the
verified identity in headers. This module only turns those headers into a
``Caller`` and applies the role checks every route shares.
"""

from fastapi import Header

from ordering.actors import Caller, Role
from ordering.errors import Forbidden, Unauthorized


async def get_caller(
    x_caller_id: str | None = Header(default=None),
    x_caller_role: str | None = Header(default=None),
    x_business_id: str | None = Header(default=None),
) -> Caller:
    if not x_caller_id or not x_caller_role:
        raise Unauthorized("Authentication required")
    caller = Caller.from_labels(x_caller_id, x_caller_role, x_business_id)
    if caller.role == Role.STALL_STAFF and not caller.business_id:
        raise Forbidden("Stall staff must belong to a business")
    return caller


def require_customer(caller: Caller) -> Caller:
    if not caller.is_customer:
        raise Forbidden("Only customers have a cart")
    return caller


def require_staff(caller: Caller) -> Caller:
    if not caller.is_staff:
        raise Forbidden("Stall staff access required")
    return caller
