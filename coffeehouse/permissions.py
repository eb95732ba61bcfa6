"""
Access policy for the coffee counter.

`authorize()` is a pure function: given an actor (or None), an optional
required role and an optional owner id it returns a `Decision`. Services call
`enforce()` before every mutation and every ownership-scoped read; the DRF
permission classes below wrap the same function for view-level checks.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from rest_framework.permissions import BasePermission

from .exceptions import Forbidden, Unauthenticated

logger = logging.getLogger(__name__)

STAFF = 'staff'
CUSTOMER = 'customer'
ROLES = (STAFF, CUSTOMER)


@dataclass(frozen=True)
class Actor:
    """The verified identity behind a request."""

    id: str
    role: str
    name: str = ''
    email: str = ''

    # DRF treats request.user as a Django user in a few places.
    is_authenticated = True

    @property
    def is_staff(self):
        return self.role == STAFF


@dataclass(frozen=True)
class Decision:
    allowed: bool
    kind: Optional[str] = None
    reason: str = ''

    def __bool__(self):
        return self.allowed


ALLOW = Decision(True)


def authorize(actor, required_role=None, owner_id=None):
    """
    Decide whether `actor` may proceed.

    No actor -> unauthenticated. A required role the actor lacks -> forbidden.
    An owner id that is not the actor's -> forbidden, unless the actor is staff.
    """
    if actor is None or not getattr(actor, 'id', None):
        return Decision(False, Unauthenticated.default_code, 'Authentication required')
    if required_role is not None and actor.role != required_role:
        return Decision(False, Forbidden.default_code, f'Only {required_role} may perform this action')
    if owner_id is not None and actor.role != STAFF and actor.id != owner_id:
        return Decision(False, Forbidden.default_code, 'You do not own this resource')
    return ALLOW


def enforce(actor, required_role=None, owner_id=None):
    """Raise the error matching a denied `authorize()` decision."""
    decision = authorize(actor, required_role=required_role, owner_id=owner_id)
    if decision:
        return
    logger.warning(
        "Denied %s: %s",
        getattr(actor, 'id', None) or 'anonymous', decision.reason
    )
    if decision.kind == Unauthenticated.default_code:
        raise Unauthenticated(decision.reason)
    raise Forbidden(decision.reason)


def _actor(request):
    user = getattr(request, 'user', None)
    return user if isinstance(user, Actor) else None


class IsAuthenticatedActor(BasePermission):
    """Any signed-in staff member or customer."""

    def has_permission(self, request, view):
        return bool(authorize(_actor(request)))


class IsStaff(BasePermission):
    message = f'Only {STAFF} may perform this action'

    def has_permission(self, request, view):
        return bool(authorize(_actor(request), required_role=STAFF))


class IsCustomer(BasePermission):
    message = f'Only {CUSTOMER} may perform this action'

    def has_permission(self, request, view):
        return bool(authorize(_actor(request), required_role=CUSTOMER))
