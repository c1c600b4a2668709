# ===== apps/users/roles.py =====
"""
Authorization gate.

Every core operation receives an explicit ``Caller``. Role membership checks
are pure functions over the caller's role set, which is resolved once per
request (``caller_for``) and never per row.
"""
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterable, Optional
import logging

from rest_framework.permissions import BasePermission

from apps.depots.exceptions import Unauthorized
from .models import RoleAssignment

logger = logging.getLogger(__name__)

ADMIN = RoleAssignment.ADMIN
TEACHER = RoleAssignment.TEACHER
STUDENT = 'student'

PRIVILEGED_ROLES = frozenset({ADMIN, TEACHER})

_REQUEST_CACHE_ATTR = '_depot_caller'


@dataclass(frozen=True)
class Caller:
    user_id: Optional[object]
    roles: FrozenSet[str] = field(default_factory=frozenset)
    is_system: bool = False

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: Iterable[str]) -> bool:
        return bool(self.roles & frozenset(roles))

    @property
    def display_roles(self):
        return sorted(self.roles) or [STUDENT]


# Bootstrap principal used by the scheduler and management commands.
SYSTEM = Caller(user_id=None, roles=frozenset(), is_system=True)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ''

    def __bool__(self):
        return self.allowed


def check(caller: Caller, required_roles: Iterable[str] = (),
          owner_check: Optional[Callable[[], bool]] = None) -> Decision:
    """
    Decide whether ``caller`` may run an operation.

    Allowed when the caller is the system principal, holds any role in
    ``required_roles``, or ``owner_check`` reports the caller owns the target
    resource (self-service operations).
    """
    required = frozenset(required_roles)
    if caller.is_system:
        return Decision(True)
    if required and caller.has_any_role(required):
        return Decision(True)
    if owner_check is not None and caller.user_id is not None and owner_check():
        return Decision(True)
    if required:
        needed = ' or '.join(sorted(required))
        return Decision(False, f"Unauthorized: {needed} role required")
    return Decision(False, "Unauthorized: not the owner of this resource")


def authorize(caller: Caller, required_roles: Iterable[str] = (),
              owner_check: Optional[Callable[[], bool]] = None) -> None:
    decision = check(caller, required_roles, owner_check)
    if not decision.allowed:
        logger.warning(f"Denied caller={caller.user_id}: {decision.reason}")
        raise Unauthorized(decision.reason)


def is_privileged(caller: Caller) -> bool:
    return caller.is_system or caller.has_any_role(PRIVILEGED_ROLES)


def resolve_caller(user) -> Caller:
    if user is None or not user.is_authenticated:
        return Caller(user_id=None)
    roles = RoleAssignment.objects.filter(user_id=user.pk).values_list('role', flat=True)
    return Caller(user_id=user.pk, roles=frozenset(roles))


def caller_for(request) -> Caller:
    """Resolve the caller of a request, cached on the request object."""
    caller = getattr(request, _REQUEST_CACHE_ATTR, None)
    if caller is None:
        caller = resolve_caller(request.user)
        setattr(request, _REQUEST_CACHE_ATTR, caller)
    return caller


class HasAnyRole(BasePermission):
    """
    DRF permission: ``permission_classes([HasAnyRole.of(ADMIN, TEACHER)])``.
    """
    required_roles = frozenset()

    @classmethod
    def of(cls, *roles):
        return type(f"HasAnyRole_{'_'.join(sorted(roles))}", (cls,), {'required_roles': frozenset(roles)})

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        return check(caller_for(request), self.required_roles).allowed
