# ===== apps/users/services.py =====
"""
Role API and cross-user overviews.

Granting or revoking a role keeps ``User.is_staff`` (the coarse "elevated"
flag on the auth record) in line with whether any special role remains.
"""
import logging

from django.db import transaction
from django.db.models import Count, Prefetch

from apps.depots.exceptions import InvalidInput, NotFound
from .models import RoleAssignment, User
from .roles import ADMIN, TEACHER, authorize

logger = logging.getLogger(__name__)

ROLES = [value for value, _ in RoleAssignment.ROLES]


# ============================================================
# ROLES
# ============================================================

def _get_user(user_id):
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFound("User not found")
    return user


def _sync_elevated_flag(user):
    elevated = user.role_assignments.exists() or user.is_superuser
    if user.is_staff != elevated:
        user.is_staff = elevated
        user.save(update_fields=['is_staff', 'updated_at'])


def _grant(caller, user_id, role):
    if role not in ROLES:
        raise InvalidInput(f"Unknown role: {role!r}")

    user = _get_user(user_id)
    with transaction.atomic():
        assignment, created = RoleAssignment.objects.get_or_create(user=user, role=role)
        _sync_elevated_flag(user)

    if created:
        logger.info(f"Role {role} granted to {user.username} by {caller.user_id}")
    return assignment


def _revoke(caller, user_id, role):
    if role not in ROLES:
        raise InvalidInput(f"Unknown role: {role!r}")

    user = _get_user(user_id)
    with transaction.atomic():
        deleted, _ = RoleAssignment.objects.filter(user=user, role=role).delete()
        _sync_elevated_flag(user)

    if deleted:
        logger.info(f"Role {role} revoked from {user.username} by {caller.user_id}")
    return bool(deleted)


def grant_teacher(caller, user_id):
    authorize(caller, [ADMIN, TEACHER])
    return _grant(caller, user_id, TEACHER)


def revoke_teacher(caller, user_id):
    authorize(caller, [ADMIN, TEACHER])
    return _revoke(caller, user_id, TEACHER)


def grant_role(caller, user_id, role):
    authorize(caller, [ADMIN])
    return _grant(caller, user_id, role)


def revoke_role(caller, user_id, role):
    authorize(caller, [ADMIN])
    return _revoke(caller, user_id, role)


# ============================================================
# OVERVIEWS
# ============================================================

def admin_overview(caller):
    """Every user with role grants and depot/position/transaction counts."""
    authorize(caller, [ADMIN, TEACHER])

    users = (
        User.objects
        .annotate(
            depot_count=Count('depots', distinct=True),
            position_count=Count('depots__positions', distinct=True),
            transaction_count=Count('depots__transactions', distinct=True),
        )
        .prefetch_related(
            Prefetch('role_assignments', queryset=RoleAssignment.objects.order_by('granted_at'))
        )
        .order_by('created_at')
    )

    rows = []
    for user in users:
        assignments = list(user.role_assignments.all())
        rows.append({
            "id": str(user.pk),
            "username": user.username,
            "email": user.email,
            "created_at": user.created_at,
            "is_active": user.is_active,
            "roles": [a.role for a in assignments],
            "role_granted_at": [a.granted_at for a in assignments],
            "depot_count": user.depot_count,
            "position_count": user.position_count,
            "transaction_count": user.transaction_count,
        })
    return rows


def user_stats(caller):
    authorize(caller, [ADMIN, TEACHER])

    def holders(role):
        return RoleAssignment.objects.filter(role=role).values('user').distinct().count()

    return {
        "user_count": User.objects.count(),
        "teacher_count": holders(TEACHER),
        "admin_count": holders(ADMIN),
        "student_count": User.objects.filter(role_assignments__isnull=True).count(),
    }


def profile(caller):
    user = _get_user(caller.user_id)
    return {
        "id": str(user.pk),
        "username": user.username,
        "email": user.email,
        "name": user.name,
        "is_staff": user.is_staff,
        "roles": caller.display_roles,
        "depot_ids": list(user.depots.order_by('id').values_list('id', flat=True)),
    }
