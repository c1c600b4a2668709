import pytest

from apps.depots.exceptions import InvalidInput, NotFound, Unauthorized
from apps.users import services
from apps.users.models import RoleAssignment
from apps.users.roles import (
    ADMIN, SYSTEM, TEACHER, Caller, authorize, check, is_privileged, resolve_caller
)


def test_check_is_a_pure_role_decision():
    student = Caller(user_id="u1")
    teacher = Caller(user_id="u2", roles=frozenset({TEACHER}))

    assert not check(student, [TEACHER, ADMIN])
    assert check(teacher, [TEACHER, ADMIN])
    assert check(SYSTEM, [ADMIN])
    assert check(student, [ADMIN], owner_check=lambda: True)
    assert not check(Caller(user_id=None), [], owner_check=lambda: True)
    assert "teacher" in check(student, [TEACHER]).reason


def test_authorize_raises_unauthorized():
    with pytest.raises(Unauthorized):
        authorize(Caller(user_id="u1"), [ADMIN])


def test_resolve_caller_reads_role_rows(student, teacher, admin_user):
    assert resolve_caller(student).roles == frozenset()
    assert resolve_caller(student).display_roles == ["student"]
    assert resolve_caller(teacher).has_role(TEACHER)
    assert is_privileged(resolve_caller(admin_user))
    assert not is_privileged(resolve_caller(student))


def test_grant_teacher_flips_elevated_flag(admin_caller, student):
    assert not student.is_staff

    services.grant_teacher(admin_caller, student.pk)
    student.refresh_from_db()
    assert student.is_staff
    assert resolve_caller(student).has_role(TEACHER)

    # Granting twice is a no-op
    services.grant_teacher(admin_caller, student.pk)
    assert RoleAssignment.objects.filter(user=student, role=TEACHER).count() == 1

    services.revoke_teacher(admin_caller, student.pk)
    student.refresh_from_db()
    assert not student.is_staff


def test_revoking_teacher_keeps_flag_for_admins(admin_caller, admin_user):
    services.grant_teacher(admin_caller, admin_user.pk)
    services.revoke_teacher(admin_caller, admin_user.pk)
    admin_user.refresh_from_db()
    assert admin_user.is_staff


def test_grant_teacher_only_touches_target(teacher_caller, student, other_student):
    services.grant_teacher(teacher_caller, student.pk)
    other_student.refresh_from_db()
    assert not other_student.is_staff


def test_students_cannot_grant_roles(student_caller, other_student):
    with pytest.raises(Unauthorized):
        services.grant_teacher(student_caller, other_student.pk)
    with pytest.raises(Unauthorized):
        services.grant_teacher(student_caller, "00000000-0000-0000-0000-000000000000")


def test_only_admins_grant_any_role(teacher_caller, admin_caller, student):
    with pytest.raises(Unauthorized):
        services.grant_role(teacher_caller, student.pk, ADMIN)

    services.grant_role(admin_caller, student.pk, ADMIN)
    assert resolve_caller(student).has_role(ADMIN)

    with pytest.raises(InvalidInput):
        services.grant_role(admin_caller, student.pk, "overlord")

    assert services.revoke_role(admin_caller, student.pk, ADMIN)
    assert not services.revoke_role(admin_caller, student.pk, ADMIN)


def test_unknown_user(admin_caller):
    with pytest.raises(NotFound):
        services.grant_teacher(admin_caller, "00000000-0000-0000-0000-000000000000")


def test_admin_overview_requires_privilege(student_caller):
    with pytest.raises(Unauthorized):
        services.admin_overview(student_caller)
    with pytest.raises(Unauthorized):
        services.user_stats(student_caller)


def test_admin_overview_counts(teacher_caller, student_caller, student, depot, asset):
    from apps.depots import services as depot_services
    from apps.depots.models import Transaction

    depot_services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "1")
    depot_services.create_transaction(student_caller, depot.pk, asset.pk, Transaction.BUY, "1")

    rows = {row["username"]: row for row in services.admin_overview(teacher_caller)}
    assert rows["student"]["depot_count"] == 1
    assert rows["student"]["position_count"] == 1
    assert rows["student"]["transaction_count"] == 2
    assert rows["student"]["roles"] == []
    assert rows["teacher"]["roles"] == [TEACHER]
    assert len(rows["teacher"]["role_granted_at"]) == 1


def test_user_stats(admin_caller, teacher, student, other_student):
    stats = services.user_stats(admin_caller)
    assert stats == {
        "user_count": 4,
        "teacher_count": 1,
        "admin_count": 1,
        "student_count": 2,
    }
