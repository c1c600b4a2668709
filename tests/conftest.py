import datetime
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from apps.depots import services as depot_services
from apps.market.models import Asset, AssetPrice
from apps.users.models import RoleAssignment, User
from apps.users.roles import resolve_caller

PRICE_DATE = datetime.date(2000, 1, 3)


@pytest.fixture
def make_user(db):
    def _make(username, roles=()):
        user = User.objects.create_user(
            username=username,
            password="secret-pass",
            email=f"{username}@example.com",
        )
        for role in roles:
            RoleAssignment.objects.create(user=user, role=role)
        return user
    return _make


@pytest.fixture
def student(make_user):
    return make_user("student")


@pytest.fixture
def other_student(make_user):
    return make_user("other")


@pytest.fixture
def teacher(make_user):
    return make_user("teacher", roles=[RoleAssignment.TEACHER])


@pytest.fixture
def admin_user(make_user):
    return make_user("admin", roles=[RoleAssignment.ADMIN])


@pytest.fixture
def student_caller(student):
    return resolve_caller(student)


@pytest.fixture
def teacher_caller(teacher):
    return resolve_caller(teacher)


@pytest.fixture
def admin_caller(admin_user):
    return resolve_caller(admin_user)


@pytest.fixture
def make_asset(db):
    def _make(symbol, close):
        asset = Asset.objects.create(symbol=symbol, name=f"{symbol} Inc.")
        if close is not None:
            AssetPrice.objects.create(asset=asset, date=PRICE_DATE, close=Decimal(close))
        return asset
    return _make


@pytest.fixture
def asset(make_asset):
    return make_asset("ACME", "100")


@pytest.fixture
def cheap_asset(make_asset):
    return make_asset("GLOBEX", "12.5")


@pytest.fixture
def depot(student_caller):
    return depot_services.create_depot(student_caller, name="Main")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    def _client(user):
        api_client.force_authenticate(user=user)
        return api_client
    return _client
