from types import SimpleNamespace

import pytest
from catalog.tests.factories import WarehouseFactory
from customer.tests.factories import CustomerFactory
from projects.tests.factories import make_admin, make_member
from rest_framework.test import APIClient


@pytest.fixture
def shop(db):
    """A project with an admin, a plain member, two warehouses and a customer."""

    admin, project = make_admin()
    return SimpleNamespace(
        project=project,
        admin=admin,
        member=make_member(project),
        main=WarehouseFactory(project=project, name="Main", is_default=True),
        backup=WarehouseFactory(project=project, name="Backup"),
        customer=CustomerFactory(project=project, name="Ada Lovelace", email="ada@example.com"),
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_client(shop, api_client):
    api_client.force_authenticate(user=shop.admin)
    return api_client


@pytest.fixture
def member_client(shop):
    client = APIClient()
    client.force_authenticate(user=shop.member)
    return client
