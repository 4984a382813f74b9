from decimal import Decimal

import pytest
from django.contrib.auth.models import Group, User
from model_bakery import baker
from rest_framework.test import APIClient

from inventory.models import Item
from inventory.permissions import ROLES


@pytest.fixture
def groups(db):
    return {name: Group.objects.get_or_create(name=name)[0] for name in ROLES}


@pytest.fixture
def make_user(groups):
    def _make(role=None, **kwargs):
        user = baker.make(User, **kwargs)
        if role:
            user.groups.add(groups[role])
        return user

    return _make


@pytest.fixture
def make_item(db):
    def _make(quantity="10", min_level="5", **kwargs):
        kwargs.setdefault("item_type", Item.Type.STOCK)
        kwargs.setdefault("unit", "kg")
        return baker.make(
            Item,
            current_quantity=Decimal(quantity),
            min_stock_level=Decimal(min_level),
            **kwargs,
        )

    return _make


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def api(api_client, make_user):
    """Logged in API client; ``api(role)`` switches the acting user."""

    def _login(role="ADMIN"):
        api_client.force_login(make_user(role))
        return api_client

    return _login
