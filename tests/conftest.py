import os
import sys

import pytest

# Ensure project root is on sys.path so tests can import the package and examples
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from field_guard.models import Principal  # noqa: E402


async def _is_owner(user, item):
    return item is not None and str(user.id) == str(item["id"])


@pytest.fixture
def owner():
    return Principal(id="1", name="Maximilian")


@pytest.fixture
def unrelated():
    return Principal(id="2", name="Someone Else")


@pytest.fixture
def item():
    return {
        "id": 1,
        "firstName": "Maximilian",
        "lastName": "Schmitt",
        "email": "maximilian.schmitt@googlemail.com",
        "password": "12345678",
    }


@pytest.fixture
def permissions():
    """Permission table mapping shared by the guard tests."""
    return {
        "roles": {"owner": _is_owner},
        "actions": {
            "guest": [
                "create:firstName",
                "create:lastName",
                "create:email",
                "create:password",
                # send password reset token
                "sendPasswordResetToken:email",
            ],
            "owner": [
                "read:firstName",
                "read:lastName",
                "read:email",
                "update:firstName",
                "update:lastName",
                "update:email",
                "update:password",
                "delete",
            ],
        },
    }
