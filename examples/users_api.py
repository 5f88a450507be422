"""
User profile API protected by field-guard.

This example keeps users in memory and shows the three guard operations:
``ensure_allowed`` through ``require_action``, ``filter`` on request bodies
and responses, and ``resolve_roles`` for introspection.

Authentication is out of scope here: a tiny middleware trusts the
``X-User-Id`` header and stores a ``Principal`` on ``request.state``.

To run this example:
    1. pip install -e .
    2. uvicorn examples.users_api:app --reload
    3. curl -H "X-User-Id: 1" http://localhost:8000/users/1
"""

from typing import Any, Dict

from fastapi import Depends, FastAPI, HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware

from field_guard import GuardSession, GuardSettings, Principal, setup_guard
from field_guard.decorators import get_guard_session, require_action

USERS: Dict[str, Dict[str, Any]] = {
    "1": {
        "id": "1",
        "firstName": "Maximilian",
        "lastName": "Schmitt",
        "email": "maximilian.schmitt@example.com",
        "password": "12345678",
        "address": {"street": "Somewhere Street 61", "city": "Berlin"},
    }
}


async def is_owner(user: Principal, item: Any) -> bool:
    return item is not None and str(user.id) == str(item["id"])


PERMISSIONS = {
    "roles": {"owner": is_owner},
    "actions": {
        "guest": [
            "create:firstName",
            "create:lastName",
            "create:email",
            "create:password",
        ],
        "authenticated": ["read:firstName", "read:address.city"],
        "owner": [
            "read:firstName",
            "read:lastName",
            "read:email",
            "read:address.street",
            "read:address.city",
            "update:firstName",
            "update:lastName",
            "update:email",
            "delete",
        ],
    },
}


class HeaderUserMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        user_id = request.headers.get("X-User-Id")
        request.state.principal = Principal(id=user_id) if user_id else None
        return await call_next(request)


async def load_user(user_id: str, **_: Any) -> Dict[str, Any]:
    user = USERS.get(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


app = FastAPI(
    title="field-guard example",
    description="User profiles with field-level permissions",
    version="1.0.0",
)
app.add_middleware(HeaderUserMiddleware)
app = setup_guard(app, PERMISSIONS, GuardSettings())


@app.post("/users")
async def create_user(
    body: Dict[str, Any], guard: GuardSession = Depends(get_guard_session)
):
    """Create a user from the fields a guest may set."""
    data = await guard.filter("create", body)
    user_id = str(len(USERS) + 1)
    USERS[user_id] = {"id": user_id, **data}
    return {"id": user_id, **data}


@app.get("/users/{user_id}")
@require_action("read", item_loader=load_user)
async def read_user(request: Request, user_id: str):
    """Return the fields of a user the caller may read."""
    return await request.state.guard.filter("read", USERS[user_id])


@app.get("/users/{user_id}/roles")
@require_action("read", item_loader=load_user)
async def user_roles(request: Request, user_id: str):
    return {"roles": await request.state.guard.resolve_roles()}


@app.delete("/users/{user_id}")
@require_action("delete", item_loader=load_user)
async def delete_user(request: Request, user_id: str):
    USERS.pop(user_id)
    return {"deleted": user_id}
