import pytest
from fastapi import HTTPException

from apps.api.dependencies.auth import Role, User, require_authenticated, resolve_user_from_token, role_required


@pytest.mark.asyncio
async def test_role_required_allows_authorized_user():
    dependency = role_required(Role.ADMIN)
    user = User("alice", (Role.ADMIN,), user_id="admin-1")
    result = await dependency(user)  # type: ignore[arg-type]
    assert result.username == "alice"


@pytest.mark.asyncio
async def test_role_required_rejects_unauthorized_user():
    dependency = role_required(Role.ADMIN)
    user = User("bob", (Role.VENDOR,), user_id="vendor-1")
    with pytest.raises(HTTPException) as exc:
        await dependency(user)  # type: ignore[arg-type]

    assert exc.value.status_code == 403
    assert exc.value.detail == "Insufficient permissions"


@pytest.mark.asyncio
async def test_anonymous_caller_is_a_guest():
    user = resolve_user_from_token(None)

    assert user.account_role == "guest"
    with pytest.raises(HTTPException) as exc:
        await require_authenticated(user)  # type: ignore[arg-type]
    assert exc.value.status_code == 401


def test_unknown_token_is_rejected():
    with pytest.raises(HTTPException) as exc:
        resolve_user_from_token("forged")
    assert exc.value.status_code == 401


def test_known_tokens_map_to_marketplace_roles():
    assert resolve_user_from_token("vendor-token").account_role == "vendor"
    assert resolve_user_from_token("customer-token").user_id == "customer-1"
