from collections.abc import Callable
from enum import Enum
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer


class Role(str, Enum):
    """Marketplace account roles."""

    ADMIN = "admin"
    VENDOR = "vendor"
    CUSTOMER = "customer"


class User:
    """Simple representation of the caller; anonymous guests carry no id and no roles."""

    def __init__(self, username: str, roles: tuple[Role, ...], user_id: str | None = None):
        self.username = username
        self.roles = roles
        self.user_id = user_id

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def account_role(self) -> str:
        """Highest role of the account, or ``guest`` for anonymous callers."""

        for role in (Role.ADMIN, Role.VENDOR, Role.CUSTOMER):
            if role in self.roles:
                return role.value
        return "guest"

    def has_role(self, role: Role) -> bool:
        return role in self.roles


TOKEN_USER_MAP: dict[str, tuple[str, str, tuple[Role, ...]]] = {
    "admin-token": ("admin-1", "admin", (Role.ADMIN,)),
    "vendor-token": ("vendor-1", "vendor", (Role.VENDOR,)),
    "customer-token": ("customer-1", "customer", (Role.CUSTOMER,)),
}

bearer_scheme = HTTPBearer(auto_error=False)


def resolve_user_from_token(token: str | None) -> User:
    """Return a user instance associated with the provided bearer token."""

    if token is None:
        return User(username="anonymous", roles=())

    if token not in TOKEN_USER_MAP:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")

    user_id, username, roles = TOKEN_USER_MAP[token]
    return User(username=username, roles=roles, user_id=user_id)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    request: Request,
) -> User:
    """Very small authentication stub.

    Static tokens map to known accounts. A real deployment verifies the token
    against the identity provider and loads the account from there.
    """

    cached = getattr(request.state, "user", None)
    if isinstance(cached, User):
        return cached

    token = credentials.credentials if credentials is not None else None
    user = resolve_user_from_token(token)
    request.state.user = user
    return user


async def require_authenticated(user: Annotated[User, Depends(get_current_user)]) -> User:
    if not user.is_authenticated:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


def role_required(role: Role) -> Callable[[User], User]:
    """Dependency factory ensuring the current user has the requested role."""

    async def dependency(user: Annotated[User, Depends(require_authenticated)]) -> User:
        if not user.has_role(role):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return dependency


require_admin = role_required(Role.ADMIN)

CurrentUser = Annotated[User, Depends(get_current_user)]
AuthenticatedUser = Annotated[User, Depends(require_authenticated)]
AdminUser = Annotated[User, Depends(require_admin)]
