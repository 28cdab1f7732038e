from fastapi import APIRouter, Depends

from apps.api.dependencies.auth import AuthenticatedUser, require_admin

router = APIRouter(prefix="/ping", tags=["health"])


@router.get("", summary="Public health check")
async def ping() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/secure",
    summary="Administrator only health check",
    dependencies=[Depends(require_admin)],
)
async def secure_ping(user: AuthenticatedUser) -> dict[str, str]:
    return {"status": "ok", "user": user.username, "role": user.account_role}
