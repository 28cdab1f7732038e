from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from apps.api.api.schemas import ProgressModel, ProgressUpdateRequest
from apps.api.dependencies.auth import Role, User, role_required
from apps.api.dependencies.services import OnboardingServiceDep

router = APIRouter(prefix="/onboarding", tags=["onboarding"])

VendorUser = Annotated[User, Depends(role_required(Role.VENDOR))]


@router.get("/guides/{slug}/progress", response_model=ProgressModel)
async def get_guide_progress(slug: str, service: OnboardingServiceDep, user: VendorUser) -> ProgressModel:
    return ProgressModel.from_entity(await service.get_progress(user.user_id, slug))


@router.put("/guides/{slug}/progress", response_model=ProgressModel)
async def update_guide_progress(
    slug: str,
    payload: ProgressUpdateRequest,
    service: OnboardingServiceDep,
    user: VendorUser,
) -> ProgressModel:
    progress = await service.update_progress(user.user_id, slug, payload.completed_steps)
    return ProgressModel.from_entity(progress)
