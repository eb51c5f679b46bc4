from fastapi import APIRouter, Depends
from api.dependencies import get_auth_service, get_current_identity
from core.config import settings
from schemas.account_schema import Identity
from schemas.auth_schema import UpdateProfileRequest
from services.auth_service import AuthService
from utils.responses import success_json

router = APIRouter(prefix=settings.API_PREFIX)

@router.get("/me")
async def read_me(identity: Identity = Depends(get_current_identity), service: AuthService = Depends(get_auth_service)):
    account = await service.get_me(identity)
    return success_json("Authenticated user fetched successfully", data=account)

@router.patch("/update-profile")
async def update_profile(
    body: UpdateProfileRequest,
    identity: Identity = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service),
):
    account = await service.update_profile(identity, body)
    return success_json("Profile updated successfully", data=account)
