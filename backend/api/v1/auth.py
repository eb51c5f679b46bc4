from fastapi import APIRouter, Depends
from api.dependencies import get_auth_service, get_current_identity, get_session_service
from core.config import settings
from schemas.account_schema import Identity
from schemas.auth_schema import (
    ChangePasswordRequest,
    EmailRequest,
    ForgotPasswordVerifyRequest,
    SigninRequest,
    SignupRequest,
    VerifyCodeRequest,
)
from services.auth_service import AuthService, session_payload
from services.session_service import SessionService
from utils.responses import success_json

router = APIRouter(prefix=settings.API_PREFIX)

@router.post("/signup", status_code=201)
async def signup(body: SignupRequest, service: AuthService = Depends(get_auth_service)):
    account = await service.signup(body)
    return success_json("Your account has been created successfully", status_code=201, result=account)

@router.post("/signin")
async def signin(body: SigninRequest, service: AuthService = Depends(get_auth_service)):
    account, token = await service.signin(body)
    response = success_json("Logged in successfully", data=session_payload(account), token=token)
    service.sessions.attach(response, token)
    return response

@router.post("/signout")
async def signout(
    identity: Identity = Depends(get_current_identity),
    sessions: SessionService = Depends(get_session_service),
):
    response = success_json("logged out successfully")
    sessions.clear(response)
    return response

@router.patch("/send-verification-code")
async def send_verification_code(body: EmailRequest, service: AuthService = Depends(get_auth_service)):
    await service.send_verification_code(body)
    return success_json("Code sent!")

@router.patch("/verify-verification-code")
async def verify_verification_code(body: VerifyCodeRequest, service: AuthService = Depends(get_auth_service)):
    account, token = await service.verify_verification_code(body)
    response = success_json("your account has been verified!", data=session_payload(account), token=token)
    service.sessions.attach(response, token)
    return response

@router.patch("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    identity: Identity = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service),
):
    await service.change_password(identity, body)
    return success_json("Password updated!!")

@router.patch("/send-forgot-password-code")
async def send_forgot_password_code(body: EmailRequest, service: AuthService = Depends(get_auth_service)):
    await service.send_forgot_password_code(body)
    return success_json("Code sent!")

@router.patch("/verify-forgot-password-code")
async def verify_forgot_password_code(body: ForgotPasswordVerifyRequest, service: AuthService = Depends(get_auth_service)):
    await service.verify_forgot_password_code(body)
    return success_json("Password updated!!")
