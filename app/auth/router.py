"""
Auth Router - FastAPI 인증 라우터
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger

from app.config import get_app_settings

from .identity import IdentityProvider, RequestIdentity, get_identity_provider, get_request_identity
from .models import (
    EmailChangeRequest,
    EmailRequest,
    LoginRequest,
    PasswordChangeRequest,
    PreferencesUpdate,
    ProfileUpdate,
    RegisterRequest,
    SessionResponse,
    SocialProfile,
    User,
)
from .service import UserDirectory, get_user_directory

router = APIRouter(prefix="/auth", tags=["auth"])


# =============================================
# 가입 / 로그인
# =============================================

@router.post("/register", response_model=User, status_code=201)
async def register(
    request: RegisterRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
    directory: UserDirectory = Depends(get_user_directory),
):
    """
    이메일 회원가입

    계정 생성 후 사용자 문서를 만든다. 인증 메일은 Supabase 가 발송한다.
    """
    profile = request.to_profile()
    identity = await provider.register(request.email, request.password, profile.display_name)
    user = await directory.create_user(
        identity.uid,
        identity.email or request.email,
        profile=profile,
        phone=request.phone,
    )
    logger.info(f"회원가입 완료: {user.id}")
    return user


@router.post("/login", response_model=SessionResponse)
async def login(
    request: LoginRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
    directory: UserDirectory = Depends(get_user_directory),
):
    """이메일 로그인 (로그인 횟수/최근 접속 기록)"""
    session = await provider.authenticate(request.email, request.password)
    user = await directory.record_login(session.identity.uid)

    response = SessionResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        user=user,
    )
    json_response = JSONResponse(content=response.model_dump(mode="json"))
    json_response.set_cookie(
        key="access_token",
        value=session.access_token,
        httponly=True,
        samesite="lax",
        max_age=session.expires_in,
    )
    return json_response


@router.post("/logout")
async def logout():
    """쿠키 삭제"""
    response = JSONResponse(content={"message": "Logged out"})
    response.delete_cookie("access_token")
    return response


@router.post("/password-reset")
async def password_reset(
    request: EmailRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """비밀번호 재설정 메일 발송"""
    settings = get_app_settings()
    await provider.send_password_reset(
        request.email,
        redirect_to=f"{settings.public_base_url.rstrip('/')}/reset-password",
    )
    return {"message": "Password reset email sent. Please check your inbox."}


@router.post("/verify-email")
async def resend_verification(
    request: EmailRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """인증 메일 재발송"""
    await provider.resend_verification(request.email)
    return {"message": "Verification email sent."}


@router.post("/social/reconcile", response_model=User)
async def reconcile_social_sign_in(
    request: SocialProfile,
    identity: RequestIdentity = Depends(get_request_identity),
    directory: UserDirectory = Depends(get_user_directory),
):
    """소셜 로그인 후 사용자 문서가 없으면 생성"""
    user, created = await directory.ensure_user(identity, request.display_name, request.photo_url)
    if created:
        logger.info(f"소셜 로그인 사용자 생성: {user.id}")
    return user


# =============================================
# 내 정보
# =============================================

@router.get("/me", response_model=User)
async def get_my_profile(
    identity: RequestIdentity = Depends(get_request_identity),
    directory: UserDirectory = Depends(get_user_directory),
):
    """내 사용자 문서"""
    return await directory.require_user(identity.uid)


@router.patch("/me", response_model=User)
async def update_my_profile(
    update: ProfileUpdate,
    identity: RequestIdentity = Depends(get_request_identity),
    directory: UserDirectory = Depends(get_user_directory),
):
    """프로필 수정"""
    return await directory.update_profile(identity.uid, update)


@router.patch("/me/preferences", response_model=User)
async def update_my_preferences(
    update: PreferencesUpdate,
    identity: RequestIdentity = Depends(get_request_identity),
    directory: UserDirectory = Depends(get_user_directory),
):
    """언어/알림/공개 설정 수정"""
    return await directory.update_preferences(identity.uid, update)


@router.post("/me/email", response_model=User)
async def change_my_email(
    request: EmailChangeRequest,
    identity: RequestIdentity = Depends(get_request_identity),
    provider: IdentityProvider = Depends(get_identity_provider),
    directory: UserDirectory = Depends(get_user_directory),
):
    """이메일 변경 (현재 비밀번호 재인증)"""
    user = await directory.require_user(identity.uid)
    await provider.reauthenticate(user.email, request.current_password)
    await provider.change_email(identity.uid, request.new_email)
    return await directory.update_email(identity.uid, request.new_email)


@router.post("/me/password")
async def change_my_password(
    request: PasswordChangeRequest,
    identity: RequestIdentity = Depends(get_request_identity),
    provider: IdentityProvider = Depends(get_identity_provider),
    directory: UserDirectory = Depends(get_user_directory),
):
    """비밀번호 변경 (현재 비밀번호 재인증)"""
    user = await directory.require_user(identity.uid)
    await provider.reauthenticate(user.email, request.current_password)
    await provider.change_password(identity.uid, request.password)
    return {"message": "Password updated successfully"}
