"""
Identity Provider - Supabase Auth 래퍼

비밀번호 로그인은 호출마다 새 클라이언트로 수행한다
(공유 클라이언트에 세션이 남지 않도록).
"""
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Request
from jose import JWTError, jwt
from loguru import logger
from supabase import AuthError, Client, create_client

from app.config import SupabaseSettings, get_supabase_settings
from app.errors import AuthenticationRequired, IdentityError
from database.supabase_client import get_supabase_client


@dataclass(frozen=True)
class RequestIdentity:
    """요청 단위 인증 주체 (서비스 호출에 명시적으로 전달)"""
    uid: str
    email: Optional[str] = None


@dataclass
class AuthSession:
    """로그인 세션"""
    identity: RequestIdentity
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


def _default_session_client() -> Client:
    settings = get_supabase_settings()
    return create_client(settings.supabase_url, settings.supabase_key)


def extract_token(request: Request) -> Optional[str]:
    """Authorization 헤더 또는 access_token 쿠키에서 토큰 추출"""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return request.cookies.get("access_token")


class IdentityProvider:
    """Supabase Auth (GoTrue) 호출 모음"""

    def __init__(
        self,
        client: Optional[Client] = None,
        session_client_factory: Callable[[], Client] = _default_session_client,
        settings: Optional[SupabaseSettings] = None,
    ):
        self.client = client or get_supabase_client()
        self.session_client_factory = session_client_factory
        self.settings = settings or get_supabase_settings()

    # =============================================
    # 가입 / 로그인
    # =============================================

    async def register(self, email: str, password: str, display_name: Optional[str] = None) -> RequestIdentity:
        """계정 생성 (인증 메일은 Supabase 가 발송)"""
        try:
            response = self.client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"display_name": display_name or email.split("@")[0]}},
            })
        except AuthError as e:
            logger.warning(f"가입 거부 ({email}): {e}")
            raise IdentityError(str(e)) from e

        if response.user is None:
            raise IdentityError("Registration failed")
        logger.info(f"계정 생성: {response.user.id}")
        return RequestIdentity(uid=response.user.id, email=response.user.email or email)

    async def authenticate(self, email: str, password: str) -> AuthSession:
        """이메일 + 비밀번호 로그인"""
        try:
            response = self.session_client_factory().auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except AuthError as e:
            logger.info(f"로그인 실패 ({email}): {e}")
            raise IdentityError("Invalid email or password") from e

        if response.user is None or response.session is None:
            raise IdentityError("Invalid email or password")
        session = response.session
        return AuthSession(
            identity=RequestIdentity(uid=response.user.id, email=response.user.email),
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_in=session.expires_in,
        )

    async def reauthenticate(self, email: str, password: str) -> RequestIdentity:
        """민감한 변경 전 현재 비밀번호 확인"""
        try:
            session = await self.authenticate(email, password)
        except IdentityError as e:
            raise IdentityError("Current password is incorrect") from e
        return session.identity

    # =============================================
    # 메일
    # =============================================

    async def send_password_reset(self, email: str, redirect_to: Optional[str] = None) -> None:
        options = {"redirect_to": redirect_to} if redirect_to else {}
        try:
            self.client.auth.reset_password_for_email(email, options)
        except AuthError as e:
            raise IdentityError(str(e)) from e
        logger.info(f"비밀번호 재설정 메일 발송: {email}")

    async def resend_verification(self, email: str) -> None:
        try:
            self.client.auth.resend({"type": "signup", "email": email})
        except AuthError as e:
            raise IdentityError(str(e)) from e
        logger.info(f"인증 메일 재발송: {email}")

    # =============================================
    # 계정 변경 (재인증 후)
    # =============================================

    async def change_email(self, uid: str, new_email: str) -> None:
        try:
            self.client.auth.admin.update_user_by_id(uid, {"email": new_email})
        except AuthError as e:
            raise IdentityError(str(e)) from e
        logger.info(f"이메일 변경: {uid}")

    async def change_password(self, uid: str, new_password: str) -> None:
        try:
            self.client.auth.admin.update_user_by_id(uid, {"password": new_password})
        except AuthError as e:
            raise IdentityError(str(e)) from e
        logger.info(f"비밀번호 변경: {uid}")

    # =============================================
    # 토큰 검증
    # =============================================

    async def resolve(self, token: str) -> RequestIdentity:
        """
        액세스 토큰 → RequestIdentity

        JWT secret 이 설정되어 있으면 로컬 검증, 아니면 auth.get_user 호출
        """
        if self.settings.supabase_jwt_secret:
            try:
                payload = jwt.decode(
                    token,
                    self.settings.supabase_jwt_secret,
                    algorithms=["HS256"],
                    audience=self.settings.supabase_jwt_audience,
                )
            except JWTError as e:
                raise AuthenticationRequired("Invalid or expired token") from e
            uid = payload.get("sub")
            if not uid:
                raise AuthenticationRequired("Invalid or expired token")
            return RequestIdentity(uid=uid, email=payload.get("email"))

        try:
            response = self.client.auth.get_user(token)
        except AuthError as e:
            raise AuthenticationRequired("Invalid or expired token") from e
        if response is None or response.user is None:
            raise AuthenticationRequired("Invalid or expired token")
        return RequestIdentity(uid=response.user.id, email=response.user.email)


_identity_provider: Optional[IdentityProvider] = None


def get_identity_provider() -> IdentityProvider:
    """FastAPI 의존성용 싱글톤"""
    global _identity_provider
    if _identity_provider is None:
        _identity_provider = IdentityProvider()
    return _identity_provider


async def get_request_identity(
    request: Request,
    provider: IdentityProvider = Depends(get_identity_provider),
) -> RequestIdentity:
    """인증 필수 의존성"""
    token = extract_token(request)
    if not token:
        raise AuthenticationRequired()
    return await provider.resolve(token)
