"""
Auth Module - 회원 인증 시스템
"""
from .router import router as auth_router
from .identity import IdentityProvider, RequestIdentity, get_request_identity
from .models import (
    UserRole,
    User,
    RegisterRequest,
    SelfRegistrationRequest,
)
from .service import UserDirectory

__all__ = [
    "auth_router",
    "IdentityProvider",
    "RequestIdentity",
    "get_request_identity",
    "UserRole",
    "User",
    "RegisterRequest",
    "SelfRegistrationRequest",
    "UserDirectory",
]
