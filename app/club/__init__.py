"""
Club Management Module

스포츠 클럽 SaaS 클럽/회원/초대 관리
- 클럽 생성 및 설정
- 역할 기반 권한 (owner / admin / coach / member)
- 이메일 초대, 일괄 등록 링크
"""

from .router import router as club_router, join_router
from .models import (
    ClubRole,
    MemberStatus,
    InvitationType,
    InvitationStatus,
)
from .dependencies import ClubMemberContext
from .service import ClubService

__all__ = [
    "club_router",
    "join_router",
    "ClubRole",
    "MemberStatus",
    "InvitationType",
    "InvitationStatus",
    "ClubMemberContext",
    "ClubService",
]
