"""
Club Management Dependencies

인증 및 권한 체크 의존성
"""

from typing import Dict, Optional

from fastapi import Depends

from app.auth.identity import RequestIdentity, get_request_identity
from app.errors import PermissionDenied

from .models import ClubMember
from .permissions import ACTIONS, member_can
from .service import ClubService

_club_service: Optional[ClubService] = None


def get_club_service() -> ClubService:
    """FastAPI 의존성용 싱글톤"""
    global _club_service
    if _club_service is None:
        _club_service = ClubService()
    return _club_service


class ClubMemberContext:
    """요청자 + 클럽 멤버십"""

    def __init__(self, identity: RequestIdentity, member: ClubMember):
        self.identity = identity
        self.member = member

    def can(self, action: str) -> bool:
        return member_can(self.member, action)

    def capabilities(self) -> Dict[str, bool]:
        """화면 버튼 표시용 액션별 허용 여부"""
        return {action: self.can(action) for action in ACTIONS}


async def get_club_member_context(
    club_id: str,
    identity: RequestIdentity = Depends(get_request_identity),
    service: ClubService = Depends(get_club_service),
) -> ClubMemberContext:
    """경로의 club_id 에 대한 활성 멤버십 필수"""
    member = await service.membership.get_club_member(club_id, identity.uid)
    if member is None or not member.is_active:
        raise PermissionDenied("You are not a member of this club")
    return ClubMemberContext(identity, member)
