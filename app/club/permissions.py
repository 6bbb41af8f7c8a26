"""
Club Permissions - 권한 판정 및 권한 게이트
"""
import functools
from typing import List, Optional

from app.club.models import ClubMember, ClubRole

# 액션
VIEW = "view"
MANAGE_MEMBERS = "manage_members"
MANAGE_SETTINGS = "manage_settings"
ALL = "all"  # 와일드카드

ACTIONS = (VIEW, MANAGE_MEMBERS, MANAGE_SETTINGS)

# 권한 목록과 무관하게 모든 액션 허용
SUPER_ROLES = (ClubRole.owner, ClubRole.admin)


def derive_permissions(role: ClubRole) -> List[str]:
    """가입 시 역할에서 권한 목록 생성"""
    if role == ClubRole.admin:
        return [ALL]
    return [VIEW]


def member_can(member: Optional[ClubMember], action: str) -> bool:
    """
    회원 행 기준 권한 판정

    - 행 없음 / 비활성 → False
    - owner, admin → True
    - 그 외 → permissions 에 action 또는 all 포함 여부
    """
    if member is None or not member.is_active:
        return False
    if member.role in SUPER_ROLES:
        return True
    return action in member.permissions or ALL in member.permissions


def requires_permission(action: str):
    """
    서비스 메서드 권한 게이트

    감싼 메서드는 (self, club_id, actor, ...) 시그니처여야 하며,
    self.membership.authorize 가 PermissionDenied 를 올리면 본문은 실행되지 않는다.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, club_id: str, actor, *args, **kwargs):
            await self.membership.authorize(club_id, actor.uid, action)
            return await func(self, club_id, actor, *args, **kwargs)

        wrapper.required_action = action
        return wrapper

    return decorator
