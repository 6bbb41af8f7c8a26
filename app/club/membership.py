"""
Membership Engine - 회원 권한 판정 및 명단 관리
"""
from typing import Any, Dict, List, Optional, Tuple, Union

from loguru import logger

from app.auth.models import User
from app.clock import Clock, utcnow
from app.club.models import (
    ClubMember,
    ClubMemberUpdate,
    ClubRole,
    MemberStatus,
    MemberWithUser,
)
from app.club.permissions import member_can
from app.club.registry import ClubRegistry, new_member_row
from app.errors import ConcurrentUpdateError, MemberNotFound, PermissionDenied
from database.supabase_client import CLUB_MEMBERS, USERS, SupabaseStore

MAX_STATUS_ATTEMPTS = 10


def member_stats_delta(old: MemberStatus, new: MemberStatus) -> Tuple[int, int]:
    """
    상태 변경 시 (total_members, active_members) 변화량

    total 은 inactive 가 아닌 행, active 는 active 행을 센다.
    """
    def counts(status: MemberStatus) -> Tuple[int, int]:
        return int(status != MemberStatus.inactive), int(status == MemberStatus.active)

    old_total, old_active = counts(old)
    new_total, new_active = counts(new)
    return new_total - old_total, new_active - old_active


class MembershipEngine:
    """클럽 회원 서비스"""

    def __init__(self, store: SupabaseStore, registry: ClubRegistry, clock: Clock = utcnow):
        self.store = store
        self.registry = registry
        self.clock = clock

    # =============================================
    # 권한
    # =============================================

    async def get_club_member(self, club_id: str, user_id: str) -> Optional[ClubMember]:
        """클럽 내 사용자 회원 행 (활성 행 우선)"""
        rows = await self.store.find(CLUB_MEMBERS, {"club_id": club_id, "user_id": user_id})
        if not rows:
            return None
        members = [ClubMember.model_validate(r) for r in rows]
        for member in members:
            if member.is_active:
                return member
        return members[0]

    async def can_user_perform_action(self, club_id: str, user_id: str, action: str) -> bool:
        member = await self.get_club_member(club_id, user_id)
        return member_can(member, action)

    async def authorize(self, club_id: str, user_id: str, action: str) -> ClubMember:
        """권한 없으면 PermissionDenied"""
        member = await self.get_club_member(club_id, user_id)
        if not member_can(member, action):
            logger.warning(f"권한 거부: user={user_id} club={club_id} action={action}")
            raise PermissionDenied()
        return member

    # =============================================
    # 명단
    # =============================================

    async def add_member(
        self,
        club_id: str,
        user_id: str,
        role: ClubRole,
        invitation_code: Optional[str] = None,
    ) -> ClubMember:
        """활성 회원 행 생성 + 클럽 stats 증가"""
        member = new_member_row(club_id, user_id, role, self.clock(), invitation_code)
        row = await self.store.insert(CLUB_MEMBERS, member.model_dump(mode="json"))
        await self.registry.adjust_member_stats(club_id, 1)
        logger.info(f"회원 가입: user={user_id} club={club_id} role={role.value}")
        return ClubMember.model_validate(row)

    async def get_member(self, club_id: str, member_id: str) -> Optional[ClubMember]:
        row = await self.store.get(CLUB_MEMBERS, member_id)
        if not row or row.get("club_id") != club_id:
            return None
        return ClubMember.model_validate(row)

    async def list_club_members(
        self,
        club_id: str,
        status: Optional[MemberStatus] = MemberStatus.active,
    ) -> List[ClubMember]:
        """상태별 회원 목록 (status=None 이면 전체)"""
        filters = {"club_id": club_id}
        if status is not None:
            filters["status"] = status.value
        rows = await self.store.find(CLUB_MEMBERS, filters, order_by="joined_at")
        return [ClubMember.model_validate(r) for r in rows]

    async def get_member_with_user_info(self, club_id: str, member_id: str) -> Optional[MemberWithUser]:
        member = await self.get_member(club_id, member_id)
        if member is None:
            return None
        return await self._attach_user(member)

    async def _attach_user(self, member: ClubMember) -> MemberWithUser:
        row = await self.store.get(USERS, member.user_id)
        return MemberWithUser(member=member, user=User.model_validate(row) if row else None)

    async def list_members_with_user_info(
        self,
        club_id: str,
        status: Optional[MemberStatus] = MemberStatus.active,
    ) -> List[MemberWithUser]:
        members = await self.list_club_members(club_id, status)
        return [await self._attach_user(m) for m in members]

    async def update_club_member(
        self,
        club_id: str,
        member_id: str,
        fields: Union[ClubMemberUpdate, Dict[str, Any]],
    ) -> ClubMember:
        """
        role / permissions / status merge-patch

        status 가 바뀌면 이전 상태를 조건으로 쓰고 클럽 stats 도 함께 맞춘다.
        """
        if isinstance(fields, ClubMemberUpdate):
            fields = fields.model_dump(mode="json", exclude_none=True)
        patch = {k: v for k, v in fields.items() if k in ("role", "permissions", "status")}

        if "status" in patch:
            status = MemberStatus(patch.pop("status"))
            return await self._change_status(club_id, member_id, status, patch)

        patch["updated_at"] = self.clock().isoformat()
        row = await self.store.update(CLUB_MEMBERS, member_id, patch, expected={"club_id": club_id})
        if row is None:
            raise MemberNotFound()
        logger.info(f"회원 수정: member={member_id} club={club_id} {patch}")
        return ClubMember.model_validate(row)

    async def remove_club_member(self, club_id: str, member_id: str) -> ClubMember:
        """
        회원 탈퇴 (soft delete)

        active / suspended 행을 inactive 로 바꾸고 left_at 을 기록한다.
        이미 비활성인 회원은 그대로 반환한다.
        """
        return await self._change_status(club_id, member_id, MemberStatus.inactive)

    async def _change_status(
        self,
        club_id: str,
        member_id: str,
        status: MemberStatus,
        extra: Optional[Dict[str, Any]] = None,
    ) -> ClubMember:
        """읽은 상태를 조건으로 상태 변경, 충돌 시 다시 읽어 재시도"""
        for _ in range(MAX_STATUS_ATTEMPTS):
            current = await self.get_member(club_id, member_id)
            if current is None:
                raise MemberNotFound()
            if current.status == status and not extra:
                logger.info(f"상태 변경 없음: member={member_id} ({status.value})")
                return current

            now = self.clock().isoformat()
            patch = dict(extra or {}, status=status.value, updated_at=now)
            if current.status != status:
                if status == MemberStatus.inactive:
                    patch["left_at"] = now
                elif current.status == MemberStatus.inactive:
                    patch["left_at"] = None

            row = await self.store.update(
                CLUB_MEMBERS,
                member_id,
                patch,
                expected={"club_id": club_id, "status": current.status.value},
            )
            if row is None:
                logger.debug(f"회원 상태 충돌, 재시도: member={member_id}")
                continue

            total_delta, active_delta = member_stats_delta(current.status, status)
            if total_delta or active_delta:
                await self.registry.adjust_member_stats(club_id, total_delta, active_delta)
            logger.info(
                f"회원 상태 변경: member={member_id} club={club_id} "
                f"{current.status.value} → {status.value}"
            )
            return ClubMember.model_validate(row)

        raise ConcurrentUpdateError()
