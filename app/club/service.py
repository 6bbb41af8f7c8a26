"""
Club Service - 라우터가 호출하는 클럽 기능 진입점

권한이 필요한 작업은 requires_permission 게이트를 거치고,
회원 명단 화면 규칙(owner 보호, 본인 변경 금지)도 여기서 검사한다.
"""
from typing import List, Optional

from loguru import logger

from app.auth.identity import IdentityProvider, RequestIdentity
from app.auth.models import SelfRegistrationRequest
from app.auth.service import UserDirectory
from app.clock import Clock, utcnow
from app.club.invitations import InvitationEngine
from app.club.membership import MembershipEngine
from app.club.models import (
    BulkInvitationCreate,
    Club,
    ClubCreate,
    ClubMember,
    ClubMemberUpdate,
    ClubRole,
    ClubUpdate,
    ClubWithMembership,
    InvitationCheck,
    InvitationCreate,
    InvitationType,
    InvitationView,
    MemberStatus,
    MemberWithUser,
)
from app.club.permissions import MANAGE_MEMBERS, MANAGE_SETTINGS, VIEW, requires_permission
from app.club.registry import ClubRegistry
from app.config import AppSettings, get_app_settings
from app.errors import ClubNotFound, InvitationNotFound, MemberNotFound, PermissionDenied, RosterRuleViolation
from database.supabase_client import SupabaseStore, get_store


class ClubService:
    """클럽 / 회원 / 초대 서비스"""

    def __init__(
        self,
        store: Optional[SupabaseStore] = None,
        clock: Clock = utcnow,
        settings: Optional[AppSettings] = None,
    ):
        self.store = store or get_store()
        self.clock = clock
        self.settings = settings or get_app_settings()
        self.registry = ClubRegistry(self.store, clock, self.settings)
        self.membership = MembershipEngine(self.store, self.registry, clock)
        self.invitations = InvitationEngine(self.store, self.membership, clock, self.settings)

    # =============================================
    # 클럽
    # =============================================

    async def create_club(self, actor: RequestIdentity, data: ClubCreate) -> Club:
        return await self.registry.create_club(data, actor.uid)

    async def list_my_clubs(self, actor: RequestIdentity) -> List[Club]:
        return await self.registry.get_user_clubs(actor.uid)

    async def get_current_club(self, actor: RequestIdentity) -> Club:
        """기본 클럽 (활성 회원만)"""
        club = await self.registry.get_the_club()
        if club is None:
            raise ClubNotFound()
        member = await self.membership.get_club_member(club.id, actor.uid)
        if member is None or not member.is_active:
            raise PermissionDenied("You are not a member of this club")
        return club

    async def get_club_for_member(self, club_id: str, actor: RequestIdentity) -> ClubWithMembership:
        """클럽 상세 (활성 회원만)"""
        club = await self.registry.get_club_by_id(club_id)
        if club is None:
            raise ClubNotFound()
        member = await self.membership.get_club_member(club_id, actor.uid)
        if member is None or not member.is_active:
            raise PermissionDenied("You are not a member of this club")
        return ClubWithMembership(club=club, membership=member)

    @requires_permission(MANAGE_SETTINGS)
    async def update_settings(self, club_id: str, actor: RequestIdentity, update: ClubUpdate) -> Club:
        fields = update.model_dump(mode="json", exclude_none=True)
        if "contact" in fields and not fields["contact"].get("whatsapp"):
            fields["contact"]["whatsapp"] = fields["contact"].get("phone", "")
        return await self.registry.update_club(club_id, fields)

    # =============================================
    # 회원
    # =============================================

    @requires_permission(VIEW)
    async def list_members(
        self,
        club_id: str,
        actor: RequestIdentity,
        status: Optional[MemberStatus] = MemberStatus.active,
    ) -> List[MemberWithUser]:
        return await self.membership.list_members_with_user_info(club_id, status)

    async def get_my_membership(self, club_id: str, actor: RequestIdentity) -> ClubMember:
        member = await self.membership.get_club_member(club_id, actor.uid)
        if member is None:
            raise MemberNotFound()
        return member

    @requires_permission(VIEW)
    async def get_member(self, club_id: str, actor: RequestIdentity, member_id: str) -> MemberWithUser:
        result = await self.membership.get_member_with_user_info(club_id, member_id)
        if result is None:
            raise MemberNotFound()
        return result

    async def _editable_member(self, club_id: str, actor: RequestIdentity, member_id: str) -> ClubMember:
        target = await self.membership.get_member(club_id, member_id)
        if target is None:
            raise MemberNotFound()
        if target.role == ClubRole.owner:
            raise RosterRuleViolation("The club owner cannot be changed or removed")
        if target.user_id == actor.uid:
            raise RosterRuleViolation("You cannot change or remove your own membership")
        return target

    @requires_permission(MANAGE_MEMBERS)
    async def change_member(
        self,
        club_id: str,
        actor: RequestIdentity,
        member_id: str,
        update: ClubMemberUpdate,
    ) -> ClubMember:
        await self._editable_member(club_id, actor, member_id)
        if update.role == ClubRole.owner:
            raise RosterRuleViolation("Owner role cannot be assigned")
        return await self.membership.update_club_member(club_id, member_id, update)

    @requires_permission(MANAGE_MEMBERS)
    async def remove_member(self, club_id: str, actor: RequestIdentity, member_id: str) -> ClubMember:
        await self._editable_member(club_id, actor, member_id)
        return await self.membership.remove_club_member(club_id, member_id)

    # =============================================
    # 초대
    # =============================================

    async def _require_club(self, club_id: str) -> Club:
        club = await self.registry.get_club_by_id(club_id)
        if club is None:
            raise ClubNotFound()
        return club

    @requires_permission(MANAGE_MEMBERS)
    async def invite_member(self, club_id: str, actor: RequestIdentity, request: InvitationCreate) -> InvitationView:
        await self._require_club(club_id)
        invitation = await self.invitations.create_invitation(
            club_id,
            actor.uid,
            request.email,
            role=request.role,
            expires_in_days=request.expires_in_days,
            message=request.message,
        )
        return self.invitations.present(invitation)

    @requires_permission(MANAGE_MEMBERS)
    async def create_registration_link(
        self,
        club_id: str,
        actor: RequestIdentity,
        request: BulkInvitationCreate,
    ) -> InvitationView:
        await self._require_club(club_id)
        invitation = await self.invitations.create_bulk_invitation(
            club_id,
            actor.uid,
            expires_in_days=request.expires_in_days,
            member_limit=request.member_limit,
        )
        return self.invitations.present(invitation)

    @requires_permission(MANAGE_MEMBERS)
    async def list_invitations(self, club_id: str, actor: RequestIdentity) -> List[InvitationView]:
        return await self.invitations.list_invitations(club_id)

    async def check_invitation(self, code: str, club_id: Optional[str] = None) -> InvitationCheck:
        """가입 화면용 초대 검증"""
        invitation = await self.invitations.validate(code, club_id)
        club = await self.registry.get_club_by_id(invitation.club_id)
        if club is None:
            raise InvitationNotFound()
        remaining = None
        if invitation.is_bulk and invitation.member_limit is not None:
            remaining = invitation.member_limit - invitation.used_count
        return InvitationCheck(
            code=invitation.code,
            club_id=club.id,
            club_name=club.name,
            type=invitation.type,
            role=invitation.role,
            expires_at=invitation.expires_at,
            remaining=remaining,
        )

    async def accept_invitation(
        self,
        code: str,
        actor: RequestIdentity,
        club_id: Optional[str] = None,
    ) -> ClubMember:
        """로그인 사용자가 초대 수락"""
        return await self.invitations.consume(code, actor.uid, club_id)

    async def self_register(
        self,
        code: str,
        request: SelfRegistrationRequest,
        identity_provider: IdentityProvider,
        directory: UserDirectory,
    ) -> ClubMember:
        """
        일괄 등록 링크로 가입

        코드 검증 → 계정 생성 → 사용자 문서 생성 → 코드 사용 순.
        앞 단계가 성공한 뒤 실패해도 되돌리지 않는다.
        """
        invitation = await self.invitations.validate(code)
        if invitation.type != InvitationType.bulk:
            raise InvitationNotFound()

        identity = await identity_provider.register(
            request.email,
            request.password,
            display_name=request.to_profile().display_name,
        )
        await directory.create_user(
            identity.uid,
            identity.email or request.email,
            profile=request.to_profile(),
            phone=request.phone,
            emergency_contact=request.emergency_contact,
            medical=request.medical,
        )
        member = await self.invitations.consume(code, identity.uid)
        logger.info(f"일괄 링크 가입 완료: user={identity.uid} club={member.club_id}")
        return member
