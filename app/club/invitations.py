"""
Invitation Engine - 초대 코드 생성/검증/사용

1회용 초대: pending → used (status=pending 조건부 claim)
일괄 등록 링크: active, used_count 를 읽은 값 조건부로 +1 (member_limit 초과 불가)
만료(expired)는 저장하지 않고 조회 시점 시각으로 판정한다.
"""
import secrets
import string
import uuid
from datetime import timedelta
from typing import List, Optional
from urllib.parse import urlencode

from loguru import logger

from app.clock import Clock, utcnow
from app.club.membership import MembershipEngine
from app.club.models import (
    ClubMember,
    ClubRole,
    Invitation,
    InvitationStatus,
    InvitationType,
    InvitationView,
)
from app.config import AppSettings, get_app_settings
from app.errors import (
    ConcurrentUpdateError,
    InvitationExpired,
    InvitationLimitReached,
    InvitationNotFound,
    InvitationUsed,
)
from database.supabase_client import CLUB_INVITATIONS, DuplicateKeyError, SupabaseStore

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8

MAX_CODE_ATTEMPTS = 10
MAX_CLAIM_ATTEMPTS = 20

USABLE_STATUSES = (InvitationStatus.pending, InvitationStatus.active)


def generate_invitation_code(length: int = CODE_LENGTH) -> str:
    """A-Z0-9 균등 추출 코드"""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def bulk_join_link(base_url: str, code: str) -> str:
    return f"{base_url.rstrip('/')}/join/{code}"


def targeted_join_link(base_url: str, code: str, club_id: str) -> str:
    query = urlencode({"code": code, "clubId": club_id})
    return f"{base_url.rstrip('/')}/clubs/join?{query}"


def join_link(base_url: str, invitation: Invitation) -> str:
    if invitation.is_bulk:
        return bulk_join_link(base_url, invitation.code)
    return targeted_join_link(base_url, invitation.code, invitation.club_id)


def check_invitation(invitation: Optional[Invitation], now) -> Invitation:
    """
    사용 가능 여부 검사 (초대 문서는 수정하지 않음)

    pending/active 이고, 만료 전이고, 일괄 링크는 used_count < member_limit
    """
    if invitation is None:
        raise InvitationNotFound()
    if invitation.status not in USABLE_STATUSES:
        if invitation.status == InvitationStatus.expired:
            raise InvitationExpired()
        raise InvitationUsed()
    if invitation.is_expired(now):
        raise InvitationExpired()
    if invitation.is_bulk and invitation.member_limit is not None:
        if invitation.used_count >= invitation.member_limit:
            raise InvitationLimitReached()
    return invitation


class InvitationEngine:
    """초대 서비스"""

    def __init__(
        self,
        store: SupabaseStore,
        membership: MembershipEngine,
        clock: Clock = utcnow,
        settings: Optional[AppSettings] = None,
    ):
        self.store = store
        self.membership = membership
        self.clock = clock
        self.settings = settings or get_app_settings()

    # =============================================
    # 생성
    # =============================================

    async def _code_in_use(self, code: str) -> bool:
        rows = await self.store.find(CLUB_INVITATIONS, {"code": code}, limit=1)
        return bool(rows)

    async def _insert(self, build) -> Invitation:
        """
        전역 유일 코드로 저장

        build(code) 가 저장할 Invitation 을 만든다. 코드 충돌 시 재생성.
        """
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_invitation_code()
            if await self._code_in_use(code):
                continue
            invitation = build(code)
            try:
                row = await self.store.insert(CLUB_INVITATIONS, invitation.model_dump(mode="json"))
            except DuplicateKeyError:
                continue
            return Invitation.model_validate(row)
        raise ConcurrentUpdateError("Could not allocate a unique invitation code")

    async def create_invitation(
        self,
        club_id: str,
        created_by: str,
        email: str,
        role: ClubRole = ClubRole.member,
        expires_in_days: Optional[int] = None,
        message: Optional[str] = None,
    ) -> Invitation:
        """이메일 지정 1회용 초대"""
        now = self.clock()
        days = expires_in_days or self.settings.invitation_expiry_days

        def build(code: str) -> Invitation:
            return Invitation(
                id=str(uuid.uuid4()),
                club_id=club_id,
                code=code,
                type=InvitationType.single,
                email=email,
                role=role,
                message=message or None,
                status=InvitationStatus.pending,
                created_at=now,
                created_by=created_by,
                expires_at=now + timedelta(days=days),
            )

        invitation = await self._insert(build)
        logger.info(f"초대 생성: club={club_id} email={email} role={role.value} code={invitation.code}")
        return invitation

    async def create_bulk_invitation(
        self,
        club_id: str,
        created_by: str,
        expires_in_days: Optional[int] = None,
        member_limit: Optional[int] = None,
    ) -> Invitation:
        """일괄 등록 링크 (id = code, role = member)"""
        now = self.clock()
        days = expires_in_days or self.settings.bulk_invitation_expiry_days
        limit = member_limit or self.settings.bulk_invitation_member_limit

        def build(code: str) -> Invitation:
            return Invitation(
                id=code,
                club_id=club_id,
                code=code,
                type=InvitationType.bulk,
                role=ClubRole.member,
                status=InvitationStatus.active,
                created_at=now,
                created_by=created_by,
                expires_at=now + timedelta(days=days),
                used_count=0,
                member_limit=limit,
            )

        invitation = await self._insert(build)
        logger.info(f"일괄 등록 링크 생성: club={club_id} limit={limit} code={invitation.code}")
        return invitation

    # =============================================
    # 조회 / 검증
    # =============================================

    async def get_invitation(self, code: str, club_id: Optional[str] = None) -> Optional[Invitation]:
        filters = {"code": code.strip().upper()}
        if club_id:
            filters["club_id"] = club_id
        rows = await self.store.find(CLUB_INVITATIONS, filters, limit=1)
        return Invitation.model_validate(rows[0]) if rows else None

    async def validate(self, code: str, club_id: Optional[str] = None) -> Invitation:
        invitation = await self.get_invitation(code, club_id)
        return check_invitation(invitation, self.clock())

    async def list_invitations(self, club_id: str) -> List[InvitationView]:
        """최신순 초대 목록 (계산된 상태 + 링크)"""
        rows = await self.store.find(
            CLUB_INVITATIONS, {"club_id": club_id}, order_by="created_at", desc=True
        )
        return [self.present(Invitation.model_validate(r)) for r in rows]

    def present(self, invitation: Invitation) -> InvitationView:
        return InvitationView(
            invitation=invitation,
            status=invitation.effective_status(self.clock()),
            join_link=join_link(self.settings.public_base_url, invitation),
        )

    # =============================================
    # 사용
    # =============================================

    async def _claim(self, invitation: Invitation, user_id: str) -> bool:
        """조건부 claim. 다른 요청이 먼저 바꿨으면 False"""
        now = self.clock().isoformat()
        if invitation.is_bulk:
            row = await self.store.update(
                CLUB_INVITATIONS,
                invitation.id,
                {"used_count": invitation.used_count + 1, "last_used_at": now},
                expected={
                    "used_count": invitation.used_count,
                    "status": InvitationStatus.active.value,
                },
            )
        else:
            row = await self.store.update(
                CLUB_INVITATIONS,
                invitation.id,
                {"status": InvitationStatus.used.value, "used_by": user_id, "used_at": now},
                expected={"status": InvitationStatus.pending.value},
            )
        return row is not None

    async def consume(self, code: str, user_id: str, club_id: Optional[str] = None) -> ClubMember:
        """
        초대 사용 → 회원 등록

        검증 → claim → 회원 행 생성 → stats 증가 순.
        claim 충돌 시 다시 검증하므로 사용 완료/인원 초과가 그대로 드러난다.
        """
        for _ in range(MAX_CLAIM_ATTEMPTS):
            invitation = await self.validate(code, club_id)
            if await self._claim(invitation, user_id):
                break
            logger.debug(f"초대 claim 충돌, 재검증: {invitation.code}")
        else:
            raise ConcurrentUpdateError()

        logger.info(f"초대 사용: code={invitation.code} user={user_id} club={invitation.club_id}")
        return await self.membership.add_member(
            invitation.club_id,
            user_id,
            invitation.role,
            invitation_code=invitation.code,
        )
