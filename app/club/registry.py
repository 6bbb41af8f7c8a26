"""
Club Registry Service - 클럽 생성/조회/수정

slug 는 name_slug 유니크 제약으로 보장하고,
stats 는 version 조건부 갱신으로 동시 가입/탈퇴 시에도 정확히 유지한다.
"""
import re
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional

from loguru import logger

from app.clock import Clock, utcnow
from app.club.models import (
    Club,
    ClubCreate,
    ClubMember,
    ClubRole,
    ClubSubscription,
    DaySchedule,
    MemberStatus,
    WEEKDAYS,
)
from app.club.permissions import derive_permissions
from app.config import AppSettings, get_app_settings
from app.errors import ClubNotFound, ConcurrentUpdateError
from database.supabase_client import CLUB_MEMBERS, CLUBS, DuplicateKeyError, SupabaseStore, get_store

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")

# update_club 로 변경할 수 없는 컬럼
PROTECTED_FIELDS = {"id", "name_slug", "stats", "version", "created_at", "created_by"}

MAX_SLUG_ATTEMPTS = 100
MAX_STATS_ATTEMPTS = 10


def generate_slug(name: str) -> str:
    """
    클럽 이름 → URL slug

    "KL Badminton Club!!" → "kl-badminton-club"
    영숫자가 없는 이름은 "club"
    """
    slug = _NON_SLUG_CHARS.sub("-", name.lower()).strip("-")
    return slug or "club"


def default_operating_hours() -> Dict[str, DaySchedule]:
    """평일 06:00-22:00, 주말 08:00-20:00"""
    hours = {}
    for day in WEEKDAYS:
        if day in ("saturday", "sunday"):
            hours[day] = DaySchedule(is_open=True, open_time="08:00", close_time="20:00")
        else:
            hours[day] = DaySchedule(is_open=True, open_time="06:00", close_time="22:00")
    return hours


def new_member_row(
    club_id: str,
    user_id: str,
    role: ClubRole,
    now,
    invitation_code: Optional[str] = None,
) -> ClubMember:
    """신규 활성 회원 행 (권한은 역할에서 생성)"""
    return ClubMember(
        id=str(uuid.uuid4()),
        user_id=user_id,
        club_id=club_id,
        role=role,
        permissions=derive_permissions(role),
        status=MemberStatus.active,
        joined_at=now,
        invitation_code=invitation_code,
    )


class ClubRegistry:
    """클럽 문서 서비스"""

    def __init__(
        self,
        store: Optional[SupabaseStore] = None,
        clock: Clock = utcnow,
        settings: Optional[AppSettings] = None,
    ):
        self.store = store or get_store()
        self.clock = clock
        self.settings = settings or get_app_settings()

    # =============================================
    # 생성
    # =============================================

    async def _slug_taken(self, slug: str) -> bool:
        rows = await self.store.find(CLUBS, {"name_slug": slug}, limit=1)
        return bool(rows)

    async def _insert_with_unique_slug(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """base, base-1, base-2 ... 순으로 시도"""
        base = generate_slug(row["name"])
        for counter in range(MAX_SLUG_ATTEMPTS):
            slug = base if counter == 0 else f"{base}-{counter}"
            if await self._slug_taken(slug):
                continue
            row["name_slug"] = slug
            try:
                return await self.store.insert(CLUBS, row)
            except DuplicateKeyError:
                # 확인과 저장 사이에 다른 요청이 같은 slug 를 선점
                logger.info(f"slug 충돌, 다음 접미사 시도: {slug}")
        raise ConcurrentUpdateError(f"Could not allocate a unique slug for '{row['name']}'")

    async def create_club(self, data: ClubCreate, creator_id: str) -> Club:
        """
        클럽 생성

        체험(trial) 상태 + free 플랜으로 생성하고 생성자를 admin 회원으로 등록한다.
        """
        now = self.clock()
        contact = data.contact.model_copy()
        if not contact.whatsapp:
            contact.whatsapp = contact.phone

        club = Club(
            id=str(uuid.uuid4()),
            name=data.name,
            name_slug=generate_slug(data.name),
            sport=data.sport,
            subscription=ClubSubscription(
                valid_until=now + timedelta(days=self.settings.trial_days),
                member_limit=self.settings.trial_member_limit,
            ),
            profile=data.profile,
            contact=contact,
            address=data.address,
            operating_hours=default_operating_hours(),
            created_at=now,
            updated_at=now,
            created_by=creator_id,
        )
        row = await self._insert_with_unique_slug(club.model_dump(mode="json"))
        club_id = row["id"]
        logger.info(f"클럽 생성: {row['name']} ({row['name_slug']}) by {creator_id}")

        creator = new_member_row(club_id, creator_id, ClubRole.admin, now)
        await self.store.insert(CLUB_MEMBERS, creator.model_dump(mode="json"))

        return await self.adjust_member_stats(club_id, 1)

    # =============================================
    # 조회
    # =============================================

    async def get_club_by_id(self, club_id: str) -> Optional[Club]:
        row = await self.store.get(CLUBS, club_id)
        return Club.model_validate(row) if row else None

    async def get_the_club(self) -> Optional[Club]:
        """가장 먼저 생성된 클럽 (단일 테넌트 대시보드용)"""
        rows = await self.store.find(CLUBS, order_by="created_at", limit=1)
        return Club.model_validate(rows[0]) if rows else None

    async def get_user_clubs(self, user_id: str) -> List[Club]:
        """활성 멤버십이 있는 클럽 목록"""
        memberships = await self.store.find(
            CLUB_MEMBERS,
            {"user_id": user_id, "status": MemberStatus.active.value},
            order_by="joined_at",
        )
        clubs = []
        seen = set()
        for membership in memberships:
            club_id = membership["club_id"]
            if club_id in seen:
                continue
            seen.add(club_id)
            club = await self.get_club_by_id(club_id)
            if club:
                clubs.append(club)
        return clubs

    # =============================================
    # 수정
    # =============================================

    async def update_club(self, club_id: str, fields: Dict[str, Any]) -> Club:
        """최상위 블록 merge-patch (보호 컬럼은 무시)"""
        patch = {k: v for k, v in fields.items() if k not in PROTECTED_FIELDS and v is not None}
        ignored = set(fields) & PROTECTED_FIELDS
        if ignored:
            logger.warning(f"클럽 {club_id} 보호 필드 수정 무시: {sorted(ignored)}")
        patch["updated_at"] = self.clock().isoformat()

        row = await self.store.update(CLUBS, club_id, patch)
        if row is None:
            raise ClubNotFound()
        logger.info(f"클럽 수정: {club_id} ({', '.join(sorted(patch))})")
        return Club.model_validate(row)

    async def adjust_member_stats(self, club_id: str, delta: int, active_delta: Optional[int] = None) -> Club:
        """
        total_members 를 delta, active_members 를 active_delta (기본 delta) 만큼 변경

        version 이 읽은 값과 같을 때만 쓰고, 충돌 시 다시 읽어 재시도한다.
        """
        for _ in range(MAX_STATS_ATTEMPTS):
            row = await self.store.get(CLUBS, club_id)
            if row is None:
                raise ClubNotFound()
            club = Club.model_validate(row)
            stats = club.stats.model_copy()
            stats.total_members += delta
            stats.active_members += delta if active_delta is None else active_delta

            updated = await self.store.update(
                CLUBS,
                club_id,
                {
                    "stats": stats.model_dump(mode="json"),
                    "version": club.version + 1,
                    "updated_at": self.clock().isoformat(),
                },
                expected={"version": club.version},
            )
            if updated is not None:
                return Club.model_validate(updated)
            logger.debug(f"클럽 {club_id} stats 충돌, 재시도")

        raise ConcurrentUpdateError()
