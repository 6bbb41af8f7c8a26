"""
User Directory Service - users 테이블 문서 관리
"""
from typing import Optional, Tuple

from loguru import logger

from app.auth.identity import RequestIdentity
from app.auth.models import (
    EmergencyContact,
    MedicalInfo,
    PreferencesUpdate,
    ProfileUpdate,
    User,
    UserMetadata,
    UserPreferences,
    UserProfile,
    UserRole,
)
from app.clock import Clock, utcnow
from app.errors import IdentityError, UserNotFound
from database.supabase_client import USERS, SupabaseStore, get_store


def build_user(
    uid: str,
    email: str,
    now,
    profile: Optional[UserProfile] = None,
    phone: Optional[str] = None,
    emergency_contact: Optional[EmergencyContact] = None,
    medical: Optional[MedicalInfo] = None,
) -> User:
    """신규 사용자 문서 (role=member, 첫 로그인으로 간주)"""
    profile = profile or UserProfile()
    if not profile.display_name:
        profile = profile.model_copy(update={"display_name": email.split("@")[0]})
    user = User(
        id=uid,
        email=email,
        phone=phone,
        profile=profile,
        emergency_contact=emergency_contact,
        medical=medical,
        metadata=UserMetadata(created_at=now, updated_at=now, last_active=now),
    )
    user.auth.last_login = now
    user.auth.login_count = 1
    return user


class UserDirectory:
    """사용자 문서 서비스"""

    def __init__(self, store: Optional[SupabaseStore] = None, clock: Clock = utcnow):
        self.store = store or get_store()
        self.clock = clock

    async def get_user(self, uid: str) -> Optional[User]:
        row = await self.store.get(USERS, uid)
        return User.model_validate(row) if row else None

    async def require_user(self, uid: str) -> User:
        user = await self.get_user(uid)
        if user is None:
            raise UserNotFound()
        return user

    async def create_user(
        self,
        uid: str,
        email: str,
        profile: Optional[UserProfile] = None,
        phone: Optional[str] = None,
        emergency_contact: Optional[EmergencyContact] = None,
        medical: Optional[MedicalInfo] = None,
    ) -> User:
        user = build_user(uid, email, self.clock(), profile, phone, emergency_contact, medical)
        row = await self.store.insert(USERS, user.model_dump(mode="json"))
        logger.info(f"사용자 문서 생성: {uid}")
        return User.model_validate(row)

    async def ensure_user(
        self,
        identity: RequestIdentity,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Tuple[User, bool]:
        """
        소셜 로그인 사용자 동기화

        문서가 있으면 로그인 기록만 갱신, 없으면 생성한다. (user, created) 반환
        """
        user = await self.get_user(identity.uid)
        if user:
            return await self.record_login(identity.uid), False
        if not identity.email:
            raise IdentityError("Email address is required to create a user profile")

        names = (display_name or "").split(" ", 1)
        profile = UserProfile(
            first_name=names[0],
            last_name=names[1] if len(names) > 1 else "",
            display_name=display_name or "",
            photo_url=photo_url,
        )
        return await self.create_user(identity.uid, identity.email, profile=profile), True

    async def record_login(self, uid: str) -> User:
        """last_login / login_count / last_active 갱신"""
        user = await self.require_user(uid)
        now = self.clock()
        auth = user.auth.model_copy(update={"last_login": now, "login_count": user.auth.login_count + 1})
        metadata = user.metadata.model_copy(update={"last_active": now})
        return await self._write(uid, {
            "auth": auth.model_dump(mode="json"),
            "metadata": metadata.model_dump(mode="json"),
        }, user)

    async def update_profile(self, uid: str, update: ProfileUpdate) -> User:
        user = await self.require_user(uid)
        changes = update.model_dump(mode="json", exclude_none=True)
        patch = {}

        # 최상위 컬럼
        for key in ("phone", "emergency_contact", "medical"):
            if key in changes:
                patch[key] = changes.pop(key)
        if changes:
            profile = user.profile.model_dump(mode="json")
            profile.update(changes)
            patch["profile"] = UserProfile.model_validate(profile).model_dump(mode="json")

        return await self._write(uid, patch, user)

    async def update_preferences(self, uid: str, update: PreferencesUpdate) -> User:
        user = await self.require_user(uid)
        preferences = user.preferences.model_dump(mode="json")
        preferences.update(update.model_dump(mode="json", exclude_none=True))
        patch = {"preferences": UserPreferences.model_validate(preferences).model_dump(mode="json")}
        return await self._write(uid, patch, user)

    async def update_email(self, uid: str, new_email: str) -> User:
        user = await self.require_user(uid)
        auth = user.auth.model_copy(update={"email_verified": False})
        return await self._write(uid, {"email": new_email, "auth": auth.model_dump(mode="json")}, user)

    async def set_role(self, uid: str, role: UserRole) -> User:
        """플랫폼 역할 변경 (superadmin 승격 스크립트)"""
        user = await self.require_user(uid)
        auth = user.auth.model_copy(update={"role": role})
        updated = await self._write(uid, {"auth": auth.model_dump(mode="json")}, user)
        logger.info(f"사용자 역할 변경: {uid} → {role.value}")
        return updated

    async def _write(self, uid: str, patch: dict, user: Optional[User] = None) -> User:
        """metadata.updated_at 갱신 후 저장"""
        user = user or await self.require_user(uid)
        now = self.clock()
        metadata = patch.get("metadata") or user.metadata.model_dump(mode="json")
        metadata["updated_at"] = now.isoformat()
        patch["metadata"] = metadata

        row = await self.store.update(USERS, uid, patch)
        if row is None:
            raise UserNotFound()
        return User.model_validate(row)


_user_directory: Optional[UserDirectory] = None


def get_user_directory() -> UserDirectory:
    """FastAPI 의존성용 싱글톤"""
    global _user_directory
    if _user_directory is None:
        _user_directory = UserDirectory()
    return _user_directory
