"""
Club Management Models

Pydantic 모델 정의
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.auth.models import User, validate_malaysian_phone


# =============================================
# Enums
# =============================================

class ClubRole(str, Enum):
    """클럽 내 역할"""
    owner = "owner"    # 클럽 소유자
    admin = "admin"    # 관리자 (클럽 생성자 포함)
    coach = "coach"    # 코치
    member = "member"  # 일반 회원


class MemberStatus(str, Enum):
    """회원 상태"""
    active = "active"         # 활성
    inactive = "inactive"     # 탈퇴 (soft delete)
    suspended = "suspended"   # 정지


class ClubStatus(str, Enum):
    """클럽 상태"""
    trial = "trial"
    active = "active"
    suspended = "suspended"


class SubscriptionPlan(str, Enum):
    free = "free"
    professional = "professional"
    enterprise = "enterprise"


class SportType(str, Enum):
    badminton = "badminton"
    basketball = "basketball"
    football = "football"
    tennis = "tennis"
    swimming = "swimming"
    gym = "gym"


class RegistrationType(str, Enum):
    """클럽 등록 유형"""
    society = "society"
    company = "company"
    association = "association"


class InvitationType(str, Enum):
    """초대 유형"""
    single = "single"  # 이메일 지정 1회용
    bulk = "bulk"      # 공유 등록 링크


class InvitationStatus(str, Enum):
    """초대 상태 (expired 는 조회 시점에 계산)"""
    pending = "pending"  # 1회용 대기
    active = "active"    # 일괄 링크 사용 가능
    used = "used"        # 1회용 사용 완료
    expired = "expired"  # 만료


MALAYSIAN_STATES = [
    "Johor", "Kedah", "Kelantan", "Melaka", "Negeri Sembilan", "Pahang",
    "Perak", "Perlis", "Pulau Pinang", "Sabah", "Sarawak", "Selangor",
    "Terengganu", "WP Kuala Lumpur", "WP Labuan", "WP Putrajaya",
]

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


# =============================================
# Club Blocks
# =============================================

class DaySchedule(BaseModel):
    """요일별 운영 시간"""
    is_open: bool = True
    open_time: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    close_time: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$")


class ClubSubscription(BaseModel):
    plan: SubscriptionPlan = SubscriptionPlan.free
    valid_until: datetime
    member_limit: int = Field(..., ge=1)


class ClubRegistration(BaseModel):
    """단체 등록 정보 (ROS/SSM)"""
    type: RegistrationType = RegistrationType.society
    number: str = ""


class ClubProfile(BaseModel):
    logo: str = ""
    cover_image: str = ""
    description: str = Field("", max_length=2000)
    established: Optional[date] = None
    registration: ClubRegistration = Field(default_factory=ClubRegistration)


class ContactInfo(BaseModel):
    phone: str = ""
    email: str = ""
    whatsapp: str = ""
    website: Optional[str] = None

    @field_validator("phone", "whatsapp")
    @classmethod
    def validate_phone(cls, v):
        return validate_malaysian_phone(v) or ""


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Address(BaseModel):
    line1: str = ""
    line2: Optional[str] = None
    city: str = ""
    state: str = "WP Kuala Lumpur"
    postcode: str = ""
    country: str = "Malaysia"
    coordinates: Optional[Coordinates] = None

    @field_validator("state")
    @classmethod
    def validate_state(cls, v):
        if v not in MALAYSIAN_STATES:
            raise ValueError(f"Unknown Malaysian state: {v}")
        return v

    @field_validator("postcode")
    @classmethod
    def validate_postcode(cls, v):
        if v and not (v.isdigit() and len(v) == 5):
            raise ValueError("Postcode must be 5 digits")
        return v

    @field_validator("country")
    @classmethod
    def validate_country(cls, v):
        if v != "Malaysia":
            raise ValueError("Only clubs in Malaysia are supported")
        return v


class ClubSettings(BaseModel):
    timezone: str = "Asia/Kuala_Lumpur"
    currency: str = "MYR"
    languages: List[str] = Field(default_factory=lambda: ["en"])
    fiscal_year_start: int = Field(1, ge=1, le=12)


class ClubFeatures(BaseModel):
    payments: bool = True
    tournaments: bool = True
    coaching: bool = True
    merchandise: bool = False


class ClubStats(BaseModel):
    total_members: int = 0
    active_members: int = 0
    monthly_revenue: float = 0
    facilities: int = 0


class Club(BaseModel):
    """clubs 테이블 문서"""
    id: str
    name: str
    name_slug: str
    sport: List[SportType] = Field(default_factory=list)
    status: ClubStatus = ClubStatus.trial
    subscription: ClubSubscription
    profile: ClubProfile = Field(default_factory=ClubProfile)
    contact: ContactInfo = Field(default_factory=ContactInfo)
    address: Address = Field(default_factory=Address)
    settings: ClubSettings = Field(default_factory=ClubSettings)
    operating_hours: Dict[str, DaySchedule] = Field(default_factory=dict)
    features: ClubFeatures = Field(default_factory=ClubFeatures)
    stats: ClubStats = Field(default_factory=ClubStats)
    version: int = 0  # stats 조건부 갱신용
    created_at: datetime
    updated_at: datetime
    created_by: str


# =============================================
# Club Requests
# =============================================

class ClubCreate(BaseModel):
    """클럽 생성 요청 (관리자 설정 화면)"""
    name: str = Field(..., min_length=1, max_length=100)
    sport: List[SportType] = Field(..., min_length=1)
    profile: ClubProfile = Field(default_factory=ClubProfile)
    contact: ContactInfo = Field(default_factory=ContactInfo)
    address: Address = Field(default_factory=Address)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Club name is required")
        return v


class ClubUpdate(BaseModel):
    """클럽 설정 수정 (블록 단위 merge-patch)"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    sport: Optional[List[SportType]] = None
    status: Optional[ClubStatus] = None
    profile: Optional[ClubProfile] = None
    contact: Optional[ContactInfo] = None
    address: Optional[Address] = None
    settings: Optional[ClubSettings] = None
    operating_hours: Optional[Dict[str, DaySchedule]] = None
    features: Optional[ClubFeatures] = None

    @field_validator("operating_hours")
    @classmethod
    def validate_weekdays(cls, v):
        if v is not None:
            unknown = set(v) - set(WEEKDAYS)
            if unknown:
                raise ValueError(f"Unknown weekday(s): {', '.join(sorted(unknown))}")
        return v


# =============================================
# Member Models
# =============================================

class ClubMember(BaseModel):
    """club_members 테이블 문서"""
    id: str
    user_id: str
    club_id: str
    role: ClubRole = ClubRole.member
    permissions: List[str] = Field(default_factory=list)
    status: MemberStatus = MemberStatus.active
    joined_at: datetime
    left_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    invitation_code: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.active


class ClubMemberUpdate(BaseModel):
    """회원 역할/권한/상태 수정"""
    role: Optional[ClubRole] = None
    permissions: Optional[List[str]] = None
    status: Optional[MemberStatus] = None


class MemberWithUser(BaseModel):
    """회원 + 사용자 문서 (회원 목록 화면)"""
    member: ClubMember
    user: Optional[User] = None


class ClubWithMembership(BaseModel):
    """클럽 상세 + 호출자 멤버십"""
    club: Club
    membership: ClubMember


# =============================================
# Invitation Models
# =============================================

class Invitation(BaseModel):
    """club_invitations 테이블 문서"""
    id: str
    club_id: str
    code: str
    type: InvitationType = InvitationType.single
    email: Optional[str] = None
    role: ClubRole = ClubRole.member
    message: Optional[str] = None
    status: InvitationStatus
    created_at: datetime
    created_by: Optional[str] = None
    expires_at: datetime

    # single
    used_at: Optional[datetime] = None
    used_by: Optional[str] = None

    # bulk
    used_count: int = 0
    member_limit: Optional[int] = None
    last_used_at: Optional[datetime] = None

    @property
    def is_bulk(self) -> bool:
        return self.type == InvitationType.bulk

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def effective_status(self, now: datetime) -> InvitationStatus:
        """저장된 상태 + 만료 여부"""
        if self.status in (InvitationStatus.pending, InvitationStatus.active) and self.is_expired(now):
            return InvitationStatus.expired
        return self.status


class InvitationCreate(BaseModel):
    """개별 이메일 초대 요청"""
    email: EmailStr
    role: ClubRole = ClubRole.member
    message: Optional[str] = Field(None, max_length=500)
    expires_in_days: int = Field(7, ge=1, le=90)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v == ClubRole.owner:
            raise ValueError("Owner role cannot be granted by invitation")
        return v


class BulkInvitationCreate(BaseModel):
    """일괄 등록 링크 생성 요청"""
    expires_in_days: int = Field(30, ge=1, le=365)
    member_limit: int = Field(100, ge=1, le=10000)


class InvitationView(BaseModel):
    """초대 목록/생성 응답 (링크 + 계산된 상태 포함)"""
    invitation: Invitation
    status: InvitationStatus
    join_link: str


class InvitationCheck(BaseModel):
    """/join/<code> 검증 응답"""
    code: str
    club_id: str
    club_name: str
    type: InvitationType
    role: ClubRole
    expires_at: datetime
    remaining: Optional[int] = None
