"""
Auth Models - Pydantic 모델 정의
"""
import re
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

# 말레이시아 휴대폰 번호 (012-3456789, +60123456789 등)
MALAYSIAN_PHONE_RE = re.compile(r"^(\+?6?01)[0-46-9]-?[0-9]{7,8}$")
# MyKad 번호 (12자리)
IC_NUMBER_RE = re.compile(r"^\d{12}$")

MIN_PASSWORD_LENGTH = 6


def validate_malaysian_phone(value: Optional[str]) -> Optional[str]:
    """공백 제거 후 말레이시아 휴대폰 형식 검사 (빈 값은 None)"""
    if value is None:
        return None
    cleaned = re.sub(r"\s+", "", value)
    if not cleaned:
        return None
    if not MALAYSIAN_PHONE_RE.match(cleaned):
        raise ValueError("Please enter a valid Malaysian phone number")
    return cleaned


class UserRole(str, Enum):
    """플랫폼 역할"""
    SUPERADMIN = "superadmin"  # 플랫폼 관리자
    MEMBER = "member"          # 일반 회원


class IdentificationType(str, Enum):
    """신분증 유형"""
    IC = "ic"              # MyKad
    PASSPORT = "passport"  # 여권


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Language(str, Enum):
    """UI 언어"""
    EN = "en"  # English
    MS = "ms"  # Bahasa Melayu
    ZH = "zh"  # 中文
    TA = "ta"  # தமிழ்


class Platform(str, Enum):
    WEB = "web"
    IOS = "ios"
    ANDROID = "android"


# =============================================
# User Document
# =============================================

class UserProfile(BaseModel):
    """users.profile"""
    first_name: str = ""
    last_name: str = ""
    display_name: str = ""
    photo_url: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    nationality: str = "Malaysian"
    identification_type: IdentificationType = IdentificationType.IC
    identification_number: str = ""


class AuthInfo(BaseModel):
    """users.auth"""
    role: UserRole = UserRole.MEMBER
    email_verified: bool = False
    phone_verified: bool = False
    two_factor_enabled: bool = False
    last_login: Optional[datetime] = None
    login_count: int = 0


class NotificationPreferences(BaseModel):
    email: bool = True
    sms: bool = True
    whatsapp: bool = True
    push: bool = True


class PrivacyPreferences(BaseModel):
    show_profile: bool = True
    show_stats: bool = True


class UserPreferences(BaseModel):
    """users.preferences"""
    language: Language = Language.EN
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    privacy: PrivacyPreferences = Field(default_factory=PrivacyPreferences)


class EmergencyContact(BaseModel):
    """비상 연락처"""
    name: str = Field(..., min_length=1, max_length=100)
    relationship: str = Field(..., min_length=1, max_length=50)
    phone: str

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        cleaned = validate_malaysian_phone(v)
        if cleaned is None:
            raise ValueError("Emergency contact phone is required")
        return cleaned


class MedicalInfo(BaseModel):
    """의료 정보 (모두 선택)"""
    conditions: str = ""
    allergies: str = ""
    blood_type: str = ""


class UserMetadata(BaseModel):
    """users.metadata"""
    created_at: datetime
    updated_at: datetime
    last_active: datetime
    platform: Platform = Platform.WEB
    app_version: Optional[str] = None


class User(BaseModel):
    """users 테이블 문서 (id = 인증 제공자 UID)"""
    id: str
    email: str
    phone: Optional[str] = None
    profile: UserProfile = Field(default_factory=UserProfile)
    auth: AuthInfo = Field(default_factory=AuthInfo)
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    emergency_contact: Optional[EmergencyContact] = None
    medical: Optional[MedicalInfo] = None
    metadata: UserMetadata

    @property
    def is_superadmin(self) -> bool:
        return self.auth.role == UserRole.SUPERADMIN


# =============================================
# Request Models
# =============================================

class PasswordPair(BaseModel):
    """비밀번호 + 확인 입력"""
    password: str
    confirm_password: str

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v):
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return v

    @model_validator(mode="after")
    def validate_passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class RegisterRequest(PasswordPair):
    """회원가입 요청"""
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    display_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    identification_type: IdentificationType = IdentificationType.IC
    identification_number: str = ""
    agree_to_terms: bool = False

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_malaysian_phone(v)

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v):
        if v and v > date.today():
            raise ValueError("Date of birth must be in the past")
        return v

    @field_validator("agree_to_terms")
    @classmethod
    def validate_terms(cls, v):
        if not v:
            raise ValueError("You must agree to the terms and conditions")
        return v

    @model_validator(mode="after")
    def validate_identification(self):
        number = self.identification_number.strip()
        if (
            number
            and self.identification_type == IdentificationType.IC
            and not IC_NUMBER_RE.match(number)
        ):
            raise ValueError("IC number must be 12 digits without dashes")
        self.identification_number = number
        return self

    def to_profile(self) -> UserProfile:
        return UserProfile(
            first_name=self.first_name,
            last_name=self.last_name,
            display_name=self.display_name or f"{self.first_name} {self.last_name}",
            date_of_birth=self.date_of_birth,
            gender=self.gender,
            identification_type=self.identification_type,
            identification_number=self.identification_number,
        )


class SelfRegistrationRequest(RegisterRequest):
    """일괄 등록 링크(/join/<code>) 가입 요청

    전화번호, 비상 연락처 필수. 약관 동의 체크박스 없음.
    """
    phone: str
    emergency_contact: EmergencyContact
    medical: MedicalInfo = Field(default_factory=MedicalInfo)
    agree_to_terms: bool = True

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        cleaned = validate_malaysian_phone(v)
        if cleaned is None:
            raise ValueError("Phone number is required")
        return cleaned


class LoginRequest(BaseModel):
    """로그인 요청"""
    email: EmailStr
    password: str = Field(..., min_length=1)


class EmailRequest(BaseModel):
    """비밀번호 재설정 / 인증 메일 재발송"""
    email: EmailStr


class ProfileUpdate(BaseModel):
    """프로필 수정 요청"""
    phone: Optional[str] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    photo_url: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    identification_type: Optional[IdentificationType] = None
    identification_number: Optional[str] = None
    emergency_contact: Optional[EmergencyContact] = None
    medical: Optional[MedicalInfo] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_malaysian_phone(v)

    @model_validator(mode="after")
    def validate_identification(self):
        if (
            self.identification_number
            and self.identification_type in (None, IdentificationType.IC)
            and not IC_NUMBER_RE.match(self.identification_number)
        ):
            raise ValueError("IC number must be 12 digits without dashes")
        return self


class PreferencesUpdate(BaseModel):
    """환경설정 수정 요청"""
    language: Optional[Language] = None
    notifications: Optional[NotificationPreferences] = None
    privacy: Optional[PrivacyPreferences] = None


class EmailChangeRequest(BaseModel):
    """이메일 변경 (현재 비밀번호로 재인증)"""
    new_email: EmailStr
    current_password: str = Field(..., min_length=1)


class PasswordChangeRequest(PasswordPair):
    """비밀번호 변경 (현재 비밀번호로 재인증)"""
    current_password: str = Field(..., min_length=1)


class SocialProfile(BaseModel):
    """소셜 로그인 후 프로필 동기화"""
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


# =============================================
# Response Models
# =============================================

class SessionResponse(BaseModel):
    """로그인 응답"""
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: User
