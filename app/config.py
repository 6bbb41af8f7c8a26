"""
App Config - 서비스 및 Supabase 설정
"""
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

load_dotenv()


class AppSettings(BaseSettings):
    """서비스 설정"""

    app_name: str = "ClubHub"
    app_version: str = "1.0.0"

    # 초대 링크 생성용 공개 주소
    public_base_url: str = Field(default="http://localhost:3000", description="프론트엔드 주소")

    # 로깅
    log_level: str = Field(default="INFO", description="stderr 로그 레벨")
    log_dir: str = Field(default="logs", description="로그 파일 디렉토리")

    # 초대 기본값
    invitation_expiry_days: int = Field(default=7, description="개별 초대 유효기간 (일)")
    bulk_invitation_expiry_days: int = Field(default=30, description="일괄 등록 링크 유효기간 (일)")
    bulk_invitation_member_limit: int = Field(default=100, description="일괄 등록 링크 최대 인원")

    # 신규 클럽 기본값
    trial_days: int = Field(default=30, description="체험 기간 (일)")
    trial_member_limit: int = Field(default=50, description="체험 플랜 회원 한도")

    class Config:
        env_prefix = "CLUBHUB_"
        env_file = ".env"
        extra = "ignore"


class SupabaseSettings(BaseSettings):
    """Supabase 설정"""

    supabase_url: str = Field(default="", description="Supabase Project URL")
    supabase_key: str = Field(default="", description="Supabase service role key")
    # 설정되면 액세스 토큰을 로컬에서 검증 (미설정 시 auth.get_user 호출)
    supabase_jwt_secret: str = Field(default="", description="Supabase JWT secret")
    supabase_jwt_audience: str = "authenticated"

    class Config:
        env_prefix = ""
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_app_settings() -> AppSettings:
    return AppSettings()


@lru_cache()
def get_supabase_settings() -> SupabaseSettings:
    return SupabaseSettings()
