"""
Supabase 데이터베이스 클라이언트

users / clubs / club_members / club_invitations 테이블을
문서 저장소처럼 사용하기 위한 얇은 래퍼 (get / find / insert / update)
"""
from typing import Any, Dict, List, Optional

from loguru import logger
from postgrest.exceptions import APIError
from supabase import Client, create_client

from app.config import get_supabase_settings

# PostgreSQL unique_violation
UNIQUE_VIOLATION = "23505"

USERS = "users"
CLUBS = "clubs"
CLUB_MEMBERS = "club_members"
CLUB_INVITATIONS = "club_invitations"


class DuplicateKeyError(Exception):
    """유니크 제약 위반 (slug, 초대 코드 등)"""

    def __init__(self, table: str, detail: str = ""):
        super().__init__(f"{table}: duplicate key {detail}".strip())
        self.table = table


# 싱글톤 클라이언트
_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Supabase 클라이언트 인스턴스 반환 (싱글톤)
    """
    global _supabase_client
    if _supabase_client is None:
        settings = get_supabase_settings()
        if not settings.supabase_url or not settings.supabase_key:
            raise ValueError("SUPABASE_URL과 SUPABASE_KEY 환경변수를 설정해주세요")
        _supabase_client = create_client(
            settings.supabase_url,
            settings.supabase_key
        )
    return _supabase_client


class SupabaseStore:
    """Supabase 테이블 저장소

    모든 오류는 로그만 남기고 호출자에게 그대로 전파한다.
    유니크 제약 위반만 DuplicateKeyError 로 변환한다.
    """

    def __init__(self, client: Optional[Client] = None):
        self.client: Client = client or get_supabase_client()

    @staticmethod
    def _apply_filters(query, filters: Optional[Dict[str, Any]]):
        for column, value in (filters or {}).items():
            if value is None:
                query = query.is_(column, "null")
            else:
                query = query.eq(column, value)
        return query

    async def get(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        """ID로 단건 조회"""
        try:
            result = self.client.table(table).select("*").eq("id", row_id).limit(1).execute()
        except Exception as e:
            logger.error(f"{table} 조회 오류 ({row_id}): {e}")
            raise
        return result.data[0] if result.data else None

    async def find(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """컬럼 일치 조건으로 목록 조회"""
        try:
            query = self._apply_filters(self.client.table(table).select("*"), filters)
            if order_by:
                query = query.order(order_by, desc=desc)
            if limit:
                query = query.limit(limit)
            result = query.execute()
        except Exception as e:
            logger.error(f"{table} 목록 조회 오류 ({filters}): {e}")
            raise
        return result.data or []

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """행 생성"""
        try:
            result = self.client.table(table).insert(row).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateKeyError(table, e.details or "") from e
            logger.error(f"{table} 저장 오류: {e}")
            raise
        except Exception as e:
            logger.error(f"{table} 저장 오류: {e}")
            raise
        return result.data[0] if result.data else row

    async def update(
        self,
        table: str,
        row_id: str,
        patch: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        행 수정

        expected 가 주어지면 해당 컬럼 값이 모두 일치할 때만 수정한다
        (조건부 쓰기). 일치하는 행이 없으면 None 을 반환한다.
        """
        try:
            query = self.client.table(table).update(patch).eq("id", row_id)
            query = self._apply_filters(query, expected)
            result = query.execute()
        except Exception as e:
            logger.error(f"{table} 수정 오류 ({row_id}): {e}")
            raise
        return result.data[0] if result.data else None


_store: Optional[SupabaseStore] = None


def get_store() -> SupabaseStore:
    """FastAPI 의존성용 저장소 싱글톤"""
    global _store
    if _store is None:
        _store = SupabaseStore()
    return _store
