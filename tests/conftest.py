"""
Pytest configuration and fixtures for ClubHub tests
"""

import asyncio
import copy
import sys
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.auth.identity import AuthSession, RequestIdentity
from app.auth.service import UserDirectory
from app.club.models import ClubCreate
from app.club.service import ClubService
from app.config import AppSettings
from app.errors import AuthenticationRequired, IdentityError
from database.supabase_client import DuplicateKeyError

UNIQUE_COLUMNS = {
    "clubs": ("name_slug",),
    "club_invitations": ("code",),
}


class InMemoryStore:
    """SupabaseStore 대역 (같은 get/find/insert/update 계약)

    각 호출은 먼저 이벤트 루프에 양보하므로 asyncio.gather 로
    동시 요청의 읽기-쓰기 경합을 재현할 수 있다.
    """

    def __init__(self):
        self.tables = defaultdict(dict)
        self.update_calls = 0

    def seed(self, table, row):
        self.tables[table][row["id"]] = copy.deepcopy(row)
        return row

    def rows(self, table):
        return [copy.deepcopy(r) for r in self.tables[table].values()]

    @staticmethod
    def _matches(row, filters):
        return all(row.get(k) == v for k, v in (filters or {}).items())

    async def get(self, table, row_id):
        await asyncio.sleep(0)
        row = self.tables[table].get(row_id)
        return copy.deepcopy(row) if row else None

    async def find(self, table, filters=None, order_by=None, desc=False, limit=None):
        await asyncio.sleep(0)
        rows = [copy.deepcopy(r) for r in self.tables[table].values() if self._matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: r.get(order_by) or "", reverse=desc)
        if limit:
            rows = rows[:limit]
        return rows

    async def insert(self, table, row):
        await asyncio.sleep(0)
        existing = self.tables[table]
        if row["id"] in existing:
            raise DuplicateKeyError(table, "id")
        for column in UNIQUE_COLUMNS.get(table, ()):
            if any(r.get(column) == row.get(column) for r in existing.values()):
                raise DuplicateKeyError(table, column)
        existing[row["id"]] = copy.deepcopy(row)
        return copy.deepcopy(row)

    async def update(self, table, row_id, patch, expected=None):
        await asyncio.sleep(0)
        self.update_calls += 1
        row = self.tables[table].get(row_id)
        if row is None or not self._matches(row, expected):
            return None
        row.update(copy.deepcopy(patch))
        return copy.deepcopy(row)


class FakeClock:
    """고정 시각 (advance 로 이동)"""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeIdentityProvider:
    """IdentityProvider 대역 (토큰 형식: token-<uid>)"""

    def __init__(self):
        self.accounts = {}  # email -> {"uid", "password"}
        self.reset_emails = []
        self.verification_emails = []

    def add_account(self, uid, email, password="secret123"):
        self.accounts[email] = {"uid": uid, "password": password}
        return RequestIdentity(uid=uid, email=email)

    def _email_of(self, uid):
        for email, account in self.accounts.items():
            if account["uid"] == uid:
                return email
        return None

    async def register(self, email, password, display_name=None):
        if email in self.accounts:
            raise IdentityError("User already registered")
        uid = f"uid-{len(self.accounts) + 1}"
        return self.add_account(uid, email, password)

    async def authenticate(self, email, password):
        account = self.accounts.get(email)
        if account is None or account["password"] != password:
            raise IdentityError("Invalid email or password")
        identity = RequestIdentity(uid=account["uid"], email=email)
        return AuthSession(identity=identity, access_token=f"token-{account['uid']}", expires_in=3600)

    async def reauthenticate(self, email, password):
        try:
            session = await self.authenticate(email, password)
        except IdentityError as e:
            raise IdentityError("Current password is incorrect") from e
        return session.identity

    async def send_password_reset(self, email, redirect_to=None):
        self.reset_emails.append(email)

    async def resend_verification(self, email):
        self.verification_emails.append(email)

    async def change_email(self, uid, new_email):
        old = self._email_of(uid)
        self.accounts[new_email] = self.accounts.pop(old)

    async def change_password(self, uid, new_password):
        self.accounts[self._email_of(uid)]["password"] = new_password

    async def resolve(self, token):
        if not token.startswith("token-"):
            raise AuthenticationRequired("Invalid or expired token")
        uid = token[len("token-"):]
        return RequestIdentity(uid=uid, email=self._email_of(uid))


def auth_header(uid):
    return {"Authorization": f"Bearer token-{uid}"}


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings():
    return AppSettings(public_base_url="https://clubhub.my")


@pytest.fixture
def service(store, clock, settings):
    return ClubService(store=store, clock=clock, settings=settings)


@pytest.fixture
def directory(store, clock):
    return UserDirectory(store=store, clock=clock)


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def admin():
    return RequestIdentity(uid="admin-1", email="admin@klbc.my")


@pytest.fixture
def club_data():
    return ClubCreate(
        name="KL Badminton Club!!",
        sport=["badminton"],
        contact={"phone": "012-3456789", "email": "hello@klbc.my"},
        address={"line1": "Jalan Ampang", "city": "Kuala Lumpur", "postcode": "50450"},
    )
