"""
API Tests - FastAPI 라우터 테스트 (인메모리 저장소 + 가짜 인증 제공자)
"""
import pytest
from fastapi.testclient import TestClient

from app.auth.identity import get_identity_provider
from app.auth.service import get_user_directory
from app.club.dependencies import get_club_service
from app.server import app
from tests.conftest import auth_header

CLUB_PAYLOAD = {
    "name": "KL Badminton Club!!",
    "sport": ["badminton"],
    "contact": {"phone": "012-3456789", "email": "hello@klbc.my"},
    "address": {"line1": "Jalan Ampang", "city": "Kuala Lumpur", "postcode": "50450"},
}


@pytest.fixture
def client(service, directory, identity_provider):
    app.dependency_overrides[get_club_service] = lambda: service
    app.dependency_overrides[get_user_directory] = lambda: directory
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_user(identity_provider):
    identity_provider.add_account("admin-1", "admin@klbc.my")
    return "admin-1"


@pytest.fixture
def club_id(client, admin_user):
    response = client.post("/api/clubs", json=CLUB_PAYLOAD, headers=auth_header(admin_user))
    assert response.status_code == 201
    return response.json()["id"]


def _join(client, identity_provider, club_id, admin_user, uid, email):
    """uid 사용자를 일괄 링크로 가입시킴"""
    identity_provider.add_account(uid, email)
    link = client.post(f"/api/clubs/{club_id}/invitations/bulk", json={}, headers=auth_header(admin_user)).json()
    response = client.post(f"/api/join/{link['invitation']['code']}", headers=auth_header(uid))
    assert response.status_code == 201
    return response.json()


class TestHealth:
    """헬스 체크"""

    def test_health(self, client):
        """서비스 상태"""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestAuthentication:
    """요청 인증 테스트"""

    def test_missing_token(self, client):
        """토큰 없음 → 401"""
        response = client.get("/api/clubs")
        assert response.status_code == 401
        assert response.json()["detail"] == "Authentication required"

    def test_invalid_token(self, client):
        """잘못된 토큰 → 401"""
        response = client.get("/api/clubs", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    def test_cookie_token(self, client, admin_user, club_id):
        """access_token 쿠키 허용"""
        client.cookies.set("access_token", f"token-{admin_user}")
        response = client.get("/api/clubs")
        client.cookies.clear()
        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == [club_id]


class TestAuthEndpoints:
    """인증 API 테스트"""

    def test_register_and_login(self, client, identity_provider):
        """가입 → 로그인 → 내 정보"""
        response = client.post("/auth/register", json={
            "email": "ahmad@example.com",
            "password": "secret123",
            "confirm_password": "secret123",
            "first_name": "Ahmad",
            "last_name": "Ismail",
            "phone": "012-3456789",
            "agree_to_terms": True,
        })
        assert response.status_code == 201
        assert response.json()["profile"]["display_name"] == "Ahmad Ismail"

        login = client.post("/auth/login", json={"email": "ahmad@example.com", "password": "secret123"})
        assert login.status_code == 200
        body = login.json()
        assert body["user"]["auth"]["login_count"] == 2
        assert login.cookies.get("access_token") == body["access_token"]

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.json()["email"] == "ahmad@example.com"

    def test_register_validation(self, client):
        """비밀번호 불일치 → 422"""
        response = client.post("/auth/register", json={
            "email": "ahmad@example.com",
            "password": "secret123",
            "confirm_password": "secret124",
            "first_name": "Ahmad",
            "last_name": "Ismail",
            "agree_to_terms": True,
        })
        assert response.status_code == 422

    def test_login_wrong_password(self, client, identity_provider):
        """잘못된 비밀번호 → 400"""
        identity_provider.add_account("u1", "a@example.com", "secret123")
        response = client.post("/auth/login", json={"email": "a@example.com", "password": "nope"})
        assert response.status_code == 400

    def test_login_without_user_document(self, client, identity_provider):
        """계정은 있으나 사용자 문서 없음 → 404"""
        identity_provider.add_account("u1", "a@example.com", "secret123")
        response = client.post("/auth/login", json={"email": "a@example.com", "password": "secret123"})
        assert response.status_code == 404
        assert response.json()["detail"] == "User data not found"

    def test_logout_clears_cookie(self, client):
        """로그아웃 시 쿠키 삭제"""
        response = client.post("/auth/logout")
        assert response.status_code == 200
        assert "access_token=" in response.headers["set-cookie"]

    def test_password_reset(self, client, identity_provider):
        """재설정 메일 요청"""
        response = client.post("/auth/password-reset", json={"email": "a@example.com"})
        assert response.status_code == 200
        assert identity_provider.reset_emails == ["a@example.com"]

    def test_verify_email(self, client, identity_provider):
        """인증 메일 재발송"""
        response = client.post("/auth/verify-email", json={"email": "a@example.com"})
        assert response.status_code == 200
        assert identity_provider.verification_emails == ["a@example.com"]

    def test_social_reconcile(self, client, identity_provider):
        """소셜 로그인 사용자 문서 생성"""
        identity_provider.add_account("g-1", "lee@gmail.com")
        response = client.post(
            "/auth/social/reconcile", json={"display_name": "Lee Wei"}, headers=auth_header("g-1")
        )
        assert response.status_code == 200
        assert response.json()["profile"]["display_name"] == "Lee Wei"

    def test_profile_and_preferences(self, client, identity_provider, directory):
        """프로필/환경설정 수정"""
        identity_provider.add_account("g-1", "lee@gmail.com")
        client.post("/auth/social/reconcile", json={}, headers=auth_header("g-1"))

        profile = client.patch("/auth/me", json={"first_name": "Lee"}, headers=auth_header("g-1"))
        assert profile.json()["profile"]["first_name"] == "Lee"

        prefs = client.patch("/auth/me/preferences", json={"language": "zh"}, headers=auth_header("g-1"))
        assert prefs.json()["preferences"]["language"] == "zh"

        bad_phone = client.patch("/auth/me", json={"phone": "12345"}, headers=auth_header("g-1"))
        assert bad_phone.status_code == 422

    def test_change_email_requires_password(self, client, identity_provider):
        """현재 비밀번호 재인증"""
        identity_provider.add_account("g-1", "lee@gmail.com", "secret123")
        client.post("/auth/social/reconcile", json={}, headers=auth_header("g-1"))

        wrong = client.post(
            "/auth/me/email",
            json={"new_email": "lee@new.my", "current_password": "nope"},
            headers=auth_header("g-1"),
        )
        assert wrong.status_code == 400

        ok = client.post(
            "/auth/me/email",
            json={"new_email": "lee@new.my", "current_password": "secret123"},
            headers=auth_header("g-1"),
        )
        assert ok.status_code == 200
        assert ok.json()["email"] == "lee@new.my"
        assert "lee@new.my" in identity_provider.accounts

    def test_change_password(self, client, identity_provider):
        """비밀번호 변경"""
        identity_provider.add_account("g-1", "lee@gmail.com", "secret123")
        client.post("/auth/social/reconcile", json={}, headers=auth_header("g-1"))
        response = client.post(
            "/auth/me/password",
            json={"current_password": "secret123", "password": "newsecret", "confirm_password": "newsecret"},
            headers=auth_header("g-1"),
        )
        assert response.status_code == 200
        assert identity_provider.accounts["lee@gmail.com"]["password"] == "newsecret"


class TestClubEndpoints:
    """클럽 API 테스트"""

    def test_create_club(self, client, admin_user):
        """생성 응답"""
        response = client.post("/api/clubs", json=CLUB_PAYLOAD, headers=auth_header(admin_user))
        assert response.status_code == 201
        body = response.json()
        assert body["name_slug"] == "kl-badminton-club"
        assert body["stats"]["total_members"] == 1

        second = client.post("/api/clubs", json=CLUB_PAYLOAD, headers=auth_header(admin_user))
        assert second.json()["name_slug"] == "kl-badminton-club-1"

    def test_create_club_validation(self, client, admin_user):
        """잘못된 주 이름 → 422"""
        payload = dict(CLUB_PAYLOAD, address={"state": "California"})
        response = client.post("/api/clubs", json=payload, headers=auth_header(admin_user))
        assert response.status_code == 422

    def test_get_club_and_current(self, client, admin_user, club_id):
        """상세 / 기본 클럽"""
        detail = client.get(f"/api/clubs/{club_id}", headers=auth_header(admin_user))
        assert detail.status_code == 200
        assert detail.json()["membership"]["role"] == "admin"

        current = client.get("/api/clubs/current", headers=auth_header(admin_user))
        assert current.json()["id"] == club_id

    def test_get_club_not_member(self, client, identity_provider, club_id):
        """비회원 → 403"""
        identity_provider.add_account("outsider", "out@example.com")
        response = client.get(f"/api/clubs/{club_id}", headers=auth_header("outsider"))
        assert response.status_code == 403
        current = client.get("/api/clubs/current", headers=auth_header("outsider"))
        assert current.status_code == 403

    def test_update_settings(self, client, identity_provider, admin_user, club_id):
        """admin 수정 가능, 회원 403"""
        response = client.patch(
            f"/api/clubs/{club_id}",
            json={"operating_hours": {"sunday": {"is_open": False, "open_time": "08:00", "close_time": "12:00"}}},
            headers=auth_header(admin_user),
        )
        assert response.status_code == 200
        assert response.json()["operating_hours"]["sunday"]["is_open"] is False

        _join(client, identity_provider, club_id, admin_user, "m-1", "m1@example.com")
        denied = client.patch(f"/api/clubs/{club_id}", json={"name": "Mine"}, headers=auth_header("m-1"))
        assert denied.status_code == 403


class TestMemberEndpoints:
    """회원 API 테스트"""

    def test_my_membership_capabilities(self, client, identity_provider, admin_user, club_id):
        """액션별 허용 여부"""
        mine = client.get(f"/api/clubs/{club_id}/members/me", headers=auth_header(admin_user)).json()
        assert mine["can"] == {"view": True, "manage_members": True, "manage_settings": True}

        _join(client, identity_provider, club_id, admin_user, "m-1", "m1@example.com")
        theirs = client.get(f"/api/clubs/{club_id}/members/me", headers=auth_header("m-1")).json()
        assert theirs["member"]["role"] == "member"
        assert theirs["can"] == {"view": True, "manage_members": False, "manage_settings": False}

    def test_list_update_remove(self, client, identity_provider, admin_user, club_id):
        """목록 → 역할 변경 → 탈퇴"""
        joined = _join(client, identity_provider, club_id, admin_user, "m-1", "m1@example.com")
        headers = auth_header(admin_user)

        listed = client.get(f"/api/clubs/{club_id}/members", headers=headers).json()
        assert {m["member"]["user_id"] for m in listed} == {admin_user, "m-1"}

        patched = client.patch(
            f"/api/clubs/{club_id}/members/{joined['id']}", json={"role": "coach"}, headers=headers
        )
        assert patched.json()["role"] == "coach"

        removed = client.delete(f"/api/clubs/{club_id}/members/{joined['id']}", headers=headers)
        assert removed.json()["status"] == "inactive"

        active = client.get(f"/api/clubs/{club_id}/members", headers=headers).json()
        assert [m["member"]["user_id"] for m in active] == [admin_user]
        inactive = client.get(f"/api/clubs/{club_id}/members?status=inactive", headers=headers).json()
        assert [m["member"]["user_id"] for m in inactive] == ["m-1"]
        everyone = client.get(f"/api/clubs/{club_id}/members?include_all=true", headers=headers).json()
        assert len(everyone) == 2

        club = client.get(f"/api/clubs/{club_id}", headers=headers).json()["club"]
        assert club["stats"]["total_members"] == 1

    def test_status_patch_keeps_stats(self, client, identity_provider, admin_user, club_id):
        """정지 → 탈퇴 시 stats 와 실제 명단 일치"""
        joined = _join(client, identity_provider, club_id, admin_user, "m-1", "m1@example.com")
        headers = auth_header(admin_user)

        suspended = client.patch(
            f"/api/clubs/{club_id}/members/{joined['id']}", json={"status": "suspended"}, headers=headers
        )
        assert suspended.json()["status"] == "suspended"
        stats = client.get(f"/api/clubs/{club_id}", headers=headers).json()["club"]["stats"]
        assert (stats["total_members"], stats["active_members"]) == (2, 1)

        removed = client.delete(f"/api/clubs/{club_id}/members/{joined['id']}", headers=headers)
        assert removed.json()["status"] == "inactive"
        assert removed.json()["left_at"] is not None
        stats = client.get(f"/api/clubs/{club_id}", headers=headers).json()["club"]["stats"]
        assert (stats["total_members"], stats["active_members"]) == (1, 1)

    def test_cannot_remove_self(self, client, admin_user, club_id):
        """본인 삭제 → 400"""
        me = client.get(f"/api/clubs/{club_id}/members/me", headers=auth_header(admin_user)).json()["member"]
        response = client.delete(f"/api/clubs/{club_id}/members/{me['id']}", headers=auth_header(admin_user))
        assert response.status_code == 400

    def test_member_not_found(self, client, admin_user, club_id):
        """없는 회원 → 404"""
        response = client.get(f"/api/clubs/{club_id}/members/missing", headers=auth_header(admin_user))
        assert response.status_code == 404


class TestInvitationEndpoints:
    """초대 / 가입 API 테스트"""

    def test_invite_and_accept(self, client, identity_provider, admin_user, club_id):
        """이메일 초대 → 검증 → 수락 → 재사용 거부"""
        created = client.post(
            f"/api/clubs/{club_id}/invitations",
            json={"email": "ali@example.com", "role": "coach"},
            headers=auth_header(admin_user),
        )
        assert created.status_code == 201
        code = created.json()["invitation"]["code"]
        assert created.json()["join_link"] == f"https://clubhub.my/clubs/join?code={code}&clubId={club_id}"

        check = client.get(f"/api/join/{code}", params={"clubId": club_id})
        assert check.status_code == 200
        assert check.json()["club_name"] == "KL Badminton Club!!"

        identity_provider.add_account("ali", "ali@example.com")
        accepted = client.post(f"/api/join/{code}", params={"clubId": club_id}, headers=auth_header("ali"))
        assert accepted.status_code == 201
        assert accepted.json()["role"] == "coach"

        reused = client.get(f"/api/join/{code}")
        assert reused.status_code == 409

    def test_unknown_code(self, client):
        """없는 코드 → 404 + 안내 문구"""
        response = client.get("/api/join/ZZZZ9999")
        assert response.status_code == 404
        assert response.json()["detail"] == "Invalid registration link. Please contact your club administrator."

    def test_list_invitations(self, client, admin_user, club_id):
        """초대 목록"""
        headers = auth_header(admin_user)
        client.post(f"/api/clubs/{club_id}/invitations", json={"email": "a@example.com"}, headers=headers)
        client.post(f"/api/clubs/{club_id}/invitations/bulk", json={"member_limit": 10}, headers=headers)
        listed = client.get(f"/api/clubs/{club_id}/invitations", headers=headers)
        assert listed.status_code == 200
        assert {v["invitation"]["type"] for v in listed.json()} == {"single", "bulk"}

    def test_member_cannot_invite(self, client, identity_provider, admin_user, club_id):
        """일반 회원 초대 → 403"""
        _join(client, identity_provider, club_id, admin_user, "m-1", "m1@example.com")
        response = client.post(
            f"/api/clubs/{club_id}/invitations", json={"email": "x@example.com"}, headers=auth_header("m-1")
        )
        assert response.status_code == 403

    def test_self_register(self, client, admin_user, club_id):
        """일괄 링크 신규 가입 → 인원 초과"""
        link = client.post(
            f"/api/clubs/{club_id}/invitations/bulk", json={"member_limit": 1}, headers=auth_header(admin_user)
        ).json()
        code = link["invitation"]["code"]
        assert link["join_link"] == f"https://clubhub.my/join/{code}"

        payload = {
            "email": "aminah@example.com",
            "password": "secret123",
            "confirm_password": "secret123",
            "first_name": "Aminah",
            "last_name": "Yusof",
            "phone": "012-3456789",
            "emergency_contact": {"name": "Yusof", "relationship": "Father", "phone": "013-9876543"},
        }
        response = client.post(f"/api/join/{code}/register", json=payload)
        assert response.status_code == 201
        assert response.json()["club_id"] == club_id

        full = client.post(f"/api/join/{code}/register", json=dict(payload, email="late@example.com"))
        assert full.status_code == 409
        assert full.json()["detail"] == "This registration link has reached its member limit."

    def test_self_register_requires_emergency_contact(self, client, admin_user, club_id):
        """비상 연락처 누락 → 422"""
        link = client.post(
            f"/api/clubs/{club_id}/invitations/bulk", json={}, headers=auth_header(admin_user)
        ).json()
        response = client.post(f"/api/join/{link['invitation']['code']}/register", json={
            "email": "aminah@example.com",
            "password": "secret123",
            "confirm_password": "secret123",
            "first_name": "Aminah",
            "last_name": "Yusof",
            "phone": "012-3456789",
        })
        assert response.status_code == 422
