"""
Club Management Router

- 클럽 생성/조회/설정
- 회원 명단 관리
- 초대 / 일괄 등록 링크
- 초대 코드로 가입 (/api/join)
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.auth.identity import IdentityProvider, RequestIdentity, get_identity_provider, get_request_identity
from app.auth.models import SelfRegistrationRequest
from app.auth.service import UserDirectory, get_user_directory

from .dependencies import ClubMemberContext, get_club_member_context, get_club_service
from .models import (
    BulkInvitationCreate,
    Club,
    ClubCreate,
    ClubMember,
    ClubMemberUpdate,
    ClubUpdate,
    ClubWithMembership,
    InvitationCheck,
    InvitationCreate,
    InvitationView,
    MemberStatus,
    MemberWithUser,
)
from .service import ClubService

router = APIRouter(prefix="/api/clubs", tags=["Clubs"])
join_router = APIRouter(prefix="/api/join", tags=["Join"])


# =============================================
# Clubs
# =============================================

@router.post("", response_model=Club, status_code=201)
async def create_club(
    data: ClubCreate,
    identity: RequestIdentity = Depends(get_request_identity),
    service: ClubService = Depends(get_club_service),
):
    """클럽 생성 (생성자는 admin)"""
    return await service.create_club(identity, data)


@router.get("", response_model=List[Club])
async def list_my_clubs(
    identity: RequestIdentity = Depends(get_request_identity),
    service: ClubService = Depends(get_club_service),
):
    """내가 활성 회원인 클럽 목록"""
    return await service.list_my_clubs(identity)


@router.get("/current", response_model=Club)
async def get_current_club(
    identity: RequestIdentity = Depends(get_request_identity),
    service: ClubService = Depends(get_club_service),
):
    """기본 클럽 (가장 먼저 생성된 클럽)"""
    return await service.get_current_club(identity)


@router.get("/{club_id}", response_model=ClubWithMembership)
async def get_club(
    club_id: str,
    identity: RequestIdentity = Depends(get_request_identity),
    service: ClubService = Depends(get_club_service),
):
    """클럽 상세 + 내 멤버십"""
    return await service.get_club_for_member(club_id, identity)


@router.patch("/{club_id}", response_model=Club)
async def update_club(
    club_id: str,
    update: ClubUpdate,
    identity: RequestIdentity = Depends(get_request_identity),
    service: ClubService = Depends(get_club_service),
):
    """클럽 설정 수정 (manage_settings)"""
    return await service.update_settings(club_id, identity, update)


# =============================================
# Members
# =============================================

@router.get("/{club_id}/members", response_model=List[MemberWithUser])
async def list_members(
    club_id: str,
    status: Optional[MemberStatus] = Query(MemberStatus.active, description="회원 상태 필터"),
    include_all: bool = Query(False, description="상태 무관 전체 조회"),
    identity: RequestIdentity = Depends(get_request_identity),
    service: ClubService = Depends(get_club_service),
):
    """회원 목록 (view)"""
    return await service.list_members(club_id, identity, None if include_all else status)


@router.get("/{club_id}/members/me")
async def get_my_membership(
    ctx: ClubMemberContext = Depends(get_club_member_context),
):
    """내 멤버십 + 액션별 허용 여부"""
    return {
        "member": ctx.member,
        "can": ctx.capabilities(),
    }


@router.get("/{club_id}/members/{member_id}", response_model=MemberWithUser)
async def get_member(
    club_id: str,
    member_id: str,
    identity: RequestIdentity = Depends(get_request_identity),
    service: ClubService = Depends(get_club_service),
):
    """회원 상세 (사용자 정보 포함)"""
    return await service.get_member(club_id, identity, member_id)


@router.patch("/{club_id}/members/{member_id}", response_model=ClubMember)
async def update_member(
    club_id: str,
    member_id: str,
    update: ClubMemberUpdate,
    identity: RequestIdentity = Depends(get_request_identity),
    service: ClubService = Depends(get_club_service),
):
    """회원 역할/권한/상태 변경 (manage_members)"""
    return await service.change_member(club_id, identity, member_id, update)


@router.delete("/{club_id}/members/{member_id}", response_model=ClubMember)
async def remove_member(
    club_id: str,
    member_id: str,
    identity: RequestIdentity = Depends(get_request_identity),
    service: ClubService = Depends(get_club_service),
):
    """회원 탈퇴 처리 (manage_members)"""
    return await service.remove_member(club_id, identity, member_id)


# =============================================
# Invitations
# =============================================

@router.post("/{club_id}/invitations", response_model=InvitationView, status_code=201)
async def invite_member(
    club_id: str,
    request: InvitationCreate,
    identity: RequestIdentity = Depends(get_request_identity),
    service: ClubService = Depends(get_club_service),
):
    """이메일 초대 생성"""
    return await service.invite_member(club_id, identity, request)


@router.post("/{club_id}/invitations/bulk", response_model=InvitationView, status_code=201)
async def create_registration_link(
    club_id: str,
    request: BulkInvitationCreate,
    identity: RequestIdentity = Depends(get_request_identity),
    service: ClubService = Depends(get_club_service),
):
    """일괄 등록 링크 생성"""
    return await service.create_registration_link(club_id, identity, request)


@router.get("/{club_id}/invitations", response_model=List[InvitationView])
async def list_invitations(
    club_id: str,
    identity: RequestIdentity = Depends(get_request_identity),
    service: ClubService = Depends(get_club_service),
):
    """초대 목록 (최신순)"""
    return await service.list_invitations(club_id, identity)


# =============================================
# Join
# =============================================

@join_router.get("/{code}", response_model=InvitationCheck)
async def check_invitation(
    code: str,
    club_id: Optional[str] = Query(None, alias="clubId"),
    service: ClubService = Depends(get_club_service),
):
    """초대 코드 검증 (로그인 불필요)"""
    return await service.check_invitation(code, club_id)


@join_router.post("/{code}", response_model=ClubMember, status_code=201)
async def accept_invitation(
    code: str,
    club_id: Optional[str] = Query(None, alias="clubId"),
    identity: RequestIdentity = Depends(get_request_identity),
    service: ClubService = Depends(get_club_service),
):
    """로그인한 사용자가 초대 수락"""
    return await service.accept_invitation(code, identity, club_id)


@join_router.post("/{code}/register", response_model=ClubMember, status_code=201)
async def self_register(
    code: str,
    request: SelfRegistrationRequest,
    service: ClubService = Depends(get_club_service),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    directory: UserDirectory = Depends(get_user_directory),
):
    """일괄 등록 링크로 신규 가입"""
    return await service.self_register(code, request, identity_provider, directory)
