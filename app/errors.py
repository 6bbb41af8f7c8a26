"""
Domain Errors - 서비스 계층 예외

라우터는 ClubHubError 하위 예외를 그대로 올리고,
app.server 의 예외 핸들러가 status_code/message 로 응답을 만든다.
저장소(Supabase) 오류는 여기에 포함되지 않으며 변환 없이 전파된다.
"""


class ClubHubError(Exception):
    """도메인 예외 기본 클래스"""

    status_code = 400
    message = "Request could not be completed"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


# =============================================
# NotFound
# =============================================

class NotFoundError(ClubHubError):
    status_code = 404
    message = "Not found"


class ClubNotFound(NotFoundError):
    message = "Club not found"


class MemberNotFound(NotFoundError):
    message = "Member not found"


class UserNotFound(NotFoundError):
    message = "User data not found"


class InvitationNotFound(NotFoundError):
    message = "Invalid registration link. Please contact your club administrator."


# =============================================
# Unauthorized
# =============================================

class AuthenticationRequired(ClubHubError):
    status_code = 401
    message = "Authentication required"


class PermissionDenied(ClubHubError):
    status_code = 403
    message = "You do not have permission to perform this action"


# =============================================
# Expired / 사용 불가 초대
# =============================================

class InvitationUnavailable(ClubHubError):
    """검증 실패한 초대 (초대 문서는 수정하지 않음)"""
    status_code = 409


class InvitationUsed(InvitationUnavailable):
    message = "This invitation has already been used."


class InvitationExpired(InvitationUnavailable):
    status_code = 410
    message = "This registration link has expired. Please request a new one."


class InvitationLimitReached(InvitationUnavailable):
    message = "This registration link has reached its member limit."


# =============================================
# 기타
# =============================================

class RosterRuleViolation(ClubHubError):
    """회원 목록 화면 규칙 위반 (owner 변경, 본인 변경 등)"""
    status_code = 400


class IdentityError(ClubHubError):
    """인증 제공자가 거부한 요청 (중복 이메일, 잘못된 비밀번호 등)"""
    status_code = 400
    message = "Authentication provider rejected the request"


class ConcurrentUpdateError(ClubHubError):
    """조건부 업데이트 재시도 한도 초과"""
    status_code = 409
    message = "The record was modified concurrently. Please try again."
