# pluto/core/errors.py
"""
Pluto 서비스 계층에서 발생시키는 예외 모음.

라우트와 전역 에러 핸들러는 error_code / status_code 를 그대로 응답에 사용합니다.
"""
from typing import Any, Dict, Optional


class PlutoError(Exception):
    """모든 도메인 예외의 기반 클래스."""
    error_code = "PLUTO_ERROR"
    status_code = 500
    default_message = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None, error_code: Optional[str] = None,
                 status_code: Optional[int] = None, extra: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.extra = extra or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {"error_code": self.error_code, "message": self.message}
        payload.update(self.extra)
        return payload


# --- 인증 / 가입 ---
class RegistrationError(PlutoError):
    error_code = "REGISTRATION_FAILED"
    status_code = 400
    default_message = "Registration failed. Please check your details and try again."


class ProfileSetupError(RegistrationError):
    """계정(identity)은 생성되었지만 프로필 저장에 실패한 부분 실패 상태."""
    error_code = "PROFILE_SETUP_FAILED"
    status_code = 500
    default_message = ("Your account was created but profile setup failed. "
                       "Please log in to finish setting up your profile.")


class AuthenticationError(PlutoError):
    error_code = "AUTHENTICATION_FAILED"
    status_code = 401
    default_message = "Invalid email or password."


class EmailNotVerifiedError(AuthenticationError):
    error_code = "EMAIL_NOT_VERIFIED"
    status_code = 403
    default_message = "Please verify your email address before logging in."


class NotAuthenticatedError(PlutoError):
    error_code = "NOT_AUTHENTICATED"
    status_code = 401
    default_message = "You must be logged in to do that."


class PermissionDeniedError(PlutoError):
    error_code = "FORBIDDEN"
    status_code = 403
    default_message = "You do not have permission to do that."


# --- 데이터 접근 ---
class ProfileNotFoundError(PlutoError):
    error_code = "PROFILE_NOT_FOUND"
    status_code = 404
    default_message = "Profile not found."


class NotFoundError(PlutoError):
    error_code = "NOT_FOUND"
    status_code = 404
    default_message = "The requested record was not found."


class UnresolvableOwnerError(PlutoError):
    error_code = "UNRESOLVABLE_OWNER"
    status_code = 400
    default_message = "Could not determine which pet record to use."


class ConcurrentModificationError(PlutoError):
    error_code = "CONCURRENT_MODIFICATION"
    status_code = 409
    default_message = "The record was changed by someone else. Please retry."


# --- 외부 서비스 ---
class ExternalServiceError(PlutoError):
    error_code = "EXTERNAL_SERVICE_ERROR"
    status_code = 502
    default_message = "An external service request failed."

    def __init__(self, message: Optional[str] = None, service: Optional[str] = None,
                 upstream_status: Optional[int] = None, **kwargs):
        self.service = service
        self.upstream_status = upstream_status
        super().__init__(message, **kwargs)
