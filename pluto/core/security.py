# pluto/core/security.py
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import jsonify
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    get_jwt,
    get_jwt_identity,
    verify_jwt_in_request,
)

from pluto.models.user import User, UserRole


@dataclass(frozen=True)
class Principal:
    """
    요청을 보낸 인증된 사용자.
    서비스 메서드는 전역 세션 상태 대신 이 객체를 명시적으로 전달받습니다.
    """
    user_id: str
    role: UserRole
    email: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_doctor(self) -> bool:
        return self.role == UserRole.DOCTOR


def issue_tokens(user: User) -> dict:
    """로그인/가입 성공 시 Access/Refresh 토큰을 발급합니다."""
    claims = {"role": user.role.value, "email": user.email, "name": user.display_name()}
    return {
        "access_token": create_access_token(identity=user.id, additional_claims=claims),
        "refresh_token": create_refresh_token(identity=user.id, additional_claims=claims),
    }


def current_principal() -> Principal:
    """현재 요청의 JWT에서 Principal을 만듭니다. jwt_required 뒤에서만 호출해야 합니다."""
    claims = get_jwt()
    return Principal(
        user_id=get_jwt_identity(),
        role=UserRole(claims.get("role", UserRole.PET_OWNER.value)),
        email=claims.get("email"),
        name=claims.get("name"),
    )


def role_required(role: UserRole):
    """특정 역할(PET_OWNER / DOCTOR)만 접근 가능한 엔드포인트에 사용하는 데코레이터."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()
            if current_principal().role != role:
                return jsonify({"error_code": "FORBIDDEN", "message": f"Only {role.value} accounts can do that."}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator
