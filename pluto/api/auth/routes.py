# pluto/api/auth/routes.py

import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity, get_jwt
from marshmallow import ValidationError

from pluto.api.auth.schemas import (
    RegisterSchema,
    LoginSchema,
    PetDetailsSchema,
    DoctorDetailsSchema,
    ResendVerificationSchema,
    PasswordResetSchema,
)
from pluto.core.errors import PlutoError
from pluto.core.security import issue_tokens
from pluto.models.user import UserRole
from pluto.utils.payload import sanitize

auth_bp = Blueprint('auth_bp', __name__)


@auth_bp.route('/register', methods=['POST'])
def register():
    """이메일/비밀번호 회원가입. 인증 메일이 발송되며, 인증 전에는 로그인할 수 없습니다."""
    auth_service = current_app.services['auth']
    try:
        data = RegisterSchema().load(request.get_json() or {})
        role = UserRole(data['role'])
        details_schema = DoctorDetailsSchema() if role == UserRole.DOCTOR else PetDetailsSchema()
        details = details_schema.load(data['details'])

        user = auth_service.register(data['email'], data['password'], role, details)
        return jsonify({
            "message": "Account created. Please check your inbox to verify your email.",
            "user": sanitize(user.to_dict())
        }), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"회원가입 처리 중 예외 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부 오류가 발생했습니다."}), 500


@auth_bp.route('/login', methods=['POST'])
def login():
    """로그인 후 Access/Refresh 토큰과 사용자 프로필을 반환합니다."""
    auth_service = current_app.services['auth']
    try:
        data = LoginSchema().load(request.get_json() or {})
        role = UserRole(data['role']) if data.get('role') else None
        user = auth_service.login(data['email'], data['password'], role)

        tokens = issue_tokens(user)
        return jsonify({**tokens, "user": sanitize(user.to_dict())}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"로그인 처리 중 예외 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부 오류가 발생했습니다."}), 500


# --- 토큰 재발급 엔드포인트 ---
@auth_bp.route('/token/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh_token():
    """유효한 Refresh Token으로 새로운 Access Token을 발급합니다. 역할 등 claim 은 그대로 유지합니다."""
    claims = get_jwt()
    additional_claims = {key: claims.get(key) for key in ("role", "email", "name")}
    new_access_token = create_access_token(identity=get_jwt_identity(), additional_claims=additional_claims)
    return jsonify(access_token=new_access_token), 200


@auth_bp.route('/verification/resend', methods=['POST'])
def resend_verification():
    """로그인 시 EMAIL_NOT_VERIFIED 응답으로 받은 verification_token 으로 인증 메일을 다시 보냅니다."""
    auth_service = current_app.services['auth']
    try:
        data = ResendVerificationSchema().load(request.get_json() or {})
        auth_service.resend_verification(data['verification_token'])
        return jsonify({"message": "Verification email sent."}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"인증 메일 재발송 중 예외 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부 오류가 발생했습니다."}), 500


@auth_bp.route('/password-reset', methods=['POST'])
def password_reset():
    auth_service = current_app.services['auth']
    try:
        data = PasswordResetSchema().load(request.get_json() or {})
        auth_service.send_password_reset(data['email'])
        return jsonify({"message": "Password reset email sent."}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"비밀번호 재설정 메일 발송 중 예외 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부 오류가 발생했습니다."}), 500


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_me():
    """현재 로그인한 사용자의 프로필"""
    auth_service = current_app.services['auth']
    user = auth_service.get_user_profile(get_jwt_identity())
    if user is None:
        return jsonify({"error_code": "PROFILE_NOT_FOUND", "message": "Profile not found."}), 404
    return jsonify(sanitize(user.to_dict())), 200


# --- 회원 탈퇴 엔드포인트 ---
@auth_bp.route('/account', methods=['DELETE'])
@jwt_required()
def delete_account():
    """인증 계정과 프로필, 반려동물 기록을 모두 삭제합니다."""
    auth_service = current_app.services['auth']
    user_id = get_jwt_identity()
    try:
        auth_service.delete_account(user_id)
        return jsonify({"message": "Account deleted."}), 200
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"회원 탈퇴 처리 중 오류 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "ACCOUNT_DELETION_FAILED", "message": "회원 탈퇴 처리 중 오류가 발생했습니다."}), 500
