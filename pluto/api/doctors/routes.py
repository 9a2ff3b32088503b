# pluto/api/doctors/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from pluto.core.errors import PlutoError
from pluto.core.security import current_principal, role_required
from pluto.models.user import UserRole
from pluto.utils.payload import sanitize
from .schemas import DoctorProfileUpdateSchema, DoctorListQuerySchema, DoctorNoteCreateSchema

doctors_bp = Blueprint('doctors_bp', __name__)

@doctors_bp.route('', methods=['GET'])
@jwt_required()
def list_doctors():
    """수의사 목록 (쿼리 파라미터 specialization 으로 필터링)"""
    service = current_app.services['doctors']
    try:
        params = DoctorListQuerySchema().load(request.args)
        return jsonify({"doctors": service.list_doctors(params.get('specialization'))}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except Exception as e:
        logging.error(f"Doctor list API error: {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "수의사 목록 조회 중 오류가 발생했습니다."}), 500

@doctors_bp.route('/me', methods=['GET'])
@role_required(UserRole.DOCTOR)
def get_my_profile():
    service = current_app.services['doctors']
    principal = current_principal()
    profile = service.get_doctor(principal.user_id)
    if profile is None:
        return jsonify({"error_code": "PROFILE_NOT_FOUND", "message": "Profile not found."}), 404
    return jsonify(sanitize(profile.to_dict())), 200

@doctors_bp.route('/me', methods=['PATCH'])
@role_required(UserRole.DOCTOR)
def update_my_profile():
    service = current_app.services['doctors']
    try:
        changes = DoctorProfileUpdateSchema().load(request.get_json() or {})
        profile = service.update_doctor_profile(current_principal(), changes)
        return jsonify(sanitize(profile.to_dict())), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"Doctor profile update API error: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "프로필 수정 중 오류가 발생했습니다."}), 500

@doctors_bp.route('/patients/<string:pet_id>', methods=['GET'])
@role_required(UserRole.DOCTOR)
def search_patient(pet_id: str):
    """[수의사 전용] 반려동물 ID(PET-...)로 환자를 조회하고 방문 이력을 남깁니다."""
    service = current_app.services['doctors']
    try:
        return jsonify(service.search_patient(current_principal(), pet_id)), 200
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"Patient search API error (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "환자 조회 중 오류가 발생했습니다."}), 500

@doctors_bp.route('/patients/<string:pet_id>/notes', methods=['POST'])
@role_required(UserRole.DOCTOR)
def add_doctor_note(pet_id: str):
    service = current_app.services['records']
    try:
        data = DoctorNoteCreateSchema().load(request.get_json() or {})
        note = service.add_doctor_note(current_principal(), pet_id, data['content'])
        return jsonify(note), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"Doctor note API error (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "RECORD_CREATION_FAILED", "message": "진료 메모 저장 중 오류가 발생했습니다."}), 500

@doctors_bp.route('/patients/<string:pet_id>/notes/<string:note_id>', methods=['DELETE'])
@jwt_required()
def delete_doctor_note(pet_id: str, note_id: str):
    """진료 메모 삭제. 수의사와 해당 반려동물의 보호자 모두 삭제할 수 있습니다."""
    service = current_app.services['records']
    try:
        deleted = service.delete_doctor_note(current_principal(), pet_id, note_id)
        return jsonify({"deleted": deleted}), 200
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"Doctor note delete API error (pet_id: {pet_id}, note_id: {note_id}): {e}", exc_info=True)
        return jsonify({"error_code": "RECORD_DELETION_FAILED", "message": "진료 메모 삭제 중 오류가 발생했습니다."}), 500

@doctors_bp.route('/consulted/<string:pet_id>', methods=['GET'])
@jwt_required()
def get_consulted_doctors(pet_id: str):
    """반려동물 기록을 열람한 수의사 목록 (최근 방문 순)"""
    service = current_app.services['doctors']
    try:
        return jsonify({"doctors": service.get_consulted_doctors(current_principal(), pet_id)}), 200
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"Consulted doctors API error (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "수의사 조회 중 오류가 발생했습니다."}), 500
