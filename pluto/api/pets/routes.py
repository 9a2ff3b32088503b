# pluto/api/pets/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from pluto.core.errors import PlutoError
from pluto.core.security import current_principal
from .schemas import PetProfileUpdateSchema, PetProfileResponseSchema, HealthTrendsQuerySchema

pets_bp = Blueprint('pets_bp', __name__)

@pets_bp.route('/<string:pet_id>/records', methods=['GET'])
@jwt_required()
def get_pet_records(pet_id: str):
    """반려동물의 전체 기록(케어 일지, 예정 케어, 문서, 진료 메모, 체크리스트, 일일 기록, 루틴)을 조회합니다."""
    service = current_app.services['records']
    try:
        records = service.get_pet_records(current_principal(), pet_id)
        return jsonify(records), 200
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"Get pet records API error (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "기록 조회 중 오류가 발생했습니다."}), 500

@pets_bp.route('/<string:pet_id>/profile', methods=['GET'])
@jwt_required()
def get_pet_profile(pet_id: str):
    service = current_app.services['records']
    try:
        profile = service.get_pet_profile(current_principal(), pet_id)
        if profile is None:
            return jsonify({"error_code": "PROFILE_NOT_FOUND", "message": "Profile not found."}), 404
        return jsonify(PetProfileResponseSchema().dump(profile.to_dict())), 200
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"Get pet profile API error (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "프로필 조회 중 오류가 발생했습니다."}), 500

@pets_bp.route('/<string:pet_id>/profile', methods=['PATCH'])
@jwt_required()
def update_pet_profile(pet_id: str):
    """[소유자 전용] 반려동물 프로필 부분 업데이트."""
    service = current_app.services['records']
    try:
        update_data = PetProfileUpdateSchema().load(request.get_json() or {})
        if not update_data:
            return jsonify({"error_code": "VALIDATION_ERROR", "message": "수정할 데이터가 제공되지 않았습니다."}), 400
        profile = service.update_pet_profile(current_principal(), pet_id, update_data)
        return jsonify(PetProfileResponseSchema().dump(profile.to_dict())), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"Update pet profile API error (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "프로필 수정 중 오류가 발생했습니다."}), 500

@pets_bp.route('/<string:pet_id>/trends', methods=['GET'])
@jwt_required()
def get_health_trends(pet_id: str):
    """
    최근 N일간 일일 기록 지표 추이.

    쿼리 파라미터:
    - metric: activityMinutes | feedingCount | moodRating (기본값: activityMinutes)
    - days: 1-90 (기본값: 7)
    """
    service = current_app.services['records']
    try:
        params = HealthTrendsQuerySchema().load(request.args)
        series = service.get_health_trends(current_principal(), pet_id, params['metric'], params['days'])
        return jsonify({"metric": params['metric'], "series": series}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"Health trends API error (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "추이 조회 중 오류가 발생했습니다."}), 500
