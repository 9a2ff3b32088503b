# pluto/api/daily/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from pluto.core.errors import PlutoError
from pluto.core.security import current_principal
from .schemas import (
    ChecklistUpdateSchema,
    DailyLogUpdateSchema,
    RoutineCreateSchema,
    RoutineUpdateSchema,
    RoutinesReplaceSchema,
)

daily_bp = Blueprint('daily_bp', __name__)

@daily_bp.route('/<string:pet_id>/checklist', methods=['PATCH'])
@jwt_required()
def update_checklist(pet_id: str):
    service = current_app.services['records']
    try:
        changes = ChecklistUpdateSchema().load(request.get_json() or {})
        checklist = service.update_checklist(current_principal(), pet_id, changes)
        return jsonify(checklist), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"체크리스트 수정 API 오류 (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "RECORD_UPDATE_FAILED", "message": "체크리스트 수정 중 오류 발생"}), 500

@daily_bp.route('/<string:pet_id>/daily-logs/<string:log_date>', methods=['PATCH'])
@jwt_required()
def update_daily_log(pet_id: str, log_date: str):
    """해당 날짜(YYYY-MM-DD)의 활동 시간, 기분, 식사 횟수를 기록합니다."""
    service = current_app.services['records']
    try:
        changes = DailyLogUpdateSchema().load(request.get_json() or {})
        entry = service.update_daily_log(current_principal(), pet_id, log_date, changes)
        return jsonify(entry), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "INVALID_DATE", "message": str(e)}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"일일 기록 수정 API 오류 (pet_id: {pet_id}, date: {log_date}): {e}", exc_info=True)
        return jsonify({"error_code": "RECORD_UPDATE_FAILED", "message": "일일 기록 수정 중 오류 발생"}), 500

# --- 루틴 ---
@daily_bp.route('/<string:pet_id>/routines', methods=['POST'])
@jwt_required()
def add_routine(pet_id: str):
    service = current_app.services['records']
    try:
        data = RoutineCreateSchema().load(request.get_json() or {})
        routine = service.add_routine(current_principal(), pet_id, data)
        return jsonify(routine), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"루틴 생성 API 오류 (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "RECORD_CREATION_FAILED", "message": "루틴 생성 중 오류 발생"}), 500

@daily_bp.route('/<string:pet_id>/routines', methods=['PUT'])
@jwt_required()
def replace_routines(pet_id: str):
    service = current_app.services['records']
    try:
        data = RoutinesReplaceSchema().load(request.get_json() or {})
        routines = service.replace_routines(current_principal(), pet_id, data['routines'])
        return jsonify({"routines": routines}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"루틴 교체 API 오류 (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "RECORD_UPDATE_FAILED", "message": "루틴 저장 중 오류 발생"}), 500

@daily_bp.route('/<string:pet_id>/routines/<string:routine_id>', methods=['PATCH'])
@jwt_required()
def update_routine(pet_id: str, routine_id: str):
    service = current_app.services['records']
    try:
        changes = RoutineUpdateSchema().load(request.get_json() or {})
        routine = service.update_routine(current_principal(), pet_id, routine_id, changes)
        return jsonify(routine), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"루틴 수정 API 오류 (pet_id: {pet_id}, routine_id: {routine_id}): {e}", exc_info=True)
        return jsonify({"error_code": "RECORD_UPDATE_FAILED", "message": "루틴 수정 중 오류 발생"}), 500

@daily_bp.route('/<string:pet_id>/routines/<string:routine_id>', methods=['DELETE'])
@jwt_required()
def delete_routine(pet_id: str, routine_id: str):
    service = current_app.services['records']
    try:
        deleted = service.delete_routine(current_principal(), pet_id, routine_id)
        return jsonify({"deleted": deleted}), 200
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"루틴 삭제 API 오류 (pet_id: {pet_id}, routine_id: {routine_id}): {e}", exc_info=True)
        return jsonify({"error_code": "RECORD_DELETION_FAILED", "message": "루틴 삭제 중 오류 발생"}), 500
