# pluto/api/journal/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from pluto.core.errors import PlutoError
from pluto.core.security import current_principal
from .schemas import (
    TimelineEntryCreateSchema,
    TimelineEntryUpdateSchema,
    ReminderCreateSchema,
    ReminderUpdateSchema,
)

journal_bp = Blueprint('journal_bp', __name__)

# --- 케어 일지 (timeline) ---
@journal_bp.route('/<string:pet_id>/timeline', methods=['POST'])
@jwt_required()
def add_timeline_entry(pet_id: str):
    service = current_app.services['records']
    try:
        data = TimelineEntryCreateSchema().load(request.get_json() or {})
        entry = service.add_timeline_entry(current_principal(), pet_id, data)
        return jsonify(entry), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"케어 일지 생성 API 오류 (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "RECORD_CREATION_FAILED", "message": "기록 생성 중 오류 발생"}), 500

@journal_bp.route('/<string:pet_id>/timeline/<string:entry_id>', methods=['PATCH'])
@jwt_required()
def update_timeline_entry(pet_id: str, entry_id: str):
    service = current_app.services['records']
    try:
        changes = TimelineEntryUpdateSchema().load(request.get_json() or {})
        entry = service.update_timeline_entry(current_principal(), pet_id, entry_id, changes)
        return jsonify(entry), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"케어 일지 수정 API 오류 (pet_id: {pet_id}, entry_id: {entry_id}): {e}", exc_info=True)
        return jsonify({"error_code": "RECORD_UPDATE_FAILED", "message": "기록 수정 중 오류 발생"}), 500

@journal_bp.route('/<string:pet_id>/timeline/<string:entry_id>', methods=['DELETE'])
@jwt_required()
def delete_timeline_entry(pet_id: str, entry_id: str):
    service = current_app.services['records']
    try:
        deleted = service.delete_timeline_entry(current_principal(), pet_id, entry_id)
        return jsonify({"deleted": deleted}), 200
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"케어 일지 삭제 API 오류 (pet_id: {pet_id}, entry_id: {entry_id}): {e}", exc_info=True)
        return jsonify({"error_code": "RECORD_DELETION_FAILED", "message": "기록 삭제 중 오류 발생"}), 500

# --- 예정 케어 (reminders) ---
@journal_bp.route('/<string:pet_id>/reminders', methods=['POST'])
@jwt_required()
def add_reminder(pet_id: str):
    service = current_app.services['records']
    try:
        data = ReminderCreateSchema().load(request.get_json() or {})
        reminder = service.add_reminder(current_principal(), pet_id, data)
        return jsonify(reminder), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"예정 케어 생성 API 오류 (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "RECORD_CREATION_FAILED", "message": "기록 생성 중 오류 발생"}), 500

@journal_bp.route('/<string:pet_id>/reminders/<string:reminder_id>', methods=['PATCH'])
@jwt_required()
def update_reminder(pet_id: str, reminder_id: str):
    service = current_app.services['records']
    try:
        changes = ReminderUpdateSchema().load(request.get_json() or {})
        reminder = service.update_reminder(current_principal(), pet_id, reminder_id, changes)
        return jsonify(reminder), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"예정 케어 수정 API 오류 (pet_id: {pet_id}, reminder_id: {reminder_id}): {e}", exc_info=True)
        return jsonify({"error_code": "RECORD_UPDATE_FAILED", "message": "기록 수정 중 오류 발생"}), 500

@journal_bp.route('/<string:pet_id>/reminders/<string:reminder_id>', methods=['DELETE'])
@jwt_required()
def delete_reminder(pet_id: str, reminder_id: str):
    service = current_app.services['records']
    try:
        deleted = service.delete_reminder(current_principal(), pet_id, reminder_id)
        return jsonify({"deleted": deleted}), 200
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"예정 케어 삭제 API 오류 (pet_id: {pet_id}, reminder_id: {reminder_id}): {e}", exc_info=True)
        return jsonify({"error_code": "RECORD_DELETION_FAILED", "message": "기록 삭제 중 오류 발생"}), 500

@journal_bp.route('/<string:pet_id>/reminders/<string:reminder_id>/complete', methods=['POST'])
@jwt_required()
def complete_reminder(pet_id: str, reminder_id: str):
    """예정 케어를 완료 처리하고 케어 일지에 완료 기록을 남깁니다. 반복 항목은 다음 일정이 등록됩니다."""
    service = current_app.services['records']
    try:
        result = service.complete_reminder(current_principal(), pet_id, reminder_id)
        return jsonify(result), 200
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"예정 케어 완료 API 오류 (pet_id: {pet_id}, reminder_id: {reminder_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "완료 처리 중 오류 발생"}), 500
