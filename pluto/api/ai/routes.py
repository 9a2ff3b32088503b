# pluto/api/ai/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from marshmallow import Schema, fields, validate, ValidationError

from pluto.core.errors import PlutoError
from pluto.core.security import current_principal
from pluto.utils.payload import sanitize

ai_bp = Blueprint('ai_bp', __name__)

class LocationSchema(Schema):
    latitude = fields.Float(required=True, validate=validate.Range(min=-90, max=90))
    longitude = fields.Float(required=True, validate=validate.Range(min=-180, max=180))

class AskSchema(Schema):
    """AI 질문 요청 스키마"""
    prompt = fields.Str(required=True, validate=validate.Length(min=1, max=2000))
    pet_id = fields.Str(load_default='me')
    location = fields.Nested(LocationSchema)


@ai_bp.route('/ask', methods=['POST'])
@jwt_required()
def ask():
    """반려동물 기록을 바탕으로 질문에 답합니다. 주변 동물병원 등 장소 질문은 웹 검색 결과 출처를 함께 반환합니다."""
    records_service = current_app.services['records']
    ai_service = current_app.services['ai']
    try:
        data = AskSchema().load(request.get_json() or {})
        principal = current_principal()
        records = records_service.get_pet_records(principal, data['pet_id'])
        profile = records_service.get_pet_profile(principal, data['pet_id'])
        pet = sanitize(profile.to_dict()) if profile else None

        answer = ai_service.ask(data['prompt'], pet, records, data.get('location'))
        return jsonify(answer), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"AI ask API error: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "AI 응답 생성 중 오류가 발생했습니다."}), 500
