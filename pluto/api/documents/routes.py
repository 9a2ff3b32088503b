# pluto/api/documents/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from marshmallow import Schema, fields, validate, ValidationError

from pluto.core.errors import PlutoError
from pluto.core.security import current_principal
from pluto.models.records import DocumentType
from pluto.utils.payload import DateString

documents_bp = Blueprint('documents_bp', __name__)

class DocumentCreateSchema(Schema):
    """ImageKit 업로드가 끝난 뒤 문서 메타데이터를 등록하는 스키마"""
    name = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    type = fields.Str(required=True, validate=validate.OneOf([e.value for e in DocumentType]))
    date = DateString()
    fileUrl = fields.Url(required=True)
    fileSize = fields.Str(load_default="")
    fileId = fields.Str()
    mimeType = fields.Str()

class DocumentRenameSchema(Schema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=200))


@documents_bp.route('/<string:pet_id>/documents', methods=['POST'])
@jwt_required()
def add_document(pet_id: str):
    service = current_app.services['records']
    try:
        data = DocumentCreateSchema().load(request.get_json() or {})
        document = service.add_document(current_principal(), pet_id, data)
        return jsonify(document), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"문서 등록 API 오류 (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "DOCUMENT_CREATION_FAILED", "message": "문서 등록 중 오류 발생"}), 500

@documents_bp.route('/<string:pet_id>/documents/<string:document_id>', methods=['PATCH'])
@jwt_required()
def rename_document(pet_id: str, document_id: str):
    service = current_app.services['records']
    try:
        data = DocumentRenameSchema().load(request.get_json() or {})
        document = service.rename_document(current_principal(), pet_id, document_id, data['name'])
        return jsonify(document), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"문서 이름 변경 API 오류 (pet_id: {pet_id}, document_id: {document_id}): {e}", exc_info=True)
        return jsonify({"error_code": "DOCUMENT_UPDATE_FAILED", "message": "문서 수정 중 오류 발생"}), 500

@documents_bp.route('/<string:pet_id>/documents/<string:document_id>', methods=['DELETE'])
@jwt_required()
def delete_document(pet_id: str, document_id: str):
    """호스팅된 파일과 문서 기록을 함께 삭제합니다. 파일 삭제에 실패하면 기록은 남습니다."""
    service = current_app.services['records']
    try:
        deleted = service.delete_document(current_principal(), pet_id, document_id)
        return jsonify({"deleted": deleted}), 200
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"문서 삭제 API 오류 (pet_id: {pet_id}, document_id: {document_id}): {e}", exc_info=True)
        return jsonify({"error_code": "DOCUMENT_DELETION_FAILED", "message": "문서 삭제 중 오류 발생"}), 500
