# pluto/api/uploads/routes.py

import logging
from flask import jsonify, Blueprint, current_app
from flask_jwt_extended import jwt_required

# 이 블루프린트에 속한 모든 API는 '/api/uploads' 라는 접두사 URL을 갖게 됩니다.
uploads_bp = Blueprint('uploads', __name__)


@uploads_bp.route('/auth', methods=['GET'])
@jwt_required()
def get_upload_auth():
    """
    ImageKit 직접 업로드를 위한 서명된 인증 파라미터(token, expire, signature)를 발급합니다.
    클라이언트는 이 값으로 서버를 거치지 않고 파일을 업로드한 뒤, 응답의 url/fileId 로 문서를 등록합니다.
    """
    storage_service = current_app.services['storage']
    try:
        return jsonify(storage_service.generate_upload_auth()), 200
    except RuntimeError as e:
        logging.error(f"업로드 인증 발급 실패 (설정 누락): {e}")
        return jsonify({"error_code": "STORAGE_NOT_CONFIGURED", "message": "파일 업로드가 설정되지 않았습니다."}), 503
    except Exception as e:
        logging.error(f"업로드 인증 생성 중 서버 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "UPLOAD_AUTH_FAILED", "message": "업로드 인증 생성 중 서버 오류가 발생했습니다."}), 500
