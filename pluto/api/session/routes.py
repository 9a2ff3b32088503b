# pluto/api/session/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required

from pluto.core.errors import PlutoError
from pluto.core.security import current_principal

session_bp = Blueprint('session_bp', __name__)

@session_bp.route('/hydrate', methods=['GET'])
@jwt_required()
def hydrate():
    """
    화면 진입 시 필요한 데이터를 한 번에 반환합니다.

    쿼리 파라미터:
    - patient_id: 수의사가 환자 기록을 볼 때 반려동물 ID (PET-...)
    """
    service = current_app.services['session']
    patient_id = request.args.get('patient_id')
    try:
        return jsonify(service.hydrate(current_principal(), patient_id)), 200
    except PlutoError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        logging.error(f"Session hydrate API error (patient_id: {patient_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "데이터 조회 중 오류가 발생했습니다."}), 500
