# pluto/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials, firestore

# - 설정 / 공통
from pluto.core.config import config_by_name
from pluto.core.errors import PlutoError

# - API 블루프린트
from pluto.api.auth.routes import auth_bp
from pluto.api.pets.routes import pets_bp
from pluto.api.journal.routes import journal_bp
from pluto.api.documents.routes import documents_bp
from pluto.api.daily.routes import daily_bp
from pluto.api.uploads.routes import uploads_bp
from pluto.api.doctors.routes import doctors_bp
from pluto.api.session.routes import session_bp
from pluto.api.ai.routes import ai_bp

# - 서비스 모듈
from pluto.services.local_store import LocalFallbackStore
from pluto.services.storage_service import StorageService
from pluto.services.identity_service import IdentityService
from pluto.services.ai_service import AIService
from pluto.services.record_store import PetRecordService
from pluto.services.session_service import SessionService
from pluto.api.auth.services import AuthService
from pluto.api.doctors.services import DoctorService

def create_app(config_name=None, db=None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' | 'testing' | 'production' (기본값: FLASK_ENV)
    :param db: Firestore 클라이언트. 주입하면 firebase_admin 초기화를 건너뜁니다 (테스트용).
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    JWTManager(app)

    if db is None:
        if not firebase_admin._apps:
            cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
            if not cred_path or not os.path.exists(cred_path):
                raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
            firebase_admin.initialize_app(credentials.Certificate(cred_path))
        db = firestore.client()

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 의존성이 없거나 다른 서비스의 기반이 되는 공용/핵심 서비스 먼저 생성
    local_store = LocalFallbackStore()
    local_store.init_app(app)
    app.services['local_store'] = local_store

    try:
        storage_instance = StorageService()
        storage_instance.init_app(app)
        app.services['storage'] = storage_instance
        logging.info("Storage service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize storage service: {e}")
        raise

    identity_instance = IdentityService()
    identity_instance.init_app(app)
    app.services['identity'] = identity_instance

    try:
        ai_instance = AIService()
        ai_instance.init_app(app)
        app.services['ai'] = ai_instance
        logging.info("AI service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize AI service: {e}")
        raise

    # 5-2. 다른 서비스를 주입받아야 하는 도메인 서비스 생성
    app.services['records'] = PetRecordService(
        db=db,
        local_store=app.services['local_store'],
        backend_names=app.config['RECORD_BACKENDS'],
        pet_id_prefix=app.config['PET_ID_PREFIX'],
        timezone_name=app.config['APP_TIMEZONE'],
        storage_service=app.services['storage']
    )
    app.services['doctors'] = DoctorService(record_service=app.services['records'], db=db)
    app.services['auth'] = AuthService(
        identity_service=app.services['identity'],
        record_service=app.services['records'],
        db=db
    )
    app.services['session'] = SessionService(
        record_service=app.services['records'],
        doctor_service=app.services['doctors']
    )

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(uploads_bp, url_prefix='/api/uploads')
    app.register_blueprint(doctors_bp, url_prefix='/api/doctors')
    app.register_blueprint(session_bp, url_prefix='/api/session')
    app.register_blueprint(ai_bp, url_prefix='/api/ai')

    # - 반려동물 하위 리소스 블루프린트는 같은 접두사를 공유합니다.
    app.register_blueprint(pets_bp, url_prefix='/api/pets')
    app.register_blueprint(journal_bp, url_prefix='/api/pets')
    app.register_blueprint(documents_bp, url_prefix='/api/pets')
    app.register_blueprint(daily_bp, url_prefix='/api/pets')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(PlutoError)
    def handle_pluto_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 404/405 등 HTTP 예외는 Flask 기본 응답을 사용합니다.
        if isinstance(err, HTTPException):
            return err
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
