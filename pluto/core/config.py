# pluto/core/config.py

import json
import os # 환경 변수를 읽기 위해 사용합니다.

# 리소스별 저장소 기본값. 'firestore' 또는 'local'
DEFAULT_RECORD_BACKENDS = {
    'timeline': 'firestore',
    'reminders': 'firestore',
    'documents': 'local',
    'checklist': 'local',
    'dailyLogs': 'local',
    'routines': 'local',
    'doctorNotes': 'local',
    'visitedBy': 'local',
}

def load_record_backends(raw):
    """
    RECORD_BACKENDS 환경 변수(JSON 객체)를 기본값 위에 덮어씁니다.
    예: RECORD_BACKENDS='{"documents": "firestore"}'
    """
    if not raw:
        return dict(DEFAULT_RECORD_BACKENDS)
    overrides = json.loads(raw)
    if not isinstance(overrides, dict):
        raise ValueError("RECORD_BACKENDS 는 JSON 객체여야 합니다.")
    return {**DEFAULT_RECORD_BACKENDS, **overrides}

class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명 키. 토큰 위변조를 방지합니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')

    # Firebase Authentication REST API 호출에 사용하는 웹 API 키
    FIREBASE_WEB_API_KEY = os.getenv('FIREBASE_WEB_API_KEY')
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')

    # AI 채팅 (OpenAI)
    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
    AI_GENERAL_MODEL = os.getenv('AI_GENERAL_MODEL', 'gpt-4o')
    AI_LOCATION_MODEL = os.getenv('AI_LOCATION_MODEL', 'gpt-4o-search-preview')

    # 문서 파일 호스팅 (ImageKit)
    IMAGEKIT_PUBLIC_KEY = os.getenv('IMAGEKIT_PUBLIC_KEY')
    IMAGEKIT_PRIVATE_KEY = os.getenv('IMAGEKIT_PRIVATE_KEY')
    IMAGEKIT_URL_ENDPOINT = os.getenv('IMAGEKIT_URL_ENDPOINT')

    # 로컬 보조 저장소(JSON 파일) 경로
    LOCAL_STORE_PATH = os.getenv('LOCAL_STORE_PATH', 'instance/pluto_local_store.json')

    # 일일 체크리스트/루틴 초기화 기준이 되는 시간대
    APP_TIMEZONE = os.getenv('APP_TIMEZONE', 'UTC')

    # 반려동물 ID = PET_ID_PREFIX + 보호자 user id
    PET_ID_PREFIX = 'PET-'

    # 리소스별 저장소 선택 (환경 변수로 일부만 바꿀 수 있습니다)
    RECORD_BACKENDS = load_record_backends(os.getenv('RECORD_BACKENDS'))

class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True

class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = 'pluto-testing-secret-key-long-enough-for-hs256'
    FIREBASE_WEB_API_KEY = 'test-web-api-key'
    IMAGEKIT_PUBLIC_KEY = 'public_test'
    IMAGEKIT_PRIVATE_KEY = 'private_test'
    IMAGEKIT_URL_ENDPOINT = 'https://ik.imagekit.io/pluto-test'
    OPENAI_API_KEY = 'test-openai-key'
    # 테스트는 파일 없이 메모리 저장소를 사용합니다.
    LOCAL_STORE_PATH = None
    RECORD_BACKENDS = dict(DEFAULT_RECORD_BACKENDS)

class ProductionConfig(Config):
    """운영 환경 설정 클래스입니다."""
    DEBUG = False

# FLASK_ENV 값에 따라 create_app에서 설정 클래스를 선택합니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
