# pluto/services/identity_service.py

import logging
from typing import Any, Dict, Optional

import requests
from firebase_admin import auth as firebase_auth
from flask import Flask

from pluto.core.errors import AuthenticationError, ExternalServiceError, RegistrationError


class IdentityService:
    """
    Firebase Authentication 과의 실제 통신을 담당하는 서비스 클래스입니다.

    이메일/비밀번호 가입과 로그인은 Admin SDK 가 지원하지 않으므로 Identity Toolkit REST API 를
    requests 로 직접 호출하고, 계정 삭제만 firebase_admin.auth 를 사용합니다.
    """
    _base_url = "https://identitytoolkit.googleapis.com/v1/accounts:{endpoint}"

    # Firebase 오류 메시지 -> 우리 서비스의 error_code
    ERROR_CODES = {
        'EMAIL_EXISTS': 'EMAIL_EXISTS',
        'INVALID_LOGIN_CREDENTIALS': 'INVALID_CREDENTIALS',
        'INVALID_PASSWORD': 'INVALID_CREDENTIALS',
        'EMAIL_NOT_FOUND': 'ACCOUNT_NOT_FOUND',
        'USER_NOT_FOUND': 'ACCOUNT_NOT_FOUND',
        'TOO_MANY_ATTEMPTS_TRY_LATER': 'TOO_MANY_ATTEMPTS',
        'WEAK_PASSWORD': 'WEAK_PASSWORD',
        'INVALID_EMAIL': 'INVALID_EMAIL',
        'USER_DISABLED': 'USER_DISABLED',
    }

    ERROR_MESSAGES = {
        'EMAIL_EXISTS': "An account with this email already exists.",
        'INVALID_CREDENTIALS': "Invalid email or password.",
        'ACCOUNT_NOT_FOUND': "No account found with this email.",
        'TOO_MANY_ATTEMPTS': "Too many attempts. Please try again later.",
        'WEAK_PASSWORD': "Password should be at least 6 characters.",
        'INVALID_EMAIL': "Please enter a valid email address.",
        'USER_DISABLED': "This account has been disabled.",
    }

    def __init__(self, api_key: Optional[str] = None, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.session = session or requests.Session()

    def init_app(self, app: Flask):
        api_key = app.config.get('FIREBASE_WEB_API_KEY')
        if not api_key:
            raise ValueError("FIREBASE_WEB_API_KEY 설정이 .env 또는 설정 파일에 필요합니다.")
        self.api_key = api_key
        logging.info("IdentityService: Firebase Authentication REST 클라이언트가 초기화되었습니다.")

    def _post(self, endpoint: str, payload: Dict[str, Any], error_cls=AuthenticationError,
              network_error_cls=ExternalServiceError) -> Dict[str, Any]:
        url = self._base_url.format(endpoint=endpoint)
        try:
            response = self.session.post(url, params={'key': self.api_key}, json=payload)
        except requests.RequestException as e:
            logging.error(f"Identity provider request failed ({endpoint}): {e}", exc_info=True)
            raise network_error_cls("Could not reach the authentication service.",
                                    error_code='AUTH_SERVICE_UNAVAILABLE', status_code=502)

        if response.status_code >= 400:
            raise self._map_error(response, error_cls)
        return response.json()

    def _map_error(self, response, error_cls):
        try:
            raw = response.json().get('error', {}).get('message', '')
        except ValueError:
            raw = ''
        # "WEAK_PASSWORD : Password should be at least 6 characters" 형태도 있습니다.
        provider_code = raw.split(':')[0].strip()
        code = self.ERROR_CODES.get(provider_code)
        logging.warning(f"Identity provider error: {raw or response.status_code}")
        if code is None:
            return error_cls()
        return error_cls(self.ERROR_MESSAGES[code], error_code=code)

    def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        """새 계정을 만들고 {localId, idToken, refreshToken, ...} 을 반환합니다."""
        return self._post('signUp', {'email': email, 'password': password, 'returnSecureToken': True},
                          error_cls=RegistrationError, network_error_cls=RegistrationError)

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        return self._post('signInWithPassword',
                          {'email': email, 'password': password, 'returnSecureToken': True})

    def lookup(self, id_token: str) -> Dict[str, Any]:
        """idToken 의 계정 정보(emailVerified 포함)를 조회합니다."""
        data = self._post('lookup', {'idToken': id_token})
        users = data.get('users') or []
        if not users:
            raise AuthenticationError(error_code='ACCOUNT_NOT_FOUND',
                                      message=self.ERROR_MESSAGES['ACCOUNT_NOT_FOUND'])
        return users[0]

    def send_verification_email(self, id_token: str):
        self._post('sendOobCode', {'requestType': 'VERIFY_EMAIL', 'idToken': id_token})

    def send_password_reset(self, email: str):
        self._post('sendOobCode', {'requestType': 'PASSWORD_RESET', 'email': email})

    def delete_user(self, uid: str):
        """계정을 삭제합니다. 이미 없는 계정이면 성공으로 간주합니다."""
        try:
            firebase_auth.delete_user(uid)
            logging.info(f"Identity account deleted: {uid}")
        except firebase_auth.UserNotFoundError:
            logging.warning(f"Identity account {uid} was already deleted.")
