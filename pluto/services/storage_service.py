# pluto/services/storage_service.py
import hashlib
import hmac
import logging
import time
import uuid
from typing import Optional

import requests
from flask import Flask

from pluto.core.errors import ExternalServiceError

class StorageService:
    """
    ImageKit 파일 호스팅 연동 서비스 클래스입니다.
    클라이언트가 서버를 거치지 않고 직접 업로드할 수 있도록 서명된 업로드 파라미터를 발급하고,
    문서 삭제 시 호스팅된 파일을 함께 지웁니다.
    """
    UPLOAD_URL = "https://upload.imagekit.io/api/v1/files/upload"
    FILES_URL = "https://api.imagekit.io/v1/files/{file_id}"
    UPLOAD_FOLDER = "/pluto_uploads"
    UPLOAD_TAG = "pluto_app_upload"
    # 서명 유효 시간 (40분)
    SIGNATURE_TTL_SECONDS = 2400
    DELETE_TIMEOUT_SECONDS = 15

    def __init__(self, public_key: Optional[str] = None, private_key: Optional[str] = None,
                 url_endpoint: Optional[str] = None, session: Optional[requests.Session] = None,
                 clock=time.time):
        self.public_key = public_key
        self.private_key = private_key
        self.url_endpoint = url_endpoint
        self.session = session or requests.Session()
        self.clock = clock

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 ImageKit 키를 설정합니다.

        :param app: Flask 애플리케이션 객체
        """
        self.public_key = app.config.get('IMAGEKIT_PUBLIC_KEY')
        self.private_key = app.config.get('IMAGEKIT_PRIVATE_KEY')
        self.url_endpoint = app.config.get('IMAGEKIT_URL_ENDPOINT')
        if not self.private_key:
            logging.warning("StorageService: IMAGEKIT_PRIVATE_KEY 가 없어 업로드 서명을 발급할 수 없습니다.")
        else:
            logging.info("StorageService: ImageKit 서비스가 성공적으로 초기화되었습니다.")

    def generate_upload_auth(self) -> dict:
        """
        클라이언트 직접 업로드용 인증 파라미터를 생성합니다.
        signature = HMAC-SHA1(private_key, token + expire)

        :return: token, expire, signature 와 업로드에 필요한 공개 설정
        """
        if not self.private_key:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")

        token = str(uuid.uuid4())
        expire = int(self.clock()) + self.SIGNATURE_TTL_SECONDS
        signature = hmac.new(
            self.private_key.encode('utf-8'),
            f"{token}{expire}".encode('utf-8'),
            hashlib.sha1
        ).hexdigest()

        return {
            "token": token,
            "expire": expire,
            "signature": signature,
            "publicKey": self.public_key,
            "urlEndpoint": self.url_endpoint,
            "uploadUrl": self.UPLOAD_URL,
            "folder": self.UPLOAD_FOLDER,
            "tags": [self.UPLOAD_TAG],
        }

    def delete_file(self, file_id: str):
        """
        호스팅된 파일을 삭제합니다. 이미 없는 파일(404)은 성공으로 간주합니다.

        :param file_id: 업로드 응답으로 받은 ImageKit fileId
        """
        if not self.private_key:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")

        try:
            response = self.session.delete(
                self.FILES_URL.format(file_id=file_id),
                auth=(self.private_key, ''),
                timeout=self.DELETE_TIMEOUT_SECONDS
            )
        except requests.Timeout:
            logging.error(f"ImageKit delete timed out for {file_id}")
            raise ExternalServiceError("File deletion timed out.", service='imagekit')
        except requests.RequestException as e:
            logging.error(f"ImageKit delete failed for {file_id}: {e}", exc_info=True)
            raise ExternalServiceError("File deletion failed.", service='imagekit')

        if response.status_code == 404:
            logging.warning(f"ImageKit file {file_id} was already gone.")
            return
        if response.status_code >= 400:
            logging.error(f"ImageKit delete returned {response.status_code} for {file_id}: {response.text}")
            raise ExternalServiceError("File deletion failed.", service='imagekit',
                                       upstream_status=response.status_code)
        logging.info(f"ImageKit file deleted: {file_id}")
