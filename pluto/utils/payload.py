# pluto/utils/payload.py
"""저장 전 페이로드 정리 및 ID 생성 유틸리티."""

import re
import uuid
from typing import Any

from marshmallow import fields, missing

# '값 없음'을 나타내는 센티널. Firestore 는 이 값을 포함한 쓰기를 거부하므로 저장 전에 제거합니다.
ABSENT = missing

# 요청 날짜 필드 형식. 저장된 날짜 문자열은 이 형식이어야 문자열 정렬이 날짜 순서와 같습니다.
DATE_FORMAT = "%Y-%m-%d"
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def sanitize(obj: Any) -> Any:
    """
    ABSENT 값을 가진 키를 재귀적으로 제거합니다.

    - dict: ABSENT 인 키를 제거하고 나머지 값은 재귀 처리
    - list/tuple: 순서를 유지하며 원소별 재귀 처리
    - 그 외: 그대로 반환 (None 도 유효한 값으로 유지)
    """
    if isinstance(obj, dict):
        return {k: sanitize(v) for k, v in obj.items() if v is not ABSENT}
    if isinstance(obj, (list, tuple)):
        return [sanitize(item) for item in obj]
    return obj


def new_id() -> str:
    """배열 항목에 부여하는 새 고유 ID"""
    return uuid.uuid4().hex


class DateString(fields.Date):
    """
    0 으로 채운 'YYYY-MM-DD' 날짜만 받아 같은 형식의 문자열로 돌려주는 필드.
    '2024-2-1' 처럼 strptime 이 받아들이는 형식도 거부합니다.
    """

    def __init__(self, **kwargs):
        super().__init__(format=DATE_FORMAT, **kwargs)

    def _deserialize(self, value, attr, data, **kwargs):
        if not isinstance(value, str) or not DATE_PATTERN.match(value):
            raise self.make_error("invalid")
        return super()._deserialize(value, attr, data, **kwargs).strftime(DATE_FORMAT)
