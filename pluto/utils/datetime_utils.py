# pluto/utils/datetime_utils.py
"""
프로젝트 전체에서 일관된 시간/날짜 처리를 위한 중앙화된 유틸리티 모듈

이 모듈의 목적:
1. 저장되는 타임스탬프는 UTC ISO 문자열로 통일
2. 일일 초기화 판단은 설정된 현지 시간대의 '날짜' 기준
3. 날짜 비교는 항상 YYYY-MM-DD 문자열로 수행
"""

import logging
from datetime import datetime, date, timezone, tzinfo
from typing import Union, Optional
from dateutil import parser as dateutil_parser
from dateutil import tz as dateutil_tz
from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

class DateTimeUtils:
    """시간/날짜 처리를 위한 중앙화된 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def get_timezone(name: Optional[str]) -> tzinfo:
        """시간대 이름을 tzinfo로 변환. 알 수 없는 이름이면 UTC"""
        zone = dateutil_tz.gettz(name) if name else None
        if zone is None:
            if name:
                logger.warning(f"알 수 없는 시간대 '{name}', UTC를 사용합니다.")
            return timezone.utc
        return zone

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        ISO 포맷 문자열을 datetime 객체로 파싱

        지원 포맷:
        - 2024-01-15T10:30:00Z
        - 2024-01-15T10:30:00.123Z
        - 2024-01-15T10:30:00+09:00
        - 2024-01-15T10:30:00 (UTC로 가정)
        """
        try:
            if not iso_string:
                raise ValueError("빈 문자열은 파싱할 수 없습니다")

            if iso_string.endswith('Z'):
                iso_string = iso_string[:-1] + '+00:00'

            dt = dateutil_parser.isoparse(iso_string)

            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)

            return dt.astimezone(timezone.utc)

        except Exception as e:
            logger.error(f"ISO datetime 파싱 실패: {iso_string} - {e}")
            raise ValueError(f"잘못된 ISO 날짜 형식입니다: {iso_string}")

    @staticmethod
    def parse_date_string(date_string: str) -> date:
        """YYYY-MM-DD (또는 dateutil이 읽을 수 있는) 문자열을 date로 파싱"""
        try:
            if not date_string:
                raise ValueError("빈 문자열은 파싱할 수 없습니다")
            return dateutil_parser.parse(date_string).date()
        except Exception as e:
            logger.error(f"날짜 문자열 파싱 실패: {date_string} - {e}")
            raise ValueError(f"잘못된 날짜 형식입니다: {date_string}")

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """datetime을 'Z' 접미사가 붙은 UTC ISO 문자열로 변환 (밀리초 정밀도)"""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        dt = dt.astimezone(timezone.utc)
        return dt.isoformat(timespec='milliseconds').replace('+00:00', 'Z')

    @staticmethod
    def to_date_string(d: Union[date, datetime]) -> str:
        """date 객체를 YYYY-MM-DD 형식 문자열로 변환"""
        return d.strftime('%Y-%m-%d')

    @staticmethod
    def local_date_string(value: Union[str, datetime], zone: tzinfo) -> str:
        """
        타임스탬프를 현지 시간대의 날짜 문자열(YYYY-MM-DD)로 투영합니다.
        일일 초기화 비교는 반드시 이 문자열끼리 비교해야 시각 차이로 인한 오판이 없습니다.
        """
        if isinstance(value, str):
            value = DateTimeUtils.parse_iso_datetime(value)
        elif value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return DateTimeUtils.to_date_string(value.astimezone(zone))

    @staticmethod
    def is_same_local_day(first: Union[str, datetime], second: Union[str, datetime], zone: tzinfo) -> bool:
        """두 타임스탬프가 현지 기준 같은 날인지 확인. 파싱 불가 값은 다른 날로 취급"""
        try:
            return DateTimeUtils.local_date_string(first, zone) == DateTimeUtils.local_date_string(second, zone)
        except (ValueError, TypeError) as e:
            logger.warning(f"날짜 비교 실패: {first} vs {second} - {e}")
            return False

    @staticmethod
    def add_days(d: Union[date, datetime], days: int) -> Union[date, datetime]:
        return d + relativedelta(days=days)
