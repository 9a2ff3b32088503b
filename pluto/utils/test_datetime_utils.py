# pluto/utils/test_datetime_utils.py
"""
시간/날짜 유틸리티 기능 테스트

사용법: python -m pytest pluto/utils/test_datetime_utils.py -v
"""

import pytest
from datetime import datetime, date, timezone
from pluto.utils.datetime_utils import DateTimeUtils

def test_parse_iso_datetime():
    """ISO 포맷 파싱 테스트"""
    test_cases = [
        "2024-01-15T10:30:00Z",
        "2024-01-15T10:30:00+09:00",
        "2024-01-15T10:30:00.123Z",
        "2024-01-15T10:30:00"
    ]

    for iso_string in test_cases:
        dt = DateTimeUtils.parse_iso_datetime(iso_string)
        assert isinstance(dt, datetime)
        assert dt.tzinfo == timezone.utc  # UTC로 정규화되어야 함

def test_parse_iso_datetime_rejects_garbage():
    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime("not-a-date")
    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime("")

def test_to_iso_string_uses_z_suffix_and_milliseconds():
    dt = datetime(2024, 5, 10, 9, 30, 15, 123456, tzinfo=timezone.utc)
    assert DateTimeUtils.to_iso_string(dt) == "2024-05-10T09:30:15.123Z"
    # naive datetime 은 UTC 로 간주
    assert DateTimeUtils.to_iso_string(datetime(2024, 5, 10)) == "2024-05-10T00:00:00.000Z"

def test_local_date_string_projects_into_zone():
    """UTC 기준 전날 밤이 서울 시간으로는 다음 날입니다."""
    seoul = DateTimeUtils.get_timezone("Asia/Seoul")
    assert DateTimeUtils.local_date_string("2024-05-09T20:00:00.000Z", seoul) == "2024-05-10"
    assert DateTimeUtils.local_date_string("2024-05-09T20:00:00.000Z", timezone.utc) == "2024-05-09"

def test_is_same_local_day():
    utc = timezone.utc
    assert DateTimeUtils.is_same_local_day("2024-05-10T00:00:01Z", "2024-05-10T23:59:59Z", utc)
    assert not DateTimeUtils.is_same_local_day("2024-05-09T23:59:59Z", "2024-05-10T00:00:01Z", utc)
    # 파싱할 수 없는 값은 다른 날로 취급
    assert not DateTimeUtils.is_same_local_day("garbage", "2024-05-10T00:00:01Z", utc)

def test_unknown_timezone_falls_back_to_utc():
    assert DateTimeUtils.get_timezone("Mars/Olympus_Mons") == timezone.utc
    assert DateTimeUtils.get_timezone(None) == timezone.utc

def test_add_days_crosses_month_end():
    assert DateTimeUtils.add_days(date(2024, 2, 28), 2) == date(2024, 3, 1)
