# pluto/services/session_service.py
"""
로그인 직후/화면 진입 시 필요한 모든 데이터를 한 번에 모아 주는 하이드레이션 서비스.
일일 체크리스트와 루틴의 초기화도 이 시점에 판단합니다.
"""
import logging
from datetime import datetime, tzinfo
from typing import Any, Dict, List, Optional, Tuple

from pluto.core.security import Principal
from pluto.utils.datetime_utils import DateTimeUtils
from pluto.utils.payload import sanitize


def apply_daily_reset(checklist: Dict[str, Any], routines: List[Dict[str, Any]], now: datetime,
                      zone: tzinfo) -> Tuple[Dict[str, Any], List[Dict[str, Any]], bool]:
    """
    체크리스트의 마지막 초기화 날짜가 오늘(현지 날짜)이 아니면
    모든 항목과 루틴 완료 상태를 false 로 되돌립니다.

    같은 날 여러 번 호출해도 결과가 같습니다.
    :return: (체크리스트, 루틴, 초기화 여부)
    """
    last_reset = checklist.get('lastReset')
    if last_reset and DateTimeUtils.is_same_local_day(last_reset, now, zone):
        return checklist, routines, False

    reset_checklist = {
        'lastReset': DateTimeUtils.to_iso_string(now),
        'food': False,
        'water': False,
        'walk': False,
        'medication': False,
    }
    reset_routines = [{**routine, 'completed': False} for routine in routines]
    return reset_checklist, reset_routines, True


class SessionService:
    def __init__(self, record_service, doctor_service, clock=None):
        self.records = record_service
        self.doctors = doctor_service
        self.clock = clock or record_service.clock

    def _empty_payload(self) -> Dict[str, Any]:
        return {
            'timeline': [], 'reminders': [], 'documents': [], 'doctorNotes': [],
            'checklist': None, 'dailyLogs': {}, 'routines': [],
            'consultedDoctors': [], 'lastVisit': None,
        }

    def hydrate(self, principal: Principal, patient_id: Optional[str] = None) -> Dict[str, Any]:
        """
        1. 기록 조회
        2. 일일 초기화 판단 (보호자 본인 기록일 때만 저장)
        3. 화면에 필요한 전체 payload 반환
        4. 수의사가 환자를 조회하면 patient 프로필 포함
        """
        if principal.is_doctor and not patient_id:
            return self._empty_payload()

        pet_id = patient_id or self.records.pet_id_for(principal.user_id)
        records = self.records.get_pet_records(principal, pet_id)
        owns_record = self.records.owns_record(principal, pet_id)
        if owns_record:
            # 체크리스트가 없는 첫 조회는 오늘 날짜로 저장해 다음 날 루틴 초기화의 기준으로 삼습니다.
            records['checklist'] = self.records.ensure_checklist(principal, pet_id)

        checklist, routines, was_reset = apply_daily_reset(
            records['checklist'], records['routines'], self.clock(), self.records.zone
        )
        if was_reset and owns_record:
            self.records.save_daily_reset(principal, pet_id, checklist, routines)
            logging.info(f"Daily checklist reset for {principal.user_id}")

        visits = self.records.get_visits(principal, pet_id)
        payload = {
            'timeline': records['timeline'],
            'reminders': records['reminders'],
            'documents': records['documents'],
            'doctorNotes': records['doctorNotes'],
            'checklist': checklist,
            'dailyLogs': records['dailyLogs'],
            'routines': routines,
            'consultedDoctors': self.doctors.get_consulted_doctors(principal, pet_id),
            'lastVisit': visits[0] if visits else None,
        }

        if principal.is_doctor:
            profile = self.records.get_pet_profile(principal, pet_id)
            payload["patient"] = sanitize(profile.to_dict()) if profile else None
        return payload
