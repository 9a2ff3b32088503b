# pluto/api/doctors/services.py
import logging
from typing import Any, Dict, List, Optional

from firebase_admin import firestore

from pluto.core.errors import NotFoundError, PermissionDeniedError, ProfileNotFoundError
from pluto.core.security import Principal
from pluto.models.user import DoctorProfile, UserRole
from pluto.services.record_store import PetRecordService
from pluto.utils.payload import ABSENT, sanitize


class DoctorService:
    """수의사 프로필 조회/수정과 환자(반려동물) 검색을 전담하는 서비스."""

    def __init__(self, record_service: PetRecordService, db=None):
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')
        self.records = record_service
        logging.info("DoctorService initialized.")

    def list_doctors(self, specialization: Optional[str] = None) -> List[Dict[str, Any]]:
        """수의사 목록. specialization 이 주어지면 부분 일치(대소문자 무시)로 필터링합니다."""
        query = self.users_ref.where('role', '==', UserRole.DOCTOR.value).stream()
        doctors = []
        for doc in query:
            details = (doc.to_dict() or {}).get('doctorDetails')
            if not details:
                continue
            profile = DoctorProfile.from_dict({**details, 'id': details.get('id') or doc.id})
            if specialization and specialization.lower() not in (profile.specialization or '').lower():
                continue
            doctors.append(sanitize(profile.to_dict()))
        doctors.sort(key=lambda d: d.get('name', '').lower())
        return doctors

    def get_doctor(self, doctor_id: str) -> Optional[DoctorProfile]:
        user = self.records.get_user(doctor_id)
        if user is None or user.role != UserRole.DOCTOR:
            return None
        return user.doctorDetails

    def update_doctor_profile(self, principal: Principal, changes: Dict[str, Any]) -> DoctorProfile:
        """[수의사 전용] 본인의 전문가 프로필을 부분 업데이트합니다."""
        if not principal.is_doctor:
            raise PermissionDeniedError("Only doctors have a professional profile.")
        user_ref = self.users_ref.document(principal.user_id)
        doc = user_ref.get()
        if not doc.exists:
            raise ProfileNotFoundError()

        current = (doc.to_dict() or {}).get('doctorDetails') or {'id': principal.user_id, 'name': ''}
        merged = sanitize({**current, **changes, 'id': principal.user_id})
        user_ref.update({'doctorDetails': merged})
        logging.info(f"Doctor profile updated for {principal.user_id}: {list(changes.keys())}")
        return DoctorProfile.from_dict(merged)

    def search_patient(self, principal: Principal, pet_id: str) -> Dict[str, Any]:
        """
        [수의사 전용] 반려동물 ID 로 환자를 조회합니다.
        조회에 성공하면 보호자 기록에 방문 이력이 남습니다.
        """
        if not principal.is_doctor:
            raise PermissionDeniedError("Only doctors can search patients.")
        profile = self.records.get_pet_profile(principal, pet_id)
        if profile is None:
            raise NotFoundError("No pet found with this ID.")

        doctor = self.get_doctor(principal.user_id)
        clinic = doctor.clinic if doctor and doctor.clinic else ABSENT
        visit = self.records.record_visit(principal, pet_id, clinic=clinic)
        owner_id = self.records.resolve_owner_id(pet_id, principal)
        return {
            'petId': self.records.pet_id_for(owner_id),
            'patient': sanitize(profile.to_dict()),
            'visit': visit,
        }

    def get_consulted_doctors(self, principal: Principal, pet_id: str) -> List[Dict[str, Any]]:
        """방문 이력에 있는 수의사 프로필(중복 제거, 최근 방문 순)."""
        consulted, seen = [], set()
        for visit in self.records.get_visits(principal, pet_id):
            doctor_id = visit.get('doctorId')
            if not doctor_id or doctor_id in seen:
                continue
            seen.add(doctor_id)
            profile = self.get_doctor(doctor_id)
            entry = sanitize(profile.to_dict()) if profile else {'id': doctor_id, 'name': visit.get('doctorName', '')}
            entry['lastVisit'] = visit.get('visitedAt')
            consulted.append(entry)
        return consulted
