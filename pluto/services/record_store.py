# pluto/services/record_store.py
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from dateutil.relativedelta import relativedelta
from firebase_admin import firestore

from pluto.core.errors import (
    NotAuthenticatedError,
    NotFoundError,
    PermissionDeniedError,
    ProfileNotFoundError,
    UnresolvableOwnerError,
)
from pluto.core.security import Principal
from pluto.models.journal import (
    EntryType,
    Reminder,
    ReminderType,
    RepeatCadence,
    TimelineEntry,
    entry_type_for_reminder,
)
from pluto.models.records import (
    CHECKLIST_FLAGS,
    DEFAULT_DAILY_LOG,
    DailyChecklist,
    DocumentType,
    DoctorNote,
    DoctorVisit,
    PetDocument,
    RoutineCategory,
    RoutineItem,
)
from pluto.models.user import PetProfile, User
from pluto.services.backends import JOURNAL_RESOURCES, UNCHANGED, build_backends
from pluto.services.local_store import LocalFallbackStore
from pluto.utils.datetime_utils import DateTimeUtils
from pluto.utils.payload import ABSENT, new_id, sanitize

# 반복 주기별 한 번의 간격
REPEAT_STEPS = {
    RepeatCadence.DAILY.value: relativedelta(days=1),
    RepeatCadence.WEEKLY.value: relativedelta(weeks=1),
    RepeatCadence.MONTHLY.value: relativedelta(months=1),
    RepeatCadence.YEARLY.value: relativedelta(years=1),
}

TIMELINE_ID_FIELDS = ('id', 'entryId')
REMINDER_ID_FIELDS = ('id', 'reminderId')
ITEM_ID_FIELDS = ('id',)


class PetRecordService:
    """
    반려동물 기록(케어 일지, 예정 케어, 문서, 체크리스트, 일일 기록, 루틴, 진료 메모, 방문 이력)을
    리소스별 저장소에 읽고 쓰는 서비스.

    모든 공개 메서드는 요청자(Principal)를 명시적으로 받으며, 다음 규칙으로 권한을 확인합니다.
    - 보호자: 자신의 기록만 읽고 쓸 수 있습니다.
    - 수의사: 모든 보호자의 기록을 읽을 수 있지만, 진료 메모와 방문 이력만 쓸 수 있습니다.
    """
    PLACEHOLDER_IDS = {'me', 'current', 'undefined', 'null'}

    def __init__(self, db=None, local_store: Optional[LocalFallbackStore] = None,
                 backend_names: Optional[Dict[str, str]] = None, pet_id_prefix: str = 'PET-',
                 timezone_name: str = 'UTC', storage_service=None, clock=None):
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')
        self.local_store = local_store or LocalFallbackStore()
        self.pet_id_prefix = pet_id_prefix
        self.zone = DateTimeUtils.get_timezone(timezone_name)
        self.storage_service = storage_service
        self.clock = clock or DateTimeUtils.now
        self.backends = build_backends(self.db, self.local_store, backend_names or {}, pet_id_prefix)
        logging.info(f"PetRecordService initialized with backends: {backend_names}")

    # --- 식별자 / 권한 ---
    def pet_id_for(self, owner_id: str) -> str:
        return f"{self.pet_id_prefix}{owner_id}"

    def resolve_owner_id(self, pet_id: Optional[str], principal: Optional[Principal]) -> str:
        """
        요청 경로의 반려동물 ID를 보호자 user id 로 변환합니다.
        - 'PET-' 접두어가 있으면 제거
        - 비어 있거나 'me' 같은 자리표시자면 요청자 본인
        - 요청자 본인의 raw id 는 그대로 허용
        """
        if principal is None:
            raise NotAuthenticatedError()
        raw = (pet_id or '').strip()
        if raw.startswith(self.pet_id_prefix):
            owner_id = raw[len(self.pet_id_prefix):]
            if owner_id:
                return owner_id
            raise UnresolvableOwnerError()
        if not raw or raw.lower() in self.PLACEHOLDER_IDS:
            return principal.user_id
        if raw == principal.user_id:
            return raw
        raise UnresolvableOwnerError(f"'{raw}' is not a valid pet id.")

    def _authorize(self, principal: Principal, owner_id: str, write: bool = False,
                   doctor_writable: bool = False):
        if principal.is_doctor:
            if write and not doctor_writable:
                raise PermissionDeniedError("Doctors have read-only access to pet records.")
            return
        if principal.user_id != owner_id:
            raise PermissionDeniedError()

    def _owner(self, principal: Optional[Principal], pet_id: Optional[str], write: bool = False,
               doctor_writable: bool = False) -> str:
        owner_id = self.resolve_owner_id(pet_id, principal)
        self._authorize(principal, owner_id, write=write, doctor_writable=doctor_writable)
        return owner_id

    def owns_record(self, principal: Optional[Principal], pet_id: Optional[str]) -> bool:
        """요청자가 해당 기록의 보호자 본인인지 확인합니다 (예외 없음)."""
        if principal is None or principal.is_doctor:
            return False
        try:
            return self.resolve_owner_id(pet_id, principal) == principal.user_id
        except UnresolvableOwnerError:
            return False

    # --- 저장소 헬퍼 ---
    def _read(self, owner_id: str, resource: str) -> Any:
        return self.backends[resource].read(owner_id, resource)

    def _read_list(self, owner_id: str, resource: str) -> List[Dict[str, Any]]:
        return list(self._read(owner_id, resource) or [])

    def _today(self) -> str:
        return DateTimeUtils.local_date_string(self.clock(), self.zone)

    def _now_iso(self) -> str:
        return DateTimeUtils.to_iso_string(self.clock())

    def _default_checklist(self) -> Dict[str, Any]:
        return DailyChecklist(lastReset=self._now_iso()).to_dict()

    def _append(self, owner_id: str, resource: str, item: Dict[str, Any]) -> Dict[str, Any]:
        item = sanitize(item)
        self.backends[resource].append(owner_id, resource, item)
        logging.info(f"Added {resource} item {item.get('id')} for owner {owner_id}")
        return item

    def _update_item(self, owner_id: str, resource: str, item_id: str, changes: Dict[str, Any],
                     id_fields: Sequence[str]) -> Dict[str, Any]:
        """배열에서 id 가 일치하는 항목을 찾아 병합합니다. id 필드는 바뀌지 않습니다."""
        changes = {k: v for k, v in sanitize(changes).items() if k not in id_fields}

        def _modify(current):
            items = list(current or [])
            for index, item in enumerate(items):
                if any(item.get(field) == item_id for field in id_fields):
                    updated = {**item, **changes}
                    items[index] = updated
                    return items, updated
            raise NotFoundError(f"No {resource} item with id '{item_id}'.")

        updated = self.backends[resource].modify(owner_id, resource, _modify)
        logging.info(f"Updated {resource} item {item_id} for owner {owner_id}: {list(changes.keys())}")
        return updated

    def _delete_item(self, owner_id: str, resource: str, item_id: str,
                     id_fields: Sequence[str]) -> bool:
        """일치하는 항목을 제거합니다. 실제로 줄어든 경우에만 씁니다."""
        def _modify(current):
            if current is None:
                return UNCHANGED, False
            remaining = [item for item in current
                         if not any(item.get(field) == item_id for field in id_fields)]
            if len(remaining) == len(current):
                return UNCHANGED, False
            return remaining, True

        deleted = self.backends[resource].modify(owner_id, resource, _modify)
        if deleted:
            logging.info(f"Deleted {resource} item {item_id} for owner {owner_id}")
        return deleted

    # --- 보호자 / 프로필 ---
    def get_user(self, user_id: str) -> Optional[User]:
        doc = self.users_ref.document(user_id).get()
        if not doc.exists:
            return None
        data = doc.to_dict() or {}
        data.setdefault('id', user_id)
        return User.from_dict(data)

    def get_pet_profile(self, principal: Principal, pet_id: str) -> Optional[PetProfile]:
        owner_id = self._owner(principal, pet_id)
        user = self.get_user(owner_id)
        return user.petDetails if user else None

    def update_pet_profile(self, principal: Optional[Principal], pet_id: str,
                           partial: Dict[str, Any]) -> PetProfile:
        """반려동물 프로필을 부분 업데이트합니다. 반려동물 id 는 바뀌지 않습니다."""
        if principal is None:
            raise NotAuthenticatedError()
        owner_id = self._owner(principal, pet_id, write=True)
        user_ref = self.users_ref.document(owner_id)
        doc = user_ref.get()
        if not doc.exists:
            raise ProfileNotFoundError()

        current = (doc.to_dict() or {}).get('petDetails') or {'id': self.pet_id_for(owner_id), 'name': ''}
        merged = sanitize({**current, **partial, 'id': current.get('id') or self.pet_id_for(owner_id)})
        user_ref.update({'petDetails': merged})
        logging.info(f"Pet profile updated for {owner_id} with fields: {list(partial.keys())}")
        return PetProfile.from_dict(merged)

    # --- 전체 기록 ---
    def get_pet_records(self, principal: Principal, pet_id: Optional[str]) -> Dict[str, Any]:
        """
        반려동물의 모든 하위 리소스를 한 번에 조회합니다.
        저장된 값이 없으면 빈 배열/기본값을 돌려주며, 이 메서드는 아무것도 쓰지 않습니다.
        """
        owner_id = self._owner(principal, pet_id)
        timeline = self._read_list(owner_id, 'timeline')
        reminders = self._read_list(owner_id, 'reminders')
        timeline.sort(key=lambda item: item.get('date') or '', reverse=True)
        reminders.sort(key=lambda item: item.get('date') or '')

        return {
            'ownerId': owner_id,
            'petId': self.pet_id_for(owner_id),
            'timeline': timeline,
            'reminders': reminders,
            'documents': self._read_list(owner_id, 'documents'),
            'doctorNotes': self._read_list(owner_id, 'doctorNotes'),
            'checklist': self._read(owner_id, 'checklist') or self._default_checklist(),
            'dailyLogs': self._read(owner_id, 'dailyLogs') or {},
            'routines': self._read_list(owner_id, 'routines'),
        }

    def initialize_journal(self, owner_id: str):
        """신규 보호자의 케어 일지/예정 케어 컨테이너를 빈 배열로 만들고 오늘 기준 체크리스트를 저장합니다."""
        for resource in JOURNAL_RESOURCES:
            self.backends[resource].write(owner_id, resource, [])
        self.backends['checklist'].write(owner_id, 'checklist', self._default_checklist())
        logging.info(f"Journal initialized for owner {owner_id}")

    def ensure_checklist(self, principal: Principal, pet_id: str) -> Dict[str, Any]:
        """저장된 체크리스트가 없으면 기본값(lastReset=지금)을 저장하고, 저장된 체크리스트를 반환합니다."""
        owner_id = self._owner(principal, pet_id, write=True)

        def _modify(current):
            if current:
                return UNCHANGED, current
            checklist = self._default_checklist()
            return checklist, checklist

        return self.backends['checklist'].modify(owner_id, 'checklist', _modify)

    def delete_all_records(self, owner_id: str):
        for backend in {id(b): b for b in self.backends.values()}.values():
            backend.delete_all(owner_id)
        logging.info(f"All pet records deleted for owner {owner_id}")

    # --- 케어 일지 ---
    def add_timeline_entry(self, principal: Principal, pet_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        owner_id = self._owner(principal, pet_id, write=True)
        entry = TimelineEntry(
            id=new_id(),
            date=data.get('date') or self._today(),
            type=EntryType(data['type']),
            title=data['title'],
            notes=data.get('notes', ABSENT),
            documentId=data.get('documentId', ABSENT),
        )
        return self._append(owner_id, 'timeline', entry.to_dict())

    def update_timeline_entry(self, principal: Principal, pet_id: str, entry_id: str,
                              changes: Dict[str, Any]) -> Dict[str, Any]:
        owner_id = self._owner(principal, pet_id, write=True)
        return self._update_item(owner_id, 'timeline', entry_id, changes, TIMELINE_ID_FIELDS)

    def delete_timeline_entry(self, principal: Principal, pet_id: str, entry_id: str) -> bool:
        owner_id = self._owner(principal, pet_id, write=True)
        return self._delete_item(owner_id, 'timeline', entry_id, TIMELINE_ID_FIELDS)

    # --- 예정 케어 ---
    def add_reminder(self, principal: Principal, pet_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        owner_id = self._owner(principal, pet_id, write=True)
        reminder = Reminder(
            id=new_id(),
            title=data['title'],
            date=data['date'],
            type=ReminderType(data['type']),
            completed=bool(data.get('completed', False)),
            repeat=RepeatCadence(data['repeat']) if data.get('repeat') else ABSENT,
        )
        return self._append(owner_id, 'reminders', reminder.to_dict())

    def update_reminder(self, principal: Principal, pet_id: str, reminder_id: str,
                        changes: Dict[str, Any]) -> Dict[str, Any]:
        owner_id = self._owner(principal, pet_id, write=True)
        return self._update_item(owner_id, 'reminders', reminder_id, changes, REMINDER_ID_FIELDS)

    def delete_reminder(self, principal: Principal, pet_id: str, reminder_id: str) -> bool:
        owner_id = self._owner(principal, pet_id, write=True)
        return self._delete_item(owner_id, 'reminders', reminder_id, REMINDER_ID_FIELDS)

    def next_occurrence(self, reminder_date: str, cadence: str, today: str) -> Optional[str]:
        """반복 예정 케어의 다음 날짜(오늘 이후 첫 발생일). 반복이 아니면 None."""
        step = REPEAT_STEPS.get(cadence)
        if step is None:
            return None
        start = DateTimeUtils.parse_date_string(reminder_date)
        today_date: date = DateTimeUtils.parse_date_string(today)
        count = 1
        candidate = start + step
        while candidate <= today_date:
            count += 1
            # 월말 날짜가 밀리지 않도록 시작일 기준으로 누적합니다.
            candidate = start + step * count
        return DateTimeUtils.to_date_string(candidate)

    def complete_reminder(self, principal: Principal, pet_id: str, reminder_id: str) -> Dict[str, Any]:
        """
        예정 케어를 완료 처리합니다. 두 변경은 하나의 트랜잭션으로 저장됩니다.
        1. 예정 케어 목록에서 제거 (반복 항목이면 다음 발생일로 새로 등록)
        2. 'Completed: <제목>' 케어 일지 항목을 오늘 날짜로 추가
        """
        owner_id = self._owner(principal, pet_id, write=True)
        today = self._today()
        # 트랜잭션 재시도 시에도 같은 id 를 쓰도록 미리 만듭니다.
        entry_id, next_id = new_id(), new_id()

        def _modify(current):
            items = list(current['reminders'] or [])
            for item in items:
                if any(item.get(field) == reminder_id for field in REMINDER_ID_FIELDS):
                    break
            else:
                raise NotFoundError(f"No reminder with id '{reminder_id}'.")

            remaining = [other for other in items if other is not item]
            next_reminder = None
            next_date = self.next_occurrence(item.get('date', today), item.get('repeat'), today) \
                if item.get('repeat') else None
            if next_date:
                next_reminder = {**item, 'id': next_id, 'date': next_date, 'completed': False}
                next_reminder.pop('reminderId', None)
                remaining.append(next_reminder)

            reminder_type = item.get('type') or ''
            entry = sanitize(TimelineEntry(
                id=entry_id,
                date=today,
                type=entry_type_for_reminder(reminder_type),
                title=f"Completed: {item.get('title', '')}",
                notes=f"Completed scheduled {reminder_type.lower()} task.",
            ).to_dict())
            timeline = list(current['timeline'] or []) + [entry]
            return {'reminders': remaining, 'timeline': timeline}, {'entry': entry, 'nextReminder': next_reminder}

        result = self.backends['reminders'].modify_many(owner_id, JOURNAL_RESOURCES, _modify)
        logging.info(f"Reminder {reminder_id} completed for owner {owner_id}")
        return result

    # --- 문서 ---
    def add_document(self, principal: Principal, pet_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        owner_id = self._owner(principal, pet_id, write=True)
        document = PetDocument(
            id=new_id(),
            name=data['name'],
            type=DocumentType(data['type']),
            date=data.get('date') or self._today(),
            fileUrl=data['fileUrl'],
            fileSize=data.get('fileSize', ''),
            fileId=data.get('fileId', ABSENT),
            mimeType=data.get('mimeType', ABSENT),
        )
        return self._append(owner_id, 'documents', document.to_dict())

    def rename_document(self, principal: Principal, pet_id: str, document_id: str, name: str) -> Dict[str, Any]:
        owner_id = self._owner(principal, pet_id, write=True)
        return self._update_item(owner_id, 'documents', document_id, {'name': name}, ITEM_ID_FIELDS)

    def delete_document(self, principal: Principal, pet_id: str, document_id: str) -> bool:
        """호스팅된 파일을 먼저 삭제한 뒤 문서 기록을 제거합니다."""
        owner_id = self._owner(principal, pet_id, write=True)
        document = next((doc for doc in self._read_list(owner_id, 'documents')
                         if doc.get('id') == document_id), None)
        if document is None:
            return False
        if document.get('fileId') and self.storage_service is not None:
            self.storage_service.delete_file(document['fileId'])
        return self._delete_item(owner_id, 'documents', document_id, ITEM_ID_FIELDS)

    # --- 체크리스트 / 일일 기록 ---
    def update_checklist(self, principal: Principal, pet_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        owner_id = self._owner(principal, pet_id, write=True)
        flags = {k: bool(v) for k, v in changes.items() if k in CHECKLIST_FLAGS}

        def _modify(current):
            merged = {**(current or self._default_checklist()), **flags}
            return merged, merged

        checklist = self.backends['checklist'].modify(owner_id, 'checklist', _modify)
        logging.info(f"Checklist updated for owner {owner_id}: {flags}")
        return checklist

    def save_daily_reset(self, principal: Principal, pet_id: str, checklist: Dict[str, Any],
                         routines: List[Dict[str, Any]]):
        """일일 초기화 결과(체크리스트와 루틴 완료 상태)를 저장합니다."""
        owner_id = self._owner(principal, pet_id, write=True)
        self.backends['checklist'].write(owner_id, 'checklist', checklist)
        self.backends['routines'].write(owner_id, 'routines', routines)
        logging.info(f"Daily reset persisted for owner {owner_id}")

    def update_daily_log(self, principal: Principal, pet_id: str, log_date: str,
                         changes: Dict[str, Any]) -> Dict[str, Any]:
        """해당 날짜의 일일 기록을 기본값 위에 병합합니다."""
        owner_id = self._owner(principal, pet_id, write=True)
        day = DateTimeUtils.to_date_string(DateTimeUtils.parse_date_string(log_date))
        values = {k: v for k, v in changes.items() if k in DEFAULT_DAILY_LOG}

        def _modify(current):
            logs = dict(current or {})
            entry = {**DEFAULT_DAILY_LOG, **(logs.get(day) or {}), **values}
            logs[day] = entry
            return logs, entry

        entry = self.backends['dailyLogs'].modify(owner_id, 'dailyLogs', _modify)
        logging.info(f"Daily log {day} updated for owner {owner_id}")
        return entry

    def get_health_trends(self, principal: Principal, pet_id: str, metric: str,
                          days: int = 7) -> List[Dict[str, Any]]:
        """최근 N일간 일일 기록 지표의 날짜별 값. 기록이 없는 날은 기본값."""
        if metric not in DEFAULT_DAILY_LOG:
            raise ValueError(f"'{metric}'은(는) 지원하지 않는 지표입니다.")
        owner_id = self._owner(principal, pet_id)
        logs = self._read(owner_id, 'dailyLogs') or {}
        today = DateTimeUtils.parse_date_string(self._today())

        series = []
        for offset in range(days - 1, -1, -1):
            day = DateTimeUtils.to_date_string(DateTimeUtils.add_days(today, -offset))
            log = {**DEFAULT_DAILY_LOG, **(logs.get(day) or {})}
            series.append({'date': day, 'value': log[metric]})
        return series

    # --- 루틴 ---
    def add_routine(self, principal: Principal, pet_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        owner_id = self._owner(principal, pet_id, write=True)
        routine = RoutineItem(
            id=new_id(),
            title=data['title'],
            time=data['time'],
            category=RoutineCategory(data.get('category', RoutineCategory.OTHER.value)),
            completed=bool(data.get('completed', False)),
        )
        return self._append(owner_id, 'routines', routine.to_dict())

    def update_routine(self, principal: Principal, pet_id: str, routine_id: str,
                       changes: Dict[str, Any]) -> Dict[str, Any]:
        owner_id = self._owner(principal, pet_id, write=True)
        return self._update_item(owner_id, 'routines', routine_id, changes, ITEM_ID_FIELDS)

    def delete_routine(self, principal: Principal, pet_id: str, routine_id: str) -> bool:
        owner_id = self._owner(principal, pet_id, write=True)
        return self._delete_item(owner_id, 'routines', routine_id, ITEM_ID_FIELDS)

    def replace_routines(self, principal: Principal, pet_id: str,
                         routines: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        owner_id = self._owner(principal, pet_id, write=True)
        routines = [{**routine, 'id': routine.get('id') or new_id()} for routine in sanitize(routines)]
        self.backends['routines'].write(owner_id, 'routines', routines)
        logging.info(f"Routines replaced for owner {owner_id} ({len(routines)} items)")
        return routines

    # --- 진료 메모 ---
    def add_doctor_note(self, principal: Principal, pet_id: str, content: str) -> Dict[str, Any]:
        if principal is None:
            raise NotAuthenticatedError()
        if not principal.is_doctor:
            raise PermissionDeniedError("Only doctors can add clinical notes.")
        owner_id = self._owner(principal, pet_id, write=True, doctor_writable=True)
        note = DoctorNote(
            id=new_id(),
            doctorId=principal.user_id,
            doctorName=principal.name or '',
            petId=self.pet_id_for(owner_id),
            date=self._now_iso(),
            content=content,
        )
        return self._append(owner_id, 'doctorNotes', note.to_dict())

    def delete_doctor_note(self, principal: Principal, pet_id: str, note_id: str) -> bool:
        owner_id = self._owner(principal, pet_id, write=True, doctor_writable=True)
        return self._delete_item(owner_id, 'doctorNotes', note_id, ITEM_ID_FIELDS)

    # --- 수의사 방문 이력 ---
    def record_visit(self, principal: Principal, pet_id: str, clinic: Any = ABSENT) -> Dict[str, Any]:
        """수의사가 반려동물 기록을 열람했음을 남기고 보호자 문서의 최근 방문 정보를 갱신합니다."""
        if not principal.is_doctor:
            raise PermissionDeniedError("Only doctors can record a visit.")
        owner_id = self._owner(principal, pet_id, write=True, doctor_writable=True)
        visit = DoctorVisit(
            doctorId=principal.user_id,
            doctorName=principal.name or '',
            visitedAt=self._now_iso(),
            clinic=clinic or ABSENT,
        ).to_dict()
        visit = sanitize(visit)
        self.backends['visitedBy'].append(owner_id, 'visitedBy', visit)
        self.users_ref.document(owner_id).set(
            {'lastDoctorVisit': visit['visitedAt'], 'lastDoctorId': principal.user_id},
            merge=True
        )
        logging.info(f"Doctor {principal.user_id} visit recorded for owner {owner_id}")
        return visit

    def get_visits(self, principal: Principal, pet_id: str) -> List[Dict[str, Any]]:
        """방문 이력을 최근 순으로 반환합니다."""
        owner_id = self._owner(principal, pet_id)
        visits = self._read_list(owner_id, 'visitedBy')
        visits.sort(key=lambda visit: visit.get('visitedAt') or '', reverse=True)
        return visits
