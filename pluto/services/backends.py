# pluto/services/backends.py
"""
반려동물 하위 리소스 저장소 인터페이스와 구현체.

PetRecordService 는 리소스 이름('timeline', 'documents' 등)만 알고,
어느 저장소에 기록되는지는 RECORD_BACKENDS 설정으로 결정됩니다.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from pluto.core.errors import ConcurrentModificationError
from pluto.services.local_store import LocalFallbackStore
from pluto.utils.payload import sanitize

logger = logging.getLogger(__name__)

# modify 콜백이 "쓰기 불필요"를 알릴 때 반환하는 값
UNCHANGED = object()

# modify 콜백 시그니처: 현재 값 -> (새 값 또는 UNCHANGED, 호출자에게 돌려줄 값)
Modifier = Callable[[Any], Tuple[Any, Any]]

# modify_many 콜백 시그니처: {리소스: 현재 값} -> ({바뀐 리소스: 새 값}, 호출자에게 돌려줄 값)
MultiModifier = Callable[[Dict[str, Any]], Tuple[Dict[str, Any], Any]]

# 하나의 작업에서 함께 바뀌는 리소스 (예정 케어 완료 = 예정 케어 제거 + 케어 일지 추가)
JOURNAL_RESOURCES = ('timeline', 'reminders')


class RecordBackend(ABC):
    """리소스 단위 읽기/쓰기/추가/수정 인터페이스."""

    @abstractmethod
    def read(self, owner_id: str, resource: str) -> Any:
        """저장된 값을 반환합니다. 없으면 None."""

    @abstractmethod
    def write(self, owner_id: str, resource: str, value: Any):
        """리소스 전체를 덮어씁니다."""

    @abstractmethod
    def append(self, owner_id: str, resource: str, item: Dict[str, Any]):
        """배열 리소스에 항목을 추가합니다."""

    @abstractmethod
    def modify_many(self, owner_id: str, resources: Sequence[str], modifier: MultiModifier) -> Any:
        """여러 리소스를 한 번에 읽고 수정합니다. 반환된 변경분은 모두 쓰이거나 하나도 쓰이지 않습니다."""

    def modify(self, owner_id: str, resource: str, modifier: Modifier) -> Any:
        """읽기-수정-쓰기. modifier 가 UNCHANGED 를 돌려주면 쓰지 않습니다."""
        def _single(current):
            new_value, result = modifier(current[resource])
            return ({} if new_value is UNCHANGED else {resource: new_value}), result
        return self.modify_many(owner_id, (resource,), _single)

    def delete_all(self, owner_id: str):
        """계정 삭제 시 해당 보호자의 모든 리소스를 지웁니다."""


class FirestoreRecordBackend(RecordBackend):
    """
    users/{uid}/pet_records/journal 문서의 필드로 리소스를 저장합니다.

    배열 재작성은 트랜잭션 안에서 수행되며, 동시 수정으로 커밋이 중단되면
    firestore.transactional 이 다시 읽어 재적용합니다.
    """
    RECORDS_SUBCOLLECTION = 'pet_records'
    JOURNAL_DOCUMENT = 'journal'

    # 리소스 이름 -> 문서 필드 이름
    FIELD_NAMES = {
        'timeline': 'careJournal',
        'reminders': 'plannedCare',
    }

    def __init__(self, db):
        self.db = db
        self.users_ref = self.db.collection('users')

    def _doc_ref(self, owner_id: str):
        return self.users_ref.document(owner_id) \
            .collection(self.RECORDS_SUBCOLLECTION) \
            .document(self.JOURNAL_DOCUMENT)

    def _field(self, resource: str) -> str:
        return self.FIELD_NAMES.get(resource, resource)

    def read(self, owner_id: str, resource: str) -> Any:
        snapshot = self._doc_ref(owner_id).get()
        if not snapshot.exists:
            return None
        return (snapshot.to_dict() or {}).get(self._field(resource))

    def write(self, owner_id: str, resource: str, value: Any):
        self._doc_ref(owner_id).set({self._field(resource): sanitize(value)}, merge=True)

    def append(self, owner_id: str, resource: str, item: Dict[str, Any]):
        self._doc_ref(owner_id).set(
            {self._field(resource): firestore.ArrayUnion([sanitize(item)])},
            merge=True
        )

    def modify_many(self, owner_id: str, resources: Sequence[str], modifier: MultiModifier) -> Any:
        doc_ref = self._doc_ref(owner_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def _modify_in_transaction(transaction):
            snapshot = doc_ref.get(transaction=transaction)
            stored = (snapshot.to_dict() or {}) if snapshot.exists else {}
            changes, result = modifier({resource: stored.get(self._field(resource)) for resource in resources})
            if changes:
                transaction.set(
                    doc_ref,
                    {self._field(resource): sanitize(value) for resource, value in changes.items()},
                    merge=True
                )
            return result

        try:
            return _modify_in_transaction(transaction)
        except ValueError as e:
            # 재시도 횟수를 넘기면 transactional 이 Aborted 를 ValueError 로 감싸 던집니다.
            if isinstance(e.__cause__, google_exceptions.Aborted):
                logger.warning(f"Transaction on {owner_id}/{list(resources)} aborted too many times: {e}")
                raise ConcurrentModificationError() from e
            raise

    def delete_all(self, owner_id: str):
        self._doc_ref(owner_id).delete()


class LocalRecordBackend(RecordBackend):
    """
    LocalFallbackStore 에 리소스를 저장합니다.
    doctorNotes 는 전체 메모 리스트 blob 에 petId 로 구분되어 저장됩니다.
    """
    NOTES_RESOURCE = 'doctorNotes'

    def __init__(self, store: LocalFallbackStore, pet_id_prefix: str):
        self.store = store
        self.pet_id_prefix = pet_id_prefix

    def _pet_id(self, owner_id: str) -> str:
        return f"{self.pet_id_prefix}{owner_id}"

    def read(self, owner_id: str, resource: str) -> Any:
        if resource == self.NOTES_RESOURCE:
            return self.store.list_notes(self._pet_id(owner_id))
        return self.store.get_record(owner_id).get(resource)

    def write(self, owner_id: str, resource: str, value: Any):
        if resource == self.NOTES_RESOURCE:
            self.store.replace_notes(self._pet_id(owner_id), sanitize(value))
            return

        def _set(record):
            record[resource] = sanitize(value)
        self.store.update_record(owner_id, _set)

    def append(self, owner_id: str, resource: str, item: Dict[str, Any]):
        if resource == self.NOTES_RESOURCE:
            self.store.add_note(sanitize(item))
            return

        def _append(record):
            record[resource] = list(record.get(resource) or []) + [sanitize(item)]
        self.store.update_record(owner_id, _append)

    def modify_many(self, owner_id: str, resources: Sequence[str], modifier: MultiModifier) -> Any:
        # 로컬 저장소 잠금은 재진입 가능하므로 읽기와 쓰기를 하나의 임계 구역으로 묶습니다.
        with self.store._lock:
            changes, result = modifier({resource: self.read(owner_id, resource) for resource in resources})
            changes = dict(changes)
            notes = changes.pop(self.NOTES_RESOURCE, None)
            if changes:
                def _set_all(record):
                    for resource, value in changes.items():
                        record[resource] = sanitize(value)
                self.store.update_record(owner_id, _set_all)
            if notes is not None:
                self.store.replace_notes(self._pet_id(owner_id), sanitize(notes))
            return result

    def delete_all(self, owner_id: str):
        self.store.replace_notes(self._pet_id(owner_id), [])
        self.store.delete_record(owner_id)


def build_backends(db, local_store: LocalFallbackStore, backend_names: Dict[str, str],
                   pet_id_prefix: str) -> Dict[str, RecordBackend]:
    """RECORD_BACKENDS 설정(리소스 -> 'firestore' | 'local')으로 리소스별 저장소를 구성합니다."""
    available: Dict[str, Optional[RecordBackend]] = {
        'firestore': FirestoreRecordBackend(db),
        'local': LocalRecordBackend(local_store, pet_id_prefix),
    }
    backends = {}
    for resource, name in backend_names.items():
        backend = available.get(name)
        if backend is None:
            raise ValueError(f"'{name}'은(는) 알 수 없는 저장소입니다 (resource: {resource}).")
        backends[resource] = backend

    journal_names = {backend_names.get(resource) for resource in JOURNAL_RESOURCES}
    if len(journal_names) > 1:
        raise ValueError(f"{JOURNAL_RESOURCES} 는 같은 저장소를 사용해야 합니다: {journal_names}")
    return backends
