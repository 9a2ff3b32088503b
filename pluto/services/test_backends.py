# pluto/services/test_backends.py
import pytest
from google.api_core import exceptions as google_exceptions

from pluto.core.errors import ConcurrentModificationError
from pluto.services.backends import (
    UNCHANGED,
    FirestoreRecordBackend,
    LocalRecordBackend,
    build_backends,
)
from pluto.services.local_store import LocalFallbackStore

def _journal(fake_db, owner_id='owner-1'):
    return fake_db.collection('users').document(owner_id) \
        .collection('pet_records').document('journal')

def test_firestore_backend_maps_resources_to_journal_fields(fake_db):
    backend = FirestoreRecordBackend(fake_db)
    backend.append('owner-1', 'timeline', {'id': 'a', 'title': 'Walk'})
    backend.append('owner-1', 'reminders', {'id': 'b', 'title': 'Pill'})

    stored = _journal(fake_db).get().to_dict()
    assert stored == {'careJournal': [{'id': 'a', 'title': 'Walk'}],
                      'plannedCare': [{'id': 'b', 'title': 'Pill'}]}
    assert backend.read('owner-1', 'timeline') == [{'id': 'a', 'title': 'Walk'}]
    assert backend.read('owner-2', 'timeline') is None

def test_modify_creates_missing_document(fake_db):
    backend = FirestoreRecordBackend(fake_db)
    result = backend.modify('owner-1', 'timeline', lambda current: ((current or []) + [{'id': 'x'}], 'ok'))
    assert result == 'ok'
    assert _journal(fake_db).get().to_dict() == {'careJournal': [{'id': 'x'}]}

def test_modify_retries_after_a_concurrent_write(fake_db):
    """다른 클라이언트가 중간에 항목을 추가해도 그 항목을 잃지 않아야 합니다."""
    backend = FirestoreRecordBackend(fake_db)
    backend.append('owner-1', 'timeline', {'id': 'a'})
    calls = []

    def rename_a(current):
        calls.append(list(current))
        if len(calls) == 1:
            # 읽은 뒤 쓰기 전에 다른 요청이 끼어듭니다.
            backend.append('owner-1', 'timeline', {'id': 'b'})
        items = [{**item, 'title': 'renamed'} if item['id'] == 'a' else item for item in current]
        return items, len(items)

    assert backend.modify('owner-1', 'timeline', rename_a) == 2
    assert len(calls) == 2
    assert backend.read('owner-1', 'timeline') == [{'id': 'a', 'title': 'renamed'}, {'id': 'b'}]

def test_modify_gives_up_after_max_attempts(fake_db):
    backend = FirestoreRecordBackend(fake_db)
    backend.append('owner-1', 'timeline', {'id': 'a'})

    def always_conflicting(current):
        backend.append('owner-1', 'timeline', {'id': f'conflict-{len(current)}'})
        return current + [{'id': 'mine'}], None

    with pytest.raises(ConcurrentModificationError):
        backend.modify('owner-1', 'timeline', always_conflicting)

def test_modify_unchanged_skips_write(fake_db):
    backend = FirestoreRecordBackend(fake_db)
    backend.append('owner-1', 'timeline', {'id': 'a'})
    writes = fake_db.writes
    assert backend.modify('owner-1', 'timeline', lambda current: (UNCHANGED, 'nothing')) == 'nothing'
    assert fake_db.writes == writes

def test_local_backend_keeps_doctor_notes_in_a_flat_blob():
    store = LocalFallbackStore()
    backend = LocalRecordBackend(store, 'PET-')
    backend.append('owner-1', 'doctorNotes', {'id': 'n1', 'petId': 'PET-owner-1'})
    backend.append('owner-2', 'doctorNotes', {'id': 'n2', 'petId': 'PET-owner-2'})
    backend.write('owner-1', 'doctorNotes', [])

    assert store.get_blob(store.DOCTOR_NOTES_KEY) == [{'id': 'n2', 'petId': 'PET-owner-2'}]

def test_local_store_persists_to_file(tmp_path):
    path = tmp_path / 'store.json'
    backend = LocalRecordBackend(LocalFallbackStore(str(path)), 'PET-')
    backend.append('owner-1', 'documents', {'id': 'd1', 'name': 'X-ray'})

    reopened = LocalRecordBackend(LocalFallbackStore(str(path)), 'PET-')
    assert reopened.read('owner-1', 'documents') == [{'id': 'd1', 'name': 'X-ray'}]

def test_corrupted_local_file_is_treated_as_empty(tmp_path):
    path = tmp_path / 'store.json'
    path.write_text('{not json', encoding='utf-8')
    store = LocalFallbackStore(str(path))
    assert store.get_record('owner-1') == {}

def test_build_backends_rejects_unknown_names(fake_db):
    with pytest.raises(ValueError):
        build_backends(fake_db, LocalFallbackStore(), {'timeline': 'redis'}, 'PET-')

def test_build_backends_keeps_journal_resources_together(fake_db):
    with pytest.raises(ValueError):
        build_backends(fake_db, LocalFallbackStore(), {'timeline': 'firestore', 'reminders': 'local'}, 'PET-')

def test_firestore_modify_many_commits_fields_together(fake_db):
    backend = FirestoreRecordBackend(fake_db)
    backend.append('owner-1', 'reminders', {'id': 'r1'})

    def move(current):
        return {'reminders': [], 'timeline': (current['timeline'] or []) + current['reminders']}, 'moved'

    assert backend.modify_many('owner-1', ('timeline', 'reminders'), move) == 'moved'
    assert _journal(fake_db).get().to_dict() == {'careJournal': [{'id': 'r1'}], 'plannedCare': []}
    assert fake_db.commits == 1

def test_firestore_modify_many_writes_nothing_when_commit_fails(fake_db):
    backend = FirestoreRecordBackend(fake_db)
    backend.append('owner-1', 'reminders', {'id': 'r1'})
    fake_db.fail_commit_with = google_exceptions.ServiceUnavailable("firestore is down")

    with pytest.raises(google_exceptions.ServiceUnavailable):
        backend.modify_many('owner-1', ('timeline', 'reminders'),
                            lambda current: ({'reminders': [], 'timeline': [{'id': 'e1'}]}, None))
    assert _journal(fake_db).get().to_dict() == {'plannedCare': [{'id': 'r1'}]}

def test_local_modify_many_updates_record_and_notes():
    store = LocalFallbackStore()
    backend = LocalRecordBackend(store, 'PET-')
    backend.append('owner-1', 'doctorNotes', {'id': 'n1', 'petId': 'PET-owner-1'})

    def _modify(current):
        return {'routines': [{'id': 'r1'}], 'doctorNotes': []}, len(current['doctorNotes'])

    assert backend.modify_many('owner-1', ('routines', 'doctorNotes'), _modify) == 1
    assert backend.read('owner-1', 'routines') == [{'id': 'r1'}]
    assert backend.read('owner-1', 'doctorNotes') == []
