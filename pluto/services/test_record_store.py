# pluto/services/test_record_store.py
"""
PetRecordService 테스트 (FakeFirestore + 메모리 로컬 저장소)

사용법: python -m pytest pluto/services/test_record_store.py -v
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as google_exceptions

from pluto.core.errors import (
    ExternalServiceError,
    NotAuthenticatedError,
    NotFoundError,
    PermissionDeniedError,
    ProfileNotFoundError,
    UnresolvableOwnerError,
)

# --- 보호자 ID 해석 ---
def test_resolve_owner_id(record_service, owner, doctor):
    assert record_service.resolve_owner_id('PET-owner-1', owner) == 'owner-1'
    assert record_service.resolve_owner_id('PET-owner-1', doctor) == 'owner-1'
    for placeholder in ('', None, 'me', 'current', 'undefined', 'null'):
        assert record_service.resolve_owner_id(placeholder, owner) == 'owner-1'
    assert record_service.resolve_owner_id('owner-1', owner) == 'owner-1'

def test_resolve_owner_id_rejects_unknown_ids(record_service, owner):
    with pytest.raises(UnresolvableOwnerError):
        record_service.resolve_owner_id('owner-2', owner)
    with pytest.raises(UnresolvableOwnerError):
        record_service.resolve_owner_id('PET-', owner)
    with pytest.raises(NotAuthenticatedError):
        record_service.resolve_owner_id('PET-owner-1', None)

# --- 전체 기록 조회 ---
def test_new_account_reads_empty_records_without_writing(record_service, owner, fake_db, local_store):
    records = record_service.get_pet_records(owner, 'me')

    assert records['timeline'] == []
    assert records['reminders'] == []
    assert records['documents'] == []
    assert records['doctorNotes'] == []
    assert records['routines'] == []
    assert records['dailyLogs'] == {}
    assert records['checklist']['food'] is False
    assert records['checklist']['lastReset'] == '2024-05-10T09:30:00.000Z'
    assert records['petId'] == 'PET-owner-1'
    assert fake_db.writes == 0
    assert local_store.get_blob(local_store.RECORDS_KEY) is None

def test_timeline_sorted_newest_first_and_reminders_soonest_first(record_service, owner):
    for day in ('2024-03-01', '2024-05-01', '2024-04-01'):
        record_service.add_timeline_entry(owner, 'me', {'date': day, 'type': 'Note', 'title': day})
        record_service.add_reminder(owner, 'me', {'date': day, 'type': 'Medication', 'title': day})

    records = record_service.get_pet_records(owner, 'me')
    assert [e['date'] for e in records['timeline']] == ['2024-05-01', '2024-04-01', '2024-03-01']
    assert [r['date'] for r in records['reminders']] == ['2024-03-01', '2024-04-01', '2024-05-01']

def test_initialize_journal_creates_empty_containers(record_service, fake_db, local_store):
    record_service.initialize_journal('owner-1')
    doc = fake_db.collection('users').document('owner-1') \
        .collection('pet_records').document('journal').get()
    assert doc.to_dict() == {'careJournal': [], 'plannedCare': []}
    assert local_store.get_record('owner-1')['checklist'] == {
        'food': False, 'water': False, 'walk': False, 'medication': False,
        'lastReset': '2024-05-10T09:30:00.000Z',
    }

def test_ensure_checklist_saves_default_once(record_service, owner, local_store, clock):
    first = record_service.ensure_checklist(owner, 'me')
    clock.now = datetime(2024, 5, 11, 9, 0, tzinfo=timezone.utc)
    assert record_service.ensure_checklist(owner, 'me') == first
    assert local_store.get_record('owner-1')['checklist']['lastReset'] == '2024-05-10T09:30:00.000Z'

# --- 케어 일지 CRUD ---
def test_timeline_entry_round_trip(record_service, owner, fake_db):
    entry = record_service.add_timeline_entry(owner, 'PET-owner-1', {
        'date': '2024-05-01', 'type': 'Vaccination', 'title': 'Rabies booster',
    })
    assert 'notes' not in entry  # 값이 없는 선택 필드는 저장하지 않음

    updated = record_service.update_timeline_entry(owner, 'me', entry['id'], {
        'id': 'hijacked', 'notes': 'No side effects',
    })
    assert updated['id'] == entry['id']
    assert updated['notes'] == 'No side effects'
    assert updated['title'] == 'Rabies booster'

    stored = fake_db.collection('users').document('owner-1') \
        .collection('pet_records').document('journal').get().to_dict()
    assert stored['careJournal'] == [updated]

    assert record_service.delete_timeline_entry(owner, 'me', entry['id']) is True
    assert record_service.get_pet_records(owner, 'me')['timeline'] == []

def test_update_matches_legacy_entry_id(record_service, owner, fake_db):
    fake_db.collection('users').document('owner-1').collection('pet_records').document('journal').set({
        'careJournal': [{'entryId': 'legacy-1', 'date': '2023-01-01', 'type': 'Note', 'title': 'Old'}],
    })
    updated = record_service.update_timeline_entry(owner, 'me', 'legacy-1', {'title': 'Renamed'})
    assert updated == {'entryId': 'legacy-1', 'date': '2023-01-01', 'type': 'Note', 'title': 'Renamed'}

def test_update_missing_entry_raises_not_found(record_service, owner):
    record_service.add_timeline_entry(owner, 'me', {'date': '2024-05-01', 'type': 'Note', 'title': 'A'})
    with pytest.raises(NotFoundError):
        record_service.update_timeline_entry(owner, 'me', 'missing', {'title': 'B'})

def test_delete_unknown_id_does_not_write(record_service, owner, fake_db):
    record_service.add_reminder(owner, 'me', {'date': '2024-06-01', 'type': 'Medication', 'title': 'Pill'})
    writes = fake_db.writes

    assert record_service.delete_reminder(owner, 'me', 'missing') is False
    assert fake_db.writes == writes

def test_delete_without_container_is_noop(record_service, owner, fake_db):
    assert record_service.delete_timeline_entry(owner, 'me', 'anything') is False
    assert fake_db.writes == 0

# --- 예정 케어 완료 ---
def test_complete_reminder_moves_it_to_the_journal(record_service, owner):
    reminder = record_service.add_reminder(owner, 'me', {
        'title': 'Rabies booster', 'date': '2024-05-01', 'type': 'Vaccination',
    })

    result = record_service.complete_reminder(owner, 'me', reminder['id'])

    entry = result['entry']
    assert entry['title'] == 'Completed: Rabies booster'
    assert entry['type'] == 'Vaccination'
    assert entry['date'] == '2024-05-10'
    assert entry['notes'] == 'Completed scheduled vaccination task.'
    assert result['nextReminder'] is None

    records = record_service.get_pet_records(owner, 'me')
    assert records['reminders'] == []
    assert records['timeline'] == [entry]

def test_complete_follow_up_maps_to_vet_visit(record_service, owner):
    reminder = record_service.add_reminder(owner, 'me', {
        'title': 'Check stitches', 'date': '2024-05-09', 'type': 'Vet follow-up',
    })
    entry = record_service.complete_reminder(owner, 'me', reminder['id'])['entry']
    assert entry['type'] == 'Vet Visit'
    assert entry['notes'] == 'Completed scheduled vet follow-up task.'

def test_complete_repeating_reminder_plans_next_occurrence(record_service, owner):
    reminder = record_service.add_reminder(owner, 'me', {
        'title': 'Heartworm pill', 'date': '2024-01-31', 'type': 'Medication', 'repeat': 'Monthly',
    })

    result = record_service.complete_reminder(owner, 'me', reminder['id'])

    next_reminder = result['nextReminder']
    assert next_reminder['date'] == '2024-05-31'
    assert next_reminder['id'] != reminder['id']
    assert next_reminder['repeat'] == 'Monthly'
    assert record_service.get_pet_records(owner, 'me')['reminders'] == [next_reminder]

def test_complete_reminder_is_all_or_nothing(record_service, owner, fake_db):
    reminder = record_service.add_reminder(owner, 'me', {
        'title': 'Heartworm shot', 'date': '2024-05-01', 'type': 'Medication',
    })
    fake_db.fail_commit_with = google_exceptions.ServiceUnavailable("firestore is down")

    with pytest.raises(google_exceptions.ServiceUnavailable):
        record_service.complete_reminder(owner, 'me', reminder['id'])

    records = record_service.get_pet_records(owner, 'me')
    assert records['reminders'] == [reminder]
    assert records['timeline'] == []


def test_complete_unknown_reminder_raises(record_service, owner):
    with pytest.raises(NotFoundError):
        record_service.complete_reminder(owner, 'me', 'missing')

def test_next_occurrence(record_service):
    assert record_service.next_occurrence('2024-05-01', 'Yearly', '2024-05-10') == '2025-05-01'
    assert record_service.next_occurrence('2024-05-08', 'Weekly', '2024-05-10') == '2024-05-15'
    assert record_service.next_occurrence('2024-05-12', 'Daily', '2024-05-10') == '2024-05-13'
    assert record_service.next_occurrence('2024-05-12', None, '2024-05-10') is None

# --- 권한 ---
def test_owner_cannot_touch_another_owners_records(record_service, other_owner):
    with pytest.raises(PermissionDeniedError):
        record_service.get_pet_records(other_owner, 'PET-owner-1')
    with pytest.raises(PermissionDeniedError):
        record_service.add_timeline_entry(other_owner, 'PET-owner-1',
                                          {'date': '2024-05-01', 'type': 'Note', 'title': 'x'})

def test_doctor_is_read_only_except_notes(record_service, owner, doctor):
    record_service.add_timeline_entry(owner, 'me', {'date': '2024-05-01', 'type': 'Note', 'title': 'Walk'})

    assert len(record_service.get_pet_records(doctor, 'PET-owner-1')['timeline']) == 1
    with pytest.raises(PermissionDeniedError):
        record_service.add_reminder(doctor, 'PET-owner-1',
                                    {'date': '2024-06-01', 'type': 'Medication', 'title': 'x'})

    note = record_service.add_doctor_note(doctor, 'PET-owner-1', 'Mild dermatitis, recheck in 2 weeks.')
    assert note['doctorId'] == 'doc-1'
    assert note['doctorName'] == 'Dr. Kim'
    assert note['petId'] == 'PET-owner-1'
    assert record_service.get_pet_records(owner, 'me')['doctorNotes'] == [note]

def test_only_doctors_add_notes_but_owners_may_delete(record_service, owner, doctor):
    with pytest.raises(PermissionDeniedError):
        record_service.add_doctor_note(owner, 'me', 'I am not a vet')

    note = record_service.add_doctor_note(doctor, 'PET-owner-1', 'Healthy')
    assert record_service.delete_doctor_note(owner, 'me', note['id']) is True
    assert record_service.get_pet_records(owner, 'me')['doctorNotes'] == []

def test_doctor_notes_are_scoped_per_pet(record_service, doctor, local_store):
    record_service.add_doctor_note(doctor, 'PET-owner-1', 'Luna note')
    record_service.add_doctor_note(doctor, 'PET-owner-2', 'Max note')

    assert [n['content'] for n in local_store.list_notes('PET-owner-1')] == ['Luna note']
    assert len(local_store.get_blob(local_store.DOCTOR_NOTES_KEY)) == 2

# --- 프로필 ---
def test_update_pet_profile_merges_and_keeps_id(record_service, owner, seed_users):
    profile = record_service.update_pet_profile(owner, 'me', {'weight': '12kg', 'id': 'PET-other'})
    assert profile.id == 'PET-owner-1'
    assert profile.weight == '12kg'
    assert profile.name == 'Luna'

    stored = seed_users.collection('users').document('owner-1').get().to_dict()
    assert stored['petDetails']['weight'] == '12kg'
    assert stored['petDetails']['breed'] == 'Beagle'

def test_update_pet_profile_errors(record_service, owner):
    with pytest.raises(NotAuthenticatedError):
        record_service.update_pet_profile(None, 'me', {'name': 'Luna'})
    with pytest.raises(ProfileNotFoundError):
        record_service.update_pet_profile(owner, 'me', {'name': 'Luna'})

# --- 문서 ---
def test_delete_document_removes_hosted_file_first(record_service, owner):
    storage = MagicMock()
    record_service.storage_service = storage
    document = record_service.add_document(owner, 'me', {
        'name': 'Blood panel', 'type': 'Report', 'fileUrl': 'https://ik.imagekit.io/x/blood.pdf',
        'fileId': 'file_123', 'fileSize': '120 KB',
    })
    assert document['date'] == '2024-05-10'

    assert record_service.delete_document(owner, 'me', document['id']) is True
    storage.delete_file.assert_called_once_with('file_123')
    assert record_service.get_pet_records(owner, 'me')['documents'] == []

def test_failed_file_delete_keeps_the_record(record_service, owner):
    storage = MagicMock()
    storage.delete_file.side_effect = ExternalServiceError("File deletion failed.", service='imagekit')
    record_service.storage_service = storage
    document = record_service.add_document(owner, 'me', {
        'name': 'Invoice', 'type': 'Bill', 'fileUrl': 'https://ik.imagekit.io/x/bill.pdf', 'fileId': 'f1',
    })

    with pytest.raises(ExternalServiceError):
        record_service.delete_document(owner, 'me', document['id'])
    assert len(record_service.get_pet_records(owner, 'me')['documents']) == 1

def test_rename_document(record_service, owner):
    document = record_service.add_document(owner, 'me', {
        'name': 'scan.pdf', 'type': 'Prescription', 'fileUrl': 'https://ik.imagekit.io/x/scan.pdf',
    })
    renamed = record_service.rename_document(owner, 'me', document['id'], 'Antibiotics prescription')
    assert renamed['name'] == 'Antibiotics prescription'
    assert renamed['fileUrl'] == document['fileUrl']

# --- 체크리스트 / 일일 기록 / 루틴 ---
def test_update_checklist_merges_flags(record_service, owner):
    record_service.update_checklist(owner, 'me', {'food': True})
    checklist = record_service.update_checklist(owner, 'me', {'walk': True, 'unknown': True})
    assert checklist['food'] is True
    assert checklist['walk'] is True
    assert checklist['water'] is False
    assert 'unknown' not in checklist

def test_update_daily_log_merges_onto_defaults(record_service, owner):
    entry = record_service.update_daily_log(owner, 'me', '2024-05-10', {'activityMinutes': 45})
    assert entry == {'activityMinutes': 45, 'moodRating': 3, 'feedingCount': 0}

    entry = record_service.update_daily_log(owner, 'me', '2024-05-10', {'feedingCount': 2})
    assert entry == {'activityMinutes': 45, 'moodRating': 3, 'feedingCount': 2}

def test_health_trends_fill_missing_days_with_defaults(record_service, owner):
    record_service.update_daily_log(owner, 'me', '2024-05-10', {'activityMinutes': 30})
    record_service.update_daily_log(owner, 'me', '2024-05-08', {'activityMinutes': 60})

    series = record_service.get_health_trends(owner, 'me', 'activityMinutes')

    assert [point['date'] for point in series] == [
        '2024-05-04', '2024-05-05', '2024-05-06', '2024-05-07', '2024-05-08', '2024-05-09', '2024-05-10']
    assert [point['value'] for point in series] == [0, 0, 0, 0, 60, 0, 30]

    moods = record_service.get_health_trends(owner, 'me', 'moodRating', days=3)
    assert [point['value'] for point in moods] == [3, 3, 3]

def test_health_trends_rejects_unknown_metric(record_service, owner):
    with pytest.raises(ValueError):
        record_service.get_health_trends(owner, 'me', 'weight')

def test_routine_crud(record_service, owner):
    routine = record_service.add_routine(owner, 'me', {'title': 'Morning walk', 'time': '07:30', 'category': 'Walk'})
    assert routine['completed'] is False

    updated = record_service.update_routine(owner, 'me', routine['id'], {'completed': True})
    assert updated['completed'] is True

    replaced = record_service.replace_routines(owner, 'me', [
        {'id': routine['id'], 'title': 'Morning walk', 'time': '08:00', 'category': 'Walk', 'completed': False},
        {'title': 'Dinner', 'time': '18:00', 'category': 'Food', 'completed': False},
    ])
    assert replaced[0]['id'] == routine['id']
    assert replaced[1]['id']

    assert record_service.delete_routine(owner, 'me', routine['id']) is True
    assert [r['title'] for r in record_service.get_pet_records(owner, 'me')['routines']] == ['Dinner']

# --- 수의사 방문 이력 ---
def test_record_visit_updates_owner_document(record_service, doctor, owner, seed_users):
    visit = record_service.record_visit(doctor, 'PET-owner-1', clinic='Happy Paws Clinic')

    assert visit == {'doctorId': 'doc-1', 'doctorName': 'Dr. Kim',
                     'visitedAt': '2024-05-10T09:30:00.000Z', 'clinic': 'Happy Paws Clinic'}
    stored = seed_users.collection('users').document('owner-1').get().to_dict()
    assert stored['lastDoctorVisit'] == '2024-05-10T09:30:00.000Z'
    assert stored['lastDoctorId'] == 'doc-1'
    assert record_service.get_visits(owner, 'me') == [visit]

def test_owner_cannot_record_visit(record_service, owner):
    with pytest.raises(PermissionDeniedError):
        record_service.record_visit(owner, 'me')

def test_delete_all_records(record_service, owner, doctor, fake_db, local_store):
    record_service.add_timeline_entry(owner, 'me', {'date': '2024-05-01', 'type': 'Note', 'title': 'A'})
    record_service.add_routine(owner, 'me', {'title': 'Walk', 'time': '07:00'})
    record_service.add_doctor_note(doctor, 'PET-owner-1', 'note')

    record_service.delete_all_records('owner-1')

    records = record_service.get_pet_records(owner, 'me')
    assert records['timeline'] == []
    assert records['routines'] == []
    assert records['doctorNotes'] == []
