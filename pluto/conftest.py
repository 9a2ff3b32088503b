# pluto/conftest.py
"""
테스트 공용 픽스처.

FakeFirestore 는 firebase_admin Firestore 클라이언트 중 이 프로젝트가 쓰는 부분만
메모리로 흉내 냅니다 (set/merge, ArrayUnion, update, 트랜잭션, where/stream).
"""
import copy
import itertools
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from firebase_admin import firestore
from flask_jwt_extended import create_access_token
from google.api_core import exceptions as google_exceptions

from pluto import create_app
from pluto.core.security import Principal
from pluto.models.user import UserRole
from pluto.services.local_store import LocalFallbackStore
from pluto.services.record_store import PetRecordService

FIXED_NOW = datetime(2024, 5, 10, 9, 30, tzinfo=timezone.utc)


class FakeSnapshot:
    def __init__(self, doc_id, data, update_time):
        self.id = doc_id
        self._data = copy.deepcopy(data) if data is not None else None
        self.exists = data is not None
        self.update_time = update_time

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, db, path):
        self._db = db
        self.path = path
        self.id = path.split('/')[-1]

    def collection(self, name):
        return FakeCollection(self._db, f"{self.path}/{name}")

    def get(self, transaction=None):
        data, update_time = self._db.docs.get(self.path, (None, None))
        if transaction is not None:
            transaction._record_read(self.path, update_time)
        return FakeSnapshot(self.id, data, update_time)

    def _apply(self, current, data):
        merged = dict(current or {})
        for key, value in data.items():
            if isinstance(value, firestore.ArrayUnion):
                existing = list(merged.get(key) or [])
                existing.extend(item for item in value.values if item not in existing)
                merged[key] = copy.deepcopy(existing)
            else:
                merged[key] = copy.deepcopy(value)
        return merged

    def set(self, data, merge=False):
        self._db.writes += 1
        current = self._db.docs.get(self.path, (None, None))[0] if merge else None
        self._db.put(self.path, self._apply(current, data))

    def update(self, data):
        self._db.writes += 1
        current = self._db.docs.get(self.path, (None, None))[0]
        if current is None:
            raise google_exceptions.NotFound(f"No document to update: {self.path}")
        self._db.put(self.path, self._apply(current, data))

    def delete(self):
        self._db.writes += 1
        self._db.docs.pop(self.path, None)


class FakeTransaction:
    """
    firestore.transactional 이 호출하는 Transaction 내부 메서드만 흉내 냅니다.
    쓰기는 커밋 때 한꺼번에 반영되고, 읽은 문서가 그 사이 바뀌었으면 Aborted 로 재시도를 유도합니다.
    """
    def __init__(self, db, max_attempts=5):
        self._db = db
        self._max_attempts = max_attempts
        self._read_only = False
        self._id = None
        self._reads = {}
        self._writes = []

    def _clean_up(self):
        self._id = None
        self._reads = {}
        self._writes = []

    def _begin(self, retry_id=None):
        self._id = f"txn-{next(self._db._txn_ids)}".encode()

    def _rollback(self):
        self._clean_up()

    def _commit(self):
        if self._db.fail_commit_with is not None:
            raise self._db.fail_commit_with
        for path, update_time in self._reads.items():
            if self._db.docs.get(path, (None, None))[1] != update_time:
                self._clean_up()
                raise google_exceptions.Aborted("Transaction contention on a read document.")
        for doc_ref, data, merge in self._writes:
            doc_ref.set(data, merge=merge)
        self._db.commits += 1
        self._clean_up()
        return []

    def _record_read(self, path, update_time):
        self._reads.setdefault(path, update_time)

    def set(self, doc_ref, data, merge=False):
        self._writes.append((doc_ref, data, merge))


class FakeQuery:
    def __init__(self, collection, filters):
        self._collection = collection
        self._filters = filters

    def where(self, field, op, value):
        return FakeQuery(self._collection, self._filters + [(field, op, value)])

    def stream(self):
        for snapshot in self._collection.stream():
            data = snapshot.to_dict()
            if all(op == '==' and data.get(field) == value for field, op, value in self._filters):
                yield snapshot


class FakeCollection:
    def __init__(self, db, path):
        self._db = db
        self.path = path

    def document(self, doc_id):
        return FakeDocumentRef(self._db, f"{self.path}/{doc_id}")

    def where(self, field, op, value):
        return FakeQuery(self, [(field, op, value)])

    def stream(self):
        prefix = f"{self.path}/"
        for path in sorted(self._db.docs):
            rest = path[len(prefix):]
            if path.startswith(prefix) and '/' not in rest:
                yield FakeDocumentRef(self._db, path).get()


class FakeFirestore:
    def __init__(self):
        self.docs = {}
        self.writes = 0
        self.commits = 0
        # 설정하면 다음 트랜잭션 커밋이 이 예외로 실패합니다.
        self.fail_commit_with = None
        self._clock = itertools.count(1)
        self._txn_ids = itertools.count(1)

    def put(self, path, data):
        self.docs[path] = (data, next(self._clock))

    def collection(self, name):
        return FakeCollection(self, name)

    def transaction(self, **kwargs):
        return FakeTransaction(self, **kwargs)


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def local_store():
    return LocalFallbackStore()


@pytest.fixture
def owner():
    return Principal(user_id='owner-1', role=UserRole.PET_OWNER, email='mia@example.com', name='mia')


@pytest.fixture
def other_owner():
    return Principal(user_id='owner-2', role=UserRole.PET_OWNER, email='leo@example.com', name='leo')


@pytest.fixture
def doctor():
    return Principal(user_id='doc-1', role=UserRole.DOCTOR, email='dr.kim@example.com', name='Dr. Kim')


@pytest.fixture
def clock():
    """테스트에서 시간을 옮길 수 있는 시계. clock.now 를 바꿔서 사용합니다."""
    return SimpleNamespace(now=FIXED_NOW)


@pytest.fixture
def record_service(fake_db, local_store, clock):
    from pluto.core.config import Config
    return PetRecordService(
        db=fake_db,
        local_store=local_store,
        backend_names=Config.RECORD_BACKENDS,
        pet_id_prefix='PET-',
        timezone_name='UTC',
        clock=lambda: clock.now,
    )


@pytest.fixture
def seed_users(fake_db):
    """보호자 한 명과 수의사 한 명의 프로필 문서를 만듭니다."""
    fake_db.collection('users').document('owner-1').set({
        'id': 'owner-1', 'username': 'mia', 'email': 'mia@example.com', 'role': 'PET_OWNER',
        'petDetails': {'id': 'PET-owner-1', 'name': 'Luna', 'species': 'Dog', 'breed': 'Beagle',
                       'dateOfBirth': '2020-03-01', 'gender': 'Female'},
    })
    fake_db.collection('users').document('doc-1').set({
        'id': 'doc-1', 'username': 'dr.kim', 'email': 'dr.kim@example.com', 'role': 'DOCTOR',
        'doctorDetails': {'id': 'doc-1', 'name': 'Dr. Kim', 'specialization': 'Dermatology',
                          'clinic': 'Happy Paws Clinic'},
    })
    return fake_db


@pytest.fixture
def app(fake_db):
    app = create_app('testing', db=fake_db)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_header(app):
    """역할별 Access Token 헤더를 만드는 헬퍼"""
    def _make(user_id='owner-1', role=UserRole.PET_OWNER, name='mia'):
        with app.app_context():
            token = create_access_token(identity=user_id, additional_claims={
                'role': role.value, 'email': f'{user_id}@example.com', 'name': name})
        return {'Authorization': f'Bearer {token}'}
    return _make
