# pluto/services/local_store.py
import copy
import json
import logging
import os
import threading
from typing import Any, Callable, Dict, List, Optional

from flask import Flask

class LocalFallbackStore:
    """
    원격 저장소(Firestore)로 아직 옮기지 않은 하위 리소스를 보관하는 로컬 key-value 저장소.

    하나의 JSON 파일에 두 개의 이름 있는 blob 을 저장합니다.
    - pluto_records: 반려동물/보호자 id -> {documents, checklist, dailyLogs, routines, visitedBy}
    - pluto_doctor_notes: 모든 반려동물의 진료 메모를 담은 단일 리스트 (조회 시 petId 로 필터링)

    path 가 None 이면 파일 없이 메모리에만 보관합니다 (테스트용).
    """
    RECORDS_KEY = 'pluto_records'
    DOCTOR_NOTES_KEY = 'pluto_doctor_notes'

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._lock = threading.RLock()
        self._memory: Dict[str, Any] = {}

    def init_app(self, app: Flask):
        """Flask 앱 설정에서 저장 파일 경로를 읽어옵니다. 경로가 비어 있으면 메모리에만 보관합니다."""
        path = app.config.get('LOCAL_STORE_PATH')
        if not path:
            logging.info("LocalFallbackStore: LOCAL_STORE_PATH 가 없어 메모리 저장소를 사용합니다.")
            return
        self.path = os.path.abspath(path)
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        logging.info(f"LocalFallbackStore: using {self.path}")

    # --- blob 입출력 ---
    def _load(self) -> Dict[str, Any]:
        if self.path is None:
            return copy.deepcopy(self._memory)
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            # 손상된 파일은 빈 저장소로 취급합니다.
            logging.warning(f"Local store at {self.path} is unreadable, starting empty: {e}")
            return {}

    def _save(self, blobs: Dict[str, Any]):
        if self.path is None:
            self._memory = copy.deepcopy(blobs)
            return
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(blobs, f, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def get_blob(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._load().get(key, default)

    def set_blob(self, key: str, value: Any):
        with self._lock:
            blobs = self._load()
            blobs[key] = value
            self._save(blobs)

    # --- pluto_records ---
    def get_record(self, record_id: str) -> Dict[str, Any]:
        """해당 id 의 하위 리소스 묶음을 반환합니다. 없으면 빈 dict."""
        records = self.get_blob(self.RECORDS_KEY, {}) or {}
        return records.get(record_id, {})

    def update_record(self, record_id: str, mutator: Callable[[Dict[str, Any]], Any]) -> Any:
        """
        읽기-수정-쓰기를 잠금 안에서 수행합니다.
        mutator 는 레코드 dict 를 직접 수정하고 호출자에게 돌려줄 값을 반환합니다.
        """
        with self._lock:
            blobs = self._load()
            records = blobs.setdefault(self.RECORDS_KEY, {})
            record = records.setdefault(record_id, {})
            result = mutator(record)
            self._save(blobs)
            return result

    def delete_record(self, record_id: str):
        with self._lock:
            blobs = self._load()
            if blobs.get(self.RECORDS_KEY, {}).pop(record_id, None) is not None:
                self._save(blobs)

    # --- pluto_doctor_notes ---
    def list_notes(self, pet_id: str) -> List[Dict[str, Any]]:
        notes = self.get_blob(self.DOCTOR_NOTES_KEY, []) or []
        return [note for note in notes if note.get('petId') == pet_id]

    def replace_notes(self, pet_id: str, notes: List[Dict[str, Any]]):
        """해당 반려동물의 메모만 교체하고 다른 반려동물의 메모는 유지합니다."""
        with self._lock:
            all_notes = self.get_blob(self.DOCTOR_NOTES_KEY, []) or []
            others = [note for note in all_notes if note.get('petId') != pet_id]
            self.set_blob(self.DOCTOR_NOTES_KEY, list(notes) + others)

    def add_note(self, note: Dict[str, Any]):
        with self._lock:
            all_notes = self.get_blob(self.DOCTOR_NOTES_KEY, []) or []
            self.set_blob(self.DOCTOR_NOTES_KEY, [note] + all_notes)
