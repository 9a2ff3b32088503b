# pluto/models/records.py
"""로컬 보조 저장소에 보관되는 반려동물 하위 리소스 모델."""
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict

from marshmallow import missing

class DocumentType(Enum):
    PRESCRIPTION = "Prescription"
    BILL = "Bill"
    REPORT = "Report"
    NOTE = "Note"

class RoutineCategory(Enum):
    FOOD = "Food"
    WALK = "Walk"
    MEDICATION = "Medication"
    PLAY = "Play"
    SLEEP = "Sleep"
    OTHER = "Other"

CHECKLIST_FLAGS = ('food', 'water', 'walk', 'medication')

# 기록이 없는 날짜의 기본값
DEFAULT_DAILY_LOG = {'activityMinutes': 0, 'moodRating': 3, 'feedingCount': 0}


@dataclass
class PetDocument:
    id: str
    name: str
    type: DocumentType
    date: str
    fileUrl: str
    fileSize: str = ""
    fileId: Any = missing
    mimeType: Any = missing

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['type'] = self.type.value
        return data


@dataclass
class DailyChecklist:
    """하루 단위로 초기화되는 기본 케어 체크리스트."""
    lastReset: str
    food: bool = False
    water: bool = False
    walk: bool = False
    medication: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RoutineItem:
    id: str
    title: str
    time: str
    category: RoutineCategory = RoutineCategory.OTHER
    completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['category'] = self.category.value
        return data


@dataclass
class DoctorNote:
    """수의사가 작성하는 진료 메모. 수의사 계정만 생성할 수 있습니다."""
    id: str
    doctorId: str
    doctorName: str
    petId: str
    date: str
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DoctorVisit:
    """수의사가 반려동물 기록을 열람한 이력 (visitedBy)."""
    doctorId: str
    doctorName: str
    visitedAt: str
    clinic: Any = missing

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
