# pluto/models/journal.py
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict

from marshmallow import missing

class EntryType(Enum):
    VET_VISIT = "Vet Visit"
    VACCINATION = "Vaccination"
    MEDICATION = "Medication"
    NOTE = "Note"

class ReminderType(Enum):
    VACCINATION = "Vaccination"
    MEDICATION = "Medication"
    VET_FOLLOW_UP = "Vet follow-up"

class RepeatCadence(Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


# 완료된 예정 케어가 케어 일지로 옮겨질 때 사용할 항목 타입
REMINDER_TO_ENTRY_TYPE = {
    ReminderType.VACCINATION.value: EntryType.VACCINATION,
    ReminderType.MEDICATION.value: EntryType.MEDICATION,
    ReminderType.VET_FOLLOW_UP.value: EntryType.VET_VISIT,
}


def entry_type_for_reminder(reminder_type: str) -> EntryType:
    return REMINDER_TO_ENTRY_TYPE.get(reminder_type, EntryType.NOTE)


@dataclass
class TimelineEntry:
    """케어 일지(careJournal) 배열의 항목."""
    id: str
    date: str
    type: EntryType
    title: str
    notes: Any = missing
    documentId: Any = missing

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['type'] = self.type.value
        return data


@dataclass
class Reminder:
    """예정 케어(plannedCare) 배열의 항목."""
    id: str
    title: str
    date: str
    type: ReminderType
    completed: bool = False
    repeat: Any = missing

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['type'] = self.type.value
        if isinstance(self.repeat, RepeatCadence):
            data['repeat'] = self.repeat.value
        return data
