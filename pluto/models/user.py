# pluto/models/user.py
from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import Any, Dict, Optional
import logging

from marshmallow import missing

class UserRole(Enum):
    PET_OWNER = "PET_OWNER"
    DOCTOR = "DOCTOR"

class Species(Enum):
    DOG = "Dog"
    CAT = "Cat"
    OTHER = "Other"

class Gender(Enum):
    MALE = "Male"
    FEMALE = "Female"
    UNKNOWN = "Unknown"


def _enum_or_default(enum_cls, value, default, owner_id=None):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        logging.warning(f"Invalid {enum_cls.__name__} value '{value}' for {owner_id}. Defaulting to {default.value}.")
        return default


@dataclass
class PetProfile:
    """
    보호자 문서(users/{uid})의 petDetails 필드에 내장되는 반려동물 프로필.
    보호자 한 명당 최대 한 마리를 관리합니다.
    """
    id: str
    name: str
    species: Species = Species.DOG
    breed: str = ""
    dateOfBirth: str = ""
    gender: Gender = Gender.UNKNOWN
    avatar: Any = missing
    weight: Any = missing
    color: Any = missing
    microchip: Any = missing

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PetProfile":
        """Firestore 딕셔너리에서 인스턴스를 만듭니다. 모르는 키는 무시합니다."""
        known = {f.name for f in fields(cls)}
        processed = {k: v for k, v in data.items() if k in known}
        processed['species'] = _enum_or_default(Species, processed.get('species', Species.DOG), Species.OTHER, data.get('id'))
        processed['gender'] = _enum_or_default(Gender, processed.get('gender', Gender.UNKNOWN), Gender.UNKNOWN, data.get('id'))
        processed.setdefault('name', '')
        return cls(**processed)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['species'] = self.species.value
        data['gender'] = self.gender.value
        return data


@dataclass
class DoctorProfile:
    """수의사 계정의 전문가 프로필 (doctorDetails 필드)."""
    id: str
    name: str
    specialization: str = ""
    qualification: str = ""
    clinic: str = ""
    registrationId: str = ""
    experience: str = ""
    address: str = ""
    contact: str = ""
    emergencyContact: str = ""
    consultationHours: str = ""
    medicalFocus: str = ""
    bio: Any = missing
    languages: Any = missing

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DoctorProfile":
        known = {f.name for f in fields(cls)}
        processed = {k: v for k, v in data.items() if k in known}
        processed.setdefault('name', '')
        return cls(**processed)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class User:
    """
    Firestore 'users' 컬렉션의 문서 구조.
    역할에 따라 petDetails 또는 doctorDetails 중 하나를 포함합니다.
    """
    id: str
    username: str
    email: str
    role: UserRole
    petDetails: Optional[PetProfile] = None
    doctorDetails: Optional[DoctorProfile] = None
    lastDoctorVisit: Any = missing
    lastDoctorId: Any = missing
    createdAt: Any = missing

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        pet = data.get('petDetails')
        doctor = data.get('doctorDetails')
        return cls(
            id=data['id'],
            username=data.get('username', ''),
            email=data.get('email', ''),
            role=_enum_or_default(UserRole, data.get('role', UserRole.PET_OWNER.value), UserRole.PET_OWNER, data.get('id')),
            petDetails=PetProfile.from_dict(pet) if pet else None,
            doctorDetails=DoctorProfile.from_dict(doctor) if doctor else None,
            lastDoctorVisit=data.get('lastDoctorVisit', missing),
            lastDoctorId=data.get('lastDoctorId', missing),
            createdAt=data.get('createdAt', missing),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role.value,
            'lastDoctorVisit': self.lastDoctorVisit,
            'lastDoctorId': self.lastDoctorId,
            'createdAt': self.createdAt,
        }
        if self.petDetails is not None:
            data['petDetails'] = self.petDetails.to_dict()
        if self.doctorDetails is not None:
            data['doctorDetails'] = self.doctorDetails.to_dict()
        return data

    def display_name(self) -> str:
        if self.doctorDetails is not None and self.doctorDetails.name:
            return self.doctorDetails.name
        return self.username
