#pluto/api/auth/schemas.py
from marshmallow import Schema, fields, validate

from pluto.models.user import UserRole, Species, Gender

class PetDetailsSchema(Schema):
    """보호자 가입 시 함께 받는 반려동물 정보"""
    name = fields.Str(required=True, validate=validate.Length(min=1, max=40))
    species = fields.Str(load_default=Species.DOG.value, validate=validate.OneOf([e.value for e in Species]))
    breed = fields.Str(load_default="")
    dateOfBirth = fields.Str(load_default="")
    gender = fields.Str(load_default=Gender.UNKNOWN.value, validate=validate.OneOf([e.value for e in Gender]))
    avatar = fields.Str()
    weight = fields.Str()
    color = fields.Str()
    microchip = fields.Str()

class DoctorDetailsSchema(Schema):
    """수의사 가입 시 함께 받는 전문가 정보"""
    name = fields.Str(required=True, validate=validate.Length(min=1, max=80))
    specialization = fields.Str(load_default="")
    qualification = fields.Str(load_default="")
    clinic = fields.Str(load_default="")
    registrationId = fields.Str(load_default="")
    experience = fields.Str(load_default="")
    address = fields.Str(load_default="")
    contact = fields.Str(load_default="")
    emergencyContact = fields.Str(load_default="")
    consultationHours = fields.Str(load_default="")
    medicalFocus = fields.Str(load_default="")
    bio = fields.Str()
    languages = fields.List(fields.Str())

class RegisterSchema(Schema):
    """회원가입 요청 스키마"""
    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=6))
    role = fields.Str(load_default=UserRole.PET_OWNER.value, validate=validate.OneOf([e.value for e in UserRole]))
    # 역할에 따라 서비스에서 PetDetailsSchema/DoctorDetailsSchema 로 다시 검증합니다.
    details = fields.Dict(load_default=dict)

class LoginSchema(Schema):
    """로그인 요청 스키마. role 을 보내면 계정 역할과 일치하는지 확인합니다."""
    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True)
    role = fields.Str(validate=validate.OneOf([e.value for e in UserRole]))

class ResendVerificationSchema(Schema):
    verification_token = fields.Str(required=True)

class PasswordResetSchema(Schema):
    email = fields.Email(required=True)
