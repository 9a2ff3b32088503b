# pluto/api/doctors/schemas.py
from marshmallow import Schema, fields, validate

class DoctorProfileUpdateSchema(Schema):
    """PATCH /api/doctors/me 부분 업데이트 스키마"""
    name = fields.Str(validate=validate.Length(min=1, max=80))
    specialization = fields.Str()
    qualification = fields.Str()
    clinic = fields.Str()
    registrationId = fields.Str()
    experience = fields.Str()
    address = fields.Str()
    contact = fields.Str()
    emergencyContact = fields.Str()
    consultationHours = fields.Str()
    medicalFocus = fields.Str()
    bio = fields.Str()
    languages = fields.List(fields.Str())

class DoctorListQuerySchema(Schema):
    specialization = fields.Str()

class DoctorNoteCreateSchema(Schema):
    content = fields.Str(required=True, validate=validate.Length(min=1, max=5000))
