# pluto/api/pets/schemas.py
from marshmallow import Schema, fields, validate

from pluto.models.records import DEFAULT_DAILY_LOG
from pluto.models.user import Species, Gender

class PetProfileUpdateSchema(Schema):
    """PATCH /api/pets/<pet_id>/profile 부분 업데이트 스키마. id 는 변경할 수 없습니다."""
    name = fields.Str(validate=validate.Length(min=1, max=40))
    species = fields.Str(validate=validate.OneOf([e.value for e in Species]))
    breed = fields.Str()
    dateOfBirth = fields.Str()
    gender = fields.Str(validate=validate.OneOf([e.value for e in Gender]))
    avatar = fields.Str()
    weight = fields.Str()
    color = fields.Str()
    microchip = fields.Str()

class PetProfileResponseSchema(Schema):
    id = fields.Str(dump_only=True)
    name = fields.Str()
    species = fields.Str()
    breed = fields.Str()
    dateOfBirth = fields.Str()
    gender = fields.Str()
    avatar = fields.Str()
    weight = fields.Str()
    color = fields.Str()
    microchip = fields.Str()

class HealthTrendsQuerySchema(Schema):
    metric = fields.Str(load_default='activityMinutes', validate=validate.OneOf(list(DEFAULT_DAILY_LOG)))
    days = fields.Int(load_default=7, validate=validate.Range(min=1, max=90))
