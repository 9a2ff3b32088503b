# pluto/api/daily/schemas.py
from marshmallow import Schema, fields, validate

from pluto.models.records import RoutineCategory

class ChecklistUpdateSchema(Schema):
    """체크리스트 부분 업데이트. 보낸 항목만 병합됩니다."""
    food = fields.Bool()
    water = fields.Bool()
    walk = fields.Bool()
    medication = fields.Bool()

class DailyLogUpdateSchema(Schema):
    activityMinutes = fields.Int(validate=validate.Range(min=0, max=1440))
    moodRating = fields.Int(validate=validate.Range(min=1, max=5))
    feedingCount = fields.Int(validate=validate.Range(min=0, max=20))

class RoutineCreateSchema(Schema):
    title = fields.Str(required=True, validate=validate.Length(min=1, max=80))
    time = fields.Str(required=True)
    category = fields.Str(load_default=RoutineCategory.OTHER.value,
                          validate=validate.OneOf([e.value for e in RoutineCategory]))
    completed = fields.Bool(load_default=False)

class RoutineUpdateSchema(Schema):
    title = fields.Str(validate=validate.Length(min=1, max=80))
    time = fields.Str()
    category = fields.Str(validate=validate.OneOf([e.value for e in RoutineCategory]))
    completed = fields.Bool()

class RoutineItemSchema(RoutineCreateSchema):
    """루틴 전체 교체(PUT) 시 각 항목. 기존 id 를 유지할 수 있습니다."""
    id = fields.Str()

class RoutinesReplaceSchema(Schema):
    routines = fields.List(fields.Nested(RoutineItemSchema), required=True)
