# pluto/api/journal/schemas.py
from marshmallow import Schema, fields, validate

from pluto.models.journal import EntryType, ReminderType, RepeatCadence
from pluto.utils.payload import DateString

class TimelineEntryCreateSchema(Schema):
    """POST /timeline 케어 일지 항목 생성 스키마. date 를 생략하면 오늘 날짜로 기록합니다."""
    date = DateString()
    type = fields.Str(required=True, validate=validate.OneOf([e.value for e in EntryType]))
    title = fields.Str(required=True, validate=validate.Length(min=1, max=120))
    notes = fields.Str()
    documentId = fields.Str()

class TimelineEntryUpdateSchema(Schema):
    date = DateString()
    type = fields.Str(validate=validate.OneOf([e.value for e in EntryType]))
    title = fields.Str(validate=validate.Length(min=1, max=120))
    notes = fields.Str()
    documentId = fields.Str()

class ReminderCreateSchema(Schema):
    title = fields.Str(required=True, validate=validate.Length(min=1, max=120))
    date = DateString(required=True)
    type = fields.Str(required=True, validate=validate.OneOf([e.value for e in ReminderType]))
    completed = fields.Bool(load_default=False)
    repeat = fields.Str(validate=validate.OneOf([e.value for e in RepeatCadence]))

class ReminderUpdateSchema(Schema):
    title = fields.Str(validate=validate.Length(min=1, max=120))
    date = DateString()
    type = fields.Str(validate=validate.OneOf([e.value for e in ReminderType]))
    completed = fields.Bool()
    repeat = fields.Str(validate=validate.OneOf([e.value for e in RepeatCadence]))
