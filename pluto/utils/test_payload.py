# pluto/utils/test_payload.py
import pytest
from marshmallow import Schema, ValidationError

from pluto.utils.payload import ABSENT, DateString, sanitize, new_id

def test_sanitize_drops_absent_keys_recursively():
    payload = {
        'name': 'Luna',
        'avatar': ABSENT,
        'petDetails': {'weight': ABSENT, 'breed': 'Beagle'},
        'careJournal': [
            {'id': 'a', 'notes': ABSENT},
            {'id': 'b', 'notes': 'Booster shot'},
        ],
    }
    assert sanitize(payload) == {
        'name': 'Luna',
        'petDetails': {'breed': 'Beagle'},
        'careJournal': [{'id': 'a'}, {'id': 'b', 'notes': 'Booster shot'}],
    }

def test_sanitize_keeps_none_and_falsy_primitives():
    assert sanitize({'a': None, 'b': 0, 'c': False, 'd': ''}) == {'a': None, 'b': 0, 'c': False, 'd': ''}
    assert sanitize('text') == 'text'
    assert sanitize([1, 2, 3]) == [1, 2, 3]

def test_new_id_is_unique():
    assert len({new_id() for _ in range(50)}) == 50

def test_date_string_field_requires_padded_iso_dates():
    class _DateSchema(Schema):
        date = DateString(required=True)

    assert _DateSchema().load({'date': '2024-02-01'}) == {'date': '2024-02-01'}
    for bad in ('2024-2-1', '2024-02-30', 'next week', 20240201):
        with pytest.raises(ValidationError):
            _DateSchema().load({'date': bad})
