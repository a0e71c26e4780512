"""
Record validation - one pydantic model per record kind, selected by `type`.

Callers hand in an untyped mapping (camelCase or snake_case keys) and get
back a normalized variant or a RecordValidationError naming the field.
Nothing here touches storage or the network.
"""

import re
from typing import Any, Dict, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .errors import RecordValidationError
from .schema import (
    MONTHS,
    OBSERVATION_TYPES,
    RECORD_TYPES,
    SHEET_TYPES,
    STATIONS,
    STATUSES,
)

EMAIL_PATTERN = re.compile(r'^\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*\.\w{2,3}$')
URL_PATTERN = re.compile(
    r'https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)'
)

# Allowed values reported back in enumeration errors
_ENUMERATIONS = {
    'type': RECORD_TYPES,
    'status': STATUSES,
    'sheetType': SHEET_TYPES,
    'station': STATIONS,
    'month': MONTHS,
}


def _check_url(v):
    if v is not None and not URL_PATTERN.search(v):
        raise ValueError('Please provide a valid URL')
    return v


class _RecordFields(BaseModel):
    """Fields any record kind may carry."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')

    content: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None
    status: Literal[STATUSES] = 'NEW'
    sheet_type: Optional[Literal[SHEET_TYPES]] = None
    sheet_id: Optional[str] = None
    sheet_url: Optional[str] = None
    station: Optional[Literal[STATIONS]] = None
    month: Optional[Literal[MONTHS]] = None
    observation_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @field_validator('email')
    @classmethod
    def email_must_be_valid(cls, v):
        if v is None:
            return v
        v = v.lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError('Please fill a valid email address')
        return v

    @field_validator('sheet_url')
    @classmethod
    def sheet_url_must_be_valid(cls, v):
        return _check_url(v)


class ObservationReport(_RecordFields):
    """METAR, SYNOP, ACTUALS or TAF report."""
    type: Literal[OBSERVATION_TYPES]
    content: str


class ContactSubmission(_RecordFields):
    """Contact form message. Content is composed before insert."""
    type: Literal['CONTACT']
    name: str
    email: str
    message: str


class SheetReference(_RecordFields):
    """Reference to an external spreadsheet for a station."""
    type: Literal['SHEET']
    content: str


RecordVariant = Union[ObservationReport, ContactSubmission, SheetReference]

# Record type to the model that validates it
RECORD_VARIANTS = {
    'METAR': ObservationReport,
    'SYNOP': ObservationReport,
    'ACTUALS': ObservationReport,
    'TAF': ObservationReport,
    'CONTACT': ContactSubmission,
    'SHEET': SheetReference,
}


class SheetUpdate(BaseModel):
    """Fields an upsert may change on an existing SHEET record."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='forbid')

    content: Optional[str] = None
    status: Optional[Literal[STATUSES]] = None
    sheet_url: Optional[str] = None
    month: Optional[Literal[MONTHS]] = None
    observation_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @field_validator('sheet_url')
    @classmethod
    def sheet_url_must_be_valid(cls, v):
        return _check_url(v)


def _clean(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Trim strings and drop blank or null values so they count as absent."""
    cleaned = {}
    for key, value in payload.items():
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        if value is None:
            continue
        cleaned[key] = value
    return cleaned


_PUBLIC_NAMES = {
    name: info.alias or name
    for model in (_RecordFields, SheetUpdate)
    for name, info in model.model_fields.items()
}


def _public_name(loc) -> str:
    """camelCase name of the field an error points at."""
    if not loc:
        return 'record'
    name = str(loc[0])
    return _PUBLIC_NAMES.get(name, name)


def _describe(error: Dict[str, Any], field: str) -> str:
    kind = error.get('type')
    if kind == 'missing':
        return f'{field} is required'
    if kind == 'literal_error' and field in _ENUMERATIONS:
        return f"{field} must be one of: {', '.join(_ENUMERATIONS[field])}"
    if kind == 'extra_forbidden':
        return f'{field} cannot be changed'
    if kind == 'value_error':
        return str(error.get('ctx', {}).get('error', error.get('msg')))
    return error.get('msg', 'invalid value')


def _raise_from(exc: ValidationError):
    found = []
    for error in exc.errors():
        field = _public_name(error.get('loc'))
        found.append((field, _describe(error, field)))
    field, message = found[0]
    raise RecordValidationError(field, message, errors=found)


def validate_record(payload: Mapping[str, Any]) -> RecordVariant:
    """Validate and normalize a candidate record.

    Raises RecordValidationError naming the first offending field.
    """
    if not isinstance(payload, Mapping):
        raise RecordValidationError('record', 'payload must be an object')

    data = _clean(payload)

    record_type = data.get('type')
    if record_type is None:
        raise RecordValidationError('type', 'type is required')
    if not isinstance(record_type, str):
        raise RecordValidationError('type', 'type must be a string')
    record_type = record_type.upper()
    if record_type not in RECORD_VARIANTS:
        raise RecordValidationError('type', f"type must be one of: {', '.join(RECORD_TYPES)}")
    data['type'] = record_type

    variant = RECORD_VARIANTS[record_type]
    try:
        return variant.model_validate(data)
    except ValidationError as e:
        _raise_from(e)


def validate_sheet_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate the fields of a SHEET upsert. Returns snake_case updates."""
    if not isinstance(fields, Mapping):
        raise RecordValidationError('fields', 'fields must be an object')

    try:
        update = SheetUpdate.model_validate(_clean(fields))
    except ValidationError as e:
        _raise_from(e)

    return update.model_dump(exclude_unset=True)


def require_member(field: str, value: Optional[str], allowed) -> str:
    """Check a single enumerated value outside a full record payload."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise RecordValidationError(field, f'{field} is required')
    value = value.strip()
    if value not in allowed:
        raise RecordValidationError(field, f"{field} must be one of: {', '.join(allowed)}")
    return value
