"""
Record validation tests - conditional required fields, shapes and enumerations.
"""

import pytest

from src.core.errors import RecordValidationError
from src.core.schema import RECORD_TYPES
from src.core.validation import (
    ContactSubmission,
    ObservationReport,
    RECORD_VARIANTS,
    SheetReference,
    validate_record,
    validate_sheet_fields,
)


def _rejected_field(payload):
    with pytest.raises(RecordValidationError) as exc_info:
        validate_record(payload)
    return exc_info.value


def test_metar_without_content_names_content():
    error = _rejected_field({"type": "METAR"})
    assert error.field == "content"
    assert error.message == "content is required"


@pytest.mark.parametrize("record_type", ["METAR", "SYNOP", "ACTUALS", "TAF", "SHEET"])
def test_non_contact_types_require_content(record_type):
    error = _rejected_field({"type": record_type, "name": "A", "email": "a@b.com", "message": "hi"})
    assert error.field == "content"


def test_blank_content_counts_as_missing():
    error = _rejected_field({"type": "SYNOP", "content": "   "})
    assert error.field == "content"


def test_missing_type_rejected():
    error = _rejected_field({"content": "METAR HKJK 121200Z"})
    assert error.field == "type"
    assert "required" in error.message


def test_unknown_type_rejected():
    error = _rejected_field({"type": "WIND", "content": "x"})
    assert error.field == "type"
    assert "METAR" in error.message


def test_type_is_upper_cased():
    record = validate_record({"type": "metar", "content": "METAR HKJK 121200Z 05010KT"})
    assert isinstance(record, ObservationReport)
    assert record.type == "METAR"


def test_strings_are_trimmed():
    record = validate_record({"type": "TAF", "content": "  TAF HKJK 1212/1318  "})
    assert record.content == "TAF HKJK 1212/1318"


def test_status_defaults_to_new():
    record = validate_record({"type": "ACTUALS", "content": "max 27.1"})
    assert record.status == "NEW"


@pytest.mark.parametrize("missing", ["name", "email", "message"])
def test_contact_requires_each_field(missing):
    payload = {"type": "CONTACT", "name": "A", "email": "a@b.com", "message": "hi"}
    del payload[missing]

    error = _rejected_field(payload)
    assert error.field == missing
    assert error.message == f"{missing} is required"


def test_contact_reports_every_missing_field():
    error = _rejected_field({"type": "CONTACT"})
    assert {field for field, _ in error.errors} == {"name", "email", "message"}


def test_contact_does_not_require_content():
    record = validate_record({"type": "CONTACT", "name": "A", "email": "a@b.com", "message": "hi"})
    assert isinstance(record, ContactSubmission)
    assert record.content is None


def test_email_is_lower_cased():
    record = validate_record({"type": "CONTACT", "name": "A", "email": "  Ann.Lee@Example.COM ", "message": "hi"})
    assert record.email == "ann.lee@example.com"


@pytest.mark.parametrize("email", ["not-an-email", "a@b", "a@@b.com", "a b@c.com"])
def test_bad_email_rejected(email):
    error = _rejected_field({"type": "CONTACT", "name": "A", "email": email, "message": "hi"})
    assert error.field == "email"
    assert error.message == "Please fill a valid email address"


def test_email_shape_checked_on_any_type():
    error = _rejected_field({"type": "METAR", "content": "x", "email": "nope"})
    assert error.field == "email"


def test_sheet_url_shape():
    error = _rejected_field({"type": "SHEET", "content": "x", "sheetUrl": "docs google com"})
    assert error.field == "sheetUrl"

    record = validate_record({
        "type": "SHEET",
        "content": "x",
        "sheetUrl": "https://docs.google.com/spreadsheets/d/abc123/edit",
    })
    assert isinstance(record, SheetReference)
    assert record.sheet_url.startswith("https://docs.google.com")


@pytest.mark.parametrize("field,value", [
    ("station", "Nairobi"),
    ("sheetType", "FORM1"),
    ("month", "January"),
    ("status", "DONE"),
])
def test_enumerations_are_closed(field, value):
    error = _rejected_field({"type": "SHEET", "content": "x", field: value})
    assert error.field == field
    assert "must be one of" in error.message


def test_null_enumerations_allowed():
    record = validate_record({"type": "METAR", "content": "x", "station": None, "sheetType": None, "month": None})
    assert record.station is None
    assert record.sheet_type is None
    assert record.month is None


def test_snake_case_keys_accepted():
    record = validate_record({"type": "SHEET", "content": "x", "sheet_type": "FORM626", "station": "JKIA"})
    assert record.sheet_type == "FORM626"
    assert record.station == "JKIA"


def test_unknown_fields_dropped():
    record = validate_record({"type": "METAR", "content": "x", "createdAt": "yesterday", "id": "abc"})
    assert "createdAt" not in record.model_dump()


def test_non_mapping_payload_rejected():
    with pytest.raises(RecordValidationError):
        validate_record(["METAR"])


class TestSheetFields:
    """Fields accepted by a SHEET upsert."""

    def test_returns_snake_case_updates(self):
        updates = validate_sheet_fields({"sheetUrl": "https://example.com/s/1", "month": "MAR", "status": "PROCESSED"})
        assert updates == {"sheet_url": "https://example.com/s/1", "month": "MAR", "status": "PROCESSED"}

    def test_type_cannot_be_changed(self):
        with pytest.raises(RecordValidationError) as exc_info:
            validate_sheet_fields({"type": "METAR"})
        assert exc_info.value.field == "type"
        assert exc_info.value.message == "type cannot be changed"

    def test_bad_month_rejected(self):
        with pytest.raises(RecordValidationError) as exc_info:
            validate_sheet_fields({"month": "Smarch"})
        assert exc_info.value.field == "month"

    def test_empty_fields_give_no_updates(self):
        assert validate_sheet_fields({}) == {}


def test_every_record_type_has_a_variant():
    assert set(RECORD_VARIANTS) == set(RECORD_TYPES)
