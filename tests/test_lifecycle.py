"""
Lifecycle step tests - contact content composition.
"""

from src.core.lifecycle import compose_contact_content, prepare_for_insert
from src.core.validation import validate_record


def test_contact_without_subject_uses_placeholder():
    record = validate_record({"type": "CONTACT", "name": "A", "email": "a@b.com", "message": "hi"})
    prepared = prepare_for_insert(record)
    assert prepared.content == "Contact Form: No Subject\n\nhi"


def test_contact_with_subject():
    record = validate_record({
        "type": "CONTACT",
        "name": "A",
        "email": "a@b.com",
        "subject": "Rain gauge",
        "message": "The gauge at JKIA is blocked",
    })
    prepared = prepare_for_insert(record)
    assert prepared.content == "Contact Form: Rain gauge\n\nThe gauge at JKIA is blocked"


def test_caller_content_is_overwritten():
    record = validate_record({
        "type": "CONTACT",
        "name": "A",
        "email": "a@b.com",
        "message": "hi",
        "content": "spoofed body",
    })
    prepared = prepare_for_insert(record)
    assert prepared.content == compose_contact_content(None, "hi")
    assert "spoofed" not in prepared.content


def test_input_record_not_mutated():
    record = validate_record({"type": "CONTACT", "name": "A", "email": "a@b.com", "message": "hi"})
    prepare_for_insert(record)
    assert record.content is None


def test_other_types_pass_through():
    record = validate_record({"type": "METAR", "content": "METAR HKJK 121200Z"})
    prepared = prepare_for_insert(record)
    assert prepared is record
    assert prepared.content == "METAR HKJK 121200Z"
