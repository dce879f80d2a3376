import pytest

from backend.models import SECTION_MODELS
from backend.records.sections import (
    ROW_ID_FIELD,
    SECTION_KEYS,
    SECTIONS,
    FieldKind,
    count_rows,
    empty_record,
    get_section,
    normalize_record,
    record_has_rows,
    record_to_client,
    record_to_storage,
    to_client,
    to_storage,
)


def _full_row(section):
    values = {
        FieldKind.INT: 2,
        FieldKind.OPTIONAL_INT: 7,
        FieldKind.OPTIONAL_FLOAT: 3.5,
        FieldKind.TEXT: "text",
    }
    row = {client: values[kind] for client, _, kind in section.fields}
    row[ROW_ID_FIELD] = "client-row-1"
    return row


def test_registry_has_eleven_sections_in_fixed_order():
    assert SECTION_KEYS == (
        "attendance",
        "awards",
        "certifications",
        "creativeActivities",
        "volunteerActivities",
        "generalSubjects",
        "careerSubjects",
        "artsPhysicalSubjects",
        "subjectEvaluations",
        "readingActivities",
        "behavioralAssessments",
    )


@pytest.mark.parametrize("section", SECTIONS, ids=lambda s: s.key)
def test_storage_fields_are_table_columns(section):
    model = SECTION_MODELS[section.table]
    for storage in section.storage_fields:
        assert storage in model.model_fields, f"{section.table}.{storage} missing"


@pytest.mark.parametrize("section", SECTIONS, ids=lambda s: s.key)
def test_round_trip_keeps_values_and_renews_id(section):
    row = _full_row(section)

    stored = to_storage(row, section.key)
    assert ROW_ID_FIELD not in stored
    assert set(stored) == set(section.storage_fields)

    restored = to_client(stored, section.key)
    assert restored[ROW_ID_FIELD]
    assert restored[ROW_ID_FIELD] != row[ROW_ID_FIELD]
    assert {k: v for k, v in restored.items() if k != ROW_ID_FIELD} == {
        k: v for k, v in row.items() if k != ROW_ID_FIELD
    }


def test_to_storage_renames_and_drops_undeclared_fields():
    row = {"id": "x", "year": 1, "totalDays": 190, "mood": "sunny"}

    assert to_storage(row, "attendance") == {"year": 1, "total_days": 190}


def test_to_storage_copies_only_present_fields():
    assert to_storage({"year": 3}, "behavioralAssessments") == {"year": 3}


def test_unknown_section_is_a_key_error():
    with pytest.raises(KeyError):
        get_section("hobbies")


def test_to_client_generates_distinct_ids():
    stored = {"year": 1, "assessment": "성실함"}
    first = to_client(stored, "behavioralAssessments")
    second = to_client(stored, "behavioralAssessments")
    assert first[ROW_ID_FIELD] != second[ROW_ID_FIELD]


def test_record_transforms_cover_every_section(sample_record):
    stored = record_to_storage(sample_record)
    assert set(stored) == set(SECTION_KEYS)
    assert stored["generalSubjects"][0]["raw_score"] == 92.5

    client = record_to_client(stored)
    assert count_rows(client) == count_rows(sample_record)
    assert client["awards"][1]["name"] == "과학탐구대회"


def test_normalize_record_keeps_ids_and_drops_unknowns():
    record = {
        "awards": [{"id": "keep-me", "year": 1, "name": "상", "extra": True}, "not a row"],
        "readingActivities": [{"year": 2, "content": "책"}],
        "hobbies": [{"name": "chess"}],
    }

    normalized = normalize_record(record)

    assert set(normalized) == set(SECTION_KEYS)
    assert normalized["awards"] == [{"id": "keep-me", "year": 1, "name": "상"}]
    assert normalized["readingActivities"][0][ROW_ID_FIELD]
    assert "hobbies" not in normalized


def test_record_has_rows():
    assert not record_has_rows(empty_record())
    assert not record_has_rows({})
    assert record_has_rows({"certifications": [{"name": "정보처리기능사"}]})
