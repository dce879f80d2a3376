"""
Section Schema Registry

Static description of the 11 school-record sections. Each section declares,
as plain data, which client (camelCase) field maps to which storage
(snake_case) column and what kind of value it holds. Everything that moves a
row between the client and storage shapes goes through ``to_storage`` /
``to_client``; there is no per-field translation code anywhere else.

Fields that a section does not declare are dropped on the way through.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple

from backend.utils.id_generator import generate_row_id


ROW_ID_FIELD = "id"

Row = Dict[str, Any]
SchoolRecord = Dict[str, List[Row]]


class FieldKind(str, Enum):
    INT = "int"               # required integer (year, semester)
    OPTIONAL_INT = "int?"
    OPTIONAL_FLOAT = "float?"
    TEXT = "str"              # "" when absent


@dataclass(frozen=True)
class SectionSchema:
    key: str
    table: str
    fields: Tuple[Tuple[str, str, FieldKind], ...]

    @property
    def client_fields(self) -> Tuple[str, ...]:
        return tuple(client for client, _, _ in self.fields)

    @property
    def storage_fields(self) -> Tuple[str, ...]:
        return tuple(storage for _, storage, _ in self.fields)


_I = FieldKind.INT
_OI = FieldKind.OPTIONAL_INT
_OF = FieldKind.OPTIONAL_FLOAT
_T = FieldKind.TEXT


SECTIONS: Tuple[SectionSchema, ...] = (
    SectionSchema(
        key="attendance",
        table="record_attendance",
        fields=(
            ("year", "year", _I),
            ("totalDays", "total_days", _OI),
            ("absenceIllness", "absence_illness", _OI),
            ("absenceUnauthorized", "absence_unauthorized", _OI),
            ("absenceOther", "absence_other", _OI),
            ("latenessIllness", "lateness_illness", _OI),
            ("latenessUnauthorized", "lateness_unauthorized", _OI),
            ("latenessOther", "lateness_other", _OI),
            ("earlyLeaveIllness", "early_leave_illness", _OI),
            ("earlyLeaveUnauthorized", "early_leave_unauthorized", _OI),
            ("earlyLeaveOther", "early_leave_other", _OI),
            ("classMissedIllness", "class_missed_illness", _OI),
            ("classMissedUnauthorized", "class_missed_unauthorized", _OI),
            ("classMissedOther", "class_missed_other", _OI),
            ("note", "note", _T),
        ),
    ),
    SectionSchema(
        key="awards",
        table="record_awards",
        fields=(
            ("year", "year", _I),
            ("name", "name", _T),
            ("rank", "rank", _T),
            ("date", "date", _T),
            ("organization", "organization", _T),
            ("participants", "participants", _T),
        ),
    ),
    SectionSchema(
        key="certifications",
        table="record_certifications",
        fields=(
            ("category", "category", _T),
            ("name", "name", _T),
            ("details", "details", _T),
            ("date", "date", _T),
            ("issuer", "issuer", _T),
        ),
    ),
    SectionSchema(
        key="creativeActivities",
        table="record_creative_activities",
        fields=(
            ("year", "year", _I),
            ("area", "area", _T),
            ("hours", "hours", _OF),
            ("note", "note", _T),
        ),
    ),
    SectionSchema(
        key="volunteerActivities",
        table="record_volunteer_activities",
        fields=(
            ("year", "year", _I),
            ("dateRange", "date_range", _T),
            ("place", "place", _T),
            ("content", "content", _T),
            ("hours", "hours", _OF),
        ),
    ),
    SectionSchema(
        key="generalSubjects",
        table="record_general_subjects",
        fields=(
            ("year", "year", _I),
            ("semester", "semester", _I),
            ("category", "category", _T),
            ("subject", "subject", _T),
            ("credits", "credits", _OI),
            ("rawScore", "raw_score", _OF),
            ("average", "average", _OF),
            ("standardDeviation", "standard_deviation", _OF),
            ("achievement", "achievement", _T),
            ("studentCount", "student_count", _OI),
            ("gradeRank", "grade_rank", _OI),
        ),
    ),
    SectionSchema(
        key="careerSubjects",
        table="record_career_subjects",
        fields=(
            ("year", "year", _I),
            ("semester", "semester", _I),
            ("category", "category", _T),
            ("subject", "subject", _T),
            ("credits", "credits", _OI),
            ("rawScore", "raw_score", _OF),
            ("average", "average", _OF),
            ("achievement", "achievement", _T),
            ("studentCount", "student_count", _OI),
            ("achievementDistribution", "achievement_distribution", _T),
        ),
    ),
    SectionSchema(
        key="artsPhysicalSubjects",
        table="record_arts_physical_subjects",
        fields=(
            ("year", "year", _I),
            ("semester", "semester", _I),
            ("category", "category", _T),
            ("subject", "subject", _T),
            ("credits", "credits", _OI),
            ("achievement", "achievement", _T),
        ),
    ),
    SectionSchema(
        key="subjectEvaluations",
        table="record_subject_evaluations",
        fields=(
            ("year", "year", _I),
            ("subject", "subject", _T),
            ("evaluation", "evaluation", _T),
        ),
    ),
    SectionSchema(
        key="readingActivities",
        table="record_reading_activities",
        fields=(
            ("year", "year", _I),
            ("subjectOrArea", "subject_or_area", _T),
            ("content", "content", _T),
        ),
    ),
    SectionSchema(
        key="behavioralAssessments",
        table="record_behavioral_assessments",
        fields=(
            ("year", "year", _I),
            ("assessment", "assessment", _T),
        ),
    ),
)

SECTION_KEYS: Tuple[str, ...] = tuple(section.key for section in SECTIONS)
SECTIONS_BY_KEY: Dict[str, SectionSchema] = {section.key: section for section in SECTIONS}


def get_section(section_key: str) -> SectionSchema:
    return SECTIONS_BY_KEY[section_key]


# --- Row transforms ---

def to_storage(row: Mapping[str, Any], section_key: str) -> Row:
    """Client row -> storage row. Drops the client id and undeclared fields."""
    section = get_section(section_key)
    return {
        storage: row[client]
        for client, storage, _ in section.fields
        if client in row
    }


def to_client(row: Mapping[str, Any], section_key: str) -> Row:
    """Storage row -> client row with a freshly generated id."""
    section = get_section(section_key)
    out: Row = {ROW_ID_FIELD: generate_row_id()}
    for client, storage, _ in section.fields:
        if storage in row:
            out[client] = row[storage]
    return out


# --- Whole-record helpers ---

def empty_record() -> SchoolRecord:
    return {key: [] for key in SECTION_KEYS}


def record_to_storage(record: Mapping[str, Any]) -> Dict[str, List[Row]]:
    return {
        key: [to_storage(row, key) for row in (record.get(key) or [])]
        for key in SECTION_KEYS
    }


def record_to_client(sections: Mapping[str, Any]) -> SchoolRecord:
    return {
        key: [to_client(row, key) for row in (sections.get(key) or [])]
        for key in SECTION_KEYS
    }


def normalize_record(record: Mapping[str, Any]) -> SchoolRecord:
    """
    Bring a client-supplied record into canonical shape.

    All 11 sections are present, rows keep their existing id (or get a new
    one), unknown sections and undeclared fields are dropped.
    """
    normalized = empty_record()
    for section in SECTIONS:
        rows = record.get(section.key) or []
        if not isinstance(rows, list):
            continue
        for row in rows:
            if not isinstance(row, Mapping):
                continue
            clean: Row = {ROW_ID_FIELD: row.get(ROW_ID_FIELD) or generate_row_id()}
            for client in section.client_fields:
                if client in row:
                    clean[client] = row[client]
            normalized[section.key].append(clean)
    return normalized


def record_has_rows(record: Mapping[str, Any]) -> bool:
    return any(record.get(key) for key in SECTION_KEYS)


def count_rows(record: Mapping[str, Any]) -> Dict[str, int]:
    return {key: len(record.get(key) or []) for key in SECTION_KEYS}
