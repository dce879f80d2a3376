from backend.records.grade_level import GradeLevel, derive_grade_level
from backend.records.methods import SubmissionMethod
from backend.records.sections import (
    SECTIONS,
    SECTION_KEYS,
    empty_record,
    normalize_record,
    record_has_rows,
    record_to_client,
    record_to_storage,
    to_client,
    to_storage,
)

__all__ = [
    "GradeLevel",
    "derive_grade_level",
    "SubmissionMethod",
    "SECTIONS",
    "SECTION_KEYS",
    "empty_record",
    "normalize_record",
    "record_has_rows",
    "record_to_client",
    "record_to_storage",
    "to_client",
    "to_storage",
]
