from enum import Enum
from numbers import Real
from typing import Any, Mapping


class GradeLevel(str, Enum):
    HIGH1 = "high1"
    HIGH2 = "high2"
    HIGH3 = "high3"


def _numeric_year(row: Any):
    if not isinstance(row, Mapping):
        return None
    year = row.get("year")
    # bool is an int subclass; True is not a school year
    if isinstance(year, bool) or not isinstance(year, Real):
        return None
    return year


def derive_grade_level(record: Mapping[str, Any]) -> GradeLevel:
    """
    Highest school year present anywhere in the record.

    Works on client- and storage-shaped records alike since ``year`` has the
    same name in both. Rows without a numeric year are ignored and an empty
    record counts as first year.
    """
    max_year = 1
    for rows in record.values():
        if not isinstance(rows, list):
            continue
        for row in rows:
            year = _numeric_year(row)
            if year is not None and year > max_year:
                max_year = year

    if max_year >= 3:
        return GradeLevel.HIGH3
    if max_year == 2:
        return GradeLevel.HIGH2
    return GradeLevel.HIGH1
