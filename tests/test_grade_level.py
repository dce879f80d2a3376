import itertools

from backend.records.grade_level import GradeLevel, derive_grade_level
from backend.records.sections import empty_record
from tests.helpers import make_record


def test_empty_record_is_first_year():
    assert derive_grade_level(empty_record()) is GradeLevel.HIGH1
    assert derive_grade_level({}) is GradeLevel.HIGH1


def test_any_third_year_row_wins():
    record = make_record(
        awards=[{"year": 1}, {"year": 2}],
        behavioralAssessments=[{"year": 3}],
        readingActivities=[{"year": 1}],
    )
    assert derive_grade_level(record) is GradeLevel.HIGH3


def test_second_year():
    record = make_record(generalSubjects=[{"year": 1}, {"year": 2}, {"year": 2}])
    assert derive_grade_level(record) == "high2"


def test_years_beyond_three_still_map_to_third_year():
    assert derive_grade_level(make_record(awards=[{"year": 4}])) is GradeLevel.HIGH3


def test_non_numeric_years_are_ignored():
    record = make_record(
        awards=[{"year": "3"}, {"year": None}, {"year": True}, {}],
        certifications=[{"name": "no year"}],
    )
    assert derive_grade_level(record) is GradeLevel.HIGH1


def test_invariant_under_reordering():
    rows = [("awards", {"year": 1}), ("awards", {"year": 2}), ("readingActivities", {"year": 2}),
            ("attendance", {"year": 1})]
    results = set()
    for ordering in itertools.permutations(rows):
        record = empty_record()
        for key, row in ordering:
            record[key].append(row)
        results.add(derive_grade_level(record))
    assert results == {GradeLevel.HIGH2}


def test_works_on_storage_shaped_sections():
    sections = {"record_awards": [{"year": 3, "name": "상"}]}
    assert derive_grade_level(sections) is GradeLevel.HIGH3
