"""
SQLModel Database Models

Storage schema for submitted school records:
- records: one parent row per submitted record
- record_*: one child table per record section, foreign-keyed to records.id
- record_drafts: the per-user resumable draft (unique on user_id)

Column names of the section tables are the storage field names declared in
backend.records.sections.
"""

from datetime import datetime, timezone
from typing import Dict, Optional, Type

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field

from backend.utils.id_generator import generate_record_id, generate_draft_id


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Record(SQLModel, table=True):
    """
    A committed school record.

    Owns exactly one collection per section. Editing a record replaces
    those collections in place; the id never changes.
    """
    __tablename__ = "records"

    id: str = Field(default_factory=generate_record_id, primary_key=True)
    user_id: str = Field(index=True)
    submission_type: str  # manual, pdf, image
    grade_level: str = Field(default="high1")  # high1, high2, high3
    is_verified: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class RecordDraft(SQLModel, table=True):
    """
    Scratch copy of an in-progress record.

    At most one per user; saving always overwrites.
    """
    __tablename__ = "record_drafts"

    id: str = Field(default_factory=generate_draft_id, primary_key=True)
    user_id: str = Field(unique=True, index=True)
    submission_type: str
    record_data: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    is_reviewed: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# --- Section tables ---

class SectionRowBase(SQLModel):
    """Columns shared by every section table."""
    id: Optional[int] = Field(default=None, primary_key=True)
    record_id: str = Field(foreign_key="records.id", index=True, ondelete="CASCADE")


class RecordAttendance(SectionRowBase, table=True):
    __tablename__ = "record_attendance"

    year: int = Field(default=1)
    total_days: Optional[int] = None
    absence_illness: Optional[int] = None
    absence_unauthorized: Optional[int] = None
    absence_other: Optional[int] = None
    lateness_illness: Optional[int] = None
    lateness_unauthorized: Optional[int] = None
    lateness_other: Optional[int] = None
    early_leave_illness: Optional[int] = None
    early_leave_unauthorized: Optional[int] = None
    early_leave_other: Optional[int] = None
    class_missed_illness: Optional[int] = None
    class_missed_unauthorized: Optional[int] = None
    class_missed_other: Optional[int] = None
    note: str = Field(default="")


class RecordAward(SectionRowBase, table=True):
    __tablename__ = "record_awards"

    year: int = Field(default=1)
    name: str = Field(default="")
    rank: str = Field(default="")
    date: str = Field(default="")  # free text as printed on the record
    organization: str = Field(default="")
    participants: str = Field(default="")


class RecordCertification(SectionRowBase, table=True):
    __tablename__ = "record_certifications"

    category: str = Field(default="")
    name: str = Field(default="")
    details: str = Field(default="")
    date: str = Field(default="")
    issuer: str = Field(default="")


class RecordCreativeActivity(SectionRowBase, table=True):
    __tablename__ = "record_creative_activities"

    year: int = Field(default=1)
    area: str = Field(default="")  # autonomous, club or career activity
    hours: Optional[float] = None
    note: str = Field(default="")


class RecordVolunteerActivity(SectionRowBase, table=True):
    __tablename__ = "record_volunteer_activities"

    year: int = Field(default=1)
    date_range: str = Field(default="")
    place: str = Field(default="")
    content: str = Field(default="")
    hours: Optional[float] = None


class RecordGeneralSubject(SectionRowBase, table=True):
    __tablename__ = "record_general_subjects"

    year: int = Field(default=1)
    semester: int = Field(default=1)
    category: str = Field(default="")
    subject: str = Field(default="")
    credits: Optional[int] = None
    raw_score: Optional[float] = None
    average: Optional[float] = None
    standard_deviation: Optional[float] = None
    achievement: str = Field(default="")
    student_count: Optional[int] = None
    grade_rank: Optional[int] = None


class RecordCareerSubject(SectionRowBase, table=True):
    __tablename__ = "record_career_subjects"

    year: int = Field(default=1)
    semester: int = Field(default=1)
    category: str = Field(default="")
    subject: str = Field(default="")
    credits: Optional[int] = None
    raw_score: Optional[float] = None
    average: Optional[float] = None
    achievement: str = Field(default="")
    student_count: Optional[int] = None
    achievement_distribution: str = Field(default="")


class RecordArtsPhysicalSubject(SectionRowBase, table=True):
    __tablename__ = "record_arts_physical_subjects"

    year: int = Field(default=1)
    semester: int = Field(default=1)
    category: str = Field(default="")
    subject: str = Field(default="")
    credits: Optional[int] = None
    achievement: str = Field(default="")


class RecordSubjectEvaluation(SectionRowBase, table=True):
    __tablename__ = "record_subject_evaluations"

    year: int = Field(default=1)
    subject: str = Field(default="")
    evaluation: str = Field(default="")


class RecordReadingActivity(SectionRowBase, table=True):
    __tablename__ = "record_reading_activities"

    year: int = Field(default=1)
    subject_or_area: str = Field(default="")
    content: str = Field(default="")


class RecordBehavioralAssessment(SectionRowBase, table=True):
    __tablename__ = "record_behavioral_assessments"

    year: int = Field(default=1)
    assessment: str = Field(default="")


# Table name -> model, keyed the same way as SectionSchema.table
SECTION_MODELS: Dict[str, Type[SectionRowBase]] = {
    model.__tablename__: model
    for model in (
        RecordAttendance,
        RecordAward,
        RecordCertification,
        RecordCreativeActivity,
        RecordVolunteerActivity,
        RecordGeneralSubject,
        RecordCareerSubject,
        RecordArtsPhysicalSubject,
        RecordSubjectEvaluation,
        RecordReadingActivity,
        RecordBehavioralAssessment,
    )
}
