"""
Record Submission Service

The single entrypoint the submission flow (and the HTTP API) uses to commit
a record, plus the reverse path that reloads a committed record for editing.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from backend.errors import ValidationFailed
from backend.persistence import DraftStore, RecordStore, StoredRecord
from backend.records.grade_level import derive_grade_level
from backend.records.methods import SubmissionMethod
from backend.records.schemas import coerce_client_record
from backend.records.sections import (
    SchoolRecord,
    count_rows,
    record_has_rows,
    record_to_client,
    record_to_storage,
)

logger = logging.getLogger(__name__)


@dataclass
class EditableRecord:
    """A committed record reconstituted in client shape (fresh row ids)."""
    record_id: str
    method: SubmissionMethod
    record: SchoolRecord


class RecordSubmissionService:
    def __init__(self, records: RecordStore, drafts: DraftStore):
        self.records = records
        self.drafts = drafts

    async def submit(
        self,
        owner_id: str,
        method: Any,
        record: Optional[Mapping[str, Any]],
        existing_record_id: Optional[str] = None,
    ) -> str:
        """
        Validate, derive the grade level and commit atomically.

        On success the owner's draft is discarded; a failure to discard is
        logged and does not affect the result.

        Returns:
            The committed record ID (the existing one in edit mode)
        """
        if not method:
            raise ValidationFailed("A submission method is required.")
        submission_method = SubmissionMethod.parse(method)

        if not isinstance(record, Mapping) or not record_has_rows(record):
            raise ValidationFailed("The record has no rows to submit.")

        checked = coerce_client_record(record)
        grade_level = derive_grade_level(checked)

        record_id = await self.records.commit(
            owner_id=owner_id,
            method=submission_method.value,
            grade_level=grade_level.value,
            sections=record_to_storage(checked),
            existing_record_id=existing_record_id,
        )
        logger.info(
            "Record submitted",
            extra={
                "owner_id": owner_id,
                "record_id": record_id,
                "grade_level": grade_level.value,
                "rows": sum(count_rows(checked).values()),
            },
        )

        await self.drafts.discard_quietly(owner_id)
        return record_id

    async def load_for_edit(self, owner_id: str) -> Optional[EditableRecord]:
        """Most recent committed record of the owner, ready to edit, or None."""
        stored = await self.records.load_latest(owner_id)
        if stored is None:
            return None
        return self._to_editable(stored)

    async def load_record(self, owner_id: str, record_id: str) -> StoredRecord:
        return await self.records.load(owner_id, record_id)

    @staticmethod
    def _to_editable(stored: StoredRecord) -> EditableRecord:
        return EditableRecord(
            record_id=stored.record.id,
            method=SubmissionMethod.parse(stored.record.submission_type),
            record=record_to_client(stored.sections),
        )
