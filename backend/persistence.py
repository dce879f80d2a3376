"""
Database Persistence Layer

Provides async storage access for:
- Drafts (one resumable scratch copy per user)
- Records (atomic commit of a record and its 11 section tables, reload)

Every query filters by the owner's user_id. Storage errors are wrapped into
the record-intake error taxonomy here so callers never see SQLAlchemy types.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from backend import database
from backend.errors import DraftPersistenceFailure, NotFoundOrUnauthorized, PersistenceFailure
from backend.models import SECTION_MODELS, Record, RecordDraft, SectionRowBase, utcnow
from backend.records.sections import SECTIONS

logger = logging.getLogger(__name__)


def _resolve(session_maker: Optional[async_sessionmaker]) -> async_sessionmaker:
    return session_maker if session_maker is not None else database.get_session_maker()


# =============================================================================
# DRAFTS
# =============================================================================

class DraftStore:
    """Per-user singleton draft: save overwrites, load may find nothing, discard is idempotent."""

    def __init__(self, session_maker: Optional[async_sessionmaker] = None):
        self._session_maker = session_maker

    async def save(
        self,
        owner_id: str,
        method: str,
        record: Mapping[str, Any],
        reviewed: bool = False,
    ) -> str:
        """Upsert the owner's draft. Returns draft ID."""
        try:
            async with _resolve(self._session_maker)() as db:
                async with db.begin():
                    result = await db.execute(
                        select(RecordDraft).where(RecordDraft.user_id == owner_id)
                    )
                    draft = result.scalar_one_or_none()
                    if draft is None:
                        draft = RecordDraft(user_id=owner_id, submission_type=method)
                        db.add(draft)
                    draft.submission_type = method
                    draft.record_data = dict(record)
                    draft.is_reviewed = reviewed
                    draft.updated_at = utcnow()
                return draft.id
        except SQLAlchemyError as e:
            raise DraftPersistenceFailure(f"Failed to save draft: {e}") from e

    async def load(self, owner_id: str) -> Optional[RecordDraft]:
        try:
            async with _resolve(self._session_maker)() as db:
                result = await db.execute(
                    select(RecordDraft).where(RecordDraft.user_id == owner_id)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DraftPersistenceFailure(f"Failed to load draft: {e}") from e

    async def discard(self, owner_id: str) -> None:
        try:
            async with _resolve(self._session_maker)() as db:
                async with db.begin():
                    await db.execute(
                        delete(RecordDraft).where(RecordDraft.user_id == owner_id)
                    )
        except SQLAlchemyError as e:
            raise DraftPersistenceFailure(f"Failed to delete draft: {e}") from e

    async def discard_quietly(self, owner_id: str) -> None:
        """Discard for callers that must not fail because of a leftover draft."""
        try:
            await self.discard(owner_id)
        except DraftPersistenceFailure:
            logger.warning("Draft cleanup failed", extra={"owner_id": owner_id}, exc_info=True)


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class StoredRecord:
    """A committed record with its sections in storage shape."""
    record: Record
    sections: Dict[str, List[Dict[str, Any]]]


async def _replace_section(
    db: AsyncSession,
    model: type,
    record_id: str,
    rows: List[Mapping[str, Any]],
) -> None:
    """Delete-then-insert one section's rows for a record."""
    await db.execute(delete(model).where(model.record_id == record_id))
    db.add_all([model(**row, record_id=record_id) for row in rows])
    await db.flush()


def _row_to_dict(row: SectionRowBase, storage_fields) -> Dict[str, Any]:
    return {name: getattr(row, name) for name in storage_fields}


class RecordStore:
    def __init__(self, session_maker: Optional[async_sessionmaker] = None):
        self._session_maker = session_maker

    async def commit(
        self,
        owner_id: str,
        method: str,
        grade_level: str,
        sections: Mapping[str, List[Mapping[str, Any]]],
        existing_record_id: Optional[str] = None,
    ) -> str:
        """
        Write a record and all 11 section collections as one transaction.

        With ``existing_record_id`` the record must belong to ``owner_id``;
        its sections are replaced wholesale. Either everything is written or
        nothing is.

        Returns the record ID.
        """
        try:
            async with _resolve(self._session_maker)() as db:
                async with db.begin():
                    if existing_record_id:
                        result = await db.execute(
                            select(Record)
                            .where(Record.id == existing_record_id)
                            .with_for_update()
                        )
                        record = result.scalar_one_or_none()
                        if record is None or record.user_id != owner_id:
                            raise NotFoundOrUnauthorized(
                                "The record to update was not found."
                            )
                        record.submission_type = method
                        record.grade_level = grade_level
                        record.is_verified = False
                        record.updated_at = utcnow()
                    else:
                        record = Record(
                            user_id=owner_id,
                            submission_type=method,
                            grade_level=grade_level,
                        )
                        db.add(record)
                    await db.flush()

                    for section in SECTIONS:
                        await _replace_section(
                            db,
                            SECTION_MODELS[section.table],
                            record.id,
                            list(sections.get(section.key) or []),
                        )
                record_id = record.id
        except SQLAlchemyError as e:
            logger.error(
                "Record commit rolled back",
                extra={"owner_id": owner_id, "record_id": existing_record_id},
                exc_info=True,
            )
            raise PersistenceFailure() from e

        logger.info(
            "Record committed",
            extra={"owner_id": owner_id, "record_id": record_id, "edit": bool(existing_record_id)},
        )
        return record_id

    async def _load_sections(self, db: AsyncSession, record_id: str) -> Dict[str, List[Dict[str, Any]]]:
        sections: Dict[str, List[Dict[str, Any]]] = {}
        for section in SECTIONS:
            model = SECTION_MODELS[section.table]
            result = await db.execute(
                select(model)
                .where(model.record_id == record_id)
                .order_by(model.id.asc())
            )
            sections[section.key] = [
                _row_to_dict(row, section.storage_fields) for row in result.scalars().all()
            ]
        return sections

    async def load(self, owner_id: str, record_id: str) -> StoredRecord:
        """Load one of the owner's records. Raises NotFoundOrUnauthorized otherwise."""
        try:
            async with _resolve(self._session_maker)() as db:
                result = await db.execute(
                    select(Record)
                    .where(Record.id == record_id)
                    .where(Record.user_id == owner_id)
                )
                record = result.scalar_one_or_none()
                if record is None:
                    raise NotFoundOrUnauthorized()
                return StoredRecord(record=record, sections=await self._load_sections(db, record.id))
        except SQLAlchemyError as e:
            raise PersistenceFailure("Loading the record failed.") from e

    async def load_latest(self, owner_id: str) -> Optional[StoredRecord]:
        """Most recently created record of the owner, or None."""
        try:
            async with _resolve(self._session_maker)() as db:
                result = await db.execute(
                    select(Record)
                    .where(Record.user_id == owner_id)
                    .order_by(Record.created_at.desc())
                    .limit(1)
                )
                record = result.scalars().first()
                if record is None:
                    return None
                return StoredRecord(record=record, sections=await self._load_sections(db, record.id))
        except SQLAlchemyError as e:
            raise PersistenceFailure("Loading the record failed.") from e
