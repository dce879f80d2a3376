import asyncio

import pytest

from backend.errors import DraftPersistenceFailure
from backend.events import EventType, SubmissionEvent
from backend.records.autosave import DraftAutosaver
from tests.helpers import make_record


def _event(event_type, record=None, mode="create", method="manual", reviewed=False):
    return SubmissionEvent(
        type=event_type,
        submission_id="SUB_test",
        owner_id="user-1",
        mode=mode,
        method=method,
        record=record,
        reviewed=reviewed,
    )


RECORD = make_record(awards=[{"id": "r1", "year": 1, "name": "모범상"}])


@pytest.mark.asyncio
async def test_record_change_is_saved_after_quiet_period(drafts):
    autosaver = DraftAutosaver(drafts, delay=0.05)

    await autosaver.handle_event(_event(EventType.RECORD_CHANGED, make_record()))
    await autosaver.handle_event(_event(EventType.RECORD_CHANGED, RECORD))
    assert autosaver.is_pending("user-1")
    assert await drafts.load("user-1") is None

    await asyncio.sleep(0.2)

    draft = await drafts.load("user-1")
    assert draft.record_data == RECORD
    assert draft.submission_type == "manual"


@pytest.mark.asyncio
async def test_manual_save_skips_the_wait(drafts):
    autosaver = DraftAutosaver(drafts, delay=60)

    await autosaver.handle_event(_event(EventType.DRAFT_SAVE_REQUESTED, RECORD, method="pdf", reviewed=True))

    draft = await drafts.load("user-1")
    assert draft.submission_type == "pdf"
    assert draft.is_reviewed is True
    assert not autosaver.is_pending("user-1")


@pytest.mark.asyncio
async def test_submitting_cancels_pending_save(drafts):
    autosaver = DraftAutosaver(drafts, delay=0.05)

    await autosaver.handle_event(_event(EventType.RECORD_CHANGED, RECORD))
    await autosaver.handle_event(_event(EventType.SUBMITTING))
    await asyncio.sleep(0.15)

    assert await drafts.load("user-1") is None


@pytest.mark.asyncio
async def test_edit_mode_never_saves(drafts):
    autosaver = DraftAutosaver(drafts, delay=0)

    await autosaver.handle_event(_event(EventType.DRAFT_SAVE_REQUESTED, RECORD, mode="edit"))
    await autosaver.handle_event(_event(EventType.RECORD_CHANGED, RECORD, mode="edit"))
    await asyncio.sleep(0.05)

    assert await drafts.load("user-1") is None


@pytest.mark.asyncio
async def test_save_failure_is_swallowed():
    class BrokenDrafts:
        async def save(self, *args, **kwargs):
            raise DraftPersistenceFailure()

    autosaver = DraftAutosaver(BrokenDrafts(), delay=60)

    await autosaver.handle_event(_event(EventType.DRAFT_SAVE_REQUESTED, RECORD))


@pytest.mark.asyncio
async def test_flush_all_writes_pending_drafts(drafts):
    autosaver = DraftAutosaver(drafts, delay=60)
    await autosaver.handle_event(_event(EventType.RECORD_CHANGED, RECORD))

    await autosaver.flush_all()

    assert (await drafts.load("user-1")).record_data == RECORD
    assert not autosaver.is_pending("user-1")


@pytest.mark.asyncio
async def test_commit_forgets_the_owner(drafts):
    autosaver = DraftAutosaver(drafts, delay=60)
    await autosaver.handle_event(_event(EventType.DRAFT_SAVE_REQUESTED, RECORD))
    assert "user-1" in autosaver._debouncers

    await autosaver.handle_event(_event(EventType.RECORD_COMMITTED, RECORD))

    assert "user-1" not in autosaver._debouncers
