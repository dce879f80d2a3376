"""
Draft autosave driven by submission events.

Record changes are written to the owner's draft after a quiet period; a
manual save skips the wait. Once a submission starts committing, any pending
save is dropped so a stale draft cannot reappear after the commit cleared it.
Edit-mode submissions never touch the draft.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from backend.errors import DraftPersistenceFailure
from backend.events import EventType, SubmissionEvent
from backend.persistence import DraftStore
from backend.settings import settings
from backend.utils.debounce import Debouncer

logger = logging.getLogger(__name__)


class DraftAutosaver:
    def __init__(self, drafts: DraftStore, delay: Optional[float] = None):
        self._drafts = drafts
        self.delay = settings.DRAFT_AUTOSAVE_DELAY_SECONDS if delay is None else delay
        self._debouncers: Dict[str, Debouncer] = {}

    def _debouncer(self, owner_id: str) -> Debouncer:
        debouncer = self._debouncers.get(owner_id)
        if debouncer is None:
            debouncer = Debouncer(self.delay, self._save)
            self._debouncers[owner_id] = debouncer
        return debouncer

    def is_pending(self, owner_id: str) -> bool:
        debouncer = self._debouncers.get(owner_id)
        return debouncer is not None and debouncer.pending

    async def handle_event(self, event: SubmissionEvent) -> None:
        if event.is_edit:
            return

        if event.type is EventType.RECORD_CHANGED:
            if event.method and event.record is not None:
                self._debouncer(event.owner_id).trigger(
                    event.owner_id, event.method, event.record, event.reviewed
                )
        elif event.type is EventType.DRAFT_SAVE_REQUESTED:
            if event.method and event.record is not None:
                debouncer = self._debouncer(event.owner_id)
                debouncer.trigger(event.owner_id, event.method, event.record, event.reviewed)
                await debouncer.flush()
        elif event.type in (EventType.SUBMITTING, EventType.RECORD_COMMITTED):
            await self.cancel(event.owner_id)

    async def cancel(self, owner_id: str) -> None:
        """Drop a scheduled save and wait out one that is already writing."""
        debouncer = self._debouncers.pop(owner_id, None)
        if debouncer is not None:
            debouncer.cancel()
            await debouncer.wait_idle()

    async def flush_all(self) -> None:
        """Write every pending draft now; called on application shutdown."""
        for debouncer in list(self._debouncers.values()):
            await debouncer.flush()

    async def _save(
        self,
        owner_id: str,
        method: str,
        record: Mapping[str, Any],
        reviewed: bool,
    ) -> None:
        try:
            await self._drafts.save(owner_id, method, record, reviewed=reviewed)
        except DraftPersistenceFailure:
            logger.warning("Draft autosave failed", extra={"owner_id": owner_id}, exc_info=True)
            return
        logger.debug("Draft autosaved", extra={"owner_id": owner_id, "method": method})
