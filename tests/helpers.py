"""Fakes and builders shared by the test modules."""

import os
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from langchain_core.messages import AIMessage

from backend.records.sections import empty_record


def make_record(**sections: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    record = empty_record()
    record.update(sections)
    return record


# ==============================================================
# Gemini fakes
# ==============================================================

class FakeFiles:
    """Stands in for client.aio.files; remembers what was on disk at upload time."""

    def __init__(self, error: Optional[BaseException] = None):
        self.error = error
        self.uploads: List[Dict[str, Any]] = []

    async def upload(self, *, file, config):
        with open(file, "rb") as handle:
            content = handle.read()
        self.uploads.append({
            "path": str(file),
            "content": content,
            "mime_type": config.mime_type,
            "display_name": config.display_name,
        })
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            uri=f"https://files.example/{len(self.uploads)}",
            mime_type=config.mime_type,
        )


class FakeGenaiClient:
    def __init__(self, error: Optional[BaseException] = None):
        self.files = FakeFiles(error)
        self.aio = SimpleNamespace(files=self.files)


class FakeChatModel:
    def __init__(self, response: Any = "", error: Optional[BaseException] = None):
        self.response = response
        self.error = error
        self.calls: List[list] = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return AIMessage(content=self.response)


def uploaded_paths_exist(client: FakeGenaiClient) -> List[bool]:
    return [os.path.exists(item["path"]) for item in client.files.uploads]


# ==============================================================
# Submission-flow fakes
# ==============================================================

class FakeExtractor:
    """Returns queued results (records or exceptions) in order."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls: List[list] = []

    async def extract(self, documents):
        self.calls.append(list(documents))
        result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result


class RecordingEmitter:
    """EventEmitter subscriber that keeps every event."""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    def types(self):
        return [event.type for event in self.events]


__all__ = [
    "make_record",
    "FakeFiles",
    "FakeGenaiClient",
    "FakeChatModel",
    "FakeExtractor",
    "RecordingEmitter",
    "uploaded_paths_exist",
]
