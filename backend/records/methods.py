from enum import Enum
from typing import Any

from backend.errors import ValidationFailed


class SubmissionMethod(str, Enum):
    MANUAL = "manual"
    PDF = "pdf"
    IMAGE = "image"

    @property
    def is_file_based(self) -> bool:
        return self is not SubmissionMethod.MANUAL

    @classmethod
    def parse(cls, value: Any) -> "SubmissionMethod":
        """Coerce user input; older clients still send "text" for manual entry."""
        if isinstance(value, cls):
            return value
        if value == "text":
            return cls.MANUAL
        try:
            return cls(value)
        except ValueError:
            raise ValidationFailed(
                f"Unknown submission method {value!r}; expected manual, pdf or image."
            ) from None
