import base64
import binascii
from typing import Any, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from backend.errors import ValidationFailed
from backend.records.schemas import SchoolRecordModel

# =============================================================================
# INPUT / OUTPUT SCHEMAS
# =============================================================================


class UploadedDocument(BaseModel):
    """One file handed to the extraction service."""
    mime_type: str = Field(description="MIME type, e.g. 'application/pdf' or 'image/png'")
    data: bytes = Field(description="Raw file contents")
    display_name: Optional[str] = Field(default=None, description="Name shown in the service's file list")

    @property
    def is_pdf(self) -> bool:
        return "pdf" in self.mime_type.lower()

    @property
    def is_image(self) -> bool:
        return self.mime_type.lower().startswith("image/")


# The service's answer: all 11 sections, rows without identifiers.
ExtractedRecord = SchoolRecordModel


def decode_documents(files: Sequence[Mapping[str, Any]]) -> List[UploadedDocument]:
    """
    Turn ``[{"data": <base64>, "mimeType"|"mime_type": ..., "name"?}]`` into documents.

    Raises ValidationFailed for an empty list or an unreadable entry.
    """
    if not files:
        raise ValidationFailed("At least one file is required.")

    documents = []
    for index, item in enumerate(files):
        if not isinstance(item, Mapping):
            raise ValidationFailed(f"File {index} is not an object.")
        data = item.get("data")
        mime_type = item.get("mime_type") or item.get("mimeType")
        if not data or not mime_type:
            raise ValidationFailed(f"File {index} needs both data and mimeType.")
        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError, TypeError):
            raise ValidationFailed(f"File {index} is not valid base64.") from None
        if not raw:
            raise ValidationFailed(f"File {index} is empty.")
        documents.append(
            UploadedDocument(mime_type=mime_type, data=raw, display_name=item.get("name") or None)
        )
    return documents


__all__ = ["UploadedDocument", "ExtractedRecord", "decode_documents"]
