"""
Pydantic row models generated from the section registry.

Used to check extraction output and manual submissions before they reach
storage. Models accept client (camelCase) field names and ignore anything
the registry does not declare.
"""

from typing import Annotated, Any, Dict, List, Mapping, Optional, Type

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, create_model

from backend.errors import ValidationFailed
from backend.records.sections import (
    ROW_ID_FIELD,
    SECTIONS,
    FieldKind,
    SchoolRecord,
    SectionSchema,
)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _to_text(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


OptionalInt = Annotated[Optional[int], BeforeValidator(_blank_to_none)]
OptionalFloat = Annotated[Optional[float], BeforeValidator(_blank_to_none)]
Text = Annotated[str, BeforeValidator(_to_text)]


class RowModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


def _field_definition(kind: FieldKind):
    if kind is FieldKind.INT:
        return (int, ...)
    if kind is FieldKind.OPTIONAL_INT:
        return (OptionalInt, None)
    if kind is FieldKind.OPTIONAL_FLOAT:
        return (OptionalFloat, None)
    return (Text, "")


def _build_row_model(section: SectionSchema) -> Type[RowModel]:
    definitions = {client: _field_definition(kind) for client, _, kind in section.fields}
    name = section.key[0].upper() + section.key[1:] + "Row"
    return create_model(name, __base__=RowModel, **definitions)


ROW_MODELS: Dict[str, Type[RowModel]] = {
    section.key: _build_row_model(section) for section in SECTIONS
}


def _build_record_model() -> Type[BaseModel]:
    definitions = {
        section.key: (List[ROW_MODELS[section.key]], Field(default_factory=list))
        for section in SECTIONS
    }
    return create_model(
        "SchoolRecordModel",
        __config__=ConfigDict(extra="ignore"),
        **definitions,
    )


# All 11 sections; a missing section is an empty list.
SchoolRecordModel = _build_record_model()


def _describe(exc: ValidationError, limit: int = 3) -> str:
    parts = []
    for error in exc.errors()[:limit]:
        location = ".".join(str(item) for item in error["loc"])
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def coerce_client_record(record: Mapping[str, Any]) -> SchoolRecord:
    """
    Type-check every row of a client record, keeping row ids.

    Raises ValidationFailed naming the first offending fields.
    """
    coerced: SchoolRecord = {}
    for section in SECTIONS:
        rows = record.get(section.key) or []
        model = ROW_MODELS[section.key]
        coerced_rows = []
        for index, row in enumerate(rows):
            try:
                values = model.model_validate(row).model_dump()
            except ValidationError as exc:
                raise ValidationFailed(
                    f"Invalid row {section.key}[{index}]: {_describe(exc)}"
                ) from exc
            if isinstance(row, Mapping) and row.get(ROW_ID_FIELD):
                values = {ROW_ID_FIELD: row[ROW_ID_FIELD], **values}
            coerced_rows.append(values)
        coerced[section.key] = coerced_rows
    return coerced


__all__ = [
    "ROW_MODELS",
    "SchoolRecordModel",
    "coerce_client_record",
]
