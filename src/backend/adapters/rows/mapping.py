from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from common.validation_engine.fields import RowField, row_fields


class RowMappingError(ValueError):
    """A source record could not be converted into the row type."""

    def __init__(self, message: str, row_number: int):
        super().__init__(message)
        self.row_number = row_number


class RowFactory:
    """Builds typed rows from raw `{key: value}` records.

    Keys are matched case-insensitively against each field's alias and name.
    Coercion is delegated to pydantic, for models and dataclasses alike.
    Blank text cells become "" for `str` fields so rules can report them;
    for any other field they are treated as missing.
    """

    def __init__(self, row_type: type):
        self.row_type = row_type
        self.fields: Tuple[RowField, ...] = row_fields(row_type)
        self._adapter = TypeAdapter(row_type)
        self._lookup: Dict[str, str] = {}
        self._blank: Dict[str, str] = {}
        for field in self.fields:
            input_key = field.alias or field.name
            if field.annotation is str:
                self._blank[input_key] = ""
            for candidate in (field.name, field.alias):
                if candidate:
                    self._lookup.setdefault(candidate.strip().lower(), input_key)

    def input_key(self, source_key: str) -> Optional[str]:
        return self._lookup.get(source_key.strip().lower())

    def cell_value(self, key: str, raw: Optional[str]) -> Optional[str]:
        text = clean_cell(raw)
        if text is None:
            return self._blank.get(key)
        return text

    def positional_keys(self) -> Tuple[str, ...]:
        return tuple(field.alias or field.name for field in self.fields)

    def build(self, values: Dict[str, Any], row_number: int) -> Any:
        try:
            return self._adapter.validate_python(values)
        except ValidationError as exc:
            raise RowMappingError(
                f"Row {row_number}: cannot map record to {self.row_type.__name__}: {exc}",
                row_number,
            ) from exc


def clean_cell(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = value.strip()
    return text or None


def drop_missing(values: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    return {key: value for key, value in values if value is not None}
