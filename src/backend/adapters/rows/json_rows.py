from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional, Tuple

from .mapping import RowFactory, drop_missing

Row = Tuple[Any, int]


def read_json_rows(
    path: Path | str,
    row_type: type,
    *,
    array_path: Optional[str] = None,
    encoding: str = "utf-8",
) -> List[Row]:
    """
    Read objects from a JSON array into `(row, row_number)` pairs.

    `array_path` is a dot-separated path to the array (e.g. "data.employees");
    when omitted the document root must be the array. Elements that are not
    objects are skipped but still consume a row number (1-based). JSON nulls
    are treated as missing so field defaults apply.
    """
    with Path(path).open(encoding=encoding) as handle:
        document = json.load(handle)
    return rows_from_json_document(document, row_type, array_path=array_path)


def rows_from_json_document(
    document: Any,
    row_type: type,
    *,
    array_path: Optional[str] = None,
) -> List[Row]:
    items = _navigate(document, array_path)
    if not isinstance(items, list):
        if array_path is None:
            raise ValueError("Root JSON element must be an array.")
        raise ValueError(f"Element at path '{array_path}' is not an array.")

    factory = RowFactory(row_type)
    rows: List[Row] = []
    for row_number, element in enumerate(items, start=1):
        if not isinstance(element, dict):
            continue
        values = drop_missing(
            (key, value)
            for key, value in ((factory.input_key(str(k)), v) for k, v in element.items())
            if key is not None
        )
        rows.append((factory.build(values, row_number), row_number))
    return rows


def _navigate(document: Any, array_path: Optional[str]) -> Any:
    if not array_path:
        return document

    current = document
    for segment in array_path.split("."):
        if not isinstance(current, dict):
            raise ValueError(f"Cannot navigate path '{array_path}': expected object at segment '{segment}'.")
        if segment in current:
            current = current[segment]
            continue
        matches = [key for key in current if str(key).lower() == segment.lower()]
        if not matches:
            raise ValueError(f"Cannot navigate path '{array_path}': property '{segment}' not found.")
        current = current[matches[0]]
    return current
