from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional, Tuple

from .csv_rows import read_csv_rows, read_tsv_rows
from .json_rows import read_json_rows
from .xml_rows import read_xml_rows

Row = Tuple[Any, int]

_EXTENSIONS = {
    ".csv": "csv",
    ".tsv": "tsv",
    ".tab": "tsv",
    ".json": "json",
    ".xml": "xml",
}


def detect_source_format(path: Path | str) -> str:
    suffix = Path(path).suffix.lower()
    if suffix not in _EXTENSIONS:
        raise ValueError(f"Cannot infer source format from '{path}' (expected .csv, .tsv, .json or .xml).")
    return _EXTENSIONS[suffix]


def read_rows(
    path: Path | str,
    row_type: type,
    *,
    source_format: Optional[str] = None,
    array_path: Optional[str] = None,
    has_header: bool = True,
    row_element: Optional[str] = None,
) -> List[Row]:
    """Read a source file of any supported format (csv|tsv|json|xml).

    XML sources need `row_element`, the name of the element holding one row.
    """
    fmt = (source_format or detect_source_format(path)).strip().lower()
    if fmt == "csv":
        return read_csv_rows(path, row_type, has_header=has_header)
    if fmt == "tsv":
        return read_tsv_rows(path, row_type, has_header=has_header)
    if fmt == "json":
        return read_json_rows(path, row_type, array_path=array_path)
    if fmt == "xml":
        if not row_element:
            raise ValueError("XML sources need row_element (the element that holds one row).")
        return read_xml_rows(path, row_type, row_element=row_element)
    raise ValueError(f"Unknown source format '{source_format}' (expected 'csv', 'tsv', 'json' or 'xml').")
