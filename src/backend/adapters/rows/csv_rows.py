from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from .mapping import RowFactory, drop_missing

Row = Tuple[Any, int]


def read_csv_rows(
    path: Path | str,
    row_type: type,
    *,
    delimiter: str = ",",
    has_header: bool = True,
    encoding: str = "utf-8-sig",
) -> List[Row]:
    """
    Read delimited text into `(row, row_number)` pairs.

    Notes:
    - With a header row, columns are matched to fields by alias or field name
      (case-insensitive); unmatched columns and unmatched fields are ignored.
    - Without a header row, columns map to fields by position.
    - Row numbers are 1-based from the first data line. Empty or whitespace-only
      lines are skipped but keep their number, so numbers follow the file
      layout. A line made only of delimiters is an all-blank row.
    - Blank cells become "" for `str` fields and are missing otherwise.
    """
    factory = RowFactory(row_type)
    rows: List[Row] = []

    with Path(path).open(newline="", encoding=encoding) as handle:
        reader = csv.reader(handle, delimiter=delimiter)
        if has_header:
            header = next(reader, None)
            if header is None:
                return rows
            columns = _columns_from_header(header, factory)
        else:
            columns = list(enumerate(factory.positional_keys()))

        for row_number, cells in enumerate(reader, start=1):
            if not cells or (len(cells) == 1 and not cells[0].strip()):
                continue
            values = drop_missing(
                (key, factory.cell_value(key, cells[index] if index < len(cells) else None))
                for index, key in columns
            )
            rows.append((factory.build(values, row_number), row_number))

    return rows


def read_tsv_rows(
    path: Path | str,
    row_type: type,
    *,
    has_header: bool = True,
    encoding: str = "utf-8-sig",
) -> List[Row]:
    return read_csv_rows(path, row_type, delimiter="\t", has_header=has_header, encoding=encoding)


def _columns_from_header(header: Sequence[str], factory: RowFactory) -> List[Tuple[int, str]]:
    columns: List[Tuple[int, str]] = []
    seen: set[str] = set()
    for index, name in enumerate(header):
        key: Optional[str] = factory.input_key(name)
        if key is None or key in seen:
            continue
        seen.add(key)
        columns.append((index, key))
    return columns
