from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .mapping import RowFactory, drop_missing

Row = Tuple[Any, int]


def read_xml_rows(path: Path | str, row_type: type, *, row_element: str) -> List[Row]:
    """
    Read every `<row_element>` below the document root into `(row, row_number)` pairs.

    Notes:
    - Row elements are matched by local name, case-insensitively, at any depth.
    - A field is read from a child element matched by alias or field name
      (case-insensitive); failing that, from an attribute of the row element.
    - Row numbers are 1-based in document order.
    - Empty values become "" for `str` fields; absent ones keep the field default.
    """
    tree = ET.parse(Path(path))
    return rows_from_xml_element(tree.getroot(), row_type, row_element=row_element)


def rows_from_xml_element(root: ET.Element, row_type: type, *, row_element: str) -> List[Row]:
    if not row_element or not row_element.strip():
        raise ValueError("row_element must name the XML element that holds one row.")

    wanted = row_element.strip().lower()
    factory = RowFactory(row_type)
    rows: List[Row] = []

    elements = [el for el in root.iter() if el is not root and _local_name(el.tag).lower() == wanted]
    for row_number, element in enumerate(elements, start=1):
        raw: Dict[str, str] = {}
        for child in element:
            key = factory.input_key(_local_name(child.tag))
            if key is not None and key not in raw:
                raw[key] = child.text or ""
        for name, value in element.attrib.items():
            key = factory.input_key(_local_name(name))
            if key is not None and key not in raw:
                raw[key] = value

        values = drop_missing((key, factory.cell_value(key, value)) for key, value in raw.items())
        rows.append((factory.build(values, row_number), row_number))
    return rows


def _local_name(tag: Any) -> str:
    # "{namespace}name" -> "name"
    return str(tag).rsplit("}", 1)[-1]
