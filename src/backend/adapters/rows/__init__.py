from .csv_rows import read_csv_rows, read_tsv_rows
from .json_rows import read_json_rows, rows_from_json_document
from .mapping import RowMappingError
from .sources import detect_source_format, read_rows
from .xml_rows import read_xml_rows, rows_from_xml_element

__all__ = [
    "read_csv_rows",
    "read_tsv_rows",
    "read_json_rows",
    "rows_from_json_document",
    "read_xml_rows",
    "rows_from_xml_element",
    "read_rows",
    "detect_source_format",
    "RowMappingError",
]
