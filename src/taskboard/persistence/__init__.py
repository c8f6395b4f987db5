"""CSV persistence for the task store."""

from taskboard.persistence.csv_format import (
    DATE_FORMAT,
    HEADER,
    entity_to_row,
    parse_history,
    parse_row,
    read_csv,
    write_csv,
)
from taskboard.persistence.file_backed import FileBackedTaskManager

__all__ = [
    "FileBackedTaskManager",
    "HEADER",
    "DATE_FORMAT",
    "entity_to_row",
    "parse_row",
    "parse_history",
    "read_csv",
    "write_csv",
]
