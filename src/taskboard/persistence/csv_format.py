"""CSV record format for tasks, epics, subtasks and view history.

Layout::

    id,type,name,status,description,epic,duration,startTime
    1,TASK,Write report,NEW,"Draft, then review",,90,2024-03-01 10:00:00
    2,EPIC,Move house,IN_PROGRESS,,,0,
    3,SUBTASK,Pack books,DONE,,2,30,
    <blank line>
    3,1

Duration is stored in whole minutes. The epic column is only filled for
subtasks. The last line lists history ids, oldest first. Epic status and
timing are written for readability but recomputed on load.
"""

import csv
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, TextIO, Tuple

import pydantic
import structlog

from taskboard.models.task import ENTITY_TYPES, AnyTask, Subtask, TaskKind, TaskStatus

logger = structlog.get_logger(__name__)

HEADER = ["id", "type", "name", "status", "description", "epic", "duration", "startTime"]
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def entity_to_row(entity: AnyTask) -> List[str]:
    """Convert an entity to CSV fields.

    Args:
        entity: Task, epic or subtask

    Returns:
        Fields in HEADER order
    """
    epic_id = str(entity.epic_id) if isinstance(entity, Subtask) else ""
    start = entity.start_time.strftime(DATE_FORMAT) if entity.start_time else ""
    return [
        str(entity.id),
        entity.kind.value,
        entity.name,
        entity.status.value,
        entity.description,
        epic_id,
        str(int(entity.duration.total_seconds() // 60)),
        start,
    ]


def parse_row(fields: Sequence[str]) -> Optional[AnyTask]:
    """Rebuild an entity from CSV fields.

    Malformed optional fields (duration, start time) fall back to their
    defaults. Rows missing required data are rejected.

    Args:
        fields: Fields in HEADER order; trailing optional fields may be absent

    Returns:
        The entity with its original id, or None if the row is unusable
    """
    if len(fields) < 5:
        return None

    try:
        entity_id = int(fields[0])
        kind = TaskKind(fields[1].strip())
        status = TaskStatus(fields[3].strip())
    except ValueError:
        return None

    data = {
        "id": entity_id,
        "name": fields[2],
        "status": status,
        "description": fields[4],
        "duration": _parse_minutes(fields[6] if len(fields) > 6 else ""),
        "start_time": _parse_datetime(fields[7] if len(fields) > 7 else ""),
    }

    if kind is TaskKind.SUBTASK:
        raw_epic = fields[5].strip() if len(fields) > 5 else ""
        try:
            data["epic_id"] = int(raw_epic)
        except ValueError:
            return None

    try:
        return ENTITY_TYPES[kind](**data)
    except pydantic.ValidationError:
        return None


def parse_history(fields: Iterable[str]) -> List[int]:
    """Parse history ids, skipping malformed ones.

    Args:
        fields: Id strings, oldest first

    Returns:
        Parsed ids in the same order
    """
    ids: List[int] = []
    for raw in fields:
        raw = raw.strip()
        if not raw:
            continue
        try:
            ids.append(int(raw))
        except ValueError:
            logger.warning("history_id_malformed", value=raw)
    return ids


def write_csv(
    stream: TextIO, entities: Iterable[AnyTask], history_ids: Iterable[int]
) -> None:
    """Write entities and history to a text stream.

    The stream should be opened with ``newline=""``.
    """
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(HEADER)
    for entity in entities:
        writer.writerow(entity_to_row(entity))
    stream.write("\n")
    stream.write(",".join(str(entity_id) for entity_id in history_ids))
    stream.write("\n")


def read_csv(stream: TextIO) -> Tuple[List[AnyTask], List[int]]:
    """Read entities and history from a text stream.

    Unusable rows and history ids are skipped with a warning rather than
    aborting the whole load.

    Returns:
        Tuple of (entities in file order, history ids oldest first)
    """
    entities: List[AnyTask] = []
    history: List[int] = []

    reader = csv.reader(stream)
    next(reader, None)  # header
    for fields in reader:
        if not fields:
            history_fields = next(reader, None)
            if history_fields:
                history = parse_history(history_fields)
            break

        entity = parse_row(fields)
        if entity is None:
            logger.warning("csv_row_skipped", line=reader.line_num, fields=len(fields))
            continue
        entities.append(entity)

    return entities, history


def _parse_minutes(raw: str) -> timedelta:
    raw = raw.strip()
    if not raw:
        return timedelta()
    try:
        minutes = int(raw)
    except ValueError:
        logger.warning("duration_malformed", value=raw)
        return timedelta()
    return timedelta(minutes=max(minutes, 0))


def _parse_datetime(raw: str) -> Optional[datetime]:
    raw = raw.strip()
    if not raw:
        return None
    try:
        return datetime.strptime(raw, DATE_FORMAT)
    except ValueError:
        logger.warning("start_time_malformed", value=raw)
        return None
