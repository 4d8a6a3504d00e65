"""
Record input files for the CLI.

Two formats are accepted:
- JSON: a single array of objects, loaded at once
- JSON Lines (.jsonl / .ndjson): one object per line, read lazily through
  a plain generator so streaming exports never hold the whole file
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from fleetexport.domain.exceptions import FleetExportError

logger = logging.getLogger(__name__)

JSON_LINES_SUFFIXES = {".jsonl", ".ndjson"}

Record = Dict[str, Any]


def is_json_lines(path: Path) -> bool:
    return path.suffix.lower() in JSON_LINES_SUFFIXES


def _parse_line(path: Path, lineno: int, line: str) -> Record:
    try:
        record = json.loads(line)
    except json.JSONDecodeError as e:
        raise FleetExportError(f"Invalid JSON on line {lineno} of {path}", cause=e) from e
    if not isinstance(record, dict):
        raise FleetExportError(f"Line {lineno} of {path} is not a JSON object")
    return record


def read_json_records(path: Path) -> List[Record]:
    """Load a JSON array of objects."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise FleetExportError(f"Invalid JSON in {path}", cause=e) from e

    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise FleetExportError(f"{path} must contain a JSON array of objects")
    logger.debug("Loaded %d record(s) from %s", len(data), path)
    return data


def iter_json_lines(path: Path) -> Iterator[Record]:
    """
    Yield one record per non-blank line.

    A plain generator over buffered file reads, consumed by the service as
    a sync row source. Intended for the CLI's one-shot event loop; hosts
    sharing a loop with other work should feed rows from their own async
    source instead.
    """
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if line:
                yield _parse_line(path, lineno, line)


def first_json_line(path: Path) -> Optional[Record]:
    """First record of a JSON Lines file, None when it has none."""
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if line:
                return _parse_line(path, lineno, line)
    return None
