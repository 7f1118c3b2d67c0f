"""Load AnagramRecords from a YAML file for cache bootstrap."""

import logging
from pathlib import Path
from typing import Any

import yaml

from anagrammer.domain.models import AnagramRecord, RecordOrigin

from .orchestrator import generate_record_id
from .scrambler import scramble

logger = logging.getLogger(__name__)


def difficulty_from_length(word: str) -> int:
    """Estimate a level from word length when a preload row omits it."""
    n = len(word)
    if n <= 4:
        return 1
    if n <= 5:
        return 2
    if n <= 6:
        return 3
    if n <= 7:
        return 4
    return 5


def record_from_mapping(row: dict[str, Any]) -> AnagramRecord:
    """
    Build a record from a loosely specified mapping.

    Only `solution` is required; `scrambled`, `id`, `difficulty_level`,
    `category` and `hint` are filled in when missing.
    """
    solution = str(row["solution"]).strip().upper()
    level = int(row.get("difficulty_level") or difficulty_from_length(solution))
    return AnagramRecord(
        id=str(row.get("id") or generate_record_id(solution)),
        solution=solution,
        scrambled=str(row.get("scrambled") or scramble(solution)).strip().upper(),
        category=str(row.get("category") or "word"),
        hint=str(row.get("hint") or f'Starts with "{solution[0]}"'),
        difficulty_level=level,
        origin=RecordOrigin(row.get("origin", RecordOrigin.SOURCE.value)),
    )


def load_records(path: Path) -> list[AnagramRecord]:
    """
    Parse a YAML list of record mappings.

    Raises:
        ValueError: If the document is not a list or a row is invalid.
    """
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of records")

    records = []
    for i, row in enumerate(data):
        if not isinstance(row, dict) or "solution" not in row:
            raise ValueError(f"{path}: item {i} needs at least a 'solution'")
        try:
            records.append(record_from_mapping(row))
        except (TypeError, ValueError) as e:
            raise ValueError(f"{path}: item {i}: {e}") from e
    logger.debug(f"Loaded {len(records)} records from {path}")
    return records
