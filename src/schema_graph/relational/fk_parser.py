"""
FK Parser - loads and validates relational foreign key exports.

The export is a flat JSON array of
``{source_table, source_column, target_table, target_column}`` records.
Invalid records are dropped with a logged reason; the batch continues.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from schema_graph.models import PgForeignKey

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("source_table", "source_column", "target_table", "target_column")

MAX_LOGGED_ERRORS = 10


def get_validation_failure_reason(item: Any) -> Optional[str]:
    """Return why a record is not a valid foreign key, or None if it is."""
    if not isinstance(item, dict):
        return f"Expected object, got {type(item).__name__}"

    for name in REQUIRED_FIELDS:
        if name not in item:
            return f"Missing required field '{name}'"
        value = item[name]
        if not isinstance(value, str):
            return f"Field '{name}' must be a string, got {type(value).__name__}"
        if not value:
            return f"Field '{name}' cannot be empty"

    return None


def parse_foreign_keys(data: Union[str, bytes, Sequence[Any]]) -> List[PgForeignKey]:
    """
    Parse an FK export into PgForeignKey records.

    Args:
        data: JSON text, or an already decoded list of records

    Returns:
        Valid foreign keys in input order

    Raises:
        ValueError: if the text is not JSON or the payload is not an array
    """
    if isinstance(data, (str, bytes)):
        try:
            parsed = json.loads(data)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in FK export: {e}") from e
    else:
        parsed = data

    if not isinstance(parsed, (list, tuple)):
        raise ValueError(
            f"FK export must be a JSON array, got {type(parsed).__name__}. "
            "Expected format: [{source_table, source_column, target_table, target_column}, ...]"
        )

    results: List[PgForeignKey] = []
    errors: List[str] = []

    for index, item in enumerate(parsed):
        reason = get_validation_failure_reason(item)
        if reason:
            errors.append(f"Index {index}: {reason} - {json.dumps(item, default=str)}")
            continue
        results.append(PgForeignKey.from_dict(item))

    if errors:
        logger.warning(
            f"FK parsing: {len(errors)} invalid entries out of {len(parsed)} total"
        )
        for message in errors[:MAX_LOGGED_ERRORS]:
            logger.warning(f"  {message}")
        if len(errors) > MAX_LOGGED_ERRORS:
            logger.warning(f"  ... and {len(errors) - MAX_LOGGED_ERRORS} more errors")

    success_rate = len(results) / len(parsed) * 100 if parsed else 0.0
    logger.info(f"Parsed {len(results)}/{len(parsed)} foreign keys ({success_rate:.1f}%)")

    return results


def load_foreign_keys(path: Path) -> List[PgForeignKey]:
    """Load and parse an FK export file."""
    path = Path(path)
    with open(path, "r") as f:
        return parse_foreign_keys(f.read())


def calculate_fk_stats(foreign_keys: Sequence[PgForeignKey]) -> Dict[str, int]:
    """Summarise a parsed FK export."""
    source_tables = {fk.source_table for fk in foreign_keys}
    target_tables = {fk.target_table for fk in foreign_keys}
    self_references = sum(1 for fk in foreign_keys if fk.source_table == fk.target_table)

    return {
        "total_fks": len(foreign_keys),
        "self_references": self_references,
        "unique_source_tables": len(source_tables),
        "unique_target_tables": len(target_tables),
        "unique_tables": len(source_tables | target_tables),
    }


def validate_fk_data(foreign_keys: Sequence[PgForeignKey]) -> Tuple[bool, List[str]]:
    """
    Sanity-check an FK export before building a lookup.

    Returns:
        (valid, warnings); only an empty export is invalid
    """
    warnings: List[str] = []

    if not foreign_keys:
        warnings.append("No foreign keys found in data")
        return False, warnings

    if len(foreign_keys) < 10:
        warnings.append(
            f"Only {len(foreign_keys)} foreign keys found - expected more for typical schema"
        )

    if not any(fk.source_table.startswith(("dcim_", "ipam_")) for fk in foreign_keys):
        warnings.append("No dcim_ or ipam_ tables found")

    if not all(fk.target_column == "id" for fk in foreign_keys):
        warnings.append("Some foreign keys target non-id columns")

    return True, warnings
