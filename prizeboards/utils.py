"""JSON file helpers and small formatting utilities."""

import json
import logging
import os
import tempfile
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

T = TypeVar('T', bound=BaseModel)
logger = logging.getLogger('prizeboards.utils')


def load_json(
    path: Path | str,
    schema: type[T] | None = None,
) -> Any | T:
    """
    Load a JSON file, optionally validating it against a Pydantic model.

    Args:
        path: Path to JSON file
        schema: Optional Pydantic model to validate against

    Returns:
        Parsed JSON, or a schema instance when schema is given

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If JSON is malformed
        ValueError: If schema validation fails

    Example:
        from prizeboards.schemas import BoardDocument
        doc = load_json('data/boards/b1.json', schema=BoardDocument)
    """
    path = Path(path)
    logger.debug(f'Loading JSON from: {path}')

    if not path.exists():
        raise FileNotFoundError(f'File not found: {path}')

    with open(path, encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f'Invalid JSON in {path}: {e.msg} at position {e.pos}')
            raise

    if schema is None:
        return data

    try:
        return schema.model_validate(data)
    except ValidationError as e:
        logger.error(f'Schema validation failed for {path}: {e}')
        raise ValueError(f'Schema validation failed for {path}:\n{e}') from e


def save_json(path: Path | str, data: Any, indent: int = 2) -> None:
    """
    Write data as JSON, replacing the file atomically.

    The document is written to a temporary file in the same directory and
    renamed over the target, so readers never see a half-written file.

    Args:
        path: Destination path (parent directories are created)
        data: JSON-serializable data or a Pydantic model
        indent: Indentation level

    Raises:
        TypeError: If data is not JSON-serializable
        OSError: If the file cannot be written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    json_data = data.model_dump(mode='json') if isinstance(data, BaseModel) else data
    # Serialize first so a TypeError leaves the old file untouched
    text = json.dumps(json_data, indent=indent, ensure_ascii=False)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(text)
        os.replace(tmp_name, path)
    except OSError as e:
        logger.error(f'Failed to write file {path}: {e}')
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    logger.debug(f'Saved JSON to: {path}')


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Examples:
        round_half_up(12.5) -> 13
        round_half_up(2.5) -> 3  (built-in round() would give 2)
    """
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def format_cents(amount: int) -> str:
    """Format minor units as dollars: 12345 -> '$123.45'."""
    return f'${amount / 100:,.2f}'
