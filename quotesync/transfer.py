"""JSON import/export of quote collections.

Import documents are validated with JSON Schema before any quote is
built, so a rejected document never touches the collection.
"""

import enum
import json
import logging
from pathlib import Path
from typing import Any

from jsonschema import Draft7Validator

from .errors import InvalidImportShape, MalformedImport
from .models import Quote, quotes_to_json

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_FILENAME = "quotes.json"

IMPORT_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "text": {"type": "string", "minLength": 1},
            "category": {"type": "string", "minLength": 1},
        },
        "required": ["text", "category"],
    },
}

_validator = Draft7Validator(IMPORT_SCHEMA)


class ImportPolicy(enum.Enum):
    """How imported quotes combine with the existing collection."""

    REPLACE = "replace"
    APPEND = "append"


def export_json(quotes: list[Quote]) -> str:
    """Pretty-printed JSON array of the collection."""
    return quotes_to_json(quotes, indent=2)


def export_to(
    quotes: list[Quote],
    path: str | Path | None = None,
    filename: str = DEFAULT_EXPORT_FILENAME,
) -> Path:
    """Write the collection to a file.

    Args:
        quotes: Collection to export.
        path: Target file, or a directory to place ``filename`` in.
            Defaults to ``filename`` in the working directory.
        filename: File name used when no file is named by ``path``.

    Returns:
        Path of the written file.
    """
    target = Path(path) if path else Path(filename)
    if target.is_dir():
        target = target / filename

    target.write_text(export_json(quotes) + "\n", encoding="utf-8")
    logger.info(f"Exported {len(quotes)} quotes to {target}")
    return target


def parse_import(document: str) -> list[Quote]:
    """Parse and validate an import document.

    Args:
        document: Raw file contents.

    Returns:
        The imported quotes, in document order.

    Raises:
        MalformedImport: If the document is not valid JSON.
        InvalidImportShape: If it is not an array of quote objects.
    """
    try:
        data = json.loads(document)
    except json.JSONDecodeError as e:
        raise MalformedImport(f"Import document is not valid JSON: {e}") from e

    errors = list(_validator.iter_errors(data))
    if errors:
        error_msgs = []
        for error in errors:
            path = ".".join(str(p) for p in error.path) if error.path else "root"
            error_msgs.append(f"{path}: {error.message}")
        raise InvalidImportShape("Invalid import document: " + "; ".join(error_msgs))

    return [Quote(text=item["text"], category=item["category"]) for item in data]


def read_import(path: str | Path) -> list[Quote]:
    """Read and validate an import file.

    Raises:
        MalformedImport: If the file cannot be read or decoded.
        InvalidImportShape: If it is not an array of quote objects.
    """
    try:
        document = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedImport(f"Cannot read {path}: {e}") from e

    return parse_import(document)
