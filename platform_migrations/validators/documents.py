"""JSON schema validation of source documents."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from jsonschema import Draft7Validator

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"

DOCUMENT_KINDS = ("cell_sets", "experiment", "project", "samples")


def schema_path(kind: str) -> Path:
    """Return the schema file for a document kind."""
    if kind not in DOCUMENT_KINDS:
        raise ValueError(f"Unknown document kind '{kind}', expected one of: {', '.join(DOCUMENT_KINDS)}")
    return SCHEMAS_DIR / f"{kind}.schema.json"


def load_schema(kind: str) -> dict[str, Any]:
    """Load the JSON schema of a document kind."""
    with open(schema_path(kind), encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=None)
def _validator(kind: str) -> Draft7Validator:
    schema = load_schema(kind)
    Draft7Validator.check_schema(schema)
    return Draft7Validator(schema)


def validate_document(kind: str, data: Any) -> list[str]:
    """Validate a document against the schema of its kind.

    Returns:
        List of validation errors (empty if valid)
    """
    errors = sorted(_validator(kind).iter_errors(data), key=lambda e: list(e.path))
    return [
        f"{'/'.join(str(p) for p in error.path) or '<root>'}: {error.message}"
        for error in errors
    ]
