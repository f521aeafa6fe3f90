"""Schema validation for source documents."""

from .documents import DOCUMENT_KINDS, load_schema, validate_document

__all__ = ["DOCUMENT_KINDS", "load_schema", "validate_document"]
