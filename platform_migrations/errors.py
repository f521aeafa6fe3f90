"""Exception hierarchy shared by the migration jobs.

Every per-item failure the jobs know how to report derives from
``MigrationError`` so the drivers can turn it into a failed ``ItemResult``.
"""

from __future__ import annotations


class MigrationError(Exception):
    """Base exception for migration operations."""


class ConfigError(MigrationError):
    """Invalid or incomplete migration configuration."""


class NotFoundError(MigrationError):
    """A required keyed record is absent from its store."""


class MalformedReferenceError(MigrationError):
    """A derived lookup (group key, child name, sample id) found nothing."""


class PreconditionError(MigrationError):
    """Source data violates an assumption the migration depends on."""
