"""One-off data migrations for the single-cell analysis platform."""

__version__ = "0.1.0"
