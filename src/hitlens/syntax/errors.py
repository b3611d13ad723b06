"""Schema source and loading errors."""

from __future__ import annotations


class SchemaError(Exception):
    """Base class for problems with the application schema."""


class SchemaSourceError(SchemaError):
    """Raised when a schema source path is unset or does not exist."""


class SchemaLoadError(SchemaError):
    """Raised when a schema source cannot be read or parsed."""


class SchemaSafetyError(SchemaLoadError):
    """Raised when schema text violates safety constraints.

    Distinct from parse errors: these indicate oversized or pathologically
    nested input rather than a malformed dump.
    """


class SchemaNotLoadedError(SchemaError):
    """Raised when a schema query is made before any schema was loaded."""
