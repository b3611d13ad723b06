"""Application schema loading and matching."""

from hitlens.syntax.cache import CacheState, SchemaCache, SyntaxData
from hitlens.syntax.database import SyntaxDatabase, typed_path
from hitlens.syntax.errors import (
    SchemaError,
    SchemaLoadError,
    SchemaNotLoadedError,
    SchemaSafetyError,
    SchemaSourceError,
)
from hitlens.syntax.loader import SyntaxLoader, strip_markers

__all__ = [
    "CacheState",
    "SchemaCache",
    "SchemaError",
    "SchemaLoadError",
    "SchemaNotLoadedError",
    "SchemaSafetyError",
    "SchemaSourceError",
    "SyntaxData",
    "SyntaxDatabase",
    "SyntaxLoader",
    "strip_markers",
    "typed_path",
]
