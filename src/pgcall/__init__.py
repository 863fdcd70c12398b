"""pgcall - Protocol Buffers schemas for PostgreSQL stored functions.

This package provides:
- Function / Argument: the harvested signature tree
- harvest: readers for SQL DDL and live database catalogs
- proto: the proto3 schema emitter
- generate.run: writes the schema and manifest and runs protoc
"""

from pgcall.base import (
    CompilerError,
    HarvestError,
    MissingTableOfError,
    PgcallError,
    SchemaError,
)
from pgcall.config import Settings
from pgcall.models import Argument, Direction, Flavor, Function

__all__ = [
    "Argument",
    "CompilerError",
    "Direction",
    "Flavor",
    "Function",
    "HarvestError",
    "MissingTableOfError",
    "PgcallError",
    "SchemaError",
    "Settings",
]
