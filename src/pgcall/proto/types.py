"""Map PostgreSQL type descriptors to proto3 scalar types."""

from __future__ import annotations

import json
import re

from pgcall.config import Settings
from pgcall.models import INDIRECTION, MULTI_VALUE

GOGO_OPTION_PREFIX = "gogoproto."
JSONTAG = GOGO_OPTION_PREFIX + "jsontag"

# Type classes, keyed by lower-cased descriptor
_TIMESTAMPS = frozenset(
    {
        "timestamp",
        "timestamptz",
        "timestamp without time zone",
        "timestamp with time zone",
        "time",
        "timetz",
    }
)
_TEXTS = frozenset(
    {
        "text",
        "varchar",
        "character varying",
        "char",
        "character",
        "bpchar",
        "name",
        "uuid",
        "string",
        "refcursor",  # Portal name
        "citext",
    }
)
# No proto3 scalar; carried as their text representation
_TEXTUAL = frozenset(
    {
        "json",
        "jsonb",
        "xml",
        "interval",
        "inet",
        "cidr",
        "macaddr",
        "macaddr8",
        "money",
        "bit",
        "varbit",
        "bit varying",
        "tsvector",
        "tsquery",
    }
)
_INT32 = frozenset({"int4", "integer", "int", "int2", "smallint"})
_INT64 = frozenset({"int8", "bigint"})
_DOUBLES = frozenset({"float8", "double precision"})
_FLOATS = frozenset({"float4", "real"})
_DECIMALS = frozenset({"numeric", "decimal"})
_DATES = frozenset({"date"})
_BINARIES = frozenset({"bytea", "raw", "lob", "blob"})
_BOOLS = frozenset({"bool", "boolean"})

_SPLIT = re.compile(r"[_.\s]+")


class ProtoOptions(dict):
    """Field options, rendered as ``[(key)=value, ...]``."""

    def __str__(self) -> str:
        if not self:
            return ""
        parts = []
        for key in sorted(self):
            value = self[key]
            if isinstance(value, bool):
                rendered = "true" if value else "false"
            else:
                rendered = json.dumps(str(value))
            parts.append(f"({key})={rendered}")
        return "[" + ", ".join(parts) + "]"


def _number_options(field_name: str, settings: Settings) -> ProtoOptions:
    if settings.number_as_string:
        return ProtoOptions({JSONTAG: f"{field_name},string,omitempty"})
    return ProtoOptions()


def proto_type(
    descriptor: str, field_name: str, settings: Settings
) -> tuple[str, ProtoOptions]:
    """Return the wire type and field options for a native descriptor.

    Unknown descriptors are returned lower-cased, on the assumption that
    they name a message emitted elsewhere.
    """
    trimmed = descriptor
    if trimmed.startswith(MULTI_VALUE):
        trimmed = trimmed[len(MULTI_VALUE) :]
    trimmed = trimmed.removeprefix(INDIRECTION).lower()

    if trimmed in _TIMESTAMPS or trimmed in _TEXTS or trimmed in _DATES:
        return "string", ProtoOptions()
    if trimmed in _TEXTUAL:
        return "string", ProtoOptions()
    if trimmed in _INT32:
        return "sint32", _number_options(field_name, settings)
    if trimmed in _INT64:
        return "sint64", _number_options(field_name, settings)
    if trimmed in _DOUBLES:
        return "double", _number_options(field_name, settings)
    if trimmed in _FLOATS:
        return "float", _number_options(field_name, settings)
    if trimmed in _DECIMALS:
        return "string", ProtoOptions({JSONTAG: f"{field_name},omitempty"})
    if trimmed in _BINARIES:
        return "bytes", ProtoOptions()
    if trimmed in _BOOLS:
        return "bool", ProtoOptions()
    return trimmed, ProtoOptions()


def camel_case(text: str) -> str:
    """Turn ``hr__get_emp__input`` into ``HrGetEmpInput``."""
    return "".join(part[:1].upper() + part[1:] for part in _SPLIT.split(text) if part)


def repl_hidden(name: str) -> str:
    """Replace a trailing ``#`` with ``_``, as ``#`` is not a valid identifier."""
    if name.endswith("#"):
        return name[:-1] + "_"
    return name


def rec_type_name(name: str) -> str:
    """Placeholder type name for an argument without a descriptor."""
    return name.lower() + "_rec_typ"
