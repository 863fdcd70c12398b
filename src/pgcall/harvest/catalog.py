"""Read function signatures from a live database's system catalog.

The queries run through a plain psycopg cursor with the default tuple row
factory. Turning rows into Function trees is done by TypeCatalog and
build_function, which need no database.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

import psycopg

from pgcall.base import HarvestError
from pgcall.models import MULTI_VALUE, Argument, Direction, Flavor, Function

from .common import NO_RETURN_TYPES, TEXT_TYPE, excluded, is_internal, strip_schema

log = logging.getLogger(__name__)

PROC_SQL = """
    SELECT n.nspname,
           p.proname,
           COALESCE(p.proallargtypes, p.proargtypes::oid[]) AS arg_types,
           p.proargmodes::text[] AS arg_modes,
           p.proargnames AS arg_names,
           p.prorettype,
           p.proretset,
           COALESCE(obj_description(p.oid, 'pg_proc'), '') AS documentation
    FROM pg_proc p
    JOIN pg_namespace n ON n.oid = p.pronamespace
    WHERE n.nspname NOT IN ('pg_catalog', 'information_schema')
      AND n.nspname NOT LIKE 'pg\\_%%'
      AND p.prokind IN ('f', 'p')
      AND (p.proname LIKE %s OR n.nspname || '.' || p.proname LIKE %s)
    ORDER BY n.nspname, p.proname
"""

TYPE_SQL = """
    SELECT t.oid, n.nspname, t.typname, t.typtype::text, t.typelem,
           t.typrelid, t.typbasetype, t.typcategory::text,
           format_type(t.oid, NULL) AS label
    FROM pg_type t
    JOIN pg_namespace n ON n.oid = t.typnamespace
"""

ATTRIBUTE_SQL = """
    SELECT a.attrelid, a.attname, a.atttypid
    FROM pg_attribute a
    JOIN pg_class c ON c.oid = a.attrelid
    JOIN pg_namespace n ON n.oid = c.relnamespace
    WHERE a.attnum > 0
      AND NOT a.attisdropped
      AND n.nspname NOT IN ('pg_catalog', 'information_schema')
    ORDER BY a.attrelid, a.attnum
"""

# proargmodes codes
_MODES = {
    "i": Direction.IN,
    "v": Direction.IN,
    "o": Direction.OUT,
    "t": Direction.OUT,
    "b": Direction.INOUT,
}

# Enums, ranges and multiranges
_TEXTUAL_TYPTYPES = frozenset({"e", "r", "m"})


@dataclass(frozen=True)
class PgType:
    """One pg_type row."""

    oid: int
    schema: str
    name: str
    typtype: str  # b=base, c=composite, d=domain, e=enum, m=multirange, p=pseudo, r=range
    elem: int
    relid: int
    basetype: int
    category: str  # A=array
    label: str

    @property
    def qualified(self) -> str:
        return strip_schema(f"{self.schema}.{self.name}")


@dataclass(frozen=True)
class ProcRow:
    """One row of PROC_SQL."""

    schema: str
    name: str
    arg_types: Sequence[int]
    arg_modes: Sequence[str] | None
    arg_names: Sequence[str] | None
    return_type: int
    returns_set: bool
    documentation: str

    @property
    def qualified(self) -> str:
        return strip_schema(f"{self.schema}.{self.name}")


class TypeCatalog:
    """Resolves type oids into Argument trees."""

    def __init__(
        self,
        types: Iterable[PgType],
        attributes: Iterable[tuple[int, str, int]] = (),
    ) -> None:
        self.types = {t.oid: t for t in types}
        self.attributes: dict[int, list[tuple[str, int]]] = defaultdict(list)
        for relid, name, typid in attributes:
            self.attributes[relid].append((name, typid))

    @classmethod
    def from_rows(
        cls, type_rows: Iterable[Sequence[Any]], attribute_rows: Iterable[Sequence[Any]]
    ) -> TypeCatalog:
        return cls(
            (PgType(*row) for row in type_rows),
            ((relid, name, typid) for relid, name, typid in attribute_rows),
        )

    def get(self, oid: int) -> PgType:
        try:
            t = self.types[oid]
        except KeyError:
            raise HarvestError(f"unknown type oid {oid}") from None
        seen = set()
        while t.typtype == "d":
            if t.oid in seen:
                raise HarvestError(f"domain {t.qualified} refers to itself")
            seen.add(t.oid)
            t = self.get(t.basetype)
        return t

    def argument(
        self,
        name: str,
        oid: int,
        direction: Direction,
        seen: frozenset[int] = frozenset(),
    ) -> Argument:
        t = self.get(oid)
        if t.category == "A" and t.elem:
            elem = self.argument(name, t.elem, direction, seen)
            return Argument(
                name=name,
                direction=direction,
                flavor=Flavor.TABLE,
                type_name=MULTI_VALUE + elem.type_name,
                abs_type=t.label,
                table_of=elem,
            )
        if t.typtype == "c":
            if t.oid in seen:
                raise HarvestError(f"type {t.qualified} contains itself")
            record_of = {
                col: self.argument(col, typid, direction, seen | {t.oid})
                for col, typid in self.attributes.get(t.relid, ())
            }
            return Argument(
                name=name,
                direction=direction,
                flavor=Flavor.RECORD,
                type_name=t.qualified,
                abs_type=t.label,
                record_of=record_of,
            )
        if t.typtype in _TEXTUAL_TYPTYPES:
            return Argument(
                name=name,
                direction=direction,
                type_name=TEXT_TYPE,
                abs_type=t.label,
            )
        return Argument(
            name=name,
            direction=direction,
            type_name=t.qualified,
            abs_type=t.label,
        )


def build_function(row: ProcRow, catalog: TypeCatalog) -> Function:
    """Assemble a Function from a pg_proc row."""
    modes = list(row.arg_modes or ["i"] * len(row.arg_types))
    names = list(row.arg_names or [])
    args = []
    has_out = False
    for i, (oid, mode) in enumerate(zip(row.arg_types, modes), start=1):
        direction = _MODES.get(mode, Direction.IN)
        has_out = has_out or Direction.OUT in direction
        name = names[i - 1] if i <= len(names) and names[i - 1] else f"arg{i}"
        args.append(catalog.argument(name, oid, direction))

    returns = None
    ret = catalog.get(row.return_type)
    if not has_out and ret.name.lower() not in NO_RETURN_TYPES:
        returns = catalog.argument("ret", row.return_type, Direction.OUT)

    return Function(
        name=row.qualified,
        args=tuple(args),
        returns=returns,
        documentation=row.documentation or "",
        returns_set=bool(row.returns_set),
    )


def harvest_catalog(
    cursor: psycopg.Cursor, pattern: str = "%", exclude: Iterable[str] = ()
) -> list[Function]:
    """Harvest functions whose (qualified) name matches the LIKE ``pattern``."""
    try:
        cursor.execute(TYPE_SQL)
        type_rows = cursor.fetchall()
        cursor.execute(ATTRIBUTE_SQL)
        attribute_rows = cursor.fetchall()
        cursor.execute(PROC_SQL, (pattern, pattern))
        proc_rows = cursor.fetchall()
    except psycopg.Error as e:
        raise HarvestError(f"read catalog: {e}") from e

    catalog = TypeCatalog.from_rows(type_rows, attribute_rows)
    exclude = {e.lower() for e in exclude}
    functions = []
    for row in proc_rows:
        proc = ProcRow(*row)
        if is_internal(proc.qualified) or excluded(proc.qualified, exclude):
            log.debug("skipping %s", proc.qualified)
            continue
        functions.append(build_function(proc, catalog))
    functions.sort(key=lambda f: f.name)
    log.info("Read %d functions matching %r", len(functions), pattern)
    return functions


def harvest_database(
    database_url: str, pattern: str = "%", exclude: Iterable[str] = ()
) -> list[Function]:
    """Connect, harvest inside a read-only transaction, and disconnect."""
    try:
        conn = psycopg.connect(database_url)
    except psycopg.Error as e:
        raise HarvestError(f"connect: {e}") from e
    with conn:
        conn.read_only = True
        with conn.cursor() as cursor:
            return harvest_catalog(cursor, pattern, exclude)
