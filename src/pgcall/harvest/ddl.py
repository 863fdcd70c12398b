"""Read function signatures from SQL DDL using the pglast parser."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import pglast
from pglast import ast
from pglast.enums import FunctionParameterMode, ObjectType

from pgcall.base import HarvestError
from pgcall.models import MULTI_VALUE, Argument, Direction, Flavor, Function

from .common import NO_RETURN_TYPES, TEXT_TYPE, excluded, is_internal, strip_schema

log = logging.getLogger(__name__)

_OUT_MODES = (FunctionParameterMode.FUNC_PARAM_OUT, FunctionParameterMode.FUNC_PARAM_TABLE)


def _names(nodes) -> str:
    return strip_schema(".".join(n.sval for n in nodes))


def _range_name(rv: ast.RangeVar) -> str:
    if rv.schemaname:
        return strip_schema(f"{rv.schemaname}.{rv.relname}")
    return rv.relname


def _type_ref(tn: ast.TypeName) -> tuple[str, bool]:
    """(base type name, is array) for a TypeName node."""
    return _names(tn.names), bool(tn.arrayBounds)


def _direction(mode) -> Direction:
    if mode == FunctionParameterMode.FUNC_PARAM_INOUT:
        return Direction.INOUT
    if mode in _OUT_MODES:
        return Direction.OUT
    return Direction.IN


class DDLCatalog:
    """Composite, domain, enum and range types collected from DDL statements."""

    def __init__(self) -> None:
        self.composites: dict[str, list[tuple[str, str, bool]]] = {}
        self.domains: dict[str, tuple[str, bool]] = {}
        self.textual: set[str] = set()  # Enums and ranges
        self.comments: dict[str, str] = {}

    def add_columns(self, name: str, columns: Iterable) -> None:
        fields = []
        for col in columns:
            if not isinstance(col, ast.ColumnDef) or col.typeName is None:
                continue
            base, array = _type_ref(col.typeName)
            fields.append((col.colname, base, array))
        self.composites[name] = fields

    def collect(self, stmt) -> None:
        if isinstance(stmt, ast.CompositeTypeStmt):
            self.add_columns(_range_name(stmt.typevar), stmt.coldeflist or ())
        elif isinstance(stmt, ast.CreateStmt):
            self.add_columns(_range_name(stmt.relation), stmt.tableElts or ())
        elif isinstance(stmt, ast.CreateDomainStmt):
            self.domains[_names(stmt.domainname)] = _type_ref(stmt.typeName)
        elif isinstance(stmt, (ast.CreateEnumStmt, ast.CreateRangeStmt)):
            self.textual.add(_names(stmt.typeName))
        elif isinstance(stmt, ast.CommentStmt) and stmt.objtype in (
            ObjectType.OBJECT_FUNCTION,
            ObjectType.OBJECT_PROCEDURE,
        ):
            if stmt.comment:
                self.comments[_names(stmt.object.objname)] = stmt.comment

    def argument(
        self,
        name: str,
        base: str,
        direction: Direction,
        array: bool = False,
        seen: frozenset[str] = frozenset(),
    ) -> Argument:
        """Build the argument tree for a (possibly array) type."""
        domains_seen = set()
        while base in self.domains:
            if base in domains_seen:
                raise HarvestError(f"domain {base} refers to itself")
            domains_seen.add(base)
            base, domain_array = self.domains[base]
            array = array or domain_array

        if array:
            elem = self.argument(name, base, direction, seen=seen)
            return Argument(
                name=name,
                direction=direction,
                flavor=Flavor.TABLE,
                type_name=MULTI_VALUE + elem.type_name,
                abs_type=elem.abs_type + "[]",
                table_of=elem,
            )

        if base in self.textual:
            return Argument(
                name=name,
                direction=direction,
                type_name=TEXT_TYPE,
                abs_type=base,
            )

        fields = self.composites.get(base)
        if fields is None:
            return Argument(
                name=name,
                direction=direction,
                type_name=base,
                abs_type=base,
            )
        if base in seen:
            raise HarvestError(f"type {base} contains itself")
        record_of = {
            col: self.argument(col, col_base, direction, col_array, seen | {base})
            for col, col_base, col_array in fields
        }
        return Argument(
            name=name,
            direction=direction,
            flavor=Flavor.RECORD,
            type_name=base,
            abs_type=base,
            record_of=record_of,
        )

    def function(self, stmt: ast.CreateFunctionStmt) -> Function:
        name = _names(stmt.funcname)
        args = []
        has_out = False
        returns_set = False
        for i, p in enumerate(stmt.parameters or (), start=1):
            direction = _direction(p.mode)
            has_out = has_out or Direction.OUT in direction
            returns_set = returns_set or p.mode == FunctionParameterMode.FUNC_PARAM_TABLE
            base, array = _type_ref(p.argType)
            args.append(self.argument(p.name or f"arg{i}", base, direction, array))

        returns = None
        if stmt.returnType is not None:
            returns_set = returns_set or bool(stmt.returnType.setof)
            base, array = _type_ref(stmt.returnType)
            if not has_out and base.lower() not in NO_RETURN_TYPES:
                returns = self.argument("ret", base, Direction.OUT, array)

        return Function(
            name=name,
            args=tuple(args),
            returns=returns,
            documentation=self.comments.get(name, ""),
            returns_set=returns_set,
        )


def harvest_sql(sql: str, exclude: Iterable[str] = ()) -> list[Function]:
    """Harvest every public function defined in ``sql``.

    Types, domains and comments may appear before or after the functions
    that use them.
    """
    try:
        stmts = pglast.parse_sql(sql)
    except pglast.Error as e:
        raise HarvestError(f"cannot parse SQL: {e}") from e

    catalog = DDLCatalog()
    creates = []
    for raw in stmts:
        stmt = raw.stmt
        if isinstance(stmt, ast.CreateFunctionStmt):
            creates.append(stmt)
        else:
            catalog.collect(stmt)

    exclude = {e.lower() for e in exclude}
    functions = []
    for stmt in creates:
        fn = catalog.function(stmt)
        if is_internal(fn.name) or excluded(fn.name, exclude):
            log.debug("skipping %s", fn.name)
            continue
        functions.append(fn)
    functions.sort(key=lambda f: f.name)
    return functions


def harvest_sql_files(paths: Iterable[Path], exclude: Iterable[str] = ()) -> list[Function]:
    """Harvest functions from SQL files, treated as one script."""
    parts = []
    for path in paths:
        log.info("Reading %s", path)
        parts.append(Path(path).read_text())
    return harvest_sql("\n;\n".join(parts), exclude)
