"""Emit proto3 messages for the input and output of one function.

Nested records and collections of records are flattened into separate
top-level messages. Each one is written after the message that first
refers to it, and only once per run (see DedupRegistry).
"""

from __future__ import annotations

import io
from typing import Sequence, TextIO

from pgcall.base import MissingTableOfError
from pgcall.config import Settings
from pgcall.models import INDIRECTION, MULTI_VALUE, Argument, Flavor, Function
from pgcall.proto.registry import DedupRegistry
from pgcall.proto.types import camel_case, proto_type, rec_type_name, repl_hidden

INDENT = "    "


def message_name(fn: Function, out: bool) -> str:
    """Message name for one direction, like ``HrGetEmpOutput``."""
    return camel_case(fn.struct_name(out))


def _normalize(arg: Argument, field_name: str) -> tuple[str, bool]:
    """Strip descriptor markers. Returns (descriptor, repeated)."""
    repeated = arg.flavor is Flavor.TABLE
    got = arg.type_name.removeprefix(INDIRECTION)
    if got.startswith(MULTI_VALUE):
        repeated = True
        got = got[len(MULTI_VALUE) :]
    got = got.removeprefix(INDIRECTION)
    if not got:
        got = rec_type_name(field_name)
    return got, repeated


def _sub_args(arg: Argument) -> list[Argument]:
    """Fields of the nested message for a composite argument."""
    if arg.table_of is not None:
        if not arg.table_of.record_of:
            return [arg.table_of]
        return list(arg.table_of.record_of.values())
    return list(arg.record_of.values())


def _fingerprint(args: Sequence[Argument]) -> str:
    return ", ".join(f"{a.name}:{a.type_name}" for a in args)


def write_message(
    dst: TextIO,
    msg_name: str,
    args: Sequence[Argument],
    registry: DedupRegistry,
    settings: Settings,
) -> None:
    """Write message ``msg_name`` with one field per argument.

    Messages for nested records that the registry has not seen yet are
    written after this one. Nothing reaches ``dst`` or ``registry`` if any
    argument, at any depth, is a TABLE without an element type.

    Raises:
        MissingTableOfError: a TABLE argument has no ``table_of``.
    """
    for arg in args:
        if arg.flavor is Flavor.TABLE and arg.table_of is None:
            raise MissingTableOfError(msg_name, arg.name)

    scope = registry.fork()
    body = io.StringIO()
    nested = io.StringIO()
    body.write(f"\nmessage {msg_name} {{\n")
    for number, arg in enumerate(args, start=1):
        field_name = repl_hidden(arg.name)
        got, repeated = _normalize(arg, field_name)
        rule = "repeated " if repeated else ""
        typ, opts = proto_type(got, field_name, settings)
        opt_s = f" {opts}" if opts else ""

        if arg.is_scalar:
            body.write(f"{INDENT}// {arg.abs_type}\n")
            body.write(f"{INDENT}{rule}{typ} {field_name} = {number}{opt_s};\n")
            continue

        typ = camel_case(typ)
        sub_args = _sub_args(arg)
        if typ not in scope:
            write_message(nested, typ, sub_args, scope, settings)
        scope.add(typ, _fingerprint(sub_args))
        body.write(f"{INDENT}{rule}{typ} {field_name} = {number}{opt_s};\n")
    body.write("}\n")

    scope.commit()
    dst.write(body.getvalue())
    dst.write(nested.getvalue())


def write_function(
    dst: TextIO, fn: Function, registry: DedupRegistry, settings: Settings
) -> None:
    """Write the input and output messages of ``fn``, or nothing on failure."""
    scope = registry.fork()
    buf = io.StringIO()
    for out in (False, True):
        try:
            write_message(
                buf, message_name(fn, out), fn.direction_args(out), scope, settings
            )
        except MissingTableOfError as e:
            raise e.with_direction("output" if out else "input") from e
    scope.commit()
    dst.write(buf.getvalue())
