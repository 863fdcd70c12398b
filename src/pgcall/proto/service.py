"""Assemble the complete proto3 schema for a list of functions."""

from __future__ import annotations

import io
import logging
from typing import Sequence, TextIO

from pgcall.base import MissingTableOfError
from pgcall.config import Settings
from pgcall.models import Function, dot2d
from pgcall.proto.emitter import INDENT, message_name, write_function
from pgcall.proto.registry import DedupRegistry
from pgcall.proto.types import GOGO_OPTION_PREFIX, camel_case

log = logging.getLogger(__name__)

SYNTAX = 'syntax = "proto3";'
GOGO_IMPORT = 'import "github.com/gogo/protobuf/gogoproto/gogo.proto";'
DEFAULT_SERVICE = "Functions"


def method_name(fn: Function) -> str:
    return camel_case(dot2d(fn.name.lower()))


def rpc_line(fn: Function) -> str:
    """The ``rpc`` entry for ``fn``, preceded by its documentation."""
    lines = []
    if fn.documentation:
        for doc_line in fn.documentation.strip("\n").split("\n"):
            lines.append(f"{INDENT}/// {doc_line}".rstrip())
    stream = "stream " if fn.has_cursor_out() else ""
    lines.append(
        f"{INDENT}rpc {method_name(fn)} ({message_name(fn, False)}) "
        f"returns ({stream}{message_name(fn, True)}) {{}}"
    )
    return "\n".join(lines)


def save_protobuf(
    dst: TextIO,
    functions: Sequence[Function],
    package: str,
    settings: Settings,
    service_name: str | None = None,
    registry: DedupRegistry | None = None,
) -> list[Function]:
    """Write the schema for ``functions`` to ``dst``.

    Functions are emitted in the given order. A function with a TABLE
    argument lacking its element type is left out entirely when
    ``settings.skip_missing_table_of`` is set; otherwise the error aborts
    the whole schema and nothing is written.

    The gogoproto import is written in extended mode, and whenever an
    emitted field carries a gogoproto option.

    Args:
        dst: Text sink for the schema.
        functions: Functions to expose, usually sorted by name.
        package: proto package name, may be empty.
        settings: Run settings.
        service_name: Name of the service block. Defaults to the
            camel-cased package, or "Functions" without a package.
        registry: Messages already emitted. A fresh one by default.

    Returns:
        The functions that made it into the schema.

    Raises:
        MissingTableOfError: when skipping is disabled.
    """
    if registry is None:
        registry = DedupRegistry()
    if service_name is None:
        service_name = camel_case(package) or DEFAULT_SERVICE

    messages = io.StringIO()
    emitted: list[Function] = []
    for fn in functions:
        try:
            write_function(messages, fn, registry, settings)
        except MissingTableOfError as e:
            if not settings.skip_missing_table_of:
                raise
            log.warning("SKIP function %s, missing TableOf info: %s", fn.name, e)
            continue
        emitted.append(fn)

    body = messages.getvalue()
    dst.write(SYNTAX + "\n\n")
    if package:
        dst.write(f"package {package};\n")
    if settings.extended or f"({GOGO_OPTION_PREFIX}" in body:
        dst.write(f"\n{GOGO_IMPORT}\n")
    dst.write(body)

    dst.write(f"\nservice {service_name} {{\n")
    for fn in emitted:
        dst.write(rpc_line(fn) + "\n")
    dst.write("}\n")
    log.debug("emitted %d of %d functions", len(emitted), len(functions))
    return emitted
