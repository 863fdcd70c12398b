"""Data model for harvested function signatures."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import IO, Any, Iterable

# Descriptor markers: "*" for indirection, "[]" for a multi-value type.
INDIRECTION = "*"
MULTI_VALUE = "[]"


class Direction(enum.Flag):
    """Call direction of an argument. INOUT arguments carry both bits."""

    IN = 1
    OUT = 2
    INOUT = IN | OUT


class Flavor(enum.Enum):
    """Shape of an argument's value."""

    SIMPLE = "simple"
    RECORD = "record"
    TABLE = "table"


@dataclass(frozen=True)
class Argument:
    """One function argument, possibly a record or a collection."""

    name: str
    direction: Direction = Direction.IN
    flavor: Flavor = Flavor.SIMPLE
    type_name: str = ""  # Native descriptor, e.g. "int4", "[]emp_rec"
    abs_type: str = ""  # Label for doc comments, e.g. "integer[]"
    table_of: Argument | None = None  # Element type when flavor is TABLE
    record_of: dict[str, Argument] = field(default_factory=dict)

    @property
    def is_input(self) -> bool:
        return Direction.IN in self.direction

    @property
    def is_output(self) -> bool:
        return Direction.OUT in self.direction

    @property
    def is_scalar(self) -> bool:
        """True when the value (or each element of it) is a plain scalar."""
        if self.flavor is Flavor.SIMPLE:
            return True
        return (
            self.flavor is Flavor.TABLE
            and self.table_of is not None
            and self.table_of.flavor is Flavor.SIMPLE
        )

    @property
    def is_cursor(self) -> bool:
        base = self.type_name.lstrip(INDIRECTION)
        if base.startswith(MULTI_VALUE):
            return False
        return base.lstrip(INDIRECTION).lower() == "refcursor"


@dataclass(frozen=True)
class Function:
    """A stored function or procedure signature."""

    name: str
    args: tuple[Argument, ...] = ()
    returns: Argument | None = None
    documentation: str = ""
    returns_set: bool = False

    def struct_name(self, out: bool) -> str:
        """Lower-cased message stem, like "hr__get_emp__output"."""
        suffix = "output" if out else "input"
        return f"{dot2d(self.name.lower())}__{suffix}"

    def direction_args(self, out: bool) -> list[Argument]:
        """Arguments passed in the given direction, return value last."""
        if out:
            args = [a for a in self.args if a.is_output]
            if self.returns is not None:
                args.append(self.returns)
            return args
        return [a for a in self.args if a.is_input]

    def has_cursor_out(self) -> bool:
        """True when the function streams its result."""
        if self.returns_set:
            return True
        if self.returns is not None and self.returns.is_cursor:
            return True
        return any(a.is_output and a.is_cursor for a in self.args)


def dot2d(name: str) -> str:
    """Replace dots with double underscores."""
    return name.replace(".", "__")


# =============================================================================
# JSON manifest
# =============================================================================


def argument_to_dict(arg: Argument) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": arg.name,
        "direction": [d.name for d in (Direction.IN, Direction.OUT) if d in arg.direction],
        "flavor": arg.flavor.name,
        "type_name": arg.type_name,
        "abs_type": arg.abs_type,
    }
    if arg.table_of is not None:
        data["table_of"] = argument_to_dict(arg.table_of)
    if arg.record_of:
        data["record_of"] = {k: argument_to_dict(v) for k, v in arg.record_of.items()}
    return data


def argument_from_dict(data: dict[str, Any]) -> Argument:
    direction = Direction(0)
    for name in data.get("direction", ["IN"]):
        direction |= Direction[name]
    table_of = data.get("table_of")
    return Argument(
        name=data["name"],
        direction=direction,
        flavor=Flavor[data.get("flavor", "SIMPLE")],
        type_name=data.get("type_name", ""),
        abs_type=data.get("abs_type", ""),
        table_of=argument_from_dict(table_of) if table_of is not None else None,
        record_of={
            k: argument_from_dict(v) for k, v in data.get("record_of", {}).items()
        },
    )


def function_to_dict(fn: Function) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": fn.name,
        "args": [argument_to_dict(a) for a in fn.args],
    }
    if fn.returns is not None:
        data["returns"] = argument_to_dict(fn.returns)
    if fn.documentation:
        data["documentation"] = fn.documentation
    if fn.returns_set:
        data["returns_set"] = True
    return data


def function_from_dict(data: dict[str, Any]) -> Function:
    returns = data.get("returns")
    return Function(
        name=data["name"],
        args=tuple(argument_from_dict(a) for a in data.get("args", [])),
        returns=argument_from_dict(returns) if returns is not None else None,
        documentation=data.get("documentation", ""),
        returns_set=bool(data.get("returns_set", False)),
    )


def dump_functions(functions: Iterable[Function], fp: IO[str]) -> None:
    """Write functions as a JSON manifest."""
    json.dump([function_to_dict(f) for f in functions], fp, indent=2)
    fp.write("\n")


def load_functions(fp: IO[str]) -> list[Function]:
    """Read functions from a JSON manifest."""
    return [function_from_dict(d) for d in json.load(fp)]
