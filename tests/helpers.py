"""Builders for argument trees used across the tests."""

from pgcall.models import Argument, Direction, Flavor, Function

IN = Direction.IN
OUT = Direction.OUT
INOUT = Direction.INOUT


def scalar(name, type_name="int4", direction=IN, abs_type=None) -> Argument:
    """A SIMPLE argument. The label defaults to the descriptor."""
    return Argument(
        name=name,
        direction=direction,
        type_name=type_name,
        abs_type=type_name if abs_type is None else abs_type,
    )


def record(name, fields, direction=IN, type_name="") -> Argument:
    """A RECORD argument with the given field arguments, in order."""
    return Argument(
        name=name,
        direction=direction,
        flavor=Flavor.RECORD,
        type_name=type_name,
        abs_type=type_name,
        record_of={f.name: f for f in fields},
    )


def table(name, elem, direction=IN, type_name=None) -> Argument:
    """A TABLE argument. Pass elem=None for a missing element type."""
    if type_name is None:
        type_name = "[]" + (elem.type_name if elem is not None else "")
    return Argument(
        name=name,
        direction=direction,
        flavor=Flavor.TABLE,
        type_name=type_name,
        abs_type=type_name,
        table_of=elem,
    )


def emp_fields(direction=OUT):
    return [
        scalar("name", "text", direction),
        scalar("salary", "float8", direction, abs_type="double precision"),
    ]


def get_emp() -> Function:
    """get_emp(p_id IN integer, p_emp OUT <record name text, salary float8>)."""
    return Function(
        name="get_emp",
        args=(
            scalar("p_id", "int4", IN, abs_type="integer"),
            record("p_emp", emp_fields(), OUT),
        ),
    )


def broken(name="get_list", direction=IN) -> Function:
    """A function whose TABLE argument lacks its element type."""
    return Function(
        name=name,
        args=(
            scalar("p_id", "int4", IN),
            table("p_list", None, direction, type_name="[]int4"),
        ),
    )
