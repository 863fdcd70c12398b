"""Tests for the signature data model and its JSON manifest."""

import io
import json

from pgcall.models import Argument, Direction, Flavor, Function, dump_functions, load_functions
from tests.helpers import INOUT, OUT, emp_fields, get_emp, record, scalar, table


class TestDirection:
    def test_inout_has_both(self):
        arg = scalar("x", direction=INOUT)
        assert arg.is_input and arg.is_output
        assert Direction.IN in Direction.INOUT
        assert Direction.OUT in Direction.INOUT

    def test_out_only(self):
        arg = scalar("x", direction=OUT)
        assert arg.is_output and not arg.is_input


class TestArgument:
    def test_is_scalar(self):
        assert scalar("a").is_scalar
        assert table("t", scalar("t")).is_scalar
        assert not record("r", emp_fields()).is_scalar
        assert not table("t", record("t", emp_fields())).is_scalar
        assert not table("t", None).is_scalar

    def test_is_cursor(self):
        assert scalar("c", "refcursor").is_cursor
        assert scalar("c", "*REFCURSOR").is_cursor
        assert not scalar("c", "[]refcursor").is_cursor


class TestFunction:
    def test_direction_args(self):
        ret = scalar("ret", "int4", OUT)
        fn = Function(
            name="f",
            args=(scalar("a"), scalar("b", direction=INOUT), scalar("c", direction=OUT)),
            returns=ret,
        )
        assert [a.name for a in fn.direction_args(False)] == ["a", "b"]
        assert [a.name for a in fn.direction_args(True)] == ["b", "c", "ret"]

    def test_struct_name(self):
        fn = Function(name="HR.Get_Emp")
        assert fn.struct_name(False) == "hr__get_emp__input"
        assert fn.struct_name(True) == "hr__get_emp__output"

    def test_has_cursor_out(self):
        assert Function(name="f", returns_set=True).has_cursor_out()
        assert Function(name="f", returns=scalar("ret", "refcursor", OUT)).has_cursor_out()
        assert not get_emp().has_cursor_out()


class TestManifest:
    def test_round_trip(self):
        functions = [
            get_emp(),
            Function(
                name="hr.load",
                args=(table("rows", record("rows", emp_fields(), INOUT, "emp_rec"), INOUT),),
                returns=scalar("ret", "int4", OUT),
                documentation="Load employees.",
                returns_set=True,
            ),
        ]
        buf = io.StringIO()
        dump_functions(functions, buf)
        buf.seek(0)
        assert load_functions(buf) == functions

    def test_format(self):
        buf = io.StringIO()
        dump_functions([Function(name="f", args=(scalar("x", direction=INOUT),))], buf)
        (data,) = json.loads(buf.getvalue())
        assert data == {
            "name": "f",
            "args": [
                {
                    "name": "x",
                    "direction": ["IN", "OUT"],
                    "flavor": "SIMPLE",
                    "type_name": "int4",
                    "abs_type": "int4",
                }
            ],
        }

    def test_defaults_when_loading(self):
        (fn,) = load_functions(io.StringIO('[{"name": "f", "args": [{"name": "x"}]}]'))
        assert fn.args == (Argument(name="x", direction=Direction.IN, flavor=Flavor.SIMPLE),)
