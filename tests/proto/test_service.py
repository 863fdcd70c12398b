"""Tests for whole-schema generation."""

import io
import logging
import re

import pytest

from pgcall.base import MissingTableOfError
from pgcall.models import Function
from pgcall.proto.registry import DedupRegistry
from pgcall.proto.service import GOGO_IMPORT, rpc_line, save_protobuf
from tests.helpers import IN, OUT, broken, emp_fields, get_emp, record, scalar, table


def render(functions, settings, package="hr", **kwargs):
    buf = io.StringIO()
    emitted = save_protobuf(buf, functions, package, settings, **kwargs)
    return buf.getvalue(), emitted


def uses_emp_rec(name):
    return Function(
        name=name,
        args=(scalar("p_id", "int4"), record("p_emp", emp_fields(), OUT, "emp_rec")),
    )


class TestSaveProtobuf:
    def test_end_to_end(self, settings):
        text, emitted = render([get_emp()], settings)
        assert text == (
            'syntax = "proto3";\n'
            "\n"
            "package hr;\n"
            "\n"
            "message GetEmpInput {\n"
            "    // integer\n"
            "    sint32 p_id = 1;\n"
            "}\n"
            "\n"
            "message GetEmpOutput {\n"
            "    PEmpRecTyp p_emp = 1;\n"
            "}\n"
            "\n"
            "message PEmpRecTyp {\n"
            "    // text\n"
            "    string name = 1;\n"
            "    // double precision\n"
            "    double salary = 2;\n"
            "}\n"
            "\n"
            "service Hr {\n"
            "    rpc GetEmp (GetEmpInput) returns (GetEmpOutput) {}\n"
            "}\n"
        )
        assert emitted == [get_emp()]

    def test_blocks_are_balanced(self, settings):
        functions = [get_emp(), uses_emp_rec("find_emp"), uses_emp_rec("hr.load")]
        text, _ = render(functions, settings)
        assert text.count("{") == text.count("}")
        assert len(re.findall(r"^    rpc ", text, re.MULTILINE)) == 3

    def test_shared_record_emitted_once(self, settings):
        text, _ = render([uses_emp_rec("find_emp"), uses_emp_rec("load_emp")], settings)
        assert text.count("message EmpRec {") == 1
        assert "message LoadEmpOutput {\n    EmpRec p_emp = 1;\n}\n" in text

    def test_no_package(self, settings):
        text, _ = render([get_emp()], settings, package="")
        assert "package" not in text
        assert "\nservice Functions {\n" in text

    def test_service_name_override(self, settings):
        text, _ = render([get_emp()], settings, service_name="Employees")
        assert "\nservice Employees {\n" in text

    def test_gogo_import(self, settings):
        text, _ = render([get_emp()], settings.replace(gogo=True))
        assert GOGO_IMPORT in text
        text, _ = render([get_emp()], settings)
        assert "import" not in text

    def test_gogo_implied_by_generator(self, settings):
        text, _ = render([get_emp()], settings.replace(protoc_gen="gogofast"))
        assert GOGO_IMPORT in text

    def test_gogo_import_follows_jsontag_options(self, settings):
        """Default settings still import gogo.proto once a field uses its options."""
        add = Function(name="add", args=(scalar("a", "numeric"), scalar("b", "int4")))
        text, _ = render([add], settings)
        assert '    string a = 1 [(gogoproto.jsontag)="a,omitempty"];\n' in text
        assert text.startswith(
            'syntax = "proto3";\n\npackage hr;\n\n' + GOGO_IMPORT + "\n\nmessage AddInput {\n"
        )

    def test_gogo_import_for_numbers_as_strings(self, settings):
        text, _ = render([get_emp()], settings.replace(number_as_string=True))
        assert text.count(GOGO_IMPORT) == 1

    def test_empty_function_list(self, settings):
        text, emitted = render([], settings)
        assert text == 'syntax = "proto3";\n\npackage hr;\n\nservice Hr {\n}\n'
        assert emitted == []


class TestSkipMissingTableOf:
    @pytest.mark.parametrize("direction", [IN, OUT])
    def test_skip_drops_whole_function(self, settings, direction, caplog):
        with caplog.at_level(logging.WARNING, logger="pgcall.proto.service"):
            text, emitted = render([broken(direction=direction), get_emp()], settings)
        assert "GetList" not in text
        assert "rpc GetEmp" in text
        assert emitted == [get_emp()]
        assert "get_list" in caplog.text

    def test_no_skip_raises(self, settings):
        settings = settings.replace(skip_missing_table_of=False)
        with pytest.raises(MissingTableOfError) as exc_info:
            render([get_emp(), broken()], settings)
        assert exc_info.value.argument == "p_list"
        assert exc_info.value.message == "GetListInput"

    def test_no_skip_writes_nothing(self, settings):
        buf = io.StringIO()
        with pytest.raises(MissingTableOfError):
            save_protobuf(
                buf, [get_emp(), broken()], "hr", settings.replace(skip_missing_table_of=False)
            )
        assert buf.getvalue() == ""

    def test_skipped_function_leaves_no_names(self, settings):
        """A message registered by a skipped function is emitted by the next user."""
        bad = Function(
            name="bad",
            args=(
                record("p_emp", emp_fields(IN), IN, "emp_rec"),
                table("p_list", None, OUT, type_name="[]int4"),
            ),
        )
        registry = DedupRegistry()
        text, _ = render([bad, uses_emp_rec("good")], settings, registry=registry)
        assert "Bad" not in text
        assert text.count("message EmpRec {") == 1
        assert "EmpRec" in registry


class TestRpcLine:
    def test_documentation_lines(self):
        fn = Function(name="get_emp", documentation="Get one employee.\nBy id.")
        assert rpc_line(fn) == (
            "    /// Get one employee.\n"
            "    /// By id.\n"
            "    rpc GetEmp (GetEmpInput) returns (GetEmpOutput) {}"
        )

    def test_stream_for_set_returning(self):
        fn = Function(name="list_emps", returns_set=True)
        assert "returns (stream ListEmpsOutput)" in rpc_line(fn)

    def test_stream_for_cursor_out(self):
        fn = Function(name="open_emps", args=(scalar("c", "refcursor", OUT),))
        assert "returns (stream OpenEmpsOutput)" in rpc_line(fn)

    def test_no_stream_for_cursor_in(self):
        fn = Function(name="fetch", args=(scalar("c", "refcursor", IN),))
        assert "stream" not in rpc_line(fn)
