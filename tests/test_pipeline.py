"""Orchestrator tests: stage order, hooks, partial failure and end-to-end runs."""

import ctypes
import logging
from pathlib import Path

import pytest

from cxxbind.core.errors import PassError, PipelineStateError
from cxxbind.core.schema import Class
from cxxbind.pipeline import CodeGenerator, Options, PipelineState
from cxxbind.plugins import NullTransform

from conftest import FakeParser, RecordingTransform, add_struct


@pytest.fixture
def options(tmp_path):
    return Options(
        headers=["a.h", "b.h"],
        namespace="demo",
        output_dir=str(tmp_path / "out"),
        assembly="none",
    ).validate()


def test_plugin_headers_are_parsed_first(options):
    def build(name):
        return lambda library, unit: add_struct(library, unit, name, ("x", "int"), ("y", "double"))

    parser = FakeParser(builders={"plugin.h": build("Extra"), "a.h": build("A"), "b.h": build("B")})
    transform = RecordingTransform(extra_headers=["plugin.h"])

    library = CodeGenerator(options, transform, parser).parse_code()

    assert parser.calls == ["plugin.h", "a.h", "b.h"]
    orders = {}
    for decl in library.walk():
        unit = library.translation_unit_of(decl)
        orders.setdefault(unit.file_path, []).append(decl.definition_order)
    assert max(orders["plugin.h"]) < min(orders["a.h"])
    assert max(orders["a.h"]) < min(orders["b.h"])


def test_hooks_run_once_in_order(options):
    transform = RecordingTransform()

    CodeGenerator(options, transform, FakeParser()).run()

    assert transform.calls == ["setup_headers", "preprocess", "setup_passes", "postprocess"]


def test_failed_header_does_not_stop_the_run(options, caplog):
    caplog.set_level(logging.INFO)
    parser = FakeParser(
        builders={"b.h": lambda library, unit: add_struct(library, unit, "B", ("x", "int"))},
        failing={"a.h"},
    )
    generator = CodeGenerator(options, NullTransform(), parser)

    result = generator.run()

    assert result.parsed == ["b.h"]
    assert [failure.header for failure in result.failed] == ["a.h"]
    assert "syntax error" in str(result.failed[0])
    assert len(generator.library.translation_units) == 1
    assert "Could not parse 'a.h'." in caplog.text
    assert "Parsed 'b.h'." in caplog.text
    assert len(result.outputs) == 1


def test_nothing_parsed_skips_generation(options):
    generator = CodeGenerator(options, NullTransform(), FakeParser(failing={"a.h", "b.h"}))

    result = generator.run()

    assert result.parsed == []
    assert result.outputs == []
    assert generator.state is PipelineState.GENERATED
    assert not Path(options.output_dir).exists()


def test_stages_must_run_in_order(options):
    generator = CodeGenerator(options, NullTransform(), FakeParser())

    with pytest.raises(PipelineStateError):
        generator.process_code()
    with pytest.raises(PipelineStateError):
        generator.generate_code()

    generator.parse_code()
    with pytest.raises(PipelineStateError):
        generator.parse_code()
    generator.process_code()
    generator.generate_code()
    with pytest.raises(PipelineStateError):
        generator.generate_code()


def test_plugin_passes_run_after_builtins(options):
    seen = []

    def record(library):
        seen.append([cls.name for cls in library.classes()])

    def build(library, unit):
        library.create(Class, unit, name="Fwd", is_incomplete=True)
        add_struct(library, unit, "Fwd")
        library.create(Class, unit, name="", is_struct=True)

    generator = CodeGenerator(options, RecordingTransform(passes=[record]), FakeParser(builders={"a.h": build}))
    generator.parse_code()
    generator.process_code()

    assert seen == [["Fwd", "AnonymousStruct0"]]
    assert [pass_.name for pass_ in generator.passes] == [
        "resolve_incomplete_decls",
        "clean_invalid_decl_names",
        "check_duplicate_names",
        "check_module_names",
        "record",
    ]


def test_classes_are_sorted_before_preprocess(options):
    orders = []

    class OrderTransform(NullTransform):
        def preprocess(self, helpers):
            orders.extend(cls.name for cls in helpers.library.classes())

    def build(library, unit):
        add_struct(library, unit, "First")
        add_struct(library, unit, "Second")
        unit.classes.reverse()

    generator = CodeGenerator(options, OrderTransform(), FakeParser(builders={"a.h": build}))
    generator.parse_code()
    generator.process_code()

    assert orders == ["First", "Second"]


def test_pass_failure_surfaces_as_pass_error(options):
    def broken(library):
        raise KeyError("missing")

    generator = CodeGenerator(options, RecordingTransform(passes=[broken]), FakeParser())
    generator.parse_code()

    with pytest.raises(PassError, match="broken"):
        generator.process_code()


def test_postprocess_changes_reach_the_emitter(options):
    class RenameTransform(NullTransform):
        def postprocess(self, helpers):
            helpers.rename_class("vec_t", "Vec")
            helpers.ignore_class_with_name("Internal")

    def build(library, unit):
        add_struct(library, unit, "vec_t", ("x", "float"))
        add_struct(library, unit, "Internal", ("y", "int"))

    result = CodeGenerator(options, RenameTransform(), FakeParser(builders={"a.h": build})).run()

    text = result.outputs[0].read_text()
    assert "class Vec(ctypes.Structure):" in text
    assert "Internal" not in text


def test_end_to_end_with_tree_sitter(write_header, tmp_path):
    header = write_header("foo.h", "struct Foo { int x; };\n")
    options = Options(
        headers=[str(header), str(tmp_path / "missing.h")],
        namespace="foo",
        output_dir=str(tmp_path / "out"),
        assembly="none",
    ).validate()

    result = CodeGenerator(options, NullTransform()).run()

    assert result.parsed == [str(header)]
    assert len(result.failed) == 1
    [output] = result.outputs
    text = output.read_text()
    assert output.name == "foo.py"
    assert text.count("class Foo(") == 1
    assert "('x', ctypes.c_int)" in text


def _tree_sitter_run(write_header, tmp_path, *headers):
    paths = [str(write_header(name, text)) for name, text in headers]
    options = Options(headers=paths, namespace="demo", output_dir=str(tmp_path / "out"), assembly="none").validate()
    result = CodeGenerator(options, NullTransform()).run()
    assert result.failed == []
    [output] = result.outputs
    return output


def _import(path):
    namespace = {}
    exec(compile(path.read_text(), str(path), "exec"), namespace)
    return namespace


def test_forward_declared_class_gets_layout_of_its_definition(write_header, tmp_path):
    output = _tree_sitter_run(
        write_header, tmp_path,
        ("h1.h", "class Foo;\n"),
        ("h2.h", "class Foo { int x; };\n"),
    )

    text = output.read_text()
    assert text.count("class Foo(ctypes.Structure):") == 1
    module = _import(output)
    assert module["Foo"]._fields_ == [("x", ctypes.c_int)]


def test_same_name_in_two_namespaces_imports(write_header, tmp_path):
    output = _tree_sitter_run(
        write_header, tmp_path,
        ("ns.h", "namespace a { struct Foo { int x; }; }\nnamespace b { struct Foo { double y; }; }\n"),
    )

    module = _import(output)
    assert module["Foo"]._fields_ == [("x", ctypes.c_int)]
    assert module["b_Foo"]._fields_ == [("y", ctypes.c_double)]
    assert sorted(module["__all__"]) == ["Foo", "b_Foo"]
