"""Emitter tests."""

import ctypes
import json

import pytest

from cxxbind.core.errors import GenerationError
from cxxbind.core.schema import (
    Class,
    Enumeration,
    EnumItem,
    Field,
    Function,
    Method,
    Parameter,
    SourceLocation,
)
from cxxbind.core.type_database import TypeDatabase
from cxxbind.generators import TEMPLATES, CodeGen, CtypesGenerator, JsonGenerator, emit, get_template
from cxxbind.pipeline.config import Options
from cxxbind.plugins.base import LibraryHelpers

from conftest import add_struct


@pytest.fixture
def type_db():
    db = TypeDatabase()
    db.setup_type_maps()
    return db


@pytest.fixture
def options(tmp_path):
    return Options(namespace="demo", output_dir=str(tmp_path), assembly="none").validate()


def _load(path):
    namespace = {}
    exec(compile(path.read_text(), str(path), "exec"), namespace)
    return namespace


def test_codegen_blocks():
    gen = CodeGen()
    with gen.block("def f():"):
        gen.line("return 1")
    with gen.block("items = [", "]"):
        gen.line("1,")
    gen.comment("two\nlines")

    assert gen.output() == "def f():\n    return 1\nitems = [\n    1,\n]\n# two\n# lines\n"


def test_codegen_blank_lines_do_not_stack():
    gen = CodeGen()
    gen.blank(2)
    gen.line("a = 1")
    gen.blank(2)
    gen.blank()
    gen.line("b = 2")
    gen.blank(2)

    assert gen.output() == "a = 1\n\n\nb = 2\n"


def test_codegen_docstrings():
    gen = CodeGen()
    with gen.block("class A:"):
        gen.docstring('Says "hi"')
    with gen.block("class B:"):
        gen.docstring("First\nsecond \\ line")

    assert gen.output() == (
        'class A:\n'
        '    """Says "hi\\""""\n'
        'class B:\n'
        '    """First\n'
        '    second \\\\ line\n'
        '    """\n'
    )


def test_template_registry():
    assert set(TEMPLATES) == {"ctypes", "json"}
    assert get_template("ctypes") is CtypesGenerator
    with pytest.raises(GenerationError, match="Unknown template"):
        get_template("csharp")


def test_ctypes_module_is_importable(library, unit, type_db, options):
    point = add_struct(library, unit, "Point", ("x", "int"), ("y", "int"))
    node = add_struct(library, unit, "Node", ("value", "double"), ("next", "Node*"), ("origin", "Point"))
    color = library.create(Enumeration, unit, name="Color")
    library.create(EnumItem, color, name="RED", value=0)
    library.create(EnumItem, color, name="BLUE", value=4)
    fn = library.create(Function, unit, name="node_count", return_type="size_t")
    library.create(Parameter, fn, name="head", type="Node *", index=0)

    [path] = CtypesGenerator(library, type_db, options).generate()

    assert path.name == "demo.py"
    module = _load(path)
    assert issubclass(module["Point"], ctypes.Structure)
    assert [name for name, _ in module["Node"]._fields_] == ["value", "next", "origin"]
    assert module["Node"]._fields_[2][1] is module["Point"]
    assert module["Color"].BLUE == 4
    assert module["node_count"] is None
    assert set(module["__all__"]) == {"Point", "Node", "Color", "node_count"}
    assert point.name in path.read_text() and node.name in path.read_text()


def test_ignored_and_incomplete_classes_are_skipped(library, unit, type_db, options):
    add_struct(library, unit, "Visible", ("x", "int"))
    add_struct(library, unit, "Hidden", ("x", "int")).ignored = True
    library.create(Class, unit, name="Opaque", is_incomplete=True)

    [path] = CtypesGenerator(library, type_db, options).generate()
    text = path.read_text()

    assert text.count("class Visible(") == 1
    assert "Hidden" not in text
    assert "Opaque" not in text


def test_by_value_members_are_laid_out_first(library, unit, type_db, options):
    outer = add_struct(library, unit, "Outer", ("inner", "Inner"))
    add_struct(library, unit, "Inner", ("a", "int"))

    [path] = CtypesGenerator(library, type_db, options).generate()
    module = _load(path)

    assert ctypes.sizeof(module["Outer"]) == ctypes.sizeof(ctypes.c_int)
    assert outer.name == "Outer"


def test_anonymous_member_type_uses_renamed_class(library, unit, type_db, options):
    outer = add_struct(library, unit, "Outer")
    anonymous = library.create(Class, outer, name="Outer_AnonymousUnion0", is_union=True)
    library.create(Field, anonymous, name="i", type="int")
    library.create(Field, anonymous, name="f", type="float")
    field = library.create(Field, outer, name="data", type="")
    field.metadata["type_declaration_id"] = anonymous.id

    [path] = CtypesGenerator(library, type_db, options).generate()
    module = _load(path)

    assert issubclass(module["Outer_AnonymousUnion0"], ctypes.Union)
    assert module["Outer"]._fields_[0][1] is module["Outer_AnonymousUnion0"]


def test_classes_with_virtual_methods_stay_opaque(library, unit, type_db, options):
    cls = library.create(Class, unit, name="Shape")
    library.create(Field, cls, name="id", type="int")
    library.create(Method, cls, name="area", return_type="double", is_virtual=True)

    [path] = CtypesGenerator(library, type_db, options).generate()
    module = _load(path)

    assert not hasattr(module["Shape"], "_fields_") or module["Shape"]._fields_ == []


def test_base_classes_are_anonymous_members(library, unit, type_db, options):
    add_struct(library, unit, "Base", ("id", "int"))
    derived = add_struct(library, unit, "Derived", ("extra", "float"))
    derived.bases.append("Base")

    [path] = CtypesGenerator(library, type_db, options).generate()
    module = _load(path)

    instance = module["Derived"]()
    instance.id = 7
    assert instance._base.id == 7


def test_debug_adds_provenance(library, unit, type_db, tmp_path):
    options = Options(namespace="demo", output_dir=str(tmp_path), assembly="none", debug=True).validate()
    cls = add_struct(library, unit, "Located", ("x", "int"))
    cls.location = SourceLocation("include/api.h", 12, 1)
    cls.rename("Renamed")

    [path] = CtypesGenerator(library, type_db, options).generate()

    assert "# include/api.h:12 Located" in path.read_text()


def test_library_name_binds_cdll(library, unit, type_db, tmp_path):
    options = Options(namespace="demo", output_dir=str(tmp_path), assembly="none",
                      library_name="m").validate()
    library.create(Function, unit, name="cos", return_type="double")

    [path] = CtypesGenerator(library, type_db, options).generate()
    text = path.read_text()

    assert "ctypes.util.find_library('m')" in text
    assert "cos = _bind('cos', ctypes.c_double, [])" in text


def test_json_dump(library, unit, type_db, options):
    add_struct(library, unit, "Point", ("x", "int"))
    options.template = "json"

    [path] = emit(library, type_db, options)

    data = json.loads(path.read_text())
    assert path.name == "demo.json"
    assert data["namespace"] == "demo"
    assert data["translation_units"][0]["classes"][0]["name"] == "Point"
    assert data["types"] == {"Point": "Point"}
    assert JsonGenerator.name == "json"


def test_emit_wraps_failures(library, unit, type_db, tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("")
    options = Options(namespace="demo", output_dir=str(blocker / "out"), assembly="none").validate()
    add_struct(library, unit, "Point", ("x", "int"))

    with pytest.raises(GenerationError):
        emit(library, type_db, options)


def test_duplicate_module_names_are_rejected(library, unit, type_db, options, tmp_path):
    add_struct(library, unit, "Point", ("x", "int"))
    add_struct(library, unit, "Point", ("y", "int"))

    with pytest.raises(GenerationError, match="Point"):
        emit(library, type_db, options)
    assert not (tmp_path / "demo.py").exists()


def test_plain_class_gets_layout(library, unit, type_db, options):
    cls = library.create(Class, unit, name="Foo")
    library.create(Field, cls, name="x", type="int")

    module = _load(emit(library, type_db, options)[0])

    assert module["Foo"]._fields_ == [("x", ctypes.c_int)]


def test_transform_can_keep_a_class_opaque(library, unit, type_db, options):
    add_struct(library, unit, "Handle", ("x", "int"))
    LibraryHelpers(library).set_class_as_opaque("Handle")

    module = _load(emit(library, type_db, options)[0])

    assert "_fields_" not in module["Handle"].__dict__
