"""Type database tests."""

import pytest

from cxxbind.core.errors import TypeDatabaseError
from cxxbind.core.schema import Class, Enumeration
from cxxbind.core.type_database import TypeDatabase, TypeDescriptor, normalize_signature


@pytest.fixture
def type_db():
    db = TypeDatabase()
    db.setup_type_maps()
    return db


def test_setup_is_allowed_once():
    db = TypeDatabase()
    assert not db.initialized
    db.setup_type_maps()
    assert db.initialized

    with pytest.raises(TypeDatabaseError):
        db.setup_type_maps()


def test_table_is_read_only(type_db):
    size = len(type_db)

    with pytest.raises(TypeDatabaseError):
        type_db.register("my_int", TypeDescriptor("my_int", "int", "ctypes.c_int"))

    assert len(type_db) == size
    assert "my_int" not in type_db


@pytest.mark.parametrize("signature,expected", [
    ("const char *", "char*"),
    ("unsigned   int", "unsigned int"),
    ("struct Foo", "Foo"),
    ("::ns::Foo", "ns::Foo"),
    ("volatile int &", "int&"),
])
def test_normalize_signature(signature, expected):
    assert normalize_signature(signature) == expected


@pytest.mark.parametrize("signature,ctypes_type", [
    ("int", "ctypes.c_int"),
    ("unsigned long long", "ctypes.c_ulonglong"),
    ("uint8_t", "ctypes.c_uint8"),
    ("std::size_t", "ctypes.c_size_t"),
    ("const char*", "ctypes.c_char_p"),
    ("void *", "ctypes.c_void_p"),
    ("bool", "ctypes.c_bool"),
])
def test_builtin_hits(type_db, signature, ctypes_type):
    assert type_db.lookup(signature).ctypes_type == ctypes_type


def test_void_descriptor(type_db):
    assert type_db.lookup("void").is_void


def test_pointers_and_references_to_primitives(type_db):
    assert type_db.lookup("int*").ctypes_type == "ctypes.POINTER(ctypes.c_int)"
    assert type_db.lookup("double &").ctypes_type == "ctypes.POINTER(ctypes.c_double)"
    assert type_db.lookup("char**").ctypes_type == "ctypes.POINTER(ctypes.c_char_p)"


def test_arrays(type_db):
    descriptor = type_db.lookup("float[16]")
    assert descriptor.ctypes_type == "(ctypes.c_float * 16)"


def test_std_templates_use_base_descriptor(type_db):
    descriptor = type_db.lookup("std::vector<int>")
    assert descriptor.kind == "std"
    assert descriptor.native == "std::vector<int>"
    assert descriptor.python_type == "list"


def test_function_pointers_are_void_pointers(type_db):
    assert type_db.lookup("void(*)(int)").ctypes_type == "ctypes.c_void_p"


def test_miss_passes_through_to_declaration(type_db, library, unit):
    cls = library.create(Class, unit, name="Point", is_struct=True)
    declarations = {"Point": cls}

    descriptor = type_db.lookup("struct Point", declarations)
    assert descriptor.kind == "declaration"
    assert descriptor.ctypes_type == "Point"
    assert descriptor.declaration_id == cls.id

    pointer = type_db.lookup("Point *", declarations)
    assert pointer.ctypes_type == "ctypes.POINTER(Point)"


def test_enum_maps_to_int(type_db, library, unit):
    enum = library.create(Enumeration, unit, name="Color")

    descriptor = type_db.lookup("enum Color", {"Color": enum})
    assert descriptor.kind == "enum"
    assert descriptor.ctypes_type == "ctypes.c_int"


def test_incomplete_class_is_opaque(type_db, library, unit):
    cls = library.create(Class, unit, name="Handle", is_incomplete=True)

    assert type_db.lookup("Handle", {"Handle": cls}).kind == "opaque"
    assert type_db.lookup("Handle*", {"Handle": cls}).ctypes_type == "ctypes.c_void_p"


def test_unknown_type_is_never_an_error(type_db):
    descriptor = type_db.lookup("ns::Mystery")
    assert descriptor.kind == "opaque"
    assert descriptor.python_type == "Mystery"
