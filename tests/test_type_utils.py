import pytest

from jsgen.type_utils import (c_string_literal, encode_call, get_decode_type, get_encode_type, is_scalar,
                              is_string_type, leaf_type_name, model_ref_name, pointer_level)


@pytest.mark.parametrize("type_str,decode,encode", [
    ("int", "number", "int"),
    ("unsigned long", "number", "int"),
    ("uint8_t", "number", "int"),
    ("size_t", "number", "int"),
    ("float", "number", "number"),
    ("double", "number", "number"),
    ("bool", "boolean", "bool"),
    ("_Bool", "boolean", "bool"),
    ("char*", "string", "string"),
    ("struct role", None, None),
    ("Role", None, None),
])
def test_type_tables(type_str, decode, encode):
    assert get_decode_type(type_str) == decode
    assert get_encode_type(type_str) == encode


def test_lookup_strips_pointer_markers():
    assert get_decode_type("int*") == "number"
    assert get_decode_type("char**") == "string"
    assert get_encode_type("double**") == "number"
    assert get_decode_type("struct role*") is None


def test_scalar_and_string_checks_do_not_strip():
    assert is_scalar("int")
    assert not is_scalar("int*")
    assert is_string_type("char*")
    assert not is_string_type("char**")
    assert not is_string_type("char")


def test_leaf_and_pointer_level():
    assert leaf_type_name("struct role**") == "struct role"
    assert leaf_type_name("int") == "int"
    assert pointer_level("struct role**") == 2
    assert pointer_level("int") == 0


@pytest.mark.parametrize("type_str,name", [
    ("struct role*", "role"),
    ("union value", "value"),
    ("Role", "Role"),
])
def test_model_ref_name(type_str, name):
    assert model_ref_name(type_str) == name


def test_encode_call():
    assert encode_call("number", "in->x") == "jsb_number(jsb, in->x, 5)"
    assert encode_call("number", "in->x", 3) == "jsb_number(jsb, in->x, 3)"
    assert encode_call("int", "in->id") == "jsb_int(jsb, (int)in->id)"
    assert encode_call("bool", "in->on") == "jsb_bool(jsb, in->on)"
    assert encode_call("string", "in->s") == "jsb_nstring(jsb, in->s, strlen(in->s))"
    assert encode_call("blob", "in->b") is None


@pytest.mark.parametrize("text,literal", [
    ("id", '"id"'),
    ('a"b', '"a\\"b"'),
    ("back\\slash", '"back\\\\slash"'),
    ("tab\there", '"tab\\there"'),
    ("\x01", '"\\001"'),
])
def test_c_string_literal(text, literal):
    assert c_string_literal(text) == literal
