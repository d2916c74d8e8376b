# type_utils.py
import logging

logger = logging.getLogger(__name__)

# Fixed number of fractional digits used when formatting floating point values
DEFAULT_FLOAT_PRECISION = 5

# Mapping from C types to the Jsp value member holding the decoded scalar
DECODE_TYPE_MAP = {
    "int": "number",
    "short": "number",
    "long": "number",
    "long long": "number",
    "unsigned": "number",
    "unsigned int": "number",
    "unsigned short": "number",
    "unsigned long": "number",
    "unsigned long long": "number",
    "int8_t": "number",
    "uint8_t": "number",
    "int16_t": "number",
    "uint16_t": "number",
    "int32_t": "number",
    "uint32_t": "number",
    "int64_t": "number",
    "uint64_t": "number",
    "size_t": "number",
    "float": "number",
    "double": "number",
    "char": "number",
    "signed char": "number",
    "unsigned char": "number",
    "bool": "boolean",
    "_Bool": "boolean",
    "char*": "string",
}

# Mapping from C types to the jsb_<kind> emitter used when stringifying
ENCODE_TYPE_MAP = {
    "int": "int",
    "short": "int",
    "long": "int",
    "long long": "int",
    "unsigned": "int",
    "unsigned int": "int",
    "unsigned short": "int",
    "unsigned long": "int",
    "unsigned long long": "int",
    "int8_t": "int",
    "uint8_t": "int",
    "int16_t": "int",
    "uint16_t": "int",
    "int32_t": "int",
    "uint32_t": "int",
    "int64_t": "int",
    "uint64_t": "int",
    "size_t": "int",
    "float": "number",
    "double": "number",
    "char": "int",
    "signed char": "int",
    "unsigned char": "int",
    "bool": "bool",
    "_Bool": "bool",
    "char*": "string",
}


def leaf_type_name(type_str):
    """Strips trailing pointer markers: 'struct role**' -> 'struct role'."""
    if len(type_str) > 1 and type_str.endswith("*"):
        return leaf_type_name(type_str[:-1].rstrip())
    return type_str


def pointer_level(type_str):
    return len(type_str) - len(type_str.rstrip("*"))


def _lookup(table, type_str):
    if type_str in table:
        return table[type_str]
    if len(type_str) > 1 and type_str.endswith("*"):
        return _lookup(table, type_str[:-1].rstrip())
    return None


def get_decode_type(type_str):
    """Returns 'number', 'boolean', 'string' or None when type_str is not a scalar."""
    return _lookup(DECODE_TYPE_MAP, type_str)


def get_encode_type(type_str):
    """Returns 'int', 'number', 'bool', 'string' or None when type_str is not a scalar."""
    return _lookup(ENCODE_TYPE_MAP, type_str)


def is_string_type(type_str):
    """True only for single-indirection character pointers."""
    return type_str == "char*"


def is_scalar(type_str):
    """Scalar at exactly this level of indirection (no pointer stripping)."""
    return type_str in DECODE_TYPE_MAP


def model_ref_name(type_str):
    """Simple model name referenced by a non-scalar type: 'struct role*' -> 'role'."""
    leaf = leaf_type_name(type_str)
    for prefix in ("struct ", "union ", "enum "):
        if leaf.startswith(prefix):
            return leaf[len(prefix):]
    return leaf


def encode_call(encode_type, value_expr, precision=DEFAULT_FLOAT_PRECISION):
    """Builds the jsb call emitting value_expr, e.g. 'jsb_number(jsb, in->x, 5)'."""
    if encode_type == "number":
        return f"jsb_number(jsb, {value_expr}, {precision})"
    if encode_type == "string":
        return f"jsb_nstring(jsb, {value_expr}, strlen({value_expr}))"
    if encode_type == "int":
        return f"jsb_int(jsb, (int){value_expr})"
    if encode_type == "bool":
        return f"jsb_bool(jsb, {value_expr})"
    logger.warning(f"No encoder for encode type '{encode_type}'")
    return None


_C_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t", "\r": "\\r"}


def c_string_literal(text):
    """Quotes text as a C string literal: 'a"b' -> '"a\\"b"'."""
    out = []
    for ch in text:
        if ch in _C_ESCAPES:
            out.append(_C_ESCAPES[ch])
        elif ord(ch) < 0x20:
            out.append(f"\\{ord(ch):03o}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'
