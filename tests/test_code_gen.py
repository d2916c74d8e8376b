from jsgen.code_gen.common import EmitOptions
from jsgen.code_gen.stringify_gen import LITERAL_SPLICE_HELPER
from jsgen.errors import UNRESOLVED_MODEL, UNSUPPORTED_DECLARATION


def test_role_example(generate, role_header):
    result = generate(role_header)
    code = result.code
    assert result.diagnostics == []
    assert "int _parse_role(Jsp *jsp, role *out, JsGenAllocator *a) {" in code
    assert "int parse_role(const char *json, role *out, JsGenAllocator *a) {" in code
    assert "int parse_role_list(const char *json, role **out, size_t *out_count, JsGenAllocator *a) {" in code
    assert "int _stringify_role(Jsb *jsb, role *in) {" in code
    assert "char *stringify_role_indent(role *in, int indent) {" in code
    assert "#define stringify_role(in) stringify_role_indent((in), 0)" in code
    assert "#define stringify_role_list(in, count) stringify_role_list_indent((in), (count), 0)" in code


def test_preamble_includes_and_prototypes(generate, role_header):
    code = generate(role_header).code
    assert code.startswith("// Generated by jsgen. Do not edit.\n")
    for include in ("jsgen.h", "jsb.h", "jsp.h"):
        assert f"#include \"{include}\"" in code
    proto = "int _parse_role(Jsp *jsp, role *out, JsGenAllocator *a);"
    assert proto in code
    assert code.index(proto) < code.index("int _parse_role(Jsp *jsp, role *out, JsGenAllocator *a) {")
    assert LITERAL_SPLICE_HELPER not in code


def test_key_dispatch_in_declaration_order(generate, role_header):
    code = generate(role_header).code
    first = code.index("if (strcmp(jsp->string, \"id\") == 0) {")
    second = code.index("} else if (strcmp(jsp->string, \"name\") == 0) {")
    assert first < second
    assert "out->id = (int)jsp->number;" in code


def test_unknown_keys_are_skipped(generate, role_header):
    code = generate(role_header).code
    skip = code.index("err = jsp_skip(jsp);")
    assert code.rindex("} else {", 0, skip) > code.index("strcmp(jsp->string, \"name\")")


def test_model_without_fields_still_skips(generate):
    code = generate("JSONP typedef struct { int hidden ignore(); } empty;").code
    assert "strcmp(jsp->string" not in code
    assert "err = jsp_skip(jsp);" in code


def test_string_copy_checks_allocation(generate, role_header):
    code = generate(role_header).code
    assert "out->name = jsgen_malloc(a, s_len + 1);" in code
    assert "if (out->name == NULL) return JSGEN_ERR_NOMEM;" in code


def test_stringify_fields(generate, role_header):
    code = generate(role_header).code
    assert "if (jsb_key(jsb, \"id\")) return -1;" in code
    assert "if (jsb_int(jsb, (int)in->id)) return -1;" in code
    guard = code.index("if (in->name != NULL) {")
    assert guard < code.index("if (jsb_key(jsb, \"name\")) return -1;")
    assert "if (jsb_nstring(jsb, in->name, strlen(in->name))) return -1;" in code


def test_direction_flags(generate):
    code = generate("JSONS struct point { float x; }; JSONP typedef struct { int y; } in_only;").code
    assert "_stringify_point(Jsb *jsb, struct point *in)" in code
    assert "_parse_point" not in code
    assert "_parse_in_only(Jsp *jsp, in_only *out, JsGenAllocator *a)" in code
    assert "_stringify_in_only" not in code


def test_alias_used_for_both_directions(generate):
    code = generate("JSON typedef struct { int id alias(\"ID\"); } m;").code
    assert "strcmp(jsp->string, \"ID\")" in code
    assert "jsb_key(jsb, \"ID\")" in code
    assert "\"id\"" not in code


def test_counter_field_excluded_and_written(generate):
    text = """
    JSON typedef struct {
        int count;
        float *samples sized_by(count);
    } series;
    """
    code = generate(text).code
    assert "strcmp(jsp->string, \"count\")" not in code
    assert "jsb_key(jsb, \"count\")" not in code
    assert "out->count = (int)len;" in code
    assert "out->samples = jsgen_malloc(a, sizeof(float) * len);" in code
    assert "size_t count = (size_t)in->count;" in code
    assert "if (jsb_number(jsb, in->samples[i], 5)) return -1;" in code


def test_float_precision_option(generate):
    code = generate("JSONS typedef struct { double x; } m;", EmitOptions(float_precision=2)).code
    assert "jsb_number(jsb, in->x, 2)" in code


def test_counted_string(generate):
    text = "JSON typedef struct { int name_len; char *name sized_by(name_len); } m;"
    code = generate(text).code
    assert "out->name_len = (int)s_len;" in code
    assert "jsb_nstring(jsb, in->name, (size_t)in->name_len)" in code


def test_inline_array_is_bounded(generate):
    code = generate("JSON typedef struct { int n; int values[4] sized_by(n); } m;").code
    assert "size_t cap = sizeof(out->values) / sizeof(out->values[0]);" in code
    assert "jsgen_malloc(a, sizeof(int) * len)" not in code
    assert "out->n = (int)i;" in code
    assert "size_t count = (size_t)in->n < cap ? (size_t)in->n : cap;" in code


def test_string_buffer(generate):
    code = generate("JSON typedef struct { char label[16]; } m;").code
    assert "strncpy(out->label, jsp->string, sizeof(out->label) - 1);" in code
    assert "const char *end = memchr(in->label, '\\0', sizeof(in->label));" in code
    assert "if (jsb_nstring(jsb, in->label, len)) return -1;" in code
    assert "strnlen" not in code


def test_pointer_to_scalar(generate):
    code = generate("JSON typedef struct { int *maybe; } m;").code
    assert "out->maybe = jsgen_malloc(a, sizeof(int));" in code
    assert "*out->maybe = (int)jsp->number;" in code
    assert "jsb_int(jsb, (int)*in->maybe)" in code


def test_json_literal(generate):
    code = generate("JSON typedef struct { char *extra json_literal; } m;").code
    assert f"static int {LITERAL_SPLICE_HELPER}(Jsb *jsb, const char *raw) {{" in code
    assert code.count(f"static int {LITERAL_SPLICE_HELPER}") == 1
    assert f"if ({LITERAL_SPLICE_HELPER}(jsb, in->extra)) return -1;" in code
    assert "jsp_skip_end(jsp);" in code
    assert "memcpy(out->extra, &jsp->buffer[start], raw_len);" in code


def test_delegation_by_struct_tag(generate):
    text = """
    JSON typedef struct role { int id; } Role;
    JSON typedef struct {
        struct role *owner;
        Role lead;
        Role *members sized_by(member_count);
        int member_count;
    } team;
    """
    result = generate(text)
    code = result.code
    assert result.diagnostics == []
    assert "err = _parse_Role(jsp, out->owner, a);" in code
    assert "err = _parse_Role(jsp, &out->lead, a);" in code
    assert "err = _parse_Role(jsp, &out->members[i], a);" in code
    assert "if (_stringify_Role(jsb, in->owner)) return -1;" in code
    assert "if (_stringify_Role(jsb, &in->lead)) return -1;" in code
    assert "if (_stringify_Role(jsb, &in->members[i])) return -1;" in code


def test_unresolved_model_reported_once_per_direction(generate):
    text = "JSON typedef struct { struct missing *a; struct missing *b; } m;"
    result = generate(text)
    assert [d.kind for d in result.diagnostics] == [UNRESOLVED_MODEL, UNRESOLVED_MODEL]
    assert "_parse_missing(jsp, out->a, a)" in result.code


def test_reference_to_model_without_direction(generate):
    text = "JSONP typedef struct { int x; } parsed; JSONS typedef struct { parsed p; } out_only;"
    result = generate(text)
    assert [d.kind for d in result.diagnostics] == [UNRESOLVED_MODEL]
    assert "_stringify_parsed(jsb, &in->p)" in result.code


def test_double_pointer_is_unsupported(generate):
    result = generate("JSON typedef struct { char **argv; int x; } m;")
    assert UNSUPPORTED_DECLARATION in [d.kind for d in result.diagnostics]
    assert "jsb_key(jsb, \"argv\")" not in result.code
    assert "jsb_key(jsb, \"x\")" in result.code


def test_self_reference_has_prototype(generate):
    code = generate("JSON typedef struct node { struct node *next; int v; } node;").code
    assert code.index("int _parse_node(Jsp *jsp, node *out, JsGenAllocator *a);") < \
        code.index("err = _parse_node(jsp, out->next, a);")


def test_parse_starts_from_zeroed_output(generate, role_header):
    code = generate(role_header).code
    body = code.index("int _parse_role(Jsp *jsp, role *out, JsGenAllocator *a) {")
    assert code.index("memset(out, 0, sizeof(*out));", body) < code.index("jsp_begin_object(jsp)", body)


def test_literal_field_with_scalar_value_is_stored_as_json(generate):
    code = generate("JSON typedef struct { int raw_len; char *raw json_literal sized_by(raw_len); } m;").code
    helper = "static char *_jsgen_literal_scalar(Jsp *jsp, JsGenAllocator *a) {"
    assert code.count(helper) == 1
    assert "if (jsp->type == JSP_TYPE_STRING) {" in code
    assert "raw[n++] = '\"';" in code
    assert "snprintf(raw, 32, \"%.17g\", jsp->number);" in code
    assert "out->raw = _jsgen_literal_scalar(jsp, a);" in code
    assert "out->raw_len = (int)strlen(out->raw);" in code
    assert "memcpy(out->raw, jsp->string" not in code


def test_literal_helpers_follow_directions(generate):
    code = generate("JSONS typedef struct { char *raw json_literal; } m;").code
    assert "_jsgen_literal_scalar" not in code
    assert LITERAL_SPLICE_HELPER in code


def test_wire_names_are_escaped(generate):
    code = generate('JSON typedef struct { int q alias("a\\"b\\\\c"); } m;').code
    assert 'strcmp(jsp->string, "a\\"b\\\\c") == 0' in code
    assert 'jsb_key(jsb, "a\\"b\\\\c")' in code
