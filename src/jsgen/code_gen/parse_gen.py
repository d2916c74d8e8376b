# code_gen/parse_gen.py
import logging

from ..errors import Diagnostic, UNSUPPORTED_DECLARATION
from ..type_utils import c_string_literal, get_decode_type, is_scalar, is_string_type, pointer_level
from .common import C_NOMEM_STATUS, CWriter

logger = logging.getLogger(__name__)

LITERAL_SCALAR_HELPER = "_jsgen_literal_scalar"


def generate_literal_scalar_helper():
    """
    C helper that stores a string, number or boolean value of a literal field
    as JSON text, so splicing it back yields the same value.
    """
    w = CWriter()
    w.add("// Re-encodes the current scalar value as JSON text; NULL when allocation fails")
    w.open(f"static char *{LITERAL_SCALAR_HELPER}(Jsp *jsp, JsGenAllocator *a) {{")
    w.open("if (jsp->type == JSP_TYPE_BOOLEAN) {")
    w.add("const char *text = jsp->boolean ? \"true\" : \"false\";")
    w.add("char *raw = jsgen_malloc(a, strlen(text) + 1);")
    w.add("if (raw) memcpy(raw, text, strlen(text) + 1);")
    w.add("return raw;")
    w.close()
    w.open("if (jsp->type == JSP_TYPE_STRING) {")
    w.add("const char *s = jsp->string ? jsp->string : \"\";")
    w.add("size_t s_len = strlen(s);")
    w.add("char *raw = jsgen_malloc(a, s_len * 6 + 3);")
    w.add("if (raw == NULL) return NULL;")
    w.add("size_t n = 0;")
    w.add("raw[n++] = '\"';")
    w.open("for (size_t i = 0; i < s_len; i++) {")
    w.add("unsigned char c = (unsigned char)s[i];")
    w.open("if (c == '\"' || c == '\\\\') {")
    w.add("raw[n++] = '\\\\';")
    w.add("raw[n++] = (char)c;")
    w.reopen("} else if (c < 0x20) {")
    w.add("n += (size_t)snprintf(&raw[n], 7, \"\\\\u%04x\", c);")
    w.reopen("} else {")
    w.add("raw[n++] = (char)c;")
    w.close()
    w.close()
    w.add("raw[n++] = '\"';")
    w.add("raw[n] = '\\0';")
    w.add("return raw;")
    w.close()
    w.add("char *raw = jsgen_malloc(a, 32);")
    w.add("if (raw) snprintf(raw, 32, \"%.17g\", jsp->number);")
    w.add("return raw;")
    w.close()
    w.add()
    return w.lines


def _check(w):
    w.add("if (err) return err;")


def _alloc(w, target, size_expr):
    w.add(f"{target} = jsgen_malloc(a, {size_expr});")
    w.add(f"if ({target} == NULL) return {C_NOMEM_STATUS};")


def _emit_string_copy(w, target, counter=None, counter_type=None):
    """Copies the decoded jsp->string into freshly allocated storage at target."""
    w.add("size_t s_len = jsp->string ? strlen(jsp->string) : 0;")
    if counter:
        w.add(f"{counter} = ({counter_type})s_len;")
    w.open("if (s_len > 0) {")
    _alloc(w, target, "s_len + 1")
    w.add(f"memcpy({target}, jsp->string, s_len + 1);")
    w.reopen("} else {")
    w.add(f"{target} = NULL;")
    w.close()


def _emit_literal_capture(w, target, counter=None, counter_type=None):
    """Copies the raw text of an object or array value, unparsed, into target."""
    w.open("if (jsp->type == JSP_TYPE_OBJECT || jsp->type == JSP_TYPE_ARRAY) {")
    w.add("size_t start = jsp->offset - 1;")
    w.add("int depth = 1;")
    w.add("bool in_str = false;")
    w.open("while (jsp->offset < jsp->length && depth > 0) {")
    w.add("char c = jsp->buffer[jsp->offset];")
    w.add("if (c == '\\\\') jsp->offset++;")
    w.add("else if (c == '\"') in_str = !in_str;")
    w.add("else if (!in_str && (c == '{' || c == '[')) depth++;")
    w.add("else if (!in_str && (c == '}' || c == ']')) depth--;")
    w.add("jsp->offset++;")
    w.close()
    w.add("size_t raw_len = jsp->offset - start;")
    if counter:
        w.add(f"{counter} = ({counter_type})raw_len;")
    _alloc(w, target, "raw_len + 1")
    w.add(f"memcpy({target}, &jsp->buffer[start], raw_len);")
    w.add(f"{target}[raw_len] = '\\0';")
    w.add("jsp_skip_end(jsp);")
    w.reopen("} else if (jsp->type == JSP_TYPE_NULL) {")
    w.add(f"{target} = NULL;")
    w.reopen("} else {")
    w.add(f"{target} = {LITERAL_SCALAR_HELPER}(jsp, a);")
    w.add(f"if ({target} == NULL) return {C_NOMEM_STATUS};")
    if counter:
        w.add(f"{counter} = ({counter_type})strlen({target});")
    w.close()


def _emit_scalar_assign(w, target, type_text):
    decode = get_decode_type(type_text)
    if decode == "number":
        w.add(f"{target} = ({type_text})jsp->number;")
    else:
        w.add(f"{target} = jsp->{decode};")


def _emit_element(w, ctx, model, f, target, elem_type):
    """Decodes one array element into target (an lvalue such as out->items[i])."""
    if is_string_type(elem_type):
        w.add("err = jsp_value(jsp);")
        _check(w)
        _emit_string_copy(w, target)
    elif is_scalar(elem_type):
        w.add("err = jsp_value(jsp);")
        _check(w)
        _emit_scalar_assign(w, target, elem_type)
    elif pointer_level(elem_type) == 1:
        suffix = ctx.routine_suffix(elem_type, "parse", model, f)
        w.add("err = jsp_value(jsp);")
        _check(w)
        w.open("if (jsp->type == JSP_TYPE_NULL) {")
        w.add(f"{target} = NULL;")
        w.reopen("} else {")
        _alloc(w, target, f"sizeof({elem_type[:-1]})")
        w.add(f"err = _parse_{suffix}(jsp, {target}, a);")
        _check(w)
        w.close()
    else:
        suffix = ctx.routine_suffix(elem_type, "parse", model, f)
        w.add(f"err = _parse_{suffix}(jsp, &{target}, a);")
        _check(w)


def _emit_array(w, ctx, model, f):
    target = f"out->{f.name}"
    elem_type = f.element_type
    counter = model.counter_of(f)

    w.add("err = jsp_begin_array(jsp);")
    _check(w)
    if f.array_bound:
        w.add(f"size_t cap = sizeof({target}) / sizeof({target}[0]);")
        w.add("size_t i = 0;")
        w.open("while (jsp->offset < jsp->length && jsp->buffer[jsp->offset] != ']') {")
        w.open("if (i >= cap) {")
        w.add("err = jsp_skip(jsp);")
        _check(w)
        w.add("continue;")
        w.close()
        _emit_element(w, ctx, model, f, f"{target}[i]", elem_type)
        w.add("i++;")
        w.close()
        if counter:
            w.add(f"out->{counter.name} = ({counter.type})i;")
    else:
        w.add("size_t len = jsp_array_length(jsp);")
        if counter:
            w.add(f"out->{counter.name} = ({counter.type})len;")
        else:
            w.add("// no counter field: the element count is not stored")
        w.open("if (len > 0) {")
        _alloc(w, target, f"sizeof({elem_type}) * len")
        w.reopen("} else {")
        w.add(f"{target} = NULL;")
        w.close()
        w.open("for (size_t i = 0; i < len; i++) {")
        _emit_element(w, ctx, model, f, f"{target}[i]", elem_type)
        w.close()
    w.add("err = jsp_end_array(jsp);")
    _check(w)


def generate_parse_field(w, ctx, model, f):
    """Emits the statements that decode the value of one field from the current key."""
    target = f"out->{f.name}"
    counter = model.counter_of(f)
    counter_target = f"out->{counter.name}" if counter else None
    counter_type = counter.type if counter else None

    if is_string_type(f.type) and not f.array_bound:
        w.add("err = jsp_value(jsp);")
        _check(w)
        if f.is_json_literal:
            _emit_literal_capture(w, target, counter_target, counter_type)
        else:
            _emit_string_copy(w, target, counter_target, counter_type)
    elif f.is_string_buffer:
        w.add("err = jsp_value(jsp);")
        _check(w)
        w.open("if (jsp->string) {")
        w.add(f"strncpy({target}, jsp->string, sizeof({target}) - 1);")
        w.add(f"{target}[sizeof({target}) - 1] = '\\0';")
        w.reopen("} else {")
        w.add(f"{target}[0] = '\\0';")
        w.close()
    elif f.is_array:
        _emit_array(w, ctx, model, f)
    elif is_scalar(f.type):
        w.add("err = jsp_value(jsp);")
        _check(w)
        _emit_scalar_assign(w, target, f.type)
    elif pointer_level(f.type) == 1:
        pointee = f.base_type
        w.add("err = jsp_value(jsp);")
        _check(w)
        w.open("if (jsp->type == JSP_TYPE_NULL) {")
        w.add(f"{target} = NULL;")
        w.reopen("} else {")
        _alloc(w, target, f"sizeof({pointee})")
        if is_scalar(pointee):
            _emit_scalar_assign(w, f"*{target}", pointee)
        else:
            suffix = ctx.routine_suffix(f.type, "parse", model, f)
            w.add(f"err = _parse_{suffix}(jsp, {target}, a);")
            _check(w)
        w.close()
    elif pointer_level(f.type) > 1:
        ctx.report(Diagnostic(
            UNSUPPORTED_DECLARATION,
            f"'{model.name}.{f.name}' of type '{f.type}' is neither an array nor a single pointer; value skipped",
            model.source, f.line))
        w.add("err = jsp_skip(jsp);")
        _check(w)
    else:
        suffix = ctx.routine_suffix(f.type, "parse", model, f)
        w.add(f"err = _parse_{suffix}(jsp, &{target}, a);")
        _check(w)


def parse_prototypes(model):
    name, ctype = model.simple_name, model.name
    return [
        f"int _parse_{name}(Jsp *jsp, {ctype} *out, JsGenAllocator *a);",
        f"int _parse_{name}_list(Jsp *jsp, {ctype} **out, size_t *out_count, JsGenAllocator *a);",
        f"int parse_{name}(const char *json, {ctype} *out, JsGenAllocator *a);",
        f"int parse_{name}_list(const char *json, {ctype} **out, size_t *out_count, JsGenAllocator *a);",
    ]


def generate_parse_unit(ctx, model):
    """Generates the internal parser, the list parser and their public wrappers for one model."""
    name, ctype = model.simple_name, model.name
    w = CWriter()

    w.add(f"// --- {ctype}: parse ---")
    w.open(f"int _parse_{name}(Jsp *jsp, {ctype} *out, JsGenAllocator *a) {{")
    w.add("(void)a;")
    w.add("memset(out, 0, sizeof(*out));")
    w.add("int err = jsp_begin_object(jsp);")
    _check(w)
    w.open("while (jsp_key(jsp) == 0) {")
    keyword = "if"
    for f in model.dispatch_fields():
        w.open(f"{keyword} (strcmp(jsp->string, {c_string_literal(f.json_name)}) == 0) {{")
        generate_parse_field(w, ctx, model, f)
        w.current_indent_level -= 1
        keyword = "} else if"
    if keyword == "if":
        w.open("{")
    else:
        w.open("} else {")
    w.add("err = jsp_skip(jsp);")
    _check(w)
    w.close()
    w.close()
    w.add("return jsp_end_object(jsp);")
    w.close()
    w.add()

    w.open(f"int parse_{name}(const char *json, {ctype} *out, JsGenAllocator *a) {{")
    w.add("Jsp jsp = {0};")
    w.add("int err = jsp_init(&jsp, json, strlen(json));")
    _check(w)
    w.add(f"err = _parse_{name}(&jsp, out, a);")
    w.add("jsp_free(&jsp);")
    w.add("return err;")
    w.close()
    w.add()

    w.open(f"int _parse_{name}_list(Jsp *jsp, {ctype} **out, size_t *out_count, JsGenAllocator *a) {{")
    w.add("*out = NULL;")
    w.add("*out_count = 0;")
    w.add("int err = jsp_begin_array(jsp);")
    _check(w)
    w.add("size_t len = jsp_array_length(jsp);")
    w.open("if (len > 0) {")
    _alloc(w, "*out", f"sizeof({ctype}) * len")
    w.close()
    w.open("for (size_t i = 0; i < len; i++) {")
    w.add(f"err = _parse_{name}(jsp, &(*out)[i], a);")
    _check(w)
    w.close()
    w.add("err = jsp_end_array(jsp);")
    _check(w)
    w.add("*out_count = len;")
    w.add("return 0;")
    w.close()
    w.add()

    w.open(f"int parse_{name}_list(const char *json, {ctype} **out, size_t *out_count, JsGenAllocator *a) {{")
    w.add("Jsp jsp = {0};")
    w.add("int err = jsp_init(&jsp, json, strlen(json));")
    _check(w)
    w.add(f"err = _parse_{name}_list(&jsp, out, out_count, a);")
    w.add("jsp_free(&jsp);")
    w.add("return err;")
    w.close()
    w.add()

    logger.debug(f"Generated parse unit for {ctype}")
    return w.lines
