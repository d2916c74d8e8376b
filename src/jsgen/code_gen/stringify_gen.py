# code_gen/stringify_gen.py
import logging

from ..errors import Diagnostic, UNSUPPORTED_DECLARATION
from ..type_utils import c_string_literal, encode_call, get_encode_type, is_scalar, is_string_type, pointer_level
from .common import CWriter

logger = logging.getLogger(__name__)

LITERAL_SPLICE_HELPER = "_jsgen_splice_literal"


def _fail_on(w, call):
    w.add(f"if ({call}) return -1;")


def generate_literal_splice_helper():
    """
    C helper that writes a stored JSON literal verbatim as the next value.
    Uses the builder internals exposed by jsb.h when JSB_IMPLEMENTATION is set.
    """
    w = CWriter()
    w.add("// Writes raw JSON text as the next value, or null when it is empty")
    w.open(f"static int {LITERAL_SPLICE_HELPER}(Jsb *jsb, const char *raw) {{")
    w.add("size_t len = raw ? strlen(raw) : 0;")
    w.add("if (len == 0) return jsb_null(jsb);")
    w.add("if (jsb_check_val(jsb)) return -1;")
    w.add("if (!jsb->is_first) jsb_sappend(&jsb->buffer, ',');")
    w.add("jsb_pretty_print_ch(jsb);")
    w.add("jsb_srealloc(&jsb->buffer, jsb->buffer.count + len + 1);")
    w.add("memcpy(jsb->buffer.items + jsb->buffer.count, raw, len);")
    w.add("jsb->buffer.count += len;")
    w.add("jsb->buffer.items[jsb->buffer.count] = '\\0';")
    w.add("jsb->is_first = false;")
    w.add("jsb->is_key = false;")
    w.add("return 0;")
    w.close()
    w.add()
    return w.lines


def _emit_value(w, ctx, model, f, expr, type_text):
    """Emits one array element of type_text held in the lvalue expr."""
    precision = ctx.options.float_precision
    if is_string_type(type_text):
        w.open(f"if ({expr} == NULL) {{")
        _fail_on(w, "jsb_null(jsb)")
        w.close(f"}} else if ({encode_call('string', expr)}) return -1;")
    elif is_scalar(type_text):
        _fail_on(w, encode_call(get_encode_type(type_text), expr, precision))
    elif pointer_level(type_text) == 1:
        suffix = ctx.routine_suffix(type_text, "stringify", model, f)
        w.open(f"if ({expr} == NULL) {{")
        _fail_on(w, "jsb_null(jsb)")
        w.close(f"}} else if (_stringify_{suffix}(jsb, {expr})) return -1;")
    else:
        suffix = ctx.routine_suffix(type_text, "stringify", model, f)
        _fail_on(w, f"_stringify_{suffix}(jsb, &{expr})")


def _emit_array(w, ctx, model, f):
    target = f"in->{f.name}"
    counter = model.counter_of(f)
    _fail_on(w, "jsb_begin_array(jsb)")
    if counter is not None:
        if f.array_bound:
            w.add(f"size_t cap = sizeof({target}) / sizeof({target}[0]);")
            w.add(f"size_t count = (size_t)in->{counter.name} < cap ? (size_t)in->{counter.name} : cap;")
        else:
            w.add(f"size_t count = (size_t)in->{counter.name};")
        w.open("for (size_t i = 0; i < count; ++i) {")
        _emit_value(w, ctx, model, f, f"{target}[i]", f.element_type)
        w.close()
    _fail_on(w, "jsb_end_array(jsb)")


def generate_stringify_field(w, ctx, model, f):
    """Emits the key and value of one field; pointer fields are skipped entirely when NULL."""
    target = f"in->{f.name}"
    precision = ctx.options.float_precision

    if pointer_level(f.type) > 1 and not f.is_array:
        ctx.report(Diagnostic(
            UNSUPPORTED_DECLARATION,
            f"'{model.name}.{f.name}' of type '{f.type}' is neither an array nor a single pointer; not serialized",
            model.source, f.line))
        return

    guarded = f.is_pointer and not f.array_bound
    if guarded:
        w.open(f"if ({target} != NULL) {{")

    _fail_on(w, f"jsb_key(jsb, {c_string_literal(f.json_name)})")
    counter = model.counter_of(f)

    if is_string_type(f.type) and not f.array_bound:
        if f.is_json_literal:
            _fail_on(w, f"{LITERAL_SPLICE_HELPER}(jsb, {target})")
        elif counter is not None:
            _fail_on(w, f"jsb_nstring(jsb, {target}, (size_t)in->{counter.name})")
        else:
            _fail_on(w, encode_call("string", target))
    elif f.is_string_buffer:
        w.open("{")
        w.add(f"const char *end = memchr({target}, '\\0', sizeof({target}));")
        w.add(f"size_t len = end ? (size_t)(end - {target}) : sizeof({target});")
        _fail_on(w, f"jsb_nstring(jsb, {target}, len)")
        w.close()
    elif f.is_array:
        w.open("{")
        _emit_array(w, ctx, model, f)
        w.close()
    elif is_scalar(f.type):
        _fail_on(w, encode_call(get_encode_type(f.type), target, precision))
    elif f.is_pointer:
        if is_scalar(f.base_type):
            _fail_on(w, encode_call(get_encode_type(f.base_type), f"*{target}", precision))
        else:
            suffix = ctx.routine_suffix(f.type, "stringify", model, f)
            _fail_on(w, f"_stringify_{suffix}(jsb, {target})")
    else:
        suffix = ctx.routine_suffix(f.type, "stringify", model, f)
        _fail_on(w, f"_stringify_{suffix}(jsb, &{target})")

    if guarded:
        w.close()


def stringify_prototypes(model):
    name, ctype = model.simple_name, model.name
    return [
        f"int _stringify_{name}(Jsb *jsb, {ctype} *in);",
        f"char *stringify_{name}_indent({ctype} *in, int indent);",
        f"char *stringify_{name}_list_indent({ctype} *in, size_t count, int indent);",
    ]


def generate_stringify_unit(ctx, model):
    """Generates the internal serializer and the indent/list entry points for one model."""
    name, ctype = model.simple_name, model.name
    w = CWriter()

    w.add(f"// --- {ctype}: stringify ---")
    w.open(f"int _stringify_{name}(Jsb *jsb, {ctype} *in) {{")
    _fail_on(w, "jsb_begin_object(jsb)")
    for f in model.dispatch_fields():
        generate_stringify_field(w, ctx, model, f)
    w.add("return jsb_end_object(jsb);")
    w.close()
    w.add()

    w.open(f"char *stringify_{name}_indent({ctype} *in, int indent) {{")
    w.add("Jsb jsb = {.pp = indent};")
    w.open(f"if (_stringify_{name}(&jsb, in)) {{")
    w.add("jsb_free(&jsb);")
    w.add("return NULL;")
    w.close()
    w.add("return jsb_get(&jsb);")
    w.close()
    w.add()
    w.add(f"#define stringify_{name}(in) stringify_{name}_indent((in), 0)")
    w.add()

    w.open(f"char *stringify_{name}_list_indent({ctype} *in, size_t count, int indent) {{")
    w.add("Jsb jsb = {.pp = indent};")
    w.add("if (jsb_begin_array(&jsb)) goto fail;")
    w.open("for (size_t i = 0; i < count; i++) {")
    w.add(f"if (_stringify_{name}(&jsb, &in[i])) goto fail;")
    w.close()
    w.add("if (jsb_end_array(&jsb)) goto fail;")
    w.add("return jsb_get(&jsb);")
    w.add("fail:")
    w.add("jsb_free(&jsb);")
    w.add("return NULL;")
    w.close()
    w.add()
    w.add(f"#define stringify_{name}_list(in, count) stringify_{name}_list_indent((in), (count), 0)")
    w.add()

    logger.debug(f"Generated stringify unit for {ctype}")
    return w.lines
