from jsgen.code_gen.runtime import generate_runtime_header
from jsgen.header_parser import parse_header_text


def test_runtime_header_contents():
    header = generate_runtime_header()
    assert header.startswith("// jsgen runtime support.")
    assert "#ifndef JSGEN_H" in header
    assert "} JsGenAllocator;" in header
    assert "} JsGenArena;" in header
    for name in ("jsgen_malloc", "jsgen_arena_init", "jsgen_arena_alloc",
                 "jsgen_arena_reset", "jsgen_arena_allocator", "jsgen_heap_allocator"):
        assert f"{name}(" in header
    assert "#define JSGEN_ERR_NOMEM (-100)" in header


def test_runtime_header_markers():
    header = generate_runtime_header()
    assert "#define JSGEN_JSON\n" in header
    assert "#define jsgen_alias(name)\n" in header
    assert "#define jsgen_ignore()\n" in header
    assert "#define jsgen_json_literal\n" in header
    strip = header.index("#ifndef JSGEN_NO_STRIP")
    assert header.index("#define JSON JSGEN_JSON") > strip
    assert header.index("#define sized_by jsgen_sized_by") > strip


def test_runtime_header_yields_no_models():
    result = parse_header_text(generate_runtime_header(), source="jsgen.h")
    assert result.models == []
    assert result.diagnostics == []
