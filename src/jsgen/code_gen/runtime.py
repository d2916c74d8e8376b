# code_gen/runtime.py
import logging

from ..header_parser import FIELD_ANNOTATIONS, MODEL_MARKERS

logger = logging.getLogger(__name__)

RUNTIME_HEADER_NAME = "jsgen.h"

# Status codes shared by every generated parser
JSGEN_OK = 0
JSGEN_ERR_NOMEM = -100


def _marker_defines():
    c_code = "// Annotation markers: expand to nothing for the C compiler, read by jsgen.\n"
    for marker in sorted(MODEL_MARKERS):
        if marker.startswith("JSGEN_"):
            c_code += f"#define {marker}\n"
    for spelling in sorted(FIELD_ANNOTATIONS):
        if not spelling.startswith("jsgen_"):
            continue
        if FIELD_ANNOTATIONS[spelling] in ("alias", "sized_by"):
            c_code += f"#define {spelling}(name)\n"
        elif FIELD_ANNOTATIONS[spelling] == "ignore":
            c_code += f"#define {spelling}()\n"
        else:
            c_code += f"#define {spelling}\n"
    c_code += "\n#ifndef JSGEN_NO_STRIP\n"
    for marker in sorted(MODEL_MARKERS):
        if not marker.startswith("JSGEN_"):
            c_code += f"#define {marker} JSGEN_{marker}\n"
    for spelling in sorted(FIELD_ANNOTATIONS):
        if not spelling.startswith("jsgen_"):
            c_code += f"#define {spelling} jsgen_{spelling}\n"
    c_code += "#endif // JSGEN_NO_STRIP\n\n"
    return c_code


def generate_runtime_header():
    """
    Generates jsgen.h: annotation macros plus the allocator interface used by
    generated parsers. The arena is a caller-owned object; nothing here keeps
    global state.
    """
    c_code = "// jsgen runtime support. Generated by jsgen.\n"
    c_code += "#ifndef JSGEN_H\n#define JSGEN_H\n\n"
    c_code += "#include <stdbool.h>\n"
    c_code += "#include <stddef.h>\n"
    c_code += "#include <stdint.h>\n"
    c_code += "#include <stdlib.h>\n"
    c_code += "#include <string.h>\n\n"

    c_code += _marker_defines()

    c_code += f"#define JSGEN_OK {JSGEN_OK}\n"
    c_code += f"#define JSGEN_ERR_NOMEM ({JSGEN_ERR_NOMEM})\n\n"

    c_code += "// Allocator handle passed to every generated parse routine\n"
    c_code += "typedef struct {\n"
    c_code += "    void *ctx;\n"
    c_code += "    void *(*alloc)(void *ctx, size_t size);\n"
    c_code += "} JsGenAllocator;\n\n"

    c_code += "static inline void *jsgen_malloc(JsGenAllocator *a, size_t size) {\n"
    c_code += "    if (a == NULL || a->alloc == NULL) return NULL;\n"
    c_code += "    return a->alloc(a->ctx, size);\n"
    c_code += "}\n\n"

    c_code += "// Bump allocator over a caller-provided buffer\n"
    c_code += "typedef struct {\n"
    c_code += "    unsigned char *data;\n"
    c_code += "    size_t capacity;\n"
    c_code += "    size_t used;\n"
    c_code += "} JsGenArena;\n\n"

    c_code += "static inline void jsgen_arena_init(JsGenArena *arena, void *buffer, size_t capacity) {\n"
    c_code += "    arena->data = (unsigned char *)buffer;\n"
    c_code += "    arena->capacity = capacity;\n"
    c_code += "    arena->used = 0;\n"
    c_code += "}\n\n"

    c_code += "static inline void *jsgen_arena_alloc(void *ctx, size_t size) {\n"
    c_code += "    JsGenArena *arena = (JsGenArena *)ctx;\n"
    c_code += "    size_t align = sizeof(void *);\n"
    c_code += "    size_t start = (arena->used + align - 1) & ~(align - 1);\n"
    c_code += "    if (start > arena->capacity || size > arena->capacity - start) return NULL;\n"
    c_code += "    arena->used = start + size;\n"
    c_code += "    return arena->data + start;\n"
    c_code += "}\n\n"

    c_code += "// Releases everything allocated from the arena at once\n"
    c_code += "static inline void jsgen_arena_reset(JsGenArena *arena) {\n"
    c_code += "    arena->used = 0;\n"
    c_code += "}\n\n"

    c_code += "static inline JsGenAllocator jsgen_arena_allocator(JsGenArena *arena) {\n"
    c_code += "    JsGenAllocator a = { arena, jsgen_arena_alloc };\n"
    c_code += "    return a;\n"
    c_code += "}\n\n"

    c_code += "static inline void *jsgen_heap_alloc(void *ctx, size_t size) {\n"
    c_code += "    (void)ctx;\n"
    c_code += "    return malloc(size);\n"
    c_code += "}\n\n"

    c_code += "// Allocations made through this allocator are released with free()\n"
    c_code += "static inline JsGenAllocator jsgen_heap_allocator(void) {\n"
    c_code += "    JsGenAllocator a = { NULL, jsgen_heap_alloc };\n"
    c_code += "    return a;\n"
    c_code += "}\n\n"

    c_code += "#endif // JSGEN_H\n"
    return c_code
