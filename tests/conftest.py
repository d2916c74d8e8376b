import pytest

from jsgen.code_gen.emitter import generate_all_code
from jsgen.header_parser import parse_header_text

ROLE_HEADER = """
#include "jsgen.h"

JSON typedef struct {
    int id;
    char *name;
} role;
"""


@pytest.fixture()
def role_header():
    return ROLE_HEADER


@pytest.fixture()
def models_from():
    def _build(text, source="test.h"):
        return parse_header_text(text, source=source).models
    return _build


@pytest.fixture()
def generate():
    """Parses header text and returns the EmitResult for its models."""
    def _generate(text, options=None):
        models = parse_header_text(text, source="test.h").models
        return generate_all_code(models, options)
    return _generate
