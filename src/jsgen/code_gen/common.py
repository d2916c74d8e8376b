# code_gen/common.py
import logging
from dataclasses import dataclass
from typing import List, Tuple

from ..errors import Diagnostic, UNRESOLVED_MODEL
from ..type_utils import DEFAULT_FLOAT_PRECISION, leaf_type_name, model_ref_name

logger = logging.getLogger(__name__)

DEFAULT_INCLUDES = ("jsgen.h", "jsb.h", "jsp.h")

# Status returned by generated parsers when the allocator yields NULL
C_NOMEM_STATUS = "JSGEN_ERR_NOMEM"


@dataclass
class EmitOptions:
    float_precision: int = DEFAULT_FLOAT_PRECISION
    includes: Tuple[str, ...] = DEFAULT_INCLUDES
    banner: str = "Generated by jsgen. Do not edit."


class CWriter:
    """Accumulates C source lines at the current indentation level."""

    def __init__(self, indent_level=0):
        self.lines: List[str] = []
        self.current_indent_level = indent_level

    def _indent(self):
        return "    " * self.current_indent_level

    def add(self, line=""):
        self.lines.append(self._indent() + line if line else "")

    def open(self, line):
        """Adds a line ending in '{' and indents what follows."""
        self.add(line)
        self.current_indent_level += 1

    def close(self, line="}"):
        self.current_indent_level -= 1
        self.add(line)

    def reopen(self, line):
        """Closes the current block and opens the next one on the same line, e.g. '} else {'."""
        self.close(line)
        self.current_indent_level += 1

    def render(self):
        return "\n".join(self.lines) + "\n"


class EmitContext:
    """Model lookup shared by the parse and stringify emitters, plus collected diagnostics."""

    def __init__(self, models, options=None):
        self.options = options or EmitOptions()
        self.diagnostics: List[Diagnostic] = []
        self._reported = set()
        self._by_type = {}
        for m in models:
            self._by_type[m.simple_name] = m
            self._by_type[m.name] = m
            if m.tag:
                self._by_type[f"struct {m.tag}"] = m

    def report(self, diag, key=None):
        """Logs and collects diag once per key (every call when key is None)."""
        if key is not None and key in self._reported:
            return
        self._reported.add(key)
        diag.log()
        self.diagnostics.append(diag)

    def routine_suffix(self, type_text, direction, model, f):
        """
        Simple name of the model whose _parse_/_stringify_ routine handles type_text.
        direction is 'parse' or 'stringify'.
        """
        leaf = leaf_type_name(type_text)
        target = self._by_type.get(leaf)
        if target is None:
            name = model_ref_name(type_text)
            self.report(Diagnostic(
                UNRESOLVED_MODEL,
                f"'{model.name}.{f.name}' refers to '{leaf}', which is not an annotated model; "
                f"_{direction}_{name} must be provided elsewhere",
                model.source, f.line), key=(leaf, direction))
            return name
        if not getattr(target, direction):
            self.report(Diagnostic(
                UNRESOLVED_MODEL,
                f"'{model.name}.{f.name}' needs _{direction}_{target.simple_name}, "
                f"but '{target.name}' is not annotated for {direction}",
                model.source, f.line), key=(leaf, direction))
        return target.simple_name
