# code_gen/emitter.py
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from ..errors import Diagnostic
from .common import CWriter, EmitContext, EmitOptions
from .parse_gen import generate_literal_scalar_helper, generate_parse_unit, parse_prototypes
from .stringify_gen import generate_literal_splice_helper, generate_stringify_unit, stringify_prototypes

logger = logging.getLogger(__name__)


@dataclass
class EmitResult:
    code: str = ""
    diagnostics: List[Diagnostic] = field(default_factory=list)


def _has_literal_fields(models, direction):
    return any(getattr(m, direction) and any(f.is_json_literal for f in m.dispatch_fields()) for m in models)


def generate_preamble(models, options):
    w = CWriter()
    w.add(f"// {options.banner}")
    w.add("#pragma once")
    w.add()
    for include in options.includes:
        w.add(f"#include \"{include}\"")
    w.add("#include <stdbool.h>")
    w.add("#include <stddef.h>")
    w.add("#include <stdio.h>")
    w.add("#include <string.h>")
    w.add()

    if models:
        w.add("// Forward declarations")
        for m in models:
            if m.parse:
                for proto in parse_prototypes(m):
                    w.add(proto)
            if m.stringify:
                for proto in stringify_prototypes(m):
                    w.add(proto)
        w.add()

    if _has_literal_fields(models, "parse"):
        w.lines.extend(generate_literal_scalar_helper())
    if _has_literal_fields(models, "stringify"):
        w.lines.extend(generate_literal_splice_helper())
    return w.lines


def generate_all_code(models, options: EmitOptions = None) -> EmitResult:
    """
    Emits one C unit for all models in discovery order: preamble, then the
    parse and stringify routines each model is annotated for.
    """
    ctx = EmitContext(models, options)
    lines = generate_preamble(models, ctx.options)

    for m in models:
        if not (m.parse or m.stringify):
            continue
        logger.info(f"Generating routines for {m.name}")
        if m.parse:
            lines.extend(generate_parse_unit(ctx, m))
        if m.stringify:
            lines.extend(generate_stringify_unit(ctx, m))

    logger.debug(f"Emitted {len(lines)} lines for {len(models)} model(s)")
    return EmitResult(code="\n".join(lines) + "\n", diagnostics=ctx.diagnostics)


def write_generated_file(path, code):
    """Writes generated text to path, creating parent directories."""
    path = Path(path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(code)
    logger.info(f"Wrote {path}")
    return path
