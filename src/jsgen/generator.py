# generator.py
import argparse
import logging
import sys
from pathlib import Path

from .code_gen.common import EmitOptions
from .code_gen.emitter import generate_all_code, write_generated_file
from .code_gen.runtime import generate_runtime_header
from .errors import JsgenError
from .header_parser import parse_header_file
from .type_utils import DEFAULT_FLOAT_PRECISION

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "models.g.h"
HEADER_SUFFIX = ".h"


def collect_inputs(paths):
    """
    Expands the command line inputs: files are kept as given, directories
    contribute their *.h regular files (non-recursive, sorted by name).
    Returns (files, missing).
    """
    files, missing = [], []
    for p in paths:
        p = Path(p)
        if p.is_dir():
            found = sorted((c for c in p.iterdir() if c.is_file() and c.suffix == HEADER_SUFFIX),
                           key=lambda c: c.name)
            if not found:
                logger.warning(f"No {HEADER_SUFFIX} files in directory {p}")
            files.extend(found)
        elif p.exists():
            files.append(p)
        else:
            missing.append(p)
    return files, missing


def build_models(files):
    """
    Runs the header parser over every file, accumulating models across files.
    A file that cannot be read or tokenized is reported and skipped; models it
    finished before the failure are kept. Returns (models, diagnostics, failed).
    """
    models, diagnostics, failed = [], [], []
    for path in files:
        try:
            result = parse_header_file(path, models=models)
        except JsgenError as e:
            logger.error(f"Failed to process {path}: {e}")
            failed.append(path)
            continue
        diagnostics.extend(result.diagnostics)
    return models, diagnostics, failed


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="jsgen",
        description="Generate C JSON parse/stringify routines from annotated C headers.")
    parser.add_argument("inputs", nargs="+", metavar="INPUT",
                        help="Header files or directories containing .h files.")
    parser.add_argument("-o", "--output", default=DEFAULT_OUTPUT,
                        help=f"Path of the generated header (default: {DEFAULT_OUTPUT}).")
    parser.add_argument("--runtime-header", default=None, metavar="PATH",
                        help="Also write the jsgen.h runtime support header to PATH.")
    parser.add_argument("--float-precision", type=int, default=DEFAULT_FLOAT_PRECISION,
                        help=f"Fractional digits for floating point output (default: {DEFAULT_FLOAT_PRECISION}).")
    parser.add_argument("--strict", action="store_true",
                        help="Treat warnings (unresolved references, malformed annotations) as failures.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO,
                        format='%(levelname)s: [%(filename)s:%(lineno)d] %(message)s')

    if args.float_precision < 0:
        logger.error(f"--float-precision must be non-negative, got {args.float_precision}")
        return 1

    files, missing = collect_inputs(args.inputs)
    for p in missing:
        logger.error(f"Input not found: {p}")

    models, diagnostics, failed = build_models(files)
    logger.info(f"Collected {len(models)} model(s) from {len(files) - len(failed)} file(s)")

    options = EmitOptions(float_precision=args.float_precision)
    result = generate_all_code(models, options)
    diagnostics.extend(result.diagnostics)

    try:
        write_generated_file(args.output, result.code)
        if args.runtime_header:
            write_generated_file(args.runtime_header, generate_runtime_header())
    except OSError as e:
        logger.error(f"Failed to write output: {e}")
        return 1

    if missing or failed:
        logger.error(f"{len(missing) + len(failed)} input(s) could not be processed")
        return 1
    if diagnostics:
        logger.info(f"{len(diagnostics)} warning(s)")
        if args.strict:
            logger.error("Warnings treated as errors (--strict)")
            return 1

    logger.info("Generation complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
