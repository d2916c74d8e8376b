# errors.py
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# Diagnostic kinds collected while building models and emitting code
UNRESOLVED_COUNTER = "UnresolvedCounterReference"
UNRESOLVED_MODEL = "UnresolvedModelReference"
MALFORMED_ANNOTATION = "MalformedAnnotation"
UNSUPPORTED_DECLARATION = "UnsupportedDeclaration"


class JsgenError(Exception):
    """Base class for failures that abort processing of one input."""

    def __init__(self, message, source=None, line=None):
        self.message = message
        self.source = source
        self.line = line
        super().__init__(self.__str__())

    def __str__(self):
        location = ""
        if self.source:
            location = f"{self.source}:{self.line}: " if self.line else f"{self.source}: "
        return f"{location}{self.message}"


class FileReadError(JsgenError):
    """Input file could not be read."""


class LexicalError(JsgenError):
    """Tokenizer could not make progress (unterminated literal or comment)."""


@dataclass
class Diagnostic:
    kind: str
    message: str
    source: Optional[str] = None
    line: Optional[int] = None

    def __str__(self):
        where = self.source or "<input>"
        if self.line:
            where = f"{where}:{self.line}"
        return f"{where}: {self.kind}: {self.message}"

    def log(self):
        logger.warning(str(self))
