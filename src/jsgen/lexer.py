# lexer.py
"""
Tokenizer for the C header subset read by jsgen.

Only what the model builder needs is distinguished: identifiers, string and
character literals, numbers and single-character punctuation. Comments and
preprocessor directives are dropped, so `#define JSON` lines in the runtime
header never look like annotation markers.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable, Iterator, List, Optional

from .errors import LexicalError

logger = logging.getLogger(__name__)


class TokType(Enum):
    IDENT = auto()
    STRING = auto()
    CHAR = auto()
    NUMBER = auto()
    PUNCT = auto()
    EOF = auto()


@dataclass
class Token:
    type: TokType
    text: str    # raw lexeme
    value: str   # identifier name, unquoted literal contents or punctuation char
    line: int

    def is_punct(self, ch):
        return self.type == TokType.PUNCT and self.text == ch

    def is_ident(self, name=None):
        return self.type == TokType.IDENT and (name is None or self.text == name)


_TOKEN_RE = re.compile(
    r"""
      (?P<ws>[ \t\r\f\v]+)
    | (?P<newline>\n)
    | (?P<line_comment>//[^\n]*)
    | (?P<block_comment>/\*.*?\*/)
    | (?P<open_comment>/\*)
    | (?P<string>"(?:[^"\\\n]|\\.)*")
    | (?P<open_string>")
    | (?P<char>'(?:[^'\\\n]|\\.)*')
    | (?P<open_char>')
    | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
    | (?P<number>\.?[0-9](?:[eEpP][+-]|[0-9A-Za-z_.])*)
    | (?P<punct>.)
    """,
    re.VERBOSE | re.DOTALL,
)

# Directive body runs to the first newline not escaped by a backslash
_DIRECTIVE_RE = re.compile(r"#(?:\\\r?\n|\\.|[^\\\n])*")

_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", '"': '"', "'": "'"}


def _unescape(body):
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(_SIMPLE_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def iter_tokens(text: str, source: Optional[str] = None) -> Iterator[Token]:
    """
    Yields header tokens lazily, always ending with a single EOF token.

    Raises LexicalError for unterminated string/char literals and block comments.
    """
    pos = 0
    line = 1
    at_line_start = True
    n = len(text)

    while pos < n:
        if at_line_start and text[pos] == "#":
            m = _DIRECTIVE_RE.match(text, pos)
            line += m.group(0).count("\n")
            pos = m.end()
            continue

        m = _TOKEN_RE.match(text, pos)
        kind = m.lastgroup
        lexeme = m.group(0)
        pos = m.end()

        if kind == "ws":
            continue
        if kind == "newline":
            line += 1
            at_line_start = True
            continue
        if kind == "line_comment":
            continue
        if kind == "block_comment":
            line += lexeme.count("\n")
            continue
        if kind == "open_comment":
            raise LexicalError("unterminated block comment", source, line)
        if kind == "open_string":
            raise LexicalError("unterminated string literal", source, line)
        if kind == "open_char":
            raise LexicalError("unterminated character literal", source, line)

        at_line_start = False
        if kind == "string":
            yield Token(TokType.STRING, lexeme, _unescape(lexeme[1:-1]), line)
        elif kind == "char":
            yield Token(TokType.CHAR, lexeme, _unescape(lexeme[1:-1]), line)
        elif kind == "ident":
            yield Token(TokType.IDENT, lexeme, lexeme, line)
        elif kind == "number":
            yield Token(TokType.NUMBER, lexeme, lexeme, line)
        else:
            yield Token(TokType.PUNCT, lexeme, lexeme, line)

    yield Token(TokType.EOF, "", "", line)


def tokenize(text: str, source: Optional[str] = None) -> List[Token]:
    """Eager form of iter_tokens."""
    tokens = list(iter_tokens(text, source))
    logger.debug(f"Tokenized {source or '<text>'}: {len(tokens)} tokens")
    return tokens


class TokenStream:
    """
    Cursor over a token source with lookahead and rewind.

    Tokens are pulled from the source on demand, so a lexical error surfaces
    only when the cursor reaches it.
    """

    def __init__(self, tokens: Iterable[Token]):
        self._source = iter(tokens)
        self._buffer: List[Token] = []
        self.index = 0

    @classmethod
    def from_text(cls, text, source=None):
        return cls(iter_tokens(text, source))

    def _fill(self, upto):
        while len(self._buffer) <= upto:
            if self._buffer and self._buffer[-1].type == TokType.EOF:
                return
            self._buffer.append(next(self._source))

    def peek(self, offset=0) -> Token:
        self._fill(self.index + offset)
        i = min(self.index + offset, len(self._buffer) - 1)
        return self._buffer[i]

    def next(self) -> Token:
        tok = self.peek()
        if tok.type != TokType.EOF:
            self.index += 1
        return tok

    def at_end(self):
        return self.peek().type == TokType.EOF

    def mark(self):
        return self.index

    def reset(self, mark):
        self.index = mark
