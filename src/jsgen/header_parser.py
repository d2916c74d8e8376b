# header_parser.py
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import List, Optional

from .errors import (Diagnostic, FileReadError, MALFORMED_ANNOTATION,
                     UNRESOLVED_COUNTER, UNSUPPORTED_DECLARATION)
from .lexer import Token, TokenStream, TokType
from .model import Field, Model

logger = logging.getLogger(__name__)

# Annotation markers and the (parse, stringify) directions they enable
MODEL_MARKERS = {
    "JSON": (True, True),
    "JSGEN_JSON": (True, True),
    "JSONS": (False, True),
    "JSGEN_JSONS": (False, True),
    "JSONP": (True, False),
    "JSGEN_JSONP": (True, False),
}

# Field annotation spellings -> canonical annotation name
FIELD_ANNOTATIONS = {
    "alias": "alias",
    "jsgen_alias": "alias",
    "sized_by": "sized_by",
    "jsgen_sized_by": "sized_by",
    "ignore": "ignore",
    "jsgen_ignore": "ignore",
    "json_literal": "json_literal",
    "jsgen_json_literal": "json_literal",
}

# Dropped from field types
TYPE_QUALIFIERS = {"const", "volatile", "restrict", "register", "static", "extern", "_Atomic"}
AGGREGATE_KEYWORDS = {"struct", "union", "enum"}

# Words that can only be part of a type, never a member name
BUILTIN_TYPE_WORDS = {"void", "char", "short", "int", "long", "float", "double",
                      "signed", "unsigned", "bool", "_Bool"}


def _ends_with_member_name(type_words):
    """'unsigned int x' and 'Role x' end with a name; 'unsigned int' and 'struct role' do not."""
    if len(type_words) < 2:
        return False
    return type_words[-1] not in BUILTIN_TYPE_WORDS and type_words[-2] not in AGGREGATE_KEYWORDS


class BuilderState(Enum):
    SCANNING = auto()     # outside any annotated declaration
    MARKED = auto()       # marker seen, waiting for typedef/struct
    STRUCT_HEAD = auto()  # after 'struct', before the body
    STRUCT_BODY = auto()  # inside the braces
    STRUCT_TAIL = auto()  # after the closing brace, waiting for ';'


@dataclass
class ParseResult:
    models: List[Model] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


def resolve_counters(model: Model, source=None) -> List[Diagnostic]:
    """
    Links every sized_by array to the sibling field holding its element count.
    Only the model's own fields are searched. Returns a diagnostic for each
    counter name that matches no field.
    """
    diagnostics = []
    for f in model.fields:
        if not f.has_counter:
            continue
        counter = model.field_by_name(f.counter_field)
        if counter is not None:
            counter.is_counter_field = True
            continue
        diagnostics.append(Diagnostic(
            UNRESOLVED_COUNTER,
            f"'{model.name}.{f.name}' is sized by '{f.counter_field}', which is not a field of the model",
            source, f.line))
    return diagnostics


class HeaderParser:
    """
    Builds Models from the token stream of one header.

    Models are appended to `models` as soon as their declaration closes, so a
    caller sharing one list across files keeps everything finished before a
    lexical error aborts the current file.
    """

    def __init__(self, stream: TokenStream, source=None, models=None):
        self.stream = stream
        self.source = source
        self.models = models if models is not None else []
        self.diagnostics: List[Diagnostic] = []
        self._reset()

    def _reset(self):
        self.state = BuilderState.SCANNING
        self.depth = 0
        self.in_typedef = False
        self.tag = None
        self.alias_name = None
        self.current_model: Optional[Model] = None

    def _warn(self, kind, message, line=None):
        diag = Diagnostic(kind, message, self.source, line)
        diag.log()
        self.diagnostics.append(diag)

    # --- Main loop ---

    def parse(self) -> ParseResult:
        handlers = {
            BuilderState.SCANNING: self._on_scanning,
            BuilderState.MARKED: self._on_marked,
            BuilderState.STRUCT_HEAD: self._on_struct_head,
            BuilderState.STRUCT_BODY: self._on_struct_body,
            BuilderState.STRUCT_TAIL: self._on_struct_tail,
        }
        start_count = len(self.models)
        while not self.stream.at_end():
            tok = self.stream.next()
            handlers[self.state](tok)

        if self.state != BuilderState.SCANNING:
            self._warn(UNSUPPORTED_DECLARATION,
                       "input ended inside an annotated declaration; it was dropped",
                       self.current_model.line if self.current_model else None)
            self._reset()

        new_models = self.models[start_count:]
        logger.debug(f"{self.source or '<text>'}: {len(new_models)} model(s)")
        return ParseResult(models=new_models, diagnostics=self.diagnostics)

    def _on_scanning(self, tok: Token):
        if tok.type == TokType.IDENT and tok.text in MODEL_MARKERS:
            self._begin_model(tok)

    def _begin_model(self, tok: Token):
        do_parse, do_stringify = MODEL_MARKERS[tok.text]
        self._reset()
        self.current_model = Model(parse=do_parse, stringify=do_stringify,
                                   source=self.source, line=tok.line)
        self.state = BuilderState.MARKED

    def _on_marked(self, tok: Token):
        if tok.is_ident("typedef"):
            self.in_typedef = True
        elif tok.is_ident("struct"):
            self.state = BuilderState.STRUCT_HEAD
        elif tok.type == TokType.IDENT and tok.text in TYPE_QUALIFIERS:
            pass
        elif tok.type == TokType.IDENT and tok.text in MODEL_MARKERS:
            self._begin_model(tok)
        else:
            self._warn(UNSUPPORTED_DECLARATION,
                       f"annotation marker must precede a struct declaration, found '{tok.text}'",
                       tok.line)
            self._reset()

    def _on_struct_head(self, tok: Token):
        if tok.type == TokType.IDENT:
            self.tag = tok.text
        elif tok.is_punct("{"):
            self.depth = 1
            self.state = BuilderState.STRUCT_BODY
        else:
            self._warn(UNSUPPORTED_DECLARATION,
                       f"expected a struct body after 'struct {self.tag or ''}', found '{tok.text}'",
                       tok.line)
            self._reset()

    def _on_struct_body(self, tok: Token):
        if tok.is_punct("{"):
            self.depth += 1
        elif tok.is_punct("}"):
            self.depth -= 1
            if self.depth == 0:
                self.state = BuilderState.STRUCT_TAIL
        elif tok.type == TokType.IDENT and self.depth == 1:
            self._parse_field_declaration(tok)

    def _on_struct_tail(self, tok: Token):
        if tok.type == TokType.IDENT:
            if self.in_typedef:
                self.alias_name = tok.text
            else:
                logger.debug(f"Ignoring declarator '{tok.text}' after struct {self.tag}")
        elif tok.is_punct(";"):
            self._finish_model(tok)

    def _finish_model(self, tok: Token):
        model = self.current_model
        if self.in_typedef and self.alias_name:
            model.name = self.alias_name
            model.simple_name = self.alias_name
        elif self.tag:
            model.name = f"struct {self.tag}"
            model.simple_name = self.tag
        else:
            self._warn(UNSUPPORTED_DECLARATION, "annotated struct has neither a tag nor a typedef name", tok.line)
            self._reset()
            return

        for diag in resolve_counters(model, self.source):
            diag.log()
            self.diagnostics.append(diag)

        model.tag = self.tag
        self.models.append(model)
        logger.debug(f"Model {model.name}: {len(model.fields)} field(s), "
                     f"parse={model.parse}, stringify={model.stringify}")
        self._reset()

    # --- Field declarations ---

    def _skip_to_semicolon(self):
        """Skips the rest of a member declaration, leaving a closing '}' unconsumed."""
        nesting = 0
        while not self.stream.at_end():
            tok = self.stream.peek()
            if tok.text in ("(", "[", "{") and tok.type == TokType.PUNCT:
                nesting += 1
            elif tok.text in (")", "]", "}") and tok.type == TokType.PUNCT:
                if nesting == 0:
                    return
                nesting -= 1
            elif tok.is_punct(";") and nesting == 0:
                self.stream.next()
                return
            self.stream.next()

    def _is_annotation_start(self, tok: Token, type_words):
        """
        True when tok, the next token of a member declaration, starts an annotation
        rather than naming the member.
        """
        if tok.type != TokType.IDENT or tok.text not in FIELD_ANNOTATIONS:
            return False
        after = self.stream.peek(1)
        if FIELD_ANNOTATIONS[tok.text] != "json_literal":
            return after.is_punct("(")
        # bare json_literal: the declarator name must already have been read
        if not _ends_with_member_name(type_words):
            return False
        return (after.is_punct(";") or after.is_punct(",")
                or (after.type == TokType.IDENT and after.text in FIELD_ANNOTATIONS))

    def _parse_field_declaration(self, first: Token):
        type_words = []
        tok = first
        while True:
            if tok.text not in TYPE_QUALIFIERS:
                type_words.append(tok.text)
            nxt = self.stream.peek()
            if nxt.type != TokType.IDENT:
                break
            if self._is_annotation_start(nxt, type_words):
                break
            tok = self.stream.next()

        if self.stream.peek().is_punct("{"):
            self._warn(UNSUPPORTED_DECLARATION,
                       f"nested definition inside '{self.tag or 'anonymous struct'}' is not supported; member dropped",
                       first.line)
            self._skip_to_semicolon()
            return

        # int a, *b; -- the trailing identifier of the first run is the first declarator name
        if self.stream.peek().is_punct("*"):
            declarator_name = None
        else:
            declarator_name = type_words.pop() if len(type_words) > 1 else None

        base_words = list(type_words)
        if not base_words:
            self._warn(UNSUPPORTED_DECLARATION, f"could not read a member declaration at '{first.text}'", first.line)
            self._skip_to_semicolon()
            return

        while True:
            f = self._parse_declarator(base_words, declarator_name, first.line)
            if f is None:
                self._skip_to_semicolon()
                return
            self._parse_annotations(f)
            if self.stream.peek().is_punct(","):
                self.stream.next()
                declarator_name = None
                continue
            break

        if self.stream.peek().is_punct(";"):
            self.stream.next()
        else:
            self._skip_to_semicolon()

    def _parse_declarator(self, base_words, name, line) -> Optional[Field]:
        stars = 0
        if name is None:
            while self.stream.peek().is_punct("*"):
                self.stream.next()
                stars += 1
            while self.stream.peek().type == TokType.IDENT and self.stream.peek().text in TYPE_QUALIFIERS:
                self.stream.next()
            name_tok = self.stream.peek()
            if name_tok.type != TokType.IDENT:
                self._warn(UNSUPPORTED_DECLARATION,
                           f"unsupported member declarator '{name_tok.text}' after '{' '.join(base_words)}'",
                           name_tok.line)
                return None
            self.stream.next()
            name = name_tok.text
            line = name_tok.line

        words = list(base_words)
        if words[0] in AGGREGATE_KEYWORDS and len(words) > 1:
            simple_type = " ".join(words[1:])
        else:
            simple_type = " ".join(words)
        type_text = " ".join(words) + "*" * stars

        f = Field(name=name, type=type_text, simple_type=simple_type,
                  is_pointer=stars > 0, line=line)

        # Peek for a bound, then rewind; bound expressions are never interpreted
        mark = self.stream.mark()
        if self.stream.next().is_punct("["):
            f.is_array = True
            f.is_pointer = True
            f.array_bound = True
            self.stream.reset(mark)
            while self.stream.peek().is_punct("["):
                self._skip_brackets()
        else:
            self.stream.reset(mark)

        self.current_model.fields.append(f)
        return f

    def _skip_brackets(self):
        nesting = 0
        while not self.stream.at_end():
            tok = self.stream.next()
            if tok.is_punct("["):
                nesting += 1
            elif tok.is_punct("]"):
                nesting -= 1
                if nesting == 0:
                    return

    # --- Annotation grammar: NAME [ '(' [argument] ')' ] ---

    def _read_call_arguments(self):
        """
        Reads '(' [STRING|IDENT] ')' after an annotation name.
        Returns (ok, argument). On failure the stream is left untouched.
        """
        mark = self.stream.mark()
        if not self.stream.next().is_punct("("):
            self.stream.reset(mark)
            return False, None
        tok = self.stream.next()
        if tok.is_punct(")"):
            return True, None
        if tok.type in (TokType.STRING, TokType.IDENT) and self.stream.peek().is_punct(")"):
            self.stream.next()
            return True, tok.value
        self.stream.reset(mark)
        return False, None

    def _parse_annotations(self, f: Field):
        while self.stream.peek().type == TokType.IDENT and self.stream.peek().text in FIELD_ANNOTATIONS:
            name_tok = self.stream.next()
            kind = FIELD_ANNOTATIONS[name_tok.text]

            if kind == "json_literal":
                if self.stream.peek().is_punct("("):
                    self._read_call_arguments()
                if f.type != "char*":
                    self._warn(MALFORMED_ANNOTATION,
                               f"{name_tok.text} requires a char* field, '{f.name}' is '{f.type}'",
                               name_tok.line)
                    continue
                f.is_json_literal = True
                continue

            ok, arg = self._read_call_arguments()
            if kind == "ignore":
                if not ok or arg is not None:
                    self._warn(MALFORMED_ANNOTATION, f"{name_tok.text} takes no argument", name_tok.line)
                if f in self.current_model.fields:
                    self.current_model.fields.remove(f)
                continue

            if not ok or not arg:
                self._warn(MALFORMED_ANNOTATION,
                           f"{name_tok.text} on '{f.name}' expects one name argument; annotation ignored",
                           name_tok.line)
                continue

            if kind == "alias":
                f.alias = arg
            elif kind == "sized_by":
                if not f.is_pointer:
                    self._warn(MALFORMED_ANNOTATION,
                               f"{name_tok.text} requires a pointer or array field, '{f.name}' is '{f.type}'",
                               name_tok.line)
                    continue
                f.has_counter = True
                f.is_array = True
                f.counter_field = arg


def parse_header_text(text, source=None, models=None) -> ParseResult:
    """
    Builds models from header text. New models are also appended to `models`
    when given. LexicalError propagates to the caller.
    """
    parser = HeaderParser(TokenStream.from_text(text, source), source=source, models=models)
    return parser.parse()


def parse_header_file(path, models=None) -> ParseResult:
    """Reads one header file and builds its models. Raises FileReadError or LexicalError."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise FileReadError(f"cannot read file: {e.strerror or e}", str(path)) from e
    logger.info(f"Parsing header: {path}")
    return parse_header_text(text, source=str(path), models=models)
