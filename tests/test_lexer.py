import pytest

from jsgen.errors import LexicalError
from jsgen.lexer import TokenStream, TokType, tokenize


def test_struct_tokens():
    toks = tokenize("struct a { int x[10]; };")
    assert [t.text for t in toks] == ["struct", "a", "{", "int", "x", "[", "10", "]", ";", "}", ";", ""]
    assert toks[0].type == TokType.IDENT
    assert toks[6].type == TokType.NUMBER
    assert toks[-1].type == TokType.EOF


def test_preprocessor_lines_are_skipped():
    toks = tokenize("#define JSON\n#define alias(name) \\\n  nothing\nJSON")
    assert [t.text for t in toks] == ["JSON", ""]
    assert toks[0].line == 4


def test_comments_are_skipped_and_lines_counted():
    toks = tokenize("// JSON\n/* JSON\n */ x")
    assert [t.text for t in toks] == ["x", ""]
    assert toks[0].line == 3


def test_string_literal_value_is_unescaped():
    tok = tokenize('alias("a\\"b")')[2]
    assert tok.type == TokType.STRING
    assert tok.value == 'a"b'
    assert tok.text == '"a\\"b"'


@pytest.mark.parametrize("text", ["/* never closed", "\"open string", "'x"])
def test_unterminated_input_raises(text):
    with pytest.raises(LexicalError):
        tokenize(text, source="bad.h")


def test_lexical_error_carries_location():
    with pytest.raises(LexicalError) as exc:
        tokenize("int a;\n\"oops", source="bad.h")
    assert exc.value.source == "bad.h"
    assert exc.value.line == 2
    assert str(exc.value).startswith("bad.h:2: ")


def test_stream_is_lazy():
    stream = TokenStream.from_text("a b /* unterminated")
    assert stream.next().text == "a"
    assert stream.next().text == "b"
    with pytest.raises(LexicalError):
        stream.peek()


def test_stream_peek_mark_reset():
    stream = TokenStream.from_text("a b c")
    assert stream.peek(2).text == "c"
    mark = stream.mark()
    stream.next()
    stream.next()
    assert stream.peek().text == "c"
    stream.reset(mark)
    assert stream.next().text == "a"


def test_stream_stays_at_eof():
    stream = TokenStream.from_text("a")
    stream.next()
    assert stream.at_end()
    assert stream.next().type == TokType.EOF
    assert stream.peek(5).type == TokType.EOF


def test_directive_continuation_with_crlf():
    toks = tokenize("#define JSON \\\r\n  JSGEN_JSON\r\nstruct\r\n")
    assert [t.text for t in toks] == ["struct", ""]
    assert toks[0].line == 3
