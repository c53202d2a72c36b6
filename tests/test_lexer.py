import pytest
from hypothesis import given
from hypothesis import strategies as st

from skylark.skylark_constants import INT32_MAX, KEYWORDS, RESERVED_WORDS
from skylark.skylark_errors import LexError, NumberFormatError, ParseError, SkylarkSyntaxError
from skylark.skylark_lexer import (
    CharacterStream,
    Lexer,
    Token,
    decode_source,
    scan_identifier,
    scan_int,
    tokenize,
)


def types(source: str) -> list[str]:
    return [tok.type for tok in tokenize(source)]


def values(source: str) -> list[object]:
    return [tok.value for tok in tokenize(source) if tok.type not in ("NEWLINE", "EOF")]


# Integer literals


@pytest.mark.parametrize("source", ["0", "00", "000"])
def test_all_zero_literals_scan_to_zero(source: str) -> None:
    assert scan_int(source) == 0


@pytest.mark.parametrize(
    "source,expected",
    [
        ("8", 8),
        ("10", 10),
        ("0o7", 7),
        ("0O7", 7),
        ("0O777", 511),
        ("0x7", 7),
        ("0X7", 7),
        ("0xffe", 4094),
        ("0XFFE", 4094),
        ("2147483647", INT32_MAX),
        ("0x7fffffff", INT32_MAX),
        ("0o17777777777", INT32_MAX),
    ],
)
def test_scan_int_bases(source: str, expected: int) -> None:
    assert scan_int(source) == expected


def test_leading_zero_decimal_rejected() -> None:
    with pytest.raises(NumberFormatError, match="leading zero"):
        scan_int("01")


@pytest.mark.parametrize(
    "source,message",
    [
        ("0o", "missing digits after '0o'"),
        ("0x", "missing digits after '0x'"),
        ("0o8", "invalid digit '8' in octal literal"),
        ("2147483648", "overflows"),
        ("0x80000000", "overflows"),
        ("0o20000000000", "overflows"),
        ("000000000000000000001", "leading zero"),
        ("99999999999999999999999", "overflows"),
        ("1.5", "floating-point literals are not supported"),
    ],
)
def test_malformed_int_literals(source: str, message: str) -> None:
    with pytest.raises(NumberFormatError, match=message) as excinfo:
        scan_int(source)
    assert excinfo.value.kind == "NumberFormatError"
    assert (excinfo.value.line, excinfo.value.col) == (1, 1)


def test_identifier_glued_to_int_is_lex_error() -> None:
    with pytest.raises(LexError, match="invalid character 'a' in integer literal") as excinfo:
        scan_int("12abc")
    assert excinfo.value.col == 3


def test_scan_int_requires_exactly_one_token() -> None:
    with pytest.raises(SkylarkSyntaxError, match="unexpected INT 2 after INT"):
        scan_int("1 2")
    with pytest.raises(SkylarkSyntaxError, match="expected INT, got '-'"):
        scan_int("-1")
    with pytest.raises(SkylarkSyntaxError, match="expected INT, got end of input"):
        scan_int("")


@given(st.integers(min_value=0, max_value=INT32_MAX))  # type: ignore[misc]
def test_int_literal_round_trip(n: int) -> None:
    assert scan_int(str(n)) == n
    assert scan_int(f"0o{n:o}") == n
    assert scan_int(f"0x{n:x}") == n
    assert scan_int(f"0X{n:X}") == n


@given(st.integers(min_value=INT32_MAX + 1, max_value=2**64))  # type: ignore[misc]
def test_int_literal_overflow_always_rejected(n: int) -> None:
    with pytest.raises(NumberFormatError):
        scan_int(str(n))
    with pytest.raises(NumberFormatError):
        scan_int(f"0x{n:x}")


# Identifiers


@pytest.mark.parametrize("source", ["foo", "_foo", "__foo", "Foo", "F0ooBar", "x1_"])
def test_scan_identifier_accepts(source: str) -> None:
    assert scan_identifier(source) == source


def test_scan_identifier_rejects_int() -> None:
    with pytest.raises(SkylarkSyntaxError, match="expected IDENT, got INT 7"):
        scan_identifier("0x7")


def test_scan_identifier_rejects_trailing_tokens() -> None:
    with pytest.raises(SkylarkSyntaxError, match="unexpected IDENT bar after IDENT"):
        scan_identifier("foo bar")


@given(
    st.from_regex(r"[A-Za-z_][A-Za-z0-9_]{0,15}", fullmatch=True)
)  # type: ignore[misc]
def test_identifier_round_trip(name: str) -> None:
    assert scan_identifier(name) == name


def test_keywords_lex_as_identifiers() -> None:
    for word in sorted(KEYWORDS | RESERVED_WORDS):
        tokens = tokenize(word)
        assert tokens[0] == Token("IDENT", word, 1, 1, 0)


# Operators and punctuation


def test_operator_tokens() -> None:
    code = "+ - * / // % ** | & == != < > <= >= = += -= *= /= //= %= |= &= ( ) [ ] { } , : ; ."
    expected = [
        "PLUS",
        "SUB",
        "MULT",
        "DIV",
        "FLOORDIV",
        "MOD",
        "POW",
        "PIPE",
        "AMP",
        "EQ",
        "NE",
        "LT",
        "GT",
        "LE",
        "GE",
        "ASSIGN",
        "PLUS_EQ",
        "SUB_EQ",
        "MULT_EQ",
        "DIV_EQ",
        "FLOORDIV_EQ",
        "MOD_EQ",
        "PIPE_EQ",
        "AMP_EQ",
        "LPAREN",
        "RPAREN",
        "LBRACK",
        "RBRACK",
        "LBRACE",
        "RBRACE",
        "COMMA",
        "COLON",
        "SEMI",
        "DOT",
    ]
    assert types(code) == expected + ["NEWLINE", "EOF"]


def test_longest_match_without_spaces() -> None:
    assert types("a//=b**c") == ["IDENT", "FLOORDIV_EQ", "IDENT", "POW", "IDENT", "NEWLINE", "EOF"]


def test_token_positions_and_byte_offsets() -> None:
    tokens = tokenize("x = 0x1f\n'é' + y")
    assert tokens[0] == Token("IDENT", "x", 1, 1, 0)
    assert tokens[1] == Token("ASSIGN", "=", 1, 3, 2)
    assert tokens[2] == Token("INT", 31, 1, 5, 4)
    assert tokens[2].end == 8
    assert tokens[4] == Token("STRING", "é".encode(), 2, 1, 9)
    # 'é' is three characters but four bytes
    assert tokens[4].end == 13
    assert tokens[5] == Token("PLUS", "+", 2, 5, 14)


@pytest.mark.parametrize("char", ["~", "$", "?", "!", "@", "`", "é"])
def test_invalid_character(char: str) -> None:
    with pytest.raises(LexError, match="invalid character") as excinfo:
        tokenize(f"a {char} b")
    assert (excinfo.value.line, excinfo.value.col, excinfo.value.offset) == (1, 3, 2)


# Strings


@pytest.mark.parametrize(
    "source,expected",
    [
        ('"hello world"', b"hello world"),
        ("'single'", b"single"),
        ('"a\\nb"', b"a\nb"),
        ('"tab\\there"', b"tab\there"),
        ("'it\\'s'", b"it's"),
        ('"\\x41\\101"', b"AA"),
        ('"\\u00e9"', "é".encode()),
        ('"\\U0001F600"', "\U0001F600".encode()),
        ('"\\0"', b"\x00"),
        ('r"\\n"', b"\\n"),
        ("R'\\d+'", b"\\d+"),
        ('"""a\nb"""', b"a\nb"),
        ("'''it's'''", b"it's"),
        ('"a\\\nb"', b"ab"),
        ("'é'", "é".encode()),
        ('""', b""),
    ],
)
def test_string_literals(source: str, expected: bytes) -> None:
    tok = tokenize(source)[0]
    assert tok.type == "STRING"
    assert tok.value == expected


@pytest.mark.parametrize(
    "source,message",
    [
        ('"abc', "unterminated string literal"),
        ('"a\nb"', "unterminated string literal"),
        ('"""abc""', "unterminated string literal"),
        ('"\\q"', r"invalid escape sequence \\q"),
        ('"\\xz1"', r"\\x needs 2 hex digits"),
        ('"\\777"', "exceeds one byte"),
        ('"\\ud800"', "invalid Unicode code point"),
    ],
)
def test_bad_string_literals(source: str, message: str) -> None:
    with pytest.raises(LexError, match=message) as excinfo:
        tokenize(source)
    assert excinfo.value.kind == "LexError"
    assert excinfo.value.line == 1


# Layout


def test_indent_and_outdent() -> None:
    assert types("if x:\n    y\nz\n") == [
        "IDENT",
        "IDENT",
        "COLON",
        "NEWLINE",
        "INDENT",
        "IDENT",
        "NEWLINE",
        "OUTDENT",
        "IDENT",
        "NEWLINE",
        "EOF",
    ]


def test_missing_final_newline_closes_blocks() -> None:
    assert types("if x:\n  if y:\n    z") == [
        "IDENT",
        "IDENT",
        "COLON",
        "NEWLINE",
        "INDENT",
        "IDENT",
        "IDENT",
        "COLON",
        "NEWLINE",
        "INDENT",
        "IDENT",
        "NEWLINE",
        "OUTDENT",
        "OUTDENT",
        "EOF",
    ]


def test_blank_and_comment_lines_are_ignored() -> None:
    source = "x  # trailing\n\n    # indented comment\n\t\ny\n"
    assert types(source) == ["IDENT", "NEWLINE", "IDENT", "NEWLINE", "EOF"]


def test_newlines_inside_brackets_are_ignored() -> None:
    source = "f(1,\n      2,\n  [3,\n4])\n"
    assert types(source) == [
        "IDENT",
        "LPAREN",
        "INT",
        "COMMA",
        "INT",
        "COMMA",
        "LBRACK",
        "INT",
        "COMMA",
        "INT",
        "RBRACK",
        "RPAREN",
        "NEWLINE",
        "EOF",
    ]


def test_backslash_continuation() -> None:
    assert values("x = 1 + \\\n    2\n") == ["x", "=", 1, "+", 2]


def test_tab_expands_to_eight_columns() -> None:
    source = "if x:\n\ty\n        z\n"
    assert types(source).count("INDENT") == 1
    assert types(source).count("OUTDENT") == 1


def test_inconsistent_dedent() -> None:
    with pytest.raises(LexError, match="unindent does not match") as excinfo:
        tokenize("if x:\n    y\n  z\n")
    assert (excinfo.value.line, excinfo.value.col) == (3, 3)


def test_empty_source() -> None:
    assert types("") == ["EOF"]
    assert types("\n\n# only a comment\n") == ["EOF"]


def test_bracket_nesting_limit() -> None:
    assert types("(" * 50 + ")" * 50)[-2:] == ["NEWLINE", "EOF"]
    with pytest.raises(LexError, match="nested more than 50 deep"):
        tokenize("[" * 51)


def block_source(depth: int) -> str:
    lines = [" " * i + "if x:\n" for i in range(depth)]
    return "".join(lines) + " " * depth + "pass\n"


def test_block_nesting_limit() -> None:
    assert types(block_source(20)).count("INDENT") == 20
    with pytest.raises(LexError, match="blocks nested more than 20 deep") as excinfo:
        tokenize(block_source(21))
    assert (excinfo.value.line, excinfo.value.col) == (22, 22)


def test_stream_read_past_end() -> None:
    stream = CharacterStream("a\n")
    assert stream.next() + stream.next() == "a\n"
    with pytest.raises(LexError, match="unexpected end of input") as excinfo:
        stream.next()
    assert (excinfo.value.line, excinfo.value.col, excinfo.value.offset) == (2, 1, 2)


def test_lexer_is_lazy() -> None:
    lexer = Lexer(CharacterStream("a b ~"))
    assert lexer.next_token().value == "a"
    assert lexer.next_token().value == "b"
    with pytest.raises(LexError):
        lexer.next_token()


def test_eof_repeats() -> None:
    lexer = Lexer(CharacterStream("x"))
    assert [lexer.next_token().type for _ in range(4)] == ["IDENT", "NEWLINE", "EOF", "EOF"]


def test_bytes_source_is_decoded() -> None:
    assert values("x = 'é'".encode()) == ["x", "=", "é".encode()]


def test_invalid_utf8_source() -> None:
    with pytest.raises(LexError, match="not valid UTF-8") as excinfo:
        decode_source(b"x = 1\ny = \xff")
    assert (excinfo.value.line, excinfo.value.col, excinfo.value.offset) == (2, 5, 10)


def test_token_describe() -> None:
    assert Token("INT", 2).describe() == "INT 2"
    assert Token("IDENT", "x").describe() == "IDENT x"
    assert Token("STRING", b"s").describe() == "STRING b's'"
    assert Token("COMMA", ",").describe() == "','"
    assert Token("NEWLINE", "\n").describe() == "newline"
    assert Token("EOF", "EOF").describe() == "end of input"


@given(st.text(alphabet=st.characters(blacklist_categories=["Cs"]), max_size=100))  # type: ignore[misc]
def test_lexer_only_raises_parse_errors(text: str) -> None:
    try:
        tokens = tokenize(text)
    except ParseError:
        return
    assert tokens[-1].type == "EOF"
    assert types(text).count("INDENT") == types(text).count("OUTDENT")
