"""
Lexical analyzer for the skylark configuration language.

This module converts raw source text into a lazy stream of tokens:

Classes:
    CharacterStream: Stream abstraction for reading characters with line/column/byte tracking.
    Token: A single token with type, decoded value, and source span.
    Lexer: Produces tokens on demand from a CharacterStream.

Features:
    - Skips spaces, tabs, form feeds and `#` comments
    - Joins physical lines ending in a backslash
    - Emits NEWLINE / INDENT / OUTDENT layout tokens outside brackets
    - Longest-match recognition of operators and punctuation
    - Recognizes:
        * Identifiers (keywords are plain IDENT tokens; the parser reclassifies them)
        * Integer literals: decimal, `0o` octal, `0x` hexadecimal, signed 32-bit
        * String literals: single/double/triple quoted, raw, full escape set, decoded to bytes

Raises:
    LexError: Invalid characters, unterminated strings, bad escapes, bad dedents.
    NumberFormatError: Malformed or out-of-range integer literals.

Example:
    >>> lexer = Lexer(CharacterStream("x = 0x1f"))
    >>> [tok.type for tok in lexer]
    ['IDENT', 'ASSIGN', 'INT', 'NEWLINE', 'EOF']

Exports:
    - CharacterStream
    - Token
    - Lexer
    - tokenize
    - scan_int
    - scan_identifier
"""

import logging
import string
from collections import deque
from collections.abc import Iterator
from typing import Any

from skylark.skylark_constants import (
    CLOSE_BRACKETS,
    INT32_MAX,
    MAX_BRACKET_DEPTH,
    MAX_INDENT_DEPTH,
    MAX_OPERATOR_LENGTH,
    OPEN_BRACKETS,
    TAB_WIDTH,
    token_hashmap,
)
from skylark.skylark_errors import LexError, NumberFormatError, SkylarkSyntaxError

logger = logging.getLogger(__name__)

DEC_DIGITS = frozenset(string.digits)
OCT_DIGITS = frozenset(string.octdigits)
HEX_DIGITS = frozenset(string.hexdigits)
IDENT_START = frozenset(string.ascii_letters + "_")
IDENT_CHARS = IDENT_START | DEC_DIGITS
QUOTES = ("'", '"')

SIMPLE_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "f": 0x0C,
    "n": 0x0A,
    "r": 0x0D,
    "t": 0x09,
    "v": 0x0B,
    "\\": 0x5C,
    "'": 0x27,
    '"': 0x22,
}


def utf8_width(char: str) -> int:
    """Returns the number of bytes `char` occupies in UTF-8."""
    code = ord(char)
    if code < 0x80:
        return 1
    if code < 0x800:
        return 2
    if code < 0x10000:
        return 3
    return 4


class CharacterStream:
    """
    A utility for reading characters from a string source with position tracking.

    Attributes:
        source (str): The input source string.
        position (int): Current index in the source.
        line (int): Current line number (1-indexed).
        column (int): Current column number (1-indexed).
        byte_offset (int): Current offset into the UTF-8 encoding of the source.
    """

    def __init__(self, source: str, position: int = 0, line: int = 1, column: int = 1):
        self.source = source
        self.position = position
        self.line = line
        self.column = column
        self.byte_offset = sum(utf8_width(c) for c in source[:position])

    def next(self) -> str:
        """
        Consumes and returns the next character in the stream.

        Raises:
            LexError: If reading past the end of the source.
        """
        if self.position >= len(self.source):
            raise LexError("unexpected end of input", self.line, self.column, self.byte_offset)
        char = self.source[self.position]
        if char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self.position += 1
        self.byte_offset += utf8_width(char)
        return char

    def peek(self, offset: int = 0) -> str:
        """Returns the character `offset` places ahead, or "" when out of bounds."""
        index = self.position + offset
        if index < 0 or index >= len(self.source):
            return ""
        return self.source[index]

    def end_of_file(self) -> bool:
        return self.position >= len(self.source)


class Token:
    """Represents a single lexical token.

    Attributes:
        type (str): The canonical token type (e.g. 'IDENT', 'INT', 'NEWLINE', 'EOF').
        value (Any): Decoded value: `int` for INT, `bytes` for STRING, text otherwise.
        line (int): The 1-based line number where the token starts.
        col (int): The 1-based column number where the token starts.
        offset (int): Byte offset of the first byte of the token.
        end (int): Byte offset one past the last byte of the token.
    """

    def __init__(
        self,
        type_: str,
        value: Any,
        line: int = 0,
        col: int = 0,
        offset: int = 0,
        end: int = 0,
    ):
        self.type = type_
        self.value = value
        self.line = line
        self.col = col
        self.offset = offset
        self.end = end

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value!r})"

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, Token)
            and self.type == other.type
            and self.value == other.value
            and self.line == other.line
            and self.col == other.col
            and self.offset == other.offset
        )

    def __hash__(self) -> int:
        return hash((self.type, self.value, self.line, self.col, self.offset))

    def describe(self) -> str:
        """Returns a short description used in parser error messages."""
        if self.type == "EOF":
            return "end of input"
        if self.type == "NEWLINE":
            return "newline"
        if self.type == "INDENT":
            return "indentation"
        if self.type == "OUTDENT":
            return "outdent"
        if self.type in ("INT", "IDENT"):
            return f"{self.type} {self.value}"
        if self.type == "STRING":
            return f"STRING {self.value!r}"
        return repr(self.value)


class Lexer:
    """Lexical analyzer for skylark source.

    The Lexer pulls characters from a CharacterStream and yields Token objects
    one at a time. Iterating over a Lexer yields every token up to and
    including EOF. A Lexer cannot be rewound; create a new one to restart.

    Attributes:
        stream (CharacterStream): The source stream to tokenize.
        indent_stack (list[int]): Open indentation widths, innermost last.
        depth (int): Current bracket nesting depth.
    """

    def __init__(self, stream: CharacterStream) -> None:
        self.stream = stream
        self.indent_stack: list[int] = [0]
        self.depth = 0
        self.pending: deque[Token] = deque()
        self.at_line_start = True
        self.line_has_tokens = False
        self.done = False

    def __iter__(self) -> Iterator[Token]:
        while True:
            tok = self.next_token()
            yield tok
            if tok.type == "EOF":
                return

    def peek(self, offset: int = 0) -> str:
        return self.stream.peek(offset)

    def advance(self) -> str:
        return self.stream.next()

    def mark(self) -> tuple[int, int, int]:
        """Returns the current (line, col, byte offset)."""
        return self.stream.line, self.stream.column, self.stream.byte_offset

    def make_token(self, type_: str, value: Any, start: tuple[int, int, int]) -> Token:
        line, col, offset = start
        return Token(type_, value, line, col, offset, self.stream.byte_offset)

    def read_run(self, charset: frozenset[str]) -> str:
        """Consumes the longest run of characters drawn from `charset`."""
        run = ""
        while self.peek() in charset:
            run += self.advance()
        return run

    def skip_whitespace(self) -> None:
        """Skips blanks and comments, stopping at a newline."""
        while not self.stream.end_of_file():
            if self.peek() in (" ", "\t", "\f", "\r"):
                self.advance()
            elif self.peek() == "#":
                self.skip_comment()
            else:
                break

    def skip_comment(self) -> None:
        while not self.stream.end_of_file() and self.peek() != "\n":
            self.advance()

    def next_token(self) -> Token:
        """Consumes and returns the next Token from the stream.

        Raises:
            LexError: On any character sequence that is not a valid token.
            NumberFormatError: On malformed integer literals.
        """
        if self.pending:
            return self.pending.popleft()
        if self.done:
            return self.make_token("EOF", "EOF", self.mark())

        while True:
            if self.at_line_start and self.depth == 0:
                self.at_line_start = False
                layout = self.read_indentation()
                if layout:
                    self.pending.extend(layout[1:])
                    return layout[0]

            self.skip_whitespace()
            if self.stream.end_of_file():
                return self.finish()

            ch = self.peek()

            # Line continuation
            if ch == "\\" and self.peek(1) in ("\n", "\r"):
                self.advance()
                if self.peek() == "\r":
                    self.advance()
                if self.peek() == "\n":
                    self.advance()
                continue

            if ch == "\n":
                start = self.mark()
                self.advance()
                if self.depth > 0:
                    continue
                self.at_line_start = True
                if self.line_has_tokens:
                    self.line_has_tokens = False
                    return self.make_token("NEWLINE", "\n", start)
                continue

            self.line_has_tokens = True
            return self.scan_token()

    def read_indentation(self) -> list[Token]:
        """Measures the indentation of a new logical line.

        Returns:
            list[Token]: An INDENT, one OUTDENT per closed level, or nothing.
                Blank and comment-only lines never change the indentation.

        Raises:
            LexError: If a dedent does not return to an enclosing level.
        """
        width = 0
        while self.peek() in (" ", "\t", "\f"):
            ch = self.advance()
            if ch == " ":
                width += 1
            elif ch == "\t":
                width += TAB_WIDTH - width % TAB_WIDTH

        if self.peek() in ("", "\n", "\r", "#"):
            return []

        start = self.mark()
        if width > self.indent_stack[-1]:
            if len(self.indent_stack) > MAX_INDENT_DEPTH:
                raise LexError(
                    f"blocks nested more than {MAX_INDENT_DEPTH} deep", *start
                )
            self.indent_stack.append(width)
            logger.debug("indent to %d at line %d", width, start[0])
            return [self.make_token("INDENT", "", start)]

        tokens: list[Token] = []
        while width < self.indent_stack[-1]:
            self.indent_stack.pop()
            tokens.append(self.make_token("OUTDENT", "", start))
        if width != self.indent_stack[-1]:
            raise LexError(
                "unindent does not match any outer indentation level", *start
            )
        if tokens:
            logger.debug("outdent to %d at line %d", width, start[0])
        return tokens

    def finish(self) -> Token:
        """Emits the closing NEWLINE, OUTDENTs and EOF once input is exhausted."""
        self.done = True
        start = self.mark()
        tokens: list[Token] = []
        if self.line_has_tokens:
            self.line_has_tokens = False
            tokens.append(self.make_token("NEWLINE", "", start))
        while len(self.indent_stack) > 1:
            self.indent_stack.pop()
            tokens.append(self.make_token("OUTDENT", "", start))
        tokens.append(self.make_token("EOF", "EOF", start))
        self.pending.extend(tokens[1:])
        return tokens[0]

    def scan_token(self) -> Token:
        """Dispatches on the first significant character of a token."""
        ch = self.peek()

        # 1. Integer literal
        if ch in DEC_DIGITS:
            return self.scan_number()

        # 2. Raw string
        if ch in ("r", "R") and self.peek(1) in QUOTES:
            return self.scan_string()

        # 3. Identifier or keyword
        if ch in IDENT_START:
            return self.scan_identifier()

        # 4. String
        if ch in QUOTES:
            return self.scan_string()

        # 5. Operator or punctuation
        token = self.match_operator()
        if token:
            if token.type in OPEN_BRACKETS:
                self.depth += 1
                if self.depth > MAX_BRACKET_DEPTH:
                    raise LexError(
                        f"brackets nested more than {MAX_BRACKET_DEPTH} deep",
                        token.line,
                        token.col,
                        token.offset,
                    )
            elif token.type in CLOSE_BRACKETS:
                self.depth = max(0, self.depth - 1)
            return token

        # 6. Unknown character
        raise LexError(f"invalid character {ch!r}", *self.mark())

    def match_operator(self) -> Token | None:
        """Attempts to match the longest operator lexeme at the current position."""
        start = self.mark()
        max_token = None
        match_len = 0
        candidate = ""

        for i in range(MAX_OPERATOR_LENGTH):
            ch = self.peek(i)
            if ch == "":
                break
            candidate += ch
            if candidate in token_hashmap:
                max_token = candidate
                match_len = i + 1

        if max_token:
            for _ in range(match_len):
                self.advance()
            return self.make_token(token_hashmap[max_token], max_token, start)

        return None

    def scan_identifier(self) -> Token:
        start = self.mark()
        ident = self.read_run(IDENT_CHARS)
        return self.make_token("IDENT", ident, start)

    def scan_number(self) -> Token:
        """Scans an integer literal.

        A leading `0` selects the base: `0o`/`0O` octal, `0x`/`0X` hex. Otherwise
        the literal must be all zeros (value 0) or start with `1`-`9`.

        Raises:
            NumberFormatError: Leading zero, missing or invalid digits, float
                literal, or a value above the signed 32-bit range.
            LexError: If an identifier character directly follows the literal.
        """
        start = self.mark()
        first = self.advance()

        if first == "0" and self.peek() in ("o", "O"):
            prefix = first + self.advance()
            digits = self.read_run(DEC_DIGITS)
            if not digits:
                raise NumberFormatError(f"missing digits after '{prefix}'", *start)
            bad = [d for d in digits if d not in OCT_DIGITS]
            if bad:
                raise NumberFormatError(
                    f"invalid digit {bad[0]!r} in octal literal", *start
                )
            base = 8
        elif first == "0" and self.peek() in ("x", "X"):
            prefix = first + self.advance()
            digits = self.read_run(HEX_DIGITS)
            if not digits:
                raise NumberFormatError(f"missing digits after '{prefix}'", *start)
            base = 16
        elif first == "0":
            rest = self.read_run(DEC_DIGITS)
            if rest.strip("0"):
                raise NumberFormatError(
                    f"leading zero in decimal literal '0{rest}'", *start
                )
            digits = "0"
            base = 10
        else:
            digits = first + self.read_run(DEC_DIGITS)
            base = 10

        if base == 10 and self.peek() == "." and self.peek(1) in DEC_DIGITS:
            raise NumberFormatError("floating-point literals are not supported", *start)
        if self.peek() in IDENT_CHARS:
            raise LexError(
                f"invalid character {self.peek()!r} in integer literal", *self.mark()
            )

        # More than 11 significant digits overflows in every supported base.
        if len(digits.lstrip("0")) > 11 or int(digits, base) > INT32_MAX:
            raise NumberFormatError(
                "integer literal overflows 32-bit signed range", *start
            )
        return self.make_token("INT", int(digits, base), start)

    def scan_string(self) -> Token:
        """Scans a quoted string literal and decodes it to bytes.

        Raises:
            LexError: If the literal is unterminated or holds an invalid escape.
        """
        start = self.mark()
        raw = False
        if self.peek() in ("r", "R"):
            raw = True
            self.advance()
        quote = self.advance()
        triple = self.peek() == quote and self.peek(1) == quote
        if triple:
            self.advance()
            self.advance()

        buf = bytearray()
        while True:
            if self.stream.end_of_file():
                raise LexError("unterminated string literal", *start)
            ch = self.peek()
            if ch == quote:
                if not triple:
                    self.advance()
                    break
                if self.peek(1) == quote and self.peek(2) == quote:
                    for _ in range(3):
                        self.advance()
                    break
                buf += self.advance().encode("utf-8")
            elif ch == "\n" and not triple:
                raise LexError("unterminated string literal", *start)
            elif ch == "\\" and raw:
                buf += self.advance().encode("utf-8")
                if not self.stream.end_of_file():
                    buf += self.advance().encode("utf-8", "surrogatepass")
            elif ch == "\\":
                self.read_escape(buf)
            else:
                buf += self.advance().encode("utf-8", "surrogatepass")

        return self.make_token("STRING", bytes(buf), start)

    def read_escape(self, buf: bytearray) -> None:
        """Decodes one backslash escape into `buf`."""
        start = self.mark()
        self.advance()
        if self.stream.end_of_file():
            raise LexError("unterminated string literal", *start)
        ch = self.advance()

        if ch in SIMPLE_ESCAPES:
            buf.append(SIMPLE_ESCAPES[ch])
        elif ch == "\n":
            pass
        elif ch == "\r":
            if self.peek() == "\n":
                self.advance()
        elif ch in OCT_DIGITS:
            digits = ch
            while len(digits) < 3 and self.peek() in OCT_DIGITS:
                digits += self.advance()
            value = int(digits, 8)
            if value > 0xFF:
                raise LexError(f"octal escape \\{digits} exceeds one byte", *start)
            buf.append(value)
        elif ch == "x":
            buf.append(int(self.read_hex_digits(ch, 2, start), 16))
        elif ch in ("u", "U"):
            digits = self.read_hex_digits(ch, 4 if ch == "u" else 8, start)
            code = int(digits, 16)
            if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
                raise LexError(
                    f"invalid Unicode code point in escape \\{ch}{digits}", *start
                )
            buf += chr(code).encode("utf-8")
        else:
            raise LexError(f"invalid escape sequence \\{ch}", *start)

    def read_hex_digits(self, escape: str, count: int, start: tuple[int, int, int]) -> str:
        digits = ""
        for _ in range(count):
            if self.peek() not in HEX_DIGITS:
                raise LexError(
                    f"invalid escape sequence: \\{escape} needs {count} hex digits",
                    *start,
                )
            digits += self.advance()
        return digits


def decode_source(source: str | bytes) -> str:
    """Returns `source` as text, decoding bytes as UTF-8.

    Raises:
        LexError: If `source` is bytes that are not valid UTF-8.
    """
    if isinstance(source, str):
        return source
    try:
        return source.decode("utf-8")
    except UnicodeDecodeError as e:
        line = source.count(b"\n", 0, e.start) + 1
        col = e.start - (source.rfind(b"\n", 0, e.start) + 1) + 1
        raise LexError(f"source is not valid UTF-8 ({e.reason})", line, col, e.start) from e


def tokenize(source: str | bytes) -> list[Token]:
    """Lexes `source` completely and returns every token including EOF."""
    return list(Lexer(CharacterStream(decode_source(source))))


def single_token(source: str | bytes, expected: str) -> Token:
    """Lexes `source`, which must hold exactly one token of type `expected`."""
    tokens = tokenize(source)
    first = tokens[0]
    if first.type != expected:
        raise SkylarkSyntaxError(
            f"expected {expected}, got {first.describe()}",
            first.line,
            first.col,
            first.offset,
        )
    extra = tokens[1]
    if extra.type != "NEWLINE" or tokens[2].type != "EOF":
        raise SkylarkSyntaxError(
            f"unexpected {extra.describe()} after {expected}",
            extra.line,
            extra.col,
            extra.offset,
        )
    return first


def scan_int(source: str | bytes) -> int:
    """Scans a text that is exactly one integer literal and returns its value."""
    value: int = single_token(source, "INT").value
    return value


def scan_identifier(source: str | bytes) -> str:
    """Scans a text that is exactly one identifier and returns it.

    A text such as "0x7" lexes as an integer and is therefore rejected.
    """
    value: str = single_token(source, "IDENT").value
    return value


__all__ = [
    "CharacterStream",
    "Lexer",
    "Token",
    "decode_source",
    "scan_identifier",
    "scan_int",
    "tokenize",
]
