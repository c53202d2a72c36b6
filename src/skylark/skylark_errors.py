"""
Error types raised by the skylark lexer and parser.

Every error is a `ParseError`, which subclasses Python's built-in `SyntaxError`
so callers that already catch `SyntaxError` keep working.

Classes:
    ParseError: Base class. Carries kind, message, line, col and byte offset.
    LexError: Invalid character, unterminated string, bad escape, bad dedent.
    NumberFormatError: Malformed or out-of-range integer literal.
    SkylarkSyntaxError: Grammar violation found by the parser.

Example:
    >>> try:
    ...     parse_expression("f(1 2)")
    ... except ParseError as e:
    ...     print(e.format("f(1 2)"))
    <input>:1:5: SyntaxError: expected ',' or ')', got INT 2
    f(1 2)
        ^
"""


class ParseError(SyntaxError):
    """Base error for everything the front end rejects.

    Attributes:
        kind (str): One of "LexError", "NumberFormatError", "SyntaxError".
        message (str): Human-readable description without location.
        line (int): 1-based line of the offending input.
        col (int): 1-based column of the offending input.
        offset (int): 0-based byte offset into the UTF-8 encoded source.
    """

    kind = "ParseError"

    def __init__(self, message: str, line: int = 0, col: int = 0, offset: int = 0):
        super().__init__(f"{message} at line {line}, col {col}")
        self.message = message
        self.line = line
        self.col = col
        # SyntaxError.offset is the column in the built-in protocol; ours is bytes.
        self.offset = offset

    def format(self, source: str | None = None, path: str = "<input>") -> str:
        """Renders a caret-style diagnostic.

        Args:
            source (str | None): The parsed text. When given, the offending line
                is echoed with a caret under the error column.
            path (str): Name shown in the header line.

        Returns:
            str: The diagnostic text.
        """
        header = f"{path}:{self.line}:{self.col}: {self.kind}: {self.message}"
        if source is None or self.line < 1:
            return header
        # Line numbers only advance on "\n", matching the lexer.
        lines = source.split("\n")
        if self.line > len(lines):
            return header
        text = lines[self.line - 1].rstrip("\r").expandtabs(1)
        caret = " " * max(self.col - 1, 0) + "^"
        return f"{header}\n{text}\n{caret}"


class LexError(ParseError):
    kind = "LexError"


class NumberFormatError(ParseError):
    """Raised for leading zeros, missing or invalid digits, and overflow."""

    kind = "NumberFormatError"


class SkylarkSyntaxError(ParseError):
    """Raised by the parser for any token sequence the grammar rejects."""

    kind = "SyntaxError"


__all__ = ["LexError", "NumberFormatError", "ParseError", "SkylarkSyntaxError"]
