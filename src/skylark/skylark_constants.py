"""
Shared tables for the skylark lexer and parser.

Contents:
    token_hashmap: Maps operator/punctuation lexemes to canonical token types.
        The lexer uses it for longest-match recognition.
    KEYWORDS: Words with grammatical meaning. They are lexed as IDENT and
        reclassified by the parser.
    RESERVED_WORDS: Python words the dialect does not use but refuses as names.
    BINARY_KINDS / COMPARISON_KINDS / ...: Token type → AST node kind tables
        consumed by the expression parser.
    NODE_KINDS: The closed set of AST node kinds.
"""

# Integer literals are signed 32-bit.
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

# Indentation: a tab advances to the next multiple of TAB_WIDTH columns.
TAB_WIDTH = 8

# Deepest bracket nesting the lexer accepts; bounds parser recursion.
MAX_BRACKET_DEPTH = 50

# Deepest block nesting the lexer accepts; bounds recursion through suites.
MAX_INDENT_DEPTH = 20

token_hashmap: dict[str, str] = {
    # Arithmetic
    "+": "PLUS",
    "-": "SUB",
    "*": "MULT",
    "/": "DIV",
    "//": "FLOORDIV",
    "%": "MOD",
    "**": "POW",
    # Bitwise
    "|": "PIPE",
    "&": "AMP",
    # Comparison
    "==": "EQ",
    "!=": "NE",
    "<": "LT",
    ">": "GT",
    "<=": "LE",
    ">=": "GE",
    # Assignment
    "=": "ASSIGN",
    "+=": "PLUS_EQ",
    "-=": "SUB_EQ",
    "*=": "MULT_EQ",
    "/=": "DIV_EQ",
    "//=": "FLOORDIV_EQ",
    "%=": "MOD_EQ",
    "|=": "PIPE_EQ",
    "&=": "AMP_EQ",
    # Punctuation
    "(": "LPAREN",
    ")": "RPAREN",
    "[": "LBRACK",
    "]": "RBRACK",
    "{": "LBRACE",
    "}": "RBRACE",
    ",": "COMMA",
    ":": "COLON",
    ";": "SEMI",
    ".": "DOT",
}

# Longest lexeme in token_hashmap; bounds the lexer's lookahead.
MAX_OPERATOR_LENGTH = max(len(k) for k in token_hashmap)

OPEN_BRACKETS = {"LPAREN", "LBRACK", "LBRACE"}
CLOSE_BRACKETS = {"RPAREN", "RBRACK", "RBRACE"}

KEYWORDS = frozenset(
    {
        "and",
        "break",
        "continue",
        "def",
        "elif",
        "else",
        "for",
        "if",
        "in",
        "lambda",
        "load",
        "not",
        "or",
        "pass",
        "return",
    }
)

RESERVED_WORDS = frozenset(
    {
        "as",
        "assert",
        "async",
        "await",
        "class",
        "del",
        "except",
        "finally",
        "from",
        "global",
        "import",
        "is",
        "nonlocal",
        "raise",
        "try",
        "while",
        "with",
        "yield",
    }
)

# TOKEN → NODE KIND MAPPINGS (PARSER)

COMPARISON_KINDS: dict[str, str] = {
    "EQ": "eq",
    "NE": "ne",
    "LT": "lt",
    "GT": "gt",
    "LE": "le",
    "GE": "ge",
}

ADDITIVE_KINDS: dict[str, str] = {
    "PLUS": "add",
    "SUB": "sub",
}

MULTIPLICATIVE_KINDS: dict[str, str] = {
    "MULT": "mul",
    "DIV": "div",
    "FLOORDIV": "div_floor",
    "MOD": "mod",
}

AUGMENTED_ASSIGN_TOKENS = frozenset(
    {
        "PLUS_EQ",
        "SUB_EQ",
        "MULT_EQ",
        "DIV_EQ",
        "FLOORDIV_EQ",
        "MOD_EQ",
        "PIPE_EQ",
        "AMP_EQ",
    }
)

BINARY_KINDS = frozenset(
    {
        "or",
        "and",
        "bit_or",
        "bit_and",
        "in",
        "not_in",
        *COMPARISON_KINDS.values(),
        *ADDITIVE_KINDS.values(),
        *MULTIPLICATIVE_KINDS.values(),
    }
)

UNARY_KINDS = frozenset({"neg", "not"})

POSTFIX_KINDS = frozenset({"dot", "slice", "call"})

OPERAND_KINDS = frozenset(
    {
        "identifier",
        "int",
        "string",
        "tuple",
        "list",
        "list_comp",
        "dict",
        "dict_comp",
    }
)

EXPR_KINDS = BINARY_KINDS | UNARY_KINDS | POSTFIX_KINDS | OPERAND_KINDS

TEST_KINDS = frozenset({"if_expr", "absent"})

# Nodes that only appear inside an Expr (slice bounds, call arguments, ...)
EXPR_PART_KINDS = frozenset(
    {
        "bounds",
        "arguments",
        "keyword",
        "star_arg",
        "star_star_arg",
        "entry",
        "for_clause",
        "if_clause",
    }
)

SIMPLE_STMT_KINDS = frozenset(
    {
        "expr_stmt",
        "assign",
        "aug_assign",
        "return",
        "break",
        "continue",
        "pass",
        "load",
    }
)

STATEMENT_KINDS = frozenset(
    {
        "suite",
        "simple_stmt",
        "def",
        "if",
        "for",
        "parameters",
        "param",
        "optional_param",
        "bare_star",
        "star_param",
        "star_star_param",
        "load_symbol",
        *SIMPLE_STMT_KINDS,
    }
)

NODE_KINDS = EXPR_KINDS | TEST_KINDS | EXPR_PART_KINDS | STATEMENT_KINDS

__all__ = [
    "ADDITIVE_KINDS",
    "AUGMENTED_ASSIGN_TOKENS",
    "BINARY_KINDS",
    "CLOSE_BRACKETS",
    "COMPARISON_KINDS",
    "EXPR_KINDS",
    "INT32_MAX",
    "INT32_MIN",
    "KEYWORDS",
    "MAX_BRACKET_DEPTH",
    "MAX_INDENT_DEPTH",
    "MAX_OPERATOR_LENGTH",
    "MULTIPLICATIVE_KINDS",
    "NODE_KINDS",
    "OPEN_BRACKETS",
    "RESERVED_WORDS",
    "TAB_WIDTH",
    "token_hashmap",
]
