"""
skylark Parser

Parses skylark tokens into abstract syntax trees (ASTs).

This module turns the lazy token stream produced by `skylark_lexer.Lexer` into
a tree of `ASTNode` instances. Statement parsing and expression parsing are
mutually recursive methods of one `Parser` object, which owns the token cursor.

Supported Constructs
--------------------
- Expressions, lowest to highest binding:
    * Conditional: `a if cond else b`
    * Boolean: `or`, `and`, prefix `not`
    * Comparison (non-chaining): `== != < > <= >= in not in`
    * Bitwise: `|`, `&`
    * Arithmetic: `+ -`, `* / // %`, prefix `-`
    * Postfix: `.name`, `[i]`, `[start:stop:step]`, `(args)`
    * Atoms: identifiers, ints, strings, tuples, lists, dicts, comprehensions

- Statements:
    * `def name(params): suite`
    * `if cond: suite [elif cond: suite]* [else: suite]`
    * `for target in iterable: suite`
    * Simple statements separated by `;`: expression, `=`, augmented
      assignment, `return`, `break`, `continue`, `pass`, `load(...)`

Parser Behavior
---------------
- Fails fast: the first violation raises `SkylarkSyntaxError` with the position
  of the offending token. There is no error recovery.
- Keywords arrive as IDENT tokens and are recognised here.
- Pulls tokens from the lexer only as far as it needs to look ahead.

Entry Points
------------
- `parse_module(text)`: Parse a whole file into a "statements" suite.
- `parse_expression(text)`: Parse one expression (a bare `a, b` is a tuple).
- `Parser.parse()` / `Parser.parse_expr_entrypoint()`: Same, over any token iterable.

Raises
------
ParseError
    `LexError` and `NumberFormatError` from the lexer, `SkylarkSyntaxError`
    from the parser.
"""

import logging
from collections.abc import Iterable, Iterator

from skylark.skylark_ast import ASTNode
from skylark.skylark_constants import (
    ADDITIVE_KINDS,
    AUGMENTED_ASSIGN_TOKENS,
    COMPARISON_KINDS,
    KEYWORDS,
    MULTIPLICATIVE_KINDS,
    RESERVED_WORDS,
    token_hashmap,
)
from skylark.skylark_errors import SkylarkSyntaxError
from skylark.skylark_lexer import (
    IDENT_CHARS,
    IDENT_START,
    CharacterStream,
    Lexer,
    Token,
    decode_source,
)

logger = logging.getLogger(__name__)

TOKEN_NAMES: dict[str, str] = {v: repr(k) for k, v in token_hashmap.items()}
TOKEN_NAMES.update(
    {
        "IDENT": "identifier",
        "INT": "integer",
        "STRING": "string literal",
        "NEWLINE": "newline",
        "INDENT": "indentation",
        "OUTDENT": "outdent",
        "EOF": "end of input",
    }
)

EXPRESSION_START = {"IDENT", "INT", "STRING", "LPAREN", "LBRACK", "LBRACE", "SUB"}

# Call argument ordering: each kind may only follow kinds of lower or equal rank.
ARGUMENT_RANKS = {
    "positional": 0,
    "keyword": 1,
    "star_arg": 2,
    "star_star_arg": 3,
}
ARGUMENT_LABELS = {
    "positional": "positional argument",
    "keyword": "keyword argument",
    "star_arg": "*args",
    "star_star_arg": "**kwargs",
}


def is_identifier(text: str) -> bool:
    """True if `text` is a valid non-keyword identifier."""
    return (
        bool(text)
        and text[0] in IDENT_START
        and all(c in IDENT_CHARS for c in text)
        and text not in KEYWORDS
        and text not in RESERVED_WORDS
    )


class Parser:
    """
    skylark Parser Class

    Transforms a token stream into `ASTNode` trees.

    Attributes
    ----------
    tokens : list[Token]
        Tokens pulled from the source so far (the lookahead buffer).
    position : int
        Index of the current token in `tokens`.

    Methods
    -------
    parse() -> ASTNode
        Parse a complete module into a "statements" suite.
    parse_expr_entrypoint() -> ASTNode
        Parse a standalone expression and require end of input.
    parse_statement() -> ASTNode
        Parse a compound statement or a simple statement line.
    parse_suite() -> ASTNode
        Parse the block after a `:`.
    parse_test() -> ASTNode
        Parse an expression that may be a conditional expression.

    Raises
    ------
    SkylarkSyntaxError
        When the token sequence violates the grammar.
    """

    def __init__(self, tokens: Iterable[Token]) -> None:
        self.source: Iterator[Token] = iter(tokens)
        self.tokens: list[Token] = []
        self.position: int = 0

    # Token cursor

    def fill(self, index: int) -> Token:
        """Pulls tokens from the source until `index` is buffered."""
        while len(self.tokens) <= index:
            tok = next(self.source, None)
            if tok is None:
                last = self.tokens[-1] if self.tokens else Token("EOF", "EOF", 1, 1)
                tok = Token("EOF", "EOF", last.line, last.col, last.end, last.end)
            self.tokens.append(tok)
        return self.tokens[index]

    def current(self) -> Token:
        return self.fill(self.position)

    def peek(self, offset: int = 1) -> Token:
        return self.fill(self.position + offset)

    def advance(self) -> Token:
        """Consumes and returns the current token."""
        tok = self.current()
        if tok.type != "EOF":
            self.position += 1
        return tok

    def error(self, message: str, tok: Token | None = None) -> SkylarkSyntaxError:
        tok = tok or self.current()
        return SkylarkSyntaxError(message, tok.line, tok.col, tok.offset)

    def match(self, *types: str, strict: bool = True) -> Token | None:
        tok = self.current()
        if tok.type in types:
            return self.advance()
        if strict:
            expected = " or ".join(TOKEN_NAMES.get(t, t) for t in types)
            raise self.error(f"expected {expected}, got {tok.describe()}")
        return None

    def expect(self, *types: str) -> Token:
        tok = self.match(*types)
        assert tok is not None
        return tok

    def is_keyword(self, word: str, tok: Token | None = None) -> bool:
        tok = tok or self.current()
        return tok.type == "IDENT" and tok.value == word

    def match_keyword(self, word: str) -> Token:
        if not self.is_keyword(word):
            raise self.error(f"expected '{word}', got {self.current().describe()}")
        return self.advance()

    def match_name(self) -> Token:
        """Consumes an identifier that is not a keyword or reserved word."""
        tok = self.current()
        if tok.type != "IDENT":
            raise self.error(f"expected identifier, got {tok.describe()}")
        if tok.value in KEYWORDS:
            raise self.error(f"keyword '{tok.value}' cannot be used as an identifier")
        if tok.value in RESERVED_WORDS:
            raise self.error(f"'{tok.value}' is a reserved word")
        return self.advance()

    def node(
        self,
        kind: str,
        tok: Token,
        value: str | int | bytes | None = None,
        children: list[ASTNode] | None = None,
        else_children: list[ASTNode] | None = None,
    ) -> ASTNode:
        return ASTNode(kind, value, children, tok.line, tok.col, else_children)

    def starts_expression(self) -> bool:
        tok = self.current()
        if tok.type == "IDENT":
            return tok.value == "not" or tok.value not in KEYWORDS
        return tok.type in EXPRESSION_START

    def check_target(self, expr: ASTNode, tok: Token, context: str) -> None:
        """Rejects expressions that cannot be assigned to."""
        if expr.kind in ("identifier", "dot", "slice"):
            return
        if expr.kind in ("tuple", "list") and expr.children:
            for child in expr.children:
                self.check_target(child, tok, context)
            return
        raise self.error(f"{context}: cannot assign to {expr.kind}", tok)

    # Entry points

    def parse(self) -> ASTNode:
        """Parse a full module and return its top-level "statements" suite."""
        statements: list[ASTNode] = []
        while self.current().type != "EOF":
            statements.append(self.parse_statement())
        return ASTNode("suite", "statements", statements, line=1, col=1)

    def parse_expr_entrypoint(self) -> ASTNode:
        """Parse a standalone expression; only layout tokens may follow it."""
        if self.current().type == "INDENT":
            self.advance()
        expr = self.parse_expr_list()
        while self.current().type in ("NEWLINE", "OUTDENT"):
            self.advance()
        if self.current().type != "EOF":
            raise self.error(f"unexpected {self.current().describe()} after expression")
        return expr

    # Statements

    def parse_statement(self) -> ASTNode:
        """Dispatch on the first token of a statement."""
        if self.current().type == "INDENT":
            raise self.error("unexpected indentation")
        if self.is_keyword("def"):
            return self.parse_def()
        if self.is_keyword("if"):
            return self.parse_if()
        if self.is_keyword("for"):
            return self.parse_for()
        return self.parse_simple_stmt()

    def parse_suite(self) -> ASTNode:
        """Parse the block following a `:`.

        Either NEWLINE INDENT statements OUTDENT, giving a "statements" suite,
        or a simple statement on the same line, giving a "simple_stmt" suite.
        """
        tok = self.current()
        if tok.type != "NEWLINE":
            return self.node("suite", tok, "simple_stmt", [self.parse_simple_stmt()])

        self.advance()
        if self.current().type != "INDENT":
            raise self.error("expected an indented block")
        indent = self.advance()
        statements: list[ASTNode] = []
        while self.current().type not in ("OUTDENT", "EOF"):
            statements.append(self.parse_statement())
        self.match("OUTDENT", strict=False)
        return self.node("suite", indent, "statements", statements)

    def parse_simple_stmt(self) -> ASTNode:
        """Parse `small_stmt (';' small_stmt)* [';']` up to the end of the line."""
        first = self.current()
        statements = [self.parse_small_stmt()]
        while self.current().type == "SEMI":
            self.advance()
            if self.current().type in ("NEWLINE", "EOF"):
                break
            statements.append(self.parse_small_stmt())
        if self.current().type != "EOF":
            self.match("NEWLINE")
        return self.node("simple_stmt", first, children=statements)

    def parse_small_stmt(self) -> ASTNode:
        tok = self.current()

        if self.is_keyword("return"):
            self.advance()
            if self.current().type in ("NEWLINE", "SEMI", "EOF"):
                return self.node("return", tok)
            return self.node("return", tok, children=[self.parse_expr_list()])
        for word in ("break", "continue", "pass"):
            if self.is_keyword(word):
                self.advance()
                return self.node(word, tok)
        if self.is_keyword("load"):
            return self.parse_load()

        expr = self.parse_expr_list()

        if self.current().type == "ASSIGN":
            self.advance()
            self.check_target(expr, tok, "invalid assignment target")
            value = self.parse_expr_list()
            if self.current().type == "ASSIGN":
                raise self.error("chained assignment is not supported")
            return self.node("assign", tok, children=[expr, value])

        if self.current().type in AUGMENTED_ASSIGN_TOKENS:
            op_tok = self.advance()
            if expr.kind not in ("identifier", "dot", "slice"):
                raise self.error(
                    f"invalid augmented assignment target: cannot assign to {expr.kind}",
                    tok,
                )
            value = self.parse_expr_list()
            return self.node("aug_assign", tok, op_tok.value, [expr, value])

        return self.node("expr_stmt", tok, children=[expr])

    def parse_load(self) -> ASTNode:
        """Parse `load("module", "sym", alias="sym", ...)`."""
        load_tok = self.advance()
        self.expect("LPAREN")
        module_tok = self.match("STRING", strict=False)
        if module_tok is None:
            raise self.error(
                f"load: expected module string, got {self.current().describe()}"
            )
        children = [self.node("string", module_tok, module_tok.value)]

        while self.current().type == "COMMA":
            self.advance()
            if self.current().type == "RPAREN":
                break
            if self.current().type == "IDENT" and self.peek().type == "ASSIGN":
                name_tok = self.match_name()
                self.advance()
                sym_tok = self.expect("STRING")
                local = name_tok.value
            else:
                sym_tok = self.expect("STRING")
                local = sym_tok.value.decode("utf-8", "replace")
                if not is_identifier(local):
                    raise self.error(
                        f"load: {local!r} is not a valid identifier; use alias=\"...\"",
                        sym_tok,
                    )
            symbol = self.node("string", sym_tok, sym_tok.value)
            children.append(self.node("load_symbol", sym_tok, local, [symbol]))

        if self.current().type != "RPAREN":
            raise self.error(f"expected ',' or ')', got {self.current().describe()}")
        self.advance()
        if len(children) == 1:
            raise self.error("load statement must import at least one symbol", load_tok)
        return self.node("load", load_tok, children=children)

    def parse_def(self) -> ASTNode:
        def_tok = self.advance()
        name_tok = self.match_name()
        params = self.parse_parameters()
        self.expect("COLON")
        body = self.parse_suite()
        return self.node("def", def_tok, name_tok.value, [params, body])

    def parse_parameters(self) -> ASTNode:
        """Parse `(a, b=1, *args, c, **kwargs)` into a "parameters" node."""
        open_tok = self.expect("LPAREN")
        params: list[ASTNode] = []
        seen_star = False
        seen_kwargs = False

        while self.current().type != "RPAREN":
            tok = self.current()
            if seen_kwargs:
                raise self.error("parameter may not follow **kwargs")
            if tok.type == "POW":
                self.advance()
                name_tok = self.match_name()
                params.append(self.node("star_star_param", tok, name_tok.value))
                seen_kwargs = True
            elif tok.type == "MULT":
                if seen_star:
                    raise self.error("multiple * parameters")
                self.advance()
                seen_star = True
                if self.current().type in ("COMMA", "RPAREN"):
                    params.append(self.node("bare_star", tok))
                else:
                    name_tok = self.match_name()
                    params.append(self.node("star_param", tok, name_tok.value))
            else:
                name_tok = self.match_name()
                if self.current().type == "ASSIGN":
                    self.advance()
                    default = self.parse_test()
                    params.append(
                        self.node("optional_param", name_tok, name_tok.value, [default])
                    )
                else:
                    params.append(self.node("param", name_tok, name_tok.value))

            if self.current().type != "COMMA":
                break
            self.advance()

        if self.current().type != "RPAREN":
            raise self.error(f"expected ',' or ')', got {self.current().describe()}")
        self.advance()
        return self.node("parameters", open_tok, children=params)

    def parse_if(self) -> ASTNode:
        """Parse an if statement. `elif` nests another `if` in the else branch."""
        branches: list[tuple[Token, ASTNode, ASTNode]] = []
        tok = self.advance()
        while True:
            cond = self.parse_test()
            self.expect("COLON")
            branches.append((tok, cond, self.parse_suite()))
            if not self.is_keyword("elif"):
                break
            tok = self.advance()

        else_children: list[ASTNode] = []
        if self.is_keyword("else"):
            self.advance()
            self.expect("COLON")
            else_children = [self.parse_suite()]

        # Fold innermost first so an elif chain never recurses.
        for tok, cond, suite in reversed(branches):
            node = self.node("if", tok, children=[cond, suite], else_children=else_children)
            else_children = [self.node("suite", tok, "statements", [node])]
        return node

    def parse_for(self) -> ASTNode:
        for_tok = self.advance()
        target_tok = self.current()
        target = self.parse_loop_variables()
        self.check_target(target, target_tok, "invalid for loop variable")
        self.match_keyword("in")
        iterable = self.parse_expr_list()
        self.expect("COLON")
        body = self.parse_suite()
        return self.node("for", for_tok, children=[target, iterable, body])

    def parse_loop_variables(self) -> ASTNode:
        """Parse `x` or `x, y` ahead of `in`; parsed below comparison level."""
        tok = self.current()
        first = self.parse_bit_or()
        if self.current().type != "COMMA":
            return first
        items = [first]
        while self.current().type == "COMMA":
            self.advance()
            if self.is_keyword("in"):
                break
            items.append(self.parse_bit_or())
        return self.node("tuple", tok, children=items)

    # Expressions

    def parse_expr_list(self) -> ASTNode:
        """Parse `test (',' test)* [',']`; a comma makes a tuple."""
        tok = self.current()
        first = self.parse_test()
        if self.current().type != "COMMA":
            return first
        items = [first]
        while self.current().type == "COMMA":
            self.advance()
            if not self.starts_expression():
                break
            items.append(self.parse_test())
        return self.node("tuple", tok, children=items)

    def parse_test(self) -> ASTNode:
        """Parse `or_expr ['if' or_expr 'else' test]`."""
        node = self.parse_or()
        branches: list[tuple[ASTNode, ASTNode]] = []
        while self.is_keyword("if"):
            self.advance()
            cond = self.parse_or()
            self.match_keyword("else")
            branches.append((node, cond))
            node = self.parse_or()
        for then, cond in reversed(branches):
            node = ASTNode("if_expr", None, [then, cond, node], then.line, then.col)
        return node

    def parse_or(self) -> ASTNode:
        left = self.parse_and()
        while self.is_keyword("or"):
            op_tok = self.advance()
            right = self.parse_and()
            left = self.node("or", op_tok, children=[left, right])
        return left

    def parse_and(self) -> ASTNode:
        left = self.parse_not()
        while self.is_keyword("and"):
            op_tok = self.advance()
            right = self.parse_not()
            left = self.node("and", op_tok, children=[left, right])
        return left

    def parse_not(self) -> ASTNode:
        """Prefix `not` binds looser than comparison: `not a == b` is not(a == b)."""
        ops: list[Token] = []
        while self.is_keyword("not"):
            ops.append(self.advance())
        node = self.parse_comparison()
        for op_tok in reversed(ops):
            node = self.node("not", op_tok, children=[node])
        return node

    def comparison_kind(self) -> str | None:
        tok = self.current()
        if tok.type in COMPARISON_KINDS:
            return COMPARISON_KINDS[tok.type]
        if self.is_keyword("in"):
            return "in"
        if self.is_keyword("not") and self.is_keyword("in", self.peek()):
            return "not_in"
        return None

    def parse_comparison(self) -> ASTNode:
        """Parse at most one comparison; `a < b < c` is an error."""
        left = self.parse_bit_or()
        kind = self.comparison_kind()
        if kind is None:
            return left
        op_tok = self.advance()
        if kind == "not_in":
            self.advance()
        right = self.parse_bit_or()
        if self.comparison_kind() is not None:
            raise self.error("comparison operators cannot be chained; use parentheses")
        return self.node(kind, op_tok, children=[left, right])

    def parse_bit_or(self) -> ASTNode:
        left = self.parse_bit_and()
        while self.current().type == "PIPE":
            op_tok = self.advance()
            right = self.parse_bit_and()
            left = self.node("bit_or", op_tok, children=[left, right])
        return left

    def parse_bit_and(self) -> ASTNode:
        left = self.parse_arith()
        while self.current().type == "AMP":
            op_tok = self.advance()
            right = self.parse_arith()
            left = self.node("bit_and", op_tok, children=[left, right])
        return left

    def parse_arith(self) -> ASTNode:
        left = self.parse_term()
        while self.current().type in ADDITIVE_KINDS:
            op_tok = self.advance()
            right = self.parse_term()
            left = self.node(ADDITIVE_KINDS[op_tok.type], op_tok, children=[left, right])
        return left

    def parse_term(self) -> ASTNode:
        left = self.parse_unary()
        while self.current().type in MULTIPLICATIVE_KINDS:
            op_tok = self.advance()
            right = self.parse_unary()
            left = self.node(
                MULTIPLICATIVE_KINDS[op_tok.type], op_tok, children=[left, right]
            )
        return left

    def parse_unary(self) -> ASTNode:
        ops: list[Token] = []
        while self.current().type == "SUB":
            ops.append(self.advance())
        node = self.parse_postfix()
        for op_tok in reversed(ops):
            node = self.node("neg", op_tok, children=[node])
        return node

    def parse_postfix(self) -> ASTNode:
        """Parse a primary followed by any chain of `.name`, `[...]`, `(...)`."""
        node = self.parse_primary()
        while True:
            tok = self.current()
            if tok.type == "DOT":
                self.advance()
                name_tok = self.match_name()
                node = self.node("dot", tok, name_tok.value, [node])
            elif tok.type == "LBRACK":
                node = self.parse_subscript(node)
            elif tok.type == "LPAREN":
                node = self.parse_call(node)
            else:
                return node

    def parse_subscript(self, target: ASTNode) -> ASTNode:
        """Parse `[i]`, `[i, j]` or `[start:stop:step]` applied to `target`."""
        open_tok = self.advance()
        if self.current().type == "RBRACK":
            raise self.error("empty subscript")

        if self.current().type == "COLON":
            start = self.node("absent", self.current())
        else:
            start_tok = self.current()
            start = self.parse_test()
            if self.current().type == "COMMA":
                # `d[1, 2]` indexes with a tuple; tuples cannot start a range.
                items = [start]
                while self.current().type == "COMMA":
                    self.advance()
                    if self.current().type == "RBRACK":
                        break
                    items.append(self.parse_test())
                start = self.node("tuple", start_tok, children=items)
                if self.current().type != "RBRACK":
                    raise self.error(f"expected ',' or ']', got {self.current().describe()}")
            if self.current().type == "RBRACK":
                self.advance()
                bounds = self.node("bounds", open_tok, "index", [start])
                return self.node("slice", open_tok, children=[target, bounds])
            if self.current().type != "COLON":
                raise self.error(f"expected ':' or ']', got {self.current().describe()}")

        self.expect("COLON")
        stop = self.parse_optional_bound()
        if self.current().type == "COLON":
            self.advance()
            step = self.parse_optional_bound()
        else:
            step = self.node("absent", self.current())
        self.expect("RBRACK")

        bounds = self.node("bounds", open_tok, "range", [start, stop, step])
        return self.node("slice", open_tok, children=[target, bounds])

    def parse_optional_bound(self) -> ASTNode:
        if self.current().type in ("COLON", "RBRACK"):
            return self.node("absent", self.current())
        return self.parse_test()

    def parse_call(self, callee: ASTNode) -> ASTNode:
        """Parse an argument list applied to `callee`.

        Arguments must come in the order positional, keyword, *args, **kwargs.
        """
        open_tok = self.advance()
        args: list[ASTNode] = []
        last_kind = "positional"

        while self.current().type != "RPAREN":
            tok = self.current()
            if tok.type == "POW":
                kind = "star_star_arg"
            elif tok.type == "MULT":
                kind = "star_arg"
            elif tok.type == "IDENT" and self.peek().type == "ASSIGN":
                kind = "keyword"
            else:
                kind = "positional"

            if ARGUMENT_RANKS[kind] < ARGUMENT_RANKS[last_kind]:
                raise self.error(
                    f"{ARGUMENT_LABELS[kind]} may not follow {ARGUMENT_LABELS[last_kind]}"
                )
            if kind in ("star_arg", "star_star_arg") and kind == last_kind:
                raise self.error(f"multiple {ARGUMENT_LABELS[kind]} arguments")
            last_kind = kind

            if kind == "keyword":
                name_tok = self.match_name()
                self.advance()
                args.append(self.node("keyword", name_tok, name_tok.value, [self.parse_test()]))
            elif kind == "positional":
                args.append(self.parse_test())
            else:
                self.advance()
                args.append(self.node(kind, tok, children=[self.parse_test()]))

            if self.current().type != "COMMA":
                break
            self.advance()

        if self.current().type != "RPAREN":
            raise self.error(f"expected ',' or ')', got {self.current().describe()}")
        self.advance()
        arguments = self.node("arguments", open_tok, children=args)
        return self.node("call", open_tok, children=[callee, arguments])

    def parse_primary(self) -> ASTNode:
        tok = self.current()
        if tok.type == "IDENT":
            if tok.value in KEYWORDS:
                raise self.error(f"unexpected keyword '{tok.value}'")
            name_tok = self.match_name()
            return self.node("identifier", name_tok, name_tok.value)
        if tok.type == "INT":
            self.advance()
            return self.node("int", tok, tok.value)
        if tok.type == "STRING":
            self.advance()
            return self.node("string", tok, tok.value)
        if tok.type == "LPAREN":
            return self.parse_paren()
        if tok.type == "LBRACK":
            return self.parse_list()
        if tok.type == "LBRACE":
            return self.parse_dict()
        if tok.type == "INDENT":
            raise self.error("unexpected indentation")
        raise self.error(f"unexpected {tok.describe()}")

    def parse_paren(self) -> ASTNode:
        """`()` and `(x,)`/`(x, y)` are tuples; `(x)` is just `x`."""
        open_tok = self.advance()
        if self.current().type == "RPAREN":
            self.advance()
            return self.node("tuple", open_tok, children=[])

        first = self.parse_test()
        if self.current().type == "RPAREN":
            self.advance()
            return first

        items = [first]
        while self.current().type == "COMMA":
            self.advance()
            if self.current().type == "RPAREN":
                break
            items.append(self.parse_test())
        if self.current().type != "RPAREN":
            raise self.error(f"expected ',' or ')', got {self.current().describe()}")
        self.advance()
        return self.node("tuple", open_tok, children=items)

    def parse_list(self) -> ASTNode:
        open_tok = self.advance()
        if self.current().type == "RBRACK":
            self.advance()
            return self.node("list", open_tok, children=[])

        first = self.parse_test()
        if self.is_keyword("for"):
            clauses = self.parse_comprehension_clauses()
            self.expect("RBRACK")
            return self.node("list_comp", open_tok, children=[first, *clauses])

        items = [first]
        while self.current().type == "COMMA":
            self.advance()
            if self.current().type == "RBRACK":
                break
            items.append(self.parse_test())
        if self.current().type != "RBRACK":
            raise self.error(f"expected ',' or ']', got {self.current().describe()}")
        self.advance()
        return self.node("list", open_tok, children=items)

    def parse_dict(self) -> ASTNode:
        open_tok = self.advance()
        if self.current().type == "RBRACE":
            self.advance()
            return self.node("dict", open_tok, children=[])

        first = self.parse_entry()
        if self.is_keyword("for"):
            clauses = self.parse_comprehension_clauses()
            self.expect("RBRACE")
            return self.node("dict_comp", open_tok, children=[first, *clauses])

        entries = [first]
        while self.current().type == "COMMA":
            self.advance()
            if self.current().type == "RBRACE":
                break
            entries.append(self.parse_entry())
        if self.current().type != "RBRACE":
            raise self.error(f"expected ',' or '}}', got {self.current().describe()}")
        self.advance()
        return self.node("dict", open_tok, children=entries)

    def parse_entry(self) -> ASTNode:
        tok = self.current()
        key = self.parse_test()
        self.expect("COLON")
        value = self.parse_test()
        return self.node("entry", tok, children=[key, value])

    def parse_comprehension_clauses(self) -> list[ASTNode]:
        """Parse `for x in y` followed by any mix of `for` and `if` clauses."""
        clauses: list[ASTNode] = []
        while True:
            tok = self.current()
            if self.is_keyword("for"):
                self.advance()
                target_tok = self.current()
                target = self.parse_loop_variables()
                self.check_target(target, target_tok, "malformed comprehension clause")
                if not self.is_keyword("in"):
                    raise self.error(
                        "malformed comprehension clause: "
                        f"expected 'in', got {self.current().describe()}"
                    )
                self.advance()
                iterable = self.parse_or()
                clauses.append(self.node("for_clause", tok, children=[target, iterable]))
            elif self.is_keyword("if"):
                self.advance()
                cond = self.parse_or()
                clauses.append(self.node("if_clause", tok, children=[cond]))
            else:
                return clauses


def make_parser(text: str | bytes) -> Parser:
    return Parser(Lexer(CharacterStream(decode_source(text))))


def parse_expression(text: str | bytes) -> ASTNode:
    """Parse a standalone expression.

    Args:
        text (str | bytes): Source text; bytes are decoded as UTF-8.

    Returns:
        ASTNode: The expression tree.

    Raises:
        ParseError: On any lexical or syntax error, including trailing tokens.
    """
    logger.debug("parsing expression (%d chars)", len(text))
    return make_parser(text).parse_expr_entrypoint()


def parse_module(text: str | bytes) -> ASTNode:
    """Parse a full statement sequence into a "statements" suite.

    Raises:
        ParseError: On the first lexical or syntax error.
    """
    logger.debug("parsing module (%d chars)", len(text))
    tree = make_parser(text).parse()
    logger.debug("parsed %d top-level statements", len(tree.children))
    return tree


__all__ = ["Parser", "parse_expression", "parse_module"]
