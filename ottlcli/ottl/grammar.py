"""
Lexer, syntax tree and recursive-descent parser for OTTL statements.

A statement is a single editor invocation, optionally guarded by a boolean
condition::

    set(attributes["env"], "prod") where resource.attributes["k8s"] != nil

The parser only checks syntax. Names (functions, paths, enum symbols) are
bound to a context by :mod:`ottlcli.ottl.compiler`.
"""

import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from ottlcli.errors import CompileError

# Tokens


@dataclass(frozen=True)
class Token:
    kind: str
    value: Any
    pos: int


_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<string>"(?:[^"\\]|\\.)*")
  | (?P<bytes>0x[0-9a-fA-F]+)
  | (?P<float>(?:\d+\.\d*|\.\d+)(?:[eE][+-]?\d+)?|\d+[eE][+-]?\d+)
  | (?P<int>\d+)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<op>==|!=|<=|>=|[<>+\-*/()\[\]{},.:=])
    """,
    re.VERBOSE,
)

_ESCAPES = {'"': '"', "\\": "\\", "n": "\n", "t": "\t", "r": "\r"}


def _unquote(raw: str, pos: int) -> str:
    out = []
    i = 1
    while i < len(raw) - 1:
        ch = raw[i]
        if ch == "\\":
            nxt = raw[i + 1]
            if nxt not in _ESCAPES:
                raise CompileError(
                    f"invalid escape sequence '\\{nxt}' in string literal",
                    position=pos + i,
                )
            out.append(_ESCAPES[nxt])
            i += 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def tokenize(text: str) -> List[Token]:
    """Split statement text into tokens, ending with an ``eof`` token."""
    tokens = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            if text[pos] == '"':
                raise CompileError("unterminated string literal", position=pos)
            raise CompileError(f"unexpected character {text[pos]!r}", position=pos)
        kind = match.lastgroup
        raw = match.group()
        if kind == "string":
            tokens.append(Token("string", _unquote(raw, pos), pos))
        elif kind == "bytes":
            digits = raw[2:]
            if len(digits) % 2:
                raise CompileError(
                    "byte literal must have an even number of hex digits",
                    position=pos,
                )
            tokens.append(Token("bytes", bytes.fromhex(digits), pos))
        elif kind == "float":
            tokens.append(Token("float", float(raw), pos))
        elif kind == "int":
            tokens.append(Token("int", int(raw), pos))
        elif kind != "ws":
            tokens.append(Token(kind, raw, pos))
        pos = match.end()
    tokens.append(Token("eof", None, pos))
    return tokens


# Syntax tree


@dataclass
class Literal:
    value: Any
    pos: int


@dataclass
class ListExpr:
    items: list
    pos: int


@dataclass
class MapExpr:
    items: list  # (key, value) pairs
    pos: int


@dataclass
class PathExpr:
    segments: List[str]
    keys: List[Union[str, int]]
    pos: int

    def __str__(self) -> str:
        text = ".".join(self.segments)
        for key in self.keys:
            text += f'["{key}"]' if isinstance(key, str) else f"[{key}]"
        return text


@dataclass
class EnumExpr:
    name: str
    pos: int


@dataclass
class Argument:
    value: Any
    pos: int
    name: Optional[str] = None


@dataclass
class ConverterCall:
    name: str
    args: List[Argument]
    pos: int
    keys: List[Union[str, int]] = field(default_factory=list)


@dataclass
class MathExpr:
    op: str
    left: Any
    right: Any
    pos: int


@dataclass
class Negate:
    operand: Any
    pos: int


@dataclass
class Comparison:
    op: str
    left: Any
    right: Any
    pos: int


@dataclass
class BoolOp:
    op: str  # "and" / "or"
    operands: list
    pos: int


@dataclass
class Not:
    operand: Any
    pos: int


@dataclass
class BoolTerm:
    """A value used directly as a condition (literal, path or converter)."""

    value: Any
    pos: int


@dataclass
class EditorInvocation:
    name: str
    args: List[Argument]
    pos: int


@dataclass
class Statement:
    editor: EditorInvocation
    condition: Optional[Any]
    text: str


# Parser

_COMPARISON_OPS = {"==", "!=", "<", "<=", ">", ">="}
_KEYWORDS = {"where", "and", "or", "not", "true", "false", "nil"}


class Parser:
    """Recursive-descent parser producing a :class:`Statement`."""

    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)
        self.index = 0

    # token helpers

    def peek(self, offset: int = 0) -> Token:
        return self.tokens[min(self.index + offset, len(self.tokens) - 1)]

    def advance(self) -> Token:
        token = self.peek()
        self.index += 1
        return token

    def at(self, kind: str, value: Any = None) -> bool:
        token = self.peek()
        if token.kind != kind:
            return False
        return value is None or token.value == value

    def at_keyword(self, word: str) -> bool:
        return self.at("ident", word)

    def expect(self, kind: str, value: Any = None) -> Token:
        if not self.at(kind, value):
            token = self.peek()
            wanted = value if value is not None else kind
            raise CompileError(
                f"expected {wanted!r} but found {_describe(token)}",
                position=token.pos,
            )
        return self.advance()

    # statement

    def parse_statement(self) -> Statement:
        if self.at("eof"):
            raise CompileError("empty statement", position=0)
        editor = self.parse_editor()
        condition = None
        if self.at_keyword("where"):
            self.advance()
            condition = self.parse_bool_expr()
        if not self.at("eof"):
            token = self.peek()
            raise CompileError(
                f"unexpected {_describe(token)} after statement", position=token.pos
            )
        return Statement(editor=editor, condition=condition, text=self.text)

    def parse_editor(self) -> EditorInvocation:
        token = self.expect("ident")
        if not self.at("op", "("):
            raise CompileError(
                "statement must start with an editor invocation, "
                f"found {token.value!r}",
                position=token.pos,
            )
        args = self.parse_arguments()
        return EditorInvocation(name=token.value, args=args, pos=token.pos)

    def parse_arguments(self) -> List[Argument]:
        self.expect("op", "(")
        args: List[Argument] = []
        if self.at("op", ")"):
            self.advance()
            return args
        while True:
            start = self.peek()
            name = None
            nxt = self.peek(1)
            if start.kind == "ident" and nxt.kind == "op" and nxt.value == "=":
                name = start.value
                self.advance()
                self.advance()
            args.append(Argument(value=self.parse_value(), pos=start.pos, name=name))
            if self.at("op", ","):
                self.advance()
                continue
            self.expect("op", ")")
            return args

    # conditions

    def parse_bool_expr(self):
        pos = self.peek().pos
        operands = [self.parse_and_expr()]
        while self.at_keyword("or"):
            self.advance()
            operands.append(self.parse_and_expr())
        return operands[0] if len(operands) == 1 else BoolOp("or", operands, pos)

    def parse_and_expr(self):
        pos = self.peek().pos
        operands = [self.parse_not_expr()]
        while self.at_keyword("and"):
            self.advance()
            operands.append(self.parse_not_expr())
        return operands[0] if len(operands) == 1 else BoolOp("and", operands, pos)

    def parse_not_expr(self):
        if self.at_keyword("not"):
            token = self.advance()
            return Not(self.parse_not_expr(), token.pos)
        return self.parse_bool_primary()

    def parse_bool_primary(self):
        if self.at("op", "("):
            saved = self.index
            try:
                self.advance()
                expr = self.parse_bool_expr()
                self.expect("op", ")")
                if not self._at_value_operator():
                    return expr
            except CompileError:
                pass
            # the parenthesis opened a math expression, e.g. (a + b) > c
            self.index = saved

        start = self.peek()
        left = self.parse_value()
        if self.at("op") and self.peek().value in _COMPARISON_OPS:
            op = self.advance().value
            right = self.parse_value()
            return Comparison(op, left, right, start.pos)
        return BoolTerm(left, start.pos)

    def _at_value_operator(self) -> bool:
        token = self.peek()
        return token.kind == "op" and (
            token.value in _COMPARISON_OPS or token.value in {"+", "-", "*", "/"}
        )

    # values

    def parse_value(self):
        return self.parse_additive()

    def parse_additive(self):
        left = self.parse_multiplicative()
        while self.at("op") and self.peek().value in ("+", "-"):
            token = self.advance()
            right = self.parse_multiplicative()
            left = MathExpr(token.value, left, right, token.pos)
        return left

    def parse_multiplicative(self):
        left = self.parse_unary()
        while self.at("op") and self.peek().value in ("*", "/"):
            token = self.advance()
            right = self.parse_unary()
            left = MathExpr(token.value, left, right, token.pos)
        return left

    def parse_unary(self):
        if self.at("op", "-"):
            token = self.advance()
            operand = self.parse_unary()
            if isinstance(operand, Literal) and isinstance(operand.value, (int, float)):
                return Literal(-operand.value, token.pos)
            return Negate(operand, token.pos)
        return self.parse_atom()

    def parse_atom(self):
        token = self.peek()
        if token.kind in ("string", "int", "float", "bytes"):
            self.advance()
            return Literal(token.value, token.pos)
        if token.kind == "op":
            if token.value == "(":
                self.advance()
                expr = self.parse_value()
                self.expect("op", ")")
                return expr
            if token.value == "[":
                return self.parse_list()
            if token.value == "{":
                return self.parse_map()
        if token.kind == "ident":
            if token.value == "true":
                self.advance()
                return Literal(True, token.pos)
            if token.value == "false":
                self.advance()
                return Literal(False, token.pos)
            if token.value == "nil":
                self.advance()
                return Literal(None, token.pos)
            if token.value in _KEYWORDS:
                raise CompileError(
                    f"unexpected keyword {token.value!r}", position=token.pos
                )
            if self.peek(1).kind == "op" and self.peek(1).value == "(":
                return self.parse_converter()
            if _is_enum_symbol(token.value):
                self.advance()
                return EnumExpr(token.value, token.pos)
            return self.parse_path()
        raise CompileError(f"unexpected {_describe(token)}", position=token.pos)

    def parse_list(self) -> ListExpr:
        start = self.expect("op", "[")
        items = []
        if not self.at("op", "]"):
            while True:
                items.append(self.parse_value())
                if self.at("op", ","):
                    self.advance()
                    continue
                break
        self.expect("op", "]")
        return ListExpr(items, start.pos)

    def parse_map(self) -> MapExpr:
        start = self.expect("op", "{")
        items = []
        if not self.at("op", "}"):
            while True:
                key = self.expect("string")
                self.expect("op", ":")
                items.append((key.value, self.parse_value()))
                if self.at("op", ","):
                    self.advance()
                    continue
                break
        self.expect("op", "}")
        return MapExpr(items, start.pos)

    def parse_converter(self) -> ConverterCall:
        token = self.advance()
        args = self.parse_arguments()
        return ConverterCall(token.value, args, token.pos, self.parse_keys())

    def parse_path(self) -> PathExpr:
        token = self.expect("ident")
        segments = [token.value]
        while self.at("op", "."):
            self.advance()
            segments.append(self.expect("ident").value)
        return PathExpr(segments, self.parse_keys(), token.pos)

    def parse_keys(self) -> List[Union[str, int]]:
        keys: List[Union[str, int]] = []
        while self.at("op", "["):
            self.advance()
            token = self.peek()
            if token.kind not in ("string", "int"):
                raise CompileError(
                    f"index must be a string or int literal, found {_describe(token)}",
                    position=token.pos,
                )
            self.advance()
            keys.append(token.value)
            self.expect("op", "]")
        return keys


def _is_enum_symbol(name: str) -> bool:
    return name.isupper() and name[0].isalpha()


def _describe(token: Token) -> str:
    if token.kind == "eof":
        return "end of statement"
    if token.kind == "string":
        return f'string "{token.value}"'
    return f"{token.kind} {token.value!r}"


def parse(text: str) -> Statement:
    """Parse statement text into a syntax tree.

    Raises:
        CompileError: on any syntax error, with the offending position.
    """
    try:
        return Parser(text).parse_statement()
    except CompileError as e:
        if e.statement is None:
            e.statement = text
        raise
