"""
Binding of parsed OTTL statements to a context type.

``compile_statement`` resolves every path, function and enum symbol of a
statement against one context and returns an immutable
:class:`CompiledStatement` that can be executed once per record.
"""

import logging
import re
from typing import Any, Callable, List, Optional, Tuple

from ottlcli.context import ContextType
from ottlcli.errors import CompileError, ExecutionError
from ottlcli.otlp.enums import symbol_table
from ottlcli.ottl import functions
from ottlcli.ottl.contexts import PathGetSetter, TransformContext, resolve_path
from ottlcli.ottl.grammar import (
    Argument,
    BoolOp,
    BoolTerm,
    Comparison,
    ConverterCall,
    EnumExpr,
    ListExpr,
    Literal,
    MapExpr,
    MathExpr,
    Negate,
    Not,
    PathExpr,
    Statement,
    parse,
)

logger = logging.getLogger(__name__)

_ENUM_SYMBOLS = symbol_table()


# Getters


class Constant:
    def __init__(self, value: Any):
        self.value = value

    def get(self, tctx: TransformContext) -> Any:
        return self.value


class ListGetter:
    def __init__(self, items: list):
        self.items = items

    def get(self, tctx: TransformContext) -> list:
        return [item.get(tctx) for item in self.items]


class MapGetter:
    def __init__(self, items: List[Tuple[str, Any]]):
        self.items = items

    def get(self, tctx: TransformContext) -> dict:
        return {key: item.get(tctx) for key, item in self.items}


class ConverterGetter:
    def __init__(self, spec: functions.FunctionSpec, args: list, keys: list):
        self.spec = spec
        self.args = args
        self.keys = keys

    def get(self, tctx: TransformContext) -> Any:
        value = self.spec.impl(tctx, *self.args)
        for key in self.keys:
            if value is None:
                return None
            if isinstance(key, str) and isinstance(value, dict):
                value = value.get(key)
            elif isinstance(key, int) and isinstance(value, list):
                if not -len(value) <= key < len(value):
                    raise ExecutionError(
                        f"index {key} out of range for {self.spec.name} result"
                    )
                value = value[key]
            else:
                raise ExecutionError(
                    f"cannot index {self.spec.name} result of type "
                    f"{type(value).__name__} with {key!r}"
                )
        return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _int_divide(a: int, b: int) -> int:
    # truncates toward zero
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


class MathGetter:
    def __init__(self, op: str, left, right):
        self.op = op
        self.left = left
        self.right = right

    def get(self, tctx: TransformContext) -> Any:
        a = self.left.get(tctx)
        b = self.right.get(tctx)
        if self.op == "+" and isinstance(a, str) and isinstance(b, str):
            return a + b
        if not (_is_number(a) and _is_number(b)):
            raise ExecutionError(
                f"unsupported operand types for {self.op}: "
                f"{type(a).__name__} and {type(b).__name__}"
            )
        if self.op == "+":
            return a + b
        if self.op == "-":
            return a - b
        if self.op == "*":
            return a * b
        if b == 0:
            raise ExecutionError("division by zero")
        if isinstance(a, int) and isinstance(b, int):
            return _int_divide(a, b)
        return a / b


class NegateGetter:
    def __init__(self, operand):
        self.operand = operand

    def get(self, tctx: TransformContext) -> Any:
        value = self.operand.get(tctx)
        if not _is_number(value):
            raise ExecutionError(f"cannot negate {type(value).__name__}")
        return -value


# Conditions


Condition = Callable[[TransformContext], bool]


def _compare(op: str, a: Any, b: Any) -> bool:
    if a is None or b is None:
        same = a is None and b is None
        if op == "==":
            return same
        if op == "!=":
            return not same
        return False

    if type(a) is not type(b) and not (_is_number(a) and _is_number(b)):
        return op == "!="

    if op == "==":
        return a == b
    if op == "!=":
        return a != b
    if not isinstance(a, (int, float, str, bytes)) or isinstance(a, bool):
        # bools, maps and lists are only comparable for equality
        return False
    if op == "<":
        return a < b
    if op == "<=":
        return a <= b
    if op == ">":
        return a > b
    return a >= b


# Compiler


class _Compiler:
    def __init__(self, context_type: ContextType, text: str):
        self.context_type = context_type
        self.text = text

    def error(self, message: str, pos: Optional[int]) -> CompileError:
        return CompileError(message, statement=self.text, position=pos)

    def value(self, node) -> Any:
        if isinstance(node, Literal):
            return Constant(node.value)
        if isinstance(node, EnumExpr):
            if node.name not in _ENUM_SYMBOLS:
                raise self.error(f"unknown enum symbol {node.name!r}", node.pos)
            return Constant(_ENUM_SYMBOLS[node.name])
        if isinstance(node, PathExpr):
            return self.path(node)
        if isinstance(node, ListExpr):
            return ListGetter([self.value(item) for item in node.items])
        if isinstance(node, MapExpr):
            return MapGetter([(key, self.value(item)) for key, item in node.items])
        if isinstance(node, ConverterCall):
            return self.converter(node)
        if isinstance(node, MathExpr):
            return MathGetter(node.op, self.value(node.left), self.value(node.right))
        if isinstance(node, Negate):
            return NegateGetter(self.value(node.operand))
        raise self.error("expected a value", getattr(node, "pos", None))

    def path(self, node: PathExpr) -> PathGetSetter:
        try:
            return resolve_path(self.context_type, node.segments, node.keys, node.pos)
        except CompileError as e:
            raise self.error(e.message, node.pos)

    def converter(self, node: ConverterCall) -> ConverterGetter:
        spec = functions.lookup(node.name)
        if spec is None:
            raise self.error(f"undefined function {node.name!r}", node.pos)
        if spec.is_editor:
            raise self.error(
                f"editor {node.name!r} cannot be used as a value", node.pos
            )
        args = self.arguments(spec, node.args, node.pos)
        return ConverterGetter(spec, args, node.keys)

    def arguments(self, spec: functions.FunctionSpec, args: List[Argument], pos: int):
        if len(args) > len(spec.params):
            raise self.error(
                f"{spec.name} takes at most {len(spec.params)} arguments, "
                f"got {len(args)}",
                pos,
            )

        bound: dict = {}
        seen_named = False
        for index, arg in enumerate(args):
            if arg.name is None:
                if seen_named:
                    raise self.error(
                        "positional argument follows named argument", arg.pos
                    )
                param = spec.params[index]
            else:
                seen_named = True
                param = next((p for p in spec.params if p.name == arg.name), None)
                if param is None:
                    raise self.error(
                        f"{spec.name} has no parameter named {arg.name!r}", arg.pos
                    )
            if param.name in bound:
                raise self.error(
                    f"{spec.name} got multiple values for {param.name!r}", arg.pos
                )
            bound[param.name] = self.argument(spec, param, arg)

        resolved = []
        for param in spec.params:
            if param.name in bound:
                resolved.append(bound[param.name])
            elif param.optional:
                resolved.append(param.default)
            else:
                raise self.error(
                    f"{spec.name} is missing required argument {param.name!r}", pos
                )
        return resolved

    def argument(self, spec, param: functions.Param, arg: Argument) -> Any:
        node = arg.value
        kind = param.kind
        where = f"{spec.name} argument {param.name!r}"

        if kind == functions.GETTER:
            return self.value(node)
        if kind == functions.GETSETTER:
            if not isinstance(node, PathExpr):
                raise self.error(f"{where} must be a path", arg.pos)
            target = self.path(node)
            if not target.settable:
                raise self.error(f"path {str(node)!r} is read-only", arg.pos)
            return target
        if kind == functions.GETTER_LIST:
            if not isinstance(node, ListExpr):
                raise self.error(f"{where} must be a list", arg.pos)
            return [self.value(item) for item in node.items]
        if kind == functions.STRING_LIST:
            if not isinstance(node, ListExpr) or not all(
                isinstance(item, Literal) and isinstance(item.value, str)
                for item in node.items
            ):
                raise self.error(f"{where} must be a list of strings", arg.pos)
            return tuple(item.value for item in node.items)

        if not isinstance(node, Literal):
            raise self.error(f"{where} must be a literal", arg.pos)
        value = node.value

        if kind == functions.INT:
            if isinstance(value, bool) or not isinstance(value, int):
                raise self.error(f"{where} must be an int", arg.pos)
            if value < 0:
                raise self.error(f"{where} must not be negative", arg.pos)
            return value

        if not isinstance(value, str):
            raise self.error(f"{where} must be a string", arg.pos)
        if param.choices is not None and value not in param.choices:
            raise self.error(
                f"{where} must be one of {', '.join(param.choices)}", arg.pos
            )
        if kind == functions.REGEX:
            try:
                return re.compile(value)
            except re.error as e:
                raise self.error(f"{where} is not a valid regex: {e}", arg.pos)
        return value

    def condition(self, node) -> Condition:
        if isinstance(node, BoolOp):
            operands = [self.condition(op) for op in node.operands]
            if node.op == "and":
                return lambda tctx: all(c(tctx) for c in operands)
            return lambda tctx: any(c(tctx) for c in operands)
        if isinstance(node, Not):
            inner = self.condition(node.operand)
            return lambda tctx: not inner(tctx)
        if isinstance(node, Comparison):
            left, right, op = self.value(node.left), self.value(node.right), node.op
            return lambda tctx: _compare(op, left.get(tctx), right.get(tctx))
        if isinstance(node, BoolTerm):
            getter = self.value(node.value)

            def truth(tctx):
                value = getter.get(tctx)
                if not isinstance(value, bool):
                    raise ExecutionError(
                        f"condition value must be a boolean, got {type(value).__name__}"
                    )
                return value

            return truth
        raise self.error("expected a condition", getattr(node, "pos", None))

    def statement(self, stmt: Statement) -> "CompiledStatement":
        editor = stmt.editor
        spec = functions.lookup(editor.name)
        if spec is None:
            raise self.error(f"undefined function {editor.name!r}", editor.pos)
        if not spec.is_editor:
            raise self.error(
                f"converter {editor.name!r} cannot be used as a statement; "
                "statements must start with an editor",
                editor.pos,
            )
        args = self.arguments(spec, editor.args, editor.pos)
        condition = None
        if stmt.condition is not None:
            condition = self.condition(stmt.condition)
        return CompiledStatement(self.context_type, self.text, spec, args, condition)


class CompiledStatement:
    """An OTTL statement bound to one context type."""

    def __init__(
        self,
        context_type: ContextType,
        text: str,
        spec: functions.FunctionSpec,
        args: list,
        condition: Optional[Condition],
    ):
        self._context_type = context_type
        self._text = text
        self._spec = spec
        self._args = tuple(args)
        self._condition = condition

    @property
    def context_type(self) -> ContextType:
        return self._context_type

    @property
    def text(self) -> str:
        return self._text

    def execute(self, tctx: TransformContext) -> Tuple[Any, bool]:
        """Run the statement against one record.

        Returns:
            A ``(value, committed)`` pair; ``committed`` is False when the
            ``where`` condition did not match.

        Raises:
            ExecutionError: if the statement fails for this record.
        """
        if tctx.context_type is not self._context_type:
            raise ExecutionError(
                f"statement compiled for the {self._context_type} context "
                f"cannot run against a {tctx.context_type} context"
            )
        try:
            if self._condition is not None and not self._condition(tctx):
                return None, False
            return self._spec.impl(tctx, *self._args), True
        except ExecutionError:
            raise
        except (TypeError, ValueError, OverflowError, re.error) as e:
            raise ExecutionError(f"{self._spec.name}: {e}") from e

    def __repr__(self) -> str:
        return f"CompiledStatement({self._context_type}, {self._text!r})"


def compile_statement(text: str, context_type: ContextType) -> CompiledStatement:
    """Compile ``text`` into a statement bound to ``context_type``.

    Raises:
        CompileError: for an empty or invalid statement.
    """
    if context_type is ContextType.UNKNOWN:
        raise CompileError("cannot compile a statement for the unknown context")
    if not text or not text.strip():
        raise CompileError("empty OTTL statement", statement=text, position=0)

    compiler = _Compiler(context_type, text)
    compiled = compiler.statement(parse(text))
    logger.debug(f"Compiled {context_type} statement: {text.strip()}")
    return compiled
