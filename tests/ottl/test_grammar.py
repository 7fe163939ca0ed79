import pytest

from ottlcli.errors import CompileError
from ottlcli.ottl.grammar import (
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
    parse,
    tokenize,
)


@pytest.mark.short
class TestTokenize:
    def test_kinds(self):
        kinds = [t.kind for t in tokenize('set(x, "a", 1, 2.5, 0xff) where y')]
        assert kinds == [
            "ident", "op", "ident", "op", "string", "op", "int", "op",
            "float", "op", "bytes", "op", "ident", "ident", "eof",
        ]  # fmt: skip

    def test_string_escapes(self):
        token = tokenize(r'"a\"b\\c\n"')[0]
        assert token.value == 'a"b\\c\n'

    def test_bytes_literal(self):
        assert tokenize("0x0a0B")[0].value == b"\x0a\x0b"

    def test_positions(self):
        tokens = tokenize('set(a,  "b")')
        assert [t.pos for t in tokens] == [0, 3, 4, 5, 8, 11, 12]

    def test_unterminated_string(self):
        with pytest.raises(CompileError, match="unterminated") as exc_info:
            tokenize('set(x, "abc)')
        assert exc_info.value.position == 7

    def test_invalid_escape(self):
        with pytest.raises(CompileError, match="escape"):
            tokenize(r'"\q"')

    def test_odd_byte_literal(self):
        with pytest.raises(CompileError, match="even number"):
            tokenize("0xabc")

    def test_unexpected_character(self):
        with pytest.raises(CompileError, match="unexpected character") as exc_info:
            tokenize("set(x, @)")
        assert exc_info.value.position == 7


@pytest.mark.short
class TestParseStatement:
    def test_editor_and_arguments(self):
        stmt = parse('set(attributes["env"], "test")')
        assert stmt.editor.name == "set"
        assert stmt.condition is None
        target, value = [arg.value for arg in stmt.editor.args]
        assert target == PathExpr(["attributes"], ["env"], 4)
        assert value == Literal("test", 23)

    def test_prefixed_path_with_index_chain(self):
        stmt = parse('set(resource.attributes["a"][0]["b"], 1)')
        path = stmt.editor.args[0].value
        assert path.segments == ["resource", "attributes"]
        assert path.keys == ["a", 0, "b"]
        assert str(path) == 'resource.attributes["a"][0]["b"]'

    def test_named_arguments(self):
        stmt = parse('limit(attributes, 2, priority_keys=["a"])')
        args = stmt.editor.args
        assert [a.name for a in args] == [None, None, "priority_keys"]
        assert isinstance(args[2].value, ListExpr)

    def test_no_arguments(self):
        assert parse("invalid_function()").editor.args == []

    def test_literals(self):
        stmt = parse('f(true, false, nil, -3, -1.5, 0x01, [1, 2], {"k": "v"})')
        values = [a.value for a in stmt.editor.args]
        assert [v.value for v in values[:6]] == [True, False, None, -3, -1.5, b"\x01"]
        assert isinstance(values[6], ListExpr)
        assert isinstance(values[7], MapExpr)
        assert values[7].items[0][0] == "k"

    def test_converter_with_keys(self):
        value = parse('set(x, Split(name, ",")[0])').editor.args[1].value
        assert isinstance(value, ConverterCall)
        assert value.name == "Split"
        assert value.keys == [0]

    def test_enum_symbol(self):
        value = parse("set(status.code, STATUS_CODE_ERROR)").editor.args[1].value
        assert value == EnumExpr("STATUS_CODE_ERROR", 17)

    def test_math_precedence(self):
        value = parse("set(x, 1 + 2 * 3)").editor.args[1].value
        assert isinstance(value, MathExpr)
        assert value.op == "+"
        assert isinstance(value.right, MathExpr)
        assert value.right.op == "*"

    def test_parenthesised_math(self):
        value = parse("set(x, (1 + 2) * 3)").editor.args[1].value
        assert value.op == "*"
        assert value.left.op == "+"

    def test_negated_path(self):
        value = parse("set(x, -y)").editor.args[1].value
        assert isinstance(value, Negate)


@pytest.mark.short
class TestParseCondition:
    def test_comparison(self):
        cond = parse('set(x, 1) where name == "a"').condition
        assert isinstance(cond, Comparison)
        assert cond.op == "=="

    def test_and_binds_tighter_than_or(self):
        cond = parse("set(x, 1) where a == 1 or b == 2 and c == 3").condition
        assert isinstance(cond, BoolOp)
        assert cond.op == "or"
        assert isinstance(cond.operands[1], BoolOp)
        assert cond.operands[1].op == "and"

    def test_not_and_grouping(self):
        cond = parse("set(x, 1) where not (a == 1 or b == 2)").condition
        assert isinstance(cond, Not)
        assert isinstance(cond.operand, BoolOp)

    def test_grouped_math_in_comparison(self):
        cond = parse("set(x, 1) where (a + 1) > 2").condition
        assert isinstance(cond, Comparison)
        assert isinstance(cond.left, MathExpr)

    def test_bool_term(self):
        cond = parse('set(x, 1) where IsMatch(name, "^GET")').condition
        assert isinstance(cond, BoolTerm)
        assert isinstance(cond.value, ConverterCall)


@pytest.mark.short
class TestParseErrors:
    @pytest.mark.parametrize(
        "text, position",
        [
            ("", 0),
            ("   ", 0),
            ('set(attributes["env"] "test")', 22),
            ('set(attributes["env"], "test"', 29),
            ("set(x, 1) extra", 10),
            ("set(x, 1) where", 15),
            ("name", 0),
            ("set(x[name], 1)", 6),
            ("set(where, 1)", 4),
        ],
    )
    def test_position(self, text, position):
        with pytest.raises(CompileError) as exc_info:
            parse(text)
        assert exc_info.value.position == position
        assert exc_info.value.statement == text

    def test_map_keys_must_be_strings(self):
        with pytest.raises(CompileError, match="expected 'string'"):
            parse("set(x, {1: 2})")
