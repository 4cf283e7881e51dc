import pytest

from autoscript.autoscript_lexer import tokenize
from autoscript.autoscript_parser import Parser, parse
from autoscript.autoscript_tokens import TokenType
from autoscript.autoscript_ast import (
    BinaryExpr, UnaryExpr, LiteralExpr, VariableExpr, CallExpr, ArrayExpr, MemberExpr, IndexExpr,
    ExpressionStmt, AssignmentStmt, BlockStmt, IfStmt, WhileStmt, ForStmt, ForEachStmt,
    FunctionStmt, ReturnStmt, BreakStmt, ContinueStmt, node_token,
)

T = TokenType


def parse_source(source):
    parser = Parser(tokenize(source))
    statements = parser.parse()
    return statements, parser.errors


def parse_ok(source):
    statements, errors = parse_source(source)
    assert errors == [], errors
    return statements


def parse_expr(source):
    (stmt,) = parse_ok(source)
    assert isinstance(stmt, ExpressionStmt)
    return stmt.expression


def test_multiplication_binds_tighter_than_addition():
    expr = parse_expr("1 + 2 * 3")
    assert isinstance(expr, BinaryExpr) and expr.op.type is T.PLUS
    assert isinstance(expr.right, BinaryExpr) and expr.right.op.type is T.MULTIPLY


def test_parentheses_override_precedence():
    expr = parse_expr("(1 + 2) * 3")
    assert expr.op.type is T.MULTIPLY
    assert expr.left.op.type is T.PLUS


def test_and_binds_tighter_than_or():
    expr = parse_expr("true && false || true")
    assert expr.op.type is T.LOGICAL_OR
    assert expr.left.op.type is T.LOGICAL_AND


def test_precedence_ladder():
    # comparison > equality > and > or
    expr = parse_expr("$a < 1 == $b > 2 && !$c || $d")
    assert expr.op.type is T.LOGICAL_OR
    conj = expr.left
    assert conj.op.type is T.LOGICAL_AND
    assert conj.left.op.type is T.EQUAL
    assert conj.left.left.op.type is T.LESS
    assert conj.left.right.op.type is T.GREATER
    assert isinstance(conj.right, UnaryExpr) and conj.right.op.type is T.LOGICAL_NOT


def test_binary_operators_are_left_associative():
    expr = parse_expr("10 - 4 - 3")
    assert expr.op.type is T.MINUS
    assert isinstance(expr.left, BinaryExpr)
    assert expr.right.value == 3


def test_unary_nests():
    expr = parse_expr("- -5")
    assert isinstance(expr, UnaryExpr) and isinstance(expr.operand, UnaryExpr)
    assert expr.operand.operand.value == 5


def test_postfix_chain_is_left_associative():
    expr = parse_expr("a.b(1)[2]")
    assert isinstance(expr, IndexExpr)
    call = expr.obj
    assert isinstance(call, CallExpr)
    assert [a.value for a in call.arguments] == [1]
    member = call.callee
    assert isinstance(member, MemberExpr) and member.member.lexeme == "b"
    assert isinstance(member.obj, VariableExpr) and member.obj.name.lexeme == "a"


def test_array_literals():
    expr = parse_expr('[1, "two", [3]]')
    assert isinstance(expr, ArrayExpr)
    assert expr.elements[0].value == 1
    assert expr.elements[1].value == "two"
    assert isinstance(expr.elements[2], ArrayExpr)
    assert parse_expr("[]").elements == ()


def test_literal_values():
    assert parse_expr("null").value is None
    assert parse_expr("true").value is True
    assert parse_expr("2.5").value == 2.5
    assert parse_expr('"s"').value == "s"


def test_assignment_statement():
    (stmt,) = parse_ok("$x = 1 + 2;")
    assert isinstance(stmt, AssignmentStmt)
    assert stmt.name.lexeme == "$x"
    assert isinstance(stmt.value, BinaryExpr)


def test_semicolons_are_optional():
    statements = parse_ok("$a = 1\n$b = 2\nPrint($a)")
    assert [type(s) for s in statements] == [AssignmentStmt, AssignmentStmt, ExpressionStmt]


def test_empty_statements_are_skipped():
    statements = parse_ok(";;; $a = 1;;")
    assert [type(s) for s in statements] == [AssignmentStmt]


def test_invalid_assignment_target():
    _, errors = parse_source("a.b = 3;")
    assert len(errors) == 1
    assert "Invalid assignment target" in errors[0]


def test_if_else():
    (stmt,) = parse_ok("if ($a > 1) { Print(1); } else if ($a) Print(2); else { }")
    assert isinstance(stmt, IfStmt)
    assert isinstance(stmt.then_branch, BlockStmt)
    assert isinstance(stmt.else_branch, IfStmt)
    assert isinstance(stmt.else_branch.then_branch, ExpressionStmt)
    assert stmt.else_branch.else_branch == BlockStmt(())


def test_while_and_for():
    while_stmt, for_stmt = parse_ok(
        "while ($i < 3) { $i = $i + 1; }"
        "for ($j = 0; $j < 3; $j = $j + 1) { Print($j); }"
    )
    assert isinstance(while_stmt, WhileStmt)
    assert isinstance(for_stmt, ForStmt)
    assert isinstance(for_stmt.initializer, AssignmentStmt)
    assert isinstance(for_stmt.condition, BinaryExpr)
    assert isinstance(for_stmt.increment, AssignmentStmt)


def test_for_with_empty_clauses():
    (stmt,) = parse_ok("for (;;) { break; }")
    assert stmt.initializer is None and stmt.condition is None and stmt.increment is None
    assert isinstance(stmt.body.statements[0], BreakStmt)


def test_foreach():
    (stmt,) = parse_ok("foreach ($item in [1, 2]) { continue; }")
    assert isinstance(stmt, ForEachStmt)
    assert stmt.variable.lexeme == "$item"
    assert isinstance(stmt.iterable, ArrayExpr)
    assert isinstance(stmt.body.statements[0], ContinueStmt)


def test_repeat_until_desugars_to_negated_while():
    (stmt,) = parse_ok("repeat { $i = $i + 1; } until ($i >= 3);")
    assert isinstance(stmt, WhileStmt)
    assert isinstance(stmt.condition, UnaryExpr)
    assert stmt.condition.op.type is T.LOGICAL_NOT
    assert stmt.condition.operand.op.type is T.GREATER_EQUAL
    # the synthetic operator is positioned at 'until'
    assert stmt.condition.op.line == 1


def test_function_declaration():
    (stmt,) = parse_ok("function add($a, $b) { return $a + $b; }")
    assert isinstance(stmt, FunctionStmt)
    assert stmt.name.lexeme == "add"
    assert [p.lexeme for p in stmt.params] == ["$a", "$b"]
    (ret,) = stmt.body.statements
    assert isinstance(ret, ReturnStmt) and isinstance(ret.value, BinaryExpr)


def test_bare_return():
    (stmt,) = parse_ok("function f() { return; }")
    assert stmt.body.statements[0].value is None
    (stmt,) = parse_ok("function g() { return }")
    assert stmt.body.statements[0].value is None


def test_duplicate_parameters_are_rejected():
    _, errors = parse_source("function f($a, $a) { }")
    assert len(errors) == 1
    assert "Duplicate parameter name: $a" in errors[0]


def test_error_message_format():
    _, errors = parse_source("$x = ;")
    assert errors == ["Parser error at line 1, column 6 (near ';'): Expected expression"]
    _, errors = parse_source("Print(1")
    assert errors == ["Parser error at line 1, column 8 (at end): Expected ')' after arguments"]


def test_synchronization_reports_one_error_per_bad_statement():
    source = """
    $a = 1 +;
    $b = 2;
    $c = * 3;
    if ($b) { Print($b); }
    """
    statements, errors = parse_source(source)
    assert len(errors) == 2
    assert "line 2" in errors[0]
    assert "line 4" in errors[1]
    assert [type(s) for s in statements] == [AssignmentStmt, IfStmt]


def test_synchronization_inside_block_keeps_closing_brace():
    source = "function f() { $x = ; return 1; } $y = 2;"
    statements, errors = parse_source(source)
    assert len(errors) == 1
    func, assign = statements
    assert isinstance(func, FunctionStmt)
    assert [type(s) for s in func.body.statements] == [ReturnStmt]
    assert isinstance(assign, AssignmentStmt)


def test_unsupported_constructs():
    _, errors = parse_source("try { } catch { }")
    assert any("try-catch-finally is not supported" in e for e in errors)
    _, errors = parse_source("#include")
    assert errors and "Directives are not supported: #include" in errors[0]


def test_missing_closing_brace():
    _, errors = parse_source("while (true) { Print(1);")
    assert errors and "Expected '}' after block" in errors[-1]


@pytest.mark.parametrize("source", [
    "$x = " + "(" * 3000 + "1" + ")" * 3000 + ";",
    "{" * 3000 + "}" * 3000,
    "$y = " + "[" * 3000 + "]" * 3000 + ";",
])
def test_deep_nesting_is_reported_not_raised(source):
    statements, errors = parse_source(source)
    assert len(errors) == 1
    assert errors[0].endswith("Expression nested too deeply")


def test_parse_convenience_function():
    statements = parse(tokenize("$a = 1; $b = 2;"))
    assert len(statements) == 2


def test_parser_appends_missing_eof():
    tokens = [t for t in tokenize("$a = 1") if t.type is not T.END_OF_FILE]
    statements = Parser(tokens).parse()
    assert isinstance(statements[0], AssignmentStmt)


def test_nodes_are_immutable():
    expr = parse_expr("1 + 2")
    with pytest.raises(Exception):
        expr.left = LiteralExpr(expr.op)


def test_node_token_locates_nodes():
    (stmt,) = parse_ok("\n  Foo(1)")
    token = node_token(stmt)
    assert (token.line, token.column) == (2, 6)


def test_valid_sources_parse_without_errors():
    source = """
    function fib($n) {
        if ($n < 2) { return $n; }
        return fib($n - 1) + fib($n - 2);
    }
    $results = [];
    for ($i = 0; $i < 10; $i = $i + 1) { Push($results, fib($i)); }
    foreach ($r in $results) { if ($r % 2 == 0) continue; Print($r); }
    $obj = ParseJson("{\\"a\\": 1}");
    Print($obj.a, $obj["a"], -$i, !false);
    repeat { $i = $i - 1; } until ($i <= 0)
    """
    parse_ok(source)
