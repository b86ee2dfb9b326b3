from minilox.lexer import TokenKind, scan
from minilox.nodes import (
	AssignExpression,
	BinaryExpression,
	BlockStatement,
	CallExpression,
	ClassStatement,
	ConditionalExpression,
	ExpressionStatement,
	GetExpression,
	GroupingExpression,
	LiteralExpression,
	LogicalExpression,
	PrintStatement,
	SetExpression,
	SuperExpression,
	UnaryExpression,
	VarStatement,
	VariableExpression,
	WhileStatement,
)
from minilox.parser import MAX_ARGUMENTS, parse


def parse_ok(source):
	statements, errors = parse(scan(source))
	assert errors == [], [e.format() for e in errors]
	return statements


def parse_expr(source):
	statements = parse_ok(source + ";")
	assert len(statements) == 1
	assert isinstance(statements[0], ExpressionStatement)
	return statements[0].expression


def parse_errors(source):
	_, errors = parse(scan(source))
	return errors


def test_factor_binds_tighter_than_term():
	expr = parse_expr("1 + 2 * 3")
	assert isinstance(expr, BinaryExpression)
	assert expr.operator.kind == TokenKind.PLUS
	assert isinstance(expr.left, LiteralExpression) and expr.left.value == 1.0
	assert isinstance(expr.right, BinaryExpression)
	assert expr.right.operator.kind == TokenKind.STAR


def test_binary_operators_are_left_associative():
	expr = parse_expr("1 - 2 - 3")
	assert expr.operator.kind == TokenKind.MINUS
	assert isinstance(expr.left, BinaryExpression)
	assert expr.left.left.value == 1.0
	assert expr.right.value == 3.0


def test_grouping_overrides_precedence():
	expr = parse_expr("(1 + 2) * 3")
	assert expr.operator.kind == TokenKind.STAR
	assert isinstance(expr.left, GroupingExpression)


def test_assignment_is_right_associative():
	expr = parse_expr("a = b = 1")
	assert isinstance(expr, AssignExpression)
	assert expr.name.lexeme == "a"
	assert isinstance(expr.value, AssignExpression)
	assert expr.value.name.lexeme == "b"


def test_conditional_is_right_associative():
	expr = parse_expr("a ? b : c ? d : e")
	assert isinstance(expr, ConditionalExpression)
	assert isinstance(expr.else_branch, ConditionalExpression)
	assert expr.else_branch.condition.name.lexeme == "c"


def test_conditional_binds_looser_than_or():
	expr = parse_expr("a or b ? 1 : 2")
	assert isinstance(expr, ConditionalExpression)
	assert isinstance(expr.condition, LogicalExpression)


def test_and_binds_tighter_than_or():
	expr = parse_expr("a or b and c")
	assert isinstance(expr, LogicalExpression)
	assert expr.operator.kind == TokenKind.OR
	assert expr.right.operator.kind == TokenKind.AND


def test_unary_nests():
	expr = parse_expr("!-x")
	assert isinstance(expr, UnaryExpression)
	assert isinstance(expr.operand, UnaryExpression)


def test_postfix_chain_parses_left_to_right():
	expr = parse_expr("a.b().c")
	assert isinstance(expr, GetExpression) and expr.name.lexeme == "c"
	call = expr.target
	assert isinstance(call, CallExpression)
	assert isinstance(call.callee, GetExpression) and call.callee.name.lexeme == "b"
	assert isinstance(call.callee.target, VariableExpression)


def test_property_assignment_becomes_set():
	expr = parse_expr("a.b.c = 1")
	assert isinstance(expr, SetExpression)
	assert expr.name.lexeme == "c"
	assert isinstance(expr.target, GetExpression)


def test_super_access():
	statements = parse_ok("class B < A { m() { return super.m(); } }")
	klass = statements[0]
	assert isinstance(klass, ClassStatement)
	assert klass.superclass.name.lexeme == "A"
	ret = klass.methods[0].body[0]
	assert isinstance(ret.value.callee, SuperExpression)
	assert ret.value.callee.method.lexeme == "m"


def test_for_loop_desugars_into_while_inside_block():
	statements = parse_ok("for (var i = 0; i < 3; i = i + 1) print i;")
	outer = statements[0]
	assert isinstance(outer, BlockStatement)
	init, loop = outer.statements
	assert isinstance(init, VarStatement)
	assert isinstance(loop, WhileStatement)
	assert isinstance(loop.body, BlockStatement)
	body, increment = loop.body.statements
	assert isinstance(body, PrintStatement)
	assert isinstance(increment.expression, AssignExpression)


def test_empty_for_clauses_loop_forever():
	loop = parse_ok("for (;;) print 1;")[0]
	assert isinstance(loop, WhileStatement)
	assert loop.condition.value is True


def test_two_independent_syntax_errors_are_both_reported():
	errors = parse_errors("var = 1;\nprint ;\nprint 3;")
	assert [(e.line, e.message) for e in errors] == [
		(1, "Expected variable name."),
		(2, "Expected expression."),
	]


def test_parse_keeps_statements_around_errors():
	statements, errors = parse(scan("print 1;\nvar = 2;\nprint 3;"))
	assert len(errors) == 1
	assert [type(s) for s in statements] == [PrintStatement, PrintStatement]


def test_missing_left_operand_has_its_own_message():
	errors = parse_errors("print + 1;")
	assert len(errors) == 1
	assert errors[0].message == "Missing left-hand operand for '+'."
	assert errors[0].where == " at '+'"


def test_missing_left_operand_for_equality():
	errors = parse_errors("== 1;")
	assert [e.message for e in errors] == ["Missing left-hand operand for '=='."]


def test_missing_left_operand_only_blames_the_leading_operator():
	errors = parse_errors("print + 1 == 2;")
	assert [e.message for e in errors] == ["Missing left-hand operand for '+'."]


def test_missing_left_operand_wins_over_malformed_right_operand():
	for source, operator in [("+;", "+"), ("print * ;", "*"), ("== ;", "==")]:
		errors = parse_errors(source)
		assert [e.message for e in errors] == [f"Missing left-hand operand for '{operator}'."], source
		assert errors[0].where == f" at '{operator}'"


def test_generic_expected_expression():
	errors = parse_errors("print );")
	assert [e.message for e in errors] == ["Expected expression."]


def test_invalid_assignment_target_is_reported_without_unwinding():
	statements, errors = parse(scan("1 = 2; print 3;"))
	assert [e.message for e in errors] == ["Invalid assignment target."]
	assert len(statements) == 2


def test_argument_limit_is_a_non_fatal_error():
	args = ", ".join(["1"] * (MAX_ARGUMENTS + 1))
	statements, errors = parse(scan(f"f({args});"))
	assert [e.message for e in errors] == ["Can't have more than 255 arguments."]
	assert len(statements[0].expression.arguments) == MAX_ARGUMENTS + 1


def test_parameter_limit_is_a_non_fatal_error():
	params = ", ".join(f"p{i}" for i in range(MAX_ARGUMENTS + 1))
	errors = parse_errors(f"fun f({params}) {{}}")
	assert [e.message for e in errors] == ["Can't have more than 255 parameters."]


def test_missing_semicolon_points_at_end_and_carries_hint():
	errors = parse_errors("print 1")
	assert len(errors) == 1
	assert errors[0].format() == "[line 1] Error at end: Expected ';' after value."
	assert errors[0].hint == "Statements and declarations must end with ';'."


def test_keyword_as_identifier_hint():
	errors = parse_errors("var class = 1;")
	assert errors[0].hint is not None
	assert "keywords" in errors[0].hint


def test_unclosed_conditional():
	errors = parse_errors("print true ? 1;")
	assert [e.message for e in errors] == ["Expected ':' after then branch of conditional expression."]
