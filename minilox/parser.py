from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple, Type

from .diagnostics import Diagnostic, DiagnosticEngine, Phase
from .lexer import KEYWORDS, Token, TokenKind
from .nodes import (
	AssignExpression,
	BinaryExpression,
	BlockStatement,
	CallExpression,
	ClassStatement,
	ConditionalExpression,
	Expression,
	ExpressionStatement,
	FunctionStatement,
	GetExpression,
	GroupingExpression,
	IfStatement,
	LiteralExpression,
	LogicalExpression,
	PrintStatement,
	ReturnStatement,
	SetExpression,
	Statement,
	SuperExpression,
	ThisExpression,
	UnaryExpression,
	VarStatement,
	VariableExpression,
	WhileStatement,
)

MAX_ARGUMENTS = 255

# Tokens that start a statement; parsing resumes at one of these after an error.
STATEMENT_STARTS = {
	TokenKind.CLASS,
	TokenKind.FUN,
	TokenKind.VAR,
	TokenKind.FOR,
	TokenKind.IF,
	TokenKind.WHILE,
	TokenKind.PRINT,
	TokenKind.RETURN,
}


class ParseError(Exception):
	def __init__(self, token: Token, message: str, hint: Optional[str] = None) -> None:
		super().__init__(message)
		self.token = token
		self.message = message
		self.hint = hint

	@property
	def line(self) -> int:
		return self.token.line

	@property
	def where(self) -> str:
		if self.token.kind == TokenKind.EOF:
			return " at end"
		return f" at '{self.token.lexeme}'"

	def __str__(self) -> str:
		return f"[line {self.line}] Error{self.where}: {self.message}"


class Parser:
	def __init__(self, tokens: List[Token], diagnostics: DiagnosticEngine) -> None:
		self.tokens = tokens
		self.diagnostics = diagnostics
		self.index = 0

	def parse(self) -> List[Statement]:
		statements: List[Statement] = []
		while not self._is_at_end():
			stmt = self._parse_declaration()
			if stmt is not None:
				statements.append(stmt)
		return statements

	# Declarations ------------------------------------------------------------

	def _parse_declaration(self) -> Optional[Statement]:
		try:
			if self._match(TokenKind.CLASS):
				return self._parse_class()
			if self._match(TokenKind.FUN):
				return self._parse_function("function")
			if self._match(TokenKind.VAR):
				return self._parse_var_decl()
			return self._parse_statement()
		except ParseError as error:
			self._report(error)
			self._synchronize()
			return None

	def _parse_class(self) -> ClassStatement:
		name = self._expect(TokenKind.IDENT, "Expected class name.")
		superclass = None
		if self._match(TokenKind.LT):
			superclass = VariableExpression(self._expect(TokenKind.IDENT, "Expected superclass name."))
		self._expect(TokenKind.LBRACE, "Expected '{' before class body.")
		methods: List[FunctionStatement] = []
		while not self._check(TokenKind.RBRACE) and not self._is_at_end():
			methods.append(self._parse_function("method"))
		self._expect(TokenKind.RBRACE, "Expected '}' after class body.")
		return ClassStatement(name=name, superclass=superclass, methods=methods)

	def _parse_function(self, kind: str) -> FunctionStatement:
		name = self._expect(TokenKind.IDENT, f"Expected {kind} name.")
		self._expect(TokenKind.LPAREN, f"Expected '(' after {kind} name.")
		parameters: List[Token] = []
		if not self._check(TokenKind.RPAREN):
			while True:
				if len(parameters) >= MAX_ARGUMENTS:
					self._report(ParseError(self._peek(), f"Can't have more than {MAX_ARGUMENTS} parameters."))
				parameters.append(self._expect(TokenKind.IDENT, "Expected parameter name."))
				if not self._match(TokenKind.COMMA):
					break
		self._expect(TokenKind.RPAREN, "Expected ')' after parameters.")
		self._expect(TokenKind.LBRACE, f"Expected '{{' before {kind} body.")
		body = self._parse_block_body()
		return FunctionStatement(name=name, parameters=parameters, body=body)

	def _parse_var_decl(self) -> VarStatement:
		name = self._expect(TokenKind.IDENT, "Expected variable name.")
		initializer = self._parse_expression() if self._match(TokenKind.ASSIGN) else None
		self._expect(TokenKind.SEMI, "Expected ';' after variable declaration.")
		return VarStatement(name=name, initializer=initializer)

	# Statements --------------------------------------------------------------

	def _parse_statement(self) -> Statement:
		if self._match(TokenKind.FOR):
			return self._parse_for()
		if self._match(TokenKind.IF):
			self._expect(TokenKind.LPAREN, "Expected '(' after 'if'.")
			condition = self._parse_expression()
			self._expect(TokenKind.RPAREN, "Expected ')' after if condition.")
			then_branch = self._parse_statement()
			else_branch = self._parse_statement() if self._match(TokenKind.ELSE) else None
			return IfStatement(condition=condition, then_branch=then_branch, else_branch=else_branch)
		if self._match(TokenKind.PRINT):
			keyword = self._previous()
			value = self._parse_expression()
			self._expect(TokenKind.SEMI, "Expected ';' after value.")
			return PrintStatement(keyword=keyword, value=value)
		if self._match(TokenKind.RETURN):
			keyword = self._previous()
			value = None if self._check(TokenKind.SEMI) else self._parse_expression()
			self._expect(TokenKind.SEMI, "Expected ';' after return value.")
			return ReturnStatement(keyword=keyword, value=value)
		if self._match(TokenKind.WHILE):
			self._expect(TokenKind.LPAREN, "Expected '(' after 'while'.")
			condition = self._parse_expression()
			self._expect(TokenKind.RPAREN, "Expected ')' after condition.")
			return WhileStatement(condition=condition, body=self._parse_statement())
		if self._match(TokenKind.LBRACE):
			return BlockStatement(statements=self._parse_block_body())
		return self._parse_expression_statement()

	def _parse_for(self) -> Statement:
		# for (init; cond; incr) body  =>  { init; while (cond) { body; incr; } }
		self._expect(TokenKind.LPAREN, "Expected '(' after 'for'.")
		initializer: Optional[Statement]
		if self._match(TokenKind.SEMI):
			initializer = None
		elif self._match(TokenKind.VAR):
			initializer = self._parse_var_decl()
		else:
			initializer = self._parse_expression_statement()
		condition = None if self._check(TokenKind.SEMI) else self._parse_expression()
		self._expect(TokenKind.SEMI, "Expected ';' after loop condition.")
		increment = None if self._check(TokenKind.RPAREN) else self._parse_expression()
		self._expect(TokenKind.RPAREN, "Expected ')' after for clauses.")
		body = self._parse_statement()
		if increment is not None:
			body = BlockStatement(statements=[body, ExpressionStatement(increment)])
		if condition is None:
			condition = LiteralExpression(True)
		body = WhileStatement(condition=condition, body=body)
		if initializer is not None:
			body = BlockStatement(statements=[initializer, body])
		return body

	def _parse_block_body(self) -> List[Statement]:
		statements: List[Statement] = []
		while not self._check(TokenKind.RBRACE) and not self._is_at_end():
			stmt = self._parse_declaration()
			if stmt is not None:
				statements.append(stmt)
		self._expect(TokenKind.RBRACE, "Expected '}' after block.")
		return statements

	def _parse_expression_statement(self) -> ExpressionStatement:
		expr = self._parse_expression()
		self._expect(TokenKind.SEMI, "Expected ';' after expression.")
		return ExpressionStatement(expression=expr)

	# Expressions -------------------------------------------------------------

	def _parse_expression(self) -> Expression:
		return self._parse_assignment()

	def _parse_assignment(self) -> Expression:
		expr = self._parse_conditional()
		if self._match(TokenKind.ASSIGN):
			equals = self._previous()
			value = self._parse_assignment()
			if isinstance(expr, VariableExpression):
				return AssignExpression(name=expr.name, value=value)
			if isinstance(expr, GetExpression):
				return SetExpression(target=expr.target, name=expr.name, value=value)
			self._report(ParseError(equals, "Invalid assignment target."))
		return expr

	def _parse_conditional(self) -> Expression:
		expr = self._parse_or()
		if self._match(TokenKind.QUESTION):
			then_branch = self._parse_expression()
			self._expect(TokenKind.COLON, "Expected ':' after then branch of conditional expression.")
			else_branch = self._parse_conditional()
			expr = ConditionalExpression(condition=expr, then_branch=then_branch, else_branch=else_branch)
		return expr

	def _parse_or(self) -> Expression:
		return self._parse_binary(self._parse_and, (TokenKind.OR,), LogicalExpression)

	def _parse_and(self) -> Expression:
		return self._parse_binary(self._parse_equality, (TokenKind.AND,), LogicalExpression)

	def _parse_equality(self) -> Expression:
		return self._parse_binary(self._parse_comparison, (TokenKind.EQ, TokenKind.BANG_EQUAL), BinaryExpression)

	def _parse_comparison(self) -> Expression:
		return self._parse_binary(
			self._parse_term,
			(TokenKind.GT, TokenKind.GTE, TokenKind.LT, TokenKind.LTE),
			BinaryExpression,
		)

	def _parse_term(self) -> Expression:
		return self._parse_binary(self._parse_factor, (TokenKind.PLUS, TokenKind.MINUS), BinaryExpression)

	def _parse_factor(self) -> Expression:
		return self._parse_binary(self._parse_unary, (TokenKind.STAR, TokenKind.SLASH), BinaryExpression)

	def _parse_binary(
		self,
		operand: Callable[[], Expression],
		operators: Sequence[TokenKind],
		node_type: Type[Expression],
	) -> Expression:
		"""Parse ``operand (operator operand)*`` as a left-associative chain."""
		leading = self._peek()
		try:
			expr = operand()
		except ParseError as error:
			# An operator where the left operand should be: consume and drop its
			# right operand (even a malformed one), then report the missing operand instead.
			if error.token is leading and leading.kind in operators:
				self._advance_token()
				try:
					operand()
				except ParseError:
					pass
				raise ParseError(leading, f"Missing left-hand operand for '{leading.lexeme}'.") from error
			raise
		while self._match_any(operators):
			operator = self._previous()
			right = operand()
			expr = node_type(left=expr, operator=operator, right=right)
		return expr

	def _parse_unary(self) -> Expression:
		if self._match_any((TokenKind.BANG, TokenKind.MINUS)):
			operator = self._previous()
			return UnaryExpression(operator=operator, operand=self._parse_unary())
		return self._parse_call()

	def _parse_call(self) -> Expression:
		expr = self._parse_primary()
		while True:
			if self._match(TokenKind.LPAREN):
				expr = self._finish_call(expr)
			elif self._match(TokenKind.DOT):
				name = self._expect(TokenKind.IDENT, "Expected property name after '.'.")
				expr = GetExpression(target=expr, name=name)
			else:
				break
		return expr

	def _finish_call(self, callee: Expression) -> CallExpression:
		args: List[Expression] = []
		if not self._check(TokenKind.RPAREN):
			while True:
				if len(args) >= MAX_ARGUMENTS:
					self._report(ParseError(self._peek(), f"Can't have more than {MAX_ARGUMENTS} arguments."))
				args.append(self._parse_expression())
				if not self._match(TokenKind.COMMA):
					break
		paren = self._expect(TokenKind.RPAREN, "Expected ')' after arguments.")
		return CallExpression(callee=callee, paren=paren, arguments=args)

	def _parse_primary(self) -> Expression:
		if self._match(TokenKind.FALSE):
			return LiteralExpression(False)
		if self._match(TokenKind.TRUE):
			return LiteralExpression(True)
		if self._match(TokenKind.NIL):
			return LiteralExpression(None)
		if self._match_any((TokenKind.NUMBER, TokenKind.STRING)):
			return LiteralExpression(self._previous().value)
		if self._match(TokenKind.SUPER):
			keyword = self._previous()
			self._expect(TokenKind.DOT, "Expected '.' after 'super'.")
			method = self._expect(TokenKind.IDENT, "Expected superclass method name.")
			return SuperExpression(keyword=keyword, method=method)
		if self._match(TokenKind.THIS):
			return ThisExpression(keyword=self._previous())
		if self._match(TokenKind.IDENT):
			return VariableExpression(name=self._previous())
		if self._match(TokenKind.LPAREN):
			expr = self._parse_expression()
			self._expect(TokenKind.RPAREN, "Expected ')' after expression.")
			return GroupingExpression(expression=expr)
		raise ParseError(self._peek(), "Expected expression.")

	# Utility parsing helpers -------------------------------------------------

	def _synchronize(self) -> None:
		self._advance_token()
		while not self._is_at_end():
			if self._previous().kind == TokenKind.SEMI:
				return
			if self._peek().kind in STATEMENT_STARTS:
				return
			self._advance_token()

	def _match(self, kind: TokenKind) -> bool:
		if self._check(kind):
			self.index += 1
			return True
		return False

	def _match_any(self, kinds: Sequence[TokenKind]) -> bool:
		for kind in kinds:
			if self._match(kind):
				return True
		return False

	def _check(self, kind: TokenKind) -> bool:
		if self._is_at_end():
			return False
		return self.tokens[self.index].kind == kind

	def _advance_token(self) -> Token:
		if not self._is_at_end():
			self.index += 1
		return self.tokens[self.index - 1]

	def _expect(self, kind: TokenKind, message: str) -> Token:
		if self._check(kind):
			return self._advance_token()
		got = self._peek()
		raise ParseError(got, message, hint=self._hint_for_expect(kind, got))

	def _peek(self) -> Token:
		return self.tokens[self.index]

	def _previous(self) -> Token:
		return self.tokens[self.index - 1]

	def _is_at_end(self) -> bool:
		return self.tokens[self.index].kind == TokenKind.EOF

	def _report(self, error: ParseError) -> None:
		self.diagnostics.report(Phase.PARSE, error.message, error.line, error.where, hint=error.hint)

	def _hint_for_expect(self, expected: TokenKind, got: Optional[Token]) -> Optional[str]:
		if expected == TokenKind.SEMI:
			return "Statements and declarations must end with ';'."
		if expected == TokenKind.RBRACE:
			return "Blocks end with '}'. Check for a missing closing brace or an extra '{' earlier."
		if expected == TokenKind.RPAREN:
			return "Missing ')'. Check calls and conditions like: if (cond) { ... }"
		if expected == TokenKind.LBRACE:
			return "Function, method, and class bodies start with '{'."
		if expected == TokenKind.IDENT and got and got.kind in KEYWORDS.values():
			return "Identifiers can't be keywords. Rename it (e.g., 'klass' instead of 'class')."
		return None


def parse(tokens: List[Token]) -> Tuple[List[Statement], List[Diagnostic]]:
	"""Parse ``tokens`` into statements, returning them with every parse error found."""
	diagnostics = DiagnosticEngine()
	statements = Parser(tokens, diagnostics).parse()
	return statements, diagnostics.items
