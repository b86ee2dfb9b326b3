from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from .environment import Environment
from .errors import RuntimeIssue
from .lexer import Token, TokenKind
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
from .runtime import LoxCallable, LoxClass, LoxFunction, LoxInstance, ReturnSignal, stringify

logger = logging.getLogger(__name__)

# Each mini-lox call nests several Python frames; the default limit allows only ~140 calls.
RECURSION_LIMIT = 10_000


@dataclass
class RunArtifacts:
	output: str
	steps: int
	runtime_error: Optional[RuntimeIssue] = None


class Interpreter:
	"""
	Tree-walking evaluator for resolved mini-lox statements.

	The global environment is passed in rather than created here, so separate
	interpreters never share state. ``locals`` is the resolver's side-table;
	a reference absent from it is looked up in ``globals``.
	"""

	def __init__(
		self,
		globals: Environment,
		*,
		on_print: Optional[Callable[[str], None]] = None,
		max_steps: Optional[int] = None,
	) -> None:
		self.globals = globals
		self._environment = globals
		self._locals: Dict[Expression, int] = {}
		self._on_print = on_print
		self._max_steps = max_steps
		self._out: List[str] = []
		self._steps = 0

	def add_locals(self, locals_: Mapping[Expression, int]) -> None:
		self._locals.update(locals_)

	def run(self, statements: List[Statement]) -> RunArtifacts:
		if sys.getrecursionlimit() < RECURSION_LIMIT:
			sys.setrecursionlimit(RECURSION_LIMIT)
		self._out = []
		self._steps = 0
		try:
			self.execute(statements)
			return RunArtifacts(output="".join(self._out), steps=self._steps)
		except RuntimeIssue as issue:
			logger.debug("Execution halted at line %s: %s", issue.line, issue.message)
			return RunArtifacts(output="".join(self._out), steps=self._steps, runtime_error=issue)
		except RecursionError:
			return RunArtifacts(output="".join(self._out), steps=self._steps, runtime_error=RuntimeIssue("Stack overflow."))
		except Exception as e:
			logger.exception("Unexpected failure while executing")
			return RunArtifacts(output="".join(self._out), steps=self._steps, runtime_error=RuntimeIssue(f"Runtime error: {e}"))
		finally:
			# A fault may leave a block's environment active.
			self._environment = self.globals

	def execute(self, statements: List[Statement]) -> None:
		"""Execute ``statements`` in order; the first RuntimeIssue propagates and halts the rest."""
		for stmt in statements:
			self._exec_statement(stmt)

	def execute_block(self, statements: List[Statement], environment: Environment) -> None:
		previous = self._environment
		try:
			self._environment = environment
			for stmt in statements:
				self._exec_statement(stmt)
		finally:
			self._environment = previous

	def _tick(self) -> None:
		self._steps += 1
		if self._max_steps is not None and self._steps > self._max_steps:
			raise RuntimeIssue("Step limit exceeded (possible infinite loop).")

	# Statements --------------------------------------------------------------

	def _exec_statement(self, stmt: Statement) -> None:
		self._tick()

		if isinstance(stmt, ExpressionStatement):
			self._eval_expression(stmt.expression)
			return
		if isinstance(stmt, PrintStatement):
			text = stringify(self._eval_expression(stmt.value))
			self._out.append(text + "\n")
			if self._on_print is not None:
				self._on_print(text)
			return
		if isinstance(stmt, VarStatement):
			value = self._eval_expression(stmt.initializer) if stmt.initializer is not None else None
			self._environment.define(stmt.name.lexeme, value)
			return
		if isinstance(stmt, BlockStatement):
			self.execute_block(stmt.statements, Environment(self._environment))
			return
		if isinstance(stmt, IfStatement):
			if self._truthy(self._eval_expression(stmt.condition)):
				self._exec_statement(stmt.then_branch)
			elif stmt.else_branch is not None:
				self._exec_statement(stmt.else_branch)
			return
		if isinstance(stmt, WhileStatement):
			while self._truthy(self._eval_expression(stmt.condition)):
				self._exec_statement(stmt.body)
			return
		if isinstance(stmt, FunctionStatement):
			function = LoxFunction(stmt, self._environment)
			self._environment.define(stmt.name.lexeme, function)
			return
		if isinstance(stmt, ReturnStatement):
			value = self._eval_expression(stmt.value) if stmt.value is not None else None
			raise ReturnSignal(value)
		if isinstance(stmt, ClassStatement):
			self._exec_class(stmt)
			return

		raise RuntimeIssue(f"Unsupported statement: {stmt.__class__.__name__}")

	def _exec_class(self, stmt: ClassStatement) -> None:
		superclass: Optional[LoxClass] = None
		if stmt.superclass is not None:
			value = self._eval_expression(stmt.superclass)
			if not isinstance(value, LoxClass):
				raise RuntimeIssue("Superclass must be a class.", stmt.superclass.name)
			superclass = value

		self._environment.define(stmt.name.lexeme, None)

		method_scope = self._environment
		if superclass is not None:
			method_scope = Environment(self._environment)
			method_scope.define("super", superclass)

		methods = {
			method.name.lexeme: LoxFunction(method, method_scope, is_initializer=method.name.lexeme == "init")
			for method in stmt.methods
		}
		self._environment.assign(stmt.name, LoxClass(stmt.name.lexeme, superclass, methods))

	# Expressions -------------------------------------------------------------

	def _eval_expression(self, expr: Expression) -> Any:
		if isinstance(expr, LiteralExpression):
			return expr.value
		if isinstance(expr, GroupingExpression):
			return self._eval_expression(expr.expression)
		if isinstance(expr, VariableExpression):
			return self._look_up_variable(expr.name, expr)
		if isinstance(expr, AssignExpression):
			value = self._eval_expression(expr.value)
			distance = self._locals.get(expr)
			if distance is not None:
				self._environment.assign_at(distance, expr.name, value)
			else:
				self.globals.assign(expr.name, value)
			return value
		if isinstance(expr, UnaryExpression):
			operand = self._eval_expression(expr.operand)
			if expr.operator.kind == TokenKind.MINUS:
				self._check_number_operand(expr.operator, operand)
				return -operand
			if expr.operator.kind == TokenKind.BANG:
				return not self._truthy(operand)
			raise RuntimeIssue(f"Unsupported unary operator '{expr.operator.lexeme}'.", expr.operator)
		if isinstance(expr, BinaryExpression):
			return self._eval_binary(expr)
		if isinstance(expr, LogicalExpression):
			left = self._eval_expression(expr.left)
			if expr.operator.kind == TokenKind.OR:
				if self._truthy(left):
					return left
			elif not self._truthy(left):
				return left
			return self._eval_expression(expr.right)
		if isinstance(expr, ConditionalExpression):
			if self._truthy(self._eval_expression(expr.condition)):
				return self._eval_expression(expr.then_branch)
			return self._eval_expression(expr.else_branch)
		if isinstance(expr, CallExpression):
			return self._eval_call(expr)
		if isinstance(expr, GetExpression):
			target = self._eval_expression(expr.target)
			if isinstance(target, LoxInstance):
				return target.get(expr.name)
			raise RuntimeIssue("Only instances have properties.", expr.name)
		if isinstance(expr, SetExpression):
			target = self._eval_expression(expr.target)
			if not isinstance(target, LoxInstance):
				raise RuntimeIssue("Only instances have fields.", expr.name)
			value = self._eval_expression(expr.value)
			target.set(expr.name, value)
			return value
		if isinstance(expr, ThisExpression):
			return self._look_up_variable(expr.keyword, expr)
		if isinstance(expr, SuperExpression):
			return self._eval_super(expr)

		raise RuntimeIssue(f"Unsupported expression: {expr.__class__.__name__}")

	def _eval_binary(self, expr: BinaryExpression) -> Any:
		left = self._eval_expression(expr.left)
		right = self._eval_expression(expr.right)
		op = expr.operator
		kind = op.kind

		if kind == TokenKind.PLUS:
			if isinstance(left, float) and isinstance(right, float):
				return left + right
			if isinstance(left, str) and isinstance(right, str):
				return left + right
			raise RuntimeIssue("Operands must be two numbers or two strings.", op)
		if kind == TokenKind.EQ:
			return self._is_equal(left, right)
		if kind == TokenKind.BANG_EQUAL:
			return not self._is_equal(left, right)

		self._check_number_operands(op, left, right)
		if kind == TokenKind.MINUS:
			return left - right
		if kind == TokenKind.STAR:
			return left * right
		if kind == TokenKind.SLASH:
			return self._divide(left, right)
		if kind == TokenKind.GT:
			return left > right
		if kind == TokenKind.GTE:
			return left >= right
		if kind == TokenKind.LT:
			return left < right
		if kind == TokenKind.LTE:
			return left <= right

		raise RuntimeIssue(f"Unsupported binary operator '{op.lexeme}'.", op)

	def _eval_call(self, expr: CallExpression) -> Any:
		callee = self._eval_expression(expr.callee)
		arguments = [self._eval_expression(argument) for argument in expr.arguments]
		if not isinstance(callee, LoxCallable):
			raise RuntimeIssue("Can only call functions and classes.", expr.paren)
		if len(arguments) != callee.arity():
			raise RuntimeIssue(f"Expected {callee.arity()} arguments but got {len(arguments)}.", expr.paren)
		return callee.call(self, arguments)

	def _eval_super(self, expr: SuperExpression) -> Any:
		distance = self._locals[expr]
		superclass: LoxClass = self._environment.get_at(distance, "super")
		# The method scope binding "this" sits directly inside the "super" scope.
		instance: LoxInstance = self._environment.get_at(distance - 1, "this")
		method = superclass.find_method(expr.method.lexeme)
		if method is None:
			raise RuntimeIssue(f"Undefined property '{expr.method.lexeme}'.", expr.method)
		return method.bind(instance)

	def _look_up_variable(self, name: Token, expr: Expression) -> Any:
		distance = self._locals.get(expr)
		if distance is not None:
			return self._environment.get_at(distance, name.lexeme)
		return self.globals.get(name)

	# Value helpers -----------------------------------------------------------

	def _divide(self, left: float, right: float) -> float:
		if right == 0.0:
			# IEEE 754 semantics: x/0 is a signed infinity, 0/0 is NaN.
			if left == 0.0 or math.isnan(left):
				return math.nan
			return math.copysign(math.inf, left) * math.copysign(1.0, right)
		return left / right

	def _check_number_operand(self, operator: Token, operand: Any) -> None:
		if isinstance(operand, float):
			return
		raise RuntimeIssue("Operand must be a number.", operator)

	def _check_number_operands(self, operator: Token, left: Any, right: Any) -> None:
		if isinstance(left, float) and isinstance(right, float):
			return
		raise RuntimeIssue("Operands must be numbers.", operator)

	def _is_equal(self, left: Any, right: Any) -> bool:
		if left is None and right is None:
			return True
		if left is None or right is None:
			return False
		if type(left) is not type(right):
			return False
		return left == right

	def _truthy(self, value: Any) -> bool:
		if value is None:
			return False
		if isinstance(value, bool):
			return value
		return True
