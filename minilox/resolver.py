from __future__ import annotations

from enum import Enum, auto
from typing import Dict, List, Optional, Tuple

from .diagnostics import Diagnostic, DiagnosticEngine, Phase
from .lexer import Token
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


class FunctionType(Enum):
	NONE = auto()
	FUNCTION = auto()
	INITIALIZER = auto()
	METHOD = auto()


class ClassType(Enum):
	NONE = auto()
	CLASS = auto()
	SUBCLASS = auto()


class Resolver:
	"""
	Static pass binding every local variable reference to its declaring scope.

	For each reference node the resolver records how many scopes lie between the
	reference and the declaration. References with no local declaration are left
	out of ``locals`` and are looked up in the global environment at run time.
	"""

	def __init__(self, diagnostics: DiagnosticEngine) -> None:
		self.diagnostics = diagnostics
		self.locals: Dict[Expression, int] = {}
		# name -> True once the declaration's initializer has been resolved
		self._scopes: List[Dict[str, bool]] = []
		self._current_function = FunctionType.NONE
		self._current_class = ClassType.NONE

	def resolve(self, statements: List[Statement]) -> Dict[Expression, int]:
		self._resolve_statements(statements)
		return self.locals

	def _resolve_statements(self, statements: List[Statement]) -> None:
		for stmt in statements:
			self._resolve_statement(stmt)

	def _resolve_statement(self, stmt: Statement) -> None:
		if isinstance(stmt, BlockStatement):
			self._begin_scope()
			self._resolve_statements(stmt.statements)
			self._end_scope()
		elif isinstance(stmt, VarStatement):
			self._declare(stmt.name)
			if stmt.initializer is not None:
				self._resolve_expression(stmt.initializer)
			self._define(stmt.name)
		elif isinstance(stmt, FunctionStatement):
			self._declare(stmt.name)
			self._define(stmt.name)
			self._resolve_function(stmt, FunctionType.FUNCTION)
		elif isinstance(stmt, ClassStatement):
			self._resolve_class(stmt)
		elif isinstance(stmt, ExpressionStatement):
			self._resolve_expression(stmt.expression)
		elif isinstance(stmt, PrintStatement):
			self._resolve_expression(stmt.value)
		elif isinstance(stmt, IfStatement):
			self._resolve_expression(stmt.condition)
			self._resolve_statement(stmt.then_branch)
			if stmt.else_branch is not None:
				self._resolve_statement(stmt.else_branch)
		elif isinstance(stmt, WhileStatement):
			self._resolve_expression(stmt.condition)
			self._resolve_statement(stmt.body)
		elif isinstance(stmt, ReturnStatement):
			if self._current_function == FunctionType.NONE:
				self._error(stmt.keyword, "Can't return from top-level code.")
			if stmt.value is not None:
				if self._current_function == FunctionType.INITIALIZER:
					self._error(stmt.keyword, "Can't return a value from an initializer.")
				self._resolve_expression(stmt.value)
		else:
			raise TypeError(f"Unsupported statement: {stmt.__class__.__name__}")

	def _resolve_class(self, stmt: ClassStatement) -> None:
		enclosing_class = self._current_class
		self._current_class = ClassType.CLASS
		self._declare(stmt.name)
		self._define(stmt.name)

		if stmt.superclass is not None:
			if stmt.superclass.name.lexeme == stmt.name.lexeme:
				self._error(stmt.superclass.name, "A class can't inherit from itself.")
			self._current_class = ClassType.SUBCLASS
			self._resolve_expression(stmt.superclass)
			self._begin_scope()
			self._scopes[-1]["super"] = True

		self._begin_scope()
		self._scopes[-1]["this"] = True
		for method in stmt.methods:
			kind = FunctionType.INITIALIZER if method.name.lexeme == "init" else FunctionType.METHOD
			self._resolve_function(method, kind)
		self._end_scope()

		if stmt.superclass is not None:
			self._end_scope()
		self._current_class = enclosing_class

	def _resolve_function(self, function: FunctionStatement, kind: FunctionType) -> None:
		enclosing_function = self._current_function
		self._current_function = kind
		self._begin_scope()
		for param in function.parameters:
			self._declare(param)
			self._define(param)
		self._resolve_statements(function.body)
		self._end_scope()
		self._current_function = enclosing_function

	def _resolve_expression(self, expr: Expression) -> None:
		if isinstance(expr, VariableExpression):
			if self._scopes and self._scopes[-1].get(expr.name.lexeme) is False:
				self._error(expr.name, "Can't read local variable in its own initializer.")
			self._resolve_local(expr, expr.name)
		elif isinstance(expr, AssignExpression):
			self._resolve_expression(expr.value)
			self._resolve_local(expr, expr.name)
		elif isinstance(expr, (BinaryExpression, LogicalExpression)):
			self._resolve_expression(expr.left)
			self._resolve_expression(expr.right)
		elif isinstance(expr, UnaryExpression):
			self._resolve_expression(expr.operand)
		elif isinstance(expr, CallExpression):
			self._resolve_expression(expr.callee)
			for argument in expr.arguments:
				self._resolve_expression(argument)
		elif isinstance(expr, GetExpression):
			self._resolve_expression(expr.target)
		elif isinstance(expr, SetExpression):
			self._resolve_expression(expr.value)
			self._resolve_expression(expr.target)
		elif isinstance(expr, ThisExpression):
			if self._current_class == ClassType.NONE:
				self._error(expr.keyword, "Can't use 'this' outside of a class.")
				return
			self._resolve_local(expr, expr.keyword)
		elif isinstance(expr, SuperExpression):
			if self._current_class == ClassType.NONE:
				self._error(expr.keyword, "Can't use 'super' outside of a class.")
				return
			if self._current_class != ClassType.SUBCLASS:
				self._error(expr.keyword, "Can't use 'super' in a class with no superclass.")
				return
			self._resolve_local(expr, expr.keyword)
		elif isinstance(expr, GroupingExpression):
			self._resolve_expression(expr.expression)
		elif isinstance(expr, ConditionalExpression):
			self._resolve_expression(expr.condition)
			self._resolve_expression(expr.then_branch)
			self._resolve_expression(expr.else_branch)
		elif isinstance(expr, LiteralExpression):
			return
		else:
			raise TypeError(f"Unsupported expression: {expr.__class__.__name__}")

	def _resolve_local(self, expr: Expression, name: Token) -> None:
		for depth, scope in enumerate(reversed(self._scopes)):
			if name.lexeme in scope:
				self.locals[expr] = depth
				return

	def _begin_scope(self) -> None:
		self._scopes.append({})

	def _end_scope(self) -> None:
		self._scopes.pop()

	def _declare(self, name: Token) -> None:
		if not self._scopes:
			return
		scope = self._scopes[-1]
		if name.lexeme in scope:
			self._error(name, "Already a variable with this name in this scope.")
		scope[name.lexeme] = False

	def _define(self, name: Token) -> None:
		if not self._scopes:
			return
		self._scopes[-1][name.lexeme] = True

	def _error(self, token: Token, message: str) -> None:
		self.diagnostics.report(Phase.RESOLVE, message, token.line, f" at '{token.lexeme}'")


def resolve(
	statements: List[Statement], diagnostics: Optional[DiagnosticEngine] = None
) -> Tuple[Dict[Expression, int], List[Diagnostic]]:
	"""Resolve ``statements``; returns the scope-distance table and the resolve errors."""
	engine = diagnostics if diagnostics is not None else DiagnosticEngine()
	locals_ = Resolver(engine).resolve(statements)
	return locals_, engine.of_phase(Phase.RESOLVE)
