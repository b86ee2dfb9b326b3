"""AST node set for mini-lox.

Every node is an ``eq=False`` dataclass: nodes hash and compare by identity,
so the resolver can key per-node metadata on the node object itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

from .lexer import Token


class ASTNode:
	pass


class Expression(ASTNode):
	pass


class Statement(ASTNode):
	pass


# ---------------------------------------------------------------------------
# Expressions


@dataclass(eq=False)
class LiteralExpression(Expression):
	value: Any


@dataclass(eq=False)
class VariableExpression(Expression):
	name: Token


@dataclass(eq=False)
class AssignExpression(Expression):
	name: Token
	value: Expression


@dataclass(eq=False)
class BinaryExpression(Expression):
	left: Expression
	operator: Token
	right: Expression


@dataclass(eq=False)
class LogicalExpression(Expression):
	left: Expression
	operator: Token
	right: Expression


@dataclass(eq=False)
class UnaryExpression(Expression):
	operator: Token
	operand: Expression


@dataclass(eq=False)
class CallExpression(Expression):
	callee: Expression
	paren: Token
	arguments: List[Expression]


@dataclass(eq=False)
class GetExpression(Expression):
	target: Expression
	name: Token


@dataclass(eq=False)
class SetExpression(Expression):
	target: Expression
	name: Token
	value: Expression


@dataclass(eq=False)
class ThisExpression(Expression):
	keyword: Token


@dataclass(eq=False)
class SuperExpression(Expression):
	keyword: Token
	method: Token


@dataclass(eq=False)
class GroupingExpression(Expression):
	expression: Expression


@dataclass(eq=False)
class ConditionalExpression(Expression):
	condition: Expression
	then_branch: Expression
	else_branch: Expression


# ---------------------------------------------------------------------------
# Statements


@dataclass(eq=False)
class ExpressionStatement(Statement):
	expression: Expression


@dataclass(eq=False)
class PrintStatement(Statement):
	keyword: Token
	value: Expression


@dataclass(eq=False)
class VarStatement(Statement):
	name: Token
	initializer: Optional[Expression]


@dataclass(eq=False)
class BlockStatement(Statement):
	statements: List[Statement]


@dataclass(eq=False)
class IfStatement(Statement):
	condition: Expression
	then_branch: Statement
	else_branch: Optional[Statement]


@dataclass(eq=False)
class WhileStatement(Statement):
	condition: Expression
	body: Statement


@dataclass(eq=False)
class FunctionStatement(Statement):
	name: Token
	parameters: List[Token]
	body: List[Statement]


@dataclass(eq=False)
class ReturnStatement(Statement):
	keyword: Token
	value: Optional[Expression]


@dataclass(eq=False)
class ClassStatement(Statement):
	name: Token
	superclass: Optional[VariableExpression]
	methods: List[FunctionStatement]
