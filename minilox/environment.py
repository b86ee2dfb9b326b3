from __future__ import annotations

from typing import Any, Dict, Optional

from .errors import RuntimeIssue
from .lexer import Token


class Environment:
	"""
	One scope frame: a name -> value mapping plus a link to the enclosing frame.

	Lookups by name never search parent frames. Local references are reached by
	walking the exact distance the resolver recorded; everything else goes to
	the global frame directly.
	"""

	def __init__(self, enclosing: Optional["Environment"] = None) -> None:
		self.values: Dict[str, Any] = {}
		self.enclosing = enclosing

	def define(self, name: str, value: Any) -> None:
		self.values[name] = value

	def get(self, name: Token) -> Any:
		if name.lexeme in self.values:
			return self.values[name.lexeme]
		raise RuntimeIssue(f"Undefined variable '{name.lexeme}'.", name)

	def assign(self, name: Token, value: Any) -> None:
		if name.lexeme not in self.values:
			raise RuntimeIssue(f"Undefined variable '{name.lexeme}'.", name)
		self.values[name.lexeme] = value

	def ancestor(self, distance: int) -> "Environment":
		environment = self
		for _ in range(distance):
			if environment.enclosing is None:
				raise RuntimeError(f"Scope chain is shorter than resolved distance {distance}.")
			environment = environment.enclosing
		return environment

	def get_at(self, distance: int, name: str) -> Any:
		return self.ancestor(distance).values[name]

	def assign_at(self, distance: int, name: Token, value: Any) -> None:
		self.ancestor(distance).values[name.lexeme] = value

	def __repr__(self) -> str:
		depth = 0
		parent = self.enclosing
		while parent is not None:
			depth += 1
			parent = parent.enclosing
		return f"<Environment depth={depth} names={sorted(self.values)}>"
