from __future__ import annotations

from typing import Optional

from .lexer import Token


class RuntimeIssue(Exception):
	def __init__(self, message: str, token: Optional[Token] = None) -> None:
		super().__init__(message)
		self.message = message
		self.token = token

	@property
	def line(self) -> Optional[int]:
		return self.token.line if self.token is not None else None

	def format(self) -> str:
		if self.line is None:
			return self.message
		return f"{self.message}\n[line {self.line}]"

	def __str__(self) -> str:
		return self.message
