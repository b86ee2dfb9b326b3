from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable, List, Optional


class Severity(Enum):
	INFO = auto()
	WARNING = auto()
	ERROR = auto()


class Phase(Enum):
	LEX = auto()
	PARSE = auto()
	RESOLVE = auto()


@dataclass
class Diagnostic:
	phase: Phase
	message: str
	line: int
	where: str = ""
	severity: Severity = Severity.ERROR
	hint: Optional[str] = None

	def format(self) -> str:
		return f"[line {self.line}] Error{self.where}: {self.message}"

	def __str__(self) -> str:
		return self.format()


class DiagnosticEngine:
	def __init__(self) -> None:
		self._items: List[Diagnostic] = []

	@property
	def items(self) -> List[Diagnostic]:
		return self._items

	def report(
		self,
		phase: Phase,
		message: str,
		line: int,
		where: str = "",
		severity: Severity = Severity.ERROR,
		hint: Optional[str] = None,
	) -> Diagnostic:
		diagnostic = Diagnostic(phase, message, line, where, severity, hint)
		self._items.append(diagnostic)
		return diagnostic

	def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
		self._items.extend(diagnostics)

	def of_phase(self, phase: Phase) -> List[Diagnostic]:
		return [d for d in self._items if d.phase == phase]

	@property
	def has_errors(self) -> bool:
		return any(d.severity == Severity.ERROR for d in self._items)

	def clear(self) -> None:
		self._items.clear()
