from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Dict, List, Optional

from .diagnostics import Diagnostic, DiagnosticEngine, Severity
from .errors import RuntimeIssue
from .interpreter import Interpreter, RunArtifacts
from .lexer import Lexer, Token
from .nodes import Expression, Statement
from .parser import Parser
from .resolver import Resolver
from .runtime import create_globals

logger = logging.getLogger(__name__)


class ExitStatus(IntEnum):
	OK = 0
	STATIC_ERROR = 65
	NO_INPUT = 66
	RUNTIME_ERROR = 70


# ---------------------------------------------------------------------------
# Static pipeline


@dataclass
class CompilationArtifacts:
	tokens: List[Token]
	statements: List[Statement]
	locals: Dict[Expression, int]
	diagnostics: List[Diagnostic]
	duration_ms: float

	@property
	def has_errors(self) -> bool:
		return any(d.severity == Severity.ERROR for d in self.diagnostics)


class MiniLoxEngine:
	def compile(self, source: str) -> CompilationArtifacts:
		diagnostics = DiagnosticEngine()
		start = time.perf_counter()
		tokens = Lexer(source, diagnostics).tokenize()
		# Parsing still runs after lexical errors so one pass reports as much as possible.
		statements = Parser(tokens, diagnostics).parse()
		locals_: Dict[Expression, int] = {}
		if not diagnostics.has_errors:
			locals_ = Resolver(diagnostics).resolve(statements)
		duration_ms = (time.perf_counter() - start) * 1000
		logger.debug(
			"Compiled %d tokens into %d statements (%d resolved locals, %d diagnostics) in %.2f ms",
			len(tokens),
			len(statements),
			len(locals_),
			len(diagnostics.items),
			duration_ms,
		)
		return CompilationArtifacts(
			tokens=tokens,
			statements=statements,
			locals=locals_,
			diagnostics=diagnostics.items,
			duration_ms=duration_ms,
		)


# ---------------------------------------------------------------------------
# Execution


@dataclass
class SessionResult:
	compilation: CompilationArtifacts
	run: Optional[RunArtifacts]
	status: ExitStatus

	@property
	def diagnostics(self) -> List[Diagnostic]:
		return self.compilation.diagnostics

	@property
	def output(self) -> str:
		return self.run.output if self.run is not None else ""

	@property
	def runtime_error(self) -> Optional[RuntimeIssue]:
		return self.run.runtime_error if self.run is not None else None


class LoxSession:
	"""
	A long-lived interpreter session.

	Every call to :meth:`run` compiles one chunk of source and executes it
	against the same global environment, so definitions persist between chunks
	(the interactive prompt feeds one line at a time). Sessions are independent
	of each other, and a session may be shared between threads: chunks execute
	one at a time.
	"""

	def __init__(
		self,
		*,
		on_print: Optional[Callable[[str], None]] = None,
		max_steps: Optional[int] = None,
		engine: Optional[MiniLoxEngine] = None,
	) -> None:
		self.engine = engine or MiniLoxEngine()
		self.globals = create_globals()
		self.interpreter = Interpreter(self.globals, on_print=on_print, max_steps=max_steps)
		self._lock = threading.Lock()

	def run(self, source: str) -> SessionResult:
		compilation = self.engine.compile(source)
		if compilation.has_errors:
			logger.warning("Not executing: %d static error(s) reported", len(compilation.diagnostics))
			return SessionResult(compilation=compilation, run=None, status=ExitStatus.STATIC_ERROR)
		with self._lock:
			self.interpreter.add_locals(compilation.locals)
			run = self.interpreter.run(compilation.statements)
		status = ExitStatus.RUNTIME_ERROR if run.runtime_error is not None else ExitStatus.OK
		return SessionResult(compilation=compilation, run=run, status=status)


def run_source(source: str, *, max_steps: Optional[int] = None) -> SessionResult:
	"""Compile and execute ``source`` in a fresh session."""
	return LoxSession(max_steps=max_steps).run(source)
