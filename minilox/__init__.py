"""mini-lox: scanner, parser, resolver and tree-walking interpreter for a small Lox-style language."""

from __future__ import annotations

import logging

from .diagnostics import Diagnostic, DiagnosticEngine, Phase, Severity
from .engine import CompilationArtifacts, ExitStatus, LoxSession, MiniLoxEngine, SessionResult, run_source
from .environment import Environment
from .errors import RuntimeIssue
from .interpreter import Interpreter, RunArtifacts
from .lexer import Lexer, Position, Span, Token, TokenKind, scan
from .parser import ParseError, Parser, parse
from .resolver import Resolver, resolve
from .runtime import LoxCallable, LoxClass, LoxFunction, LoxInstance, NativeFunction, create_globals, stringify

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
	"CompilationArtifacts",
	"Diagnostic",
	"DiagnosticEngine",
	"Environment",
	"ExitStatus",
	"Interpreter",
	"Lexer",
	"LoxCallable",
	"LoxClass",
	"LoxFunction",
	"LoxInstance",
	"LoxSession",
	"MiniLoxEngine",
	"NativeFunction",
	"ParseError",
	"Parser",
	"Phase",
	"Position",
	"Resolver",
	"RunArtifacts",
	"RuntimeIssue",
	"SessionResult",
	"Severity",
	"Span",
	"Token",
	"TokenKind",
	"create_globals",
	"parse",
	"resolve",
	"run_source",
	"scan",
	"stringify",
]
