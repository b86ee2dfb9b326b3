from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional

from .diagnostics import DiagnosticEngine, Phase


class TokenKind(Enum):
	# Single-character tokens
	LPAREN = auto()
	RPAREN = auto()
	LBRACE = auto()
	RBRACE = auto()
	COMMA = auto()
	DOT = auto()
	MINUS = auto()
	PLUS = auto()
	SEMI = auto()
	SLASH = auto()
	STAR = auto()
	QUESTION = auto()
	COLON = auto()
	# One or two character tokens
	BANG = auto()
	BANG_EQUAL = auto()
	ASSIGN = auto()
	EQ = auto()
	GT = auto()
	GTE = auto()
	LT = auto()
	LTE = auto()
	# Literals
	IDENT = auto()
	STRING = auto()
	NUMBER = auto()
	# Keywords
	AND = auto()
	CLASS = auto()
	ELSE = auto()
	FALSE = auto()
	FUN = auto()
	FOR = auto()
	IF = auto()
	NIL = auto()
	OR = auto()
	PRINT = auto()
	RETURN = auto()
	SUPER = auto()
	THIS = auto()
	TRUE = auto()
	VAR = auto()
	WHILE = auto()
	EOF = auto()


KEYWORDS: Dict[str, TokenKind] = {
	"and": TokenKind.AND,
	"class": TokenKind.CLASS,
	"else": TokenKind.ELSE,
	"false": TokenKind.FALSE,
	"for": TokenKind.FOR,
	"fun": TokenKind.FUN,
	"if": TokenKind.IF,
	"nil": TokenKind.NIL,
	"or": TokenKind.OR,
	"print": TokenKind.PRINT,
	"return": TokenKind.RETURN,
	"super": TokenKind.SUPER,
	"this": TokenKind.THIS,
	"true": TokenKind.TRUE,
	"var": TokenKind.VAR,
	"while": TokenKind.WHILE,
}


SYMBOLS: Dict[str, TokenKind] = {
	"(": TokenKind.LPAREN,
	")": TokenKind.RPAREN,
	"{": TokenKind.LBRACE,
	"}": TokenKind.RBRACE,
	",": TokenKind.COMMA,
	".": TokenKind.DOT,
	"-": TokenKind.MINUS,
	"+": TokenKind.PLUS,
	";": TokenKind.SEMI,
	"/": TokenKind.SLASH,
	"*": TokenKind.STAR,
	"?": TokenKind.QUESTION,
	":": TokenKind.COLON,
	"!": TokenKind.BANG,
	"!=": TokenKind.BANG_EQUAL,
	"=": TokenKind.ASSIGN,
	"==": TokenKind.EQ,
	">": TokenKind.GT,
	">=": TokenKind.GTE,
	"<": TokenKind.LT,
	"<=": TokenKind.LTE,
}


@dataclass(frozen=True)
class Position:
	line: int
	column: int
	index: int


@dataclass(frozen=True)
class Span:
	start: Position
	end: Position


@dataclass(frozen=True)
class Token:
	kind: TokenKind
	lexeme: str
	span: Span
	value: Optional[Any] = None

	@property
	def line(self) -> int:
		return self.span.start.line

	def __str__(self) -> str:
		if self.value is None:
			return f"{self.kind.name} {self.lexeme}"
		return f"{self.kind.name} {self.lexeme} {self.value!r}"


def _is_digit(ch: str) -> bool:
	return "0" <= ch <= "9"


class Lexer:
	def __init__(self, source: str, diagnostics: DiagnosticEngine) -> None:
		self.source = source
		self.diagnostics = diagnostics
		self.length = len(source)
		self.index = 0
		self.line = 1
		self.column = 1

	def tokenize(self) -> List[Token]:
		tokens: List[Token] = []
		while not self._is_eof():
			ch = self._peek()
			if ch in " \t\r\n":
				self._advance()
			elif ch == "/" and self._peek_next() == "/":
				self._consume_comment()
			elif ch == "/" and self._peek_next() == "*":
				self._consume_block_comment()
			elif ch.isalpha() or ch == "_":
				tokens.append(self._consume_identifier())
			elif _is_digit(ch):
				tokens.append(self._consume_number())
			elif ch == '"':
				token = self._consume_string()
				if token is not None:
					tokens.append(token)
			else:
				token = self._consume_symbol()
				if token is not None:
					tokens.append(token)
		tokens.append(self._make_token(TokenKind.EOF, "", self._current_position()))
		return tokens

	def _consume_comment(self) -> None:
		while not self._is_eof() and self._peek() != "\n":
			self._advance()

	def _consume_block_comment(self) -> None:
		start = self._current_position()
		self._advance()
		self._advance()
		depth = 1
		while not self._is_eof():
			if self._peek() == "/" and self._peek_next() == "*":
				self._advance()
				self._advance()
				depth += 1
			elif self._peek() == "*" and self._peek_next() == "/":
				self._advance()
				self._advance()
				depth -= 1
				if depth == 0:
					return
			else:
				self._advance()
		self.diagnostics.report(Phase.LEX, "Unterminated block comment.", start.line)

	def _consume_identifier(self) -> Token:
		start = self._current_position()
		lexeme = self._consume_while(lambda c: c.isalnum() or c == "_")
		kind = KEYWORDS.get(lexeme, TokenKind.IDENT)
		return self._make_token(kind, lexeme, start)

	def _consume_number(self) -> Token:
		start = self._current_position()
		self._consume_while(_is_digit)
		# A trailing '.' without digits is left for the DOT token.
		if self._peek_or_empty() == "." and _is_digit(self._peek_next()):
			self._advance()
			self._consume_while(_is_digit)
		lexeme = self.source[start.index : self.index]
		return self._make_token(TokenKind.NUMBER, lexeme, start, float(lexeme))

	def _consume_string(self) -> Optional[Token]:
		start = self._current_position()
		self._advance()  # opening quote
		while not self._is_eof() and self._peek() != '"':
			self._advance()
		if self._is_eof():
			self.diagnostics.report(Phase.LEX, "Unterminated string.", start.line)
			return None
		self._advance()  # closing quote
		lexeme = self.source[start.index : self.index]
		return self._make_token(TokenKind.STRING, lexeme, start, lexeme[1:-1])

	def _consume_symbol(self) -> Optional[Token]:
		start = self._current_position()
		ch = self._advance()
		next_ch = self._peek_or_empty()
		candidate = ch + next_ch
		if next_ch and candidate in SYMBOLS:
			self._advance()
			return self._make_token(SYMBOLS[candidate], candidate, start)
		if ch in SYMBOLS:
			return self._make_token(SYMBOLS[ch], ch, start)
		self.diagnostics.report(Phase.LEX, f"Unexpected character '{ch}'.", start.line)
		return None

	def _consume_while(self, predicate: Callable[[str], bool]) -> str:
		start_index = self.index
		while not self._is_eof() and predicate(self._peek()):
			self._advance()
		return self.source[start_index:self.index]

	def _current_position(self) -> Position:
		return Position(self.line, self.column, self.index)

	def _make_token(self, kind: TokenKind, lexeme: str, start: Position, value: Optional[Any] = None) -> Token:
		end = self._current_position()
		return Token(kind, lexeme, Span(start, end), value)

	def _advance(self) -> str:
		ch = self.source[self.index]
		self.index += 1
		if ch == "\n":
			self.line += 1
			self.column = 1
		else:
			self.column += 1
		return ch

	def _peek(self) -> str:
		return self.source[self.index]

	def _peek_or_empty(self) -> str:
		return "" if self._is_eof() else self.source[self.index]

	def _peek_next(self) -> str:
		if self.index + 1 >= self.length:
			return ""
		return self.source[self.index + 1]

	def _is_eof(self) -> bool:
		return self.index >= self.length


def scan(source: str, diagnostics: Optional[DiagnosticEngine] = None) -> List[Token]:
	"""Tokenize ``source``; lexical faults land in ``diagnostics`` and scanning continues."""
	return Lexer(source, diagnostics if diagnostics is not None else DiagnosticEngine()).tokenize()
