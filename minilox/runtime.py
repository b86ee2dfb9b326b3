from __future__ import annotations

import math
import time
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional

from .environment import Environment
from .errors import RuntimeIssue
from .lexer import Token
from .nodes import FunctionStatement

if TYPE_CHECKING:
	from .interpreter import Interpreter


class ReturnSignal(Exception):
	"""Unwinds a function body up to its call boundary, carrying the return value."""

	def __init__(self, value: Any) -> None:
		super().__init__()
		self.value = value


class LoxCallable:
	def arity(self) -> int:
		raise NotImplementedError

	def call(self, interpreter: "Interpreter", arguments: List[Any]) -> Any:
		raise NotImplementedError


class LoxFunction(LoxCallable):
	def __init__(self, declaration: FunctionStatement, closure: Environment, is_initializer: bool = False) -> None:
		self.declaration = declaration
		self.closure = closure
		self.is_initializer = is_initializer

	@property
	def name(self) -> str:
		return self.declaration.name.lexeme

	def bind(self, instance: "LoxInstance") -> "LoxFunction":
		environment = Environment(self.closure)
		environment.define("this", instance)
		return LoxFunction(self.declaration, environment, self.is_initializer)

	def arity(self) -> int:
		return len(self.declaration.parameters)

	def call(self, interpreter: "Interpreter", arguments: List[Any]) -> Any:
		# Parented to the defining scope, never to the caller's.
		environment = Environment(self.closure)
		for param, argument in zip(self.declaration.parameters, arguments):
			environment.define(param.lexeme, argument)
		try:
			interpreter.execute_block(self.declaration.body, environment)
		except ReturnSignal as signal:
			if self.is_initializer:
				return self.closure.get_at(0, "this")
			return signal.value
		if self.is_initializer:
			return self.closure.get_at(0, "this")
		return None

	def __str__(self) -> str:
		return f"<fn {self.name}>"


class NativeFunction(LoxCallable):
	def __init__(self, name: str, arity: int, fn: Callable[..., Any]) -> None:
		self.name = name
		self._arity = arity
		self._fn = fn

	def arity(self) -> int:
		return self._arity

	def call(self, interpreter: "Interpreter", arguments: List[Any]) -> Any:
		return self._fn(*arguments)

	def __str__(self) -> str:
		return "<native fn>"


class LoxClass(LoxCallable):
	def __init__(self, name: str, superclass: Optional["LoxClass"], methods: Dict[str, LoxFunction]) -> None:
		self.name = name
		self.superclass = superclass
		# Shared by every instance; only instance fields are mutable.
		self.methods: Mapping[str, LoxFunction] = MappingProxyType(dict(methods))

	def find_method(self, name: str) -> Optional[LoxFunction]:
		klass: Optional[LoxClass] = self
		while klass is not None:
			method = klass.methods.get(name)
			if method is not None:
				return method
			klass = klass.superclass
		return None

	def arity(self) -> int:
		initializer = self.find_method("init")
		return initializer.arity() if initializer is not None else 0

	def call(self, interpreter: "Interpreter", arguments: List[Any]) -> Any:
		instance = LoxInstance(self)
		initializer = self.find_method("init")
		if initializer is not None:
			initializer.bind(instance).call(interpreter, arguments)
		return instance

	def __str__(self) -> str:
		return self.name


class LoxInstance:
	def __init__(self, klass: LoxClass) -> None:
		self.klass = klass
		self.fields: Dict[str, Any] = {}

	def get(self, name: Token) -> Any:
		if name.lexeme in self.fields:
			return self.fields[name.lexeme]
		method = self.klass.find_method(name.lexeme)
		if method is not None:
			return method.bind(self)
		raise RuntimeIssue(f"Undefined property '{name.lexeme}'.", name)

	def set(self, name: Token, value: Any) -> None:
		self.fields[name.lexeme] = value

	def __str__(self) -> str:
		return f"{self.klass.name} instance"


def stringify(value: Any) -> str:
	if value is None:
		return "nil"
	if isinstance(value, bool):
		return "true" if value else "false"
	if isinstance(value, float):
		if math.isnan(value):
			return "NaN"
		if math.isinf(value):
			return "Infinity" if value > 0 else "-Infinity"
		text = repr(value)
		if text.endswith(".0"):
			text = text[:-2]
		return text
	return str(value)


def create_globals() -> Environment:
	"""Build a fresh global environment holding the native functions."""
	environment = Environment()
	environment.define("clock", NativeFunction("clock", 0, time.time))
	environment.define("str", NativeFunction("str", 1, stringify))
	return environment
