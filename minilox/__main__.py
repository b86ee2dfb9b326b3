from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .engine import ExitStatus, LoxSession, SessionResult


def _report(result: SessionResult) -> None:
	for diagnostic in result.diagnostics:
		print(diagnostic.format(), file=sys.stderr)
		if diagnostic.hint:
			print(f"  hint: {diagnostic.hint}", file=sys.stderr)
	if result.runtime_error is not None:
		print(result.runtime_error.format(), file=sys.stderr)


def run_file(path: Path) -> int:
	try:
		source = path.read_text(encoding="utf-8")
	except OSError as e:
		print(f"{path}: {e}", file=sys.stderr)
		return int(ExitStatus.NO_INPUT)
	session = LoxSession(on_print=print)
	result = session.run(source)
	_report(result)
	return int(result.status)


def run_prompt() -> int:
	session = LoxSession(on_print=print)
	while True:
		try:
			line = input("> ")
		except EOFError:
			print()
			return int(ExitStatus.OK)
		_report(session.run(line))


def main(argv: Optional[List[str]] = None) -> int:
	parser = argparse.ArgumentParser(prog="minilox", description="Run a mini-lox script, or start a prompt.")
	parser.add_argument("script", nargs="?", type=Path, help="script to run; omit for an interactive prompt")
	parser.add_argument("--verbose", action="store_true", help="log pipeline timings to stderr")
	args = parser.parse_args(argv)
	if args.verbose:
		logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
	if args.script is None:
		return run_prompt()
	return run_file(args.script)


if __name__ == "__main__":
	sys.exit(main())
