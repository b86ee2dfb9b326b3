from __future__ import annotations

import threading
import uuid
from collections import OrderedDict
from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from minilox import CompilationArtifacts, Diagnostic, LoxSession, MiniLoxEngine, RuntimeIssue, SessionResult, Token
from minilox.lexer import TokenKind


app = FastAPI(title="mini-lox", version="1.0.0")

STATIC_DIR = Path(__file__).parent / "static"
if STATIC_DIR.exists():
	app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

app.add_middleware(
	CORSMiddleware,
	allow_origins=["*"],
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

DEFAULT_MAX_STEPS = 50_000
MAX_SESSIONS = 256

# Incremental sessions, keyed by id, least recently used first. Each holds its own
# global environment; past MAX_SESSIONS the oldest are evicted.
_sessions: OrderedDict[str, LoxSession] = OrderedDict()
_sessions_lock = threading.Lock()


class CompileRequest(BaseModel):
	source: str


class RunRequest(BaseModel):
	source: str
	max_steps: int = DEFAULT_MAX_STEPS


class SessionCreateRequest(BaseModel):
	max_steps: int = DEFAULT_MAX_STEPS


class SessionEvalRequest(BaseModel):
	source: str


def _to_json(obj: Any, *, depth: int = 0, max_depth: int = 64) -> Any:
	"""Best-effort conversion of tokens and AST nodes to JSON-safe structures."""
	if depth > max_depth:
		return {"_truncated": True}
	if obj is None or isinstance(obj, (str, int, float, bool)):
		return obj
	if isinstance(obj, Token):
		return {"_type": "Token", "kind": obj.kind.name, "lexeme": obj.lexeme, "line": obj.line}
	if isinstance(obj, Enum):
		return obj.name
	if isinstance(obj, list):
		return [_to_json(x, depth=depth + 1, max_depth=max_depth) for x in obj]
	if isinstance(obj, dict):
		return {str(k): _to_json(v, depth=depth + 1, max_depth=max_depth) for k, v in obj.items()}
	if is_dataclass(obj):
		data: Dict[str, Any] = {"_type": obj.__class__.__name__}
		for f in fields(obj):
			data[f.name] = _to_json(getattr(obj, f.name), depth=depth + 1, max_depth=max_depth)
		return data
	return str(obj)


def _diagnostics_json(diagnostics: List[Diagnostic]) -> List[Dict[str, Any]]:
	return [
		{
			"phase": d.phase.name,
			"severity": d.severity.name,
			"line": d.line,
			"message": d.message,
			"hint": d.hint,
			"formatted": d.format(),
		}
		for d in diagnostics
	]


def _tokens_json(tokens: List[Token]) -> List[Dict[str, Any]]:
	return [
		{
			"kind": t.kind.name,
			"lexeme": t.lexeme,
			"value": _to_json(t.value),
			"line": t.span.start.line,
			"column": t.span.start.column,
		}
		for t in tokens
		if t.kind != TokenKind.EOF
	]


def _compile_payload(art: CompilationArtifacts) -> Dict[str, Any]:
	return {
		"duration_ms": art.duration_ms,
		"token_count": len(art.tokens),
		"diagnostic_count": len(art.diagnostics),
		"has_errors": art.has_errors,
		"diagnostics": _diagnostics_json(art.diagnostics),
		"tokens": _tokens_json(art.tokens),
		"ast": _to_json(art.statements),
		"resolved_locals": len(art.locals),
	}


def _runtime_error_json(issue: RuntimeIssue | None) -> Dict[str, Any] | None:
	if issue is None:
		return None
	return {"message": issue.message, "line": issue.line, "formatted": issue.format()}


def _run_payload(result: SessionResult) -> Dict[str, Any]:
	return {
		"output": result.output,
		"steps": result.run.steps if result.run is not None else 0,
		"runtime_error": _runtime_error_json(result.runtime_error),
		"exit_status": int(result.status),
	}


@app.get("/", response_class=HTMLResponse)
def index() -> HTMLResponse:
	index_path = STATIC_DIR / "index.html"
	if index_path.exists():
		return HTMLResponse(index_path.read_text(encoding="utf-8"))
	return HTMLResponse(
		"<h2>mini-lox API</h2><p>POST <code>/api/compile</code> or <code>/api/run</code> with JSON: <code>{\"source\": \"...\"}</code></p>"
	)


@app.get("/health")
def health() -> Dict[str, str]:
	return {"status": "ok"}


@app.post("/api/compile")
def compile_source(req: CompileRequest) -> Dict[str, Any]:
	engine = MiniLoxEngine()
	return _compile_payload(engine.compile(req.source))


@app.post("/api/run")
def run_source(req: RunRequest) -> Dict[str, Any]:
	session = LoxSession(max_steps=req.max_steps or DEFAULT_MAX_STEPS)
	result = session.run(req.source)
	payload = _compile_payload(result.compilation)
	payload["run"] = _run_payload(result)
	return payload


@app.post("/api/sessions")
def create_session(req: SessionCreateRequest | None = None) -> Dict[str, str]:
	max_steps = req.max_steps if req is not None else DEFAULT_MAX_STEPS
	session_id = uuid.uuid4().hex
	session = LoxSession(max_steps=max_steps or DEFAULT_MAX_STEPS)
	with _sessions_lock:
		_sessions[session_id] = session
		while len(_sessions) > MAX_SESSIONS:
			_sessions.popitem(last=False)
	return {"session_id": session_id}


def _get_session(session_id: str) -> LoxSession:
	with _sessions_lock:
		session = _sessions.get(session_id)
		if session is not None:
			_sessions.move_to_end(session_id)
	if session is None:
		raise HTTPException(status_code=404, detail=f"Unknown session '{session_id}'.")
	return session


@app.post("/api/sessions/{session_id}/eval")
def eval_in_session(session_id: str, req: SessionEvalRequest) -> Dict[str, Any]:
	result = _get_session(session_id).run(req.source)
	return {
		"diagnostics": _diagnostics_json(result.diagnostics),
		"run": _run_payload(result),
	}


@app.delete("/api/sessions/{session_id}")
def delete_session(session_id: str) -> Dict[str, bool]:
	with _sessions_lock:
		removed = _sessions.pop(session_id, None)
	if removed is None:
		raise HTTPException(status_code=404, detail=f"Unknown session '{session_id}'.")
	return {"deleted": True}
