from concurrent.futures import ThreadPoolExecutor

from fastapi.testclient import TestClient

from webapp.main import app

client = TestClient(app)


def test_health():
	response = client.get("/health")
	assert response.status_code == 200
	assert response.json() == {"status": "ok"}


def test_index_serves_html():
	response = client.get("/")
	assert response.status_code == 200
	assert "text/html" in response.headers["content-type"]


def test_compile_returns_tokens_and_ast():
	response = client.post("/api/compile", json={"source": "print 1;"})
	assert response.status_code == 200
	data = response.json()
	assert data["has_errors"] is False
	assert data["token_count"] == 4
	assert [t["kind"] for t in data["tokens"]] == ["PRINT", "NUMBER", "SEMI"]
	assert data["ast"][0]["_type"] == "PrintStatement"
	assert data["ast"][0]["value"]["_type"] == "LiteralExpression"


def test_compile_reports_diagnostics():
	data = client.post("/api/compile", json={"source": "var = 1;"}).json()
	assert data["has_errors"] is True
	assert data["diagnostic_count"] == 1
	diagnostic = data["diagnostics"][0]
	assert diagnostic["phase"] == "PARSE"
	assert diagnostic["formatted"] == "[line 1] Error at '=': Expected variable name."


def test_compile_rejects_missing_source():
	assert client.post("/api/compile", json={}).status_code == 422


def test_run_executes_program():
	data = client.post("/api/run", json={"source": "var x = 2; print x * 21;"}).json()
	assert data["run"]["output"] == "42\n"
	assert data["run"]["exit_status"] == 0
	assert data["run"]["runtime_error"] is None


def test_run_with_static_error_does_not_execute():
	data = client.post("/api/run", json={"source": 'print "x";\nprint ;'}).json()
	assert data["run"]["exit_status"] == 65
	assert data["run"]["output"] == ""
	assert data["run"]["steps"] == 0


def test_run_reports_runtime_error():
	data = client.post("/api/run", json={"source": "print 1;\nprint missing;"}).json()
	run = data["run"]
	assert run["exit_status"] == 70
	assert run["output"] == "1\n"
	assert run["runtime_error"]["message"] == "Undefined variable 'missing'."
	assert run["runtime_error"]["line"] == 2


def test_run_honours_step_limit():
	data = client.post("/api/run", json={"source": "while (true) {}", "max_steps": 25}).json()
	assert data["run"]["exit_status"] == 70
	assert data["run"]["runtime_error"]["message"] == "Step limit exceeded (possible infinite loop)."


def test_session_lifecycle():
	session_id = client.post("/api/sessions", json={}).json()["session_id"]

	first = client.post(f"/api/sessions/{session_id}/eval", json={"source": "var n = 5;"})
	assert first.status_code == 200
	assert first.json()["run"]["exit_status"] == 0

	second = client.post(f"/api/sessions/{session_id}/eval", json={"source": "print n + 1;"}).json()
	assert second["run"]["output"] == "6\n"
	assert second["diagnostics"] == []

	assert client.delete(f"/api/sessions/{session_id}").json() == {"deleted": True}
	gone = client.post(f"/api/sessions/{session_id}/eval", json={"source": "print n;"})
	assert gone.status_code == 404


def test_sessions_do_not_share_globals():
	a = client.post("/api/sessions", json={}).json()["session_id"]
	b = client.post("/api/sessions", json={}).json()["session_id"]
	client.post(f"/api/sessions/{a}/eval", json={"source": "var only_a = 1;"})
	data = client.post(f"/api/sessions/{b}/eval", json={"source": "print only_a;"}).json()
	assert data["run"]["exit_status"] == 70


def test_unknown_session_is_404():
	assert client.post("/api/sessions/nope/eval", json={"source": "print 1;"}).status_code == 404
	assert client.delete("/api/sessions/nope").status_code == 404


def test_concurrent_evals_on_one_session_do_not_interleave():
	session_id = client.post("/api/sessions", json={}).json()["session_id"]

	def evaluate(source):
		return client.post(f"/api/sessions/{session_id}/eval", json={"source": source}).json()["run"]

	with ThreadPoolExecutor(max_workers=8) as pool:
		long_run = pool.submit(evaluate, "for (var i = 0; i < 2000; i = i + 1) print i;")
		short_runs = [pool.submit(evaluate, 'print "s";') for _ in range(10)]
		shorts = [f.result() for f in short_runs]
		long_result = long_run.result()

	assert long_result["runtime_error"] is None
	assert long_result["output"] == "".join(f"{i}\n" for i in range(2000))
	assert all(run["output"] == "s\n" for run in shorts)


def test_oldest_sessions_are_evicted_past_the_cap(monkeypatch):
	monkeypatch.setattr("webapp.main.MAX_SESSIONS", 2)
	first = client.post("/api/sessions", json={}).json()["session_id"]
	second = client.post("/api/sessions", json={}).json()["session_id"]
	# Using a session makes it the most recently used one.
	client.post(f"/api/sessions/{first}/eval", json={"source": "var x = 1;"})
	third = client.post("/api/sessions", json={}).json()["session_id"]

	assert client.post(f"/api/sessions/{second}/eval", json={"source": "print 1;"}).status_code == 404
	assert client.post(f"/api/sessions/{first}/eval", json={"source": "print x;"}).json()["run"]["output"] == "1\n"
	assert client.post(f"/api/sessions/{third}/eval", json={"source": "print 2;"}).status_code == 200
