from concurrent.futures import ThreadPoolExecutor

from minilox.diagnostics import Phase
from minilox.engine import ExitStatus, LoxSession, MiniLoxEngine, run_source


def test_exit_status_values():
	assert int(ExitStatus.OK) == 0
	assert int(ExitStatus.STATIC_ERROR) == 65
	assert int(ExitStatus.NO_INPUT) == 66
	assert int(ExitStatus.RUNTIME_ERROR) == 70


def test_compile_collects_tokens_statements_and_locals():
	art = MiniLoxEngine().compile("{ var a = 1; print a; }")
	assert art.has_errors is False
	assert art.diagnostics == []
	assert len(art.statements) == 1
	assert len(art.locals) == 1
	assert art.duration_ms >= 0


def test_lex_and_parse_errors_are_reported_together():
	art = MiniLoxEngine().compile("var x = @;\nprint ;")
	phases = [d.phase for d in art.diagnostics]
	assert Phase.LEX in phases
	assert Phase.PARSE in phases
	assert art.has_errors


def test_resolver_is_skipped_after_syntax_errors():
	art = MiniLoxEngine().compile("print ;\nreturn 1;")
	assert [d.phase for d in art.diagnostics] == [Phase.PARSE]


def test_diagnostic_formats():
	parse_error = run_source("print ;").diagnostics[0]
	assert parse_error.format() == "[line 1] Error at ';': Expected expression."
	lex_error = run_source("@").diagnostics[0]
	assert lex_error.format() == "[line 1] Error: Unexpected character '@'."


def test_runtime_error_format_includes_line():
	result = run_source('print 1;\nprint -"a";')
	assert result.runtime_error.format() == "Operand must be a number.\n[line 2]"
	assert result.output == "1\n"


def test_session_keeps_definitions_between_chunks():
	session = LoxSession()
	assert session.run("var a = 1;").status == ExitStatus.OK
	assert session.run("fun bump() { a = a + 1; return a; }").status == ExitStatus.OK
	assert session.run("print bump();").output == "2\n"
	assert session.run("print a;").output == "2\n"


def test_closures_survive_across_chunks():
	session = LoxSession()
	session.run("fun make() { var n = 0; fun inc() { n = n + 1; return n; } return inc; }")
	session.run("var counter = make();")
	session.run("counter();")
	assert session.run("print counter();").output == "2\n"


def test_forward_reference_resolves_in_later_chunk():
	session = LoxSession()
	session.run("fun f() { return g(); }")
	assert session.run("f();").runtime_error.message == "Undefined variable 'g'."
	session.run("fun g() { return 42; }")
	assert session.run("print f();").output == "42\n"


def test_session_recovers_after_errors():
	session = LoxSession()
	session.run("var a = 1;")
	assert session.run("print missing;").status == ExitStatus.RUNTIME_ERROR
	assert session.run("print ;").status == ExitStatus.STATIC_ERROR
	assert session.run("{ var b = 2; print a + b; }").output == "3\n"


def test_runtime_error_inside_block_leaves_globals_active():
	session = LoxSession()
	session.run("var a = \"global\";")
	session.run("{ var a = \"block\"; print nope; }")
	assert session.run("print a;").output == "global\n"


def test_shared_session_runs_concurrent_chunks_one_at_a_time():
	session = LoxSession()
	with ThreadPoolExecutor(max_workers=8) as pool:
		long_run = pool.submit(session.run, "for (var i = 0; i < 3000; i = i + 1) print i;")
		short_runs = [pool.submit(session.run, 'print "s";') for _ in range(20)]
		results = [f.result() for f in short_runs]
		long_result = long_run.result()

	assert long_result.runtime_error is None
	assert long_result.output == "".join(f"{i}\n" for i in range(3000))
	for result in results:
		assert result.runtime_error is None
		assert result.output == "s\n"


def test_sessions_are_independent():
	first = LoxSession()
	second = LoxSession()
	first.run("var shared = 1;")
	assert second.run("print shared;").runtime_error.message == "Undefined variable 'shared'."


def test_on_print_receives_each_line():
	lines = []
	session = LoxSession(on_print=lines.append)
	result = session.run('print 1; print "two"; print nil;')
	assert lines == ["1", "two", "nil"]
	assert result.output == "1\ntwo\nnil\n"


def test_output_resets_per_chunk():
	session = LoxSession()
	session.run("print 1;")
	assert session.run("print 2;").output == "2\n"


def test_step_count_is_reported():
	result = run_source("var i = 0; while (i < 3) i = i + 1;")
	assert result.status == ExitStatus.OK
	assert result.run.steps > 3


def test_max_steps_applies_per_run():
	result = run_source("for (var i = 0; i < 1000; i = i + 1) {}", max_steps=50)
	assert result.runtime_error.message == "Step limit exceeded (possible infinite loop)."
	assert result.runtime_error.line is None
