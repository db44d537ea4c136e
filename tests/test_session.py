import io
import logging

import pytest

from bigcalc.commands import CLEAR_SCREEN, Command, parse_command, run_command
from bigcalc.config import Settings
from bigcalc.parser import ParserError
from bigcalc.runtime import EvaluationError
from bigcalc.session import Session
from bigcalc.tokenizer import TokenizerError
from repl import main, run_repl


def test_session_keeps_variables_between_lines() -> None:
    session = Session()
    assert session.execute("x = 5").value == 5
    assert session.execute("x + 3").value == 8
    assert session.execute("last").value == 8
    assert str(session.execute("x / 2")) == "2.500000000"


def test_session_reports_domain_errors_as_warnings() -> None:
    session = Session()
    result = session.execute("1/0")
    assert result.value.is_nan()
    assert [w.errmsg for w in result.warnings] == ["Division by zero"]
    assert str(result) == "NaN"
    assert session.symbols.get("last").value.is_nan()


@pytest.mark.parametrize(
    "line, error_type",
    [
        pytest.param("1 + $", TokenizerError),
        pytest.param("1 +", ParserError),
        pytest.param("", ParserError),
    ],
)
def test_session_errors_leave_state_untouched(line: str, error_type: type) -> None:
    session = Session()
    session.execute("x = 1")
    with pytest.raises(error_type):
        session.execute(line)
    assert session.symbols.get("last").value == 1
    assert session.execute("x").value == 1


def test_value_pool_exhaustion_aborts_statement() -> None:
    session = Session(Settings(value_pool_size=4, value_pool_limit=4))
    assert session.execute("1 + 2").value == 3
    with pytest.raises(EvaluationError, match="Value pool exhausted"):
        session.execute("1 + 2 + 3")
    assert session.execute("last").value == 3


def test_custom_precision() -> None:
    assert Session().execute("2^300").value != 2**300
    session = Session(Settings(precision=100))
    assert session.execute("2^300").value == 2**300
    assert session.execute("2^20 + 1").value == 1048577


def test_variables_listing_and_clearing() -> None:
    session = Session()
    session.execute("a = 1")
    session.execute("b = 2")
    assert sorted(session.variables()) == [("a", "1.000000000"), ("b", "2.000000000"), ("last", "2.000000000")]
    session.clear_variables()
    assert session.variables() == []
    assert session.execute("a").value.is_nan()


@pytest.mark.parametrize(
    "line, expected_command",
    [
        pytest.param("-exit", Command.EXIT),
        pytest.param("  -help  ", Command.HELP),
        pytest.param("-clear", Command.CLEAR),
        pytest.param("-clear-vars", Command.CLEAR_VARS),
        pytest.param("-show now", Command.SHOW),
        pytest.param("-info", Command.INFO),
        pytest.param("-5 + 2", None),
        pytest.param("-exits", None),
        pytest.param("exit", None),
        pytest.param("", None),
    ],
)
def test_parse_command(line: str, expected_command: Command | None) -> None:
    assert parse_command(line) is expected_command


def test_run_command() -> None:
    session = Session()
    session.execute("x = 2")
    assert "-- x : 2.000000000" in run_command(Command.SHOW, session).splitlines()
    assert "Precision: 78 digits" in run_command(Command.INFO, session)
    assert "-clear-vars" in run_command(Command.HELP, session)
    assert run_command(Command.CLEAR, session) == CLEAR_SCREEN
    assert run_command(Command.CLEAR_VARS, session) == "Deleted 2 variable(s)"
    assert len(session.symbols) == 0


def test_repl_loop() -> None:
    out = io.StringIO()
    run_repl(
        Session(),
        ["x = 5", "", "x + 3", "1 / 0", "1 + * 2", "-show", "-clear-vars", "x", "-exit", "99"],
        out,
    )
    lines = out.getvalue().splitlines()
    assert lines[0] == "Result: 5.000000000"
    assert lines[1] == "Result: 8.000000000"
    assert lines[2] == "Warning: Division by zero"
    assert lines[3] == "Result: NaN"
    assert lines[4].startswith("Parser error:")
    assert "-- x : 5.000000000" in lines
    assert "Deleted 2 variable(s)" in lines
    assert lines[-2] == "Warning: Undefined variable: 'x'"
    assert lines[-1] == "Result: NaN"


def test_repl_debug_output() -> None:
    out = io.StringIO()
    run_repl(Session(), ["1 + 2"], out, debug=True)
    text = out.getvalue()
    assert "Tokens (3):" in text
    assert "Abstract Syntax Tree:" in text
    assert text.endswith("Result: 3.000000000\n")


def test_main_with_expressions(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["-e", "r = 2", "-e", "r ^ 10", "--log-level", "CRITICAL"]) == 0
    assert capsys.readouterr().out.splitlines() == ["Result: 2.000000000", "Result: 1024.000000"]


def test_main_rejects_bad_precision() -> None:
    with pytest.raises(SystemExit):
        main(["--precision", "0", "-e", "1"])


def test_main_rejects_precision_below_256_bits() -> None:
    with pytest.raises(SystemExit):
        main(["--precision", "77", "-e", "1"])


def test_domain_errors_are_printed_once(caplog: pytest.LogCaptureFixture) -> None:
    out = io.StringIO()
    with caplog.at_level(logging.WARNING):
        run_repl(Session(), ["1 / 0"], out)
    assert out.getvalue().splitlines() == ["Warning: Division by zero", "Result: NaN"]
    assert not caplog.records
