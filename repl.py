import argparse
import logging
import sys
from typing import Iterable, Optional, TextIO

from bigcalc.commands import Command, parse_command, run_command
from bigcalc.config import DEFAULT_PRECISION, Settings
from bigcalc.parser import ParserError
from bigcalc.runtime import EvaluationError
from bigcalc.session import Session
from bigcalc.tokenizer import TokenizerError, format_tokens
from bigcalc.value import format_value

BANNER = "\n".join(
    [
        "Arbitrary-precision calculator. Here you can:",
        "1- Get the value of a math expression.",
        "2- Create variables with numeric values.",
        "Type -help for the list of commands.",
    ]
)


def run_line(session: Session, line: str, out: TextIO, debug: bool = False) -> bool:
    """Handles one input line, returns False when the session should end"""
    line = line.strip()
    if not line:
        return True

    command = parse_command(line)
    if command is not None:
        if command is Command.EXIT:
            return False
        print(run_command(command, session), file=out)
        return True

    try:
        tokens = session.tokenize(line)
        if debug:
            print(format_tokens(tokens), file=out)
        ast = session.parse(tokens)
        if debug:
            print(ast.dump(), file=out)
        value = session.evaluator.evaluate(ast)
    except (TokenizerError, ParserError, EvaluationError) as e:
        print(e, file=out)
        return True

    for warning in session.evaluator.warnings:
        print(warning, file=out)
    print(f"Result: {format_value(value)}", file=out)
    return True


def run_repl(session: Session, lines: Iterable[str], out: TextIO, debug: bool = False) -> None:
    for line in lines:
        if not run_line(session, line, out, debug=debug):
            break


def _input_lines() -> Iterable[str]:
    while True:
        try:
            yield input(">> ")
        except EOFError:
            return


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="bigcalc", description="Arbitrary-precision expression calculator")
    parser.add_argument(
        "-e",
        "--expr",
        action="append",
        help="Evaluate the expression and exit (may be repeated, variables are shared)",
    )
    parser.add_argument(
        "--precision",
        type=int,
        default=DEFAULT_PRECISION,
        help=f"Working precision in significant decimal digits, at least {DEFAULT_PRECISION} (default: {DEFAULT_PRECISION})",
    )
    parser.add_argument("--debug", action="store_true", help="Print tokens and the syntax tree of every line")
    parser.add_argument(
        "--log-level",
        default="ERROR",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level, format="[%(levelname)s] [%(name)s] %(message)s")

    try:
        settings = Settings(precision=args.precision)
    except ValueError as e:
        parser.error(str(e))
    session = Session(settings)

    if args.expr:
        run_repl(session, args.expr, sys.stdout, debug=args.debug)
        return 0

    print(BANNER)
    run_repl(session, _input_lines(), sys.stdout, debug=args.debug)
    return 0


if __name__ == "__main__":
    sys.exit(main())
