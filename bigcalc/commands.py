import enum
import logging
from typing import Optional

from bigcalc.session import Session
from bigcalc.utils import PrintableEnum

logger = logging.getLogger(__name__)

VERSION = "1.0"

CLEAR_SCREEN = "\033[2J\033[H"

HELP_TEXT = "\n".join(
    [
        "Type a math expression to get its value, or 'name = expression' to store a variable.",
        "Operators: + - * / % ^ and sqrt(...); the last result is kept in 'last'.",
        "Commands:",
        "  -exit       : leave the calculator",
        "  -clear      : clear the terminal",
        "  -clear-vars : delete all variables",
        "  -help       : show this help",
        "  -show       : list the current variables",
        "  -info       : information about the calculator",
    ]
)


class Command(PrintableEnum):
    EXIT = enum.auto()
    CLEAR = enum.auto()
    HELP = enum.auto()
    SHOW = enum.auto()
    CLEAR_VARS = enum.auto()
    INFO = enum.auto()


COMMANDS = {
    "-exit": Command.EXIT,
    "-clear": Command.CLEAR,
    "-help": Command.HELP,
    "-show": Command.SHOW,
    "-clear-vars": Command.CLEAR_VARS,
    "-info": Command.INFO,
}


def parse_command(line: str) -> Optional[Command]:
    """Command named by the first word of the line, None if the line is an expression"""
    words = line.split()
    if not words:
        return None
    return COMMANDS.get(words[0])


def run_command(command: Command, session: Session) -> str:
    logger.debug("Running command %s", command)
    if command is Command.EXIT:
        return ""
    elif command is Command.CLEAR:
        return CLEAR_SCREEN
    elif command is Command.HELP:
        return HELP_TEXT
    elif command is Command.SHOW:
        lines = ["=== Variables ==="]
        lines.extend(f"-- {name} : {value}" for name, value in session.variables())
        return "\n".join(lines)
    elif command is Command.CLEAR_VARS:
        count = len(session.symbols)
        session.clear_variables()
        return f"Deleted {count} variable(s)"
    elif command is Command.INFO:
        settings = session.settings
        return "\n".join(
            [
                "=== Arbitrary-precision calculator ===",
                f"Version: {VERSION}",
                f"Precision: {settings.precision} digits (~{settings.precision_bits} bits)",
                "Rounding: half-even",
                "Features: variables, arithmetic, powers, square roots",
            ]
        )
    else:
        raise ValueError(f"Unexpected command: {command}")
