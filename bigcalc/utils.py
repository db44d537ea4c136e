import enum


class PrintableEnum(enum.Enum):
    def __str__(self) -> str:
        return self.name

    __repr__ = __str__


class CalcError(Exception):
    """Base for every error that aborts the current statement"""


def caret_line(prefix_width: int) -> str:
    return " " * prefix_width + "^"
