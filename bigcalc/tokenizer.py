import enum
import logging
from dataclasses import dataclass
from typing import Optional

from bigcalc.config import Settings
from bigcalc.utils import CalcError, PrintableEnum, caret_line

logger = logging.getLogger(__name__)


@dataclass
class TokenizerError(CalcError):
    errmsg: str
    code: str
    error_char_idx: int

    def __str__(self) -> str:
        print_start_idx = max(0, self.error_char_idx - 10)
        print_ellipsis_pre = print_start_idx > 0
        print_end_idx = min(len(self.code), self.error_char_idx + 10)
        print_ellipsis_post = print_end_idx < len(self.code)
        return "\n".join(
            [
                f"[Tokenizer error] {self.errmsg}",
                (
                    ("..." if print_ellipsis_pre else "")
                    + f"{self.code[print_start_idx:print_end_idx]}"
                    + ("..." if print_ellipsis_post else "")
                ),
                caret_line(self.error_char_idx - print_start_idx + (3 if print_ellipsis_pre else 0)),
            ]
        )


class TokenType(PrintableEnum):
    NUM = enum.auto()
    VAR = enum.auto()
    ASSIGN = enum.auto()
    ADD = enum.auto()
    SUB = enum.auto()
    DIV = enum.auto()
    MOD = enum.auto()
    MUL = enum.auto()
    POW = enum.auto()
    SQRT = enum.auto()
    LPAREN = enum.auto()
    RPAREN = enum.auto()
    COMMA = enum.auto()
    LBRACKET = enum.auto()
    RBRACKET = enum.auto()
    INVALID = enum.auto()


@dataclass(frozen=True)
class Token:
    type: TokenType
    lexeme: str
    pos: int = 0
    negative: bool = False

    @property
    def text(self) -> str:
        return "-" + self.lexeme if self.negative else self.lexeme

    @property
    def span(self) -> tuple[int, int]:
        return self.pos, self.pos + len(self.lexeme)

    def __str__(self) -> str:
        return f"<{self.type}>{self.text}"


SINGLE_CHAR_TOKENS = {
    "=": TokenType.ASSIGN,
    "+": TokenType.ADD,
    "/": TokenType.DIV,
    "%": TokenType.MOD,
    "*": TokenType.MUL,
    "^": TokenType.POW,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ",": TokenType.COMMA,
}

DECIMAL_SEPARATORS = ".,"
SQRT_KEYWORD = "sqrt"

# a '-' after any of these is subtraction, anywhere else it starts a negative literal
_OPERAND_END_TYPES = (TokenType.NUM, TokenType.RPAREN, TokenType.VAR)


class Tokenizer:
    """Splits one input line into tokens.

    The token list is owned by the tokenizer and refilled on every call, so the
    result of a previous call is invalidated by the next one.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.tokens: list[Token] = []

    def tokenize(self, code: str) -> list[Token]:
        self.tokens.clear()
        try:
            self._scan(code)
        except TokenizerError:
            self.tokens.clear()
            raise
        logger.debug("Tokenized %r into %d tokens", code, len(self.tokens))
        return self.tokens

    def _scan(self, code: str) -> None:
        i = 0
        while i < len(code):
            char = code[i]
            if char.isspace():
                i += 1
            elif _is_digit(char):
                end_idx = self._number_end(code, i)
                self._add(TokenType.NUM, code, i, end_idx)
                i = end_idx
            elif char in self.settings.identifier_chars:
                end_idx = i + 1
                while end_idx < len(code) and code[end_idx] in self.settings.identifier_chars:
                    end_idx += 1
                token_type = TokenType.SQRT if code[i:end_idx] == SQRT_KEYWORD else TokenType.VAR
                self._add(token_type, code, i, end_idx)
                i = end_idx
            elif char == "-":
                i = self._minus(code, i)
            elif char in SINGLE_CHAR_TOKENS:
                self._add(SINGLE_CHAR_TOKENS[char], code, i, i + 1)
                i += 1
            else:
                raise TokenizerError(f"Unexpected character: {char!r}", code=code, error_char_idx=i)

    def _minus(self, code: str, i: int) -> int:
        prev = self.tokens[-1] if self.tokens else None
        if prev is not None and prev.type in _OPERAND_END_TYPES:
            self._add(TokenType.SUB, code, i, i + 1)
            return i + 1

        digits_idx = i + 1
        while digits_idx < len(code) and code[digits_idx].isspace():
            digits_idx += 1
        if digits_idx >= len(code) or not _is_digit(code[digits_idx]):
            raise TokenizerError("Unterminated negative number", code=code, error_char_idx=digits_idx)
        end_idx = self._number_end(code, digits_idx)
        self._add(TokenType.NUM, code, digits_idx, end_idx, negative=True)
        return end_idx

    def _number_end(self, code: str, i: int) -> int:
        end_idx = i + 1
        seen_separator = False
        while end_idx < len(code):
            if _is_digit(code[end_idx]):
                end_idx += 1
            elif not seen_separator and code[end_idx] in DECIMAL_SEPARATORS:
                seen_separator = True
                end_idx += 1
            else:
                break
        return end_idx

    def _add(self, token_type: TokenType, code: str, start_idx: int, end_idx: int, negative: bool = False) -> None:
        if end_idx - start_idx > self.settings.lexeme_len_limit:
            what = "Number" if token_type is TokenType.NUM else "Identifier"
            raise TokenizerError(
                f"{what} too long (max {self.settings.lexeme_len_limit} characters)",
                code=code,
                error_char_idx=start_idx,
            )
        token = Token(type=token_type, lexeme=code[start_idx:end_idx], pos=start_idx, negative=negative)
        logger.debug("Token %s at %d", token, start_idx)
        self.tokens.append(token)


def _is_digit(s: str) -> bool:
    return "0" <= s <= "9"


def tokenize(code: str, settings: Optional[Settings] = None) -> list[Token]:
    return list(Tokenizer(settings).tokenize(code))


def untokenize(tokens: list[Token]) -> str:
    return " ".join(t.text for t in tokens)


def format_tokens(tokens: list[Token]) -> str:
    lines = [f"Tokens ({len(tokens)}):"]
    for i, token in enumerate(tokens):
        flags = ", negative" if token.negative else ""
        lines.append(f"  {i:2d}: {str(token.type):<10} [{token.text}] (len: {len(token.lexeme)}{flags})")
    return "\n".join(lines)
