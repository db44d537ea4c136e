import decimal
import string
from dataclasses import dataclass

# 256 significand bits need ceil(256 * log10(2)) = 78 decimal digits
DEFAULT_PRECISION = 78

LEXEME_LEN_LIMIT = 255
IDENTIFIER_CHARS = frozenset(string.ascii_letters + "_")

TOKEN_BUFFER_SIZE = 128
VALUE_POOL_SIZE = 128
VALUE_POOL_LIMIT = 1 << 20

SYMBOL_TABLE_CAPACITY = 64
SYMBOL_TABLE_LOAD_FACTOR = 0.6


@dataclass(frozen=True)
class Settings:
    precision: int = DEFAULT_PRECISION
    lexeme_len_limit: int = LEXEME_LEN_LIMIT
    identifier_chars: frozenset[str] = IDENTIFIER_CHARS
    token_buffer_size: int = TOKEN_BUFFER_SIZE
    value_pool_size: int = VALUE_POOL_SIZE
    value_pool_limit: int = VALUE_POOL_LIMIT
    symbol_table_capacity: int = SYMBOL_TABLE_CAPACITY
    load_factor: float = SYMBOL_TABLE_LOAD_FACTOR

    def __post_init__(self) -> None:
        if self.precision < DEFAULT_PRECISION:
            raise ValueError(f"Precision must be at least {DEFAULT_PRECISION} digits (256 bits), got {self.precision}")
        if self.symbol_table_capacity < 1:
            raise ValueError(f"Symbol table capacity must be positive, got {self.symbol_table_capacity}")
        if not 0.0 < self.load_factor <= 1.0:
            raise ValueError(f"Load factor must be in (0, 1], got {self.load_factor}")
        if self.value_pool_size < 1 or self.value_pool_limit < self.value_pool_size:
            raise ValueError("Value pool limit must be at least the initial pool size")

    @property
    def precision_bits(self) -> int:
        # inverse of the digits estimate above, rounded down
        return int(self.precision / 0.30103)

    def make_context(self) -> decimal.Context:
        """Working context of a session: fixed precision, round-half-even, widest exponent range.

        Every trap is off, so invalid operations, overflow and division by zero yield
        NaN/Infinity values instead of raising.
        """
        return decimal.Context(
            prec=self.precision,
            rounding=decimal.ROUND_HALF_EVEN,
            Emax=decimal.MAX_EMAX,
            Emin=decimal.MIN_EMIN,
            capitals=1,
            clamp=0,
            flags=[],
            traps=[],
        )
