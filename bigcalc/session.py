import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from bigcalc.config import Settings
from bigcalc.parser import Ast, Parser
from bigcalc.runtime import DomainError, Evaluator
from bigcalc.symbols import SymbolTable
from bigcalc.tokenizer import Token, Tokenizer
from bigcalc.value import format_value

logger = logging.getLogger(__name__)


@dataclass
class EvaluationResult:
    value: Decimal
    warnings: list[DomainError] = field(default_factory=list)

    def __str__(self) -> str:
        return format_value(self.value)


class Session:
    """One interpreter session: tokenizer, parser and evaluator sharing a symbol table.

    Each `execute` call runs tokenize -> parse -> evaluate for a single line.
    Tokenizer, parser and evaluator errors propagate to the caller unchanged.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.symbols = SymbolTable(capacity=self.settings.symbol_table_capacity, load_factor=self.settings.load_factor)
        self.tokenizer = Tokenizer(self.settings)
        self.parser = Parser(self.settings)
        self.evaluator = Evaluator(self.symbols, self.settings)

    def tokenize(self, line: str) -> list[Token]:
        return self.tokenizer.tokenize(line)

    def parse(self, tokens: list[Token]) -> Ast:
        return self.parser.parse(tokens)

    def execute(self, line: str) -> EvaluationResult:
        logger.debug("Executing %r", line)
        ast = self.parse(self.tokenize(line))
        value = self.evaluator.evaluate(ast)
        return EvaluationResult(value=value, warnings=list(self.evaluator.warnings))

    def clear_variables(self) -> None:
        self.symbols.clear()

    def variables(self) -> list[tuple[str, str]]:
        return [(symbol.name, format_value(symbol.value)) for symbol in self.symbols]
