import decimal
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from bigcalc.config import Settings
from bigcalc.parser import Ast, ASTNode
from bigcalc.symbols import SymbolTable
from bigcalc.tokenizer import Token, TokenType
from bigcalc.utils import CalcError
from bigcalc.value import NAN, ValuePool, is_negative, parse_numeral, power, truncated_remainder

logger = logging.getLogger(__name__)

LAST_RESULT_NAME = "last"


@dataclass
class EvaluationError(CalcError):
    errmsg: str

    def __str__(self) -> str:
        return f"Evaluation error: {self.errmsg}"


@dataclass
class DomainError:
    """Non-fatal evaluation problem, the affected subtree evaluates to NaN"""

    errmsg: str
    token: Token

    def __str__(self) -> str:
        return f"Warning: {self.errmsg}"


BinaryOperationImpl = Callable[[decimal.Context, Decimal, Decimal], Decimal]

binary_impls: dict[TokenType, BinaryOperationImpl] = {
    TokenType.ADD: lambda ctx, a, b: ctx.add(a, b),
    TokenType.SUB: lambda ctx, a, b: ctx.subtract(a, b),
    TokenType.MUL: lambda ctx, a, b: ctx.multiply(a, b),
    TokenType.DIV: lambda ctx, a, b: ctx.divide(a, b),
    TokenType.MOD: truncated_remainder,
    TokenType.POW: power,
}

_ZERO_DIVISOR_MESSAGES = {
    TokenType.DIV: "Division by zero",
    TokenType.MOD: "Modulo by zero",
}


class Evaluator:
    """Tree-walking evaluator over one session's symbol table.

    Every visited node takes one slot of the value pool; the pool is rewound at the
    start of each statement. Domain errors (division by zero, undefined variables
    and the like) are recorded in `warnings` and turn the subtree into NaN.
    """

    def __init__(self, symbols: Optional[SymbolTable] = None, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.symbols = symbols if symbols is not None else SymbolTable(
            capacity=self.settings.symbol_table_capacity, load_factor=self.settings.load_factor
        )
        self.ctx = self.settings.make_context()
        self.pool = ValuePool(self.settings.value_pool_size, self.settings.value_pool_limit)
        self.warnings: list[DomainError] = []

    def evaluate(self, ast: Ast) -> Decimal:
        self.pool.reset()
        self.warnings = []
        try:
            slot = self._evaluate_node(ast, ast.root)
            result = self.pool[slot]
            self.symbols.insert(LAST_RESULT_NAME, result)
        except RecursionError:
            raise EvaluationError("Expression nested too deeply") from None
        except MemoryError:
            raise EvaluationError("Out of memory while evaluating") from None
        logger.debug("Evaluated %s = %s using %d pool slots", ast, result, self.pool.count)
        return result

    def _report(self, errmsg: str, token: Token) -> Decimal:
        warning = DomainError(errmsg=errmsg, token=token)
        logger.debug("Domain error: %s", errmsg)
        self.warnings.append(warning)
        return NAN

    @staticmethod
    def _node(ast: Ast, idx: int) -> ASTNode:
        try:
            return ast.node(idx)
        except IndexError:
            raise EvaluationError(f"Corrupted AST: dangling node index {idx}") from None

    def _child(self, ast: Ast, idx: Optional[int], node: ASTNode, side: str) -> Decimal:
        if idx is None:
            raise EvaluationError(f"Corrupted AST: {node.token.type} node has no {side} operand")
        return self.pool[self._evaluate_node(ast, idx)]

    def _evaluate_node(self, ast: Ast, idx: int) -> int:
        node = self._node(ast, idx)

        slot = self.pool.acquire()
        if slot is None:
            raise EvaluationError(f"Value pool exhausted ({self.pool.limit} slots)")

        token = node.token
        if token.type is TokenType.NUM:
            value = parse_numeral(self.ctx, token.text)
            if value is None:
                value = self._report(f"Malformed number: {token.text!r}", token)
        elif token.type is TokenType.VAR:
            symbol = self.symbols.get(token.lexeme)
            if symbol is None:
                value = self._report(f"Undefined variable: {token.lexeme!r}", token)
            else:
                value = symbol.value
        elif token.type is TokenType.ASSIGN:
            target = self._node(ast, node.left) if node.left is not None else None
            if target is None or target.token.type is not TokenType.VAR:
                raise EvaluationError("Assigning only works for variables")
            value = self._child(ast, node.right, node, "right")
            value = self.symbols.insert(target.token.lexeme, value).value
        elif token.type is TokenType.SQRT:
            arg = self._child(ast, node.left, node, "left")
            if is_negative(arg):
                value = self._report("Square root of negative number", token)
            else:
                value = self.ctx.sqrt(arg)
        elif token.type in binary_impls:
            left = self._child(ast, node.left, node, "left")
            right = self._child(ast, node.right, node, "right")
            if token.type in _ZERO_DIVISOR_MESSAGES and right.is_zero():
                value = self._report(_ZERO_DIVISOR_MESSAGES[token.type], token)
            else:
                value = binary_impls[token.type](self.ctx, left, right)
        else:
            raise EvaluationError(f"Unexpected token in AST: {token.type}")

        self.pool[slot] = value
        return slot


def evaluate(ast: Ast, symbols: Optional[SymbolTable] = None, settings: Optional[Settings] = None) -> Decimal:
    return Evaluator(symbols, settings).evaluate(ast)
