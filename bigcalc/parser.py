import logging
from dataclasses import dataclass
from typing import Optional

from bigcalc.config import Settings
from bigcalc.tokenizer import Token, TokenType, untokenize
from bigcalc.utils import CalcError, caret_line

logger = logging.getLogger(__name__)


@dataclass
class ParserError(CalcError):
    errmsg: str
    tokens: list[Token]
    error_token_idx: int

    def __str__(self) -> str:
        parsed_tokens = self.tokens[: self.error_token_idx]
        filler_width = len(untokenize(parsed_tokens)) + (1 if parsed_tokens else 0)
        return "\n".join([f"Parser error: {self.errmsg}", untokenize(self.tokens), caret_line(filler_width)])


@dataclass
class ASTNode:
    token: Token
    left: Optional[int] = None
    right: Optional[int] = None


class NodeArena:
    """Index-addressed storage for the nodes of one statement.

    Slots are reused across statements: `reset` rewinds the cursor and grows the
    slot list when a longer statement comes in, it never shrinks.
    """

    def __init__(self, size: int) -> None:
        self.nodes: list[Optional[ASTNode]] = [None] * size
        self.count = 0

    @property
    def size(self) -> int:
        return len(self.nodes)

    def reset(self, required_size: int) -> None:
        self.count = 0
        if self.size < required_size:
            new_size = max(required_size, self.size * 2)
            self.nodes.extend([None] * (new_size - self.size))
            logger.debug("AST arena resized to %d", new_size)

    def alloc(self, token: Token, left: Optional[int] = None, right: Optional[int] = None) -> Optional[int]:
        if self.count >= self.size:
            return None
        idx = self.count
        self.nodes[idx] = ASTNode(token=token, left=left, right=right)
        self.count += 1
        return idx

    def __getitem__(self, idx: int) -> ASTNode:
        node = self.nodes[idx] if 0 <= idx < self.count else None
        if node is None:
            raise IndexError(f"No AST node at index {idx}")
        return node


@dataclass
class Ast:
    arena: NodeArena
    root: int

    @property
    def root_node(self) -> ASTNode:
        return self.arena[self.root]

    def node(self, idx: int) -> ASTNode:
        return self.arena[idx]

    def to_str(self, idx: Optional[int] = None) -> str:
        """Fully parenthesized form, e.g. (x = (2 + (3 * 4)))"""
        node = self.arena[self.root if idx is None else idx]
        if node.token.type is TokenType.SQRT:
            return f"sqrt({self.to_str(node.left)})"
        if node.left is None and node.right is None:
            return node.token.text
        return f"({self.to_str(node.left)} {node.token.text} {self.to_str(node.right)})"

    def dump(self) -> str:
        lines = ["Abstract Syntax Tree:"]
        for i in range(self.arena.count):
            node = self.arena[i]
            left = -1 if node.left is None else node.left
            right = -1 if node.right is None else node.right
            lines.append(f"Node {i:3d}: {str(node.token.type):<10} [{node.token.text:<15}] left:{left:<3d} right:{right:<3d}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.to_str()


_EXPRESSION_OPERATORS = (TokenType.ADD, TokenType.SUB)
_TERM_OPERATORS = (TokenType.MUL, TokenType.DIV, TokenType.MOD)


class Parser:
    """Recursive descent parser, one grammar level per precedence tier:

        statement  := VAR '=' expression | expression
        expression := term (('+' | '-') term)*
        term       := power (('*' | '/' | '%') power)*
        power      := primary ('^' power)?
        primary    := NUM | VAR | '(' expression ')' | 'sqrt' '(' expression ')'

    The returned Ast points into the parser's arena and is valid until the next `parse` call.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.arena = NodeArena(self.settings.token_buffer_size)
        self.tokens: list[Token] = []
        self.i = 0

    def parse(self, tokens: list[Token]) -> Ast:
        self.tokens = tokens
        self.i = 0
        self.arena.reset(len(tokens) + 1)

        if not tokens:
            raise ParserError("Empty expression", tokens=list(tokens), error_token_idx=0)
        try:
            root = self._statement()
        except RecursionError:
            raise ParserError("Expression nested too deeply", tokens=list(tokens), error_token_idx=self.i) from None
        if self.i < len(tokens):
            raise ParserError(f"Unexpected token {self.tokens[self.i].type}", tokens=list(tokens), error_token_idx=self.i)

        logger.debug("Parsed %d tokens into %d nodes", len(tokens), self.arena.count)
        return Ast(arena=self.arena, root=root)

    def _peek(self, offset: int = 0) -> Optional[Token]:
        idx = self.i + offset
        return self.tokens[idx] if idx < len(self.tokens) else None

    def _match(self, *types: TokenType) -> bool:
        token = self._peek()
        return token is not None and token.type in types

    def _consume(self) -> Token:
        token = self.tokens[self.i]
        self.i += 1
        return token

    def _expect(self, token_type: TokenType, what: str) -> Token:
        if not self._match(token_type):
            found = self._peek()
            raise ParserError(
                f"{what}: expected {token_type}, found {found.type if found else 'end of input'}",
                tokens=list(self.tokens),
                error_token_idx=self.i,
            )
        return self._consume()

    def _node(self, token: Token, left: Optional[int] = None, right: Optional[int] = None) -> int:
        idx = self.arena.alloc(token, left, right)
        if idx is None:
            raise ParserError(
                f"AST arena exhausted ({self.arena.size} nodes)", tokens=list(self.tokens), error_token_idx=self.i
            )
        return idx

    def _statement(self) -> int:
        first, second = self._peek(), self._peek(1)
        if first is not None and first.type is TokenType.VAR and second is not None and second.type is TokenType.ASSIGN:
            var = self._node(self._consume())
            op = self._consume()
            value = self._expression()
            return self._node(op, var, value)
        return self._expression()

    def _expression(self) -> int:
        left = self._term()
        while self._match(*_EXPRESSION_OPERATORS):
            op = self._consume()
            right = self._term()
            left = self._node(op, left, right)
        return left

    def _term(self) -> int:
        left = self._power()
        while self._match(*_TERM_OPERATORS):
            op = self._consume()
            right = self._power()
            left = self._node(op, left, right)
        return left

    def _power(self) -> int:
        left = self._primary()
        if self._match(TokenType.POW):
            op = self._consume()
            # right recursion makes '^' right-associative
            right = self._power()
            return self._node(op, left, right)
        return left

    def _primary(self) -> int:
        token = self._peek()
        if token is None:
            raise ParserError("Operand expected, found end of input", tokens=list(self.tokens), error_token_idx=self.i)

        if token.type in (TokenType.NUM, TokenType.VAR):
            return self._node(self._consume())
        elif token.type is TokenType.LPAREN:
            self._consume()
            expr = self._expression()
            self._expect(TokenType.RPAREN, "Unclosed bracket")
            return expr
        elif token.type is TokenType.SQRT:
            sqrt_token = self._consume()
            self._expect(TokenType.LPAREN, "Missing argument of sqrt")
            arg = self._expression()
            self._expect(TokenType.RPAREN, "Unclosed bracket in sqrt")
            return self._node(sqrt_token, left=arg)
        else:
            raise ParserError(f"Operand expected, found {token.type}", tokens=list(self.tokens), error_token_idx=self.i)


def parse(tokens: list[Token], settings: Optional[Settings] = None) -> Ast:
    return Parser(settings).parse(tokens)
