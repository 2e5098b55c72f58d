"""
Valutatore di espressioni aritmetiche
Progetto: Energy Billing (Gestionale Contratti Energia)

Le formule degli indici sono testo libero inserito dall'utente.
Dopo la sostituzione dei codici indice l'espressione deve contenere solo
cifre, punto, + - * /, parentesi e spazi (SAFE_EXPRESSION), e viene poi
interpretata da un parser a discesa ricorsiva su Decimal.
Nessun eval: il parser conosce solo le quattro operazioni.

Grammatica:
    expr    := term (('+' | '-') term)*
    term    := unary (('*' | '/') unary)*
    unary   := ('+' | '-') unary | primary
    primary := NUMBER | '(' expr ')'
"""

import re
from decimal import Decimal, InvalidOperation, DivisionByZero

SAFE_EXPRESSION = re.compile(r"^[0-9.+\-*/()\s]+$")

_TOKEN = re.compile(r"\s*(?:(\d+\.?\d*|\.\d+)|(.))")

# Livelli massimi di parentesi e segni unari annidati
MAX_NESTING = 100


class ExpressionError(ValueError):
    """Espressione non valida, non sicura o non calcolabile."""


def is_safe(expression: str) -> bool:
    return bool(SAFE_EXPRESSION.match(expression))


def _tokenize(expression: str) -> list[str]:
    tokens = []
    for number, symbol in _TOKEN.findall(expression):
        if number:
            tokens.append(number)
        elif symbol.strip():
            tokens.append(symbol)
    return tokens


class _Parser:
    def __init__(self, tokens: list[str]) -> None:
        self.tokens = tokens
        self.pos = 0
        self.depth = 0

    def peek(self):
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> str:
        token = self.peek()
        if token is None:
            raise ExpressionError("Fine espressione inattesa")
        self.pos += 1
        return token

    def parse(self) -> Decimal:
        value = self.expr()
        if self.peek() is not None:
            raise ExpressionError(f"Simbolo inatteso: {self.peek()!r}")
        return value

    def expr(self) -> Decimal:
        value = self.term()
        while self.peek() in ("+", "-"):
            if self.take() == "+":
                value = value + self.term()
            else:
                value = value - self.term()
        return value

    def term(self) -> Decimal:
        value = self.unary()
        while self.peek() in ("*", "/"):
            if self.take() == "*":
                value = value * self.unary()
            else:
                divisor = self.unary()
                if divisor == 0:
                    raise ExpressionError("Divisione per zero")
                value = value / divisor
        return value

    def nested(self, parse):
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise ExpressionError("Espressione annidata troppo in profondità")
        try:
            return parse()
        finally:
            self.depth -= 1

    def unary(self) -> Decimal:
        if self.peek() == "-":
            self.take()
            return -self.nested(self.unary)
        if self.peek() == "+":
            self.take()
            return self.nested(self.unary)
        return self.primary()

    def primary(self) -> Decimal:
        token = self.take()
        if token == "(":
            value = self.nested(self.expr)
            if self.take() != ")":
                raise ExpressionError("Parentesi non chiusa")
            return value
        if token[0].isdigit() or token[0] == ".":
            return Decimal(token)
        raise ExpressionError(f"Simbolo inatteso: {token!r}")


def evaluate(expression: str) -> Decimal:
    """
    Valuta un'espressione aritmetica già sostituita.

    Raises:
        ExpressionError: caratteri non ammessi, sintassi errata,
            divisione per zero o risultato non numerico.
    """
    if not is_safe(expression):
        raise ExpressionError("L'espressione contiene caratteri non ammessi")
    try:
        result = _Parser(_tokenize(expression)).parse()
    except (InvalidOperation, DivisionByZero) as e:
        raise ExpressionError(str(e)) from e
    if result.is_nan() or result.is_infinite():
        raise ExpressionError("Risultato non numerico")
    return result
