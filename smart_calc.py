# smart_calc.py

"""
Expression engine for the smart calculator.

Evaluates integer arithmetic expressions with named variables. The pipeline is:
normalize the text (drop whitespace, collapse sign runs), flatten parentheses by
evaluating innermost groups and substituting their results back into the text,
then convert the flat expression to postfix and evaluate it on a value stack.

Integers are unbounded. Division truncates toward zero and '^' takes a
non-negative exponent. The engine never mutates state and performs no I/O;
variables are supplied as a read-only mapping from name to decimal string.
"""

import logging
import sys
from enum import Enum
from typing import Iterable, Iterator, List, Mapping, Tuple

logger = logging.getLogger(__name__)

# Decimal strings are the engine's value format, so int <-> str must work at
# any length (CPython 3.11+ limits it to 4300 digits by default).
if hasattr(sys, "set_int_max_str_digits"):
    sys.set_int_max_str_digits(0)

# Largest power result, in bits, that '^' will build.
MAX_POWER_BITS = 1 << 20


# ---------------------------
# Error Classes
# ---------------------------

class CalculatorError(Exception):
    """Base class for calculator errors."""
    pass

class EvalError(CalculatorError):
    """Raised when an expression cannot be evaluated."""
    message = "Invalid expression"

class UnknownVariableError(EvalError):
    """Raised when an identifier is missing from the variable lookup."""
    message = "Unknown variable"

    def __init__(self, name: str):
        super().__init__(f"Unknown variable: {name}")
        self.name = name

class DivisionByZeroError(EvalError):
    message = "Division by zero"

class MalformedExpressionError(EvalError):
    """Raised when the tokens do not reduce to exactly one value."""
    message = "Invalid expression"

class InvalidExponentError(EvalError):
    message = "Invalid exponent"


# ---------------------------
# Operators
# ---------------------------

def _truncating_div(a: int, b: int) -> int:
    if b == 0:
        raise DivisionByZeroError("Division by zero")
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient

def _power(a: int, b: int) -> int:
    if b < 0:
        raise InvalidExponentError(f"Negative exponent: {b}")
    if abs(a) > 1 and b * (abs(a).bit_length() - 1) > MAX_POWER_BITS:
        raise InvalidExponentError(f"Exponent too large: {b}")
    return a ** b


class Operator(Enum):
    """Binary operators keyed by symbol."""
    ADD = '+'
    SUB = '-'
    MUL = '*'
    DIV = '/'
    POW = '^'

    @property
    def priority(self) -> int:
        return _PRIORITIES[self]

    def apply(self, b: int, a: int) -> int:
        """
        Computes `a <op> b`. Arguments come in pop order: `b` is the right-hand
        operand (popped first), `a` the left-hand one.
        """
        if self is Operator.ADD:
            return a + b
        if self is Operator.SUB:
            return a - b
        if self is Operator.MUL:
            return a * b
        if self is Operator.DIV:
            return _truncating_div(a, b)
        return _power(a, b)

    @classmethod
    def is_operator(cls, token: str) -> bool:
        return token in _SYMBOLS


_PRIORITIES = {
    Operator.ADD: 0,
    Operator.SUB: 0,
    Operator.MUL: 1,
    Operator.DIV: 1,
    Operator.POW: 2,
}

_SYMBOLS = frozenset(op.value for op in Operator)
_SIGNS = '+-'


def is_identifier(token: str) -> bool:
    """True for one or more ASCII letters."""
    return bool(token) and token.isascii() and token.isalpha()

def is_literal(token: str) -> bool:
    """True for a run of digits with an optional leading sign."""
    digits = token[1:] if token[:1] in _SIGNS else token
    return bool(digits) and digits.isascii() and digits.isdigit()


# ---------------------------
# Stack
# ---------------------------

class Stack:
    """
    Unbounded LIFO stack of tokens or values. Popping or peeking an empty stack
    raises MalformedExpressionError, since in this engine it only happens when
    an operator is missing an operand.
    """
    def __init__(self, items: Iterable = ()):
        self._items = list(items)

    def push(self, item) -> None:
        self._items.append(item)

    def pop(self):
        if not self._items:
            raise MalformedExpressionError("Operator is missing an operand")
        return self._items.pop()

    def peek(self):
        if not self._items:
            raise MalformedExpressionError("Stack is empty")
        return self._items[-1]

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self):
        return f"Stack({self._items!r})"


# ---------------------------
# Normalizer / Tokenizer
# ---------------------------

def normalize(text: str) -> str:
    """
    Removes whitespace and collapses every run of '+'/'-' into one sign: '-' if
    the run holds an odd number of minuses, '+' otherwise.

    >>> normalize("5 - -3")
    '5+3'
    >>> normalize("5+-+3")
    '5-3'
    """
    out: List[str] = []
    negative = None  # None outside a sign run
    for ch in text:
        if ch.isspace():
            continue
        if ch in _SIGNS:
            negative = (ch == '-') if negative is None else negative != (ch == '-')
            continue
        if negative is not None:
            out.append('-' if negative else '+')
            negative = None
        out.append(ch)
    if negative is not None:
        out.append('-' if negative else '+')
    return ''.join(out)


def _scan_run(text: str, start: int, accept) -> int:
    end = start
    while end < len(text) and accept(text[end]):
        end += 1
    return end

def _is_letter(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()

def _is_digit(ch: str) -> bool:
    return ch.isascii() and ch.isdigit()


def tokenize(text: str) -> Iterator[str]:
    """
    Splits a normalized expression into operator, identifier and literal tokens.

    A '+' or '-' in unary position, i.e. at the start of the text or right
    after another operator, is read as the sign of the literal or identifier
    that directly follows it. Characters that fit no token are skipped.
    """
    pos = 0
    unary = True
    while pos < len(text):
        ch = text[pos]
        nxt = text[pos + 1] if pos + 1 < len(text) else ''
        if unary and ch in _SIGNS and _is_digit(nxt):
            end = _scan_run(text, pos + 1, _is_digit)
        elif unary and ch in _SIGNS and _is_letter(nxt):
            end = _scan_run(text, pos + 1, _is_letter)
        elif ch in _SYMBOLS:
            end = pos + 1
        elif _is_letter(ch):
            end = _scan_run(text, pos, _is_letter)
        elif _is_digit(ch):
            end = _scan_run(text, pos, _is_digit)
        else:
            pos += 1
            continue
        token = text[pos:end]
        unary = Operator.is_operator(token)
        pos = end
        yield token


# ---------------------------
# Precedence Converter
# ---------------------------

def to_postfix(tokens: Iterable[str]) -> List[str]:
    """
    Converts infix tokens to postfix order.

    An operator is stacked only while priorities strictly increase. Otherwise
    the whole operator stack is flushed to the output before pushing, so
    same-priority runs fold left to right: `1+2*3*4` gives `1 2 3 * + 4 *`.
    """
    output: List[str] = []
    operators = Stack()
    for token in tokens:
        if not Operator.is_operator(token):
            output.append(token)
            continue
        if not operators.is_empty() and (
                Operator(token).priority <= Operator(operators.peek()).priority):
            while not operators.is_empty():
                output.append(operators.pop())
        operators.push(token)
    while not operators.is_empty():
        output.append(operators.pop())
    return output


# ---------------------------
# Postfix Evaluator
# ---------------------------

def _resolve(token: str, variables: Mapping[str, str]) -> int:
    sign, name = (token[0], token[1:]) if token[:1] in _SIGNS else ('', token)
    negate = False
    if is_identifier(name):
        if name not in variables:
            raise UnknownVariableError(name)
        token = variables[name]
        negate = sign == '-'
    try:
        value = int(token)
    except ValueError:
        raise MalformedExpressionError(f"Not an integer: {token!r}")
    return -value if negate else value


def evaluate_postfix(postfix: Iterable[str], variables: Mapping[str, str]) -> str:
    """Evaluates a postfix token sequence and returns the decimal result."""
    values = Stack()
    for token in postfix:
        if Operator.is_operator(token):
            b = values.pop()
            a = values.pop()
            values.push(Operator(token).apply(b, a))
        else:
            values.push(_resolve(token, variables))
    if len(values) != 1:
        raise MalformedExpressionError(f"Expression reduces to {len(values)} values")
    return str(values.pop())


def evaluate_flat(expression: str, variables: Mapping[str, str]) -> str:
    """Evaluates a parenthesis-free expression."""
    postfix = to_postfix(tokenize(expression))
    logger.debug("postfix %r -> %s", expression, ' '.join(postfix))
    return evaluate_postfix(postfix, variables)


# ---------------------------
# Parenthesis Flattener
# ---------------------------

def innermost_groups(text: str) -> List[str]:
    """Returns the distinct '(...)' spans of text that contain no parentheses."""
    groups: List[str] = []
    start = -1
    for pos, ch in enumerate(text):
        if ch == '(':
            start = pos
        elif ch == ')' and start >= 0:
            group = text[start:pos + 1]
            if group not in groups:
                groups.append(group)
            start = -1
    return groups


def prepare(expression: str) -> str:
    """
    Normalizes the expression and gives every group a left operand, so that a
    leading sign is never left without one: `-(-3)` becomes `0-(0-3)`.
    """
    text = '0+' + normalize(expression).replace('(', '(0+')
    return normalize(text)


def iter_flatten(expression: str, variables: Mapping[str, str]) -> Iterator[str]:
    """
    Flattens parentheses one nesting level per pass, yielding the text after
    each pass. Every innermost group is evaluated and all occurrences of it are
    replaced with the result. The input must be prepared.
    """
    text = expression
    groups = innermost_groups(text)
    while groups:
        for group in groups:
            text = text.replace(group, evaluate_flat(group[1:-1], variables))
        yield text
        groups = innermost_groups(text)


def evaluate(expression: str, variables: Mapping[str, str]) -> str:
    """
    Evaluates a raw expression and returns the result as a decimal string.

    Parentheses must be balanced; that is checked by the caller. Raises an
    EvalError subclass on failure.
    """
    text = prepare(expression)
    passes = 0
    for text in iter_flatten(text, variables):
        passes += 1
        logger.debug("flatten pass %d: %s", passes, text)
    if '(' in text or ')' in text:
        raise MalformedExpressionError("Unbalanced parentheses")
    return evaluate_flat(text, variables)


def try_evaluate(expression: str, variables: Mapping[str, str]) -> Tuple[bool, str]:
    """Returns (True, result) or (False, user-facing error message)."""
    try:
        return True, evaluate(expression, variables)
    except EvalError as e:
        logger.info("Evaluation of %r failed: %s", expression, e)
        return False, e.message
