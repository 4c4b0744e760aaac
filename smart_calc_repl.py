# smart_calc_repl.py
"""
Interactive session for the smart calculator.

Each input line is classified as a command ('/help', '/exit', '/vars'), an
assignment ('name = expression'), a bare identifier, or an expression. The
session owns the variable table and passes it to the expression engine as a
read-only lookup; only assignments write to it.

Input is read with prompt_toolkit, with persistent history and completion of
commands and variable names.
"""

import argparse
import logging
import sys
from collections.abc import Mapping
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import FileHistory, InMemoryHistory
from pydantic import ValidationError

from smart_calc import EvalError, UnknownVariableError, evaluate, is_identifier, normalize
from smart_calc_config import CalculatorSettings, configure_logging, load_settings

logger = logging.getLogger(__name__)


# --------------------------
# Variable table
# --------------------------

class VariableTable(Mapping):
    """
    Session variables, name -> decimal string. Read-only as a Mapping, so it
    can be handed to the engine directly; `assign` is the only way to write.
    """

    def __init__(self):
        self._values: Dict[str, str] = {}

    def assign(self, name: str, value: str) -> None:
        if not is_identifier(name):
            raise ValueError(f"Invalid identifier: {name!r}")
        self._values[name] = str(int(value))

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)


# --------------------------
# Input classification
# --------------------------

class LineKind(Enum):
    EMPTY = 'empty'
    COMMAND = 'command'
    ASSIGNMENT = 'assignment'
    IDENTIFIER = 'identifier'
    EXPRESSION = 'expression'


_EXPRESSION_CHARS = frozenset('0123456789+-*/^()')


def classify(line: str) -> LineKind:
    text = normalize(line)
    if not text:
        return LineKind.EMPTY
    if text.startswith('/'):
        return LineKind.COMMAND
    if '=' in text:
        return LineKind.ASSIGNMENT
    if text.isascii() and text.isalnum() and not text.isdigit():
        return LineKind.IDENTIFIER
    return LineKind.EXPRESSION


def is_balanced(text: str) -> bool:
    """True if every ')' closes an earlier '(' and none are left open."""
    depth = 0
    for ch in text:
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def is_well_formed(text: str) -> bool:
    """
    Checks a normalized expression for stray characters, unbalanced parentheses,
    names glued to numbers (`2a`) and operands glued to a parenthesis such as
    `2(3)` or `(1)(2)`.
    """
    if not is_balanced(text):
        return False
    for prev, ch in zip(' ' + text, text):
        if not (ch in _EXPRESSION_CHARS or (ch.isascii() and ch.isalpha())):
            return False
        if (prev.isdigit() and ch.isalpha()) or (prev.isalpha() and ch.isdigit()):
            return False
        if ch == '(' and (prev.isalnum() or prev == ')'):
            return False
        if prev == ')' and ch.isalnum():
            return False
    return True


# --------------------------
# REPL, Help
# --------------------------

HELP_TEXT = (
    "The program calculates integer expressions like 4 + 6 - 8, 2 * (3 + 4) or 2 ^ 100.\n"
    "Operators: + - * / (integer division) ^ (power), parentheses for grouping.\n"
    "Repeated signs collapse: 2 -- 3 is 2 + 3, 2 +- 3 is 2 - 3; 2 * -a negates a.\n"
    "Variables: assign with 'name = expression' (names are latin letters only),\n"
    "print a value by typing its name.\n"
    "Commands:\n"
    "  /help   show this help\n"
    "  /vars   list variables\n"
    "  /exit   exit"
)

COMMANDS = ('/help', '/vars', '/exit')

ReadLine = Callable[[], str]


class REPL:
    """Read-Eval-Print Loop for the calculator."""

    def __init__(self, settings: Optional[CalculatorSettings] = None):
        self.settings = settings or CalculatorSettings(history_file=None)
        self.variables = VariableTable()
        self.running = True

    def _run_command(self, command: str) -> str:
        logger.debug("command %s", command)
        if command == '/exit':
            self.running = False
            return "Bye!"
        if command == '/help':
            return HELP_TEXT
        if command == '/vars':
            if not self.variables:
                return "(no variables)"
            return "\n".join(f"{k} = {v}" for k, v in sorted(self.variables.items()))
        return "Unknown command"

    def _run_assignment(self, text: str) -> Tuple[bool, Optional[str]]:
        sides = text.split('=')
        if len(sides) != 2:
            return False, "Invalid assignment"
        name, expression = sides
        if not is_identifier(name):
            return False, "Invalid identifier"
        if not expression or not is_well_formed(expression):
            return False, "Invalid assignment"
        try:
            value = evaluate(expression, self.variables)
        except UnknownVariableError:
            return False, "Unknown variable"
        except EvalError as e:
            logger.debug("evaluating %r: %s", text, e)
            return False, "Invalid assignment"
        self.variables.assign(name, value)
        return True, None

    def _run_identifier(self, name: str) -> Tuple[bool, str]:
        if not is_identifier(name):
            return False, "Invalid identifier"
        if name not in self.variables:
            return False, "Unknown variable"
        return True, self.variables[name]

    def _run_expression(self, text: str) -> Tuple[bool, str]:
        if not is_well_formed(text):
            return False, "Invalid expression"
        try:
            return True, evaluate(text, self.variables)
        except EvalError as e:
            logger.debug("evaluating %r: %s", text, e)
            return False, e.message

    def evaluate_line(self, line: str) -> Tuple[bool, Optional[str]]:
        """
        Handles one input line. Returns (ok, output); output is None when there
        is nothing to print (empty line, successful assignment).
        """
        kind = classify(line)
        if kind is LineKind.EMPTY:
            return True, None
        if kind is LineKind.COMMAND:
            out = self._run_command(line.strip())
            return out != "Unknown command", out
        text = normalize(line)
        if kind is LineKind.ASSIGNMENT:
            ok, out = self._run_assignment(text)
        elif kind is LineKind.IDENTIFIER:
            ok, out = self._run_identifier(text)
        else:
            ok, out = self._run_expression(text)
        if not ok:
            logger.info("%s %r failed: %s", kind.value, text, out)
        return ok, out

    def _completion_words(self) -> List[str]:
        return list(COMMANDS) + sorted(self.variables)

    def _prompt_reader(self) -> ReadLine:
        if self.settings.history_file:
            history = FileHistory(self.settings.history_file)
        else:
            history = InMemoryHistory()
        session = PromptSession(history=history)

        def read_line() -> str:
            completer = WordCompleter(self._completion_words(), ignore_case=False, WORD=True)
            return session.prompt(self.settings.prompt, completer=completer)

        return read_line

    def repl_loop(self, read_line: Optional[ReadLine] = None) -> None:
        """
        Reads and evaluates lines until '/exit' or end of input. Ctrl-C
        discards the current line.
        """
        if read_line is None:
            read_line = self._prompt_reader()
        while self.running:
            try:
                line = read_line()
            except KeyboardInterrupt:
                print("^C")
                continue
            except EOFError:
                print("Bye!")
                break
            _, out = self.evaluate_line(line)
            if out is not None:
                print(out)


# --------------------------
# Entry point
# --------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Interactive integer calculator with variables.")
    parser.add_argument(
        "--history-file",
        type=str,
        help="File to keep input history in (default: ~/.smart_calc_history).",
    )
    parser.add_argument(
        "--no-history",
        action="store_true",
        help="Do not keep input history on disk.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Logging level, e.g. DEBUG or INFO (default: WARNING).",
    )
    parser.add_argument(
        "--env-file",
        type=str,
        help="Path to a .env file with SMART_CALC_* settings.",
    )
    return parser


def main(argv: Optional[List[str]] = None, read_line: Optional[ReadLine] = None) -> int:
    args = build_parser().parse_args(argv)
    history_file = "" if args.no_history else args.history_file
    try:
        settings = load_settings(args.env_file, history_file=history_file, log_level=args.log_level)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    configure_logging(settings.log_level)
    logger.debug("settings %s", settings)
    REPL(settings).repl_loop(read_line)
    return 0


if __name__ == '__main__':
    sys.exit(main())
