# dbn/interpreter.py
"""
Statement parser and interpreter for DBN programs.

Parsing and execution happen in a single left-to-right pass over the tokens.
Built-in statements append draw operations to the trace as soon as they are
read, loops and conditionals are unrolled on the spot, and user commands are
stored as (parameters, body tokens) pairs that are re-read on every call.

Statements:
    Paper c                  background colour
    Pen c                    pen colour for following lines
    Line x0 y0 x1 y1         line in the current pen colour
    Set [x y] c              single dot of colour c
    Set name value           variable assignment
    Repeat v a b { ... }     inclusive counted loop, ascending or descending
    Command name p... { }    user command definition
    Same? / NotSame? a b { } string (in)equality check
    Smaller? / NotSmaller? a b { }  integer ordering check

Values are numbers, variables, negations ("-x", chains allowed) and
calculations "(a op b)" with op one of + - * /.

Example:
    >>> parse(lex("Repeat i 0 2 { Set [i 5] 100 }"))
    [Point(x='0', y='5', colour='100'), Point(x='1', y='5', colour='100'), Point(x='2', y='5', colour='100')]
"""
import operator
import re
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .core import (
    Background, Foreground, InputError, InternalError, Line, Point, Token, TokenType, Trace,
    verify_tokens,
)


## --- Token Cursor ---
@dataclass(frozen=True)
class Cursor:
    """
    An immutable read position over a token tuple.

    Reading a token never changes the cursor it was read from; it returns the
    token together with a new cursor one step further. Blocks are re-executed
    by starting a fresh cursor over the same tuple.
    """
    tokens: Tuple[Token, ...]
    position: int = 0

    @property
    def remaining(self) -> int:
        return len(self.tokens) - self.position

    @property
    def exhausted(self) -> bool:
        return self.position >= len(self.tokens)

    def peek(self) -> Optional[Token]:
        return None if self.exhausted else self.tokens[self.position]

    def take(self) -> Tuple[Token, "Cursor"]:
        if self.exhausted:
            last = self.tokens[-1] if self.tokens else None
            raise InputError("Unexpected program end.", last)
        return self.tokens[self.position], Cursor(self.tokens, self.position + 1)


## --- Scopes ---
INTEGER_PATTERN = re.compile(r"-?[0-9]+")  # accepted initial context values
@dataclass(frozen=True)
class CommandDefinition:
    name: str
    parameters: Tuple[str, ...]
    body: Tuple[Token, ...]


Binding = Union[str, CommandDefinition]


class Scope:
    """
    The identifiers visible at a point of execution.

    A scope maps names to numeric value strings or to command definitions.
    There are exactly two ways to change what a name means:

    - bind_in_place writes into this scope; everyone holding it sees the
      change (Set, Repeat loop variables, Command definitions).
    - derive_child returns an independent copy with extra bindings (command
      invocation); writes made to the copy never reach this scope.

    Examples:
        >>> root = Scope({"X": 50})
        >>> child = root.derive_child({"size": "4"})
        >>> child.bind_in_place("X", "7")
        >>> root.get("X"), child.get("X")
        ('50', '7')
    """
    def __init__(self, bindings: Optional[Mapping[str, object]] = None):
        self._bindings: Dict[str, Binding] = {}
        for name, value in (bindings or {}).items():
            if isinstance(value, CommandDefinition):
                self._bindings[name] = value
            elif INTEGER_PATTERN.fullmatch(str(value)):
                self._bindings[name] = str(value)
            else:
                raise InputError(f'Initial value of "{name}" is not an integer: "{value}".')

    def __contains__(self, name: str) -> bool:
        return name in self._bindings

    def __repr__(self):
        return f"Scope({self._bindings!r})"

    def get(self, name: str) -> Optional[Binding]:
        return self._bindings.get(name)

    def bind_in_place(self, name: str, value: Binding) -> None:
        self._bindings[name] = value

    def derive_child(self, bindings: Mapping[str, Binding]) -> "Scope":
        return Scope({**self._bindings, **bindings})

    def snapshot(self) -> Dict[str, Binding]:
        return dict(self._bindings)

    def number(self, token: Token) -> str:
        """Returns the numeric value bound to a word token."""
        value = self._bindings.get(token.value)
        if value is None:
            raise InputError(f'Use of undeclared identifier "{token.value}".', token)
        if isinstance(value, CommandDefinition):
            raise InputError(f'"{token.value}" is a command, not a number.', token)
        return value


## --- Expressions ---
OPERATIONS: Dict[str, Callable[[int, int], int]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.floordiv,  # rounds towards negative infinity
}


def _is_symbol(token: Optional[Token], value: str) -> bool:
    return token is not None and token.type == TokenType.SYMBOL and token.value == value


def _negate(value: str) -> str:
    return value[1:] if value.startswith("-") else "-" + value


def _to_int(token: Token) -> int:
    # int() refuses decimal strings beyond sys.get_int_max_str_digits()
    try:
        return int(token.value)
    except ValueError:
        raise InputError(f'Number "{token.value[:20]}..." is too large.', token) from None


def _to_str(value: int, token: Token) -> str:
    try:
        return str(value)
    except ValueError:
        raise InputError("Result of calculation is too large.", token) from None


def _drawable(token: Token) -> str:
    """Returns the value of a draw operation argument, checked to convert to int."""
    _to_int(token)
    return token.value


def resolve_number(token: Token, cursor: Cursor, scope: Scope) -> Tuple[Token, Cursor]:
    """
    Resolves a token (and whatever follows it) into a number token.

    Args:
        token: The token already read from the stream
        cursor: Position just after `token`
        scope: Bindings used for variable lookups

    Returns:
        (number token, cursor after everything consumed)

    Raises:
        InputError: On undeclared identifiers or a premature end of program
        InternalError: If `token` is a symbol that cannot start a value

    Examples:
        >>> tokens = lex("- - - 7")
        >>> number, _ = resolve_number(tokens[0], Cursor(tuple(tokens), 1), Scope())
        >>> number.value
        '-7'
    """
    if token.type == TokenType.NUMBER:
        return token, cursor
    if token.type == TokenType.WORD:
        return replace(token, type=TokenType.NUMBER, value=scope.number(token)), cursor
    if _is_symbol(token, "-"):
        operand, cursor = cursor.take()
        number, cursor = resolve_number(operand, cursor, scope)
        return replace(number, value=_negate(number.value)), cursor
    if _is_symbol(token, "("):
        return parse_calculation(token, cursor, scope)
    raise InternalError(f'Cannot resolve "{token.value}" to a number.', token)


def _take_number(cursor: Cursor, scope: Scope) -> Tuple[Token, Cursor]:
    token, cursor = cursor.take()
    return resolve_number(token, cursor, scope)


def _take_operand(cursor: Cursor, scope: Scope) -> Tuple[Token, Cursor]:
    token, cursor = cursor.take()
    if token.type == TokenType.SYMBOL and token.value not in ("(", "-"):
        raise InputError(f'Unexpected token "{token.value}".', token)
    return resolve_number(token, cursor, scope)


def parse_calculation(current: Token, cursor: Cursor, scope: Scope) -> Tuple[Token, Cursor]:
    """
    Evaluates a calculation of the form "( lhs op rhs )".

    Both operands may themselves be calculations or negations. Division is
    integer division rounding down (towards negative infinity).

    Args:
        current: The opening "(" token, already read
        cursor: Position just after the "("
        scope: Bindings used for variable lookups

    Returns:
        (number token holding the result, cursor after the closing ")")

    Examples:
        >>> tokens = lex("(5 + ---(60 - 100))")
        >>> parse_calculation(tokens[0], Cursor(tuple(tokens), 1), Scope())[0].value
        '45'
    """
    if cursor.remaining < 4:
        raise InputError("Unexpected program end. Calculation does not end.", current)
    lhs, cursor = _take_operand(cursor, scope)
    operation, cursor = cursor.take()
    rhs, cursor = _take_operand(cursor, scope)
    closing, cursor = cursor.take()
    if not _is_symbol(closing, ")"):
        raise InputError(f'Unexpected token "{closing.value}", expected ")".', closing)
    if operation.type != TokenType.SYMBOL or operation.value not in OPERATIONS:
        raise InputError(f'"{operation.value}" is not a valid operation.', operation)
    lhs_value, rhs_value = _to_int(lhs), _to_int(rhs)
    if operation.value == "/" and rhs_value == 0:
        raise InputError("Division by zero.", operation)
    result = OPERATIONS[operation.value](lhs_value, rhs_value)
    return replace(lhs, type=TokenType.NUMBER, value=_to_str(result, lhs)), cursor


## --- Blocks ---
def extract_block(cursor: Cursor) -> Tuple[Tuple[Token, ...], Cursor]:
    """
    Carves a balanced "{ ... }" region out of the token stream.

    The inner tokens are returned unevaluated so they can be executed later,
    any number of times.

    Returns:
        (inner tokens, cursor just after the matching "}")

    Raises:
        InputError: If the block does not start with "{" or never closes
    """
    opening, cursor = cursor.take()
    if not _is_symbol(opening, "{"):
        raise InputError(f'Block expects to start with "{{", not "{opening.value}".', opening)
    tokens, start = cursor.tokens, cursor.position
    depth = 1
    for end in range(start, len(tokens)):
        if _is_symbol(tokens[end], "{"):
            depth += 1
        elif _is_symbol(tokens[end], "}"):
            depth -= 1
            if depth == 0:
                block = tokens[start:end]
                verify_tokens(block)
                return block, Cursor(tokens, end + 1)
    last = tokens[-1] if len(tokens) > start else opening
    raise InputError('Unexpected end of file. Block did not terminate with a "}".', last)


## --- Statements ---
CHECKS: Dict[str, Callable[[Token, Token], bool]] = {
    "Same": lambda lhs, rhs: lhs.value == rhs.value,
    "NotSame": lambda lhs, rhs: lhs.value != rhs.value,
    "Smaller": lambda lhs, rhs: _to_int(lhs) < _to_int(rhs),
    "NotSmaller": lambda lhs, rhs: not _to_int(lhs) < _to_int(rhs),
}

StatementHandler = Callable[[Token, Cursor, Scope], Cursor]


def _require(cursor: Cursor, count: int, current: Token, message: str) -> None:
    if cursor.remaining < count:
        raise InputError(f"Unexpected program end. {message}", current)


class Interpreter:
    """
    Executes DBN statements as they are parsed, collecting a drawing trace.

    Each statement handler receives the keyword token, a cursor positioned
    just after it and the active scope, and returns the cursor after the
    statement. Everything drawn, at any nesting depth, lands in `self.trace`.

    Attributes:
        trace (list): Draw operations in paint order
        statements (dict): Built-in keyword -> handler
    """
    def __init__(self):
        self.trace: Trace = []
        self.statements: Dict[str, StatementHandler] = {}
        self._register_statements()

    def _register_statements(self):
        self.statements.update({
            "Paper": self._parse_paper,
            "Pen": self._parse_pen,
            "Line": self._parse_line,
            "Set": self._parse_set,
            "Repeat": self._parse_repeat,
            "Command": self._parse_command,
        })
        self.statements.update({name: self._parse_check for name in CHECKS})

    def run(self, tokens: Tuple[Token, ...], scope: Scope) -> None:
        """Executes every statement in `tokens` against `scope`."""
        cursor = Cursor(tokens)
        while not cursor.exhausted:
            current, cursor = cursor.take()
            if current.type != TokenType.WORD:
                raise InputError(f'Unexpected token "{current.value}".', current)
            handler = self.statements.get(current.value)
            if handler is not None:
                cursor = handler(current, cursor, scope)
                continue
            binding = scope.get(current.value)
            if binding is None:
                raise InputError(f'"{current.value}" is not a valid keyword.', current)
            if not isinstance(binding, CommandDefinition):
                raise InputError(f'Unexpected variable "{current.value}" used as a statement.', current)
            cursor = self._invoke(binding, current, cursor, scope)

    # --- Drawing ---
    def _parse_paper(self, current: Token, cursor: Cursor, scope: Scope) -> Cursor:
        _require(cursor, 1, current, "Paper requires 1 argument.")
        colour, cursor = _take_number(cursor, scope)
        self.trace.append(Background(_drawable(colour)))
        return cursor

    def _parse_pen(self, current: Token, cursor: Cursor, scope: Scope) -> Cursor:
        _require(cursor, 1, current, "Pen requires 1 argument.")
        colour, cursor = _take_number(cursor, scope)
        self.trace.append(Foreground(_drawable(colour)))
        return cursor

    def _parse_line(self, current: Token, cursor: Cursor, scope: Scope) -> Cursor:
        _require(cursor, 4, current, "Line requires 4 arguments.")
        values = []
        for _ in range(4):
            number, cursor = _take_number(cursor, scope)
            values.append(_drawable(number))
        self.trace.append(Line(*values))
        return cursor

    # --- Assignment ---
    def _parse_set(self, current: Token, cursor: Cursor, scope: Scope) -> Cursor:
        _require(cursor, 2, current, "Set requires 2 arguments.")
        target, cursor = cursor.take()
        if _is_symbol(target, "["):
            return self._parse_dot(target, cursor, scope)
        if target.type != TokenType.WORD:
            raise InputError(f'"{target.value}" is not a valid variable name.', target)
        value, cursor = _take_number(cursor, scope)
        scope.bind_in_place(target.value, value.value)
        return cursor

    def _parse_dot(self, current: Token, cursor: Cursor, scope: Scope) -> Cursor:
        # Set [x y] colour, `current` is the "["
        _require(cursor, 4, current, "Dot requires 4 arguments.")
        x, cursor = _take_number(cursor, scope)
        y, cursor = _take_number(cursor, scope)
        closing, cursor = cursor.take()
        if not _is_symbol(closing, "]"):
            raise InputError(
                f'Unexpected token "{closing.value}", a dot should be closed with "]".', closing
            )
        colour, cursor = _take_number(cursor, scope)
        self.trace.append(Point(_drawable(x), _drawable(y), _drawable(colour)))
        return cursor

    # --- Control flow ---
    def _parse_repeat(self, current: Token, cursor: Cursor, scope: Scope) -> Cursor:
        _require(cursor, 5, current, "Repeat does not end.")
        variable, cursor = cursor.take()
        if variable.type != TokenType.WORD:
            raise InputError(f'Unexpected value "{variable.value}". Expected a variable.', variable)
        start, cursor = _take_number(cursor, scope)
        finish, cursor = _take_number(cursor, scope)
        block, cursor = extract_block(cursor)

        first, last = _to_int(start), _to_int(finish)
        step = 1 if last >= first else -1
        for index in range(first, last + step, step):
            scope.bind_in_place(variable.value, str(index))
            self.run(block, scope)
        return cursor

    def _parse_check(self, current: Token, cursor: Cursor, scope: Scope) -> Cursor:
        keyword = current.value
        _require(cursor, 5, current, f"{keyword}? does not end.")
        question_mark, cursor = cursor.take()
        if not _is_symbol(question_mark, "?"):
            raise InputError(f'Expected {keyword}?, not "{keyword}{question_mark.value}".', question_mark)
        lhs, cursor = _take_number(cursor, scope)
        rhs, cursor = _take_number(cursor, scope)
        block, cursor = extract_block(cursor)
        if CHECKS[keyword](lhs, rhs):
            self.run(block, scope)
        return cursor

    # --- Commands ---
    def _parse_command(self, current: Token, cursor: Cursor, scope: Scope) -> Cursor:
        _require(cursor, 3, current, "Command does not end.")
        name, cursor = cursor.take()
        if name.type != TokenType.WORD:
            raise InputError(f'Unexpected command name "{name.value}".', name)
        if name.value in self.statements:
            raise InputError(f'Cannot redefine keyword "{name.value}".', name)
        if name.value in scope:
            raise InputError(f'Existing command or variable named "{name.value}".', name)

        parameters: List[str] = []
        while not _is_symbol(cursor.peek(), "{"):
            if cursor.exhausted:
                raise InputError("Unexpected end of program.", current)
            parameter, cursor = cursor.take()
            if parameter.type != TokenType.WORD:
                raise InputError(f'Unexpected token "{parameter.value}".', parameter)
            if parameter.value in scope:
                raise InputError(f'"{parameter.value}" is an existing variable.', parameter)
            parameters.append(parameter.value)
        body, cursor = extract_block(cursor)

        scope.bind_in_place(name.value, CommandDefinition(name.value, tuple(parameters), body))
        return cursor

    def _invoke(self, command: CommandDefinition, current: Token, cursor: Cursor, scope: Scope) -> Cursor:
        expected = len(command.parameters)
        if cursor.remaining < expected:
            raise InputError(
                f'Expected {expected} arguments to "{command.name}", got {cursor.remaining}.', current
            )
        arguments = {}
        for parameter in command.parameters:
            value, cursor = _take_number(cursor, scope)
            arguments[parameter] = value.value
        self.run(command.body, scope.derive_child(arguments))
        return cursor


## --- Public Entry Point ---
def parse(tokens: Sequence[Token], context: Union[Scope, Mapping[str, object], None] = None) -> Trace:
    """
    Interprets a token sequence into a drawing trace.

    Args:
        tokens: Output of `lex`, or any sequence of well-formed tokens
        context: Initial bindings. A Scope is used (and updated) in place; a
            plain mapping is copied into a fresh root scope.

    Returns:
        List of Background / Foreground / Line / Point in paint order

    Raises:
        InputError: If the program is invalid
        InternalError: If a token's value does not match its type

    Examples:
        >>> parse(lex("Set X 30 Line X 0 100 70"))
        [Line(x0='30', y0='0', x1='100', y1='70')]
    """
    verify_tokens(tokens)
    scope = context if isinstance(context, Scope) else Scope(context)
    interpreter = Interpreter()
    interpreter.run(tuple(tokens), scope)
    return interpreter.trace
