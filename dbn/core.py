# dbn/core.py
"""
Core functionality for the DBN compiler.

This module provides the foundational components shared by the interpreter and
the output backends. It includes:
- Diagnostic representation (input errors and internal errors) with a
  caret-style source rendering
- Token representation and the line-based lexer
- Structural token validation
- The drawing trace: the four draw operations produced by the interpreter and
  consumed by every backend

Programs in the language describe drawings on a 100x100 canvas whose origin is
the bottom-left corner. Every value is an integer carried as a decimal string.
"""
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union


## --- Core Constants ---
CANVAS_SIZE = 100  # Logical canvas extent in user units (0..CANVAS_SIZE)
DEFAULT_PEN_COLOUR = "100"  # Pen colour before any Pen statement
DEFAULT_BACKGROUND_COLOUR = "0"  # Paper colour before any Paper statement


## --- Diagnostics ---
@dataclass(frozen=True)
class SourceLocation:
    line: int
    column: int
    context: str


class DBNError(Exception):
    """
    Base class for every diagnostic raised by the compiler.

    A diagnostic carries a human readable message and, when known, the source
    location of the token that caused it. The category is the name of the
    concrete subclass, so host tooling can tell a bad program (InputError) from
    a defect in the compiler itself (InternalError).

    Attributes:
        message (str): Description of the problem
        location (SourceLocation | None): Where the problem was found
        level (str): Severity label used in the rendering

    Examples:
        >>> token = Token(TokenType.WORD, "a", 10, 8, "Line 10 a 50 b")
        >>> print(InputError('Use of undeclared identifier "a".', token))
        Error:    Use of undeclared identifier "a".
        Location: 10:8
          Line 10 a 50 b
                  ^
    """
    level = "Error"

    def __init__(self, message: str, token: Optional["Token"] = None):
        super().__init__(message)
        self.message = message
        self.location = None
        if token is not None:
            self.location = SourceLocation(token.line, token.column, token.context)

    @property
    def category(self) -> str:
        return type(self).__name__

    def __str__(self):
        level_padding = " " * max(8 - len(self.level), 0)
        location_padding = " " * max(len(self.level) - 8, 0)
        rendered = f"{self.level}: {level_padding}{self.message}\nLocation: {location_padding}"
        if self.location is None:
            return rendered + "unknown"
        return (
            f"{rendered}{self.location.line}:{self.location.column}"
            f"\n  {self.location.context}"
            f"\n  {' ' * self.location.column}^"
        )


class InputError(DBNError):
    """Raised when the program text is invalid."""


class InternalError(DBNError):
    """Raised when an invariant of the compiler itself is violated."""


## --- Token Representation ---
class TokenType:
    WORD = "word"
    SYMBOL = "symbol"
    NUMBER = "number"


# Expected shape of a token's value for each token type
TOKEN_PATTERNS = {
    TokenType.WORD: re.compile(r"[A-Za-z]\w*", re.ASCII),
    TokenType.SYMBOL: re.compile(r"[\[\{\}\]+\-*/()?]"),
    TokenType.NUMBER: re.compile(r"[0-9]+"),
}

_WORD_CHARACTER = re.compile(r"\w", re.ASCII)


@dataclass(frozen=True)
class Token:
    """
    A single lexical unit of a DBN program.

    Attributes:
        type (str): One of TokenType.WORD, TokenType.SYMBOL, TokenType.NUMBER
        value (str): The token text (or, for resolved numbers, a signed value)
        line (int): 1-based source line
        column (int): 0-based start column within the line
        context (str): The full source line, used for diagnostics
    """
    type: str
    value: str
    line: int = 0
    column: int = 0
    context: str = ""

    def __repr__(self):
        return f"Token({self.type!r}, {self.value!r}, {self.line}:{self.column})"


## --- Lexer ---
def _classify(value: str) -> str:
    if value.isdigit() and value.isascii():
        return TokenType.NUMBER
    if any(not _WORD_CHARACTER.match(ch) for ch in value):
        return TokenType.SYMBOL
    return TokenType.WORD


def _lex_line(line_text: str, line_number: int) -> List[Token]:
    """
    Splits one source line into tokens.

    Whitespace ends the pending token. Any other non-word character ends the
    pending token and becomes a one character token of its own.
    """
    code = line_text.split("//", 1)[0]
    pieces = []  # (column, text) pairs, possibly empty
    start, pending = 0, ""
    for column, ch in enumerate(code):
        if ch.isspace():
            pieces.append((start, pending))
            start, pending = column + 1, ""
        elif not _WORD_CHARACTER.match(ch):
            pieces.append((start, pending))
            pieces.append((column, ch))
            start, pending = column + 1, ""
        else:
            pending += ch
    pieces.append((start, pending))
    return [
        Token(_classify(text), text, line_number, column, line_text)
        for column, text in pieces if text
    ]


def lex(code: str) -> List[Token]:
    """
    Converts DBN source text into an ordered list of positioned tokens.

    The source is processed line by line; anything after "//" on a line is a
    comment. Lexing never fails: malformed input simply produces tokens that
    the parser will later reject.

    Args:
        code: Complete program source

    Returns:
        List of Token in left-to-right, top-to-bottom source order

    Examples:
        >>> [t.value for t in lex("Set [50 7] 20 // dot")]
        ['Set', '[', '50', '7', ']', '20']
        >>> lex("something else")[1]
        Token('word', 'else', 1:10)
    """
    tokens = []
    for index, line_text in enumerate(code.split("\n")):
        tokens.extend(_lex_line(line_text, index + 1))
    return tokens


## --- Token Validation ---
def verify_tokens(tokens: Sequence[Token]) -> None:
    """
    Checks that every token's value has the shape its type promises.

    This guards the consistency of token sequences handed to the parser,
    including ones assembled internally (extracted blocks). A failure means the
    compiler is broken, not the program.

    Raises:
        InternalError: On an unknown token type or a value/type mismatch
    """
    for token in tokens:
        pattern = TOKEN_PATTERNS.get(token.type)
        if pattern is None:
            raise InternalError(f'Unknown token type: "{token.type}".', token)
        if not pattern.fullmatch(token.value):
            raise InternalError(
                f'Token "{token.value}" doesn\'t match its type: "{token.type}".', token
            )


## --- Drawing Trace ---
class DrawOp:
    """Base class of the four draw operations making up a trace."""


@dataclass(frozen=True)
class Background(DrawOp):
    colour: str


@dataclass(frozen=True)
class Foreground(DrawOp):
    colour: str


@dataclass(frozen=True)
class Line(DrawOp):
    x0: str
    y0: str
    x1: str
    y1: str


@dataclass(frozen=True)
class Point(DrawOp):
    x: str
    y: str
    colour: str


Trace = List[Union[Background, Foreground, Line, Point]]
