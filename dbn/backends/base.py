# dbn/backends/base.py
"""
Base backend class providing the common interface for all DBN output formats.

This module defines the abstract base class every backend inherits from. A
backend turns a drawing trace into an output artifact in two steps:

    transform(trace) -> intermediate tree    (format specific structure)
    generate(tree)   -> str                  (serialised output)

The base class walks the trace and dispatches each draw operation to a handler
registered for its class, threading a small mutable drawing state (the pen
colour) through the walk. Subclasses register handlers for the operations that
produce output.
"""
import abc
from typing import Any, Callable, Dict, Iterable, Type

from ..core import CANVAS_SIZE, DEFAULT_PEN_COLOUR, DrawOp, Foreground, InputError

State = Dict[str, Any]
Handler = Callable[[Any, Any, State], None]


class BaseBackend(abc.ABC):
    """
    Abstract base class for DBN backends.

    Each backend keeps a dictionary of handlers keyed by draw operation class.
    The set of draw operations is closed (Background, Foreground, Line, Point),
    so every backend registers all four.

    Attributes:
        handlers (dict): Draw operation class -> handler(op, tree, state)
        extension (str): File extension used when the output is written out

    Examples:
        >>> class CountingBackend(BaseBackend):
        ...     def _register_handlers(self): ...
        ...     def new_tree(self): return []
        ...     def generate(self, tree): return str(len(tree))
    """
    extension = "txt"

    def __init__(self):
        self.handlers: Dict[Type[DrawOp], Handler] = {}
        self._register_shared()
        self._register_handlers()

    def _register_shared(self):
        """
        Registers the handlers whose behaviour is identical for every backend.

        Foreground only changes the pen colour used by later Line operations;
        it never produces output of its own.
        """
        self.handlers[Foreground] = self._foreground

    @staticmethod
    def _foreground(op: Foreground, tree, state: State) -> None:
        state["pen"] = op.colour

    @staticmethod
    def x(value: str) -> int:
        return int(value)

    @staticmethod
    def y(value: str) -> int:
        # DBN's origin is bottom-left, output canvases are top-down
        return CANVAS_SIZE - int(value)

    @abc.abstractmethod
    def _register_handlers(self):
        """Registers the format specific draw operation handlers."""
        raise NotImplementedError

    @abc.abstractmethod
    def new_tree(self):
        """Returns an empty intermediate tree for one transform."""
        raise NotImplementedError

    def transform(self, trace: Iterable[DrawOp]):
        """
        Converts a drawing trace into the backend's intermediate tree.

        The trace is walked in paint order. The drawing state starts with the
        default pen colour for every call, so a backend instance can be reused.

        Args:
            trace: Draw operations as returned by `parse`

        Returns:
            The intermediate tree produced by `new_tree` and filled by the handlers
        """
        tree = self.new_tree()
        state: State = {"pen": DEFAULT_PEN_COLOUR}
        for op in trace:
            try:
                self.handlers[type(op)](op, tree, state)
            except ValueError:
                raise InputError(f"Invalid number in {op!r}.") from None
        return tree

    @abc.abstractmethod
    def generate(self, tree) -> str:
        """Serialises an intermediate tree into the final output text."""
        raise NotImplementedError
