# dbn/backends/vector.py
"""
Vector (SVG) backend.

Every draw operation becomes one SVG element inside a 100x100 viewBox:
- Background: a full canvas rect filled with the paper colour
- Line: a line stroked with the current pen colour
- Point: a 1x1 rect filled with the point's own colour

Colours are DBN greyscale percentages where 0 is white and 100 is black.
Nothing is clipped: shapes outside the canvas are still emitted.

Example output:
    <svg width="100" height="100" viewBox="0 0 100 100" ...><rect x="0" y="0" .../></svg>
"""
from typing import Any, Dict, List, Optional

from ..core import CANVAS_SIZE, Background, Line, Point
from .base import BaseBackend, State

SVG_NAMESPACE = "http://www.w3.org/2000/svg"


class ShapeNode:
    """
    A node of the SVG shape tree.

    Attributes:
        tag (str): Element name, e.g. 'svg', 'rect', 'line'
        attributes (dict): Attribute name -> value, serialised in insertion order
        children (list): Nested ShapeNodes
    """
    def __init__(self, tag: str, attributes: Dict[str, Any], children: Optional[List["ShapeNode"]] = None):
        self.tag = tag
        self.attributes = attributes
        self.children = children or []

    def __repr__(self):
        return f"ShapeNode('{self.tag}', {self.attributes}, {self.children})"


def rgb(colour: str) -> str:
    """Maps a DBN greyscale value to an SVG colour, e.g. '10' -> 'rgb(90%,90%,90%)'."""
    level = CANVAS_SIZE - int(colour)
    return f"rgb({level}%,{level}%,{level}%)"


class VectorBackend(BaseBackend):
    """
    Renders a drawing trace as SVG markup.

    Args:
        width: Output width in pixels (the viewBox stays 100x100)
        height: Output height in pixels

    Examples:
        >>> backend = VectorBackend(width=400, height=400)
        >>> backend.generate(backend.transform([Background("0")]))[:40]
        '<svg width="400" height="400" viewBox="0'
    """
    extension = "svg"

    def __init__(self, width: int = CANVAS_SIZE, height: int = CANVAS_SIZE):
        self.width = width
        self.height = height
        super().__init__()

    def _register_handlers(self):
        self.handlers.update({
            Background: self._background,
            Line: self._line,
            Point: self._point,
        })

    def new_tree(self) -> ShapeNode:
        return ShapeNode("svg", {
            "width": self.width,
            "height": self.height,
            "viewBox": f"0 0 {CANVAS_SIZE} {CANVAS_SIZE}",
            "xmlns": SVG_NAMESPACE,
            "version": "1.1",
        })

    # Background does not touch the pen colour
    def _background(self, op: Background, tree: ShapeNode, state: State) -> None:
        tree.children.append(ShapeNode("rect", {
            "x": 0,
            "y": 0,
            "width": CANVAS_SIZE,
            "height": CANVAS_SIZE,
            "fill": rgb(op.colour),
        }))

    def _line(self, op: Line, tree: ShapeNode, state: State) -> None:
        tree.children.append(ShapeNode("line", {
            "x1": self.x(op.x0),
            "y1": self.y(op.y0),
            "x2": self.x(op.x1),
            "y2": self.y(op.y1),
            "stroke": rgb(state["pen"]),
            "stroke-linecap": "round",
        }))

    def _point(self, op: Point, tree: ShapeNode, state: State) -> None:
        tree.children.append(ShapeNode("rect", {
            "x": self.x(op.x),
            "y": self.y(op.y),
            "width": 1,
            "height": 1,
            "fill": rgb(op.colour),
        }))

    def generate(self, tree: ShapeNode) -> str:
        """
        Serialises a shape tree to markup.

        Attributes are written as key="value" in insertion order, children are
        serialised recursively between the open and close tags. Values are not
        escaped.
        """
        attributes = " ".join(f'{key}="{value}"' for key, value in tree.attributes.items())
        opening = f"<{tree.tag} {attributes}>" if attributes else f"<{tree.tag}>"
        children = "".join(self.generate(child) for child in tree.children)
        return f"{opening}{children}</{tree.tag}>"
