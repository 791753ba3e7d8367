"""Input model: schema path elements and the user's selection graph."""

from .paths import (
    INVERSE_MARKER,
    Classification,
    PathElement,
    PathModel,
    parse_flag,
    split_inverse,
)
from .selection import SelectedEdge, SelectedNode, SelectionGraph

__all__ = [
    "INVERSE_MARKER",
    "Classification",
    "PathElement",
    "PathModel",
    "parse_flag",
    "split_inverse",
    "SelectedNode",
    "SelectedEdge",
    "SelectionGraph",
]
