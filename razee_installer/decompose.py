"""Flatten manifest trees into individual resource documents."""

from collections.abc import Iterator, Sequence
from enum import Enum
from typing import Any

_EXHAUSTED = object()


class NodeShape(Enum):
    """Shapes a manifest tree node can take."""

    SEQUENCE = "sequence"
    LIST_WRAPPER = "list"
    OBJECT = "object"
    EMPTY = "empty"


def _is_sequence(node: Any) -> bool:
    return isinstance(node, Sequence) and not isinstance(node, (str, bytes, bytearray))


def classify(node: Any) -> NodeShape:
    """
    Classify a manifest tree node.

    Args:
        node: Parsed YAML/JSON node

    Returns:
        The node's shape
    """
    if _is_sequence(node):
        return NodeShape.SEQUENCE
    if isinstance(node, dict):
        if not node:
            return NodeShape.EMPTY
        kind = node.get("kind")
        if isinstance(kind, str) and kind.lower() == "list" and _is_sequence(node.get("items")):
            return NodeShape.LIST_WRAPPER
        return NodeShape.OBJECT
    return NodeShape.EMPTY


def decompose(node: Any) -> Iterator[dict[str, Any]]:
    """
    Lazily yield every resource document in a manifest tree.

    Sequences and `kind: List` wrappers are expanded depth-first, left to right.
    A List wrapper's own apiVersion/metadata are dropped. Empty nodes yield
    nothing. Nesting depth is bounded only by memory.

    Args:
        node: A single document, a sequence of nodes, or a List wrapper

    Yields:
        Resource documents in source order
    """
    stack: list[Iterator[Any]] = [iter((node,))]
    while stack:
        child = next(stack[-1], _EXHAUSTED)
        if child is _EXHAUSTED:
            stack.pop()
            continue

        shape = classify(child)
        if shape is NodeShape.SEQUENCE:
            stack.append(iter(child))
        elif shape is NodeShape.LIST_WRAPPER:
            stack.append(iter(child["items"]))
        elif shape is NodeShape.OBJECT:
            yield child

