from dataclasses import dataclass
from typing import Any, Mapping, Tuple, Union

from ..errors import EvaluationError


@dataclass(frozen=True)
class Literal:
    """A string, number, boolean or null."""

    value: Any


@dataclass(frozen=True)
class Identifier:
    """A free name, resolved against the evaluation scope."""

    name: str


@dataclass(frozen=True)
class Call:
    """A call like `Get(Collection("users"))`."""

    name: str
    args: Tuple["Node", ...] = ()


@dataclass(frozen=True)
class ArrayNode:
    items: Tuple["Node", ...] = ()


@dataclass(frozen=True)
class ObjectNode:
    pairs: Tuple[Tuple[str, "Node"], ...] = ()


Node = Union[Literal, Identifier, Call, ArrayNode, ObjectNode]


def evaluate(node: Node, scope: Mapping[str, Any]) -> Any:
    """
    Resolves a node into a query value.

    Identifiers and call targets are looked up in `scope` only, so the set of
    names available to a statement is exactly the mapping the caller passes.
    """
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, Identifier):
        if node.name not in scope:
            raise EvaluationError(f"{node.name} is not defined")
        return scope[node.name]
    if isinstance(node, ArrayNode):
        return [evaluate(item, scope) for item in node.items]
    if isinstance(node, ObjectNode):
        return {key: evaluate(value, scope) for key, value in node.pairs}
    if isinstance(node, Call):
        if node.name not in scope:
            raise EvaluationError(f"{node.name} is not defined")
        target = scope[node.name]
        if not callable(target):
            raise EvaluationError(f"{node.name} is not a function")
        args = [evaluate(arg, scope) for arg in node.args]
        try:
            return target(*args)
        except TypeError as e:
            raise EvaluationError(f"{node.name}: {e}") from e
    raise TypeError(f"Cannot evaluate object of type: {type(node).__name__}")
