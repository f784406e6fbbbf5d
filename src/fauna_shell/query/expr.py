import base64
from typing import Any, Dict


class Expr:
    """
    A single FQL expression, held as the raw dictionary of its wire form.

    The keys of `raw` are FQL function keys (e.g. `{"add": [1, 2]}`); its
    values may be nested `Expr` objects or plain Python values, which are
    encoded by `to_wire` when the query is sent.
    """

    def __init__(self, raw: Dict[str, Any]):
        self.raw = raw

    def to_wire(self) -> Dict[str, Any]:
        return {key: to_wire(value) for key, value in self.raw.items()}

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, Expr) and self.raw == other.raw

    def __hash__(self) -> int:
        return hash(repr(self))

    def __repr__(self) -> str:
        return f"Expr({self.raw!r})"


def to_wire(value: Any) -> Any:
    """
    Encodes a Python value into the JSON structure the service accepts.

    Plain dictionaries are user object literals and are wrapped in an
    `object` expression so their keys are never mistaken for function calls.
    """
    if isinstance(value, Expr):
        return value.to_wire()
    if isinstance(value, dict):
        return {"object": {str(k): to_wire(v) for k, v in value.items()}}
    if isinstance(value, (list, tuple)):
        return [to_wire(v) for v in value]
    if isinstance(value, (bytes, bytearray)):
        return {"@bytes": base64.urlsafe_b64encode(bytes(value)).decode("ascii")}
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    raise TypeError(f"Cannot encode value of type {type(value).__name__} in a query.")
