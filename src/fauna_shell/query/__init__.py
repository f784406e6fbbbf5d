from .codec import FaunaDate, FaunaTime, QueryValue, Ref, SetRef, decode
from .expr import Expr, to_wire
from .functions import BINDINGS

__all__ = [
    "BINDINGS",
    "Expr",
    "FaunaDate",
    "FaunaTime",
    "QueryValue",
    "Ref",
    "SetRef",
    "decode",
    "to_wire",
]
