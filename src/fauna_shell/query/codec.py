"""Decoding of the tagged values the service embeds in query responses."""

import base64
from dataclasses import dataclass
from typing import Any, Optional

# Native schema refs are printed with the helper that would build them.
_NATIVE_CONSTRUCTORS = {
    "collections": "Collection",
    "databases": "Database",
    "indexes": "Index",
    "functions": "Function",
    "roles": "Role",
    "keys": "Key",
    "tokens": "Token",
    "credentials": "Credential",
    "access_providers": "AccessProvider",
}


@dataclass(frozen=True)
class Ref:
    id: str
    collection: Optional["Ref"] = None
    database: Optional["Ref"] = None

    def __repr__(self) -> str:
        scope = f", {self.database!r}" if self.database else ""
        if self.collection is None:
            constructor = "".join(part.title() for part in self.id.split("_"))
            return f"{constructor}({scope.lstrip(', ')})"
        if self.collection.collection is None and self.collection.id in _NATIVE_CONSTRUCTORS:
            return f'{_NATIVE_CONSTRUCTORS[self.collection.id]}("{self.id}"{scope})'
        return f'Ref({self.collection!r}, "{self.id}"{scope})'


@dataclass(frozen=True)
class FaunaTime:
    value: str

    def __repr__(self) -> str:
        return f'Time("{self.value}")'


@dataclass(frozen=True)
class FaunaDate:
    value: str

    def __repr__(self) -> str:
        return f'Date("{self.value}")'


@dataclass(frozen=True)
class SetRef:
    value: Any

    def __repr__(self) -> str:
        return f"SetRef({self.value!r})"


@dataclass(frozen=True)
class QueryValue:
    value: Any

    def __repr__(self) -> str:
        return f"Query({self.value!r})"


def decode(value: Any) -> Any:
    """Recursively replaces `@`-tagged objects with their Python values."""
    if isinstance(value, list):
        return [decode(v) for v in value]
    if not isinstance(value, dict):
        return value
    if len(value) == 1:
        tag, inner = next(iter(value.items()))
        if tag == "@ref":
            return _decode_ref(inner)
        if tag == "@obj":
            return {k: decode(v) for k, v in inner.items()}
        if tag == "@ts":
            return FaunaTime(inner)
        if tag == "@date":
            return FaunaDate(inner)
        if tag == "@set":
            return SetRef(decode(inner))
        if tag == "@bytes":
            return base64.urlsafe_b64decode(inner)
        if tag == "@query":
            return QueryValue(decode(inner))
    return {k: decode(v) for k, v in value.items()}


def _decode_ref(inner: Any) -> Ref:
    if not isinstance(inner, dict):
        return Ref(str(inner))
    collection = decode(inner["collection"]) if "collection" in inner else None
    database = decode(inner["database"]) if "database" in inner else None
    return Ref(inner["id"], collection=collection, database=database)
