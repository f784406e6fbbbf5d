from ast import literal_eval
from dataclasses import dataclass
from typing import Tuple, Union

import structlog
from lark import Lark, Transformer, v_args
from lark.exceptions import (
    UnexpectedCharacters,
    UnexpectedEOF,
    UnexpectedInput,
    UnexpectedToken,
    VisitError,
)

from ..errors import IncompleteInput, QuerySyntaxError
from ..utils import get_pkg_root
from .nodes import ArrayNode, Call, Identifier, Literal, Node, ObjectNode

logger = structlog.get_logger(__name__)

_QUOTES = ("'", '"')


@dataclass(frozen=True)
class Parsed:
    """A successful parse: one or more statements, in source order."""

    nodes: Tuple[Node, ...]


ParseResult = Union[Parsed, IncompleteInput, QuerySyntaxError]


def is_blank(text: str) -> bool:
    """True for input made only of whitespace and `//` comments."""
    for line in text.split("\n"):
        stripped = line.strip()
        if stripped and not stripped.startswith("//"):
            return False
    return True


def _decode_string(token: str) -> str:
    # Strings may span buffered lines; literal_eval rejects raw newlines.
    escaped = token.replace("\r", "\\r").replace("\n", "\\n")
    try:
        return literal_eval(escaped)
    except (SyntaxError, ValueError) as e:
        raise QuerySyntaxError(f"Invalid string literal {token}: {e}") from e


@v_args(inline=True)
class NodeTransformer(Transformer):
    """Transforms the Lark parse tree into immutable expression nodes."""

    def start(self, *statements):
        return tuple(statements)

    def call(self, name, *args):
        return Call(name.value, tuple(args))

    def identifier(self, name):
        return Identifier(name.value)

    def string(self, token):
        return Literal(_decode_string(token.value))

    def number(self, token):
        text = token.value
        if any(c in text for c in ".eE"):
            return Literal(float(text))
        return Literal(int(text))

    def true(self, *_):
        return Literal(True)

    def false(self, *_):
        return Literal(False)

    def null(self, *_):
        return Literal(None)

    def array(self, *items):
        return ArrayNode(tuple(items))

    def object(self, *pairs):
        return ObjectNode(tuple(pairs))

    def pair(self, key, value):
        if key.type == "STRING":
            return (_decode_string(key.value), value)
        return (key.value, value)


class ExpressionParser:
    """
    Turns raw shell input into statements, or tells the caller the input is
    incomplete, or reports a syntax error. Parsing never executes anything.
    """

    def __init__(self):
        grammar_path = get_pkg_root() / "interactive" / "grammar" / "fql.lark"
        with open(grammar_path, "r", encoding="utf-8") as f:
            self.parser = Lark(f.read(), start="start", parser="lalr")
        self.transformer = NodeTransformer()

    def parse(self, text: str) -> ParseResult:
        if is_blank(text):
            return QuerySyntaxError("Empty statement.")
        return self._parse(text, retry_unterminated=True)

    def _parse(self, text: str, retry_unterminated: bool) -> ParseResult:
        try:
            tree = self.parser.parse(text)
        except UnexpectedEOF:
            return IncompleteInput()
        except UnexpectedToken as e:
            if e.token.type == "$END":
                return IncompleteInput()
            return QuerySyntaxError(
                f"Unexpected '{e.token}' at line {e.line}, column {e.column}.\n"
                f"{e.get_context(text).rstrip()}",
                line=e.line,
                column=e.column,
            )
        except UnexpectedCharacters as e:
            if e.char in _QUOTES:
                # An unterminated string literal: it is only incomplete if
                # closing it leaves a valid (possibly still open) statement.
                if not retry_unterminated:
                    return IncompleteInput()
                closed = self._parse(text + e.char, retry_unterminated=False)
                if isinstance(closed, QuerySyntaxError):
                    return closed
                return IncompleteInput()
            return QuerySyntaxError(
                f"Unexpected character '{e.char}' at line {e.line}, column {e.column}.\n"
                f"{e.get_context(text).rstrip()}",
                line=e.line,
                column=e.column,
            )
        except UnexpectedInput as e:
            return QuerySyntaxError(
                f"Invalid input at line {e.line}, column {e.column}.",
                line=e.line,
                column=e.column,
            )

        try:
            nodes = self.transformer.transform(tree)
        except VisitError as e:
            original_exc = getattr(e, "orig_exc", e)
            if isinstance(original_exc, QuerySyntaxError):
                return original_exc
            raise
        logger.debug("parser.parsed", statement_count=len(nodes))
        return Parsed(nodes)
