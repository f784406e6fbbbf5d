from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

import structlog

from ..errors import EvaluationError, ShellError
from .nodes import Node, evaluate

logger = structlog.get_logger(__name__)


@dataclass
class ExecutionOutcome:
    """
    The result of running one logical input.

    On success `value` holds the result (a list of results when the input had
    several statements). On failure `error` is set, `failed_index` is the
    zero-based statement that failed, and `completed` keeps the results of the
    statements that ran before it.
    """

    value: Any = None
    error: Optional[ShellError] = None
    completed: List[Any] = field(default_factory=list)
    failed_index: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class QueryExecutor:
    """Evaluates statements against a scope and sends them, in order, to one connection."""

    def __init__(self, connection: Any):
        self.connection = connection

    async def execute(
        self, nodes: Sequence[Node], scope: Mapping[str, Any]
    ) -> ExecutionOutcome:
        results: List[Any] = []
        for index, node in enumerate(nodes):
            log = logger.bind(statement=index + 1, statement_count=len(nodes))
            log.debug("executor.statement.begin", node_type=type(node).__name__)
            try:
                expression = evaluate(node, scope)
                result = await self.connection.query(expression)
            except ShellError as e:
                log.info("executor.statement.failed", error_kind=e.kind, error=e.message)
                return ExecutionOutcome(error=e, completed=results, failed_index=index)
            except Exception as e:
                log.error("executor.statement.crashed", error=str(e), exc_info=True)
                error = EvaluationError(f"{type(e).__name__}: {e}")
                return ExecutionOutcome(
                    error=error, completed=results, failed_index=index
                )
            results.append(result)

        value = results[0] if len(results) == 1 else results
        return ExecutionOutcome(value=value, completed=results)
