from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from ..errors import ShellError

if TYPE_CHECKING:
    from .commands import CommandRegistry


class LoopState(Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    EVALUATING = "evaluating"
    CLOSED = "closed"


class SessionState:
    """
    The state of an interactive shell session.

    This object is created once when the shell starts and persists until the
    user exits. Only the session loop mutates it.
    """

    def __init__(
        self,
        connection: Any,
        bindings: Mapping[str, Any],
        scope_name: Optional[str] = None,
    ):
        # The client every statement of this session is sent to.
        self.connection = connection
        self.scope_name = scope_name

        # Helper names available as free identifiers in every statement.
        self.bindings: Mapping[str, Any] = MappingProxyType(dict(bindings))

        # The error produced by the most recent failed evaluation.
        self.last_error: Optional[ShellError] = None

        # Lines of a statement that is still incomplete.
        self.buffer: List[str] = []

        self.loop_state: LoopState = LoopState.IDLE
        self.commands: Optional["CommandRegistry"] = None

    @property
    def is_running(self) -> bool:
        return self.loop_state is not LoopState.CLOSED

    def evaluation_scope(self) -> Dict[str, Any]:
        """A fresh scope for one evaluation cycle."""
        return dict(self.bindings)

    def reset_buffer(self):
        self.buffer.clear()
        if self.loop_state is LoopState.ACCUMULATING:
            self.loop_state = LoopState.IDLE
