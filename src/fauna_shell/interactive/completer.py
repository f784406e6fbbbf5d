import re

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .session import SessionState

_TRAILING_NAME_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*$")


class ShellCompleter(Completer):
    """
    Suggests meta-command names after a leading `.` and binding names
    (the FQL helpers) everywhere else.
    """

    def __init__(self, state: SessionState):
        self.state = state

    def get_completions(self, document: Document, complete_event):
        text_before_cursor = document.text_before_cursor

        # --- CONTEXT 1: Meta-command completion, e.g. `.la` ---
        stripped = text_before_cursor.lstrip()
        if stripped.startswith(".") and " " not in stripped:
            prefix = stripped[1:]
            for name in self.state.commands.names if self.state.commands else []:
                if name.startswith(prefix):
                    yield Completion(text=name, start_position=-len(prefix))
            return

        # --- CONTEXT 2: Helper names inside an expression ---
        match = _TRAILING_NAME_RE.search(text_before_cursor)
        if not match:
            return
        word = match.group(0)
        for name in sorted(self.state.bindings):
            if name.startswith(word):
                yield Completion(
                    text=name, start_position=-len(word), display_meta="FQL"
                )
