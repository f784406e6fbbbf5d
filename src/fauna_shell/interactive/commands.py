from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Iterable, Iterator, Mapping, Optional

# Built-ins the shell keeps from a conventional REPL command set.
ALLOWED_BUILTINS = ("break", "exit", "help")

# Built-ins that would load local files, open an editor, write files, or
# silently reset session state. They are never registered.
DENIED_BUILTINS = frozenset({"load", "editor", "save", "clear"})


@dataclass(frozen=True)
class MetaCommand:
    """A shell-local command, invoked as `.name`, that never reaches the service."""

    name: str
    help: str
    action: Callable[[], None]


class CommandRegistry:
    """A read-only table of the meta-commands available in a session."""

    def __init__(
        self,
        builtins: Iterable[MetaCommand],
        custom: Iterable[MetaCommand] = (),
        allowed: Iterable[str] = ALLOWED_BUILTINS,
        denied: Iterable[str] = DENIED_BUILTINS,
    ):
        allowed, denied = set(allowed), set(denied)
        commands = {
            cmd.name: cmd
            for cmd in builtins
            if cmd.name in allowed and cmd.name not in denied
        }
        # Custom commands may reuse a denied built-in's name with their own action.
        for cmd in custom:
            commands[cmd.name] = cmd
        self._commands: Mapping[str, MetaCommand] = MappingProxyType(
            dict(sorted(commands.items()))
        )

    def get(self, name: str) -> Optional[MetaCommand]:
        return self._commands.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __iter__(self) -> Iterator[MetaCommand]:
        return iter(self._commands.values())

    def __len__(self) -> int:
        return len(self._commands)

    @property
    def names(self):
        return list(self._commands)
