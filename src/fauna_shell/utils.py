import os
import sys
from pathlib import Path

# --- Centralized Path Constant ---
SHELL_HOME = Path(os.getenv("FAUNA_SHELL_HOME", Path.home() / ".fauna-shell"))


def get_pkg_root() -> Path:
    """
    Gets the root directory of the fauna_shell package. This works correctly
    whether running from source or as a frozen PyInstaller executable.
    """
    if getattr(sys, "frozen", False):
        return Path(sys._MEIPASS) / "fauna_shell"
    else:
        return Path(__file__).parent


def get_history_path() -> Path:
    """Returns the prompt history file, creating its directory on demand."""
    SHELL_HOME.mkdir(parents=True, exist_ok=True)
    return SHELL_HOME / "history"
