import functools
import logging
import sys
from typing import Optional

import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.traceback import Traceback

from fauna_shell.connection import resolve_connection_options
from fauna_shell.errors import ShellError
from fauna_shell.interactive.main import start_repl
from fauna_shell.state import APP_STATE


def setup_logging(verbose: bool):
    """
    Configures structlog for the entire application.
    - Default level: INFO (clean user output)
    - Verbose level: DEBUG (for power users)
    - All logs are routed to stderr to keep stdout clean for query results.
    """
    log_level = logging.DEBUG if verbose else logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    root_logger = logging.getLogger()
    # Clear any other handlers that might have been added by libraries
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.addHandler(logging.StreamHandler(sys.stderr))
    root_logger.setLevel(log_level)
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def handle_exceptions(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        console = Console(stderr=True)
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except Exception as e:
            message = e.message if isinstance(e, ShellError) else str(e)
            console.print(f"[bold red]Error:[/bold red] {escape(message)}")
            # Read from the central state object
            if APP_STATE.verbose_mode:
                console.print(
                    Traceback.from_exception(
                        type(e), e, e.__traceback__, show_locals=True
                    )
                )
            raise typer.Exit(code=1)

    return wrapper


# --- Main Application Definition ---
app = typer.Typer(
    name="fauna-shell",
    help="An interactive shell for running FQL queries against a Fauna database.",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose DEBUG logging for detailed tracebacks.",
    ),
):
    APP_STATE.verbose_mode = verbose
    setup_logging(verbose)


@app.command()
@handle_exceptions
def shell(
    dbname: Optional[str] = typer.Argument(
        None, help="Name of the child database to open the shell in."
    ),
    secret: Optional[str] = typer.Option(
        None, "--secret", help="Secret used to authenticate. [env: FAUNA_SECRET]"
    ),
    domain: Optional[str] = typer.Option(
        None, "--domain", help="Fauna server domain. [env: FAUNA_DOMAIN]"
    ),
    scheme: Optional[str] = typer.Option(
        None, "--scheme", help="Connection scheme, http or https. [env: FAUNA_SCHEME]"
    ),
    port: Optional[int] = typer.Option(
        None, "--port", help="Connection port. [env: FAUNA_PORT]"
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each query. Unset means wait forever. [env: FAUNA_TIMEOUT]",
    ),
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", help="Named endpoint from the shell config file."
    ),
):
    """
    Starts a Fauna shell.

    Example: `fauna-shell shell dbname`
    """
    options = resolve_connection_options(
        {
            "secret": secret,
            "domain": domain,
            "scheme": scheme,
            "port": port,
            "timeout": timeout,
        },
        endpoint=endpoint,
    )
    start_repl(options, dbname)


if __name__ == "__main__":
    app()
