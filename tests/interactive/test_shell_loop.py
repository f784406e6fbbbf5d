import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from fauna_shell.connection import ConnectionOptions
from fauna_shell.errors import (
    EvaluationError,
    QuerySyntaxError,
    ServiceError,
    TransportError,
)
from fauna_shell.interactive.main import (
    CONTINUATION_PROMPT,
    ShellLoop,
    run_shell,
    start_repl,
)
from fauna_shell.interactive.output_handler import IOutputHandler
from fauna_shell.interactive.session import LoopState, SessionState
from fauna_shell.query import BINDINGS


def output_of(loop: ShellLoop) -> str:
    return loop.output_handler.console.file.getvalue()


async def feed(loop: ShellLoop, *lines: str):
    for line in lines:
        await loop.handle_line(line)


# --- Evaluation ---


@pytest.mark.asyncio
async def test_injected_helpers_evaluate(shell_loop, fake_connection):
    await shell_loop.handle_line("Add(1,2)")

    assert fake_connection.received_wire == [{"add": [1, 2]}]
    assert output_of(shell_loop).strip() == "3"
    assert shell_loop.state.loop_state is LoopState.IDLE
    assert shell_loop.state.last_error is None


@pytest.mark.asyncio
async def test_incomplete_input_enters_continuation_mode(shell_loop, fake_connection):
    await shell_loop.handle_line("Get(")

    assert shell_loop.state.loop_state is LoopState.ACCUMULATING
    assert shell_loop.state.buffer == ["Get("]
    assert shell_loop.prompt == CONTINUATION_PROMPT
    assert fake_connection.received == []

    await shell_loop.handle_line('Collection("x"))')

    assert fake_connection.received_wire == [{"get": {"collection": "x"}}]
    assert shell_loop.state.buffer == []
    assert shell_loop.state.loop_state is LoopState.IDLE
    assert shell_loop.prompt == "> "


@pytest.mark.asyncio
async def test_line_by_line_input_matches_whole_input(
    connection_factory, output_handler, recording_console
):
    lines = [
        "Create(",
        '  Collection("users"),',
        "",
        '  {data: {name: "Ada", langs: ["en", "fr"]}}',
        ")",
    ]
    by_line = connection_factory()
    whole = connection_factory()
    loop_by_line = ShellLoop(SessionState(by_line, BINDINGS), output_handler)
    loop_whole = ShellLoop(SessionState(whole, BINDINGS), output_handler)

    await feed(loop_by_line, *lines)
    await loop_whole.handle_line("".join(lines))

    assert by_line.received == whole.received
    assert len(by_line.received) == 1
    assert by_line.received_wire[0] == {
        "create": {"collection": "users"},
        "params": {
            "object": {
                "data": {"object": {"name": "Ada", "langs": ["en", "fr"]}}
            }
        },
    }


@pytest.mark.asyncio
async def test_multiple_statements_render_all_results(shell_loop, fake_connection):
    await shell_loop.handle_line("Add(1,2); Add(3,4)")

    assert fake_connection.received_wire == [{"add": [1, 2]}, {"add": [3, 4]}]
    assert output_of(shell_loop).strip() == "[3, 7]"


@pytest.mark.asyncio
async def test_blank_lines_are_ignored_when_idle(shell_loop, fake_connection):
    await feed(shell_loop, "", "   ", "// a comment")

    assert shell_loop.state.buffer == []
    assert shell_loop.state.loop_state is LoopState.IDLE
    assert fake_connection.received == []
    assert output_of(shell_loop) == ""


@pytest.mark.asyncio
async def test_syntax_errors_are_reported_immediately(shell_loop, fake_connection):
    await shell_loop.handle_line("Add(1,,2)")

    assert isinstance(shell_loop.state.last_error, QuerySyntaxError)
    assert shell_loop.state.buffer == []
    assert shell_loop.state.loop_state is LoopState.IDLE
    assert fake_connection.received == []
    assert output_of(shell_loop).startswith("Error: Unexpected ','")


@pytest.mark.asyncio
async def test_syntax_error_after_continuation_clears_the_buffer(shell_loop):
    await feed(shell_loop, "Add(1,", "2 3)")

    assert isinstance(shell_loop.state.last_error, QuerySyntaxError)
    assert shell_loop.state.buffer == []
    assert shell_loop.prompt == "> "


@pytest.mark.asyncio
async def test_service_rejection_shows_message_and_payload(
    connection_factory, output_handler
):
    payload = {
        "errors": [
            {
                "position": [],
                "code": "invalid expression",
                "description": "No form/function found, or invalid argument keys: { frob }.",
            }
        ]
    }

    def handler(wire):
        raise ServiceError.from_response(400, payload)

    loop = ShellLoop(SessionState(connection_factory(handler), BINDINGS), output_handler)

    await loop.handle_line("Now()")

    text = output_of(loop)
    assert text.startswith(
        "Error: No form/function found, or invalid argument keys: { frob }."
    )
    assert "'invalid expression'" in text
    assert "'position'" in text
    assert isinstance(loop.state.last_error, ServiceError)


@pytest.mark.asyncio
async def test_transport_errors_keep_the_loop_alive(connection_factory, output_handler):
    calls = []

    def handler(wire):
        calls.append(wire)
        if len(calls) == 1:
            raise TransportError("Could not reach https://db.fauna.com:443: boom")
        return sum(wire["add"])

    loop = ShellLoop(SessionState(connection_factory(handler), BINDINGS), output_handler)

    await loop.handle_line("Add(1,1)")
    assert loop.state.is_running
    assert isinstance(loop.state.last_error, TransportError)

    await loop.handle_line("Add(2,2)")
    assert output_of(loop).splitlines()[-1] == "4"


@pytest.mark.asyncio
async def test_unknown_identifiers_are_recorded(shell_loop):
    await shell_loop.handle_line("Frobnicate(1)")

    assert isinstance(shell_loop.state.last_error, EvaluationError)
    assert "Error: Frobnicate is not defined" in output_of(shell_loop)


# --- Meta-commands ---


@pytest.mark.asyncio
async def test_last_error_shows_the_error_from_the_failed_evaluation(
    connection_factory, mocker
):
    rejection = ServiceError("invalid ref", payload={"errors": []})

    def handler(wire):
        raise rejection

    output_handler = mocker.Mock(spec=IOutputHandler)
    loop = ShellLoop(SessionState(connection_factory(handler), BINDINGS), output_handler)

    await feed(loop, 'Get(Ref(Collection("x"), "1"))', ".last_error")

    assert loop.state.last_error is rejection
    shown = output_handler.show_last_error.call_args.args[0]
    assert shown is rejection


@pytest.mark.asyncio
async def test_last_error_is_replaced_by_the_next_failure(shell_loop):
    await shell_loop.handle_line("Frobnicate(1)")
    first = shell_loop.state.last_error
    await shell_loop.handle_line("Add(1,,2)")

    assert shell_loop.state.last_error is not first
    assert isinstance(shell_loop.state.last_error, QuerySyntaxError)


@pytest.mark.asyncio
async def test_successful_evaluations_keep_the_last_error(shell_loop):
    await shell_loop.handle_line("Frobnicate(1)")
    error = shell_loop.state.last_error
    await shell_loop.handle_line("Add(1,2)")

    assert shell_loop.state.last_error is error


@pytest.mark.asyncio
async def test_meta_commands_never_reach_the_service(shell_loop, fake_connection):
    await feed(shell_loop, ".help", ".last_error")

    assert fake_connection.received == []
    text = output_of(shell_loop)
    assert ".last_error" in text and ".clear" in text and ".exit" in text
    assert "No error has been recorded" in text


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["load", "editor", "save", "nope"])
async def test_denied_and_unknown_commands_are_rejected(shell_loop, name):
    await shell_loop.handle_line(f".{name}")

    assert output_of(shell_loop).strip() == "Invalid REPL keyword"
    assert name not in shell_loop.commands


@pytest.mark.asyncio
@pytest.mark.parametrize("line", [".load file.js", ".editor  main.fql", ".nope 1 2"])
async def test_commands_with_arguments_never_reach_the_parser(
    shell_loop, fake_connection, line
):
    await shell_loop.handle_line(line)

    assert output_of(shell_loop).strip() == "Invalid REPL keyword"
    assert shell_loop.state.last_error is None
    assert fake_connection.received == []


@pytest.mark.asyncio
async def test_known_commands_reject_arguments(shell_loop):
    await shell_loop.handle_line(".exit now")

    assert output_of(shell_loop).strip() == ".exit does not take arguments"
    assert shell_loop.state.is_running


@pytest.mark.asyncio
async def test_clear_clears_the_screen(session_state, mocker):
    output_handler = mocker.Mock(spec=IOutputHandler)
    loop = ShellLoop(session_state, output_handler)
    session_state.last_error = EvaluationError("kept")

    await loop.handle_line(".clear")

    output_handler.clear.assert_called_once_with()
    assert session_state.last_error is not None


@pytest.mark.asyncio
async def test_break_discards_the_partial_statement(shell_loop, fake_connection):
    await feed(shell_loop, "Get(", ".break", "Add(1,2)")

    assert shell_loop.state.buffer == []
    assert fake_connection.received_wire == [{"add": [1, 2]}]


@pytest.mark.asyncio
async def test_exit_closes_the_session(shell_loop, fake_connection):
    await feed(shell_loop, "Get(", ".exit", "Add(1,2)")

    assert shell_loop.state.loop_state is LoopState.CLOSED
    assert not shell_loop.state.is_running
    assert fake_connection.received == []


@pytest.mark.asyncio
async def test_failing_meta_command_does_not_crash_the_loop(session_state, mocker):
    output_handler = mocker.Mock(spec=IOutputHandler)
    output_handler.clear.side_effect = OSError("no terminal")
    loop = ShellLoop(session_state, output_handler)

    await loop.handle_line(".clear")

    error = output_handler.handle_error.call_args.args[0]
    assert isinstance(error, EvaluationError)
    assert "OSError" in error.message


# --- Session state ---


def test_bindings_are_read_only_and_scopes_are_fresh(session_state):
    with pytest.raises(TypeError):
        session_state.bindings["Add"] = None

    first, second = session_state.evaluation_scope(), session_state.evaluation_scope()
    first["Add"] = None
    assert second["Add"] is BINDINGS["Add"]
    assert session_state.bindings["Add"] is BINDINGS["Add"]


def test_prompt_names_the_scope(fake_connection, output_handler):
    loop = ShellLoop(SessionState(fake_connection, BINDINGS, scope_name="app"), output_handler)

    assert loop.prompt == "app> "


# --- Reading input ---


@pytest.mark.asyncio
async def test_run_reads_until_exit(shell_loop, fake_connection):
    prompt_session = MagicMock()
    prompt_session.prompt_async = AsyncMock(
        side_effect=["Get(", 'Collection("x"))', "Add(1,2)", ".exit"]
    )

    await shell_loop.run(prompt_session)

    prompts = [c.args[0] for c in prompt_session.prompt_async.call_args_list]
    assert prompts == ["> ", CONTINUATION_PROMPT, "> ", "> "]
    assert len(fake_connection.received) == 2
    assert not shell_loop.state.is_running


@pytest.mark.asyncio
async def test_ctrl_c_aborts_the_statement_and_ctrl_d_exits(shell_loop, fake_connection):
    prompt_session = MagicMock()
    prompt_session.prompt_async = AsyncMock(
        side_effect=["Get(", KeyboardInterrupt(), KeyboardInterrupt(), EOFError()]
    )

    await shell_loop.run(prompt_session)

    assert shell_loop.state.buffer == []
    assert shell_loop.state.loop_state is LoopState.CLOSED
    assert "(To exit, press Ctrl+D or type .exit)" in output_of(shell_loop)
    assert fake_connection.received == []


@pytest.mark.asyncio
async def test_no_local_timeout_while_awaiting_the_service(output_handler):
    """
    Known characteristic: an evaluation waits as long as the connection does.
    The loop stays in EVALUATING and reads nothing until the query resolves.
    """
    release = asyncio.Event()

    class StalledConnection:
        async def query(self, expression):
            await release.wait()
            return "done"

    loop = ShellLoop(SessionState(StalledConnection(), BINDINGS), output_handler)
    evaluation = asyncio.create_task(loop.handle_line("Now()"))

    await asyncio.sleep(0.05)
    assert not evaluation.done()
    assert loop.state.loop_state is LoopState.EVALUATING

    release.set()
    await evaluation
    assert loop.state.loop_state is LoopState.IDLE
    assert "'done'" in output_of(loop)


@pytest.mark.asyncio
async def test_run_shell_closes_connections_on_exit(fake_connection, mocker):
    service = mocker.Mock()
    service.get_client = AsyncMock(return_value=fake_connection)
    service.aclose = AsyncMock()
    mocker.patch("fauna_shell.interactive.main.console")
    prompt_session = MagicMock()
    prompt_session.prompt_async = AsyncMock(side_effect=[EOFError()])

    await run_shell(service, "app", prompt_session=prompt_session)

    service.get_client.assert_awaited_once_with("app")
    service.aclose.assert_awaited_once_with(fake_connection)


@pytest.mark.asyncio
async def test_interrupting_a_stalled_query_keeps_the_shell_alive(output_handler):
    class StalledConnection:
        async def query(self, expression):
            if expression == BINDINGS["Now"]():
                await asyncio.Event().wait()
            return 3

    loop = ShellLoop(SessionState(StalledConnection(), BINDINGS), output_handler)
    evaluation = asyncio.create_task(loop.handle_line("Now()"))
    await asyncio.sleep(0.05)

    # What asyncio.run does to the main task on SIGINT.
    evaluation.cancel()
    await evaluation

    assert loop.state.loop_state is LoopState.IDLE
    assert isinstance(loop.state.last_error, TransportError)
    assert loop.state.last_error.message == "Query interrupted"
    assert "Error: Query interrupted" in output_of(loop)

    await loop.handle_line("Add(1,2)")
    assert output_of(loop).splitlines()[-1] == "3"


def test_start_repl_exits_cleanly_on_keyboard_interrupt(mocker, capsys):
    mocker.patch("fauna_shell.interactive.main.ConnectionService")
    mocker.patch(
        "fauna_shell.interactive.main.run_shell",
        new=mocker.Mock(side_effect=KeyboardInterrupt()),
    )

    start_repl(ConnectionOptions(secret="fnA"), "app")

    assert "Exiting shell. Goodbye!" in capsys.readouterr().out
