"""Interactive session loop: read a line, classify it, run it, render, repeat."""

import logging
import time
import uuid
from enum import Enum
from functools import partial
from typing import Callable, Protocol

from rich.console import Console

# Console.input picks up readline for line editing and in-session history
try:
    import readline  # noqa: F401
except ImportError:
    readline = None  # Windows

from fastgpt import render
from fastgpt.client import QueryResult
from fastgpt.config import SessionConfig
from fastgpt.errors import FastGPTError, RenderError, UnknownCommand
from fastgpt.session.commands import COMMANDS, Classified, InputKind, classify
from fastgpt.session.files import load_path
from fastgpt.session.state import ConversationState, RequestPayload

logger = logging.getLogger(__name__)

PROMPT = "[bold bright_green]>[/bold bright_green] "


class LoopState(str, Enum):
    AWAITING_INPUT = "awaiting_input"
    CLASSIFYING = "classifying"
    DISPATCHING = "dispatching"
    LOCAL_COMMAND = "local_command"
    RENDERING = "rendering"
    EXITED = "exited"


_TRANSITIONS: dict[LoopState, set[LoopState]] = {
    LoopState.AWAITING_INPUT: {LoopState.CLASSIFYING, LoopState.EXITED},
    LoopState.CLASSIFYING: {LoopState.AWAITING_INPUT, LoopState.DISPATCHING, LoopState.LOCAL_COMMAND, LoopState.RENDERING},
    LoopState.LOCAL_COMMAND: {LoopState.RENDERING, LoopState.EXITED},
    LoopState.DISPATCHING: {LoopState.RENDERING},
    LoopState.RENDERING: {LoopState.AWAITING_INPUT},
    LoopState.EXITED: set(),
}


class QueryExecutor(Protocol):
    def ask(self, payload: RequestPayload, *, cache: bool = True, references: bool = True,
            history_limit: int = 0) -> QueryResult: ...


Renderer = Callable[[], None]


class Session:
    """
    One run of the interactive loop.

    Lines are processed strictly one at a time: a question's network call
    completes (or fails) before the next line is read. The loop state only
    moves along _TRANSITIONS; anything else is a bug and raises.
    """

    def __init__(
        self,
        config: SessionConfig,
        executor: QueryExecutor,
        console: Console | None = None,
        read_line: Callable[[], str] | None = None,
    ):
        self.id = str(uuid.uuid4())
        self.config = config
        self.executor = executor
        self.console = console or Console()
        self.read_line = read_line or partial(self.console.input, PROMPT)
        self.state = ConversationState()
        self.loop_state = LoopState.AWAITING_INPUT

    def _enter(self, new: LoopState) -> None:
        if new not in _TRANSITIONS[self.loop_state]:
            raise RuntimeError(f"invalid loop transition {self.loop_state.value} -> {new.value}")
        self.loop_state = new

    # ------------------------------------------------------------------
    # Driving the loop
    # ------------------------------------------------------------------

    def run(self) -> int:
        """Run until /exit, /quit or EOF. Returns the process exit code."""
        render.print_banner(self.console, self.id, COMMANDS)
        logger.debug(f"session {self.id}: started")

        while self.loop_state is not LoopState.EXITED:
            try:
                line = self.read_line()
            except KeyboardInterrupt:
                self.console.print()
                render.print_notice(self.console, "Use /exit or /quit to exit.")
                continue
            except EOFError:
                self.console.print()
                render.print_notice(self.console, "Goodbye!", "bright_green")
                self._enter(LoopState.EXITED)
                break
            self.handle_line(line)

        logger.debug(f"session {self.id}: exited after {len(self.state.turns)} turn(s)")
        return 0

    def handle_line(self, line: str) -> LoopState:
        """Process one input line completely. Returns AWAITING_INPUT or EXITED."""
        self._enter(LoopState.CLASSIFYING)
        classified = classify(line)
        logger.debug(f"session {self.id}: classified {classified.kind.value} {classified.text[:60]!r}")

        if classified.kind is InputKind.EMPTY:
            self._enter(LoopState.AWAITING_INPUT)
            return self.loop_state

        try:
            if classified.kind is InputKind.UNKNOWN_COMMAND:
                raise UnknownCommand(classified.text)
            if classified.kind is InputKind.COMMAND:
                self._enter(LoopState.LOCAL_COMMAND)
                output = self._run_command(classified)
            else:
                self._enter(LoopState.DISPATCHING)
                output = self._dispatch(classified.text)
        except FastGPTError as e:
            logger.debug(f"session {self.id}: {type(e).__name__}: {e}")
            output = partial(render.print_error, self.console, e)
        except Exception as e:
            logger.error(f"session {self.id}: unexpected {type(e).__name__} handling input: {e}")
            output = partial(render.print_error, self.console, e)

        if self.loop_state is LoopState.EXITED:
            return self.loop_state

        # Errors above may leave us in CLASSIFYING, LOCAL_COMMAND or DISPATCHING
        self._enter(LoopState.RENDERING)
        try:
            output()
        except Exception as e:
            logger.error(f"session {self.id}: rendering failed: {type(e).__name__}: {e}")
            render.print_error(self.console, RenderError(f"Could not display output: {e}"))
        self._enter(LoopState.AWAITING_INPUT)
        return self.loop_state

    # ------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------

    def ask(self, question: str) -> QueryResult:
        """
        Record the question, send it with the full context, record the answer.
        On a QueryError the user turn stays in the log unanswered.
        """
        self.state.append_user_turn(question)
        payload = self.state.assemble_request_payload()

        t0 = time.perf_counter()
        result = self.executor.ask(
            payload,
            cache=self.config.cache,
            references=self.config.references,
            history_limit=self.config.history_limit,
        )
        logger.debug(f"session {self.id}: answered in {time.perf_counter() - t0:.3f}s")

        self.state.append_assistant_turn(result.answer)
        return result

    def _dispatch(self, question: str) -> Renderer:
        result = self.ask(question)
        if self.config.json_mode:
            return partial(render.print_raw, self.console, result)
        return partial(render.print_response, self.console, result, question, self.config.references)

    # ------------------------------------------------------------------
    # Local commands
    # ------------------------------------------------------------------

    def _run_command(self, classified: Classified) -> Renderer:
        name = classified.command.name
        handler = getattr(self, f"_cmd_{name.value.replace('-', '_')}")
        if classified.command.takes_arg and not classified.arg:
            return partial(render.print_notice, self.console, f"Usage: {classified.command.usage}")
        return handler(classified.arg)

    def _cmd_exit(self, _arg: str) -> Renderer:
        render.print_notice(self.console, "Goodbye!", "bright_green")
        self._enter(LoopState.EXITED)
        return lambda: None

    def _cmd_clear(self, _arg: str) -> Renderer:
        self.state.clear_turns()

        def output() -> None:
            if self.console.is_terminal:
                self.console.clear()
            render.print_banner(self.console, self.id, COMMANDS)
            render.print_notice(self.console, "Conversation history cleared and screen reset.")

        return output

    def _cmd_history(self, _arg: str) -> Renderer:
        return partial(render.print_history, self.console, list(self.state.turns))

    def _cmd_help(self, _arg: str) -> Renderer:
        def output() -> None:
            self.console.print("[bold bright_yellow]Available commands:[/bold bright_yellow]")
            render.print_commands(self.console, COMMANDS)

        return output

    def _cmd_add_file(self, path: str) -> Renderer:
        result = load_path(path, self.config.max_file_bytes)
        for ctx in result.loaded:
            self.state.add_file(ctx)

        def output() -> None:
            for ctx in result.loaded:
                render.print_notice(self.console, f"Added {ctx.path} ({len(ctx.content)} chars)", "bright_green")
            for err in result.failures:
                render.print_error(self.console, err)
            if not result.loaded and not result.failures:
                render.print_notice(self.console, f"No supported files found in {path}")

        return output

    def _cmd_remove_file(self, path: str) -> Renderer:
        removed = self.state.remove_file(path)
        if removed == [path]:
            message = f"Removed {path}"
        else:
            message = f"Removed {len(removed)} file(s) under {path}"
        return partial(render.print_notice, self.console, message, "bright_green")

    def _cmd_list_files(self, _arg: str) -> Renderer:
        return partial(render.print_files, self.console, self.state.list_files())

    def _cmd_clear_files(self, _arg: str) -> Renderer:
        count = len(self.state.files)
        self.state.clear_files()
        return partial(render.print_notice, self.console, f"Cleared {count} file(s) from context.")
