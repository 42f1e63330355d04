"""Slash-command registry and input classification."""

from dataclasses import dataclass
from enum import Enum


class CommandName(str, Enum):
    EXIT = "exit"
    CLEAR = "clear"
    HISTORY = "history"
    HELP = "help"
    ADD_FILE = "add-file"
    REMOVE_FILE = "remove-file"
    LIST_FILES = "list-files"
    CLEAR_FILES = "clear-files"


@dataclass(frozen=True)
class CommandDef:
    name: CommandName
    usage: str                      # shown in /help
    description: str
    aliases: tuple[str, ...]        # literal words that select this command
    takes_arg: bool = False


COMMANDS: list[CommandDef] = [
    CommandDef(CommandName.EXIT, "/exit or /quit", "Exit the session", ("/exit", "/quit")),
    CommandDef(CommandName.CLEAR, "/clear", "Clear conversation history and screen", ("/clear",)),
    CommandDef(CommandName.HISTORY, "/history", "Show conversation history", ("/history",)),
    CommandDef(CommandName.HELP, "/help", "Show this help", ("/help",)),
    CommandDef(
        CommandName.ADD_FILE, "/add-file <path>", "Attach a file or directory as context",
        ("/add-file",), takes_arg=True,
    ),
    CommandDef(
        CommandName.REMOVE_FILE, "/remove-file <path>", "Detach a file from the context",
        ("/remove-file",), takes_arg=True,
    ),
    CommandDef(CommandName.LIST_FILES, "/list-files", "List attached files", ("/list-files",)),
    CommandDef(CommandName.CLEAR_FILES, "/clear-files", "Detach all files", ("/clear-files",)),
]

_command_index: dict[str, CommandDef] = {alias: c for c in COMMANDS for alias in c.aliases}


class InputKind(str, Enum):
    EMPTY = "empty"
    COMMAND = "command"
    UNKNOWN_COMMAND = "unknown_command"
    QUESTION = "question"


@dataclass(frozen=True)
class Classified:
    kind: InputKind
    text: str                           # trimmed input line
    command: CommandDef | None = None
    arg: str = ""


def classify(line: str) -> Classified:
    """
    Sort one input line into empty / command / unknown command / question.
    Command words match case-sensitively; a command that takes no argument
    does not match when followed by extra text.
    """
    text = line.strip()
    if not text:
        return Classified(InputKind.EMPTY, text)
    if not text.startswith("/"):
        return Classified(InputKind.QUESTION, text)

    parts = text.split(maxsplit=1)
    word = parts[0]
    arg = parts[1].strip() if len(parts) > 1 else ""
    command = _command_index.get(word)
    if command is None or (arg and not command.takes_arg):
        return Classified(InputKind.UNKNOWN_COMMAND, text)
    return Classified(InputKind.COMMAND, text, command, arg)
