"""Conversation state: the turn log and attached file contexts for one session."""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from fastgpt.errors import FileNotInContext

logger = logging.getLogger(__name__)


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    role: Role
    content: str


@dataclass(frozen=True)
class FileContext:
    path: str      # as typed by the user (or joined onto it for directory children)
    content: str   # snapshot taken when the file was added


@dataclass(frozen=True)
class RequestPayload:
    """Everything sent for one question. Built by ConversationState.assemble_request_payload."""

    files: tuple[FileContext, ...]
    messages: tuple[Turn, ...]

    @property
    def question(self) -> str:
        return self.messages[-1].content if self.messages else ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": [{"path": f.path, "content": f.content} for f in self.files],
            "messages": [{"role": t.role.value, "content": t.content} for t in self.messages],
        }

    def to_query(self, history_limit: int = 0) -> str:
        """
        Render the payload as the single query string the FastGPT API accepts.
        A lone question with no files is sent verbatim.
        """
        prior = list(self.messages[:-1])
        if history_limit > 0:
            prior = prior[-history_limit:]

        if not self.files and not prior:
            return self.question

        sections = []
        if self.files:
            lines = ["Attached files:"]
            for f in self.files:
                lines.append(f"--- {f.path} ---")
                lines.append(f.content.rstrip("\n"))
                lines.append(f"--- end {f.path} ---")
            sections.append("\n".join(lines))

        if prior:
            lines = ["Previous conversation context:"]
            for turn in prior:
                label = "User" if turn.role is Role.USER else "Assistant"
                lines.append(f"{label}: {turn.content}")
            sections.append("\n".join(lines))

        sections.append(f"Current question: {self.question}")
        return "\n\n".join(sections)


@dataclass
class ConversationState:
    turns: list[Turn] = field(default_factory=list)
    files: dict[str, FileContext] = field(default_factory=dict)

    def append_user_turn(self, text: str) -> None:
        self.turns.append(Turn(Role.USER, text))

    def append_assistant_turn(self, text: str) -> None:
        self.turns.append(Turn(Role.ASSISTANT, text))

    def clear_turns(self) -> None:
        logger.debug(f"clear_turns: dropping {len(self.turns)} turn(s)")
        self.turns.clear()

    def add_file(self, ctx: FileContext) -> bool:
        """Insert or replace a file context. Returns True if it replaced an existing entry."""
        replaced = ctx.path in self.files
        # Re-insert so a replaced file moves to the end of the listing
        self.files.pop(ctx.path, None)
        self.files[ctx.path] = ctx
        logger.debug(f"add_file: {ctx.path} ({len(ctx.content)} chars, replaced={replaced})")
        return replaced

    def remove_file(self, path: str) -> list[str]:
        """
        Remove one file, or every file added from the directory `path`.
        Returns the removed paths.
        """
        if path in self.files:
            removed = [path]
        else:
            prefix = path.rstrip("/" + os.sep) + os.sep
            removed = [p for p in self.files if p.startswith(prefix)]
        if not removed:
            raise FileNotInContext(path)
        for p in removed:
            del self.files[p]
        logger.debug(f"remove_file: {path} -> {len(removed)} removed")
        return removed

    def clear_files(self) -> None:
        logger.debug(f"clear_files: dropping {len(self.files)} file(s)")
        self.files.clear()

    def list_files(self) -> list[FileContext]:
        return list(self.files.values())

    def counts(self) -> tuple[int, int]:
        """(user turns, assistant turns)"""
        users = sum(1 for t in self.turns if t.role is Role.USER)
        return users, len(self.turns) - users

    def assemble_request_payload(self) -> RequestPayload:
        return RequestPayload(files=tuple(self.files.values()), messages=tuple(self.turns))
