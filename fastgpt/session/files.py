"""File context loader: resolves a path to text snapshots attached to the conversation."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from fastgpt.errors import (
    DecodeError,
    FileContextError,
    FileTooLarge,
    PathNotFound,
    UnsupportedFileType,
)
from fastgpt.session.state import FileContext

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = frozenset({
    # text
    "txt", "md",
    # code
    "rs", "py", "js", "ts", "html", "css",
    # config
    "json", "xml", "yml", "yaml", "toml",
    # scripts
    "sh", "bat",
})

DEFAULT_MAX_FILE_BYTES = 1_000_000


@dataclass
class LoadResult:
    loaded: list[FileContext] = field(default_factory=list)
    failures: list[FileContextError] = field(default_factory=list)


def _extension(path: str) -> str:
    return Path(path).suffix.lower().lstrip(".")


def _read_text(real_path: str, path: str, max_bytes: int) -> FileContext:
    """Read one file. Errors and the returned context carry `path`, the name shown to the user."""
    ext = _extension(real_path)
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileType(path, ext)

    try:
        size = os.path.getsize(real_path)
        if size > max_bytes:
            raise FileTooLarge(path, size, max_bytes)
        raw = Path(real_path).read_bytes()
    except FileNotFoundError as e:
        # Dangling symlinks, or files removed mid-walk
        raise PathNotFound(path) from e
    except OSError as e:
        raise DecodeError(path, f"could not read file: {e.strerror or e}") from e

    if b"\x00" in raw:
        raise DecodeError(path, "file looks binary")
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(path, f"not valid UTF-8 text ({e.reason} at byte {e.start})") from e

    return FileContext(path=path, content=content)


def _walk(root: str) -> list[str]:
    """All non-hidden files below root, recursively, in sorted order."""
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        found.extend(os.path.join(dirpath, name) for name in filenames if not name.startswith("."))
    return sorted(found)


def load_path(path: str, max_bytes: int = DEFAULT_MAX_FILE_BYTES) -> LoadResult:
    """
    Load a file or directory into file contexts.

    A single file either loads or raises its FileContextError.
    A directory is walked recursively; per-file failures are collected in
    the result instead of aborting the rest of the walk.
    """
    expanded = os.path.expanduser(path)

    if os.path.isfile(expanded):
        ctx = _read_text(expanded, path, max_bytes)
        logger.debug(f"load_path: {path} -> 1 file, {len(ctx.content)} chars")
        return LoadResult(loaded=[ctx])

    if not os.path.isdir(expanded):
        raise PathNotFound(path)

    result = LoadResult()
    for full in _walk(expanded):
        # Children are named relative to the path the user typed
        shown = os.path.join(path, os.path.relpath(full, expanded))
        try:
            result.loaded.append(_read_text(full, shown, max_bytes))
        except FileContextError as e:
            result.failures.append(e)

    logger.debug(
        f"load_path: {path} -> {len(result.loaded)} loaded, {len(result.failures)} failed"
    )
    return result
