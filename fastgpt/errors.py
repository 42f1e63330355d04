"""Error taxonomy. Every error the session loop can report derives from FastGPTError."""


class FastGPTError(Exception):
    """Base class for errors reported to the user without ending the session."""


# ---------------------------------------------------------------------------
# File context
# ---------------------------------------------------------------------------

class FileContextError(FastGPTError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class PathNotFound(FileContextError):
    def __init__(self, path: str):
        super().__init__(path, "no such file or directory")


class UnsupportedFileType(FileContextError):
    def __init__(self, path: str, extension: str):
        super().__init__(path, f"unsupported file type '{extension or '(none)'}'")
        self.extension = extension


class DecodeError(FileContextError):
    pass


class FileTooLarge(FileContextError):
    def __init__(self, path: str, size: int, limit: int):
        super().__init__(path, f"file is {size} bytes, limit is {limit}")
        self.size = size
        self.limit = limit


class FileNotInContext(FastGPTError):
    def __init__(self, path: str):
        super().__init__(f"{path} is not in the file context")
        self.path = path


class UnknownCommand(FastGPTError):
    def __init__(self, command: str):
        super().__init__(f"Unknown command: {command}. Type /help for available commands.")
        self.command = command


# ---------------------------------------------------------------------------
# Query executor
# ---------------------------------------------------------------------------

class QueryError(FastGPTError):
    pass


class AuthError(QueryError):
    pass


class NetworkError(QueryError):
    pass


class ServerError(QueryError):
    def __init__(self, status: int, body: str):
        super().__init__(f"API request failed with status {status}: {body}")
        self.status = status
        self.body = body


class MalformedResponse(QueryError):
    pass


class ConfigIoError(FastGPTError):
    pass


class RenderError(FastGPTError):
    pass
