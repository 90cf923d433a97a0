"""
Exception taxonomy for the build pipeline

    ZsError
    ├── ParseError            malformed front matter
    │   └── UnterminatedMacro
    ├── RenderError           template, stylesheet or partial failures
    └── CommandError
        ├── CommandNotFound   tolerated by the macro expander
        └── CommandFailed     aborts the document being built

File I/O problems surface as the builtin OSError.
"""

from typing import List, Optional


class ZsError(Exception):
    """Base class for all build errors"""
    pass


class ParseError(ZsError):
    """Raised when a document's front matter or macros cannot be parsed"""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class UnterminatedMacro(ParseError):
    """Raised when an opening macro delimiter has no closing delimiter"""

    def __init__(self, position: int, snippet: str, path: Optional[str] = None) -> None:
        self.position = position
        self.snippet = snippet
        super().__init__(f"Unterminated macro at offset {position}: {snippet!r}", path)


class RenderError(ZsError):
    """Raised when a template, stylesheet or partial fails to render"""
    pass


class CommandError(ZsError):
    """Base class for macro command failures"""

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        super().__init__(f"{name}: {message}")


class CommandNotFound(CommandError):
    """No partial, plugin or PATH executable matches the command name"""

    def __init__(self, name: str) -> None:
        super().__init__(name, "command not found")


class CommandFailed(CommandError):
    """
    The command was found but did not complete successfully

    Attributes:
        name: Command name as written in the macro
        args: Arguments passed to the command
        returncode: Exit status, or None if the program could not be started
        stderr: Captured standard error (may be empty)
    """

    def __init__(
        self,
        name: str,
        args: List[str],
        returncode: Optional[int],
        stderr: str = "",
        reason: Optional[str] = None,
    ) -> None:
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        if reason is None:
            reason = f"exited with status {returncode}"
        super().__init__(name, reason)
