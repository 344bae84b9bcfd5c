from __future__ import annotations


class GeneDiveError(Exception):
    """Base class for every error that aborts a GeneDive batch."""


class ConfigurationError(GeneDiveError):
    pass


class ToolUnavailableError(GeneDiveError):
    def __init__(self, tool: str, reason: str) -> None:
        super().__init__(f"Required tool unavailable: {tool} ({reason})")
        self.tool = tool
        self.reason = reason


class StageFailure(GeneDiveError):
    def __init__(
        self,
        stage: str,
        command: list[str],
        returncode: int,
        stderr_tail: str = "",
    ) -> None:
        super().__init__(f"Error executing {command[0] if command else stage}")
        self.stage = stage
        self.command = list(command)
        self.returncode = returncode
        self.stderr_tail = stderr_tail


class ParseFailure(GeneDiveError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Could not parse tree {path}: {reason}")
        self.path = path
        self.reason = reason
