from __future__ import annotations

import logging
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from .errors import StageFailure, ToolUnavailableError

logger = logging.getLogger("genedive.stages")


@dataclass
class StageResult:
    name: str
    command: list[str]
    returncode: int
    stdout: str
    stderr: str
    runtime_sec: float

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stderr_tail(self, n: int = 40) -> str:
        return _stderr_tail(self.stderr, n)

    def raise_for_status(self) -> "StageResult":
        if not self.ok:
            raise StageFailure(self.name, self.command, self.returncode, self.stderr_tail())
        return self


def _stderr_tail(stderr: str, n: int = 40) -> str:
    lines = stderr.strip().splitlines()
    if not lines:
        return ""
    return "\n".join(lines[-n:])


def run_stage(
    name: str,
    command: list[str],
    *,
    stdout_path: str | Path | None = None,
    input_text: str | None = None,
    cwd: str | Path | None = None,
    timeout_sec: float | None = None,
) -> StageResult:
    """Run one external command to completion and report its exit status.

    When ``stdout_path`` is given the child's stdout is streamed into that file
    and ``StageResult.stdout`` is empty; otherwise stdout is captured. A
    non-zero exit is reported, not raised: callers decide via
    ``raise_for_status``. A command that cannot be launched at all raises
    ``ToolUnavailableError``.
    """
    if not command:
        raise ValueError("Stage command is empty.")
    logger.debug("[%s] %s", name, shlex.join(command))
    started = time.perf_counter()
    try:
        if stdout_path is not None:
            out = Path(stdout_path)
            with out.open("w", encoding="utf-8") as handle:
                proc = subprocess.run(
                    command,
                    cwd=None if cwd is None else str(cwd),
                    input=input_text,
                    stdout=handle,
                    stderr=subprocess.PIPE,
                    text=True,
                    timeout=timeout_sec,
                )
            stdout = ""
        else:
            proc = subprocess.run(
                command,
                cwd=None if cwd is None else str(cwd),
                input=input_text,
                capture_output=True,
                text=True,
                timeout=timeout_sec,
            )
            stdout = proc.stdout
    except FileNotFoundError as exc:
        raise ToolUnavailableError(command[0], "executable not found") from exc
    except PermissionError as exc:
        raise ToolUnavailableError(command[0], "executable not runnable") from exc
    except subprocess.TimeoutExpired as exc:
        raise StageFailure(name, command, -1, f"timed out after {timeout_sec} s") from exc
    runtime = time.perf_counter() - started

    result = StageResult(
        name=name,
        command=list(command),
        returncode=proc.returncode,
        stdout=stdout,
        stderr=proc.stderr or "",
        runtime_sec=float(runtime),
    )
    if result.ok:
        logger.debug("[%s] finished in %.2f s", name, runtime)
    else:
        logger.warning("[%s] exited with status %d", name, proc.returncode)
    return result


def run_checked(name: str, command: list[str], **kwargs) -> StageResult:
    """Shorthand for ``run_stage(...).raise_for_status()``."""
    return run_stage(name, command, **kwargs).raise_for_status()
