from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from .config import TOOL_ENV_KEYS, PipelineConfig
from .errors import ConfigurationError, ToolUnavailableError


@dataclass
class DoctorCheck:
    name: str
    status: str  # PASS | WARN | FAIL
    message: str
    fix: str | None = None
    tool: str | None = None


@dataclass
class DoctorReport:
    checks: list[DoctorCheck]

    @property
    def has_failures(self) -> bool:
        return any(check.status == "FAIL" for check in self.checks)

    def failures(self) -> list[DoctorCheck]:
        return [check for check in self.checks if check.status == "FAIL"]

    def render(self) -> str:
        lines = []
        for check in self.checks:
            line = f"[{check.status}] {check.name}: {check.message}"
            lines.append(line)
            if check.fix:
                lines.append(f"  fix: {check.fix}")
        summary = "FAIL" if self.has_failures else "PASS"
        lines.append(f"\nDoctor summary: {summary}")
        return "\n".join(lines)

    def raise_for_failures(self) -> None:
        for check in self.failures():
            if check.tool:
                raise ToolUnavailableError(check.tool, check.message)
            raise ConfigurationError(f"{check.name}: {check.message}")


def resolve_tool(executable: str) -> str | None:
    """Absolute path of an executable name or path, or None if it cannot be run."""
    if os.sep in executable:
        candidate = Path(executable)
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate.resolve())
        return None
    return shutil.which(executable)


def run_doctor(
    config: PipelineConfig,
    *,
    output_dir: str | Path | None = None,
    check_tools: bool = True,
) -> DoctorReport:
    checks: list[DoctorCheck] = []

    tools = config.tools.as_dict() if check_tools else {}
    for key, executable in tools.items():
        path = resolve_tool(executable)
        if path is None:
            checks.append(
                DoctorCheck(
                    f"Tool {key}",
                    "FAIL",
                    f"'{executable}' not found on PATH or not executable.",
                    f"Install it (see environment.yml) or set {TOOL_ENV_KEYS[key]}.",
                    tool=executable,
                )
            )
        else:
            checks.append(DoctorCheck(f"Tool {key}", "PASS", path, tool=executable))

    if output_dir is not None:
        outdir = Path(output_dir)
        try:
            outdir.mkdir(parents=True, exist_ok=True)
            probe = outdir / ".genedive_doctor_write_test"
            probe.write_text("ok\n", encoding="utf-8")
            probe.unlink()
            checks.append(DoctorCheck("Output directory writable", "PASS", str(outdir.resolve())))
        except OSError as exc:
            checks.append(
                DoctorCheck(
                    "Output directory writable",
                    "FAIL",
                    str(exc),
                    "Choose a writable output directory.",
                )
            )

    if config.jobs > 1:
        checks.append(
            DoctorCheck(
                "Parallel runs",
                "WARN",
                f"{config.jobs} runs will execute concurrently.",
                "FragGeneScan and FastTree can be memory hungry; lower --jobs if the host swaps.",
            )
        )

    return DoctorReport(checks=checks)
