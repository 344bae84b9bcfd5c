from __future__ import annotations

import hashlib
import json
import os
import platform
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from . import __version__
from .config import MIN_SEQUENCE_LENGTH, PipelineConfig
from .doctor import resolve_tool

if TYPE_CHECKING:
    from .pipeline import PipelineReport, RunOutcome


MANIFEST_SCHEMA_VERSION = 1
TIMESTAMP_ENV_KEY = "GENEDIVE_FIXED_TIMESTAMP_UTC"


def _file_digest(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for block in iter(lambda: handle.read(1 << 20), b""):
            digest.update(block)
    return digest.hexdigest()


def _settings_digest(settings: dict[str, Any], tools: dict[str, str]) -> str:
    blob = json.dumps({"settings": settings, "tools": tools}, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()


def _timestamp() -> str:
    return os.environ.get(TIMESTAMP_ENV_KEY) or datetime.now(tz=timezone.utc).isoformat()


def _host() -> dict[str, Any]:
    return {
        "timestamp_utc": _timestamp(),
        "platform": platform.platform(),
        "python_version": platform.python_version(),
        "cpu_count": os.cpu_count(),
    }


def _inputs(paths: list[Path]) -> list[dict[str, str]]:
    return [
        {"id": p.stem, "file": p.name, "path": str(p.resolve()), "sha256": _file_digest(p)}
        for p in paths
    ]


def _run_entry(outcome: "RunOutcome") -> dict[str, Any]:
    run = outcome.run
    return {
        "sample": run.sample,
        "gene": run.gene,
        "state": outcome.state,
        "faith_pd": outcome.faith_pd,
        "n_sequences": None if outcome.alignment is None else outcome.alignment.n_sequences,
        "runtime_sec": round(outcome.runtime_sec, 3),
        "stages": [
            {"name": s.name, "returncode": s.returncode, "runtime_sec": round(s.runtime_sec, 3)}
            for s in outcome.stages
        ],
        "tree_file": str(run.tree_file),
    }


def build_manifest(
    report: "PipelineReport",
    config: PipelineConfig,
    *,
    command_line: str | None = None,
) -> dict[str, Any]:
    """Everything needed to tell whether two output tables came from the same inputs and tools."""
    tools = config.tools.as_dict()
    settings = {
        "jobs": config.jobs,
        "stage_timeout_sec": config.stage_timeout_sec,
        "fraggenescan_threads": config.fraggenescan_threads,
        "fraggenescan_training": config.fraggenescan_training,
        "min_sequence_length": MIN_SEQUENCE_LENGTH,
        "table_layout": config.table_layout,
    }
    return {
        "schema_version": MANIFEST_SCHEMA_VERSION,
        "tool_version": __version__,
        "command_line": command_line,
        "settings": settings,
        "settings_hash": _settings_digest(settings, tools),
        "tools": {
            key: {"executable": exe, "resolved_path": resolve_tool(exe)}
            for key, exe in tools.items()
        },
        "assemblies": _inputs(report.assemblies),
        "hmm_profiles": _inputs(report.profiles),
        "runs": [_run_entry(o) for o in report.outcomes],
        "table": str(report.table_path),
        "host": _host(),
    }


def write_manifest(path: str | Path, payload: dict[str, Any]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, sort_keys=True)
        handle.write("\n")
    return p
