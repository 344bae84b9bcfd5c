from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from .errors import ConfigurationError


# esl-alimanip --lmin; fixed for compatibility with published GeneDive tables.
MIN_SEQUENCE_LENGTH = 100

TOOL_ENV_KEYS = {
    "fraggenescan": "GENEDIVE_FRAGGENESCAN_BIN",
    "hmmsearch": "GENEDIVE_HMMSEARCH_BIN",
    "alimask": "GENEDIVE_ALIMASK_BIN",
    "reformat": "GENEDIVE_REFORMAT_BIN",
    "alimanip": "GENEDIVE_ALIMANIP_BIN",
    "fasttree": "GENEDIVE_FASTTREE_BIN",
}


@dataclass(frozen=True)
class ToolConfig:
    fraggenescan: str = "FragGeneScan"
    hmmsearch: str = "hmmsearch"
    alimask: str = "esl-alimask"
    reformat: str = "esl-reformat"
    alimanip: str = "esl-alimanip"
    fasttree: str = "FastTree"

    def as_dict(self) -> dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def with_overrides(self, overrides: dict[str, str]) -> "ToolConfig":
        unknown = sorted(set(overrides) - set(TOOL_ENV_KEYS))
        if unknown:
            raise ConfigurationError(f"Unknown tool keys: {', '.join(unknown)}")
        return replace(self, **{k: str(v) for k, v in overrides.items()})


@dataclass(frozen=True)
class PipelineConfig:
    tools: ToolConfig = field(default_factory=ToolConfig)
    jobs: int = 1
    stage_timeout_sec: float | None = None
    fraggenescan_threads: int = 1
    fraggenescan_training: str = "complete"
    echo_alignment: bool = True
    table_layout: str = "legacy"

    def __post_init__(self) -> None:
        if self.jobs < 1:
            raise ConfigurationError(f"jobs must be >= 1, got {self.jobs}")
        if self.stage_timeout_sec is not None and self.stage_timeout_sec <= 0:
            raise ConfigurationError("stage_timeout_sec must be > 0 when set.")
        if self.fraggenescan_threads < 1:
            raise ConfigurationError("fraggenescan_threads must be >= 1.")
        if self.table_layout not in {"legacy", "aligned"}:
            raise ConfigurationError(f"Unsupported table layout: {self.table_layout}")


def tool_overrides_from_env(environ: dict[str, str] | None = None) -> dict[str, str]:
    env = os.environ if environ is None else environ
    out: dict[str, str] = {}
    for key, env_key in TOOL_ENV_KEYS.items():
        value = env.get(env_key)
        if value:
            out[key] = value
    return out


def validate_config_payload(payload: Any) -> None:
    if not isinstance(payload, dict):
        raise ConfigurationError("config payload must be a JSON object.")
    try:
        schema_version = int(payload.get("schema_version", 0))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError("config schema_version must be 1.") from exc
    if schema_version != 1:
        raise ConfigurationError("config schema_version must be 1.")
    allowed = {
        "schema_version",
        "tools",
        "jobs",
        "stage_timeout_sec",
        "fraggenescan_threads",
        "fraggenescan_training",
    }
    extra = sorted(set(payload) - allowed)
    if extra:
        raise ConfigurationError(f"config has unsupported keys: {', '.join(extra)}")
    tools = payload.get("tools", {})
    if not isinstance(tools, dict):
        raise ConfigurationError("config 'tools' must be a JSON object.")
    for key, value in tools.items():
        if key not in TOOL_ENV_KEYS:
            raise ConfigurationError(f"config names unknown tool: {key}")
        if not isinstance(value, str) or not value.strip():
            raise ConfigurationError(f"config tool '{key}' must be a non-empty string.")


def load_config(
    path: str | Path | None = None,
    *,
    environ: dict[str, str] | None = None,
    **overrides: Any,
) -> PipelineConfig:
    """Build a PipelineConfig from a JSON file, GENEDIVE_*_BIN variables and keyword overrides.

    Later sources win: file < environment < keyword overrides. Keyword overrides
    set to None are ignored so CLI defaults do not mask file values.
    """
    payload: dict[str, Any] = {"schema_version": 1}
    if path is not None:
        p = Path(path)
        if not p.exists():
            raise ConfigurationError(f"Config file not found: {p}")
        try:
            with p.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Config file is not valid JSON: {p}: {exc}") from exc
        validate_config_payload(payload)

    tools = ToolConfig().with_overrides(dict(payload.get("tools", {})))
    tools = tools.with_overrides(tool_overrides_from_env(environ))

    kwargs: dict[str, Any] = {"tools": tools}
    for key in ("jobs", "stage_timeout_sec", "fraggenescan_threads", "fraggenescan_training"):
        if key in payload:
            kwargs[key] = payload[key]
    for key, value in overrides.items():
        if value is not None:
            kwargs[key] = value
    try:
        return PipelineConfig(**kwargs)
    except TypeError as exc:
        raise ConfigurationError(str(exc)) from exc
