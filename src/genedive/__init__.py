"""GeneDive: Faith's PD of HMM-defined gene families across genome assemblies."""

__version__ = "0.2.0"

from .config import MIN_SEQUENCE_LENGTH, PipelineConfig, ToolConfig, load_config
from .diversity import calculate_faith_pd, faith_pd
from .errors import (
    ConfigurationError,
    GeneDiveError,
    ParseFailure,
    StageFailure,
    ToolUnavailableError,
)
from .matrix import ResultMatrix
from .pipeline import PipelineReport, PipelineRun, execute_run, plan_runs, run_pipeline

__all__ = [
    "ConfigurationError",
    "GeneDiveError",
    "MIN_SEQUENCE_LENGTH",
    "ParseFailure",
    "PipelineConfig",
    "PipelineReport",
    "PipelineRun",
    "ResultMatrix",
    "StageFailure",
    "ToolConfig",
    "ToolUnavailableError",
    "calculate_faith_pd",
    "execute_run",
    "faith_pd",
    "load_config",
    "plan_runs",
    "run_pipeline",
]
