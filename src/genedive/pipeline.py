from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from .alignment import FilteredAlignment, postprocess_alignment
from .config import PipelineConfig
from .diversity import calculate_faith_pd
from .doctor import run_doctor
from .errors import ConfigurationError
from .manifest import build_manifest, write_manifest
from .matrix import ResultMatrix
from .stages import StageResult, run_checked

logger = logging.getLogger("genedive.pipeline")

RUN_STATES = (
    "DISCOVERED",
    "ANNOTATED",
    "SEARCHED",
    "FILTERED",
    "TREED",
    "SCORED",
    "RECORDED",
)

TABLE_FILENAME = "output_table.csv"
MANIFEST_FILENAME = "run_manifest.json"


@dataclass(frozen=True)
class PipelineRun:
    assembly: Path
    profile: Path
    output_dir: Path

    @property
    def sample(self) -> str:
        return self.assembly.stem

    @property
    def gene(self) -> str:
        return self.profile.stem

    @property
    def prefix(self) -> Path:
        return self.output_dir / f"{self.sample}_{self.gene}"

    def artifact(self, suffix: str) -> Path:
        return Path(f"{self.prefix}{suffix}")

    @property
    def annotation_prefix(self) -> Path:
        return self.artifact(".annotation")

    @property
    def annotation_faa(self) -> Path:
        return self.artifact(".annotation.faa")

    @property
    def search_sto(self) -> Path:
        return self.artifact(".hmmsearch_output.sto")

    @property
    def filtered_afa(self) -> Path:
        return self.artifact(".hmmsearch_output.afa")

    @property
    def tree_file(self) -> Path:
        return self.artifact(".tree_output")


@dataclass
class RunOutcome:
    run: PipelineRun
    state: str = "DISCOVERED"
    faith_pd: float | None = None
    alignment: FilteredAlignment | None = None
    stages: list[StageResult] = field(default_factory=list)
    runtime_sec: float = 0.0

    def advance(self, state: str) -> None:
        expected = RUN_STATES[RUN_STATES.index(self.state) + 1]
        if state != expected:
            raise RuntimeError(f"Illegal run transition {self.state} -> {state}")
        self.state = state


@dataclass
class PipelineReport:
    matrix: ResultMatrix
    outcomes: list[RunOutcome]
    assemblies: list[Path]
    profiles: list[Path]
    table_path: Path
    manifest_path: Path | None = None

    @property
    def n_runs(self) -> int:
        return len(self.outcomes)


def discover_inputs(directory: str | Path, label: str = "input") -> list[Path]:
    """Regular, non-hidden files of a directory, sorted by file name."""
    d = Path(directory)
    if not d.is_dir():
        raise ConfigurationError(f"{label} directory not found: {d}")
    return sorted(
        (p for p in d.iterdir() if p.is_file() and not p.name.startswith(".")),
        key=lambda p: p.name,
    )


def plan_runs(
    assemblies: list[Path],
    profiles: list[Path],
    output_dir: str | Path,
) -> list[PipelineRun]:
    out = Path(output_dir)
    for label, paths in (("assembly", assemblies), ("HMM", profiles)):
        seen: dict[str, Path] = {}
        for p in paths:
            if p.stem in seen:
                raise ConfigurationError(
                    f"{label} files {seen[p.stem].name} and {p.name} share the base name '{p.stem}'"
                )
            seen[p.stem] = p
    return [
        PipelineRun(assembly=assembly, profile=profile, output_dir=out)
        for assembly in assemblies
        for profile in profiles
    ]


def annotation_command(run: PipelineRun, config: PipelineConfig) -> list[str]:
    return [
        config.tools.fraggenescan,
        "-s",
        str(run.assembly),
        "-o",
        str(run.annotation_prefix),
        "-w",
        str(config.fraggenescan_threads),
        "-t",
        config.fraggenescan_training,
    ]


def search_command(run: PipelineRun, config: PipelineConfig) -> list[str]:
    return [
        config.tools.hmmsearch,
        "-A",
        str(run.search_sto),
        str(run.profile),
        str(run.annotation_faa),
    ]


def tree_command(run: PipelineRun, config: PipelineConfig) -> list[str]:
    return [config.tools.fasttree, str(run.filtered_afa)]


def execute_run(run: PipelineRun, config: PipelineConfig) -> RunOutcome:
    """Drive one (assembly, profile) pair from DISCOVERED to SCORED.

    Any stage error propagates; there is no partial outcome.
    """
    started = time.perf_counter()
    outcome = RunOutcome(run=run)
    timeout = config.stage_timeout_sec

    run.prefix.mkdir(parents=True, exist_ok=True)
    logger.info("Running analysis for %s and %s", run.sample, run.gene)

    logger.info("Running FragGeneScan for ORF identification...")
    outcome.stages.append(
        run_checked("annotate", annotation_command(run, config), timeout_sec=timeout)
    )
    outcome.advance("ANNOTATED")

    logger.info("Running HMM search...")
    outcome.stages.append(run_checked("search", search_command(run, config), timeout_sec=timeout))
    outcome.advance("SEARCHED")

    outcome.alignment = postprocess_alignment(run.search_sto, run.filtered_afa, config)
    outcome.stages.extend(outcome.alignment.stages)
    outcome.advance("FILTERED")

    logger.info("Constructing phylogenetic tree with FastTree...")
    outcome.stages.append(
        run_checked(
            "tree",
            tree_command(run, config),
            stdout_path=run.tree_file,
            timeout_sec=timeout,
        )
    )
    outcome.advance("TREED")

    logger.info("Calculating Faith's PD...")
    outcome.faith_pd = calculate_faith_pd(run.tree_file)
    outcome.advance("SCORED")

    outcome.runtime_sec = time.perf_counter() - started
    logger.info("%s x %s: PD=%r (%.1f s)", run.sample, run.gene, outcome.faith_pd, outcome.runtime_sec)
    return outcome


def _record(matrix: ResultMatrix, outcome: RunOutcome) -> None:
    if outcome.faith_pd is None:
        raise RuntimeError(f"Run {outcome.run.prefix.name} finished without a PD value")
    matrix.record(outcome.run.sample, outcome.run.gene, outcome.faith_pd)
    outcome.advance("RECORDED")


def _execute_parallel(runs: list[PipelineRun], config: PipelineConfig) -> list[RunOutcome]:
    # First failure stops new work; the earliest failing run in plan order is raised.
    done: dict[int, RunOutcome] = {}
    errors: dict[int, BaseException] = {}
    with ThreadPoolExecutor(max_workers=config.jobs) as ex:
        fut_to_idx = {ex.submit(execute_run, run, config): idx for idx, run in enumerate(runs)}
        for fut in as_completed(fut_to_idx):
            if fut.cancelled():
                continue
            idx = int(fut_to_idx[fut])
            exc = fut.exception()
            if exc is not None:
                errors[idx] = exc
                for pending in fut_to_idx:
                    pending.cancel()
                continue
            done[idx] = fut.result()
    if errors:
        raise errors[min(errors)]
    return [done[idx] for idx in range(len(runs))]


def run_pipeline(
    assembly_dir: str | Path,
    hmm_dir: str | Path,
    output_dir: str | Path,
    config: PipelineConfig | None = None,
    *,
    preflight: bool = True,
    command_line: str | None = None,
) -> PipelineReport:
    """Run every assembly x HMM profile pair and write the PD table.

    The table and manifest are written once, after the last run; a failure in
    any run raises and leaves no table behind.
    """
    cfg = PipelineConfig() if config is None else config
    out = Path(output_dir)

    assemblies = discover_inputs(assembly_dir, "assembly")
    profiles = discover_inputs(hmm_dir, "HMM")
    runs = plan_runs(assemblies, profiles, out)
    logger.info(
        "Discovered %d assemblies x %d HMM profiles = %d runs",
        len(assemblies),
        len(profiles),
        len(runs),
    )

    if preflight:
        # With nothing to run only the output directory matters.
        run_doctor(cfg, output_dir=out, check_tools=bool(runs)).raise_for_failures()
    else:
        out.mkdir(parents=True, exist_ok=True)

    matrix = ResultMatrix()
    if cfg.jobs > 1 and len(runs) > 1:
        outcomes = _execute_parallel(runs, cfg)
        for outcome in outcomes:
            _record(matrix, outcome)
    else:
        outcomes = []
        for run in runs:
            outcome = execute_run(run, cfg)
            _record(matrix, outcome)
            outcomes.append(outcome)

    table_path = matrix.write_csv(out / TABLE_FILENAME, layout=cfg.table_layout)
    logger.info("Wrote %s (%d samples, %d entries)", table_path, len(matrix.samples()), len(matrix))

    report = PipelineReport(
        matrix=matrix,
        outcomes=outcomes,
        assemblies=assemblies,
        profiles=profiles,
        table_path=table_path,
    )

    report.manifest_path = write_manifest(
        out / MANIFEST_FILENAME,
        build_manifest(report, cfg, command_line=command_line),
    )
    logger.info("GeneDive analysis complete")
    return report
