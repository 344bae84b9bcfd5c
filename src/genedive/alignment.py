from __future__ import annotations

import logging
import sys
import threading
from dataclasses import dataclass
from pathlib import Path

from .config import MIN_SEQUENCE_LENGTH, PipelineConfig
from .io import parse_fasta, truncate_identifiers
from .stages import StageResult, run_checked

logger = logging.getLogger("genedive.alignment")

_ECHO_LOCK = threading.Lock()


@dataclass
class FilteredAlignment:
    path: Path
    n_sequences: int
    identifiers: tuple[str, ...]
    stages: tuple[StageResult, ...] = ()


def postprocess_commands(sto_path: str | Path, config: PipelineConfig) -> list[tuple[str, list[str]]]:
    """The four esl stages, in order. Only the first reads from a file; the rest read stdin."""
    tools = config.tools
    return [
        ("alimask", [tools.alimask, "--rf-is-mask", str(sto_path)]),
        ("reformat_mingap", [tools.reformat, "--mingap", "afa", "-"]),
        ("alimanip_lmin", [tools.alimanip, "--lmin", str(MIN_SEQUENCE_LENGTH), "-"]),
        ("reformat_afa", [tools.reformat, "afa", "-"]),
    ]


def postprocess_alignment(
    sto_path: str | Path,
    afa_path: str | Path,
    config: PipelineConfig,
) -> FilteredAlignment:
    """Mask, degap, length-filter and reformat an hmmsearch alignment into aligned FASTA.

    Each stage's stdout feeds the next stage's stdin. Every stage is checked,
    so a failure in the middle of the chain aborts like any other stage.
    Headers are cut to their first token so FastTree leaf names are plain
    sequence identifiers.
    """
    afa_path = Path(afa_path)
    stream: str | None = None
    results: list[StageResult] = []
    for name, command in postprocess_commands(sto_path, config):
        result = run_checked(
            name,
            command,
            input_text=stream,
            timeout_sec=config.stage_timeout_sec,
        )
        results.append(result)
        stream = result.stdout

    text = truncate_identifiers(stream or "")
    afa_path.write_text(text, encoding="utf-8")
    if config.echo_alignment:
        # Parallel runs share stdout; each alignment goes out in one piece.
        with _ECHO_LOCK:
            sys.stdout.write(text)
            sys.stdout.flush()

    records = parse_fasta(text, source=str(afa_path))
    logger.info(
        "Filtered alignment %s keeps %d sequence(s) (lmin=%d)",
        afa_path.name,
        len(records),
        MIN_SEQUENCE_LENGTH,
    )
    return FilteredAlignment(
        path=afa_path,
        n_sequences=len(records),
        identifiers=tuple(r.header for r in records),
        stages=tuple(results),
    )
