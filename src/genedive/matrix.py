from __future__ import annotations

import csv
from pathlib import Path

import numpy as np
import pandas as pd


LEGACY_HEADER = "Sample,Gene1,Gene2,...,GeneN"
TABLE_LAYOUTS = ("legacy", "aligned")


def format_value(value: float) -> str:
    return repr(float(value))


class ResultMatrix:
    """Sparse sample -> gene -> PD table, filled one run at a time.

    Samples and, within each sample, genes keep the order they were first
    recorded in. Each (sample, gene) pair may be recorded once.
    """

    def __init__(self) -> None:
        self._rows: dict[str, dict[str, float]] = {}

    def record(self, sample: str, gene: str, value: float) -> None:
        row = self._rows.setdefault(sample, {})
        if gene in row:
            raise ValueError(f"Duplicate result for sample={sample!r} gene={gene!r}")
        row[gene] = float(value)

    def get(self, sample: str, gene: str) -> float | None:
        return self._rows.get(sample, {}).get(gene)

    def samples(self) -> list[str]:
        return list(self._rows)

    def genes(self) -> list[str]:
        seen: dict[str, None] = {}
        for row in self._rows.values():
            for gene in row:
                seen.setdefault(gene, None)
        return list(seen)

    def row(self, sample: str) -> dict[str, float]:
        return dict(self._rows[sample])

    def entries(self) -> list[tuple[str, str, float]]:
        return [(s, g, v) for s, row in self._rows.items() for g, v in row.items()]

    def __len__(self) -> int:
        return sum(len(row) for row in self._rows.values())

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        sample, gene = key
        return gene in self._rows.get(sample, {})

    def to_frame(self) -> pd.DataFrame:
        """Samples as rows, the union of genes as columns, NaN where a pair is missing."""
        genes = self.genes()
        data = {
            gene: [self._rows[s].get(gene, np.nan) for s in self._rows]
            for gene in genes
        }
        frame = pd.DataFrame(data, index=pd.Index(self.samples(), name="Sample"), columns=genes)
        return frame.astype(float)

    def write_csv(self, path: str | Path, layout: str = "legacy") -> Path:
        if layout not in TABLE_LAYOUTS:
            raise ValueError(f"Unsupported table layout: {layout}")
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        if layout == "legacy":
            self._write_legacy(p)
        else:
            self._write_aligned(p)
        return p

    def _write_legacy(self, path: Path) -> None:
        # Static header; each row lists that sample's values in record order.
        with path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(LEGACY_HEADER + "\n")
            writer = csv.writer(handle, lineterminator="\n")
            for sample, row in self._rows.items():
                writer.writerow([sample] + [format_value(v) for v in row.values()])

    def _write_aligned(self, path: Path) -> None:
        frame = self.to_frame()
        cells = {
            gene: ["" if pd.isna(v) else format_value(v) for v in frame[gene]]
            for gene in frame.columns
        }
        out = pd.DataFrame(cells, index=frame.index, columns=list(frame.columns))
        out.to_csv(path, index=True, index_label="Sample", lineterminator="\n", encoding="utf-8")
