from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FastaRecord:
    header: str
    sequence: str


def parse_fasta(text: str, *, source: str = "<text>") -> list[FastaRecord]:
    """Parse FASTA text; sequence lines are concatenated with whitespace removed."""
    records: list[FastaRecord] = []
    header: str | None = None
    chunks: list[str] = []

    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue
        if line.startswith(">"):
            if header is not None:
                records.append(FastaRecord(header, "".join(chunks)))
            header = line[1:].strip()
            if not header:
                raise ValueError(f"Missing FASTA header name at line {line_no} in {source}")
            chunks = []
            continue
        if header is None:
            raise ValueError(f"FASTA sequence without header at line {line_no} in {source}")
        chunks.append("".join(line.split()))

    if header is not None:
        records.append(FastaRecord(header, "".join(chunks)))
    return records


def truncate_identifiers(text: str) -> str:
    """Keep only the first whitespace-delimited token of every FASTA header line.

    Sequence lines pass through untouched so line wrapping from the upstream
    reformatter is preserved.
    """
    out: list[str] = []
    for line in text.splitlines():
        if line.startswith(">"):
            token = line[1:].split()
            out.append(">" + (token[0] if token else ""))
        else:
            out.append(line)
    return "\n".join(out) + ("\n" if out else "")
