from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import pytest

from genedive.config import PipelineConfig, ToolConfig


# Exact binary fractions so the PD sum has no rounding error: 0.125 + 0.25 + 0.5 + 1.0.
FAKE_TREE = "((seqA:0.25,seqB:0.5)0.97:0.125,seqC:1.0);"
FAKE_TREE_PD = 1.875

_SCRIPTS = {
    "fraggenescan": r"""
while [ $# -gt 0 ]; do
  case "$1" in
    -o) out="$2"; shift 2 ;;
    *) shift ;;
  esac
done
printf '>orf_1 len=120\nMKVLAAGIVGLLA\n' > "$out.faa"
""",
    "hmmsearch": r"""
case "$3" in
  *broken*) echo "Error: failed to open hmm file $3" >&2; exit 1 ;;
esac
cat > "$2" <<'STO'
>seqA some description here
MKV-LAAGIV
>seqB/2-11 another one
MKVALAAG-V
>seqC
MKVALAAGIV
STO
""",
    "alimask": r"""
cat "$2"
""",
    "reformat": r"""
cat -
""",
    "alimanip": r"""
cat -
""",
    "fasttree": r"""
printf '%s\n' "FAKE_TREE_TEXT"
""",
}


@dataclass
class FakeTools:
    bin_dir: Path
    log_path: Path
    tools: ToolConfig

    def config(self, **kwargs) -> PipelineConfig:
        kwargs.setdefault("echo_alignment", False)
        return PipelineConfig(tools=self.tools, **kwargs)

    def calls(self, tool: str | None = None) -> list[list[str]]:
        if not self.log_path.exists():
            return []
        out: list[list[str]] = []
        for line in self.log_path.read_text(encoding="utf-8").splitlines():
            parts = line.split("\t")
            if tool is None or parts[0] == tool:
                out.append(parts)
        return out

    def replace(self, key: str, body: str) -> None:
        _write_script(self.bin_dir / key, key, body, self.log_path)


def _write_script(path: Path, key: str, body: str, log_path: Path) -> None:
    header = (
        "#!/bin/sh\n"
        f"printf '%s' '{key}' >> '{log_path}'\n"
        f"for arg in \"$@\"; do printf '\\t%s' \"$arg\" >> '{log_path}'; done\n"
        f"printf '\\n' >> '{log_path}'\n"
    )
    path.write_text(header + body.replace("FAKE_TREE_TEXT", FAKE_TREE), encoding="utf-8")
    os.chmod(path, 0o755)


@pytest.fixture
def fake_tools(tmp_path: Path) -> FakeTools:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    log_path = tmp_path / "calls.log"
    for key, body in _SCRIPTS.items():
        _write_script(bin_dir / key, key, body, log_path)
    tools = ToolConfig(**{key: str(bin_dir / key) for key in _SCRIPTS})
    return FakeTools(bin_dir=bin_dir, log_path=log_path, tools=tools)


@pytest.fixture
def make_inputs(tmp_path: Path):
    def _make(assemblies: list[str], profiles: list[str]) -> tuple[Path, Path]:
        root = tmp_path
        asm_dir = root / "assemblies"
        hmm_dir = root / "hmms"
        asm_dir.mkdir(parents=True, exist_ok=True)
        hmm_dir.mkdir(parents=True, exist_ok=True)
        for name in assemblies:
            (asm_dir / name).write_text(f">{name}_contig1\nACGTACGTACGTACGT\n", encoding="utf-8")
        for name in profiles:
            (hmm_dir / name).write_text(f"HMMER3/f [3.3]\nNAME  {name}\n//\n", encoding="utf-8")
        return asm_dir, hmm_dir

    return _make
