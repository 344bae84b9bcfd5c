from pathlib import Path

import pandas as pd
import pytest

from genedive.matrix import LEGACY_HEADER, ResultMatrix


def _sparse_matrix() -> ResultMatrix:
    matrix = ResultMatrix()
    matrix.record("s2", "g1", 1.5)
    matrix.record("s1", "g2", 0.25)
    matrix.record("s2", "g3", 2.0)
    matrix.record("s1", "g1", 0.1 + 0.2)
    return matrix


def test_record_keeps_first_seen_order() -> None:
    matrix = _sparse_matrix()
    assert matrix.samples() == ["s2", "s1"]
    assert matrix.genes() == ["g1", "g3", "g2"]
    assert list(matrix.row("s1")) == ["g2", "g1"]
    assert len(matrix) == 4
    assert ("s2", "g3") in matrix
    assert ("s1", "g3") not in matrix
    assert matrix.get("s1", "g3") is None


def test_duplicate_pair_is_rejected() -> None:
    matrix = ResultMatrix()
    matrix.record("s", "g", 1.0)
    with pytest.raises(ValueError, match="Duplicate"):
        matrix.record("s", "g", 2.0)


def test_legacy_csv_has_static_header_and_values_in_record_order(tmp_path: Path) -> None:
    path = _sparse_matrix().write_csv(tmp_path / "output_table.csv")
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == LEGACY_HEADER == "Sample,Gene1,Gene2,...,GeneN"
    assert lines[1:] == [
        "s2,1.5,2.0",
        f"s1,0.25,{0.1 + 0.2!r}",
    ]


def test_legacy_row_has_one_value_per_recorded_gene(tmp_path: Path) -> None:
    matrix = _sparse_matrix()
    path = matrix.write_csv(tmp_path / "t.csv")
    for line in path.read_text(encoding="utf-8").splitlines()[1:]:
        sample, *values = line.split(",")
        assert len(values) == len(matrix.row(sample))


def test_empty_matrix_writes_header_only(tmp_path: Path) -> None:
    path = ResultMatrix().write_csv(tmp_path / "t.csv")
    assert path.read_text(encoding="utf-8") == LEGACY_HEADER + "\n"


def test_aligned_csv_uses_gene_union_as_columns(tmp_path: Path) -> None:
    path = _sparse_matrix().write_csv(tmp_path / "t.csv", layout="aligned")
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "Sample,g1,g3,g2"
    assert lines[1] == "s2,1.5,2.0,"
    assert lines[2] == f"s1,{0.1 + 0.2!r},,0.25"


def test_to_frame_marks_missing_pairs_as_nan() -> None:
    frame = _sparse_matrix().to_frame()
    assert list(frame.index) == ["s2", "s1"]
    assert pd.isna(frame.loc["s1", "g3"])
    assert frame.loc["s2", "g1"] == 1.5


def test_unknown_layout_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="layout"):
        ResultMatrix().write_csv(tmp_path / "t.csv", layout="wide")
