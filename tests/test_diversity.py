from pathlib import Path

import pytest

from genedive.diversity import calculate_faith_pd, faith_pd
from genedive.errors import ParseFailure
from genedive.phylo import parse_newick


def test_faith_pd_sums_every_node_including_zero_root() -> None:
    tree = parse_newick("((A:0.25,B:0.5):0.125,C:1.0);")
    assert len(tree.branch_lengths()) == 5
    assert tree.branch_lengths()[0] == 0.0
    assert faith_pd(tree) == 1.875


def test_faith_pd_counts_root_branch_when_present() -> None:
    tree = parse_newick("((A:0.25,B:0.5):0.125,C:1.0):2.0;")
    assert faith_pd(tree) == 3.875


def test_faith_pd_is_total_tree_length_not_leaf_subset() -> None:
    tree = parse_newick("(A:1,(B:2,(C:3,D:4):5):6);")
    assert faith_pd(tree) == pytest.approx(21.0)


def test_single_leaf_tree_has_its_own_length() -> None:
    assert faith_pd(parse_newick("A:0.5;")) == 0.5


def test_calculate_faith_pd_reads_tree_file(tmp_path: Path) -> None:
    tree_file = tmp_path / "x.tree_output"
    tree_file.write_text("(seqA:0.1,seqB:0.2,seqC:0.3);\n", encoding="utf-8")
    assert calculate_faith_pd(tree_file) == pytest.approx(0.6)


def test_calculate_faith_pd_raises_parse_failure_on_garbage(tmp_path: Path) -> None:
    tree_file = tmp_path / "bad.tree_output"
    tree_file.write_text("this is not newick (", encoding="utf-8")
    with pytest.raises(ParseFailure) as excinfo:
        calculate_faith_pd(tree_file)
    assert excinfo.value.path == str(tree_file)


def test_calculate_faith_pd_raises_parse_failure_on_empty_or_missing(tmp_path: Path) -> None:
    empty = tmp_path / "empty.tree_output"
    empty.write_text("", encoding="utf-8")
    with pytest.raises(ParseFailure, match="empty"):
        calculate_faith_pd(empty)
    with pytest.raises(ParseFailure, match="not found"):
        calculate_faith_pd(tmp_path / "missing.tree_output")


def test_branches_without_lengths_count_one_like_ete3() -> None:
    assert faith_pd(parse_newick("(A,B);")) == 2.0
    assert faith_pd(parse_newick("((A:0.5,B)0.9,C:0.25);")) == 2.75
