import pytest

from genedive.phylo import DEFAULT_LENGTH, ROOT_LENGTH, parse_newick


def test_parse_newick_tree() -> None:
    tree = parse_newick("((A:0.1,B:0.2):0.3,C:0.4);")
    assert sorted(tree.leaf_names()) == ["A", "B", "C"]
    assert tree.branch_lengths() == [0.0, 0.3, 0.1, 0.2, 0.4]


def test_traverse_visits_every_node_root_first() -> None:
    tree = parse_newick("((A:1,B:2)X:3,C:4)R;")
    names = [node.name for node in tree.traverse()]
    assert names == ["R", "X", "A", "B", "C"]
    assert tree.branch_lengths() == [0.0, 3.0, 1.0, 2.0, 4.0]


def test_fasttree_support_values_are_read_as_support() -> None:
    tree = parse_newick("(seqA:0.1,(seqB:0.2,seqC:0.3)0.954:0.05,seqD:0.4);\n")
    internal = [node for node in tree.traverse() if not node.is_leaf]
    assert [node.support for node in internal] == [None, 0.954]
    assert [node.name for node in internal] == [None, None]
    assert sorted(tree.leaf_names()) == ["seqA", "seqB", "seqC", "seqD"]


def test_missing_lengths_default_like_ete3() -> None:
    assert parse_newick("(A,B);").branch_lengths() == [ROOT_LENGTH, DEFAULT_LENGTH, DEFAULT_LENGTH]
    assert parse_newick("((A,B),C);").total_branch_length() == 4.0
    assert parse_newick("A;").branch_lengths() == [0.0]


def test_lenient_trees_are_accepted() -> None:
    assert parse_newick("(A:1,A:2);").leaf_names() == ["A", "A"]
    assert parse_newick("(:1,'seq one':2);").leaf_names() == [None, "seq one"]


def test_deep_ladder_tree_does_not_recurse() -> None:
    depth = 5000
    newick = "(" * depth + "A:1" + "".join(f",L{i}:1):1" for i in range(depth)) + ";"
    tree = parse_newick(newick)
    assert len(tree.leaf_names()) == depth + 1
    assert tree.total_branch_length() == 2 * depth + 1


@pytest.mark.parametrize(
    "text, message",
    [
        ("", "empty"),
        ("((A:0.1,B:0.2);", "Unterminated"),
        ("(A:0.1,B:0.2)", "does not end with ';'"),
        ("(A:0.1,B:abc);", "Invalid branch length"),
        ("(A:0.1,B:-0.02);", "non-negative"),
        ("(A:0.1,B:);", "Missing branch length"),
        ("(A,B);(C,D);", "trailing content"),
        ("A B;", "Unexpected label"),
        ("(A,B));", "Unbalanced"),
    ],
)
def test_parse_newick_rejects_malformed_trees(text: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        parse_newick(text)
