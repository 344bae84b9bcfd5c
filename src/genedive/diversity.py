from __future__ import annotations

import logging
from pathlib import Path

from .errors import ParseFailure
from .phylo import TreeNode, read_newick

logger = logging.getLogger("genedive.diversity")


def faith_pd(tree: TreeNode) -> float:
    """Faith's PD as GeneDive reports it: the summed length of every node's branch.

    Internal nodes and the root count too (the root normally contributes 0),
    so this is the total tree length, not a PD restricted to a leaf subset.
    """
    return tree.total_branch_length()


def calculate_faith_pd(tree_path: str | Path) -> float:
    tree_path = Path(tree_path)
    try:
        tree = read_newick(tree_path)
    except FileNotFoundError as exc:
        raise ParseFailure(str(tree_path), "tree file not found") from exc
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        raise ParseFailure(str(tree_path), str(exc)) from exc
    value = faith_pd(tree)
    logger.debug("Faith's PD for %s = %r over %d nodes", tree_path.name, value, len(tree.branch_lengths()))
    return value
