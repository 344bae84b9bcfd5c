from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

# Lengths for branches the Newick string leaves out, as ete3 reads format 0.
DEFAULT_LENGTH = 1.0
ROOT_LENGTH = 0.0

_TOKEN = re.compile(r"\s*(?:([(),:;])|'((?:[^']|'')*)'|([^\s(),:;']+))")


@dataclass
class TreeNode:
    name: str | None = None
    length: float = DEFAULT_LENGTH
    support: float | None = None
    children: list["TreeNode"] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def traverse(self) -> Iterator["TreeNode"]:
        """Pre-order walk over every node, root first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def leaf_names(self) -> list[str | None]:
        return [node.name for node in self.traverse() if node.is_leaf]

    def branch_lengths(self) -> list[float]:
        """Lengths of every node's incoming branch, the root's included."""
        return [node.length for node in self.traverse()]

    def total_branch_length(self) -> float:
        return float(sum(self.branch_lengths()))


def _tokens(text: str) -> Iterator[tuple[str, str]]:
    pos = 0
    end = len(text.rstrip())
    while pos < end:
        m = _TOKEN.match(text, pos)
        if m is None or m.end() == pos:
            raise ValueError(f"Unreadable Newick near: {text[pos:pos + 20]!r}")
        punct, quoted, bare = m.groups()
        if punct is not None:
            yield punct, punct
        elif quoted is not None:
            yield "label", quoted.replace("''", "'")
        else:
            yield "label", bare
        pos = m.end()


def _label_internal(node: TreeNode, label: str) -> None:
    # FastTree puts local support values where an internal node's name goes.
    try:
        node.support = float(label)
    except ValueError:
        node.name = label


def parse_newick(newick: str) -> TreeNode:
    """Read one Newick tree without recursion, so deep caterpillar trees are fine.

    Unnamed leaves are allowed, as are internal labels (numeric ones become
    ``support``). Branches without a length get ``DEFAULT_LENGTH``; the root
    gets ``ROOT_LENGTH`` unless the string gives it one.
    """
    if not newick.strip():
        raise ValueError("Newick string is empty.")

    root: TreeNode | None = None
    open_nodes: list[TreeNode] = []
    # Node that a following label or ":<length>" binds to.
    current: TreeNode | None = None
    labelled = has_length = want_length = finished = False

    def _attach(node: TreeNode) -> TreeNode:
        nonlocal root
        if open_nodes:
            open_nodes[-1].children.append(node)
        elif root is None:
            node.length = ROOT_LENGTH
            root = node
        else:
            raise ValueError("Newick string holds more than one tree.")
        return node

    for kind, value in _tokens(newick):
        if finished:
            raise ValueError(f"Unexpected trailing content in Newick: {value}")
        if want_length:
            if kind != "label":
                raise ValueError("Missing branch length after ':'.")
            try:
                current.length = float(value)  # type: ignore[union-attr]
            except ValueError as exc:
                raise ValueError(f"Invalid branch length: {value}") from exc
            if current.length < 0:  # type: ignore[union-attr]
                raise ValueError(f"Branch lengths must be non-negative: {value}")
            want_length, has_length = False, True
            continue

        if kind == "label":
            if current is None:
                current = _attach(TreeNode(name=value))
            elif labelled or has_length or current.is_leaf:
                raise ValueError(f"Unexpected label '{value}' in Newick string.")
            else:
                _label_internal(current, value)
            labelled = True
            continue

        if kind == "(":
            if current is not None:
                raise ValueError("Unexpected '(' after a node in Newick string.")
            open_nodes.append(_attach(TreeNode()))
            continue

        if kind == ";":
            finished = True
            continue

        # ",", ")" or ":" straight after "(" or "," close an unnamed leaf.
        if current is None and open_nodes:
            current = _attach(TreeNode())
            labelled = has_length = False
        if kind == ":":
            if current is None or has_length:
                raise ValueError("Unexpected ':' in Newick string.")
            want_length = True
        elif kind == ",":
            if not open_nodes:
                raise ValueError("Unexpected ',' outside parentheses in Newick string.")
            current = None
            labelled = has_length = False
        else:
            if not open_nodes:
                raise ValueError("Unbalanced ')' in Newick string.")
            current = open_nodes.pop()
            labelled = has_length = False

    if want_length:
        raise ValueError("Missing branch length after ':'.")
    if open_nodes:
        raise ValueError("Unterminated internal node in Newick string.")
    if not finished:
        raise ValueError("Newick string does not end with ';'.")
    if root is None:
        raise ValueError("Newick string holds no tree.")
    return root


def read_newick(path: str | Path) -> TreeNode:
    path = Path(path)
    return parse_newick(path.read_text(encoding="utf-8"))
