# promptpacker/visibility.py

from typing import AbstractSet, Iterable, List, Mapping, Optional, Sequence, Set, Union

from .models import TreeNode
from .tree_builder import build_node_index, children_by_parent

NodeLookup = Union[Mapping[str, TreeNode], Iterable[TreeNode]]


def _as_index(all_nodes: NodeLookup) -> Mapping[str, TreeNode]:
    if isinstance(all_nodes, Mapping):
        return all_nodes
    return build_node_index(all_nodes)


def _dirs_first(nodes: List[TreeNode]) -> List[TreeNode]:
    return sorted(nodes, key=lambda n: not n.is_directory)


def is_visible(node: TreeNode, expanded: AbstractSet[str], all_nodes: NodeLookup) -> bool:
    """
    A node is visible when every ancestor directory is expanded.

    Top-level nodes are always visible. A node whose parent cannot be found is
    hidden rather than guessed at.
    """
    index = _as_index(all_nodes)
    current = node
    seen: Set[str] = set()
    while current.level != 0:
        parent = index.get(current.parent_id) if current.parent_id is not None else None
        if parent is None or parent.id in seen:
            return False
        if parent.id not in expanded:
            return False
        seen.add(parent.id)
        current = parent
    return True


class ExpansionTracker:
    """Which directories are open. Knows nothing about selection."""

    def __init__(self, nodes: Sequence[TreeNode] = ()):
        self.expanded: Set[str] = set()
        self.reset(nodes)

    def reset(self, nodes: Sequence[TreeNode]) -> None:
        self._nodes: List[TreeNode] = list(nodes)
        self._index = build_node_index(self._nodes)
        self.expanded = set()

    def is_expanded(self, node_id: str) -> bool:
        return node_id in self.expanded

    def toggle(self, node_id: str) -> bool:
        """Flip one directory. Descendants keep their own membership."""
        node = self._index.get(node_id)
        if node is None or not node.is_directory:
            return False
        if node_id in self.expanded:
            self.expanded.discard(node_id)
        else:
            self.expanded.add(node_id)
        return True

    def expand(self, node_id: str) -> None:
        node = self._index.get(node_id)
        if node is not None and node.is_directory:
            self.expanded.add(node_id)

    def collapse(self, node_id: str) -> None:
        self.expanded.discard(node_id)

    def expand_all(self) -> None:
        self.expanded = {node.id for node in self._nodes if node.is_directory}

    def collapse_all(self) -> None:
        self.expanded = set()

    def is_visible(self, node: TreeNode) -> bool:
        return is_visible(node, self.expanded, self._index)

    def tree_order(self) -> List[TreeNode]:
        """Depth-first listing, directories before files among siblings."""
        children = children_by_parent(self._nodes)
        tops = [n for n in self._nodes if n.parent_id is None or n.parent_id not in self._index]
        ordered: List[TreeNode] = []
        stack = list(reversed(_dirs_first(tops)))
        while stack:
            node = stack.pop()
            ordered.append(node)
            if node.is_directory:
                stack.extend(reversed(_dirs_first(children.get(node.id, []))))
        return ordered

    def visible_nodes(self) -> List[TreeNode]:
        return [node for node in self.tree_order() if self.is_visible(node)]

    def parent_of(self, node: TreeNode) -> Optional[TreeNode]:
        if node.parent_id is None:
            return None
        return self._index.get(node.parent_id)
