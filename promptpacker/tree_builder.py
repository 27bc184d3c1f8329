# promptpacker/tree_builder.py

from typing import Dict, Iterable, List, Optional, Sequence

from .models import FileDescriptor, TreeNode


def parent_id_of(relative_path: str) -> Optional[str]:
    if "/" not in relative_path:
        return None
    return relative_path.rsplit("/", 1)[0]


def build_tree_nodes(descriptors: Iterable[FileDescriptor]) -> List[TreeNode]:
    """
    Turn a flat scan into nodes sorted by relative path.

    Parents are not validated. A node whose parent id matches no other node is
    kept as is and consumers treat it as a top-level entry.
    """
    nodes: List[TreeNode] = []
    for desc in sorted(descriptors, key=lambda d: d.relative_path):
        rel = desc.relative_path
        nodes.append(TreeNode(
            id=rel,
            parent_id=parent_id_of(rel),
            level=rel.count("/"),
            name=rel.rsplit("/", 1)[-1],
            path=desc.path,
            relative_path=rel,
            is_directory=desc.is_directory,
            is_skipped=desc.is_skipped,
            skip_reason=desc.skip_reason,
            size=desc.size,
            token_estimate=desc.token_estimate,
        ))
    return nodes


def build_node_index(nodes: Iterable[TreeNode]) -> Dict[str, TreeNode]:
    return {node.id: node for node in nodes}


def children_by_parent(nodes: Sequence[TreeNode]) -> Dict[Optional[str], List[TreeNode]]:
    """Group nodes under their parent id, keeping node order."""
    groups: Dict[Optional[str], List[TreeNode]] = {}
    for node in nodes:
        groups.setdefault(node.parent_id, []).append(node)
    return groups
