# promptpacker/formatting.py
"""
ASCII file maps.

``format_tree`` draws the scanned tree with box-drawing prefixes, one entry per
line, the root itself left out. The output carries no envelope; callers that
want ``<file_map>`` tags add them (see ``generate_clipboard_payload``).
"""

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Collection, Dict, Iterable, List, Optional, Union

from .models import FileDescriptor, TreeNode
from .stats import format_file_size

logger = logging.getLogger(__name__)

SORT_KEYS = ("name", "size", "tokens")
SORT_DIRECTIONS = ("asc", "desc")

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
SPACE = "    "
ELISION = "..."


@dataclass(frozen=True)
class TreeFormatOptions:
    show_sizes: bool = False
    show_tokens: bool = False
    show_binary_marker: bool = True
    highlight_selected: bool = False
    sort_directories_first: bool = True
    sort_by: str = "name"
    sort_direction: str = "asc"
    show_only_selected: bool = False
    max_depth: Optional[int] = None

    def __post_init__(self):
        if self.sort_by not in SORT_KEYS:
            raise ValueError(f"sort_by must be one of {SORT_KEYS}, got {self.sort_by!r}")
        if self.sort_direction not in SORT_DIRECTIONS:
            raise ValueError(f"sort_direction must be one of {SORT_DIRECTIONS}, got {self.sort_direction!r}")
        if self.max_depth is not None and self.max_depth < 0:
            raise ValueError("max_depth cannot be negative")


DEFAULT_OPTIONS = TreeFormatOptions()

# Used for the prompt payload: full tree for context, no annotations.
DEFAULT_PROMPT_OPTIONS = TreeFormatOptions(
    show_sizes=False,
    show_tokens=False,
    show_binary_marker=True,
    highlight_selected=False,
    sort_directories_first=True,
    sort_by="name",
    sort_direction="asc",
    show_only_selected=False,
    max_depth=None,
)

Entry = Union[FileDescriptor, TreeNode]


@dataclass
class _MapNode:
    name: str
    relative_path: str
    is_directory: bool
    is_skipped: bool = False
    is_selected: bool = False
    size: int = 0
    tokens: int = 0
    children: List["_MapNode"] = field(default_factory=list)


def _build(entries: Iterable[Entry], selected_ids: AbstractSet[str]) -> _MapNode:
    root = _MapNode(name="", relative_path="", is_directory=True)
    dirs: Dict[str, _MapNode] = {"": root}
    # Shallow entries first so parents exist before their children. The sort is
    # stable, so siblings keep input order for tie breaking later on.
    for entry in sorted(entries, key=lambda e: e.relative_path.count("/")):
        rel = entry.relative_path
        parent_path, _, name = rel.rpartition("/")
        parent = dirs.get(parent_path)
        if parent is None:
            logger.warning("Parent %r not found for %r, placing it at the top level", parent_path, rel)
            parent = root
            # Keep the full path so the entry stays unambiguous at the top level.
            name = rel
        node = _MapNode(
            name=name,
            relative_path=rel,
            is_directory=entry.is_directory,
            is_skipped=entry.is_skipped,
            is_selected=rel in selected_ids,
            size=entry.size,
            tokens=entry.token_estimate,
        )
        parent.children.append(node)
        if entry.is_directory:
            dirs[rel] = node
    return root


def _prune_unselected(node: _MapNode) -> bool:
    if not node.is_directory:
        return node.is_selected
    node.children = [child for child in node.children if _prune_unselected(child)]
    return bool(node.children) or node.is_selected


def _aggregate(node: _MapNode) -> None:
    if not node.is_directory or not node.children:
        return
    for child in node.children:
        _aggregate(child)
    node.size = sum(child.size for child in node.children)
    node.tokens = sum(child.tokens for child in node.children)


def _sort(nodes: List[_MapNode], options: TreeFormatOptions) -> None:
    if options.sort_by == "size":
        key = lambda n: n.size
    elif options.sort_by == "tokens":
        key = lambda n: n.tokens
    else:
        key = lambda n: n.name
    # Both passes are stable; reverse=True keeps equal items in input order.
    nodes.sort(key=key, reverse=options.sort_direction == "desc")
    if options.sort_directories_first:
        nodes.sort(key=lambda n: not n.is_directory)
    for node in nodes:
        if node.children:
            _sort(node.children, options)


def _label(node: _MapNode, options: TreeFormatOptions) -> str:
    label = node.name + ("/" if node.is_directory else "")
    if options.show_binary_marker and node.is_skipped and not node.is_directory:
        label += " [binary]"
    if options.highlight_selected and node.is_selected:
        label += " [selected]"
    meta = []
    if options.show_sizes:
        meta.append(format_file_size(node.size))
    if options.show_tokens and not node.is_skipped:
        meta.append(f"{node.tokens} tokens")
    if meta:
        label += f" ({', '.join(meta)})"
    return label


def _render(nodes: List[_MapNode], prefix: str, depth: int, options: TreeFormatOptions, lines: List[str]) -> None:
    for i, node in enumerate(nodes):
        is_last = i == len(nodes) - 1
        lines.append(prefix + (LAST_BRANCH if is_last else BRANCH) + _label(node, options))
        if not node.children:
            continue
        child_prefix = prefix + (SPACE if is_last else PIPE)
        if options.max_depth is not None and depth >= options.max_depth:
            lines.append(child_prefix + LAST_BRANCH + ELISION)
        else:
            _render(node.children, child_prefix, depth + 1, options, lines)


def format_tree(
    nodes: Iterable[Entry],
    selected_ids: Collection[str] = (),
    options: TreeFormatOptions = DEFAULT_OPTIONS,
) -> str:
    """
    Render ``nodes`` as an ASCII tree.

    ``selected_ids`` are relative paths. Directory sizes and token counts are
    the sums over whatever children survive pruning. Calling this twice with the
    same arguments gives the same string.
    """
    root = _build(nodes, frozenset(selected_ids))
    if options.show_only_selected:
        _prune_unselected(root)
    _aggregate(root)
    _sort(root.children, options)

    lines: List[str] = []
    if options.max_depth is not None and options.max_depth == 0:
        if root.children:
            lines.append(LAST_BRANCH + ELISION)
    else:
        _render(root.children, "", 1, options, lines)
    return "".join(line + "\n" for line in lines)


def generate_file_map(
    selected_files: List[FileDescriptor],
    root_label: Optional[str] = None,
    all_files: Optional[List[FileDescriptor]] = None,
    options: TreeFormatOptions = DEFAULT_OPTIONS,
) -> str:
    """File map over ``all_files`` (or the selection alone) with the selection marked."""
    entries = all_files if all_files is not None else selected_files
    logger.debug("Formatting file map for %s (%d entries)", root_label or "<root>", len(entries))
    return format_tree(entries, {f.relative_path for f in selected_files}, options)


def generate_clipboard_payload(
    selected_files: List[FileDescriptor],
    root_label: Optional[str] = None,
    all_files: Optional[List[FileDescriptor]] = None,
    options: TreeFormatOptions = DEFAULT_OPTIONS,
) -> str:
    file_map = generate_file_map(selected_files, root_label, all_files, options)
    return f"<file_map>\n{file_map}</file_map>"
