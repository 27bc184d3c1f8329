# promptpacker/selection.py
"""
Tri-state selection over a scanned tree.

The check map is kept apart from the nodes. Every action goes through
``reduce_selection``, which returns a new mapping and never touches the old
one, so a snapshot handed to the prompt assembler stays valid while the user
keeps clicking.

Ancestor recompute walks all the way to the root on every mutation: O(depth)
per toggle and O(n * depth) for the bulk actions.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Union

from .models import CheckState, FileDescriptor, TreeNode
from .tree_builder import build_node_index, children_by_parent

logger = logging.getLogger(__name__)

CheckStates = Dict[str, CheckState]


class NodeIndex:
    """Id lookups over an immutable node list."""

    def __init__(self, nodes: Sequence[TreeNode]):
        self.nodes: List[TreeNode] = list(nodes)
        self.by_id: Dict[str, TreeNode] = build_node_index(self.nodes)
        self._children = children_by_parent(self.nodes)
        self._selectable = self._find_selectable()

    def _find_selectable(self) -> Set[str]:
        # Deepest first, so every directory sees its children already resolved.
        selectable: Set[str] = set()
        for node in sorted(self.nodes, key=lambda n: n.level, reverse=True):
            if node.is_skipped:
                continue
            if not node.is_directory or any(c.id in selectable for c in self.children(node.id)):
                selectable.add(node.id)
        return selectable

    def get(self, node_id: Optional[str]) -> Optional[TreeNode]:
        if node_id is None:
            return None
        return self.by_id.get(node_id)

    def children(self, node_id: str) -> List[TreeNode]:
        return self._children.get(node_id, [])

    def descendants(self, node_id: str) -> List[TreeNode]:
        found: List[TreeNode] = []
        stack = [node_id]
        while stack:
            for child in self.children(stack.pop()):
                found.append(child)
                if child.is_directory:
                    stack.append(child.id)
        return found

    def is_selectable(self, node_id: str) -> bool:
        """A non-skipped file, or a directory holding one somewhere below it."""
        return node_id in self._selectable

    def has_selectable_descendant(self, dir_id: str) -> bool:
        return any(child.id in self._selectable for child in self.children(dir_id))


# --- Actions ---
@dataclass(frozen=True)
class Toggle:
    node_id: str


@dataclass(frozen=True)
class SetState:
    node_id: str
    state: CheckState


@dataclass(frozen=True)
class SelectAll:
    pass


@dataclass(frozen=True)
class DeselectAll:
    pass


@dataclass(frozen=True)
class ToggleVisible:
    visible_nodes: Sequence[TreeNode]


@dataclass(frozen=True)
class Reinitialize:
    initial_states: Mapping[str, CheckState]


SelectionAction = Union[Toggle, SetState, SelectAll, DeselectAll, ToggleVisible, Reinitialize]


def update_ancestors(states: CheckStates, start_parent_id: Optional[str], index: NodeIndex) -> None:
    """Recompute directory states from their direct children, up to the root."""
    current_id = start_parent_id
    while current_id is not None:
        node = index.get(current_id)
        if node is None or not node.is_directory:
            break
        total = checked = indeterminate = 0
        for child in index.children(node.id):
            # Skipped files and directories without a selectable file hold no vote.
            if not index.is_selectable(child.id):
                continue
            total += 1
            child_state = states.get(child.id, CheckState.UNCHECKED)
            if child_state == CheckState.CHECKED:
                checked += 1
            elif child_state == CheckState.INDETERMINATE:
                indeterminate += 1

        if total == 0:
            new_state = CheckState.UNCHECKED
        elif indeterminate or 0 < checked < total:
            new_state = CheckState.INDETERMINATE
        elif checked == total:
            new_state = CheckState.CHECKED
        else:
            new_state = CheckState.UNCHECKED

        if states.get(node.id, CheckState.UNCHECKED) != new_state:
            states[node.id] = new_state
        # No early exit on an unchanged level: the whole chain is refreshed.
        current_id = node.parent_id


def _cascade(states: CheckStates, node: TreeNode, new_state: CheckState, index: NodeIndex) -> None:
    states[node.id] = new_state
    if node.is_directory and new_state != CheckState.INDETERMINATE:
        _write_subtree(states, node.id, new_state, index)
    update_ancestors(states, node.parent_id, index)


def _write_subtree(states: CheckStates, dir_id: str, new_state: CheckState, index: NodeIndex) -> None:
    for desc in index.descendants(dir_id):
        if index.is_selectable(desc.id):
            states[desc.id] = new_state


def _selectable(index: NodeIndex, node_id: str, log: logging.Logger) -> Optional[TreeNode]:
    node = index.get(node_id)
    if node is None:
        log.debug("Ignoring selection change for unknown node %r", node_id)
        return None
    if node.is_skipped:
        log.debug("Ignoring selection change for skipped node %r", node_id)
        return None
    if not index.is_selectable(node.id):
        log.debug("Ignoring selection change for directory %r with no selectable files", node_id)
        return None
    return node


def reduce_selection(
    states: Mapping[str, CheckState],
    action: SelectionAction,
    index: NodeIndex,
    log: logging.Logger = logger,
) -> CheckStates:
    """Return the state that follows ``action``. The input mapping is not modified."""
    new_states: CheckStates = dict(states)

    if isinstance(action, Toggle):
        node = _selectable(index, action.node_id, log)
        if node is None:
            return new_states
        current = new_states.get(node.id, CheckState.UNCHECKED)
        target = CheckState.UNCHECKED if current == CheckState.CHECKED else CheckState.CHECKED
        _cascade(new_states, node, target, index)

    elif isinstance(action, SetState):
        node = _selectable(index, action.node_id, log)
        if node is None:
            return new_states
        if action.state == CheckState.INDETERMINATE and not node.is_directory:
            log.debug("Ignoring indeterminate state for file %r", node.id)
            return new_states
        if new_states.get(node.id, CheckState.UNCHECKED) == action.state:
            return new_states
        _cascade(new_states, node, action.state, index)

    elif isinstance(action, SelectAll):
        for node in index.nodes:
            if node.is_skipped:
                new_states[node.id] = CheckState.UNCHECKED
            elif not node.is_directory:
                new_states[node.id] = CheckState.CHECKED
            elif index.has_selectable_descendant(node.id):
                new_states[node.id] = CheckState.CHECKED
            # Directories without selectable children keep whatever they had.

    elif isinstance(action, DeselectAll):
        new_states = {node.id: CheckState.UNCHECKED for node in index.nodes}

    elif isinstance(action, ToggleVisible):
        visible = list(action.visible_nodes)
        files = [n for n in visible if not n.is_directory and not n.is_skipped]
        checked = sum(1 for n in files if new_states.get(n.id) == CheckState.CHECKED)
        target = CheckState.CHECKED
        if files and checked > len(files) / 2:
            target = CheckState.UNCHECKED

        for node in visible:
            if not index.is_selectable(node.id):
                continue
            new_states[node.id] = target
            if node.is_directory:
                _write_subtree(new_states, node.id, target, index)
        for node in visible:
            update_ancestors(new_states, node.parent_id, index)

    elif isinstance(action, Reinitialize):
        new_states = dict(action.initial_states)
        for node_id in action.initial_states:
            node = index.get(node_id)
            if node is not None:
                update_ancestors(new_states, node.parent_id, index)

    else:
        raise TypeError(f"Unknown selection action: {action!r}")

    return new_states


class SelectionEngine:
    """Holds the check map for one scan and applies actions to it."""

    def __init__(self, nodes: Sequence[TreeNode], log: Optional[logging.Logger] = None):
        self.log = log or logger
        self.index = NodeIndex(nodes)
        self._states: CheckStates = {}

    @property
    def nodes(self) -> List[TreeNode]:
        return self.index.nodes

    @property
    def states(self) -> CheckStates:
        return dict(self._states)

    def state_of(self, node_id: str) -> CheckState:
        return self._states.get(node_id, CheckState.UNCHECKED)

    def dispatch(self, action: SelectionAction) -> CheckStates:
        self._states = reduce_selection(self._states, action, self.index, self.log)
        return self.states

    def toggle(self, node_id: str) -> CheckStates:
        return self.dispatch(Toggle(node_id))

    def set_state(self, node_id: str, state: CheckState) -> CheckStates:
        return self.dispatch(SetState(node_id, state))

    def select_all(self) -> CheckStates:
        return self.dispatch(SelectAll())

    def deselect_all(self) -> CheckStates:
        return self.dispatch(DeselectAll())

    def toggle_visible(self, visible_nodes: Iterable[TreeNode]) -> CheckStates:
        return self.dispatch(ToggleVisible(tuple(visible_nodes)))

    def reinitialize(self, initial_states: Mapping[str, CheckState]) -> CheckStates:
        return self.dispatch(Reinitialize(dict(initial_states)))

    def reset(self, nodes: Sequence[TreeNode]) -> None:
        """Start over for a new scan: fresh index, everything unchecked."""
        self.index = NodeIndex(nodes)
        self._states = {}

    def selected_files(self) -> List[FileDescriptor]:
        """Checked files that would go into a prompt, sorted by relative path."""
        nodes = sorted(self.index.nodes, key=lambda n: n.relative_path)
        return [
            node.to_descriptor()
            for node in nodes
            if not node.is_directory
            and not node.is_skipped
            and self._states.get(node.id) == CheckState.CHECKED
        ]
