# tests/test_selection.py

import random

import pytest

from promptpacker.models import CheckState, FileDescriptor
from promptpacker.selection import NodeIndex, SelectionEngine, Toggle, reduce_selection
from promptpacker.tree_builder import build_tree_nodes

CHECKED = CheckState.CHECKED
UNCHECKED = CheckState.UNCHECKED
INDETERMINATE = CheckState.INDETERMINATE


def _d(rel, is_dir=False, skipped=False, tokens=10):
    return FileDescriptor(
        path=f"/proj/{rel}",
        relative_path=rel,
        is_directory=is_dir,
        is_skipped=skipped,
        token_estimate=0 if (is_dir or skipped) else tokens,
    )


@pytest.fixture
def engine():
    nodes = build_tree_nodes([
        _d("root", True),
        _d("root/dir1", True),
        _d("root/dir1/x.ts"),
        _d("root/y.ts"),
        _d("root/logo.png", skipped=True),
    ])
    return SelectionEngine(nodes)


def test_selecting_only_child_checks_parent_and_marks_root_partial(engine):
    engine.toggle("root/dir1/x.ts")
    assert engine.state_of("root/dir1/x.ts") == CHECKED
    assert engine.state_of("root/dir1") == CHECKED
    assert engine.state_of("root") == INDETERMINATE


def test_root_checked_once_every_selectable_child_is(engine):
    engine.toggle("root/dir1/x.ts")
    engine.toggle("root/y.ts")
    # logo.png is skipped and does not count against the root
    assert engine.state_of("root") == CHECKED


def test_toggling_a_file_twice_restores_state(engine):
    engine.toggle("root/y.ts")
    before = {n.id: engine.state_of(n.id) for n in engine.nodes}
    engine.toggle("root/dir1/x.ts")
    engine.toggle("root/dir1/x.ts")
    after = {n.id: engine.state_of(n.id) for n in engine.nodes}
    assert after == before


def test_skipped_file_cannot_be_toggled(engine):
    engine.toggle("root/y.ts")
    before = engine.states
    engine.toggle("root/logo.png")
    assert engine.states == before
    assert engine.state_of("root/logo.png") == UNCHECKED


def test_set_state_on_skipped_file_is_ignored(engine):
    engine.set_state("root/logo.png", CHECKED)
    assert engine.states == {}


def test_unknown_ids_are_ignored(engine):
    engine.toggle("does/not/exist")
    engine.set_state("nope", CHECKED)
    assert engine.states == {}


def test_toggling_directory_cascades_to_selectable_descendants(engine):
    engine.toggle("root")
    assert engine.state_of("root") == CHECKED
    assert engine.state_of("root/dir1") == CHECKED
    assert engine.state_of("root/dir1/x.ts") == CHECKED
    assert engine.state_of("root/y.ts") == CHECKED
    assert engine.state_of("root/logo.png") == UNCHECKED

    engine.toggle("root/dir1")
    assert engine.state_of("root/dir1/x.ts") == UNCHECKED
    assert engine.state_of("root") == INDETERMINATE


def test_indeterminate_directory_toggles_to_checked(engine):
    engine.toggle("root/dir1/x.ts")
    assert engine.state_of("root") == INDETERMINATE
    engine.toggle("root")
    assert engine.state_of("root") == CHECKED
    assert engine.state_of("root/y.ts") == CHECKED


def test_set_state_cascades_and_noops_when_unchanged(engine):
    assert engine.set_state("root/y.ts", UNCHECKED) == {}
    engine.set_state("root/dir1", CHECKED)
    assert engine.state_of("root/dir1/x.ts") == CHECKED
    assert engine.state_of("root") == INDETERMINATE

    snapshot = engine.states
    engine.set_state("root/dir1", CHECKED)
    assert engine.states == snapshot


def test_select_all_then_deselect_all_leaves_everything_unchecked(engine):
    engine.select_all()
    assert engine.state_of("root") == CHECKED
    assert engine.state_of("root/logo.png") == UNCHECKED
    engine.deselect_all()
    assert all(engine.state_of(n.id) == UNCHECKED for n in engine.nodes)
    assert set(engine.states) == {n.id for n in engine.nodes}


def test_select_all_leaves_directories_without_selectable_children_alone():
    # Characterized behaviour: select_all does not touch these directories,
    # while deselect_all clears them unconditionally.
    engine = SelectionEngine(build_tree_nodes([
        _d("empty", True),
        _d("assets", True),
        _d("assets/logo.png", skipped=True),
        _d("kept", True),
        _d("main.py"),
    ]))
    engine.reinitialize({"kept": CHECKED})
    assert engine.state_of("kept") == CHECKED

    engine.select_all()
    assert engine.state_of("empty") == UNCHECKED
    assert "empty" not in engine.states
    assert engine.state_of("assets") == UNCHECKED
    assert engine.state_of("kept") == CHECKED
    assert engine.state_of("main.py") == CHECKED

    engine.deselect_all()
    assert engine.state_of("kept") == UNCHECKED


def test_skipped_children_do_not_count_in_directory_tally():
    engine = SelectionEngine(build_tree_nodes([
        _d("assets", True),
        _d("assets/logo.png", skipped=True),
        _d("assets/inner", True),
        _d("assets/inner/a.py"),
    ]))
    engine.toggle("assets/inner/a.py")
    assert engine.state_of("assets") == CHECKED
    engine.toggle("assets/inner/a.py")
    assert engine.state_of("assets") == UNCHECKED


def test_toggle_visible_selects_when_at_most_half_checked():
    nodes = build_tree_nodes([_d("a.py"), _d("b.py"), _d("c.py"), _d("d.py")])
    engine = SelectionEngine(nodes)
    engine.toggle("a.py")
    engine.toggle("b.py")
    # two of four checked is a tie, ties select
    engine.toggle_visible(nodes)
    assert all(engine.state_of(n.id) == CHECKED for n in nodes)

    engine.toggle("a.py")
    # three of four checked, more than half: deselect
    engine.toggle_visible(nodes)
    assert all(engine.state_of(n.id) == UNCHECKED for n in nodes)


def test_toggle_visible_applies_to_collapsed_directory_subtree(engine):
    root = next(n for n in engine.nodes if n.id == "root")
    engine.toggle_visible([root])
    assert engine.state_of("root") == CHECKED
    assert engine.state_of("root/dir1/x.ts") == CHECKED
    assert engine.state_of("root/logo.png") == UNCHECKED


def test_toggle_visible_recomputes_ancestors(engine):
    visible = [n for n in engine.nodes if n.id in ("root/dir1/x.ts",)]
    engine.toggle_visible(visible)
    assert engine.state_of("root/dir1") == CHECKED
    assert engine.state_of("root") == INDETERMINATE


def test_reinitialize_seeds_ancestor_states(engine):
    engine.toggle("root")
    engine.reinitialize({"root/dir1/x.ts": CHECKED})
    assert engine.state_of("root/y.ts") == UNCHECKED
    assert engine.state_of("root/dir1") == CHECKED
    assert engine.state_of("root") == INDETERMINATE


def test_reset_clears_state_for_new_scan(engine):
    engine.select_all()
    engine.reset(build_tree_nodes([_d("other.py")]))
    assert engine.states == {}
    assert [n.id for n in engine.nodes] == ["other.py"]


def test_selected_files_are_checked_files_in_path_order(engine):
    engine.toggle("root")
    assert [f.relative_path for f in engine.selected_files()] == ["root/dir1/x.ts", "root/y.ts"]


def test_reducer_does_not_mutate_its_input(engine):
    states = {"root/y.ts": CHECKED}
    new_states = reduce_selection(states, Toggle("root/y.ts"), engine.index)
    assert states == {"root/y.ts": CHECKED}
    assert new_states["root/y.ts"] == UNCHECKED


def test_orphan_nodes_do_not_break_ancestor_walk():
    engine = SelectionEngine(build_tree_nodes([_d("ghost/a.py"), _d("b.py")]))
    engine.toggle("ghost/a.py")
    assert engine.state_of("ghost/a.py") == CHECKED
    assert engine.states == {"ghost/a.py": CHECKED}


def _expected_directory_state(engine: SelectionEngine, dir_id: str) -> CheckState:
    files = [n for n in engine.index.descendants(dir_id) if not n.is_directory and not n.is_skipped]
    checked = sum(1 for f in files if engine.state_of(f.id) == CHECKED)
    if checked == 0:
        return UNCHECKED
    if checked == len(files):
        return CHECKED
    return INDETERMINATE


def test_directory_states_track_descendant_files_under_random_actions():
    nodes = build_tree_nodes([
        _d("src", True),
        _d("src/core", True),
        _d("src/core/a.py"),
        _d("src/core/b.py"),
        _d("src/core/blob.bin", skipped=True),
        _d("src/assets", True),
        _d("src/assets/logo.png", skipped=True),
        _d("src/empty", True),
        _d("src/ui", True),
        _d("src/ui/deep", True),
        _d("src/ui/deep/c.py"),
        _d("src/ui/hollow", True),
        _d("src/ui/hollow/inner", True),
        _d("src/ui/d.py"),
        _d("src/e.py"),
        _d("docs", True),
        _d("docs/readme.md"),
        _d("media", True),
        _d("media/clip.mp4", skipped=True),
    ])
    engine = SelectionEngine(nodes)
    ids = [n.id for n in nodes]
    dirs = [n.id for n in nodes if n.is_directory]
    rng = random.Random(1234)

    for _ in range(400):
        roll = rng.random()
        if roll < 0.05:
            engine.select_all()
        elif roll < 0.08:
            engine.deselect_all()
        elif roll < 0.2:
            engine.toggle_visible(rng.sample(nodes, rng.randint(1, 5)))
        else:
            engine.toggle(rng.choice(ids))
        for dir_id in dirs:
            assert engine.state_of(dir_id) == _expected_directory_state(engine, dir_id), dir_id


@pytest.fixture
def hollow_tree():
    return SelectionEngine(build_tree_nodes([
        _d("src", True),
        _d("src/assets", True),
        _d("src/assets/logo.png", skipped=True),
        _d("src/empty", True),
        _d("src/m.py"),
    ]))


def test_toggling_a_file_twice_after_select_all_restores_ancestors(hollow_tree):
    hollow_tree.select_all()
    before = hollow_tree.states
    hollow_tree.toggle("src/m.py")
    assert hollow_tree.state_of("src") == UNCHECKED
    hollow_tree.toggle("src/m.py")
    assert hollow_tree.states == before
    assert hollow_tree.state_of("src") == CHECKED


def test_directories_without_selectable_files_do_not_vote(hollow_tree):
    hollow_tree.toggle("src/m.py")
    assert hollow_tree.state_of("src") == CHECKED


def test_cascade_leaves_directories_without_selectable_files_unchecked(hollow_tree):
    hollow_tree.toggle("src")
    assert hollow_tree.state_of("src") == CHECKED
    assert hollow_tree.state_of("src/m.py") == CHECKED
    assert hollow_tree.state_of("src/empty") == UNCHECKED
    assert hollow_tree.state_of("src/assets") == UNCHECKED


def test_directories_without_selectable_files_cannot_be_toggled(hollow_tree):
    hollow_tree.toggle("src/empty")
    hollow_tree.set_state("src/assets", CHECKED)
    assert hollow_tree.states == {}
    assert not hollow_tree.index.is_selectable("src/empty")
    assert hollow_tree.index.is_selectable("src")


def test_toggle_visible_skips_directories_without_selectable_files(hollow_tree):
    visible = [n for n in hollow_tree.nodes if n.parent_id == "src"]
    hollow_tree.toggle_visible(visible)
    assert hollow_tree.state_of("src/m.py") == CHECKED
    assert hollow_tree.state_of("src/assets") == UNCHECKED
    assert hollow_tree.state_of("src/empty") == UNCHECKED
    assert hollow_tree.state_of("src") == CHECKED


def test_set_state_indeterminate_on_a_file_is_ignored(engine):
    engine.set_state("root/y.ts", INDETERMINATE)
    assert engine.states == {}
    engine.set_state("root/dir1", INDETERMINATE)
    assert engine.state_of("root/dir1") == INDETERMINATE
    assert engine.state_of("root/dir1/x.ts") == UNCHECKED


def test_node_index_selectability():
    index = NodeIndex(build_tree_nodes([
        _d("a", True),
        _d("a/b", True),
        _d("a/b/c", True),
        _d("a/b/c/x.py"),
        _d("a/hollow", True),
        _d("a/hollow/pic.png", skipped=True),
    ]))
    assert index.is_selectable("a")
    assert index.is_selectable("a/b/c/x.py")
    assert not index.is_selectable("a/hollow")
    assert not index.is_selectable("a/hollow/pic.png")
    assert index.has_selectable_descendant("a")
    assert not index.has_selectable_descendant("a/hollow")
