# promptpacker/app.py

import asyncio
from pathlib import Path
from typing import List, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, ScrollableContainer, Vertical
from textual.css.query import NoMatches
from textual.message import Message
from textual.reactive import reactive
from textual.widgets import Footer, Header, Markdown, OptionList, Static
from textual.widgets.option_list import Option
from rich.text import Text

from .config import MAX_TOKEN_LIMIT
from .formatting import DEFAULT_PROMPT_OPTIONS, TreeFormatOptions, generate_file_map
from .models import CheckState, FileDescriptor, ScanResult, TreeNode
from .prompt import AssembleProgress, copy_prompt_to_clipboard
from .scanner import ScanError, read_file_content, scan_directory, write_to_clipboard
from .selection import SelectionEngine
from .stats import format_file_size, format_number, get_file_stats, get_token_usage_percentage
from .tree_builder import build_tree_nodes
from .visibility import ExpansionTracker

CHECK_GLYPHS = {
    CheckState.CHECKED: Text("[x] ", style="bold green"),
    CheckState.INDETERMINATE: Text("[-] ", style="yellow"),
    CheckState.UNCHECKED: Text("[ ] ", style="dim"),
}

PREVIEW_OPTIONS = TreeFormatOptions(show_tokens=True, show_only_selected=True)


class SelectionTree(OptionList):
    """Visible part of the scanned tree with tri-state checkboxes."""

    BINDINGS = [
        Binding("j", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
        Binding("l", "expand_or_collapse", "Expand", show=False),
        Binding("h", "collapse_or_parent", "Collapse/Parent", show=False),
        Binding("space", "toggle_select", "Toggle Select", show=False),
        Binding("x", "toggle_select", "Toggle Select", show=False),
        Binding("v", "toggle_visible", "Toggle Visible", show=True),
        Binding("e", "expand_all", "Expand All", show=False),
        Binding("E", "collapse_all", "Collapse All", show=False),
    ]

    class SelectionChanged(Message):
        def __init__(self, selected_files: List[FileDescriptor]) -> None:
            super().__init__()
            self.selected_files = selected_files

    def __init__(self, id: Optional[str] = None):
        super().__init__(id=id)
        self.engine = SelectionEngine([])
        self.expansion = ExpansionTracker([])
        self._visible_nodes: List[TreeNode] = []

    def load_nodes(self, nodes: List[TreeNode]) -> None:
        """Fresh scan: everything unchecked and collapsed."""
        self.engine.reset(nodes)
        self.expansion.reset(nodes)
        self.rebuild_options()
        self._post_selection()

    def rebuild_options(self) -> None:
        current = self.current_node
        self._visible_nodes = self.expansion.visible_nodes()
        self.clear_options()
        self.add_options([Option(self._render_node(n), id=n.id) for n in self._visible_nodes])
        if not self._visible_nodes:
            return
        index = 0
        if current is not None:
            ids = [n.id for n in self._visible_nodes]
            if current.id in ids:
                index = ids.index(current.id)
        self.highlighted = index

    def _render_node(self, node: TreeNode) -> Text:
        label = Text("  " * node.level)
        label.append_text(CHECK_GLYPHS[self.engine.state_of(node.id)])
        if node.is_directory:
            marker = "▾ " if self.expansion.is_expanded(node.id) else "▸ "
            label.append(marker + node.name + "/", style="bold")
        elif node.is_skipped:
            label.append(node.name, style="dim strike")
            label.append(" [binary]", style="dim")
        else:
            label.append(node.name)
            label.append(f"  {format_file_size(node.size)} • {format_number(node.token_estimate)} tokens", style="dim")
        return label

    @property
    def current_node(self) -> Optional[TreeNode]:
        if self.highlighted is None or not (0 <= self.highlighted < len(self._visible_nodes)):
            return None
        return self._visible_nodes[self.highlighted]

    def _post_selection(self) -> None:
        self.post_message(self.SelectionChanged(self.engine.selected_files()))

    def action_toggle_select(self) -> None:
        node = self.current_node
        if node is None:
            return
        if not self.engine.index.is_selectable(node.id):
            self.app.bell()
            return
        self.engine.toggle(node.id)
        self.rebuild_options()
        self._post_selection()

    def action_toggle_visible(self) -> None:
        self.engine.toggle_visible(self._visible_nodes)
        self.rebuild_options()
        self._post_selection()

    def select_all(self) -> None:
        self.engine.select_all()
        self.rebuild_options()
        self._post_selection()

    def deselect_all(self) -> None:
        self.engine.deselect_all()
        self.rebuild_options()
        self._post_selection()

    def action_expand_or_collapse(self) -> None:
        node = self.current_node
        if node is not None and self.expansion.toggle(node.id):
            self.rebuild_options()

    def action_collapse_or_parent(self) -> None:
        node = self.current_node
        if node is None:
            return
        if node.is_directory and self.expansion.is_expanded(node.id):
            self.expansion.collapse(node.id)
            self.rebuild_options()
            return
        parent = self.expansion.parent_of(node)
        if parent is not None:
            self.highlighted = [n.id for n in self._visible_nodes].index(parent.id)

    def action_expand_all(self) -> None:
        self.expansion.expand_all()
        self.rebuild_options()

    def action_collapse_all(self) -> None:
        self.expansion.collapse_all()
        self.rebuild_options()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        event.stop()
        self.action_expand_or_collapse()


class PromptPackerApp(App[None]):
    TITLE = "PromptPacker"
    CSS = """
    Screen { layout: vertical; }
    #main_container { layout: horizontal; height: 1fr; }
    #tree_panel { width: 60%; height: 100%; border-right: solid $primary; }
    #info_panel { width: 40%; height: 100%; padding: 0 1; }
    SelectionTree { width: 100%; height: 100%; }
    #selected_files { width: 100%; }
    #status_bar { dock: bottom; height: 1; background: $panel; color: $text; padding: 0 1; }
    """

    BINDINGS = [
        Binding("y", "yank_to_clipboard", "Copy Prompt", show=True),
        Binding("a", "select_all", "Select All", show=True),
        Binding("A", "deselect_all", "Clear All", show=True),
        Binding("r", "rescan", "Rescan", show=True),
        Binding("q", "quit", "Quit", show=True),
        Binding("ctrl+c", "quit", "Quit", show=False),
    ]

    status_text = reactive("Ready")

    def __init__(self, initial_path: Optional[Path] = None, max_tokens: int = MAX_TOKEN_LIMIT):
        super().__init__()
        self.project_path = (initial_path or Path.cwd()).resolve()
        self.max_tokens = max_tokens
        self.scan_result: Optional[ScanResult] = None
        self.selected_files: List[FileDescriptor] = []
        self._copy_in_progress = False

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main_container"):
            with Vertical(id="tree_panel"):
                yield SelectionTree(id="dir_tree")
            with ScrollableContainer(id="info_panel"):
                yield Markdown("### Selected Files\n\n_None selected_", id="selected_files")
        yield Static(self.status_text, id="status_bar")
        yield Footer()

    async def on_mount(self) -> None:
        self.sub_title = str(self.project_path)
        self.query_one(SelectionTree).focus()
        await self.action_rescan()

    def watch_status_text(self, new_text: str) -> None:
        try:
            self.query_one("#status_bar", Static).update(new_text)
        except NoMatches:
            pass

    async def action_rescan(self) -> None:
        self.status_text = f"Scanning {self.project_path.name}..."
        try:
            result = await asyncio.to_thread(scan_directory, self.project_path)
        except ScanError as e:
            self.log(f"Scan failed: {e}")
            self.notify(str(e), severity="error")
            self.status_text = "Scan failed."
            return
        self.scan_result = result
        self.query_one(SelectionTree).load_nodes(build_tree_nodes(result.files))
        stats = result.stats
        self.status_text = (
            f"{stats.file_count} files, {stats.skipped_count} skipped, "
            f"{format_number(stats.total_tokens)} tokens | space=select, l=expand, y=copy"
        )

    async def on_selection_tree_selection_changed(self, event: SelectionTree.SelectionChanged) -> None:
        self.selected_files = event.selected_files
        self.update_selected_files_display()

    def update_selected_files_display(self) -> None:
        try:
            md_widget = self.query_one("#selected_files", Markdown)
        except NoMatches:
            return
        files = self.selected_files
        if not files:
            md_widget.update("### Selected Files\n\n_None selected_")
            return
        stats = get_file_stats(files)
        usage = get_token_usage_percentage(files, self.max_tokens)
        by_ext = "\n".join(f"- `.{s.extension}`: {s.count} files, {format_number(s.tokens)} tokens"
                           for s in stats.by_extension)
        file_map = generate_file_map(files, self.project_path.name, self._all_files(), PREVIEW_OPTIONS)
        md_widget.update(
            f"### Selected Files ({stats.total_files})\n\n"
            f"**Total size:** {format_file_size(stats.total_size)}  \n"
            f"**Tokens:** {format_number(stats.total_tokens)} / {format_number(self.max_tokens)} ({usage:.1f}%)\n\n"
            f"{by_ext}\n\n"
            f"```\n<file_map>\n{file_map}</file_map>\n```"
        )

    def _all_files(self) -> List[FileDescriptor]:
        return list(self.scan_result.files) if self.scan_result else []

    def action_select_all(self) -> None:
        self.query_one(SelectionTree).select_all()
        self.notify("Selected all files", severity="information")

    def action_deselect_all(self) -> None:
        self.query_one(SelectionTree).deselect_all()
        self.notify("Cleared all selections", severity="information")

    def _on_progress(self, progress: AssembleProgress) -> None:
        self.status_text = f"Packing {progress.current}/{progress.total} ({progress.percentage}%): {progress.file_name}"

    async def action_yank_to_clipboard(self) -> None:
        """Copy the prompt for the current selection (y)"""
        if self._copy_in_progress:
            return
        files = list(self.selected_files)
        if not files:
            self.notify("No files selected!", severity="warning")
            self.bell()
            return

        self._copy_in_progress = True
        try:
            result = await copy_prompt_to_clipboard(
                files,
                self.project_path.name,
                self._all_files(),
                DEFAULT_PROMPT_OPTIONS,
                read_file_content,
                write_to_clipboard,
                self.max_tokens,
                self._on_progress,
            )
        finally:
            self._copy_in_progress = False

        if not result.success:
            self.log(f"Copy failed: {result.error}")
            self.notify(f"Copy failed: {result.error}", severity="error", timeout=6)
            self.status_text = "Failed to copy to clipboard"
            return

        summary = f"{result.processed_count}/{result.total_count} files, {format_number(result.tokens_used)} tokens"
        if result.token_cap_exceeded:
            self.notify(f"Partial copy: {result.warning}", severity="warning", timeout=6)
            self.status_text = f"Copied {summary} (token limit reached)"
        else:
            self.notify(f"Copied {summary} to clipboard!", severity="information")
            self.status_text = f"Copied {summary}"
