"""proctree - Main Textual application."""

from collections.abc import Sequence

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Footer, Input, Label, Static, Tree

from proctree.collector import SnapshotCollector
from proctree.config import MonitorConfig, configure_logging, parse_args
from proctree.models import ProcessKind, ProcessRecord, ProcessTree
from proctree.search import ViewMode
from proctree.state import ProcessExplorer


KIND_STYLES = {
    ProcessKind.ROOT: "red",
    ProcessKind.SYSTEM: "dark_orange",
    ProcessKind.USER: "dodger_blue1",
    ProcessKind.UNKNOWN: "grey50",
}

# Children listed in the detail panel before summarising the rest
DETAIL_CHILD_LIMIT = 5


def process_label(record: ProcessRecord, highlight: bool = False) -> Text:
    """Build the label used for a process in the tree view."""
    label = Text(record.name or "?", style=KIND_STYLES[record.kind])
    if highlight:
        label.stylize("bold reverse")
    label.append(f"  {record.pid}", style="dim")
    label.append(f"  {record.username}", style="dim")
    return label


def format_details(record: ProcessRecord | None, tree: ProcessTree) -> str:
    """Render the detail panel text for ``record``."""
    if record is None:
        return "No process selected\n\nSelect a process from the list to view details"

    lines = [
        f"{record.name}",
        "",
        f"Process ID:  {record.pid}",
        f"Parent PID:  {record.ppid}",
        f"User:        {record.username}",
        f"User ID:     {record.uid}",
        f"Kind:        {record.kind.value}",
        f"CPU Usage:   {record.cpu_usage:.1f}%",
    ]
    if record.path:
        lines.append(f"Path:        {record.path}")

    lines.append("")
    parent = tree.parent_of(record.pid)
    if parent is not None:
        lines.append(f"Parent: {parent.name} ({parent.pid})")
    else:
        lines.append("No parent process (root)")

    children = tree.children_of(record.pid)
    if children:
        lines.append(f"Children ({len(children)}):")
        for child in children[:DETAIL_CHILD_LIMIT]:
            lines.append(f"  • {child.name} ({child.pid})")
        if len(children) > DETAIL_CHILD_LIMIT:
            lines.append(f"  ... and {len(children) - DETAIL_CHILD_LIMIT} more")
    else:
        lines.append("No child processes")

    if record.is_root_owned:
        lines.append("")
        lines.append("Root-owned processes cannot be terminated")
    return "\n".join(lines)


class StatusBar(Static):
    """One-line summary of the published snapshot and view settings."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface;
    }
    """

    def update_status(self, explorer: ProcessExplorer) -> None:
        parts = [f"Processes: {len(explorer.tree)}"]
        if explorer.is_loading:
            parts.append("Loading...")
        parts.append(f"Sort: {explorer.sort_key.value.upper()}")
        parts.append(f"View: {explorer.view_mode.value}")
        if explorer.search_text:
            parts.append(f"Filter: {explorer.search_text!r}")
        if explorer.last_error is not None:
            parts.append(f"Error: {explorer.last_error}")
        self.update(Text("  |  ".join(parts)))


class ProcessView(Container):
    """Holds the tree widget and the flat table; one is shown at a time."""

    DEFAULT_CSS = """
    ProcessView {
        width: 3fr;
        border: solid $primary;
    }
    """

    def __init__(self) -> None:
        super().__init__()
        # Nodes the operator collapsed, kept across rebuilds
        self._collapsed: set[int] = set()

    def compose(self) -> ComposeResult:
        """Compose the process views."""
        yield Tree[int]("Processes", id="process-tree")
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the widgets when mounted."""
        tree = self.query_one("#process-tree", Tree)
        tree.show_root = False
        tree.root.expand()

        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"
        table.add_column("PID", key="pid", width=8)
        table.add_column("Name", key="name", width=24)
        table.add_column("User", key="user", width=12)
        table.add_column("CPU%", key="cpu", width=6)
        table.add_column("Path", key="path")

    def on_tree_node_collapsed(self, event: Tree.NodeCollapsed) -> None:
        if event.node.data is not None:
            self._collapsed.add(event.node.data)

    def on_tree_node_expanded(self, event: Tree.NodeExpanded) -> None:
        self._collapsed.discard(event.node.data)

    def show(self, mode: ViewMode) -> None:
        self.query_one("#process-tree", Tree).display = mode is ViewMode.TREE
        self.query_one("#process-table", DataTable).display = mode is ViewMode.FLAT

    def update_entries(
        self,
        snapshot: ProcessTree,
        entries: Sequence[ProcessRecord],
        mode: ViewMode,
        query: str,
    ) -> None:
        """Replace the displayed processes with ``entries``."""
        self.show(mode)
        if mode is ViewMode.TREE:
            self._fill_tree(snapshot, entries, query)
        else:
            self._fill_table(entries)

    def _fill_tree(self, snapshot: ProcessTree, roots: Sequence[ProcessRecord], query: str) -> None:
        widget = self.query_one("#process-tree", Tree)
        cursor = widget.cursor_node
        cursor_pid = cursor.data if cursor is not None else None

        widget.clear()
        cursor_node = None
        seen: set[int] = set()
        stack = [(widget.root, record) for record in reversed(roots)]
        while stack:
            parent_node, record = stack.pop()
            if record.pid in seen:
                continue
            seen.add(record.pid)
            label = process_label(record, highlight=bool(query) and record.matches(query))
            children = snapshot.children_of(record.pid)
            if children:
                expand = record.pid not in self._collapsed
                node = parent_node.add(label, data=record.pid, expand=expand)
                stack.extend((node, child) for child in reversed(children))
            else:
                node = parent_node.add_leaf(label, data=record.pid)
            if record.pid == cursor_pid:
                cursor_node = node

        if cursor_node is not None:
            # Line numbers are only assigned once the tree has been laid out
            widget.call_after_refresh(widget.move_cursor, cursor_node)

    def _fill_table(self, records: Sequence[ProcessRecord]) -> None:
        table = self.query_one("#process-table", DataTable)
        table.clear()
        for record in records:
            table.add_row(
                str(record.pid),
                record.name[:24],
                record.username[:12],
                f"{record.cpu_usage:5.1f}",
                record.path,
                key=str(record.pid),
            )


class ConfirmKill(ModalScreen[bool]):
    """Asks the operator to confirm a termination."""

    DEFAULT_CSS = """
    ConfirmKill {
        align: center middle;
    }

    #confirm-dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        border: thick $error;
        background: $surface;
    }
    """

    BINDINGS = [("escape", "cancel", "Cancel")]

    def __init__(self, record: ProcessRecord) -> None:
        super().__init__()
        self._record = record

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Label(
                Text(
                    f'Kill "{self._record.name}" (PID: {self._record.pid})?\n\n'
                    "This action cannot be undone."
                )
            )
            with Horizontal():
                yield Button("Kill", variant="error", id="kill")
                yield Button("Cancel", id="cancel")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "kill")

    def action_cancel(self) -> None:
        self.dismiss(False)


class ProcTreeApp(App):
    """Main proctree application."""

    TITLE = "proctree"
    SUB_TITLE = "Process Hierarchy Monitor"
    AUTO_FOCUS = "#process-tree"

    CSS = """
    Screen {
        layout: vertical;
    }

    #search {
        dock: top;
    }

    #body {
        height: 1fr;
    }

    #details {
        width: 2fr;
        padding: 1;
        border: solid $secondary;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
        ("t", "toggle_view", "Tree/Flat"),
        ("slash", "search", "Search"),
        ("escape", "leave_search", "Back"),
        ("k", "kill", "Kill"),
        ("r", "refresh", "Refresh"),
        ("p", "parent", "Parent"),
        ("c", "copy_pid", "Copy PID"),
    ]

    def __init__(
        self,
        config: MonitorConfig | None = None,
        collector: SnapshotCollector | None = None,
        explorer: ProcessExplorer | None = None,
    ) -> None:
        """Initialize the ProcTreeApp."""
        super().__init__()
        self._explorer = explorer if explorer is not None else ProcessExplorer(config, collector)

    @property
    def explorer(self) -> ProcessExplorer:
        return self._explorer

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Input(placeholder="Search processes...", id="search")
        yield StatusBar(id="status")
        with Horizontal(id="body"):
            yield ProcessView()
            yield Static(id="details")
        yield Footer()

    def on_mount(self) -> None:
        """Start the process monitor when the app is mounted."""
        self._explorer.start()
        self.call_after_refresh(self._render_view)
        # Set up a timer to poll the queue for updates
        self.set_interval(0.5, self._check_for_updates)

    def on_unmount(self) -> None:
        self._explorer.stop()

    def _check_for_updates(self) -> None:
        """Publish pending snapshots and refresh the UI."""
        if self._explorer.apply_updates():
            self._render_view()
        else:
            self._render_status()

    def _render_status(self) -> None:
        self.query_one("#status", StatusBar).update_status(self._explorer)

    def _render_details(self) -> None:
        explorer = self._explorer
        self.query_one("#details", Static).update(
            Text(format_details(explorer.display_record, explorer.tree))
        )

    def _render_view(self) -> None:
        """Redraw the process view, status line and detail panel."""
        explorer = self._explorer
        self.query_one(ProcessView).update_entries(
            explorer.tree,
            explorer.visible_entries(),
            explorer.view_mode,
            explorer.search_text,
        )
        self._render_status()
        self._render_details()

    def on_input_changed(self, event: Input.Changed) -> None:
        self._explorer.set_search_text(event.value)
        self._render_view()

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        if event.node.data is not None:
            self._explorer.select(event.node.data)
            self._render_details()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        if event.row_key.value is not None:
            self._explorer.select(int(event.row_key.value))
            self._render_details()

    def action_sort(self) -> None:
        """Cycle through sort criteria."""
        new_sort_key = self._explorer.cycle_sort()
        self._render_view()
        self.notify(f"Sort: {new_sort_key.value.upper()}")

    def action_toggle_view(self) -> None:
        mode = self._explorer.toggle_view_mode()
        self._render_view()
        self.notify(f"View: {mode.value}")

    def action_search(self) -> None:
        self.query_one("#search", Input).focus()

    def action_leave_search(self) -> None:
        if self._explorer.view_mode is ViewMode.TREE:
            self.query_one("#process-tree", Tree).focus()
        else:
            self.query_one("#process-table", DataTable).focus()

    def action_refresh(self) -> None:
        self._explorer.refresh()

    def action_parent(self) -> None:
        record = self._explorer.display_record
        if record is None:
            return
        parent = self._explorer.tree.parent_of(record.pid)
        if parent is None:
            self.notify("No parent process (root)")
            return
        self._explorer.select(parent.pid)
        self._render_details()

    def action_copy_pid(self) -> None:
        record = self._explorer.display_record
        if record is not None:
            self.copy_to_clipboard(str(record.pid))
            self.notify(f"Copied PID {record.pid}")

    def action_kill(self) -> None:
        """Ask for confirmation, then terminate the selected process."""
        record = self._explorer.selected
        if record is None:
            self.notify("No process selected", severity="warning")
            return
        if not self._explorer.can_terminate(record):
            self.notify("Root-owned processes cannot be terminated", severity="warning")
            return

        def on_confirm(confirmed: bool | None) -> None:
            if confirmed:
                self._kill(record)

        self.push_screen(ConfirmKill(record), on_confirm)

    def _kill(self, record: ProcessRecord) -> None:
        result = self._explorer.request_termination(record.pid)
        if result is None:
            self.notify(f"Process {record.pid} is no longer available", severity="warning")
        else:
            self.notify(f"{record.name} ({record.pid}): {result.value}")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._explorer.stop()
        self.exit()


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for proctree application."""
    config = parse_args(argv)
    configure_logging(config.log_level, config.log_file)
    app = ProcTreeApp(config)
    app.run()


if __name__ == "__main__":
    main()
