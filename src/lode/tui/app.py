#
# src/lode/tui/app.py
#
"""
Textual app showing the result tree of every configured framework.

The orchestrator lives in a worker of the app; it reports back through
`TUIInterface`, whose messages land in the `on_*` handlers below.
"""

import asyncio
from collections.abc import Mapping
from pathlib import Path
from typing import Any, ClassVar

import structlog
from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import Footer, Header, Log, Tree
from textual.widgets.tree import TreeNode
from textual.worker import Worker, WorkerState

from lode.exceptions import EntityNotFoundError
from lode.nuggets import Nugget
from lode.runtime.orchestrator import RunOrchestrator
from lode.status import STATUS_EMOJI_MAP, Status
from lode.tui.messages import FrameworksReady, LogMessageUpdate, NuggetUpdate

log = structlog.get_logger("tui.app")

NodeRef = tuple[str, tuple[str, ...]]


def format_label(payload: Mapping[str, Any]) -> str:
    """Tree label for a render payload: status emoji, name and selection markers."""
    try:
        status = Status.parse(payload.get("status", Status.IDLE))
    except ValueError:
        status = Status.ERROR
    name = str(payload.get("displayName") or payload.get("name") or payload.get("id", "?"))
    name = name.replace("[", r"\[")
    label = f"{STATUS_EMOJI_MAP[status]} {name}"
    if payload.get("selected"):
        label = f"[b]{label}[/b] ●"
    if payload.get("partial"):
        label += " [dim](partial)[/dim]"
    return label


class LodeTuiApp(App):
    """Browse, select and run suites and tests."""

    TITLE = "Lode"
    SUB_TITLE = "Loading frameworks..."
    BINDINGS: ClassVar[list] = [
        ("q", "quit", "Quit"),
        ("ctrl+c", "quit", "Quit"),
        ("space", "toggle_select", "Select"),
        ("r", "run", "Run"),
        ("s", "stop", "Stop"),
        ("f", "refresh", "Refresh Suites"),
        ("ctrl+l", "clear_log", "Clear Log"),
    ]

    CSS = """
    #nugget-tree {
        height: 3fr;
        border: round $accent;
    }

    #feedback-log {
        height: 1fr;
        border: round $secondary;
    }

    #event-log {
        height: 1fr;
        border: round $primary;
    }
    """

    def __init__(self, config_path: Path, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._config_path = config_path
        self._orchestrator: RunOrchestrator | None = None
        self._orchestrator_done = asyncio.Event()
        self._orchestrator_worker: Worker | None = None
        self._nodes: dict[NodeRef, TreeNode] = {}
        self._quitting = False

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical():
            yield Tree("Frameworks", id="nugget-tree")
            yield Log(id="feedback-log", highlight=False)
            yield Log(id="event-log", highlight=True, max_lines=1000)
        yield Footer()

    def on_mount(self) -> None:
        self.query_one(Tree).root.expand()
        self._orchestrator = RunOrchestrator(self._config_path, self._orchestrator_done, app=self)
        self._orchestrator_worker = self.run_worker(
            self._orchestrator.run(), name="orchestrator", group="orchestrator", exit_on_error=False
        )

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.worker is not self._orchestrator_worker:
            return
        if event.state == WorkerState.ERROR:
            log.error("Orchestrator crashed", error=str(event.worker.error))
        if event.state not in (WorkerState.SUCCESS, WorkerState.ERROR, WorkerState.CANCELLED):
            return
        if self._quitting:
            self.exit(0)
        else:
            # Keep the screen up so the event log explaining why stays readable.
            self.sub_title = "Orchestrator stopped, press q to quit"

    # --- Tree bookkeeping ---
    def _add_node(self, parent: TreeNode, framework_id: str, nugget: Nugget) -> TreeNode:
        ref: NodeRef = (framework_id, nugget.key)
        node = parent.add(format_label(nugget.render()), data=ref, allow_expand=nugget.has_children())
        self._nodes[ref] = node
        return node

    def _populate(self, node: TreeNode, framework_id: str, nugget: Nugget) -> None:
        for child_node in list(node.children):
            self._forget(child_node)
        node.remove_children()
        for child in nugget.children:
            self._add_node(node, framework_id, child)

    def _forget(self, node: TreeNode) -> None:
        for child in node.children:
            self._forget(child)
        if node.data is not None:
            self._nodes.pop(node.data, None)

    def _cursor_ref(self) -> NodeRef | None:
        node = self.query_one(Tree).cursor_node
        if node is None or not isinstance(node.data, tuple):
            return None
        return node.data

    # --- Message handlers ---
    def on_frameworks_ready(self, message: FrameworksReady) -> None:
        if not self._orchestrator:
            return
        tree = self.query_one(Tree)
        tree.root.remove_children()
        self._nodes.clear()
        for framework_id in message.framework_ids:
            framework = self._orchestrator.frameworks[framework_id]
            framework_node = tree.root.add(f"{STATUS_EMOJI_MAP[framework.status]} {framework.name}", data=framework_id)
            for suite in framework.suites:
                self._add_node(framework_node, framework_id, suite)
            framework_node.expand()
        self.sub_title = f"{len(message.framework_ids)} framework(s)"

    def on_nugget_update(self, message: NuggetUpdate) -> None:
        ref: NodeRef = (message.framework_id, message.identifiers)
        node = self._nodes.get(ref)
        if node is None:
            return
        node.set_label(format_label(message.payload))
        node.allow_expand = bool(message.payload.get("hasChildren"))
        if message.event == "children" and node.is_expanded and self._orchestrator:
            framework = self._orchestrator.frameworks.get(message.framework_id)
            nugget = framework.arena.get(message.identifiers) if framework else None
            if nugget is not None:
                self._populate(node, message.framework_id, nugget)

    def on_log_message_update(self, message: LogMessageUpdate) -> None:
        try:
            log_widget = self.query_one("#event-log", Log)
            prefix = f"[{message.framework_id}] " if message.framework_id else ""
            log_widget.write_line(f"{prefix}{message.message}")
        except Exception as e:
            log.error("Failed to write to TUI log widget", error=str(e), raw_message_level=message.level)

    async def on_tree_node_expanded(self, event: Tree.NodeExpanded) -> None:
        if not isinstance(event.node.data, tuple) or not self._orchestrator:
            return
        framework_id, identifiers = event.node.data
        try:
            nugget = await self._orchestrator.get_framework(framework_id).resolve(identifiers)
        except EntityNotFoundError as e:
            # Stale node: redraw the whole tree from current state.
            log.warning("Expanded node no longer exists", error=str(e))
            self.post_message(FrameworksReady(list(self._orchestrator.frameworks)))
            return
        await nugget.toggle_expanded(True)
        self._populate(event.node, framework_id, nugget)

    async def on_tree_node_collapsed(self, event: Tree.NodeCollapsed) -> None:
        if not isinstance(event.node.data, tuple) or not self._orchestrator:
            return
        framework_id, identifiers = event.node.data
        nugget = self._orchestrator.get_framework(framework_id).arena.get(identifiers)
        if nugget is not None:
            await nugget.toggle_expanded(False)

    def on_tree_node_highlighted(self, event: Tree.NodeHighlighted) -> None:
        feedback_log = self.query_one("#feedback-log", Log)
        feedback_log.clear()
        if not isinstance(event.node.data, tuple) or not self._orchestrator:
            return
        framework_id, identifiers = event.node.data
        nugget = self._orchestrator.get_framework(framework_id).arena.get(identifiers)
        if nugget is None:
            return
        if nugget.result.feedback:
            feedback_log.write_line(str(nugget.result.feedback))
        for line in nugget.result.console or ():
            feedback_log.write_line(str(line))

    # --- Actions ---
    def action_toggle_select(self) -> None:
        ref = self._cursor_ref()
        if ref is None or not self._orchestrator:
            return
        framework_id, identifiers = ref
        nugget = self._orchestrator.get_framework(framework_id).arena.get(identifiers)
        if nugget is not None:
            nugget.toggle_selected(cascade=True)

    def _target_framework(self) -> str | None:
        node = self.query_one(Tree).cursor_node
        while node is not None:
            if isinstance(node.data, tuple):
                return node.data[0]
            if isinstance(node.data, str):
                return node.data
            node = node.parent
        if self._orchestrator and len(self._orchestrator.frameworks) == 1:
            return next(iter(self._orchestrator.frameworks))
        return None

    def action_run(self) -> None:
        framework_id = self._target_framework()
        if framework_id is None or not self._orchestrator:
            self.post_message(LogMessageUpdate(None, "WARNING", "Move the cursor to a framework to run it."))
            return
        self.run_worker(self._orchestrator.start_run(framework_id), group="runs", name=f"run_{framework_id}")

    def action_stop(self) -> None:
        framework_id = self._target_framework()
        if framework_id is not None and self._orchestrator:
            self._orchestrator.stop_run(framework_id)

    def action_refresh(self) -> None:
        if not self._orchestrator:
            return
        self._orchestrator.refresh()
        self.post_message(FrameworksReady(list(self._orchestrator.frameworks)))

    def action_clear_log(self) -> None:
        self.query_one("#event-log", Log).clear()

    def action_quit(self) -> None:
        """Stops the orchestrator; the app exits once its worker is done."""
        if self._quitting:
            return
        self._quitting = True
        log.info("Quitting")
        self._orchestrator_done.set()
        if self._orchestrator_worker is None or self._orchestrator_worker.is_finished:
            self.exit(0)


# 🔼⚙️
