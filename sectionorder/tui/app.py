from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import DataTable, Footer, Header, Static

from sectionorder.config import Config, ReorderSettings
from sectionorder.engine import ReorderEngine
from sectionorder.gateway import gateway_from_config
from sectionorder.hierarchy import Item
from sectionorder.state import Notification, NotificationKind
from sectionorder.subjects import SubjectSource, source_from_config

LOG = logging.getLogger(__name__)


class HelpScreen(ModalScreen[None]):
    """Modal overlay listing keyboard shortcuts."""

    def compose(self) -> ComposeResult:
        lines = [
            "[b]Subject order[/b]",
            "",
            "Reordering:",
            "  Space        Pick up the highlighted subject / drop it here",
            "  ↑/↓ or j/k   Move the highlight (the drop target while dragging)",
            "  Esc          Cancel the drag",
            "  [ / ]        Move the highlighted parent subject up / down",
            "",
            "Other:",
            "  s            Save now",
            "  r / F5       Reload subjects",
            "  q or Ctrl+C  Quit",
            "",
            "Changes are saved automatically after a short pause.",
            "Press Esc, q, or ? to close this help.",
        ]
        yield Static("\n".join(lines), id="help-panel")

    def on_key(self, event: events.Key) -> None:
        if event.key in {"escape", "q", "?"}:
            event.stop()
            self.dismiss()


class SubjectTable(DataTable):
    """Subject list; children are indented under their parent."""

    BINDINGS = [
        Binding("j", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
    ]

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.cursor_type = "row"
        self.zebra_stripes = True


class StatusBar(Static):
    """Single-line status indicator."""

    def set_message(self, message: str, *, error: bool = False) -> None:
        self.set_class(error, "error")
        self.update(message or "")


class SectionOrderApp(App[None]):
    """Reorder the subjects of one class section."""

    TITLE = "Subject order"
    CSS = """
    Screen {
        layout: vertical;
    }

    HelpScreen {
        align: center middle;
    }

    #body {
        height: 1fr;
        padding: 1 2;
    }

    #subject-table {
        height: 1fr;
    }

    #status {
        height: 3;
        content-align: left middle;
        padding: 0 1;
        background: $boost;
    }

    #status.error {
        background: $error;
        color: $text;
    }

    .panel-title {
        text-style: bold;
        padding-bottom: 1;
    }

    #help-panel {
        width: 70%;
        background: $surface;
        border: round $secondary;
        padding: 2;
        content-align: left top;
    }
    """

    BINDINGS = [
        Binding("q", "quit_app", "Quit"),
        Binding("ctrl+c", "quit_app", "Quit", show=False),
        Binding("space", "pick_or_drop", "Pick up / drop"),
        Binding("escape", "cancel_drag", "Cancel", show=False),
        Binding("left_square_bracket", "move_root(-1)", "Parent up"),
        Binding("right_square_bracket", "move_root(1)", "Parent down"),
        Binding("s", "save_now", "Save now"),
        Binding("r", "reload", "Reload"),
        Binding("f5", "reload", "Reload", show=False),
        Binding("?", "show_help", "Help"),
    ]

    def __init__(
        self,
        source: SubjectSource,
        gateway,
        *,
        settings: Optional[ReorderSettings] = None,
        section_title: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.source = source
        self.gateway = gateway
        self.settings = settings or ReorderSettings()
        self.section_title = section_title or f"Class section {source.section_id}"
        self.engine: Optional[ReorderEngine] = None
        self.row_ids: List[str] = []
        self.row_map: Dict[str, Item] = {}

    # --------------------------------------------------------------------- UI
    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="body"):
            yield Static(self.section_title, classes="panel-title")
            table = SubjectTable(id="subject-table")
            table.add_columns("#", "Subject", "Type")
            yield table
        yield Footer()
        yield StatusBar(id="status")

    async def on_mount(self) -> None:
        self.status_bar = self.query_one(StatusBar)
        self.subject_table = self.query_one(SubjectTable)
        self.engine = ReorderEngine(
            self.source.items,
            self.gateway,
            settings=self.settings,
            notify=self._notify_user,
            on_saved=self.source.refresh,
        )
        self.engine.subscribe(lambda _engine: self.render_engine())
        self.source.add_listener(self._on_source_changed)
        self.subject_table.focus()
        await self._load_subjects()

    def on_unmount(self) -> None:
        self.source.remove_listener(self._on_source_changed)
        if self.engine is not None:
            self.engine.close()

    # ---------------------------------------------------------------- bindings
    def action_quit_app(self) -> None:
        self.exit()

    def action_pick_or_drop(self) -> None:
        item = self.get_selected_item()
        if self.engine is None or item is None:
            return
        if not self.engine.drag.is_dragging:
            self.engine.on_drag_start(item)
            return
        source = self.engine.drag.source
        if not self.engine.on_drop(item.id) and source is not None and source.id != item.id:
            self.set_status("Cannot drop there", error=True)

    def action_cancel_drag(self) -> None:
        if self.engine is not None and self.engine.drag.is_dragging:
            self.engine.on_drag_end()

    def action_move_root(self, delta: int) -> None:
        item = self.get_selected_item()
        if self.engine is None or item is None:
            return
        root_id = item.parent_id if item.parent_id is not None else item.id
        roots = [node.item.id for node in self.engine.tree()]
        if root_id not in roots:
            return
        if self.engine.move_root(roots.index(root_id), delta):
            self._select(item.id)

    async def action_save_now(self) -> None:
        if self.engine is not None:
            await self.engine.flush()

    async def action_reload(self) -> None:
        await self._load_subjects()

    def action_show_help(self) -> None:
        self.push_screen(HelpScreen())

    # ----------------------------------------------------------------- events
    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.data_table is not self.subject_table or self.engine is None:
            return
        item_id = event.row_key.value if event.row_key is not None else None
        if item_id is not None and self.engine.drag.is_dragging:
            self.engine.on_drag_over(item_id)

    def _on_source_changed(self, items: List[Item]) -> None:
        if self.engine is not None and not self.engine.sync_source(items):
            LOG.debug("Keeping local order until the pending save finishes")

    def _notify_user(self, notification: Notification) -> None:
        severity = "error" if notification.kind is NotificationKind.ERROR else "information"
        self.notify(
            notification.message,
            severity=severity,
            timeout=self.settings.notification_duration,
        )

    # ----------------------------------------------------------------- data ops
    async def _load_subjects(self) -> None:
        self.set_status("Loading subjects…")
        try:
            await self.source.refresh()
        except Exception as exc:
            LOG.exception("Failed to load subjects")
            self.set_status(f"Unable to load subjects: {exc}", error=True)
            return
        self.render_engine()

    def render_engine(self) -> None:
        if self.engine is None or not hasattr(self, "subject_table"):
            return
        table = self.subject_table
        selected = self.get_selected_item()
        drag = self.engine.drag

        table.clear(columns=False)
        self.row_ids = []
        self.row_map = {}
        for item in self.engine.items:
            label = item.name or str(item.id)
            if item.parent_id is not None:
                label = f"  └ {label}"
            if drag.source is not None and drag.source.id == item.id:
                label = f"[b]{label}[/b] (moving)"
            elif drag.is_dragging and drag.target_id == item.id:
                label = f"▶ {label}"
            kind = "Parent" if item.is_root else "Child"
            table.add_row(str(item.order), label, kind, key=str(item.id))
            self.row_ids.append(str(item.id))
            self.row_map[str(item.id)] = item

        if selected is not None:
            self._select(selected.id)
        self._render_status()

    def _render_status(self) -> None:
        engine = self.engine
        if engine.drag.is_dragging:
            name = engine.drag.source.name or engine.drag.source.id
            self.set_status(f"Moving {name}: highlight a target and press Space, Esc to cancel")
        elif engine.is_saving:
            self.set_status("Saving changes...")
        elif engine.pending_changes:
            self.set_status("Changes will be saved automatically")
        else:
            self.set_status(f"{len(self.row_ids)} subject(s)")

    def _select(self, item_id) -> None:
        key = str(item_id)
        if key in self.row_ids:
            self.subject_table.move_cursor(row=self.row_ids.index(key))

    def get_selected_item(self) -> Optional[Item]:
        if not self.row_ids or not hasattr(self, "subject_table"):
            return None
        row = self.subject_table.cursor_row
        if row is None or not 0 <= row < len(self.row_ids):
            return None
        return self.row_map.get(self.row_ids[row])

    # ----------------------------------------------------------------- status
    def set_status(self, message: str, *, error: bool = False) -> None:
        if not hasattr(self, "status_bar"):
            return
        self.status_bar.set_message(message, error=error)


def build_app(args, config: Optional[Config] = None) -> SectionOrderApp:
    """Create the app for parsed command-line ``args``."""
    config = config or Config()
    if args.api_url:
        config.config_data.setdefault('api', {})['base_url'] = args.api_url
    if args.token:
        config.config_data.setdefault('api', {})['token'] = args.token

    settings = ReorderSettings.from_config(config)
    overrides = {}
    if args.quiet_period is not None:
        overrides['quiet_period'] = args.quiet_period
    if args.hierarchy_mode:
        overrides['hierarchy_mode'] = args.hierarchy_mode
    if overrides:
        settings = replace(settings, **overrides)

    return SectionOrderApp(
        source_from_config(config, args.section),
        gateway_from_config(config, args.section),
        settings=settings,
    )


__all__ = ["SectionOrderApp", "build_app"]
