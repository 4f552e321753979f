"""Interactive selection lists built on Textual."""

from dataclasses import dataclass
from typing import Any, Generic, List, Optional, TypeVar

from rich.console import Console
from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.coordinate import Coordinate
from textual.widgets import DataTable, Footer, Header, Static

from issue_solver.__version__ import __version__

console = Console()

T = TypeVar("T")

SYMBOL_CHECKED = "✓"
SYMBOL_UNCHECKED = " "


@dataclass
class Choice(Generic[T]):
    """A row in a picker. label is rich markup."""

    label: str
    value: T
    checked: bool = False


class _PickerApp(App):
    CSS = """
    Screen {
        background: $surface;
    }

    DataTable {
        height: 1fr;
    }

    #status-bar {
        dock: bottom;
        height: auto;
        background: $panel;
        padding: 0 1;
    }
    """

    SUB_TITLE = f"issue-solver v{__version__}"

    def __init__(self, title: str, choices: List[Choice]):
        super().__init__()
        self.title = title
        self.choices = choices

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False, icon="")
        yield DataTable(id="choices", cursor_type="row", zebra_stripes=True)
        yield Static(id="status-bar")
        yield Footer()

    def action_cancel(self) -> None:
        self.exit(None)


class CheckboxPicker(_PickerApp):
    """Multi-select list. Returns the checked values, or None when cancelled."""

    BINDINGS = [
        Binding("space", "toggle", "Check/Uncheck"),
        Binding("a", "toggle_all", "Check All/None"),
        Binding("enter", "confirm", "Confirm"),
        Binding("q", "cancel", "Cancel"),
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.add_column(Text(SYMBOL_UNCHECKED, justify="center"), key="mark")
        table.add_column("Item", key="label")
        self._populate_table()
        self._update_status()

    def _populate_table(self) -> None:
        table = self.query_one(DataTable)
        table.clear()
        for index, choice in enumerate(self.choices):
            mark = SYMBOL_CHECKED if choice.checked else SYMBOL_UNCHECKED
            table.add_row(
                Text(mark, justify="center"), Text.from_markup(choice.label), key=str(index)
            )

    def _update_status(self) -> None:
        checked = sum(1 for c in self.choices if c.checked)
        self.query_one("#status-bar", Static).update(f"Selected: {checked} of {len(self.choices)}")

    def action_toggle(self) -> None:
        table = self.query_one(DataTable)
        row = table.cursor_row
        if row is None or row >= len(self.choices):
            return
        self.choices[row].checked = not self.choices[row].checked
        self._populate_table()
        self._update_status()
        table.cursor_coordinate = Coordinate(min(row + 1, len(self.choices) - 1), 0)

    def action_toggle_all(self) -> None:
        check = not all(c.checked for c in self.choices)
        for choice in self.choices:
            choice.checked = check
        self._populate_table()
        self._update_status()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        """Enter on the table confirms the selection."""
        self.action_confirm()

    def action_confirm(self) -> None:
        self.exit([c.value for c in self.choices if c.checked])


class ListPicker(_PickerApp):
    """Single-select list. Returns the highlighted value, or None when cancelled."""

    BINDINGS = [
        Binding("enter", "confirm", "Select"),
        Binding("q", "cancel", "Cancel"),
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.add_column("Item", key="label")
        for index, choice in enumerate(self.choices):
            table.add_row(Text.from_markup(choice.label), key=str(index))
        self.query_one("#status-bar", Static).update(f"{len(self.choices)} items")

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self.action_confirm()

    def action_confirm(self) -> None:
        row = self.query_one(DataTable).cursor_row
        if row is None or row >= len(self.choices):
            self.exit(None)
            return
        self.exit(self.choices[row].value)


def pick_many(title: str, choices: List[Choice[T]]) -> Optional[List[T]]:
    """Show a checkbox list. Pre-checked choices start selected."""
    if not choices:
        return []
    return CheckboxPicker(title, choices).run()


def pick_one(title: str, choices: List[Choice[T]]) -> Optional[T]:
    if not choices:
        return None
    return ListPicker(title, choices).run()


def confirm(message: str, default: bool = False) -> bool:
    """Ask a yes/no question on the console."""
    hint = "[Y/n]" if default else "[y/N]"
    answer = console.input(f"{message} {hint} ").strip().lower()
    if not answer:
        return default
    return answer in ("y", "yes")


def choose_action(actions: List[tuple]) -> Optional[Any]:
    """Numbered menu on the console. actions holds (label, value) pairs."""
    for index, (label, _) in enumerate(actions, 1):
        console.print(f"  {index}. {label}")
    answer = console.input("Choose an action (number, empty to cancel): ").strip()
    if not answer.isdigit() or not 1 <= int(answer) <= len(actions):
        return None
    return actions[int(answer) - 1][1]
