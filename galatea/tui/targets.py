"""Interactive task and stack picker."""

import sys

import questionary
from prompt_toolkit.application import Application
from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import (
    ConditionalContainer,
    DynamicContainer,
    Float,
    FloatContainer,
    HSplit,
    Layout,
    Window,
)
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Button, Dialog, Label

from ..engine import DefinitionStore

STATUS_ICONS = {
    "installed": "✅",
    "partial": "⚠️ ",
    "missing": "  ",
}


def target_status(store: DefinitionStore, name: str, satisfied: set[str]) -> str:
    if store.is_stack(name):
        return store.stack_status(name, satisfied)
    return "installed" if name in satisfied else "missing"


def format_target_choice(
    store: DefinitionStore, name: str, satisfied: set[str], checked: bool = False
) -> str:
    """Format one picker line: checkbox, status icon, kind letter, name, description."""
    box = "[x]" if checked else "[ ]"
    icon = STATUS_ICONS[target_status(store, name, satisfied)]
    if store.is_stack(name):
        definition = store.get_stack(name)
        letter = "K"
        needs_reboot = store.stack_needs_reboot(name)
    else:
        definition = store.get_task(name)
        letter = definition.kind.letter
        needs_reboot = definition.requires_reboot
    reboot = " 🔄" if needs_reboot else ""
    return f"{box} {icon} [{letter}] {name:<24} {definition.description}{reboot}"


def target_details(store: DefinitionStore, name: str, satisfied: set[str]) -> list[str]:
    """Detail lines shown in the picker's info dialog."""
    status = target_status(store, name, satisfied)
    if store.is_stack(name):
        stack = store.get_stack(name)
        lines = [f"Stack: {name} ({status})"]
        if stack.description:
            lines.append(stack.description)
        lines.append("")
        lines.append("Tasks:")
        for member in stack.members:
            mark = "✅" if member in satisfied else "  "
            lines.append(f"  {mark} {member}")
        deps = stack.dependencies
    else:
        task = store.get_task(name)
        lines = [f"Task: {name} ({status})"]
        if task.description:
            lines.append(task.description)
        lines.append("")
        lines.append(f"Type:   {task.kind.value}")
        lines.append(f"Source: {task.source}")
        if task.cleanup_command:
            lines.append(f"Cleanup: {task.cleanup_command}")
        deps = task.dependencies
    if deps:
        lines.append(f"Depends on: {', '.join(deps)}")
    return lines


class _PickerState:
    def __init__(self, names: list[str]):
        self.names = names
        self.index = 0
        self.checked: set[str] = set()
        self.show_modal = False
        self.result: list[str] | None = None
        self.empty_label = Label("")

    @property
    def current(self) -> str:
        return self.names[self.index]


def select_targets_interactive(
    store: DefinitionStore,
    satisfied: set[str],
    tags: list[str] | None = None,
) -> list[str] | None:
    """Let the user tick tasks and stacks to install.

    Stacks are listed first, then tasks, each alphabetically. Space toggles,
    'i' opens the details dialog, Enter confirms and 'c' or Escape cancels.

    Args:
        store: Loaded definitions
        satisfied: Names the ledger records as installed
        tags: Only list definitions carrying one of these tags

    Returns:
        Selected names in display order, or None if the user cancelled

    Raises:
        RuntimeError: If not running in a TTY
    """
    if not sys.stdin.isatty():
        raise RuntimeError("Interactive target selector requires a TTY")

    names = _visible_names(store, tags)
    if not names:
        return None

    state = _PickerState(names)
    kb = KeyBindings()

    def _close_modal():
        state.show_modal = False

    @kb.add("up")
    def _(event):
        if not state.show_modal:
            state.index = (state.index - 1) % len(names)

    @kb.add("down")
    def _(event):
        if not state.show_modal:
            state.index = (state.index + 1) % len(names)

    @kb.add("space")
    def _(event):
        if not state.show_modal:
            state.checked ^= {state.current}

    @kb.add("i")
    def _(event):
        state.show_modal = not state.show_modal

    @kb.add("enter", eager=True)
    def _(event):
        if state.show_modal:
            _close_modal()
        else:
            state.result = [n for n in names if n in state.checked]
            event.app.exit()

    @kb.add("escape")
    @kb.add("c")
    def _(event):
        if state.show_modal:
            _close_modal()
        else:
            state.result = None
            event.app.exit()

    def get_list_text():
        tokens = [("", "\n")]
        for i, name in enumerate(names):
            label = format_target_choice(store, name, satisfied, name in state.checked)
            if i == state.index:
                tokens.append(("class:selected", f" > {label}\n"))
            else:
                tokens.append(("", f"   {label}\n"))
        tokens.append(("", "\n"))
        tokens.append(
            (
                "class:help",
                " ↑↓ navigate, Space toggle, 'i' details, Enter confirm, 'c' cancel",
            )
        )
        return tokens

    def get_modal_content():
        if not state.show_modal:
            return state.empty_label
        return Label(text="\n".join(target_details(store, state.current, satisfied)))

    style = Style.from_dict(
        {
            "selected": "fg:#00ffff bold",
            "help": "fg:#888888",
            "dialog": "bg:#333333",
            "dialog.body": "bg:#222222 fg:#ffffff",
            "dialog frame.label": "fg:#00ffff bold",
        }
    )

    layout = FloatContainer(
        content=HSplit(
            [
                Window(
                    content=FormattedTextControl(
                        [("class:header", "Select stacks and tasks to install:")]
                    ),
                    height=1,
                ),
                Window(content=FormattedTextControl(get_list_text)),
            ]
        ),
        floats=[
            Float(
                content=ConditionalContainer(
                    content=Dialog(
                        title="Details",
                        body=DynamicContainer(get_modal_content),
                        buttons=[Button(text="Close", handler=_close_modal)],
                    ),
                    filter=Condition(lambda: state.show_modal),
                )
            )
        ],
    )

    app = Application(
        layout=Layout(layout), key_bindings=kb, style=style, full_screen=False
    )
    app.run()
    return state.result


def _visible_names(store: DefinitionStore, tags: list[str] | None) -> list[str]:
    def wanted(definition) -> bool:
        return not tags or bool(set(tags) & set(definition.tags))

    stacks = [n for n in store.stack_names() if wanted(store.get_stack(n))]
    tasks = [n for n in store.task_names() if wanted(store.get_task(n))]
    return stacks + tasks


def confirm_plan_interactive(summary: str) -> bool | None:
    """Show the plan summary and ask whether to run it.

    Returns:
        True/False for the answer, None if the user pressed Ctrl+C

    Raises:
        RuntimeError: If not running in a TTY
    """
    if not sys.stdin.isatty():
        raise RuntimeError("Interactive confirmation requires a TTY")

    print(summary)
    try:
        return questionary.confirm("Run this plan?", default=False).ask()
    except KeyboardInterrupt:
        return None


__all__ = [
    "STATUS_ICONS",
    "confirm_plan_interactive",
    "format_target_choice",
    "select_targets_interactive",
    "target_details",
    "target_status",
]
