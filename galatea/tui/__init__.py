"""Terminal UI for interactive target selection.

Interactive prompts need a TTY and raise RuntimeError without one, so the
commands can fall back to plain click output.
"""

from .targets import (
    STATUS_ICONS,
    confirm_plan_interactive,
    format_target_choice,
    select_targets_interactive,
    target_details,
    target_status,
)

__all__ = [
    "STATUS_ICONS",
    "confirm_plan_interactive",
    "format_target_choice",
    "select_targets_interactive",
    "target_details",
    "target_status",
]
