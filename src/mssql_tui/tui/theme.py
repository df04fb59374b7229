"""Colors and spinner frames for the interactive UI."""

SPINNER_FRAMES: tuple[str, ...] = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")

PRIMARY = "bold cyan"
ACCENT = "magenta"
MUTED = "dim"
SUCCESS = "green"
ERROR = "bold red"
WARNING = "yellow"
NULL_STYLE = "dim italic yellow"
SELECTED_ROW = "reverse"
HEADER = "bold cyan"
BORDER_ACTIVE = "cyan"
BORDER_INACTIVE = "grey42"

# Per-variant cell styles, keyed by Value.kind.
VALUE_STYLES: dict[str, str] = {
    "null": NULL_STYLE,
    "bool": "magenta",
    "integer": "bright_blue",
    "float": "bright_blue",
    "text": "",
    "temporal": "green",
    "binary": "dim cyan",
}
