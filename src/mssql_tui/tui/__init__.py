"""Interactive terminal UI: application state, run loop and renderer."""
