"""Internal UI constants for the PaperSwipe app."""

from __future__ import annotations

from textual.binding import Binding, BindingType

APP_CSS = """
Screen {
    background: $th-background;
}

Header {
    background: $th-panel-alt;
    color: $th-text;
}

#search-input {
    width: 100%;
    margin: 0 1;
    border: tall $th-border;
    background: $th-panel;
}

#search-input:focus {
    border: tall $th-accent;
}

#feed-container {
    height: 1fr;
    padding: 0 1;
}

#paper-card {
    height: 1fr;
}

#status-bar {
    height: 1;
    padding: 0 1;
    color: $th-muted;
}
"""

APP_BINDINGS: list[BindingType] = [
    Binding("q", "quit", "Quit", show=False),
    # Swipes: right bookmarks, left opens chat, down/up pages through the feed
    Binding("right,l", "swipe('right')", "Bookmark", show=False),
    Binding("left,h", "swipe('left')", "Chat", show=False),
    Binding("down,j", "swipe('up')", "Next", show=False),
    Binding("up,k", "swipe('down')", "Previous", show=False),
    Binding("space", "toggle_like", "Like", show=False),
    Binding("o", "open_paper", "Open", show=False),
    Binding("enter", "show_details", "Details", show=False),
    Binding("L", "show_library", "Library", show=False),
    Binding("s", "toggle_sign_in", "Sign in/out", show=False),
    Binding("slash", "focus_search", "Search", show=False),
    Binding("escape", "focus_card", "Back to feed", show=False),
    Binding("r", "reload", "Reload", show=False),
    Binding("ctrl+t", "cycle_theme", "Theme", show=False),
    Binding("question_mark", "show_help", "Help (?)", show=False),
]

# (key, label) hints shown in the footer while browsing the feed
FEED_FOOTER_HINTS: list[tuple[str, str]] = [
    ("j/k", "next/prev"),
    ("l", "bookmark"),
    ("h", "chat"),
    ("space", "like"),
    ("o", "open"),
    ("/", "search"),
    ("L", "library"),
    ("?", "help"),
]

__all__ = ["APP_BINDINGS", "APP_CSS", "FEED_FOOTER_HINTS"]
