"""Widget classes for the feed screen."""

from paper_swipe.widgets.card import (
    DRAG_SCALE_X,
    DRAG_SCALE_Y,
    PaperCard,
    cells_to_units,
    render_paper_card,
)
from paper_swipe.widgets.chrome import (
    CategoryBar,
    ContextFooter,
    FeedStatusBar,
    build_status_text,
)

__all__ = [
    "DRAG_SCALE_X",
    "DRAG_SCALE_Y",
    "CategoryBar",
    "ContextFooter",
    "FeedStatusBar",
    "PaperCard",
    "build_status_text",
    "cells_to_units",
    "render_paper_card",
]
