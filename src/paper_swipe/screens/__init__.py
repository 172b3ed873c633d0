"""Screens pushed over the feed.

Import screens from this package: ``from paper_swipe.screens import HelpScreen``
"""

from paper_swipe.screens.chat import ChatScreen
from paper_swipe.screens.help import HelpScreen
from paper_swipe.screens.library import LibraryScreen, filter_papers
from paper_swipe.screens.paper import PaperDetailScreen, render_paper_details
from paper_swipe.screens.sign_in import SignInScreen

__all__ = [
    "ChatScreen",
    "HelpScreen",
    "LibraryScreen",
    "PaperDetailScreen",
    "SignInScreen",
    "filter_papers",
    "render_paper_details",
]
