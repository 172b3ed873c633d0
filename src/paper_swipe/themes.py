"""Color palettes and Textual theme builders."""

from __future__ import annotations

from textual.theme import Theme as TextualTheme

DEFAULT_CATEGORY_COLOR = "#888888"

DEFAULT_CATEGORY_COLORS = {
    "cs.AI": "#007aff",
    "cs.LG": "#34c759",
    "cs.CL": "#af52de",
    "cs.CV": "#ff9500",
    "cs.RO": "#5ac8fa",
    "cs.NE": "#ff2d55",
}

LIGHT_THEME: dict[str, str] = {
    "background": "#f5f5f5",
    "panel": "#ffffff",
    "panel_alt": "#e5e5ea",
    "border": "#d1d1d6",
    "text": "#1c1c1e",
    "muted": "#8e8e93",
    "accent": "#007aff",
    "like": "#ff4d4d",
    "bookmark": "#4caf50",
    "chat": "#2196f3",
    "highlight": "#e5f0ff",
}

DARK_THEME: dict[str, str] = {
    "background": "#1c1c1e",
    "panel": "#2c2c2e",
    "panel_alt": "#3a3a3c",
    "border": "#48484a",
    "text": "#f2f2f7",
    "muted": "#98989d",
    "accent": "#0a84ff",
    "like": "#ff6961",
    "bookmark": "#66bb6a",
    "chat": "#42a5f5",
    "highlight": "#1f3a5c",
}

THEMES: dict[str, dict[str, str]] = {
    "paper-light": LIGHT_THEME,
    "paper-dark": DARK_THEME,
}
THEME_NAMES: list[str] = list(THEMES.keys())
DEFAULT_THEME_NAME = "paper-light"

# Colors of the active theme, for Rich markup built outside of CSS
THEME_COLORS = LIGHT_THEME.copy()


def _build_textual_theme(name: str, colors: dict[str, str], *, dark: bool) -> TextualTheme:
    """Convert an app color dict to a Textual Theme with custom CSS variables.

    Each color key becomes a ``$th-*`` CSS variable used by the app stylesheet.
    """
    variables = {f"th-{key.replace('_', '-')}": value for key, value in colors.items()}
    return TextualTheme(
        name=name,
        primary=colors["accent"],
        secondary=colors["chat"],
        accent=colors["bookmark"],
        foreground=colors["text"],
        background=colors["background"],
        surface=colors["panel"],
        panel=colors["panel_alt"],
        warning="#ff9500",
        error=colors["like"],
        success=colors["bookmark"],
        dark=dark,
        variables=variables,
    )


TEXTUAL_THEMES: dict[str, TextualTheme] = {
    "paper-light": _build_textual_theme("paper-light", LIGHT_THEME, dark=False),
    "paper-dark": _build_textual_theme("paper-dark", DARK_THEME, dark=True),
}


def resolve_theme_name(name: str) -> str:
    """Return ``name`` if it is a known theme, else the default theme."""
    return name if name in THEMES else DEFAULT_THEME_NAME


def next_theme_name(name: str) -> str:
    """Theme after ``name`` in cycling order."""
    try:
        index = THEME_NAMES.index(name)
    except ValueError:
        return DEFAULT_THEME_NAME
    return THEME_NAMES[(index + 1) % len(THEME_NAMES)]


def apply_theme_colors(name: str) -> None:
    """Point THEME_COLORS at the palette of theme ``name``."""
    THEME_COLORS.clear()
    THEME_COLORS.update(THEMES[resolve_theme_name(name)])


def get_category_color(category: str) -> str:
    return DEFAULT_CATEGORY_COLORS.get(category, DEFAULT_CATEGORY_COLOR)


__all__ = [
    "DARK_THEME",
    "DEFAULT_CATEGORY_COLOR",
    "DEFAULT_CATEGORY_COLORS",
    "DEFAULT_THEME_NAME",
    "LIGHT_THEME",
    "TEXTUAL_THEMES",
    "THEMES",
    "THEME_COLORS",
    "THEME_NAMES",
    "apply_theme_colors",
    "get_category_color",
    "next_theme_name",
    "resolve_theme_name",
]
