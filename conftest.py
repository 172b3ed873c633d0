"""Shared test fixtures for paper-swipe tests."""

from __future__ import annotations

from typing import Any

import pytest

from paper_swipe.models import Paper, PaperLinks, UserConfig
from paper_swipe.themes import LIGHT_THEME, THEME_COLORS

# ── Module-level dict isolation ──────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _reset_theme_colors():
    """Restore THEME_COLORS after each test.

    PaperSwipeApp.on_mount mutates the module-level palette when it applies
    the configured theme.
    """
    yield
    THEME_COLORS.clear()
    THEME_COLORS.update(LIGHT_THEME)


# ── Factories ────────────────────────────────────────────────────────────────


@pytest.fixture
def make_paper():
    """Factory fixture for creating Paper instances with sensible defaults."""

    def _make(
        paper_id: str = "2401.12345",
        title: str = "Test Paper",
        abstract: str = "Test abstract content.",
        authors: tuple[str, ...] = ("Test Author",),
        year: int = 2024,
        categories: tuple[str, ...] = ("cs.AI",),
        pdf: str | None = None,
        html: str | None = None,
        **kwargs: Any,
    ) -> Paper:
        if pdf is None:
            pdf = f"http://arxiv.org/pdf/{paper_id}v1"
        if html is None:
            html = f"http://arxiv.org/abs/{paper_id}v1"
        return Paper(
            id=paper_id,
            title=title,
            abstract=abstract,
            authors=authors,
            year=year,
            categories=categories,
            links=PaperLinks(pdf=pdf, html=html),
            **kwargs,
        )

    return _make


@pytest.fixture
def sample_config():
    """Factory fixture for creating UserConfig with optional overrides."""

    def _make(**kwargs: Any) -> UserConfig:
        return UserConfig(**kwargs)

    return _make


@pytest.fixture
def atom_entry():
    """Factory fixture rendering one Atom ``<entry>`` element."""

    def _make(
        raw_id: str | None = "http://arxiv.org/abs/2401.12345v1",
        title: str | None = "A Test Paper",
        summary: str | None = "Test abstract.",
        authors: tuple[str, ...] | None = ("Alice Smith",),
        published: str | None = "2024-01-15T18:00:00Z",
        categories: tuple[str, ...] = ("cs.AI",),
        primary: str | None = None,
        links: str = "",
    ) -> str:
        parts = ["<entry>"]
        if raw_id is not None:
            parts.append(f"<id>{raw_id}</id>")
        if title is not None:
            parts.append(f"<title>{title}</title>")
        if summary is not None:
            parts.append(f"<summary>{summary}</summary>")
        if published is not None:
            parts.append(f"<published>{published}</published>")
        for name in authors or ():
            parts.append(f"<author><name>{name}</name></author>")
        if primary is not None:
            parts.append(f'<arxiv:primary_category term="{primary}"/>')
        for term in categories:
            parts.append(f'<category term="{term}"/>')
        parts.append(links)
        parts.append("</entry>")
        return "".join(parts)

    return _make


@pytest.fixture
def atom_feed():
    """Wrap rendered entries in an Atom feed document."""

    def _make(*entries: str) -> str:
        return (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<feed xmlns="http://www.w3.org/2005/Atom" '
            'xmlns:arxiv="http://arxiv.org/schemas/atom">'
            + "".join(entries)
            + "</feed>"
        )

    return _make
