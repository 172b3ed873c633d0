"""arXiv Atom feed parsing and text normalization."""

from __future__ import annotations

import html
import logging
import re
import xml.etree.ElementTree as ET
from datetime import UTC, datetime

from paper_swipe.errors import MalformedResponse
from paper_swipe.models import (
    NO_ABSTRACT,
    UNCATEGORIZED,
    UNKNOWN_AUTHOR,
    UNTITLED,
    Paper,
    PaperLinks,
)

logger = logging.getLogger(__name__)

# arXiv API / Atom parsing constants
ATOM_NS = {"atom": "http://www.w3.org/2005/Atom", "arxiv": "http://arxiv.org/schemas/atom"}

# Strip trailing version suffix from IDs (e.g., 2401.12345v2 -> 2401.12345)
_ARXIV_VERSION_SUFFIX = re.compile(r"v\d+$", re.IGNORECASE)
# Anything that is not a lowercase letter or digit becomes a dash in generated IDs
_SLUG_UNSAFE = re.compile(r"[^a-z0-9]")

GENERATED_ID_PREFIX = "generated-"
GENERATED_SLUG_LEN = 20


def normalize_arxiv_id(raw: str) -> str:
    """Normalize arXiv IDs from identifier URLs.

    Examples:
    - http://arxiv.org/abs/2401.12345v2 -> 2401.12345
    - https://arxiv.org/pdf/2401.12345v2.pdf -> 2401.12345
    - http://arxiv.org/abs/hep-th/9901001v1 -> hep-th/9901001

    Returns ``""`` when ``raw`` is not an arXiv abs/pdf URL.
    """
    text = raw.strip()
    for marker in ("/abs/", "/pdf/"):
        idx = text.find(marker)
        if idx >= 0:
            text = text[idx + len(marker) :]
            break
    else:
        return ""

    text = text.split("?", 1)[0].split("#", 1)[0].strip().strip("/")
    text = text.removesuffix(".pdf")
    return _ARXIV_VERSION_SUFFIX.sub("", text)


def clean_text(text: str) -> str:
    """Decode HTML entities and collapse internal whitespace."""
    if not text:
        return ""
    return " ".join(html.unescape(text).split())


def slugify_title(title: str) -> str:
    """Build the slug used for generated paper IDs."""
    return _SLUG_UNSAFE.sub("-", title[:GENERATED_SLUG_LEN].lower())


def unique_id(base_id: str, used_ids: set[str]) -> str:
    """Return ``base_id`` or ``base_id-N`` with the first N not in ``used_ids``."""
    candidate = base_id
    counter = 1
    while candidate in used_ids:
        candidate = f"{base_id}-{counter}"
        counter += 1
    return candidate


def parse_published_year(raw_published: str, *, now: datetime | None = None) -> int | None:
    """Return the calendar year of an Atom timestamp.

    An empty timestamp yields the year of ``now`` (defaults to the current
    time). An unparseable timestamp yields ``None``.
    """
    cleaned = raw_published.strip()
    if not cleaned:
        return (now or datetime.now(UTC)).year

    normalized = cleaned
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"

    try:
        return datetime.fromisoformat(normalized).year
    except ValueError:
        return None


def _atom_text(node: ET.Element, path: str) -> str:
    """Extract raw text from an Atom XML node path (``""`` when missing)."""
    found = node.find(path, ATOM_NS)
    if found is None or found.text is None:
        return ""
    return found.text.strip()


def _entry_authors(entry: ET.Element) -> list[str]:
    return [
        " ".join(name.text.split())
        for name in entry.findall("atom:author/atom:name", ATOM_NS)
        if name.text and name.text.strip()
    ]


def _entry_categories(entry: ET.Element) -> list[str]:
    terms: list[str] = []
    primary = entry.find("arxiv:primary_category", ATOM_NS)
    if primary is not None:
        terms.append((primary.get("term") or "").strip())
    terms.extend((cat.get("term") or "").strip() for cat in entry.findall("atom:category", ATOM_NS))
    # dict.fromkeys keeps first-seen order
    return [term for term in dict.fromkeys(terms) if term]


def _entry_links(entry: ET.Element) -> PaperLinks:
    pdf: str | None = None
    page: str | None = None
    for link in entry.findall("atom:link", ATOM_NS):
        href = (link.get("href") or "").strip()
        if not href:
            continue
        link_type = link.get("type")
        if pdf is None and (link.get("title") == "pdf" or link_type == "application/pdf"):
            pdf = href
        if page is None and link.get("rel") == "alternate" and link_type == "text/html":
            page = href
    return PaperLinks(pdf=pdf, html=page)


def parse_arxiv_api_feed(
    xml_text: str,
    *,
    now: datetime | None = None,
    missing_published: str = "now",
) -> list[Paper]:
    """Parse an arXiv Atom feed into Paper records.

    Entries without an identifier, title, author or summary are dropped and
    logged. IDs are unique within the returned list.

    Args:
        xml_text: Raw Atom XML.
        now: Clock used when an entry has no published timestamp.
        missing_published: ``"now"`` dates such entries with ``now``;
            ``"drop"`` treats them as malformed.

    Raises:
        MalformedResponse: if the document is not XML.
    """
    if not xml_text.strip():
        return []

    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise MalformedResponse("Invalid arXiv API XML response") from exc

    papers: list[Paper] = []
    used_ids: set[str] = set()

    for index, entry in enumerate(root.findall("atom:entry", ATOM_NS)):
        raw_id = _atom_text(entry, "atom:id")
        raw_title = _atom_text(entry, "atom:title")
        raw_summary = _atom_text(entry, "atom:summary")
        authors = _entry_authors(entry)
        has_author_nodes = entry.find("atom:author", ATOM_NS) is not None

        if not (raw_id and raw_title and raw_summary and has_author_nodes):
            logger.warning(
                "Dropping incomplete feed entry #%d (id=%r, title=%r)", index, raw_id, raw_title
            )
            continue

        raw_published = _atom_text(entry, "atom:published")
        if not raw_published and missing_published == "drop":
            logger.warning("Dropping feed entry %r without a published timestamp", raw_id)
            continue
        year = parse_published_year(raw_published, now=now)
        if year is None:
            logger.warning("Dropping feed entry %r with bad timestamp %r", raw_id, raw_published)
            continue

        title = clean_text(raw_title) or UNTITLED
        base_id = normalize_arxiv_id(raw_id) or f"{GENERATED_ID_PREFIX}{slugify_title(title)}"
        paper_id = unique_id(base_id, used_ids)
        used_ids.add(paper_id)

        categories = _entry_categories(entry)
        papers.append(
            Paper(
                id=paper_id,
                title=title,
                abstract=clean_text(raw_summary) or NO_ABSTRACT,
                authors=tuple(authors) or (UNKNOWN_AUTHOR,),
                year=year,
                categories=tuple(categories) or (UNCATEGORIZED,),
                links=_entry_links(entry),
                published=raw_published,
                updated=_atom_text(entry, "atom:updated") or raw_published,
                arxiv_id=paper_id,
                doi=_atom_text(entry, "arxiv:doi") or None,
            )
        )

    return papers


__all__ = [
    "ATOM_NS",
    "GENERATED_ID_PREFIX",
    "clean_text",
    "normalize_arxiv_id",
    "parse_arxiv_api_feed",
    "parse_published_year",
    "slugify_title",
    "unique_id",
]
