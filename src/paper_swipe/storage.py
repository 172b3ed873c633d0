"""SQLite persistence for papers, likes and bookmarks."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import closing
from dataclasses import replace
from pathlib import Path

from platformdirs import user_data_dir

from paper_swipe.errors import RemoteStoreFailure
from paper_swipe.models import CONFIG_APP_NAME, Paper, PaperCounts, PaperLinks

logger = logging.getLogger(__name__)

STORE_DB_FILENAME = "papers.db"

# Relationship kind -> (relationship table, counter column on papers)
RELATIONSHIPS: dict[str, tuple[str, str]] = {
    "like": ("likes", "likes"),
    "bookmark": ("bookmarks", "bookmarks"),
}

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS papers ("
    "  id INTEGER PRIMARY KEY,"
    "  title TEXT NOT NULL,"
    "  abstract TEXT NOT NULL,"
    "  authors TEXT NOT NULL,"
    "  year INTEGER NOT NULL,"
    "  arxiv_id TEXT NOT NULL UNIQUE,"
    "  categories TEXT NOT NULL,"
    "  pdf_url TEXT,"
    "  html_url TEXT,"
    "  doi TEXT,"
    "  likes INTEGER NOT NULL DEFAULT 0,"
    "  bookmarks INTEGER NOT NULL DEFAULT 0"
    ")",
    "CREATE TABLE IF NOT EXISTS likes ("
    "  user_id TEXT NOT NULL,"
    "  paper_id TEXT NOT NULL,"
    "  PRIMARY KEY (user_id, paper_id)"
    ")",
    "CREATE TABLE IF NOT EXISTS bookmarks ("
    "  user_id TEXT NOT NULL,"
    "  paper_id TEXT NOT NULL,"
    "  PRIMARY KEY (user_id, paper_id)"
    ")",
)


def get_store_db_path() -> Path:
    """Get the path to the local paper store database."""
    return Path(user_data_dir(CONFIG_APP_NAME)) / STORE_DB_FILENAME


def _relationship(kind: str) -> tuple[str, str]:
    try:
        return RELATIONSHIPS[kind]
    except KeyError:
        raise ValueError(f"Unknown relationship kind: {kind!r}") from None


def _paper_row(paper: Paper) -> tuple:
    return (
        paper.title,
        paper.abstract,
        json.dumps(list(paper.authors)),
        paper.year,
        paper.arxiv_id,
        json.dumps(list(paper.categories)),
        paper.links.pdf,
        paper.links.html,
        paper.doi,
    )


def _row_to_paper(row: sqlite3.Row) -> Paper:
    return Paper(
        id=row["arxiv_id"],
        title=row["title"],
        abstract=row["abstract"],
        authors=tuple(json.loads(row["authors"])),
        year=row["year"],
        categories=tuple(json.loads(row["categories"])),
        links=PaperLinks(pdf=row["pdf_url"], html=row["html_url"]),
        arxiv_id=row["arxiv_id"],
        doi=row["doi"],
        likes=row["likes"],
        bookmarks=row["bookmarks"],
    )


class SqliteStoreBackend:
    """Papers plus per-user like/bookmark rows in one SQLite file.

    Each write opens its own connection and commits as one transaction, so a
    relationship row and the paper counter it drives never diverge.
    All methods are blocking; callers run them in a worker thread.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        if not self._initialized:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        if not self._initialized:
            with conn:
                for statement in _SCHEMA:
                    conn.execute(statement)
            self._initialized = True
            logger.debug("Paper store ready at %s", self.db_path)
        return conn

    def add_relationship(self, kind: str, user_id: str, paper: Paper) -> bool:
        """Upsert ``paper`` and record ``user_id``'s relationship to it.

        Returns False when the relationship already existed (nothing changes).
        """
        table, column = _relationship(kind)
        try:
            with closing(self._connect()) as conn, conn:
                inserted = conn.execute(
                    f"INSERT OR IGNORE INTO {table} (user_id, paper_id) VALUES (?, ?)",
                    (user_id, paper.arxiv_id),
                ).rowcount
                if not inserted:
                    return False
                conn.execute(
                    "INSERT INTO papers (title, abstract, authors, year, arxiv_id, "
                    f"categories, pdf_url, html_url, doi, {column}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 1) "
                    f"ON CONFLICT(arxiv_id) DO UPDATE SET {column} = {column} + 1",
                    _paper_row(paper),
                )
                return True
        except sqlite3.Error as exc:
            raise RemoteStoreFailure(f"Failed to add {kind} for {paper.arxiv_id}") from exc

    def remove_relationship(self, kind: str, user_id: str, arxiv_id: str) -> bool:
        """Delete the relationship row and decrement the counter, never below 0.

        Returns False when there was no relationship to remove.
        """
        table, column = _relationship(kind)
        try:
            with closing(self._connect()) as conn, conn:
                deleted = conn.execute(
                    f"DELETE FROM {table} WHERE user_id = ? AND paper_id = ?",
                    (user_id, arxiv_id),
                ).rowcount
                if not deleted:
                    return False
                conn.execute(
                    f"UPDATE papers SET {column} = MAX({column} - 1, 0) WHERE arxiv_id = ?",
                    (arxiv_id,),
                )
                return True
        except sqlite3.Error as exc:
            raise RemoteStoreFailure(f"Failed to remove {kind} for {arxiv_id}") from exc

    def has_relationship(self, kind: str, user_id: str, arxiv_id: str) -> bool:
        table, _column = _relationship(kind)
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    f"SELECT 1 FROM {table} WHERE user_id = ? AND paper_id = ?",
                    (user_id, arxiv_id),
                ).fetchone()
                return row is not None
        except sqlite3.Error as exc:
            raise RemoteStoreFailure(f"Failed to look up {kind} for {arxiv_id}") from exc

    def counts(self, arxiv_id: str) -> PaperCounts:
        """Counters for a paper; an unknown paper has zero of both."""
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    "SELECT likes, bookmarks FROM papers WHERE arxiv_id = ?",
                    (arxiv_id,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise RemoteStoreFailure(f"Failed to read counters for {arxiv_id}") from exc
        if row is None:
            return PaperCounts()
        return PaperCounts(likes=row["likes"], bookmarks=row["bookmarks"])

    def list_papers(self, kind: str, user_id: str) -> list[Paper]:
        """Papers the user has a ``kind`` relationship with, most recent first."""
        table, _column = _relationship(kind)
        try:
            with closing(self._connect()) as conn:
                rows = conn.execute(
                    f"SELECT p.* FROM {table} r JOIN papers p ON p.arxiv_id = r.paper_id "
                    "WHERE r.user_id = ? ORDER BY r.rowid DESC",
                    (user_id,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise RemoteStoreFailure(f"Failed to list {kind}s for {user_id}") from exc
        papers = [_row_to_paper(row) for row in rows]
        if kind == "like":
            return [replace(paper, is_liked_by_user=True) for paper in papers]
        return [replace(paper, bookmarked=True) for paper in papers]


__all__ = [
    "RELATIONSHIPS",
    "STORE_DB_FILENAME",
    "SqliteStoreBackend",
    "get_store_db_path",
]
