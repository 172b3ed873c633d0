"""Property-based tests using Hypothesis.

Verifies invariants across query building, parsing, gestures, counters and
config. Each test runs 50 examples in CI, 200 in dev.

Run:
    pytest tests/test_properties.py -v
    pytest tests/test_properties.py -v --hypothesis-seed=0  # reproducible
"""

from __future__ import annotations

import hypothesis.strategies as st
from hypothesis import given, settings

from paper_swipe.config import _config_to_dict, _dict_to_config
from paper_swipe.gestures import (
    SWIPE_THRESHOLD,
    VERTICAL_SWIPE_THRESHOLD,
    GestureAction,
    classify_release,
)
from paper_swipe.models import MAX_PAGE_SIZE, Paper, SessionState, UserConfig
from paper_swipe.parsing import normalize_arxiv_id, parse_arxiv_api_feed, unique_id
from paper_swipe.query import CATEGORY_TOPICS, DEFAULT_QUERY, build_search_query, toggle_category

# ── Hypothesis profiles ─────────────────────────────────────────────
settings.register_profile("ci", max_examples=50, deadline=None)
settings.register_profile("dev", max_examples=200, deadline=None)
settings.load_profile("ci")

# ── Custom strategies ────────────────────────────────────────────────

_CATEGORY_IDS = sorted(CATEGORY_TOPICS)


@st.composite
def arxiv_ids(draw: st.DrawFn) -> str:
    """Generate valid new-style arXiv IDs like '2401.12345'."""
    yy = draw(st.integers(min_value=7, max_value=99))
    mm = draw(st.integers(min_value=1, max_value=12))
    num = draw(st.integers(min_value=1, max_value=99999))
    return f"{yy:02d}{mm:02d}.{num:05d}"


_category_selections = st.lists(st.sampled_from(_CATEGORY_IDS), unique=True, max_size=6)

_plain_text = st.text(
    alphabet=st.characters(categories=("L", "N"), include_characters=" -"),
    max_size=40,
)


# ── Query building ───────────────────────────────────────────────────


@given(text=_plain_text, categories=_category_selections)
def test_search_query_never_empty(text: str, categories: list[str]) -> None:
    query = build_search_query(text, categories)
    assert query
    if not text.strip() and not categories:
        assert query == DEFAULT_QUERY


@given(text=_plain_text, categories=_category_selections)
def test_search_query_combines_text_and_topics(text: str, categories: list[str]) -> None:
    query = build_search_query(text, categories)
    for category_id in categories:
        assert CATEGORY_TOPICS[category_id] in query
    if text.strip() and categories:
        assert query.startswith(f"({text.strip()}) AND (")


@given(selected=_category_selections, category_id=st.sampled_from(_CATEGORY_IDS))
def test_toggle_category_twice_restores_membership(
    selected: list[str], category_id: str
) -> None:
    once = toggle_category(selected, category_id)
    twice = toggle_category(once, category_id)
    assert (category_id in once) != (category_id in selected)
    assert set(twice) == set(selected)
    assert len(set(once)) == len(once)


# ── Parsing ──────────────────────────────────────────────────────────


@given(arxiv_id=arxiv_ids(), version=st.integers(min_value=1, max_value=20))
def test_normalize_strips_version(arxiv_id: str, version: int) -> None:
    assert normalize_arxiv_id(f"http://arxiv.org/abs/{arxiv_id}v{version}") == arxiv_id
    assert normalize_arxiv_id(f"https://arxiv.org/pdf/{arxiv_id}v{version}.pdf") == arxiv_id


@given(base=st.text(min_size=1, max_size=10), used=st.sets(st.text(max_size=12), max_size=10))
def test_unique_id_is_unused(base: str, used: set[str]) -> None:
    result = unique_id(base, used)
    assert result not in used
    assert result.startswith(base)


@given(ids=st.lists(arxiv_ids(), min_size=1, max_size=8))
def test_parsed_ids_are_unique(ids: list[str]) -> None:
    entries = "".join(
        f"<entry><id>http://arxiv.org/abs/{arxiv_id}v1</id><title>T</title>"
        "<summary>S</summary><published>2024-01-01T00:00:00Z</published>"
        "<author><name>A</name></author></entry>"
        for arxiv_id in ids
    )
    xml = f'<feed xmlns="http://www.w3.org/2005/Atom">{entries}</feed>'
    papers = parse_arxiv_api_feed(xml)
    assert len(papers) == len(ids)
    assert len({p.id for p in papers}) == len(papers)


# ── Gestures ─────────────────────────────────────────────────────────


@given(
    dx=st.floats(min_value=-SWIPE_THRESHOLD, max_value=SWIPE_THRESHOLD),
    dy=st.floats(min_value=-VERTICAL_SWIPE_THRESHOLD, max_value=VERTICAL_SWIPE_THRESHOLD),
)
def test_small_drags_do_nothing(dx: float, dy: float) -> None:
    assert classify_release(dx, dy) is GestureAction.NONE


@given(
    dx=st.floats(min_value=-1000, max_value=1000, allow_nan=False),
    dy=st.floats(min_value=-1000, max_value=1000, allow_nan=False),
)
def test_horizontal_mirror_swaps_bookmark_and_chat(dx: float, dy: float) -> None:
    mirrored = {
        GestureAction.TOGGLE_BOOKMARK: GestureAction.OPEN_CHAT,
        GestureAction.OPEN_CHAT: GestureAction.TOGGLE_BOOKMARK,
    }
    action = classify_release(dx, dy)
    assert classify_release(-dx, dy) is mirrored.get(action, action)


# ── Counters ─────────────────────────────────────────────────────────


@given(deltas=st.lists(st.sampled_from([1, -1]), max_size=30))
def test_counters_never_negative(deltas: list[int]) -> None:
    paper = Paper(
        id="p", title="T", abstract="A", authors=("X",), year=2024, categories=("cs.AI",)
    )
    for delta in deltas:
        paper = paper.with_likes_delta(delta).with_bookmarks_delta(delta)
        assert paper.likes >= 0
        assert paper.bookmarks >= 0


# ── Config ───────────────────────────────────────────────────────────


@given(
    user_id=_plain_text.map(str.strip),
    page_size=st.integers(min_value=1, max_value=MAX_PAGE_SIZE),
    categories=_category_selections,
    haptics=st.booleans(),
    rollback=st.booleans(),
    policy=st.sampled_from(["now", "drop"]),
    last_search=st.text(max_size=30),
    index=st.integers(min_value=0, max_value=10_000),
)
def test_config_round_trip(
    user_id: str,
    page_size: int,
    categories: list[str],
    haptics: bool,
    rollback: bool,
    policy: str,
    last_search: str,
    index: int,
) -> None:
    config = UserConfig(
        user_id=user_id,
        page_size=page_size,
        selected_categories=categories,
        haptics_enabled=haptics,
        rollback_on_store_failure=rollback,
        missing_published_policy=policy,
        session=SessionState(last_search=last_search, current_index=index),
    )
    assert _dict_to_config(_config_to_dict(config)) == config


@given(data=st.dictionaries(st.text(max_size=20), st.none() | st.integers() | st.text()))
def test_dict_to_config_accepts_arbitrary_objects(data: dict) -> None:
    config = _dict_to_config(data)
    assert 1 <= config.page_size <= MAX_PAGE_SIZE
    assert config.missing_published_policy in ("now", "drop")
    assert config.session.current_index >= 0
