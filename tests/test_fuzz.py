# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Property-based fuzz tests using Hypothesis.

Verifies invariants hold for arbitrary inputs across term-name merging,
mapping inversion, tag stripping, and page context assembly.
"""

from __future__ import annotations

try:
    from hypothesis import HealthCheck, given, settings
    from hypothesis import strategies as st
except ImportError:
    import pytest

    pytest.skip("hypothesis not installed", allow_module_level=True)

from liftcontext.entities import (
    InMemoryImageStyleStorage,
    InMemoryTermStorage,
    Node,
    Request,
    Route,
    RouteTitleResolver,
    Term,
)
from liftcontext.field_mapper import MappingSource, available_field_vocabularies, invert_mappings
from liftcontext.page_context import DEFAULT_CONTEXT, PageContext
from liftcontext.settings import LiftSettings
from liftcontext.title import strip_tags
from liftcontext.vocabulary import field_term_names
from tests._lift_helpers import taxonomy_field

# ---------------------------------------------------------------------------
# Module-level strategies
# ---------------------------------------------------------------------------

IDENT = st.from_regex(r"[a-z][a-z0-9_]{0,11}", fullmatch=True)
TERM_NAME = st.text(min_size=1, max_size=20).filter(lambda s: "," not in s)

TERM_INDEX = st.dictionaries(IDENT, st.lists(TERM_NAME, max_size=6), max_size=5)

FIELD_MAPPINGS = st.dictionaries(IDENT.map(lambda s: f"key_{s}"), IDENT.map(lambda s: f"field_{s}"), max_size=6)

PLAIN_TEXT = st.from_regex(r"[A-Za-z0-9]([A-Za-z0-9 .-]{0,60}[A-Za-z0-9])?", fullmatch=True)

FUZZ_SETTINGS = settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])


# ---------------------------------------------------------------------------
# Term names
# ---------------------------------------------------------------------------


class TestFieldTermNamesProperties:
    @FUZZ_SETTINGS
    @given(index=TERM_INDEX, data=st.data())
    def test_no_duplicates_and_nothing_invented(self, index, data):
        vocabularies = data.draw(st.lists(st.sampled_from(sorted(index) or ["none"]), max_size=5))
        names = field_term_names(vocabularies, index)
        assert len(names) == len(set(names))
        available = {name for vid in vocabularies for name in index.get(vid, [])}
        assert set(names) == available

    @FUZZ_SETTINGS
    @given(index=TERM_INDEX)
    def test_first_occurrence_order(self, index):
        vocabularies = sorted(index)
        flat = [name for vid in vocabularies for name in index[vid]]
        names = field_term_names(vocabularies, index)
        assert names == sorted(set(flat), key=flat.index)


# ---------------------------------------------------------------------------
# Mapping inversion
# ---------------------------------------------------------------------------


class TestInversionProperties:
    @FUZZ_SETTINGS
    @given(mappings=FIELD_MAPPINGS, data=st.data())
    def test_every_present_mapping_survives(self, mappings, data):
        present = data.draw(st.sets(st.sampled_from(sorted(set(mappings.values())) or ["field_none"])))
        node = Node(id=1, type="t", title="T", created=0, fields={name: taxonomy_field(["v"]) for name in present})
        inverted = invert_mappings(node, [MappingSource("field_mappings", mappings)])

        assert set(inverted) <= present
        for context_key, field_name in mappings.items():
            if field_name in present:
                assert context_key in inverted[field_name]
            else:
                assert field_name not in inverted

    @FUZZ_SETTINGS
    @given(mappings=FIELD_MAPPINGS)
    def test_every_mapped_key_gets_vocabularies(self, mappings):
        fields = {name: taxonomy_field([name.removeprefix("field_")]) for name in mappings.values()}
        node = Node(id=1, type="t", title="T", created=0, fields=fields)
        result = available_field_vocabularies(node, [MappingSource("field_mappings", mappings)])
        assert result == {key: [field_name.removeprefix("field_")] for key, field_name in mappings.items()}


# ---------------------------------------------------------------------------
# Tag stripping
# ---------------------------------------------------------------------------


class TestStripTagsProperties:
    @FUZZ_SETTINGS
    @given(text=PLAIN_TEXT)
    def test_plain_text_passes_through(self, text):
        assert strip_tags(text) == text

    @FUZZ_SETTINGS
    @given(text=PLAIN_TEXT, tag=st.sampled_from(["b", "em", "span", "strong"]))
    def test_wrapping_tag_removed(self, text, tag):
        assert strip_tags(f"<{tag}>{text}</{tag}>") == text

    @FUZZ_SETTINGS
    @given(markup=st.text(max_size=200))
    def test_never_raises(self, markup):
        result = strip_tags(markup)
        assert isinstance(result, str)


# ---------------------------------------------------------------------------
# Page context
# ---------------------------------------------------------------------------


class TestPageContextProperties:
    @FUZZ_SETTINGS
    @given(
        title=st.text(min_size=1, max_size=40),
        names=st.lists(TERM_NAME, min_size=1, max_size=5),
        route_title=st.one_of(st.none(), st.text(max_size=20)),
    )
    def test_defaults_first_and_build_is_deterministic(self, title, names, route_title):
        terms = [Term(i, "tags", name) for i, name in enumerate(names)]
        fields = {"field_tags": taxonomy_field(["tags"], *terms)}
        node = Node(id=9, type="article", title=title, created=1, fields=fields)
        storage = InMemoryTermStorage()
        storage.index_node(node)
        settings_ = LiftSettings.from_mapping({"field_mappings": {"content_keywords": "field_tags"}})
        route = Route(defaults={"_title": route_title} if route_title is not None else {})

        def build() -> PageContext:
            return PageContext(
                settings_,
                storage,
                InMemoryImageStyleStorage(),
                Request(attributes={"node": node}),
                route,
                RouteTitleResolver(),
            )

        first, second = build().as_dict(), build().as_dict()
        assert first == second
        assert list(first)[: len(DEFAULT_CONTEXT)] == list(DEFAULT_CONTEXT)
        assert first["content_keywords"] == ",".join(dict.fromkeys(names))
        assert first["content_title"] == (route_title or title)
