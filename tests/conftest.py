# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import liftcontext  # noqa: F401
except ImportError:
    raise ImportError("liftcontext is not installed. Run: pip install -e '.[dev]'") from None

import logging

import pytest
import structlog

from liftcontext.entities import (
    ContentEntity,
    File,
    ImageStyle,
    InMemoryImageStyleStorage,
    InMemoryTermStorage,
    Node,
    ReferenceField,
    Term,
    User,
)
from tests._lift_helpers import taxonomy_field


@pytest.fixture
def article() -> Node:
    """Article 42 by jdoe with one 'News' category and an image behind a media entity."""
    hero = File(id=7, uri="public://hero.jpg")
    media = ContentEntity(id=3, bundle_id="image", fields={"field_media": ReferenceField(targets=[hero])})
    return Node(
        id=42,
        type="article",
        title="Hello world",
        created=1700000000,
        owner=User(name="jdoe", id=5),
        fields={
            "field_category": taxonomy_field(["categories"], Term(1, "categories", "News")),
            "field_image": ReferenceField(targets=[media]),
        },
    )


@pytest.fixture
def term_storage(article) -> InMemoryTermStorage:
    storage = InMemoryTermStorage()
    storage.index_node(article)
    return storage


@pytest.fixture
def image_styles() -> InMemoryImageStyleStorage:
    return InMemoryImageStyleStorage([ImageStyle("thumb", public_base_url="https://cdn.example.com/files")])


@pytest.fixture(autouse=True)
def _reset_logging():
    """CLI tests reconfigure the root logger; restore it afterwards."""
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
