# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Thumbnail URL resolution along a configured entity reference path.

Path format: ``field_a->field_b->...``. Each step reads the named field off
the current entity and follows its first referenced entity. The terminal
entity must be a file; its URI is rendered through the configured image style.

Best-effort enrichment: every miss returns None, nothing here raises.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .entities import FILE_BUNDLE, File, ImageStyleStorageProtocol, Node
from .settings import ThumbnailConfig

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "->"


def parse_reference_path(path: str) -> list[str]:
    return [step.strip() for step in path.split(PATH_SEPARATOR)]


def follow_reference_path(entity: Any, steps: list[str]) -> Any | None:
    """Walk ``steps`` from ``entity``; None if any field is absent, empty, or references nothing."""
    for field_name in steps:
        get_field = getattr(entity, "get_field", None)
        item_list = get_field(field_name) if get_field is not None else None
        if item_list is None or item_list.is_empty() or item_list.entity is None:
            logger.debug("Thumbnail path stopped at %s", field_name)
            return None
        entity = item_list.entity
    return entity


def resolve_thumbnail_url(
    node: Node,
    thumbnail_config: Mapping[str, ThumbnailConfig],
    image_styles: ImageStyleStorageProtocol,
) -> str | None:
    """Return the styled thumbnail URL for the node, or None when unavailable."""
    config = thumbnail_config.get(node.bundle())
    if not isinstance(config, ThumbnailConfig) or not config.field:
        return None

    entity = follow_reference_path(node, parse_reference_path(config.field))
    if entity is None:
        return None
    if not isinstance(entity, File) or entity.bundle() != FILE_BUNDLE:
        logger.debug("Thumbnail path for %s ends at %s, not a file", node.bundle(), type(entity).__name__)
        return None

    image_style = image_styles.load(config.style)
    if image_style is None:
        logger.debug("Image style %r not found", config.style)
        return None

    return image_style.build_url(entity.uri)
