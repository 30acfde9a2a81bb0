# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Lift page context: personalization metadata for CMS-rendered pages.

Derives an ordered page context from the current content entity and emits it as:
- meta tags: one ``acquia_lift:<name>`` itemprop per context entry
- script tag: the Lift JavaScript loaded from the configured assets URL
"""

from __future__ import annotations

from dataclasses import dataclass

META_ITEMPROP_PREFIX = "acquia_lift:"
LIFT_JS_FILENAME = "lift.js"
LIFT_JS_KEY = "acquia_lift_javascript"


@dataclass(frozen=True, slots=True)
class MetaTag:
    """A single ``<meta itemprop=... content=...>`` descriptor for the HTML head."""

    name: str  # context key, without prefix
    content: str

    @property
    def itemprop(self) -> str:
        return META_ITEMPROP_PREFIX + self.name

    @property
    def attributes(self) -> dict[str, str]:
        return {"itemprop": self.itemprop, "content": self.content}

    def __str__(self) -> str:
        return f'{self.itemprop}="{self.content}"'


@dataclass(frozen=True, slots=True)
class ScriptTag:
    """The ``<script src=...>`` descriptor that loads the Lift JavaScript."""

    src: str

    @property
    def attributes(self) -> dict[str, str]:
        return {"src": self.src}


# (descriptor, key) pairs, the shape handed to the head renderer
HtmlHead = list[tuple[MetaTag | ScriptTag, str]]
