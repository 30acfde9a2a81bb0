# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page context serialization: HTML head markup and JSON.

Two output formats:
- HTML: ``<meta itemprop="acquia_lift:...">`` lines plus the Lift ``<script>``
- JSON: the ordered context as an object (debugging, CLI)
"""

from __future__ import annotations

import html
import json
from typing import Any

from . import HtmlHead, MetaTag, ScriptTag
from .page_context import PageContext


def _render_attributes(attributes: dict[str, str]) -> str:
    return " ".join(f'{name}="{html.escape(value, quote=True)}"' for name, value in attributes.items())


def render_tag(tag: MetaTag | ScriptTag) -> str:
    if isinstance(tag, MetaTag):
        return f"<meta {_render_attributes(tag.attributes)} />"
    return f"<script {_render_attributes(tag.attributes)}></script>"


def render_html_head(html_head: HtmlHead) -> str:
    """Render head descriptors in order, one tag per line."""
    return "\n".join(render_tag(tag) for tag, _key in html_head)


def to_dict(page_context: PageContext) -> dict[str, Any]:
    return page_context.as_dict()


def to_json(page_context: PageContext, indent: int = 2) -> str:
    """Serialize the ordered context to a JSON object string."""
    return json.dumps(to_dict(page_context), ensure_ascii=False, indent=indent)
