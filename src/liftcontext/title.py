# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page title resolution: plain string or markup with an allowed-tag list.

Markup titles are stripped of every tag outside ``allowed_tags`` (text is
kept, comments dropped). Text comes out entity-decoded whether or not any
tag survives, so the serializer escapes it exactly once. An empty or
still-structured result means "no usable title" and the caller keeps its
current value.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import lxml.html
from lxml import etree
from lxml.html.defs import empty_tags

from .entities import Markup, Request, Route, TitleResolverProtocol

_WRAPPER = "div"


def strip_tags(markup: str, allowed_tags: Iterable[str] = ()) -> str:
    """Remove all tags except ``allowed_tags``, keeping their text content."""
    if not markup:
        return ""
    if not markup.strip():
        return markup
    allowed = {tag.lower().strip("<>/ ") for tag in allowed_tags}
    try:
        wrapper = lxml.html.fragment_fromstring(markup, create_parent=_WRAPPER)
    except (etree.ParserError, ValueError):
        # empty document, or control characters lxml refuses
        return ""

    for el in list(wrapper.iterdescendants()):
        if not isinstance(el.tag, str):
            el.drop_tree()  # comments, processing instructions
        elif el.tag.lower() not in allowed:
            el.drop_tag()

    if not allowed:
        return str(wrapper.text_content())
    parts = [wrapper.text or ""]
    for child in wrapper:
        _render_kept(child, parts)
    return "".join(parts)


def _quote_attribute(value: str) -> str:
    return '"' + value.replace('"', "&quot;") + '"'


def _render_kept(el: lxml.html.HtmlElement, parts: list[str]) -> None:
    """Re-emit a kept tag around its decoded text; only attribute quotes are escaped."""
    tag = el.tag.lower()
    attributes = "".join(f" {name}={_quote_attribute(value)}" for name, value in el.attrib.items())
    parts.append(f"<{tag}{attributes}>")
    parts.append(el.text or "")
    for child in el:
        _render_kept(child, parts)
    if tag not in empty_tags:
        parts.append(f"</{tag}>")
    parts.append(el.tail or "")


def _as_markup(title: Any) -> Markup | None:
    if isinstance(title, Markup):
        return title
    if isinstance(title, Mapping):
        markup = title.get("#markup", title.get("markup"))
        allowed = title.get("#allowed_tags", title.get("allowed_tags"))
        if markup is not None and allowed is not None:
            return Markup(markup=markup, allowed_tags=list(allowed))
    return None


def normalize_title(title: Any) -> str | None:
    """Reduce a raw title to a usable string, or None."""
    markup = _as_markup(title)
    if markup is not None:
        if not isinstance(markup.markup, str):
            return None
        title = strip_tags(markup.markup, markup.allowed_tags)
    if not isinstance(title, str) or not title:
        return None
    return title


def resolve_title(request: Request, route: Route | None, title_resolver: TitleResolverProtocol) -> str | None:
    return normalize_title(title_resolver.get_title(request, route))
