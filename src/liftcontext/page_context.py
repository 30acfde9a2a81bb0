# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page context assembly: the ordered record emitted as Lift meta tags.

Build order (each step writes into one ordered dict):
    defaults -> credential -> advanced -> node attributes
    -> thumbnail -> field terms -> title

Key insertion order is emission order. Thumbnail, field terms and title are
independent enrichments: a failure in one is logged and the others still run.

Usage:
    ctx = PageContext(settings, term_storage, image_styles, request, route, title_resolver)
    head: HtmlHead = []
    ctx.populate_html_head(head)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from . import LIFT_JS_FILENAME, LIFT_JS_KEY, HtmlHead, MetaTag, ScriptTag
from .entities import (
    ImageStyleStorageProtocol,
    Node,
    Request,
    Route,
    TermStorageProtocol,
    TitleResolverProtocol,
)
from .field_mapper import available_field_vocabularies, mapping_sources
from .logging_config import bound_page
from .settings import LiftSettings, is_valid_content_replacement_mode
from .thumbnail import resolve_thumbnail_url
from .title import resolve_title
from .vocabulary import field_term_names, vocabulary_term_names

logger = logging.getLogger(__name__)

ENGAGEMENT_SCORE_DEFAULT = 1
UNTITLED = "Untitled"
NODE_PAGE_TYPE = "node page"
CONTENT_REPLACEMENT_MODE_KEY = "contentReplacementMode"

DEFAULT_CONTEXT: Mapping[str, Any] = MappingProxyType(
    {
        "content_title": UNTITLED,
        "content_type": "page",
        "page_type": "content page",
        "content_section": "",
        "content_keywords": "",
        "post_id": "",
        "published_date": "",
        "thumbnail_url": "",
        "persona": "",
        "engagement_score": ENGAGEMENT_SCORE_DEFAULT,
        "author": "",
    }
)

# internal credential setting -> context key sent to Lift
CREDENTIAL_MAPPING: Mapping[str, str] = MappingProxyType(
    {
        "account_id": "account_id",
        "site_id": "site_id",
        "content_origin": "contentOrigin",
        "assets_url": "liftAssetsURL",
        "decision_api_url": "liftDecisionAPIURL",
        "oauth_url": "authEndpoint",
    }
)


class PageContext:
    """Per-request page context. Built once in ``__init__``; not shared across requests."""

    def __init__(
        self,
        settings: LiftSettings,
        term_storage: TermStorageProtocol,
        image_styles: ImageStyleStorageProtocol,
        request: Request,
        route: Route | None,
        title_resolver: TitleResolverProtocol,
        *,
        credential_mapping: Mapping[str, str] = CREDENTIAL_MAPPING,
        strict: bool = False,
    ) -> None:
        self._settings = settings
        self._term_storage = term_storage
        self._image_styles = image_styles
        self._credential_mapping = credential_mapping
        self._strict = strict
        self._assets_url = settings.assets_url
        self._context: dict[str, Any] = dict(DEFAULT_CONTEXT)

        self._set_credential(settings.credential)
        self._set_advanced_configuration(settings.content_replacement_mode)

        node = request.node
        if isinstance(node, Node):
            with bound_page(node_id=node.id, content_type=node.type):
                self._set_node_data(node)
                self._enrich("thumbnail", self._set_thumbnail_url, node)
                self._enrich("fields", self._set_fields, node)
                self._enrich("title", self._set_title, request, route, title_resolver)
        else:
            self._enrich("title", self._set_title, request, route, title_resolver)

    # ── Read access ───────────────────────────────────────────────

    @property
    def context(self) -> Mapping[str, Any]:
        """Read-only view of the ordered context."""
        return MappingProxyType(self._context)

    @property
    def assets_url(self) -> str:
        return self._assets_url

    def as_dict(self) -> dict[str, Any]:
        return dict(self._context)

    # ── Build steps ───────────────────────────────────────────────

    def _enrich(self, step: str, fn: Callable[..., None], *args: Any) -> None:
        try:
            fn(*args)
        except Exception:
            if self._strict:
                raise
            logger.warning("Page context step %r failed; keeping previous values", step, exc_info=True)

    def _set_credential(self, credential: Mapping[str, Any]) -> None:
        for setting_key, context_key in self._credential_mapping.items():
            value = credential.get(setting_key)
            if value is not None:
                self._context[context_key] = value

    def _set_advanced_configuration(self, replacement_mode: Any) -> None:
        if is_valid_content_replacement_mode(replacement_mode):
            self._context[CONTENT_REPLACEMENT_MODE_KEY] = replacement_mode

    def _set_node_data(self, node: Node) -> None:
        self._context["content_type"] = node.type
        self._context["content_title"] = node.title
        self._context["published_date"] = node.created
        self._context["post_id"] = node.id
        self._context["author"] = node.owner_name
        self._context["page_type"] = NODE_PAGE_TYPE

    def _set_thumbnail_url(self, node: Node) -> None:
        url = resolve_thumbnail_url(node, self._settings.thumbnail, self._image_styles)
        if url:
            self._context["thumbnail_url"] = url

    def _set_fields(self, node: Node) -> None:
        field_vocabularies = available_field_vocabularies(node, mapping_sources(self._settings))
        if not field_vocabularies:
            return
        term_index = vocabulary_term_names(self._term_storage, node.id)
        for context_key, vocabulary_ids in field_vocabularies.items():
            names = field_term_names(vocabulary_ids, term_index)
            # empty result must not clobber defaults or node values
            if names:
                self._context[context_key] = ",".join(names)

    def _set_title(self, request: Request, route: Route | None, title_resolver: TitleResolverProtocol) -> None:
        title = resolve_title(request, route, title_resolver)
        if title is not None:
            self._context["content_title"] = title

    # ── Emission ──────────────────────────────────────────────────

    def meta_tags(self) -> list[MetaTag]:
        return [MetaTag(name=name, content=str(value)) for name, value in self._context.items()]

    def script_tag(self) -> ScriptTag:
        return ScriptTag(src=f"{self._assets_url}/{LIFT_JS_FILENAME}")

    def populate_html_head(self, html_head: HtmlHead) -> None:
        """Append one ``(MetaTag, name)`` per context entry, then the Lift script tag."""
        for tag in self.meta_tags():
            html_head.append((tag, tag.name))
        html_head.append((self.script_tag(), LIFT_JS_KEY))
