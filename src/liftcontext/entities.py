# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Entity model and collaborator protocols consumed by page context assembly.

Defines runtime-checkable Protocols for what the assembler reads from the CMS
(typed field access, taxonomy term storage, image styles, title resolution)
and small in-memory implementations used by the CLI fixtures and tests.

Field access is explicit: ``entity.get_field(name)`` returns a field item list
or None. Nothing here looks fields up by attribute name.

Dependencies: none (leaf module).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

FILE_BUNDLE = "file"

# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class FieldItemListProtocol(Protocol):
    """A field on an entity: zero or more referenced entities plus field settings."""

    @property
    def entity(self) -> Any | None: ...

    def is_empty(self) -> bool: ...

    def get_setting(self, name: str) -> Any: ...


@runtime_checkable
class FieldableEntityProtocol(Protocol):
    """Typed field accessor implemented per entity kind."""

    def bundle(self) -> str: ...

    def get_field(self, name: str) -> FieldItemListProtocol | None: ...


@runtime_checkable
class TermStorageProtocol(Protocol):
    """Taxonomy term storage: batch lookup of terms attached to nodes."""

    def get_node_terms(self, node_ids: list[Any]) -> Mapping[Any, list[Term]]: ...


@runtime_checkable
class ImageStyleProtocol(Protocol):
    def build_url(self, uri: str) -> str: ...


@runtime_checkable
class ImageStyleStorageProtocol(Protocol):
    def load(self, name: str) -> ImageStyleProtocol | None: ...


@runtime_checkable
class TitleResolverProtocol(Protocol):
    """Produces the page title: a plain string, a Markup value, or None."""

    def get_title(self, request: Request, route: Route | None) -> Any: ...


# ---------------------------------------------------------------------------
# Fields and entities
# ---------------------------------------------------------------------------


@dataclass
class ReferenceField:
    """Entity reference field. ``entity`` is the first referenced target."""

    targets: list[Any] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)

    @property
    def entity(self) -> Any | None:
        return self.targets[0] if self.targets else None

    def is_empty(self) -> bool:
        return not self.targets

    def get_setting(self, name: str) -> Any:
        return self.settings.get(name)


class _FieldableMixin:
    fields: dict[str, ReferenceField]

    def get_field(self, name: str) -> ReferenceField | None:
        return self.fields.get(name)

    def has_field(self, name: str) -> bool:
        return name in self.fields


@dataclass
class User:
    name: str
    id: int | str = 0

    def get_account_name(self) -> str:
        return self.name


@dataclass
class File:
    id: int | str
    uri: str

    def bundle(self) -> str:
        return FILE_BUNDLE

    def get_field(self, name: str) -> ReferenceField | None:
        return None


@dataclass
class Term:
    """Taxonomy term. ``vocabulary_id`` is the owning vocabulary's machine name."""

    id: int | str
    vocabulary_id: str
    name: str

    def bundle(self) -> str:
        return self.vocabulary_id

    def get_field(self, name: str) -> ReferenceField | None:
        return None


@dataclass
class ContentEntity(_FieldableMixin):
    """Generic fieldable entity (media, paragraph, ...) used along reference paths."""

    id: int | str
    bundle_id: str
    fields: dict[str, ReferenceField] = field(default_factory=dict)

    def bundle(self) -> str:
        return self.bundle_id


@dataclass
class Node(_FieldableMixin):
    """Content node: the entity a page context is derived from."""

    id: int | str
    type: str
    title: str
    created: int
    owner: User | None = None
    fields: dict[str, ReferenceField] = field(default_factory=dict)

    def bundle(self) -> str:
        return self.type

    @property
    def owner_name(self) -> str:
        return self.owner.get_account_name() if self.owner is not None else ""


# ---------------------------------------------------------------------------
# Request / route / title
# ---------------------------------------------------------------------------


@dataclass
class Request:
    """The current request. ``attributes["node"]`` holds the routed node, if any."""

    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def node(self) -> Any | None:
        return self.attributes.get("node")


@dataclass
class Route:
    path: str = "/"
    defaults: dict[str, Any] = field(default_factory=dict)


@dataclass
class Markup:
    """Render-array style title: markup plus the tags allowed to survive stripping."""

    markup: Any
    allowed_tags: list[str] = field(default_factory=list)


class RouteTitleResolver:
    """Resolves titles from the route's ``_title`` default."""

    def get_title(self, request: Request, route: Route | None) -> Any:
        if route is None:
            return None
        return route.defaults.get("_title")


# ---------------------------------------------------------------------------
# Storages
# ---------------------------------------------------------------------------


class InMemoryTermStorage:
    """Term storage keyed by node id, preserving attach order."""

    def __init__(self) -> None:
        self._index: dict[Any, list[Term]] = {}

    def attach(self, node_id: Any, term: Term) -> None:
        self._index.setdefault(node_id, []).append(term)

    def index_node(self, node: Node) -> None:
        """Attach every term referenced by the node's fields, in field order."""
        for item_list in node.fields.values():
            for target in item_list.targets:
                if isinstance(target, Term):
                    self.attach(node.id, target)

    def get_node_terms(self, node_ids: list[Any]) -> dict[Any, list[Term]]:
        return {nid: list(self._index[nid]) for nid in node_ids if nid in self._index}


def file_create_url(uri: str, public_base_url: str) -> str:
    """Turn a stream-wrapper URI (``public://a/b.jpg``) into a public URL.

    URIs that already carry an http(s) scheme, or are protocol-relative,
    pass through unchanged.
    """
    if uri.startswith(("http://", "https://", "//")):
        return uri
    scheme, sep, target = uri.partition("://")
    if not sep:
        return f"{public_base_url.rstrip('/')}/{uri.lstrip('/')}"
    return f"{public_base_url.rstrip('/')}/{target.lstrip('/')}"


@dataclass
class ImageStyle:
    """Named image rendition. Derivatives live under ``styles/<name>/<scheme>/``."""

    name: str
    public_base_url: str = "/sites/default/files"

    def build_uri(self, uri: str) -> str:
        scheme, sep, target = uri.partition("://")
        if not sep:
            scheme, target = "public", uri
        return f"{scheme}://styles/{self.name}/{scheme}/{target.lstrip('/')}"

    def build_url(self, uri: str) -> str:
        return file_create_url(self.build_uri(uri), self.public_base_url)


class InMemoryImageStyleStorage:
    def __init__(self, styles: Iterable[ImageStyle] = ()) -> None:
        self._styles = {style.name: style for style in styles}

    def add(self, style: ImageStyle) -> None:
        self._styles[style.name] = style

    def load(self, name: str) -> ImageStyle | None:
        return self._styles.get(name)


# ---------------------------------------------------------------------------
# Fixture loading
# ---------------------------------------------------------------------------


def _entity_from_dict(data: Mapping[str, Any]) -> Any:
    kind = data.get("kind", "entity")
    if kind == "file":
        return File(id=data.get("id", 0), uri=str(data["uri"]))
    if kind == "term":
        return Term(id=data.get("id", 0), vocabulary_id=str(data["vocabulary"]), name=str(data["name"]))
    return ContentEntity(
        id=data.get("id", 0),
        bundle_id=str(data.get("bundle", kind)),
        fields=_fields_from_dict(data.get("fields") or {}),
    )


def _fields_from_dict(data: Mapping[str, Any]) -> dict[str, ReferenceField]:
    fields: dict[str, ReferenceField] = {}
    for name, field_data in data.items():
        field_data = field_data or {}
        settings = dict(field_data.get("settings") or {})
        if "target_bundles" in field_data:
            settings.setdefault("handler_settings", {})["target_bundles"] = list(field_data["target_bundles"])
        targets = [_entity_from_dict(t) for t in field_data.get("targets") or []]
        fields[name] = ReferenceField(targets=targets, settings=settings)
    return fields


def node_from_dict(data: Mapping[str, Any]) -> Node:
    """Build a Node graph from fixture data (JSON/YAML).

    Format::

        id: 42
        type: article
        title: Hello
        created: 1700000000
        owner: jdoe
        fields:
          field_category:
            target_bundles: [categories]
            targets: [{kind: term, id: 1, vocabulary: categories, name: News}]
          field_image:
            targets: [{kind: file, id: 7, uri: "public://hero.jpg"}]
    """
    owner = data.get("owner")
    if isinstance(owner, Mapping):
        owner = User(name=str(owner.get("name", "")), id=owner.get("id", 0))
    elif owner is not None:
        owner = User(name=str(owner))
    return Node(
        id=data.get("id", 0),
        type=str(data.get("type", "page")),
        title=str(data.get("title", "")),
        created=int(data.get("created", 0)),
        owner=owner,
        fields=_fields_from_dict(data.get("fields") or {}),
    )
