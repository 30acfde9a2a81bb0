# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Field-vocabulary mapping: which vocabularies feed which context key.

Four mapping tables are consulted, all keyed by context key:
- field_mappings:       context_key -> field_name
- udf_person_mappings:  context_key -> {"value": field_name, ...}
- udf_event_mappings:   (same shape)
- udf_touch_mappings:   (same shape)

The three UDF tables share one key space and are merged per context key
(person, then event, then touch; a later table replaces the entry). Field
mappings stay a separate source. Both are inverted into
``field_name -> [context_key, ...]`` so each field's reference settings are
read once, then expanded back to
``context_key -> [vocabulary_id, ...]``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from .entities import FieldableEntityProtocol
from .settings import LiftSettings

logger = logging.getLogger(__name__)

UDF_VALUE_KEY = "value"


@dataclass(frozen=True, slots=True)
class MappingSource:
    """One mapping table. ``value_key`` names the sub-key holding the field name (None: value is the name)."""

    name: str
    table: Mapping[str, Any]
    value_key: str | None = None

    def entries(self) -> Iterator[tuple[str, str]]:
        """Yield ``(context_key, field_name)`` pairs in table order, skipping malformed entries."""
        for context_key, entry in self.table.items():
            if self.value_key is None:
                field_name = entry
            elif isinstance(entry, Mapping):
                field_name = entry.get(self.value_key)
            else:
                field_name = None
            if not isinstance(field_name, str) or not field_name:
                logger.debug("Mapping %s: no field configured for %s", self.name, context_key)
                continue
            yield context_key, field_name


def merge_udf_mappings(*tables: Mapping[str, Any]) -> dict[str, Any]:
    """Collapse UDF tables per context key; a later table replaces an earlier entry in place."""
    merged: dict[str, Any] = {}
    for table in tables:
        merged.update(table)
    return merged


def mapping_sources(settings: LiftSettings) -> list[MappingSource]:
    """Regular field mappings, then the person, event and touch UDF tables merged into one source."""
    udf_mappings = merge_udf_mappings(
        settings.udf_person_mappings,
        settings.udf_event_mappings,
        settings.udf_touch_mappings,
    )
    return [
        MappingSource("field_mappings", settings.field_mappings),
        MappingSource("udf_mappings", udf_mappings, UDF_VALUE_KEY),
    ]


def invert_mappings(entity: FieldableEntityProtocol, sources: list[MappingSource]) -> dict[str, list[str]]:
    """Build ``field_name -> [context_key, ...]`` for fields present on the entity.

    A field may feed several context keys; keys from all sources accumulate
    under the shared field. Fields the entity lacks are skipped silently.
    """
    fields: dict[str, list[str]] = {}
    for source in sources:
        for context_key, field_name in source.entries():
            if entity.get_field(field_name) is None:
                logger.debug("Field %s (%s) not on entity, skipping", field_name, context_key)
                continue
            context_keys = fields.setdefault(field_name, [])
            if context_key not in context_keys:
                context_keys.append(context_key)
    return fields


def target_bundle_ids(handler_settings: Any) -> list[str]:
    """Vocabulary ids a reference field is restricted to (list or ``{vid: vid}`` form)."""
    if not isinstance(handler_settings, Mapping):
        return []
    bundles = handler_settings.get("target_bundles")
    if isinstance(bundles, Mapping):
        return [str(vid) for vid in bundles]
    if isinstance(bundles, (list, tuple)):
        return [str(vid) for vid in bundles]
    return []


def available_field_vocabularies(
    entity: FieldableEntityProtocol,
    sources: list[MappingSource],
) -> dict[str, list[str]]:
    """Return ``context_key -> [vocabulary_id, ...]`` for every mapped field on the entity.

    If one context key is reachable through two fields, the field processed
    last wins.
    """
    result: dict[str, list[str]] = {}
    for field_name, context_keys in invert_mappings(entity, sources).items():
        item_list = entity.get_field(field_name)
        vocabulary_ids = target_bundle_ids(item_list.get_setting("handler_settings")) if item_list else []
        for context_key in context_keys:
            result[context_key] = list(vocabulary_ids)
    return result
