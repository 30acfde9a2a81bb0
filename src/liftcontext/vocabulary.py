# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Vocabulary term index: term names attached to a node, grouped by vocabulary."""

from __future__ import annotations

import logging
from typing import Any

from .entities import TermStorageProtocol

logger = logging.getLogger(__name__)


def vocabulary_term_names(term_storage: TermStorageProtocol, node_id: Any) -> dict[str, list[str]]:
    """Return ``{vocabulary_id: [term_name, ...]}`` for every term attached to the node.

    Term order within a vocabulary is the storage's return order; no sorting
    or deduplication happens here. A node without terms yields ``{}``.
    Storage errors propagate to the caller.
    """
    terms = term_storage.get_node_terms([node_id])
    node_terms = terms.get(node_id) or []

    index: dict[str, list[str]] = {}
    for term in node_terms:
        index.setdefault(term.vocabulary_id, []).append(term.name)

    logger.debug("Indexed %d terms across %d vocabularies for node %s", len(node_terms), len(index), node_id)
    return index


def field_term_names(vocabulary_ids: list[str], index: dict[str, list[str]]) -> list[str]:
    """Concatenate term names of the given vocabularies, deduplicated in first-seen order."""
    names: list[str] = []
    for vocabulary_id in vocabulary_ids:
        names.extend(index.get(vocabulary_id, ()))
    return list(dict.fromkeys(names))
