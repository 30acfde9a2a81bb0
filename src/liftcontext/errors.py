# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""liftcontext exception hierarchy.

All liftcontext-specific errors inherit from LiftError, allowing callers
to catch the base class for any failure or specific subclasses for
targeted handling.

Page context assembly never raises these. Missing configuration or data
degrades to "value not added".
"""

from __future__ import annotations


class LiftError(Exception):
    """Base exception for all liftcontext errors."""


class ConfigurationError(LiftError):
    """Settings file missing, unreadable, or structurally invalid."""


class CredentialsError(ConfigurationError):
    """Decision API credentials are unusable (e.g. malformed API URL)."""


class DecisionApiError(LiftError):
    """Decision API rejected a request or answered with an unexpected status."""

    def __init__(self, message: str, *, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code
