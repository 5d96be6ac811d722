"""User directory lookups."""

from __future__ import annotations

from .http import HttpUserDirectory, NullUserDirectory, contact_from_json

__all__ = ["HttpUserDirectory", "NullUserDirectory", "contact_from_json"]
