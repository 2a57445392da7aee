"""Huddle: daily developer-activity digests and a chat assistant."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
