"""Huddle HTTP API layer.

This package provides the Falcon ASGI application serving health probes
and the Slack Events API endpoint of the interactive assistant.

Public API
----------
create_app
    Application factory; pass :class:`AppDependencies` to enable the
    assistant endpoint.
"""

from huddle.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
