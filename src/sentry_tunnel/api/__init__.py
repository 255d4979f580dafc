"""Sentry Tunnel HTTP surface."""

from sentry_tunnel.api.app import create_app

__all__ = ["create_app"]
