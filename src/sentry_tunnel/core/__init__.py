"""Sentry Tunnel core -- process-wide services."""
