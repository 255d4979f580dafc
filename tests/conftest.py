"""Pytest configuration for sentry-tunnel tests."""

import sys
from pathlib import Path

import pytest

# Ensure src/sentry_tunnel is importable
src_path = str(Path(__file__).parent.parent / "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from sentry_tunnel.config import ProjectIdSet, TunnelConfig  # noqa: E402

DSN = "https://KEY@host.example/42"
HEADER_LINE = b'{"dsn":"https://KEY@host.example/42"}'
SCENARIO_BODY = HEADER_LINE + b"\n{}\n{}"


@pytest.fixture()
def tunnel_config():
    """Allow-lists matching SCENARIO_BODY."""
    return TunnelConfig(
        remote_hosts=("host.example",),
        project_ids=ProjectIdSet(ids=frozenset({42})),
    )
