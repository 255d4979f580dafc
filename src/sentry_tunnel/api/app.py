# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""
Sentry Tunnel -- FastAPI Application

Wires the envelope route, the health probe and request logging around
one immutable TunnelConfig. The config, the shared outbound HTTP client
and the optional audit logger live on ``app.state``.

Run with: sentry-tunnel --config tunnel.yaml
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from sentry_tunnel import __version__
from sentry_tunnel.api.middleware import RequestLoggingMiddleware
from sentry_tunnel.api.routes import health, tunnel
from sentry_tunnel.config import TunnelConfig
from sentry_tunnel.envelope.audit import AuditLogger

logger = logging.getLogger("sentry_tunnel.api.app")


def create_app(
    config: TunnelConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the tunnel application.

    Args:
        config: Allow-lists and routing settings, shared read-only.
        transport: Outbound transport override (tests use httpx.MockTransport).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with httpx.AsyncClient(transport=transport) as client:
            app.state.http_client = client
            logger.info(
                "Tunnel ready on %s (hosts=%s, projects=%s)",
                config.tunnel_path,
                ", ".join(config.remote_hosts) or "<none>",
                config.project_ids,
            )
            try:
                yield
            finally:
                if app.state.audit is not None:
                    app.state.audit.close()
                logger.info("Tunnel stopped")

    app = FastAPI(
        title="Sentry Tunnel",
        description="Same-origin relay for Sentry envelopes",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.config = config
    app.state.audit = AuditLogger(config.audit_log_path) if config.audit_log_path else None

    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(health.router)
    app.include_router(tunnel.build_router(config.tunnel_path))
    return app
