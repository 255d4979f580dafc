# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""Sentry Tunnel -- Envelope Route.

POST {tunnel_path} runs one envelope through the pipeline:

  1. Content-Length gate (before any body byte is read)
  2. Body read + safe text view
  3. DSN lookup in the envelope header
  4. Project and host allow-lists
  5. Forward to Sentry

Client-caused failures answer 400, destination failures answer 500,
both with a plain-text reason. Success is an empty 200.
"""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Request, Response
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from sentry_tunnel.config import TunnelConfig
from sentry_tunnel.envelope.audit import AuditEntry, AuditLogger
from sentry_tunnel.envelope.errors import ForwardFailed, TunnelError
from sentry_tunnel.envelope.forwarder import Forwarder
from sentry_tunnel.envelope.gate import check_content_length
from sentry_tunnel.envelope.policy import check_access
from sentry_tunnel.envelope.scanner import SentryEnvelope, scan_envelope
from sentry_tunnel.envelope.text_view import RawEnvelope

logger = logging.getLogger("sentry_tunnel.api.routes.tunnel")


def resolve_client_addr(request: Request, trust_x_forwarded_for: bool) -> str:
    """Client address forwarded to Sentry.

    The first X-Forwarded-For entry is used only when the deployment
    trusts that header and the entry is printable ASCII; otherwise the
    socket peer address is used. Outbound header values must be ASCII.
    """
    peer = request.client.host if request.client else ""
    if trust_x_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",", 1)[0].strip()
        if first and first.isascii() and first.isprintable():
            return first
    return peer


async def _audit(request: Request, entry: AuditEntry) -> None:
    audit: AuditLogger | None = getattr(request.app.state, "audit", None)
    if audit is not None:
        # File writes block; keep them off the event loop
        await run_in_threadpool(audit.log, entry)


async def post_envelope(request: Request) -> Response:
    """Relay one Sentry envelope."""
    config: TunnelConfig = request.app.state.config
    client_addr = resolve_client_addr(request, config.trust_x_forwarded_for)
    raw: RawEnvelope | None = None
    envelope: SentryEnvelope | None = None
    start_time = time.time()

    try:
        check_content_length(request.headers.get("content-length"), config.max_content_length)

        raw = RawEnvelope.from_body(await request.body(), client_addr)
        envelope = scan_envelope(raw)
        check_access(envelope, config)

        start_time = time.time()
        upstream_status = await Forwarder(request.app.state.http_client).forward(envelope)

    except ForwardFailed as exc:
        await _audit(
            request,
            AuditEntry.forward_failed(
                client_addr,
                exc.host,
                envelope.dsn.project_id if envelope else 0,
                raw.size if raw else 0,
                exc.message,
                duration_ms=(time.time() - start_time) * 1000,
            ),
        )
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    except TunnelError as exc:
        logger.info("Rejected envelope from %s: %s", client_addr, exc)
        await _audit(
            request,
            AuditEntry.rejected(
                client_addr,
                exc.message,
                status_code=exc.status_code,
                hostname=envelope.dsn.host if envelope else "",
                project_id=envelope.dsn.project_id if envelope else 0,
                body_size=raw.size if raw else 0,
            ),
        )
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    await _audit(
        request,
        AuditEntry.forwarded(
            client_addr,
            envelope.dsn.host,
            envelope.dsn.project_id,
            raw.size,
            upstream_status,
            duration_ms=(time.time() - start_time) * 1000,
        ),
    )
    return Response(status_code=200)


def build_router(tunnel_path: str) -> APIRouter:
    """Router serving the envelope endpoint at ``tunnel_path``."""
    router = APIRouter(tags=["tunnel"])
    router.add_api_route(tunnel_path, post_envelope, methods=["POST"])
    return router
