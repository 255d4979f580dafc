# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""Forwarder -- relay an accepted envelope to its Sentry instance.

The outbound body is the original inbound byte buffer, never the safe
text prefix. Any response from the destination counts as delivered;
transport failures surface once as ForwardFailed and are never retried.
"""

from __future__ import annotations

import logging

import httpx

from .errors import ForwardFailed
from .scanner import SentryEnvelope
from .text_view import describe_body

logger = logging.getLogger("sentry_tunnel.envelope.forwarder")

ENVELOPE_CONTENT_TYPE = "application/x-sentry-envelope"


class Forwarder:
    """Sends envelopes over a shared ``httpx.AsyncClient``.

    Usage:
        async with httpx.AsyncClient() as client:
            status = await Forwarder(client).forward(envelope)
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    def build_request(self, envelope: SentryEnvelope) -> httpx.Request:
        """Build the outbound POST for ``envelope``."""
        dsn = envelope.dsn
        return self._client.build_request(
            "POST",
            dsn.envelope_api_url,
            params={"sentry_key": dsn.public_key},
            headers={
                "Content-Type": ENVELOPE_CONTENT_TYPE,
                "X-Forwarded-For": envelope.client_addr,
            },
            content=envelope.body,
        )

    async def forward(self, envelope: SentryEnvelope) -> int:
        """Forward ``envelope`` and return the destination's status code.

        Raises:
            ForwardFailed: the destination could not be reached.
        """
        host = envelope.dsn.host
        try:
            request = self.build_request(envelope)
            logger.debug(
                "Sending HTTP %s %s - body=%s",
                request.method,
                request.url,
                describe_body(envelope.raw),
            )
            response = await self._client.send(request)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("Failed to forward request to sentry : %s - Host = %s", exc, host)
            raise ForwardFailed(host, exc) from exc

        logger.debug("Sentry at %s answered %d", host, response.status_code)
        return response.status_code
