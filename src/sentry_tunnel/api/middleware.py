# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""
Sentry Tunnel -- API Middleware (Request Logging)

Logs every HTTP request with method, path, status and latency.
Health probes are skipped to keep the log readable.
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("sentry_tunnel.api.middleware")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status, and latency."""

    _SKIP_PATHS = {"/healthz"}

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        latency_ms = int((time.time() - start) * 1000)

        path = request.url.path
        if path not in self._SKIP_PATHS:
            logger.info(
                "%s %s %d",
                request.method,
                path,
                response.status_code,
                extra={"fields": {"latency_ms": latency_ms}},
            )
        return response
