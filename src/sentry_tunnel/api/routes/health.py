# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""Sentry Tunnel -- Health Route."""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter()


@router.get("/healthz", response_class=PlainTextResponse)
async def health_check():
    """Liveness probe (K8s compatible)."""
    return "OK"
