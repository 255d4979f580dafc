# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""Request gate -- Content-Length check before the body is read."""

from __future__ import annotations

from .errors import ContentLengthUnparseable, ContentTooLarge, MissingContentLength

# 10 MB max body
MAX_CONTENT_LENGTH = 10_000_000


def check_content_length(value: str | None, maximum: int = MAX_CONTENT_LENGTH) -> int:
    """Validate a raw Content-Length header value and return it as an int."""
    if value is None:
        raise MissingContentLength()

    text = value.strip()
    if not text.isdigit() or not text.isascii():
        raise ContentLengthUnparseable()

    content_length = int(text)
    if content_length > maximum:
        raise ContentTooLarge()
    return content_length
