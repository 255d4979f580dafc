# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""Safe text view over an inbound envelope body.

Envelopes may carry binary item payloads (compressed attachments,
replays) after the JSON header lines. Routing only needs the header, so
the tunnel decodes the longest valid UTF-8 prefix of the body and keeps
the original bytes untouched for forwarding.
"""

from __future__ import annotations

from dataclasses import dataclass


def safe_text_view(body: bytes) -> tuple[str, int]:
    """Decode the longest valid UTF-8 prefix of ``body``.

    Returns:
        ``(text, valid_up_to)`` where ``valid_up_to`` is the byte length
        of the decoded prefix. Never raises.
    """
    try:
        return body.decode("utf-8"), len(body)
    except UnicodeDecodeError as exc:
        # Everything before the first offending byte is valid UTF-8
        valid_up_to = exc.start
        return body[:valid_up_to].decode("utf-8"), valid_up_to


def is_fully_valid(body: bytes) -> bool:
    """True if the whole buffer is valid UTF-8."""
    return safe_text_view(body)[1] == len(body)


@dataclass(frozen=True)
class RawEnvelope:
    """The inbound body plus its safe text view."""

    body: bytes
    text: str
    valid_up_to: int
    client_addr: str = ""

    @classmethod
    def from_body(cls, body: bytes, client_addr: str = "") -> RawEnvelope:
        text, valid_up_to = safe_text_view(body)
        return cls(body=body, text=text, valid_up_to=valid_up_to, client_addr=client_addr)

    @property
    def is_safe(self) -> bool:
        return self.valid_up_to == len(self.body)

    @property
    def size(self) -> int:
        return len(self.body)


def describe_body(envelope: RawEnvelope) -> str:
    """Body representation for debug logs.

    The full text is shown only when the whole body is valid UTF-8;
    anything else is reduced to a byte count.
    """
    if envelope.is_safe:
        return envelope.text
    return f"<{envelope.size} bytes>"
