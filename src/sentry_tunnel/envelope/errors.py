# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""Tunnel error taxonomy.

Every error is local to one request and maps directly onto the HTTP
response sent back to the browser:

  RequestRejected  (400) -- Content-Length gate
  EnvelopeError    (400) -- envelope header could not be routed
  PolicyViolation  (400) -- DSN not on the allow-lists
  ForwardFailed    (500) -- destination unreachable

Decoding the body as text is never an error; it degrades to a prefix.
"""

from __future__ import annotations


class TunnelError(Exception):
    """Base class for every error the tunnel reports to a client."""

    status_code: int = 400
    default_message: str = "Bad request."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


# ---------------------------------------------------------------------------
# Transport gate
# ---------------------------------------------------------------------------


class RequestRejected(TunnelError):
    """The inbound request failed the Content-Length gate."""


class MissingContentLength(RequestRejected):
    default_message = "Missing content length header."


class ContentLengthUnparseable(RequestRejected):
    default_message = "Could not parse content length header."


class ContentTooLarge(RequestRejected):
    default_message = "Content length too big."


# ---------------------------------------------------------------------------
# Envelope structure
# ---------------------------------------------------------------------------


class EnvelopeError(TunnelError):
    """The envelope header could not be used to route the request."""


class LineBudgetExceeded(EnvelopeError):
    def __init__(self, max_lines: int) -> None:
        self.max_lines = max_lines
        super().__init__(f"No dsn key found in the first {max_lines} lines of the envelope.")


class MalformedHeaderLine(EnvelopeError):
    def __init__(self, line_number: int, detail: str) -> None:
        self.line_number = line_number
        self.detail = detail
        super().__init__(f"Failed to parse header json on line {line_number}: {detail}")


class DsnNotAString(EnvelopeError):
    default_message = "The dsn value in the envelope header is not a string."


class InvalidDsnValue(EnvelopeError):
    default_message = "Failed to parse dsn value."


class MissingDsnKey(EnvelopeError):
    default_message = "The dsn key is missing from the envelope header."


# ---------------------------------------------------------------------------
# Access policy
# ---------------------------------------------------------------------------


class PolicyViolation(TunnelError):
    """The DSN is well formed but the tunnel may not forward to it."""


class ProjectNotAllowed(PolicyViolation):
    default_message = "Unauthorized project ID"


class HostNotAllowed(PolicyViolation):
    default_message = (
        "Invalid sentry host, check your config against the dsn used in the request."
    )


# ---------------------------------------------------------------------------
# Forwarding
# ---------------------------------------------------------------------------


class ForwardFailed(TunnelError):
    """The destination could not be reached at the transport level."""

    status_code = 500

    def __init__(self, host: str, cause: BaseException) -> None:
        self.host = host
        self.cause = cause
        super().__init__(str(cause) or type(cause).__name__)
