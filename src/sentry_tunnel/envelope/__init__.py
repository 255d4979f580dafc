# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""Sentry Tunnel envelope pipeline.

Per-request stages, executed strictly in this order:

  RequestGate --> body read --> SafeTextView --> EnvelopeScanner
              --> AccessPolicy --> Forwarder

Security properties:
  - Content-Length is checked before a single body byte is read
  - Routing only ever looks at the valid UTF-8 prefix of the body
  - Default DENY: a DSN is forwarded only if BOTH its project id and
    its host are on the configured allow-lists
  - The forwarded body is byte-for-byte the inbound body
  - At-most-once forwarding: failures are reported, never retried
"""

from .audit import AuditEntry, AuditLogger
from .dsn import Dsn, InvalidDsn
from .errors import (
    ContentLengthUnparseable,
    ContentTooLarge,
    DsnNotAString,
    EnvelopeError,
    ForwardFailed,
    HostNotAllowed,
    InvalidDsnValue,
    LineBudgetExceeded,
    MalformedHeaderLine,
    MissingContentLength,
    MissingDsnKey,
    PolicyViolation,
    ProjectNotAllowed,
    RequestRejected,
    TunnelError,
)
from .forwarder import ENVELOPE_CONTENT_TYPE, Forwarder
from .gate import MAX_CONTENT_LENGTH, check_content_length
from .policy import check_access, dsn_host_is_allowed
from .scanner import MAX_HEADER_LINES, EnvelopeHeader, SentryEnvelope, scan_envelope
from .text_view import RawEnvelope, describe_body, is_fully_valid, safe_text_view

__all__ = [
    "AuditEntry",
    "AuditLogger",
    "ContentLengthUnparseable",
    "ContentTooLarge",
    "Dsn",
    "DsnNotAString",
    "ENVELOPE_CONTENT_TYPE",
    "EnvelopeError",
    "EnvelopeHeader",
    "ForwardFailed",
    "Forwarder",
    "HostNotAllowed",
    "InvalidDsn",
    "InvalidDsnValue",
    "LineBudgetExceeded",
    "MAX_CONTENT_LENGTH",
    "MAX_HEADER_LINES",
    "MalformedHeaderLine",
    "MissingContentLength",
    "MissingDsnKey",
    "PolicyViolation",
    "ProjectNotAllowed",
    "RawEnvelope",
    "RequestRejected",
    "SentryEnvelope",
    "TunnelError",
    "check_access",
    "check_content_length",
    "describe_body",
    "dsn_host_is_allowed",
    "is_fully_valid",
    "safe_text_view",
    "scan_envelope",
]
