# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""Tunnel audit trail.

Every forward decision (forwarded, rejected, forward_failed) can be
recorded on disk for diagnosing misconfigured allow-lists. Envelope
payloads are never written, only their size.

Log format: JSON Lines, one JSON object per line.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path

logger = logging.getLogger("sentry_tunnel.envelope.audit")


@dataclass
class AuditEntry:
    """A single tunnel decision."""

    timestamp: float
    event_type: str  # "forwarded", "rejected", "forward_failed"
    client_addr: str = ""
    hostname: str = ""  # DSN host, empty if routing failed
    project_id: int = 0  # DSN project, 0 if routing failed
    body_size: int = 0
    status_code: int = 0  # Status returned to the client
    upstream_status: int = 0  # Status returned by Sentry (forwarded only)
    reason: str = ""
    duration_ms: float = 0.0

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(asdict(self), separators=(",", ":"))

    @classmethod
    def forwarded(
        cls,
        client_addr: str,
        hostname: str,
        project_id: int,
        body_size: int,
        upstream_status: int,
        duration_ms: float = 0.0,
    ) -> AuditEntry:
        """Create an entry for a delivered envelope."""
        return cls(
            timestamp=time.time(),
            event_type="forwarded",
            client_addr=client_addr,
            hostname=hostname,
            project_id=project_id,
            body_size=body_size,
            status_code=200,
            upstream_status=upstream_status,
            duration_ms=duration_ms,
        )

    @classmethod
    def rejected(
        cls,
        client_addr: str,
        reason: str,
        status_code: int = 400,
        hostname: str = "",
        project_id: int = 0,
        body_size: int = 0,
    ) -> AuditEntry:
        """Create an entry for an envelope the tunnel refused."""
        return cls(
            timestamp=time.time(),
            event_type="rejected",
            client_addr=client_addr,
            hostname=hostname,
            project_id=project_id,
            body_size=body_size,
            status_code=status_code,
            reason=reason,
        )

    @classmethod
    def forward_failed(
        cls,
        client_addr: str,
        hostname: str,
        project_id: int,
        body_size: int,
        reason: str,
        duration_ms: float = 0.0,
    ) -> AuditEntry:
        """Create an entry for an envelope Sentry could not be reached for."""
        return cls(
            timestamp=time.time(),
            event_type="forward_failed",
            client_addr=client_addr,
            hostname=hostname,
            project_id=project_id,
            body_size=body_size,
            status_code=500,
            reason=reason,
            duration_ms=duration_ms,
        )


AUDIT_RECORD_NAME = "sentry_tunnel.audit"


class AuditLogger:
    """Appends AuditEntry records to a JSON Lines file.

    Writes go through a dedicated ``logging.FileHandler``: its lock
    serializes concurrent writers and every line is flushed as it is
    written. The file is opened on the first entry.
    """

    def __init__(self, log_path: str | Path) -> None:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._handler = logging.FileHandler(path, encoding="utf-8", delay=True)
        self._handler.setFormatter(logging.Formatter("%(message)s"))
        logger.info("Audit trail enabled at %s", path)

    def log(self, entry: AuditEntry) -> None:
        """Append one entry. Blocks on file I/O."""
        record = logging.makeLogRecord(
            {
                "name": AUDIT_RECORD_NAME,
                "levelno": logging.INFO,
                "levelname": "INFO",
                "msg": entry.to_json(),
            }
        )
        self._handler.handle(record)

    def close(self) -> None:
        self._handler.close()
