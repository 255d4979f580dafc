# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""
Sentry Tunnel -- Process Logging

Human-readable log lines with optional structured fields, written to
stderr and, when configured, to a rotating log file.

FORMAT:
    TIMESTAMP | LEVEL | COMPONENT | MESSAGE | {structured fields}

USAGE:
    from sentry_tunnel.core.logging import setup_logging
    setup_logging("DEBUG", log_file="/var/log/sentry-tunnel/tunnel.log")

    logger = logging.getLogger("sentry_tunnel.api.routes.tunnel")
    logger.info("Envelope forwarded", extra={"fields": {"host": "o1.ingest.sentry.io"}})
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path

# =============================================================================
# CONSTANTS
# =============================================================================

MAX_LOG_FILE_BYTES = 10 * 1024 * 1024  # 10 MB per file
LOG_BACKUP_COUNT = 5
ROOT_LOGGER = "sentry_tunnel"


# =============================================================================
# CUSTOM FORMATTER -- human-readable + structured
# =============================================================================


class TunnelLogFormatter(logging.Formatter):
    """
    Format: TIMESTAMP | LEVEL | COMPONENT | MESSAGE | {structured fields}

    Example:
    2026-02-09T17:30:45.123Z | INFO  | tunnel       | POST /tunnel 200 | latency_ms=12
    2026-02-09T17:30:46.501Z | ERROR | forwarder    | Failed to forward request to sentry
    """

    LEVEL_WIDTH = 5
    COMPONENT_WIDTH = 12

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.fromtimestamp(record.created, timezone.utc)
        ts = now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"

        level = "WARN" if record.levelname == "WARNING" else record.levelname
        component = getattr(record, "component", record.name.rsplit(".", 1)[-1])
        message = record.getMessage()

        fields = getattr(record, "fields", {})
        field_str = ""
        if fields:
            parts = []
            for k, v in fields.items():
                if isinstance(v, str):
                    parts.append(f'{k}="{v}"')
                elif isinstance(v, float):
                    parts.append(f"{k}={v:.3f}")
                else:
                    parts.append(f"{k}={v}")
            field_str = " | " + " ".join(parts)

        line = (
            f"{ts} | {level:<{self.LEVEL_WIDTH}} | "
            f"{component:<{self.COMPONENT_WIDTH}} | {message}{field_str}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# SETUP
# =============================================================================


def setup_logging(level: str = "INFO", log_file: str | None = None) -> logging.Logger:
    """Configure the ``sentry_tunnel`` logger tree.

    Safe to call repeatedly; existing handlers are replaced.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False
    logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(TunnelLogFormatter())
    logger.addHandler(stderr_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            str(path),
            maxBytes=MAX_LOG_FILE_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(TunnelLogFormatter())
        logger.addHandler(file_handler)

    return logger
