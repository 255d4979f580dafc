# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""Access policy -- may this DSN be forwarded to?

Two independent allow-lists must both pass. The project check runs
first, so a DSN failing both is reported as ProjectNotAllowed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from .dsn import Dsn
from .errors import HostNotAllowed, ProjectNotAllowed
from .scanner import SentryEnvelope

if TYPE_CHECKING:
    from ..config import TunnelConfig

logger = logging.getLogger("sentry_tunnel.envelope.policy")


def dsn_host_is_allowed(dsn: Dsn, hosts: Iterable[str]) -> bool:
    """True if the DSN host equals one configured host exactly."""
    return any(host == dsn.host for host in hosts)


def check_access(envelope: SentryEnvelope, config: TunnelConfig) -> None:
    """Raise a PolicyViolation unless the envelope may be forwarded."""
    dsn = envelope.dsn
    if not config.project_id_is_allowed(dsn.project_id):
        logger.info(
            "Rejected envelope from %s: project %d not allowed",
            envelope.client_addr,
            dsn.project_id,
        )
        raise ProjectNotAllowed()
    if not dsn_host_is_allowed(dsn, config.remote_hosts):
        logger.info(
            "Rejected envelope from %s: host %s not allowed",
            envelope.client_addr,
            dsn.host,
        )
        raise HostNotAllowed()
