# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""Sentry Tunnel CLI entry point.

Usage:
    python -m sentry_tunnel.server [--config PATH] [--host HOST] [--port PORT]
                                   [--path PATH] [--audit-log PATH] [--log-level LEVEL]
"""

from __future__ import annotations

import argparse
import logging
import sys

from .config import ConfigError, TunnelConfig, load_config
from .core.logging import setup_logging

logger = logging.getLogger("sentry_tunnel.server")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sentry-tunnel",
        description="Sentry Tunnel -- same-origin relay for Sentry envelopes",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to tunnel YAML config (default: $SENTRY_TUNNEL_CONFIG)",
    )
    parser.add_argument("--host", default=None, help="Listen address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Listen port (default: 7878)")
    parser.add_argument("--path", default=None, help="Tunnel route (default: /tunnel)")
    parser.add_argument(
        "--audit-log",
        default=None,
        help="Path for the JSON Lines audit log (overrides config)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this rotating file",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> TunnelConfig:
    """Load config and apply CLI overrides."""
    config = load_config(args.config)
    return config.replace(
        listen_host=args.host,
        listen_port=args.port,
        tunnel_path=args.path,
        audit_log_path=args.audit_log,
        log_level=args.log_level,
    )


def main(argv: list[str] | None = None) -> None:
    """Entry point for the tunnel server."""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level or "INFO", log_file=args.log_file)
    try:
        config = resolve_config(args)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(2)
    setup_logging(config.log_level, log_file=args.log_file)

    logger.info("=" * 60)
    logger.info("Sentry Tunnel")
    logger.info("=" * 60)
    logger.info("  Listen: %s:%d", config.listen_host, config.listen_port)
    logger.info("  Path: %s", config.tunnel_path)
    logger.info("  Remote hosts: %s", ", ".join(config.remote_hosts) or "<none>")
    logger.info("  Project ids: %s", config.project_ids)
    logger.info("  Trust X-Forwarded-For: %s", config.trust_x_forwarded_for)
    logger.info("  Audit log: %s", config.audit_log_path or "disabled")
    logger.info("=" * 60)

    import uvicorn

    from .api.app import create_app

    uvicorn.run(
        create_app(config),
        host=config.listen_host,
        port=config.listen_port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
