# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""Tunnel configuration schema.

The configuration is built once at startup and is immutable afterwards.
Every request handler reads the same ``TunnelConfig`` instance; nothing
ever writes to it, so no locking is needed.

Sources, lowest to highest precedence:
  1. Dataclass defaults (deny everything)
  2. YAML file   (--config PATH or $SENTRY_TUNNEL_CONFIG)
  3. Environment (TUNNEL_REMOTE_HOSTS, TUNNEL_PROJECT_IDS, ...)
  4. CLI flags   (applied by sentry_tunnel.server)
"""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

from .envelope.gate import MAX_CONTENT_LENGTH

logger = logging.getLogger("sentry_tunnel.config")

CONFIG_PATH_ENV = "SENTRY_TUNNEL_CONFIG"

DEFAULT_TUNNEL_PATH = "/tunnel"
DEFAULT_LISTEN_HOST = "0.0.0.0"
DEFAULT_LISTEN_PORT = 7878

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


class ConfigError(ValueError):
    """Raised when the tunnel configuration is invalid."""


# ---------------------------------------------------------------------------
# Allow-list value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProjectIdSet:
    """Allowed project ids: explicit ids plus inclusive ranges."""

    ids: frozenset[int] = frozenset()
    ranges: tuple[tuple[int, int], ...] = ()

    @classmethod
    def parse(cls, entries: Iterable[Any]) -> ProjectIdSet:
        """Build from ints, numeric strings or ``"low-high"`` range strings."""
        ids: set[int] = set()
        ranges: list[tuple[int, int]] = []
        for entry in entries:
            if isinstance(entry, bool):
                raise ConfigError(f"Invalid project id: {entry!r}")
            if isinstance(entry, int):
                ids.add(_non_negative(entry))
                continue
            text = str(entry).strip()
            if not text:
                continue
            low, sep, high = text.partition("-")
            if sep:
                lo, hi = _parse_int(low), _parse_int(high)
                if lo > hi:
                    raise ConfigError(f"Invalid project id range: {text!r}")
                ranges.append((lo, hi))
            else:
                ids.add(_parse_int(text))
        return cls(ids=frozenset(ids), ranges=tuple(ranges))

    def __contains__(self, project_id: object) -> bool:
        if not isinstance(project_id, int):
            return False
        if project_id in self.ids:
            return True
        return any(lo <= project_id <= hi for lo, hi in self.ranges)

    def __bool__(self) -> bool:
        return bool(self.ids or self.ranges)

    def to_list(self) -> list[int | str]:
        """Serializable form, as accepted by ``parse``."""
        items: list[int | str] = sorted(self.ids)
        items.extend(f"{lo}-{hi}" for lo, hi in self.ranges)
        return items

    def __str__(self) -> str:
        return ", ".join(str(item) for item in self.to_list()) or "<none>"


def _parse_int(text: str) -> int:
    text = text.strip()
    if not text.isdigit() or not text.isascii():
        raise ConfigError(f"Invalid project id: {text!r}")
    return int(text)


def _non_negative(value: int) -> int:
    if value < 0:
        raise ConfigError(f"Invalid project id: {value!r}")
    return value


def parse_remote_host(entry: str) -> str:
    """Normalize a host entry: bare host names are kept, URLs yield their host."""
    entry = entry.strip()
    if "://" not in entry:
        return entry
    try:
        host = urlsplit(entry).hostname
    except ValueError as exc:
        raise ConfigError(f"Invalid remote host: {entry!r}") from exc
    if not host:
        raise ConfigError(f"Invalid remote host: {entry!r}")
    return host


# ---------------------------------------------------------------------------
# Tunnel configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TunnelConfig:
    """Full tunnel configuration.

    The defaults deny every envelope: no hosts, no project ids.
    """

    # Sentry hosts envelopes may be forwarded to (exact, case-sensitive)
    remote_hosts: tuple[str, ...] = ()

    # Sentry projects envelopes may be forwarded for
    project_ids: ProjectIdSet = field(default_factory=ProjectIdSet)

    # Route the tunnel listens on
    tunnel_path: str = DEFAULT_TUNNEL_PATH

    # Listen address and port
    listen_host: str = DEFAULT_LISTEN_HOST
    listen_port: int = DEFAULT_LISTEN_PORT

    # Take the client address from X-Forwarded-For (only behind a trusted proxy)
    trust_x_forwarded_for: bool = False

    # Largest accepted Content-Length; may be lowered, never raised
    max_content_length: int = MAX_CONTENT_LENGTH

    # JSON Lines audit trail of forward decisions; None disables it
    audit_log_path: str | None = None

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.tunnel_path.startswith("/"):
            raise ConfigError(f"Tunnel path must start with '/': {self.tunnel_path!r}")
        if self.tunnel_path == "/healthz":
            raise ConfigError("Tunnel path cannot be /healthz")
        if not 0 < self.listen_port < 65536:
            raise ConfigError(f"Invalid listen port: {self.listen_port}")
        if not 0 < self.max_content_length <= MAX_CONTENT_LENGTH:
            raise ConfigError(
                f"max_content_length must be between 1 and {MAX_CONTENT_LENGTH}, "
                f"got {self.max_content_length}"
            )
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ConfigError(f"Invalid log level: {self.log_level!r}")

    def project_id_is_allowed(self, project_id: int) -> bool:
        """Check if a Sentry project id is on the allow-list."""
        return project_id in self.project_ids

    def replace(self, **changes: Any) -> TunnelConfig:
        """Return a copy with ``changes`` applied (None values are ignored)."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return dataclasses.replace(self, **changes)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> TunnelConfig:
    """Load the tunnel configuration from YAML and the environment.

    If no file is given and $SENTRY_TUNNEL_CONFIG is unset, only the
    environment is consulted. A missing file falls back to defaults.
    """
    env = os.environ if environ is None else environ
    config_path = path or env.get(CONFIG_PATH_ENV)

    config = TunnelConfig()
    if config_path:
        config = _load_file(Path(config_path))

    config = apply_env(config, env)

    if not config.remote_hosts:
        logger.warning("No remote hosts configured -- every envelope will be rejected")
    if not config.project_ids:
        logger.warning("No project ids configured -- every envelope will be rejected")
    return config


def _load_file(config_path: Path) -> TunnelConfig:
    if not config_path.exists():
        logger.info("No tunnel config at %s -- using defaults", config_path)
        return TunnelConfig()

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to read tunnel config {config_path}: {exc}") from exc

    if raw is None:
        return TunnelConfig()
    if not isinstance(raw, dict):
        raise ConfigError(f"Invalid tunnel config {config_path}: expected a mapping")
    logger.info("Loaded tunnel config from %s", config_path)
    return _parse_config(raw)


def _parse_config(raw: dict) -> TunnelConfig:
    """Parse raw YAML dict into TunnelConfig."""
    tunnel_section = raw.get("tunnel") or {}
    if not isinstance(tunnel_section, dict):
        raise ConfigError("'tunnel' section must be a mapping")

    hosts_raw = raw.get("remote_hosts") or []
    if isinstance(hosts_raw, str):
        hosts_raw = hosts_raw.split(",")
    remote_hosts = tuple(h for h in (parse_remote_host(str(e)) for e in hosts_raw) if h)

    projects_raw = raw.get("project_ids") or []
    if isinstance(projects_raw, (str, int)):
        projects_raw = str(projects_raw).split(",")

    try:
        return TunnelConfig(
            remote_hosts=remote_hosts,
            project_ids=ProjectIdSet.parse(projects_raw),
            tunnel_path=str(tunnel_section.get("path", DEFAULT_TUNNEL_PATH)),
            listen_host=str(tunnel_section.get("host", DEFAULT_LISTEN_HOST)),
            listen_port=int(tunnel_section.get("port", DEFAULT_LISTEN_PORT)),
            trust_x_forwarded_for=_parse_bool(
                tunnel_section.get("trust_x_forwarded_for", False)
            ),
            max_content_length=int(
                tunnel_section.get("max_content_length", MAX_CONTENT_LENGTH)
            ),
            audit_log_path=raw.get("audit_log_path") or None,
            log_level=str(raw.get("log_level", "INFO")).upper(),
        )
    except ConfigError:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid tunnel config: {exc}") from exc


def apply_env(config: TunnelConfig, environ: Mapping[str, str]) -> TunnelConfig:
    """Overlay TUNNEL_* environment variables onto ``config``."""
    changes: dict[str, Any] = {}

    if "TUNNEL_REMOTE_HOSTS" in environ:
        hosts = (parse_remote_host(e) for e in environ["TUNNEL_REMOTE_HOSTS"].split(","))
        changes["remote_hosts"] = tuple(h for h in hosts if h)
    if "TUNNEL_PROJECT_IDS" in environ:
        changes["project_ids"] = ProjectIdSet.parse(environ["TUNNEL_PROJECT_IDS"].split(","))
    if "TUNNEL_PATH" in environ:
        changes["tunnel_path"] = environ["TUNNEL_PATH"]
    if "TUNNEL_IP" in environ:
        changes["listen_host"] = environ["TUNNEL_IP"]
    if "TUNNEL_LISTEN_PORT" in environ:
        changes["listen_port"] = _parse_port(environ["TUNNEL_LISTEN_PORT"])
    if "TUNNEL_TRUST_X_FORWARDED_FOR" in environ:
        changes["trust_x_forwarded_for"] = _parse_bool(environ["TUNNEL_TRUST_X_FORWARDED_FOR"])
    if "TUNNEL_AUDIT_LOG" in environ:
        changes["audit_log_path"] = environ["TUNNEL_AUDIT_LOG"] or None
    if "TUNNEL_LOG_LEVEL" in environ:
        changes["log_level"] = environ["TUNNEL_LOG_LEVEL"].upper()

    if not changes:
        return config
    return dataclasses.replace(config, **changes)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean value: {value!r}")


def _parse_port(value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"Invalid listen port: {value!r}") from exc
