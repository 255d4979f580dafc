# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""Sentry DSN parsing.

A DSN names the real ingestion endpoint of a Sentry project:

    {scheme}://{public_key}[:{secret_key}]@{host}[:{port}]/[{path}/]{project_id}

Parsing is all-or-nothing: either every part is well formed and a
complete ``Dsn`` is returned, or ``InvalidDsn`` is raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

_DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}


class InvalidDsn(ValueError):
    """Raised when a string is not a well-formed Sentry DSN."""


@dataclass(frozen=True)
class Dsn:
    """A parsed Sentry DSN."""

    scheme: str
    public_key: str
    host: str
    project_id: int
    secret_key: str | None = None
    port: int | None = None
    path: str = ""  # Prefix before the project id, no surrounding slashes

    @classmethod
    def parse(cls, value: str) -> Dsn:
        """Parse a DSN string. Raises InvalidDsn on any malformed part."""
        try:
            parts = urlsplit(value.strip())
            port = parts.port
        except ValueError as exc:
            raise InvalidDsn(f"Malformed DSN: {exc}") from exc

        scheme = parts.scheme.lower()
        if scheme not in _DEFAULT_PORTS:
            raise InvalidDsn(f"Unsupported DSN scheme: {parts.scheme!r}")
        if not parts.username:
            raise InvalidDsn("DSN is missing the public key")
        if not parts.hostname:
            raise InvalidDsn("DSN is missing the host")

        segments = parts.path.strip("/").split("/")
        project = segments[-1]
        if not project.isdigit() or not project.isascii() or int(project) == 0:
            raise InvalidDsn(f"Invalid DSN project id: {project!r}")

        return cls(
            scheme=scheme,
            public_key=parts.username,
            secret_key=parts.password or None,
            host=parts.hostname,
            port=port,
            path="/".join(segments[:-1]),
            project_id=int(project),
        )

    @property
    def netloc(self) -> str:
        """Host plus port, with the port omitted when it is the scheme default."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port is None or self.port == _DEFAULT_PORTS[self.scheme]:
            return host
        return f"{host}:{self.port}"

    @property
    def envelope_api_url(self) -> str:
        """The envelope ingestion endpoint of this DSN's project."""
        prefix = f"/{self.path}" if self.path else ""
        return f"{self.scheme}://{self.netloc}{prefix}/api/{self.project_id}/envelope/"

    def __str__(self) -> str:
        prefix = f"{self.path}/" if self.path else ""
        return f"{self.scheme}://{self.public_key}@{self.netloc}/{prefix}{self.project_id}"
