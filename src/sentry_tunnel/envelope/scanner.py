# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Sentry Tunnel.
#
# Sentry Tunnel is licensed under the GNU Affero General Public License
# v3.0 (AGPL-3.0). See LICENSE for the full text.
"""Envelope scanner -- locate the destination DSN.

Walks the leading lines of the safe text view and decodes each one as an
envelope header. The first line carrying a ``dsn`` string wins; nothing
after it is looked at, so binary item payloads later in the body never
matter for routing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from .dsn import Dsn, InvalidDsn
from .errors import (
    DsnNotAString,
    InvalidDsnValue,
    LineBudgetExceeded,
    MalformedHeaderLine,
    MissingDsnKey,
)
from .text_view import RawEnvelope

logger = logging.getLogger("sentry_tunnel.envelope.scanner")

MAX_HEADER_LINES = 50


class EnvelopeHeader(BaseModel):
    """Partial decode of an envelope line: only ``dsn`` is of interest."""

    model_config = ConfigDict(extra="ignore")

    dsn: Any = None

    @property
    def has_dsn(self) -> bool:
        return "dsn" in self.model_fields_set


@dataclass(frozen=True)
class SentryEnvelope:
    """An inbound envelope whose destination has been resolved."""

    raw: RawEnvelope
    dsn: Dsn

    @property
    def body(self) -> bytes:
        return self.raw.body

    @property
    def client_addr(self) -> str:
        return self.raw.client_addr


def _iter_lines(text: str) -> Iterator[str]:
    """Yield newline-delimited lines, dropping a trailing ``\\r``.

    Only ``\\n`` separates lines; JSON strings may legally contain other
    Unicode line breaks.
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    for line in lines:
        yield line[:-1] if line.endswith("\r") else line


def _decode_header(line: str, line_number: int) -> EnvelopeHeader | None:
    """Decode one line. Returns None for JSON values that are not objects."""
    try:
        return EnvelopeHeader.model_validate_json(line)
    except ValidationError as exc:
        for error in exc.errors():
            if error["type"] == "json_invalid":
                raise MalformedHeaderLine(line_number, error["msg"]) from exc
        return None


def scan_envelope(envelope: RawEnvelope, max_lines: int = MAX_HEADER_LINES) -> SentryEnvelope:
    """Find the DSN in the first ``max_lines`` lines of an envelope.

    Raises:
        MalformedHeaderLine: a line within the budget is not valid JSON.
        DsnNotAString: the ``dsn`` key holds something other than a string.
        InvalidDsnValue: the ``dsn`` string is not a valid DSN.
        LineBudgetExceeded: ``max_lines`` lines scanned, more remain, no key.
        MissingDsnKey: every line was scanned and none had the key.
    """
    for line_number, line in enumerate(_iter_lines(envelope.text), start=1):
        if line_number > max_lines:
            raise LineBudgetExceeded(max_lines)
        if not line.strip():
            continue

        header = _decode_header(line, line_number)
        if header is None or not header.has_dsn:
            continue
        if not isinstance(header.dsn, str):
            raise DsnNotAString()

        try:
            dsn = Dsn.parse(header.dsn)
        except InvalidDsn as exc:
            logger.debug("Rejected dsn on line %d: %s", line_number, exc)
            raise InvalidDsnValue() from exc

        logger.debug("Found dsn on line %d: %s", line_number, dsn)
        return SentryEnvelope(raw=envelope, dsn=dsn)

    raise MissingDsnKey()
