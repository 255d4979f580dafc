# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
"""Tests for the envelope forwarder."""

import logging

import httpx
import pytest

from sentry_tunnel.envelope.errors import ForwardFailed
from sentry_tunnel.envelope.forwarder import ENVELOPE_CONTENT_TYPE, Forwarder
from sentry_tunnel.envelope.scanner import scan_envelope
from sentry_tunnel.envelope.text_view import RawEnvelope

HEADER = b'{"dsn":"https://KEY@host.example/42"}'


def _envelope(body: bytes, client_addr: str = "203.0.113.9"):
    return scan_envelope(RawEnvelope.from_body(body, client_addr))


class _Recorder:
    """MockTransport handler that records every outbound request."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code)


class TestForwarder:
    """Tests for Forwarder.forward."""

    @pytest.mark.asyncio
    async def test_request_shape(self):
        recorder = _Recorder()
        async with httpx.AsyncClient(transport=httpx.MockTransport(recorder)) as client:
            status = await Forwarder(client).forward(_envelope(HEADER + b"\n{}\n{}"))

        assert status == 200
        assert len(recorder.requests) == 1
        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://host.example/api/42/envelope/?sentry_key=KEY"
        assert request.headers["Content-Type"] == ENVELOPE_CONTENT_TYPE
        assert request.headers["X-Forwarded-For"] == "203.0.113.9"

    @pytest.mark.asyncio
    async def test_body_is_original_bytes(self):
        body = HEADER + b'\n{"type":"attachment"}\n\x1f\x8b\x08\x00\xff\xfe\x00'
        recorder = _Recorder()
        async with httpx.AsyncClient(transport=httpx.MockTransport(recorder)) as client:
            await Forwarder(client).forward(_envelope(body))

        assert recorder.requests[0].content == body

    @pytest.mark.asyncio
    async def test_upstream_error_status_is_not_a_failure(self):
        recorder = _Recorder(status_code=429)
        async with httpx.AsyncClient(transport=httpx.MockTransport(recorder)) as client:
            status = await Forwarder(client).forward(_envelope(HEADER))
        assert status == 429

    @pytest.mark.asyncio
    async def test_transport_failure_raises_forward_failed(self, caplog):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with caplog.at_level(logging.ERROR, logger="sentry_tunnel.envelope.forwarder"):
                with pytest.raises(ForwardFailed) as exc_info:
                    await Forwarder(client).forward(_envelope(HEADER))

        assert len(calls) == 1  # never retried
        assert exc_info.value.host == "host.example"
        assert exc_info.value.status_code == 500
        assert "connection refused" in str(exc_info.value)
        assert isinstance(exc_info.value.cause, httpx.ConnectError)
        assert "host.example" in caplog.text

    @pytest.mark.asyncio
    async def test_timeout_raises_forward_failed(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(ForwardFailed):
                await Forwarder(client).forward(_envelope(HEADER))


class TestForwarderDebugLog:
    """Tests for the pre-send debug record."""

    @pytest.mark.asyncio
    async def test_safe_body_logged_verbatim(self, caplog):
        body = HEADER + b"\n{}\n{}"
        async with httpx.AsyncClient(transport=httpx.MockTransport(_Recorder())) as client:
            with caplog.at_level(logging.DEBUG, logger="sentry_tunnel.envelope.forwarder"):
                await Forwarder(client).forward(_envelope(body))

        assert "Sending HTTP POST https://host.example/api/42/envelope/?sentry_key=KEY" in caplog.text
        assert body.decode() in caplog.text

    @pytest.mark.asyncio
    async def test_binary_body_logged_as_byte_count(self, caplog):
        body = HEADER + b"\n\xff\xfe\x00"
        async with httpx.AsyncClient(transport=httpx.MockTransport(_Recorder())) as client:
            with caplog.at_level(logging.DEBUG, logger="sentry_tunnel.envelope.forwarder"):
                await Forwarder(client).forward(_envelope(body))

        assert f"body=<{len(body)} bytes>" in caplog.text
