"""
Tests for the QRNG client: body parsing and HTTP failure mapping.
Transport tests run against a local aiohttp application.
"""

import asyncio
import json

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from qrng.client import QrngClient
from qrng.models import TransportError


class TestParseSample:

    def setup_method(self):
        self.client = QrngClient(url="http://unused")

    def test_qrng_list_payload(self):
        body = json.dumps({"type": "uint16", "length": 1, "data": [51234], "success": True})
        assert self.client.parse_sample(body) == 51234.0

    def test_scalar_payload(self):
        assert self.client.parse_sample('{"data": 12.5}') == 12.5

    def test_numeric_string(self):
        assert self.client.parse_sample('{"data": "17"}') == 17.0

    def test_custom_field(self):
        client = QrngClient(url="http://unused", value_field="value")
        assert client.parse_sample('{"value": 3}') == 3.0

    @pytest.mark.parametrize("body", [
        "not json",
        "[1, 2]",
        '{"other": 1}',
        '{"data": []}',
        '{"data": [1, 2]}',
        '{"data": "abc"}',
        '{"data": true}',
        '{"data": null}',
        '{"data": "nan"}',
        '{"data": [5], "success": false}',
        '{"data": [' + "9" * 400 + ']}',
    ])
    def test_bad_bodies(self, body):
        with pytest.raises(TransportError):
            self.client.parse_sample(body)


def _make_app():
    async def ok(request):
        return web.json_response({"type": "uint16", "length": 1, "data": [777], "success": True})

    async def server_error(request):
        return web.Response(status=503, text="busy")

    async def garbage(request):
        return web.Response(text="<html>nope</html>")

    async def bad_utf8(request):
        return web.Response(
            body=b'{"data": [1], "x": "\xff\xfe"}',
            content_type="application/json",
            charset="utf-8",
        )

    async def slow(request):
        await asyncio.sleep(1)
        return web.json_response({"data": [1]})

    app = web.Application()
    app.router.add_get("/ok", ok)
    app.router.add_get("/error", server_error)
    app.router.add_get("/garbage", garbage)
    app.router.add_get("/badutf8", bad_utf8)
    app.router.add_get("/slow", slow)
    return app


class TestFetchSample:

    @pytest.mark.asyncio
    async def test_fetches_value(self):
        async with TestServer(_make_app()) as server:
            client = QrngClient(url=str(server.make_url("/ok")))
            try:
                assert await client.fetch_sample() == 777.0
            finally:
                await client.close()

    @pytest.mark.asyncio
    async def test_concurrent_calls(self):
        async with TestServer(_make_app()) as server:
            client = QrngClient(url=str(server.make_url("/ok")))
            try:
                samples = await asyncio.gather(*(client.fetch_sample() for _ in range(5)))
            finally:
                await client.close()

        assert samples == [777.0] * 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/error", "/garbage", "/badutf8"])
    async def test_bad_responses_raise(self, path):
        async with TestServer(_make_app()) as server:
            client = QrngClient(url=str(server.make_url(path)))
            try:
                with pytest.raises(TransportError):
                    await client.fetch_sample()
            finally:
                await client.close()

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        async with TestServer(_make_app()) as server:
            client = QrngClient(url=str(server.make_url("/slow")), timeout_sec=0.1)
            try:
                with pytest.raises(TransportError, match="Timed out"):
                    await client.fetch_sample()
            finally:
                await client.close()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        client = QrngClient(url="http://unused")
        await client.close()
        await client._get_session()
        await client.close()
        await client.close()
