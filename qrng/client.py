"""
QRNG REST Client.
Fetches one numeric sample per call from a JSON endpoint
(default: ANU quantum random numbers, uint16).
"""

from __future__ import annotations
import asyncio
import json
import math
from typing import Any, Optional
import aiohttp
import logging

from qrng.models import TransportError

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://qrng.anu.edu.au/API/jsonI.php?length=1&type=uint16"


class QrngClient:
    """Async sample source. One GET = one sample, no retries."""

    def __init__(
        self,
        url: str = DEFAULT_URL,
        value_field: str = "data",
        timeout_sec: float = 10.0,
    ):
        self.url = url
        self.value_field = value_field
        self.timeout = aiohttp.ClientTimeout(total=timeout_sec)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def fetch_sample(self) -> float:
        """
        Perform a single round trip and return the numeric field as float.
        Raises TransportError on any network, status or parse failure.
        """
        session = await self._get_session()
        try:
            async with session.get(self.url) as resp:
                body = await resp.text()
                if not 200 <= resp.status < 300:
                    raise TransportError(f"HTTP {resp.status}: {body[:200]}")
        except asyncio.TimeoutError as e:
            raise TransportError(f"Timed out after {self.timeout.total}s") from e
        except UnicodeDecodeError as e:
            raise TransportError(f"Undecodable body: {e}") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Request failed: {e}") from e

        return self.parse_sample(body)

    def parse_sample(self, body: str) -> float:
        """Extract the configured numeric field from a JSON body."""
        try:
            data = json.loads(body)
        except ValueError as e:
            raise TransportError(f"Unparsable body: {body[:200]!r}") from e

        if not isinstance(data, dict):
            raise TransportError(f"Expected JSON object, got {type(data).__name__}")
        if data.get("success") is False:
            raise TransportError(f"Source reported failure: {body[:200]}")
        if self.value_field not in data:
            raise TransportError(f"Missing field '{self.value_field}'")

        return _to_number(data[self.value_field])


def _to_number(raw: Any) -> float:
    # The QRNG API wraps values in a list even for length=1
    if isinstance(raw, list):
        if len(raw) != 1:
            raise TransportError(f"Expected a single value, got {len(raw)}")
        raw = raw[0]

    if isinstance(raw, bool):
        raise TransportError(f"Non-numeric value: {raw!r}")
    if isinstance(raw, (int, float, str)):
        try:
            value = float(raw)
        except (ValueError, OverflowError) as e:
            raise TransportError(f"Non-numeric value: {str(raw)[:40]!r}") from e
        if math.isfinite(value):
            return value
    raise TransportError(f"Non-numeric value: {raw!r}")
