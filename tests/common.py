import asyncio
from http import HTTPStatus
from typing import Any

import httpx

from ipwatch.models.record import AddressRecord


class MockResponse:
    def __init__(
        self,
        status_code: int,
        payload: Any = None,
        text: str = "",
        content: bytes = b"",
    ) -> None:
        self.status_code = status_code
        self._payload = {} if payload is None else payload
        self.text = text
        self.content = content

    def json(self) -> Any:
        return self._payload


class MockAsyncClient:
    """Minimal async context-manager mock for httpx.AsyncClient that records requests."""

    def __init__(self, response: MockResponse, calls: list[dict[str, Any]] | None = None) -> None:
        self._response = response
        self.calls = calls if calls is not None else []

    async def __aenter__(self) -> "MockAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str, **kwargs: Any) -> MockResponse:
        self.calls.append({"url": url, **kwargs})
        return self._response


class FailingAsyncClient:
    """Async client that raises a RequestError on enter to simulate network failure."""

    def __init__(self, url: str, *args: Any, **kwargs: Any) -> None:
        self._url = url

    async def __aenter__(self) -> "FailingAsyncClient":
        request = httpx.Request("GET", self._url)
        raise httpx.RequestError("Network failure", request=request)

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str, **kwargs: Any) -> MockResponse:
        return MockResponse(status_code=HTTPStatus.OK, payload={})


class GatedResolver:
    """Resolver double that hands out records in order, repeating the last one.

    Lookups block while `gate` is cleared, which lets tests hold a lookup in flight.
    """

    def __init__(self, *records: AddressRecord) -> None:
        self._records = list(records) or [AddressRecord(address="203.0.113.1")]
        self.calls = 0
        self.gate = asyncio.Event()
        self.gate.set()

    async def resolve(self) -> AddressRecord:
        self.calls += 1
        await self.gate.wait()
        if len(self._records) > 1:
            return self._records.pop(0)
        return self._records[0]


class RecordingAssetFetcher:
    """AssetFetcher double that only records what it was asked to refresh."""

    def __init__(self) -> None:
        self.refreshed: list[AddressRecord] = []
        self.cancelled = 0

    def refresh(self, record: AddressRecord) -> list:
        self.refreshed.append(record)
        return []

    def cancel(self) -> None:
        self.cancelled += 1


async def drain_loop(iterations: int = 10) -> None:
    """Let pending callbacks and task steps run."""
    for _ in range(iterations):
        await asyncio.sleep(0)
