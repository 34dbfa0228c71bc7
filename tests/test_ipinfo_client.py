from collections.abc import Callable
from http import HTTPStatus
from typing import Any

import httpx
import pytest

from ipwatch.clients.ipinfo_client import IpInfoIo
from ipwatch.errors import MalformedResponseError, UpstreamServiceError
from ipwatch.models.record import UNKNOWN, AddressRecord
from tests.common import FailingAsyncClient, MockAsyncClient, MockResponse


def make_fake_async_client(response: MockResponse, calls: list | None = None) -> Callable[..., MockAsyncClient]:
    """Factory for a fake httpx.AsyncClient returning a fixed response."""

    def _fake_client(*args: Any, **kwargs: Any) -> MockAsyncClient:
        return MockAsyncClient(response, calls)

    return _fake_client


@pytest.mark.asyncio
async def test_lookup_current_success(monkeypatch: pytest.MonkeyPatch) -> None:
    """Happy path: every ipinfo.io field is mapped and loc is split into floats."""
    payload = {
        "ip": "9.9.9.9",
        "loc": "10.0,20.0",
        "region": "X",
        "country": "US",
        "city": "Y",
        "org": "Z",
    }
    calls: list[dict[str, Any]] = []
    response = MockResponse(status_code=HTTPStatus.OK, payload=payload)

    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(response, calls))

    client = IpInfoIo()
    result = await client.lookup_current()

    assert isinstance(result, AddressRecord)
    assert result.address == "9.9.9.9"
    assert result.latitude == pytest.approx(10.0)
    assert result.longitude == pytest.approx(20.0)
    assert result.region_name == "X"
    assert result.country_code == "US"
    assert result.city_name == "Y"
    assert result.organization_name == "Z"
    assert calls[0]["url"] == "https://ipinfo.io/json"


@pytest.mark.asyncio
async def test_lookup_current_missing_loc_defaults_to_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    """Without loc the coordinates fall back to 0,0 and other fields to 'unknown'."""
    response = MockResponse(status_code=HTTPStatus.OK, payload={"ip": "9.9.9.9"})

    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(response))

    result = await IpInfoIo().lookup_current()

    assert result.address == "9.9.9.9"
    assert result.latitude == 0
    assert result.longitude == 0
    assert result.country_code == UNKNOWN
    assert result.region_name == UNKNOWN
    assert result.city_name == UNKNOWN
    assert result.organization_name == UNKNOWN


@pytest.mark.asyncio
@pytest.mark.parametrize("loc", ["10.0", "10.0,20.0,30.0", "north,south", "nan,inf", "10.0,-inf", 42, ""])
async def test_lookup_current_unusable_loc_defaults_to_zero(monkeypatch: pytest.MonkeyPatch, loc: Any) -> None:
    """loc must split into exactly two finite numeric halves, otherwise both coordinates are 0."""
    response = MockResponse(status_code=HTTPStatus.OK, payload={"ip": "9.9.9.9", "loc": loc})

    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(response))

    result = await IpInfoIo().lookup_current()

    assert (result.latitude, result.longitude) == (0, 0)


@pytest.mark.asyncio
async def test_lookup_current_uses_configured_url(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict[str, Any]] = []
    response = MockResponse(status_code=HTTPStatus.OK, payload={"ip": "198.51.100.7"})

    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(response, calls))

    await IpInfoIo(url="http://lookup.internal/json").lookup_current()

    assert calls[0]["url"] == "http://lookup.internal/json"


@pytest.mark.asyncio
async def test_lookup_current_provider_error_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    """ipinfo.io error bodies are mapped to UpstreamServiceError."""
    payload = {"status": 404, "error": {"title": "Wrong ip", "message": "Please provide a valid IP address"}}
    response = MockResponse(status_code=HTTPStatus.OK, payload=payload)

    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(response))

    with pytest.raises(UpstreamServiceError, match="valid IP address"):
        await IpInfoIo().lookup_current()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code",
    [
        HTTPStatus.BAD_REQUEST,
        HTTPStatus.FORBIDDEN,
        HTTPStatus.NOT_FOUND,
        HTTPStatus.TOO_MANY_REQUESTS,
        HTTPStatus.INTERNAL_SERVER_ERROR,
        HTTPStatus.BAD_GATEWAY,
    ],
)
async def test_lookup_current_non_2xx_raises_upstream_service_error(
    monkeypatch: pytest.MonkeyPatch,
    status_code: HTTPStatus,
) -> None:
    """Any non-2xx status is an upstream failure."""
    response = MockResponse(status_code=status_code, payload={"ip": "9.9.9.9"}, text="Some error")

    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(response))

    with pytest.raises(UpstreamServiceError):
        await IpInfoIo().lookup_current()


@pytest.mark.asyncio
async def test_lookup_current_network_failure_raises_upstream_service_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Network failures from httpx.AsyncClient are mapped to UpstreamServiceError."""

    monkeypatch.setattr(
        httpx,
        "AsyncClient",
        lambda *args, **kwargs: FailingAsyncClient("https://ipinfo.io/json", *args, **kwargs),
    )

    with pytest.raises(UpstreamServiceError):
        await IpInfoIo().lookup_current()


@pytest.mark.asyncio
async def test_lookup_current_invalid_json_raises_malformed_response_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Non-JSON responses are reported as malformed."""

    class BadJsonResponse(MockResponse):
        def json(self) -> Any:
            raise ValueError("not json")

    response = BadJsonResponse(status_code=HTTPStatus.OK)

    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(response))

    with pytest.raises(MalformedResponseError):
        await IpInfoIo().lookup_current()


@pytest.mark.asyncio
async def test_lookup_current_non_object_json_raises_malformed_response_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    response = MockResponse(status_code=HTTPStatus.OK, payload=["9.9.9.9"])

    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(response))

    with pytest.raises(MalformedResponseError):
        await IpInfoIo().lookup_current()
