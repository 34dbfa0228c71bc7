import math
from http import HTTPStatus
from typing import Any

import httpx

from ipwatch.clients.base import BaseAddressLookupClient
from ipwatch.errors import MalformedResponseError, UpstreamServiceError
from ipwatch.models.record import AddressRecord


class IpInfoIo(BaseAddressLookupClient):
    """Client for the https://ipinfo.io/json self-lookup endpoint.

    Only the fields shown by the status indicator are mapped: ip, loc, region,
    country, city and org.
    """

    def __init__(self, url: str = "https://ipinfo.io/json", timeout_seconds: float = 10.0) -> None:
        self._url = url
        self._timeout_seconds = timeout_seconds

    async def lookup_current(self) -> AddressRecord:
        """Look up the external address of the host making the request."""
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                response = await client.get(self._url, headers={"Accept": "application/json"})
        except httpx.RequestError as exc:
            raise UpstreamServiceError(f"Request to lookup provider failed: {repr(exc)}") from exc

        self._handle_http_errors(response)

        data = self._parse_json(response)
        self._handle_provider_error(data)

        return self._normalize_payload(data)

    def _handle_http_errors(self, response: httpx.Response) -> None:
        """Anything outside 2xx is an upstream failure."""
        status_code = response.status_code

        if status_code == HTTPStatus.TOO_MANY_REQUESTS:
            raise UpstreamServiceError("Lookup provider rate limit or quota exceeded (HTTP 429).")

        if status_code == HTTPStatus.FORBIDDEN:
            raise UpstreamServiceError("Lookup provider refused the request (HTTP 403).")

        if not HTTPStatus.OK <= status_code < HTTPStatus.MULTIPLE_CHOICES:
            raise UpstreamServiceError(f"Lookup provider returned HTTP {status_code}: {response.text}")

    @staticmethod
    def _handle_provider_error(data: dict[str, Any]) -> None:
        """ipinfo.io reports errors as {"error": {"title": ..., "message": ...}}."""
        error = data.get("error")
        if not error:
            return

        if isinstance(error, dict):
            reason = str(error.get("message") or error.get("title") or "Unknown error from ipinfo.io")
        else:
            reason = str(error)
        raise UpstreamServiceError(reason)

    @staticmethod
    def _parse_json(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponseError(f"Failed to decode lookup response as JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise MalformedResponseError(f"Expected a JSON object from lookup provider, got {type(data).__name__}")
        return data

    @staticmethod
    def _split_location(loc: Any) -> tuple[float, float]:
        """Split a "lat,lon" string, falling back to 0,0 unless both halves are finite numbers."""
        if not isinstance(loc, str):
            return 0.0, 0.0

        parts = loc.split(",")
        if len(parts) != 2:
            return 0.0, 0.0

        try:
            latitude, longitude = float(parts[0]), float(parts[1])
        except ValueError:
            return 0.0, 0.0

        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            return 0.0, 0.0
        return latitude, longitude

    @classmethod
    def _normalize_payload(cls, data: dict[str, Any]) -> AddressRecord:
        """Map ipinfo.io's response into an AddressRecord.

        Missing fields are left to the record's sentinel defaults.
        """
        latitude, longitude = cls._split_location(data.get("loc"))

        return AddressRecord(
            address=data.get("ip"),
            latitude=latitude,
            longitude=longitude,
            region_name=data.get("region"),
            country_code=data.get("country"),
            city_name=data.get("city"),
            # ipinfo.io exposes the AS number and organisation name via "org".
            organization_name=data.get("org"),
        )
