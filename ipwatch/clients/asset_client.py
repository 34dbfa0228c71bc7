from http import HTTPStatus

import httpx

from ipwatch.clients.base import BaseAssetClient
from ipwatch.errors import AssetFetchError


class StaticImageClient(BaseAssetClient):
    """Downloads the static map and country flag SVGs shown next to the address."""

    MAP_PARAMS = {"f": "SVG", "marker": 12, "w": 250, "h": 150}

    def __init__(
        self,
        map_url: str = "https://staticmap.thisipcan.cyou/",
        flag_url_template: str = "https://flagicons.lipis.dev/flags/4x3/{country_code}.svg",
        timeout_seconds: float = 10.0,
    ) -> None:
        self._map_url = map_url
        self._flag_url_template = flag_url_template
        self._timeout_seconds = timeout_seconds

    async def fetch_map(self, latitude: float, longitude: float) -> bytes:
        """Download a map image with a marker at the given coordinates."""
        params = {"lat": latitude, "lon": longitude, **self.MAP_PARAMS}
        return await self._download(self._map_url, params=params)

    async def fetch_flag(self, country_code: str) -> bytes:
        """Download the flag image for a (case-insensitive) country code."""
        url = self._flag_url_template.format(country_code=country_code.lower())
        return await self._download(url)

    async def _download(self, url: str, params: dict | None = None) -> bytes:
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                response = await client.get(url, params=params)
        except httpx.RequestError as exc:
            raise AssetFetchError(f"Request for image failed url={url}: {repr(exc)}") from exc

        if response.status_code != HTTPStatus.OK:
            raise AssetFetchError(f"Image provider returned HTTP {response.status_code} url={url}")

        if not response.content:
            raise AssetFetchError(f"Image provider returned an empty body url={url}")
        return response.content
