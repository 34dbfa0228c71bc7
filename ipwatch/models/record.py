import math
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

UNKNOWN = "unknown"
NO_CONNECTIVITY = "no-connectivity"

MAP_ASSET_KEY = "img/map.svg"
GOOGLE_MAPS_URL = "https://maps.google.com/maps?q={latitude},{longitude}"


class AddressRecord(BaseModel):
    """Snapshot of the host's external address and its geolocation metadata.

    Records are immutable and always fully populated: any field the provider
    did not supply carries the "unknown" sentinel, and coordinates fall back
    to 0,0. A new lookup replaces the record wholesale.
    """

    model_config = ConfigDict(frozen=True)

    address: str = UNKNOWN
    latitude: float = 0.0
    longitude: float = 0.0
    region_name: str = UNKNOWN
    city_name: str = UNKNOWN
    organization_name: str = UNKNOWN
    country_code: str = UNKNOWN

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_coordinate(cls, value: Any) -> float:
        """Accept strings or numbers, anything unparsable or non-finite becomes 0."""
        if value is None:
            return 0.0
        try:
            coordinate = float(value)
        except (TypeError, ValueError):
            return 0.0
        if not math.isfinite(coordinate):
            return 0.0
        return round(coordinate, 6)

    @field_validator("address", "region_name", "city_name", "organization_name", "country_code", mode="before")
    @classmethod
    def _fill_sentinel(cls, value: Any) -> str:
        if value is None:
            return UNKNOWN
        text = str(value).strip()
        return text or UNKNOWN

    @classmethod
    def unknown(cls) -> "AddressRecord":
        """Record shown before the first successful lookup."""
        return cls()

    @classmethod
    def failure(cls) -> "AddressRecord":
        """Record written when a lookup fails for any reason."""
        return cls(address=NO_CONNECTIVITY, organization_name=NO_CONNECTIVITY)

    @property
    def is_failure(self) -> bool:
        return self.address == NO_CONNECTIVITY

    @property
    def flag_asset_key(self) -> str:
        # flags/unknown.svg is the bundled fallback icon
        return f"flags/{self.country_code.lower()}.svg"

    @property
    def maps_url(self) -> str:
        return GOOGLE_MAPS_URL.format(latitude=self.latitude, longitude=self.longitude)
