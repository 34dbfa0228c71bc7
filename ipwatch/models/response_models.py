from pydantic import BaseModel

from ipwatch.models.record import AddressRecord


class HealthResponse(BaseModel):
    """Response model for the health check endpoint."""

    status: str


class AddressResponse(BaseModel):
    """Current external address as shown by the status indicator."""

    address: str
    latitude: float
    longitude: float
    region_name: str
    city_name: str
    organization_name: str
    country_code: str
    maps_url: str
    flag_asset: str

    @classmethod
    def from_record(cls, record: AddressRecord) -> "AddressResponse":
        return cls(
            address=record.address,
            latitude=record.latitude,
            longitude=record.longitude,
            region_name=record.region_name,
            city_name=record.city_name,
            organization_name=record.organization_name,
            country_code=record.country_code,
            maps_url=record.maps_url,
            flag_asset=record.flag_asset_key,
        )


class SchedulerStateResponse(BaseModel):
    """Snapshot of the refresh scheduler."""

    enabled: bool
    idle: bool
    epoch: int
    periodic_timer_armed: bool
    debounce_timer_armed: bool
    network_subscribed: bool
    resolution_in_flight: bool


class SignalAcceptedResponse(BaseModel):
    """Acknowledgement that a signal was delivered to the scheduler."""

    accepted: bool
