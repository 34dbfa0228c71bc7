from abc import ABC, abstractmethod

from ipwatch.models.record import AddressRecord


class BaseAddressLookupClient(ABC):
    """Abstract base for external address lookup providers.

    Implementations map the provider-specific response into an AddressRecord
    and raise LookupProviderError subclasses on any failure.
    """

    @abstractmethod
    async def lookup_current(self) -> AddressRecord:
        """Look up this host's current external address."""
        raise NotImplementedError


class BaseAssetClient(ABC):
    """Abstract base for the map and flag image providers."""

    @abstractmethod
    async def fetch_map(self, latitude: float, longitude: float) -> bytes:
        """Download a static map image centred on the given coordinates."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_flag(self, country_code: str) -> bytes:
        """Download the flag image for a country code."""
        raise NotImplementedError
