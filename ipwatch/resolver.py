from pydantic import ValidationError

from ipwatch.clients.base import BaseAddressLookupClient
from ipwatch.errors import LookupProviderError
from ipwatch.logger import logger
from ipwatch.models.record import AddressRecord


class Resolver:
    """Runs one external address lookup and classifies the outcome.

    `resolve` never raises: every provider failure is turned into the failure
    sentinel record so there is always something well-formed to display.
    """

    def __init__(self, client: BaseAddressLookupClient) -> None:
        self._client = client

    async def resolve(self) -> AddressRecord:
        logger.debug("Resolving external address")
        try:
            record = await self._client.lookup_current()
        except LookupProviderError as exc:
            logger.warning(f"External address lookup failed error={exc}")
            return AddressRecord.failure()
        except ValidationError as exc:
            logger.warning(f"External address lookup returned unusable data errors={exc.errors()}")
            return AddressRecord.failure()
        except Exception as exc:
            logger.exception(f"Unexpected error during external address lookup: {repr(exc)}")
            return AddressRecord.failure()

        logger.debug(f"Resolved external address address={record.address} country={record.country_code}")
        return record
