from collections.abc import Callable

from ipwatch.logger import logger
from ipwatch.models.record import AddressRecord

AddressChangedCallback = Callable[[AddressRecord], None]


class ChangeNotifier:
    """Decides whether a new record is a change worth surfacing.

    Only the address is compared. A record whose address is unchanged but
    whose city, coordinates or organisation differ is not a change.
    """

    def __init__(self, on_address_changed: AddressChangedCallback | None = None) -> None:
        self._on_address_changed = on_address_changed
        self._last_notified = AddressRecord.unknown()

    @property
    def last_notified(self) -> AddressRecord:
        return self._last_notified

    def reset(self) -> None:
        self._last_notified = AddressRecord.unknown()

    def evaluate(self, previous: AddressRecord, new: AddressRecord) -> bool:
        """Emit a change event iff the address differs. Returns whether it fired."""
        if new.address == previous.address:
            return False

        logger.info(f"External address changed old={previous.address} new={new.address}")
        self._last_notified = new
        if self._on_address_changed is not None:
            try:
                self._on_address_changed(new)
            except Exception:
                logger.exception(f"Address change callback failed address={new.address}")
        return True
