from ipwatch.models.record import AddressRecord


class RecordStore:
    """Holds the current AddressRecord and the one it replaced.

    Records are immutable, so `replace` swaps whole values and readers never
    observe a half-updated record.
    """

    def __init__(self) -> None:
        self._current = AddressRecord.unknown()
        self._previous = AddressRecord.unknown()

    @property
    def current(self) -> AddressRecord:
        return self._current

    @property
    def previous(self) -> AddressRecord:
        return self._previous

    def replace(self, record: AddressRecord) -> AddressRecord:
        """Make `record` current and return the record it superseded."""
        superseded = self._current
        self._previous = superseded
        self._current = record
        return superseded

    def reset(self) -> None:
        self._current = AddressRecord.unknown()
        self._previous = AddressRecord.unknown()
