from collections.abc import Callable

from ipwatch.logger import logger
from ipwatch.models.record import AddressRecord

NOTIFICATION_TITLE = "External IP Address"

NotifyCallback = Callable[[str, str], None]


def log_notification(title: str, message: str) -> None:
    """Default notification sink: write the banner text to the application log."""
    logger.info(f"{title}: {message}")


class StatusIndicator:
    """Presentation adapter subscribed to the scheduler's callbacks.

    Keeps what a status-area indicator would render (address label and flag
    icon) and raises a notification whenever the address changes.
    """

    def __init__(self, notify: NotifyCallback = log_notification) -> None:
        self._notify = notify
        self.label = AddressRecord.unknown().address
        self.flag_asset = AddressRecord.unknown().flag_asset_key
        self.renders = 0

    def on_record_updated(self, record: AddressRecord) -> None:
        self.label = record.address
        self.flag_asset = record.flag_asset_key
        self.renders += 1

    def on_address_changed(self, record: AddressRecord) -> None:
        self._notify(NOTIFICATION_TITLE, f"Has been changed to {record.address}")

    def on_asset_written(self, key: str) -> None:
        # A freshly downloaded flag or map only needs a redraw, not a new notification.
        logger.debug(f"Redrawing indicator after asset update key={key}")
        self.renders += 1
