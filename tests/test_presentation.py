from ipwatch.models.record import AddressRecord
from ipwatch.presentation import NOTIFICATION_TITLE, StatusIndicator
from ipwatch.signals import Signal


def test_indicator_tracks_label_and_flag() -> None:
    indicator = StatusIndicator(notify=lambda title, message: None)

    indicator.on_record_updated(AddressRecord(address="9.9.9.9", country_code="SE"))

    assert indicator.label == "9.9.9.9"
    assert indicator.flag_asset == "flags/se.svg"
    assert indicator.renders == 1


def test_indicator_announces_address_change() -> None:
    sent: list[tuple[str, str]] = []
    indicator = StatusIndicator(notify=lambda title, message: sent.append((title, message)))

    indicator.on_address_changed(AddressRecord(address="5.6.7.8"))

    assert sent == [(NOTIFICATION_TITLE, "Has been changed to 5.6.7.8")]


def test_asset_update_redraws_without_notifying() -> None:
    sent: list[tuple[str, str]] = []
    indicator = StatusIndicator(notify=lambda title, message: sent.append((title, message)))

    indicator.on_asset_written("flags/se.svg")

    assert indicator.renders == 1
    assert sent == []


def test_signal_delivery_survives_failing_receiver() -> None:
    signal = Signal("network")
    received: list[bool] = []

    def _broken(available: bool) -> None:
        raise RuntimeError("receiver bug")

    signal.connect(_broken)
    handle = signal.connect(received.append)
    signal.emit(True)
    signal.disconnect(handle)
    signal.emit(False)

    assert received == [True]
    assert signal.receiver_count == 1
