import asyncio
import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ipwatch.assets import AssetFetcher
from ipwatch.logger import logger
from ipwatch.models.record import AddressRecord
from ipwatch.notifier import AddressChangedCallback, ChangeNotifier
from ipwatch.record_store import RecordStore
from ipwatch.resolver import Resolver
from ipwatch.signals import PresenceStatus, Signal

RecordUpdatedCallback = Callable[[AddressRecord], None]


@dataclass
class SchedulerState:
    """Mutable bookkeeping owned by a single RefreshScheduler."""

    enabled: bool = False
    idle: bool = False
    epoch: int = 0
    periodic_timer: asyncio.TimerHandle | None = None
    debounce_timer: asyncio.TimerHandle | None = None
    presence_subscription: int | None = None
    network_subscription: int | None = None
    in_flight: asyncio.Task | None = None

    @property
    def resolution_in_flight(self) -> bool:
        return self.in_flight is not None and not self.in_flight.done()


class RefreshScheduler:
    """Decides when the external address is looked up and applies the result.

    Triggers:
    - a self-rescheduling periodic timer (the next tick is armed only after the
      current tick's lookup has completed),
    - network availability changes, debounced so that a burst of notifications
      results in a single lookup,
    - session presence: while idle, network changes are ignored; on resume the
      periodic timer restarts from zero.

    All triggers share one in-flight lookup, and every completion carries the
    epoch it was started in. `stop` bumps the epoch, so a lookup that finishes
    after `stop` is discarded without touching the record or the timers.

    Everything runs on the event loop `start` is called from; no locks are used.
    """

    def __init__(
        self,
        resolver: Resolver,
        presence: Signal,
        network: Signal,
        *,
        asset_fetcher: AssetFetcher | None = None,
        on_record_updated: RecordUpdatedCallback | None = None,
        on_address_changed: AddressChangedCallback | None = None,
        refresh_interval: float = 60.0,
        network_debounce: float = 4.0,
    ) -> None:
        self._resolver = resolver
        self._presence = presence
        self._network = network
        self._asset_fetcher = asset_fetcher
        self._on_record_updated = on_record_updated
        self._refresh_interval = refresh_interval
        self._network_debounce = network_debounce

        self._store = RecordStore()
        self._notifier = ChangeNotifier(on_address_changed)
        self._state = SchedulerState()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._ticks: set[asyncio.Task] = set()
        self._resolutions: set[asyncio.Task] = set()

    @property
    def current(self) -> AddressRecord:
        return self._store.current

    @property
    def previous(self) -> AddressRecord:
        return self._store.previous

    @property
    def state(self) -> SchedulerState:
        """A copy of the scheduler bookkeeping, for inspection only."""
        return dataclasses.replace(self._state)

    @property
    def running(self) -> bool:
        return self._state.enabled

    def start(self) -> asyncio.Task | None:
        """Subscribe to the external signals, look up once and arm the periodic timer.

        Must be called from within the running event loop. Returns the task of the
        initial lookup, or None if the scheduler was already running.
        """
        if self._state.enabled:
            return None

        self._loop = asyncio.get_running_loop()
        self._store.reset()
        self._notifier.reset()
        self._state.enabled = True
        self._state.idle = False
        self._state.presence_subscription = self._presence.connect(self.on_status_changed)
        self._subscribe_network()

        logger.info(
            "Started refresh scheduler "
            f"interval={self._refresh_interval}s debounce={self._network_debounce}s epoch={self._state.epoch}"
        )
        initial = self.refresh(reason="start")
        self._arm_periodic()
        return initial

    def stop(self) -> None:
        """Cancel every timer, drop the subscriptions and invalidate in-flight lookups."""
        if not self._state.enabled:
            return

        self._state.enabled = False
        self._state.idle = False
        self._state.epoch += 1

        self._cancel_periodic()
        self._cancel_debounce()
        self._unsubscribe_network()
        if self._state.presence_subscription is not None:
            self._presence.disconnect(self._state.presence_subscription)
            self._state.presence_subscription = None

        # The lookup itself keeps running; its completion is dropped by the epoch check.
        self._state.in_flight = None
        for tick in list(self._ticks):
            tick.cancel()
        self._ticks.clear()

        if self._asset_fetcher is not None:
            self._asset_fetcher.cancel()

        logger.info(f"Stopped refresh scheduler epoch={self._state.epoch}")

    def refresh(self, reason: str = "manual") -> asyncio.Task | None:
        """Request a lookup, joining the in-flight one if there is any.

        Returns the task resolving to the looked-up record, or None when stopped.
        """
        if not self._state.enabled or self._loop is None:
            logger.debug(f"Ignoring refresh request while stopped reason={reason}")
            return None

        if self._state.resolution_in_flight:
            logger.debug(f"Coalescing refresh request into in-flight lookup reason={reason}")
            return self._state.in_flight

        task = self._loop.create_task(self._resolve(self._state.epoch, reason), name=f"resolve-{reason}")
        self._state.in_flight = task
        self._resolutions.add(task)
        task.add_done_callback(self._resolutions.discard)
        return task

    def on_status_changed(self, status: Any) -> None:
        """Presence service callback."""
        if not self._state.enabled:
            return

        try:
            status = PresenceStatus(status)
        except (TypeError, ValueError):
            logger.warning(f"Unexpected presence status status={status!r}, treating as active")
            status = PresenceStatus.active

        if status is PresenceStatus.idle:
            if self._state.idle:
                return
            self._state.idle = True
            self._unsubscribe_network()
            self._cancel_debounce()
            logger.info("Session idle, ignoring network changes until it is active again")
            return

        resumed = self._state.idle
        self._state.idle = False
        self._subscribe_network()
        if resumed:
            logger.info("Session active again, restarting the periodic refresh timer")
            self._arm_periodic()

    def on_network_changed(self, available: bool) -> None:
        """Network monitor callback."""
        if not self._state.enabled or self._state.idle or not available:
            return

        if self._state.debounce_timer is not None:
            return

        self._state.debounce_timer = self._loop.call_later(
            self._network_debounce, self._on_debounce_timer, self._state.epoch
        )
        logger.debug(f"Network became available, refreshing in {self._network_debounce}s")

    async def _resolve(self, epoch: int, reason: str) -> AddressRecord:
        logger.info(f"Fetching external address reason={reason}")
        record = await self._resolver.resolve()

        if epoch != self._state.epoch:
            logger.info(f"Discarding lookup that completed after stop address={record.address} epoch={epoch}")
            return record

        self._apply(record)
        return record

    def _apply(self, record: AddressRecord) -> None:
        previous = self._store.replace(record)

        if self._on_record_updated is not None:
            try:
                self._on_record_updated(record)
            except Exception:
                logger.exception(f"Record updated callback failed address={record.address}")

        changed = self._notifier.evaluate(previous, record)
        if changed and self._asset_fetcher is not None:
            self._asset_fetcher.refresh(record)

    def _arm_periodic(self) -> None:
        self._cancel_periodic()
        self._state.periodic_timer = self._loop.call_later(
            self._refresh_interval, self._on_periodic_timer, self._state.epoch
        )

    def _cancel_periodic(self) -> None:
        if self._state.periodic_timer is not None:
            self._state.periodic_timer.cancel()
            self._state.periodic_timer = None

    def _cancel_debounce(self) -> None:
        if self._state.debounce_timer is not None:
            self._state.debounce_timer.cancel()
            self._state.debounce_timer = None

    def _on_periodic_timer(self, epoch: int) -> None:
        self._state.periodic_timer = None
        if epoch != self._state.epoch or not self._state.enabled:
            return

        tick = self._loop.create_task(self._periodic_tick(epoch), name="periodic-tick")
        self._ticks.add(tick)
        tick.add_done_callback(self._ticks.discard)

    async def _periodic_tick(self, epoch: int) -> None:
        task = self.refresh(reason="periodic")
        if task is not None:
            # Cancelling the tick must not cancel the shared lookup.
            await asyncio.shield(task)

        if epoch != self._state.epoch or not self._state.enabled or self._state.idle:
            return
        if self._state.periodic_timer is None:
            self._arm_periodic()

    def _on_debounce_timer(self, epoch: int) -> None:
        self._state.debounce_timer = None
        if epoch != self._state.epoch or not self._state.enabled or self._state.idle:
            return
        self.refresh(reason="network-change")

    def _subscribe_network(self) -> None:
        if self._state.network_subscription is None:
            self._state.network_subscription = self._network.connect(self.on_network_changed)

    def _unsubscribe_network(self) -> None:
        if self._state.network_subscription is not None:
            self._network.disconnect(self._state.network_subscription)
            self._state.network_subscription = None
