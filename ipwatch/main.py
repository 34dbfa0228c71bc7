import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError

from ipwatch.assets import AssetFetcher, FileAssetStore
from ipwatch.clients.asset_client import StaticImageClient
from ipwatch.clients.ipinfo_client import IpInfoIo
from ipwatch.config import Settings, get_settings
from ipwatch.exception_handlers import (
    request_validation_exception_handler,
    unhandled_exception_handler,
)
from ipwatch.logger import logger
from ipwatch.models.request_models import NetworkSignalRequest, PresenceSignalRequest
from ipwatch.models.response_models import (
    AddressResponse,
    HealthResponse,
    SchedulerStateResponse,
    SignalAcceptedResponse,
)
from ipwatch.presentation import StatusIndicator
from ipwatch.resolver import Resolver
from ipwatch.scheduler import RefreshScheduler
from ipwatch.signals import Signal


@dataclass
class Runtime:
    """Everything the HTTP surface needs to reach the running engine."""

    scheduler: RefreshScheduler
    presence: Signal
    network: Signal
    indicator: StatusIndicator


def build_runtime(settings: Settings) -> Runtime:
    """Wire clients, signals, the indicator and the scheduler from settings."""
    presence = Signal("presence")
    network = Signal("network")
    indicator = StatusIndicator()

    resolver = Resolver(IpInfoIo(url=settings.lookup_url, timeout_seconds=settings.request_timeout_seconds))
    asset_store = FileAssetStore(settings.asset_dir)
    asset_fetcher = AssetFetcher(
        StaticImageClient(
            map_url=settings.map_url,
            flag_url_template=settings.flag_url_template,
            timeout_seconds=settings.request_timeout_seconds,
        ),
        asset_store.write_asset,
        on_asset_written=indicator.on_asset_written,
    )

    scheduler = RefreshScheduler(
        resolver,
        presence,
        network,
        asset_fetcher=asset_fetcher,
        on_record_updated=indicator.on_record_updated,
        on_address_changed=indicator.on_address_changed,
        refresh_interval=settings.refresh_interval_seconds,
        network_debounce=settings.network_debounce_seconds,
    )
    return Runtime(scheduler=scheduler, presence=presence, network=network, indicator=indicator)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the refresh scheduler for as long as the application is up."""
    runtime = build_runtime(get_settings())
    app.state.runtime = runtime
    runtime.scheduler.start()
    logger.info("Started external address watcher")

    yield

    runtime.scheduler.stop()
    logger.info("Stopped external address watcher")


app = FastAPI(
    title="External Address Watcher",
    version="0.1.0",
    description="Keeps track of this host's external IP address and its geolocation.",
    lifespan=lifespan,
)

app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


def get_runtime(request: Request) -> Runtime:
    """Dependency to provide the running engine."""
    return request.app.state.runtime


RuntimeDep = Annotated[Runtime, Depends(get_runtime)]


@app.get(
    "/health",
    tags=["health"],
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
)
async def health() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="ok")


@app.get(
    "/v1/address",
    response_model=AddressResponse,
    status_code=status.HTTP_200_OK,
    tags=["address"],
    summary="Current external address.",
)
async def current_address(runtime: RuntimeDep) -> AddressResponse:
    """Return the most recently resolved record, or a sentinel record if none yet."""
    return AddressResponse.from_record(runtime.scheduler.current)


@app.post(
    "/v1/address/refresh",
    response_model=AddressResponse,
    status_code=status.HTTP_200_OK,
    tags=["address"],
    summary="Look up the external address now.",
)
async def refresh_address(request: Request, runtime: RuntimeDep) -> AddressResponse:
    """Trigger a lookup (joining one already in flight) and return the resulting record."""
    task = runtime.scheduler.refresh(reason="api")
    if task is None:
        logger.error(f"Refresh requested while scheduler is stopped path={request.url.path} method={request.method}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "code": "scheduler_stopped",
                "message": "The refresh scheduler is not running.",
            },
        )

    # A client disconnect must not cancel a lookup the periodic timer may be sharing.
    await asyncio.shield(task)
    return AddressResponse.from_record(runtime.scheduler.current)


@app.get(
    "/v1/scheduler",
    response_model=SchedulerStateResponse,
    status_code=status.HTTP_200_OK,
    tags=["scheduler"],
    summary="Refresh scheduler state.",
)
async def scheduler_state(runtime: RuntimeDep) -> SchedulerStateResponse:
    state = runtime.scheduler.state
    return SchedulerStateResponse(
        enabled=state.enabled,
        idle=state.idle,
        epoch=state.epoch,
        periodic_timer_armed=state.periodic_timer is not None,
        debounce_timer_armed=state.debounce_timer is not None,
        network_subscribed=state.network_subscription is not None,
        resolution_in_flight=state.resolution_in_flight,
    )


@app.post(
    "/v1/signals/presence",
    response_model=SignalAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["signals"],
    summary="Report a session presence change.",
)
async def presence_signal(body: PresenceSignalRequest, runtime: RuntimeDep) -> SignalAcceptedResponse:
    """Forward a presence change from the session service to the scheduler."""
    logger.info(f"Presence signal received status={body.status.value}")
    runtime.presence.emit(body.status)
    return SignalAcceptedResponse(accepted=True)


@app.post(
    "/v1/signals/network",
    response_model=SignalAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["signals"],
    summary="Report a network availability change.",
)
async def network_signal(body: NetworkSignalRequest, runtime: RuntimeDep) -> SignalAcceptedResponse:
    """Forward a network availability change from the network monitor to the scheduler."""
    logger.info(f"Network signal received available={body.available}")
    runtime.network.emit(body.available)
    return SignalAcceptedResponse(accepted=True)
