import asyncio
from collections.abc import Callable
from pathlib import Path

from ipwatch.clients.base import BaseAssetClient
from ipwatch.errors import AssetFetchError
from ipwatch.logger import logger
from ipwatch.models.record import MAP_ASSET_KEY, UNKNOWN, AddressRecord

AssetWriter = Callable[[str, bytes], None]


class FileAssetStore:
    """Writes downloaded images below a root directory, one file per key."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def path_for(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if self._root.resolve() not in path.parents:
            raise ValueError(f"Asset key escapes the asset directory: {key!r}")
        return path

    def write_asset(self, key: str, data: bytes) -> None:
        """Overwrite the asset stored under `key`."""
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Replace atomically, readers never see a truncated image.
        tmp_path = path.with_name(f".{path.name}.tmp")
        tmp_path.write_bytes(data)
        tmp_path.replace(path)


class AssetFetcher:
    """Best-effort refresh of the map and flag images for a record.

    Both downloads are fire-and-forget tasks. A failed download is logged and
    the previously stored image is left in place.
    """

    def __init__(
        self,
        client: BaseAssetClient,
        write_asset: AssetWriter,
        on_asset_written: Callable[[str], None] | None = None,
    ) -> None:
        self._client = client
        self._write_asset = write_asset
        self._on_asset_written = on_asset_written
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def refresh(self, record: AddressRecord) -> list[asyncio.Task]:
        """Schedule the downloads for `record` and return the spawned tasks."""
        if record.is_failure:
            logger.debug("Skipping asset refresh for failed lookup")
            return []

        # Downloads for an older record must not land after this one.
        self.cancel()

        tasks = [self._spawn(self._refresh_map(record), name="asset-map")]
        if record.country_code != UNKNOWN:
            tasks.append(self._spawn(self._refresh_flag(record), name="asset-flag"))
        return tasks

    def cancel(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    def _spawn(self, coro, name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _refresh_map(self, record: AddressRecord) -> None:
        logger.debug(f"Fetching map latitude={record.latitude} longitude={record.longitude}")
        try:
            data = await self._client.fetch_map(record.latitude, record.longitude)
            self._store(MAP_ASSET_KEY, data)
        except (AssetFetchError, OSError, ValueError) as exc:
            logger.warning(f"Map refresh failed, keeping previous image error={exc}")

    async def _refresh_flag(self, record: AddressRecord) -> None:
        logger.debug(f"Fetching flag country={record.country_code}")
        try:
            data = await self._client.fetch_flag(record.country_code)
            self._store(record.flag_asset_key, data)
        except (AssetFetchError, OSError, ValueError) as exc:
            logger.warning(f"Flag refresh failed, keeping previous image country={record.country_code} error={exc}")

    def _store(self, key: str, data: bytes) -> None:
        self._write_asset(key, data)
        logger.debug(f"Asset written key={key} size={len(data)}")
        if self._on_asset_written is not None:
            try:
                self._on_asset_written(key)
            except Exception:
                logger.exception(f"Asset written callback failed key={key}")
