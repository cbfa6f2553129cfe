"""Plant table and boundary topology loading."""

from __future__ import annotations

import io
import json
import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any, Iterable, Sequence

import pandas as pd
import requests

from .config import DataConfig
from .models import MapData, PlantRecord
from .topology import Topology, TopologyError, interior_borders


_LOGGER = logging.getLogger("plantmap.io_data")


class DataLoadError(RuntimeError):
    """Raised when either input dataset cannot be fetched or parsed."""


def _first_existing_column(columns: Iterable[str], candidates: Sequence[str]) -> str | None:
    existing = {str(col).strip().lower(): col for col in columns}
    for candidate in candidates:
        match = existing.get(candidate.lower())
        if match is not None:
            return match
    return None


class DataLoader:
    """Fetches the plant table and the boundary topology side by side.

    Both fetches run on a two-worker pool; the first failure cancels the
    other and surfaces as a single `DataLoadError`.
    """

    PLANT_COLUMNS = {
        "name": ("Name",),
        "city": ("City",),
        "group": ("Group",),
        "value": ("Value",),
        "longitude": ("Longitude", "Lon"),
        "latitude": ("Latitude", "Lat"),
    }

    def __init__(self, cfg: DataConfig, root_dir: Path, *, session: requests.Session | None = None) -> None:
        self.cfg = cfg
        self.root_dir = root_dir
        self._session = session

    def load(self) -> MapData:
        pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="plantmap-load")
        try:
            plants_future = pool.submit(self.load_plants)
            topology_future = pool.submit(self.load_topology)
            done, _ = wait((plants_future, topology_future), return_when=FIRST_EXCEPTION)
            failure = _first_failure((plants_future, topology_future), done)
            if failure is not None:
                if isinstance(failure, DataLoadError):
                    raise failure
                raise DataLoadError(str(failure)) from failure
            return MapData(plants=plants_future.result(), topology=topology_future.result())
        finally:
            # a running sibling fetch is abandoned, not awaited
            pool.shutdown(wait=False, cancel_futures=True)

    def load_plants(self) -> tuple[PlantRecord, ...]:
        text = self.fetch_text(self.cfg.plants)
        try:
            frame = pd.read_csv(io.StringIO(text))
        except (ValueError, pd.errors.ParserError) as exc:
            raise DataLoadError(f"Malformed plant table '{self.cfg.plants}': {exc}") from exc

        resolved: dict[str, str] = {}
        for field_name, candidates in self.PLANT_COLUMNS.items():
            col = _first_existing_column(frame.columns, candidates)
            if col is None:
                cols = ", ".join(str(c) for c in frame.columns)
                raise DataLoadError(
                    f"Plant table '{self.cfg.plants}' missing '{candidates[0]}' column. "
                    f"Available columns: {cols}"
                )
            resolved[field_name] = col

        records = tuple(
            PlantRecord.from_mapping({field_name: row[col] for field_name, col in resolved.items()})
            for row in frame.to_dict(orient="records")
        )
        _LOGGER.info("Loaded %d plant records from %s", len(records), self.cfg.plants)
        return records

    def load_topology(self) -> Topology:
        text = self.fetch_text(self.cfg.boundaries)
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DataLoadError(f"Malformed boundary document '{self.cfg.boundaries}': {exc}") from exc
        try:
            topology = Topology(document)
            # malformed geometry surfaces as a load failure
            topology.feature(self.cfg.boundary_object)
            topology.mesh(self.cfg.boundary_object, interior_borders)
        except TopologyError as exc:
            raise DataLoadError(f"Invalid boundary topology '{self.cfg.boundaries}': {exc}") from exc
        _LOGGER.info(
            "Loaded boundary topology from %s (objects: %s)",
            self.cfg.boundaries,
            ", ".join(topology.object_names),
        )
        return topology

    def fetch_text(self, source: str) -> str:
        if _is_url(source):
            session = self._session or requests
            try:
                response = session.get(source, timeout=self.cfg.request_timeout_s)
                response.raise_for_status()
            except requests.RequestException as exc:
                raise DataLoadError(f"Failed fetching '{source}': {exc}") from exc
            return response.text

        path = Path(source)
        if not path.is_absolute():
            path = self.root_dir / path
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise DataLoadError(f"Failed reading '{path}': {exc}") from exc


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def _first_failure(futures: Sequence[Future[Any]], done: set[Future[Any]]) -> BaseException | None:
    for future in futures:
        if future not in done:
            continue
        exc = future.exception()
        if exc is not None:
            return exc
    return None
