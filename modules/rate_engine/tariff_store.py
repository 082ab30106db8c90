"""
Tariff Store

TariffStore is an immutable snapshot of rate card rows keyed by
(courier, mode, zone, weight slab). Global rows and seller override rows
live in separate indexes so a lookup returns zero, one or two rows.

EffectiveRateResolver picks the row a seller is billed with: the seller's
override when one exists for the exact key, else the global row.

TariffStoreCache owns the current snapshot. A refresh builds a complete
new snapshot and swaps the reference, readers never see a half built one.
"""

import time
from collections import defaultdict
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from context_manager.context import context_user_data
from logger import logger

from .rate_engine_errors import RateEngineInfrastructureError
from .rate_engine_schema import CourierId, EffectiveTariff, ServiceMode, TariffRow, Zone


LaneKey = Tuple[CourierId, ServiceMode, Zone]


class TariffStore:
    def __init__(self, rows: Iterable[TariffRow] = (), version: int = 0):
        self.version = version
        self.loaded_at = time.time()

        self._global: Dict[tuple, TariffRow] = {}
        self._overrides: Dict[str, Dict[tuple, TariffRow]] = defaultdict(dict)

        for row in rows:
            self._index(row)

        self._global_boundaries = self._boundaries_of(self._global.values())
        self._override_boundaries = {
            seller_id: self._boundaries_of(rows.values())
            for seller_id, rows in self._overrides.items()
        }

    def _index(self, row: TariffRow):
        index = self._global if row.is_global else self._overrides[row.seller_id]
        if row.key in index:
            logger.warning(
                extra=context_user_data.get(),
                msg=f"Duplicate tariff row ignored for {row.key} seller={row.seller_id}",
            )
            return
        index[row.key] = row

    @staticmethod
    def _boundaries_of(rows: Iterable[TariffRow]) -> Dict[LaneKey, Tuple]:
        boundaries = defaultdict(set)
        for row in rows:
            boundaries[(row.courier, row.mode, row.zone)].add(row.weight_slab)
        return {lane: tuple(sorted(slabs)) for lane, slabs in boundaries.items()}

    def __len__(self):
        return len(self._global) + sum(len(rows) for rows in self._overrides.values())

    @property
    def rows(self) -> List[TariffRow]:
        rows = list(self._global.values())
        for seller_rows in self._overrides.values():
            rows.extend(seller_rows.values())
        return rows

    def lookup(self, courier, mode, zone, slab, seller_id=None) -> List[TariffRow]:
        """Global row first, then the seller's override, each when present."""
        key = (courier, mode, zone, slab)
        found = []
        if key in self._global:
            found.append(self._global[key])
        if seller_id is not None:
            override = self._overrides.get(seller_id, {}).get(key)
            if override is not None:
                found.append(override)
        return found

    def slab_boundaries(self, courier, mode, zone, seller_id=None) -> Tuple:
        lane = (courier, mode, zone)
        boundaries = self._global_boundaries.get(lane, ())
        if seller_id is None or seller_id not in self._override_boundaries:
            return boundaries

        seller_boundaries = self._override_boundaries[seller_id].get(lane, ())
        if not seller_boundaries:
            return boundaries
        return tuple(sorted(set(boundaries) | set(seller_boundaries)))

    def couriers(self) -> Set[CourierId]:
        return {row.courier for row in self._global.values()}

    def has_overrides(self, seller_id: Optional[str]) -> bool:
        return seller_id is not None and bool(self._overrides.get(seller_id))

    def extend(self, override_rows: Iterable[TariffRow]) -> "TariffStore":
        """
        New snapshot with the given seller rows layered on top. Rows of a
        seller already present in this snapshot are replaced as a whole.
        """
        override_rows = list(override_rows)
        replaced = {row.seller_id for row in override_rows if not row.is_global}

        kept = [
            row
            for row in self.rows
            if row.is_global or row.seller_id not in replaced
        ]
        return TariffStore(kept + override_rows, version=self.version)


class EffectiveRateResolver:
    def __init__(self, store: TariffStore):
        self.store = store

    def resolve(
        self,
        seller_id: Optional[str],
        courier: CourierId,
        mode: ServiceMode,
        zone: Zone,
        slab,
    ) -> Optional[EffectiveTariff]:
        rows = self.store.lookup(courier, mode, zone, slab, seller_id=seller_id)

        for row in rows:
            if not row.is_global:
                return EffectiveTariff(row=row, is_override=True)

        if rows:
            return EffectiveTariff(row=rows[0], is_override=False)

        return None


class TariffStoreCache:
    def __init__(
        self,
        repository,
        refresh_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.repository = repository
        self.refresh_seconds = refresh_seconds
        self.clock = clock

        self._snapshot: Optional[TariffStore] = None
        self._refreshed_at: float = 0.0
        self._lock = Lock()

    @property
    def is_stale(self) -> bool:
        return (
            self._snapshot is None
            or self.clock() - self._refreshed_at >= self.refresh_seconds
        )

    def refresh(self) -> TariffStore:
        with self._lock:
            rows = self.repository.list_tariff_rows()
            version = self._snapshot.version + 1 if self._snapshot else 1
            snapshot = TariffStore(rows, version=version)

            self._snapshot = snapshot
            self._refreshed_at = self.clock()

        logger.info(
            extra=context_user_data.get(),
            msg=f"Tariff snapshot v{snapshot.version} loaded with {len(snapshot)} rows",
        )
        return snapshot

    def snapshot(self) -> TariffStore:
        if self.is_stale:
            try:
                return self.refresh()
            except RateEngineInfrastructureError as e:
                if self._snapshot is None:
                    raise
                logger.error(
                    extra=context_user_data.get(),
                    msg=f"Tariff refresh failed, serving v{self._snapshot.version}: {e}",
                )
        return self._snapshot

    def for_seller(self, seller_id: Optional[str]) -> TariffStore:
        """The snapshot one request prices against."""
        snapshot = self.snapshot()
        if seller_id is None:
            return snapshot

        overrides = list(self.repository.list_overrides(seller_id))
        if not overrides:
            return snapshot
        return snapshot.extend(overrides)
