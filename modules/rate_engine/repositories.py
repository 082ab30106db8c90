"""
SQLAlchemy backed collaborators of the rate engine: pincode directory,
rate card repository and the active courier roster.

Every query runs in its own short session from the session factory, so
the collaborators can be shared between requests. Database failures are
raised as the engine's infrastructure errors.
"""

from threading import Lock
from typing import Callable, List, Optional

from cachetools import TTLCache
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from context_manager.context import context_user_data
from database import SessionLocal
from logger import logger
from models import Pincode_Mapping, Rate_Card, Seller_Rate_Card

from .rate_engine_errors import LocationStoreUnavailableError, TariffStoreUnavailableError
from .rate_engine_schema import (
    PINCODE_REGEX,
    CourierId,
    Location,
    ServiceMode,
    TariffRow,
    Zone,
    to_decimal,
)


_MISSING = object()


class SqlLocationLookup:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        cache_ttl: float = 3600,
        cache_size: int = 1000,
    ):
        self.session_factory = session_factory
        self._cache = TTLCache(maxsize=cache_size, ttl=cache_ttl)
        self._cache_lock = Lock()

    def _query(self, pincode: str) -> Optional[Location]:
        try:
            with self.session_factory() as db:
                record = db.execute(
                    select(Pincode_Mapping).where(
                        Pincode_Mapping.pincode == int(pincode),
                        Pincode_Mapping.is_deleted.is_(False),
                    )
                ).scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error(
                extra=context_user_data.get(),
                msg=f"Pincode lookup failed for {pincode}: {e}",
            )
            raise LocationStoreUnavailableError() from e

        if record is None:
            return None

        return Location(
            pincode=str(record.pincode),
            city=record.city,
            district=record.district,
            state=record.state,
            region=record.region,
        )

    def get_location(self, pincode: str) -> Optional[Location]:
        pincode = str(pincode).strip()
        if not PINCODE_REGEX.match(pincode):
            return None

        with self._cache_lock:
            cached = self._cache.get(pincode, _MISSING)
        if cached is not _MISSING:
            return cached

        location = self._query(pincode)

        with self._cache_lock:
            self._cache[pincode] = location
        return location

    def clear_cache(self):
        with self._cache_lock:
            self._cache.clear()


def to_tariff_row(record, seller_id: Optional[str] = None) -> Optional[TariffRow]:
    courier = CourierId.from_name(record.courier)
    try:
        mode = ServiceMode(record.mode)
        zone = Zone(record.zone)
    except ValueError:
        courier = None

    if courier is None:
        logger.warning(
            extra=context_user_data.get(),
            msg=f"Skipping rate card row {record.id}: unknown "
            f"courier/mode/zone {record.courier}/{record.mode}/{record.zone}",
        )
        return None

    return TariffRow(
        courier=courier,
        mode=mode,
        zone=zone,
        weight_slab=to_decimal(record.weight_slab),
        base_rate=to_decimal(record.base_rate),
        additional_rate=to_decimal(record.additional_rate),
        cod_flat_fee=to_decimal(record.cod_flat_fee),
        cod_percent=to_decimal(record.cod_percent),
        minimum_billable_weight=to_decimal(record.minimum_billable_weight),
        rto_charge=to_decimal(record.rto_charge),
        seller_id=seller_id,
    )


class SqlTariffRepository:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def list_tariff_rows(
        self,
        courier: CourierId = None,
        mode: ServiceMode = None,
        zone: Zone = None,
    ) -> List[TariffRow]:
        query = select(Rate_Card).where(
            Rate_Card.is_active.is_(True), Rate_Card.is_deleted.is_(False)
        )
        if mode is not None:
            query = query.where(Rate_Card.mode == mode.value)
        if zone is not None:
            query = query.where(Rate_Card.zone == zone.value)

        try:
            with self.session_factory() as db:
                records = db.execute(query).scalars().all()

        except SQLAlchemyError as e:
            logger.error(
                extra=context_user_data.get(), msg=f"Loading rate cards failed: {e}"
            )
            raise TariffStoreUnavailableError() from e

        rows = [row for row in map(to_tariff_row, records) if row is not None]
        if courier is not None:
            # stored names may be aliases, so match on the resolved id
            rows = [row for row in rows if row.courier == courier]
        return rows

    def list_overrides(self, seller_id: str) -> List[TariffRow]:
        query = select(Seller_Rate_Card).where(
            Seller_Rate_Card.seller_id == seller_id,
            Seller_Rate_Card.is_active.is_(True),
            Seller_Rate_Card.is_deleted.is_(False),
        )

        try:
            with self.session_factory() as db:
                records = db.execute(query).scalars().all()

        except SQLAlchemyError as e:
            logger.error(
                extra=context_user_data.get(),
                msg=f"Loading rate overrides for seller {seller_id} failed: {e}",
            )
            raise TariffStoreUnavailableError() from e

        rows = [to_tariff_row(record, seller_id=seller_id) for record in records]
        return [row for row in rows if row is not None]


class SqlCourierRoster:
    """Active couriers are the ones with at least one active global rate card row"""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def list_active_couriers(self) -> List[CourierId]:
        query = (
            select(Rate_Card.courier)
            .where(Rate_Card.is_active.is_(True), Rate_Card.is_deleted.is_(False))
            .distinct()
        )

        try:
            with self.session_factory() as db:
                names = db.execute(query).scalars().all()

        except SQLAlchemyError as e:
            logger.error(
                extra=context_user_data.get(), msg=f"Loading courier roster failed: {e}"
            )
            raise TariffStoreUnavailableError() from e

        couriers = {CourierId.from_name(name) for name in names}
        couriers.discard(None)
        return sorted(couriers, key=lambda courier: courier.display_name.casefold())
