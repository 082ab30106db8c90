"""
Serviceability Prober

Fans out one serviceability check per courier for a lane and mode. Every
check runs as its own task under its own timeout and always settles into
exactly one ServiceabilityResult:

- adapter answered            -> its answer
- adapter exceeded timeout    -> serviceable=False, reason="timeout"
- adapter raised              -> serviceable=False, reason="error: <detail>"

A failing courier never cancels the others, and the prober returns only
once every check has settled.
"""

import asyncio
import time
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from context_manager.context import context_user_data
from logger import logger

from .rate_engine_schema import (
    CourierId,
    ServiceabilityCheck,
    ServiceabilityResult,
    ServiceMode,
)


TIMEOUT_REASON = "timeout"
NOT_SERVICEABLE_REASON = "not serviceable"


class ServiceabilityAdapter(Protocol):
    async def check_serviceable(
        self,
        courier: CourierId,
        origin_pincode: str,
        destination_pincode: str,
        mode: ServiceMode,
    ) -> ServiceabilityCheck: ...


class ServiceabilityProber:
    def __init__(
        self,
        adapter: ServiceabilityAdapter,
        timeout_for: Callable[[CourierId], float] = lambda courier: 8.0,
        max_concurrent: Optional[int] = None,
    ):
        self.adapter = adapter
        self.timeout_for = timeout_for
        self.max_concurrent = max_concurrent

    async def _probe_one(
        self,
        courier: CourierId,
        origin_pincode: str,
        destination_pincode: str,
        mode: ServiceMode,
        semaphore: Optional[asyncio.Semaphore],
    ) -> ServiceabilityResult:
        timeout = self.timeout_for(courier)

        if semaphore is not None:
            await semaphore.acquire()

        start = time.perf_counter()
        try:
            check = await asyncio.wait_for(
                self.adapter.check_serviceable(
                    courier, origin_pincode, destination_pincode, mode
                ),
                timeout=timeout,
            )

        except asyncio.TimeoutError:
            latency_ms = (time.perf_counter() - start) * 1000
            logger.warning(
                extra=context_user_data.get(),
                msg=f"Serviceability check for {courier.display_name} {mode.value} "
                f"timed out after {timeout}s",
            )
            return ServiceabilityResult(
                courier=courier,
                mode=mode,
                serviceable=False,
                reason=TIMEOUT_REASON,
                latency_ms=latency_ms,
                timed_out=True,
            )

        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            logger.error(
                extra=context_user_data.get(),
                msg=f"Serviceability check for {courier.display_name} {mode.value} "
                f"failed: {e}",
            )
            return ServiceabilityResult(
                courier=courier,
                mode=mode,
                serviceable=False,
                reason=f"error: {str(e) or type(e).__name__}",
                latency_ms=latency_ms,
            )

        finally:
            if semaphore is not None:
                semaphore.release()

        latency_ms = (time.perf_counter() - start) * 1000
        serviceable = bool(check.serviceable)

        return ServiceabilityResult(
            courier=courier,
            mode=mode,
            serviceable=serviceable,
            reason=None if serviceable else (check.reason or NOT_SERVICEABLE_REASON),
            latency_ms=latency_ms,
        )

    async def probe(
        self,
        couriers: Iterable[CourierId],
        origin_pincode: str,
        destination_pincode: str,
        mode: ServiceMode,
    ) -> List[ServiceabilityResult]:
        """Results come back in roster order, whatever order they settle in."""
        semaphore = (
            asyncio.Semaphore(self.max_concurrent) if self.max_concurrent else None
        )

        results = await asyncio.gather(
            *(
                self._probe_one(
                    courier, origin_pincode, destination_pincode, mode, semaphore
                )
                for courier in couriers
            )
        )

        serviceable = sum(1 for result in results if result.serviceable)
        logger.info(
            extra=context_user_data.get(),
            msg=f"Probed {len(results)} couriers for {mode.value} "
            f"{origin_pincode} -> {destination_pincode}: {serviceable} serviceable",
        )
        return list(results)

    async def probe_modes(
        self,
        couriers: Iterable[CourierId],
        origin_pincode: str,
        destination_pincode: str,
        modes: Iterable[ServiceMode],
    ) -> Dict[Tuple[CourierId, ServiceMode], ServiceabilityResult]:
        couriers = list(couriers)
        per_mode = await asyncio.gather(
            *(
                self.probe(couriers, origin_pincode, destination_pincode, mode)
                for mode in modes
            )
        )
        return {
            (result.courier, result.mode): result
            for results in per_mode
            for result in results
        }
