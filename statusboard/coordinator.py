"""
Fan-out coordinator: one complete snapshot per call.

Every domain is probed over HTTP and HTTPS at the same time, and every
domain pair runs at the same time as every other pair. A round where
nothing got past the transport layer is treated as a local network
problem and retried once after a short backoff.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

import aiohttp

from .errors import DegenerateNetworkError
from .outcomes import DomainResult, Protocol, Snapshot, utcnow
from .prober import Prober, build_session
from .roster import Domain, Roster
from .settings import ProbeConfig

logger = logging.getLogger(__name__)


async def probe_pair(prober: Prober, domain: Domain) -> DomainResult:
    http, https = await asyncio.gather(
        prober.probe(domain, Protocol.HTTP),
        prober.probe(domain, Protocol.HTTPS),
    )
    return DomainResult(domain=domain, http=http, https=https)


def is_degenerate(results: list[DomainResult]) -> bool:
    return all(r.degenerate for r in results)


class Coordinator:
    """
    Produces snapshots covering every roster domain.

    `session_factory`, `sleep` and `clock` are injectable so rounds can run
    against fake transports and a fake clock.
    """

    def __init__(
        self,
        roster: Roster,
        config: ProbeConfig,
        session_factory: Callable[[ProbeConfig], aiohttp.ClientSession] = build_session,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.roster = roster
        self.config = config
        self._session_factory = session_factory
        self._sleep = sleep
        self._clock = clock

    async def run_round(self) -> list[DomainResult]:
        """
        One round over the whole roster, sorted by domain id.
        """
        async with self._session_factory(self.config) as session:
            prober = Prober(session, self.config)
            results = await asyncio.gather(
                *(probe_pair(prober, d) for d in self.roster.domains)
            )
        return sorted(results, key=lambda r: r.domain.id)

    async def collect(self) -> Snapshot:
        """
        Run rounds until one is not degenerate, up to `round_attempts`.

        Raises DegenerateNetworkError when every attempt was degenerate.
        """
        attempts = max(1, self.config.round_attempts)
        for attempt in range(1, attempts + 1):
            results = await self.run_round()

            if not is_degenerate(results):
                return Snapshot(results=tuple(results), created_at=self._clock())

            logger.warning(
                "Round %d/%d: every probe failed to connect or timed out",
                attempt, attempts,
            )
            if attempt < attempts:
                await self._sleep(self.config.retry_backoff_s)

        raise DegenerateNetworkError(attempts)
