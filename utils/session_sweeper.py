"""Background eviction of idle sessions and the market reference cache."""

import asyncio
import logging

from services.conversation.market_cache import MarketReferenceCache
from services.conversation.session_store import SessionStore

logger = logging.getLogger(__name__)


class SessionSweeper:
    """Evict sessions past their inactivity window and clear a full cache."""

    def __init__(self, sessions: SessionStore, cache: MarketReferenceCache, interval_seconds: int = 300) -> None:
        """
        Args:
            sessions: Store whose expired sessions are removed.
            cache: Market reference cache, cleared when it reaches its ceiling.
            interval_seconds: Seconds to sleep between sweeps.
        """
        self.sessions = sessions
        self.cache = cache
        self.interval_seconds = interval_seconds

    def sweep_once(self) -> int:
        """Run one sweep and return the number of sessions removed."""
        removed = self.sessions.sweep()
        if removed:
            logger.info("Cleaned %d idle sessions", removed)
        self.cache.enforce_ceiling()
        return removed

    async def run_periodic(self) -> None:
        """Sweep at the configured interval until cancelled."""
        while True:
            try:
                await asyncio.sleep(self.interval_seconds)
                self.sweep_once()
            except asyncio.CancelledError:
                break
            except Exception:
                # Keep the loop alive; the next tick retries.
                logger.exception("Session sweep failed")
