import asyncio
import logging

logger = logging.getLogger(__name__)

# Free-tier Alpha Vantage allows 5 calls per minute per key
DEFAULT_PACE_SECONDS = 5.0


class RateLimiter:
    """Fixed delay applied after every completed remote call."""

    def __init__(self, interval: float = DEFAULT_PACE_SECONDS):
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.interval = interval

    async def pace(self) -> None:
        if self.interval:
            logger.debug("Pacing for %.1fs after API call", self.interval)
        await asyncio.sleep(self.interval)
