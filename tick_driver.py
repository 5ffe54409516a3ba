"""
Maintenance Tick Driver
Periodically asks the admission backend to advance flight statuses
(approved -> active -> completed) by wall-clock time
"""

import asyncio
import logging
from typing import Optional

import aiohttp

import config

logger = logging.getLogger(__name__)


class TickDriver:
    """Posts /api/maintenance/tick on a fixed interval"""

    def __init__(self, api_url: str, interval: float = config.TICK_INTERVAL):
        self.api_url = api_url.rstrip('/')
        self.interval = interval
        self.running = False
        self.total_transitioned = 0

    async def run_once(self, session: aiohttp.ClientSession) -> Optional[int]:
        """
        Trigger one maintenance sweep

        Returns:
            Number of flights transitioned, or None if the call failed
        """
        try:
            async with session.post(f"{self.api_url}/api/maintenance/tick") as response:
                if response.status != 200:
                    error = await response.text()
                    logger.warning(f"Tick failed with HTTP {response.status}: {error}")
                    return None
                result = await response.json()
        except aiohttp.ClientError as e:
            logger.warning(f"Tick request error: {e}")
            return None

        transitioned = int(result.get('transitioned', 0))
        self.total_transitioned += transitioned
        if transitioned:
            logger.info(f"Tick transitioned {transitioned} flights")
        return transitioned

    async def run(self, max_ticks: Optional[int] = None):
        """Tick until stopped (or max_ticks calls have been made)"""
        self.running = True
        ticks = 0

        async with aiohttp.ClientSession() as session:
            while self.running:
                await self.run_once(session)
                ticks += 1
                if max_ticks is not None and ticks >= max_ticks:
                    break
                await asyncio.sleep(self.interval)

        self.running = False

    def stop(self):
        """Stop the tick loop after the current sweep"""
        self.running = False
        logger.info("Stopping tick driver...")


async def main():
    """Main entry point"""
    logging.basicConfig(level=logging.INFO)

    api_url = f"http://{config.API_HOST}:{config.API_PORT}"
    logger.info(f"Driving maintenance ticks against {api_url} every {config.TICK_INTERVAL:g}s")

    driver = TickDriver(api_url)
    try:
        await driver.run()
    except asyncio.CancelledError:
        driver.stop()
        raise


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutdown signal received")
