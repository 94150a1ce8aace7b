"""
Background worker that finalizes expired listings nobody has read
"""
import asyncio
import logging

from ecobid.services.finalization_service import FinalizationService

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Periodically runs the finalization sweep"""

    def __init__(self, finalization: FinalizationService, interval_seconds: float, batch_size: int = 100):
        self.finalization = finalization
        self.interval_seconds = interval_seconds
        self.batch_size = batch_size
        self.running = False
        self.task = None

    async def start(self):
        """Start the background worker"""
        if self.running:
            logger.warning("⚠️  Expiry sweeper already running")
            return

        self.running = True
        self.task = asyncio.create_task(self._run())
        logger.info(f"✅ Expiry sweeper started (interval: {self.interval_seconds}s)")

    async def stop(self):
        """Stop the background worker"""
        if not self.running:
            return

        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
        logger.info("🛑 Expiry sweeper stopped")

    async def run_once(self) -> int:
        # The finalizer does blocking store I/O
        return await asyncio.to_thread(self.finalization.sweep_expired, self.batch_size)

    async def _run(self):
        """Main worker loop"""
        while self.running:
            try:
                await self.run_once()
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"❌ Error in expiry sweeper: {e}")
                await asyncio.sleep(self.interval_seconds)
