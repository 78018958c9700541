"""
QRNG Slot Poller — Main Orchestrator.
Ties all components together: startup, polling, dashboard, shutdown.
"""

from __future__ import annotations
import asyncio
import sys
import signal
import logging

from dotenv import load_dotenv

# Load .env file before reading config
load_dotenv()

from config import AppConfig
from qrng.client import QrngClient
from polling.slot_pool import SlotPool
from polling.scheduler import PollCycleScheduler
from presentation.board import SlotBoard
from presentation.sink import CompositeSink, LoggingSink
from dashboard import Dashboard

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", log_file: str = ""):
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


class App:
    """Main orchestrator."""

    def __init__(self, config: AppConfig):
        self.config = config
        self._stopped = asyncio.Event()

        self.client = QrngClient(
            url=config.source.url,
            value_field=config.source.value_field,
            timeout_sec=config.source.request_timeout_sec,
        )
        self.pool = SlotPool()
        self.board = SlotBoard()
        self.scheduler = PollCycleScheduler(
            pool=self.pool,
            source=self.client,
            sink=CompositeSink([self.board, LoggingSink()]),
            interval_sec=config.poll.interval_sec,
        )

        self.dashboard = None
        if config.dashboard.enabled:
            self.dashboard = Dashboard(
                scheduler=self.scheduler,
                board=self.board,
                host=config.dashboard.host,
                port=config.dashboard.port,
                log_file=config.log_file,
                max_slots=config.poll.max_slots,
            )

    async def start(self):
        """Full startup sequence. Returns once stop() has run."""
        logger.info("=" * 60)
        logger.info("   QRNG SLOT POLLER — STARTING")
        logger.info("=" * 60)
        logger.info(
            f"[BOOT] Source: {self.config.source.url} "
            f"(field '{self.config.source.value_field}'), "
            f"interval {self.config.poll.interval_sec:g}s"
        )

        # 1. Dashboard first so the page is up before the first cycle lands
        if self.dashboard is not None:
            await self.dashboard.start()

        # 2. Build the initial slots and start polling
        self.scheduler.set_slot_count(self.config.poll.initial_slots)
        logger.info(f"[BOOT] ✅ Polling {len(self.pool)} slot(s). Running...")

        await self._stopped.wait()

    async def stop(self):
        """Graceful shutdown."""
        if self._stopped.is_set():
            return
        logger.info("[SHUTDOWN] Stopping...")

        # Dashboard before scheduler: no slider request may reach a stopped scheduler
        if self.dashboard is not None:
            await self.dashboard.stop()
        await self.scheduler.stop()
        await self.client.close()

        self._stopped.set()
        logger.info("[SHUTDOWN] Complete.")


async def main():
    """Entry point."""
    config = AppConfig.from_env()
    setup_logging(config.log_level, config.log_file)

    if not 0 <= config.poll.initial_slots <= config.poll.max_slots:
        logger.critical("INITIAL_SLOTS must be between 0 and MAX_SLOTS!")
        sys.exit(1)

    app = App(config)

    # Graceful shutdown handler
    if sys.platform != "win32":
        loop = asyncio.get_running_loop()
        def handle_signal(sig):
            logger.info(f"Received signal {sig}. Initiating shutdown...")
            asyncio.create_task(app.stop())

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))

    try:
        await app.start()
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received in main loop.")
        await app.stop()
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        await app.stop()
        sys.exit(1)


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
