import asyncio
import logging
import signal
import time

logger = logging.getLogger(__name__)

# ────────────────────────────────
# Time Helpers
# ────────────────────────────────


def now() -> float:
    return time.perf_counter()


# ────────────────────────────────
# Signal Handling
# ────────────────────────────────


class GracefulKiller:
    """Turns SIGINT/SIGTERM into a stop event checked by the workers."""

    def __init__(self, stop_event: asyncio.Event):
        self.stop_event = stop_event
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.exit_gracefully, sig)
            except (NotImplementedError, RuntimeError):
                # Windows event loops and non-main threads
                logger.debug(f"Signal handler for {sig!r} not installed")

    def exit_gracefully(self, signum):
        if not self.stop_event.is_set():
            logger.warning(
                f"Received signal {signum}. Finishing in-flight probes and stopping..."
            )
        self.stop_event.set()
