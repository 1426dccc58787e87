"""
Entry point: ``python -m pollmaster`` or the ``pollmaster`` script.
Settings come from POLLMASTER_CONFIG (JSON) and POLLMASTER_* variables.
"""
import asyncio
import logging
import signal

from .config import get_settings
from .logging_config import setup_logging_from_env
from .session import Session

log = logging.getLogger("PollMaster")


def setup_signal_handlers(stop: asyncio.Event, loop: asyncio.AbstractEventLoop) -> None:
    def signal_handler():
        log.info("Received shutdown signal")
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            signal.signal(sig, lambda s, f: loop.call_soon_threadsafe(signal_handler))


async def run() -> None:
    settings = get_settings()
    stop = asyncio.Event()
    setup_signal_handlers(stop, asyncio.get_running_loop())

    log.info("Starting PollMaster: %d devices on %s @ %d bps",
             len(settings.devices), settings.line.serial_port, settings.line.baud_rate)
    await Session(settings).run(stop)


def main() -> None:
    setup_logging_from_env()
    asyncio.run(run())


if __name__ == "__main__":
    main()
