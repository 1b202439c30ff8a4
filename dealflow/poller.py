"""
Long-polling runner for deployments without a public webhook URL.

Run with:
    python -m dealflow.poller
"""

import asyncio
import logging
from typing import Optional, Set

from dealflow.config import settings
from dealflow.database import async_session, create_tables, engine
from dealflow.routers.telegram import dispatch_update
from dealflow.services.lifecycle import LifecycleCoordinator
from dealflow.services.messaging import TelegramChannel
from dealflow.services.narrative import NarrativeGenerator

logger = logging.getLogger(__name__)

ERROR_BACKOFF_SECONDS = 5


async def poll_forever(coordinator: LifecycleCoordinator, channel: TelegramChannel, timeout: int = 30) -> None:
    """Fetch updates and handle each in its own task so chats never wait on each other."""
    offset: Optional[int] = None
    in_flight: Set[asyncio.Task] = set()

    while True:
        updates = await channel.get_updates(offset=offset, timeout=timeout)
        if updates is None:
            await asyncio.sleep(ERROR_BACKOFF_SECONDS)
            continue

        for update in updates:
            offset = update.update_id + 1
            task = asyncio.create_task(dispatch_update(update, coordinator))
            in_flight.add(task)
            task.add_done_callback(in_flight.discard)


async def main() -> None:
    if not settings.TELEGRAM_BOT_TOKEN:
        raise SystemExit("TELEGRAM_BOT_TOKEN is required for polling mode")

    await create_tables(engine)
    channel = TelegramChannel.from_settings()
    generator = NarrativeGenerator.from_settings()
    coordinator = LifecycleCoordinator.from_settings(async_session, channel, generator)
    logger.info(f"{settings.APP_NAME} is running (polling mode)")

    try:
        await poll_forever(coordinator, channel, timeout=settings.POLL_TIMEOUT_SECONDS)
    finally:
        await channel.aclose()
        await generator.aclose()
        await engine.dispose()


def run() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Poller stopped")


if __name__ == "__main__":
    run()
