"""
Chaos Sync - console runner.

Connects to a Chaos Organizer backend, loads the first page of a category and
logs every change pushed by the server until interrupted.

Run with:
    python -m chaos_sync --api-url http://localhost:3000
"""

import argparse
import asyncio
import getpass
import logging

from chaos_sync.api import MessagesApiClient
from chaos_sync.config import settings
from chaos_sync.sync import LiveUpdateChannel, ReconnectPolicy, SyncCoordinator

logger = logging.getLogger("chaos_sync")


async def _prompt_password(label: str) -> str | None:
    """Ask for a password on the terminal without blocking the event loop."""
    password = await asyncio.to_thread(getpass.getpass, f"{label}: ")
    return password or None


def _log_render(items):
    logger.info(f"Showing {len(items)} messages")
    for item in items:
        logger.info(f"  {item!r}")


def _log_prepend(items):
    logger.info(f"Loaded {len(items)} older messages")


def _log_insert(item):
    logger.info(f"New message: {item!r}")


def _log_update(item):
    logger.info(f"Updated message: {item!r}")


def _log_remove(message_id):
    logger.info(f"Removed message {message_id}")


def _log_error(error):
    logger.warning(f"Sync error: {error}")


async def run(api_url: str, category_id: str) -> None:
    api = MessagesApiClient(base_url=api_url)
    channel = LiveUpdateChannel(
        url=settings.model_copy(update={"api_url": api_url}).ws_url,
        policy=ReconnectPolicy.from_settings(),
    )
    coordinator = SyncCoordinator(
        api,
        channel=channel,
        prompt_password=_prompt_password,
        on_render=_log_render,
        on_prepend=_log_prepend,
        on_insert=_log_insert,
        on_update=_log_update,
        on_remove=_log_remove,
        on_error=_log_error,
    )

    await coordinator.start()
    if category_id != coordinator.category_id:
        await coordinator.select_category(category_id)

    try:
        await asyncio.Event().wait()
    finally:
        await coordinator.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Follow a Chaos Organizer message list from the terminal")
    parser.add_argument("--api-url", default=settings.api_url, help="Backend URL")
    parser.add_argument("--category", default="all", help="all, images, videos, audio, files, links or favorites")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info(f"Starting Chaos Sync against {args.api_url}")

    try:
        asyncio.run(run(args.api_url, args.category))
    except KeyboardInterrupt:
        logger.info("Chaos Sync stopped")


if __name__ == "__main__":
    main()
