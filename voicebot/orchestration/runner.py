from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from dotenv import load_dotenv

from voicebot.core.config import Settings, get_settings
from voicebot.core.dependencies import build_bot
from voicebot.core.errors import ConfigurationError
from voicebot.core.logging import log_context, setup_logging
from voicebot.orchestration.pipeline import UpdatePipeline
from voicebot.schemas.events import OutboundMessage
from voicebot.schemas.telegram import TelegramUpdate
from voicebot.services.telegram import TelegramClient, TelegramError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Polling configuration
# ---------------------------------------------------------------------------
POLL_ERROR_SLEEP_SECONDS = 5


async def process_update(update: TelegramUpdate, pipeline: UpdatePipeline, telegram: TelegramClient) -> None:
    """Run one update through the pipeline, sending each reply as soon as it exists."""
    event = update.to_event()
    if event is None:
        logger.debug("ignoring update without a message update_id=%s", update.update_id)
        return

    async def send(message: OutboundMessage) -> None:
        await telegram.send_message(message.chat_id, message.text)

    with log_context(update_id=update.update_id):
        await pipeline.handle(event, on_reply=send)


def _drain_completed_tasks(tasks: set[asyncio.Task[None]]) -> None:
    done_tasks = {task for task in tasks if task.done()}
    for task in done_tasks:
        tasks.remove(task)
        if task.cancelled():
            continue
        exc = task.exception()
        if exc is not None:
            logger.error("update task crashed unexpectedly", exc_info=exc)


async def _sleep_or_stop(stop_event: asyncio.Event, seconds: float) -> None:
    with contextlib.suppress(TimeoutError):
        await asyncio.wait_for(stop_event.wait(), timeout=seconds)


async def _poll_once(
    telegram: TelegramClient,
    *,
    offset: int | None,
    timeout: int,
    limit: int,
    stop_event: asyncio.Event,
) -> list[TelegramUpdate] | None:
    """Long-poll for updates; returns None when the stop event fires first."""
    poll_task = asyncio.create_task(telegram.get_updates(offset=offset, timeout=timeout, limit=limit))
    stop_task = asyncio.create_task(stop_event.wait())
    try:
        await asyncio.wait({poll_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await stop_task

    if not poll_task.done():
        poll_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await poll_task
        return None
    return poll_task.result()


async def _wait_for_slot_or_stop(tasks: set[asyncio.Task[None]], stop_event: asyncio.Event) -> None:
    stop_task = asyncio.create_task(stop_event.wait())
    try:
        await asyncio.wait({*tasks, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await stop_task


async def _drain_on_shutdown(tasks: set[asyncio.Task[None]], grace_seconds: float) -> None:
    if not tasks:
        return

    logger.info("waiting for in-flight updates count=%s grace_seconds=%s", len(tasks), grace_seconds)
    _done, pending = await asyncio.wait(tasks, timeout=max(grace_seconds, 0))
    if pending:
        logger.warning("cancelling in-flight updates count=%s", len(pending))
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
    _drain_completed_tasks(tasks)


async def run_polling(
    telegram: TelegramClient,
    pipeline: UpdatePipeline,
    *,
    stop_event: asyncio.Event,
    poll_timeout_seconds: int = 30,
    max_concurrent_updates: int = 8,
    shutdown_grace_seconds: float = 30.0,
) -> None:
    """
    Long-polling delivery loop.

    Each update runs in its own task; at most ``max_concurrent_updates`` are in
    flight. Once ``stop_event`` is set no further updates are fetched, in-flight
    ones get ``shutdown_grace_seconds`` to finish and are then cancelled.
    """
    running_tasks: set[asyncio.Task[None]] = set()
    max_concurrent_updates = max(1, max_concurrent_updates)
    offset: int | None = None

    logger.info("polling started max_concurrent_updates=%s", max_concurrent_updates)
    while not stop_event.is_set():
        _drain_completed_tasks(running_tasks)
        if len(running_tasks) >= max_concurrent_updates:
            await _wait_for_slot_or_stop(running_tasks, stop_event)
            continue

        try:
            updates = await _poll_once(
                telegram,
                offset=offset,
                timeout=poll_timeout_seconds,
                limit=max_concurrent_updates - len(running_tasks),
                stop_event=stop_event,
            )
        except TelegramError as exc:
            logger.warning("getUpdates failed, retrying in %ss error=%s", POLL_ERROR_SLEEP_SECONDS, exc.detail)
            await _sleep_or_stop(stop_event, POLL_ERROR_SLEEP_SECONDS)
            continue

        if updates is None:
            break

        for update in updates:
            offset = update.update_id + 1
            task = asyncio.create_task(process_update(update, pipeline, telegram))
            running_tasks.add(task)

    logger.info("polling stopped")
    await _drain_on_shutdown(running_tasks, shutdown_grace_seconds)


async def _serve(settings: Settings) -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

    bot = build_bot(settings)
    try:
        # getUpdates is rejected while a webhook is registered.
        try:
            await bot.telegram.delete_webhook()
        except TelegramError as exc:
            logger.warning("could not remove webhook error=%s", exc.detail)

        await run_polling(
            bot.telegram,
            bot.pipeline,
            stop_event=stop_event,
            poll_timeout_seconds=settings.poll_timeout_seconds,
            max_concurrent_updates=settings.max_concurrent_updates,
            shutdown_grace_seconds=settings.shutdown_grace_seconds,
        )
    finally:
        await bot.aclose()


def main() -> None:
    load_dotenv()
    setup_logging()
    try:
        settings = get_settings()
    except ConfigurationError as exc:
        logger.error("%s", exc.detail)
        raise SystemExit(1) from exc

    logger.info("The bot has started.")
    asyncio.run(_serve(settings))


if __name__ == "__main__":
    main()
