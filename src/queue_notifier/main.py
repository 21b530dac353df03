"""Application entry point — Telegram bot, queue stream and diagnostics server."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

import uvicorn
from telegram.ext import Application

from queue_notifier.api.app import create_app
from queue_notifier.bot.handlers import TelegramFrontend
from queue_notifier.broadcast.channel import TelegramDeliveryChannel
from queue_notifier.config.settings import AppConfig
from queue_notifier.engine import NotifierEngine
from queue_notifier.errors.notifier_errors import ConfigError

logger = logging.getLogger(__name__)


def configure_logging(config: AppConfig) -> None:
    """Configure the root logger from ``log_level``."""
    level = "DEBUG" if config.debug else config.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every Bot API poll at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def run(config: AppConfig) -> None:
    """Run the bot until SIGINT/SIGTERM.

    Raises:
        ConfigError: If the bot token is not configured.
    """
    if not config.bot.token:
        msg = "QUEUENOTIFIER_BOT__TOKEN is required"
        raise ConfigError(msg)

    application = Application.builder().token(config.bot.token).build()
    channel = TelegramDeliveryChannel(application.bot, site_url=config.bot.site_url)
    engine = NotifierEngine(config, channel)
    frontend = TelegramFrontend(engine, config.bot)
    frontend.register(application)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    server: uvicorn.Server | None = None
    server_task: asyncio.Task[None] | None = None

    async with application:
        await engine.initialize()
        try:
            await frontend.publish_commands(application.bot)
            await application.start()
            assert application.updater is not None
            await application.updater.start_polling()
            logger.info("Bot started")

            if config.server.enabled:
                server = uvicorn.Server(
                    uvicorn.Config(
                        create_app(engine),
                        host=config.server.host,
                        port=config.server.port,
                        log_level=config.log_level.lower(),
                    ),
                )
                server_task = asyncio.create_task(server.serve())

            await stop.wait()
        finally:
            logger.info("Shutting down")
            if server is not None and server_task is not None:
                server.should_exit = True
                await server_task
            if application.updater is not None and application.updater.running:
                await application.updater.stop()
            if application.running:
                await application.stop()
            await engine.close()


def main() -> None:
    """Start the queue notifier."""
    config = AppConfig()
    configure_logging(config)
    asyncio.run(run(config))


if __name__ == "__main__":
    main()
