"""Application entry point and bootstrap.

This module initializes all application components, wires dependencies,
and provides the main entry point for running the bot.
"""

import asyncio
import logging
from typing import Any

from fastapi import FastAPI, HTTPException
from telegram.ext import Application as TelegramApplication

from c64bot.config import BotConfig
from c64bot.errors import StorageError
from c64bot.handlers.registry import HandlerRegistry, initialize_handlers
from c64bot.logging_filters import configure_logging, install_uvicorn_access_log_filters
from c64bot.observability.error_log_file import setup_error_log_file
from c64bot.observability.health_state import snapshot as health_snapshot
from c64bot.routers import create_files_router
from c64bot.scheduler.system_scheduler import SystemScheduler
from c64bot.services.artifact_generator import ArtifactGenerator
from c64bot.services.attachment_pipeline import make_pipeline_factory
from c64bot.services.download_service import DownloadService
from c64bot.services.reply_builder import ReplyBuilder
from c64bot.services.retention_sweeper import RetentionSweeper
from c64bot.services.storage_service import ObjectStore
from c64bot.telegram.bot import TelegramBotInterface

configure_logging()
logger = logging.getLogger(__name__)


class Application:
    """Main application container.

    Manages all application components and their lifecycle.
    Provides dependency injection and graceful shutdown.
    """

    def __init__(
        self,
        config: BotConfig,
        *,
        s3_client: Any | None = None,
        telegram_application: TelegramApplication | None = None,
    ) -> None:
        """Initialize the application with configuration.

        Args:
            config: Application configuration.
            s3_client: Optional prebuilt boto3 S3 client.
            telegram_application: Optional prebuilt python-telegram-bot application.
        """
        self.config = config
        self._s3_client = s3_client
        self._telegram_application = telegram_application

        self.fastapi_app: FastAPI | None = None

        # Services
        self.downloader: DownloadService | None = None
        self.store: ObjectStore | None = None
        self.generator: ArtifactGenerator | None = None
        self.reply_builder: ReplyBuilder | None = None
        self.sweeper: RetentionSweeper | None = None

        # Dispatch
        self.registry = HandlerRegistry()

        # Telegram bot
        self.telegram_bot: TelegramBotInterface | None = None

        # System scheduler (retention sweep)
        self.system_scheduler: SystemScheduler | None = None

    async def setup(self) -> None:
        """Initialize all application components."""
        logger.info("Setting up application components...")

        # Initialize error log file handler early to capture setup errors
        setup_error_log_file(self.config)

        self.downloader = DownloadService(timeout_seconds=self.config.download_timeout_seconds)
        self.store = ObjectStore(self.config, client=self._s3_client)
        self.generator = ArtifactGenerator(self.config, self.downloader)
        self.reply_builder = ReplyBuilder(self.config)
        logger.info("Services initialized")

        pipeline_factory = make_pipeline_factory(
            config=self.config,
            downloader=self.downloader,
            store=self.store,
            generator=self.generator,
            reply_builder=self.reply_builder,
        )
        initialize_handlers(self.registry, self.config, pipeline_factory)

        self.sweeper = RetentionSweeper(
            self.store,
            self.config.retention_policy,
            extensions=self.config.normalized_extensions,
            sweep_screenshots=self.config.retention_sweep_screenshots,
        )
        self.system_scheduler = SystemScheduler(
            self.sweeper, interval_seconds=self.config.retention_interval_seconds
        )
        logger.info("System scheduler initialized")

        if self.config.telegram_bot_token or self._telegram_application is not None:
            self.telegram_bot = TelegramBotInterface(
                self.config, self.registry, application=self._telegram_application
            )
            logger.info("Telegram bot initialized")
        else:
            logger.warning("No Telegram bot token configured, chat adapter disabled")

        logger.info("Application setup complete")

    def create_fastapi_app(self) -> FastAPI:
        """Create the FastAPI app with the file routes and health check."""
        self.fastapi_app = FastAPI(
            title="C64 Bot",
            description="Commodore 64 program sharing bot with a web emulator link",
            version="1.0.0",
        )

        if self.store:
            self.fastapi_app.include_router(create_files_router(self.store, self.config))
            logger.info("Files router registered")

        @self.fastapi_app.get("/health")
        async def health_check():
            """Health check endpoint."""
            snap = health_snapshot(stall_seconds=self.config.health_stall_seconds)
            if snap.status != "healthy":
                raise HTTPException(status_code=503, detail=snap.to_dict())
            return snap.to_dict()

        return self.fastapi_app

    async def start_background_services(self) -> None:
        """Prepare the bucket and start the Telegram bot and retention scheduler."""
        logger.info("Starting background services...")

        if self.store:
            try:
                await self.store.ensure_bucket_exists()
            except StorageError as e:
                # Uploads retry bucket setup on first use.
                logger.error("Bucket setup failed at startup: %s", e)

        if self.telegram_bot:
            await self.telegram_bot.start()
            logger.info("Telegram bot started")

        if self.system_scheduler:
            await self.system_scheduler.start()
            logger.info("System scheduler started")

    async def shutdown(self) -> None:
        """Gracefully shutdown all application components."""
        logger.info("Initiating graceful shutdown...")

        if self.system_scheduler and self.system_scheduler.is_running:
            await self.system_scheduler.stop()
            logger.info("System scheduler stopped")

        if self.telegram_bot:
            await self.telegram_bot.stop()
            logger.info("Telegram bot stopped")

        logger.info("Graceful shutdown complete")


# Global application instance
_app: Application | None = None


async def create_app(config: BotConfig | None = None) -> Application:
    """Create and initialize the application.

    Args:
        config: Optional configuration. If not provided, loads from
                config.json with environment variable overrides.

    Returns:
        Initialized Application instance.
    """
    global _app

    if config is None:
        config = BotConfig.from_json_file()

    _app = Application(config)
    await _app.setup()
    _app.create_fastapi_app()

    return _app


async def main() -> None:
    """Run the bot and the HTTP API until shutdown is requested."""
    import uvicorn

    logger.info("Starting C64 bot...")

    try:
        config = BotConfig.from_json_file()
        logger.info("Configuration loaded")

        app = await create_app(config)
        await app.start_background_services()

        logger.info(
            "Application running. API available at http://%s:%d",
            config.api_host,
            config.api_port,
        )

        uvicorn_config = uvicorn.Config(
            app.fastapi_app,
            host=config.api_host,
            port=config.api_port,
            log_level="info",
        )

        # Ensure Uvicorn logging is configured, then suppress noisy healthcheck access logs.
        uvicorn_config.load()
        install_uvicorn_access_log_filters()

        server = uvicorn.Server(uvicorn_config)
        await server.serve()

    except Exception as e:
        logger.exception("Application error: %s", e)
        raise
    finally:
        if _app:
            await _app.shutdown()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
