import asyncio
import signal

from dotenv import load_dotenv

from infrastructure.logging import configure_logging, get_module_logger
from infrastructure.services import (
    get_coordinator,
    get_directory_client,
    get_record_store,
    get_secret_store,
    get_settings,
)
from jobs import scheduled_tasks

load_dotenv()

logger = get_module_logger()


def list_configs(settings):
    """List all configuration settings keys"""
    config_settings = {"settings": []}

    for key, value in settings.model_dump().items():
        if isinstance(value, dict):
            config_settings[key] = list(value.keys())
        else:
            config_settings["settings"].append({key: value})

    logger.info("configuration_initialized", base_settings=config_settings["settings"])
    for key, value in config_settings.items():
        if key != "settings":
            logger.info("configuration_loaded", config_setting=key, keys=value)


async def shutdown():
    await get_directory_client().close()
    await get_secret_store().close()
    get_record_store().close()
    logger.info("application_shutdown")


async def main():
    """Main function to start the reconciler."""
    settings = get_settings()
    configure_logging(settings=settings)
    logger.info("application_startup", environment=settings.PREFIX or "production")
    list_configs(settings)

    coordinator = get_coordinator()
    await coordinator.ensure_schema()

    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop_requested.set)

    stop_run_continuously = scheduled_tasks.init(coordinator, settings.reconciliation)
    try:
        await stop_requested.wait()
    finally:
        if stop_run_continuously is not None:
            stop_run_continuously.set()
            await scheduled_tasks.stop_running_jobs()
        await shutdown()


if __name__ == "__main__":
    asyncio.run(main())
