"""Main entry point for the console pipeline bot.

Reads events from stdin, runs them through the incoming middlewares and
prints whatever the outgoing middlewares let through.
"""
import logging
import os

import trio

from config import ConfigManager
from core.pipeline import Pipeline
from features.admin_controls import AdminControlsFeature
from features.console import ConsoleOutput, echo, read_events, report_failure
from features.licensing import LicenseGate, license_factory


logger = logging.getLogger(__name__)


def build_pipeline(config_mgr: ConfigManager) -> Pipeline:
    """Create the pipeline and register the bundled middlewares."""
    pipeline_cfg = config_mgr.section("pipeline")
    pipeline = Pipeline(
        data_dir=pipeline_cfg.get("data_dir", "data"),
        customizations_file=pipeline_cfg.get("customizations_file", "middlewares.json"),
        license_middleware=license_factory(
            LicenseGate(config_mgr.section("license").get("platforms"))
        ),
    )

    admin_cfg = config_mgr.section("admin")
    if admin_cfg.get("enabled", True):
        operators = frozenset(str(o) for o in admin_cfg.get("operators") or [])
        pipeline.register_middleware(
            {
                "name": "admin_controls",
                "type": "incoming",
                "order": -100,  # admin first
                "handler": AdminControlsFeature(operators=operators),
            }
        )

    pipeline.register_middleware(
        {
            "name": "console_echo",
            "type": "incoming",
            "handler": echo,
            "enabled": config_mgr.section("console").get("echo", True),
        }
    )
    pipeline.register_middleware(
        {
            "name": "console_failure_report",
            "type": "incoming",
            "kind": "recovery",
            "handler": report_failure,
        }
    )
    pipeline.register_middleware(
        {
            "name": "console_output",
            "type": "outgoing",
            "order": 100,
            "handler": ConsoleOutput(),
        }
    )
    return pipeline


async def main() -> None:
    """Initialize and run the bot until stdin is closed."""
    config_path = os.environ.get("BOT_CONFIG", "config.yaml")
    config_mgr = ConfigManager(config_path)
    config = config_mgr.load()

    logging.basicConfig(
        level=config_mgr.section("logging").get("level", "INFO"),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting pipeline bot with config %s", config_path)
    logger.debug("Config sections: %s", sorted(config))

    pipeline = build_pipeline(config_mgr)
    pipeline.load_middlewares()

    async for event in read_events():
        logger.debug("Received event: type=%s", event.get("type"))
        try:
            await pipeline.incoming.dispatch(event)
        except TypeError:
            # Malformed events are dropped; the reader keeps going
            logger.exception("Rejected event")
    logger.info("Input closed, shutting down")


def run() -> None:
    """Console script entry point."""
    trio.run(main)


if __name__ == "__main__":
    run()
