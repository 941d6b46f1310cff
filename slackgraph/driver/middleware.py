"""
middleware.py: FastAPI dependency injection for the Slack driver.

Provides a singleton SlackDriver built from environment variables and YAML
config. Use get_slack_driver() as a FastAPI dependency in route handlers.

Example:
    from slackgraph.driver.middleware import get_slack_driver

    @app.post("/slack/events")
    async def slack_events(request: Request, driver: SlackDriver = Depends(get_slack_driver)):
        return await driver.handle_events((await request.body()).decode())
"""

import logging
from typing import Optional

from .config import SlackConfig
from .emitter import Emitter, EventBus, HttpEmitter
from .root import SlackDriver

logger = logging.getLogger(__name__)

# Module-level singleton, built on first use
_driver_instance: Optional[SlackDriver] = None


def get_slack_driver() -> SlackDriver:
    """
    Build (or return cached) SlackDriver from environment + YAML config.

    Configuration sources:
        - SLACK_API_TOKEN / SLACK_SIGNING_SECRET / SLACK_API_URL / SLACK_TIMEOUT_SECONDS
        - SLACK_EMIT_URL: forward inbound events to the host over HTTP
        - slack.yaml (or SLACK_DRIVER_CONFIG)

    Returns:
        Configured SlackDriver singleton.
    """
    global _driver_instance

    if _driver_instance is not None:
        return _driver_instance

    logger.info("Building SlackDriver from config...")
    config = SlackConfig.from_env()

    emitter: Emitter
    if config.emit_url:
        emitter = HttpEmitter(config.emit_url, timeout=config.timeout)
    else:
        emitter = EventBus()

    _driver_instance = SlackDriver(config=config, emitter=emitter)
    logger.info("SlackDriver ready: %s", _driver_instance.status())
    return _driver_instance


def reset_slack_driver() -> None:
    """
    Drop the cached SlackDriver.

    Call this in tests or after config changes to force a rebuild on the next
    call to get_slack_driver().
    """
    global _driver_instance
    _driver_instance = None
    logger.info("SlackDriver cache cleared.")


async def close_slack_driver() -> None:
    """Close the cached SlackDriver's HTTP client and drop it."""
    global _driver_instance
    if _driver_instance is None:
        return
    await _driver_instance.aclose()
    _driver_instance = None
    logger.info("SlackDriver closed.")
