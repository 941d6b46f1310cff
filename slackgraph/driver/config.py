"""
config.py: Driver configuration.

Loading priority (highest first):
    1. SLACK_* environment variables (secrets belong here)
    2. slack.yaml (or the file named by SLACK_DRIVER_CONFIG), commit-safe defaults
    3. Built-in defaults

A missing API token is not an error: the driver reports itself as not ready
until ``SlackDriver.configure`` supplies one.
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://slack.com/api/"
DEFAULT_TIMEOUT_SECONDS = 30.0
_CONFIG_PATH = Path(__file__).with_name("slack.yaml")

_ENV_KEYS = {
    "api_token": "SLACK_API_TOKEN",
    "signing_secret": "SLACK_SIGNING_SECRET",
    "api_url": "SLACK_API_URL",
    "timeout": "SLACK_TIMEOUT_SECONDS",
    "emit_url": "SLACK_EMIT_URL",
}


@dataclass(frozen=True)
class SlackConfig:
    """Everything an outbound or inbound call needs to know about the workspace."""

    api_token: str = ""
    signing_secret: str = ""
    api_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    emit_url: str = ""

    @property
    def ready(self) -> bool:
        return bool(self.api_token)

    def with_token(self, api_token: str) -> "SlackConfig":
        return replace(self, api_token=api_token)

    def __repr__(self) -> str:
        # never print secrets
        return (
            f"SlackConfig(api_url={self.api_url!r}, timeout={self.timeout}, "
            f"token={'yes' if self.api_token else 'no'}, "
            f"signing={'yes' if self.signing_secret else 'no'})"
        )

    @classmethod
    def from_env(cls, path: Optional[Path] = None) -> "SlackConfig":
        """
        Build a SlackConfig from the YAML file overlaid with environment variables.

        Args:
            path: YAML file to read. Defaults to SLACK_DRIVER_CONFIG or slack.yaml
                beside this module.

        Returns:
            Configured SlackConfig.
        """
        values: dict[str, Any] = {}

        config_path = path or Path(os.environ.get("SLACK_DRIVER_CONFIG", "") or _CONFIG_PATH)
        if config_path.exists():
            try:
                raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
                section = raw.get("slack", {}) or {}
                values.update({k: v for k, v in section.items() if k in _ENV_KEYS})
                logger.info("SlackConfig: loaded %d keys from %s", len(values), config_path.name)
            except Exception as exc:  # noqa: BLE001
                logger.error("Failed to parse %s: %s", config_path, exc)

        for key, env_name in _ENV_KEYS.items():
            env_value = os.environ.get(env_name, "").strip()
            if env_value:
                values[key] = env_value

        if "timeout" in values:
            try:
                values["timeout"] = float(values["timeout"])
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid timeout %r", values["timeout"])
                del values["timeout"]

        config = cls(**{k: v for k, v in values.items() if v is not None})
        logger.info("SlackConfig: api_url=%s token=%s", config.api_url, "yes" if config.ready else "no")
        return config
