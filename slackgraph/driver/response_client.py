"""
response_client.py: Posts replies to Slack ``response_url`` webhooks.

A response URL is handed out with every slash command and interactive
payload. It is not part of the Web API: no bearer token is sent, and Slack
only honours it for a short window after the interaction.
"""

import json as jsonlib
import logging
from typing import Any, Optional, Union

import aiohttp

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 30


class ResponseClient:
    """
    Async HTTP client for Slack response URLs.

    Args:
        timeout: Request timeout in seconds.
    """

    def __init__(self, timeout: float = _TIMEOUT_SECONDS) -> None:
        self._timeout = timeout

    async def respond(
        self,
        response_url: str,
        json: Union[str, dict[str, Any], None] = None,
        text: Optional[str] = None,
    ) -> str:
        """
        Post a reply to a response URL.

        Args:
            response_url: The URL Slack supplied with the interaction.
            json: Full message payload; a str is sent verbatim.
            text: Plain message text, used when ``json`` is not given.

        Returns:
            The response body text (Slack answers "ok").

        Raises:
            RuntimeError: On HTTP errors.
            aiohttp.ClientError: On network failures.
        """
        if json is None:
            body = jsonlib.dumps({"text": text or ""})
        elif isinstance(json, str):
            body = json
        else:
            body = jsonlib.dumps(json)

        logger.debug("ResponseClient.respond → %s", response_url.split("?", 1)[0])

        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self._timeout)
        ) as http:
            async with http.post(
                response_url,
                data=body,
                headers={"Content-Type": "application/json"},
            ) as resp:
                reply = await resp.text()
                if resp.status >= 400:
                    raise RuntimeError(
                        f"Slack response_url returned HTTP {resp.status}: {reply[:200]}"
                    )
                return reply
