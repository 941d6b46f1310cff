"""
slack_client.py: Thin async HTTP client for the Slack Web API.

Builds authorized requests to ``https://slack.com/api/<method>`` and decodes
the JSON envelope into a pydantic model. No retries and no rate-limit
handling: failures surface to the caller.
"""

import json
import logging
from typing import Any, Mapping, Optional, Type, TypeVar, Union

import httpx
from pydantic import ValidationError

from .config import SlackConfig
from .errors import SlackApiError, SlackDecodeError
from .models import Envelope

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Envelope)

Body = Union[str, Mapping[str, Any], list, None]


def _clean_query(query: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Drop unset query parameters and render booleans the way Slack expects."""
    if not query:
        return {}
    cleaned: dict[str, Any] = {}
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


def _encode_body(body: Body) -> Optional[str]:
    if body is None or isinstance(body, str):
        return body
    return json.dumps(body)


class SlackClient:
    """
    Async client for the Slack Web API.

    Args:
        config: Token, base URL and timeout for outbound calls.
        transport: Optional httpx transport (tests pass an httpx.MockTransport).
    """

    def __init__(
        self,
        config: SlackConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    @property
    def config(self) -> SlackConfig:
        return self._config

    def use_config(self, config: SlackConfig) -> None:
        self._config = config

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._config.api_token}",
        }

    def _url(self, path: str) -> str:
        return self._config.api_url.rstrip("/") + "/" + path.lstrip("/")

    def _client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                timeout=self._config.timeout,
                transport=self._transport,
            )
        return self._http

    async def request(
        self,
        method: str,
        path: str,
        query: Optional[Mapping[str, Any]] = None,
        body: Body = None,
    ) -> httpx.Response:
        """
        Issue one request against the Web API and return the raw response.

        Args:
            method: HTTP verb ("GET" or "POST").
            path: Web API method name, e.g. "conversations.info".
            query: Query parameters; entries whose value is None are omitted.
            body: A dict/list is sent as JSON text, a str is sent unchanged.
        """
        params = _clean_query(query)
        logger.debug("SlackClient.request → %s %s params=%s", method, path, list(params))
        return await self._client().request(
            method,
            self._url(path),
            params=params or None,
            content=_encode_body(body),
            headers=self._headers(),
            timeout=self._config.timeout,
        )

    async def call(
        self,
        method: str,
        path: str,
        model: Type[E],
        query: Optional[Mapping[str, Any]] = None,
        body: Body = None,
    ) -> E:
        """
        Issue a request and decode the Slack envelope into ``model``.

        Raises:
            SlackDecodeError: The body is not JSON or does not fit ``model``.
            SlackApiError: Slack answered ``ok: false``.
        """
        resp = await self.request(method, path, query=query, body=body)
        try:
            data = resp.json()
        except ValueError as exc:
            raise SlackDecodeError(
                f"{path} returned a non-JSON body (HTTP {resp.status_code})", raw=resp.text
            ) from exc

        if not isinstance(data, dict):
            raise SlackDecodeError(f"{path} returned an unexpected body", raw=resp.text)

        if not data.get("ok"):
            error = str(data.get("error") or "unknown_error")
            logger.info("Slack call failed: method=%s error=%s", path, error)
            raise SlackApiError(error, method=path)

        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise SlackDecodeError(f"{path} response did not match {model.__name__}: {exc}", raw=resp.text) from exc

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
