"""
root.py: The driver's entry object.

SlackDriver owns the configuration and the two HTTP clients, and exposes the
accessors, actions and webhook handlers built on top of them. The host holds
one instance per workspace.
"""

import logging
from typing import Optional

import httpx

from .actions import ChannelActions, Triggers, UserActions, Views
from .config import SlackConfig
from .dispatcher import WebhookDispatcher, WebhookResult
from .emitter import Emitter, EventBus
from .errors import SlackApiError, SlackDecodeError
from .ids import IdGenerator
from .models import AuthTest
from .references import Ref, parse
from .resources import Channels, Members, Messages, Users
from .response_client import ResponseClient
from .slack_client import SlackClient

logger = logging.getLogger(__name__)


class SlackDriver:
    """
    Slack workspace exposed as channels, users, members, messages and views.

    Args:
        config: Token, signing secret and HTTP settings.
        emitter: Receives inbound events; defaults to an in-memory EventBus.
        view_ids: Generator for modal external ids.
        transport: Optional httpx transport for the Web API client.
    """

    def __init__(
        self,
        config: Optional[SlackConfig] = None,
        emitter: Optional[Emitter] = None,
        view_ids: Optional[IdGenerator] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or SlackConfig()
        self.emitter: Emitter = emitter if emitter is not None else EventBus()
        self.client = SlackClient(self._config, transport=transport)
        self.responder = ResponseClient(timeout=self._config.timeout)

        self.channels = Channels(self.client)
        self.users = Users(self.client)
        self.members = Members(self.client)
        self.messages = Messages(self.client)

        self.channel_actions = ChannelActions(self.client)
        self.user_actions = UserActions(self.client)
        self.triggers = Triggers(self.client, self.responder, view_ids=view_ids)
        self.views = Views(self.client)

        self.dispatcher = WebhookDispatcher(self.emitter)

    @property
    def config(self) -> SlackConfig:
        return self._config

    async def configure(self, api_token: str) -> str:
        """
        Store the API token and check it against ``auth.test``.

        Never raises; the outcome is described in the returned message.
        """
        self._config = self._config.with_token(api_token)
        self.client.use_config(self._config)

        try:
            auth = await self.client.call("GET", "auth.test", AuthTest)
        except SlackApiError as exc:
            logger.warning("configure failed: %s", exc.error)
            return f"Failed to configure: {exc.error}"
        except SlackDecodeError as exc:
            logger.warning("configure got an unreadable response: %s", exc)
            return f"Failed to parse slack response: {exc.raw}"
        except httpx.HTTPError as exc:
            logger.warning("configure request failed: %s", exc)
            return f"Failed to parse slack response: {exc}"

        logger.info("configured for team %s (%s)", auth.team, auth.team_id)
        return f'Configured for user "{auth.user}" ({auth.user_id}) on team "{auth.team}" ({auth.team_id})'

    def status(self) -> str:
        if not self._config.ready:
            return "Not ready: no Slack API token configured"
        return "Ready"

    async def webhook(self, method: Optional[str], path: Optional[str], body: Optional[str]) -> WebhookResult:
        return await self.dispatcher.webhook(method, path, body)

    async def handle_events(self, body: Optional[str]) -> WebhookResult:
        return await self.dispatcher.handle_events(body)

    async def handle_command(self, body: Optional[str]) -> Optional[str]:
        return await self.dispatcher.handle_command(body)

    def parse(self, name: str, value: str) -> list[Ref]:
        return parse(name, value)

    async def aclose(self) -> None:
        await self.client.aclose()
