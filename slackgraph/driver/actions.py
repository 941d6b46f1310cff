"""
actions.py: Side-effecting Slack calls, scoped to the entity they act on.

Each action takes its owner's address explicitly (a channel id, a trigger or
view Ref) and issues one write to the Web API. Responses are only checked for
the ``ok`` envelope.
"""

import json
import logging
from typing import Any, Optional, Sequence, Union

from .errors import SlackDecodeError
from .ids import IdGenerator, MonotonicIds
from .models import Channel, ChannelEnvelope, Envelope, Message, PostedMessage, ViewEnvelope
from .references import Ref, view_ref
from .response_client import ResponseClient
from .slack_client import SlackClient

logger = logging.getLogger(__name__)

ViewJson = Union[str, dict[str, Any]]


def _load_view(view: ViewJson) -> dict[str, Any]:
    if isinstance(view, dict):
        return dict(view)
    try:
        loaded = json.loads(view)
    except ValueError as exc:
        raise SlackDecodeError("view is not valid JSON", raw=view) from exc
    if not isinstance(loaded, dict):
        raise SlackDecodeError("view must be a JSON object", raw=view)
    return loaded


def _message_body(
    channel: str,
    text: Optional[str],
    blocks: Optional[Sequence[dict[str, Any]]],
    thread_ts: Optional[str] = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {"channel": channel}
    if text is not None:
        body["text"] = text
    if blocks is not None:
        body["blocks"] = list(blocks)
    if thread_ts is not None:
        body["thread_ts"] = thread_ts
    return body


def _posted(resp: PostedMessage) -> Message:
    if resp.message is not None:
        return resp.message.model_copy(update={"ts": resp.ts})
    return Message(ts=resp.ts)


class ChannelActions:
    def __init__(self, client: SlackClient) -> None:
        self._client = client

    async def create(self, name: str, is_private: bool = False) -> Channel:
        resp = await self._client.call(
            "POST", "conversations.create", ChannelEnvelope, body={"name": name, "is_private": is_private}
        )
        logger.info("created channel %s (%s)", resp.channel.name, resp.channel.id)
        return resp.channel

    async def invite(self, channel_id: str, user_ids: Sequence[str]) -> Channel:
        resp = await self._client.call(
            "POST",
            "conversations.invite",
            ChannelEnvelope,
            body={"channel": channel_id, "users": ",".join(user_ids)},
        )
        return resp.channel

    async def leave(self, channel_id: str) -> None:
        await self._client.call("POST", "conversations.leave", Envelope, body={"channel": channel_id})

    async def send_message(
        self,
        channel_id: str,
        text: Optional[str] = None,
        blocks: Optional[Sequence[dict[str, Any]]] = None,
        thread_ts: Optional[str] = None,
    ) -> Message:
        """Post into a channel; ``channel_id`` may also be a channel name."""
        resp = await self._client.call(
            "POST",
            "chat.postMessage",
            PostedMessage,
            body=_message_body(channel_id, text, blocks, thread_ts),
        )
        return _posted(resp)


class UserActions:
    def __init__(self, client: SlackClient) -> None:
        self._client = client

    async def open_dm(self, user_id: str) -> Channel:
        resp = await self._client.call(
            "POST", "conversations.open", ChannelEnvelope, body={"users": user_id}
        )
        return resp.channel

    async def send_message(
        self,
        user_id: str,
        text: Optional[str] = None,
        blocks: Optional[Sequence[dict[str, Any]]] = None,
    ) -> Message:
        """Open (or reuse) the direct-message channel with the user and post into it."""
        channel = await self.open_dm(user_id)
        resp = await self._client.call(
            "POST", "chat.postMessage", PostedMessage, body=_message_body(channel.id, text, blocks)
        )
        return _posted(resp)


class Triggers:
    """
    Actions available for the few seconds after a user interaction.

    Args:
        client: Web API client.
        responder: Client for response URLs.
        view_ids: Generator for view external ids.
    """

    def __init__(
        self,
        client: SlackClient,
        responder: ResponseClient,
        view_ids: Optional[IdGenerator] = None,
    ) -> None:
        self._client = client
        self._responder = responder
        self._view_ids = view_ids or MonotonicIds()

    async def respond(
        self,
        trigger: Ref,
        json: Union[str, dict[str, Any], None] = None,
        text: Optional[str] = None,
    ) -> str:
        response_url = trigger.get("response_url")
        if not response_url:
            raise ValueError(f"{trigger} has no response_url")
        return await self._responder.respond(response_url, json=json, text=text)

    async def open_view(self, trigger: Ref, view: ViewJson) -> Ref:
        """
        Open a modal for the interaction.

        The view keeps its own ``external_id`` if it has one; otherwise a new
        id is generated. Returns the Ref under which the submission will be
        emitted.
        """
        trigger_id = trigger.get("trigger_id")
        if not trigger_id:
            raise ValueError(f"{trigger} has no trigger_id")
        payload = _load_view(view)
        external_id = payload.get("external_id") or self._view_ids()
        payload["external_id"] = external_id
        await self._client.call(
            "POST", "views.open", ViewEnvelope, body={"trigger_id": trigger_id, "view": payload}
        )
        logger.info("opened view external_id=%s", external_id)
        return view_ref(trigger.get("app_id"), external_id)


class Views:
    def __init__(self, client: SlackClient) -> None:
        self._client = client

    async def update(self, view: Ref, content: ViewJson) -> dict[str, Any]:
        external_id = view["external_id"]
        payload = _load_view(content)
        payload["external_id"] = external_id
        resp = await self._client.call(
            "POST", "views.update", ViewEnvelope, body={"external_id": external_id, "view": payload}
        )
        return resp.view
