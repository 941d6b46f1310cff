"""
resources.py: Read accessors for Slack collections.

Each accessor exposes ``one`` (fetch a single entity), ``page`` (fetch one
page plus a continuation to the next) and ``all`` (walk every page).
Channel-scoped collections take the channel id explicitly. Nothing is cached:
every call goes to Slack.
"""

import logging
from typing import List, Optional

from .errors import SlackApiError
from .models import (
    Channel,
    ChannelEnvelope,
    ChannelList,
    Member,
    MemberList,
    Message,
    MessageHistory,
    Page,
    User,
    UserEnvelope,
    UserList,
)
from .slack_client import SlackClient

logger = logging.getLogger(__name__)


class Channels:
    def __init__(self, client: SlackClient) -> None:
        self._client = client

    async def one(self, channel_id: str) -> Channel:
        resp = await self._client.call(
            "GET", "conversations.info", ChannelEnvelope, query={"channel": channel_id}
        )
        return resp.channel

    async def page(
        self,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        types: Optional[str] = None,
        exclude_archived: Optional[bool] = None,
    ) -> Page[Channel]:
        resp = await self._client.call(
            "GET",
            "conversations.list",
            ChannelList,
            query={
                "cursor": cursor,
                "limit": limit,
                "types": types,
                "exclude_archived": exclude_archived,
            },
        )
        continuation = None
        if resp.next_cursor:
            next_cursor = resp.next_cursor
            continuation = lambda: self.page(  # noqa: E731
                cursor=next_cursor, limit=limit, types=types, exclude_archived=exclude_archived
            )
        return Page(resp.channels, continuation)

    async def all(
        self,
        limit: Optional[int] = None,
        types: Optional[str] = None,
        exclude_archived: Optional[bool] = None,
    ) -> List[Channel]:
        first = await self.page(limit=limit, types=types, exclude_archived=exclude_archived)
        return await first.collect()


class Users:
    def __init__(self, client: SlackClient) -> None:
        self._client = client

    async def one(self, user_id: str) -> User:
        resp = await self._client.call("GET", "users.info", UserEnvelope, query={"user": user_id})
        return resp.user

    async def page(self, cursor: Optional[str] = None, limit: Optional[int] = None) -> Page[User]:
        resp = await self._client.call(
            "GET", "users.list", UserList, query={"cursor": cursor, "limit": limit}
        )
        continuation = None
        if resp.next_cursor:
            next_cursor = resp.next_cursor
            continuation = lambda: self.page(cursor=next_cursor, limit=limit)  # noqa: E731
        return Page(resp.members, continuation)

    async def all(self, limit: Optional[int] = None) -> List[User]:
        return await (await self.page(limit=limit)).collect()


class Members:
    """Users as members of one channel."""

    def __init__(self, client: SlackClient) -> None:
        self._client = client

    async def one(self, channel_id: str, user_id: str) -> Member:
        """
        Fetch the user record as a Member of ``channel_id``.

        Membership is not verified; ``channel_id`` only scopes the result.
        Walk ``page(channel_id)`` to check that the user is in the channel.
        """
        resp = await self._client.call("GET", "users.info", UserEnvelope, query={"user": user_id})
        return Member.model_validate(resp.user.model_dump())

    async def page(
        self,
        channel_id: str,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Page[Member]:
        resp = await self._client.call(
            "GET",
            "conversations.members",
            MemberList,
            query={"channel": channel_id, "cursor": cursor, "limit": limit},
        )
        continuation = None
        if resp.next_cursor:
            next_cursor = resp.next_cursor
            continuation = lambda: self.page(channel_id, cursor=next_cursor, limit=limit)  # noqa: E731
        return Page([Member(id=member_id) for member_id in resp.members], continuation)

    async def all(self, channel_id: str, limit: Optional[int] = None) -> List[Member]:
        return await (await self.page(channel_id, limit=limit)).collect()


class Messages:
    """
    Channel history.

    Pages are linked by timestamp rather than by cursor: the next page asks for
    messages older than the last one seen. An empty page, or ``has_more:
    false``, ends the walk.
    """

    def __init__(self, client: SlackClient) -> None:
        self._client = client

    async def one(self, channel_id: str, ts: str) -> Message:
        resp = await self._client.call(
            "GET",
            "conversations.history",
            MessageHistory,
            query={"channel": channel_id, "latest": ts, "inclusive": True, "limit": 1},
        )
        for message in resp.messages:
            if message.ts == ts:
                return message
        raise SlackApiError("message_not_found", method="conversations.history")

    async def page(
        self,
        channel_id: str,
        latest: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Page[Message]:
        resp = await self._client.call(
            "GET",
            "conversations.history",
            MessageHistory,
            query={"channel": channel_id, "latest": latest, "limit": limit},
        )
        continuation = None
        if resp.messages and resp.has_more is not False:
            oldest_seen = resp.messages[-1].ts
            continuation = lambda: self.page(channel_id, latest=oldest_seen, limit=limit)  # noqa: E731
        else:
            logger.debug("history of %s ends before %s", channel_id, latest)
        return Page(resp.messages, continuation)

    async def all(self, channel_id: str, latest: Optional[str] = None, limit: Optional[int] = None) -> List[Message]:
        """Full history older than ``latest``, newest first."""
        return await (await self.page(channel_id, latest=latest, limit=limit)).collect()
