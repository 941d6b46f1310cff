"""
models.py: Typed projections of Slack Web API responses.

Entities keep every field Slack sends (``extra="allow"``) but only the fields
the driver relies on are declared. Envelope models describe the outer shape
of each Web API method so that a malformed response fails at the HTTP boundary
instead of deep inside an accessor.
"""

from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


# ── Entities ─────────────────────────────────────────────────────────────────


class SlackObject(BaseModel):
    model_config = ConfigDict(extra="allow")


class Channel(SlackObject):
    id: str
    name: Optional[str] = None
    is_private: Optional[bool] = None
    is_im: Optional[bool] = None


class UserProfile(SlackObject):
    display_name: Optional[str] = None
    real_name: Optional[str] = None
    email: Optional[str] = None


class User(SlackObject):
    id: str
    name: Optional[str] = None
    real_name: Optional[str] = None
    team_id: Optional[str] = None
    is_bot: Optional[bool] = None
    profile: UserProfile = Field(default_factory=UserProfile)


class Member(SlackObject):
    """A user seen through a channel's membership list."""

    id: str


class Message(SlackObject):
    ts: str
    text: str = ""
    user: Optional[str] = None
    thread_ts: Optional[str] = None


# ── Envelopes ────────────────────────────────────────────────────────────────


class ResponseMetadata(SlackObject):
    next_cursor: str = ""


class Envelope(SlackObject):
    ok: bool
    error: Optional[str] = None
    response_metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)

    @property
    def next_cursor(self) -> str:
        return self.response_metadata.next_cursor


class AuthTest(Envelope):
    url: Optional[str] = None
    user: str = ""
    user_id: str = ""
    team: str = ""
    team_id: str = ""
    bot_id: Optional[str] = None


class ChannelEnvelope(Envelope):
    channel: Channel


class ChannelList(Envelope):
    channels: List[Channel] = []


class UserEnvelope(Envelope):
    user: User


class UserList(Envelope):
    members: List[User] = []


class MemberList(Envelope):
    members: List[str] = []


class MessageHistory(Envelope):
    messages: List[Message] = []
    has_more: Optional[bool] = None


class PostedMessage(Envelope):
    channel: str
    ts: str
    message: Optional[Message] = None


class ViewEnvelope(Envelope):
    view: dict[str, Any] = {}


# ── Pagination ───────────────────────────────────────────────────────────────


@dataclass
class Page(Generic[T]):
    """
    One page of a Slack collection.

    ``next`` is a forward-only continuation: it returns the following page, or
    None once Slack reports no further results. No request is issued after the
    end has been reached.
    """

    items: List[T]
    continuation: Optional[Callable[[], Awaitable["Page[T]"]]] = None

    @property
    def has_next(self) -> bool:
        return self.continuation is not None

    async def next(self) -> Optional["Page[T]"]:
        if self.continuation is None:
            return None
        return await self.continuation()

    async def iter_pages(self) -> AsyncIterator["Page[T]"]:
        """Yield this page and every following page."""
        page: Optional[Page[T]] = self
        while page is not None:
            yield page
            page = await page.next()

    async def collect(self) -> List[T]:
        """Walk all remaining pages and return their items."""
        items: List[T] = []
        async for page in self.iter_pages():
            items.extend(page.items)
        return items
