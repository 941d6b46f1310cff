"""
references.py: Canonical handles for Slack entities.

A Ref is the address of an entity: the small set of scalar fields from which
the host can reconstruct it (a channel by id, a message by channel + ts, a
view by app + external_id). ``gref`` maps fetched objects back to their Ref;
``parse`` turns Slack's mention syntax into Refs.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from .models import Channel, Member, Message, User

logger = logging.getLogger(__name__)

# <@U123|bob>, <#C123|general>, <@U123>, or a bare id, matched at the end of the text
_MENTION_RE = re.compile(r"(?:<[@#]|^\s*)([A-Z0-9]{2,})(?:\|[^>]*)?(?:>|\s*)$")
_ID_PREFIXES = {
    "user": ("U", "W", "B"),
    "channel": ("C", "G", "D"),
}


@dataclass(frozen=True)
class Ref:
    """Address of one entity. Hashable and comparable."""

    kind: str
    address: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def of(cls, kind: str, **address: Any) -> "Ref":
        return cls(kind, tuple(sorted(address.items())))

    def __getitem__(self, key: str) -> Any:
        return dict(self.address)[key]

    def get(self, key: str, default: Any = None) -> Any:
        return dict(self.address).get(key, default)

    def as_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, **dict(self.address)}

    def __str__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.address)
        return f"{self.kind}({args})"


def app_ref(app_id: Optional[str]) -> Ref:
    return Ref.of("app", id=app_id)


def channel_ref(channel_id: Optional[str] = None, name: Optional[str] = None) -> Ref:
    if channel_id is None and name is None:
        raise ValueError("a channel ref needs an id or a name")
    if channel_id is None:
        return Ref.of("channel", name=name)
    return Ref.of("channel", id=channel_id)


def user_ref(user_id: str) -> Ref:
    return Ref.of("user", id=user_id)


def member_ref(channel_id: str, user_id: str) -> Ref:
    return Ref.of("member", channel=channel_id, id=user_id)


def message_ref(channel_id: str, ts: str) -> Ref:
    return Ref.of("message", channel=channel_id, ts=ts)


def view_ref(app_id: Optional[str], external_id: str) -> Ref:
    return Ref.of("view", app_id=app_id, external_id=external_id)


def trigger_ref(
    app_id: Optional[str],
    trigger_id: Optional[str] = None,
    response_url: Optional[str] = None,
) -> Ref:
    return Ref.of("trigger", app_id=app_id, trigger_id=trigger_id, response_url=response_url)


def command_ref(app_id: Optional[str], command: Optional[str]) -> Ref:
    return Ref.of("command", app_id=app_id, command=command)


def gref(obj: Any, channel_id: Optional[str] = None) -> Ref:
    """
    Map a fetched object back to its canonical Ref.

    Messages and members live inside a channel, and the Slack objects do not
    say which one, so ``channel_id`` must be supplied for them.

    Raises:
        ValueError: channel_id is missing for a channel-scoped object.
        TypeError: obj is not a driver model.
    """
    if isinstance(obj, Channel):
        return channel_ref(obj.id)
    if isinstance(obj, Member):
        if not channel_id:
            raise ValueError("a member ref needs the channel id")
        return member_ref(channel_id, obj.id)
    if isinstance(obj, User):
        return user_ref(obj.id)
    if isinstance(obj, Message):
        if not channel_id:
            raise ValueError("a message ref needs the channel id")
        return message_ref(channel_id, obj.ts)
    raise TypeError(f"no ref for {type(obj).__name__}")


def _mention_id(value: str, kind: str) -> Optional[str]:
    match = _MENTION_RE.search(value or "")
    if not match:
        return None
    entity_id = match.group(1)
    if not entity_id.startswith(_ID_PREFIXES[kind]):
        return None
    return entity_id


def parse(name: str, value: str) -> list[Ref]:
    """
    Resolve free text such as ``<@U123|bob>`` to entity Refs.

    Args:
        name: Entity type to look for ("user", "channel" or "message").
        value: Text ending in a Slack mention or a bare id.

    Returns:
        A list with the matching Ref, or an empty list.
    """
    if name in ("user", "channel"):
        entity_id = _mention_id(value, name)
        if entity_id is None:
            logger.debug("parse: no %s reference in %r", name, value)
            return []
        if name == "user":
            return [user_ref(entity_id)]
        return [channel_ref(entity_id)]

    if name == "message":
        # TODO: resolve message permalinks (archives/<channel>/p<ts>) once the host
        # settles on how message refs are typed in
        logger.warning("parse: message references are not supported yet")
        return []

    return []
