"""
slackgraph.driver: Slack workspace as a graph of addressable resources

Outbound calls go to the Slack Web API with a bearer token and come back as
typed models; inbound webhooks are classified and emitted to the entity they
address.

Flow:
    host → SlackDriver → accessor / action → SlackClient → Slack Web API
    Slack → server → WebhookDispatcher → Emitter → host
"""

from .actions import ChannelActions, Triggers, UserActions, Views
from .config import SlackConfig
from .dispatcher import WebhookDispatcher
from .emitter import Emitter, EventBus, HttpEmitter
from .errors import SlackApiError, SlackDecodeError, SlackError
from .ids import MonotonicIds, SequentialIds, random_ids
from .middleware import get_slack_driver
from .models import Channel, Member, Message, Page, User
from .references import Ref, gref, parse
from .resources import Channels, Members, Messages, Users
from .response_client import ResponseClient
from .root import SlackDriver
from .slack_client import SlackClient

__all__ = [
    "Channel",
    "ChannelActions",
    "Channels",
    "Emitter",
    "EventBus",
    "HttpEmitter",
    "Member",
    "Members",
    "Message",
    "Messages",
    "MonotonicIds",
    "Page",
    "Ref",
    "ResponseClient",
    "SequentialIds",
    "SlackApiError",
    "SlackClient",
    "SlackConfig",
    "SlackDecodeError",
    "SlackDriver",
    "SlackError",
    "Triggers",
    "User",
    "UserActions",
    "Users",
    "Views",
    "WebhookDispatcher",
    "get_slack_driver",
    "gref",
    "parse",
    "random_ids",
]
