"""Tests for webhook classification and event emission."""

import asyncio
import json
from urllib.parse import urlencode

from slackgraph.driver.dispatcher import PROCESSING, WebhookDispatcher
from slackgraph.driver.emitter import EventBus
from slackgraph.driver.references import channel_ref, command_ref, trigger_ref, view_ref


def make_dispatcher():
    bus = EventBus()
    return WebhookDispatcher(bus), bus


# ---------------------------------------------------------------------------
# 1. Events API
# ---------------------------------------------------------------------------
def test_url_verification_echoes_challenge_exactly():
    dispatcher, bus = make_dispatcher()
    body = json.dumps({"token": "t", "type": "url_verification", "challenge": "abc123"})

    result = asyncio.run(dispatcher.handle_events(body))

    assert result == {"status": 200, "body": {"challenge": "abc123"}}
    assert bus.history == []


def test_url_verification_on_generic_endpoint():
    dispatcher, _ = make_dispatcher()
    body = json.dumps({"type": "url_verification", "challenge": "3eZbrw1aBm2rZgRNFdxV2595E9CY3gmdALWMmHkvFXO7tYXAYM8P"})

    result = asyncio.run(dispatcher.webhook("POST", "/slack/webhook", body))

    assert result == {"status": 200, "body": {"challenge": "3eZbrw1aBm2rZgRNFdxV2595E9CY3gmdALWMmHkvFXO7tYXAYM8P"}}


def test_event_callback_is_emitted_to_its_channel():
    dispatcher, bus = make_dispatcher()
    envelope = {
        "type": "event_callback",
        "api_app_id": "A1",
        "team_id": "T1",
        "event": {"type": "message", "channel": "C1", "user": "U1", "text": "hi", "ts": "1700000001.000100"},
    }

    result = asyncio.run(dispatcher.handle_events(json.dumps(envelope)))

    assert result is None
    assert bus.history == [(channel_ref("C1"), "event", envelope)]


def test_event_without_channel_is_dropped():
    dispatcher, bus = make_dispatcher()
    envelope = {"type": "event_callback", "event": {"type": "team_join", "user": {"id": "U1"}}}

    asyncio.run(dispatcher.handle_events(envelope))

    assert bus.history == []


def test_malformed_event_body_returns_nothing():
    dispatcher, bus = make_dispatcher()

    assert asyncio.run(dispatcher.handle_events("{not json")) is None
    assert bus.history == []


# ---------------------------------------------------------------------------
# 2. Slash commands
# ---------------------------------------------------------------------------
def test_command_endpoint_emits_text_and_url_to_channel():
    dispatcher, bus = make_dispatcher()

    result = asyncio.run(dispatcher.handle_command("response_url=https://x&text=hello&channel_id=C1"))

    assert result == "Processing..."
    assert result == PROCESSING
    assert bus.history == [(channel_ref("C1"), "command", {"text": "hello", "url": "https://x"})]


def test_command_endpoint_without_channel_is_dropped():
    dispatcher, bus = make_dispatcher()

    assert asyncio.run(dispatcher.handle_command("text=hello")) is None
    assert bus.history == []


def test_generic_webhook_routes_command_to_app_listener():
    dispatcher, bus = make_dispatcher()
    form = {
        "api_app_id": "A1",
        "command": "/deploy",
        "text": "prod",
        "channel_name": "ops",
        "channel_id": "C7",
        "trigger_id": "13345224609.738474920",
        "response_url": "https://hooks.slack.com/commands/T1/1/abc",
    }

    result = asyncio.run(dispatcher.webhook("POST", "/slack/webhook", urlencode(form)))

    assert result == ""
    target, event, payload = bus.history[0]
    assert target == command_ref("A1", "/deploy")
    assert event == "command"
    assert payload["text"] == "prod"
    assert payload["channel"] == channel_ref(name="ops")
    assert payload["trigger"] == trigger_ref(
        "A1", trigger_id="13345224609.738474920", response_url="https://hooks.slack.com/commands/T1/1/abc"
    )


# ---------------------------------------------------------------------------
# 3. Interactive payloads
# ---------------------------------------------------------------------------
def test_view_submission_is_emitted_to_its_view():
    dispatcher, bus = make_dispatcher()
    payload = {
        "type": "view_submission",
        "api_app_id": "A1",
        "trigger_id": "12466734323.1395872398",
        "user": {"id": "U1", "name": "bob"},
        "team": {"id": "T1", "domain": "acme"},
        "view": {"external_id": "view-3", "state": {"values": {"b1": {"a1": {"value": "yes"}}}}},
    }
    body = urlencode({"payload": json.dumps(payload)})

    result = asyncio.run(dispatcher.webhook("POST", "/slack/webhook", body))

    assert result == ""
    target, event, emitted = bus.history[0]
    assert target == view_ref("A1", "view-3")
    assert event == "submit"
    assert json.loads(emitted["state"]) == {"values": {"b1": {"a1": {"value": "yes"}}}}
    assert emitted["user_id"] == "U1"
    assert emitted["user_name"] == "bob"
    assert emitted["team_id"] == "T1"
    assert emitted["team_domain"] == "acme"
    assert emitted["trigger"] == trigger_ref("A1", trigger_id="12466734323.1395872398")
    assert emitted["event"] == body


def test_unhandled_interactive_type_is_a_no_op():
    dispatcher, bus = make_dispatcher()
    body = urlencode({"payload": json.dumps({"type": "block_actions", "actions": []})})

    assert asyncio.run(dispatcher.webhook("POST", "/slack/webhook", body)) is None
    assert bus.history == []


def test_invalid_interactive_payload_is_dropped():
    dispatcher, bus = make_dispatcher()

    assert asyncio.run(dispatcher.webhook("POST", "/slack/webhook", "payload=%7Bnope")) is None
    assert bus.history == []


def test_missing_request_parts_return_nothing():
    dispatcher, bus = make_dispatcher()

    assert asyncio.run(dispatcher.webhook("POST", "/slack/webhook", "")) is None
    assert asyncio.run(dispatcher.webhook(None, "/slack/webhook", "text=x")) is None
    assert asyncio.run(dispatcher.webhook("POST", None, "text=x")) is None
    assert bus.history == []


def test_listeners_receive_events():
    dispatcher, bus = make_dispatcher()
    seen = []

    async def listener(target, event, payload):
        seen.append((target, event, payload["text"]))

    bus.subscribe(channel_ref("C1"), "*", listener)
    asyncio.run(dispatcher.handle_command("text=hello&channel_id=C1&response_url=https://x"))

    assert seen == [(channel_ref("C1"), "command", "hello")]


# ---------------------------------------------------------------------------
# 4. Malformed and unclassified deliveries
# ---------------------------------------------------------------------------
def test_event_callback_with_non_object_event_is_dropped():
    dispatcher, bus = make_dispatcher()

    result = asyncio.run(dispatcher.handle_events('{"type":"event_callback","event":"oops"}'))

    assert result is None
    assert bus.history == []


def test_event_callback_with_non_text_channel_is_dropped():
    dispatcher, bus = make_dispatcher()
    envelope = {"type": "event_callback", "event": {"type": "message", "channel": {"id": "C1"}}}

    assert asyncio.run(dispatcher.handle_events(envelope)) is None
    assert bus.history == []


def test_view_submission_with_non_object_fields_is_dropped():
    dispatcher, bus = make_dispatcher()
    payload = {"type": "view_submission", "api_app_id": "A1", "view": "x", "user": "U1"}
    body = urlencode({"payload": json.dumps(payload)})

    assert asyncio.run(dispatcher.webhook("POST", "/slack/webhook", body)) is None
    assert bus.history == []


def test_view_submission_without_external_id_is_dropped():
    dispatcher, bus = make_dispatcher()
    payload = {"type": "view_submission", "api_app_id": "A1", "view": {"state": {}}, "user": {"id": "U1"}}
    body = urlencode({"payload": json.dumps(payload)})

    assert asyncio.run(dispatcher.webhook("POST", "/slack/webhook", body)) is None
    assert bus.history == []


def test_plain_text_on_generic_endpoint_is_not_a_command():
    dispatcher, bus = make_dispatcher()

    assert asyncio.run(dispatcher.webhook("POST", "/slack/webhook", "hello")) is None
    assert bus.history == []


def test_json_without_command_on_generic_endpoint_is_dropped():
    dispatcher, bus = make_dispatcher()
    body = json.dumps({"api_app_id": "A1", "type": "app_rate_limited"})

    assert asyncio.run(dispatcher.webhook("POST", "/slack/webhook", body)) is None
    assert bus.history == []


def test_command_without_channel_name_falls_back_to_channel_id():
    dispatcher, bus = make_dispatcher()
    form = {"api_app_id": "A1", "command": "/deploy", "channel_id": "C7"}

    asyncio.run(dispatcher.webhook("POST", "/slack/webhook", urlencode(form)))

    _, _, payload = bus.history[0]
    assert payload["channel"] == channel_ref("C7")


def test_command_without_any_channel_has_no_channel_handle():
    dispatcher, bus = make_dispatcher()
    form = {"api_app_id": "A1", "command": "/deploy", "text": "prod"}

    result = asyncio.run(dispatcher.webhook("POST", "/slack/webhook", urlencode(form)))

    assert result == ""
    target, _, payload = bus.history[0]
    assert target == command_ref("A1", "/deploy")
    assert "channel" not in payload
