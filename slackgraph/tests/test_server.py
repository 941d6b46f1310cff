"""Tests for the FastAPI surface."""

import hashlib
import hmac
import json
import time

import pytest
from fastapi.testclient import TestClient

from helpers import FakeSlack
from slackgraph.driver.config import SlackConfig
from slackgraph.driver.emitter import EventBus
from slackgraph.driver import middleware
from slackgraph.driver.middleware import get_slack_driver
from slackgraph.driver.references import channel_ref
from slackgraph.driver.root import SlackDriver
from slackgraph.server import _verify_slack_signature, app

SECRET = "8f742231b10e8888abcd99yyyzzz85a5"
FORM = {"Content-Type": "application/x-www-form-urlencoded"}


def sign(body: str, timestamp: int, secret: str = SECRET) -> dict:
    basestring = f"v0:{timestamp}:{body}".encode()
    signature = "v0=" + hmac.new(secret.encode(), basestring, hashlib.sha256).hexdigest()
    return {"X-Slack-Request-Timestamp": str(timestamp), "X-Slack-Signature": signature}


@pytest.fixture
def make_client():
    def build(config: SlackConfig, slack: FakeSlack = None):
        driver = SlackDriver(config=config, emitter=EventBus(), transport=slack.transport if slack else None)
        app.dependency_overrides[get_slack_driver] = lambda: driver
        return TestClient(app), driver

    yield build
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# 1. Health and configure
# ---------------------------------------------------------------------------
def test_health_not_ready_without_token(make_client):
    client, _ = make_client(SlackConfig())

    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "not_ready"
    assert any("SLACK_API_TOKEN" in w for w in resp.json()["warnings"])


def test_health_ok_with_token_and_secret(make_client):
    client, _ = make_client(SlackConfig(api_token="xoxb-x", signing_secret=SECRET))

    assert client.get("/health").json() == {"status": "ok"}


def test_configure_endpoint(make_client):
    slack = FakeSlack()
    slack.reply("auth.test", {"ok": True, "user": "bot", "user_id": "U1", "team": "Acme", "team_id": "T1"})
    client, driver = make_client(SlackConfig(), slack)

    resp = client.post("/configure", json={"api_token": "xoxb-new"})

    assert resp.json() == {"message": 'Configured for user "bot" (U1) on team "Acme" (T1)'}
    assert driver.status() == "Ready"


# ---------------------------------------------------------------------------
# 2. Slack endpoints
# ---------------------------------------------------------------------------
def test_events_endpoint_echoes_challenge(make_client):
    client, _ = make_client(SlackConfig(api_token="xoxb-x"))

    resp = client.post("/slack/events", content=json.dumps({"type": "url_verification", "challenge": "abc123"}))

    assert resp.status_code == 200
    assert resp.json() == {"challenge": "abc123"}


def test_commands_endpoint_acknowledges_with_processing(make_client):
    client, driver = make_client(SlackConfig(api_token="xoxb-x"))

    resp = client.post("/slack/commands", content="response_url=https://x&text=hello&channel_id=C1", headers=FORM)

    assert resp.status_code == 200
    assert resp.text == "Processing..."
    assert driver.emitter.history == [(channel_ref("C1"), "command", {"text": "hello", "url": "https://x"})]


def test_webhook_endpoint_answers_unknown_payload_with_empty_body(make_client):
    client, driver = make_client(SlackConfig(api_token="xoxb-x"))

    resp = client.post("/slack/webhook", content='payload={"type":"block_actions"}', headers=FORM)

    assert resp.status_code == 200
    assert resp.text == ""
    assert driver.emitter.history == []


def test_malformed_event_callback_is_acknowledged_with_empty_body(make_client):
    client, driver = make_client(SlackConfig(api_token="xoxb-x"))

    resp = client.post("/slack/events", content='{"type":"event_callback","event":"oops"}')

    assert resp.status_code == 200
    assert resp.text == ""
    assert driver.emitter.history == []


# ---------------------------------------------------------------------------
# 3. Request signing
# ---------------------------------------------------------------------------
def test_signed_request_is_accepted(make_client):
    client, _ = make_client(SlackConfig(api_token="xoxb-x", signing_secret=SECRET))
    body = json.dumps({"type": "url_verification", "challenge": "abc123"})

    resp = client.post("/slack/events", content=body, headers=sign(body, int(time.time())))

    assert resp.json() == {"challenge": "abc123"}


def test_bad_signature_is_rejected(make_client):
    client, driver = make_client(SlackConfig(api_token="xoxb-x", signing_secret=SECRET))
    body = "response_url=https://x&text=hello&channel_id=C1"

    resp = client.post("/slack/commands", content=body, headers={**FORM, **sign(body, int(time.time()), secret="wrong")})

    assert resp.status_code == 401
    assert driver.emitter.history == []


def test_unsigned_request_is_rejected_when_secret_configured(make_client):
    client, _ = make_client(SlackConfig(api_token="xoxb-x", signing_secret=SECRET))

    resp = client.post("/slack/events", content='{"type":"url_verification","challenge":"x"}')

    assert resp.status_code == 401


def test_stale_timestamp_is_rejected():
    body = b"token=test"
    old = int(time.time()) - 600
    headers = sign(body.decode(), old)

    assert _verify_slack_signature(SECRET, headers, body) == "Request timestamp is too old"
    assert _verify_slack_signature(SECRET, headers, body, now=old + 10) is None


# ---------------------------------------------------------------------------
# 4. Shutdown
# ---------------------------------------------------------------------------
def test_shutdown_closes_the_cached_driver(monkeypatch):
    driver = SlackDriver(config=SlackConfig(api_token="xoxb-x"), emitter=EventBus(), transport=FakeSlack().transport)
    http = driver.client._client()
    monkeypatch.setattr(middleware, "_driver_instance", driver)

    with TestClient(app):
        pass

    assert http.is_closed
    assert middleware._driver_instance is None
