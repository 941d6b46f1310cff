"""
dispatcher.py: Classifies inbound Slack deliveries and re-emits them.

Slack reaches the driver through three endpoints:

    events    Events API JSON envelope (url_verification, event_callback)
    commands  slash commands, form-encoded
    webhook   generic: JSON events, slash commands, or interactive payloads
              (a form field ``payload`` holding JSON), told apart by shape

Handled deliveries are emitted to the entity they address: an event to its
channel, a command to the app's command listener, a modal submission to its
view. Nothing here raises on bad input; a delivery that cannot be decoded or
classified is logged and dropped.
"""

import json
import logging
from typing import Any, Optional, Union
from urllib.parse import parse_qs

from .emitter import Emitter
from .references import app_ref, channel_ref, command_ref, trigger_ref, view_ref

logger = logging.getLogger(__name__)

WebhookResult = Union[str, dict[str, Any], None]

PROCESSING = "Processing..."


def _parse_form(body: str) -> dict[str, str]:
    return {key: values[-1] for key, values in parse_qs(body, keep_blank_values=True).items()}


def _parse_body(body: str) -> Optional[dict[str, Any]]:
    """Decode a JSON object or a URL-encoded form; None if neither fits."""
    if body.lstrip().startswith("{"):
        try:
            data = json.loads(body)
        except ValueError as exc:
            logger.warning("webhook body is not valid JSON: %s", exc)
            return None
        return data if isinstance(data, dict) else None
    return _parse_form(body)


def _object(value: Any) -> Optional[dict[str, Any]]:
    """``value`` if it is a JSON object, an empty dict if absent, else None."""
    if value is None:
        return {}
    return value if isinstance(value, dict) else None


def _text(event: dict[str, Any], key: str) -> Optional[str]:
    value = event.get(key)
    return value if isinstance(value, str) else None


def _challenge(event: dict[str, Any]) -> dict[str, Any]:
    return {"status": 200, "body": {"challenge": event.get("challenge")}}


class WebhookDispatcher:
    """
    Routes Slack deliveries to the host's emitter.

    Args:
        emitter: Receives ``(target, event, payload)`` for every handled delivery.
    """

    def __init__(self, emitter: Emitter) -> None:
        self._emitter = emitter

    async def webhook(
        self,
        method: Optional[str],
        path: Optional[str],
        body: Optional[str],
    ) -> WebhookResult:
        """
        Handle a delivery on the generic endpoint.

        Returns:
            The challenge response for url_verification, "" for a handled
            command or submission, None for anything else.
        """
        if not body or not path or not method:
            return None

        event = _parse_body(body)
        if event is None:
            return None

        outer_type = event.get("type")
        if outer_type in ("url_verification", "event_callback"):
            return await self.handle_events(event)

        # ── Interactive payloads arrive as a JSON string in a form field ───
        if not event.get("api_app_id") and event.get("payload"):
            try:
                event = json.loads(event["payload"])
            except (TypeError, ValueError) as exc:
                logger.warning("interactive payload is not valid JSON: %s", exc)
                return None
            if not isinstance(event, dict):
                return None
            kind = event.get("type")
        elif _text(event, "command"):
            kind = "command"
        else:
            logger.info("webhook body on %s is not a command or interactive payload; dropped", path)
            return None

        logger.info("webhook type=%s path=%s", kind, path)

        if kind == "command":
            await self._emit_command(event)
            return ""
        if kind == "view_submission":
            return "" if await self._emit_submission(event, body) else None

        logger.info("webhook type=%s not handled", kind)
        return None

    async def handle_events(self, body: Union[str, dict[str, Any], None]) -> WebhookResult:
        """Handle a delivery on the Events API endpoint."""
        if not body:
            return None
        if isinstance(body, str):
            event = _parse_body(body)
            if event is None:
                return None
        else:
            event = body

        kind = event.get("type")
        logger.info("event type=%s", kind)

        if kind == "url_verification":
            return _challenge(event)

        if kind == "event_callback":
            inner = _object(event.get("event"))
            if inner is None:
                logger.warning("event_callback carries a non-object event; dropped")
                return None
            channel_id = _text(inner, "channel")
            if not channel_id:
                logger.info("event_callback %s has no channel; dropped", inner.get("type"))
                return None
            await self._emitter.emit(channel_ref(channel_id), "event", event)
            return None

        logger.info("event type=%s not handled", kind)
        return None

    async def handle_command(self, body: Optional[str]) -> Optional[str]:
        """
        Handle a slash command on the dedicated endpoint.

        Returns:
            "Processing...", which Slack shows to the user while the command runs.
        """
        if not body:
            return None
        form = _parse_form(body)
        channel_id = form.get("channel_id")
        if not channel_id:
            logger.info("command without channel_id dropped")
            return None

        payload = {"text": form.get("text", ""), "url": form.get("response_url", "")}
        logger.info("command %s in channel %s", form.get("command", ""), channel_id)
        await self._emitter.emit(channel_ref(channel_id), "command", payload)
        return PROCESSING

    # ── Emission targets ─────────────────────────────────────────────────────

    async def _emit_command(self, event: dict[str, Any]) -> None:
        app_id = _text(event, "api_app_id")
        payload = dict(event)
        payload["trigger"] = trigger_ref(
            app_id,
            trigger_id=_text(event, "trigger_id"),
            response_url=_text(event, "response_url"),
        )
        channel_name = _text(event, "channel_name")
        channel_id = _text(event, "channel_id")
        if channel_name:
            payload["channel"] = channel_ref(name=channel_name)
        elif channel_id:
            payload["channel"] = channel_ref(channel_id)
        payload["app"] = app_ref(app_id)
        await self._emitter.emit(command_ref(app_id, _text(event, "command")), "command", payload)

    async def _emit_submission(self, event: dict[str, Any], raw_body: str) -> bool:
        view = _object(event.get("view"))
        user = _object(event.get("user"))
        team = _object(event.get("team"))
        if view is None or user is None or team is None:
            logger.warning("view_submission with non-object view, user or team; dropped")
            return False
        external_id = _text(view, "external_id")
        if not external_id:
            logger.info("view_submission without external_id; dropped")
            return False

        app_id = _text(event, "api_app_id")
        payload = {
            "state": json.dumps(view.get("state")),
            "user_id": user.get("id"),
            "user_name": user.get("name") or user.get("username"),
            "team_id": team.get("id"),
            "team_domain": team.get("domain"),
            "trigger": trigger_ref(app_id, trigger_id=_text(event, "trigger_id")),
            "event": raw_body,
        }
        await self._emitter.emit(view_ref(app_id, external_id), "submit", payload)
        return True
