import hashlib
import hmac
import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import Mapping, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel

from slackgraph.driver.dispatcher import WebhookResult
from slackgraph.driver.middleware import close_slack_driver, get_slack_driver
from slackgraph.driver.root import SlackDriver


SIGNATURE_VERSION = "v0"
MAX_REQUEST_AGE_SECONDS = 5 * 60  # Slack's replay window

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s", stream=sys.stdout)
logger = logging.getLogger("slackgraph.server")


# ── Pydantic models ─────────────────────────────────────────────────────────


class ConfigureRequest(BaseModel):
    api_token: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    logger.info("Shutting down, closing Slack clients...")
    await close_slack_driver()


app = FastAPI(title="Slack Graph Driver", version="1.0.0", lifespan=lifespan)


# ── Helpers ──────────────────────────────────────────────────────────────────


def _verify_slack_signature(
    signing_secret: str,
    headers: Mapping[str, str],
    body: bytes,
    now: Optional[float] = None,
) -> Optional[str]:
    """Return None if the request is signed by Slack, else the reason it is not."""
    timestamp = headers.get("X-Slack-Request-Timestamp", "")
    signature = headers.get("X-Slack-Signature", "")
    if not timestamp or not signature:
        return "Missing Slack signature headers"

    try:
        age = abs((now if now is not None else time.time()) - int(timestamp))
    except ValueError:
        return "Invalid X-Slack-Request-Timestamp"
    if age > MAX_REQUEST_AGE_SECONDS:
        return "Request timestamp is too old"

    basestring = f"{SIGNATURE_VERSION}:{timestamp}:".encode() + body
    expected = f"{SIGNATURE_VERSION}=" + hmac.new(signing_secret.encode(), basestring, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, signature):
        return "Signature mismatch"
    return None


async def _read_signed_body(request: Request, driver: SlackDriver) -> tuple[Optional[str], Optional[Response]]:
    body = await request.body()
    secret = driver.config.signing_secret
    if secret:
        err = _verify_slack_signature(secret, request.headers, body)
        if err:
            logger.warning("rejected %s from %s: %s", request.url.path,
                           request.client.host if request.client else "unknown", err)
            return None, JSONResponse({"error": f"Unauthorized: {err}"}, status_code=401)
    return body.decode("utf-8", errors="replace"), None


def _to_response(result: WebhookResult) -> Response:
    if isinstance(result, dict) and "status" in result:
        return JSONResponse(content=result.get("body"), status_code=result["status"])
    if isinstance(result, dict):
        return JSONResponse(content=result)
    return PlainTextResponse(result or "")


# ── Routes ───────────────────────────────────────────────────────────────────


@app.get("/health")
async def health(driver: SlackDriver = Depends(get_slack_driver)) -> JSONResponse:
    warnings = []
    if not driver.config.ready:
        warnings.append("SLACK_API_TOKEN not configured (call /configure)")
    if not driver.config.signing_secret:
        warnings.append("SLACK_SIGNING_SECRET not configured (signature checks disabled)")

    body: dict = {"status": "ok" if driver.config.ready else "not_ready"}
    if warnings:
        body["warnings"] = warnings
    return JSONResponse(body)


@app.post("/configure")
async def configure(payload: ConfigureRequest, driver: SlackDriver = Depends(get_slack_driver)) -> JSONResponse:
    message = await driver.configure(payload.api_token)
    logger.info("configure: %s", message)
    return JSONResponse({"message": message})


@app.post("/slack/events", response_model=None)
async def slack_events(request: Request, driver: SlackDriver = Depends(get_slack_driver)) -> Response:
    body, rejected = await _read_signed_body(request, driver)
    if rejected is not None:
        return rejected
    return _to_response(await driver.handle_events(body))


@app.post("/slack/commands", response_model=None)
async def slack_commands(request: Request, driver: SlackDriver = Depends(get_slack_driver)) -> Response:
    body, rejected = await _read_signed_body(request, driver)
    if rejected is not None:
        return rejected
    return _to_response(await driver.handle_command(body))


@app.post("/slack/webhook", response_model=None)
async def slack_webhook(request: Request, driver: SlackDriver = Depends(get_slack_driver)) -> Response:
    body, rejected = await _read_signed_body(request, driver)
    if rejected is not None:
        return rejected
    logger.info("POST %s from %s", request.url.path, request.client.host if request.client else "unknown")
    return _to_response(await driver.webhook(request.method, request.url.path, body))
