"""Parse verified webhook bytes into a WebhookEvent."""

import json
import logging

from pydantic import ValidationError

from repoguard.errors.exceptions import MalformedPayloadError
from repoguard.models.events import WebhookEvent

logger = logging.getLogger(__name__)


def parse_event(raw_body: bytes, event_type: str | None, delivery_id: str | None = None) -> WebhookEvent:
    """Decode the raw body and validate the envelope fields.

    Must only be called on bytes whose signature has already been verified.

    Raises:
        MalformedPayloadError: body is not a JSON object, the event type
            header is missing, or an envelope field has the wrong shape.
    """
    if not event_type:
        raise MalformedPayloadError("Missing X-GitHub-Event header")

    try:
        payload = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedPayloadError("Body is not valid JSON") from exc

    if not isinstance(payload, dict):
        raise MalformedPayloadError("Body must be a JSON object")

    try:
        event = WebhookEvent(
            event_type=event_type,
            action=payload.get("action"),
            delivery_id=delivery_id,
            repository=payload.get("repository"),
            sender=payload.get("sender"),
            installation=payload.get("installation"),
            payload=payload,
        )
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise MalformedPayloadError("Webhook envelope failed validation", details={"fields": fields}) from exc

    logger.debug("---- received event %s", event.event_type)
    if event.action is not None:
        logger.debug("----    action %s", event.action)
    return event
