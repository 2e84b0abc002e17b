"""Webhook receiver."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from repoguard.dependencies import Dispatcher, Gate, TraceId
from repoguard.models.common import ErrorDetail, EventAccepted

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Webhooks"])


@router.post("/event_handler", response_model=EventAccepted)
async def event_handler(request: Request, gate: Gate, dispatcher: Dispatcher, trace_id: TraceId) -> EventAccepted:
    """Authenticate the delivery, then hand it to the dispatcher.

    Authentication failures raise and are rendered by the error handlers.
    Once the gate is passed the delivery is acknowledged with 200 whether or
    not a handler matched; action failures are reported in ``errors``.
    """
    # Raw bytes, not request.json(): the signature covers the exact body
    raw_body = await request.body()
    context = await gate.authenticate(raw_body, request.headers)

    result = await dispatcher.dispatch(context, is_cancelled=request.is_disconnected)

    errors = [
        ErrorDetail(
            code=exc.code,
            message=exc.message,
            details=exc.details,
            trace_id=trace_id,
            timestamp=datetime.now(timezone.utc),
        )
        for exc in result.errors
    ]
    return EventAccepted(
        event=context.event.event_type,
        action=context.event.action,
        delivery_id=context.event.delivery_id,
        handled=result.handled,
        handler=result.handler,
        errors=errors,
    )
