"""Webhook routes for triggering workflows."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..core.dependencies import EngineDep
from ..core.exceptions import WebhookAuthError, WorkflowEngineError, WorkflowNotFoundError
from ..engine.types import TriggerKind
from ..schemas.execution import TriggerResponse
from ..utils.hashing import verify_secret

logger = logging.getLogger(__name__)

router = APIRouter()

WEBHOOK_SECRET_HEADER = "X-Webhook-Secret"


class InvalidPayloadError(WorkflowEngineError):
    code = "InvalidPayload"


async def _read_payload(request: Request) -> Any:
    """The JSON body is the trigger payload; an empty body means no payload."""
    body = await request.body()
    if not body.strip():
        return None
    try:
        return json.loads(body)
    except ValueError:
        raise InvalidPayloadError("Request body is not valid JSON") from None


@router.post("/webhook/{path}", response_model=TriggerResponse)
async def handle_webhook(path: str, request: Request, engine: EngineDep) -> Any:
    """
    Trigger a workflow from an incoming webhook.

    `path` is the workflow's configured webhook path, or its id when none
    is configured.
    """
    try:
        definition = await engine.resolve_webhook(path)
        if definition is None:
            raise WorkflowNotFoundError(path)
        secret_hash = definition.trigger_config.secret_hash
        if secret_hash and not verify_secret(request.headers.get(WEBHOOK_SECRET_HEADER), secret_hash):
            raise WebhookAuthError(definition.id)

        payload = await _read_payload(request)
        result = await engine.trigger_workflow(definition.id, TriggerKind.WEBHOOK, payload)
    except WebhookAuthError as e:
        logger.warning(e.message)
        return JSONResponse(status_code=401, content={"message": "Unauthorized"})
    except InvalidPayloadError as e:
        return JSONResponse(status_code=400, content={"message": e.message})
    except WorkflowEngineError as e:
        logger.warning(f"Webhook dispatch for {path} failed: {e.code}: {e.message}")
        return JSONResponse(status_code=500, content={"message": "Internal Server Error"})
    except Exception:
        logger.exception(f"Webhook dispatch for {path} failed")
        return JSONResponse(status_code=500, content={"message": "Internal Server Error"})

    return TriggerResponse(execution_id=result.execution_id, status=result.status.value)
