from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from app.api.deps import get_stream_generator
from app.api.models import WriterStreamRequest
from app.core.cancellation import CancellationToken
from app.core.security import CurrentUser, get_current_user
from app.streaming.events import encode_event
from app.streaming.generator import ArticleStreamGenerator, StreamPlan

router = APIRouter()
logger = logging.getLogger(__name__)

SSE_HEADERS = {
  "Cache-Control": "no-cache, no-transform",
  "Connection": "keep-alive",
  "X-Accel-Buffering": "no",
}

# Disconnect checks run between deltas; a short interval keeps the backend from writing to nobody.
DISCONNECT_PROBE_INTERVAL_SECONDS = 0.25


async def _encoded_events(generator: ArticleStreamGenerator, plan: StreamPlan, token: CancellationToken) -> AsyncIterator[bytes]:
  events = generator.events(plan, cancel_token=token)
  try:
    async for event in events:
      yield encode_event(event)
  finally:
    # Closing the inner generator closes the backend stream it is suspended on.
    token.cancel()
    await events.aclose()


@router.post("/stream")
async def stream_article(
  payload: WriterStreamRequest,
  request: Request,
  generator: Annotated[ArticleStreamGenerator, Depends(get_stream_generator)],
  current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> StreamingResponse:
  """Stream an article as `data:` events while it is written from an approved outline."""
  # Lookups and ownership checks fail as plain HTTP errors before the stream opens.
  plan = await generator.prepare(owner_id=current_user.uid, outline_id=payload.outline_id, custom_instructions=payload.custom_instructions)
  token = CancellationToken(request.is_disconnected, reason="Client disconnected.", min_interval=DISCONNECT_PROBE_INTERVAL_SECONDS)
  logger.info("Streaming article for outline %s user=%s sections=%d", plan.outline.id, current_user.uid, len(plan.context.outline.sections))
  return StreamingResponse(_encoded_events(generator, plan, token), media_type="text/event-stream", headers=SSE_HEADERS)
