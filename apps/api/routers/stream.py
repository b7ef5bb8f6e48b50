"""Live change feed over Server-Sent Events.

Included ahead of the reports router so ``/reports/stream`` is not captured
by ``/reports/{report_id}``.
"""

import asyncio
import json

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from routers.deps import get_store
from store.reports import ReportStore

router = APIRouter(tags=["stream"])

KEEPALIVE_S = 15.0


@router.get("/reports/stream")
async def stream_reports(store: ReportStore = Depends(get_store)):
    """SSE stream of insert/update/delete events.

    The stream does not replay history. Clients list reports after
    connecting and again whenever they receive a ``resync`` event.
    """
    subscription = store.feed.subscribe()

    async def event_stream():
        try:
            yield f"data: {json.dumps({'kind': 'connected'})}\n\n"
            while True:
                try:
                    event = await asyncio.wait_for(subscription.get(), timeout=KEEPALIVE_S)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                if event is None:
                    return
                yield f"data: {json.dumps(event.model_dump(mode='json'))}\n\n"
        finally:
            subscription.close()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
