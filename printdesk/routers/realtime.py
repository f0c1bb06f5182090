"""Live projection over a WebSocket.

The client connects with ``?token=<access token>``. The server opens a
``SessionContext`` for that identity, sends the initial snapshot and then a
fresh snapshot after every committed change to a watched record type. The
subscription is released when the socket goes away.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from ..db.changefeed import ChangeEvent
from ..db.session import get_session_factory
from ..deps.auth import identity_from_token
from ..services.context import SessionContext

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


def _authenticate(session_factory, token: str):
    db = session_factory()
    try:
        return identity_from_token(db, token)
    finally:
        db.close()


def _message(kind: str, context: SessionContext, changes: list[str] | None = None) -> dict:
    payload = {"type": kind, "data": context.snapshot().model_dump(mode="json")}
    if changes is not None:
        payload["changes"] = changes
    return payload


async def _pump(websocket: WebSocket, context: SessionContext, queue: asyncio.Queue) -> None:
    while True:
        events: list[ChangeEvent] = list(await queue.get())
        # Collapse notifications that piled up while the last reload ran.
        while not queue.empty():
            events.extend(queue.get_nowait())
        await run_in_threadpool(context.reload)
        changes = sorted({event.record_type for event in events})
        await websocket.send_json(_message("snapshot", context, changes))


async def stop_pump(pump: asyncio.Task, user_id: str) -> None:
    """Stop the snapshot pusher and collect its outcome.

    A pusher that already died (usually a send to a client that went away)
    is logged instead of being left for asyncio to report as unretrieved.
    """

    if pump.done():
        if not pump.cancelled() and pump.exception() is not None:
            LOGGER.warning(
                "realtime.push_failed",
                exc_info=pump.exception(),
                extra={"extra_data": {"user_id": user_id}},
            )
        return
    pump.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await pump


@router.websocket("/api/v1/ws/projection")
async def projection_feed(
    websocket: WebSocket,
    token: str = Query(default=""),
    session_factory=Depends(get_session_factory),
):
    if not token:
        await websocket.close(code=4001, reason="Unauthorized")
        return
    try:
        identity = await run_in_threadpool(_authenticate, session_factory, token)
    except ValueError:
        await websocket.close(code=4001, reason="Unauthorized")
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def _dispatch(events: list[ChangeEvent]) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, events)

    context = SessionContext(session_factory, dispatcher=_dispatch)
    await run_in_threadpool(context.open, identity)
    await websocket.send_json(_message("snapshot", context))
    pump = asyncio.create_task(_pump(websocket, context, queue))
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        LOGGER.info("realtime.disconnected", extra={"extra_data": {"user_id": identity.user_id}})
    finally:
        try:
            await stop_pump(pump, identity.user_id)
        finally:
            context.close()
