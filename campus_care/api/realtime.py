"""WebSocket routes that keep report lists and comment threads live.

Every change event triggers a full re-fetch of the watched collection,
which is then pushed to the client as one JSON array. Browsers cannot set
headers on a WebSocket handshake, so the ID token travels as ``?token=``.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from fastapi import APIRouter, Query, WebSocket, status

from ..core.dependencies import AppServices, authenticate_token
from ..core.errors import CampusCareError
from ..core.security import Principal
from ..schemas import CommentResponse, ReportResponse
from ..services.views import ViewParams

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["realtime"])

Snapshot = Callable[[], Awaitable[list[dict]]]


async def _authenticate(websocket: WebSocket, token: str) -> tuple[AppServices, Principal] | None:
    services = getattr(websocket.app.state, "services", None)
    principal = authenticate_token(services, token) if services else None
    if principal is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    if services.lifecycle is None:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return None
    return services, principal


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def _send_snapshot(websocket: WebSocket, snapshot: Snapshot) -> None:
    try:
        payload = {"type": "snapshot", "data": await snapshot()}
    except CampusCareError as e:
        logger.warning(f"Realtime refresh failed: {e.message}")
        payload = {"type": "error", "error": e.kind.value, "message": e.message}
    await websocket.send_json(payload)


async def _stream(websocket: WebSocket, queue: asyncio.Queue, snapshot: Snapshot) -> None:
    """Send a snapshot now and again after every change until the client leaves."""
    await _send_snapshot(websocket, snapshot)
    receiver = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        while True:
            getter = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
            if receiver in done:
                getter.cancel()
                return
            await _send_snapshot(websocket, snapshot)
    finally:
        receiver.cancel()


@router.websocket("/reports")
async def watch_reports(
    websocket: WebSocket,
    token: str = Query(default=""),
    mine: bool = Query(default=True),
):
    """Live report list: the caller's own, or every report for admins with ``mine=false``."""
    auth = await _authenticate(websocket, token)
    if auth is None:
        return
    services, principal = auth
    everything = principal.is_admin and not mine

    async def snapshot() -> list[dict]:
        reports = await services.lifecycle.list_reports(principal, ViewParams(), mine=not everything)
        return [ReportResponse.model_validate(r).model_dump(mode="json") for r in reports]

    await websocket.accept()
    filters = {} if everything else {"reported_by": principal.uid}
    async with services.feed.subscribe("reports", **filters) as queue:
        await _stream(websocket, queue, snapshot)
    logger.debug(f"Report feed closed for {principal.uid}")


@router.websocket("/reports/{report_id}/comments")
async def watch_comments(websocket: WebSocket, report_id: str, token: str = Query(default="")):
    """Live comment thread for one report the caller may see."""
    auth = await _authenticate(websocket, token)
    if auth is None:
        return
    services, principal = auth

    async def snapshot() -> list[dict]:
        comments = await services.lifecycle.list_comments(principal, report_id)
        return [CommentResponse.model_validate(c).model_dump(mode="json") for c in comments]

    try:
        await services.lifecycle.get_report(principal, report_id)
    except CampusCareError as e:
        logger.info(f"Refusing comment feed for {report_id}: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    async with services.feed.subscribe("report_comments", report_id=report_id) as queue:
        await _stream(websocket, queue, snapshot)
