import asyncio
from typing import Optional
from fastapi import WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from backend.realtime.constants import logger
from backend.realtime.hub import Client, Hub


def _parse_user_id(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


async def _reader(websocket: WebSocket, client: Client):
    while True:
        try:
            msg = await websocket.receive_json()
        except WebSocketDisconnect:
            return
        except ValueError:
            # non json frames are ignored
            continue
        if isinstance(msg, dict) and msg.get("type") == "auth":
            user_id = _parse_user_id(msg.get("user_id"))
            if user_id is not None:
                client.user_id = user_id
                logger.info("ws.client.authenticated", extra={"client_id": client.id, "user_id": user_id})


async def _writer(websocket: WebSocket, client: Client):
    while True:
        message = await client.queue.get()
        await websocket.send_json(jsonable_encoder(message))


async def websocket_endpoint(websocket: WebSocket):
    hub: Hub = websocket.app.state.ws_hub
    await websocket.accept()

    client = hub.new_client(user_id=_parse_user_id(websocket.query_params.get("user_id")))
    await hub.register(client)

    tasks = [
        asyncio.create_task(_reader(websocket, client)),
        asyncio.create_task(_writer(websocket, client)),
        asyncio.create_task(client.closed.wait()),
    ]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("ws.client.error", extra={"client_id": client.id, "error": str(exc)})
    finally:
        await hub.unregister(client)

    try:
        await websocket.close()
    except RuntimeError:
        # peer already closed the socket
        logger.debug("ws.client.already_closed", extra={"client_id": client.id})
