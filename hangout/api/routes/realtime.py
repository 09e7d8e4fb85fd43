from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from loguru import logger

from hangout.realtime.hub import hub
from hangout.services.broadcaster import gathering_room

router = APIRouter()


@router.websocket("/ws")
async def realtime(ws: WebSocket):
    """
    Clients send {"action": "join" | "leave", "gatheringId": ...} to follow a
    gathering's room. Everything else is server -> client.
    """
    await hub.connect(ws)
    try:
        while True:
            try:
                msg = await ws.receive_json()
            except (ValueError, KeyError, TypeError):
                # bad JSON, or a binary frame with no text payload
                await ws.send_json({"event": "error", "data": {"message": "Invalid JSON"}})
                continue

            action = msg.get("action") if isinstance(msg, dict) else None
            gathering_id = msg.get("gatheringId") if isinstance(msg, dict) else None
            if action not in ("join", "leave") or not gathering_id:
                await ws.send_json({"event": "error", "data": {"message": "Expected action join|leave and gatheringId"}})
                continue

            room = gathering_room(str(gathering_id))
            if action == "join":
                await hub.join(ws, room)
                await ws.send_json({"event": "joined", "data": {"gatheringId": gathering_id}})
            else:
                await hub.leave(ws, room)
                await ws.send_json({"event": "left", "data": {"gatheringId": gathering_id}})
    except WebSocketDisconnect:
        logger.debug("ws disconnected")
    finally:
        await hub.disconnect(ws)
