"""WebSocket endpoint for extraction progress broadcasting."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from novelmap.services.extraction_service import manager

router = APIRouter()


@router.websocket("/ws/extraction/{project_id}")
async def extraction_ws(websocket: WebSocket, project_id: int):
    """Client connects to receive {stage, detail} events for a project."""
    await manager.connect(project_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(project_id, websocket)
