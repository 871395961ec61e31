from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from ..auth.security import is_admin, user_from_token
from ..db import get_db
from ..services.realtime import hub

router = APIRouter(tags=["realtime"])


@router.websocket("/ws/attendance")
async def ws_attendance(websocket: WebSocket, token: Optional[str] = None, db: Session = Depends(get_db)):
    """Admin feed of attendance_check_in / attendance_check_out events."""
    if not token:
        await websocket.close(code=4401)
        return
    try:
        user = user_from_token(token, db)
    except HTTPException:
        await websocket.close(code=4401)
        return
    if not is_admin(user):
        await websocket.close(code=4403)
        return

    user_id = str(user.id)
    await websocket.accept()
    await hub.connect(user_id, websocket)
    try:
        while True:
            data = await websocket.receive_text()
            # Accept keep-alives or simple pings; ignore content otherwise
            if data and data.strip().lower() in {"ping", "keepalive"}:
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    finally:
        await hub.disconnect(user_id, websocket)
