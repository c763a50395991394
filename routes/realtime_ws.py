"""WebSocket endpoint streaming live session state and accepting turns."""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from controllers.session_controller import ensure_open
from services.realtime.ws_session import RealtimeSessionHandler

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/{session_id}")
async def realtime_socket(websocket: WebSocket, session_id: str):
	"""Open the session, stream its state and run inbound commands."""
	await websocket.accept()
	try:
		await ensure_open(websocket, session_id)
	except HTTPException as exc:
		await websocket.send_text(json.dumps({"type": "error", "detail": exc.detail}))
		await websocket.close()
		return

	handler = RealtimeSessionHandler(websocket, session_id, websocket.app.state.orchestrator)
	handler.attach()
	pump = asyncio.create_task(handler.pump())
	try:
		while True:
			try:
				raw = await websocket.receive_text()
			except WebSocketDisconnect:
				break
			try:
				payload = json.loads(raw)
			except Exception:
				handler.outbox.put_nowait({"type": "error", "detail": "Payload must be JSON"})
				continue
			await handler.handle(payload)
	finally:
		handler.detach()
		try:
			await pump
		except Exception:
			LOGGER.debug("Websocket closed before queued frames were sent", exc_info=True)
	try:
		await websocket.close()
	except Exception:
		pass
