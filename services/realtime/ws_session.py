"""Dispatch websocket commands and stream state changes for one study session."""
from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

from fastapi import WebSocket

from models.errors import ValidationError
from services.orchestration.narration import NarrationState
from services.orchestration.session_state import SessionStateContainer
from services.orchestration.turn_orchestrator import TurnOrchestrator
from services.realtime.payloads import (
	agents_payload,
	narration_audio_payload,
	narration_payload,
	session_payload,
)


class RealtimeSessionHandler:
	"""Forward state changes to one websocket and run the commands it sends.

	State listeners only enqueue frames; `pump()` drains the queue onto the
	socket so listeners never await network I/O.
	"""

	def __init__(self, websocket: WebSocket, session_id: str, orchestrator: TurnOrchestrator) -> None:
		self.websocket = websocket
		self.session_id = session_id
		self.orchestrator = orchestrator
		self.outbox: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()
		self._unsubscribers: List[Callable[[], None]] = []
		self._last_audio_turn: Optional[str] = None

	@property
	def state(self) -> SessionStateContainer:
		return self.orchestrator.state

	def attach(self) -> None:
		"""Subscribe to state, activity and narration changes and queue a first snapshot."""
		self._unsubscribers = [
			self.state.subscribe(self._on_session),
			self.orchestrator.activity.subscribe(self._on_agents),
			self.orchestrator.narration.subscribe(self._on_narration),
		]
		self._on_session(self.state.session)
		self._on_agents(self.orchestrator.activity.snapshot())
		self._on_narration(self.orchestrator.narration)

	def detach(self) -> None:
		for unsubscribe in self._unsubscribers:
			unsubscribe()
		self._unsubscribers = []
		self.outbox.put_nowait(None)

	async def pump(self) -> None:
		"""Send queued frames until `detach()` is called."""
		while True:
			frame = await self.outbox.get()
			if frame is None:
				return
			await self._send(frame)

	async def handle(self, payload: Dict[str, Any]) -> None:
		"""Process a single inbound websocket payload."""
		request_id = payload.get("request_id")
		message_type = payload.get("type")
		try:
			if message_type == "turn.submit":
				result = await self._submit_turn(payload)
			elif message_type == "narration.toggle":
				self.orchestrator.narration.set_enabled(bool(payload.get("enabled")))
				result = {"type": "narration.ack", "enabled": self.orchestrator.narration.enabled}
			else:
				raise ValueError("Unsupported message type.")
			result["request_id"] = request_id
			self.outbox.put_nowait(result)
		except Exception as exc:
			self.outbox.put_nowait({"type": "error", "request_id": request_id, "detail": str(exc)})

	async def _submit_turn(self, payload: Dict[str, Any]) -> Dict[str, Any]:
		if not self.state.is_open(self.session_id):
			raise ValidationError("Session is not open; open it before sending messages.")
		turn = await self.orchestrator.submit_turn(payload.get("text") or "")
		return {
			"type": "turn.complete",
			"turn_id": turn.turn_id,
			"answer_id": turn.answer.id if turn.answer else None,
			"fallback": turn.answer_is_fallback,
		}

	def _on_session(self, session) -> None:
		if session is not None and session.id != self.session_id:
			return
		self.outbox.put_nowait({"type": "session.state", "session": session_payload(session)})

	def _on_agents(self, statuses) -> None:
		self.outbox.put_nowait({"type": "agents.state", "agents": agents_payload(statuses)})

	def _on_narration(self, narration: NarrationState) -> None:
		self.outbox.put_nowait({"type": "narration.state", **narration_payload(narration)})
		audio = narration_audio_payload(narration)
		if audio and audio["session_id"] == self.session_id and audio["turn_id"] != self._last_audio_turn:
			self._last_audio_turn = audio["turn_id"]
			self.outbox.put_nowait({"type": "narration.ready", **audio})

	async def _send(self, payload: Dict[str, Any]) -> None:
		await self.websocket.send_text(json.dumps(payload))
