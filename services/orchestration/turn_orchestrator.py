"""Turn orchestration: from one user message to a fully settled session.

A turn has two phases. The core phase runs in strict order and is awaited
by the caller:

    1. append the user message to local state (before any I/O)
    2. persist it (best-effort)
    3. assemble context from summarized files
    4. ask the Teacher for an answer (fallback apology on failure)
    5. append and persist the answer

The satellite phase is detached: narration, diagram and illustration run
concurrently, each tagged with the turn id, and merge into the session
whenever they resolve. None of them blocks the next turn.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional
from uuid import uuid4

from models.errors import InferenceError, PersistenceError, ValidationError
from models.session_models import AgentType, Message, MessageRole, UploadedFile
from services.orchestration.agent_activity import AgentActivityBoard
from services.orchestration.fallbacks import TEACHER_APOLOGY, placeholder_image
from services.orchestration.interfaces import InferenceProvider, SessionWriter
from services.orchestration.narration import NarrationResult, NarrationState
from services.orchestration.session_state import SessionStateContainer, SessionUpdate
from services.orchestration.task_registry import DetachedTaskRegistry

LOGGER = logging.getLogger(__name__)


def assemble_context(files: Iterable[UploadedFile]) -> str:
	"""Join the summaries of pre-processed files in attachment order.

	Files whose summary is still absent contribute nothing.
	"""
	return "\n\n".join(f.summary for f in files if f.summary is not None)


class TurnPhase(str, Enum):
	CORE = "core"
	COMPLETE = "complete"
	SETTLED = "settled"


@dataclass
class TurnRecord:
	"""Progress of one turn; `satellites` maps satellite name to its task."""

	turn_id: str
	session_id: str
	user_message: Message
	phase: TurnPhase = TurnPhase.CORE
	answer: Optional[Message] = None
	answer_is_fallback: bool = False
	context: str = ""
	satellites: Dict[str, "asyncio.Task[Any]"] = field(default_factory=dict)

	async def settled(self) -> "TurnRecord":
		"""Wait for every satellite of this turn to resolve."""
		if self.satellites:
			await asyncio.gather(*self.satellites.values(), return_exceptions=True)
		self.phase = TurnPhase.SETTLED
		return self


class TurnOrchestrator:
	"""Run turns against the session held by a `SessionStateContainer`."""

	def __init__(
		self,
		store: SessionWriter,
		provider: InferenceProvider,
		state: SessionStateContainer,
		*,
		activity: Optional[AgentActivityBoard] = None,
		narration: Optional[NarrationState] = None,
		tasks: Optional[DetachedTaskRegistry] = None,
	) -> None:
		self.store = store
		self.provider = provider
		self.state = state
		self.activity = activity or AgentActivityBoard()
		self.narration = narration or NarrationState()
		self.tasks = tasks or DetachedTaskRegistry()

	async def submit_turn(self, user_text: str) -> TurnRecord:
		"""Run the core phase of a turn and launch its satellites.

		Raises:
			ValidationError: If the text is blank or no session is open.
		"""
		text = (user_text or "").strip()
		if not text:
			raise ValidationError("Message text is required.")
		session = self.state.session
		if session is None:
			raise ValidationError("No active session.")

		history = session.messages
		turn_id = self.state.begin_turn()
		user_message = Message(
			id=uuid4().hex,
			role=MessageRole.USER,
			content=text,
			created_at=self.state.next_timestamp(),
		)
		self.state.apply(SessionUpdate(session_id=session.id, messages=(user_message,)))
		turn = TurnRecord(turn_id=turn_id, session_id=session.id, user_message=user_message)

		await self._persist_message(session.id, user_message)

		live = self.state.session if self.state.is_open(session.id) else session
		turn.context = assemble_context(live.files)
		# The Historian shows as supplying notes for as long as the Teacher uses them.
		supplying = bool(turn.context) and not self.activity.get(AgentType.HISTORIAN).active
		if supplying:
			self.activity.update(AgentType.HISTORIAN, True, "Supplying Notes")

		self.activity.update(AgentType.TEACHER, True, "Reasoning...")
		try:
			answer_text = await self.provider.complete_text(history, text, turn.context)
		except InferenceError as exc:
			LOGGER.warning("Teacher failed for turn %s: %s", turn_id, exc)
			answer_text = TEACHER_APOLOGY
			turn.answer_is_fallback = True
		finally:
			if supplying:
				self.activity.update(AgentType.HISTORIAN, False, "Idle")

		answer = Message(
			id=uuid4().hex,
			role=MessageRole.ASSISTANT,
			content=answer_text,
			created_at=max(self.state.next_timestamp(), user_message.created_at),
		)
		self.state.apply(SessionUpdate(session_id=session.id, messages=(answer,)))
		await self._persist_message(session.id, answer)
		self.activity.update(AgentType.TEACHER, False, "Waiting")
		turn.answer = answer
		turn.phase = TurnPhase.COMPLETE

		self._launch_satellites(turn, live.topic, answer_text)
		return turn

	def _launch_satellites(self, turn: TurnRecord, topic: str, answer_text: str) -> None:
		if self.narration.enabled:
			self.narration.started(turn.turn_id)
			turn.satellites["narration"] = self._spawn(turn, "narration", self._narrate(turn, answer_text))

		self.activity.update(AgentType.ARCHITECT, True, "Mapping")
		turn.satellites["diagram"] = self._spawn(turn, "diagram", self._refresh_diagram(turn, topic, answer_text))

		self.activity.update(AgentType.ILLUSTRATOR, True, "Visualizing")
		turn.satellites["illustration"] = self._spawn(
			turn, "illustration", self._refresh_illustration(turn, topic, answer_text)
		)

	def _spawn(self, turn: TurnRecord, label: str, coro) -> "asyncio.Task[Any]":
		task = self.tasks.spawn(coro, label=label, session_id=turn.session_id, turn_id=turn.turn_id)
		task.add_done_callback(lambda _task: self._mark_settled(turn))
		return task

	@staticmethod
	def _mark_settled(turn: TurnRecord) -> None:
		if all(task.done() for task in turn.satellites.values()):
			turn.phase = TurnPhase.SETTLED

	async def _narrate(self, turn: TurnRecord, answer_text: str) -> None:
		result: Optional[NarrationResult] = None
		try:
			audio = await self.provider.synthesize_speech(answer_text)
		except InferenceError as exc:
			LOGGER.warning("Narration failed for turn %s: %s", turn.turn_id, exc)
		else:
			if self.state.accepts(turn.session_id, turn.turn_id):
				result = NarrationResult(turn_id=turn.turn_id, session_id=turn.session_id, audio=audio)
			else:
				LOGGER.info("Dropping narration for superseded turn %s", turn.turn_id)
		finally:
			self.narration.finished(turn.turn_id, result)

	async def _refresh_diagram(self, turn: TurnRecord, topic: str, answer_text: str) -> None:
		try:
			diagram = await self.provider.describe_as_diagram(topic, answer_text)
		except InferenceError as exc:
			# The previous diagram stays in place.
			LOGGER.warning("Architect failed for turn %s: %s", turn.turn_id, exc)
			self.activity.update(AgentType.ARCHITECT, False, "Idle")
			return
		await self._write_satellite_field(turn, "diagram", diagram)
		self.activity.update(AgentType.ARCHITECT, False, "Idle")

	async def _refresh_illustration(self, turn: TurnRecord, topic: str, answer_text: str) -> None:
		try:
			image_ref = await self.provider.generate_image(topic, answer_text)
		except InferenceError as exc:
			LOGGER.warning("Illustrator failed for turn %s: %s", turn.turn_id, exc)
			image_ref = placeholder_image(topic)
		await self._write_satellite_field(turn, "image_ref", image_ref)
		self.activity.update(AgentType.ILLUSTRATOR, False, "Idle")

	async def _write_satellite_field(self, turn: TurnRecord, name: str, value: Any) -> bool:
		applied = self.state.apply(
			SessionUpdate(session_id=turn.session_id, turn_id=turn.turn_id, fields={name: value})
		)
		if not applied:
			return False
		try:
			await self.store.update_session_fields(turn.session_id, {name: value})
		except PersistenceError as exc:
			LOGGER.error("Could not persist %s for session %s: %s", name, turn.session_id, exc)
		return True

	async def _persist_message(self, session_id: str, message: Message) -> None:
		# Store the merged copy so the persisted timestamp matches the local one.
		message = self.state.find_message(session_id, message.id) or message
		# The optimistic local append stays even if this write fails.
		try:
			await self.store.append_message(session_id, message)
		except PersistenceError as exc:
			LOGGER.error("Could not persist message %s for session %s: %s", message.id, session_id, exc)
