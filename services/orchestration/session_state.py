"""Live session state and the reducer that is the only way to change it.

Every change to the open session is expressed as a `SessionUpdate` and
applied with `merge_session`. Writes are tagged with the session they belong
to and, for detached satellite work, the turn that produced them; the
container drops writes whose tags no longer match the live session.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Tuple
from uuid import uuid4

from models.errors import ValidationError
from models.session_models import Message, StudySession, UploadedFile
from utils.observable import Observable

LOGGER = logging.getLogger(__name__)

SCALAR_FIELDS = ("topic", "diagram", "image_ref", "pinned")


@dataclass(frozen=True)
class SessionUpdate:
	"""One write against a session.

	Messages and files are appended; scalar fields replace the previous value
	wholesale; file summaries fill the summary of an already attached file.
	"""

	session_id: str
	turn_id: Optional[str] = None
	messages: Tuple[Message, ...] = ()
	files: Tuple[UploadedFile, ...] = ()
	fields: Mapping[str, Any] = field(default_factory=dict)
	file_summaries: Mapping[str, str] = field(default_factory=dict)


def merge_session(current: StudySession, update: SessionUpdate) -> StudySession:
	"""Return a new session with `update` applied. Same-field writes: last one wins."""
	if update.session_id != current.id:
		raise ValueError(f"Update for session {update.session_id} applied to {current.id}")
	unknown = set(update.fields) - set(SCALAR_FIELDS)
	if unknown:
		raise ValueError(f"Unsupported session fields: {', '.join(sorted(unknown))}")

	messages = list(current.messages)
	for message in update.messages:
		# Timestamps never go backwards within a session.
		if messages and message.created_at < messages[-1].created_at:
			message = replace(message, created_at=messages[-1].created_at)
		messages.append(message)

	files = current.files + tuple(update.files)
	if update.file_summaries:
		files = tuple(
			replace(f, summary=update.file_summaries[f.id]) if f.id in update.file_summaries else f
			for f in files
		)

	return replace(current, messages=tuple(messages), files=files, **dict(update.fields))


class SessionStateContainer(Observable):
	"""Own the open session; listeners receive the new snapshot after each change."""

	def __init__(self, discard_stale_writes: bool = True) -> None:
		super().__init__()
		self.discard_stale_writes = discard_stale_writes
		self._session: Optional[StudySession] = None
		self._latest_turn_id: Optional[str] = None

	@property
	def session(self) -> Optional[StudySession]:
		return self._session

	@property
	def latest_turn_id(self) -> Optional[str]:
		return self._latest_turn_id

	def open(self, session: Optional[StudySession]) -> None:
		"""Switch the live session (None closes it)."""
		self._session = session
		self._latest_turn_id = None
		self._emit(session)

	def begin_turn(self) -> str:
		"""Issue the id of a new turn on the open session."""
		if self._session is None:
			raise ValidationError("No active session.")
		self._latest_turn_id = uuid4().hex
		return self._latest_turn_id

	def is_open(self, session_id: str) -> bool:
		return self._session is not None and self._session.id == session_id

	def accepts(self, session_id: str, turn_id: Optional[str] = None) -> bool:
		"""Return True if a write tagged with these ids would be applied."""
		if not self.is_open(session_id):
			return False
		if turn_id is not None and self.discard_stale_writes:
			return turn_id == self._latest_turn_id
		return True

	def apply(self, update: SessionUpdate) -> bool:
		"""Merge `update` into the live session. Returns False if it was discarded."""
		if not self.accepts(update.session_id, update.turn_id):
			LOGGER.info(
				"Discarding write for session %s turn %s (live session %s, latest turn %s)",
				update.session_id,
				update.turn_id,
				self._session.id if self._session else None,
				self._latest_turn_id,
			)
			return False
		self._session = merge_session(self._session, update)
		self._emit(self._session)
		return True

	def find_message(self, session_id: str, message_id: str) -> Optional[Message]:
		"""Return the merged copy of a message in the open session, if it is there."""
		if not self.is_open(session_id):
			return None
		return next((m for m in reversed(self._session.messages) if m.id == message_id), None)

	def next_timestamp(self) -> float:
		"""Current time, but never earlier than the last message of the open session."""
		now = time.time()
		if self._session is not None and self._session.messages:
			return max(now, self._session.messages[-1].created_at)
		return now
