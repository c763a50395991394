"""Process-local narration state: user toggle, loading flag and latest audio."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Set

from utils.observable import Observable


@dataclass(frozen=True)
class NarrationResult:
	turn_id: str
	session_id: str
	audio: bytes


class NarrationState(Observable):
	"""Listeners are called with the state itself after every change."""

	def __init__(self, enabled: bool = True) -> None:
		super().__init__()
		self.enabled = enabled
		self.latest: Optional[NarrationResult] = None
		self._pending: Set[str] = set()

	@property
	def loading(self) -> bool:
		return bool(self._pending)

	def set_enabled(self, enabled: bool) -> None:
		self.enabled = bool(enabled)
		self._emit(self)

	def started(self, turn_id: str) -> None:
		self._pending.add(turn_id)
		self._emit(self)

	def finished(self, turn_id: str, result: Optional[NarrationResult]) -> None:
		"""Mark a narration request as resolved; `result` is None when there is nothing to play."""
		self._pending.discard(turn_id)
		if result is not None:
			self.latest = result
		self._emit(self)
