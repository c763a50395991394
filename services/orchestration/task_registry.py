"""Registry for detached asyncio tasks.

Detached work is never cancelled when the user moves on; its results are
filtered when they are merged. The registry only keeps the tasks alive,
records what they belong to, and logs failures nobody awaited.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Coroutine, Dict, List, Optional

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetachedTask:
	label: str
	session_id: str
	turn_id: Optional[str]
	task: "asyncio.Task[Any]"


class DetachedTaskRegistry:
	"""Spawn and track fire-and-forget tasks."""

	def __init__(self) -> None:
		self._tasks: Dict["asyncio.Task[Any]", DetachedTask] = {}

	def spawn(
		self,
		coro: Coroutine[Any, Any, Any],
		*,
		label: str,
		session_id: str,
		turn_id: Optional[str] = None,
	) -> "asyncio.Task[Any]":
		"""Schedule `coro` on the running loop and return its task."""
		task = asyncio.create_task(coro, name=f"{label}:{turn_id or session_id}")
		self._tasks[task] = DetachedTask(label=label, session_id=session_id, turn_id=turn_id, task=task)
		task.add_done_callback(self._finished)
		return task

	def pending(self, *, session_id: Optional[str] = None, turn_id: Optional[str] = None) -> List[DetachedTask]:
		"""Return outstanding tasks, optionally filtered by session or turn."""
		return [
			entry
			for entry in self._tasks.values()
			if (session_id is None or entry.session_id == session_id)
			and (turn_id is None or entry.turn_id == turn_id)
		]

	async def drain(self) -> None:
		"""Wait until every outstanding task (including ones spawned meanwhile) is done."""
		while self._tasks:
			await asyncio.gather(*list(self._tasks), return_exceptions=True)

	def _finished(self, task: "asyncio.Task[Any]") -> None:
		entry = self._tasks.pop(task, None)
		label = entry.label if entry else task.get_name()
		if task.cancelled():
			LOGGER.warning("Detached task %s was cancelled", label)
			return
		exc = task.exception()
		if exc is not None:
			LOGGER.error("Detached task %s failed", label, exc_info=exc)
