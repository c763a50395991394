"""Agent activity indicators. Purely observational; nothing reads them to decide control flow."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List

from models.session_models import AgentStatus, AgentType
from utils.observable import Observable

INITIAL_DESCRIPTIONS = {
	AgentType.HISTORIAN: "Idle",
	AgentType.TEACHER: "Waiting",
	AgentType.ARCHITECT: "Idle",
	AgentType.ILLUSTRATOR: "Idle",
}


class AgentActivityBoard(Observable):
	"""Current status of each agent; listeners receive the full snapshot."""

	def __init__(self) -> None:
		super().__init__()
		self._statuses: Dict[AgentType, AgentStatus] = {
			agent: AgentStatus(agent=agent, active=False, description=desc)
			for agent, desc in INITIAL_DESCRIPTIONS.items()
		}

	def update(self, agent: AgentType, active: bool, description: str) -> None:
		self._statuses[agent] = AgentStatus(agent=agent, active=active, description=description)
		self._emit(self.snapshot())

	def get(self, agent: AgentType) -> AgentStatus:
		return replace(self._statuses[agent])

	def snapshot(self) -> List[AgentStatus]:
		return [replace(status) for status in self._statuses.values()]
