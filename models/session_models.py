"""Session domain models for study workflows."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class MessageRole(str, Enum):
	USER = "user"
	ASSISTANT = "assistant"


class AgentType(str, Enum):
	"""Logical agents; each one is a differently prompted provider call."""

	HISTORIAN = "Historian"
	TEACHER = "Teacher"
	ARCHITECT = "Architect"
	ILLUSTRATOR = "Illustrator"


@dataclass(frozen=True)
class Account:
	"""Public view of a registered account (never carries the password)."""

	uid: str
	email: str
	display_name: str


@dataclass(frozen=True)
class Message:
	"""Immutable chat message stored in insertion order."""

	id: str
	role: MessageRole
	content: str
	created_at: float = field(default_factory=lambda: time.time())


@dataclass(frozen=True)
class UploadedFile:
	"""File attached to a session.

	`summary` stays None until the Historian has produced one; a file without
	a summary is not part of the conversational context.
	"""

	id: str
	name: str
	size_bytes: int
	mime_type: str
	uploaded_at: float
	content_b64: str
	summary: Optional[str] = None
	preview_b64: Optional[str] = None

	@property
	def size_label(self) -> str:
		return f"{self.size_bytes / 1024:.1f} KB"

	@property
	def is_summarized(self) -> bool:
		return self.summary is not None


@dataclass(frozen=True)
class StudySession:
	"""Snapshot of a study session; updated by producing a new value."""

	id: str
	account_uid: str
	topic: str
	messages: Tuple[Message, ...] = ()
	diagram: str = ""
	image_ref: Optional[str] = None
	files: Tuple[UploadedFile, ...] = ()
	pinned: bool = False
	created_at: float = field(default_factory=lambda: time.time())
	updated_at: float = field(default_factory=lambda: time.time())


@dataclass
class AgentStatus:
	"""UI-facing activity indicator for one agent."""

	agent: AgentType
	active: bool = False
	description: str = "Idle"


def default_diagram(topic: str) -> str:
	"""Placeholder Mermaid diagram for a freshly created session."""
	return f"graph TD\nA[{topic}] --> B[Waiting for Context...]"
