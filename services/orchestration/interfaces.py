"""
Capabilities the orchestrator consumes. The orchestrator depends on these
protocols, not on OpenAI or SQLite, so tests can pass simple fakes.

- InferenceProvider: every method raises InferenceError on failure.
- SessionWriter: every method raises PersistenceError on failure.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, Sequence

from models.session_models import Message, StudySession, UploadedFile


class InferenceProvider(Protocol):
	async def complete_text(self, history: Sequence[Message], new_text: str, context: str) -> str: ...

	async def synthesize_speech(self, text: str) -> bytes: ...

	async def describe_as_diagram(self, topic: str, context: str) -> str: ...

	async def generate_image(self, topic: str, context: str) -> str: ...

	async def summarize_document(self, raw: bytes, mime_type: str, filename: str = "document") -> str: ...


class SessionWriter(Protocol):
	async def get_session(self, session_id: str) -> Optional[StudySession]: ...

	async def update_session_fields(self, session_id: str, fields: Dict[str, Any]) -> None: ...

	async def append_message(self, session_id: str, message: Message) -> None: ...

	async def append_file(self, session_id: str, file: UploadedFile) -> None: ...

	async def update_file_summary(self, session_id: str, file_id: str, summary: str) -> None: ...
