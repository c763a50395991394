"""File ingestion: attach an upload immediately, summarize it afterwards.

A staged file is visible in the session right away but contributes nothing
to the Teacher's context until the Historian has produced its summary.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Optional
from uuid import uuid4

from models.errors import InferenceError, PersistenceError, ValidationError
from models.session_models import AgentType, Message, MessageRole, UploadedFile
from services.file_preview import FilePreviewGenerator
from services.orchestration.agent_activity import AgentActivityBoard
from services.orchestration.interfaces import InferenceProvider, SessionWriter
from services.orchestration.session_state import SessionStateContainer, SessionUpdate
from utils.media_validation import encode_base64

LOGGER = logging.getLogger(__name__)


def staging_notice(filename: str) -> str:
	return f'[System] The Historian is reading "{filename}". Its summary joins the context memory once ready.'


class FileIngestionPipeline:
	"""Stage uploads into the open session and pre-process them with the Historian."""

	def __init__(
		self,
		store: SessionWriter,
		provider: InferenceProvider,
		state: SessionStateContainer,
		*,
		activity: Optional[AgentActivityBoard] = None,
		previews: Optional[FilePreviewGenerator] = None,
	) -> None:
		self.store = store
		self.provider = provider
		self.state = state
		self.activity = activity or AgentActivityBoard()
		self.previews = previews or FilePreviewGenerator()

	async def ingest_file(self, filename: str, raw: bytes, mime_type: str) -> UploadedFile:
		"""Stage the file, then await its summary. Returns the file as it ended up.

		Raises:
			ValidationError: If no session is open or the upload is empty.
		"""
		session_id, staged = await self.stage_file(filename, raw, mime_type)
		summary = await self.summarize_file(session_id, staged, raw)
		return replace(staged, summary=summary) if summary is not None else staged

	async def stage_file(self, filename: str, raw: bytes, mime_type: str) -> tuple[str, UploadedFile]:
		"""Attach the file and a notice message to the open session and persist both."""
		session = self.state.session
		if session is None:
			raise ValidationError("No active session.")
		if not raw:
			raise ValidationError("Uploaded file is empty.")

		name = (filename or "").strip() or "document"
		staged = UploadedFile(
			id=uuid4().hex,
			name=name,
			size_bytes=len(raw),
			mime_type=mime_type,
			uploaded_at=time.time(),
			content_b64=encode_base64(raw),
			preview_b64=await self._preview(raw, mime_type),
		)
		notice = Message(
			id=uuid4().hex,
			role=MessageRole.ASSISTANT,
			content=staging_notice(name),
			created_at=self.state.next_timestamp(),
		)
		self.state.apply(SessionUpdate(session_id=session.id, files=(staged,), messages=(notice,)))

		try:
			await self.store.append_file(session.id, staged)
		except PersistenceError as exc:
			LOGGER.error("Could not persist upload %s for session %s: %s", staged.id, session.id, exc)
		notice = self.state.find_message(session.id, notice.id) or notice
		try:
			await self.store.append_message(session.id, notice)
		except PersistenceError as exc:
			LOGGER.error("Could not persist notice %s for session %s: %s", notice.id, session.id, exc)
		return session.id, staged

	async def summarize_file(self, session_id: str, file: UploadedFile, raw: bytes) -> Optional[str]:
		"""Ask the Historian for a summary; returns None when none could be produced."""
		self.activity.update(AgentType.HISTORIAN, True, f"Reading {file.name}...")
		try:
			summary = await self.provider.summarize_document(raw, file.mime_type, file.name)
		except InferenceError as exc:
			LOGGER.warning("Historian could not summarize %s: %s", file.name, exc)
			self.activity.update(AgentType.HISTORIAN, False, f"Could not read {file.name}")
			return None
		if not summary:
			LOGGER.warning("Historian returned an empty summary for %s", file.name)
			self.activity.update(AgentType.HISTORIAN, False, f"Could not read {file.name}")
			return None

		self.state.apply(SessionUpdate(session_id=session_id, file_summaries={file.id: summary}))
		try:
			await self.store.update_file_summary(session_id, file.id, summary)
		except PersistenceError as exc:
			LOGGER.error("Could not persist summary of %s: %s", file.id, exc)
		self.activity.update(AgentType.HISTORIAN, False, "Knowledge Indexed")
		return summary

	async def _preview(self, raw: bytes, mime_type: str) -> Optional[str]:
		if not self.previews.supports(mime_type):
			return None
		try:
			# Pillow decoding is blocking -> run in thread
			return await asyncio.to_thread(self.previews.create_preview, raw)
		except ValueError as exc:
			LOGGER.info("No preview for upload: %s", exc)
			return None
