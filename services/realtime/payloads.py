"""JSON-ready views of session, agent and narration state."""

from __future__ import annotations

import base64
from typing import Any, Dict, Iterable, List, Optional

from models.session_models import Account, AgentStatus, Message, StudySession, UploadedFile
from services.orchestration.narration import NarrationState


def account_payload(account: Optional[Account]) -> Optional[Dict[str, Any]]:
	if account is None:
		return None
	return {"uid": account.uid, "email": account.email, "display_name": account.display_name}


def message_payload(message: Message) -> Dict[str, Any]:
	return {
		"id": message.id,
		"role": message.role.value,
		"content": message.content,
		"created_at": message.created_at,
	}


def file_payload(file: UploadedFile) -> Dict[str, Any]:
	"""File metadata without the raw content."""
	return {
		"id": file.id,
		"name": file.name,
		"size": file.size_label,
		"size_bytes": file.size_bytes,
		"mime_type": file.mime_type,
		"uploaded_at": file.uploaded_at,
		"summarized": file.is_summarized,
		"preview_b64": file.preview_b64,
	}


def session_payload(session: Optional[StudySession]) -> Optional[Dict[str, Any]]:
	if session is None:
		return None
	return {
		"id": session.id,
		"topic": session.topic,
		"pinned": session.pinned,
		"diagram": session.diagram,
		"image_ref": session.image_ref,
		"messages": [message_payload(m) for m in session.messages],
		"files": [file_payload(f) for f in session.files],
		"updated_at": session.updated_at,
	}


def session_summary_payload(session: StudySession) -> Dict[str, Any]:
	"""Sidebar entry: no messages or files."""
	return {"id": session.id, "topic": session.topic, "pinned": session.pinned, "updated_at": session.updated_at}


def agents_payload(statuses: Iterable[AgentStatus]) -> List[Dict[str, Any]]:
	return [
		{"agent": status.agent.value, "active": status.active, "description": status.description}
		for status in statuses
	]


def narration_payload(narration: NarrationState) -> Dict[str, Any]:
	return {"enabled": narration.enabled, "loading": narration.loading}


def narration_audio_payload(narration: NarrationState) -> Optional[Dict[str, Any]]:
	latest = narration.latest
	if latest is None:
		return None
	return {
		"turn_id": latest.turn_id,
		"session_id": latest.session_id,
		"audio_b64": base64.b64encode(latest.audio).decode("ascii"),
		"mime_type": "audio/mpeg",
	}
