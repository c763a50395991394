"""Turn submission and file upload helpers."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import HTTPException, Request, UploadFile

from controllers.session_controller import ensure_open
from models.errors import ValidationError
from services.orchestration.file_ingestion import FileIngestionPipeline
from services.orchestration.turn_orchestrator import TurnOrchestrator
from services.realtime.payloads import file_payload, message_payload, session_payload
from utils.media_validation import read_document_bytes


async def submit_turn(request: Request, session_id: str, text: str) -> Dict[str, Any]:
	"""Run the core phase of a turn; satellites keep running after the response."""
	await ensure_open(request, session_id)
	orchestrator: TurnOrchestrator = request.app.state.orchestrator
	try:
		turn = await orchestrator.submit_turn(text)
	except ValidationError as exc:
		raise HTTPException(status_code=422, detail=str(exc)) from exc
	return {
		"turn_id": turn.turn_id,
		"phase": turn.phase.value,
		"user_message": message_payload(turn.user_message),
		"answer": message_payload(turn.answer) if turn.answer else None,
		"fallback": turn.answer_is_fallback,
		"session": session_payload(orchestrator.state.session),
	}


async def upload_file(request: Request, session_id: str, upload: UploadFile) -> Dict[str, Any]:
	"""Validate an upload, attach it to the session and wait for its summary."""
	raw, mime_type = await read_document_bytes(upload, request.app.state.config.max_upload_bytes)
	await ensure_open(request, session_id)
	ingestion: FileIngestionPipeline = request.app.state.ingestion
	try:
		ingested = await ingestion.ingest_file(upload.filename, raw, mime_type)
	except ValidationError as exc:
		raise HTTPException(status_code=422, detail=str(exc)) from exc
	return {"file": file_payload(ingested)}
