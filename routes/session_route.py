"""FastAPI routes for study sessions, turns and uploads."""

from typing import Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel

from controllers.session_controller import (
	agents_snapshot,
	create_session,
	list_sessions,
	open_session,
	set_narration,
	update_session,
)
from controllers.turn_controller import submit_turn, upload_file

router = APIRouter()


class CreatePayload(BaseModel):
	topic: str


class UpdatePayload(BaseModel):
	topic: Optional[str] = None
	pinned: Optional[bool] = None


class TurnPayload(BaseModel):
	text: str


class NarrationPayload(BaseModel):
	enabled: bool


@router.get("/sessions")
async def list_sessions_route(request: Request):
	try:
		return await list_sessions(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/sessions")
async def create_session_route(request: Request, payload: CreatePayload):
	try:
		return await create_session(request, payload.topic)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/sessions/{session_id}/open")
async def open_session_route(request: Request, session_id: str):
	try:
		return await open_session(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.patch("/sessions/{session_id}")
async def update_session_route(request: Request, session_id: str, payload: UpdatePayload):
	try:
		return await update_session(request, session_id, payload.topic, payload.pinned)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/sessions/{session_id}/turns")
async def submit_turn_route(request: Request, session_id: str, payload: TurnPayload):
	try:
		return await submit_turn(request, session_id, payload.text)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/sessions/{session_id}/files")
async def upload_file_route(request: Request, session_id: str, file: UploadFile = File(...)):
	try:
		return await upload_file(request, session_id, file)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/agents")
async def agents_route(request: Request):
	return await agents_snapshot(request)


@router.put("/narration")
async def narration_route(request: Request, payload: NarrationPayload):
	return await set_narration(request, payload.enabled)
