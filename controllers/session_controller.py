"""Session lifecycle helpers: list, create, open, rename and pin."""

from __future__ import annotations

import time
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import HTTPException, Request

from models.session_models import Account, Message, MessageRole, StudySession
from services.orchestration.session_state import SessionStateContainer, SessionUpdate
from services.realtime.payloads import (
	agents_payload,
	narration_payload,
	session_payload,
	session_summary_payload,
)
from services.session_store import SessionStore

WELCOME_TOPIC = "Welcome to ScholarFlow"
WELCOME_MESSAGE = (
	"Welcome! I am your AI Faculty. Upload a PDF to the Librarian Vault or ask me a question to begin."
)


def require_account(request: Request) -> Account:
	"""Return the signed-in account or raise HTTP 401."""
	store: SessionStore = request.app.state.session_store
	account = store.current_account
	if account is None:
		raise HTTPException(status_code=401, detail="Sign in first.")
	return account


async def load_owned_session(request: Request, session_id: str) -> StudySession:
	"""Load a session of the signed-in account or raise HTTP 404."""
	account = require_account(request)
	store: SessionStore = request.app.state.session_store
	session = await store.get_session(session_id)
	if session is None or session.account_uid != account.uid:
		raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
	return session


async def ensure_open(request: Request, session_id: str) -> StudySession:
	"""Make `session_id` the live session unless it already is."""
	state: SessionStateContainer = request.app.state.session_state
	if state.is_open(session_id):
		return state.session
	session = await load_owned_session(request, session_id)
	state.open(session)
	return session


async def list_sessions(request: Request) -> Dict[str, Any]:
	"""List sessions, pinned first; a first-time account gets a welcome session."""
	account = require_account(request)
	store: SessionStore = request.app.state.session_store
	sessions = await store.list_sessions(account.uid)
	if not sessions:
		welcome = await store.create_session(account.uid, WELCOME_TOPIC)
		await store.append_message(
			welcome.id,
			Message(id=uuid4().hex, role=MessageRole.ASSISTANT, content=WELCOME_MESSAGE, created_at=time.time()),
		)
		sessions = await store.list_sessions(account.uid)
	return {"sessions": [session_summary_payload(s) for s in sessions]}


async def create_session(request: Request, topic: str) -> Dict[str, Any]:
	"""Create a session and make it the live one."""
	account = require_account(request)
	topic = (topic or "").strip()
	if not topic:
		raise HTTPException(status_code=422, detail="Topic is required.")
	store: SessionStore = request.app.state.session_store
	session = await store.create_session(account.uid, topic)
	request.app.state.session_state.open(session)
	return {"session": session_payload(session)}


async def open_session(request: Request, session_id: str) -> Dict[str, Any]:
	session = await load_owned_session(request, session_id)
	request.app.state.session_state.open(session)
	return {"session": session_payload(session)}


async def update_session(
	request: Request,
	session_id: str,
	topic: Optional[str] = None,
	pinned: Optional[bool] = None,
) -> Dict[str, Any]:
	"""Rename and/or pin a session; the live copy is updated too when it is open."""
	session = await load_owned_session(request, session_id)
	fields: Dict[str, Any] = {}
	if topic is not None:
		if not topic.strip():
			raise HTTPException(status_code=422, detail="Topic cannot be empty.")
		fields["topic"] = topic.strip()
	if pinned is not None:
		fields["pinned"] = bool(pinned)
	if not fields:
		return {"session": session_summary_payload(session)}

	store: SessionStore = request.app.state.session_store
	await store.update_session_fields(session_id, fields)
	state: SessionStateContainer = request.app.state.session_state
	state.apply(SessionUpdate(session_id=session_id, fields=fields))
	refreshed = await store.get_session(session_id)
	return {"session": session_summary_payload(refreshed or session)}


async def agents_snapshot(request: Request) -> Dict[str, Any]:
	return {"agents": agents_payload(request.app.state.orchestrator.activity.snapshot())}


async def set_narration(request: Request, enabled: bool) -> Dict[str, Any]:
	narration = request.app.state.orchestrator.narration
	narration.set_enabled(enabled)
	return {"narration": narration_payload(narration)}
