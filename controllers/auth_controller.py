"""Sign-up, login and logout helpers."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException, Request

from models.errors import AuthError, ConflictError
from services.realtime.payloads import account_payload
from services.session_store import SessionStore


async def signup(request: Request, email: str, password: str, display_name: str) -> Dict[str, Any]:
	store: SessionStore = request.app.state.session_store
	try:
		account = await store.create_account(email, password, display_name)
	except ConflictError as exc:
		raise HTTPException(status_code=409, detail=str(exc)) from exc
	except AuthError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	request.app.state.session_state.open(None)
	return {"account": account_payload(account)}


async def login(request: Request, email: str, password: str) -> Dict[str, Any]:
	store: SessionStore = request.app.state.session_store
	try:
		account = await store.authenticate(email, password)
	except AuthError as exc:
		raise HTTPException(status_code=401, detail=str(exc)) from exc
	request.app.state.session_state.open(None)
	return {"account": account_payload(account)}


async def logout(request: Request) -> Dict[str, Any]:
	store: SessionStore = request.app.state.session_store
	await store.end_session()
	request.app.state.session_state.open(None)
	return {"account": None}


async def current_account(request: Request) -> Dict[str, Optional[Dict[str, Any]]]:
	store: SessionStore = request.app.state.session_store
	return {"account": account_payload(store.current_account)}
