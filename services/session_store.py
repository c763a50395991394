"""SQLite-backed store for accounts, study sessions, messages and files."""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import sqlite3
import time
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

import aiosqlite

from dal.account_dal import AccountDAL
from dal.session_dal import SessionDAL
from models.errors import AuthError, ConflictError, PersistenceError
from models.session_models import Account, Message, StudySession, UploadedFile, default_diagram
from utils.database_init import AsyncDatabaseInitializer
from utils.observable import Observable

LOGGER = logging.getLogger(__name__)

_PBKDF2_ROUNDS = 200_000


def hash_password(password: str, salt: Optional[str] = None) -> str:
	"""Return `salt$hexdigest` for a password."""
	salt = salt or secrets.token_hex(16)
	digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), _PBKDF2_ROUNDS)
	return f"{salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
	salt, _, expected = stored.partition("$")
	if not salt or not expected:
		return False
	candidate = hash_password(password, salt).partition("$")[2]
	return hmac.compare_digest(candidate, expected)


class SessionStore:
	"""Persist accounts and sessions; every write is an independent point write.

	Database failures surface as PersistenceError so callers can decide
	whether to degrade or propagate.
	"""

	def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
		self._accounts = AccountDAL(db_initializer)
		self._sessions = SessionDAL(db_initializer)
		self._account_events = Observable()
		self._current: Optional[Account] = None

	@property
	def current_account(self) -> Optional[Account]:
		return self._current

	# Accounts

	async def restore_account(self) -> Optional[Account]:
		"""Reload the remembered sign-in, if any, and notify observers."""
		async with self._guard("restore account"):
			uid = await self._accounts.remembered_uid()
			account = await self._accounts.get_by_uid(uid) if uid else None
		self._set_current(account)
		return account

	async def authenticate(self, email: str, password: str) -> Account:
		"""Sign in with email and password or raise AuthError."""
		email = (email or "").strip().lower()
		async with self._guard("authenticate"):
			found = await self._accounts.get_by_email(email)
		if found is None or not verify_password(password or "", found[1]):
			raise AuthError("Invalid credentials. Please sign up if you don't have an account.")
		account = found[0]
		async with self._guard("remember account"):
			await self._accounts.remember(account.uid)
		self._set_current(account)
		return account

	async def create_account(self, email: str, password: str, display_name: str) -> Account:
		"""Register and sign in a new account or raise ConflictError."""
		email = (email or "").strip().lower()
		if not email or not password:
			raise AuthError("Email and password are required.")
		account = Account(uid=f"user-{uuid4().hex}", email=email, display_name=(display_name or "").strip() or email)
		try:
			await self._accounts.create_account(account, hash_password(password))
		except sqlite3.IntegrityError as exc:
			raise ConflictError("User already exists") from exc
		except (aiosqlite.Error, sqlite3.Error) as exc:
			raise PersistenceError(f"create account failed: {exc}") from exc
		async with self._guard("remember account"):
			await self._accounts.remember(account.uid)
		self._set_current(account)
		return account

	async def end_session(self) -> None:
		"""Sign out the current account."""
		async with self._guard("forget account"):
			await self._accounts.remember(None)
		self._set_current(None)

	def observe_account(self, callback: Callable[[Optional[Account]], Any]) -> Callable[[], None]:
		"""Subscribe to sign-in changes; the callback fires immediately with the current account."""
		unsubscribe = self._account_events.subscribe(callback)
		callback(self._current)
		return unsubscribe

	# Sessions

	async def list_sessions(self, account_uid: str) -> List[StudySession]:
		async with self._guard("list sessions"):
			return await self._sessions.list_sessions(account_uid)

	async def get_session(self, session_id: str) -> Optional[StudySession]:
		async with self._guard("load session"):
			return await self._sessions.get_session(session_id)

	async def create_session(self, account_uid: str, topic: str) -> StudySession:
		now = time.time()
		session = StudySession(
			id=f"sess-{uuid4().hex}",
			account_uid=account_uid,
			topic=topic,
			diagram=default_diagram(topic),
			created_at=now,
			updated_at=now,
		)
		async with self._guard("create session"):
			await self._sessions.create_session(session)
		return session

	async def update_session_fields(self, session_id: str, fields: Dict[str, Any]) -> None:
		if not fields:
			return
		async with self._guard("update session"):
			await self._sessions.update_session_fields(session_id, fields)

	async def append_message(self, session_id: str, message: Message) -> None:
		async with self._guard("append message"):
			await self._sessions.append_message(session_id, message)

	async def append_file(self, session_id: str, file: UploadedFile) -> None:
		async with self._guard("append file"):
			await self._sessions.append_file(session_id, file)

	async def update_file_summary(self, session_id: str, file_id: str, summary: str) -> None:
		async with self._guard("update file summary"):
			await self._sessions.update_file_summary(session_id, file_id, summary)

	def _set_current(self, account: Optional[Account]) -> None:
		self._current = account
		self._account_events._emit(account)

	def _guard(self, action: str) -> "_PersistenceGuard":
		return _PersistenceGuard(action)


class _PersistenceGuard:
	"""Translate database driver errors into PersistenceError."""

	def __init__(self, action: str) -> None:
		self.action = action

	async def __aenter__(self) -> "_PersistenceGuard":
		return self

	async def __aexit__(self, exc_type, exc, tb) -> bool:
		if exc is not None and isinstance(exc, (aiosqlite.Error, sqlite3.Error)):
			raise PersistenceError(f"{self.action} failed: {exc}") from exc
		return False
