"""Tests for the SQLite-backed session store (real aiosqlite on a temp directory)."""

from __future__ import annotations

import time

import pytest

from models.errors import AuthError, ConflictError
from models.session_models import Message, MessageRole, UploadedFile, default_diagram
from services.session_store import SessionStore, hash_password, verify_password
from utils.database_init import AsyncDatabaseInitializer


@pytest.fixture
def db_initializer(tmp_path) -> AsyncDatabaseInitializer:
    return AsyncDatabaseInitializer(tmp_path)


@pytest.fixture
def session_store(db_initializer) -> SessionStore:
    return SessionStore(db_initializer)


class TestPasswords:
    def test_hash_round_trip(self):
        stored = hash_password("s3cret")
        assert verify_password("s3cret", stored)
        assert not verify_password("wrong", stored)

    def test_salt_differs(self):
        assert hash_password("same") != hash_password("same")

    def test_malformed_hash_rejected(self):
        assert verify_password("x", "no-separator") is False


class TestAccounts:
    """Sign-up, sign-in and the remembered account."""

    @pytest.mark.asyncio
    async def test_signup_then_login(self, session_store):
        created = await session_store.create_account("Ada@Example.com", "pw", "Ada")
        await session_store.end_session()
        assert session_store.current_account is None

        account = await session_store.authenticate("ada@example.com", "pw")

        assert account == created
        assert account.email == "ada@example.com"
        assert session_store.current_account == account

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, session_store):
        await session_store.create_account("ada@example.com", "pw", "Ada")
        with pytest.raises(ConflictError):
            await session_store.create_account("ADA@example.com", "other", "Ada 2")

    @pytest.mark.asyncio
    async def test_wrong_password_rejected(self, session_store):
        await session_store.create_account("ada@example.com", "pw", "Ada")
        with pytest.raises(AuthError, match="Invalid credentials"):
            await session_store.authenticate("ada@example.com", "nope")

    @pytest.mark.asyncio
    async def test_unknown_email_rejected(self, session_store):
        with pytest.raises(AuthError):
            await session_store.authenticate("ghost@example.com", "pw")

    @pytest.mark.asyncio
    async def test_missing_fields_rejected(self, session_store):
        with pytest.raises(AuthError):
            await session_store.create_account("", "pw", "Nobody")

    @pytest.mark.asyncio
    async def test_account_restored_by_new_store(self, session_store, db_initializer):
        created = await session_store.create_account("ada@example.com", "pw", "Ada")

        reloaded = SessionStore(db_initializer)
        assert await reloaded.restore_account() == created

    @pytest.mark.asyncio
    async def test_logout_forgets_account(self, session_store, db_initializer):
        await session_store.create_account("ada@example.com", "pw", "Ada")
        await session_store.end_session()

        assert await SessionStore(db_initializer).restore_account() is None

    @pytest.mark.asyncio
    async def test_observe_account_fires_immediately_and_on_change(self, session_store):
        seen = []
        unsubscribe = session_store.observe_account(seen.append)
        account = await session_store.create_account("ada@example.com", "pw", "Ada")
        unsubscribe()
        await session_store.end_session()

        assert seen == [None, account]


class TestSessions:
    """Session, message and file persistence (sessions reference real accounts)."""

    @pytest.mark.asyncio
    async def test_new_session_has_default_diagram(self, session_store):
        uid = (await session_store.create_account("ada@example.com", "pw", "Ada")).uid
        session = await session_store.create_session(uid, "Photosynthesis")

        assert session.diagram == default_diagram("Photosynthesis")
        assert session.messages == ()
        assert (await session_store.get_session(session.id)) == session

    @pytest.mark.asyncio
    async def test_pinned_sessions_listed_first(self, session_store):
        uid = (await session_store.create_account("ada@example.com", "pw", "Ada")).uid
        first = await session_store.create_session(uid, "First")
        second = await session_store.create_session(uid, "Second")
        await session_store.update_session_fields(first.id, {"pinned": True})
        await session_store.append_message(
            second.id, Message(id="m1", role=MessageRole.USER, content="hi", created_at=time.time())
        )

        listed = await session_store.list_sessions(uid)

        assert [s.id for s in listed] == [first.id, second.id]
        assert listed[0].pinned is True

    @pytest.mark.asyncio
    async def test_sessions_scoped_to_account(self, session_store):
        uid = (await session_store.create_account("ada@example.com", "pw", "Ada")).uid
        other = (await session_store.create_account("bob@example.com", "pw", "Bob")).uid
        await session_store.create_session(uid, "Mine")
        await session_store.create_session(other, "Theirs")

        assert [s.topic for s in await session_store.list_sessions(uid)] == ["Mine"]

    @pytest.mark.asyncio
    async def test_round_trip_across_instances(self, session_store, db_initializer):
        uid = (await session_store.create_account("ada@example.com", "pw", "Ada")).uid
        session = await session_store.create_session(uid, "Recursion")
        await session_store.append_message(
            session.id, Message(id="m1", role=MessageRole.USER, content="Explain recursion", created_at=1.0)
        )
        await session_store.append_message(
            session.id, Message(id="m2", role=MessageRole.ASSISTANT, content="It calls itself.", created_at=2.0)
        )
        await session_store.append_file(
            session.id,
            UploadedFile(
                id="f1",
                name="notes.pdf",
                size_bytes=4,
                mime_type="application/pdf",
                uploaded_at=3.0,
                content_b64="JVBERg==",
            ),
        )
        await session_store.update_session_fields(session.id, {"diagram": "graph TD\nA-->B", "image_ref": "u"})

        loaded = await SessionStore(db_initializer).get_session(session.id)

        assert [(m.role, m.content) for m in loaded.messages] == [
            (MessageRole.USER, "Explain recursion"),
            (MessageRole.ASSISTANT, "It calls itself."),
        ]
        assert loaded.files[0].summary is None
        assert loaded.diagram == "graph TD\nA-->B"
        assert loaded.image_ref == "u"

        await session_store.update_file_summary(session.id, "f1", "T")
        assert (await session_store.get_session(session.id)).files[0].summary == "T"

    @pytest.mark.asyncio
    async def test_messages_reload_in_timestamp_order(self, session_store):
        uid = (await session_store.create_account("ada@example.com", "pw", "Ada")).uid
        session = await session_store.create_session(uid, "Recursion")
        # Second turn's write commits before the first one.
        await session_store.append_message(
            session.id, Message(id="m2", role=MessageRole.USER, content="Turn two", created_at=2.0)
        )
        await session_store.append_message(
            session.id, Message(id="m1", role=MessageRole.USER, content="Turn one", created_at=1.0)
        )

        loaded = await session_store.get_session(session.id)

        assert [m.id for m in loaded.messages] == ["m1", "m2"]

    @pytest.mark.asyncio
    async def test_missing_session_is_none(self, session_store):
        assert await session_store.get_session("sess-missing") is None

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, session_store):
        uid = (await session_store.create_account("ada@example.com", "pw", "Ada")).uid
        session = await session_store.create_session(uid, "Topic")
        with pytest.raises(ValueError):
            await session_store.update_session_fields(session.id, {"account_uid": "user-2"})
