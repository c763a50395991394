"""
Pytest configuration and shared fixtures.

Provides in-memory fakes for the inference provider and the session store so
orchestration can be tested without OpenAI or SQLite.
"""

from __future__ import annotations

import asyncio
import os
import time
from typing import Any, Dict, List, Optional, Tuple

import pytest

os.environ.setdefault("OPENAI_API_KEY", "test-key")

from models.errors import PersistenceError
from models.session_models import Message, StudySession, UploadedFile, default_diagram
from services.orchestration.agent_activity import AgentActivityBoard
from services.orchestration.narration import NarrationState
from services.orchestration.session_state import SessionStateContainer
from services.orchestration.task_registry import DetachedTaskRegistry


class FakeInferenceProvider:
    """Scriptable provider.

    Methods listed in `held` block until the test resolves the matching
    future in `gates[method]` (one future per call, in call order).
    """

    def __init__(self) -> None:
        self.answer = "Recursion is a function calling itself."
        self.diagram = "graph TD\nA[Recursion] --> B[Base case]"
        self.image = "https://images.example/recursion.png"
        self.audio = b"ID3-audio"
        self.summary = "Summary of the notes."
        self.errors: Dict[str, Exception] = {}
        self.held: set = set()
        self.gates: Dict[str, List[asyncio.Future]] = {}
        self.calls: List[Tuple[str, tuple]] = []

    async def _run(self, name: str, args: tuple, default: Any) -> Any:
        self.calls.append((name, args))
        if name in self.held:
            gate = asyncio.get_running_loop().create_future()
            self.gates.setdefault(name, []).append(gate)
            return await gate
        if name in self.errors:
            raise self.errors[name]
        return default

    def calls_to(self, name: str) -> List[tuple]:
        return [args for called, args in self.calls if called == name]

    async def complete_text(self, history, new_text, context):
        return await self._run("complete_text", (tuple(history), new_text, context), self.answer)

    async def synthesize_speech(self, text):
        return await self._run("synthesize_speech", (text,), self.audio)

    async def describe_as_diagram(self, topic, context):
        return await self._run("describe_as_diagram", (topic, context), self.diagram)

    async def generate_image(self, topic, context):
        return await self._run("generate_image", (topic, context), self.image)

    async def summarize_document(self, raw, mime_type, filename="document"):
        return await self._run("summarize_document", (raw, mime_type, filename), self.summary)


class FakeSessionStore:
    """In-memory `SessionWriter` that records what the live state looked like at each call."""

    def __init__(self, state: Optional[SessionStateContainer] = None) -> None:
        self.state = state
        self.sessions: Dict[str, StudySession] = {}
        self.messages: Dict[str, List[Message]] = {}
        self.files: Dict[str, List[UploadedFile]] = {}
        self.fields: Dict[str, Dict[str, Any]] = {}
        self.summaries: Dict[str, str] = {}
        self.fail = False
        self.fail_on: set = set()
        self.seen_at_append: List[int] = []

    def _check(self, method: str) -> None:
        if self.fail or method in self.fail_on:
            raise PersistenceError("database is locked")

    async def get_session(self, session_id):
        return self.sessions.get(session_id)

    async def update_session_fields(self, session_id, fields):
        self._check("update_session_fields")
        self.fields.setdefault(session_id, {}).update(fields)

    async def append_message(self, session_id, message):
        if self.state is not None and self.state.session is not None:
            self.seen_at_append.append(len(self.state.session.messages))
        self._check("append_message")
        self.messages.setdefault(session_id, []).append(message)

    async def append_file(self, session_id, file):
        self._check("append_file")
        self.files.setdefault(session_id, []).append(file)

    async def update_file_summary(self, session_id, file_id, summary):
        self._check("update_file_summary")
        self.summaries[file_id] = summary


def make_session(session_id: str = "sess-1", topic: str = "Recursion", **kwargs) -> StudySession:
    now = time.time()
    kwargs.setdefault("diagram", default_diagram(topic))
    return StudySession(
        id=session_id,
        account_uid="user-1",
        topic=topic,
        created_at=now,
        updated_at=now,
        **kwargs,
    )


def make_file(file_id: str = "file-1", summary: Optional[str] = None, name: str = "notes.pdf") -> UploadedFile:
    return UploadedFile(
        id=file_id,
        name=name,
        size_bytes=2048,
        mime_type="application/pdf",
        uploaded_at=time.time(),
        content_b64="JVBERi0=",
        summary=summary,
    )


@pytest.fixture
def provider() -> FakeInferenceProvider:
    return FakeInferenceProvider()


@pytest.fixture
def state() -> SessionStateContainer:
    container = SessionStateContainer(discard_stale_writes=True)
    container.open(make_session())
    return container


@pytest.fixture
def store(state) -> FakeSessionStore:
    return FakeSessionStore(state)


@pytest.fixture
def activity() -> AgentActivityBoard:
    return AgentActivityBoard()


@pytest.fixture
def narration() -> NarrationState:
    return NarrationState(enabled=True)


@pytest.fixture
def tasks() -> DetachedTaskRegistry:
    return DetachedTaskRegistry()
