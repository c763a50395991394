"""Tests for the session reducer and the live state container."""

from __future__ import annotations

import pytest

from models.errors import ValidationError
from models.session_models import Message, MessageRole
from services.orchestration.session_state import SessionStateContainer, SessionUpdate, merge_session

from tests.conftest import make_file, make_session


def _message(content: str, created_at: float, role: MessageRole = MessageRole.USER) -> Message:
    return Message(id=content, role=role, content=content, created_at=created_at)


class TestMergeSession:
    """Tests for the pure reducer."""

    def test_appends_messages_in_order(self):
        session = make_session()
        merged = merge_session(session, SessionUpdate(session_id=session.id, messages=(_message("a", 1.0),)))
        merged = merge_session(merged, SessionUpdate(session_id=session.id, messages=(_message("b", 2.0),)))

        assert [m.content for m in merged.messages] == ["a", "b"]
        assert session.messages == ()

    def test_same_field_last_write_wins(self):
        session = make_session()
        first = SessionUpdate(session_id=session.id, fields={"diagram": "graph TD\nA-->B"})
        second = SessionUpdate(session_id=session.id, fields={"diagram": "graph TD\nC-->D"})

        assert merge_session(merge_session(session, first), second).diagram == "graph TD\nC-->D"
        assert merge_session(merge_session(session, second), first).diagram == "graph TD\nA-->B"

    def test_timestamps_never_decrease(self):
        session = make_session(messages=(_message("a", 10.0),))
        merged = merge_session(session, SessionUpdate(session_id=session.id, messages=(_message("b", 5.0),)))

        assert merged.messages[-1].created_at == 10.0

    def test_file_summary_fills_matching_file_only(self):
        session = make_session(files=(make_file("f1"), make_file("f2")))
        merged = merge_session(session, SessionUpdate(session_id=session.id, file_summaries={"f2": "T"}))

        assert merged.files[0].summary is None
        assert merged.files[1].summary == "T"

    def test_rejects_other_session(self):
        with pytest.raises(ValueError):
            merge_session(make_session("sess-1"), SessionUpdate(session_id="sess-2"))

    def test_rejects_unknown_field(self):
        session = make_session()
        with pytest.raises(ValueError):
            merge_session(session, SessionUpdate(session_id=session.id, fields={"account_uid": "x"}))


class TestSessionStateContainer:
    """Tests for write filtering and notifications."""

    def test_write_for_closed_session_is_discarded(self):
        container = SessionStateContainer()
        container.open(make_session("sess-b"))

        applied = container.apply(SessionUpdate(session_id="sess-a", fields={"image_ref": "x"}))

        assert applied is False
        assert container.session.id == "sess-b"
        assert container.session.image_ref is None

    def test_stale_turn_discarded_when_guard_on(self):
        container = SessionStateContainer(discard_stale_writes=True)
        container.open(make_session())
        old_turn = container.begin_turn()
        container.begin_turn()

        assert container.apply(SessionUpdate(session_id="sess-1", turn_id=old_turn, fields={"diagram": "old"})) is False
        assert container.session.diagram != "old"

    def test_stale_turn_applied_when_guard_off(self):
        container = SessionStateContainer(discard_stale_writes=False)
        container.open(make_session())
        old_turn = container.begin_turn()
        container.begin_turn()

        assert container.apply(SessionUpdate(session_id="sess-1", turn_id=old_turn, fields={"diagram": "old"})) is True
        assert container.session.diagram == "old"

    def test_listeners_receive_new_snapshot(self):
        container = SessionStateContainer()
        seen = []
        unsubscribe = container.subscribe(seen.append)
        container.open(make_session())
        container.apply(SessionUpdate(session_id="sess-1", fields={"pinned": True}))
        unsubscribe()
        container.apply(SessionUpdate(session_id="sess-1", fields={"pinned": False}))

        assert len(seen) == 2
        assert seen[-1].pinned is True

    def test_failing_listener_does_not_block_others(self):
        container = SessionStateContainer()
        seen = []

        def broken(_session):
            raise RuntimeError("boom")

        container.subscribe(broken)
        container.subscribe(seen.append)
        container.open(make_session())

        assert len(seen) == 1

    def test_begin_turn_requires_open_session(self):
        with pytest.raises(ValidationError):
            SessionStateContainer().begin_turn()

    def test_open_resets_latest_turn(self):
        container = SessionStateContainer()
        container.open(make_session())
        container.begin_turn()
        container.open(make_session("sess-2"))

        assert container.latest_turn_id is None

    def test_find_message_returns_merged_copy(self):
        container = SessionStateContainer()
        container.open(make_session(messages=(_message("a", 10.0),)))
        container.apply(SessionUpdate(session_id="sess-1", messages=(_message("b", 5.0),)))

        assert container.find_message("sess-1", "b").created_at == 10.0
        assert container.find_message("sess-2", "b") is None
        assert container.find_message("sess-1", "missing") is None
