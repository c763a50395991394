"""Tests for staging uploads and Historian pre-processing."""

from __future__ import annotations

import asyncio
import base64
import io

import pytest
from PIL import Image

from models.errors import InferenceError, ValidationError
from models.session_models import AgentType
from services.orchestration.file_ingestion import FileIngestionPipeline, staging_notice
from services.orchestration.session_state import SessionStateContainer
from services.orchestration.turn_orchestrator import TurnOrchestrator


@pytest.fixture
def pipeline(store, provider, state, activity) -> FileIngestionPipeline:
    return FileIngestionPipeline(store, provider, state, activity=activity)


def _png_bytes(size=(400, 200)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", size, (10, 20, 30, 128)).save(buf, format="PNG")
    return buf.getvalue()


class TestStageFile:
    """The file is attached before the Historian has read it."""

    @pytest.mark.asyncio
    async def test_staged_file_has_no_summary(self, pipeline, state, store):
        session_id, staged = await pipeline.stage_file("notes.pdf", b"%PDF-1.4", "application/pdf")

        assert session_id == "sess-1"
        assert state.session.files[0].id == staged.id
        assert state.session.files[0].summary is None
        assert state.session.messages[-1].content == staging_notice("notes.pdf")
        assert store.files["sess-1"][0].id == staged.id

    @pytest.mark.asyncio
    async def test_notice_persisted_when_file_write_fails(self, pipeline, state, store):
        store.fail_on = {"append_file"}

        _, staged = await pipeline.stage_file("notes.pdf", b"%PDF-1.4", "application/pdf")

        assert "sess-1" not in store.files
        assert store.messages["sess-1"][-1].content == staging_notice("notes.pdf")
        assert state.session.files[0].id == staged.id

    @pytest.mark.asyncio
    async def test_content_is_base64(self, pipeline):
        _, staged = await pipeline.stage_file("notes.txt", b"hello", "text/plain")

        assert base64.b64decode(staged.content_b64) == b"hello"
        assert staged.size_bytes == 5
        assert staged.preview_b64 is None

    @pytest.mark.asyncio
    async def test_image_gets_preview(self, pipeline):
        _, staged = await pipeline.stage_file("chart.png", _png_bytes(), "image/png")

        preview = Image.open(io.BytesIO(base64.b64decode(staged.preview_b64)))
        assert max(preview.size) <= 160

    @pytest.mark.asyncio
    async def test_broken_image_has_no_preview(self, pipeline):
        _, staged = await pipeline.stage_file("broken.png", b"not an image", "image/png")

        assert staged.preview_b64 is None

    @pytest.mark.asyncio
    async def test_empty_upload_rejected(self, pipeline):
        with pytest.raises(ValidationError):
            await pipeline.stage_file("empty.pdf", b"", "application/pdf")

    @pytest.mark.asyncio
    async def test_requires_open_session(self, store, provider):
        pipeline = FileIngestionPipeline(store, provider, SessionStateContainer())
        with pytest.raises(ValidationError):
            await pipeline.stage_file("notes.pdf", b"%PDF", "application/pdf")


class TestSummarizeFile:
    """The summary joins the context only once it exists."""

    @pytest.mark.asyncio
    async def test_summary_applied_and_persisted(self, pipeline, provider, state, store, activity):
        provider.summary = "T"

        ingested = await pipeline.ingest_file("notes.pdf", b"%PDF-1.4", "application/pdf")

        assert ingested.summary == "T"
        assert state.session.files[0].summary == "T"
        assert store.summaries[ingested.id] == "T"
        assert activity.get(AgentType.HISTORIAN).description == "Knowledge Indexed"

    @pytest.mark.asyncio
    async def test_failure_leaves_summary_absent(self, pipeline, provider, state, activity):
        provider.errors["summarize_document"] = InferenceError("unreadable")

        ingested = await pipeline.ingest_file("scan.pdf", b"%PDF-1.4", "application/pdf")

        assert ingested.summary is None
        assert state.session.files[0].summary is None
        assert activity.get(AgentType.HISTORIAN).description == "Could not read scan.pdf"
        assert activity.get(AgentType.HISTORIAN).active is False

    @pytest.mark.asyncio
    async def test_empty_summary_treated_as_failure(self, pipeline, provider, state):
        provider.summary = ""

        ingested = await pipeline.ingest_file("notes.pdf", b"%PDF-1.4", "application/pdf")

        assert ingested.summary is None
        assert state.session.files[0].summary is None

    @pytest.mark.asyncio
    async def test_turn_during_summarization_sees_no_context(
        self, pipeline, provider, store, state, activity, narration, tasks
    ):
        provider.held = {"summarize_document"}
        orchestrator = TurnOrchestrator(store, provider, state, activity=activity, narration=narration, tasks=tasks)

        ingest = asyncio.create_task(pipeline.ingest_file("notes.pdf", b"%PDF-1.4", "application/pdf"))
        while not provider.gates.get("summarize_document"):
            await asyncio.sleep(0)

        provider.held = set()
        await orchestrator.submit_turn("What is in my notes?")
        assert provider.calls_to("complete_text")[0][2] == ""

        provider.gates["summarize_document"][0].set_result("T")
        await ingest
        await orchestrator.submit_turn("And now?")
        assert provider.calls_to("complete_text")[1][2] == "T"
        await tasks.drain()
