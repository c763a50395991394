"""Tests for detached task bookkeeping."""

from __future__ import annotations

import asyncio
import logging

import pytest

from services.orchestration.task_registry import DetachedTaskRegistry


class TestDetachedTaskRegistry:
    @pytest.mark.asyncio
    async def test_pending_filters_by_turn(self):
        registry = DetachedTaskRegistry()
        gate = asyncio.Event()

        async def wait():
            await gate.wait()

        registry.spawn(wait(), label="diagram", session_id="s1", turn_id="t1")
        registry.spawn(wait(), label="diagram", session_id="s1", turn_id="t2")

        assert [e.turn_id for e in registry.pending(turn_id="t1")] == ["t1"]
        assert len(registry.pending(session_id="s1")) == 2

        gate.set()
        await registry.drain()
        assert registry.pending() == []

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, caplog):
        registry = DetachedTaskRegistry()

        async def fail():
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR):
            registry.spawn(fail(), label="illustration", session_id="s1")
            await registry.drain()

        assert "illustration" in caplog.text

    @pytest.mark.asyncio
    async def test_drain_waits_for_tasks_spawned_meanwhile(self):
        registry = DetachedTaskRegistry()
        done = []

        async def child():
            done.append("child")

        async def parent():
            registry.spawn(child(), label="child", session_id="s1")

        registry.spawn(parent(), label="parent", session_id="s1")
        await registry.drain()

        assert done == ["child"]
