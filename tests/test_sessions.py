"""Tests for the per-session engine registry and its background tasks."""

import asyncio
import logging

from sci_learner.sessions import SessionRegistry


def test_get_or_create_reuses_engine(make_engine):
    registry = SessionRegistry(make_engine)
    first = registry.get_or_create("s1")

    assert registry.get_or_create("s1") is first
    assert registry.get_or_create("s2") is not first
    assert registry.get("missing") is None


async def test_drain_waits_for_spawned_work(make_engine):
    registry = SessionRegistry(make_engine)
    done = []

    async def work():
        await asyncio.sleep(0)
        done.append(True)

    registry.spawn("s1", work())
    await registry.drain()
    assert done == [True]


async def test_failed_task_is_logged(make_engine, caplog):
    registry = SessionRegistry(make_engine)

    async def boom():
        raise RuntimeError("engine exploded")

    with caplog.at_level(logging.ERROR, logger="sci_learner.sessions"):
        registry.spawn("s1", boom())
        await registry.drain()
        await asyncio.sleep(0)

    assert "background task session-s1 failed" in caplog.text


def test_remove_resets_and_forgets_engine(make_engine):
    registry = SessionRegistry(make_engine)
    engine = registry.get_or_create("s1")
    epoch = engine.guard.capture()

    assert registry.remove("s1") is True
    assert engine.guard.is_stale(epoch)
    assert registry.get("s1") is None
    assert registry.remove("s1") is False
