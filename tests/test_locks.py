import asyncio

import pytest

from relaywriter.services.locks import SessionLockRegistry


@pytest.mark.asyncio
async def test_same_id_waits_other_id_does_not() -> None:
    locks = SessionLockRegistry()
    order = []

    async def hold(session_id: str, tag: str, pause: float) -> None:
        async with locks.hold(session_id):
            order.append(f"{tag}-in")
            await asyncio.sleep(pause)
            order.append(f"{tag}-out")

    first = asyncio.create_task(hold("s", "first", 0.02))
    await asyncio.sleep(0)
    assert locks.is_locked("s")
    second = asyncio.create_task(hold("s", "second", 0))
    other = asyncio.create_task(hold("t", "other", 0))
    await asyncio.gather(first, second, other)

    assert order.index("first-out") < order.index("second-in")
    assert order.index("other-out") < order.index("first-out")


@pytest.mark.asyncio
async def test_entries_are_dropped_after_use() -> None:
    locks = SessionLockRegistry()
    async with locks.hold("s"):
        assert len(locks) == 1
    assert len(locks) == 0
    assert not locks.is_locked("s")


@pytest.mark.asyncio
async def test_entry_released_when_body_raises() -> None:
    locks = SessionLockRegistry()
    with pytest.raises(RuntimeError):
        async with locks.hold("s"):
            raise RuntimeError("boom")
    assert len(locks) == 0
