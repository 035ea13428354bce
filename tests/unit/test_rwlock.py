"""Unit tests for the asyncio read/write lock."""

import asyncio

import pytest

from sidecar_injector.utils.rwlock import ReadWriteLock


class TestReadWriteLock:
    """Test ReadWriteLock semantics."""

    @pytest.mark.asyncio
    async def test_readers_share(self):
        lock = ReadWriteLock()
        async with lock.read():
            async with lock.read():
                assert lock.readers == 2
        assert lock.readers == 0

    @pytest.mark.asyncio
    async def test_writer_waits_for_readers(self):
        lock = ReadWriteLock()
        order = []

        async def writer():
            async with lock.write():
                order.append("write")

        async with lock.read():
            task = asyncio.create_task(writer())
            await asyncio.sleep(0.01)
            assert not lock.writer_active
            order.append("read-done")

        await task
        assert order == ["read-done", "write"]

    @pytest.mark.asyncio
    async def test_waiting_writer_blocks_new_readers(self):
        lock = ReadWriteLock()
        order = []

        async def writer():
            async with lock.write():
                order.append("write")

        async def late_reader():
            async with lock.read():
                order.append("late-read")

        async with lock.read():
            writer_task = asyncio.create_task(writer())
            await asyncio.sleep(0.01)
            reader_task = asyncio.create_task(late_reader())
            await asyncio.sleep(0.01)
            assert order == []

        await asyncio.gather(writer_task, reader_task)
        assert order == ["write", "late-read"]

    @pytest.mark.asyncio
    async def test_cancelled_writer_releases_readers(self):
        lock = ReadWriteLock()

        async def writer():
            async with lock.write():
                pass

        async with lock.read():
            writer_task = asyncio.create_task(writer())
            await asyncio.sleep(0.01)
            writer_task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await writer_task

            async def reader():
                async with lock.read():
                    return True

            assert await asyncio.wait_for(reader(), timeout=1.0)
