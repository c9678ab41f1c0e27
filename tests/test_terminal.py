"""Tests for menu line input."""

from __future__ import annotations

import asyncio
import os

import pytest

from gucli.utils.terminal import LineReader


@pytest.fixture
def pipe():
    read_fd, write_fd = os.pipe()
    yield read_fd, write_fd
    for fd in (read_fd, write_fd):
        try:
            os.close(fd)
        except OSError:
            pass


class TestLineReader:
    @pytest.mark.asyncio
    async def test_lines_in_one_chunk(self, pipe):
        read_fd, write_fd = pipe
        os.write(write_fd, b"1\nq\n")
        reader = LineReader(read_fd)
        assert await reader.readline() == "1"
        assert await reader.readline() == "q"

    @pytest.mark.asyncio
    async def test_eof(self, pipe):
        read_fd, write_fd = pipe
        os.write(write_fd, b"2")
        os.close(write_fd)
        reader = LineReader(read_fd)
        assert await reader.readline() == "2"
        with pytest.raises(EOFError):
            await reader.readline()

    @pytest.mark.asyncio
    async def test_waits_for_input(self, pipe):
        read_fd, write_fd = pipe
        reader = LineReader(read_fd)
        task = asyncio.ensure_future(reader.readline())
        await asyncio.sleep(0.05)
        assert not task.done()
        os.write(write_fd, b"3\n")
        assert await asyncio.wait_for(task, timeout=1) == "3"

    @pytest.mark.asyncio
    async def test_cancel_releases_descriptor(self, pipe):
        read_fd, _ = pipe
        reader = LineReader(read_fd)
        task = asyncio.ensure_future(reader.readline())
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert not asyncio.get_running_loop().remove_reader(read_fd)
