"""Tests for chunk splitting, the thread pool path and the result cache."""

import asyncio
import queue
import time

import pytest

from lineweaver import CancellationToken, ProcessingConfig, ResultCache, process
from lineweaver.cache import cache_key
from lineweaver.chunking import aprocess_chunks, process_chunks, split_chunks
from lineweaver.errors import ProcessingCancelled


class TestSplitChunks:
    def test_chunks_reassemble_to_input(self):
        text = "alpha beta gamma\ndelta " * 500
        chunks = split_chunks(text, 300)
        assert "".join(chunks) == text
        assert len(chunks) > 1

    def test_chunks_split_at_whitespace(self):
        text = "abcdefgh " * 200
        for chunk in split_chunks(text, 256)[1:]:
            assert chunk[0].isspace()

    def test_chunks_respect_size(self):
        text = "ab " * 1000
        assert all(len(chunk) <= 256 for chunk in split_chunks(text, 256))

    def test_no_whitespace_in_window_grows_chunk(self):
        text = "x" * 600 + " tail"
        chunks = split_chunks(text, 256)
        assert chunks == ["x" * 600, " tail"]

    def test_short_text_single_chunk(self):
        assert split_chunks("short", 256) == ["short"]


class TestProcessChunks:
    def test_results_in_chunk_order(self):
        def slow_first(chunk: str) -> str:
            if chunk == "a":
                time.sleep(0.05)
            return chunk.upper()

        assert process_chunks(["a", "b", "c", "d"], slow_first, max_workers=4) == ["A", "B", "C", "D"]

    def test_progress_reports_every_chunk(self):
        progress: queue.Queue = queue.Queue()
        process_chunks(["a", "b", "c"], str.upper, progress=progress)
        messages = [progress.get_nowait() for _ in range(3)]
        assert progress.empty()
        assert {m.index for m in messages} == {0, 1, 2}
        assert [m.completed for m in messages] == [1, 2, 3]
        assert all(m.total == 3 for m in messages)

    def test_cancellation_raises(self):
        token = CancellationToken()

        def cancel_on_first(chunk: str) -> str:
            token.cancel()
            return chunk

        with pytest.raises(ProcessingCancelled):
            process_chunks(["a", "b", "c"], cancel_on_first, max_workers=1, cancel=token)

    def test_errors_propagate(self):
        def boom(chunk: str) -> str:
            raise ValueError(chunk)

        with pytest.raises(ValueError):
            process_chunks(["a"], boom)


class TestAsyncChunks:
    def test_sequential_results(self):
        result = asyncio.run(aprocess_chunks(["a", "b"], str.upper))
        assert result == ["A", "B"]

    def test_async_queue_progress(self):
        async def run():
            progress: asyncio.Queue = asyncio.Queue()
            await aprocess_chunks(["a", "b"], str.upper, progress=progress)
            return [progress.get_nowait() for _ in range(progress.qsize())]

        messages = asyncio.run(run())
        assert [m.index for m in messages] == [0, 1]

    def test_cancellation(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ProcessingCancelled):
            asyncio.run(aprocess_chunks(["a"], str.upper, cancel=token))


class TestResultCache:
    def test_evicts_least_recently_used(self):
        cache = ResultCache(capacity=2)
        a = process("a")
        b = process("b")
        c = process("c")
        cache.put("a", a)
        cache.put("b", b)
        assert cache.get("a") is a      # "b" is now least recently used
        cache.put("c", c)
        assert "b" not in cache
        assert "a" in cache and "c" in cache
        assert len(cache) == 2

    def test_hit_and_miss_counters(self):
        cache = ResultCache()
        assert cache.get("missing") is None
        cache.put("k", process("k"))
        cache.get("k")
        assert (cache.hits, cache.misses) == (1, 1)

    def test_clear(self):
        cache = ResultCache()
        cache.put("k", process("k"))
        cache.clear()
        assert len(cache) == 0

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            ResultCache(capacity=0)

    def test_cache_key_covers_inputs(self):
        config = ProcessingConfig()
        key = cache_key("text", "smart", config)
        assert key == cache_key("text", "smart", config)
        assert key != cache_key("text!", "smart", config)
        assert key != cache_key("text", "simple", config)
        assert key != cache_key("text", "smart", ProcessingConfig(trim=False))
