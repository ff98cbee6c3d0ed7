"""Chunked processing of large inputs.

Chunks are split at whitespace, transformed independently and reassembled
strictly by index. Progress is reported as :class:`ChunkProgress` messages
put on a caller-supplied queue by the coordinating thread only.
"""

from __future__ import annotations

import asyncio
import dataclasses
import queue
import re
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed

from lineweaver.errors import ProcessingCancelled

_WHITESPACE_RE = re.compile(r"\s")

# How far back from the target size to look for a whitespace split point.
_SPLIT_WINDOW = 100


@dataclasses.dataclass(frozen=True, slots=True)
class ChunkProgress:
    index: int          # chunk that just finished
    completed: int      # chunks finished so far
    total: int


class CancellationToken:
    """Thread-safe flag checked between chunks."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def split_chunks(text: str, chunk_size: int) -> list[str]:
    """Split *text* into chunks of roughly *chunk_size* characters.

    Splits happen at whitespace so no word is cut. When the window before
    the target size holds no whitespace, the chunk grows to the next
    whitespace character (or the end of the text).
    """
    chunks: list[str] = []
    pos = 0
    length = len(text)

    while pos < length:
        target = pos + chunk_size
        if target >= length:
            chunks.append(text[pos:])
            break

        split_at = -1
        for i in range(target, max(pos, target - _SPLIT_WINDOW), -1):
            if text[i].isspace():
                split_at = i
                break

        if split_at == -1:
            match = _WHITESPACE_RE.search(text, target)
            split_at = match.start() if match else length

        chunks.append(text[pos:split_at])
        pos = split_at

    return chunks


def _run_chunk(fn: Callable[[str], str], chunk: str, cancel: CancellationToken | None) -> str:
    if cancel is not None and cancel.cancelled:
        raise ProcessingCancelled("Processing cancelled before chunk started")
    return fn(chunk)


def process_chunks(
    chunks: Sequence[str],
    fn: Callable[[str], str],
    *,
    max_workers: int | None = None,
    cancel: CancellationToken | None = None,
    progress: queue.Queue[ChunkProgress] | None = None,
) -> list[str]:
    """Transform *chunks* on a thread pool and return results in chunk order.

    Raises:
        ProcessingCancelled: If *cancel* fires before all chunks finish.
    """
    results: list[str] = [""] * len(chunks)
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="lineweaver") as executor:
        futures: dict[Future[str], int] = {
            executor.submit(_run_chunk, fn, chunk, cancel): index
            for index, chunk in enumerate(chunks)
        }
        completed = 0
        try:
            for future in as_completed(futures):
                if cancel is not None and cancel.cancelled:
                    raise ProcessingCancelled("Processing cancelled")
                index = futures[future]
                results[index] = future.result()
                completed += 1
                if progress is not None:
                    progress.put_nowait(ChunkProgress(index=index, completed=completed, total=len(chunks)))
        except BaseException:
            for future in futures:
                future.cancel()
            raise
    return results


async def aprocess_chunks(
    chunks: Sequence[str],
    fn: Callable[[str], str],
    *,
    cancel: CancellationToken | None = None,
    progress: queue.Queue[ChunkProgress] | asyncio.Queue[ChunkProgress] | None = None,
) -> list[str]:
    """Transform *chunks* one by one, yielding to the event loop in between.

    Raises:
        ProcessingCancelled: If *cancel* fires before all chunks finish.
    """
    results: list[str] = []
    for index, chunk in enumerate(chunks):
        if cancel is not None and cancel.cancelled:
            raise ProcessingCancelled("Processing cancelled")
        results.append(fn(chunk))
        if progress is not None:
            progress.put_nowait(ChunkProgress(index=index, completed=index + 1, total=len(chunks)))
        await asyncio.sleep(0)
    return results
