"""Parallel prompt tokenization with length filtering."""

from __future__ import annotations

import multiprocessing as mp
import os
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, fields
from multiprocessing.pool import Pool
from typing import Any

from rpack.tokenizers import TokenizationError

MAX_LEN = 4096


@dataclass
class EncodeStats:
    prompts: int = 0
    accepted: int = 0
    failed: int = 0
    oversize: int = 0

    def merge(self, other: EncodeStats) -> EncodeStats:
        for field in fields(self):
            setattr(self, field.name, getattr(self, field.name) + getattr(other, field.name))
        return self


_WORKER_TOKENIZER: Any | None = None


def _worker_init(tokenizer: Any) -> None:
    global _WORKER_TOKENIZER
    _WORKER_TOKENIZER = tokenizer


def _encode_chunk(tokenizer: Any, chunk: list[str]) -> list[list[int] | None]:
    encoded: list[list[int] | None] = []
    for prompt in chunk:
        try:
            encoded.append(tokenizer.encode_bytes(prompt.encode("utf-8")))
        except TokenizationError:
            encoded.append(None)
    return encoded


def _worker_encode(chunk: list[str]) -> list[list[int] | None]:
    if _WORKER_TOKENIZER is None:  # pragma: no cover - sanity guard
        raise RuntimeError("Worker tokenizer not initialised")
    return _encode_chunk(_WORKER_TOKENIZER, chunk)


def _chunk_iterable(iterable: Iterable[str], chunk_size: int) -> Iterator[list[str]]:
    chunk: list[str] = []
    for item in iterable:
        chunk.append(item)
        if len(chunk) >= chunk_size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


def resolve_workers(workers: int | None) -> int:
    if workers is None:
        workers = min(os.cpu_count() or 1, 6)
    return max(1, workers)


def create_pool(tokenizer: Any, workers: int) -> Pool:
    ctx = mp.get_context("spawn")
    return ctx.Pool(processes=workers, initializer=_worker_init, initargs=(tokenizer,))


def _filter(
    batches: Iterable[list[list[int] | None]],
    max_len: int,
    stats: EncodeStats,
) -> Iterator[list[int]]:
    for batch in batches:
        for ids in batch:
            stats.prompts += 1
            if ids is None:
                stats.failed += 1
            elif len(ids) >= max_len:
                stats.oversize += 1
            else:
                stats.accepted += 1
                yield ids


def iter_encoded(
    prompts: Iterable[str],
    tokenizer: Any,
    *,
    max_len: int = MAX_LEN,
    stats: EncodeStats | None = None,
    workers: int | None = 1,
    chunk_size: int = 512,
    pool: Pool | None = None,
) -> Iterator[list[int]]:
    """Yield token ids for every prompt that encodes to fewer than ``max_len`` tokens.

    Prompts the tokenizer rejects and prompts at or above ``max_len`` are
    dropped and counted in ``stats``. Output follows input order even when a
    worker pool is used, since ``Pool.imap`` returns chunks in submission order.
    """

    if stats is None:
        stats = EncodeStats()
    chunks = _chunk_iterable(prompts, max(1, chunk_size))
    if pool is not None:
        yield from _filter(pool.imap(_worker_encode, chunks, chunksize=1), max_len, stats)
        return
    workers = resolve_workers(workers)
    if workers > 1:
        with create_pool(tokenizer, workers) as own_pool:
            yield from _filter(own_pool.imap(_worker_encode, chunks, chunksize=1), max_len, stats)
        return
    yield from _filter((_encode_chunk(tokenizer, chunk) for chunk in chunks), max_len, stats)
